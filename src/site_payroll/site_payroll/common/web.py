"""Flask glue shared by the JSON controllers."""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from ..users.model import Actor
from .datetime_utils import parse_iso_date, parse_iso_datetime
from .logging_config import get_logger

log = get_logger(__name__)


def status_for(exc: DomainError) -> int:
    if isinstance(exc, AuthenticationError):
        return 401
    if isinstance(exc, AuthorizationError):
        return 403
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ConflictError):
        return 409
    return 400


def to_json(value: Any) -> Any:
    """Make dataclasses, enums, Decimals and dates JSON friendly."""
    if is_dataclass(value) and not isinstance(value, type):
        return to_json(asdict(value))
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def ok(data: Any = None, status: int = 200, **extra: Any):
    body = {"success": True, "data": to_json(data)}
    body.update(to_json(extra))
    return jsonify(body), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        status = status_for(exc)
        log.info(
            "request rejected",
            extra={"path": request.path, "code": exc.code, "status": status},
        )
        return jsonify({"success": False, **to_json(exc.to_dict())}), status


def current_actor() -> Actor:
    if "user_id" not in session:
        raise AuthenticationError("Not authorized, please log in")
    return Actor(user_id=int(session["user_id"]), role=Role(session["role"]))


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        current_actor()
        return view(*args, **kwargs)

    return wrapper


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def arg_int(name: str) -> Optional[int]:
    value = request.args.get(name)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"Invalid {name}: {value!r}")


def arg_date(name: str, source: Optional[dict] = None) -> Optional[date]:
    value = (source if source is not None else request.args).get(name)
    return parse_iso_date(value) if value else None


def arg_datetime(name: str, source: Optional[dict] = None) -> Optional[datetime]:
    value = (source if source is not None else request.args).get(name)
    return parse_iso_datetime(value) if value else None
