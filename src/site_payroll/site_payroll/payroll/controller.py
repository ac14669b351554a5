from __future__ import annotations

from flask import Flask, request

from ..common.web import arg_date, arg_datetime, arg_int, current_actor, json_body, login_required, ok, to_json
from ..core.exceptions import ValidationError
from ..container import Container
from .model import Advance


def _required(data: dict, name: str):
    value = data.get(name)
    if value is None or value == "":
        raise ValidationError(f"{name} is required")
    return value


def _period(data: dict):
    start = arg_date("period_start", data)
    end = arg_date("period_end", data)
    if start is None or end is None:
        raise ValidationError("period_start and period_end are required")
    return start, end


def _flag(name: str):
    value = request.args.get(name)
    if value in (None, ""):
        return None
    return value.lower() in ("1", "true", "yes")


def _advance(a: Advance) -> dict:
    body = to_json(a)
    body["remaining"] = str(a.remaining)
    body["recovery_status"] = a.recovery_status.value
    return body


def register(app: Flask, container: Container) -> None:
    payroll = container.payroll_service
    structures = container.salary_structure_service
    advances = container.advance_service

    # ------------------------------------------------------------------
    # Salary structures
    # ------------------------------------------------------------------

    @app.route("/api/salary/structures", methods=["POST"], endpoint="create_structure")
    @login_required
    def create_structure():
        data = json_body()
        structure = structures.create_structure(
            current_actor(),
            user_id=_required(data, "user_id"),
            project_id=_required(data, "project_id"),
            role=_required(data, "role"),
            salary_type=_required(data, "salary_type"),
            rate_amount=_required(data, "rate_amount"),
            overtime_rate=data.get("overtime_rate", 0),
            effective_from=arg_datetime("effective_from", data),
            effective_to=arg_datetime("effective_to", data),
        )
        return ok(structure, status=201)

    @app.route("/api/salary/structures", methods=["GET"], endpoint="list_structures")
    @login_required
    def list_structures():
        items = structures.list_structures(
            current_actor(),
            project_id=arg_int("project_id"),
            user_id=arg_int("user_id"),
            role=request.args.get("role"),
            is_active=_flag("is_active"),
        )
        return ok(items, count=len(items))

    @app.route("/api/salary/structures/<int:structure_id>", methods=["GET"], endpoint="get_structure")
    @login_required
    def get_structure(structure_id: int):
        return ok(structures.get_structure(current_actor(), structure_id))

    @app.route(
        "/api/salary/structures/active/<int:user_id>/<int:project_id>",
        methods=["GET"],
        endpoint="get_active_structure",
    )
    @login_required
    def get_active_structure(user_id: int, project_id: int):
        return ok(structures.get_active_structure(current_actor(), user_id, project_id))

    @app.route(
        "/api/salary/structures/<int:structure_id>/deactivate",
        methods=["PATCH"],
        endpoint="deactivate_structure",
    )
    @login_required
    def deactivate_structure(structure_id: int):
        return ok(structures.deactivate_structure(current_actor(), structure_id), message="Salary structure deactivated")

    # ------------------------------------------------------------------
    # Payroll
    # ------------------------------------------------------------------

    @app.route("/api/salary/payroll/preview", methods=["POST"], endpoint="preview_payroll")
    @login_required
    def preview_payroll():
        data = json_body()
        start, end = _period(data)
        preview = payroll.preview_payroll(
            current_actor(),
            user_id=_required(data, "user_id"),
            project_id=_required(data, "project_id"),
            period_start=start,
            period_end=end,
            allowances=data.get("allowances"),
            deductions=data.get("deductions"),
            overtime_hours=data.get("overtime_hours", 0),
        )
        return ok(preview)

    @app.route("/api/salary/payroll", methods=["POST"], endpoint="generate_payroll")
    @login_required
    def generate_payroll():
        data = json_body()
        start, end = _period(data)
        created = payroll.generate_payroll(
            current_actor(),
            user_id=_required(data, "user_id"),
            project_id=_required(data, "project_id"),
            period_start=start,
            period_end=end,
            allowances=data.get("allowances"),
            deductions=data.get("deductions"),
            overtime_hours=data.get("overtime_hours", 0),
            remarks=data.get("remarks"),
        )
        return ok(created, status=201, message="Payroll generated")

    @app.route("/api/salary/payroll/bulk", methods=["POST"], endpoint="generate_bulk_payroll")
    @login_required
    def generate_bulk_payroll():
        data = json_body()
        start, end = _period(data)
        result = payroll.generate_bulk_payroll(
            current_actor(),
            project_id=_required(data, "project_id"),
            period_start=start,
            period_end=end,
            allowances=data.get("allowances"),
            deductions=data.get("deductions"),
        )
        return ok(
            {
                "succeeded": [{"user_id": u, "payroll_id": p} for u, p in result.succeeded],
                "failed": [{"user_id": u, "reason": r} for u, r in result.failed],
            },
            status=201,
            message=f"Generated {len(result.succeeded)} payrolls, {len(result.failed)} failed",
        )

    @app.route("/api/salary/payroll", methods=["GET"], endpoint="list_payrolls")
    @login_required
    def list_payrolls():
        items = payroll.list_payrolls(
            current_actor(),
            project_id=arg_int("project_id"),
            user_id=arg_int("user_id"),
            role=request.args.get("role"),
            payment_status=request.args.get("payment_status"),
            period_start=arg_date("period_start"),
            period_end=arg_date("period_end"),
        )
        return ok(items, count=len(items))

    @app.route("/api/salary/payroll/me", methods=["GET"], endpoint="my_payrolls")
    @login_required
    def my_payrolls():
        items = payroll.list_my_payrolls(current_actor())
        return ok(items, count=len(items))

    @app.route("/api/salary/payroll/<int:payroll_id>", methods=["GET"], endpoint="get_payroll")
    @login_required
    def get_payroll(payroll_id: int):
        return ok(payroll.get_payroll(current_actor(), payroll_id))

    @app.route("/api/salary/payroll/<int:payroll_id>", methods=["PUT"], endpoint="update_payroll")
    @login_required
    def update_payroll(payroll_id: int):
        data = json_body()
        updated = payroll.update_payroll(
            current_actor(),
            payroll_id,
            allowances=data.get("allowances"),
            deductions=data.get("deductions"),
            overtime_hours=data.get("overtime_hours"),
            remarks=data.get("remarks"),
        )
        return ok(updated, message="Payroll updated")

    @app.route("/api/salary/payroll/<int:payroll_id>/pay", methods=["PATCH"], endpoint="record_payment")
    @login_required
    def record_payment(payroll_id: int):
        data = json_body()
        updated = payroll.record_payment(
            current_actor(),
            payroll_id,
            payment_mode=_required(data, "payment_mode"),
            amount=data.get("amount"),
            transaction_reference=data.get("transaction_reference"),
            payment_date=arg_datetime("payment_date", data),
        )
        return ok(updated, message="Payment recorded")

    @app.route("/api/salary/payroll/<int:payroll_id>", methods=["DELETE"], endpoint="delete_payroll")
    @login_required
    def delete_payroll(payroll_id: int):
        payroll.delete_payroll(current_actor(), payroll_id)
        return ok(message="Payroll deleted")

    @app.route("/api/salary/payroll/summary/<int:project_id>", methods=["GET"], endpoint="project_payroll_summary")
    @login_required
    def project_payroll_summary(project_id: int):
        return ok(payroll.project_payroll_summary(current_actor(), project_id))

    # ------------------------------------------------------------------
    # Advances
    # ------------------------------------------------------------------

    @app.route("/api/salary/advances", methods=["POST"], endpoint="give_advance")
    @login_required
    def give_advance():
        data = json_body()
        advance = advances.give_advance(
            current_actor(),
            user_id=_required(data, "user_id"),
            project_id=_required(data, "project_id"),
            amount=_required(data, "amount"),
            reason=data.get("reason"),
            given_date=arg_datetime("given_date", data),
        )
        return ok(_advance(advance), status=201)

    @app.route("/api/salary/advances", methods=["GET"], endpoint="list_advances")
    @login_required
    def list_advances():
        items = advances.list_advances(
            current_actor(),
            project_id=arg_int("project_id"),
            user_id=arg_int("user_id"),
            recovery_status=request.args.get("recovery_status"),
        )
        return ok([_advance(a) for a in items], count=len(items))

    @app.route("/api/salary/advances/me", methods=["GET"], endpoint="my_advances")
    @login_required
    def my_advances():
        items = advances.list_my_advances(current_actor())
        return ok([_advance(a) for a in items], count=len(items))

    @app.route("/api/salary/advances/<int:advance_id>", methods=["GET"], endpoint="get_advance")
    @login_required
    def get_advance(advance_id: int):
        return ok(_advance(advances.get_advance(current_actor(), advance_id)))

    @app.route("/api/salary/advances/<int:advance_id>", methods=["PUT"], endpoint="update_advance")
    @login_required
    def update_advance(advance_id: int):
        data = json_body()
        updated = advances.update_advance(
            current_actor(),
            advance_id,
            amount=data.get("amount"),
            reason=data.get("reason"),
            given_date=arg_datetime("given_date", data),
        )
        return ok(_advance(updated), message="Advance updated")

    @app.route("/api/salary/advances/<int:advance_id>", methods=["DELETE"], endpoint="delete_advance")
    @login_required
    def delete_advance(advance_id: int):
        advances.delete_advance(current_actor(), advance_id)
        return ok(message="Advance deleted")

    @app.route("/api/salary/advances/<int:advance_id>/recover", methods=["PATCH"], endpoint="recover_advance")
    @login_required
    def recover_advance(advance_id: int):
        data = json_body()
        advance, settled = advances.recover_advance(current_actor(), advance_id, _required(data, "amount"))
        return ok({"advance": _advance(advance), "payroll": settled}, message="Advance recovery recorded")

    @app.route(
        "/api/salary/advances/summary/<int:user_id>/<int:project_id>",
        methods=["GET"],
        endpoint="user_advance_summary",
    )
    @login_required
    def user_advance_summary(user_id: int, project_id: int):
        summary = advances.user_advance_summary(current_actor(), user_id, project_id)
        return ok(
            {
                "advances": [_advance(a) for a in summary.advances],
                "total_given": summary.total_given,
                "total_recovered": summary.total_recovered,
                "total_pending": summary.total_pending,
            }
        )

    @app.route(
        "/api/salary/advances/project-summary/<int:project_id>",
        methods=["GET"],
        endpoint="project_advance_summary",
    )
    @login_required
    def project_advance_summary(project_id: int):
        return ok(advances.project_advance_summary(current_actor(), project_id))
