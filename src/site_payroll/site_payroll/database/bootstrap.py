"""Schema and demo data for a fresh database.

Used by ``create_app`` when AUTO_INIT_DB / AUTO_SEED_DB are set and by the
scripts under ``scripts/``.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterator, Mapping

from werkzeug.security import generate_password_hash

from ..common.logging_config import get_logger
from .connection import DBConfig, open_connection

logger = get_logger(__name__)

DEMO_USERS = (
    ("Super Admin", "admin@example.com", "admin123", "super_admin"),
    ("Site Manager", "manager@example.com", "manager123", "site_manager"),
    ("Labour Demo", "labour@example.com", "labour123", "labour"),
)
DEMO_PROJECT = ("Demo Site", "Block A", 77.5946, 12.9716)

_DB_LEVEL = re.compile(r"^\s*(CREATE\s+DATABASE|USE)\b", re.IGNORECASE)


def schema_statements(sql: str) -> Iterator[str]:
    """Table statements of ``schema.sql``; database selection comes from settings."""
    lines = [line for line in sql.splitlines() if not line.lstrip().startswith("--")]
    for chunk in "\n".join(lines).split(";"):
        stmt = chunk.strip()
        if stmt and not _DB_LEVEL.match(stmt):
            yield stmt


def apply_schema(db_config: Mapping, *, schema_path: str | Path) -> None:
    config = DBConfig.from_mapping(db_config)

    server = open_connection(config, with_database=False)
    try:
        server.cursor().execute(
            f"CREATE DATABASE IF NOT EXISTS `{config.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        server.commit()
    finally:
        server.close()

    statements = list(schema_statements(Path(schema_path).read_text(encoding="utf-8")))
    conn = open_connection(config)
    try:
        cur = conn.cursor()
        for stmt in statements:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("schema applied", extra={"statements": len(statements), "schema_path": str(schema_path)})


def ensure_demo_users(db_config: Mapping) -> None:
    """Upsert one account per role so a fresh database can be exercised."""
    conn = open_connection(DBConfig.from_mapping(db_config))
    try:
        cur = conn.cursor(dictionary=True)
        for name, email, password, role in DEMO_USERS:
            cur.execute(
                """
                INSERT INTO users (name, email, password_hash, role)
                VALUES (%s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE
                    name = VALUES(name), password_hash = VALUES(password_hash),
                    role = VALUES(role), is_active = 1
                """,
                (name, email, generate_password_hash(password), role),
            )
        conn.commit()
    finally:
        conn.close()


def ensure_demo_project(db_config: Mapping) -> int:
    """Create the demo site (managed by the demo site manager) and return its id."""
    name, site, lng, lat = DEMO_PROJECT
    conn = open_connection(DBConfig.from_mapping(db_config))
    try:
        cur = conn.cursor(dictionary=True)
        cur.execute("SELECT project_id FROM projects WHERE project_name=%s", (name,))
        row = cur.fetchone()
        if row:
            return int(row["project_id"])

        cur.execute("SELECT user_id FROM users WHERE email=%s", ("manager@example.com",))
        manager = cur.fetchone()
        cur.execute(
            """
            INSERT INTO projects (project_name, site_name, location_lng, location_lat, site_manager_id)
            VALUES (%s, %s, %s, %s, %s)
            """,
            (name, site, lng, lat, manager["user_id"] if manager else None),
        )
        project_id = int(cur.lastrowid)
        conn.commit()
        logger.info("demo project created", extra={"project_id": project_id})
        return project_id
    finally:
        conn.close()


def list_tables(db_config: Mapping) -> list[str]:
    conn = open_connection(DBConfig.from_mapping(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
