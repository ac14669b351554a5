from pathlib import Path

from src.site_payroll.site_payroll.database.bootstrap import schema_statements
from src.site_payroll.site_payroll.database.connection import DBConfig

SCHEMA = Path(__file__).resolve().parents[1] / "database" / "schema.sql"


def test_schema_yields_only_table_statements():
    statements = list(schema_statements(SCHEMA.read_text(encoding="utf-8")))

    assert len(statements) == 7
    assert all(s.upper().startswith("CREATE TABLE IF NOT EXISTS") for s in statements)
    assert any("uq_payroll_period" in s for s in statements)


def test_comments_with_semicolons_do_not_split():
    sql = "-- a; b\nCREATE TABLE t (id INT);\nUSE other;\n"
    assert list(schema_statements(sql)) == ["CREATE TABLE t (id INT)"]


def test_db_config_defaults():
    config = DBConfig.from_mapping({"user": "app", "port": "3307"})

    assert config.port == 3307
    assert config.host == "localhost"
    assert config.database == "site_payroll"
