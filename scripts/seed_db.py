from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.site_payroll.site_payroll.common.logging_config import configure_logging, get_logger
from src.site_payroll.site_payroll.database.bootstrap import ensure_demo_project, ensure_demo_users

log = get_logger("scripts.seed_db")


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    configure_logging(level=getattr(settings, "LOG_LEVEL", "INFO"), json_output=False)
    db_config = dict(settings.DB_CONFIG)

    ensure_demo_users(db_config)
    project_id = ensure_demo_project(db_config)

    log.info(
        "seeded %s@%s:%s/%s (demo project_id=%d)",
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
        project_id,
    )


if __name__ == "__main__":
    main()
