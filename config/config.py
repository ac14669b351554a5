"""Environment readers shared by the settings modules."""

import os


def env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def env_weekdays(name: str, default: str = "6") -> tuple:
    """Comma separated weekday numbers, Monday = 0."""
    raw = os.getenv(name, default)
    return tuple(int(part) for part in raw.split(",") if part.strip())


def db_config_from_env(*, default_database: str = "site_payroll", default_password: str = "") -> dict:
    # mysql-connector connect() kwargs
    return {
        "host": os.getenv("DB_HOST", "localhost"),
        "port": int(os.getenv("DB_PORT", "3306")),
        "user": os.getenv("DB_USER", "root"),
        "password": os.getenv("DB_PASSWORD", default_password),
        "database": os.getenv("DB_NAME", default_database),
    }
