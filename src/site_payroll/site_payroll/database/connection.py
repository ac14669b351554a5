from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

import mysql.connector


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str

    @classmethod
    def from_mapping(cls, values: Mapping) -> "DBConfig":
        """Build from a settings ``DB_CONFIG`` dict; missing keys get local defaults."""
        return cls(
            host=str(values.get("host", "localhost")),
            port=int(values.get("port", 3306)),
            user=str(values.get("user", "root")),
            password=str(values.get("password", "")),
            database=str(values.get("database", "site_payroll")),
        )


def open_connection(config: DBConfig, *, with_database: bool = True):
    """A fresh mysql-connector connection pinned to UTC."""
    kwargs = dict(
        host=config.host,
        port=config.port,
        user=config.user,
        password=config.password,
        time_zone="+00:00",
    )
    if with_database:
        kwargs["database"] = config.database
    return mysql.connector.connect(**kwargs)


class DatabaseConnection:
    """Process-wide connection factory handed to every MySQL repository.

    Each repository call opens and closes its own connection; the session
    time zone is UTC so DATETIME columns round-trip as UTC wall time.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig):
        self.config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None or cls._instance.config != config:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    def connect(self):
        return open_connection(self.config)
