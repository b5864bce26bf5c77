"""Enumerations accepted in environment variables."""

from enum import Enum
import logging
from typing import List


class _EnvChoice(str, Enum):
    """str-backed enum so values print and serialize as their raw text."""

    def __str__(self) -> str:
        return self.value

    @classmethod
    def choices(cls) -> List[str]:
        return [member.value for member in cls]


class EnvLogLevel(_EnvChoice):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def level(self) -> int:
        """Numeric level understood by the stdlib logging module."""
        return logging.getLevelName(self.value)


class EnvLogBackends(_EnvChoice):
    FILE = "file"


class Environment(_EnvChoice):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @property
    def is_production(self) -> bool:
        return self is Environment.PRODUCTION


class DbDriver(_EnvChoice):
    """
    Async drivers the engine can be built on.

    aiosqlite treats DB_NAME as a file path; the others are PostgreSQL.
    """

    ASYNCPG = "asyncpg"
    PSYCOPG = "psycopg"
    AIOSQLITE = "aiosqlite"

    @property
    def is_sqlite(self) -> bool:
        return self is DbDriver.AIOSQLITE


class SslMode(_EnvChoice):
    DISABLE = "disable"
    ALLOW = "allow"
    PREFER = "prefer"
    REQUIRE = "require"
    VERIFY_CA = "verify-ca"
    VERIFY_FULL = "verify-full"

    @property
    def is_required(self) -> bool:
        return self in (SslMode.REQUIRE, SslMode.VERIFY_CA, SslMode.VERIFY_FULL)


__all__ = [
    "EnvLogLevel",
    "EnvLogBackends",
    "Environment",
    "DbDriver",
    "SslMode",
]
