"""
Validated application configuration and the loaders that build it
from environment variables.
"""

from pathlib import Path
from typing import Any, Optional, Tuple
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from .config_types import DbDriver, EnvLogBackends, EnvLogLevel, Environment, SslMode
from .env_config import get_enum_env, get_env, get_int_env, get_list_env, require_env

# Blocking drivers used where an async engine is not available (Alembic).
_SYNC_DIALECTS = {
    DbDriver.ASYNCPG: "postgresql+psycopg2",
    DbDriver.PSYCOPG: "postgresql+psycopg",
    DbDriver.AIOSQLITE: "sqlite",
}


class LoggingConfig(BaseModel):
    level: EnvLogLevel
    backends: Tuple[EnvLogBackends, ...] = (EnvLogBackends.FILE,)
    log_dir: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def level_int(self) -> int:
        return self.level.level


class DatabaseConfig(BaseModel):
    """
    Connection, pool and TLS settings.

    PostgreSQL drivers need host and port. For aiosqlite `name` is the
    database file and the server fields are ignored.
    """

    driver: DbDriver
    name: str = Field(..., min_length=1)
    host: Optional[str] = Field(default=None, min_length=1)
    port: Optional[int] = Field(default=None, gt=0, le=65535)
    username: Optional[str] = Field(default=None, min_length=1)
    password: Optional[SecretStr] = None

    pool_size: int = Field(..., ge=1, le=100)
    max_overflow: int = Field(..., ge=0, le=100)
    pool_timeout: int = Field(..., ge=1, le=300)
    pool_recycle: int = Field(..., ge=300)
    # milliseconds
    slow_query_threshold: float = Field(..., gt=0)

    ssl_mode: Optional[SslMode] = None
    ssl_cert_path: Optional[Path] = None
    ssl_key_path: Optional[Path] = None
    ssl_ca_path: Optional[Path] = None

    model_config = {"frozen": True}

    @field_validator("ssl_cert_path", "ssl_key_path", "ssl_ca_path")
    @classmethod
    def ssl_file_exists(cls, path: Optional[Path]) -> Optional[Path]:
        if path is not None and not path.exists():
            raise ValueError(f"SSL file not found: {path}")
        return path

    @model_validator(mode="after")
    def server_address_present(self) -> "DatabaseConfig":
        if not self.driver.is_sqlite and (self.host is None or self.port is None):
            raise ValueError(f"DB_HOST and DB_PORT are required for {self.driver}")
        return self

    def _build_url(self, dialect: str, include_password: bool) -> str:
        if self.driver.is_sqlite:
            return f"{dialect}:///{self.name}"

        credentials = ""
        if self.username:
            secret = "****"
            if include_password and self.password:
                secret = self.password.get_secret_value()
            credentials = f"{self.username}:{secret}@"
        return f"{dialect}://{credentials}{self.host}:{self.port}/{self.name}"

    def get_connection_url(self, include_password: bool = False) -> str:
        """
        Async SQLAlchemy URL. The password is masked unless asked for,
        so the default form is safe to log.
        """
        if self.driver.is_sqlite:
            dialect = "sqlite+aiosqlite"
        else:
            dialect = f"postgresql+{self.driver.value}"
        return self._build_url(dialect, include_password)

    def get_sync_url(self, include_password: bool = False) -> str:
        return self._build_url(_SYNC_DIALECTS[self.driver], include_password)

    def requires_ssl(self) -> bool:
        return self.ssl_mode is not None and self.ssl_mode.is_required

    def to_dict_safe(self) -> dict[str, Any]:
        data = self.model_dump()
        if data.get("password"):
            data["password"] = "****"
        return data


class BookingConfig(BaseModel):
    """
    Booking policy.

    horizon_days bounds how far ahead a slot can be resolved; dates past
    today + horizon_days never yield slots. slot_interval_minutes is the
    step used to subdivide weekly (start, end) templates.
    """

    horizon_days: int = Field(30, ge=0, le=365)
    slot_interval_minutes: int = Field(30, ge=5, le=240)

    model_config = {"frozen": True}

    @field_validator("slot_interval_minutes")
    @classmethod
    def divides_a_day(cls, minutes: int) -> int:
        if (24 * 60) % minutes:
            raise ValueError("SLOT_INTERVAL_MINUTES must divide 1440 evenly")
        return minutes


class AppConfig(BaseModel):
    app_title: str = Field(..., min_length=1)
    app_version: str = Field(..., pattern=r"^\d+\.\d+\.\d+$")
    environment: str = Field(..., pattern="^(development|staging|production)$")

    logging: LoggingConfig
    database: Optional[DatabaseConfig] = None
    booking: BookingConfig = Field(default_factory=BookingConfig)

    model_config = {"frozen": True}

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION.value

    @model_validator(mode="after")
    def production_requirements(self) -> "AppConfig":
        if not self.is_production:
            return self
        if self.database is None:
            raise ValueError("Database config required in production")
        if self.database.driver.is_sqlite:
            raise ValueError("SQLite is not supported in production")
        if self.logging.level == EnvLogLevel.DEBUG:
            raise ValueError("DEBUG log level not allowed in production")
        return self


def load_logging_config() -> LoggingConfig:
    """
    LOG_LEVEL (required, case-insensitive), LOG_BACKENDS (comma-separated,
    default "file") and LOG_DIR (optional, file backend target).
    """
    level = require_env("LOG_LEVEL").upper()
    if level not in EnvLogLevel.choices():
        raise ValueError(
            f"Invalid LOG_LEVEL: {level}. Must be one of: {EnvLogLevel.choices()}"
        )

    backends = []
    for name in get_list_env("LOG_BACKENDS", "file"):
        if name not in EnvLogBackends.choices():
            raise ValueError(
                f"Invalid LOG_BACKENDS entry: {name}. "
                f"Must be one of: {EnvLogBackends.choices()}"
            )
        backends.append(EnvLogBackends(name))

    return LoggingConfig(
        level=EnvLogLevel(level),
        backends=tuple(backends),
        log_dir=get_env("LOG_DIR"),
    )


def _optional_path(name: str) -> Optional[Path]:
    value = get_env(name)
    return Path(value) if value else None


def load_database_config(environment: Environment) -> Optional[DatabaseConfig]:
    """
    Build the database section, or return None when DB_DRIVER is unset.

    Always required: DB_DRIVER, DB_NAME, DB_POOL_SIZE, DB_MAX_OVERFLOW,
    DB_POOL_TIMEOUT, DB_POOL_RECYCLE, SLOW_QUERY_THRESHOLD.
    PostgreSQL drivers also need DB_HOST and DB_PORT. In production
    DB_USER, DB_PASSWORD and DB_SSL_MODE become mandatory.
    DB_SSL_CERT, DB_SSL_KEY and DB_SSL_CA are optional file paths.
    """
    driver = get_enum_env("DB_DRIVER", DbDriver, required=False)
    if driver is None:
        return None

    read = require_env if environment.is_production else get_env

    host, port = None, None
    if not driver.is_sqlite:
        host = require_env("DB_HOST")
        port = int(require_env("DB_PORT"))

    password = read("DB_PASSWORD")
    ssl_mode = get_enum_env("DB_SSL_MODE", SslMode, required=environment.is_production)

    return DatabaseConfig(
        driver=driver,
        name=require_env("DB_NAME"),
        host=host,
        port=port,
        username=read("DB_USER"),
        password=SecretStr(password) if password else None,
        pool_size=int(require_env("DB_POOL_SIZE")),
        max_overflow=int(require_env("DB_MAX_OVERFLOW")),
        pool_timeout=int(require_env("DB_POOL_TIMEOUT")),
        pool_recycle=int(require_env("DB_POOL_RECYCLE")),
        slow_query_threshold=float(require_env("SLOW_QUERY_THRESHOLD")),
        ssl_mode=ssl_mode,
        ssl_cert_path=_optional_path("DB_SSL_CERT"),
        ssl_key_path=_optional_path("DB_SSL_KEY"),
        ssl_ca_path=_optional_path("DB_SSL_CA"),
    )


def load_booking_config() -> BookingConfig:
    """BOOKING_HORIZON_DAYS and SLOT_INTERVAL_MINUTES, both defaulting to 30."""
    return BookingConfig(
        horizon_days=get_int_env("BOOKING_HORIZON_DAYS", 30),
        slot_interval_minutes=get_int_env("SLOT_INTERVAL_MINUTES", 30),
    )


def load_app_config() -> AppConfig:
    """
    Read every section from the environment.

    Raises pydantic.ValidationError for out-of-range values, ValueError for
    unknown enum values and ConfigurationError for missing variables.
    """
    environment = get_enum_env("ENVIRONMENT", Environment)

    return AppConfig(
        app_title=require_env("APP_TITLE"),
        app_version=require_env("APP_VERSION"),
        environment=environment.value,
        logging=load_logging_config(),
        database=load_database_config(environment),
        booking=load_booking_config(),
    )


__all__ = [
    "AppConfig",
    "LoggingConfig",
    "BookingConfig",
    "DatabaseConfig",
    "load_app_config",
    "load_logging_config",
    "load_database_config",
    "load_booking_config",
]
