"""
Alembic environment.

The target database comes from the same environment variables the API
reads (DB_DRIVER, DB_NAME, ...), through a blocking driver.
"""

import os
import sys
from logging.config import fileConfig
from alembic import context
from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

# alembic runs with alembic/ as script location; make the project importable
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from common.api_error import ConfigurationError  # noqa: E402
from common.config import DatabaseConfig, get_config, initialize_config  # noqa: E402
from clinic.db.models import DbBaseModel  # noqa: E402

load_dotenv()
try:
    initialize_config()
except ConfigurationError as e:
    print(f"FATAL: Configuration error:\n{e}")
    sys.exit(1)

alembic_config = context.config
if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)

target_metadata = DbBaseModel.metadata


def _database() -> DatabaseConfig:
    database = get_config().database
    if database is None:
        raise RuntimeError("Set DB_DRIVER and friends before running migrations")
    return database


def _psycopg_ssl_args(database: DatabaseConfig) -> dict[str, str]:
    """DB_SSL_* expressed as libpq connection parameters."""
    if database.ssl_mode is None:
        return {}
    args = {"sslmode": database.ssl_mode.value}
    if database.requires_ssl():
        for key, path in (
            ("sslrootcert", database.ssl_ca_path),
            ("sslcert", database.ssl_cert_path),
            ("sslkey", database.ssl_key_path),
        ):
            if path:
                args[key] = str(path)
    return args


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of executing it (`alembic upgrade --sql`)."""
    context.configure(
        url=_database().get_sync_url(include_password=True),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    database = _database()
    section = alembic_config.get_section(alembic_config.config_ini_section) or {}
    section["sqlalchemy.url"] = database.get_sync_url(include_password=True)

    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args={} if database.driver.is_sqlite else _psycopg_ssl_args(database),
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # SQLite cannot ALTER most constraints in place
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
