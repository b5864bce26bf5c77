# clinic/db/db_manager.py
"""
Engine, pool and session ownership for the clinic database.

The schema itself belongs to Alembic (`alembic upgrade head`); this
module only checks that a revision has been applied.
"""

import ssl
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional, Union
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from common import DatabaseConfig, SslMode, logger, request_timer_context_var

_SUPPORTED_URL_PREFIXES = (
    "postgresql+asyncpg://",
    "postgresql+psycopg://",
    "sqlite+aiosqlite://",
)

_ALEMBIC_TABLE_QUERY = {
    "sqlite": (
        "SELECT EXISTS (SELECT 1 FROM sqlite_master "
        "WHERE type = 'table' AND name = 'alembic_version')"
    ),
    "postgresql": (
        "SELECT EXISTS (SELECT 1 FROM information_schema.tables "
        "WHERE table_name = 'alembic_version')"
    ),
}


def _asyncpg_ssl(config: DatabaseConfig) -> Union[bool, ssl.SSLContext, None]:
    """Translate DB_SSL_MODE into asyncpg's `ssl` connect argument."""
    if config.ssl_mode is None:
        return None
    if config.ssl_mode is SslMode.DISABLE:
        return False
    if not config.requires_ssl():
        return None

    context = ssl.create_default_context()
    if config.ssl_ca_path:
        context.load_verify_locations(cafile=str(config.ssl_ca_path))
    if config.ssl_cert_path and config.ssl_key_path:
        context.load_cert_chain(
            certfile=str(config.ssl_cert_path), keyfile=str(config.ssl_key_path)
        )

    if config.ssl_mode is SslMode.VERIFY_FULL:
        context.check_hostname = True
        context.verify_mode = ssl.CERT_REQUIRED
    else:
        context.check_hostname = False
        if config.ssl_mode is SslMode.REQUIRE:
            context.verify_mode = ssl.CERT_NONE
    return context


class DbManager:
    """
    Owns the AsyncEngine and hands out transactional sessions.

        db_manager = DbManager.from_config(config.database)
        await db_manager.verify_connection()

        async with db_manager.session() as session:
            await BookingService(session).create(draft)

        await db_manager.dispose()

    Every executed statement is timed. The time is added to the current
    request's RequestTimer, and statements slower than
    slow_query_threshold (ms) are logged as warnings.
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        pool_pre_ping: bool = True,
        slow_query_threshold: float = 500.0,
        echo: bool = False,
        connect_args: Optional[dict[str, Any]] = None,
    ):
        if not url or not url.startswith(_SUPPORTED_URL_PREFIXES):
            raise ValueError(
                f"Invalid database URL, expected one of {_SUPPORTED_URL_PREFIXES}, "
                f"got: {url[:20]}..."
            )

        self.is_sqlite = url.startswith("sqlite")
        self.slow_query_threshold = slow_query_threshold
        self._snapshot: dict[str, Any] = {
            # host/port/name only, never credentials
            "url": url.split("@")[-1],
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
            "pool_recycle": pool_recycle,
            "slow_query_threshold": slow_query_threshold,
        }

        self.engine: AsyncEngine = create_async_engine(
            url=url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            pool_pre_ping=pool_pre_ping,
            connect_args=connect_args or {},
        )
        self._listen()
        self.session_maker = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

        logger.info(
            "DbManager initialized",
            dialect=self.engine.dialect.name,
            pool_size=pool_size,
            max_overflow=max_overflow,
        )

    @classmethod
    def from_config(cls, config: DatabaseConfig, **kwargs: Any) -> "DbManager":
        connect_args: dict[str, Any] = kwargs.pop("connect_args", {})

        if config.driver.is_sqlite:
            # busy timeout: a second writer waits for the lock instead of failing
            connect_args.setdefault("timeout", config.pool_timeout)
        elif config.driver.value == "asyncpg":
            ssl_arg = _asyncpg_ssl(config)
            if ssl_arg is not None:
                connect_args["ssl"] = ssl_arg

        return cls(
            url=config.get_connection_url(include_password=True),
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            slow_query_threshold=config.slow_query_threshold,
            connect_args=connect_args,
            **kwargs,
        )

    def _listen(self) -> None:
        sync_engine = self.engine.sync_engine
        threshold = self.slow_query_threshold

        if self.is_sqlite:
            # bookings.doctor_id must be enforced or reservations for unknown
            # doctors would be accepted
            @event.listens_for(sync_engine, "connect")
            def _sqlite_foreign_keys(dbapi_connection, _record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        @event.listens_for(sync_engine, "before_cursor_execute")
        def _start_clock(conn, _cursor, _statement, _params, _context, _many):
            conn.info.setdefault("query_start_time", []).append(time.perf_counter())

        @event.listens_for(sync_engine, "after_cursor_execute")
        def _stop_clock(conn, _cursor, statement, _params, _context, _many):
            elapsed_ms = (time.perf_counter() - conn.info["query_start_time"].pop()) * 1000

            timer = request_timer_context_var.get()
            if timer is not None:
                timer.add("sql", elapsed_ms)
                timer.increment("query_count")

            if elapsed_ms > threshold:
                logger.warning(
                    "Slow query", duration_ms=round(elapsed_ms, 2), statement=statement[:200]
                )

    async def _select_one(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def verify_connection(self) -> None:
        """Raises ConnectionError when the database cannot be reached."""
        try:
            await self._select_one()
        except Exception as e:
            logger.error("Database connection failed", error=str(e))
            raise ConnectionError(f"Failed to connect to database: {e}") from e
        logger.info("Database connection verified")

    async def verify_migrations_current(self) -> str:
        """
        Return the applied Alembic revision.

        Raises RuntimeError when alembic_version is missing or empty, so the
        API refuses to start on a database without the bookings index.
        """
        query = _ALEMBIC_TABLE_QUERY[self.engine.dialect.name]

        async with self.engine.connect() as conn:
            if not (await conn.execute(text(query))).scalar():
                raise RuntimeError(
                    "alembic_version table not found. Have you run 'alembic upgrade head'?"
                )
            revision = (
                await conn.execute(text("SELECT version_num FROM alembic_version"))
            ).scalar()

        if not revision:
            raise RuntimeError("No Alembic revision applied. Run 'alembic upgrade head'.")
        logger.info("Current migration version", revision=revision)
        return revision

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """One transaction: commit when the block exits cleanly, else roll back."""
        session = self.session_maker()
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.warning(
                "Session rolled back", error_type=type(e).__name__, error=str(e)
            )
            raise
        finally:
            await session.close()

    async def health_check(self) -> dict[str, Any]:
        started = time.perf_counter()
        try:
            await self._select_one()
        except Exception as e:
            return {"healthy": False, "error": str(e)}
        return {
            "healthy": True,
            "response_time_ms": round((time.perf_counter() - started) * 1000, 2),
            "pool_status": self.engine.pool.status(),
        }

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database connections disposed")

    def get_config_snapshot(self) -> dict[str, Any]:
        return dict(self._snapshot)


__all__ = ["DbManager"]
