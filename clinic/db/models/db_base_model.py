from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator
from datetime import datetime, timezone
from uuid import uuid4


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class UtcDateTime(TypeDecorator):
    """
    Timezone-aware timestamp stored in UTC.

    SQLite has no timezone support and hands back naive values; those are
    read as UTC so every loaded timestamp is aware.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class DbBaseModel(DeclarativeBase):
    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        UtcDateTime(),
        default=utc_now,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        UtcDateTime(),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    @staticmethod
    def generate_uuid():
        return str(uuid4())

    @staticmethod
    def generate_short_code():
        # 10-digit numeric code derived from a UUIDv4
        return str(uuid4().int % 10**10).zfill(10)


__all__ = ["DbBaseModel", "UtcDateTime", "utc_now"]
