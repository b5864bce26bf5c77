from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import AsyncGenerator
from contextlib import nullcontext
from common import request_timer_context_var


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    One transactional session per request.

    Pulls the manager from app.state so several app instances (tests) can
    each carry their own database.
    """
    manager = getattr(request.app.state, "db_manager", None)

    if not manager:
        raise RuntimeError(
            "DbManager not found in app.state. Ensure lifespan is configured."
        )

    timer = request_timer_context_var.get()
    with timer.capture("db") if timer is not None else nullcontext():
        async with manager.session() as session:
            yield session


__all__ = ["get_db"]
