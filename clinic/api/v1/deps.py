from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from common import PermissionDeniedError, ValidationError, get_config
from clinic.db import get_db
from clinic.services.v1 import Actor, AvailabilityService, Role


async def get_actor(
    x_actor_role: Optional[str] = Header(None),
    x_actor_id: Optional[str] = Header(None),
) -> Actor:
    """
    Caller identity as forwarded by the upstream auth layer.

    Patients and doctors must carry an id; admins may omit it.
    """
    if not x_actor_role:
        raise PermissionDeniedError("X-Actor-Role header is required")

    try:
        role = Role(x_actor_role.lower())
    except ValueError:
        valid_roles = [r.value for r in Role]
        raise ValidationError(
            f"Invalid X-Actor-Role: {x_actor_role}. Must be one of: {valid_roles}",
            field="X-Actor-Role",
        )

    if role != Role.ADMIN and not x_actor_id:
        raise ValidationError(
            f"X-Actor-Id header is required for role {role.value}", field="X-Actor-Id"
        )
    return Actor(role=role, actor_id=x_actor_id)


def require_role(actor: Actor, *roles: Role) -> None:
    if actor.role not in roles:
        raise PermissionDeniedError(
            f"{actor.role.value} may not perform this action"
        )


def require_doctor_or_admin(actor: Actor, doctor_id: str) -> None:
    """Admins, or the doctor acting on their own record."""
    if actor.role == Role.ADMIN:
        return
    if actor.role == Role.DOCTOR and actor.actor_id == doctor_id:
        return
    raise PermissionDeniedError("Only this doctor or an admin may do this")


def get_availability_service(
    db: AsyncSession = Depends(get_db),
) -> AvailabilityService:
    booking_config = get_config().booking
    return AvailabilityService(
        db,
        horizon_days=booking_config.horizon_days,
        slot_interval_minutes=booking_config.slot_interval_minutes,
    )


__all__ = [
    "get_actor",
    "require_role",
    "require_doctor_or_admin",
    "get_availability_service",
]
