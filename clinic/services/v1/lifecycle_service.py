from dataclasses import dataclass
from enum import Enum
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from common import ForbiddenTransitionError, InvalidStateError, get_app_logger
from clinic.db.models import Booking, BookingStatus
from .booking_service import BookingService

logger = get_app_logger(__name__, persist=True)


class Role(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    role: Role
    # Patient id for patients, doctor id for doctors; admins may leave it empty
    actor_id: Optional[str] = None

    def owns(self, booking: Booking) -> bool:
        if self.role == Role.ADMIN:
            return True
        if self.role == Role.PATIENT:
            return self.actor_id is not None and booking.patient_id == self.actor_id
        return self.actor_id is not None and booking.doctor_id == self.actor_id


Transition = tuple[BookingStatus, BookingStatus]

STATE_MACHINE: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.REJECTED, BookingStatus.CANCELLED}
    ),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.COMPLETED, BookingStatus.CANCELLED}
    ),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

_ALL_EDGES: frozenset[Transition] = frozenset(
    (source, target) for source, targets in STATE_MACHINE.items() for target in targets
)

# Which edges each role may take. Patients and doctors only on their own bookings.
AUTHORIZATION_TABLE: dict[Role, frozenset[Transition]] = {
    Role.PATIENT: frozenset({(BookingStatus.PENDING, BookingStatus.CANCELLED)}),
    Role.DOCTOR: frozenset(
        {
            (BookingStatus.PENDING, BookingStatus.CONFIRMED),
            (BookingStatus.PENDING, BookingStatus.REJECTED),
            (BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
            (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
        }
    ),
    Role.ADMIN: _ALL_EDGES,
}


def is_allowed(actor: Actor, booking: Booking, new_status: BookingStatus) -> bool:
    edge = (booking.status, new_status)
    return (
        edge in _ALL_EDGES
        and edge in AUTHORIZATION_TABLE[actor.role]
        and actor.owns(booking)
    )


class BookingLifecycleService:
    """Status changes on existing bookings, gated by role and ownership."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.bookings = BookingService(db)

    @staticmethod
    def allowed_transitions(booking: Booking, actor: Actor) -> list[BookingStatus]:
        """Targets the actor could move this booking to, in declaration order."""
        return [
            status for status in BookingStatus if is_allowed(actor, booking, status)
        ]

    async def transition(
        self,
        booking_id: str,
        actor: Actor,
        new_status: BookingStatus,
        notes: Optional[str] = None,
    ) -> Booking:
        """
        Raises:
            NotFoundError: unknown booking
            InvalidStateError: the booking is already completed, rejected or cancelled
            ForbiddenTransitionError: not a valid edge, or not this actor's to take
        """
        booking = await self.bookings.get(booking_id)
        current = booking.status

        if current.is_terminal:
            raise InvalidStateError(
                f"Booking {booking_id} is {current.value} and can no longer change"
            )

        if not is_allowed(actor, booking, new_status):
            logger.warning(
                "Transition refused",
                booking_id=booking_id,
                role=actor.role.value,
                actor_id=actor.actor_id,
                current=current.value,
                requested=new_status.value,
            )
            raise ForbiddenTransitionError(
                f"{actor.role.value} cannot move booking from "
                f"{current.value} to {new_status.value}"
            )

        booking = await self.bookings.update_status(booking_id, new_status, notes)
        logger.info(
            "Booking status changed",
            booking_id=booking_id,
            role=actor.role.value,
            actor_id=actor.actor_id,
            previous=current.value,
            status=new_status.value,
        )
        return booking


__all__ = [
    "Role",
    "Actor",
    "STATE_MACHINE",
    "AUTHORIZATION_TABLE",
    "BookingLifecycleService",
]
