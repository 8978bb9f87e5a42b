import logging

from sqlalchemy.orm import Session

from ticketing.domain.exceptions import DuplicateBookingError
from ticketing.infrastructure.repositories.booking_repository import BookingRepository


logger = logging.getLogger(__name__)


class DoubleBookingGuard:
    """
    Rejects a booking request when the actor already holds a PENDING or
    CONFIRMED booking for the same ticket type.

    The lookup is a fast pre-check. The partial unique index on bookings
    is what makes check-and-insert atomic; BookingService translates its
    violation into the same DuplicateBookingError.
    """

    def __init__(self, db: Session):
        self.booking_repository = BookingRepository(db)

    def ensure_no_active_booking(self, actor_id: str, ticket_type_id: str) -> None:
        existing = self.booking_repository.find_active(actor_id, ticket_type_id)
        if existing:
            logger.info(
                "Duplicate booking rejected actor_id=%s ticket_type_id=%s existing=%s",
                actor_id,
                ticket_type_id,
                existing.id,
            )
            raise DuplicateBookingError()
