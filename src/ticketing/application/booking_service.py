import logging
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ticketing.application.double_booking_guard import DoubleBookingGuard
from ticketing.domain.actor import Actor
from ticketing.domain.exceptions import (
    AlreadyCancelledError,
    DuplicateBookingError,
    EventPastError,
    InsufficientInventoryError,
    NotFoundError,
    PaidBookingError,
    ValidationError,
)
from ticketing.domain.state_machine import BookingStateMachine, BookingStatus, PaymentStatus
from ticketing.infrastructure.db.models import Booking
from ticketing.infrastructure.repositories.booking_repository import BookingRepository
from ticketing.infrastructure.repositories.inventory_ledger import InventoryLedger
from ticketing.infrastructure.repositories.outbox_repository import OutboxRepository
from ticketing.infrastructure.repositories.payment_repository import PaymentRepository


logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 15


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class BookingService:
    """Application service coordinating the booking lifecycle up to payment."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = _utc_now):
        self.db = db
        self.clock = clock
        self.booking_repository = BookingRepository(db)
        self.payment_repository = PaymentRepository(db)
        self.inventory = InventoryLedger(db)
        self.outbox = OutboxRepository(db)
        self.guard = DoubleBookingGuard(db)

    def create_booking(
        self,
        actor: Actor,
        ticket_type_id: str,
        quantity: int,
    ) -> Booking:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")

        self.guard.ensure_no_active_booking(actor.id, ticket_type_id)

        ticket_type = self.inventory.get(ticket_type_id)
        if not ticket_type:
            raise NotFoundError("Ticket type not found")

        if _as_utc(ticket_type.event.starts_at) < self.clock():
            raise EventPastError()

        # Advisory only; settlement re-checks under a row lock.
        if quantity > ticket_type.remaining_quantity:
            raise InsufficientInventoryError(available=ticket_type.remaining_quantity)

        try:
            booking = self.booking_repository.create_booking(
                actor_id=actor.id,
                ticket_type_id=ticket_type_id,
                quantity=quantity,
            )
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.info(
                "Concurrent duplicate booking rejected actor_id=%s ticket_type_id=%s",
                actor.id,
                ticket_type_id,
            )
            raise DuplicateBookingError() from exc

        logger.info(
            "Booking created booking_id=%s actor_id=%s ticket_type_id=%s quantity=%s",
            booking.id,
            actor.id,
            ticket_type_id,
            quantity,
        )
        return booking

    def cancel_booking(self, actor: Actor, booking_id: str) -> Booking:
        try:
            # Same row lock as settlement, so a cancel cannot overwrite a
            # confirmation committed in between.
            booking = self.booking_repository.get_by_id(booking_id, for_update=True)

            if not booking or booking.actor_id != actor.id:
                raise NotFoundError("Booking not found")

            if booking.status == BookingStatus.CANCELLED:
                raise AlreadyCancelledError()

            payment = self.payment_repository.get_by_booking_id(booking.id)
            if payment and payment.status == PaymentStatus.SUCCESS:
                raise PaidBookingError()

            # Only PENDING reaches here, and PENDING was never decremented,
            # so inventory is left alone.
            self._transition(booking, BookingStatus.CANCELLED)
            self.outbox.add_event(
                aggregate_type="booking",
                aggregate_id=booking.id,
                event_type="BOOKING_CANCELLED",
                payload={
                    "booking_id": booking.id,
                    "ticket_type_id": booking.ticket_type_id,
                    "quantity": booking.quantity,
                },
                dedupe_key=f"booking:{booking.id}:cancelled",
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Booking cancelled booking_id=%s actor_id=%s", booking.id, actor.id)
        return booking

    def get_booking(self, actor: Actor, booking_id: str) -> Booking:
        booking = self.booking_repository.get_owned(booking_id, actor.id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def list_bookings(
        self,
        actor: Actor,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[list[Booking], int]:
        if page < 1 or per_page < 1:
            raise ValidationError("page and per_page must be positive")
        return self.booking_repository.list_for_actor(
            actor_id=actor.id,
            offset=(page - 1) * per_page,
            limit=per_page,
        )

    def _transition(self, booking: Booking, to_status: BookingStatus) -> None:
        BookingStateMachine.validate_transition(booking.status, to_status)
        self.booking_repository.update_status(booking, to_status)
