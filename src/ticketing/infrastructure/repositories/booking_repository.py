# src/ticketing/infrastructure/repositories/booking_repository.py

from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func, select

from ticketing.infrastructure.db.models import Booking, TicketType
from ticketing.domain.state_machine import ACTIVE_BOOKING_STATUSES, BookingStatus


class BookingRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(
        self,
        booking_id: str,
        for_update: bool = False,
    ) -> Booking | None:

        stmt = select(Booking).where(Booking.id == booking_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_owned(
        self,
        booking_id: str,
        actor_id: str,
    ) -> Booking | None:
        stmt = (
            select(Booking)
            .where(Booking.id == booking_id)
            .where(Booking.actor_id == actor_id)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def find_active(
        self,
        actor_id: str,
        ticket_type_id: str,
    ) -> Booking | None:
        stmt = (
            select(Booking)
            .where(Booking.actor_id == actor_id)
            .where(Booking.ticket_type_id == ticket_type_id)
            .where(Booking.status.in_(ACTIVE_BOOKING_STATUSES))
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def list_for_actor(
        self,
        actor_id: str,
        offset: int,
        limit: int,
    ) -> tuple[list[Booking], int]:
        total = self.db.execute(
            select(func.count()).select_from(Booking).where(Booking.actor_id == actor_id)
        ).scalar_one()

        stmt = (
            select(Booking)
            .where(Booking.actor_id == actor_id)
            .options(
                selectinload(Booking.ticket_type).selectinload(TicketType.event),
                selectinload(Booking.payment),
            )
            .order_by(Booking.created_at.desc(), Booking.id)
            .offset(offset)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all()), total

    def create_booking(
        self,
        actor_id: str,
        ticket_type_id: str,
        quantity: int,
    ) -> Booking:
        """
        Inserts a PENDING booking and flushes so the partial unique index
        on active (actor_id, ticket_type_id) is checked immediately.
        """

        booking = Booking(
            actor_id=actor_id,
            ticket_type_id=ticket_type_id,
            quantity=quantity,
            status=BookingStatus.PENDING,
        )

        self.db.add(booking)
        self.db.flush()
        return booking

    def update_status(
        self,
        booking: Booking,
        new_status: BookingStatus,
    ) -> None:

        booking.status = new_status
