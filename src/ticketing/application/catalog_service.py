import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from sqlalchemy.orm import Session

from ticketing.domain.actor import Actor
from ticketing.domain.exceptions import ForbiddenError, NotFoundError, ValidationError
from ticketing.infrastructure.db.models import Event, TicketType
from ticketing.infrastructure.repositories.event_repository import EventRepository


logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CatalogService:
    """Events and their ticket types. Organizers and admins publish, anyone reads."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = _utc_now):
        self.db = db
        self.clock = clock
        self.event_repository = EventRepository(db)

    def create_event(
        self,
        actor: Actor,
        title: str,
        starts_at: datetime,
        location: str,
        ticket_types: list[tuple[str, Decimal, int]],
        description: str | None = None,
    ) -> Event:
        if not actor.can_manage_events:
            raise ForbiddenError("Only organizers and admins can publish events")

        # Naive timestamps are taken as UTC.
        if starts_at.tzinfo is None:
            starts_at = starts_at.replace(tzinfo=timezone.utc)
        if starts_at <= self.clock():
            raise ValidationError("Event start time must be in the future")

        names = [name for name, _, _ in ticket_types]
        if len(names) != len(set(names)):
            raise ValidationError("Ticket type names must be unique per event")
        for name, price, quantity in ticket_types:
            if price < 0 or quantity < 1:
                raise ValidationError(f"Invalid price or quantity for ticket type {name}")

        event = self.event_repository.create_event(
            title=title,
            starts_at=starts_at,
            location=location,
            created_by=actor.id,
            description=description,
        )
        for name, price, quantity in ticket_types:
            self.event_repository.add_ticket_type(event, name, price, quantity)
        self.db.commit()

        logger.info(
            "Event published event_id=%s created_by=%s ticket_types=%s",
            event.id,
            actor.id,
            len(ticket_types),
        )
        return self.get_event(event.id)

    def get_event(self, event_id: str) -> Event:
        event = self.event_repository.get_by_id(event_id)
        if not event:
            raise NotFoundError("Event not found")
        return event

    def list_events(self) -> list[Event]:
        return self.event_repository.list_events()

    def list_ticket_types(self, event_id: str) -> list[TicketType]:
        return list(self.get_event(event_id).ticket_types)
