# src/ticketing/infrastructure/repositories/event_repository.py

from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select

from ticketing.infrastructure.db.models import Event, TicketType


class EventRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, event_id: str) -> Event | None:
        stmt = (
            select(Event)
            .where(Event.id == event_id)
            .options(selectinload(Event.ticket_types))
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def list_events(self) -> list[Event]:
        stmt = (
            select(Event)
            .options(selectinload(Event.ticket_types))
            .order_by(Event.starts_at)
        )
        return list(self.db.execute(stmt).scalars().all())

    def create_event(
        self,
        title: str,
        starts_at: datetime,
        location: str,
        created_by: str,
        description: str | None = None,
    ) -> Event:
        event = Event(
            title=title,
            description=description,
            starts_at=starts_at,
            location=location,
            created_by=created_by,
        )
        self.db.add(event)
        self.db.flush()
        return event

    def add_ticket_type(
        self,
        event: Event,
        name: str,
        price: Decimal,
        quantity: int,
    ) -> TicketType:
        ticket_type = TicketType(
            event_id=event.id,
            name=name,
            price=price,
            remaining_quantity=quantity,
        )
        self.db.add(ticket_type)
        return ticket_type
