from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select

from ticketing.infrastructure.db.models import Base, Event, TicketType
from ticketing.infrastructure.db.session import engine, get_db_session


DEMO_ORGANIZER = "organizer-demo"


def _dt(days_from_now: int, hour: int, minute: int) -> datetime:
    now = datetime.now(timezone.utc)
    target = now + timedelta(days=days_from_now)
    return target.replace(hour=hour, minute=minute, second=0, microsecond=0)


def seed_events(db) -> None:
    event_defs = [
        {
            "title": "Harbour Lights Live",
            "description": "Open-air evening concert.",
            "starts_at": _dt(days_from_now=10, hour=19, minute=30),
            "location": "Waterfront Arena",
            "ticket_types": [
                {"name": "Regular", "price": Decimal("100.00"), "quantity": 400},
                {"name": "VIP", "price": Decimal("250.00"), "quantity": 50},
            ],
        },
        {
            "title": "Spring Tech Summit",
            "description": "Two-track developer conference.",
            "starts_at": _dt(days_from_now=30, hour=9, minute=0),
            "location": "Convention Centre Hall B",
            "ticket_types": [
                {"name": "Standard", "price": Decimal("75.50"), "quantity": 300},
                {"name": "Workshop", "price": Decimal("180.00"), "quantity": 40},
            ],
        },
    ]

    for item in event_defs:
        existing = db.execute(
            select(Event).where(Event.title == item["title"])
        ).scalar_one_or_none()
        if existing:
            existing.starts_at = item["starts_at"]
            existing.location = item["location"]
            continue

        event = Event(
            title=item["title"],
            description=item["description"],
            starts_at=item["starts_at"],
            location=item["location"],
            created_by=DEMO_ORGANIZER,
        )
        db.add(event)
        db.flush()

        for ticket in item["ticket_types"]:
            db.add(
                TicketType(
                    event_id=event.id,
                    name=ticket["name"],
                    price=ticket["price"],
                    remaining_quantity=ticket["quantity"],
                )
            )


def main() -> None:
    Base.metadata.create_all(bind=engine)
    with get_db_session() as db:
        seed_events(db)
    print("Seed complete: Harbour Lights Live and Spring Tech Summit added.")


if __name__ == "__main__":
    main()
