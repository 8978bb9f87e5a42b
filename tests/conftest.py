import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ticketing.api.dependencies import (
    get_db,
    get_notification_dispatcher,
    get_payment_gateway,
)
from ticketing.application.notifications import NotificationDispatcher
from ticketing.domain.actor import Actor, ActorRole
from ticketing.domain.payment_gateway import PaymentGatewaySimulator
from ticketing.domain.state_machine import BookingStatus, PaymentStatus
from ticketing.infrastructure.db.models import Base, Booking, Event, Payment, TicketType
from ticketing.main import app


class ScriptedRandom:
    """Replays a fixed sequence of draws."""

    def __init__(self, draws):
        self.draws = list(draws)
        self.calls = []

    def randint(self, a, b):
        self.calls.append((a, b))
        return self.draws.pop(0)


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.confirmations = []

    def notify_confirmed(self, confirmation):
        self.confirmations.append(confirmation)
        if self.fail:
            raise RuntimeError("mail server unavailable")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def customer():
    return Actor(id="customer-1", role=ActorRole.CUSTOMER)


@pytest.fixture
def other_customer():
    return Actor(id="customer-2", role=ActorRole.CUSTOMER)


@pytest.fixture
def organizer():
    return Actor(id="organizer-1", role=ActorRole.ORGANIZER)


@pytest.fixture
def admin():
    return Actor(id="admin-1", role=ActorRole.ADMIN)


@pytest.fixture
def make_ticket_type(db):
    def _make(
        price="100.00",
        quantity=50,
        name="General",
        starts_at=None,
    ) -> TicketType:
        event = Event(
            title="Test Event",
            starts_at=starts_at or datetime.now(timezone.utc) + timedelta(days=7),
            location="Main Hall",
            created_by="organizer-1",
        )
        db.add(event)
        db.flush()
        ticket_type = TicketType(
            event_id=event.id,
            name=name,
            price=Decimal(price),
            remaining_quantity=quantity,
        )
        db.add(ticket_type)
        db.commit()
        return ticket_type

    return _make


@pytest.fixture
def make_booking(db):
    def _make(
        ticket_type: TicketType,
        actor_id="customer-1",
        quantity=1,
        status=BookingStatus.PENDING,
    ) -> Booking:
        booking = Booking(
            actor_id=actor_id,
            ticket_type_id=ticket_type.id,
            quantity=quantity,
            status=status,
        )
        db.add(booking)
        db.commit()
        return booking

    return _make


@pytest.fixture
def make_payment(db):
    def _make(booking: Booking, amount="100.00", status=PaymentStatus.SUCCESS) -> Payment:
        payment = Payment(
            booking_id=booking.id,
            amount=Decimal(amount),
            status=status,
        )
        db.add(payment)
        db.commit()
        return payment

    return _make


@pytest.fixture
def make_gateway():
    def _make(draws=(1,), success_rate=70) -> PaymentGatewaySimulator:
        return PaymentGatewaySimulator(
            random_source=ScriptedRandom(draws),
            success_rate=success_rate,
            delay_seconds=0,
        )

    return _make


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return RecordingNotifier(fail=True)


@pytest.fixture
def dispatcher(notifier):
    dispatcher = NotificationDispatcher(notifier, max_workers=1)
    yield dispatcher
    dispatcher.shutdown()


@pytest.fixture
def client(session_factory, make_gateway, dispatcher):
    def _get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    gateway = make_gateway(draws=[1] * 20)
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher

    yield TestClient(app)

    app.dependency_overrides.clear()
