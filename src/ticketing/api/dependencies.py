from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from ticketing.application.notifications import LoggingNotifier, NotificationDispatcher
from ticketing.application.settlement_service import PaymentSettlementEngine
from ticketing.domain.actor import Actor, ActorRole
from ticketing.domain.payment_gateway import PaymentGatewaySimulator
from ticketing.infrastructure.db.session import SessionLocal


def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
) -> Actor:
    # Identity is established upstream; this only reads what was forwarded.
    if not x_actor_id or not x_actor_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing actor headers",
        )
    try:
        role = ActorRole(x_actor_role.lower())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown actor role {x_actor_role}",
        ) from exc
    return Actor(id=x_actor_id, role=role)


@lru_cache
def get_payment_gateway() -> PaymentGatewaySimulator:
    return PaymentGatewaySimulator()


@lru_cache
def get_notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(LoggingNotifier())


def get_settlement_engine(
    db: Session = Depends(get_db),
    gateway: PaymentGatewaySimulator = Depends(get_payment_gateway),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> PaymentSettlementEngine:
    return PaymentSettlementEngine(db, gateway=gateway, dispatcher=dispatcher)
