from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ticketing.api.dependencies import get_actor, get_db, get_settlement_engine
from ticketing.api.schemas.schemas import (
    BookingPage,
    BookingRequest,
    BookingResponse,
    ErrorResponse,
    EventCreate,
    EventResponse,
    OutboxEventResponse,
    PaymentRequest,
    PaymentResponse,
    PaymentStatusResponse,
    SettlementResponse,
    TicketTypeResponse,
)
from ticketing.application.booking_service import DEFAULT_PAGE_SIZE, BookingService
from ticketing.application.catalog_service import CatalogService
from ticketing.application.settlement_service import PaymentSettlementEngine
from ticketing.domain.actor import Actor
from ticketing.domain.exceptions import ForbiddenError, NotFoundError
from ticketing.infrastructure.db.models import Booking, Event, OutboxEvent, Payment, TicketType
from ticketing.infrastructure.repositories.outbox_repository import OutboxRepository


router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)


def _ticket_type_response(ticket_type: TicketType) -> TicketTypeResponse:
    return TicketTypeResponse(
        id=ticket_type.id,
        event_id=ticket_type.event_id,
        name=ticket_type.name,
        price=ticket_type.price,
        remaining_quantity=ticket_type.remaining_quantity,
    )


def _event_response(event: Event) -> EventResponse:
    return EventResponse(
        id=event.id,
        title=event.title,
        description=event.description,
        starts_at=event.starts_at,
        location=event.location,
        created_by=event.created_by,
        ticket_types=[_ticket_type_response(item) for item in event.ticket_types],
    )


def _payment_response(payment: Payment) -> PaymentResponse:
    return PaymentResponse(
        payment_id=payment.id,
        booking_id=payment.booking_id,
        amount=payment.amount,
        status=payment.status.value,
        created_at=payment.created_at,
    )


def _booking_response(booking: Booking) -> BookingResponse:
    return BookingResponse(
        booking_id=booking.id,
        actor_id=booking.actor_id,
        ticket_type_id=booking.ticket_type_id,
        quantity=booking.quantity,
        status=booking.status.value,
        created_at=booking.created_at,
        payment=_payment_response(booking.payment) if booking.payment else None,
    )


def _require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise ForbiddenError("Only admins can read or publish outbox events")


def _outbox_response(item: OutboxEvent) -> OutboxEventResponse:
    return OutboxEventResponse(
        id=item.id,
        aggregate_type=item.aggregate_type,
        aggregate_id=item.aggregate_id,
        event_type=item.event_type,
        status=item.status,
        attempts=item.attempts,
        created_at=item.created_at.isoformat(),
    )


@router.get("/health")
def health():
    return {"message": "Ticketing engine is running"}


# -----------------------------
# Catalog
# -----------------------------
@router.get("/events", response_model=list[EventResponse])
def list_events(db: Session = Depends(get_db)):
    return [_event_response(event) for event in CatalogService(db).list_events()]


@router.post("/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(
    request: EventCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    event = CatalogService(db).create_event(
        actor=actor,
        title=request.title,
        description=request.description,
        starts_at=request.starts_at,
        location=request.location,
        ticket_types=[
            (item.name, item.price, item.quantity) for item in request.ticket_types
        ],
    )
    return _event_response(event)


@router.get("/events/{event_id}", response_model=EventResponse)
def get_event(event_id: str, db: Session = Depends(get_db)):
    return _event_response(CatalogService(db).get_event(event_id))


@router.get("/events/{event_id}/tickets", response_model=list[TicketTypeResponse])
def list_ticket_types(event_id: str, db: Session = Depends(get_db)):
    return [
        _ticket_type_response(item)
        for item in CatalogService(db).list_ticket_types(event_id)
    ]


# -----------------------------
# Bookings
# -----------------------------
@router.post(
    "/tickets/{ticket_type_id}/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_booking(
    ticket_type_id: str,
    request: BookingRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    booking = BookingService(db).create_booking(
        actor=actor,
        ticket_type_id=ticket_type_id,
        quantity=request.quantity,
    )
    return _booking_response(booking)


@router.get("/bookings", response_model=BookingPage)
def list_bookings(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    bookings, total = BookingService(db).list_bookings(actor, page=page, per_page=per_page)
    return BookingPage(
        data=[_booking_response(item) for item in bookings],
        page=page,
        per_page=per_page,
        total=total,
    )


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return _booking_response(BookingService(db).get_booking(actor, booking_id))


@router.put("/bookings/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    return _booking_response(BookingService(db).cancel_booking(actor, booking_id))


# -----------------------------
# Payments
# -----------------------------
@router.post(
    "/bookings/{booking_id}/payment",
    response_model=SettlementResponse,
    responses={402: {"model": SettlementResponse}},
)
def pay_booking(
    booking_id: str,
    response: Response,
    request: PaymentRequest | None = None,
    actor: Actor = Depends(get_actor),
    engine: PaymentSettlementEngine = Depends(get_settlement_engine),
):
    simulator_inputs = request.model_dump(exclude_none=True) if request else None
    result = engine.settle(actor, booking_id, simulator_inputs)

    if not result.succeeded:
        response.status_code = status.HTTP_402_PAYMENT_REQUIRED

    return SettlementResponse(
        success=result.succeeded,
        message=(
            "Payment processed successfully"
            if result.succeeded
            else "Payment failed. Please try again."
        ),
        payment=_payment_response(result.payment),
        booking=_booking_response(result.booking),
    )


@router.get("/payments/{payment_id}", response_model=PaymentStatusResponse)
def get_payment(
    payment_id: str,
    actor: Actor = Depends(get_actor),
    engine: PaymentSettlementEngine = Depends(get_settlement_engine),
):
    return engine.payment_status(actor, payment_id)


@router.post("/payments/{payment_id}/refund", response_model=SettlementResponse)
def refund_payment(
    payment_id: str,
    actor: Actor = Depends(get_actor),
    engine: PaymentSettlementEngine = Depends(get_settlement_engine),
):
    result = engine.refund(actor, payment_id)
    return SettlementResponse(
        success=True,
        message="Payment refunded",
        payment=_payment_response(result.payment),
        booking=_booking_response(result.booking),
    )


# -----------------------------
# Outbox
# -----------------------------
@router.get("/outbox/events", response_model=list[OutboxEventResponse])
def list_outbox_events(
    status_filter: str = "PENDING",
    limit: int = 50,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    _require_admin(actor)
    events = OutboxRepository(db).list_by_status(status_filter, limit)
    return [_outbox_response(item) for item in events]


@router.post("/outbox/events/{event_id}/mark-published", response_model=OutboxEventResponse)
def mark_outbox_event_published(
    event_id: str,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    _require_admin(actor)
    repository = OutboxRepository(db)
    item = repository.get_by_id(event_id)
    if not item:
        raise NotFoundError("Outbox event not found")
    return _outbox_response(repository.mark_published(item))
