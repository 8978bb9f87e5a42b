from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field


class TicketTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    quantity: int = Field(gt=0)


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    starts_at: datetime
    location: str = Field(min_length=1, max_length=255)
    ticket_types: list[TicketTypeCreate] = Field(min_length=1)


class TicketTypeResponse(BaseModel):
    id: str
    event_id: str
    name: str
    price: Decimal
    remaining_quantity: int


class EventResponse(BaseModel):
    id: str
    title: str
    description: str | None = None
    starts_at: datetime
    location: str
    created_by: str
    ticket_types: list[TicketTypeResponse]


class BookingRequest(BaseModel):
    quantity: int = Field(ge=1)


class PaymentResponse(BaseModel):
    payment_id: str
    booking_id: str
    amount: Decimal
    status: str
    created_at: datetime


class BookingResponse(BaseModel):
    booking_id: str
    actor_id: str
    ticket_type_id: str
    quantity: int
    status: str
    created_at: datetime
    payment: PaymentResponse | None = None


class BookingPage(BaseModel):
    data: list[BookingResponse]
    page: int
    per_page: int
    total: int


class PaymentRequest(BaseModel):
    test_mode: bool = False
    force_result: Literal["success", "failed"] | None = None


class SettlementResponse(BaseModel):
    success: bool
    message: str
    payment: PaymentResponse
    booking: BookingResponse


class PaymentTicketInfo(BaseModel):
    type: str
    event: str


class PaymentBookingInfo(BaseModel):
    id: str
    quantity: int
    status: str
    ticket: PaymentTicketInfo


class PaymentStatusResponse(BaseModel):
    payment_id: str
    booking_id: str
    amount: Decimal
    status: str
    created_at: datetime
    booking: PaymentBookingInfo


class ErrorBody(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorBody


class OutboxEventResponse(BaseModel):
    id: str
    aggregate_type: str
    aggregate_id: str
    event_type: str
    status: str
    attempts: int
    created_at: str

