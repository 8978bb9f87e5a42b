import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ticketing.application.notifications import BookingConfirmation, NotificationDispatcher
from ticketing.domain.actor import Actor
from ticketing.domain.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    NotSuccessfulPaymentError,
    PaymentExistsError,
)
from ticketing.domain.payment_gateway import PaymentGatewaySimulator
from ticketing.domain.state_machine import (
    BookingStateMachine,
    BookingStatus,
    PaymentStateMachine,
    PaymentStatus,
)
from ticketing.infrastructure.db.models import Booking, Payment
from ticketing.infrastructure.repositories.booking_repository import BookingRepository
from ticketing.infrastructure.repositories.inventory_ledger import InventoryLedger
from ticketing.infrastructure.repositories.outbox_repository import OutboxRepository
from ticketing.infrastructure.repositories.payment_repository import PaymentRepository


logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
PAYMENT_UNIQUE_CONSTRAINT = "uq_payment_booking_id"


def _is_duplicate_payment(exc: IntegrityError) -> bool:
    # PostgreSQL names the constraint; SQLite names the column.
    detail = str(exc.orig)
    return PAYMENT_UNIQUE_CONSTRAINT in detail or "payments.booking_id" in detail


@dataclass
class SettlementResult:
    payment: Payment
    booking: Booking

    @property
    def succeeded(self) -> bool:
        return self.payment.status == PaymentStatus.SUCCESS


class PaymentSettlementEngine:
    """
    Resolves a pending booking's payment and commits the outcome.

    The gateway runs before any write. Payment insert, booking transition,
    inventory decrement and outbox entry then commit as one transaction with
    the booking and ticket-type rows locked. The confirmation notification
    is dispatched only after that commit.
    """

    def __init__(
        self,
        db: Session,
        gateway: PaymentGatewaySimulator,
        dispatcher: NotificationDispatcher | None = None,
    ):
        self.db = db
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.booking_repository = BookingRepository(db)
        self.payment_repository = PaymentRepository(db)
        self.inventory = InventoryLedger(db)
        self.outbox = OutboxRepository(db)

    def settle(
        self,
        actor: Actor,
        booking_id: str,
        simulator_inputs: Mapping[str, Any] | None = None,
    ) -> SettlementResult:
        booking = self.booking_repository.get_owned(booking_id, actor.id)
        if not booking:
            raise NotFoundError("Booking not found")

        self._ensure_payable(booking)

        amount = (booking.ticket_type.price * booking.quantity).quantize(CENTS)
        outcome = self.gateway.charge(simulator_inputs)

        try:
            booking = self.booking_repository.get_by_id(booking_id, for_update=True)
            # Re-check under the booking row lock; a concurrent settle may
            # have committed while the gateway was running.
            self._ensure_payable(booking)

            if outcome.success:
                self.inventory.decrement(booking.ticket_type_id, booking.quantity)
                payment = self.payment_repository.create_payment(
                    booking_id=booking.id,
                    amount=amount,
                    status=PaymentStatus.SUCCESS,
                )
                self._transition(booking, BookingStatus.CONFIRMED)
                self._record(booking, payment, "BOOKING_CONFIRMED", "confirmed")
                confirmation = self._confirmation(booking, amount)
            else:
                payment = self.payment_repository.create_payment(
                    booking_id=booking.id,
                    amount=amount,
                    status=PaymentStatus.FAILED,
                )
                self._transition(booking, BookingStatus.CANCELLED)
                self._record(booking, payment, "BOOKING_PAYMENT_FAILED", "payment_failed")
                confirmation = None

            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if not _is_duplicate_payment(exc):
                raise
            logger.warning(
                "Concurrent settlement lost the payment uniqueness race booking_id=%s",
                booking_id,
            )
            raise PaymentExistsError() from exc
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Booking settled booking_id=%s payment_id=%s status=%s amount=%s",
            booking.id,
            payment.id,
            payment.status.value,
            payment.amount,
        )

        if confirmation and self.dispatcher:
            self.dispatcher.dispatch_confirmed(confirmation)

        return SettlementResult(payment=payment, booking=booking)

    def refund(self, actor: Actor, payment_id: str) -> SettlementResult:
        try:
            payment = self.payment_repository.get_by_id(payment_id, for_update=True)
            if not payment:
                raise NotFoundError("Payment not found")

            booking = payment.booking
            if booking.actor_id != actor.id and not actor.is_admin:
                raise ForbiddenError("Unauthorized to refund this payment")

            if payment.status != PaymentStatus.SUCCESS:
                raise NotSuccessfulPaymentError()

            PaymentStateMachine.validate_transition(payment.status, PaymentStatus.REFUNDED)
            self.payment_repository.update_status(payment, PaymentStatus.REFUNDED)
            self._transition(booking, BookingStatus.CANCELLED)
            self.inventory.increment(booking.ticket_type_id, booking.quantity)
            self._record(booking, payment, "PAYMENT_REFUNDED", "refunded")

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Payment refunded payment_id=%s booking_id=%s quantity=%s",
            payment.id,
            booking.id,
            booking.quantity,
        )
        return SettlementResult(payment=payment, booking=booking)

    def payment_status(self, actor: Actor, payment_id: str) -> dict:
        payment = self.payment_repository.get_by_id(payment_id)
        if not payment:
            raise NotFoundError("Payment not found")

        booking = payment.booking
        if booking.actor_id != actor.id and not actor.can_manage_events:
            raise ForbiddenError("Unauthorized to view this payment")

        return {
            "payment_id": payment.id,
            "booking_id": booking.id,
            "amount": payment.amount,
            "status": payment.status.value,
            "created_at": payment.created_at,
            "booking": {
                "id": booking.id,
                "quantity": booking.quantity,
                "status": booking.status.value,
                "ticket": {
                    "type": booking.ticket_type.name,
                    "event": booking.ticket_type.event.title,
                },
            },
        }

    def _ensure_payable(self, booking: Booking) -> None:
        if self.payment_repository.exists_for_booking(booking.id):
            raise PaymentExistsError()
        if booking.status != BookingStatus.PENDING:
            raise InvalidStateError()

    def _transition(self, booking: Booking, to_status: BookingStatus) -> None:
        BookingStateMachine.validate_transition(booking.status, to_status)
        self.booking_repository.update_status(booking, to_status)

    def _record(self, booking: Booking, payment: Payment, event_type: str, suffix: str) -> None:
        self.outbox.add_event(
            aggregate_type="booking",
            aggregate_id=booking.id,
            event_type=event_type,
            payload={
                "booking_id": booking.id,
                "payment_id": payment.id,
                "ticket_type_id": booking.ticket_type_id,
                "quantity": booking.quantity,
                "amount": str(payment.amount),
                "payment_status": payment.status.value,
            },
            dedupe_key=f"booking:{booking.id}:{suffix}",
        )

    @staticmethod
    def _confirmation(booking: Booking, amount: Decimal) -> BookingConfirmation:
        ticket_type = booking.ticket_type
        return BookingConfirmation(
            booking_id=booking.id,
            actor_id=booking.actor_id,
            event_title=ticket_type.event.title,
            ticket_type=ticket_type.name,
            quantity=booking.quantity,
            amount=amount,
        )
