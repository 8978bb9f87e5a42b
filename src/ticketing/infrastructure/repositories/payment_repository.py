# src/ticketing/infrastructure/repositories/payment_repository.py

from decimal import Decimal

from sqlalchemy.orm import Session
from sqlalchemy import select

from ticketing.infrastructure.db.models import Payment
from ticketing.domain.state_machine import PaymentStatus


class PaymentRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(
        self,
        payment_id: str,
        for_update: bool = False,
    ) -> Payment | None:
        stmt = select(Payment).where(Payment.id == payment_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_booking_id(self, booking_id: str) -> Payment | None:
        stmt = select(Payment).where(Payment.booking_id == booking_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def exists_for_booking(self, booking_id: str) -> bool:
        stmt = select(Payment.id).where(Payment.booking_id == booking_id)
        return self.db.execute(stmt).first() is not None

    def create_payment(
        self,
        booking_id: str,
        amount: Decimal,
        status: PaymentStatus,
    ) -> Payment:
        payment = Payment(
            booking_id=booking_id,
            amount=amount,
            status=status,
        )
        self.db.add(payment)
        self.db.flush()
        return payment

    def update_status(
        self,
        payment: Payment,
        new_status: PaymentStatus,
    ) -> None:
        payment.status = new_status
