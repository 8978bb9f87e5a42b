# src/ticketing/infrastructure/repositories/inventory_ledger.py

import logging

from sqlalchemy.orm import Session
from sqlalchemy import select

from ticketing.infrastructure.db.models import TicketType
from ticketing.domain.exceptions import InsufficientInventoryError, NotFoundError


logger = logging.getLogger(__name__)


class InventoryLedger:
    """
    Owns every mutation of TicketType.remaining_quantity.

    Callers run decrement/increment inside their own transaction; the
    ticket-type row stays locked until that transaction ends.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, ticket_type_id: str) -> TicketType | None:
        stmt = select(TicketType).where(TicketType.id == ticket_type_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def lock(self, ticket_type_id: str) -> TicketType:
        """
        SELECT ... FOR UPDATE
        Prevents race conditions.
        """

        stmt = (
            select(TicketType)
            .where(TicketType.id == ticket_type_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )

        ticket_type = self.db.execute(stmt).scalar_one_or_none()

        if not ticket_type:
            raise NotFoundError("Ticket type not found")

        return ticket_type

    def decrement(
        self,
        ticket_type_id: str,
        amount: int,
    ) -> TicketType:
        ticket_type = self.lock(ticket_type_id)

        if ticket_type.remaining_quantity < amount:
            raise InsufficientInventoryError(
                available=ticket_type.remaining_quantity,
            )

        ticket_type.remaining_quantity -= amount
        logger.info(
            "Inventory decremented ticket_type_id=%s amount=%s remaining=%s",
            ticket_type_id,
            amount,
            ticket_type.remaining_quantity,
        )
        return ticket_type

    def increment(
        self,
        ticket_type_id: str,
        amount: int,
    ) -> TicketType:

        ticket_type = self.lock(ticket_type_id)
        ticket_type.remaining_quantity += amount
        logger.info(
            "Inventory restored ticket_type_id=%s amount=%s remaining=%s",
            ticket_type_id,
            amount,
            ticket_type.remaining_quantity,
        )
        return ticket_type
