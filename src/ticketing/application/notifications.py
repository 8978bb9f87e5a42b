import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingConfirmation:
    """Detached snapshot of a confirmed booking, safe to hand to another thread."""

    booking_id: str
    actor_id: str
    event_title: str
    ticket_type: str
    quantity: int
    amount: Decimal

    @property
    def message(self) -> str:
        return f"Your booking for {self.event_title} has been confirmed."


class ConfirmationNotifier(Protocol):
    def notify_confirmed(self, confirmation: BookingConfirmation) -> None: ...


class LoggingNotifier:
    """Delivers confirmations to the application log."""

    def notify_confirmed(self, confirmation: BookingConfirmation) -> None:
        logger.info(
            "Booking confirmed booking_id=%s actor_id=%s event=%s ticket_type=%s quantity=%s amount=%s",
            confirmation.booking_id,
            confirmation.actor_id,
            confirmation.event_title,
            confirmation.ticket_type,
            confirmation.quantity,
            confirmation.amount,
        )


class NotificationDispatcher:
    """
    Fire-and-forget delivery on a small thread pool.
    Failures are logged and never reach the caller.
    """

    def __init__(
        self,
        notifier: ConfirmationNotifier,
        max_workers: int = int(os.getenv("NOTIFICATION_WORKERS", "2")),
    ):
        self.notifier = notifier
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="notify",
        )

    def dispatch_confirmed(self, confirmation: BookingConfirmation) -> Future | None:
        try:
            future = self._executor.submit(self.notifier.notify_confirmed, confirmation)
        except RuntimeError:
            logger.warning(
                "Notification dispatcher is shut down; dropping confirmation booking_id=%s",
                confirmation.booking_id,
            )
            return None
        future.add_done_callback(
            lambda done: self._log_failure(done, confirmation.booking_id)
        )
        return future

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    @staticmethod
    def _log_failure(future: Future, booking_id: str) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error(
                "Confirmation notification failed booking_id=%s",
                booking_id,
                exc_info=exc,
            )
