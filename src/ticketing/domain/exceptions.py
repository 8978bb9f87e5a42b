

class TicketingError(Exception):
    """
    Base exception for all domain-level errors
    inside the ticketing engine.

    Every subclass carries a stable ``code`` so the API layer
    can render a structured error without inspecting messages.
    """

    code = "TICKETING_ERROR"
    default_message = "Ticketing operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(TicketingError):
    code = "NOT_FOUND"
    default_message = "Resource not found"


class ValidationError(TicketingError):
    """Raised for malformed quantities or dates."""

    code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class ForbiddenError(TicketingError):
    code = "FORBIDDEN"
    default_message = "Actor is not allowed to perform this operation"


class DuplicateBookingError(TicketingError):
    code = "DUPLICATE_BOOKING"
    default_message = "You already have an active booking for this ticket."


class InsufficientInventoryError(TicketingError):
    """Raised when a ticket type cannot cover the requested quantity."""

    code = "INSUFFICIENT_INVENTORY"
    default_message = "Not enough tickets available"

    def __init__(self, message: str | None = None, available: int | None = None):
        self.available = available
        super().__init__(message)


class EventPastError(TicketingError):
    code = "EVENT_PAST"
    default_message = "Cannot book tickets for past events"


class PaymentExistsError(TicketingError):
    code = "PAYMENT_EXISTS"
    default_message = "Payment already exists for this booking"


class InvalidStateError(TicketingError):
    """
    Raised when an illegal booking or payment state transition is attempted,
    or when an operation requires a state the booking is not in.
    """

    code = "INVALID_STATE"
    default_message = "Booking must be in pending status to process payment"

    def __init__(
        self,
        message: str | None = None,
        from_state: str | None = None,
        to_state: str | None = None,
    ):
        self.from_state = from_state
        self.to_state = to_state

        if message is None and from_state and to_state:
            message = (
                f"Illegal state transition attempted: "
                f"{from_state} -> {to_state}"
            )
        super().__init__(message)


class AlreadyCancelledError(TicketingError):
    code = "ALREADY_CANCELLED"
    default_message = "Booking is already cancelled"


class PaidBookingError(TicketingError):
    code = "PAID_BOOKING"
    default_message = "Cannot cancel a paid booking. Please request a refund."


class NotSuccessfulPaymentError(TicketingError):
    code = "NOT_SUCCESSFUL_PAYMENT"
    default_message = "Only successful payments can be refunded"
