import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, TimeoutError as SQLAlchemyTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ticketing.domain.exceptions import (
    AlreadyCancelledError,
    DuplicateBookingError,
    EventPastError,
    ForbiddenError,
    InsufficientInventoryError,
    InvalidStateError,
    NotFoundError,
    NotSuccessfulPaymentError,
    PaidBookingError,
    PaymentExistsError,
    TicketingError,
    ValidationError,
)


logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[TicketingError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    DuplicateBookingError: status.HTTP_409_CONFLICT,
    InsufficientInventoryError: status.HTTP_409_CONFLICT,
    EventPastError: status.HTTP_400_BAD_REQUEST,
    PaymentExistsError: status.HTTP_409_CONFLICT,
    InvalidStateError: status.HTTP_409_CONFLICT,
    AlreadyCancelledError: status.HTTP_400_BAD_REQUEST,
    PaidBookingError: status.HTTP_400_BAD_REQUEST,
    NotSuccessfulPaymentError: status.HTTP_409_CONFLICT,
}

CODE_BY_HTTP_STATUS: dict[int, str] = {
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


def _error_body(code: str, message: str, **extra) -> dict:
    body = {"success": False, "error": {"code": code, "message": message}}
    body["error"].update(extra)
    return body


async def ticketing_error_handler(request: Request, exc: TicketingError) -> JSONResponse:
    status_code = STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    extra = {}
    if isinstance(exc, InsufficientInventoryError) and exc.available is not None:
        extra["available_quantity"] = exc.available

    logger.info(
        "Request rejected path=%s code=%s status=%s",
        request.url.path,
        exc.code,
        status_code,
    )
    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, exc.message, **extra),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"

    logger.info("Request rejected path=%s code=VALIDATION_ERROR", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body("VALIDATION_ERROR", message),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = CODE_BY_HTTP_STATUS.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Storage failure path=%s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("INTERNAL_ERROR", "Internal server error"),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TicketingError, ticketing_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(OperationalError, storage_error_handler)
    app.add_exception_handler(SQLAlchemyTimeoutError, storage_error_handler)
