import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from movieseat.core.exceptions import ReservationError, SeatUnavailableError
from movieseat.schemas.common import ErrorResponse, SeatsUnavailableError

logger = logging.getLogger(__name__)


async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.kind, exc.message)
    if isinstance(exc, SeatUnavailableError):
        body = SeatsUnavailableError(
            error=exc.kind,
            message=exc.message,
            unavailable_seat_ids=exc.unavailable_seats,
        )
    else:
        body = ErrorResponse(error=exc.kind, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error="bad_request", message=str(exc)).model_dump(),
    )


async def general_500_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error="internal_error", message="Internal server error").model_dump(),
    )


EXCEPTION_HANDLERS = {
    ReservationError: reservation_error_handler,
    ValueError: value_error_handler,
    Exception: general_500_exception_handler,
}


def register_exception_handlers(app):
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
