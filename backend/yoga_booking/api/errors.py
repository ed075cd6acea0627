"""
Exception handlers that turn domain errors into JSON responses.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from yoga_booking.core.exceptions import BookingError
from yoga_booking.core.logging import get_logger

logger = get_logger(__name__)


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "booking_error",
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details,
        status_code=exc.status_code,
    )
    content = {"detail": exc.message, "error": exc.error_code}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
