"""
Domain errors raised by the booking services.

Each error carries the HTTP status and a stable machine-readable code, so the
API layer renders them through one exception handler and the client can pick
the corrective action (choose another class, another time, view the existing
booking) from the code instead of parsing messages.
"""

from typing import Any, Dict, Optional

from fastapi import status


class BookingError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "BOOKING_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        details: Dict[str, Any] = {"resource": resource}
        if identifier is not None:
            message = f"{resource} {identifier} not found"
            details["identifier"] = identifier
        super().__init__(message, details)


class Forbidden(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"


class PastClass(BookingError):
    error_code = "PAST_CLASS"

    def __init__(self, message: str = "Cannot book past classes", **details: Any):
        super().__init__(message, details)


class ClassFull(BookingError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CLASS_FULL"

    def __init__(self, class_id: int, current_count: int, max_participants: int):
        super().__init__(
            "Class is full",
            {
                "class_id": class_id,
                "current_count": current_count,
                "max_participants": max_participants,
            },
        )


class DuplicateBooking(BookingError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "DUPLICATE_BOOKING"

    def __init__(self, class_id: int, booking_id: Optional[int] = None):
        details: Dict[str, Any] = {"class_id": class_id}
        if booking_id is not None:
            details["booking_id"] = booking_id
        super().__init__("Student already has a booking for this class", details)


class AlreadyCancelled(BookingError):
    error_code = "ALREADY_CANCELLED"

    def __init__(self, booking_id: int):
        super().__init__("Booking is already cancelled", {"booking_id": booking_id})


class InvalidPaymentTransition(BookingError):
    error_code = "INVALID_PAYMENT_TRANSITION"

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot change payment status from {current} to {target}",
            {"current": current, "target": target},
        )


class InconsistentState(BookingError):
    """
    Drift between a cached participant count and the booking ledger.

    Never raised to callers: the reconciler builds one to describe a repair and
    logs it. Drift is expected and self-healing.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INCONSISTENT_STATE"

    def __init__(self, class_id: int, stored_count: int, actual_count: int):
        super().__init__(
            f"Class {class_id} participant count drifted: stored {stored_count}, actual {actual_count}",
            {"class_id": class_id, "stored_count": stored_count, "actual_count": actual_count},
        )
