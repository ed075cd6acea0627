"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from yoga_booking.models.enums import BookingStatus, PaymentStatus


class BookingCreate(BaseModel):
    class_id: int
    # optional; when sent it must be the caller's own id
    student_id: Optional[str] = None
    status: BookingStatus = BookingStatus.CONFIRMED
    payment_status: PaymentStatus = PaymentStatus.PENDING

    @field_validator("status")
    @classmethod
    def status_starts_confirmed(cls, value: BookingStatus) -> BookingStatus:
        if value != BookingStatus.CONFIRMED:
            raise ValueError("a new booking must be confirmed")
        return value

    @field_validator("payment_status")
    @classmethod
    def payment_starts_pending_or_completed(cls, value: PaymentStatus) -> PaymentStatus:
        if value not in (PaymentStatus.PENDING, PaymentStatus.COMPLETED):
            raise ValueError("a new booking's payment must be pending or completed")
        return value


class BookingResponse(BaseModel):
    id: int
    student_id: str
    class_id: int
    status: BookingStatus
    payment_status: PaymentStatus
    booking_date: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingCancelResponse(BaseModel):
    success: bool
    booking_id: int
    status: BookingStatus
    payment_status: PaymentStatus


class PaymentUpdate(BaseModel):
    payment_status: PaymentStatus


class PaymentUpdateResponse(BaseModel):
    success: bool
    booking_id: int
    payment_status: PaymentStatus
