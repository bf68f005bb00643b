from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, AliasChoices, ConfigDict, Field


class CreateBookingRequest(BaseModel):
    labor_id: str = Field(validation_alias=AliasChoices("labor_id", "laborId"))
    note: Optional[str] = None
    job_date: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("job_date", "jobDate"))


class WorkStatusRequest(BaseModel):
    work_status: str = Field(validation_alias=AliasChoices("work_status", "workStatus"))


class StatusUpdateRequest(BaseModel):
    status: Optional[str] = None
    work_status: Optional[str] = Field(default=None, validation_alias=AliasChoices("work_status", "workStatus"))


class PaymentChoiceRequest(BaseModel):
    method: str


class StartCardSessionRequest(BaseModel):
    booking_id: str = Field(validation_alias=AliasChoices("booking_id", "bookingId"))
    provider: Optional[str] = None


class CardRequest(BaseModel):
    # card number and cvc may arrive as JSON numbers
    model_config = ConfigDict(coerce_numbers_to_str=True)

    holder: Optional[str] = None
    number: Optional[str] = None
    exp_month: Optional[int | str] = Field(default=None, validation_alias=AliasChoices("exp_month", "expMonth"))
    exp_year: Optional[int | str] = Field(default=None, validation_alias=AliasChoices("exp_year", "expYear"))
    cvc: Optional[str] = None


class ChargeCardRequest(BaseModel):
    booking_id: str = Field(validation_alias=AliasChoices("booking_id", "bookingId"))
    amount: Optional[float] = Field(default=None, allow_inf_nan=False)
    card: Optional[CardRequest] = None


class LaborSummary(BaseModel):
    labor_id: str
    name: Optional[str] = None
    skill_category: Optional[str] = None
    daily_rate: Optional[float] = None


class BookingResponse(BaseModel):
    booking_id: str
    customer_id: str
    labor_id: str
    note: str
    job_date: Optional[datetime] = None
    decision: str
    status: str
    work_status: str
    payment_method: Optional[str] = None
    payment_status: Optional[str] = None
    accepted_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class BookingDetailResponse(BookingResponse):
    labor: Optional[LaborSummary] = None


class BookingActionResponse(BaseModel):
    message: str
    booking: BookingResponse


class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]


class StartCardSessionResponse(BaseModel):
    url: Optional[str] = None
    provider: str


class ChargeCardResponse(BaseModel):
    message: str
    amount: float
    booking: BookingResponse


class NotificationResponse(BaseModel):
    notification_id: str
    user_id: str
    role: str
    type: str
    title: str
    message: str
    meta: dict
    read: bool
    created_at: Optional[datetime] = None


class NotificationListResponse(BaseModel):
    items: List[NotificationResponse]


class MarkReadResponse(BaseModel):
    message: str
    notification: NotificationResponse


class MarkAllReadResponse(BaseModel):
    message: str
    modified_count: int


class BookingStatsResponse(BaseModel):
    total: int
    by_decision: dict[str, int]
    by_status: dict[str, int]


def booking_to_response(booking) -> BookingResponse:
    return BookingResponse(
        booking_id=booking.booking_id,
        customer_id=booking.customer_id,
        labor_id=booking.labor_id,
        note=booking.note or "",
        job_date=booking.job_date,
        decision=booking.decision,
        status=booking.status,
        work_status=booking.work_status,
        payment_method=booking.payment_method,
        payment_status=booking.payment_status,
        accepted_at=booking.accepted_at,
        declined_at=booking.declined_at,
        cancelled_at=booking.cancelled_at,
        completed_at=booking.completed_at,
        paid_at=booking.paid_at,
        created_at=booking.created_at,
    )


def notification_to_response(notification) -> NotificationResponse:
    return NotificationResponse(
        notification_id=notification.notification_id,
        user_id=notification.user_id,
        role=notification.role,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        meta=notification.meta or {},
        read=notification.read,
        created_at=notification.created_at,
    )
