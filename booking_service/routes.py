from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from . import bookings, notifications, payments
from .db import get_db
from .directory import get_directory, find_labor_quietly
from .errors import InvalidInput
from . import events
from .payments import CardDetails, get_authorizer
from .rabbitmq import get_publisher
from .schemas import (
    CreateBookingRequest,
    WorkStatusRequest,
    StatusUpdateRequest,
    PaymentChoiceRequest,
    StartCardSessionRequest,
    ChargeCardRequest,
    LaborSummary,
    BookingDetailResponse,
    BookingActionResponse,
    BookingListResponse,
    StartCardSessionResponse,
    ChargeCardResponse,
    NotificationListResponse,
    MarkReadResponse,
    MarkAllReadResponse,
    BookingStatsResponse,
    booking_to_response,
    notification_to_response,
)
from .security import Caller, customer, labor, admin, ROLE_CUSTOMER, ROLE_LABOR
from .state import parse_work_status, parse_payment_method

router = APIRouter()


async def _publish(publisher, event_type: str, booking, **extra):
    await publisher.publish_event(events.booking_event(event_type, booking, **extra))


# ================= BOOKINGS (customer) =================

@router.post("/bookings", response_model=BookingActionResponse, status_code=201, tags=["Bookings"])
async def create_booking(
    data: CreateBookingRequest,
    caller: Caller = Depends(customer),
    db: AsyncSession = Depends(get_db),
    directory=Depends(get_directory),
    publisher=Depends(get_publisher),
):
    booking = await bookings.create_booking(
        db,
        directory,
        customer_id=caller.user_id,
        labor_id=data.labor_id,
        note=data.note,
        job_date=data.job_date,
    )
    await _publish(publisher, events.BOOKING_REQUESTED, booking)
    return BookingActionResponse(message="Booking request created", booking=booking_to_response(booking))


@router.get("/bookings", response_model=BookingListResponse, tags=["Bookings"])
async def list_customer_bookings(caller: Caller = Depends(customer), db: AsyncSession = Depends(get_db)):
    items = await bookings.list_for_customer(db, caller.user_id)
    return BookingListResponse(bookings=[booking_to_response(b) for b in items])


# ================= BOOKINGS (labor) =================
# Literal paths must stay above /bookings/{booking_id}

@router.get("/bookings/labor", response_model=BookingListResponse, tags=["Bookings"])
@router.get("/bookings/labor/bookings", response_model=BookingListResponse, tags=["Bookings"])
async def list_labor_bookings(
    status: str | None = None,
    caller: Caller = Depends(labor),
    db: AsyncSession = Depends(get_db),
):
    items = await bookings.list_for_labor(db, caller.user_id, status)
    return BookingListResponse(bookings=[booking_to_response(b) for b in items])


@router.get("/bookings/{booking_id}", response_model=BookingDetailResponse, tags=["Bookings"])
async def get_booking(
    booking_id: str,
    caller: Caller = Depends(customer),
    db: AsyncSession = Depends(get_db),
    directory=Depends(get_directory),
):
    booking = await bookings.load_booking(db, booking_id, customer_id=caller.user_id)

    profile = await find_labor_quietly(directory, booking.labor_id)
    summary = None
    if profile:
        summary = LaborSummary(
            labor_id=booking.labor_id,
            name=profile.name,
            skill_category=profile.skill_category,
            daily_rate=profile.daily_rate,
        )

    return BookingDetailResponse(**booking_to_response(booking).model_dump(), labor=summary)


async def _accept(db, directory, publisher, booking_id: str, labor_id: str):
    booking = await bookings.accept(db, directory, booking_id, labor_id)
    await _publish(publisher, events.BOOKING_ACCEPTED, booking)
    return BookingActionResponse(message="Booking accepted", booking=booking_to_response(booking))


async def _reject(db, directory, publisher, booking_id: str, labor_id: str):
    booking = await bookings.decline(db, directory, booking_id, labor_id)
    await _publish(publisher, events.BOOKING_DECLINED, booking)
    return BookingActionResponse(message="Booking rejected", booking=booking_to_response(booking))


@router.put("/bookings/{booking_id}/accept", response_model=BookingActionResponse, tags=["Bookings"])
async def accept_booking(
    booking_id: str,
    caller: Caller = Depends(labor),
    db: AsyncSession = Depends(get_db),
    directory=Depends(get_directory),
    publisher=Depends(get_publisher),
):
    return await _accept(db, directory, publisher, booking_id, caller.user_id)


@router.put("/bookings/{booking_id}/reject", response_model=BookingActionResponse, tags=["Bookings"])
async def reject_booking(
    booking_id: str,
    caller: Caller = Depends(labor),
    db: AsyncSession = Depends(get_db),
    directory=Depends(get_directory),
    publisher=Depends(get_publisher),
):
    return await _reject(db, directory, publisher, booking_id, caller.user_id)


async def _set_work_status(db, directory, publisher, booking_id: str, labor_id: str, value: str):
    work_status = parse_work_status(value)
    booking = await bookings.update_work_status(db, directory, booking_id, labor_id, work_status)
    await _publish(publisher, events.BOOKING_WORK_UPDATED, booking)
    return BookingActionResponse(message="Work status updated", booking=booking_to_response(booking))


@router.put("/bookings/{booking_id}/work-status", response_model=BookingActionResponse, tags=["Bookings"])
async def update_work_status(
    booking_id: str,
    data: WorkStatusRequest,
    caller: Caller = Depends(labor),
    db: AsyncSession = Depends(get_db),
    directory=Depends(get_directory),
    publisher=Depends(get_publisher),
):
    return await _set_work_status(db, directory, publisher, booking_id, caller.user_id, data.work_status)


@router.put("/bookings/{booking_id}/status", response_model=BookingActionResponse, tags=["Bookings"])
async def update_status(
    booking_id: str,
    data: StatusUpdateRequest,
    caller: Caller = Depends(labor),
    db: AsyncSession = Depends(get_db),
    directory=Depends(get_directory),
    publisher=Depends(get_publisher),
):
    """
    Unified endpoint: { status: accepted|rejected } decides the request,
    { work_status: pending|done } records work progress.
    """
    if data.status is not None:
        s = data.status.strip().lower()
        if s == "accepted":
            return await _accept(db, directory, publisher, booking_id, caller.user_id)
        if s == "rejected":
            return await _reject(db, directory, publisher, booking_id, caller.user_id)
        raise InvalidInput("Invalid status. Use accepted or rejected.")

    if data.work_status is not None:
        return await _set_work_status(db, directory, publisher, booking_id, caller.user_id, data.work_status)

    raise InvalidInput("Provide either { status } or { work_status } in body.")


# ================= PAYMENTS =================

@router.post("/bookings/{booking_id}/payment-choice", response_model=BookingActionResponse, tags=["Payments"])
async def set_payment_choice(
    booking_id: str,
    data: PaymentChoiceRequest,
    caller: Caller = Depends(customer),
    db: AsyncSession = Depends(get_db),
    directory=Depends(get_directory),
    publisher=Depends(get_publisher),
):
    method = parse_payment_method(data.method)
    booking = await payments.choose_payment_method(db, directory, booking_id, caller.user_id, method)
    await _publish(publisher, events.PAYMENT_METHOD_SELECTED, booking)
    return BookingActionResponse(
        message=f"Payment method set to {method.value}",
        booking=booking_to_response(booking),
    )


@router.post("/payments/start", response_model=StartCardSessionResponse, tags=["Payments"])
async def start_card_session(
    data: StartCardSessionRequest,
    caller: Caller = Depends(customer),
    db: AsyncSession = Depends(get_db),
    authorizer=Depends(get_authorizer),
):
    session = await payments.start_card_session(db, authorizer, data.booking_id, caller.user_id, data.provider)
    return StartCardSessionResponse(**session)


@router.post("/payments/charge", response_model=ChargeCardResponse, tags=["Payments"])
async def charge_card(
    data: ChargeCardRequest,
    caller: Caller = Depends(customer),
    db: AsyncSession = Depends(get_db),
    directory=Depends(get_directory),
    authorizer=Depends(get_authorizer),
    publisher=Depends(get_publisher),
):
    card = None
    if data.card:
        card = CardDetails(
            number=data.card.number or "",
            exp_month=data.card.exp_month,
            exp_year=data.card.exp_year,
            cvc=data.card.cvc or "",
            holder=data.card.holder,
        )

    booking, amount = await payments.charge_card(
        db, directory, authorizer, data.booking_id, caller.user_id, card, amount=data.amount
    )
    await _publish(publisher, events.PAYMENT_CARD_PAID, booking, amount=amount)
    return ChargeCardResponse(message="Payment successful", amount=amount, booking=booking_to_response(booking))


# ================= NOTIFICATIONS =================

async def _list_notifications(db, user_id: str, role: str, unread: bool):
    items = await notifications.list_for(db, user_id, role, unread_only=unread)
    return NotificationListResponse(items=[notification_to_response(n) for n in items])


async def _mark_read(db, notification_id: str, user_id: str, role: str):
    notification = await notifications.mark_read(db, notification_id, user_id, role)
    return MarkReadResponse(message="Marked as read", notification=notification_to_response(notification))


@router.get("/notifications", response_model=NotificationListResponse, tags=["Notifications"])
async def list_customer_notifications(
    unread: bool = False,
    caller: Caller = Depends(customer),
    db: AsyncSession = Depends(get_db),
):
    return await _list_notifications(db, caller.user_id, ROLE_CUSTOMER, unread)


@router.put("/notifications/read-all", response_model=MarkAllReadResponse, tags=["Notifications"])
async def mark_all_customer_notifications_read(caller: Caller = Depends(customer), db: AsyncSession = Depends(get_db)):
    count = await notifications.mark_all_read(db, caller.user_id, ROLE_CUSTOMER)
    return MarkAllReadResponse(message="All notifications marked as read", modified_count=count)


@router.put("/notifications/{notification_id}/read", response_model=MarkReadResponse, tags=["Notifications"])
async def mark_customer_notification_read(
    notification_id: str,
    caller: Caller = Depends(customer),
    db: AsyncSession = Depends(get_db),
):
    return await _mark_read(db, notification_id, caller.user_id, ROLE_CUSTOMER)


@router.get("/labor/notifications", response_model=NotificationListResponse, tags=["Notifications"])
async def list_labor_notifications(
    unread: bool = False,
    caller: Caller = Depends(labor),
    db: AsyncSession = Depends(get_db),
):
    return await _list_notifications(db, caller.user_id, ROLE_LABOR, unread)


@router.put("/labor/notifications/read-all", response_model=MarkAllReadResponse, tags=["Notifications"])
async def mark_all_labor_notifications_read(caller: Caller = Depends(labor), db: AsyncSession = Depends(get_db)):
    count = await notifications.mark_all_read(db, caller.user_id, ROLE_LABOR)
    return MarkAllReadResponse(message="All labor notifications marked as read", modified_count=count)


@router.put("/labor/notifications/{notification_id}/read", response_model=MarkReadResponse, tags=["Notifications"])
async def mark_labor_notification_read(
    notification_id: str,
    caller: Caller = Depends(labor),
    db: AsyncSession = Depends(get_db),
):
    return await _mark_read(db, notification_id, caller.user_id, ROLE_LABOR)


# ================= ADMIN =================

@router.get("/admin/bookings/stats", response_model=BookingStatsResponse, tags=["Admin"])
async def booking_stats(caller: Caller = Depends(admin), db: AsyncSession = Depends(get_db)):
    return BookingStatsResponse(**await bookings.decision_counts(db))
