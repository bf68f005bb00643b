import logging
from datetime import datetime

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from . import notifications
from .db import commit_or_raise
from .directory import find_labor_quietly
from .errors import NotFound, InvalidState, InvalidInput
from .ids import new_id, ensure_uuid
from .models import Booking
from .state import (
    Decision,
    BookingStatus,
    WorkStatus,
    initialize,
    require_decision,
    apply_decision,
    apply_work_status,
    decision_to_status,
    parse_status,
    status_to_decision,
)

logger = logging.getLogger(__name__)


def _labor_headline(labor) -> str:
    parts = [
        (labor.skill_category if labor else None) or "Labor",
        (labor.name if labor else None) or "",
    ]
    return " ".join(p for p in parts if p)


def _labor_meta(booking: Booking, labor) -> dict:
    return {
        "booking_id": booking.booking_id,
        "labor_id": booking.labor_id,
        "labor_name": labor.name if labor else None,
        "skill_category": labor.skill_category if labor else None,
    }


async def load_booking(db: AsyncSession, booking_id: str, **owner) -> Booking:
    """Fetch a booking scoped to its owner (customer_id=... or labor_id=...)."""
    booking_id = ensure_uuid(booking_id, "booking id")

    stmt = select(Booking).where(Booking.booking_id == booking_id)
    for column, value in owner.items():
        stmt = stmt.where(getattr(Booking, column) == value)

    res = await db.execute(stmt)
    booking = res.scalar_one_or_none()
    if not booking:
        raise NotFound("Booking not found")
    return booking


async def create_booking(
    db: AsyncSession,
    directory,
    customer_id: str,
    labor_id: str,
    note: str | None = None,
    job_date: datetime | None = None,
) -> Booking:
    if not labor_id:
        raise InvalidInput("labor_id is required")

    labor = await directory.find_labor_by_id(labor_id)
    if not labor:
        raise NotFound("Labor not found")
    if not labor.is_active:
        raise InvalidState("Labor is not currently accepting bookings")

    booking = Booking(
        booking_id=new_id(),
        customer_id=customer_id,
        labor_id=labor_id,
        note=(note or "").strip(),
        job_date=job_date,
    )
    initialize(booking)
    db.add(booking)
    await commit_or_raise(db)

    logger.info("booking %s requested by customer %s for labor %s", booking.booking_id, customer_id, labor_id)
    return booking


async def list_for_customer(db: AsyncSession, customer_id: str) -> list[Booking]:
    res = await db.execute(
        select(Booking)
        .where(Booking.customer_id == customer_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(res.scalars().all())


async def list_for_labor(db: AsyncSession, labor_id: str, status: str | None = None) -> list[Booking]:
    # Laborers see their inbox of pending requests unless they ask otherwise
    wanted = parse_status(status) if status else BookingStatus.PENDING
    decision = status_to_decision(wanted)

    res = await db.execute(
        select(Booking)
        .where(Booking.labor_id == labor_id, Booking.decision == decision.value)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(res.scalars().all())


async def _decide(db: AsyncSession, directory, booking_id: str, labor_id: str, decision: Decision) -> Booking:
    booking = await load_booking(db, booking_id, labor_id=labor_id)
    verb = "accept" if decision is Decision.ACCEPTED else "decline"
    require_decision(booking, Decision.REQUESTED, verb)

    labor = await find_labor_quietly(directory, labor_id)

    apply_decision(booking, decision)

    if decision is Decision.ACCEPTED:
        title, action = "Booking Accepted", "accepted"
    else:
        title, action = "Booking Declined", "declined"

    notifications.emit(
        db,
        user_id=booking.customer_id,
        role="customer",
        type=notifications.TYPE_BOOKING,
        title=title,
        message=f"{_labor_headline(labor)} {action} your booking request.",
        meta={
            **_labor_meta(booking, labor),
            "decision": booking.decision,
            "status": booking.status,
        },
    )
    await commit_or_raise(db)

    logger.info("booking %s %s by labor %s", booking.booking_id, action, labor_id)
    return booking


async def accept(db: AsyncSession, directory, booking_id: str, labor_id: str) -> Booking:
    return await _decide(db, directory, booking_id, labor_id, Decision.ACCEPTED)


async def decline(db: AsyncSession, directory, booking_id: str, labor_id: str) -> Booking:
    return await _decide(db, directory, booking_id, labor_id, Decision.DECLINED)


async def update_work_status(
    db: AsyncSession,
    directory,
    booking_id: str,
    labor_id: str,
    work_status: WorkStatus,
) -> Booking:
    booking = await load_booking(db, booking_id, labor_id=labor_id)

    completed = apply_work_status(booking, work_status)

    if completed:
        labor = await find_labor_quietly(directory, labor_id)
        notifications.emit(
            db,
            user_id=booking.customer_id,
            role="customer",
            type=notifications.TYPE_BOOKING,
            title="Work Completed",
            message=f"{_labor_headline(labor)} marked your job as completed.",
            meta={
                **_labor_meta(booking, labor),
                "work_status": booking.work_status,
                "completed_at": booking.completed_at,
            },
        )
    await commit_or_raise(db)

    logger.info("booking %s work status -> %s", booking.booking_id, booking.work_status)
    return booking


async def decision_counts(db: AsyncSession) -> dict:
    res = await db.execute(
        select(Booking.decision, func.count(Booking.id)).group_by(Booking.decision)
    )
    by_decision = {d.value: 0 for d in Decision}
    for decision, count in res.all():
        by_decision[decision] = count

    return {
        "total": sum(by_decision.values()),
        "by_decision": by_decision,
        "by_status": {decision_to_status(d).value: c for d, c in by_decision.items()},
    }
