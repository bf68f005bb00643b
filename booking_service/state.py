"""
Booking lifecycle state machine.

A booking has one canonical lifecycle value, ``decision``. The ``status``
vocabulary used by listing filters is a pure projection of it:

    requested <-> pending
    accepted  <-> accepted
    declined  <-> rejected
    cancelled <-> cancelled

Work progress (``work_status``) and the payment pair
(``payment_method``, ``payment_status``) are substates that only mean
something once the booking is accepted. Every mutation goes through the
``apply_*`` functions below so the timestamps stay consistent with the
values they describe.
"""
from datetime import datetime, timezone
from enum import Enum

from .errors import InvalidInput, InvalidState


class Decision(str, Enum):
    REQUESTED = "requested"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"


class BookingStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class WorkStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


_DECISION_TO_STATUS = {
    Decision.REQUESTED: BookingStatus.PENDING,
    Decision.ACCEPTED: BookingStatus.ACCEPTED,
    Decision.DECLINED: BookingStatus.REJECTED,
    Decision.CANCELLED: BookingStatus.CANCELLED,
}

_STATUS_TO_DECISION = {v: k for k, v in _DECISION_TO_STATUS.items()}


def decision_to_status(decision: str) -> BookingStatus:
    return _DECISION_TO_STATUS[Decision(decision)]


def status_to_decision(status: str) -> Decision:
    return _STATUS_TO_DECISION[BookingStatus(status)]


def parse_status(value: str) -> BookingStatus:
    try:
        return BookingStatus((value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in BookingStatus)
        raise InvalidInput(f"Invalid status: {value}. Use one of: {allowed}")


def parse_work_status(value: str) -> WorkStatus:
    try:
        return WorkStatus((value or "").strip().lower())
    except ValueError:
        raise InvalidInput("workStatus must be pending or done")


def parse_payment_method(value: str) -> PaymentMethod:
    try:
        return PaymentMethod((value or "").strip().lower())
    except ValueError:
        raise InvalidInput("method must be 'cash' or 'card'")


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def initialize(booking) -> None:
    """Put a freshly built booking into the requested state."""
    booking.decision = Decision.REQUESTED.value
    booking.work_status = WorkStatus.PENDING.value
    booking.payment_method = None
    booking.payment_status = None
    booking.accepted_at = None
    booking.declined_at = None
    booking.cancelled_at = None
    booking.completed_at = None
    booking.paid_at = None


def require_decision(booking, expected: Decision, action: str) -> None:
    if booking.decision != expected.value:
        raise InvalidState(
            f"Cannot {action} a booking whose decision is {booking.decision}"
        )


def apply_decision(booking, decision: Decision, now: datetime | None = None) -> None:
    """
    Move the booking to ``decision``.

    Transition timestamps are written once, the first time a decision is
    reached; re-entering the same decision leaves them alone. Leaving
    ``accepted`` resets work progress.
    """
    decision = Decision(decision)
    ts = _now(now)

    booking.decision = decision.value

    if decision is Decision.ACCEPTED:
        if booking.accepted_at is None:
            booking.accepted_at = ts
        if not booking.work_status:
            booking.work_status = WorkStatus.PENDING.value
    elif decision is Decision.DECLINED and booking.declined_at is None:
        booking.declined_at = ts
    elif decision is Decision.CANCELLED and booking.cancelled_at is None:
        booking.cancelled_at = ts

    if decision is not Decision.ACCEPTED:
        booking.work_status = WorkStatus.PENDING.value
        booking.completed_at = None


def apply_work_status(booking, work_status: WorkStatus, now: datetime | None = None) -> bool:
    """
    Update work progress. Returns True only on the pending -> done edge.
    """
    if booking.decision != Decision.ACCEPTED.value:
        raise InvalidState("Work status can only be updated after acceptance")

    work_status = WorkStatus(work_status)
    previous = booking.work_status
    booking.work_status = work_status.value

    if work_status is WorkStatus.DONE:
        if booking.completed_at is None:
            booking.completed_at = _now(now)
        return previous != WorkStatus.DONE.value

    booking.completed_at = None
    return False


def require_payable(booking) -> None:
    if decision_to_status(booking.decision) is not BookingStatus.ACCEPTED:
        raise InvalidState("Payment is allowed only after the labor accepts the booking")


def apply_payment(
    booking,
    method: PaymentMethod,
    status: PaymentStatus | None,
    now: datetime | None = None,
) -> None:
    booking.payment_method = PaymentMethod(method).value
    booking.payment_status = PaymentStatus(status).value if status else None

    if booking.payment_status == PaymentStatus.PAID.value:
        if booking.paid_at is None:
            booking.paid_at = _now(now)
    else:
        booking.paid_at = None
