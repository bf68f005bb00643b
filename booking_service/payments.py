"""
Payment sub-workflow for accepted bookings.

Customers either announce a cash payment (the laborer is told right away)
or pay by card through a ``CardAuthorizer``. The authorizer is the only
piece that talks to a payment processor; swap ``MockCardAuthorizer`` for a
real one without touching the booking rules here.
"""
import logging
import math
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from . import notifications
from .bookings import load_booking
from .config import MOCK_CARD_APPROVED_LAST4
from .db import commit_or_raise
from .directory import find_labor_quietly, find_customer_quietly
from .errors import InvalidInput, PaymentDeclined
from .ids import new_id
from .models import Booking
from .notifications import format_amount
from .state import (
    PaymentMethod,
    PaymentStatus,
    apply_payment,
    require_payable,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CardDetails:
    number: str
    exp_month: int | str
    exp_year: int | str
    cvc: str
    holder: str | None = None

    @property
    def last4(self) -> str:
        return "".join(str(self.number).split())[-4:]

    def is_complete(self) -> bool:
        return all([self.number, self.exp_month, self.exp_year, self.cvc])


@dataclass(frozen=True)
class AuthorizationResult:
    approved: bool
    reason: str | None = None
    reference: str | None = None


class CardAuthorizer:
    """
    Seam for a card processor.

    ``authorize`` runs before the booking is committed as paid, and that commit
    can still fail with Conflict or StoreUnavailable. A real processor should
    only place a hold here and capture after the commit, or void the hold when
    ``charge_card`` raises past this point.
    """

    async def authorize(self, card: CardDetails, amount: float) -> AuthorizationResult:
        raise NotImplementedError

    async def create_session(self, booking: Booking, provider: str | None = None) -> str | None:
        """Return a hosted checkout URL, or None to use the embedded card form."""
        return None


class MockCardAuthorizer(CardAuthorizer):
    def __init__(self, approved_last4: str = MOCK_CARD_APPROVED_LAST4):
        self.approved_last4 = approved_last4

    async def authorize(self, card: CardDetails, amount: float) -> AuthorizationResult:
        if card.last4 != self.approved_last4:
            return AuthorizationResult(
                approved=False,
                reason=f"Card was declined (mock). Use a number ending with {self.approved_last4}.",
            )
        return AuthorizationResult(approved=True, reference=f"mock_{new_id()}")


authorizer = MockCardAuthorizer()


def get_authorizer() -> CardAuthorizer:
    return authorizer


def _customer_meta(booking: Booking, customer) -> dict:
    return {
        "booking_id": booking.booking_id,
        "customer_id": booking.customer_id,
        "customer_name": customer.name if customer else None,
        "customer_phone": customer.phone if customer else None,
        "customer_email": customer.email if customer else None,
        "customer_address": customer.address if customer else None,
        "job_date": booking.job_date,
    }


def _location(customer) -> str:
    if customer and customer.address:
        return f" Location: {customer.address}."
    return ""


async def choose_payment_method(
    db: AsyncSession,
    directory,
    booking_id: str,
    customer_id: str,
    method: PaymentMethod,
) -> Booking:
    booking = await load_booking(db, booking_id, customer_id=customer_id)
    require_payable(booking)

    method = PaymentMethod(method)
    if method is PaymentMethod.CARD:
        status = PaymentStatus.PENDING
    else:
        status = PaymentStatus(booking.payment_status or PaymentStatus.PENDING.value)

    apply_payment(booking, method, status)

    if method is PaymentMethod.CASH:
        labor = await find_labor_quietly(directory, booking.labor_id)
        customer = await find_customer_quietly(directory, customer_id)
        amount_text = format_amount(labor.daily_rate if labor else None)

        notifications.emit(
            db,
            user_id=booking.labor_id,
            role="labor",
            type=notifications.TYPE_PAYMENT,
            title="Customer will pay in cash",
            message=(
                "The customer selected CASH for this job"
                + (f" ({amount_text})" if amount_text else "")
                + "."
                + _location(customer)
            ),
            meta={
                **_customer_meta(booking, customer),
                "payment_method": booking.payment_method,
                "payment_status": booking.payment_status,
                "labor_name": labor.name if labor else None,
                "skill_category": labor.skill_category if labor else None,
            },
        )
    await commit_or_raise(db)

    logger.info("booking %s payment method set to %s", booking.booking_id, method.value)
    return booking


async def start_card_session(
    db: AsyncSession,
    authorizer: CardAuthorizer,
    booking_id: str,
    customer_id: str,
    provider: str | None = None,
) -> dict:
    booking = await load_booking(db, booking_id, customer_id=customer_id)
    require_payable(booking)

    url = await authorizer.create_session(booking, provider)
    return {"url": url, "provider": provider or "in-app"}


def _is_positive_amount(amount) -> bool:
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return False
    return math.isfinite(amount) and amount > 0


async def _resolve_amount(directory, booking: Booking, amount: float | None) -> float:
    if amount is not None:
        if not _is_positive_amount(amount):
            raise InvalidInput("Amount must be a positive number")
        return amount

    labor = await directory.find_labor_by_id(booking.labor_id)
    if not labor or not _is_positive_amount(labor.daily_rate):
        raise InvalidInput("Amount is required (labor daily rate not available)")
    return labor.daily_rate


async def charge_card(
    db: AsyncSession,
    directory,
    authorizer: CardAuthorizer,
    booking_id: str,
    customer_id: str,
    card: CardDetails | None,
    amount: float | None = None,
) -> tuple[Booking, float]:
    booking = await load_booking(db, booking_id, customer_id=customer_id)
    if not card or not card.is_complete():
        raise InvalidInput("Missing card details")
    require_payable(booking)

    charge_amount = await _resolve_amount(directory, booking, amount)

    result = await authorizer.authorize(card, charge_amount)
    if not result.approved:
        logger.info("card charge declined for booking %s", booking.booking_id)
        raise PaymentDeclined(result.reason or "Card was declined")

    apply_payment(booking, PaymentMethod.CARD, PaymentStatus.PAID)

    labor = await find_labor_quietly(directory, booking.labor_id)
    customer = await find_customer_quietly(directory, customer_id)
    notifications.emit(
        db,
        user_id=booking.labor_id,
        role="labor",
        type=notifications.TYPE_PAYMENT,
        title="Customer paid by card",
        message=(
            f"Payment received ({format_amount(charge_amount)}). The job is ready to proceed."
            + _location(customer)
        ),
        meta={
            **_customer_meta(booking, customer),
            "payment_method": booking.payment_method,
            "payment_status": booking.payment_status,
            "paid_at": booking.paid_at,
            "labor_name": labor.name if labor else None,
            "skill_category": labor.skill_category if labor else None,
            "amount": charge_amount,
            "reference": result.reference,
        },
    )
    await commit_or_raise(db)

    logger.info("booking %s paid by card (%s)", booking.booking_id, charge_amount)
    return booking, charge_amount
