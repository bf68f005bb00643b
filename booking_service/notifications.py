"""
Notification feed.

Notifications are append-only: one row per triggering event, addressed to a
single user in a single role context. The only mutation is flipping ``read``.
"""
import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .config import NOTIFICATION_FEED_LIMIT, CURRENCY_PREFIX
from .db import commit_or_raise
from .errors import NotFound
from .ids import new_id, ensure_uuid
from .models import Notification

logger = logging.getLogger(__name__)

ROLES = ("customer", "labor", "admin")

TYPE_BOOKING = "booking"
TYPE_PAYMENT = "payment"


def format_amount(amount) -> str:
    if not isinstance(amount, (int, float)) or isinstance(amount, bool):
        return ""
    if float(amount).is_integer():
        return f"{CURRENCY_PREFIX} {int(amount):,}"
    return f"{CURRENCY_PREFIX} {amount:,.2f}"


def _clean_meta(meta: dict | None) -> dict:
    cleaned = {}
    for k, v in (meta or {}).items():
        if v is None:
            continue
        if isinstance(v, datetime):
            v = v.isoformat()
        cleaned[k] = v
    return cleaned


def emit(
    db: AsyncSession,
    user_id: str,
    role: str,
    type: str,
    title: str,
    message: str,
    meta: dict | None = None,
) -> Notification:
    """
    Stage a notification in the caller's unit of work. It is persisted by the
    same commit as the state change that produced it.
    """
    if role not in ROLES:
        raise ValueError(f"Unknown notification role: {role}")

    notification = Notification(
        notification_id=new_id(),
        user_id=str(user_id),
        role=role,
        type=type,
        title=title.strip(),
        message=message.strip(),
        meta=_clean_meta(meta),
        read=False,
    )
    db.add(notification)
    logger.info("notification %r staged for %s:%s", title, role, user_id)
    return notification


async def list_for(
    db: AsyncSession,
    user_id: str,
    role: str,
    unread_only: bool = False,
    limit: int = NOTIFICATION_FEED_LIMIT,
) -> list[Notification]:
    stmt = select(Notification).where(
        Notification.user_id == user_id,
        Notification.role == role,
    )
    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))

    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def mark_read(db: AsyncSession, notification_id: str, user_id: str, role: str) -> Notification:
    notification_id = ensure_uuid(notification_id, "notification id")

    res = await db.execute(
        select(Notification).where(
            Notification.notification_id == notification_id,
            Notification.user_id == user_id,
            Notification.role == role,
        )
    )
    notification = res.scalar_one_or_none()
    if not notification:
        raise NotFound("Notification not found")

    notification.read = True
    await commit_or_raise(db)
    return notification


async def mark_all_read(db: AsyncSession, user_id: str, role: str) -> int:
    res = await db.execute(
        update(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.role == role,
            Notification.read.is_(False),
        )
        .values(read=True)
    )
    await commit_or_raise(db)
    return res.rowcount or 0
