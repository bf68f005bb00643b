from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON, Index

from .db import Base
from .state import Decision, WorkStatus, decision_to_status


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)
    booking_id = Column(String, unique=True, nullable=False, index=True)

    customer_id = Column(String, nullable=False, index=True)
    labor_id = Column(String, nullable=False, index=True)

    note = Column(String, nullable=False, default="")
    job_date = Column(DateTime(timezone=True), nullable=True)

    # status is never stored; it is projected from decision
    decision = Column(String, nullable=False, default=Decision.REQUESTED.value, index=True)
    work_status = Column(String, nullable=False, default=WorkStatus.PENDING.value)

    payment_method = Column(String, nullable=True)  # cash/card
    payment_status = Column(String, nullable=True, index=True)  # pending/paid

    accepted_at = Column(DateTime(timezone=True), nullable=True)
    declined_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_bookings_labor_id_decision", "labor_id", "decision"),
    )

    @property
    def status(self) -> str:
        return decision_to_status(self.decision).value


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    notification_id = Column(String, unique=True, nullable=False, index=True)

    user_id = Column(String, nullable=False, index=True)
    role = Column(String, nullable=False, index=True)  # customer/labor/admin
    type = Column(String, nullable=False, default="booking")

    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    meta = Column(JSON, nullable=False, default=dict)

    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_notifications_feed", "user_id", "role", "read"),
    )
