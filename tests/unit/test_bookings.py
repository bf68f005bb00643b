"""
Unit tests for booking lifecycle operations.
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from booking_service import bookings, notifications
from booking_service.db import commit_or_raise
from booking_service.errors import (
    Conflict,
    InvalidInput,
    InvalidState,
    NotFound,
    StoreUnavailable,
)
from booking_service.state import WorkStatus


class TestCreateBooking:
    """Test booking creation."""

    @pytest.mark.asyncio
    async def test_create_then_read(self, db, directory):
        """Test a new booking reads back in the requested state."""
        created = await bookings.create_booking(db, directory, "C1", "L1", note="  Fix wiring  ")

        booking = await bookings.load_booking(db, created.booking_id, customer_id="C1")

        assert booking.decision == "requested"
        assert booking.status == "pending"
        assert booking.work_status == "pending"
        assert booking.payment_method is None
        assert booking.payment_status is None
        assert booking.note == "Fix wiring"

    @pytest.mark.asyncio
    async def test_unknown_labor(self, db, directory):
        """Test booking an absent laborer."""
        with pytest.raises(NotFound, match="Labor not found"):
            await bookings.create_booking(db, directory, "C1", "L404")

    @pytest.mark.asyncio
    async def test_inactive_labor(self, db, directory):
        """Test booking an inactive laborer."""
        with pytest.raises(InvalidState, match="not currently accepting"):
            await bookings.create_booking(db, directory, "C1", "L2")

    @pytest.mark.asyncio
    async def test_directory_down(self, db, directory):
        """Test creation fails when the laborer cannot be verified."""
        directory.unavailable = True

        with pytest.raises(StoreUnavailable):
            await bookings.create_booking(db, directory, "C1", "L1")


class TestLoadBooking:
    """Test scoped lookups."""

    @pytest.mark.asyncio
    async def test_malformed_id(self, db):
        """Test non-UUID booking id."""
        with pytest.raises(InvalidInput, match="Invalid booking id"):
            await bookings.load_booking(db, "not-a-uuid")

    @pytest.mark.asyncio
    async def test_other_customer_cannot_see(self, db, requested_booking):
        """Test ownership scoping hides other customers' bookings."""
        with pytest.raises(NotFound):
            await bookings.load_booking(db, requested_booking.booking_id, customer_id="C2")


class TestAcceptDecline:
    """Test the laborer's decision."""

    @pytest.mark.asyncio
    async def test_accept_notifies_customer(self, db, directory, requested_booking):
        """Test acceptance updates both vocabularies and notifies the customer once."""
        booking = await bookings.accept(db, directory, requested_booking.booking_id, "L1")

        assert booking.decision == "accepted"
        assert booking.status == "accepted"
        assert booking.accepted_at is not None

        feed = await notifications.list_for(db, "C1", "customer")
        assert len(feed) == 1
        assert feed[0].title == "Booking Accepted"
        assert feed[0].type == "booking"
        assert feed[0].message == "Electricians Nimal Perera accepted your booking request."
        assert feed[0].meta["booking_id"] == booking.booking_id
        assert feed[0].meta["skill_category"] == "Electricians"
        assert feed[0].read is False

    @pytest.mark.asyncio
    async def test_decline_notifies_customer(self, db, directory, requested_booking):
        """Test decline maps to the rejected status."""
        booking = await bookings.decline(db, directory, requested_booking.booking_id, "L1")

        assert booking.decision == "declined"
        assert booking.status == "rejected"
        assert booking.declined_at is not None
        assert booking.work_status == "pending"

        feed = await notifications.list_for(db, "C1", "customer")
        assert [n.title for n in feed] == ["Booking Declined"]

    @pytest.mark.asyncio
    async def test_only_target_labor_can_decide(self, db, directory, requested_booking):
        """Test another laborer cannot accept the booking."""
        with pytest.raises(NotFound):
            await bookings.accept(db, directory, requested_booking.booking_id, "L3")

    @pytest.mark.asyncio
    async def test_decline_after_accept(self, db, directory, accepted_booking):
        """Test decisions are only taken on requested bookings."""
        with pytest.raises(InvalidState):
            await bookings.decline(db, directory, accepted_booking.booking_id, "L1")

        booking = await bookings.load_booking(db, accepted_booking.booking_id)
        assert booking.decision == "accepted"

    @pytest.mark.asyncio
    async def test_accept_with_directory_down(self, db, directory, requested_booking):
        """Test acceptance still succeeds when laborer details are unavailable."""
        directory.unavailable = True

        booking = await bookings.accept(db, directory, requested_booking.booking_id, "L1")

        assert booking.decision == "accepted"
        feed = await notifications.list_for(db, "C1", "customer")
        assert feed[0].message == "Labor accepted your booking request."

    @pytest.mark.asyncio
    async def test_concurrent_decisions_conflict(self, session_factory, directory, requested_booking):
        """Test the second of two racing decisions is rejected."""
        booking_id = requested_booking.booking_id

        async with session_factory() as first, session_factory() as second:
            await bookings.load_booking(second, booking_id, labor_id="L1")

            await bookings.accept(first, directory, booking_id, "L1")

            with pytest.raises(Conflict):
                await bookings.decline(second, directory, booking_id, "L1")

        async with session_factory() as fresh:
            booking = await bookings.load_booking(fresh, booking_id)
            assert booking.decision == "accepted"
            assert booking.declined_at is None
            feed = await notifications.list_for(fresh, "C1", "customer")
            assert [n.title for n in feed] == ["Booking Accepted"]


class TestWorkStatus:
    """Test work progress updates."""

    @pytest.mark.asyncio
    async def test_before_acceptance(self, db, directory, requested_booking):
        """Test work status on a requested booking is rejected without changes."""
        with pytest.raises(InvalidState, match="after acceptance"):
            await bookings.update_work_status(db, directory, requested_booking.booking_id, "L1", WorkStatus.DONE)

        booking = await bookings.load_booking(db, requested_booking.booking_id)
        assert booking.work_status == "pending"
        assert booking.completed_at is None
        assert await notifications.list_for(db, "C1", "customer") == []

    @pytest.mark.asyncio
    async def test_done_then_pending(self, db, directory, accepted_booking):
        """Test completion notifies once and reverting clears completed_at."""
        booking_id = accepted_booking.booking_id

        booking = await bookings.update_work_status(db, directory, booking_id, "L1", WorkStatus.DONE)
        assert booking.work_status == "done"
        assert booking.completed_at is not None

        booking = await bookings.update_work_status(db, directory, booking_id, "L1", WorkStatus.PENDING)
        assert booking.work_status == "pending"
        assert booking.completed_at is None

        titles = [n.title for n in await notifications.list_for(db, "C1", "customer")]
        assert titles.count("Work Completed") == 1
        assert len(titles) == 2


class TestListings:
    """Test booking listings."""

    @pytest.mark.asyncio
    async def test_customer_listing_newest_first(self, db, directory):
        """Test customers see only their own bookings, newest first."""
        first = await bookings.create_booking(db, directory, "C1", "L1")
        second = await bookings.create_booking(db, directory, "C1", "L3")
        await bookings.create_booking(db, directory, "C2", "L1")

        items = await bookings.list_for_customer(db, "C1")

        assert [b.booking_id for b in items] == [second.booking_id, first.booking_id]

    @pytest.mark.asyncio
    async def test_labor_listing_defaults_to_pending(self, db, directory):
        """Test laborer listing without a filter returns pending requests."""
        pending = await bookings.create_booking(db, directory, "C1", "L1")
        accepted = await bookings.create_booking(db, directory, "C2", "L1")
        await bookings.accept(db, directory, accepted.booking_id, "L1")

        default = await bookings.list_for_labor(db, "L1")
        assert [b.booking_id for b in default] == [pending.booking_id]

        by_status = await bookings.list_for_labor(db, "L1", "accepted")
        assert [b.booking_id for b in by_status] == [accepted.booking_id]

    @pytest.mark.asyncio
    async def test_labor_listing_rejected_vocabulary(self, db, directory, requested_booking):
        """Test rejected status filter finds declined bookings."""
        await bookings.decline(db, directory, requested_booking.booking_id, "L1")

        items = await bookings.list_for_labor(db, "L1", "rejected")

        assert [b.decision for b in items] == ["declined"]

    @pytest.mark.asyncio
    async def test_labor_listing_unknown_status(self, db):
        """Test invalid status filter."""
        with pytest.raises(InvalidInput):
            await bookings.list_for_labor(db, "L1", "done")

    @pytest.mark.asyncio
    async def test_decision_counts(self, db, directory):
        """Test dashboard counts are aggregated from stored bookings."""
        a = await bookings.create_booking(db, directory, "C1", "L1")
        b = await bookings.create_booking(db, directory, "C1", "L1")
        await bookings.create_booking(db, directory, "C2", "L3")
        await bookings.accept(db, directory, a.booking_id, "L1")
        await bookings.decline(db, directory, b.booking_id, "L1")

        counts = await bookings.decision_counts(db)

        assert counts["total"] == 3
        assert counts["by_decision"] == {"requested": 1, "accepted": 1, "declined": 1, "cancelled": 0}
        assert counts["by_status"]["rejected"] == 1
        assert counts["by_status"]["pending"] == 1


class TestCommit:
    """Test store failure mapping."""

    @pytest.mark.asyncio
    async def test_store_failure(self):
        """Test a failed commit is rolled back and surfaced as StoreUnavailable."""
        session = AsyncMock()
        session.commit.side_effect = OperationalError("COMMIT", {}, Exception("disk I/O error"))

        with pytest.raises(StoreUnavailable):
            await commit_or_raise(session)

        session.rollback.assert_awaited_once()
