"""
Unit tests for the notification feed.
"""

import uuid

import pytest

from booking_service import notifications
from booking_service.errors import InvalidInput, NotFound


async def seed(db, count, user_id="C1", role="customer"):
    for i in range(count):
        notifications.emit(db, user_id, role, "booking", f"Title {i}", f"Message {i}", {"index": i})
    await db.commit()


class TestEmit:
    """Test notification creation."""

    @pytest.mark.asyncio
    async def test_emit_defaults(self, db):
        """Test a new notification is unread with cleaned meta."""
        n = notifications.emit(db, "C1", "customer", "booking", " Hello ", "World", {"a": 1, "b": None})
        await db.commit()

        assert n.read is False
        assert n.title == "Hello"
        assert n.meta == {"a": 1}
        uuid.UUID(n.notification_id)

    @pytest.mark.asyncio
    async def test_unknown_role(self, db):
        """Test notifications need a known audience."""
        with pytest.raises(ValueError):
            notifications.emit(db, "C1", "guest", "booking", "t", "m")


class TestListFor:
    """Test feed listing."""

    @pytest.mark.asyncio
    async def test_newest_first_and_capped(self, db):
        """Test the feed is newest first and capped at 100."""
        await seed(db, 105)

        feed = await notifications.list_for(db, "C1", "customer")

        assert len(feed) == 100
        assert feed[0].title == "Title 104"
        assert feed[-1].title == "Title 5"

    @pytest.mark.asyncio
    async def test_role_partition(self, db):
        """Test the same user id sees only notifications for the acting role."""
        await seed(db, 2, user_id="U1", role="customer")
        await seed(db, 3, user_id="U1", role="labor")

        assert len(await notifications.list_for(db, "U1", "customer")) == 2
        assert len(await notifications.list_for(db, "U1", "labor")) == 3

    @pytest.mark.asyncio
    async def test_unread_only(self, db):
        """Test unread filter."""
        await seed(db, 3)
        feed = await notifications.list_for(db, "C1", "customer")
        await notifications.mark_read(db, feed[0].notification_id, "C1", "customer")

        unread = await notifications.list_for(db, "C1", "customer", unread_only=True)

        assert len(unread) == 2
        assert all(not n.read for n in unread)


class TestMarkRead:
    """Test read-state updates."""

    @pytest.mark.asyncio
    async def test_mark_read(self, db):
        """Test marking one notification read."""
        await seed(db, 1)
        target = (await notifications.list_for(db, "C1", "customer"))[0]

        updated = await notifications.mark_read(db, target.notification_id, "C1", "customer")

        assert updated.read is True

    @pytest.mark.asyncio
    async def test_wrong_role(self, db):
        """Test a notification cannot be marked from another role context."""
        await seed(db, 1)
        target = (await notifications.list_for(db, "C1", "customer"))[0]

        with pytest.raises(NotFound):
            await notifications.mark_read(db, target.notification_id, "C1", "labor")

    @pytest.mark.asyncio
    async def test_other_user(self, db):
        """Test a notification cannot be marked by another user."""
        await seed(db, 1)
        target = (await notifications.list_for(db, "C1", "customer"))[0]

        with pytest.raises(NotFound):
            await notifications.mark_read(db, target.notification_id, "C2", "customer")

    @pytest.mark.asyncio
    async def test_malformed_id(self, db):
        """Test non-UUID notification id."""
        with pytest.raises(InvalidInput):
            await notifications.mark_read(db, "42", "C1", "customer")

    @pytest.mark.asyncio
    async def test_mark_all_read(self, db):
        """Test bulk read returns the number changed."""
        await seed(db, 3)
        await seed(db, 2, user_id="C2")

        assert await notifications.mark_all_read(db, "C1", "customer") == 3
        assert await notifications.mark_all_read(db, "C1", "customer") == 0
        assert len(await notifications.list_for(db, "C2", "customer", unread_only=True)) == 2
