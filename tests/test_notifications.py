"""Tests for the notification dispatcher."""

import pytest

from brand_connect.errors import NotFound, UpstreamUnavailable, ValidationFailed
from brand_connect.models.enums import BookingStatus, NotificationType
from brand_connect.services.notifications import booking_status_message
from fakes import InMemoryRecordStore


def _notify(dispatcher, user_id: str = "user-1", title: str = "Hello"):
    return dispatcher.notify(user_id, NotificationType.NEW_MESSAGE, title, "Body")


class TestStatusMessages:
    def test_known_statuses(self) -> None:
        assert booking_status_message(BookingStatus.CONFIRMED) == "Your booking has been confirmed"
        assert booking_status_message(BookingStatus.CANCELLED) == "Your booking has been cancelled"

    def test_fallback_mentions_status(self) -> None:
        assert "pending" in booking_status_message(BookingStatus.PENDING)


class TestNotify:
    @pytest.mark.asyncio
    async def test_notify_persists_row(self, services, store: InMemoryRecordStore) -> None:
        dispatcher = services["notification_dispatcher"]

        note = await dispatcher.notify(
            "user-1", NotificationType.BOOKING_UPDATE, "Booking", "Confirmed", {"booking_id": "b-1"},
        )

        assert note.read_at is None
        assert note.data == {"booking_id": "b-1"}
        assert store.rows("notifications")[0]["type"] == "booking_update"

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self, services, store: InMemoryRecordStore) -> None:
        store.fail("insert", "notifications", UpstreamUnavailable("blip"), times=2)

        note = await _notify(services["notification_dispatcher"])

        assert note is not None
        assert store.calls.count(("insert", "notifications")) == 3

    @pytest.mark.asyncio
    async def test_notify_safely_swallows_final_failure(self, services, store: InMemoryRecordStore) -> None:
        store.fail("insert", "notifications", UpstreamUnavailable("down"), times=3)

        result = await services["notification_dispatcher"].notify_safely(
            "user-1", NotificationType.NEW_MESSAGE, "Hello", "Body",
        )

        assert result is None
        assert store.rows("notifications") == []

    @pytest.mark.asyncio
    async def test_non_transient_failure_is_not_retried(self, services, store: InMemoryRecordStore) -> None:
        store.fail("insert", "notifications", ValidationFailed("bad payload"))

        with pytest.raises(ValidationFailed):
            await _notify(services["notification_dispatcher"])
        assert store.calls.count(("insert", "notifications")) == 1


class TestReadAndList:
    @pytest.mark.asyncio
    async def test_mark_read_is_one_way(self, services) -> None:
        dispatcher = services["notification_dispatcher"]
        note = await _notify(dispatcher)

        first = await dispatcher.mark_read(note.id, "user-1")
        second = await dispatcher.mark_read(note.id, "user-1")

        assert first.read_at is not None
        assert second.read_at == first.read_at

    @pytest.mark.asyncio
    async def test_mark_read_of_someone_elses_notification(self, services) -> None:
        dispatcher = services["notification_dispatcher"]
        note = await _notify(dispatcher)

        with pytest.raises(NotFound):
            await dispatcher.mark_read(note.id, "user-2")
        with pytest.raises(NotFound):
            await dispatcher.mark_read("missing", "user-1")

    @pytest.mark.asyncio
    async def test_concurrent_read_keeps_stored_timestamp(self, services, store: InMemoryRecordStore) -> None:
        dispatcher = services["notification_dispatcher"]
        note = await _notify(dispatcher)

        def _read_elsewhere() -> None:
            store.tables["notifications"][note.id]["read_at"] = "2020-01-01T00:00:00+00:00"

        store.before("update", "notifications", _read_elsewhere)

        result = await dispatcher.mark_read(note.id, "user-1")

        assert result.read_at.year == 2020

    @pytest.mark.asyncio
    async def test_list_is_newest_first_and_scoped(self, services, store: InMemoryRecordStore) -> None:
        dispatcher = services["notification_dispatcher"]
        for day, title in enumerate(("first", "second", "third"), start=1):
            store.put("notifications", {
                "user_id": "user-1",
                "type": "new_message",
                "title": title,
                "message": "Body",
                "created_at": f"2026-01-0{day}T10:00:00+00:00",
            })
        await _notify(dispatcher, user_id="user-2")

        notes = await dispatcher.list_for_user("user-1")
        limited = await dispatcher.list_for_user("user-1", limit=2)

        assert [n.title for n in notes] == ["third", "second", "first"]
        assert len(limited) == 2
