"""Unit tests for the local notification center."""

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from recall.reminders import LocalNotificationCenter, NotificationContent, NotificationStatus

NOW = datetime(2025, 6, 8, 12, 0, tzinfo=UTC)


class TestScheduling:
    """Tests for scheduling and cancelling."""

    def test_schedule_returns_unique_handles(self) -> None:
        """Test that each notification gets its own handle."""
        center = LocalNotificationCenter(clock=lambda: NOW)
        content = NotificationContent("Title", "Body")

        first = center.schedule(NOW + timedelta(hours=1), content)
        second = center.schedule(NOW + timedelta(hours=1), content)

        assert first != second
        assert len(center.list_pending()) == 2

    def test_list_pending_sorted(self) -> None:
        """Test that pending notifications are soonest first."""
        center = LocalNotificationCenter(clock=lambda: NOW)
        late = center.schedule(NOW + timedelta(days=2), NotificationContent("T", "late"))
        soon = center.schedule(NOW + timedelta(hours=1), NotificationContent("T", "soon"))

        assert [n.id for n in center.list_pending()] == [soon, late]

    def test_cancel(self) -> None:
        """Test cancelling a notification."""
        center = LocalNotificationCenter(clock=lambda: NOW)
        handle = center.schedule(NOW + timedelta(hours=1), NotificationContent("T", "B"))

        center.cancel(handle)

        assert center.get(handle).status is NotificationStatus.CANCELLED
        assert center.list_pending() == []


class TestCheckDue:
    """Tests for delivering due notifications."""

    def test_delivers_due_only(self) -> None:
        """Test that only notifications past their trigger are delivered."""
        current = {"now": NOW}
        fired = []
        center = LocalNotificationCenter(on_trigger=fired.append, clock=lambda: current["now"])
        due = center.schedule(NOW + timedelta(minutes=5), NotificationContent("T", "due"))
        center.schedule(NOW + timedelta(hours=5), NotificationContent("T", "later"))

        current["now"] = NOW + timedelta(minutes=10)
        delivered = center.check_due()

        assert [n.id for n in delivered] == [due]
        assert [n.id for n in fired] == [due]
        assert center.get(due).status is NotificationStatus.DELIVERED
        assert center.get(due).delivered_at == current["now"]
        assert len(center.list_pending()) == 1

    def test_cancel_after_delivery_is_noop(self) -> None:
        """Test that delivered notifications stay delivered."""
        center = LocalNotificationCenter(clock=lambda: NOW)
        handle = center.schedule(NOW - timedelta(minutes=1), NotificationContent("T", "B"))
        center.check_due()

        center.cancel(handle)

        assert center.get(handle).status is NotificationStatus.DELIVERED

    def test_trigger_callback_errors_are_logged(self) -> None:
        """Test that a failing callback does not stop delivery."""

        def broken(notification) -> None:
            raise RuntimeError("callback bug")

        center = LocalNotificationCenter(on_trigger=broken, clock=lambda: NOW)
        center.schedule(NOW - timedelta(minutes=1), NotificationContent("T", "B"))

        assert len(center.check_due()) == 1


class TestPersistence:
    """Tests for JSON persistence."""

    @pytest.fixture
    def path(self, tmp_path: Path) -> Path:
        """Location of the notifications file."""
        return tmp_path / "notifications.json"

    def test_saved_and_reloaded(self, path: Path) -> None:
        """Test that pending notifications survive a restart."""
        center = LocalNotificationCenter(path, clock=lambda: NOW)
        handle = center.schedule(
            NOW + timedelta(days=1),
            NotificationContent("Recall People", "Tomorrow: Bob dinner", {"event_id": "e1"}),
        )

        data = json.loads(path.read_text())
        assert data["version"] == 1
        assert data["notifications"][0]["id"] == handle

        reloaded = LocalNotificationCenter(path, clock=lambda: NOW)
        notification = reloaded.get(handle)
        assert notification is not None
        assert notification.trigger == NOW + timedelta(days=1)
        assert notification.content.data == {"event_id": "e1"}
        assert notification.status is NotificationStatus.PENDING

    def test_corrupt_file_starts_empty(self, path: Path) -> None:
        """Test that an unreadable file is logged and ignored."""
        path.write_text("{not json")

        center = LocalNotificationCenter(path)

        assert center.list_pending() == []

    def test_invalid_entries_skipped(self, path: Path) -> None:
        """Test that a bad entry does not block the others."""
        good = {
            "id": "n1",
            "trigger": NOW.isoformat(),
            "title": "T",
            "body": "B",
            "data": {},
            "status": "pending",
            "delivered_at": None,
            "created_at": NOW.isoformat(),
        }
        path.write_text(json.dumps({"version": 1, "notifications": [good, {"id": "n2"}]}))

        center = LocalNotificationCenter(path)

        assert center.get("n1") is not None
        assert center.get("n2") is None


class TestRetention:
    """Tests for dropping finished notifications."""

    def test_finished_notifications_dropped(self, tmp_path: Path) -> None:
        """Test that old delivered and cancelled notifications leave the file."""
        path = tmp_path / "notifications.json"
        current = {"now": NOW}
        center = LocalNotificationCenter(
            path, clock=lambda: current["now"], retention=timedelta(days=1)
        )
        delivered = center.schedule(NOW - timedelta(minutes=1), NotificationContent("T", "old"))
        cancelled = center.schedule(NOW + timedelta(days=5), NotificationContent("T", "gone"))
        pending = center.schedule(NOW + timedelta(days=5), NotificationContent("T", "next"))
        center.check_due()
        center.cancel(cancelled)

        assert center.get(delivered).status is NotificationStatus.DELIVERED
        assert center.get(cancelled).cancelled_at == NOW

        current["now"] = NOW + timedelta(days=2)
        center.schedule(NOW + timedelta(days=6), NotificationContent("T", "later"))

        assert center.get(delivered) is None
        assert center.get(cancelled) is None
        assert center.get(pending) is not None
        ids = [n["id"] for n in json.loads(path.read_text())["notifications"]]
        assert delivered not in ids
        assert cancelled not in ids

    def test_expired_entries_dropped_on_load(self, tmp_path: Path) -> None:
        """Test that a reload skips notifications finished long ago."""
        path = tmp_path / "notifications.json"
        center = LocalNotificationCenter(path, clock=lambda: NOW)
        handle = center.schedule(NOW + timedelta(hours=1), NotificationContent("T", "B"))
        center.cancel(handle)

        reloaded = LocalNotificationCenter(path, clock=lambda: NOW + timedelta(days=30))

        assert reloaded.get(handle) is None
