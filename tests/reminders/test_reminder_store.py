"""Tests for ReminderStore and ReminderService."""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from aibuddy.reminders import Reminder, ReminderInfo, ReminderService, ReminderStore

NOW = datetime(2025, 7, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_db():
    """Create a temporary database file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "reminders.db"


@pytest.fixture
def store(temp_db: Path):
    """Create an initialized store."""
    store = ReminderStore(temp_db)
    store.init_db()
    yield store
    store.close()


class TestReminderStore:
    def test_init_creates_db(self, temp_db: Path):
        store = ReminderStore(temp_db)
        store.init_db()
        assert temp_db.exists()
        store.close()

    def test_save_and_get(self, store: ReminderStore):
        reminder = store.save_reminder(Reminder(subject="Call John", time=NOW, body="re: contract"))

        loaded = store.get(reminder.id)
        assert loaded is not None
        assert loaded.subject == "Call John"
        assert loaded.body == "re: contract"
        assert loaded.time == NOW
        assert loaded.notified is False

    def test_save_same_id_updates(self, store: ReminderStore):
        store.save_reminder(Reminder(id="email-1", subject="Old", time=NOW))
        store.save_reminder(Reminder(id="email-1", subject="New", time=NOW + timedelta(hours=1)))

        assert len(store.fetch_all_active()) == 1
        assert store.get("email-1").subject == "New"

    def test_get_unknown(self, store: ReminderStore):
        assert store.get("missing") is None

    def test_delete(self, store: ReminderStore):
        store.save_reminder(Reminder(id="r1", subject="x", time=NOW))
        assert store.delete("r1") is True
        assert store.delete("r1") is False

    def test_mark_notified_only_once(self, store: ReminderStore):
        store.save_reminder(Reminder(id="r1", subject="x", time=NOW))

        assert store.mark_notified("r1") is True
        assert store.mark_notified("r1") is False
        assert store.get("r1").notified is True

    def test_fetch_due(self, store: ReminderStore):
        store.save_reminder(Reminder(id="past", subject="past", time=NOW - timedelta(minutes=1)))
        store.save_reminder(Reminder(id="now", subject="now", time=NOW))
        store.save_reminder(Reminder(id="later", subject="later", time=NOW + timedelta(minutes=1)))

        assert [r.id for r in store.fetch_due(NOW)] == ["past", "now"]

    def test_fetch_due_skips_notified(self, store: ReminderStore):
        store.save_reminder(Reminder(id="r1", subject="x", time=NOW - timedelta(minutes=5)))
        store.mark_notified("r1")
        assert store.fetch_due(NOW) == []

    def test_fetch_due_compares_across_timezones(self, store: ReminderStore):
        offset = timezone(timedelta(hours=-5))
        store.save_reminder(Reminder(id="r1", subject="x", time=datetime(2025, 7, 20, 6, 59, tzinfo=offset)))
        # 06:59 at -05:00 is 11:59 UTC
        assert [r.id for r in store.fetch_due(NOW)] == ["r1"]

    def test_fetch_upcoming(self, store: ReminderStore):
        store.save_reminder(Reminder(id="soon", subject="a", time=NOW + timedelta(minutes=10)))
        store.save_reminder(Reminder(id="far", subject="b", time=NOW + timedelta(hours=3)))

        assert [r.id for r in store.fetch_upcoming(30, NOW)] == ["soon"]

    def test_search(self, store: ReminderStore):
        store.save_reminder(Reminder(subject="Dentist", body="bring insurance card", time=NOW))
        store.save_reminder(Reminder(subject="Groceries", time=NOW))

        assert [r.subject for r in store.search("INSURANCE")] == ["Dentist"]

    def test_snooze(self, store: ReminderStore):
        store.save_reminder(Reminder(id="r1", subject="Stretch", time=NOW))

        snoozed = store.snooze("r1", 10, NOW)

        assert snoozed is not None
        assert snoozed.id == f"r1_snoozed_{int(NOW.timestamp())}"
        assert snoozed.subject == "⏰ Stretch"
        assert snoozed.time == NOW + timedelta(minutes=10)
        assert store.get("r1").notified is True
        assert store.snooze("missing", 10, NOW) is None

    def test_cleanup_old(self, store: ReminderStore):
        store.save_reminder(Reminder(id="old", subject="x", time=NOW - timedelta(days=40)))
        store.save_reminder(Reminder(id="old-active", subject="y", time=NOW - timedelta(days=40)))
        store.save_reminder(Reminder(id="recent", subject="z", time=NOW - timedelta(days=2)))
        store.mark_notified("old")
        store.mark_notified("recent")

        assert store.cleanup_old(30, NOW) == 1
        assert store.get("old") is None
        assert store.get("old-active") is not None
        assert store.get("recent") is not None

    def test_persists_across_instances(self, temp_db: Path):
        store = ReminderStore(temp_db)
        store.init_db()
        store.save_reminder(Reminder(id="r1", subject="kept", time=NOW))
        store.close()

        reopened = ReminderStore(temp_db)
        reopened.init_db()
        assert reopened.get("r1").subject == "kept"
        reopened.close()


class TestReminderService:
    def test_create_from_text_with_relative_time(self, store: ReminderStore):
        service = ReminderService(store, clock=lambda: NOW)
        reminder = service.create_from_text("  call John in 2 hours ")

        assert reminder.subject == "call John in 2 hours"
        assert reminder.time == NOW + timedelta(hours=2)
        assert store.get(reminder.id) is not None

    def test_create_from_text_defaults_to_one_hour(self, store: ReminderStore):
        service = ReminderService(store, clock=lambda: NOW)
        reminder = service.create_from_text("water the plants")
        assert reminder.time == NOW + timedelta(hours=1)

    def test_create_from_email_keyed_by_email_id(self, store: ReminderStore):
        service = ReminderService(store, clock=lambda: NOW)
        info = ReminderInfo(subject="Deadline", body="report due", time=NOW)

        service.create_from_email("msg-1", info)
        service.create_from_email("msg-1", info)

        assert [r.id for r in store.fetch_all_active()] == ["msg-1"]

    def test_due(self, store: ReminderStore):
        service = ReminderService(store, clock=lambda: NOW)
        store.save_reminder(Reminder(id="r1", subject="x", time=NOW - timedelta(seconds=1)))
        assert [r.id for r in service.due()] == ["r1"]
