"""Tests for LocalNotifier."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from aibuddy.notifications import LocalNotifier

NOW = datetime(2025, 7, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def on_alert() -> MagicMock:
    return MagicMock()


@pytest.fixture
def notifier(on_alert: MagicMock) -> LocalNotifier:
    return LocalNotifier(on_alert=on_alert, clock=lambda: NOW)


class TestLocalNotifier:
    @pytest.mark.asyncio
    async def test_fires_after_delay(self, notifier, on_alert):
        notifier.schedule("reminder_r1", "Reminder", "Stretch", delay=0.01)
        assert [n.id for n in notifier.pending()] == ["reminder_r1"]

        await asyncio.sleep(0.05)

        on_alert.assert_called_once()
        fired = on_alert.call_args.args[0]
        assert fired.title == "Reminder"
        assert fired.body == "Stretch"
        assert notifier.pending() == []

    @pytest.mark.asyncio
    async def test_fire_at_in_past_fires_immediately(self, notifier, on_alert):
        notifier.schedule("x", "T", "B", fire_at=NOW - timedelta(minutes=1))
        await asyncio.sleep(0.01)
        on_alert.assert_called_once()

    @pytest.mark.asyncio
    async def test_fire_at_recorded_from_delay(self, notifier):
        notifier.schedule("event_e1", "Upcoming Event", "Standup starts in 5 minutes", delay=900)

        assert notifier.pending()[0].fire_at == NOW + timedelta(seconds=900)
        notifier.cancel_all()

    @pytest.mark.asyncio
    async def test_same_id_replaces(self, notifier, on_alert):
        notifier.schedule("email_m1", "New Email", "first", delay=0.01)
        notifier.schedule("email_m1", "New Email", "second", delay=0.01)

        await asyncio.sleep(0.05)

        on_alert.assert_called_once()
        assert on_alert.call_args.args[0].body == "second"

    @pytest.mark.asyncio
    async def test_cancel(self, notifier, on_alert):
        notifier.schedule("a", "T", "B", delay=0.01)
        notifier.schedule("b", "T", "B", delay=0.01)
        notifier.cancel("a")
        notifier.cancel("missing")

        await asyncio.sleep(0.05)

        assert [c.args[0].id for c in on_alert.call_args_list] == ["b"]

    @pytest.mark.asyncio
    async def test_cancel_all(self, notifier, on_alert):
        notifier.schedule("a", "T", "B", delay=0.01)
        notifier.schedule("b", "T", "B", delay=0.01)
        notifier.cancel_all()

        await asyncio.sleep(0.05)
        on_alert.assert_not_called()

    @pytest.mark.asyncio
    async def test_callback_error_is_contained(self, on_alert):
        on_alert.side_effect = RuntimeError("display gone")
        notifier = LocalNotifier(on_alert=on_alert)

        notifier.schedule("a", "T", "B", delay=0)
        await asyncio.sleep(0.01)

        on_alert.assert_called_once()
        assert notifier.pending() == []
