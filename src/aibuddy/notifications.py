"""In-process scheduling of local alerts."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from .clients.base import ScheduledNotification
from .timeutil import Clock, utc_now

logger = logging.getLogger(__name__)

AlertCallback = Callable[[ScheduledNotification], None]


class LocalNotifier:
    """NotificationScheduler that fires alerts with ``loop.call_later``.

    Scheduling an id that is already pending replaces the earlier alert.
    """

    def __init__(self, on_alert: AlertCallback | None = None, clock: Clock = utc_now) -> None:
        self._on_alert = on_alert
        self._clock = clock
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._pending: dict[str, ScheduledNotification] = {}

    def schedule(
        self,
        id: str,
        title: str,
        body: str,
        fire_at: datetime | None = None,
        delay: float | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Schedule an alert at ``fire_at`` or after ``delay`` seconds (immediately if neither)."""
        now = self._clock()
        if delay is None:
            delay = (fire_at - now).total_seconds() if fire_at is not None else 0.0
        delay = max(0.0, delay)

        self.cancel(id)
        notification = ScheduledNotification(
            id=id,
            title=title,
            body=body,
            fire_at=fire_at or now + timedelta(seconds=delay),
            metadata=metadata or {},
        )
        loop = asyncio.get_running_loop()
        self._pending[id] = notification
        self._handles[id] = loop.call_later(delay, self._fire, id)

    def cancel(self, id: str) -> None:
        handle = self._handles.pop(id, None)
        if handle is not None:
            handle.cancel()
        self._pending.pop(id, None)

    def cancel_all(self) -> None:
        for id in list(self._handles):
            self.cancel(id)

    def pending(self) -> list[ScheduledNotification]:
        return list(self._pending.values())

    def _fire(self, id: str) -> None:
        self._handles.pop(id, None)
        notification = self._pending.pop(id, None)
        if notification is None or self._on_alert is None:
            return
        try:
            self._on_alert(notification)
        except Exception as e:
            logger.error(f"Alert callback failed for {id}: {e}")
