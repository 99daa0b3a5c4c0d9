"""Reminder creation on top of the store."""

from datetime import datetime

from ..timeutil import Clock, utc_now
from .extraction import DEFAULT_LEAD, ReminderInfo, extract_time_from_text
from .store import Reminder, ReminderStore


class ReminderService:
    def __init__(self, store: ReminderStore, clock: Clock = utc_now) -> None:
        self.store = store
        self._clock = clock

    def create_from_text(self, text: str) -> Reminder:
        """Create a reminder from a free-form request like "call John at 2:00 pm".

        The trigger time is taken from the text, or one hour from now.
        """
        now = self._clock().astimezone()
        when = extract_time_from_text(text, now) or now + DEFAULT_LEAD
        return self.store.save_reminder(Reminder(subject=text.strip(), time=when))

    def create_from_email(self, email_id: str, info: ReminderInfo) -> Reminder:
        # Keyed by email id so reprocessing the same email updates in place
        reminder = Reminder(id=email_id, subject=info.subject, body=info.body, time=info.time)
        return self.store.save_reminder(reminder)

    def due(self, now: datetime | None = None) -> list[Reminder]:
        return self.store.fetch_due(now or self._clock())
