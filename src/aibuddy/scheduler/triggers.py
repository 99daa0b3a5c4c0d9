"""Proactive triggers.

Each trigger polls one source, decides what is new, and publishes at most
what the user should see through the messenger. Triggers never raise on
an expected source failure; they log it and wait for the next tick.
"""

import asyncio
import logging
from datetime import timedelta

from ..buddies import Buddy
from ..clients.base import (
    CalendarClient,
    EmailClient,
    EmailMessage,
    FetchError,
    LLMClient,
    LLMError,
    LocationProvider,
    NewsClient,
    NotificationScheduler,
    SatelliteClient,
    ScreenTextProvider,
)
from ..conversation import Fingerprint, Messenger, ProactiveDomain
from ..intent.actions import ActionType, decode_action
from ..intent.prompt import EMAIL_SYSTEM_PROMPT, build_email_prompt, build_screen_reaction_prompt
from ..logging import JSONLLogger, get_logger
from ..reminders import ReminderService, ReminderStore, extract_meeting_info, extract_reminder_info
from ..timeutil import Clock, format_clock, format_datetime, minutes_until, utc_now
from .config import SchedulerConfig

logger = logging.getLogger(__name__)

SCREEN_LLM_FAILED = "{name}: My circuits are a bit jammed right now. Try again later!"


class Trigger:
    """Base class: ``run`` executes one poll and records what it emitted."""

    name = "trigger"

    def __init__(
        self,
        agent_id: str,
        messenger: Messenger,
        config: SchedulerConfig | None = None,
        event_logger: JSONLLogger | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.agent_id = agent_id
        self.messenger = messenger
        self.config = config or SchedulerConfig()
        self._events = event_logger
        self._clock = clock

    @property
    def events(self) -> JSONLLogger:
        return self._events or get_logger()

    @property
    def store(self):
        return self.messenger.store

    async def run(self) -> int:
        """Poll once. Returns the number of messages published."""
        emitted = await self.poll()
        if emitted:
            self.events.log_trigger(self.name, agent_id=self.agent_id, emitted=emitted)
        return emitted

    async def poll(self) -> int:
        raise NotImplementedError

    def _source_failed(self, error: Exception) -> int:
        logger.warning(f"{self.name} poll failed: {error}")
        self.events.log_trigger_error(self.name, str(error), agent_id=self.agent_id)
        return 0


def parse_screen_reply(buddy_id: str, raw: str) -> str | None:
    """Interpret a screen reaction reply of the form ``<buddy_id>: message``.

    Returns:
        The message text, an empty string when the buddy declined, or None
        when the reply is unusable.
    """
    action = decode_action(raw)
    if action is not None:
        return "" if action.type == ActionType.NONE else None

    prefix, sep, message = raw.strip().partition(":")
    if not sep or prefix.strip().lower() != buddy_id.lower():
        return None
    message = message.strip()
    if not message:
        return None
    declined = message.upper().replace(" ", "")
    if declined in ("NONE", "ACTION:NONE"):
        return ""
    return message


class ScreenReactionTrigger(Trigger):
    """Lets a buddy comment on what is on screen."""

    name = "screen"

    def __init__(
        self,
        buddy: Buddy,
        screen: ScreenTextProvider,
        llm: LLMClient,
        messenger: Messenger,
        **kwargs,
    ) -> None:
        super().__init__(buddy.id, messenger, **kwargs)
        self.buddy = buddy
        self.screen = screen
        self.llm = llm

    async def poll(self) -> int:
        now = self._clock()
        last = self.store.get_last_trigger_time(self.buddy.id)
        if last is not None and (now - last).total_seconds() < self.buddy.min_interval:
            return 0
        if self.messenger.guard.is_screen_throttled(self.buddy.id):
            return 0

        screen_text = (await self.screen.capture()).strip()
        if not screen_text:
            return 0

        # Claim the slot before the slow LLM call so overlapping ticks back off
        self.store.set_last_trigger_time(self.buddy.id, now)

        try:
            raw = await self.llm.complete(build_screen_reaction_prompt(self.buddy, screen_text))
        except LLMError as e:
            logger.warning(f"Screen reaction failed for {self.buddy.id}: {e}")
            posted = await self.messenger.post(self.buddy.id, SCREEN_LLM_FAILED.format(name=self.buddy.name))
            return 1 if posted else 0

        reply = parse_screen_reply(self.buddy.id, raw)
        if reply is None:
            logger.warning(f"Unusable screen reaction from {self.buddy.id}: {raw!r}")
            return 0
        if not reply:
            return 0

        posted = await self.messenger.post(self.buddy.id, f"{self.buddy.name}: {reply}")
        return 1 if posted else 0


class SpaceNewsTrigger(Trigger):
    """Announces the single newest unseen space headline."""

    name = "space_news"

    def __init__(self, agent_id: str, news: NewsClient, messenger: Messenger, **kwargs) -> None:
        super().__init__(agent_id, messenger, **kwargs)
        self.news = news

    async def poll(self) -> int:
        now = self._clock()
        floor = now - timedelta(seconds=self.config.news_lookback)
        record = self.store.get_proactive_record(ProactiveDomain.NEWS, self.agent_id)
        since = floor
        if record.last_check is not None and floor < record.last_check <= now:
            since = record.last_check

        try:
            items = await self.news.search(since=since)
        except FetchError as e:
            return self._source_failed(e)

        guard = self.messenger.guard
        fresh = [
            item
            for item in items
            if item.published_at is not None
            and item.published_at > since
            and not guard.is_known_fingerprint(ProactiveDomain.NEWS, self.agent_id, Fingerprint(item.title))
        ]
        fresh.sort(key=lambda item: item.published_at, reverse=True)

        emitted = 0
        fingerprints = []
        if fresh:
            latest = fresh[0]
            fingerprint = Fingerprint(latest.title)
            posted = await self.messenger.post_proactive(
                self.agent_id,
                f"Cosmic Scout: New cosmic discovery! {latest.title}. Explore more!",
                domain=ProactiveDomain.NEWS,
                fingerprint=fingerprint,
            )
            fingerprints.append(fingerprint)
            emitted = 1 if posted else 0

        await self.store.update_proactive_record(
            ProactiveDomain.NEWS, self.agent_id, checked_at=now, new_fingerprints=fingerprints
        )
        return emitted


class SatellitePassTrigger(Trigger):
    """Announces the next unseen visible pass within the horizon."""

    name = "satellite"

    def __init__(
        self,
        agent_id: str,
        satellites: SatelliteClient,
        location: LocationProvider,
        messenger: Messenger,
        **kwargs,
    ) -> None:
        super().__init__(agent_id, messenger, **kwargs)
        self.satellites = satellites
        self.location = location

    async def poll(self) -> int:
        now = self._clock()
        try:
            coords = await self.location.get_current_location()
            passes = await self.satellites.get_passes(
                coords.latitude,
                coords.longitude,
                satellite_id=self.config.satellite_id,
                min_elevation=self.config.min_elevation,
                lookahead_days=self.config.lookahead_days,
            )
        except FetchError as e:
            return self._source_failed(e)

        earliest = now - timedelta(seconds=self.config.pass_grace)
        latest = now + timedelta(seconds=self.config.pass_horizon)
        guard = self.messenger.guard
        candidates = sorted(
            (
                p
                for p in passes
                if earliest < p.start_time < latest
                and not guard.is_known_fingerprint(
                    ProactiveDomain.SATELLITE,
                    self.agent_id,
                    Fingerprint(p.satellite_name, p.start_time),
                )
            ),
            key=lambda p: p.start_time,
        )

        emitted = 0
        fingerprints = []
        if candidates:
            next_pass = candidates[0]
            fingerprint = Fingerprint(next_pass.satellite_name, next_pass.start_time)
            posted = await self.messenger.post_proactive(
                self.agent_id,
                f"Cosmic Scout: Look up! The {next_pass.satellite_name} will be visible "
                f"starting around {format_clock(next_pass.start_time)}!",
                domain=ProactiveDomain.SATELLITE,
                fingerprint=fingerprint,
            )
            fingerprints.append(fingerprint)
            emitted = 1 if posted else 0

        await self.store.update_proactive_record(
            ProactiveDomain.SATELLITE, self.agent_id, checked_at=now, new_fingerprints=fingerprints
        )
        return emitted


class EmailTrigger(Trigger):
    """Summarizes new inbox mail and acts on meetings and reminders in it.

    New mail is everything above the watermark that was not processed
    before. The batch is handled concurrently; the watermark only moves
    when every email in it succeeded, so failures are retried next tick.
    """

    name = "email"

    def __init__(
        self,
        agent_id: str,
        email: EmailClient,
        llm: LLMClient,
        messenger: Messenger,
        calendar: CalendarClient | None = None,
        reminders: ReminderService | None = None,
        notifier: NotificationScheduler | None = None,
        **kwargs,
    ) -> None:
        super().__init__(agent_id, messenger, **kwargs)
        self.email = email
        self.llm = llm
        self.calendar = calendar
        self.reminders = reminders
        self.notifier = notifier

    def _new_emails(self, emails: list[EmailMessage]) -> list[EmailMessage]:
        watermark = self.store.get_email_watermark()
        fresh = []
        for email in emails:
            if email.id == watermark:
                break
            if not self.store.has_processed_email(email.id):
                fresh.append(email)
        return fresh

    async def poll(self) -> int:
        try:
            emails = await self.email.list_recent(self.config.email_batch_size)
        except FetchError as e:
            return self._source_failed(e)
        if not emails:
            return 0

        fresh = self._new_emails(emails)
        results = await asyncio.gather(*(self.process(e) for e in fresh), return_exceptions=True)

        emitted = 0
        failed = False
        for email, result in zip(fresh, results):
            if isinstance(result, BaseException):
                failed = True
                logger.error(f"Processing email {email.id} failed: {result}")
                self.events.log_trigger_error(self.name, str(result), agent_id=self.agent_id, email_id=email.id)
            elif result:
                emitted += 1

        if not failed and self.store.get_email_watermark() != emails[0].id:
            self.store.set_email_watermark(emails[0].id)
        return emitted

    async def process(self, email: EmailMessage) -> bool:
        """Handle one email. Returns whether its summary was published."""
        summary = (
            await self.llm.complete(
                build_email_prompt(email.sender, email.subject, email.body),
                system=EMAIL_SYSTEM_PROMPT,
            )
        ).strip()

        now = self._clock().astimezone()
        meeting = extract_meeting_info(email.subject, email.body, now)
        if meeting is not None and self.calendar is not None:
            try:
                await self.calendar.add_event(
                    meeting.title,
                    meeting.start,
                    meeting.start + timedelta(hours=1),
                    location=meeting.location,
                    description=meeting.description,
                )
                note = f"📅 Added meeting '{meeting.title}' to your calendar for {format_datetime(meeting.start)}"
            except FetchError as e:
                note = f"❌ Couldn't add meeting '{meeting.title}' to calendar: {e}"
            await self.messenger.post_proactive(self.agent_id, note)

        info = extract_reminder_info(email.subject, email.body, now)
        if info is not None and self.reminders is not None:
            reminder = self.reminders.create_from_email(email.id, info)
            await self.messenger.post_proactive(
                self.agent_id,
                f"⏰ Set reminder: '{reminder.subject}' for {format_datetime(reminder.time)}",
            )

        fingerprint = Fingerprint(f"{email.sender}: {email.subject}")
        posted = await self.messenger.post_proactive(
            self.agent_id,
            f"📨 New Email from {email.sender}: {summary}",
            domain=ProactiveDomain.EMAIL,
            fingerprint=fingerprint,
        )
        if posted is not None and self.notifier is not None:
            self.notifier.schedule(f"email_{email.id}", f"New Email from {email.sender}", summary[:100])

        self.store.mark_email_processed(email.id)
        await self.store.update_proactive_record(
            ProactiveDomain.EMAIL, self.agent_id, new_fingerprints=[fingerprint]
        )
        self.events.log("email_processed", agent_id=self.agent_id, email_id=email.id, posted=posted is not None)
        return posted is not None


class CalendarTrigger(Trigger):
    """Announces events starting within the window, once each."""

    name = "calendar"

    def __init__(
        self,
        agent_id: str,
        calendar: CalendarClient,
        messenger: Messenger,
        notifier: NotificationScheduler | None = None,
        **kwargs,
    ) -> None:
        super().__init__(agent_id, messenger, **kwargs)
        self.calendar = calendar
        self.notifier = notifier

    async def poll(self) -> int:
        now = self._clock()
        try:
            upcoming = await self.calendar.list_events(now, now + timedelta(seconds=self.config.calendar_window))
        except FetchError as e:
            return self._source_failed(e)

        guard = self.messenger.guard
        lead = self.config.calendar_alert_lead
        emitted = 0
        fingerprints = []
        for event in upcoming:
            if event.start < now:
                continue
            fingerprint = Fingerprint(event.summary, event.start)
            if guard.is_known_fingerprint(ProactiveDomain.CALENDAR, self.agent_id, fingerprint):
                continue

            posted = await self.messenger.post_proactive(
                self.agent_id,
                f"📅 Upcoming Event: {event.summary} in {minutes_until(event.start, now)} minutes",
                domain=ProactiveDomain.CALENDAR,
                fingerprint=fingerprint,
            )
            fingerprints.append(fingerprint)
            if posted is not None:
                emitted += 1

            remaining = (event.start - now).total_seconds()
            if self.notifier is not None and remaining > lead:
                self.notifier.schedule(
                    f"event_{event.id}",
                    "Upcoming Event",
                    f"{event.summary} starts in {int(lead // 60)} minutes",
                    delay=remaining - lead,
                )

        await self.store.update_proactive_record(
            ProactiveDomain.CALENDAR, self.agent_id, checked_at=now, new_fingerprints=fingerprints
        )
        return emitted


class ReminderTrigger(Trigger):
    """Fires due reminders exactly once and prunes old ones."""

    name = "reminders"

    def __init__(
        self,
        agent_id: str,
        reminders: ReminderStore,
        messenger: Messenger,
        notifier: NotificationScheduler | None = None,
        **kwargs,
    ) -> None:
        super().__init__(agent_id, messenger, **kwargs)
        self.reminders = reminders
        self.notifier = notifier

    async def poll(self) -> int:
        now = self._clock()
        emitted = 0
        for reminder in self.reminders.fetch_due(now):
            # Flag first so a slow post can never fire it twice
            if not self.reminders.mark_notified(reminder.id):
                continue
            posted = await self.messenger.post_proactive(self.agent_id, f"⏰ Reminder: {reminder.subject}")
            if self.notifier is not None:
                self.notifier.schedule(f"reminder_{reminder.id}", "Reminder", reminder.subject)
            self.events.log("reminder_fired", agent_id=self.agent_id, reminder_id=reminder.id)
            if posted is not None:
                emitted += 1

        self.reminders.cleanup_old(self.config.reminder_retention_days, now)
        return emitted
