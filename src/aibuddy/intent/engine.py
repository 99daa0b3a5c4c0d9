"""Turns a user message into exactly one buddy reply."""

import logging
import sqlite3
from dataclasses import dataclass
from datetime import timedelta

from ..buddies import Buddy, BuddyKind, get_buddy
from ..clients.base import (
    CalendarClient,
    Coordinates,
    EmailClient,
    FetchError,
    LLMClient,
    LLMError,
    LocationProvider,
    NewsClient,
    NewsItem,
    SatelliteClient,
    SatellitePass,
)
from ..conversation import Fingerprint, Message, Messenger, ProactiveDomain, Role
from ..logging import JSONLLogger, get_logger
from ..reminders import ReminderService
from ..timeutil import Clock, format_clock, parse_local_datetime, utc_now
from .actions import Action, ActionRouter, ActionType
from .prompt import (
    EMAIL_QUERY_SYSTEM_PROMPT,
    build_chat_prompt,
    build_email_prompt,
    build_intent_prompt,
    build_news_summary_prompt,
    build_satellite_summary_prompt,
    describe_pass,
)

logger = logging.getLogger(__name__)

CLASSIFY_FAILED_SPACE = (
    "My cosmic communication lines are a bit fuzzy! I couldn't quite grasp your last "
    "message, spacefarer. Try asking about space news or satellites!"
)
UNCLEAR_SPACE = (
    "My cosmic communication lines are a bit fuzzy, spacefarer! Could you try asking that "
    "again, focusing on space news, satellites, or general cosmic wonders?"
)
NOT_SPACE_RELATED = (
    "My sensors are tuned to the cosmos! That's a bit outside my orbit. Ask me something "
    "stellar related to space news, satellite sightings, or general space facts!"
)
SPACE_REFERRAL = (
    "That sounds like a question for Cosmic Scout! Switch over to Cosmic Scout for space "
    "news and satellite sightings."
)
CHAT_FAILED = "My cosmic communication lines are a bit jammed! Can you repeat that, spacefarer?"

NEWS_ERROR = "Apologies, spacefarer! I encountered an issue fetching the news: {error}"
NO_NEWS = "Hmm, I couldn't find any recent space news related to that. Perhaps try a different query?"
NEWS_FALLBACK = "I found some news, but my cosmic translator is a bit fuzzy! Here are some headlines:\n\n"

SATELLITE_ERROR = "My cosmic sensors are a bit hazy right now. Couldn't fetch satellite data: {error}"
NO_PASSES = (
    "No major satellite flyovers detected for your location in the near future. "
    "Keep your eyes on the stars, though!"
)
PASSES_FALLBACK = "Fantastic news! I've spotted some celestial visitors for you:\n{passes}\nLook up at these times, spacefarer!"

CALENDAR_FORMAT_HELP = (
    "I need at least a title and a start time to create a calendar event. "
    "Format: TITLE|YYYY-MM-DD HH:MM|..."
)
CALENDAR_BAD_START = (
    "I couldn't understand the start time for the event: {start}. "
    "Please use 'YYYY-MM-DD HH:MM' format."
)
CALENDAR_ADDED = "I've successfully added '{title}' to your Google Calendar!"
CALENDAR_FAILED = "Failed to add event to Google Calendar: {error}"
CALENDAR_UNAVAILABLE = "calendar is not connected"

REMINDER_CREATED = "I've successfully created a reminder for: '{subject}'. I'll remind you at {time}."
REMINDER_FAILED = "Failed to create reminder: {error}"
REMINDER_UNAVAILABLE = "reminders are not available"

EMAIL_SUMMARY = "📬 {summary}"
NO_EMAIL = "📭 No recent emails found."
EMAIL_NO_CONTENT = "I found a recent email, but couldn't get its full content. Subject: {subject}"
EMAIL_SUMMARY_FAILED = (
    "I fetched your recent email (Subject: {subject}), but I couldn't generate a summary from it "
    "right now. It might be empty or contain unsupported content."
)
EMAIL_ERROR = "I couldn't check your email right now: {error}"
EMAIL_UNAVAILABLE = "mail is not connected"


@dataclass
class EngineConfig:
    """Configuration for the intent engine."""

    history_turns: int = 10
    summary_items: int = 5
    fallback_items: int = 3
    summary_passes: int = 3
    satellite_id: int = 25544  # ISS
    min_elevation: float = 10
    lookahead_days: int = 3


class IntentEngine:
    """Classifies a user turn with the LLM and runs the matching handler.

    Every handled turn publishes one buddy message through the messenger,
    which applies duplicate suppression. Failures of the LLM or a data
    source become canned persona replies.
    """

    def __init__(
        self,
        llm: LLMClient,
        messenger: Messenger,
        news: NewsClient | None = None,
        satellites: SatelliteClient | None = None,
        location: LocationProvider | None = None,
        calendar: CalendarClient | None = None,
        reminders: ReminderService | None = None,
        email: EmailClient | None = None,
        config: EngineConfig | None = None,
        event_logger: JSONLLogger | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.llm = llm
        self.messenger = messenger
        self.news = news
        self.satellites = satellites
        self.location = location
        self.calendar = calendar
        self.reminders = reminders
        self.email = email
        self.config = config or EngineConfig()
        self._events = event_logger
        self._clock = clock

    @property
    def events(self) -> JSONLLogger:
        return self._events or get_logger()

    def router_for(self, buddy: Buddy) -> ActionRouter:
        default = ActionType.GENERAL_SPACE_INQUIRY if buddy.is_space else ActionType.GENERAL_CHAT
        return ActionRouter(default)

    def _history(self, agent_id: str) -> list[dict[str, str]]:
        """Recent turns as LLM chat messages, excluding the message being handled."""
        messages = [m for m in self.messenger.store.get_history(agent_id) if not m.is_placeholder]
        recent = messages[:-1][-self.config.history_turns:]
        return [
            {"role": "user" if m.role == Role.USER else "assistant", "content": m.text}
            for m in recent
        ]

    async def _reply(self, buddy: Buddy, text: str, *, prefixed: bool = True) -> Message | None:
        if prefixed:
            text = f"{buddy.name}: {text}"
        return await self.messenger.post(buddy.id, text)

    async def handle_user_message(
        self,
        agent_id: str,
        text: str,
        location: Coordinates | None = None,
    ) -> Message | None:
        """Handle one user turn.

        Args:
            agent_id: The buddy being talked to.
            text: What the user typed.
            location: Observer location for satellite requests, if known.

        Returns:
            The published reply, or None if it was suppressed as a duplicate.
        """
        buddy = get_buddy(agent_id)
        await self.messenger.record_user(buddy.id, text)
        await self.messenger.post_typing(buddy.id)
        history = self._history(buddy.id)

        try:
            raw = await self.llm.complete(
                build_intent_prompt(buddy, text, self._clock()),
                history=history,
            )
        except LLMError as e:
            logger.warning(f"Intent classification failed for {buddy.id}: {e}")
            self.events.log_fallback(buddy.id, str(e))
            if buddy.is_space:
                return await self._reply(buddy, CLASSIFY_FAILED_SPACE)
            return await self._general_chat(buddy, text, history)

        action = self.router_for(buddy).parse(raw)
        self.events.log_intent(buddy.id, action.type.value, raw=raw)
        return await self.dispatch(buddy, action, text, history, location)

    async def dispatch(
        self,
        buddy: Buddy,
        action: Action,
        text: str,
        history: list[dict[str, str]] | None = None,
        location: Coordinates | None = None,
    ) -> Message | None:
        # Reminder and calendar requests win for every buddy
        if action.type == ActionType.CREATE_REMINDER:
            return await self._create_reminder(buddy, action.text or text)
        if action.type == ActionType.ADD_CALENDAR_EVENT:
            return await self._add_calendar_event(buddy, action)
        if action.type == ActionType.CHECK_EMAIL and buddy.kind == BuddyKind.ASSISTANT:
            return await self._check_email(buddy)

        if not buddy.is_space:
            if action.type in (ActionType.FETCH_NEWS, ActionType.FETCH_SATELLITE_FLYOVERS):
                return await self._reply(buddy, SPACE_REFERRAL)
            return await self._general_chat(buddy, text, history)

        if action.type == ActionType.FETCH_NEWS:
            return await self._fetch_news(buddy, action.query)
        if action.type == ActionType.FETCH_SATELLITE_FLYOVERS:
            return await self._fetch_satellites(buddy, location)
        if action.type in (ActionType.GENERAL_SPACE_INQUIRY, ActionType.GENERAL_CHAT):
            return await self._general_chat(buddy, text, history)
        if action.type == ActionType.NOT_SPACE_RELATED:
            return await self._reply(buddy, NOT_SPACE_RELATED)
        if action.type == ActionType.ERROR:
            logger.warning(f"Unusable intent for {buddy.id}: {action.message}")
        return await self._reply(buddy, UNCLEAR_SPACE)

    async def _general_chat(
        self,
        buddy: Buddy,
        text: str,
        history: list[dict[str, str]] | None = None,
    ) -> Message | None:
        try:
            response = await self.llm.complete(build_chat_prompt(buddy, text), history=history)
        except LLMError as e:
            logger.warning(f"Chat reply failed for {buddy.id}: {e}")
            return await self._reply(buddy, CHAT_FAILED)
        return await self._reply(buddy, response.strip())

    async def _fetch_news(self, buddy: Buddy, query: str | None) -> Message | None:
        if self.news is None:
            return await self._reply(buddy, NEWS_ERROR.format(error="news service is not configured"))
        try:
            items = await self.news.search(query=query)
        except FetchError as e:
            return await self._reply(buddy, NEWS_ERROR.format(error=e))

        if not items:
            return await self._reply(buddy, NO_NEWS)

        return await self._summarize_news(buddy, items)

    async def _summarize_news(self, buddy: Buddy, items: list[NewsItem]) -> Message | None:
        prompt = build_news_summary_prompt(items[: self.config.summary_items])
        try:
            summary = await self.llm.complete(prompt)
        except LLMError as e:
            logger.warning(f"News summary failed: {e}")
            headlines = "\n".join(item.title for item in items[: self.config.fallback_items])
            return await self._reply(buddy, NEWS_FALLBACK + headlines)
        return await self._reply(buddy, summary.strip())

    async def _fetch_satellites(self, buddy: Buddy, location: Coordinates | None) -> Message | None:
        try:
            if location is None:
                if self.location is None:
                    raise FetchError("location is unavailable")
                location = await self.location.get_current_location()
            if self.satellites is None:
                raise FetchError("satellite service is not configured")
            passes = await self.satellites.get_passes(
                location.latitude,
                location.longitude,
                satellite_id=self.config.satellite_id,
                min_elevation=self.config.min_elevation,
                lookahead_days=self.config.lookahead_days,
            )
        except FetchError as e:
            return await self._reply(buddy, SATELLITE_ERROR.format(error=e))

        if not passes:
            return await self._reply(buddy, NO_PASSES)

        shown = sorted(passes, key=lambda p: p.start_time)[: self.config.summary_passes]
        # Proactive polling must not announce these again
        await self.messenger.store.update_proactive_record(
            ProactiveDomain.SATELLITE,
            buddy.id,
            new_fingerprints=[Fingerprint(p.satellite_name, p.start_time) for p in shown],
        )
        return await self._summarize_passes(buddy, shown)

    async def _summarize_passes(self, buddy: Buddy, passes: list[SatellitePass]) -> Message | None:
        try:
            summary = await self.llm.complete(build_satellite_summary_prompt(passes))
        except LLMError as e:
            logger.warning(f"Satellite summary failed: {e}")
            description = "\n".join(describe_pass(p) for p in passes)
            return await self._reply(buddy, PASSES_FALLBACK.format(passes=description))
        return await self._reply(buddy, summary.strip())

    async def _create_reminder(self, buddy: Buddy, text: str) -> Message | None:
        if self.reminders is None:
            return await self._reply(buddy, REMINDER_FAILED.format(error=REMINDER_UNAVAILABLE), prefixed=False)
        try:
            reminder = self.reminders.create_from_text(text)
        except sqlite3.Error as e:
            logger.error(f"Saving reminder failed: {e}")
            return await self._reply(buddy, REMINDER_FAILED.format(error=e), prefixed=False)
        message = REMINDER_CREATED.format(subject=reminder.subject, time=format_clock(reminder.time))
        return await self._reply(buddy, message, prefixed=False)

    async def _add_calendar_event(self, buddy: Buddy, action: Action) -> Message | None:
        event = action.event
        if event is None:
            return await self._reply(buddy, CALENDAR_FORMAT_HELP, prefixed=False)

        start = parse_local_datetime(event.start)
        if start is None:
            return await self._reply(buddy, CALENDAR_BAD_START.format(start=event.start), prefixed=False)
        end = parse_local_datetime(event.end) if event.end else None
        if end is None:
            end = start + timedelta(hours=1)

        if self.calendar is None:
            return await self._reply(buddy, CALENDAR_FAILED.format(error=CALENDAR_UNAVAILABLE), prefixed=False)
        try:
            await self.calendar.add_event(
                event.title,
                start,
                end,
                location=event.location or None,
                description=event.description or None,
            )
        except FetchError as e:
            return await self._reply(buddy, CALENDAR_FAILED.format(error=e), prefixed=False)
        return await self._reply(buddy, CALENDAR_ADDED.format(title=event.title), prefixed=False)

    async def _check_email(self, buddy: Buddy) -> Message | None:
        """Summarize the newest inbox message on request."""
        if self.email is None:
            return await self._reply(buddy, EMAIL_ERROR.format(error=EMAIL_UNAVAILABLE), prefixed=False)
        try:
            emails = await self.email.list_recent(1)
        except FetchError as e:
            logger.warning(f"Email check failed for {buddy.id}: {e}")
            return await self._reply(buddy, EMAIL_ERROR.format(error=e), prefixed=False)

        if not emails:
            return await self._reply(buddy, NO_EMAIL, prefixed=False)
        latest = emails[0]
        if not latest.body.strip():
            return await self._reply(buddy, EMAIL_NO_CONTENT.format(subject=latest.subject), prefixed=False)

        # The email trigger must not announce this message again
        await self.messenger.store.update_proactive_record(
            ProactiveDomain.EMAIL,
            buddy.id,
            new_fingerprints=[Fingerprint(f"{latest.sender}: {latest.subject}")],
        )
        try:
            summary = await self.llm.complete(
                build_email_prompt(latest.sender, latest.subject, latest.body),
                system=EMAIL_QUERY_SYSTEM_PROMPT,
            )
        except LLMError as e:
            logger.warning(f"Email summary failed: {e}")
            return await self._reply(buddy, EMAIL_SUMMARY_FAILED.format(subject=latest.subject), prefixed=False)
        return await self._reply(buddy, EMAIL_SUMMARY.format(summary=summary.strip()), prefixed=False)
