"""Keyword and regex extraction of meetings and reminders from email text."""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta

REMINDER_KEYWORDS = [
    "remind me", "reminder", "don't forget", "remember to", "follow up",
    "deadline", "due date", "schedule", "appointment", "task",
]

MEETING_KEYWORDS = [
    "meeting", "zoom", "teams", "webex", "conference call", "interview",
    "appointment", "call", "session", "presentation", "demo",
]

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

CLOCK_PATTERN = re.compile(r"(\d{1,2}):(\d{2})\s*(am|pm)", re.IGNORECASE)
RELATIVE_PATTERN = re.compile(r"in (\d+) (minute|hour|day)s?", re.IGNORECASE)
DAY_PATTERN = re.compile(r"(tomorrow|next week|" + "|".join(WEEKDAYS) + r")", re.IGNORECASE)

LOCATION_PATTERNS = [
    re.compile(r"(?:\bat|\bin|@)\s+([^,\n]+)", re.IGNORECASE),
    re.compile(r"location[:\s]+([^,\n]+)", re.IGNORECASE),
    re.compile(r"room\s+(\w+)", re.IGNORECASE),
]

DEFAULT_LEAD = timedelta(hours=1)


@dataclass
class ReminderInfo:
    subject: str
    body: str
    time: datetime


@dataclass
class MeetingInfo:
    title: str
    description: str
    start: datetime
    location: str | None = None


def _next_weekday(name: str, now: datetime) -> datetime:
    days_ahead = (WEEKDAYS.index(name) - now.weekday()) % 7
    return now + timedelta(days=days_ahead or 7)


def extract_time_from_text(text: str, now: datetime) -> datetime | None:
    """Find the first time reference in ``text``.

    Clock times win over relative offsets, which win over day names.
    Clock times are taken on ``now``'s date. An offset too large to
    represent yields None.
    """
    match = CLOCK_PATTERN.search(text)
    if match:
        hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).lower()
        if meridiem == "pm" and hour != 12:
            hour += 12
        elif meridiem == "am" and hour == 12:
            hour = 0
        if hour < 24 and minute < 60:
            return now.replace(hour=hour, minute=minute, second=0, microsecond=0)

    match = RELATIVE_PATTERN.search(text)
    if match:
        amount, unit = int(match.group(1)), match.group(2).lower()
        try:
            return now + timedelta(**{f"{unit}s": amount})
        except OverflowError:
            # Past datetime.max; callers fall back to their default lead time
            return None

    match = DAY_PATTERN.search(text)
    if match:
        reference = match.group(1).lower()
        if reference == "tomorrow":
            return now + timedelta(days=1)
        if reference == "next week":
            return now + timedelta(weeks=1)
        return _next_weekday(reference, now)

    return None


def extract_location_from_text(text: str) -> str | None:
    for pattern in LOCATION_PATTERNS:
        match = pattern.search(text)
        if match:
            location = match.group(1).strip()
            if location:
                return location
    return None


def _contains_any(text: str, keywords: list[str]) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def extract_reminder_info(subject: str, body: str, now: datetime) -> ReminderInfo | None:
    """Reminder details if the email asks for one, else None."""
    content = f"{subject} {body}"
    if not _contains_any(content, REMINDER_KEYWORDS):
        return None
    when = extract_time_from_text(content, now) or now + DEFAULT_LEAD
    return ReminderInfo(subject=subject, body=body, time=when)


def extract_meeting_info(subject: str, body: str, now: datetime) -> MeetingInfo | None:
    """Meeting details if the email mentions one, else None."""
    content = f"{subject} {body}"
    if not _contains_any(content, MEETING_KEYWORDS):
        return None
    return MeetingInfo(
        title=subject,
        description=body,
        start=extract_time_from_text(content, now) or now + DEFAULT_LEAD,
        location=extract_location_from_text(content),
    )
