"""Local reminders and email text extraction."""

from .extraction import (
    MeetingInfo,
    ReminderInfo,
    extract_location_from_text,
    extract_meeting_info,
    extract_reminder_info,
    extract_time_from_text,
)
from .service import ReminderService
from .store import Reminder, ReminderStore

__all__ = [
    "MeetingInfo",
    "Reminder",
    "ReminderInfo",
    "ReminderService",
    "ReminderStore",
    "extract_location_from_text",
    "extract_meeting_info",
    "extract_reminder_info",
    "extract_time_from_text",
]
