"""Proactive scheduling."""

from .config import SchedulerConfig
from .periodic import PeriodicTask
from .scheduler import ProactiveScheduler, build_scheduler
from .triggers import (
    CalendarTrigger,
    EmailTrigger,
    ReminderTrigger,
    SatellitePassTrigger,
    ScreenReactionTrigger,
    SpaceNewsTrigger,
    Trigger,
    parse_screen_reply,
)

__all__ = [
    "CalendarTrigger",
    "EmailTrigger",
    "PeriodicTask",
    "ProactiveScheduler",
    "ReminderTrigger",
    "SatellitePassTrigger",
    "SchedulerConfig",
    "ScreenReactionTrigger",
    "SpaceNewsTrigger",
    "Trigger",
    "build_scheduler",
    "parse_screen_reply",
]
