"""Intent classification and routing."""

from .actions import Action, ActionRouter, ActionType, CalendarEventRequest, decode_action
from .engine import EngineConfig, IntentEngine

__all__ = [
    "Action",
    "ActionRouter",
    "ActionType",
    "CalendarEventRequest",
    "EngineConfig",
    "IntentEngine",
    "decode_action",
]
