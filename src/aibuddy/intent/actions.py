"""Typed actions and the parser for the ``ACTION:TYPE[:payload]`` protocol."""

from dataclasses import dataclass
from enum import Enum

ACTION_PREFIX = "ACTION"
CALENDAR_FIELD_SEPARATOR = "|"


class ActionType(str, Enum):
    FETCH_NEWS = "fetch_news"
    FETCH_SATELLITE_FLYOVERS = "fetch_satellite_flyovers"
    GENERAL_CHAT = "general_chat"
    GENERAL_SPACE_INQUIRY = "general_space_inquiry"
    NOT_SPACE_RELATED = "not_space_related"
    CREATE_REMINDER = "create_reminder"
    ADD_CALENDAR_EVENT = "add_calendar_event"
    CHECK_EMAIL = "check_email"
    NONE = "none"
    ERROR = "error"


@dataclass(frozen=True)
class CalendarEventRequest:
    """Raw fields of an ADD_CALENDAR_EVENT payload.

    Times stay as text; the handler parses ``start``/``end`` and applies
    the one-hour default when ``end`` is empty.
    """

    title: str
    start: str
    end: str = ""
    location: str = ""
    description: str = ""


@dataclass(frozen=True)
class Action:
    type: ActionType
    query: str | None = None
    text: str | None = None
    event: CalendarEventRequest | None = None
    message: str | None = None

    @classmethod
    def fetch_news(cls, query: str | None = None) -> "Action":
        return cls(ActionType.FETCH_NEWS, query=query or None)

    @classmethod
    def error(cls, message: str) -> "Action":
        return cls(ActionType.ERROR, message=message)

    @classmethod
    def simple(cls, action_type: ActionType) -> "Action":
        return cls(action_type)


# Wire type (underscores removed, upper-cased) -> action type
_SIMPLE_TYPES: dict[str, ActionType] = {
    "GENERALCHAT": ActionType.GENERAL_CHAT,
    "GENERALSPACEINQUIRY": ActionType.GENERAL_SPACE_INQUIRY,
    "FETCHSATELLITEFLYOVERS": ActionType.FETCH_SATELLITE_FLYOVERS,
    "NOTMYAREA": ActionType.NOT_SPACE_RELATED,
    "NOTSPACERELATED": ActionType.NOT_SPACE_RELATED,
    "CHECKEMAIL": ActionType.CHECK_EMAIL,
    "NONE": ActionType.NONE,
}


def _first_line(raw: str) -> str:
    for line in raw.splitlines():
        line = line.strip().strip("`").strip()
        if not line or line.lower() in ("json", "text", "plaintext"):
            continue
        return line
    return ""


def parse_calendar_payload(payload: str) -> CalendarEventRequest | None:
    """Split ``title|start|end|location|description``; None if title or start is missing."""
    fields = [part.strip() for part in payload.split(CALENDAR_FIELD_SEPARATOR, 4)]
    if len(fields) < 2 or not fields[0] or not fields[1]:
        return None
    fields += [""] * (5 - len(fields))
    return CalendarEventRequest(*fields)


def decode_action(raw: str) -> Action | None:
    """Decode one LLM reply.

    Returns:
        The decoded action, an ERROR action for an unknown type, or None
        when the reply is not in ``ACTION:`` form at all.
    """
    line = _first_line(raw or "")
    parts = line.split(":", 2)
    if len(parts) < 2 or parts[0].strip().upper() != ACTION_PREFIX:
        return None

    wire_type = parts[1].strip().replace("_", "").upper()
    payload = parts[2].strip() if len(parts) > 2 else ""

    if wire_type in _SIMPLE_TYPES:
        return Action.simple(_SIMPLE_TYPES[wire_type])
    if wire_type == "FETCHSPACENEWS":
        return Action.fetch_news(None)
    if wire_type == "FETCHSPECIFICNEWS":
        return Action.fetch_news(payload)
    if wire_type == "CREATEREMINDER":
        return Action(ActionType.CREATE_REMINDER, text=payload)
    if wire_type == "ADDCALENDAREVENT":
        # event is None when title or start is missing; the handler explains the format
        return Action(ActionType.ADD_CALENDAR_EVENT, text=payload, event=parse_calendar_payload(payload))
    return Action.error(f"Unrecognized action: {parts[1].strip()}")


class ActionRouter:
    """Parses LLM replies, substituting a default for free-form text."""

    def __init__(self, default: ActionType = ActionType.GENERAL_CHAT) -> None:
        self.default = default

    def parse(self, raw: str) -> Action:
        action = decode_action(raw)
        if action is None:
            return Action.simple(self.default)
        return action
