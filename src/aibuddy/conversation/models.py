"""Data models for conversation logs and proactive bookkeeping."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ..timeutil import parse_iso, utc_now

TYPING_TEXT = "..."


class Role(str, Enum):
    USER = "user"
    AGENT = "agent"


class ProactiveDomain(str, Enum):
    """Sources whose notifications are fingerprinted."""

    NEWS = "news"
    SATELLITE = "satellite"
    EMAIL = "email"
    CALENDAR = "calendar"


@dataclass
class Message:
    """A single entry in a buddy's conversation log.

    Attributes:
        role: Who produced the message.
        text: Canonical text, used for duplicate comparison and LLM context.
        display_text: What the UI renders. Defaults to ``text``.
        is_placeholder: Typing indicator. Never persisted and replaced by
            the next real message.
    """

    role: Role
    text: str
    timestamp: datetime = field(default_factory=utc_now)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    display_text: str = ""
    is_placeholder: bool = False

    def __post_init__(self) -> None:
        if not self.display_text:
            self.display_text = self.text

    @classmethod
    def placeholder(cls, timestamp: datetime | None = None) -> "Message":
        """Create the typing indicator message."""
        return cls(
            role=Role.AGENT,
            text=TYPING_TEXT,
            timestamp=timestamp or utc_now(),
            is_placeholder=True,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "text": self.text,
            "display_text": self.display_text,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        return cls(
            id=data["id"],
            role=Role(data["role"]),
            text=data["text"],
            display_text=data.get("display_text", ""),
            timestamp=parse_iso(data["timestamp"]) or utc_now(),
        )


@dataclass(frozen=True)
class Fingerprint:
    """Identity of a notified item.

    ``at`` is set for items that happen at a point in time (satellite
    passes, calendar events) so two items with similar names are only
    considered the same when they are also close in time.
    """

    key: str
    at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "at": self.at.isoformat() if self.at else None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Fingerprint":
        return cls(key=data["key"], at=parse_iso(data.get("at")))


@dataclass
class ProactiveUpdateRecord:
    """Last successful poll and recently notified items for one (domain, buddy)."""

    last_check: datetime | None = None
    fingerprints: list[Fingerprint] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_check": self.last_check.isoformat() if self.last_check else None,
            "fingerprints": [fp.to_dict() for fp in self.fingerprints],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProactiveUpdateRecord":
        return cls(
            last_check=parse_iso(data.get("last_check")),
            fingerprints=[Fingerprint.from_dict(fp) for fp in data.get("fingerprints", [])],
        )
