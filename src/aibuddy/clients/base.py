"""Interfaces and data types for external services.

Everything the buddies talk to (LLM, news, satellites, location, mail,
calendar, local notifications, the UI) sits behind one of these Protocols
so the engine and scheduler can be driven by fakes in tests.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..conversation.models import Message

COMPASS_POINTS = [
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
]


class ClientError(Exception):
    """Base class for external service failures."""


class LLMError(ClientError):
    """The LLM call failed or returned nothing usable."""


class FetchError(ClientError):
    """A data source (news, satellites, mail, calendar) failed."""


class LocationError(FetchError):
    """The current location is unavailable or access was denied."""


# Raised while reading an unexpected JSON shape; clients re-raise these as FetchError
MALFORMED_PAYLOAD_ERRORS = (KeyError, IndexError, TypeError, ValueError, AttributeError)


@dataclass
class NewsItem:
    title: str
    description: str = ""
    url: str = ""
    published_at: datetime | None = None
    source_name: str = ""


@dataclass
class SatellitePass:
    """A visible pass of a satellite over the observer."""

    satellite_name: str
    start_time: datetime
    end_time: datetime
    max_elevation: float
    start_compass: str = ""
    end_compass: str = ""
    magnitude: float | None = None
    duration_seconds: int = 0

    @property
    def direction(self) -> str:
        return f"From {self.start_compass} to {self.end_compass}"


@dataclass
class EmailMessage:
    id: str
    subject: str
    sender: str
    body: str = ""
    date: str = ""


@dataclass
class CalendarEvent:
    id: str
    summary: str
    start: datetime
    end: datetime | None = None
    location: str = ""
    description: str = ""


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass
class ScheduledNotification:
    id: str
    title: str
    body: str
    fire_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


def azimuth_to_compass(degrees: float) -> str:
    """Map an azimuth in degrees to a 16-point compass label."""
    index = int((degrees % 360) / 22.5 + 0.5) % 16
    return COMPASS_POINTS[index]


class LLMClient(Protocol):
    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        history: list[dict[str, str]] | None = None,
    ) -> str:
        """Return the completion text. Raises LLMError on failure."""
        ...


class NewsClient(Protocol):
    async def search(self, query: str | None = None, since: datetime | None = None) -> list[NewsItem]:
        """Return space-relevant articles, newest first. Raises FetchError."""
        ...


class SatelliteClient(Protocol):
    async def get_passes(
        self,
        latitude: float,
        longitude: float,
        satellite_id: int = 25544,
        min_elevation: float = 10,
        lookahead_days: int = 3,
    ) -> list[SatellitePass]:
        """Return upcoming visible passes. Raises FetchError."""
        ...


class LocationProvider(Protocol):
    async def get_current_location(self) -> Coordinates:
        """Raises LocationError when unavailable."""
        ...


class EmailClient(Protocol):
    async def list_recent(self, max_results: int = 5) -> list[EmailMessage]:
        """Newest first. Raises FetchError."""
        ...


class CalendarClient(Protocol):
    async def add_event(
        self,
        title: str,
        start: datetime,
        end: datetime,
        location: str | None = None,
        description: str | None = None,
    ) -> str:
        """Create an event and return its id. Raises FetchError."""
        ...

    async def list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        ...


class NotificationScheduler(Protocol):
    def schedule(
        self,
        id: str,
        title: str,
        body: str,
        fire_at: datetime | None = None,
        delay: float | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        ...

    def cancel(self, id: str) -> None:
        ...


class MessageSink(Protocol):
    async def deliver(self, agent_id: str, message: "Message") -> None:
        """Receives every message accepted into a conversation."""
        ...


class ScreenTextProvider(Protocol):
    async def capture(self) -> str:
        """Return the text currently visible on screen."""
        ...
