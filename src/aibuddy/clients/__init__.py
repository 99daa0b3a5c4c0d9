"""External service clients and their interfaces."""

from .base import (
    CalendarEvent,
    ClientError,
    Coordinates,
    EmailMessage,
    FetchError,
    LLMError,
    LocationError,
    NewsItem,
    SatellitePass,
)
from .calendar import GoogleCalendarClient
from .gmail import GmailClient
from .google import StaticTokenProvider
from .llm import GroqLLMClient
from .local import FileScreenTextProvider, StaticLocationProvider
from .news import NewsAPIClient
from .satellite import N2YOClient

__all__ = [
    "CalendarEvent",
    "ClientError",
    "Coordinates",
    "EmailMessage",
    "FetchError",
    "FileScreenTextProvider",
    "GmailClient",
    "GoogleCalendarClient",
    "GroqLLMClient",
    "LLMError",
    "LocationError",
    "N2YOClient",
    "NewsAPIClient",
    "NewsItem",
    "SatellitePass",
    "StaticLocationProvider",
    "StaticTokenProvider",
]
