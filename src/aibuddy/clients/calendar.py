"""Google Calendar events."""

from datetime import datetime, timezone
from typing import Any

from ..timeutil import parse_iso
from .base import MALFORMED_PAYLOAD_ERRORS, CalendarEvent, FetchError
from .google import GoogleAPIClient

CALENDAR_EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/primary/events"


def _rfc3339(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class GoogleCalendarClient(GoogleAPIClient):
    """CalendarClient on the user's primary Google calendar."""

    async def add_event(
        self,
        title: str,
        start: datetime,
        end: datetime,
        location: str | None = None,
        description: str | None = None,
    ) -> str:
        body: dict[str, Any] = {
            "summary": title,
            "start": {"dateTime": _rfc3339(start)},
            "end": {"dateTime": _rfc3339(end)},
        }
        if location:
            body["location"] = location
        if description:
            body["description"] = description

        async with self._client() as client:
            data = await self._request(client, "POST", CALENDAR_EVENTS_URL, json=body)
        if "id" not in data:
            raise FetchError("Calendar did not return an event id")
        return data["id"]

    async def list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        """Single (expanded) events starting in ``[start, end)``, ordered by start."""
        params = {
            "timeMin": _rfc3339(start),
            "timeMax": _rfc3339(end),
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        async with self._client() as client:
            data = await self._request(client, "GET", CALENDAR_EVENTS_URL, params=params)

        try:
            events = [self._to_event(item) for item in data.get("items") or []]
        except MALFORMED_PAYLOAD_ERRORS as e:
            raise FetchError(f"Malformed calendar response: {e!r}") from e
        return [event for event in events if event is not None]

    def _to_event(self, item: dict[str, Any]) -> CalendarEvent | None:
        start = self._parse_time(item.get("start"))
        if start is None:
            return None
        return CalendarEvent(
            id=item["id"],
            summary=item.get("summary", "(untitled event)"),
            start=start,
            end=self._parse_time(item.get("end")),
            location=item.get("location", ""),
            description=item.get("description", ""),
        )

    def _parse_time(self, value: dict[str, str] | None) -> datetime | None:
        if not value:
            return None
        # All-day events only carry a date
        return parse_iso(value.get("dateTime") or value.get("date"))
