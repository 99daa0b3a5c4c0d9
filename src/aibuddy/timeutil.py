"""Time helpers shared by the store, engine and scheduler."""

from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]

LOCAL_FORMAT = "%Y-%m-%d %H:%M"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as local time."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


def parse_local_datetime(text: str) -> datetime | None:
    """Parse ``YYYY-MM-DD HH:MM`` in local time, or return None."""
    try:
        return datetime.strptime(text.strip(), LOCAL_FORMAT).astimezone()
    except ValueError:
        return None


def parse_iso(text: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed)."""
    if not text:
        return None
    try:
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_aware(value)


def format_clock(value: datetime) -> str:
    """Short local wall-clock rendering, e.g. ``9:05 PM``."""
    return value.astimezone().strftime("%I:%M %p").lstrip("0")


def format_local(value: datetime) -> str:
    return value.astimezone().strftime(LOCAL_FORMAT)


def minutes_until(target: datetime, now: datetime) -> int:
    return max(0, int((target - now) / timedelta(minutes=1)))


def format_datetime(value: datetime) -> str:
    """Abbreviated local date and time, e.g. ``Jul 20, 10:00 AM``."""
    return value.astimezone().strftime("%b %d, %I:%M %p")
