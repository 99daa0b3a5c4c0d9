"""Local stand-ins for device services: location and screen text."""

import asyncio
from pathlib import Path

from .base import Coordinates, LocationError


class StaticLocationProvider:
    """Location fixed by configuration."""

    def __init__(self, latitude: float | None = None, longitude: float | None = None) -> None:
        self._latitude = latitude
        self._longitude = longitude

    async def get_current_location(self) -> Coordinates:
        if self._latitude is None or self._longitude is None:
            raise LocationError("Location not available for satellite data.")
        return Coordinates(self._latitude, self._longitude)


class FileScreenTextProvider:
    """Reads screen text that an external OCR process keeps writing to a file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    async def capture(self) -> str:
        if not self.path.exists():
            return ""
        return await asyncio.to_thread(self.path.read_text, encoding="utf-8", errors="replace")
