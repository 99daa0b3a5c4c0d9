"""Visible satellite passes from N2YO."""

from datetime import datetime, timezone

import httpx

from .base import MALFORMED_PAYLOAD_ERRORS, FetchError, SatellitePass, azimuth_to_compass

N2YO_BASE_URL = "https://api.n2yo.com/rest/v1/satellite"


class N2YOClient:
    """SatelliteClient backed by the N2YO ``visualpasses`` endpoint."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        min_visibility: int = 60,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._min_visibility = min_visibility
        self._transport = transport

    async def get_passes(
        self,
        latitude: float,
        longitude: float,
        satellite_id: int = 25544,
        min_elevation: float = 10,
        lookahead_days: int = 3,
    ) -> list[SatellitePass]:
        """Fetch upcoming visible passes, earliest first.

        Raises:
            FetchError: On network failure or an API error payload.
        """
        # observer altitude is fixed at sea level; elevation is filtered locally
        url = (
            f"{N2YO_BASE_URL}/visualpasses/{satellite_id}/{latitude}/{longitude}/0/"
            f"{lookahead_days}/{self._min_visibility}/"
        )
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(url, params={"apiKey": self._api_key})
                data = response.json()
        except httpx.RequestError as e:
            raise FetchError(f"Satellite request failed: {e}") from e
        except ValueError as e:
            raise FetchError(f"Invalid satellite response: {e}") from e

        if isinstance(data, dict) and data.get("error"):
            raise FetchError(f"N2YO API Error: {data['error']}")

        try:
            name = (data.get("info") or {}).get("satname", f"Satellite {satellite_id}")
            passes = [
                self._to_pass(name, raw)
                for raw in data.get("passes") or []
                if raw.get("maxEl", 0) >= min_elevation
            ]
        except (*MALFORMED_PAYLOAD_ERRORS, OverflowError, OSError) as e:
            raise FetchError(f"Malformed satellite response: {e!r}") from e
        return sorted(passes, key=lambda p: p.start_time)

    def _to_pass(self, name: str, raw: dict) -> SatellitePass:
        return SatellitePass(
            satellite_name=name,
            start_time=datetime.fromtimestamp(raw["startUTC"], tz=timezone.utc),
            end_time=datetime.fromtimestamp(raw["endUTC"], tz=timezone.utc),
            max_elevation=float(raw.get("maxEl", 0)),
            start_compass=raw.get("startAzCompass") or azimuth_to_compass(raw.get("startAz", 0)),
            end_compass=raw.get("endAzCompass") or azimuth_to_compass(raw.get("endAz", 0)),
            magnitude=raw.get("mag"),
            duration_seconds=int(raw.get("duration", 0)),
        )
