"""Space news from NewsAPI."""

import logging
from datetime import datetime, timezone

import httpx

from ..timeutil import parse_iso
from .base import MALFORMED_PAYLOAD_ERRORS, FetchError, NewsItem

logger = logging.getLogger(__name__)

NEWS_API_URL = "https://newsapi.org/v2/everything"
DEFAULT_QUERY = "space OR astronomy OR NASA OR SpaceX OR rocket launch OR cosmic OR universe"

SPACE_KEYWORDS = [
    "space", "astronomy", "nasa", "spacex", "rocket", "launch", "cosmic", "universe",
    "galaxy", "planet", "star", "mission", "telescope", "iss", "moon", "mars", "jupiter",
    "satellite", "orbital", "celestial", "black hole", "exoplanet",
]


def is_space_related(title: str, description: str) -> bool:
    text = f"{title} {description}".lower()
    return any(keyword in text for keyword in SPACE_KEYWORDS)


class NewsAPIClient:
    """NewsClient backed by newsapi.org ``/v2/everything``."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        page_size: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._page_size = page_size
        self._transport = transport

    async def search(self, query: str | None = None, since: datetime | None = None) -> list[NewsItem]:
        """Search recent articles, keeping only space-related ones.

        Raises:
            FetchError: On network failure or an API error response.
        """
        params: dict[str, str | int] = {
            "q": query or DEFAULT_QUERY,
            "language": "en",
            "sortBy": "publishedAt",
            "pageSize": self._page_size,
            "apiKey": self._api_key,
        }
        if since is not None:
            params["from"] = since.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(NEWS_API_URL, params=params)
                data = response.json()
        except httpx.RequestError as e:
            raise FetchError(f"News request failed: {e}") from e
        except ValueError as e:
            raise FetchError(f"Invalid news response: {e}") from e

        if not isinstance(data, dict):
            raise FetchError(f"Malformed news response: expected an object, got {type(data).__name__}")
        if data.get("status") != "ok":
            raise FetchError(f"News API Error: {data.get('message', 'unknown response status')}")

        try:
            items = [self._to_item(article) for article in data.get("articles") or []]
        except MALFORMED_PAYLOAD_ERRORS as e:
            raise FetchError(f"Malformed news response: {e!r}") from e
        return [item for item in items if item is not None]

    def _to_item(self, article: dict) -> NewsItem | None:
        title = article.get("title") or ""
        description = article.get("description") or ""
        published = parse_iso(article.get("publishedAt"))
        if not title or not article.get("url") or published is None:
            return None
        if not is_space_related(title, description):
            return None
        return NewsItem(
            title=title,
            description=description,
            url=article["url"],
            published_at=published,
            source_name=(article.get("source") or {}).get("name", ""),
        )
