"""Shared plumbing for Google REST APIs (Gmail, Calendar).

OAuth itself happens outside this package; clients only need something
that hands out a current access token.
"""

from typing import Any, Protocol

import httpx

from .base import FetchError


class TokenProvider(Protocol):
    async def get_token(self) -> str:
        ...


class StaticTokenProvider:
    """Serves a fixed access token, e.g. from ``GOOGLE_ACCESS_TOKEN``."""

    def __init__(self, token: str) -> None:
        self._token = token

    async def get_token(self) -> str:
        if not self._token:
            raise FetchError("Not signed in to Google")
        return self._token


class GoogleAPIClient:
    """Base class issuing authorized JSON requests."""

    def __init__(
        self,
        tokens: TokenProvider,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._tokens = tokens
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        token = await self._tokens.get_token()
        headers = {"Authorization": f"Bearer {token}"}
        try:
            response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.RequestError as e:
            raise FetchError(f"Google API request failed: {e}") from e

        if response.status_code == 401:
            raise FetchError("Google authorization expired")
        if response.status_code >= 400:
            raise FetchError(f"Google API error {response.status_code}: {response.text[:200]}")
        try:
            data = response.json()
        except ValueError as e:
            raise FetchError(f"Invalid Google API response: {e}") from e
        if not isinstance(data, dict):
            raise FetchError(f"Invalid Google API response: expected an object, got {type(data).__name__}")
        return data
