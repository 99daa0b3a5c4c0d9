"""Inbox access through the Gmail REST API."""

import asyncio
import base64
from typing import Any

import httpx

from .base import MALFORMED_PAYLOAD_ERRORS, EmailMessage, FetchError
from .google import GoogleAPIClient

GMAIL_MESSAGES_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages"


def _decode_body(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")


def extract_plain_text(payload: dict[str, Any]) -> str:
    """First ``text/plain`` body in a Gmail message payload tree."""
    if payload.get("mimeType", "").startswith("text/plain"):
        data = (payload.get("body") or {}).get("data")
        if data:
            return _decode_body(data)
    for part in payload.get("parts") or []:
        text = extract_plain_text(part)
        if text:
            return text
    return ""


class GmailClient(GoogleAPIClient):
    """EmailClient listing the newest inbox messages."""

    async def list_recent(self, max_results: int = 5) -> list[EmailMessage]:
        """Newest inbox messages first, with details fetched concurrently.

        Raises:
            FetchError: If the listing or any detail request fails.
        """
        async with self._client() as client:
            listing = await self._request(
                client,
                "GET",
                GMAIL_MESSAGES_URL,
                params={"maxResults": max_results, "labelIds": "INBOX"},
            )
            try:
                ids = [item["id"] for item in listing.get("messages") or []]
            except MALFORMED_PAYLOAD_ERRORS as e:
                raise FetchError(f"Malformed message listing: {e!r}") from e
            return list(await asyncio.gather(*(self._get_message(client, mid) for mid in ids)))

    async def _get_message(self, client: httpx.AsyncClient, message_id: str) -> EmailMessage:
        data = await self._request(
            client,
            "GET",
            f"{GMAIL_MESSAGES_URL}/{message_id}",
            params={"format": "full"},
        )
        try:
            payload = data.get("payload") or {}
            headers = {h["name"].lower(): h["value"] for h in payload.get("headers") or []}
            return EmailMessage(
                id=data.get("id", message_id),
                subject=headers.get("subject", "(no subject)"),
                sender=headers.get("from", "unknown sender"),
                date=headers.get("date", ""),
                body=extract_plain_text(payload) or data.get("snippet", ""),
            )
        except MALFORMED_PAYLOAD_ERRORS as e:
            raise FetchError(f"Malformed message {message_id}: {e!r}") from e
