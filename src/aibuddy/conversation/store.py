"""Durable per-buddy conversation logs and proactive bookkeeping."""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Iterable

from ..timeutil import Clock, parse_iso, utc_now
from .models import Fingerprint, Message, ProactiveDomain, ProactiveUpdateRecord, Role

logger = logging.getLogger(__name__)

FINGERPRINT_LIMITS: dict[ProactiveDomain, int] = {
    ProactiveDomain.NEWS: 50,
    ProactiveDomain.SATELLITE: 50,
    ProactiveDomain.EMAIL: 100,
    ProactiveDomain.CALENDAR: 100,
}
TIMED_FINGERPRINT_TTL = timedelta(hours=24)
PROCESSED_EMAIL_LIMIT = 1000


@dataclass
class StoreConfig:
    """Configuration for the conversation store."""

    data_dir: Path | None = None

    def __post_init__(self) -> None:
        if self.data_dir is None:
            self.data_dir = Path.home() / ".aibuddy"


class ConversationStore:
    """Per-buddy message logs plus the state the proactive pollers need.

    The in-memory copy is authoritative. Every mutation is written through
    to JSON files under ``data_dir``; write failures are logged and never
    reach the caller. Typing placeholders live only in memory.
    """

    def __init__(self, config: StoreConfig | None = None, clock: Clock = utc_now) -> None:
        self.config = config or StoreConfig()
        self._clock = clock
        self._logs: dict[str, list[Message]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

        assert self.config.data_dir is not None
        self._conversations_dir.mkdir(parents=True, exist_ok=True)
        self._state = self._load_state()

    @property
    def _conversations_dir(self) -> Path:
        assert self.config.data_dir is not None
        return self.config.data_dir / "conversations"

    @property
    def _state_file(self) -> Path:
        assert self.config.data_dir is not None
        return self.config.data_dir / "state.json"

    def _log_file(self, agent_id: str) -> Path:
        return self._conversations_dir / f"{agent_id}.json"

    # -- persistence --------------------------------------------------------

    def _load_state(self) -> dict[str, Any]:
        state: dict[str, Any] = {}
        if self._state_file.exists():
            try:
                with open(self._state_file, "r", encoding="utf-8") as f:
                    state = json.load(f)
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Could not read store state, starting fresh: {e}")
                state = {}
        state.setdefault("proactive", {})
        state.setdefault("trigger_times", {})
        state.setdefault("email", {"processed": [], "watermark": None})
        return state

    def _save_state(self) -> None:
        try:
            with open(self._state_file, "w", encoding="utf-8") as f:
                json.dump(self._state, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to persist store state: {e}")

    def _load_log(self, agent_id: str) -> list[Message]:
        path = self._log_file(agent_id)
        if not path.exists():
            return []

        try:
            with open(path, "r", encoding="utf-8") as f:
                return [Message.from_dict(item) for item in json.load(f)]
        except (json.JSONDecodeError, KeyError, ValueError, OSError) as e:
            logger.warning(f"Could not read conversation for {agent_id}: {e}")
            return []

    def _save_log(self, agent_id: str) -> None:
        messages = [m.to_dict() for m in self._get_log(agent_id) if not m.is_placeholder]
        try:
            with open(self._log_file(agent_id), "w", encoding="utf-8") as f:
                json.dump(messages, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to persist conversation for {agent_id}: {e}")

    def _get_log(self, agent_id: str) -> list[Message]:
        if agent_id not in self._logs:
            self._logs[agent_id] = self._load_log(agent_id)
        return self._logs[agent_id]

    def get_lock(self, agent_id: str) -> asyncio.Lock:
        """Get the lock serializing mutations of one buddy's state."""
        if agent_id not in self._locks:
            self._locks[agent_id] = asyncio.Lock()
        return self._locks[agent_id]

    # -- conversation log ---------------------------------------------------

    async def append(self, agent_id: str, message: Message) -> None:
        """Append a message, replacing any pending typing placeholder."""
        async with self.get_lock(agent_id):
            log = self._get_log(agent_id)
            had_placeholder = any(m.is_placeholder for m in log)
            log[:] = [m for m in log if not m.is_placeholder]
            log.append(message)
            if not message.is_placeholder or had_placeholder:
                self._save_log(agent_id)

    async def remove_placeholder(self, agent_id: str) -> bool:
        """Drop the typing placeholder, if any. Returns whether one was removed."""
        async with self.get_lock(agent_id):
            log = self._get_log(agent_id)
            kept = [m for m in log if not m.is_placeholder]
            removed = len(kept) != len(log)
            log[:] = kept
            return removed

    def get_history(self, agent_id: str) -> list[Message]:
        """Full log, oldest first."""
        return list(self._get_log(agent_id))

    def last_agent_message(self, agent_id: str) -> Message | None:
        """Most recent non-placeholder message from the buddy."""
        for message in reversed(self._get_log(agent_id)):
            if message.role == Role.AGENT and not message.is_placeholder:
                return message
        return None

    async def clear(self, agent_id: str) -> None:
        async with self.get_lock(agent_id):
            self._logs[agent_id] = []
            self._save_log(agent_id)

    # -- proactive records --------------------------------------------------

    def get_proactive_record(self, domain: ProactiveDomain, agent_id: str) -> ProactiveUpdateRecord:
        data = self._state["proactive"].get(domain.value, {}).get(agent_id)
        if data is None:
            return ProactiveUpdateRecord()
        return ProactiveUpdateRecord.from_dict(data)

    async def update_proactive_record(
        self,
        domain: ProactiveDomain,
        agent_id: str,
        checked_at: datetime | None = None,
        new_fingerprints: Iterable[Fingerprint] = (),
    ) -> ProactiveUpdateRecord:
        """Merge new fingerprints into the record and optionally move ``last_check``.

        Timed fingerprints older than 24 hours are dropped and the set is
        capped per domain, oldest entries first.
        """
        async with self.get_lock(agent_id):
            record = self.get_proactive_record(domain, agent_id)
            if checked_at is not None:
                record.last_check = checked_at

            seen = {(fp.key.lower(), fp.at) for fp in record.fingerprints}
            for fp in new_fingerprints:
                if not fp.key:
                    continue
                ident = (fp.key.lower(), fp.at)
                if ident not in seen:
                    record.fingerprints.append(fp)
                    seen.add(ident)

            cutoff = self._clock() - TIMED_FINGERPRINT_TTL
            record.fingerprints = [
                fp for fp in record.fingerprints if fp.at is None or fp.at > cutoff
            ]
            limit = FINGERPRINT_LIMITS[domain]
            if len(record.fingerprints) > limit:
                record.fingerprints = record.fingerprints[-limit:]

            self._state["proactive"].setdefault(domain.value, {})[agent_id] = record.to_dict()
            self._save_state()
            return record

    # -- screen trigger times -----------------------------------------------

    def get_last_trigger_time(self, agent_id: str) -> datetime | None:
        return parse_iso(self._state["trigger_times"].get(agent_id))

    def set_last_trigger_time(self, agent_id: str, when: datetime) -> None:
        self._state["trigger_times"][agent_id] = when.isoformat()
        self._save_state()

    # -- email bookkeeping --------------------------------------------------

    def has_processed_email(self, email_id: str) -> bool:
        return email_id in self._state["email"]["processed"]

    def mark_email_processed(self, email_id: str) -> None:
        processed: list[str] = self._state["email"]["processed"]
        if email_id in processed:
            return
        processed.append(email_id)
        if len(processed) > PROCESSED_EMAIL_LIMIT:
            del processed[: len(processed) - PROCESSED_EMAIL_LIMIT]
        self._save_state()

    def get_email_watermark(self) -> str | None:
        return self._state["email"].get("watermark")

    def set_email_watermark(self, email_id: str) -> None:
        self._state["email"]["watermark"] = email_id
        self._save_state()
