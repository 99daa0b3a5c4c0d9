"""Structured event log for buddy activity.

One JSON object per line: posted and suppressed messages, intent
decisions, trigger runs. The file is rotated into numbered backups
(``events.1.jsonl`` is the newest) once it grows past a size limit.
"""

import json
import logging
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

DEFAULT_LOG_DIR = Path.home() / ".aibuddy" / "logs"

logger = logging.getLogger(__name__)


@dataclass
class LogEntry:
    """A single event record."""

    timestamp: str
    event: str
    agent_id: str | None = None
    domain: str | None = None
    action: str | None = None
    text: str | None = None
    reason: str | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Only the fields that carry a value."""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or value == {}:
                continue
            data[f.name] = value
        return data


class JSONLLogger:
    """Appends buddy events to a JSONL file."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "events.jsonl",
        max_size_mb: float = 10.0,
        backups: int = 5,
    ) -> None:
        self.log_dir = Path(log_dir) if log_dir is not None else DEFAULT_LOG_DIR
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_bytes = int(max_size_mb * 1024 * 1024)
        self.backups = backups

    @property
    def log_path(self) -> Path:
        return self.log_dir / self.filename

    def _backup_path(self, index: int) -> Path:
        stem, suffix = self.log_path.stem, self.log_path.suffix
        return self.log_dir / f"{stem}.{index}{suffix}"

    def _rotate(self) -> None:
        path = self.log_path
        if not path.exists() or path.stat().st_size < self.max_bytes:
            return
        # Shift events.N-1 -> events.N, dropping the oldest
        for index in range(self.backups, 1, -1):
            older = self._backup_path(index - 1)
            if older.exists():
                older.replace(self._backup_path(index))
        path.replace(self._backup_path(1))

    def _append(self, entry: LogEntry) -> None:
        line = json.dumps(entry.to_dict(), default=str, ensure_ascii=False)
        # The event log is best effort; a failed write must not reach the caller
        try:
            self._rotate()
            with self.log_path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.warning(f"Could not write {entry.event} event to {self.log_path}: {e}")

    def log(
        self,
        event: str,
        *,
        agent_id: str | None = None,
        domain: str | None = None,
        action: str | None = None,
        text: str | None = None,
        reason: str | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Record an event. Unknown keyword arguments land under ``extra``."""
        self._append(
            LogEntry(
                timestamp=datetime.now(timezone.utc).isoformat(),
                event=event,
                agent_id=agent_id,
                domain=domain,
                action=action,
                text=text,
                reason=reason,
                error=error,
                extra=dict(extra),
            )
        )

    def log_posted(self, agent_id: str, text: str, *, channel: str = "chat") -> None:
        self.log("message_posted", agent_id=agent_id, text=text, channel=channel)

    def log_suppressed(self, agent_id: str, text: str, reason: str) -> None:
        """A candidate message that the duplicate guard dropped."""
        self.log("message_suppressed", agent_id=agent_id, text=text, reason=reason)

    def log_intent(self, agent_id: str, action: str, *, raw: str | None = None) -> None:
        self.log("intent_classified", agent_id=agent_id, action=action, raw=raw)

    def log_fallback(self, agent_id: str, error: str) -> None:
        """Classification failed and a default reply was used."""
        self.log("intent_fallback", agent_id=agent_id, error=error)

    def log_trigger(
        self,
        trigger: str,
        *,
        agent_id: str | None = None,
        domain: str | None = None,
        emitted: int = 0,
    ) -> None:
        self.log("trigger_fired", agent_id=agent_id, domain=domain, trigger=trigger, emitted=emitted)

    def log_trigger_error(
        self,
        trigger: str,
        error: str,
        *,
        agent_id: str | None = None,
        **extra: Any,
    ) -> None:
        self.log("trigger_error", agent_id=agent_id, error=error, trigger=trigger, **extra)


_default: JSONLLogger | None = None


def get_logger() -> JSONLLogger:
    """Process-wide event log, created on first use."""
    global _default
    if _default is None:
        _default = JSONLLogger()
    return _default


def configure_logger(log_dir: str | Path | None = None, max_size_mb: float = 10.0) -> JSONLLogger:
    """Replace the process-wide event log."""
    global _default
    _default = JSONLLogger(log_dir=log_dir, max_size_mb=max_size_mb)
    return _default
