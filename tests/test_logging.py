"""Tests for JSONL event logging."""

import json
import tempfile
from pathlib import Path

import pytest

from aibuddy.logging import JSONLLogger, LogEntry, configure_logger, get_logger


@pytest.fixture
def temp_log_dir():
    """Create a temporary directory for logs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def logger(temp_log_dir: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=temp_log_dir)


def read_entries(logger: JSONLLogger) -> list[dict]:
    with open(logger.log_path) as f:
        return [json.loads(line) for line in f]


def test_log_entry_to_dict():
    """Test LogEntry excludes None values."""
    entry = LogEntry(timestamp="2025-07-20T00:00:00Z", event="test")
    data = entry.to_dict()

    assert "timestamp" in data
    assert "event" in data
    assert "agent_id" not in data  # None excluded
    assert "extra" not in data  # Empty dict excluded


def test_log_writes_jsonl(logger: JSONLLogger):
    logger.log("event1", agent_id="leopal")
    logger.log("event2", agent_id="spacecat")

    entries = read_entries(logger)
    assert len(entries) == 2
    assert entries[0]["event"] == "event1"
    assert entries[0]["agent_id"] == "leopal"
    assert entries[1]["agent_id"] == "spacecat"


def test_log_posted(logger: JSONLLogger):
    logger.log_posted("leopal", "LeoPal: hi")

    entry = read_entries(logger)[0]
    assert entry["event"] == "message_posted"
    assert entry["text"] == "LeoPal: hi"
    assert entry["extra"]["channel"] == "chat"


def test_log_suppressed(logger: JSONLLogger):
    logger.log_suppressed("spacecat", "SpaceCat: again?", reason="recent_duplicate")

    entry = read_entries(logger)[0]
    assert entry["event"] == "message_suppressed"
    assert entry["reason"] == "recent_duplicate"


def test_log_intent_and_fallback(logger: JSONLLogger):
    logger.log_intent("cosmicscout", "fetch_news", raw="ACTION:FETCH_SPACE_NEWS")
    logger.log_fallback("cosmicscout", "Empty response from model")

    intent, fallback = read_entries(logger)
    assert intent["action"] == "fetch_news"
    assert intent["extra"]["raw"] == "ACTION:FETCH_SPACE_NEWS"
    assert fallback["event"] == "intent_fallback"
    assert fallback["error"] == "Empty response from model"


def test_log_trigger_error_extra(logger: JSONLLogger):
    logger.log_trigger_error("email", "rate limited", agent_id="leopal", email_id="m1")

    entry = read_entries(logger)[0]
    assert entry["event"] == "trigger_error"
    assert entry["extra"] == {"trigger": "email", "email_id": "m1"}


def test_write_failure_is_swallowed(temp_log_dir: Path, caplog):
    logger = JSONLLogger(log_dir=temp_log_dir)
    logger.log_path.mkdir()

    with caplog.at_level("WARNING", logger="aibuddy.logging"):
        logger.log_posted("leopal", "LeoPal: hi")

    assert "Could not write message_posted event" in caplog.text


def test_rotation(temp_log_dir: Path):
    """Test log rotation into numbered backups."""
    logger = JSONLLogger(log_dir=temp_log_dir, max_size_mb=0.001, backups=3)  # ~1KB

    for i in range(100):
        logger.log(f"event_{i}", data="x" * 100)

    assert (temp_log_dir / "events.1.jsonl").exists()
    assert not (temp_log_dir / "events.4.jsonl").exists()
    assert len(list(temp_log_dir.glob("events*.jsonl"))) == 4


def test_configure_logger(temp_log_dir: Path):
    configured = configure_logger(log_dir=temp_log_dir / "custom")
    assert get_logger() is configured
    assert configured.log_dir == temp_log_dir / "custom"
