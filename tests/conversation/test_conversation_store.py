"""Tests for ConversationStore."""

import asyncio
import json
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from aibuddy.conversation import (
    ConversationStore,
    Fingerprint,
    Message,
    ProactiveDomain,
    Role,
    StoreConfig,
)

START = datetime(2025, 7, 20, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def temp_data_dir():
    """Create a temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(temp_data_dir: Path, clock: FakeClock) -> ConversationStore:
    return ConversationStore(StoreConfig(data_dir=temp_data_dir), clock=clock)


def agent_message(text: str) -> Message:
    return Message(role=Role.AGENT, text=text, timestamp=START)


class TestMessage:
    def test_display_text_defaults_to_text(self):
        message = Message(role=Role.USER, text="hello")
        assert message.display_text == "hello"

    def test_placeholder(self):
        message = Message.placeholder()
        assert message.is_placeholder is True
        assert message.role == Role.AGENT
        assert message.text == "..."

    def test_serialization(self):
        message = Message(role=Role.AGENT, text="hi", display_text="**hi**", timestamp=START)
        restored = Message.from_dict(message.to_dict())
        assert restored.id == message.id
        assert restored.role == Role.AGENT
        assert restored.display_text == "**hi**"
        assert restored.timestamp == START


class TestConversationLog:
    @pytest.mark.asyncio
    async def test_append_and_history(self, store: ConversationStore):
        await store.append("leopal", Message(role=Role.USER, text="hi"))
        await store.append("leopal", agent_message("hello!"))

        history = store.get_history("leopal")
        assert [m.text for m in history] == ["hi", "hello!"]

    @pytest.mark.asyncio
    async def test_agents_are_independent(self, store: ConversationStore):
        await store.append("leopal", agent_message("a"))
        await store.append("spacecat", agent_message("b"))

        assert [m.text for m in store.get_history("leopal")] == ["a"]
        assert [m.text for m in store.get_history("spacecat")] == ["b"]

    @pytest.mark.asyncio
    async def test_placeholder_replaced_by_next_message(self, store: ConversationStore):
        await store.append("leopal", Message.placeholder())
        await store.append("leopal", agent_message("done"))

        history = store.get_history("leopal")
        assert len(history) == 1
        assert history[0].text == "done"

    @pytest.mark.asyncio
    async def test_at_most_one_placeholder(self, store: ConversationStore):
        await store.append("leopal", Message(role=Role.USER, text="q"))
        for _ in range(3):
            await store.append("leopal", Message.placeholder())
            placeholders = [m for m in store.get_history("leopal") if m.is_placeholder]
            assert len(placeholders) == 1

    @pytest.mark.asyncio
    async def test_placeholder_not_persisted(self, temp_data_dir: Path, store: ConversationStore):
        await store.append("leopal", agent_message("saved"))
        await store.append("leopal", Message.placeholder())

        reloaded = ConversationStore(StoreConfig(data_dir=temp_data_dir))
        history = reloaded.get_history("leopal")
        assert [m.text for m in history] == ["saved"]

    @pytest.mark.asyncio
    async def test_remove_placeholder(self, store: ConversationStore):
        await store.append("leopal", Message.placeholder())
        assert await store.remove_placeholder("leopal") is True
        assert await store.remove_placeholder("leopal") is False
        assert store.get_history("leopal") == []

    @pytest.mark.asyncio
    async def test_last_agent_message_skips_user_and_placeholder(self, store: ConversationStore):
        await store.append("leopal", agent_message("first"))
        await store.append("leopal", Message(role=Role.USER, text="question"))
        await store.append("leopal", Message.placeholder())

        last = store.last_agent_message("leopal")
        assert last is not None
        assert last.text == "first"

    @pytest.mark.asyncio
    async def test_clear(self, temp_data_dir: Path, store: ConversationStore):
        await store.append("leopal", agent_message("x"))
        await store.clear("leopal")

        assert store.get_history("leopal") == []
        reloaded = ConversationStore(StoreConfig(data_dir=temp_data_dir))
        assert reloaded.get_history("leopal") == []

    def test_corrupt_log_starts_empty(self, temp_data_dir: Path):
        conversations = temp_data_dir / "conversations"
        conversations.mkdir(parents=True)
        (conversations / "leopal.json").write_text("{not json")

        store = ConversationStore(StoreConfig(data_dir=temp_data_dir))
        assert store.get_history("leopal") == []

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, temp_data_dir: Path, store: ConversationStore):
        # A directory where the log file should be makes the write fail
        (temp_data_dir / "conversations" / "leopal.json").mkdir()

        await store.append("leopal", agent_message("kept in memory"))
        assert [m.text for m in store.get_history("leopal")] == ["kept in memory"]


class TestProactiveRecords:
    def test_missing_record_is_empty(self, store: ConversationStore):
        record = store.get_proactive_record(ProactiveDomain.NEWS, "cosmicscout")
        assert record.last_check is None
        assert record.fingerprints == []

    @pytest.mark.asyncio
    async def test_update_sets_last_check_and_fingerprints(self, store: ConversationStore):
        await store.update_proactive_record(
            ProactiveDomain.NEWS,
            "cosmicscout",
            checked_at=START,
            new_fingerprints=[Fingerprint("Webb sees water")],
        )

        record = store.get_proactive_record(ProactiveDomain.NEWS, "cosmicscout")
        assert record.last_check == START
        assert [fp.key for fp in record.fingerprints] == ["Webb sees water"]

    @pytest.mark.asyncio
    async def test_update_without_check_keeps_last_check(self, store: ConversationStore):
        await store.update_proactive_record(ProactiveDomain.NEWS, "cosmicscout", checked_at=START)
        await store.update_proactive_record(
            ProactiveDomain.NEWS, "cosmicscout", new_fingerprints=[Fingerprint("x")]
        )
        assert store.get_proactive_record(ProactiveDomain.NEWS, "cosmicscout").last_check == START

    @pytest.mark.asyncio
    async def test_duplicates_not_added_twice(self, store: ConversationStore):
        for _ in range(2):
            await store.update_proactive_record(
                ProactiveDomain.NEWS, "cosmicscout", new_fingerprints=[Fingerprint("Same")]
            )
        record = store.get_proactive_record(ProactiveDomain.NEWS, "cosmicscout")
        assert len(record.fingerprints) == 1

    @pytest.mark.asyncio
    async def test_news_capped_oldest_first(self, store: ConversationStore):
        await store.update_proactive_record(
            ProactiveDomain.NEWS,
            "cosmicscout",
            new_fingerprints=[Fingerprint(f"headline {i}") for i in range(60)],
        )
        keys = [fp.key for fp in store.get_proactive_record(ProactiveDomain.NEWS, "cosmicscout").fingerprints]
        assert len(keys) == 50
        assert keys[0] == "headline 10"
        assert keys[-1] == "headline 59"

    @pytest.mark.asyncio
    async def test_email_cap_is_100(self, store: ConversationStore):
        await store.update_proactive_record(
            ProactiveDomain.EMAIL,
            "leopal",
            new_fingerprints=[Fingerprint(f"a@b.c: {i}") for i in range(120)],
        )
        record = store.get_proactive_record(ProactiveDomain.EMAIL, "leopal")
        assert len(record.fingerprints) == 100

    @pytest.mark.asyncio
    async def test_stale_timed_fingerprints_dropped(self, store: ConversationStore):
        await store.update_proactive_record(
            ProactiveDomain.SATELLITE,
            "cosmicscout",
            new_fingerprints=[
                Fingerprint("ISS", START - timedelta(hours=25)),
                Fingerprint("ISS", START + timedelta(hours=2)),
            ],
        )
        record = store.get_proactive_record(ProactiveDomain.SATELLITE, "cosmicscout")
        assert [fp.at for fp in record.fingerprints] == [START + timedelta(hours=2)]

    @pytest.mark.asyncio
    async def test_records_persist(self, temp_data_dir: Path, store: ConversationStore):
        await store.update_proactive_record(
            ProactiveDomain.SATELLITE,
            "cosmicscout",
            checked_at=START,
            new_fingerprints=[Fingerprint("ISS", START + timedelta(hours=1))],
        )

        reloaded = ConversationStore(StoreConfig(data_dir=temp_data_dir), clock=lambda: START)
        record = reloaded.get_proactive_record(ProactiveDomain.SATELLITE, "cosmicscout")
        assert record.last_check == START
        assert record.fingerprints[0].key == "ISS"
        assert record.fingerprints[0].at == START + timedelta(hours=1)


class TestTriggerTimesAndEmail:
    def test_trigger_time_write_through(self, temp_data_dir: Path, store: ConversationStore):
        assert store.get_last_trigger_time("spacecat") is None
        store.set_last_trigger_time("spacecat", START)

        reloaded = ConversationStore(StoreConfig(data_dir=temp_data_dir))
        assert reloaded.get_last_trigger_time("spacecat") == START

    def test_email_processed(self, store: ConversationStore):
        assert store.has_processed_email("m1") is False
        store.mark_email_processed("m1")
        store.mark_email_processed("m1")
        assert store.has_processed_email("m1") is True

    def test_email_watermark(self, temp_data_dir: Path, store: ConversationStore):
        assert store.get_email_watermark() is None
        store.set_email_watermark("m9")

        with open(temp_data_dir / "state.json") as f:
            state = json.load(f)
        assert state["email"]["watermark"] == "m9"


class TestConcurrentUpdates:
    @pytest.mark.asyncio
    async def test_concurrent_appends_across_agents(self, temp_data_dir: Path, store: ConversationStore):
        async def turn(agent_id: str, i: int) -> None:
            await store.append(agent_id, Message.placeholder())
            await store.append(agent_id, agent_message(f"{agent_id} {i}"))

        await asyncio.gather(*(turn(agent_id, i) for i in range(20) for agent_id in ("leopal", "spacecat")))

        for agent_id in ("leopal", "spacecat"):
            history = store.get_history(agent_id)
            assert sorted(m.text for m in history) == sorted(f"{agent_id} {i}" for i in range(20))
            assert sum(m.is_placeholder for m in history) <= 1

            reloaded = ConversationStore(StoreConfig(data_dir=temp_data_dir))
            assert [m.id for m in reloaded.get_history(agent_id)] == [m.id for m in history]

    @pytest.mark.asyncio
    async def test_concurrent_fingerprint_merges(self, temp_data_dir: Path, store: ConversationStore):
        await asyncio.gather(
            *(
                store.update_proactive_record(ProactiveDomain.NEWS, agent_id, new_fingerprints=[Fingerprint(f"Story {i}")])
                for i in range(30)
                for agent_id in ("cosmicscout", "leopal")
            )
        )

        for agent_id in ("cosmicscout", "leopal"):
            record = store.get_proactive_record(ProactiveDomain.NEWS, agent_id)
            assert {fp.key for fp in record.fingerprints} == {f"Story {i}" for i in range(30)}

        reloaded = ConversationStore(StoreConfig(data_dir=temp_data_dir), clock=lambda: START)
        assert len(reloaded.get_proactive_record(ProactiveDomain.NEWS, "leopal").fingerprints) == 30
