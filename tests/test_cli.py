"""Tests for CLI."""

import asyncio
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from aibuddy.cli import CLI, AppConfig, ConsoleSink, _config_from_env
from aibuddy.conversation import Message, Role
from aibuddy.logging import configure_logger


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def llm() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def cli(temp_dir: Path, llm: AsyncMock):
    configure_logger(log_dir=temp_dir / "logs")
    cli = CLI(config=AppConfig(groq_api_key="test-key", data_dir=temp_dir), llm=llm, sink=AsyncMock())
    yield cli
    cli.reminder_store.close()


def test_default_buddy(cli: CLI) -> None:
    assert cli.buddy.id == "leopal"


def test_only_local_triggers_without_keys(cli: CLI) -> None:
    assert cli.scheduler.names == ["reminders:leopal"]


def test_config_from_env(monkeypatch, temp_dir: Path) -> None:
    monkeypatch.setenv("GROQ_API_KEY", "k")
    monkeypatch.setenv("GROQ_MODEL", "test-model")
    monkeypatch.setenv("AIBUDDY_LATITUDE", "40.4")
    monkeypatch.setenv("AIBUDDY_LONGITUDE", "-3.7")
    monkeypatch.setenv("AIBUDDY_DATA_DIR", str(temp_dir))
    monkeypatch.delenv("NEWS_API_KEY", raising=False)

    config = _config_from_env()

    assert config.groq_api_key == "k"
    assert config.model == "test-model"
    assert config.latitude == 40.4
    assert config.longitude == -3.7
    assert config.data_dir == temp_dir
    assert config.news_api_key is None


def test_default_data_dir() -> None:
    assert AppConfig().data_dir == Path.home() / ".aibuddy"


def test_all_services_wired(temp_dir: Path, llm: AsyncMock) -> None:
    configure_logger(log_dir=temp_dir / "logs")
    config = AppConfig(
        groq_api_key="k",
        news_api_key="n",
        n2yo_api_key="s",
        google_access_token="g",
        latitude=1.0,
        longitude=2.0,
        screen_text_file=temp_dir / "screen.txt",
        data_dir=temp_dir,
    )
    cli = CLI(config=config, llm=llm, sink=AsyncMock())

    assert len(cli.scheduler.names) == 7
    cli.reminder_store.close()


@pytest.mark.asyncio
async def test_handle_command_exit(cli: CLI) -> None:
    assert await cli._handle_command("/exit") is False
    assert await cli._handle_command("/quit") is False


@pytest.mark.asyncio
async def test_handle_command_help(cli: CLI) -> None:
    assert await cli._handle_command("/help") is True


@pytest.mark.asyncio
async def test_switch_buddy(cli: CLI) -> None:
    assert await cli._handle_command("/buddy SpaceCat") is True
    assert cli.buddy.id == "spacecat"


@pytest.mark.asyncio
async def test_switch_to_unknown_buddy(cli: CLI, capsys) -> None:
    assert await cli._handle_command("/buddy robo") is True
    assert cli.buddy.id == "leopal"
    assert "Unknown buddy: robo" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_list_buddies(cli: CLI, capsys) -> None:
    await cli._handle_command("/buddies")
    out = capsys.readouterr().out
    assert "* leopal" in out
    assert "cosmicscout" in out


@pytest.mark.asyncio
async def test_history_and_clear(cli: CLI, capsys) -> None:
    await cli.store.append("leopal", Message(role=Role.USER, text="hello"))
    await cli._handle_command("/history")
    assert "you> hello" in capsys.readouterr().out

    await cli._handle_command("/clear")
    assert cli.store.get_history("leopal") == []
    await cli._handle_command("/history")
    assert "(no messages yet)" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_process_message(cli: CLI, llm: AsyncMock) -> None:
    llm.complete.side_effect = ["ACTION:GENERAL_CHAT", "Hi there!"]

    await cli._process_message("hello")

    texts = [m.text for m in cli.store.get_history("leopal")]
    assert texts == ["hello", "LeoPal: Hi there!"]


@pytest.mark.asyncio
async def test_process_message_error_is_reported(cli: CLI, capsys) -> None:
    cli.engine.handle_user_message = AsyncMock(side_effect=RuntimeError("boom"))

    await cli._process_message("hello")

    assert "❌ Error: boom" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_turns_run_concurrently(cli: CLI) -> None:
    release = asyncio.Event()
    started: list[tuple[str, str]] = []

    async def slow_turn(agent_id: str, text: str) -> None:
        started.append((agent_id, text))
        await release.wait()

    cli.engine.handle_user_message = slow_turn
    first = cli._start_turn("what's new?")
    await cli._handle_command("/buddy cosmicscout")
    second = cli._start_turn("any news?")
    await asyncio.sleep(0)

    # Both turns are in flight, each bound to the buddy it was typed to
    assert started == [("leopal", "what's new?"), ("cosmicscout", "any news?")]
    assert len(cli._turns) == 2

    release.set()
    await asyncio.gather(first, second)
    await asyncio.sleep(0)
    assert not cli._turns


@pytest.mark.asyncio
async def test_pending_turns_cancelled(cli: CLI) -> None:
    async def never_finishes(agent_id: str, text: str) -> None:
        await asyncio.Event().wait()

    cli.engine.handle_user_message = never_finishes
    task = cli._start_turn("hello")
    await asyncio.sleep(0)

    await cli._cancel_turns()

    assert task.cancelled()


@pytest.mark.asyncio
async def test_console_sink_skips_placeholder(capsys) -> None:
    sink = ConsoleSink()
    await sink.deliver("leopal", Message.placeholder())
    await sink.deliver("leopal", Message(role=Role.AGENT, text="LeoPal: hi"))

    assert capsys.readouterr().out == "\n[leopal] LeoPal: hi\n"
