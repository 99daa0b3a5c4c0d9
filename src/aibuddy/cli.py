"""Interactive command-line front end for AIBuddy."""

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path

from groq import AsyncGroq

from .buddies import DEFAULT_BUDDY_ID, Buddy, UnknownBuddyError, get_buddy, list_buddies
from .clients import (
    FileScreenTextProvider,
    GmailClient,
    GoogleCalendarClient,
    GroqLLMClient,
    N2YOClient,
    NewsAPIClient,
    StaticLocationProvider,
    StaticTokenProvider,
)
from .clients.base import LLMClient, MessageSink, ScheduledNotification
from .conversation import ConversationStore, DuplicateGuard, Message, Messenger, Role, StoreConfig
from .intent import IntentEngine
from .logging import configure_logger, get_logger
from .notifications import LocalNotifier
from .reminders import ReminderService, ReminderStore
from .scheduler import build_scheduler

BANNER = """
╔══════════════════════════════════════════╗
║            🛰  AIBuddy v0.1.0             ║
║     Your proactive desktop companions    ║
╚══════════════════════════════════════════╝

Commands:
  /buddy <id>   - Switch buddy (leopal, cosmicscout, spacecat)
  /buddies      - List buddies
  /history      - Show this buddy's conversation
  /clear        - Clear this buddy's conversation
  /help         - Show this help
  /exit, /quit  - Exit the CLI

Type your message and press Enter.
"""


@dataclass
class AppConfig:
    """Runtime configuration, normally read from the environment."""

    groq_api_key: str | None = None
    model: str = "llama-3.1-70b-versatile"
    news_api_key: str | None = None
    n2yo_api_key: str | None = None
    google_access_token: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    screen_text_file: Path | None = None
    data_dir: Path | None = None

    def __post_init__(self) -> None:
        if self.data_dir is None:
            self.data_dir = Path.home() / ".aibuddy"


def _float_env(name: str) -> float | None:
    value = os.getenv(name)
    return float(value) if value else None


def _config_from_env() -> AppConfig:
    """Build AppConfig from GROQ_*, NEWS_API_KEY, N2YO_API_KEY, GOOGLE_ACCESS_TOKEN and AIBUDDY_* variables."""
    screen_file = os.getenv("AIBUDDY_SCREEN_TEXT_FILE")
    data_dir = os.getenv("AIBUDDY_DATA_DIR")
    return AppConfig(
        groq_api_key=os.getenv("GROQ_API_KEY"),
        model=os.getenv("GROQ_MODEL", "llama-3.1-70b-versatile"),
        news_api_key=os.getenv("NEWS_API_KEY"),
        n2yo_api_key=os.getenv("N2YO_API_KEY"),
        google_access_token=os.getenv("GOOGLE_ACCESS_TOKEN"),
        latitude=_float_env("AIBUDDY_LATITUDE"),
        longitude=_float_env("AIBUDDY_LONGITUDE"),
        screen_text_file=Path(screen_file) if screen_file else None,
        data_dir=Path(data_dir) if data_dir else None,
    )


class ConsoleSink:
    """Prints every accepted buddy message."""

    async def deliver(self, agent_id: str, message: Message) -> None:
        if message.is_placeholder:
            return
        print(f"\n[{agent_id}] {message.display_text}")


class CLI:
    """Interactive command-line interface for AIBuddy."""

    def __init__(
        self,
        config: AppConfig | None = None,
        llm: LLMClient | None = None,
        sink: MessageSink | None = None,
    ) -> None:
        self.config = config or _config_from_env()
        data_dir = self.config.data_dir
        assert data_dir is not None

        self.logger = get_logger()
        self.store = ConversationStore(StoreConfig(data_dir=data_dir))
        self.guard = DuplicateGuard(self.store)
        self.messenger = Messenger(self.store, self.guard, sink or ConsoleSink(), event_logger=self.logger)

        self.reminder_store = ReminderStore(data_dir / "reminders.db")
        self.reminder_store.init_db()
        self.reminders = ReminderService(self.reminder_store)
        self.notifier = LocalNotifier(on_alert=self._on_alert)

        if llm is None:
            llm = GroqLLMClient(AsyncGroq(api_key=self.config.groq_api_key), model=self.config.model)
        self.llm = llm

        news = NewsAPIClient(self.config.news_api_key) if self.config.news_api_key else None
        satellites = N2YOClient(self.config.n2yo_api_key) if self.config.n2yo_api_key else None
        location = StaticLocationProvider(self.config.latitude, self.config.longitude)
        email = calendar = None
        if self.config.google_access_token:
            tokens = StaticTokenProvider(self.config.google_access_token)
            email = GmailClient(tokens)
            calendar = GoogleCalendarClient(tokens)
        screen = None
        if self.config.screen_text_file is not None:
            screen = FileScreenTextProvider(self.config.screen_text_file)

        self.engine = IntentEngine(
            llm,
            self.messenger,
            news=news,
            satellites=satellites,
            location=location,
            calendar=calendar,
            reminders=self.reminders,
            email=email,
            event_logger=self.logger,
        )
        self.scheduler = build_scheduler(
            self.messenger,
            llm,
            screen=screen,
            news=news,
            satellites=satellites,
            location=location,
            email=email,
            calendar=calendar,
            reminders=self.reminders,
            notifier=self.notifier,
            event_logger=self.logger,
        )
        self.buddy: Buddy = get_buddy(DEFAULT_BUDDY_ID)
        self._turns: set[asyncio.Task] = set()

    def _on_alert(self, notification: ScheduledNotification) -> None:
        print(f"\n🔔 {notification.title}: {notification.body}")

    def _format_history(self, messages: list[Message]) -> str:
        lines = []
        for message in messages:
            if message.is_placeholder:
                continue
            who = "you" if message.role == Role.USER else self.buddy.id
            lines.append(f"{message.timestamp.astimezone():%H:%M} {who}> {message.display_text}")
        return "\n".join(lines) if lines else "(no messages yet)"

    async def _process_message(self, text: str, agent_id: str | None = None) -> None:
        """Send a user message to ``agent_id``, the current buddy by default."""
        agent_id = agent_id or self.buddy.id
        try:
            await self.engine.handle_user_message(agent_id, text)
        except Exception as e:
            print(f"\n❌ Error: {e}")
            self.logger.log("error", agent_id=agent_id, error=str(e))

    def _start_turn(self, text: str) -> asyncio.Task:
        """Handle a message in the background so input keeps being read."""
        task = asyncio.create_task(self._process_message(text, self.buddy.id))
        self._turns.add(task)
        task.add_done_callback(self._turns.discard)
        return task

    async def _cancel_turns(self) -> None:
        for task in self._turns:
            task.cancel()
        await asyncio.gather(*self._turns, return_exceptions=True)

    async def _handle_command(self, command: str) -> bool:
        """Run a slash command. Returns False when the session should end."""
        parts = command.strip().split(maxsplit=1)
        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd in ("/exit", "/quit", "exit", "quit"):
            print("\n👋 Goodbye!")
            return False

        if cmd == "/buddy":
            try:
                self.buddy = get_buddy(arg)
            except UnknownBuddyError:
                print(f"Unknown buddy: {arg or '(none)'}. Try /buddies.")
                return True
            print(f"✓ Now talking to {self.buddy.name}")
            return True

        if cmd == "/buddies":
            for buddy in list_buddies():
                marker = "*" if buddy.id == self.buddy.id else " "
                print(f" {marker} {buddy.id:<12} {buddy.name} ({buddy.personality})")
            return True

        if cmd == "/history":
            print(self._format_history(self.store.get_history(self.buddy.id)))
            return True

        if cmd == "/clear":
            await self.store.clear(self.buddy.id)
            print(f"✓ Cleared conversation with {self.buddy.name}")
            return True

        if cmd == "/help":
            print(BANNER)
            return True

        print(f"Unknown command: {cmd}. Try /help.")
        return True

    async def run(self) -> None:
        """Read user input until exit while the scheduler runs in the background."""
        print(BANNER)
        print(f"Talking to {self.buddy.name}\n")
        self.logger.log("session_start", agent_id=self.buddy.id)
        self.scheduler.start()

        try:
            while True:
                try:
                    # Read in a thread so proactive triggers keep running
                    user_input = (await asyncio.to_thread(input, f"{self.buddy.id}> ")).strip()
                except (EOFError, KeyboardInterrupt):
                    print("\n👋 Goodbye!")
                    break

                if not user_input:
                    continue

                if user_input.startswith("/") or user_input.lower() in ("exit", "quit"):
                    if not await self._handle_command(user_input):
                        break
                    continue

                self._start_turn(user_input)
        finally:
            await self._cancel_turns()
            await self.scheduler.stop()
            self.notifier.cancel_all()
            self.reminder_store.close()
            self.logger.log("session_end", agent_id=self.buddy.id)


async def run_cli() -> None:
    """Entry point used by ``aibuddy``: configure logging and start a session."""
    configure_logger()

    config = _config_from_env()
    if not config.groq_api_key:
        print("❌ Error: GROQ_API_KEY environment variable not set")
        print("Please set it in your .env file or environment")
        return

    cli = CLI(config=config)
    await cli.run()
