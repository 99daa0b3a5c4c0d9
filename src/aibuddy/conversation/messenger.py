"""Single publishing path for buddy messages."""

import logging

from ..clients.base import MessageSink
from ..logging import JSONLLogger, get_logger
from ..timeutil import Clock, utc_now
from .guard import DuplicateGuard
from .models import Fingerprint, Message, ProactiveDomain, Role
from .store import ConversationStore

logger = logging.getLogger(__name__)

PRIORITY_PREFIX = "⚡ "


class Messenger:
    """Runs candidates through the duplicate guard, stores and delivers them."""

    def __init__(
        self,
        store: ConversationStore,
        guard: DuplicateGuard,
        sink: MessageSink | None = None,
        event_logger: JSONLLogger | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.guard = guard
        self.sink = sink
        self._events = event_logger
        self._clock = clock

    @property
    def events(self) -> JSONLLogger:
        return self._events or get_logger()

    async def _deliver(self, agent_id: str, message: Message) -> None:
        if self.sink is None:
            return
        try:
            await self.sink.deliver(agent_id, message)
        except Exception as e:
            logger.error(f"Message sink failed for {agent_id}: {e}")

    async def post(
        self,
        agent_id: str,
        text: str,
        *,
        check_duplicates: bool = True,
        domain: ProactiveDomain | None = None,
        fingerprint: Fingerprint | None = None,
        display_text: str = "",
    ) -> Message | None:
        """Publish a buddy message.

        Args:
            agent_id: Target buddy.
            text: Message text.
            check_duplicates: Run the recency/similarity check.
            domain: Proactive domain for the fingerprint check.
            fingerprint: Identity of the notified item, if any.
            display_text: Alternate text for the UI.

        Returns:
            The stored message, or None if it was suppressed.
        """
        reason = self.guard.evaluate(
            agent_id,
            text,
            check_recent=check_duplicates,
            domain=domain,
            fingerprint=fingerprint,
        )
        if reason is not None:
            await self.store.remove_placeholder(agent_id)
            self.events.log_suppressed(agent_id, text, reason)
            return None

        message = Message(
            role=Role.AGENT,
            text=text,
            timestamp=self._clock(),
            display_text=display_text,
        )
        await self.store.append(agent_id, message)
        self.events.log_posted(agent_id, text)
        await self._deliver(agent_id, message)
        return message

    async def post_proactive(self, agent_id: str, text: str, **kwargs) -> Message | None:
        """Publish without the recency check. Fingerprint checks still apply."""
        return await self.post(agent_id, text, check_duplicates=False, **kwargs)

    async def post_priority(self, agent_id: str, text: str, **kwargs) -> Message | None:
        """Publish an urgent message, marked with a prefix."""
        return await self.post_proactive(agent_id, PRIORITY_PREFIX + text, **kwargs)

    async def post_typing(self, agent_id: str) -> Message:
        """Show the typing indicator."""
        message = Message.placeholder(self._clock())
        await self.store.append(agent_id, message)
        await self._deliver(agent_id, message)
        return message

    async def record_user(self, agent_id: str, text: str) -> Message:
        message = Message(role=Role.USER, text=text, timestamp=self._clock())
        await self.store.append(agent_id, message)
        return message
