"""Duplicate and spam suppression for outbound buddy messages."""

import logging
from dataclasses import dataclass
from datetime import timedelta

from ..timeutil import Clock, utc_now
from .models import Fingerprint, ProactiveDomain
from .store import ConversationStore

logger = logging.getLogger(__name__)


@dataclass
class GuardConfig:
    """Thresholds for duplicate detection."""

    message_duplicate_threshold: float = 30  # seconds
    content_similarity_threshold: float = 0.8
    fingerprint_window: float = 3600  # seconds, for timed fingerprints


def jaccard_similarity(a: str, b: str) -> float:
    """Jaccard index over lower-cased whitespace-separated word sets."""
    words_a = set(a.lower().split())
    words_b = set(b.lower().split())
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


class DuplicateGuard:
    """Decides whether a candidate message should reach the user.

    Checks run per buddy and never raise: any internal failure counts as a
    duplicate. Spurious suppression is preferred over showing the same
    thing twice.
    """

    def __init__(
        self,
        store: ConversationStore,
        config: GuardConfig | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.config = config or GuardConfig()
        self._clock = clock

    @property
    def _recent_window(self) -> timedelta:
        return timedelta(seconds=self.config.message_duplicate_threshold)

    def is_recent_duplicate(self, agent_id: str, text: str) -> bool:
        """True if ``text`` closely matches the buddy's last message from the last few seconds."""
        last = self.store.last_agent_message(agent_id)
        if last is None:
            return False
        if self._clock() - last.timestamp >= self._recent_window:
            return False
        # Inclusive: a score equal to the threshold counts as a duplicate
        return jaccard_similarity(text, last.text) >= self.config.content_similarity_threshold

    def is_known_fingerprint(
        self,
        domain: ProactiveDomain,
        agent_id: str,
        fingerprint: Fingerprint,
    ) -> bool:
        """True if a matching item was already notified in ``domain``.

        Keys match case-insensitively when either contains the other. When
        both sides carry a time they must also be within the fingerprint
        window.
        """
        key = fingerprint.key.strip().lower()
        if not key:
            return False

        window = timedelta(seconds=self.config.fingerprint_window)
        record = self.store.get_proactive_record(domain, agent_id)
        for known in record.fingerprints:
            known_key = known.key.strip().lower()
            if not known_key or (key not in known_key and known_key not in key):
                continue
            if fingerprint.at is not None and known.at is not None:
                if abs(fingerprint.at - known.at) >= window:
                    continue
            return True
        return False

    def is_screen_throttled(self, agent_id: str) -> bool:
        """True if the buddy reacted to the screen too recently."""
        last = self.store.get_last_trigger_time(agent_id)
        if last is None:
            return False
        return self._clock() - last < self._recent_window

    def evaluate(
        self,
        agent_id: str,
        text: str,
        *,
        check_recent: bool = True,
        domain: ProactiveDomain | None = None,
        fingerprint: Fingerprint | None = None,
    ) -> str | None:
        """Return the reason to suppress the candidate, or None to send it."""
        try:
            if check_recent and self.is_recent_duplicate(agent_id, text):
                return "recent_duplicate"
            if domain is not None and fingerprint is not None:
                if self.is_known_fingerprint(domain, agent_id, fingerprint):
                    return "known_fingerprint"
        except Exception as e:
            logger.warning(f"Duplicate check failed for {agent_id}, suppressing: {e}")
            return "guard_error"
        return None

    def should_send(
        self,
        agent_id: str,
        text: str,
        *,
        check_recent: bool = True,
        domain: ProactiveDomain | None = None,
        fingerprint: Fingerprint | None = None,
    ) -> bool:
        return (
            self.evaluate(
                agent_id,
                text,
                check_recent=check_recent,
                domain=domain,
                fingerprint=fingerprint,
            )
            is None
        )
