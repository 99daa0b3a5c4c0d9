"""Buddy registry.

Buddies are fixed personas. Each one owns its own conversation log and
proactive bookkeeping, keyed by ``Buddy.id``.
"""

from dataclasses import dataclass
from enum import Enum


class BuddyKind(str, Enum):
    """Selects the intent vocabulary a buddy is prompted with."""

    ASSISTANT = "assistant"
    SPACE = "space"
    COMPANION = "companion"


@dataclass(frozen=True)
class Buddy:
    """An immutable buddy persona."""

    id: str
    name: str
    personality: str
    accent: str
    min_interval: float
    kind: BuddyKind
    may_decline: bool = False

    @property
    def is_space(self) -> bool:
        return self.kind == BuddyKind.SPACE


class UnknownBuddyError(KeyError):
    """Raised when a buddy id is not in the registry."""


BUDDIES: dict[str, Buddy] = {
    "leopal": Buddy(
        id="leopal",
        name="LeoPal",
        personality="helpful and organized",
        accent="#4A90E2",
        min_interval=2.0,
        kind=BuddyKind.ASSISTANT,
    ),
    "cosmicscout": Buddy(
        id="cosmicscout",
        name="Cosmic Scout",
        personality="enthusiastic, awe-struck, and knowledgeable about space",
        accent="#7B61FF",
        min_interval=3.0,
        kind=BuddyKind.SPACE,
    ),
    "spacecat": Buddy(
        id="spacecat",
        name="SpaceCat",
        personality="witty, sarcastic, and humorous",
        accent="#F5A623",
        min_interval=2.5,
        kind=BuddyKind.COMPANION,
        may_decline=True,
    ),
}

SPACE_BUDDY_ID = "cosmicscout"
DEFAULT_BUDDY_ID = "leopal"


def get_buddy(buddy_id: str) -> Buddy:
    """Look up a buddy by id.

    Raises:
        UnknownBuddyError: If the id is not registered.
    """
    try:
        return BUDDIES[buddy_id.lower()]
    except KeyError:
        raise UnknownBuddyError(buddy_id) from None


def list_buddies() -> list[Buddy]:
    return list(BUDDIES.values())
