"""Conversation logs, duplicate suppression and message publishing."""

from .guard import DuplicateGuard, GuardConfig, jaccard_similarity
from .messenger import Messenger
from .models import Fingerprint, Message, ProactiveDomain, ProactiveUpdateRecord, Role
from .store import ConversationStore, StoreConfig

__all__ = [
    "ConversationStore",
    "DuplicateGuard",
    "Fingerprint",
    "GuardConfig",
    "Message",
    "Messenger",
    "ProactiveDomain",
    "ProactiveUpdateRecord",
    "Role",
    "StoreConfig",
    "jaccard_similarity",
]
