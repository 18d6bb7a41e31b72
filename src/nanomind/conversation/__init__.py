"""Conversation state module for nanomind.

Holds the ordered messages, the status string and the busy flag,
and notifies observers of every change.
"""

from .models import ChangeKind, Message, Status
from .store import ConversationStore, StoreChange, StoreSubscription

__all__ = [
    "ChangeKind",
    "ConversationStore",
    "Message",
    "Status",
    "StoreChange",
    "StoreSubscription",
]
