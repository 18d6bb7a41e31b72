"""Observable conversation state store.

Hides how messages, status and the busy flag are held and how
observers are notified. Every mutation notifies observers synchronously
before the mutating call returns.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .models import ChangeKind, Message, Status

logger = logging.getLogger("nanomind.conversation")


@dataclass(frozen=True)
class StoreChange:
    """Notification delivered to store observers."""

    kind: ChangeKind
    store: "ConversationStore"
    index: int | None = None


StoreObserver = Callable[[StoreChange], Any]


class StoreSubscription:
    """Handle for a registered store observer."""

    def __init__(self, store: "ConversationStore", observer: StoreObserver) -> None:
        self._store = store
        self._observer = observer
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Stop receiving notifications. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._store._remove_observer(self._observer)


class ConversationStore:
    """Owns the conversation, the status string and the busy flag.

    Readers get immutable snapshots; only the coordinator mutates.
    """

    def __init__(self, status: str = Status.READY.value) -> None:
        self._messages: list[Message] = []
        self._status = status
        self._busy = False
        self._observers: list[StoreObserver] = []

    # ----------------------------------------------------------------
    # Read-only views
    # ----------------------------------------------------------------

    @property
    def messages(self) -> tuple[Message, ...]:
        """Snapshot of the conversation in order."""
        return tuple(self._messages)

    @property
    def status(self) -> str:
        return self._status

    @property
    def is_busy(self) -> bool:
        return self._busy

    def __len__(self) -> int:
        return len(self._messages)

    # ----------------------------------------------------------------
    # Mutations
    # ----------------------------------------------------------------

    def append_message(self, message: Message) -> int:
        """Insert a message at the tail.

        Args:
            message: Message to append

        Returns:
            Index of the new message

        Raises:
            TypeError: If message is None
        """
        if message is None:
            raise TypeError("message must not be None")
        self._messages.append(message)
        index = len(self._messages) - 1
        self._notify(ChangeKind.APPENDED, index)
        return index

    def replace_text(self, index: int, new_text: str) -> None:
        """Replace the text of the message at ``index``.

        Raises:
            IndexError: If index is outside the current conversation
        """
        if index < 0 or index >= len(self._messages):
            raise IndexError(
                f"message index {index} out of range for conversation of {len(self._messages)}"
            )
        self._messages[index] = self._messages[index].with_text(new_text)
        self._notify(ChangeKind.REPLACED, index)

    def drop_last(self) -> Message | None:
        """Remove the tail message. Does nothing on an empty conversation."""
        if not self._messages:
            return None
        removed = self._messages.pop()
        self._notify(ChangeKind.DROPPED, len(self._messages))
        return removed

    def clear(self) -> None:
        """Remove every message."""
        self._messages.clear()
        self._notify(ChangeKind.CLEARED)

    def set_status(self, text: str) -> None:
        self._status = str(text.value if isinstance(text, Status) else text)
        self._notify(ChangeKind.STATUS)

    def set_busy(self, busy: bool) -> None:
        self._busy = bool(busy)
        self._notify(ChangeKind.BUSY)

    # ----------------------------------------------------------------
    # Observers
    # ----------------------------------------------------------------

    def subscribe(self, observer: StoreObserver) -> StoreSubscription:
        """Register an observer called after every mutation."""
        self._observers.append(observer)
        return StoreSubscription(self, observer)

    def _remove_observer(self, observer: StoreObserver) -> None:
        try:
            self._observers.remove(observer)
        except ValueError:
            pass

    def _notify(self, kind: ChangeKind, index: int | None = None) -> None:
        change = StoreChange(kind=kind, store=self, index=index)
        for observer in list(self._observers):
            try:
                observer(change)
            except Exception:
                logger.exception("Store observer failed on %s", kind.value)
