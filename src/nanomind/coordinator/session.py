"""Data structures for generation sessions.

Hides the bookkeeping of one request/response cycle with the engine:
the rendered prompt, the text accumulated so far, timing, and the
handles needed to stop listening.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum

from ..engine.channel import CancelToken, Subscription


class CoordinatorState(str, Enum):
    """States of the generation state machine."""

    IDLE = "idle"
    AWAITING_FIRST_TOKEN = "awaiting_first_token"
    STREAMING = "streaming"
    TERMINATING = "terminating"


@dataclass
class GenerationSession:
    """One in-flight request to the inference engine."""

    prompt: str
    placeholder_index: int
    started_at: float
    subscription: Subscription
    cancel_token: CancelToken = field(default_factory=CancelToken)
    accumulated: str = ""
    fragments: int = 0
    task: asyncio.Task | None = None
    closed: bool = False

    def append(self, fragment: str) -> str:
        """Add a streamed fragment and return the full text so far."""
        self.accumulated += fragment
        self.fragments += 1
        return self.accumulated

    def elapsed_ms(self, now: float) -> int:
        """Milliseconds since the session started."""
        return int((now - self.started_at) * 1000)

    def close(self) -> bool:
        """Stop listening for events.

        Returns:
            True if this call closed the session, False if it was already closed
        """
        if self.closed:
            return False
        self.closed = True
        self.cancel_token.cancel()
        self.subscription.cancel()
        return True
