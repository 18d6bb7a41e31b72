from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from .channel import EventChannel

ReadyCallback = Callable[[int], Any]


class InferenceEngine(ABC):
    """Abstract base class for on-device inference engines.

    This module hides the design decision of which native runtime performs
    model loading and token generation. Implementations must handle:
    - Opening the model artifact
    - Running generation off the event loop
    - Publishing Loaded/Ongoing/Done/Error events on the shared channel
    - Aborting in-flight work and releasing native resources

    Requests are fire-and-forget: results arrive as events on ``events``.

    Supports async context manager protocol for proper resource cleanup:
        async with engine:
            engine.load(path, 2048, on_ready)
        # Aborted and released
    """

    def __init__(self, events: EventChannel | None = None) -> None:
        self._events = events or EventChannel()

    @property
    def events(self) -> EventChannel:
        """Shared channel carrying every event this engine produces."""
        return self._events

    @abstractmethod
    def load(self, path: str, context_length: int, on_ready: ReadyCallback | None = None) -> None:
        """Start loading a model.

        Args:
            path: Filesystem path of the model artifact
            context_length: Context window size in tokens
            on_ready: Called on the event loop with a context id once loaded

        Publishes ``Loaded`` on success and ``Error`` on failure.
        """

    @abstractmethod
    def predict(self, prompt: str) -> None:
        """Start generating a completion for a fully rendered prompt.

        Publishes ``Ongoing`` per fragment, then ``Done`` or ``Error``.
        """

    @abstractmethod
    def abort(self) -> None:
        """Stop any in-flight generation. Safe to call when idle."""

    @abstractmethod
    def release(self) -> None:
        """Free the loaded model and worker resources. Safe to call twice."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    async def __aenter__(self) -> "InferenceEngine":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup."""
        self.abort()
        self.release()
