"""Shared broadcast channel for engine events.

This module hides the design decision of how events cross from the
engine's worker thread to the asyncio loop:
- Broadcast with no replay (subscribers see only later events)
- A bounded buffer per subscriber with an explicit overflow policy
- Thread-safe publishing via ``call_soon_threadsafe``
"""

import asyncio
import logging
import threading
from collections import deque
from enum import Enum
from typing import Any

from ..config import EVENT_BUFFER_CAPACITY
from .events import Ongoing

logger = logging.getLogger("nanomind.engine.channel")


def _is_droppable(event: Any) -> bool:
    # Only token fragments may be lost. Done, Error and Loaded always arrive.
    return isinstance(event, Ongoing)


class OverflowPolicy(str, Enum):
    """What a full subscriber buffer does with a new event."""

    DROP_OLDEST = "drop_oldest"
    DROP_LATEST = "drop_latest"


class CancelToken:
    """Cooperative cancellation flag checked between event deliveries."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class Subscription:
    """One subscriber's view of an :class:`EventChannel`.

    Iterate with ``async for``; iteration ends once the subscription is
    cancelled or the channel is closed. ``cancel()`` is idempotent.
    """

    def __init__(
        self,
        channel: "EventChannel",
        capacity: int | None,
        overflow: OverflowPolicy,
    ) -> None:
        self._channel = channel
        self._capacity = capacity
        self._overflow = overflow
        self._buffer: deque[Any] = deque()
        self._wakeup = asyncio.Event()
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        """Number of buffered, undelivered events."""
        return len(self._buffer)

    def _offer(self, event: Any) -> None:
        if self._closed:
            return
        full = self._capacity is not None and len(self._buffer) >= self._capacity
        # Terminal events are kept even past capacity.
        if full and _is_droppable(event):
            self.dropped += 1
            if self._overflow == OverflowPolicy.DROP_LATEST or not self._evict_oldest_droppable():
                return
        self._buffer.append(event)
        self._wakeup.set()

    def _evict_oldest_droppable(self) -> bool:
        for position, buffered in enumerate(self._buffer):
            if _is_droppable(buffered):
                del self._buffer[position]
                return True
        return False

    def cancel(self) -> None:
        """Detach from the channel and stop iteration."""
        if self._closed:
            return
        self._closed = True
        self._buffer.clear()
        self._wakeup.set()
        self._channel._detach(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Any:
        while True:
            if self._closed:
                raise StopAsyncIteration
            if self._buffer:
                return self._buffer.popleft()
            self._wakeup.clear()
            await self._wakeup.wait()


class EventChannel:
    """Broadcast channel shared by an engine and its consumers.

    Usage:
        channel = EventChannel(capacity=64)
        subscription = channel.subscribe()
        channel.publish(Ongoing(word="Hi"))   # from any thread
        async for event in subscription:
            ...
    """

    def __init__(
        self,
        capacity: int | None = EVENT_BUFFER_CAPACITY,
        overflow: OverflowPolicy = OverflowPolicy.DROP_OLDEST,
    ) -> None:
        """Initialize the channel.

        Args:
            capacity: Per-subscriber buffer size, or None for an unbounded
                (lossless) buffer
            overflow: Policy applied when a subscriber buffer is full

        Raises:
            ValueError: If capacity is not positive
        """
        if capacity is not None and capacity < 1:
            raise ValueError(f"capacity must be positive or None, got {capacity}")
        self._capacity = capacity
        self._overflow = OverflowPolicy(overflow)
        self._subscribers: list[Subscription] = []
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closed = False

    @property
    def capacity(self) -> int | None:
        return self._capacity

    @property
    def overflow(self) -> OverflowPolicy:
        return self._overflow

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Set the loop that receives events published from other threads."""
        self._loop = loop

    def subscribe(self) -> Subscription:
        """Open a subscription receiving every event published from now on.

        Must be called from the event loop that consumes the events.
        """
        self._loop = asyncio.get_running_loop()
        subscription = Subscription(self, self._capacity, self._overflow)
        if self._closed:
            subscription.cancel()
            return subscription
        with self._lock:
            self._subscribers.append(subscription)
        return subscription

    def publish(self, event: Any) -> None:
        """Deliver an event to every current subscriber.

        Safe to call from any thread. Events published with no
        subscribers are discarded.
        """
        loop = self._loop
        if loop is not None and not loop.is_closed() and not self._on_loop(loop):
            try:
                loop.call_soon_threadsafe(self._deliver, event)
            except RuntimeError:
                logger.debug("Event loop closed, discarding %r", event)
            return
        self._deliver(event)

    def close(self) -> None:
        """Cancel every subscription and refuse new ones."""
        self._closed = True
        with self._lock:
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            subscription.cancel()

    def _deliver(self, event: Any) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            subscription._offer(event)

    def _detach(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

    @staticmethod
    def _on_loop(loop: asyncio.AbstractEventLoop) -> bool:
        try:
            return asyncio.get_running_loop() is loop
        except RuntimeError:
            return False
