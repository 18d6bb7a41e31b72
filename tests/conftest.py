"""Pytest configuration and shared fixtures."""
import asyncio
from pathlib import Path

import pytest

from nanomind.conversation import ConversationStore
from nanomind.coordinator import GenerationCoordinator
from nanomind.engine import Done, EventChannel, InferenceEngine, Loaded, Ongoing


class FakeEngine(InferenceEngine):
    """In-process engine that records requests and lets tests publish events.

    With ``auto_reply`` set, ``load`` succeeds immediately and ``predict``
    streams the given fragments followed by ``Done`` on the next loop ticks.
    """

    def __init__(self, events: EventChannel | None = None, auto_reply: list[str] | None = None):
        super().__init__(events)
        self.auto_reply = auto_reply
        self.loads: list[tuple[str, int]] = []
        self.prompts: list[str] = []
        self.abort_calls = 0
        self.release_calls = 0
        self.load_error: Exception | None = None
        self.predict_error: Exception | None = None

    @property
    def backend_type(self) -> str:
        return "fake"

    def load(self, path, context_length, on_ready=None):
        if self.load_error is not None:
            raise self.load_error
        self.loads.append((path, context_length))
        if self.auto_reply is not None:
            loop = asyncio.get_running_loop()
            if on_ready is not None:
                loop.call_soon(on_ready, 1)
            loop.call_soon(self.events.publish, Loaded(path=path))

    def predict(self, prompt):
        if self.predict_error is not None:
            raise self.predict_error
        self.prompts.append(prompt)
        if self.auto_reply is not None:
            loop = asyncio.get_running_loop()
            for word in self.auto_reply:
                loop.call_soon(self.events.publish, Ongoing(word=word))
            loop.call_soon(self.events.publish, Done())

    def abort(self):
        self.abort_calls += 1

    def release(self):
        self.release_calls += 1

    def emit(self, *events) -> None:
        """Publish events on the shared channel."""
        for event in events:
            self.events.publish(event)


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def settle(ticks: int = 10) -> None:
    """Let scheduled callbacks and consumer tasks run."""
    for _ in range(ticks):
        await asyncio.sleep(0)


@pytest.fixture
def store():
    """Return an empty conversation store."""
    return ConversationStore()


@pytest.fixture
def engine():
    """Return a fake engine with no automatic replies."""
    return FakeEngine()


@pytest.fixture
def clock():
    """Return a hand-driven clock."""
    return FakeClock()


@pytest.fixture
async def coordinator(engine, store, clock):
    """Return a coordinator wired to the fake engine and a fixed system text."""
    coordinator = GenerationCoordinator(engine, store, system_text="SYS", clock=clock)
    yield coordinator
    await coordinator.close()


@pytest.fixture
def model_file(tmp_path) -> Path:
    """Create a placeholder model file."""
    path = tmp_path / "nanomind_model.gguf"
    path.write_bytes(b"GGUF")
    return path


@pytest.fixture(name="settle")
def settle_fixture():
    """Return a coroutine function that lets the event loop catch up."""
    return settle


@pytest.fixture
def make_engine():
    """Return the fake engine class for tests that need custom construction."""
    return FakeEngine
