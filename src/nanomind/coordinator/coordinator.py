"""Generation coordinator.

Drives one inference engine, listens to its shared event channel and
turns each event into a conversation store mutation.

Events carry no session identifier. A session only sees events because
its subscription is open; the subscription is opened when the session
starts and cancelled as soon as a terminal event arrives.
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from typing import Any

from ..config import DEFAULT_CONTEXT_LENGTH
from ..conversation import ConversationStore, Message, Status
from ..engine import Done, Error, InferenceEngine, Loaded, Ongoing, Subscription
from ..errors import InvalidSubmission
from ..prompts import render_chat_prompt
from .session import CoordinatorState, GenerationSession

logger = logging.getLogger("nanomind.coordinator")


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class GenerationCoordinator:
    """Coordinates the conversation store with an inference engine.

    Usage:
        async with GenerationCoordinator(engine, store) as coordinator:
            coordinator.load_model(path)
            coordinator.submit("Hello")
            await coordinator.wait_idle()
        # Engine aborted and released

    All methods must be called from the event loop that owns the store.
    """

    def __init__(
        self,
        engine: InferenceEngine,
        store: ConversationStore | None = None,
        system_text: str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the coordinator.

        Args:
            engine: Inference engine to drive
            store: Conversation store to mutate (a new one is created if omitted)
            system_text: System prompt (defaults to the packaged prompt)
            clock: Monotonic clock in seconds, used for inference timing
        """
        self._engine = engine
        self._store = store if store is not None else ConversationStore()
        self._system_text = system_text
        self._clock = clock
        self._state = CoordinatorState.IDLE
        self._session: GenerationSession | None = None
        self._last_task: asyncio.Task | None = None
        self._load_task: asyncio.Task | None = None
        self._load_subscription: Subscription | None = None
        self._closed = False

    @property
    def store(self) -> ConversationStore:
        return self._store

    @property
    def engine(self) -> InferenceEngine:
        return self._engine

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def session(self) -> GenerationSession | None:
        """The active session, if a generation is in progress."""
        return self._session

    # ----------------------------------------------------------------
    # Model loading
    # ----------------------------------------------------------------

    def load_model(self, path: str, context_length: int = DEFAULT_CONTEXT_LENGTH) -> None:
        """Ask the engine to load a model and track the result in the status.

        Runs outside the submit state machine. The listener stops after the
        first Loaded or Error event. No retry. Calling it again replaces
        the previous listener.
        """
        logger.info("Loading model: %s", path)
        self._store.set_status(Status.LOADING_MODEL)

        # A newer load supersedes the previous listener.
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        if self._load_subscription is not None:
            self._load_subscription.cancel()

        subscription = self._engine.events.subscribe()
        self._load_subscription = subscription
        self._load_task = asyncio.create_task(
            self._listen_for_load(subscription), name="nanomind-load-listener"
        )

        def on_ready(context_id: int) -> None:
            logger.info("Model ready (context %s)", context_id)
            self._store.set_status(Status.MODEL_READY)

        try:
            self._engine.load(path, context_length, on_ready)
        except Exception as exc:
            logger.exception("Model load request failed")
            subscription.cancel()
            self._store.set_status(Status.load_error(_describe(exc)))

    async def _listen_for_load(self, subscription) -> None:
        async for event in subscription:
            if isinstance(event, Loaded):
                logger.debug("Model loaded: %s", event.path)
                break
            if isinstance(event, Error):
                logger.error("LLM error during load: %s", event.message)
                self._store.set_status(Status.error(event.message))
                break
        subscription.cancel()

    # ----------------------------------------------------------------
    # Generation
    # ----------------------------------------------------------------

    def submit(self, prompt: str) -> bool:
        """Start a generation for a user prompt.

        Blank prompts and prompts submitted while a generation is running
        are ignored.

        Returns:
            True if a generation was started
        """
        try:
            self._check_submission(prompt)
        except InvalidSubmission as exc:
            logger.debug("Ignoring submission: %s", exc.reason)
            return False

        logger.debug("Submitting prompt: %r", prompt)
        self._store.set_busy(True)
        self._store.set_status(Status.GENERATING)

        if self._session is not None:
            self._teardown(self._session)

        self._store.append_message(Message(text=prompt, is_user=True))
        placeholder_index = self._store.append_message(Message(text="", is_user=False))

        full_prompt = render_chat_prompt(prompt, self._system_text)
        logger.debug("Full prompt length: %d", len(full_prompt))

        session = GenerationSession(
            prompt=full_prompt,
            placeholder_index=placeholder_index,
            started_at=self._clock(),
            subscription=self._engine.events.subscribe(),
        )
        self._session = session
        self._state = CoordinatorState.AWAITING_FIRST_TOKEN
        session.task = asyncio.create_task(self._consume(session), name="nanomind-generation")
        self._last_task = session.task

        try:
            self._engine.predict(full_prompt)
        except Exception as exc:
            logger.exception("Prediction request failed")
            self._on_error(session, _describe(exc))
        return True

    def _check_submission(self, prompt: str) -> None:
        if self._closed:
            raise InvalidSubmission("coordinator is closed")
        if not prompt or not prompt.strip():
            raise InvalidSubmission("prompt is blank")
        if self._state != CoordinatorState.IDLE or self._store.is_busy:
            raise InvalidSubmission("a generation is already in progress")

    async def _consume(self, session: GenerationSession) -> None:
        async for event in session.subscription:
            if session.cancel_token.cancelled:
                break
            self._handle_event(session, event)
            if session.cancel_token.cancelled:
                break

    def _handle_event(self, session: GenerationSession, event: Any) -> None:
        if session is not self._session or session.closed:
            return

        if isinstance(event, Ongoing):
            text = session.append(event.word)
            self._state = CoordinatorState.STREAMING
            try:
                self._store.replace_text(session.placeholder_index, text)
            except IndexError:
                logger.warning(
                    "Placeholder %d no longer exists, dropping streamed text",
                    session.placeholder_index,
                )
        elif isinstance(event, Done):
            self._on_done(session)
        elif isinstance(event, Error):
            self._on_error(session, event.message)
        # Loaded and anything else is not for this session

    def _on_done(self, session: GenerationSession) -> None:
        self._state = CoordinatorState.TERMINATING
        elapsed_ms = session.elapsed_ms(self._clock())
        logger.info(
            "Generation completed in %d ms (%d fragments)", elapsed_ms, session.fragments
        )
        self._store.set_status(Status.inference_time(elapsed_ms))
        self._store.set_busy(False)
        self._teardown(session)

    def _on_error(self, session: GenerationSession, message: str) -> None:
        if session.closed:
            return
        self._state = CoordinatorState.TERMINATING
        logger.error("Generation error: %s", message)
        self._store.set_status(Status.error(message))
        self._store.set_busy(False)
        self._store.drop_last()
        self._teardown(session)

    def teardown(self) -> bool:
        """Abandon the active session.

        Stops listening for its events, clears the busy flag, sets the
        status to ``Ready`` and drops the placeholder if nothing streamed
        into it yet. Partial text stays. Calling it again is a no-op.

        Returns:
            True if a session was torn down
        """
        session = self._session
        if session is None or not self._teardown(session):
            return False
        logger.info("Generation abandoned")
        self._store.set_busy(False)
        self._store.set_status(Status.READY)
        messages = self._store.messages
        if (
            len(messages) == session.placeholder_index + 1
            and not messages[-1].is_user
            and not messages[-1].text
        ):
            self._store.drop_last()
        return True

    def _teardown(self, session: GenerationSession) -> bool:
        closed = session.close()
        if self._session is session:
            self._session = None
            self._state = CoordinatorState.IDLE
        return closed

    async def wait_idle(self, timeout: float | None = None) -> bool:
        """Wait for the current generation's consumer to finish.

        Returns:
            True if no generation is running when this returns
        """
        task = self._last_task
        if task is not None and not task.done():
            await asyncio.wait({task}, timeout=timeout)
        return self._session is None

    # ----------------------------------------------------------------
    # Shutdown
    # ----------------------------------------------------------------

    async def close(self) -> None:
        """Abort in-flight work and release the engine. Safe to call twice."""
        if self._closed:
            return
        self._closed = True

        if self._session is not None:
            self._teardown(self._session)
        if self._load_subscription is not None:
            self._load_subscription.cancel()

        for task in (self._last_task, self._load_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        self._engine.abort()
        await asyncio.to_thread(self._engine.release)
        logger.debug("Coordinator closed")

    async def __aenter__(self) -> "GenerationCoordinator":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
