import asyncio
import itertools
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from ...config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_P,
    STOP_SEQUENCES,
)
from ...errors import EngineNotLoadedError, LoadError
from ..base import InferenceEngine, ReadyCallback
from ..channel import EventChannel
from ..events import Done, Error, Loaded, Ongoing

logger = logging.getLogger("nanomind.engine.llama_cpp")


def _load_llama_class() -> Any:
    """Return ``llama_cpp.Llama``, or raise LoadError if not installed."""
    try:
        from llama_cpp import Llama
    except ImportError as exc:
        raise LoadError(
            "llama-cpp-python is not installed. Install it with: pip install 'nanomind[llama]'"
        ) from exc
    return Llama


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class LlamaCppEngine(InferenceEngine):
    """llama.cpp inference engine via llama-cpp-python.

    Hidden design decisions:
    - All native calls run on one dedicated worker thread, so a
      prediction requested during a load waits for the load to finish
    - Results cross back to the event loop as channel events
    - Abort is a flag checked between generated fragments
    """

    def __init__(
        self,
        events: EventChannel | None = None,
        n_threads: int | None = None,
        n_gpu_layers: int = 0,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
        top_p: float = DEFAULT_TOP_P,
        stop: list[str] | None = None,
        verbose: bool = False,
    ):
        """Initialize the engine.

        Args:
            events: Shared event channel (a new one is created if omitted)
            n_threads: CPU threads for llama.cpp (None lets llama.cpp decide)
            n_gpu_layers: Layers to offload to the GPU
            max_tokens: Maximum tokens generated per prediction
            temperature: Sampling temperature
            top_p: Nucleus sampling threshold
            stop: Stop sequences (defaults to the ChatML end marker)
            verbose: Pass llama.cpp's own logging through to stderr
        """
        super().__init__(events)
        self._n_threads = n_threads
        self._n_gpu_layers = n_gpu_layers
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._top_p = top_p
        self._stop = list(stop) if stop is not None else list(STOP_SEQUENCES)
        self._verbose = verbose

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="nanomind-llama")
        self._abort = threading.Event()
        self._model: Any | None = None
        self._model_path: str | None = None
        self._context_ids = itertools.count(1)
        self._released = False

    @property
    def backend_type(self) -> str:
        return "llama_cpp"

    @property
    def model_path(self) -> str | None:
        """Path of the currently loaded model, if any."""
        return self._model_path

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def load(self, path: str, context_length: int, on_ready: ReadyCallback | None = None) -> None:
        if self._released:
            self._events.publish(Error(message="Engine has been released"))
            return
        loop = self._running_loop()
        if loop is not None:
            self._events.bind_loop(loop)
        logger.debug("Queueing model load: %s (n_ctx=%d)", path, context_length)
        self._executor.submit(self._load_blocking, path, context_length, on_ready, loop)

    def predict(self, prompt: str) -> None:
        if self._released:
            self._events.publish(Error(message="Engine has been released"))
            return
        loop = self._running_loop()
        if loop is not None:
            self._events.bind_loop(loop)
        self._abort.clear()
        logger.debug("Queueing prediction, prompt length %d", len(prompt))
        self._executor.submit(self._predict_blocking, prompt)

    def abort(self) -> None:
        self._abort.set()

    def release(self) -> None:
        """Abort, wait for the worker to finish, then drop the model."""
        if self._released:
            return
        self._released = True
        self._abort.set()
        self._executor.shutdown(wait=True, cancel_futures=True)
        model, self._model = self._model, None
        self._model_path = None
        if model is not None and hasattr(model, "close"):
            try:
                model.close()
            except Exception:
                logger.warning("Failed to close llama.cpp model", exc_info=True)
        logger.debug("llama.cpp engine released")

    # ----------------------------------------------------------------
    # Worker thread
    # ----------------------------------------------------------------

    def _load_blocking(
        self,
        path: str,
        context_length: int,
        on_ready: ReadyCallback | None,
        loop: asyncio.AbstractEventLoop | None,
    ) -> None:
        try:
            if not Path(path).is_file():
                raise LoadError(f"Model file not found: {path}", path=path)
            llama_class = _load_llama_class()
            kwargs: dict[str, Any] = {
                "model_path": path,
                "n_ctx": context_length,
                "n_gpu_layers": self._n_gpu_layers,
                "verbose": self._verbose,
            }
            if self._n_threads:
                kwargs["n_threads"] = self._n_threads
            model = llama_class(**kwargs)
        except Exception as exc:
            logger.error("Model load failed: %s", _describe(exc))
            self._events.publish(Error(message=_describe(exc)))
            return

        self._model = model
        self._model_path = path
        context_id = next(self._context_ids)
        logger.info("Model loaded: %s (context %d)", path, context_id)

        if on_ready is not None:
            self._call_on_loop(loop, on_ready, context_id)
        self._events.publish(Loaded(path=path))

    def _predict_blocking(self, prompt: str) -> None:
        if self._abort.is_set():
            logger.debug("Prediction aborted before start")
            return
        if self._model is None:
            self._events.publish(Error(message=str(EngineNotLoadedError())))
            return

        try:
            stream = self._model(
                prompt,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                top_p=self._top_p,
                stop=self._stop,
                stream=True,
            )
            for chunk in stream:
                if self._abort.is_set():
                    logger.debug("Prediction aborted mid-stream")
                    return
                token = chunk["choices"][0]["text"]
                if token:
                    self._events.publish(Ongoing(word=token))
        except Exception as exc:
            logger.error("Generation failed: %s", _describe(exc))
            self._events.publish(Error(message=_describe(exc)))
            return

        self._events.publish(Done())

    @staticmethod
    def _call_on_loop(loop: asyncio.AbstractEventLoop | None, callback: ReadyCallback, *args: Any) -> None:
        if loop is None:
            callback(*args)
            return
        try:
            loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            logger.debug("Event loop closed, ready callback dropped")

    @staticmethod
    def _running_loop() -> asyncio.AbstractEventLoop | None:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None
