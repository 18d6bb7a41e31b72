"""Provider factory functions for CLI.

Centralizes creation of the engine and coordinator from environment variables.
Hides configuration details from command implementations.
"""

import logging
import os
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from ..config import (
    DEFAULT_BACKEND,
    DEFAULT_CONTEXT_LENGTH,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL_DIR,
    DEFAULT_MODEL_FILENAME,
    ENV_BACKEND,
    ENV_CONTEXT_LENGTH,
    ENV_MAX_TOKENS,
    ENV_MODEL_PATH,
    ENV_N_GPU_LAYERS,
    ENV_N_THREADS,
)
from ..conversation import ConversationStore
from ..coordinator import GenerationCoordinator
from ..engine import InferenceEngine, create_inference_engine

# Default console for output
_console = Console()


def configure_logging(level: str = "warning", console: Console | None = None) -> None:
    """Route the ``nanomind`` loggers through Rich.

    Args:
        level: Log level name (debug, info, warning, error)
        console: Console to render log records on (defaults to stderr)
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger = logging.getLogger("nanomind")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False


def _int_env(name: str, default: int | None) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        _console.print(f"[yellow]Warning: {name}={raw!r} is not an integer, using {default}[/yellow]")
        return default


def get_model_path(override: Path | None = None) -> Path:
    """Resolve the model file location.

    Environment variables:
        NANOMIND_MODEL_PATH: Model file (default: ~/Downloads/nanomind_model.gguf)
    """
    if override is not None:
        return override.expanduser()
    env_path = os.getenv(ENV_MODEL_PATH)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_MODEL_DIR / DEFAULT_MODEL_FILENAME


def get_context_length(override: int | None = None) -> int:
    """Resolve the context window size.

    Environment variables:
        NANOMIND_CONTEXT_LENGTH: Context length in tokens (default: 2048)
    """
    if override is not None:
        return override
    return _int_env(ENV_CONTEXT_LENGTH, DEFAULT_CONTEXT_LENGTH)


def get_engine_config() -> dict[str, Any]:
    """Collect engine settings from environment variables.

    Environment variables:
        NANOMIND_BACKEND: Engine backend (default: llama_cpp)
        NANOMIND_N_THREADS: CPU threads (default: decided by llama.cpp)
        NANOMIND_N_GPU_LAYERS: Layers offloaded to the GPU (default: 0)
        NANOMIND_MAX_TOKENS: Maximum tokens per response (default: 512)
    """
    return {
        "backend": os.getenv(ENV_BACKEND, DEFAULT_BACKEND),
        "n_threads": _int_env(ENV_N_THREADS, None),
        "n_gpu_layers": _int_env(ENV_N_GPU_LAYERS, 0),
        "max_tokens": _int_env(ENV_MAX_TOKENS, DEFAULT_MAX_TOKENS),
    }


def get_engine(console: Console | None = None) -> InferenceEngine:
    """Create the inference engine from environment variables.

    Raises:
        SystemExit: If the configured backend is unknown
    """
    import typer

    con = console or _console
    config = get_engine_config()
    backend = config.pop("backend")
    try:
        return create_inference_engine(backend, **config)
    except ValueError as e:
        con.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


def require_model_path(path: Path, console: Console | None = None) -> Path:
    """Check that the model file exists.

    Raises:
        SystemExit: If the model file is missing
    """
    import typer

    con = console or _console
    if not path.is_file():
        con.print(f"[red]Error: Model file not found: {path}[/red]")
        con.print(
            f"[dim]Place a GGUF model at {DEFAULT_MODEL_DIR / DEFAULT_MODEL_FILENAME} "
            f"or set {ENV_MODEL_PATH}.[/dim]"
        )
        raise typer.Exit(code=1)
    return path


def get_coordinator(console: Console | None = None, system_text: str | None = None) -> GenerationCoordinator:
    """Create a coordinator with a fresh store and the configured engine."""
    return GenerationCoordinator(
        get_engine(console),
        ConversationStore(),
        system_text=system_text,
    )
