"""Main CLI application using Typer."""
import asyncio
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from ..conversation import ChangeKind, Status, StoreChange
from ..coordinator import GenerationCoordinator
from .providers import (
    configure_logging,
    get_context_length,
    get_coordinator,
    get_engine_config,
    get_model_path,
    require_model_path,
)

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="nanomind",
    help="On-device LLM chat assistant",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()


@app.callback()
def main(
    log_level: str = typer.Option(
        "warning",
        "--log-level",
        "-l",
        help="Logging level: debug, info, warning, error"
    )
):
    """NanoMind command line."""
    configure_logging(log_level)


@app.command()
def chat(
    model: Path | None = typer.Option(
        None,
        "--model",
        "-m",
        help="GGUF model file (default: $NANOMIND_MODEL_PATH or ~/Downloads/nanomind_model.gguf)"
    ),
    context_length: int | None = typer.Option(
        None,
        "--context-length",
        "-c",
        help="Context window in tokens"
    ),
):
    """Start the interactive chat TUI."""
    from ..ui import run_tui

    model_path = require_model_path(get_model_path(model), console)
    coordinator = get_coordinator(console)
    run_tui(
        coordinator,
        model_path=str(model_path),
        context_length=get_context_length(context_length),
    )


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Question to ask"),
    model: Path | None = typer.Option(
        None,
        "--model",
        "-m",
        help="GGUF model file"
    ),
    context_length: int | None = typer.Option(
        None,
        "--context-length",
        "-c",
        help="Context window in tokens"
    ),
    timeout: float = typer.Option(
        300.0,
        "--timeout",
        "-t",
        help="Seconds to wait for model load and answer"
    ),
):
    """Ask a single question and stream the answer to the console."""
    model_path = require_model_path(get_model_path(model), console)
    n_ctx = get_context_length(context_length)

    async def _ask() -> int:
        async with get_coordinator(console) as coordinator:
            return await stream_answer(coordinator, str(model_path), n_ctx, prompt, timeout)

    raise typer.Exit(code=asyncio.run(_ask()))


async def stream_answer(
    coordinator: GenerationCoordinator,
    model_path: str,
    context_length: int,
    prompt: str,
    timeout: float,
) -> int:
    """Load a model, answer one prompt and echo streamed text to the console.

    Returns:
        Process exit code (0 on success)
    """
    store = coordinator.store
    printed = 0

    def on_change(change: StoreChange) -> None:
        nonlocal printed
        if change.kind != ChangeKind.REPLACED:
            return
        text = store.messages[change.index].text
        console.print(text[printed:], end="", markup=False, highlight=False)
        printed = len(text)

    ready = asyncio.Event()

    def on_status(change: StoreChange) -> None:
        if change.kind == ChangeKind.STATUS and store.status != Status.LOADING_MODEL.value:
            ready.set()

    status_subscription = store.subscribe(on_status)
    with console.status("[dim]Loading model...[/dim]"):
        coordinator.load_model(model_path, context_length)
        try:
            await asyncio.wait_for(ready.wait(), timeout)
        except asyncio.TimeoutError:
            console.print("[red]Error: Timed out loading model[/red]")
            return 1
        finally:
            status_subscription.cancel()

    if store.status != Status.MODEL_READY.value:
        console.print(f"[red]{store.status}[/red]")
        return 1

    text_subscription = store.subscribe(on_change)
    try:
        coordinator.submit(prompt)
        idle = await coordinator.wait_idle(timeout)
    finally:
        text_subscription.cancel()
    console.print()

    if not idle:
        console.print("[red]Error: Timed out waiting for answer[/red]")
        return 1
    if store.status.startswith("Error"):
        console.print(f"[red]{store.status}[/red]")
        return 1
    console.print(f"[dim]{store.status}[/dim]")
    return 0


@app.command()
def info(
    model: Path | None = typer.Option(
        None,
        "--model",
        "-m",
        help="GGUF model file"
    ),
):
    """Show the resolved configuration."""
    model_path = get_model_path(model)
    engine_config = get_engine_config()

    table = Table(title="NanoMind configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    exists = "[green]found[/green]" if model_path.is_file() else "[red]missing[/red]"
    table.add_row("Model path", f"{model_path} ({exists})")
    table.add_row("Context length", str(get_context_length()))
    table.add_row("Backend", engine_config["backend"])
    table.add_row("Threads", str(engine_config["n_threads"] or "auto"))
    table.add_row("GPU layers", str(engine_config["n_gpu_layers"]))
    table.add_row("Max tokens", str(engine_config["max_tokens"]))

    console.print(table)


if __name__ == "__main__":
    app()
