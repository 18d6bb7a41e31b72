"""Prompt management module.

Externalizes the system prompt to a text file for easy customization
and renders the ChatML template sent to the engine.
Prompts can be overridden by placing files in the working directory.
"""

from functools import lru_cache
from pathlib import Path

from ..config import IM_END, IM_START

# Default prompts directory (package location)
_PROMPTS_DIR = Path(__file__).parent


@lru_cache(maxsize=16)
def load_prompt(name: str) -> str:
    """Load a prompt from file.

    Search order:
    1. Current working directory: ./prompts/{name}.txt
    2. Package prompts directory: nanomind/prompts/{name}.txt

    Args:
        name: Prompt name (without .txt extension)

    Returns:
        Prompt text content, without a trailing newline

    Raises:
        FileNotFoundError: If prompt file not found in any location
    """
    filename = f"{name}.txt"

    # Check working directory first (allows user overrides)
    local_path = Path.cwd() / "prompts" / filename
    if local_path.exists():
        return local_path.read_text(encoding="utf-8").rstrip("\n")

    # Fall back to package prompts
    package_path = _PROMPTS_DIR / filename
    if package_path.exists():
        return package_path.read_text(encoding="utf-8").rstrip("\n")

    raise FileNotFoundError(
        f"Prompt '{name}' not found. Searched:\n"
        f"  - {local_path}\n"
        f"  - {package_path}"
    )


def get_system_prompt() -> str:
    """Get the assistant's system text."""
    return load_prompt("system")


def render_chat_prompt(user_text: str, system_text: str | None = None) -> str:
    """Render a single-turn ChatML prompt.

    The output is byte-for-byte:
    ``<|im_start|>system\\n{system}<|im_end|>\\n<|im_start|>user\\n{user}<|im_end|>\\n<|im_start|>assistant\\n``

    Args:
        user_text: The user's message, inserted verbatim
        system_text: System text (defaults to the packaged system prompt)
    """
    system = get_system_prompt() if system_text is None else system_text
    return (
        f"{IM_START}system\n{system}{IM_END}\n"
        f"{IM_START}user\n{user_text}{IM_END}\n"
        f"{IM_START}assistant\n"
    )


def clear_cache() -> None:
    """Clear the prompt cache (useful after modifying prompt files)."""
    load_prompt.cache_clear()


__all__ = [
    "load_prompt",
    "get_system_prompt",
    "render_chat_prompt",
    "clear_cache",
]
