"""Generation coordination module for nanomind.

Connects the conversation store to an inference engine's event stream.
"""

from .coordinator import GenerationCoordinator
from .session import CoordinatorState, GenerationSession

__all__ = [
    "CoordinatorState",
    "GenerationCoordinator",
    "GenerationSession",
]
