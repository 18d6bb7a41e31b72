"""
NanoMind: a chat front end for an on-device large language model.

This package follows Parnas's information hiding principles,
where each module hides a specific design decision.
"""

__version__ = "0.1.0"

from .conversation import ConversationStore, Message, Status
from .coordinator import CoordinatorState, GenerationCoordinator
from .engine import (
    Done,
    Error,
    EventChannel,
    InferenceEngine,
    Loaded,
    Ongoing,
    OverflowPolicy,
    create_inference_engine,
)
from .errors import GenerationError, InvalidSubmission, LoadError, NanoMindError

__all__ = [
    "ConversationStore",
    "CoordinatorState",
    "Done",
    "Error",
    "EventChannel",
    "GenerationCoordinator",
    "GenerationError",
    "InferenceEngine",
    "InvalidSubmission",
    "LoadError",
    "Loaded",
    "Message",
    "NanoMindError",
    "Ongoing",
    "OverflowPolicy",
    "Status",
    "create_inference_engine",
]
