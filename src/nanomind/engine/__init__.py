"""Inference engine module for nanomind.

Wraps the native runtime that loads models and generates tokens, and the
shared channel its events travel on.
"""

from .base import InferenceEngine
from .channel import CancelToken, EventChannel, OverflowPolicy, Subscription
from .events import Done, Error, LLMEvent, Loaded, Ongoing, parse_event
from .factory import create_inference_engine
from .providers import LlamaCppEngine

__all__ = [
    "CancelToken",
    "Done",
    "Error",
    "EventChannel",
    "InferenceEngine",
    "LLMEvent",
    "LlamaCppEngine",
    "Loaded",
    "Ongoing",
    "OverflowPolicy",
    "Subscription",
    "create_inference_engine",
    "parse_event",
]
