"""Data models for the conversation.

These models define the structure of chat messages and status text,
independent of how the conversation is rendered.
"""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """A single chat message.

    Messages are immutable; streaming updates replace the message at its
    position with a copy carrying the new text.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Message text (grows while streaming)")
    is_user: bool = Field(description="True for user turns, False for assistant turns")
    created_at: datetime = Field(default_factory=datetime.now)
    message_id: str = Field(default_factory=lambda: str(uuid4()))

    @property
    def role(self) -> str:
        """Role name of the sender: 'user' or 'assistant'."""
        return "user" if self.is_user else "assistant"

    def with_text(self, text: str) -> "Message":
        """Return a copy of this message with replaced text."""
        return self.model_copy(update={"text": text})


class Status(str, Enum):
    """Fixed status strings surfaced to the UI."""

    READY = "Ready"
    LOADING_MODEL = "Loading Model..."
    MODEL_READY = "Model Ready"
    GENERATING = "Generating..."

    @staticmethod
    def error(detail: str) -> str:
        """Status for an engine-originated error."""
        return f"Error: {detail}"

    @staticmethod
    def load_error(detail: str) -> str:
        """Status for a model load that failed before reaching the engine."""
        return f"Error Loading Model: {detail}"

    @staticmethod
    def inference_time(elapsed_ms: int) -> str:
        """Status shown when a generation completes."""
        return f"Inference Time: {elapsed_ms} ms"


class ChangeKind(str, Enum):
    """Kinds of store mutations reported to observers."""

    APPENDED = "appended"
    REPLACED = "replaced"
    DROPPED = "dropped"
    CLEARED = "cleared"
    STATUS = "status"
    BUSY = "busy"
