"""Error taxonomy.

Engine-originated failures never escape the coordinator: engines turn
them into ``Error`` events and the coordinator turns those into a status
string.
"""


class NanoMindError(Exception):
    """Base class for NanoMind errors."""


class LoadError(NanoMindError):
    """The engine failed to open or parse a model."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class GenerationError(NanoMindError):
    """The engine failed while generating a response."""


class EngineNotLoadedError(GenerationError):
    """A prediction was requested before any model was loaded."""

    def __init__(self) -> None:
        super().__init__("No model loaded. Call load() first.")


class InvalidSubmission(NanoMindError):
    """A blank prompt, or a prompt submitted while a generation is running."""

    def __init__(self, reason: str):
        super().__init__(f"Invalid submission: {reason}")
        self.reason = reason
