from typing import Any

from .base import InferenceEngine
from .providers import LlamaCppEngine


def create_inference_engine(backend: str = "llama_cpp", **config: Any) -> InferenceEngine:
    """Create an inference engine instance.

    This factory function hides the instantiation logic for different backends.

    Args:
        backend: Backend type ('llama_cpp', also accepted as 'llama' or 'llamacpp')
        **config: Backend-specific configuration
            For llama_cpp:
                - events: EventChannel | None
                - n_threads: int | None
                - n_gpu_layers: int (default: 0)
                - max_tokens: int (default: 512)
                - temperature: float (default: 0.7)
                - top_p: float (default: 0.95)
                - stop: list[str] | None

    Returns:
        Initialized inference engine

    Raises:
        ValueError: If backend type is not supported

    Examples:
        >>> engine = create_inference_engine("llama_cpp", n_gpu_layers=20)
    """
    backend_lower = backend.lower().replace("-", "_")

    if backend_lower in ("llama_cpp", "llama", "llamacpp"):
        return LlamaCppEngine(**config)

    raise ValueError(
        f"Unsupported inference backend: {backend}. "
        f"Supported backends: 'llama_cpp'"
    )
