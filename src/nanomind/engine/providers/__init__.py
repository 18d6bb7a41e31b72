from .llama_cpp import LlamaCppEngine

__all__ = ["LlamaCppEngine"]
