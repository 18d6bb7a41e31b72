"""Configuration constants.

Centralizes magic numbers and defaults shared by the engine,
the coordinator and the terminal surfaces.
"""

from pathlib import Path

# Model loading
DEFAULT_MODEL_FILENAME = "nanomind_model.gguf"
DEFAULT_MODEL_DIR = Path.home() / "Downloads"
DEFAULT_CONTEXT_LENGTH = 2048
DEFAULT_BACKEND = "llama_cpp"

# Generation
DEFAULT_MAX_TOKENS = 512
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TOP_P = 0.95

# Shared event channel
EVENT_BUFFER_CAPACITY = 64  # Events buffered per subscriber before overflow

# ChatML markers
IM_START = "<|im_start|>"
IM_END = "<|im_end|>"
STOP_SEQUENCES = [IM_END]

# Environment variable names
ENV_MODEL_PATH = "NANOMIND_MODEL_PATH"
ENV_CONTEXT_LENGTH = "NANOMIND_CONTEXT_LENGTH"
ENV_BACKEND = "NANOMIND_BACKEND"
ENV_N_THREADS = "NANOMIND_N_THREADS"
ENV_N_GPU_LAYERS = "NANOMIND_N_GPU_LAYERS"
ENV_MAX_TOKENS = "NANOMIND_MAX_TOKENS"
