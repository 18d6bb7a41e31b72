"""Tests for the CLI commands and configuration helpers."""
from pathlib import Path

import pytest
from typer.testing import CliRunner

from nanomind.cli.app import app, stream_answer
from nanomind.cli.providers import (
    get_context_length,
    get_engine_config,
    get_model_path,
)
from nanomind.coordinator import GenerationCoordinator
from nanomind.engine import Error

runner = CliRunner()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove NanoMind settings from the environment."""
    for name in (
        "NANOMIND_MODEL_PATH",
        "NANOMIND_CONTEXT_LENGTH",
        "NANOMIND_BACKEND",
        "NANOMIND_N_THREADS",
        "NANOMIND_N_GPU_LAYERS",
        "NANOMIND_MAX_TOKENS",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestProviders:
    """Tests for environment-driven configuration."""

    def test_default_model_path(self, clean_env):
        assert get_model_path() == Path.home() / "Downloads" / "nanomind_model.gguf"

    def test_model_path_from_env(self, clean_env, tmp_path):
        clean_env.setenv("NANOMIND_MODEL_PATH", str(tmp_path / "m.gguf"))
        assert get_model_path() == tmp_path / "m.gguf"

    def test_model_path_override_wins(self, clean_env, tmp_path):
        clean_env.setenv("NANOMIND_MODEL_PATH", "/elsewhere.gguf")
        assert get_model_path(tmp_path / "m.gguf") == tmp_path / "m.gguf"

    def test_context_length(self, clean_env):
        assert get_context_length() == 2048
        clean_env.setenv("NANOMIND_CONTEXT_LENGTH", "4096")
        assert get_context_length() == 4096
        assert get_context_length(512) == 512

    def test_invalid_integer_falls_back(self, clean_env):
        clean_env.setenv("NANOMIND_CONTEXT_LENGTH", "lots")
        assert get_context_length() == 2048

    def test_engine_config(self, clean_env):
        clean_env.setenv("NANOMIND_N_GPU_LAYERS", "33")
        config = get_engine_config()

        assert config == {
            "backend": "llama_cpp",
            "n_threads": None,
            "n_gpu_layers": 33,
            "max_tokens": 512,
        }


class TestCommands:
    """Tests for Typer commands."""

    def test_info(self, clean_env, model_file):
        result = runner.invoke(app, ["info", "--model", str(model_file)])

        assert result.exit_code == 0
        assert "NanoMind configuration" in result.output
        assert "found" in result.output

    def test_ask_with_missing_model(self, clean_env, tmp_path):
        result = runner.invoke(app, ["ask", "Hi", "--model", str(tmp_path / "missing.gguf")])

        assert result.exit_code == 1
        assert "Model file not found" in result.output

    def test_unknown_backend(self, clean_env, model_file):
        clean_env.setenv("NANOMIND_BACKEND", "onnx")
        result = runner.invoke(app, ["ask", "Hi", "--model", str(model_file)])

        assert result.exit_code == 1
        assert "Unsupported inference backend" in result.output


class TestStreamAnswer:
    """Tests for the one-shot streaming helper behind ``nanomind ask``."""

    async def test_streams_answer(self, make_engine, capsys):
        engine = make_engine(auto_reply=["Hel", "lo"])
        async with GenerationCoordinator(engine, system_text="SYS") as coordinator:
            code = await stream_answer(coordinator, "/m.gguf", 2048, "Hi", timeout=2.0)

            assert code == 0
            assert coordinator.store.messages[-1].text == "Hello"
        assert "Hello" in capsys.readouterr().out

    async def test_load_error(self, make_engine, settle):
        engine = make_engine()

        def failing_load(path, context_length, on_ready=None):
            engine.loads.append((path, context_length))
            engine.emit(Error(message="bad magic"))

        engine.load = failing_load
        async with GenerationCoordinator(engine, system_text="SYS") as coordinator:
            code = await stream_answer(coordinator, "/m.gguf", 2048, "Hi", timeout=2.0)

            assert code == 1
            assert coordinator.store.status == "Error: bad magic"
            assert engine.prompts == []
