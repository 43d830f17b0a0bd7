"""Tests for environment configuration."""

import pytest

from utils.config import OrchestratorConfig, normalize_base_url

ENV_NAMES = [
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "OPENAI_MODEL",
    "OPENAI_TTS_MODEL",
    "SPEECH_VOICE_STANDARD",
    "SPEECH_VOICE_RED_TEAM",
    "GENERATION_TIMEOUT",
    "STREAM_CHUNK_TIMEOUT",
    "SYNTHESIS_TIMEOUT",
    "GENERATION_MAX_RETRIES",
    "SIMULATION_MODE",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("http://localhost:11434/", "http://localhost:11434/v1"),
        ("http://gpu-box", "http://gpu-box:11434/v1"),
        ("http://gpu-box:8080/api/generate", "http://gpu-box:8080/v1"),
        ("http://gpu-box:8080/api/chat/", "http://gpu-box:8080/v1"),
        ("https://api.example.com/v1/", "https://api.example.com/v1"),
        ("  ", None),
        (None, None),
    ],
)
def test_normalize_base_url(raw, expected):
    assert normalize_base_url(raw) == expected


def test_defaults_without_endpoint_enable_simulation_mode(clean_env):
    config = OrchestratorConfig.from_env(load_dotenv_file=False)

    assert config.api_key is None
    assert config.base_url is None
    assert config.simulation_mode is True


def test_values_are_read_from_environment(clean_env):
    clean_env.setenv("OPENAI_BASE_URL", "http://gpu-box")
    clean_env.setenv("OPENAI_MODEL", "llama3")
    clean_env.setenv("SPEECH_VOICE_RED_TEAM", "echo")
    clean_env.setenv("STREAM_CHUNK_TIMEOUT", "5")
    clean_env.setenv("GENERATION_MAX_RETRIES", "4")

    config = OrchestratorConfig.from_env(load_dotenv_file=False)

    assert config.base_url == "http://gpu-box:11434/v1"
    assert config.model == "llama3"
    assert config.chunk_timeout == 5.0
    assert config.max_retries == 4
    assert config.simulation_mode is False
    assert config.voice_for("red_team") == "echo"
    assert config.voice_for("standard") == "alloy"


def test_simulation_flag_overrides_configured_key(clean_env):
    clean_env.setenv("OPENAI_API_KEY", "sk-test")
    clean_env.setenv("SIMULATION_MODE", "true")
    clean_env.setenv("GENERATION_TIMEOUT", "not-a-number")

    config = OrchestratorConfig.from_env(load_dotenv_file=False)

    assert config.simulation_mode is True
    assert config.request_timeout == 30.0
