"""Environment-driven configuration for the generation backend."""

import logging
import os
import re
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)

DEFAULT_LOCAL_PORT = 11434
_TRUE_VALUES = {"1", "true", "yes", "on"}


def normalize_base_url(url: Optional[str]) -> Optional[str]:
    """Clean a user-supplied endpoint for an OpenAI-compatible server.

    Strips trailing slashes and pasted API paths, appends the default local
    port to plain-http hosts that have none, and ensures the `/v1` suffix.
    """
    if not url or not url.strip():
        return None
    cleaned = url.strip().rstrip("/")
    for suffix in ("/api/generate", "/api/chat", "/v1"):
        if cleaned.endswith(suffix):
            cleaned = cleaned[: -len(suffix)]
    cleaned = cleaned.rstrip("/")
    if not re.search(r":\d+$", cleaned) and not cleaned.startswith("https://"):
        cleaned = f"{cleaned}:{DEFAULT_LOCAL_PORT}"
        LOGGER.info("Appended default port %s to base URL: %s", DEFAULT_LOCAL_PORT, cleaned)
    return f"{cleaned}/v1"


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Ignoring non-numeric %s=%r", name, value)
        return default


@dataclass(frozen=True)
class OrchestratorConfig:
    """Settings shared by the generation client and the playback controller."""

    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: str = "gpt-5"
    tts_model: str = "gpt-4o-mini-tts"
    standard_voice: str = "alloy"
    red_team_voice: str = "onyx"
    request_timeout: float = 30.0
    chunk_timeout: float = 20.0
    synthesis_timeout: float = 30.0
    max_retries: int = 2
    simulation_mode: bool = False

    @classmethod
    def from_env(cls, *, load_dotenv_file: bool = True) -> "OrchestratorConfig":
        if load_dotenv_file:
            load_dotenv()  # Load environment variables from .env file if present
        api_key = os.getenv("OPENAI_API_KEY") or None
        base_url = normalize_base_url(os.getenv("OPENAI_BASE_URL"))
        return cls(
            api_key=api_key,
            base_url=base_url,
            model=os.getenv("OPENAI_MODEL", cls.model),
            tts_model=os.getenv("OPENAI_TTS_MODEL", cls.tts_model),
            standard_voice=os.getenv("SPEECH_VOICE_STANDARD", cls.standard_voice),
            red_team_voice=os.getenv("SPEECH_VOICE_RED_TEAM", cls.red_team_voice),
            request_timeout=_env_float("GENERATION_TIMEOUT", cls.request_timeout),
            chunk_timeout=_env_float("STREAM_CHUNK_TIMEOUT", cls.chunk_timeout),
            synthesis_timeout=_env_float("SYNTHESIS_TIMEOUT", cls.synthesis_timeout),
            max_retries=int(_env_float("GENERATION_MAX_RETRIES", cls.max_retries)),
            simulation_mode=_env_flag("SIMULATION_MODE") or (api_key is None and base_url is None),
        )

    def voice_for(self, mode: str) -> str:
        return self.red_team_voice if mode == "red_team" else self.standard_voice
