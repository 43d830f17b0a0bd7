"""Generation backend built on the OpenAI Responses and speech APIs."""

import asyncio
import base64
import logging
import random
import time
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Sequence

from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    RateLimitError,
)

from models.session_models import ASSISTANT, ImageAttachment, Turn
from services.errors import MALFORMED_STREAM, TIMEOUT, UNAVAILABLE, GenerationError
from services.realtime.prompts import chat_system_prompt
from services.realtime.response_parser import extract_text, extract_usage
from utils.config import OrchestratorConfig

LOGGER = logging.getLogger(__name__)

TEXT_DELTA_EVENT = "response.output_text.delta"
FAILURE_EVENTS = {"error", "response.failed", "response.incomplete"}


class GenerationBackend(Protocol):
    """Capabilities the orchestration services need from a model provider."""

    def open_stream(
        self,
        transcript: Sequence[Turn],
        topic: str,
        language: str,
        image: Optional[ImageAttachment] = None,
    ) -> AsyncIterator[str]: ...

    async def generate_once(self, prompt: str, *, system: Optional[str] = None, json_mode: bool = False) -> str: ...

    async def synthesize(self, script: str, voice: str) -> Optional[bytes]: ...


def _data_url(image: ImageAttachment) -> str:
    encoded = base64.b64encode(image.data).decode("utf-8")
    return f"data:{image.mime_type};base64,{encoded}"


def _message(role: str, text: str) -> Dict[str, Any]:
    content_type = "output_text" if role == ASSISTANT else "input_text"
    return {"type": "message", "role": role, "content": [{"type": content_type, "text": text}]}


def build_chat_input(
    transcript: Sequence[Turn],
    topic: str,
    language: str,
    image: Optional[ImageAttachment] = None,
) -> List[Dict[str, Any]]:
    """Build the Responses input for a chat turn.

    The last turn in `transcript` is the new user input; `image`, when given,
    is attached to it.
    """
    inputs = [_message("system", chat_system_prompt(topic, language))]
    for turn in transcript[:-1]:
        if turn.text:
            inputs.append(_message(turn.role, turn.text))
    if transcript:
        current = _message(transcript[-1].role, transcript[-1].text)
        if image is not None:
            current["content"].append({"type": "input_image", "image_url": _data_url(image)})
        inputs.append(current)
    return inputs


def classify_error(exc: BaseException) -> GenerationError:
    """Map a client exception onto a GenerationError category."""
    if isinstance(exc, GenerationError):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, APITimeoutError)):
        return GenerationError(f"Generation backend timed out: {exc}", category=TIMEOUT)
    if isinstance(exc, (APIConnectionError, APIStatusError)):
        return GenerationError(f"Generation backend unavailable: {exc}", category=UNAVAILABLE)
    if isinstance(exc, APIError):
        return GenerationError(f"Generation backend error: {exc}", category=MALFORMED_STREAM)
    return GenerationError(f"Generation request failed: {exc}", category=UNAVAILABLE)


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (asyncio.TimeoutError, APITimeoutError, APIConnectionError, RateLimitError)):
        return True
    return isinstance(exc, APIStatusError) and exc.status_code >= 500


class GenerationClient:
    """Issue streaming, one-shot and speech requests against an OpenAI-compatible API."""

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str = "gpt-5",
        tts_model: str = "gpt-4o-mini-tts",
        request_timeout: float = 30.0,
        chunk_timeout: float = 20.0,
        synthesis_timeout: float = 30.0,
        max_retries: int = 2,
        retry_base_delay: float = 1.0,
    ) -> None:
        if client is None:
            raise ValueError("AsyncOpenAI client is required.")
        self.client = client
        self.model = model
        self.tts_model = tts_model
        self.request_timeout = request_timeout
        self.chunk_timeout = chunk_timeout
        self.synthesis_timeout = synthesis_timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay

    @classmethod
    def from_config(cls, config: OrchestratorConfig) -> "GenerationClient":
        client = AsyncOpenAI(
            api_key=config.api_key or "not-needed",
            base_url=config.base_url,
            timeout=config.request_timeout,
            max_retries=0,
        )
        return cls(
            client,
            model=config.model,
            tts_model=config.tts_model,
            request_timeout=config.request_timeout,
            chunk_timeout=config.chunk_timeout,
            synthesis_timeout=config.synthesis_timeout,
            max_retries=config.max_retries,
        )

    async def open_stream(
        self,
        transcript: Sequence[Turn],
        topic: str,
        language: str,
        image: Optional[ImageAttachment] = None,
    ) -> AsyncIterator[str]:
        """Yield text deltas for the assistant reply.

        Raises:
            GenerationError: when the backend fails, stalls past the chunk
                timeout, or reports a failed response mid-stream.
        """
        inputs = build_chat_input(transcript, topic, language, image)
        try:
            async with self.client.responses.stream(model=self.model, input=inputs) as stream:
                events = stream.__aiter__()
                while True:
                    try:
                        event = await asyncio.wait_for(events.__anext__(), timeout=self.chunk_timeout)
                    except StopAsyncIteration:
                        break
                    event_type = getattr(event, "type", None)
                    if event_type == TEXT_DELTA_EVENT:
                        delta = getattr(event, "delta", "") or ""
                        if delta:
                            yield delta
                    elif event_type in FAILURE_EVENTS:
                        raise GenerationError(
                            f"Stream reported '{event_type}'", category=MALFORMED_STREAM
                        )
        except Exception as exc:
            error = classify_error(exc)
            if error is not exc:
                logging.error("OpenAI streaming request failed: %s", exc)
                raise error from exc
            raise

    async def generate_once(self, prompt: str, *, system: Optional[str] = None, json_mode: bool = False) -> str:
        """Return the full text of a single non-streaming generation."""
        inputs = []
        if system:
            inputs.append(_message("system", system))
        inputs.append(_message("user", prompt))
        kwargs: Dict[str, Any] = {"model": self.model, "input": inputs}
        if json_mode:
            kwargs["text"] = {"format": {"type": "json_object"}}

        start = time.time()
        attempt = 0
        while True:
            try:
                response = await asyncio.wait_for(
                    self.client.responses.create(**kwargs), timeout=self.request_timeout
                )
                break
            except Exception as exc:
                if attempt >= self.max_retries or not _is_transient(exc):
                    logging.error("OpenAI Responses API error: %s", exc)
                    raise classify_error(exc) from exc
                delay = self.retry_base_delay * (2 ** attempt) * random.uniform(0.8, 1.2)
                LOGGER.warning("Transient generation failure (%s); retrying in %.1fs", exc, delay)
                await asyncio.sleep(delay)
                attempt += 1

        LOGGER.info(
            "One-shot generation latency: %.3fs usage=%s", time.time() - start, extract_usage(response)
        )
        return extract_text(response)

    async def synthesize(self, script: str, voice: str) -> Optional[bytes]:
        """Return synthesized speech audio, or None when synthesis fails."""
        if not script.strip():
            return None
        try:
            response = await asyncio.wait_for(
                self.client.audio.speech.create(model=self.tts_model, voice=voice, input=script),
                timeout=self.synthesis_timeout,
            )
        except (asyncio.TimeoutError, APIError) as exc:
            logging.error("OpenAI speech synthesis failed: %s", exc)
            return None
        audio = getattr(response, "content", None)
        return audio or None
