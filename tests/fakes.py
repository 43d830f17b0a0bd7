"""Scripted stand-ins for the generation backend and audio output."""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Union

from services.realtime.speech_playback import PlaybackHandle


class FakeBackend:
    """Generation backend whose streams, one-shot replies and audio are scripted.

    - `chunks` are yielded in order; when `hold_after` is set the stream waits
      on `release` after that many chunks.
    - `stream_error` is raised after the chunks are exhausted.
    - `once_reply` is a string, a list consumed in order, or a callable of the prompt.
    - `once_gate` / `synth_gate`, when set, block the call until released.
    """

    def __init__(
        self,
        chunks: Optional[List[str]] = None,
        *,
        once_reply: Union[str, List[str], Callable[[str], str]] = "{}",
        audio: Optional[bytes] = b"audio",
    ) -> None:
        self.chunks = list(chunks or [])
        self.hold_after: Optional[int] = None
        self.release = asyncio.Event()
        self.stream_error: Optional[BaseException] = None
        self.stream_calls: List[Dict[str, Any]] = []
        self.streams_closed = 0

        self.once_reply = once_reply
        self.once_error: Optional[BaseException] = None
        self.once_gate: Optional[asyncio.Event] = None
        self.once_calls: List[Dict[str, Any]] = []

        self.audio = audio
        self.synth_error: Optional[BaseException] = None
        self.synth_gate: Optional[asyncio.Event] = None
        self.synth_calls: List[Dict[str, Any]] = []

    async def open_stream(self, transcript, topic, language, image=None):
        self.stream_calls.append(
            {"transcript": list(transcript), "topic": topic, "language": language, "image": image}
        )
        try:
            for index, chunk in enumerate(self.chunks):
                if self.hold_after is not None and index == self.hold_after:
                    await self.release.wait()
                yield chunk
                await asyncio.sleep(0)
            if self.stream_error is not None:
                raise self.stream_error
        finally:
            self.streams_closed += 1

    async def generate_once(self, prompt: str, *, system: Optional[str] = None, json_mode: bool = False) -> str:
        self.once_calls.append({"prompt": prompt, "system": system, "json_mode": json_mode})
        if self.once_gate is not None:
            await self.once_gate.wait()
        if self.once_error is not None:
            raise self.once_error
        if callable(self.once_reply):
            return self.once_reply(prompt)
        if isinstance(self.once_reply, list):
            return self.once_reply.pop(0)
        return self.once_reply

    async def synthesize(self, script: str, voice: str) -> Optional[bytes]:
        self.synth_calls.append({"script": script, "voice": voice})
        if self.synth_gate is not None:
            await self.synth_gate.wait()
        if self.synth_error is not None:
            raise self.synth_error
        if self.audio is None:
            return None
        return self.audio + b":" + script.encode("utf-8")


class FakeSink:
    """Audio output that records every playback it starts."""

    def __init__(self) -> None:
        self.played: List[bytes] = []
        self.handles: List[PlaybackHandle] = []

    async def play(self, audio: bytes) -> PlaybackHandle:
        handle = PlaybackHandle()
        self.played.append(audio)
        self.handles.append(handle)
        return handle

    def active_handles(self) -> List[PlaybackHandle]:
        return [handle for handle in self.handles if handle.active]
