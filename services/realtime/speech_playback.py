"""Single-flight speech playback of structured report briefings."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Protocol
from uuid import uuid4

from models.report_models import StructuredReport

LOGGER = logging.getLogger(__name__)

SCRIPT_SUMMARY_LIMIT = 500

IDLE = "idle"
SYNTHESIZING = "synthesizing"
PLAYING = "playing"


def build_script(report: StructuredReport, mode: str = "standard") -> str:
	"""Return a bounded briefing script for a report."""
	intro = "Nemesis Omega analysis complete." if mode == "red_team" else "Aegis Prime analysis complete."
	title = report.scalar_text("title") or "Simulation Report"
	outcome = report.scalar_text("outcome_vector")
	summary = report.scalar_text("summary") or "Analysis data available on screen."
	if len(summary) > SCRIPT_SUMMARY_LIMIT:
		summary = summary[:SCRIPT_SUMMARY_LIMIT] + "..."

	risk_line = ""
	risks = report.items("risks")
	if risks and isinstance(risks[0], dict) and isinstance(risks[0].get("label"), str):
		risk_line = f"Primary Factor: {risks[0]['label']}."

	parts = [intro, f"{title}.", f"Projected Outcome: {outcome}." if outcome else "", summary, risk_line]
	return " ".join(part for part in parts if part)


class PlaybackHandle:
	"""One active audio output. Stopping or finishing it is idempotent."""

	def __init__(self, on_stop: Optional[Callable[[], None]] = None, handle_id: Optional[str] = None) -> None:
		self.handle_id = handle_id or uuid4().hex
		self.stopped = False
		self.finished = False
		self._on_stop = on_stop
		self._callbacks: List[Callable[["PlaybackHandle"], None]] = []

	@property
	def active(self) -> bool:
		return not (self.stopped or self.finished)

	def add_done_callback(self, callback: Callable[["PlaybackHandle"], None]) -> None:
		self._callbacks.append(callback)

	def stop(self) -> None:
		if not self.active:
			return
		self.stopped = True
		if self._on_stop is not None:
			self._on_stop()
		self._notify()

	def mark_finished(self) -> None:
		"""Record that the output played to its end."""
		if not self.active:
			return
		self.finished = True
		self._notify()

	def _notify(self) -> None:
		for callback in list(self._callbacks):
			callback(self)


class AudioSink(Protocol):
	"""Output device that starts playing audio and returns its handle."""

	async def play(self, audio: bytes) -> PlaybackHandle: ...


class SpeechPlaybackController:
	"""Synthesize and play report briefings, never overlapping two playbacks."""

	def __init__(
		self,
		backend,
		sink: AudioSink,
		*,
		standard_voice: str = "alloy",
		red_team_voice: str = "onyx",
	) -> None:
		if backend is None:
			raise ValueError("Generation backend is required.")
		if sink is None:
			raise ValueError("Audio sink is required.")
		self.backend = backend
		self.sink = sink
		self.standard_voice = standard_voice
		self.red_team_voice = red_team_voice
		self.script: Optional[str] = None
		self._handle: Optional[PlaybackHandle] = None
		self._pending: Optional[asyncio.Task] = None
		self._generation = 0

	@property
	def state(self) -> str:
		if self._handle is not None and self._handle.active:
			return PLAYING
		if self._pending is not None and not self._pending.done():
			return SYNTHESIZING
		return IDLE

	@property
	def handle(self) -> Optional[PlaybackHandle]:
		return self._handle

	def speak(self, report: Optional[StructuredReport], mode: str = "standard") -> asyncio.Task:
		"""Stop any current playback and start briefing `report`.

		Returns the background task that resolves to the new handle, or None
		when no audio was produced or the request was superseded.
		"""
		if report is None:
			raise ValueError("A report is required for playback.")
		self.stop()
		script = build_script(report, mode)
		voice = self.red_team_voice if mode == "red_team" else self.standard_voice
		self.script = script
		generation = self._generation
		self._pending = asyncio.get_running_loop().create_task(self._synthesize_and_play(script, voice, generation))
		return self._pending

	def stop(self) -> None:
		"""Halt playback and any pending synthesis. Safe to call when idle."""
		self._generation += 1
		pending, self._pending = self._pending, None
		if pending is not None and not pending.done():
			pending.cancel()
		handle, self._handle = self._handle, None
		if handle is not None:
			handle.stop()

	async def _synthesize_and_play(self, script: str, voice: str, generation: int) -> Optional[PlaybackHandle]:
		try:
			audio = await self.backend.synthesize(script, voice)
		except Exception as exc:
			logging.error("Speech synthesis failed: %s", exc)
			audio = None

		if generation != self._generation:
			return None
		if not audio:
			LOGGER.info("Speech synthesis returned no audio; playback stays idle")
			self._pending = None
			return None

		handle = await self.sink.play(audio)
		if generation != self._generation:
			handle.stop()
			return None
		self._pending = None
		self._handle = handle
		handle.add_done_callback(self._on_handle_done)
		return handle

	def _on_handle_done(self, handle: PlaybackHandle) -> None:
		if self._handle is handle:
			self._handle = None
