"""Streaming chat session that grows an assistant turn chunk by chunk."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, List, Optional, Sequence, Union
from uuid import uuid4

from models.session_models import (
	ASSISTANT,
	USER,
	ImageAttachment,
	StreamDone,
	StreamFailed,
	TextChunk,
	Turn,
)
from services.errors import UNAVAILABLE, SessionBusyError
from services.realtime.prompts import image_only_prompt

LOGGER = logging.getLogger(__name__)

STREAM_FAILURE_TEXT = "Error: Generation uplink failed. Ensure the generation backend is running."
IMAGE_ONLY_DISPLAY = "[Image Attached]"

StreamEvent = Union[TextChunk, StreamDone, StreamFailed]
Listener = Callable[[StreamEvent], None]


class GenerationHandle:
	"""Caller-side view of one in-flight streaming generation."""

	def __init__(self, turn_id: str) -> None:
		self.turn_id = turn_id
		self.task: Optional[asyncio.Task] = None
		self.final_turn: Optional[Turn] = None
		self._events: asyncio.Queue = asyncio.Queue()
		self._finished = asyncio.Event()

	@property
	def done(self) -> bool:
		return self._finished.is_set()

	def cancel(self) -> bool:
		"""Request cancellation; returns False when the stream already ended."""
		if self.done or self.task is None or self.task.done():
			return False
		return self.task.cancel()

	async def wait(self) -> Turn:
		"""Wait for the terminal state and return the finalized assistant turn."""
		await self._finished.wait()
		if self.final_turn is None:
			raise RuntimeError(f"Generation {self.turn_id} ended without a final turn")
		return self.final_turn

	async def events(self):
		"""Yield stream events in order, ending with the terminal event."""
		while True:
			event = await self._events.get()
			yield event
			if isinstance(event, (StreamDone, StreamFailed)):
				return

	def __aiter__(self):
		return self.events()

	def _push(self, event: StreamEvent) -> None:
		self._events.put_nowait(event)
		if isinstance(event, (StreamDone, StreamFailed)):
			self.final_turn = event.turn
			self._finished.set()


class ConversationSession:
	"""Own one transcript and at most one streaming generation at a time."""

	def __init__(self, backend, *, topic: str = "", language: str = "en", session_id: Optional[str] = None) -> None:
		if backend is None:
			raise ValueError("Generation backend is required.")
		self.session_id = session_id or uuid4().hex
		self.backend = backend
		self.topic = topic
		self.language = language
		self._turns: List[Turn] = []
		self._lock = threading.Lock()
		self._active: Optional[GenerationHandle] = None
		self._listeners: List[Listener] = []

	@property
	def busy(self) -> bool:
		with self._lock:
			return self._active is not None

	def transcript(self) -> List[Turn]:
		"""Return a snapshot of all turns in insertion order."""
		with self._lock:
			return [turn.snapshot() for turn in self._turns]

	def subscribe(self, listener: Listener) -> Callable[[], None]:
		"""Register a callback for every stream event; returns an unsubscribe function."""
		self._listeners.append(listener)

		def _unsubscribe() -> None:
			if listener in self._listeners:
				self._listeners.remove(listener)

		return _unsubscribe

	def send(self, text: str, image: Optional[ImageAttachment] = None) -> GenerationHandle:
		"""Append the user and placeholder turns and start streaming the reply.

		Raises:
			ValueError: when neither text nor an image is provided.
			SessionBusyError: when a generation is already in flight.
		"""
		text = (text or "").strip()
		if not text and image is None:
			raise ValueError("Message text or an image is required.")
		loop = asyncio.get_running_loop()

		with self._lock:
			if self._active is not None:
				raise SessionBusyError(f"Session {self.session_id} is already generating")
			prior = [turn.snapshot() for turn in self._turns]
			user_turn = Turn(role=USER, text=text or IMAGE_ONLY_DISPLAY, image=image, finalized=True)
			assistant_turn = Turn(role=ASSISTANT)
			self._turns.extend([user_turn, assistant_turn])
			handle = GenerationHandle(assistant_turn.turn_id)
			self._active = handle

		prompt_turn = Turn(role=USER, text=text or image_only_prompt(), turn_id=user_turn.turn_id, finalized=True)
		handle.task = loop.create_task(self._stream(handle, assistant_turn, prior + [prompt_turn], image))
		handle.task.add_done_callback(lambda task: self._settle_unstarted(handle, assistant_turn, task))
		return handle

	def cancel(self) -> bool:
		"""Cancel the in-flight generation, if any."""
		with self._lock:
			handle = self._active
		return handle.cancel() if handle is not None else False

	def reset(self) -> None:
		"""Clear the transcript; only allowed while idle."""
		with self._lock:
			if self._active is not None:
				raise SessionBusyError(f"Session {self.session_id} is already generating")
			self._turns.clear()

	async def _stream(
		self,
		handle: GenerationHandle,
		turn: Turn,
		transcript: Sequence[Turn],
		image: Optional[ImageAttachment],
	) -> None:
		stream = None
		terminal: StreamEvent
		try:
			stream = self.backend.open_stream(transcript, self.topic, self.language, image)
			async for delta in stream:
				if not delta:
					continue
				with self._lock:
					turn.append(delta)
					event = TextChunk(turn_id=turn.turn_id, delta=delta, text=turn.text)
				self._publish(handle, event)
		except asyncio.CancelledError:
			terminal = StreamDone(turn=self._finalize(turn), cancelled=True)
			LOGGER.info("Stream for session %s cancelled after %d chars", self.session_id, len(turn.text))
		except Exception as exc:
			LOGGER.error("Conversation stream failed for session %s: %s", self.session_id, exc)
			terminal = StreamFailed(
				turn=self._finalize(turn, STREAM_FAILURE_TEXT),
				category=getattr(exc, "category", UNAVAILABLE),
				detail=str(exc),
			)
		else:
			terminal = StreamDone(turn=self._finalize(turn))
		finally:
			self._release(handle)
			aclose = getattr(stream, "aclose", None)
			if aclose is not None:
				try:
					await aclose()
				except Exception as exc:
					LOGGER.warning("Closing stream for session %s failed: %s", self.session_id, exc)
		self._publish(handle, terminal)

	def _settle_unstarted(self, handle: GenerationHandle, turn: Turn, task: asyncio.Task) -> None:
		# A task cancelled before its first step never reaches its own handlers.
		if not task.cancelled() or handle.done:
			return
		terminal = StreamDone(turn=self._finalize(turn), cancelled=True)
		self._release(handle)
		self._publish(handle, terminal)

	def _finalize(self, turn: Turn, replacement: Optional[str] = None) -> Turn:
		with self._lock:
			if not turn.finalized:
				if replacement is not None:
					turn.replace_text(replacement)
				turn.finalize()
			return turn.snapshot()

	def _release(self, handle: GenerationHandle) -> None:
		with self._lock:
			if self._active is handle:
				self._active = None

	def _publish(self, handle: GenerationHandle, event: StreamEvent) -> None:
		handle._push(event)
		for listener in list(self._listeners):
			try:
				listener(event)
			except Exception as exc:
				LOGGER.warning("Stream listener raised: %s", exc)
