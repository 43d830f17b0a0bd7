"""Dispatch realtime websocket events to the appropriate handlers."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Dict, Optional, Set

from fastapi import WebSocket

from services.errors import GenerationError, SessionBusyError
from services.realtime.session_store import SessionStore
from services.realtime.speech_playback import SpeechPlaybackController
from services.realtime.ws_conversation import ConversationMessageHandler
from services.realtime.ws_simulation import SimulationMessageHandler
from services.realtime.ws_speech import WebSocketAudioSink
from utils.config import OrchestratorConfig

LOGGER = logging.getLogger(__name__)


def error_category(exc: Exception) -> str:
	"""Return the stable error category reported to the client."""
	if isinstance(exc, GenerationError):
		return exc.category
	if isinstance(exc, SessionBusyError):
		return "busy"
	if isinstance(exc, KeyError):
		return "not_found"
	if isinstance(exc, ValueError):
		return "invalid_request"
	return "internal"


class RealtimeSessionHandler:
	"""Route websocket messages for a single dashboard session connection."""

	def __init__(self, store: SessionStore, websocket: WebSocket, config: Optional[OrchestratorConfig] = None) -> None:
		config = config or OrchestratorConfig()
		self.store = store
		self.websocket = websocket
		self.sink = WebSocketAudioSink(websocket)
		self.playback = SpeechPlaybackController(
			store.backend,
			self.sink,
			standard_voice=config.standard_voice,
			red_team_voice=config.red_team_voice,
		)
		self.conversation_handler = ConversationMessageHandler(store)
		self.simulation_handler = SimulationMessageHandler(store, self.playback)
		self._tasks: Set[asyncio.Task] = set()

	async def handle(self, session_id: str, payload: Dict[str, Any]) -> None:
		"""Process a single inbound websocket payload without blocking on generation."""
		request_id = payload.get("request_id")
		message_type = payload.get("type")
		try:
			if message_type == "conversation.send":
				handle = self.conversation_handler.send(session_id, payload)
				self._spawn(request_id, self.conversation_handler.forward(handle, self._send, request_id))
				result = {"type": "conversation.accepted", "turn_id": handle.turn_id}
			elif message_type == "conversation.cancel":
				result = self.conversation_handler.cancel(session_id)
			elif message_type == "simulation.run":
				self._spawn(request_id, self.simulation_handler.run(session_id, payload), reply=True)
				result = None
			elif message_type == "simulation.expand":
				self._spawn(request_id, self.simulation_handler.expand(session_id, payload), reply=True)
				result = None
			elif message_type == "speech.stop":
				self.playback.stop()
				result = {"type": "speech.state", "state": self.playback.state}
			elif message_type == "speech.ended":
				self.sink.finished(payload.get("handle_id"))
				result = {"type": "speech.state", "state": self.playback.state}
			else:
				raise ValueError("Unsupported message type.")
			if result is not None:
				result["request_id"] = request_id
				await self._send(result)
		except Exception as exc:
			await self._send_error(request_id, exc)

	async def close(self, session_id: str) -> None:
		"""Stop playback and cancel outstanding work when the socket closes."""
		self.playback.stop()
		try:
			self.store.get(session_id).conversation.cancel()
		except KeyError:
			pass
		for task in list(self._tasks):
			task.cancel()
		if self._tasks:
			await asyncio.gather(*self._tasks, return_exceptions=True)

	def _spawn(self, request_id: Any, work: Awaitable[Optional[Dict[str, Any]]], reply: bool = False) -> None:
		async def _runner() -> None:
			try:
				result = await work
				if reply and result is not None:
					result["request_id"] = request_id
					await self._send(result)
			except Exception as exc:
				await self._send_error(request_id, exc)

		task = asyncio.get_running_loop().create_task(_runner())
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)

	async def _send_error(self, request_id: Any, exc: Exception) -> None:
		if not isinstance(exc, (ValueError, KeyError, SessionBusyError)):
			logging.error("Realtime request %s failed: %s", request_id, exc)
		await self._send(
			{"type": "error", "request_id": request_id, "category": error_category(exc), "detail": str(exc)}
		)

	async def _send(self, payload: Dict[str, Any]) -> None:
		await self.websocket.send_text(json.dumps(payload))
