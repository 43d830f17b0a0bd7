"""Audio sink that plays speech on the connected websocket client."""
from __future__ import annotations

import asyncio
import base64
import json
import logging
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import WebSocket

from services.realtime.speech_playback import PlaybackHandle

LOGGER = logging.getLogger(__name__)


class WebSocketAudioSink:
	"""Forward synthesized audio to the browser and track the active handle."""

	def __init__(self, websocket: WebSocket, mime_type: str = "audio/mpeg") -> None:
		self.websocket = websocket
		self.mime_type = mime_type
		self.current: Optional[PlaybackHandle] = None

	async def play(self, audio: bytes) -> PlaybackHandle:
		handle_id = uuid4().hex
		handle = PlaybackHandle(
			on_stop=lambda: self._schedule({"type": "speech.stop", "handle_id": handle_id}),
			handle_id=handle_id,
		)
		self.current = handle
		await self._send(
			{
				"type": "speech.audio",
				"handle_id": handle.handle_id,
				"mime_type": self.mime_type,
				"audio_b64": base64.b64encode(audio).decode("utf-8"),
			}
		)
		return handle

	def finished(self, handle_id: Optional[str]) -> None:
		"""Mark the current handle finished when the client reports playback ended."""
		handle = self.current
		if handle is not None and (handle_id is None or handle.handle_id == handle_id):
			handle.mark_finished()
			self.current = None

	def _schedule(self, payload: Dict[str, Any]) -> None:
		asyncio.get_running_loop().create_task(self._send(payload))

	async def _send(self, payload: Dict[str, Any]) -> None:
		try:
			await self.websocket.send_text(json.dumps(payload))
		except Exception as exc:
			LOGGER.warning("Unable to deliver %s to websocket: %s", payload.get("type"), exc)
