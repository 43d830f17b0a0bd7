"""Handle chat streaming events coming over the realtime websocket."""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional

from models.session_models import StreamDone, StreamFailed, TextChunk
from services.realtime.conversation_session import GenerationHandle, StreamEvent
from services.realtime.session_store import SessionStore
from utils.media_validation import decode_image_attachment

Sender = Callable[[Dict[str, Any]], Awaitable[None]]


def event_payload(event: StreamEvent) -> Dict[str, Any]:
	"""Serialize a stream event for the websocket client."""
	if isinstance(event, TextChunk):
		return {"type": "conversation.chunk", "turn_id": event.turn_id, "delta": event.delta, "text": event.text}
	if isinstance(event, StreamFailed):
		return {
			"type": "conversation.failed",
			"turn": event.turn.as_dict(),
			"category": event.category,
			"detail": event.detail,
		}
	if isinstance(event, StreamDone):
		return {"type": "conversation.done", "turn": event.turn.as_dict(), "cancelled": event.cancelled}
	raise TypeError(f"Unknown stream event: {event!r}")


class ConversationMessageHandler:
	"""Start, forward and cancel streaming chat generations."""

	def __init__(self, store: SessionStore) -> None:
		self.store = store

	def send(self, session_id: str, payload: Dict[str, Any]) -> GenerationHandle:
		"""Start a generation; the caller forwards the handle's events."""
		session = self.store.get(session_id).conversation
		text = payload.get("text") or ""
		image = None
		image_b64 = (payload.get("image_b64") or "").strip()
		if image_b64:
			image = decode_image_attachment(image_b64, payload.get("mime_type"))
		return session.send(text, image)

	async def forward(self, handle: GenerationHandle, send: Sender, request_id: Optional[Any] = None) -> None:
		"""Push every event of `handle` to the client in order."""
		async for event in handle:
			message = event_payload(event)
			message["request_id"] = request_id
			await send(message)

	def cancel(self, session_id: str) -> Dict[str, Any]:
		cancelled = self.store.get(session_id).conversation.cancel()
		return {"type": "conversation.cancel.ack", "cancelled": cancelled}
