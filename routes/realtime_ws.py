"""WebSocket endpoint for chat streaming, simulations and speech playback."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from services.realtime.session_store import SessionStore
from services.realtime.ws_session import RealtimeSessionHandler

router = APIRouter()


def _require_session_store(websocket: WebSocket) -> SessionStore:
	store = getattr(websocket.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


@router.websocket("/ws/{session_id}")
async def realtime_socket(websocket: WebSocket, session_id: str, store: SessionStore = Depends(_require_session_store)):
	"""Handle one dashboard session's realtime traffic over a single websocket."""
	await websocket.accept()
	try:
		store.get(session_id)
	except KeyError:
		await websocket.send_text(json.dumps({"type": "error", "category": "not_found", "detail": "Session not found"}))
		await websocket.close()
		return

	handler = RealtimeSessionHandler(store, websocket, getattr(websocket.app.state, "config", None))
	try:
		while True:
			try:
				raw = await websocket.receive_text()
			except WebSocketDisconnect:
				break
			try:
				payload = json.loads(raw)
			except json.JSONDecodeError:
				await websocket.send_text(
					json.dumps({"type": "error", "category": "invalid_request", "detail": "Payload must be JSON"})
				)
				continue
			if not isinstance(payload, dict):
				await websocket.send_text(
					json.dumps({"type": "error", "category": "invalid_request", "detail": "Payload must be an object"})
				)
				continue
			await handler.handle(session_id, payload)
	finally:
		await handler.close(session_id)
