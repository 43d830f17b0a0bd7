"""Session lifecycle and one-shot generation helpers for the REST routes."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request

from services.errors import GenerationError, SessionBusyError
from services.realtime.expansion_cache import ExpansionKind
from services.realtime.report_shapes import get_shape
from services.realtime.session_store import SessionStore, SessionWorkspace
from services.realtime.structured_pipeline import ScenarioContext


def _store(request: Request) -> SessionStore:
	store: Optional[SessionStore] = getattr(request.app.state, "session_store", None)
	if store is None:
		raise HTTPException(status_code=500, detail="Session store unavailable")
	return store


def _workspace(request: Request, session_id: str) -> SessionWorkspace:
	try:
		return _store(request).get(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=f"Session {session_id} not found") from exc


def _generation_failure(exc: GenerationError) -> HTTPException:
	return HTTPException(status_code=503, detail={"category": exc.category, "message": str(exc)})


async def start_session(request: Request, topic: str, language: str) -> Dict[str, Any]:
	"""Create a new session and return its id."""
	workspace = _store(request).create(topic=topic, language=language)
	conversation = workspace.conversation
	return {"session_id": workspace.session_id, "topic": conversation.topic, "language": conversation.language}


async def list_turns(request: Request, session_id: str) -> Dict[str, Any]:
	"""Return the transcript snapshot for a session."""
	workspace = _workspace(request, session_id)
	turns: List[Dict[str, Any]] = [turn.as_dict() for turn in workspace.conversation.transcript()]
	return {"session_id": session_id, "busy": workspace.conversation.busy, "turns": turns}


async def cancel_generation(request: Request, session_id: str) -> Dict[str, Any]:
	"""Cancel the in-flight chat generation, if any."""
	workspace = _workspace(request, session_id)
	return {"session_id": session_id, "cancelled": workspace.conversation.cancel()}


async def reset_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Clear a session's transcript while it is idle."""
	workspace = _workspace(request, session_id)
	try:
		workspace.conversation.reset()
	except SessionBusyError as exc:
		raise HTTPException(status_code=409, detail=str(exc)) from exc
	return {"session_id": session_id, "turns": []}


async def close_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Discard a session and cancel its in-flight generation."""
	try:
		_store(request).close(session_id)
	except KeyError as exc:
		raise HTTPException(status_code=404, detail=f"Session {session_id} not found") from exc
	return {"session_id": session_id, "closed": True}


async def run_simulation(
	request: Request,
	session_id: str,
	scenario: str,
	mode: str,
	params: Dict[str, Any],
	shape_name: str,
	language: Optional[str] = None,
) -> Dict[str, Any]:
	"""Generate a structured report for a new scenario."""
	workspace = _workspace(request, session_id)
	try:
		context = ScenarioContext(
			scenario=scenario,
			mode=mode,
			language=language or workspace.conversation.language,
			params=params,
		)
		report = await workspace.simulation.run(context, get_shape(shape_name))
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	except GenerationError as exc:
		raise _generation_failure(exc) from exc
	return {"session_id": session_id, "report": report.rendered()}


async def expand_detail(request: Request, session_id: str, label: str, kind: str) -> Dict[str, Any]:
	"""Return the expansion for a report item, fetching it at most once per scenario."""
	workspace = _workspace(request, session_id)
	try:
		result = await workspace.simulation.expand(label, ExpansionKind(kind))
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	except GenerationError as exc:
		raise _generation_failure(exc) from exc
	return {"label": result.label, "kind": kind, "text": result.text, "from_cache": result.from_cache}
