"""FastAPI routes for session lifecycle, simulations and detail expansion."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from controllers.session_controller import (
	cancel_generation,
	close_session,
	expand_detail,
	list_turns,
	reset_session,
	run_simulation,
	start_session,
)

router = APIRouter(prefix="/sessions")


class StartPayload(BaseModel):
	topic: str = ""
	language: str = "en"


class SimulationPayload(BaseModel):
	scenario: str
	mode: str = "standard"
	language: Optional[str] = None
	shape: str = "strategy_simulation"
	params: Dict[str, Any] = Field(default_factory=dict)


class ExpansionPayload(BaseModel):
	label: str
	kind: str = "risk"


@router.post("")
async def start_session_route(request: Request, payload: StartPayload):
	try:
		return await start_session(request, payload.topic, payload.language)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{session_id}/turns")
async def list_turns_route(request: Request, session_id: str):
	return await list_turns(request, session_id)


@router.post("/{session_id}/cancel")
async def cancel_route(request: Request, session_id: str):
	return await cancel_generation(request, session_id)


@router.post("/{session_id}/reset")
async def reset_route(request: Request, session_id: str):
	return await reset_session(request, session_id)


@router.delete("/{session_id}")
async def close_session_route(request: Request, session_id: str):
	return await close_session(request, session_id)


@router.post("/{session_id}/simulations")
async def simulation_route(request: Request, session_id: str, payload: SimulationPayload):
	try:
		return await run_simulation(
			request,
			session_id,
			payload.scenario,
			payload.mode,
			payload.params,
			payload.shape,
			payload.language,
		)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/{session_id}/expansions")
async def expansion_route(request: Request, session_id: str, payload: ExpansionPayload):
	try:
		return await expand_detail(request, session_id, payload.label, payload.kind)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
