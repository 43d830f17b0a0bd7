"""Run simulations and detail expansions delivered over the realtime websocket."""
from __future__ import annotations

from typing import Any, Dict, Optional

from services.realtime.expansion_cache import ExpansionKind
from services.realtime.report_shapes import get_shape
from services.realtime.session_store import SessionStore
from services.realtime.speech_playback import SpeechPlaybackController
from services.realtime.structured_pipeline import ScenarioContext


def scenario_from_payload(payload: Dict[str, Any], default_language: str) -> ScenarioContext:
	"""Build a ScenarioContext from a client payload."""
	params = payload.get("params") or {}
	if not isinstance(params, dict):
		raise ValueError("Simulation params must be an object.")
	return ScenarioContext(
		scenario=payload.get("scenario") or "",
		mode=payload.get("mode") or "standard",
		language=payload.get("language") or default_language,
		params=params,
	)


class SimulationMessageHandler:
	"""Generate structured reports and on-demand detail expansions."""

	def __init__(self, store: SessionStore, playback: Optional[SpeechPlaybackController] = None) -> None:
		self.store = store
		self.playback = playback

	async def run(self, session_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
		"""Return the rendered report for a new simulation run."""
		workspace = self.store.get(session_id)
		context = scenario_from_payload(payload, workspace.conversation.language)
		shape = get_shape(payload.get("shape") or "strategy_simulation")
		speak = bool(payload.get("speak", True))
		report = await workspace.simulation.run(context, shape, playback=self.playback if speak else None)
		return {"type": "simulation.report", "report": report.rendered()}

	async def expand(self, session_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
		"""Return an expansion, toggling visibility when it was already shown."""
		workspace = self.store.get(session_id)
		kind = ExpansionKind(payload.get("kind") or ExpansionKind.RISK.value)
		result, visible = await workspace.simulation.toggle_detail(payload.get("label") or "", kind)
		return {
			"type": "simulation.detail",
			"label": result.label,
			"kind": kind.value,
			"text": result.text,
			"from_cache": result.from_cache,
			"visible": visible,
		}
