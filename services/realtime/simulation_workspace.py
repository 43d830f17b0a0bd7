"""Tie one session's simulation run, detail expansions and briefing playback together."""

from __future__ import annotations

import logging
from typing import Optional, Set, Tuple

from models.report_models import StructuredReport
from services.realtime.expansion_cache import DetailExpansionCache, ExpansionKind, ExpansionResult
from services.realtime.report_shapes import STRATEGY_SIMULATION, ReportShape
from services.realtime.speech_playback import SpeechPlaybackController
from services.realtime.structured_pipeline import ScenarioContext, StructuredGenerationPipeline

LOGGER = logging.getLogger(__name__)


class SimulationWorkspace:
	"""Hold the latest report for a session and the expansions scoped to it."""

	def __init__(self, backend) -> None:
		self.pipeline = StructuredGenerationPipeline(backend)
		self.cache = DetailExpansionCache(backend)
		self.context: Optional[ScenarioContext] = None
		self.report: Optional[StructuredReport] = None
		self._shown: Set[str] = set()
		self._run = 0

	async def run(
		self,
		context: ScenarioContext,
		shape: ReportShape = STRATEGY_SIMULATION,
		playback: Optional[SpeechPlaybackController] = None,
	) -> StructuredReport:
		"""Start a new scenario: stop playback, drop old expansions, generate, brief.

		A run overtaken by a later one returns its report without storing or
		briefing it.
		"""
		if not context.scenario:
			raise ValueError("Scenario text is required.")
		if playback is not None:
			playback.stop()
		self._run += 1
		run = self._run
		self.cache.reset(context.scenario, context.mode)
		self._shown.clear()
		self.context = context
		self.report = None

		report = await self.pipeline.generate(context, shape)
		if run != self._run:
			LOGGER.info("Discarding report for superseded scenario '%s'", context.scenario)
			return report
		self.report = report
		LOGGER.info("Simulation '%s' complete (parse_failed=%s)", report.title, report.parse_failed)
		if playback is not None:
			playback.speak(report, context.mode)
		return report

	async def expand(self, label: str, kind: ExpansionKind = ExpansionKind.RISK) -> ExpansionResult:
		if self.context is None:
			raise ValueError("Run a simulation before expanding details.")
		return await self.cache.expand(label, kind)

	async def toggle_detail(self, label: str, kind: ExpansionKind = ExpansionKind.RISK) -> Tuple[ExpansionResult, bool]:
		"""Expand `label`, or hide it when it is already shown. Returns (result, visible)."""
		result = await self.expand(label, kind)
		if result.from_cache and result.label in self._shown:
			self._shown.discard(result.label)
			return result, False
		self._shown.add(result.label)
		return result, True
