"""One-shot structured report generation with a raw-text fallback."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict

from models.report_models import StructuredReport
from services.realtime.prompts import simulation_prompt
from services.realtime.report_shapes import STRATEGY_SIMULATION, ReportShape
from services.realtime.response_parser import decode_report

LOGGER = logging.getLogger(__name__)

MODES = ("standard", "red_team")


@dataclass
class ScenarioContext:
	"""Situational input and categorical parameters for one simulation run."""

	scenario: str
	mode: str = "standard"
	language: str = "en"
	params: Dict[str, Any] = field(default_factory=dict)

	def __post_init__(self) -> None:
		self.scenario = (self.scenario or "").strip()
		if self.mode not in MODES:
			raise ValueError(f"Unsupported simulation mode: '{self.mode}'")


class StructuredGenerationPipeline:
	"""Request a report in a declared JSON shape and decode it defensively."""

	def __init__(self, backend) -> None:
		if backend is None:
			raise ValueError("Generation backend is required.")
		self.backend = backend

	async def generate(self, context: ScenarioContext, shape: ReportShape = STRATEGY_SIMULATION) -> StructuredReport:
		"""Return the decoded report, or the fallback report when decoding fails.

		Raises:
			ValueError: when the scenario text is empty.
			GenerationError: when the backend call itself fails.
		"""
		if not context.scenario:
			raise ValueError("Scenario text is required.")

		prompt = simulation_prompt(
			scenario=context.scenario,
			mode=context.mode,
			language=context.language,
			params=context.params,
			instruction=shape.instruction,
			schema=shape.schema,
		)
		start = time.time()
		raw_text = await self.backend.generate_once(prompt, system=shape.system, json_mode=True) or ""
		LOGGER.info("Structured generation '%s' latency: %.3fs", shape.name, time.time() - start)

		try:
			return decode_report(raw_text)
		except (ValueError, json.JSONDecodeError) as exc:
			LOGGER.warning("Report decode failed for '%s', using raw text fallback: %s", shape.name, exc)
			return StructuredReport.fallback(raw_text)
