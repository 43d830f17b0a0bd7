"""Output shapes requested from the structured generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class ReportShape:
	"""Instruction and JSON schema describing one report kind."""

	name: str
	system: str
	instruction: str
	schema: Dict[str, Any] = field(default_factory=dict)


STRATEGY_SIMULATION = ReportShape(
	name="strategy_simulation",
	system="You are a military strategic AI. Output STRICT JSON only.",
	instruction="Simulate a military strategy for the scenario below.",
	schema={
		"title": "Operation name",
		"summary": "Executive summary",
		"adversary_analysis": {
			"profile": "Adversary type",
			"perception_filter": "How the adversary views the situation",
			"likely_response": "Expected adversary action",
			"red_lines": ["Line 1", "Line 2"],
		},
		"cross_domain_matrix": {
			"military_readiness": "0-10",
			"diplomatic_trust": "0-10",
			"economic_cost": "0-10",
			"domestic_morale": "0-10",
			"legal_compliance": "0-10",
		},
		"resource_impact": {
			"fuel_depletion": "0-100",
			"ammo_depletion": "0-100",
			"budget_burn": "0-100",
			"manpower_stress": "0-100",
		},
		"strategic_options": [
			{
				"id": "opt1",
				"name": "Name",
				"description": "Description",
				"deterrence_score": "0-100",
				"cost_projection": "Low/Med/High",
				"civilian_risk": "Low/Med/High",
				"win_probability": "0-100",
			}
		],
		"risks": [{"label": "Risk name", "severity": "Low/Med/High", "description": "Why it matters"}],
		"recommendations": [{"action": "Recommended action", "priority": "Low/Med/High"}],
		"rationale": "Reasoning",
		"outcome_vector": "Predicted outcome",
	},
)

STRATEGY_RECOMMENDATION = ReportShape(
	name="strategy_recommendation",
	system="You are a strategist. Output STRICT JSON only.",
	instruction="Recommend a military strategy for the situation below.",
	schema={
		"title": "Strategy name",
		"summary": "One-paragraph summary",
		"recommended_strategy": "Name",
		"rationale": "Reason",
		"principle_application": [{"principle": "Principle name", "application": "How to apply"}],
		"operational_approach": [{"phase": "1", "name": "Phase name", "description": "Step"}],
	},
)

SHAPES: Dict[str, ReportShape] = {
	STRATEGY_SIMULATION.name: STRATEGY_SIMULATION,
	STRATEGY_RECOMMENDATION.name: STRATEGY_RECOMMENDATION,
}


def get_shape(name: str) -> ReportShape:
	"""Return a registered shape or raise ValueError for unknown names."""
	shape = SHAPES.get(name)
	if shape is None:
		raise ValueError(f"Unknown report shape: '{name}'")
	return shape
