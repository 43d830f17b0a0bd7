"""Prompt helpers for chat streaming, structured simulations and detail expansion."""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping


def chat_system_prompt(topic: str, language: str) -> str:
	"""Return the assistant system prompt scoped to the calling view."""
	return (
		"You are SLAS, the Smart Leadership Assistant System for a defence command dashboard. "
		f"Current context: {topic or 'General'}. "
		f"User language: {language or 'en'}. "
		"Be tactical, concise and authoritative. Provide analysis the operator can act on."
	)


def image_only_prompt() -> str:
	return "Analyze this image."


def simulation_prompt(
	*,
	scenario: str,
	mode: str,
	language: str,
	params: Mapping[str, Any],
	instruction: str,
	schema: Mapping[str, Any],
) -> str:
	"""Return the one-shot prompt embedding inputs and the expected output shape."""
	team = "Red Team (adversary perspective)" if mode == "red_team" else "Blue Team (friendly perspective)"
	params_block = json.dumps(dict(params), indent=2, ensure_ascii=False, default=str) if params else "{}"
	schema_block = json.dumps(dict(schema), indent=2, ensure_ascii=False)
	return (
		f"{instruction}\n\n"
		f"Scenario: {scenario}\n"
		f"Mode: {team}\n"
		f"Language: {language or 'en'}\n"
		f"Parameters:\n{params_block}\n\n"
		"Return a JSON object with this exact schema and no surrounding text:\n"
		f"{schema_block}"
	)


def expansion_system_prompt() -> str:
	return "You are a simulation engine. Expand on one item of an existing analysis."


def expansion_prompt(*, scenario: str, label: str, kind: str, mode: str) -> str:
	"""Return the prompt for a single on-demand detail expansion."""
	templates: Dict[str, str] = {
		"risk": (
			'Elaborate on the risk "{label}" for the scenario "{scenario}" in {mode} mode. '
			"Describe the trigger conditions, likely impact and early-warning indicators. "
			"Be specific and technical."
		),
		"recommendation": (
			'Elaborate on the recommendation "{label}" for the scenario "{scenario}" in {mode} mode. '
			"Describe the required resources, execution steps and success criteria. "
			"Be specific and technical."
		),
	}
	template = templates.get(kind, templates["risk"])
	return template.format(label=label, scenario=scenario, mode=mode)
