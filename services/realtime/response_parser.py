"""Helpers to extract text and structured data from Responses output."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

from models.report_models import StructuredReport

_LEADING_FENCE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?")
_TRAILING_FENCE = re.compile(r"\n?[ \t]*```$")


def _get(item: Any, key: str, default: Any = None) -> Any:
	if isinstance(item, dict):
		return item.get(key, default)
	return getattr(item, key, default)


def extract_text(response: Any) -> str:
	"""Extract the first output_text entry from the response."""
	for item in _get(response, "output", None) or []:
		if _get(item, "type") != "message":
			continue
		for content in _get(item, "content", None) or []:
			if _get(content, "type") == "output_text":
				return _get(content, "text", "") or ""
	return _get(response, "output_text", "") or ""


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
	"""Return token usage if present."""
	usage = _get(response, "usage", None)
	return {
		"input_tokens": _get(usage, "input_tokens", None) if usage else None,
		"output_tokens": _get(usage, "output_tokens", None) if usage else None,
	}


def strip_fencing(text: str) -> str:
	"""Remove markdown fences and surrounding prose from a JSON block."""
	cleaned = (text or "").strip()
	cleaned = _LEADING_FENCE.sub("", cleaned)
	cleaned = _TRAILING_FENCE.sub("", cleaned)
	first = cleaned.find("{")
	last = cleaned.rfind("}")
	if first != -1 and last > first:
		cleaned = cleaned[first : last + 1]
	return cleaned.strip()


def decode_report(raw_text: str) -> StructuredReport:
	"""Decode raw model output into a report.

	Raises:
		ValueError: when the cleaned text is not a JSON object.
	"""
	try:
		payload = json.loads(strip_fencing(raw_text))
	except RecursionError as exc:
		raise ValueError("JSON nesting is too deep to decode") from exc
	if not isinstance(payload, dict):
		raise ValueError(f"Expected a JSON object, got {type(payload).__name__}")
	return StructuredReport(data=payload, raw_text=raw_text)
