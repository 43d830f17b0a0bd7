"""Structured report returned by one-shot generations.

The generator is not bound to the requested shape, so every field read goes
through `ReportField` and `render_text`, which accept any JSON value and never
raise.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

FALLBACK_TITLE = "Output Format Fallback"
FALLBACK_RATIONALE = "Data parsing failed. Raw output displayed."

ABSENT = "absent"
SCALAR = "scalar"
NESTED = "nested"


def render_text(value: Any) -> str:
    """Coerce any decoded value into display text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float)):
        return str(value)
    if isinstance(value, Mapping):
        for key in ("value", "text"):
            if key in value and value[key] is not None:
                return render_text(value[key])
    try:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        return str(value)


@dataclass(frozen=True)
class ReportField:
    """One report field as absent, scalar or nested structure."""

    name: str
    kind: str
    value: Any = None

    @classmethod
    def of(cls, name: str, value: Any) -> "ReportField":
        if value is None:
            return cls(name, ABSENT)
        if isinstance(value, (str, bool, int, float)):
            return cls(name, SCALAR, value)
        return cls(name, NESTED, value)

    @property
    def present(self) -> bool:
        return self.kind != ABSENT

    def text(self, default: str = "") -> str:
        if not self.present:
            return default
        return render_text(self.value)

    def number(self) -> Optional[float]:
        """Return the field as a float when it is numeric or numeric text."""
        if self.kind != SCALAR or isinstance(self.value, bool):
            return None
        try:
            return float(self.value)
        except (TypeError, ValueError):
            return None


@dataclass
class StructuredReport:
    """Decoded (or fallback) result of a structured generation."""

    data: Dict[str, Any] = field(default_factory=dict)
    raw_text: str = ""
    parse_failed: bool = False

    @classmethod
    def fallback(cls, raw_text: str) -> "StructuredReport":
        return cls(
            data={
                "title": FALLBACK_TITLE,
                "summary": raw_text,
                "rationale": FALLBACK_RATIONALE,
            },
            raw_text=raw_text,
            parse_failed=True,
        )

    def field(self, name: str) -> ReportField:
        return ReportField.of(name, self.data.get(name))

    def text(self, name: str, default: str = "") -> str:
        return self.field(name).text(default)

    def scalar_text(self, name: str) -> Optional[str]:
        """Return a string field only when it really is a string."""
        value = self.data.get(name)
        return value if isinstance(value, str) else None

    def items(self, name: str) -> List[Any]:
        value = self.data.get(name)
        return list(value) if isinstance(value, list) else []

    def section(self, name: str) -> Dict[str, Any]:
        value = self.data.get(name)
        return dict(value) if isinstance(value, Mapping) else {}

    @property
    def title(self) -> str:
        return self.text("title")

    @property
    def summary(self) -> str:
        return self.text("summary")

    def rendered(self) -> Dict[str, Any]:
        """Return a copy where every top-level scalar is display text."""
        result: Dict[str, Any] = {}
        for key, value in self.data.items():
            if isinstance(value, (list, Mapping)):
                result[key] = value
            else:
                result[key] = render_text(value)
        result["parse_failed"] = self.parse_failed
        return result
