"""Per-scenario cache of on-demand detail expansions."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from services.realtime.prompts import expansion_prompt, expansion_system_prompt

LOGGER = logging.getLogger(__name__)


class ExpansionKind(str, Enum):
	RISK = "risk"
	RECOMMENDATION = "recommendation"


@dataclass(frozen=True)
class ExpansionResult:
	label: str
	text: str
	from_cache: bool


class DetailExpansionCache:
	"""Map labels to expanded explanations, fetching each label at most once.

	Concurrent requests for the same absent label share one backend call.
	`reset` starts a new scenario; fetches begun before it never populate the
	new scenario's entries.
	"""

	def __init__(self, backend, scenario: str = "", mode: str = "standard") -> None:
		if backend is None:
			raise ValueError("Generation backend is required.")
		self.backend = backend
		self.scenario = scenario
		self.mode = mode
		self._entries: Dict[str, str] = {}
		self._pending: Dict[str, asyncio.Task] = {}
		self._generation = 0

	def __contains__(self, label: str) -> bool:
		return label in self._entries

	def __len__(self) -> int:
		return len(self._entries)

	def get(self, label: str) -> Optional[str]:
		return self._entries.get(label)

	def reset(self, scenario: str, mode: str = "standard") -> None:
		"""Drop every entry and bind the cache to a new scenario."""
		self._generation += 1
		self._entries.clear()
		self._pending.clear()
		self.scenario = scenario
		self.mode = mode

	async def expand(self, label: str, kind: ExpansionKind = ExpansionKind.RISK) -> ExpansionResult:
		"""Return the expansion for `label`, fetching it only when absent.

		Raises:
			ValueError: for an empty label or unknown kind.
			GenerationError: when the fetch fails; nothing is cached.
		"""
		label = (label or "").strip()
		if not label:
			raise ValueError("Expansion label is required.")
		kind = ExpansionKind(kind)

		cached = self._entries.get(label)
		if cached is not None:
			return ExpansionResult(label=label, text=cached, from_cache=True)

		task = self._pending.get(label)
		from_cache = task is not None
		if task is None:
			task = asyncio.ensure_future(self._fetch(label, kind, self._generation))
			task.add_done_callback(lambda done: self._log_failure(label, done))
			self._pending[label] = task
		text = await asyncio.shield(task)
		return ExpansionResult(label=label, text=text, from_cache=from_cache)

	async def _fetch(self, label: str, kind: ExpansionKind, generation: int) -> str:
		prompt = expansion_prompt(scenario=self.scenario, label=label, kind=kind.value, mode=self.mode)
		current = asyncio.current_task()
		try:
			text = await self.backend.generate_once(prompt, system=expansion_system_prompt())
		finally:
			if self._pending.get(label) is current:
				del self._pending[label]
		text = text or ""
		if generation == self._generation:
			self._entries[label] = text
		else:
			LOGGER.info("Discarding expansion for '%s' from a previous scenario", label)
		return text

	@staticmethod
	def _log_failure(label: str, task: asyncio.Task) -> None:
		if task.cancelled():
			return
		exc = task.exception()
		if exc is not None:
			logging.error("Detail expansion for '%s' failed: %s", label, exc)
