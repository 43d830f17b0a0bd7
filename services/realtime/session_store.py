"""Simple in-memory store for conversation sessions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from services.realtime.conversation_session import ConversationSession
from services.realtime.simulation_workspace import SimulationWorkspace


@dataclass
class SessionWorkspace:
	"""Conversation and simulation state owned by one dashboard session."""

	conversation: ConversationSession
	simulation: SimulationWorkspace

	@property
	def session_id(self) -> str:
		return self.conversation.session_id


class SessionStore:
	"""Create, look up and discard session workspaces."""

	def __init__(self, backend) -> None:
		if backend is None:
			raise ValueError("Generation backend is required.")
		self.backend = backend
		self._sessions: Dict[str, SessionWorkspace] = {}

	def __len__(self) -> int:
		return len(self._sessions)

	def create(self, topic: str = "", language: str = "en") -> SessionWorkspace:
		"""Create a new workspace for the calling view's topic and language."""
		conversation = ConversationSession(self.backend, topic=topic.strip(), language=language.strip() or "en")
		workspace = SessionWorkspace(conversation=conversation, simulation=SimulationWorkspace(self.backend))
		self._sessions[workspace.session_id] = workspace
		return workspace

	def get(self, session_id: str) -> SessionWorkspace:
		"""Return a workspace or raise KeyError if missing."""
		workspace = self._sessions.get(session_id)
		if workspace is None:
			raise KeyError(f"Session {session_id} not found")
		return workspace

	def close(self, session_id: str) -> SessionWorkspace:
		"""Cancel any in-flight generation and forget the session."""
		workspace = self.get(session_id)
		workspace.conversation.cancel()
		del self._sessions[session_id]
		return workspace

	def turns(self, session_id: str) -> List[Dict[str, Any]]:
		"""Return the transcript as plain dictionaries."""
		return [turn.as_dict() for turn in self.get(session_id).conversation.transcript()]
