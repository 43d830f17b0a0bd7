"""Conversation domain models for streaming chat sessions."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional
from uuid import uuid4

USER = "user"
ASSISTANT = "assistant"


@dataclass(frozen=True)
class ImageAttachment:
	"""Opaque image bytes attached to a user turn."""

	data: bytes
	mime_type: str = "image/jpeg"


@dataclass
class Turn:
	"""One message in a conversation transcript.

	Text grows while the turn is open and is immutable once finalized.
	"""

	role: str
	text: str = ""
	image: Optional[ImageAttachment] = None
	turn_id: str = field(default_factory=lambda: uuid4().hex)
	created_at: float = field(default_factory=lambda: time.time())
	finalized: bool = False

	def append(self, chunk: str) -> None:
		if self.finalized:
			raise RuntimeError(f"Turn {self.turn_id} is finalized")
		self.text += chunk

	def replace_text(self, text: str) -> None:
		if self.finalized:
			raise RuntimeError(f"Turn {self.turn_id} is finalized")
		self.text = text

	def finalize(self) -> None:
		self.finalized = True

	def snapshot(self) -> "Turn":
		"""Return a detached copy safe to hand to readers."""
		return replace(self)

	def as_dict(self) -> Dict[str, Any]:
		return {
			"turn_id": self.turn_id,
			"role": self.role,
			"text": self.text,
			"has_image": self.image is not None,
			"created_at": self.created_at,
			"finalized": self.finalized,
		}


@dataclass(frozen=True)
class TextChunk:
	"""A streamed fragment plus the accumulated assistant text."""

	turn_id: str
	delta: str
	text: str


@dataclass(frozen=True)
class StreamDone:
	"""Terminal event for a completed or cancelled stream."""

	turn: Turn
	cancelled: bool = False


@dataclass(frozen=True)
class StreamFailed:
	"""Terminal event for a stream the backend could not complete."""

	turn: Turn
	category: str
	detail: str
