"""Error types raised by the orchestration services."""

from __future__ import annotations

UNAVAILABLE = "unavailable"
TIMEOUT = "timeout"
MALFORMED_STREAM = "malformed_stream"


class GenerationError(RuntimeError):
    """The generation backend could not produce a result.

    `category` is one of `unavailable`, `timeout` or `malformed_stream` so
    callers can render a distinct offline state.
    """

    def __init__(self, message: str, *, category: str = UNAVAILABLE) -> None:
        super().__init__(message)
        self.category = category


class SessionBusyError(RuntimeError):
    """A conversation session already has a generation in flight."""
