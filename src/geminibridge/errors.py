"""Error taxonomy for sessions and the tool dispatch layer.

Every failure surfaced to an MCP caller is one of these. The ``kind`` string
lets the dispatch layer render a message specific to the failure.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for all geminibridge errors."""

    kind = "internal"


class SessionNotActive(BridgeError):
    """Operation attempted before start() succeeded or after stop()."""

    kind = "session_not_active"

    def __init__(self, message: str = "Session not active") -> None:
        super().__init__(message)


class ValidationError(BridgeError):
    """Inbound tool arguments were malformed."""

    kind = "validation"

    def __init__(self, message: str, issues: list[str] | None = None) -> None:
        super().__init__(message)
        self.issues = issues or []


class UpstreamError(BridgeError):
    """The model-interaction engine reported a fatal condition."""

    kind = "upstream"

    def __init__(self, message: str, status: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status:
            return f"API Error {self.status}: {self.message}"
        return self.message


class Cancelled(BridgeError):
    """A submission was aborted by the user or the system."""

    kind = "cancelled"

    def __init__(self, message: str = "User cancelled") -> None:
        super().__init__(message)


class Timeout(BridgeError, TimeoutError):
    """The wall-clock budget of one send_prompt call ran out."""

    kind = "timeout"

    def __init__(self, elapsed: float) -> None:
        super().__init__(f"Stream timeout after {elapsed:.1f}s")
        self.elapsed = elapsed


class EngineAuthError(BridgeError):
    """The resolved auth mode cannot be satisfied by the environment."""

    kind = "auth"
