"""Streaming session management: reducer, controller and registry."""

from geminibridge.session.controller import (
    ProgressCallback,
    SessionController,
    SessionState,
    SessionStatus,
)
from geminibridge.session.reducer import Reduction, reduce_event
from geminibridge.session.registry import SessionFactory, SessionKey, SessionRegistry

__all__ = [
    "ProgressCallback",
    "Reduction",
    "SessionController",
    "SessionFactory",
    "SessionKey",
    "SessionRegistry",
    "SessionState",
    "SessionStatus",
    "reduce_event",
]
