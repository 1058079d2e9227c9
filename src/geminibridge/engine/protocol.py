"""Engine protocol and history types.

An engine owns one conversation with the model backend. The session
controller drives it through this protocol and never talks to the backend
directly.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

from geminibridge.engine.auth import AuthMode
from geminibridge.engine.events import StreamEvent


class Role(Enum):
    """Message role in a conversation."""

    SYSTEM = "system"
    USER = "user"
    MODEL = "model"


@dataclass(frozen=True, slots=True)
class Message:
    """One entry of the engine's turn history.

    Attributes:
        role: Who produced the message
        content: The message text
        prompt_id: Prompt identifier of the turn that produced it, if any
    """

    role: Role
    content: str
    prompt_id: str | None = None


@runtime_checkable
class EngineClient(Protocol):
    """Protocol for model-interaction engines.

    Lifecycle: initialize() -> refresh_auth() -> start_chat() -> set_tools(),
    then any number of send_message_stream() turns, then close().
    """

    @property
    def model(self) -> str:
        """The model identifier being used."""
        ...

    async def initialize(self) -> None:
        ...

    async def refresh_auth(self, mode: AuthMode) -> None:
        """Bind credentials for ``mode``; raise if they are unavailable."""
        ...

    async def start_chat(self) -> None:
        ...

    async def set_tools(self) -> None:
        ...

    def send_message_stream(
        self,
        message: str,
        abort_signal: asyncio.Event,
        prompt_id: str,
        max_turns: int,
    ) -> AsyncIterator[StreamEvent]:
        """Run one turn and yield its events in order.

        Any async iterator will do. Callers close the stream with aclose()
        when it has one.

        Args:
            message: Text sent as the user turn
            abort_signal: Set by the caller to stop the turn early
            prompt_id: Logical turn identifier; repeated ids continue a turn
            max_turns: Engine turns allowed for this prompt id
        """
        ...

    def get_history(self, curated: bool = False) -> list[Message]:
        ...

    def set_history(self, history: list[Message]) -> None:
        ...

    def clear_history(self) -> None:
        ...

    def set_system_instruction(self, instruction: str) -> None:
        ...

    async def close(self) -> None:
        ...


class EngineFactory(Protocol):
    """Builds an engine bound to one session."""

    def __call__(
        self, *, project_root: str, model: str, session_id: str
    ) -> EngineClient:
        ...
