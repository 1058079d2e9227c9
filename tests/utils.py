"""Shared test utilities and fakes for geminibridge tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from types import SimpleNamespace
from typing import Any

from geminibridge.engine.auth import AuthMode
from geminibridge.engine.events import StreamEvent
from geminibridge.engine.protocol import Message


class FakeEngine:
    """Scripted engine: each send_message_stream() call plays the next turn.

    Args:
        turns: One event list per engine call. Calls beyond the script
            produce empty turns. An exception in the list is raised there.
        fail_on: Name of a lifecycle method that should raise RuntimeError
        trace: Optional shared list receiving ``(tag, event)`` as events are
            yielded, for interleaving checks
        tag: Label written into ``trace``
        yield_delay: Seconds to sleep before each event (0 still yields control)
    """

    def __init__(
        self,
        turns: list[list[StreamEvent]] | None = None,
        *,
        fail_on: str | None = None,
        trace: list[tuple[str, StreamEvent]] | None = None,
        tag: str = "engine",
        yield_delay: float = 0.0,
    ) -> None:
        self.turns = list(turns or [])
        self.fail_on = fail_on
        self.trace = trace
        self.tag = tag
        self.yield_delay = yield_delay

        self.model = "fake-model"
        self.calls: list[dict[str, Any]] = []
        self.auth_mode: AuthMode | None = None
        self.system_instruction: str | None = None
        self.history: list[Message] = []
        self.initialized = False
        self.chat_started = False
        self.tools_set = False
        self.closed = False
        self.abort_signals: list[asyncio.Event] = []

    def _maybe_fail(self, step: str) -> None:
        if self.fail_on == step:
            raise RuntimeError(f"{step} failed")

    async def initialize(self) -> None:
        self._maybe_fail("initialize")
        self.initialized = True

    async def refresh_auth(self, mode: AuthMode) -> None:
        self._maybe_fail("refresh_auth")
        self.auth_mode = mode

    async def start_chat(self) -> None:
        self._maybe_fail("start_chat")
        self.chat_started = True

    async def set_tools(self) -> None:
        self._maybe_fail("set_tools")
        self.tools_set = True

    def set_system_instruction(self, instruction: str) -> None:
        self.system_instruction = instruction

    async def send_message_stream(
        self,
        message: str,
        abort_signal: asyncio.Event,
        prompt_id: str,
        max_turns: int,
    ) -> AsyncIterator[StreamEvent]:
        self.calls.append(
            {"message": message, "prompt_id": prompt_id, "max_turns": max_turns}
        )
        self.abort_signals.append(abort_signal)
        events = self.turns.pop(0) if self.turns else []
        for event in events:
            await asyncio.sleep(self.yield_delay)
            if isinstance(event, BaseException):
                raise event
            if self.trace is not None:
                self.trace.append((self.tag, event))
            yield event

    def get_history(self, curated: bool = False) -> list[Message]:
        return list(self.history)

    def set_history(self, history: list[Message]) -> None:
        self.history = list(history)

    def clear_history(self) -> None:
        self.history = []

    async def close(self) -> None:
        self._maybe_fail("close")
        self.closed = True


class IteratorEngine(FakeEngine):
    """FakeEngine whose turns are plain async iterators without aclose()."""

    def send_message_stream(
        self,
        message: str,
        abort_signal: asyncio.Event,
        prompt_id: str,
        max_turns: int,
    ) -> AsyncIterator[StreamEvent]:
        self.calls.append(
            {"message": message, "prompt_id": prompt_id, "max_turns": max_turns}
        )
        self.abort_signals.append(abort_signal)
        return FakeStream(self.turns.pop(0) if self.turns else [])


def engine_factory_for(engine: FakeEngine):
    """Factory returning ``engine`` and recording the arguments it was given."""
    received: list[dict[str, Any]] = []

    def factory(*, project_root: str, model: str, session_id: str) -> FakeEngine:
        received.append(
            {"project_root": project_root, "model": model, "session_id": session_id}
        )
        return engine

    factory.received = received  # type: ignore[attr-defined]
    return factory


def create_stream_chunk(
    text: str | None = "chunk",
    *,
    finish_reason: str | None = None,
    reasoning: str | None = None,
    usage: tuple[int, int, int] | None = None,
) -> SimpleNamespace:
    """Create a streaming chunk shaped like litellm's ModelResponseStream.

    Args:
        text: Delta content
        finish_reason: OpenAI-style finish reason ("stop", "length", ...)
        reasoning: Optional reasoning_content delta
        usage: Optional (prompt, completion, total) token counts
    """
    delta = SimpleNamespace(content=text, reasoning_content=reasoning)
    choice = SimpleNamespace(delta=delta, finish_reason=finish_reason)
    chunk_usage = None
    if usage is not None:
        chunk_usage = SimpleNamespace(
            prompt_tokens=usage[0], completion_tokens=usage[1], total_tokens=usage[2]
        )
    return SimpleNamespace(choices=[choice], usage=chunk_usage)


class FakeStream:
    """Async iterator over prepared chunks, optionally raising midway."""

    def __init__(self, chunks: list[Any], error: Exception | None = None) -> None:
        self._chunks = list(chunks)
        self._error = error

    def __aiter__(self) -> FakeStream:
        return self

    async def __anext__(self) -> Any:
        if self._chunks:
            return self._chunks.pop(0)
        if self._error is not None:
            error, self._error = self._error, None
            raise error
        raise StopAsyncIteration


async def collect(stream: AsyncIterator[StreamEvent]) -> list[StreamEvent]:
    """Drain an event stream into a list."""
    return [event async for event in stream]
