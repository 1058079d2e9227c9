"""Session controller: lifecycle and serialized prompt submission.

A SessionController owns one engine handle for one (tool, caller session)
pair. Prompts are admitted one at a time in arrival order; each submission
runs one or more engine attempts sharing a single timeout budget and a single
answer buffer.
"""

from __future__ import annotations

import asyncio
import dataclasses
import inspect
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from geminibridge.config.schema import DEFAULT_MODEL, Config
from geminibridge.engine.auth import DEFAULT_AUTH_MODE, resolve_auth_mode
from geminibridge.errors import SessionNotActive, Timeout
from geminibridge.logging import get_logger
from geminibridge.session.reducer import reduce_event

if TYPE_CHECKING:
    from geminibridge.engine.protocol import EngineClient, EngineFactory, Message

log = get_logger("session")

# Receives human-readable progress lines; may be sync or async
ProgressCallback = Callable[[str], Awaitable[None] | None]


class SessionStatus(Enum):
    """Lifecycle position of a session."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    STOPPED = "stopped"


@dataclass
class SessionState:
    """Identity and timestamps of an activated session."""

    id: str
    created_at: datetime
    last_activity: datetime
    is_active: bool = True


def _now_ms() -> int:
    return int(time.time() * 1000)


async def _close_stream(stream: object) -> None:
    # Plain async iterators have no aclose(); generators do
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()


class SessionController:
    """One conversational session bound to a project root and a model.

    Usage:
        controller = SessionController("/repo", "gemini-2.5-flash", "default",
                                       engine_factory=make_engine)
        await controller.start("ROLE: reviewer")
        answer = await controller.send_prompt("Review @src/", on_progress=print)
        await controller.stop()
    """

    def __init__(
        self,
        project_root: str,
        model: str = DEFAULT_MODEL,
        session_id: str | None = None,
        *,
        engine_factory: EngineFactory,
        config: Config | None = None,
    ) -> None:
        self._project_root = project_root
        self._model = model
        self._session_id = session_id or f"session-{_now_ms()}"
        self._engine_factory = engine_factory

        config = config or Config()
        self._session_config = config.session
        self._max_turns_per_request = config.engine.max_turns_per_request

        self._engine: EngineClient | None = None
        self._state: SessionState | None = None
        self._status = SessionStatus.UNINITIALIZED

        # Admission token: at most one submission in flight, FIFO
        self._admission = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def model(self) -> str:
        return self._model

    @property
    def project_root(self) -> str:
        return self._project_root

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def state(self) -> SessionState | None:
        """Snapshot of the session state, or None before the first start."""
        if self._state is None:
            return None
        return dataclasses.replace(self._state)

    def is_active(self) -> bool:
        return (
            self._engine is not None
            and self._state is not None
            and self._state.is_active
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self, system_instruction: str | None = None) -> None:
        """Activate the session.

        Connects the engine with the auth mode resolved from the environment
        and installs ``system_instruction`` for every later turn. A no-op when
        already active. On failure the session is left inactive and the error
        is re-raised.
        """
        if self.is_active():
            log.info("Session %s already started", self._session_id)
            return

        log.info("Starting session: %s (%s)", self._session_id, self._model)

        try:
            engine = self._engine_factory(
                project_root=self._project_root,
                model=self._model,
                session_id=self._session_id,
            )
            self._engine = engine
            await engine.initialize()

            auth_mode = resolve_auth_mode()
            if auth_mode is None:
                log.info("No auth environment variables found, using OAuth")
                auth_mode = DEFAULT_AUTH_MODE
            else:
                log.info("Using auth type: %s", auth_mode.value)
            await engine.refresh_auth(auth_mode)

            await engine.start_chat()
            await engine.set_tools()

            if system_instruction:
                engine.set_system_instruction(system_instruction)

            now = datetime.now()
            self._state = SessionState(
                id=self._session_id,
                created_at=now,
                last_activity=now,
                is_active=True,
            )
            self._status = SessionStatus.ACTIVE
            log.info("Session %s started", self._session_id)

        except BaseException as e:
            log.error("Failed to start session %s: %s", self._session_id, e)
            await self._cleanup()
            raise

    async def stop(self) -> None:
        """Deactivate the session and release the engine.

        Safe to call repeatedly and before start() ever succeeded. Does not
        interrupt a submission already in flight.
        """
        await self._cleanup()

    async def _cleanup(self) -> None:
        if self._state is not None:
            self._state.is_active = False
            self._status = SessionStatus.STOPPED

        engine, self._engine = self._engine, None
        if engine is not None:
            try:
                await engine.close()
            except Exception as e:
                log.warning("Error closing engine for %s: %s", self._session_id, e)

    # -------------------------------------------------------------------------
    # Prompting
    # -------------------------------------------------------------------------

    async def send_prompt(
        self,
        prompt: str,
        timeout: float | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Submit a prompt and return the accumulated answer.

        Args:
            prompt: Text of the user turn
            timeout: Seconds allowed for all attempts together; defaults to
                the session config
            on_progress: Optional sink for progress lines

        Returns:
            The concatenated content of the first attempt that produced any,
            or "" once every continuation came back empty.

        Raises:
            SessionNotActive: The session is not started or was stopped.
            UpstreamError: The engine reported a fatal error.
            Cancelled: The turn was cancelled.
            Timeout: The budget ran out.
        """
        if not self.is_active():
            raise SessionNotActive()

        budget = self._session_config.timeout if timeout is None else timeout

        async with self._admission:
            engine = self._engine
            if engine is None or not self.is_active():
                raise SessionNotActive()

            if self._state is not None:
                self._state.last_activity = datetime.now()

            abort = asyncio.Event()
            started = time.monotonic()
            attempts = asyncio.ensure_future(
                self._run_attempts(engine, prompt, abort, on_progress)
            )
            try:
                done, _ = await asyncio.wait({attempts}, timeout=budget)
            except asyncio.CancelledError:
                abort.set()
                attempts.cancel()
                raise

            if attempts not in done:
                # Only the budget lands here; a TimeoutError raised by the
                # engine surfaces through attempts.result() unchanged
                abort.set()
                attempts.cancel()
                await asyncio.gather(attempts, return_exceptions=True)
                elapsed = time.monotonic() - started
                log.error(
                    "Prompt timed out in session %s after %.1fs",
                    self._session_id,
                    elapsed,
                )
                raise Timeout(elapsed)

            try:
                answer = attempts.result()
            except Exception as e:
                log.error("Prompt failed in session %s: %s", self._session_id, e)
                raise

            elapsed = round(time.monotonic() - started)
            await self._emit(on_progress, f"Complete ({len(answer)} chars, {elapsed}s)")
            return answer

    async def _run_attempts(
        self,
        engine: EngineClient,
        prompt: str,
        abort: asyncio.Event,
        on_progress: ProgressCallback | None,
    ) -> str:
        """Run the original attempt plus continuations until content appears."""
        prompt_id = f"prompt-{_now_ms()}"
        max_continuations = self._session_config.continuation_attempts
        parts: list[str] = []
        accumulated = 0
        message = prompt
        continuations = 0

        while True:
            stream = engine.send_message_stream(
                message, abort, prompt_id, self._max_turns_per_request
            )
            try:
                async for event in stream:
                    reduction = reduce_event(event, accumulated)
                    if reduction.content:
                        parts.append(reduction.content)
                        accumulated += len(reduction.content)
                    if reduction.progress:
                        await self._emit(on_progress, reduction.progress)
                    reduction.raise_for_abort()
            finally:
                await _close_stream(stream)

            if accumulated > 0:
                return "".join(parts)

            if continuations >= max_continuations:
                log.warning(
                    "No content after %d continuations in session %s",
                    continuations,
                    self._session_id,
                )
                return ""

            continuations += 1
            log.info(
                "Empty response in session %s, continuing (%d/%d)",
                self._session_id,
                continuations,
                max_continuations,
            )
            await self._emit(
                on_progress,
                f"Empty response, continuing ({continuations}/{max_continuations})...",
            )
            message = self._session_config.continuation_prompt

    async def _emit(self, on_progress: ProgressCallback | None, message: str) -> None:
        if on_progress is None:
            return
        try:
            result = on_progress(message)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            log.warning("Progress callback failed: %s", e)

    # -------------------------------------------------------------------------
    # Engine pass-through
    # -------------------------------------------------------------------------

    def _require_engine(self) -> EngineClient:
        if self._engine is None:
            raise SessionNotActive("Session not started")
        return self._engine

    def set_system_instruction(self, instruction: str) -> None:
        self._require_engine().set_system_instruction(instruction)

    def get_history(self, curated: bool = False) -> list[Message]:
        return self._require_engine().get_history(curated)

    def set_history(self, history: list[Message]) -> None:
        self._require_engine().set_history(history)

    def clear_history(self) -> None:
        self._require_engine().clear_history()
