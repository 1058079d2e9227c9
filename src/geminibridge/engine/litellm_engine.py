"""LiteLLM engine implementation.

Talks to Gemini through litellm and translates its streaming chunks into
StreamEvents:
- API key auth:  "gemini/<model>" with GEMINI_API_KEY
- Vertex / OAuth: "vertex_ai/<model>" with Google application default
  credentials (``gcloud auth application-default login``)

Model ids that already carry a provider prefix (e.g. "ollama/llama3") are
passed through unchanged.
"""

from __future__ import annotations

import asyncio
import math
import re
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import litellm

from geminibridge.config.schema import EngineConfig
from geminibridge.config.secrets import fetch_secret
from geminibridge.engine.auth import AuthMode
from geminibridge.engine.events import (
    ChatCompressedEvent,
    CompressionStatus,
    ContentEvent,
    ErrorEvent,
    FinishedEvent,
    LoopDetectedEvent,
    MaxSessionTurnsEvent,
    RetryEvent,
    StreamEvent,
    ThoughtEvent,
    UsageMetadata,
    UserCancelledEvent,
)
from geminibridge.engine.protocol import Message, Role
from geminibridge.errors import EngineAuthError
from geminibridge.logging import get_logger

log = get_logger("engine")

# Identical non-blank chunks in a row before a turn counts as looping
LOOP_CHUNK_THRESHOLD = 10

# Share of history messages kept when compacting
COMPRESSION_PRESERVE_FRACTION = 0.3

_TRANSIENT_ERRORS: tuple[type[Exception], ...] = (
    litellm.RateLimitError,
    litellm.ServiceUnavailableError,
    litellm.InternalServerError,
    litellm.APIConnectionError,
)

_FINISH_REASONS = {
    "stop": "STOP",
    "length": "MAX_TOKENS",
    "content_filter": "SAFETY",
    "tool_calls": "STOP",
}

_THOUGHT_SUBJECT = re.compile(r"\*\*(.*?)\*\*", re.DOTALL)


def parse_thought(text: str) -> ThoughtEvent:
    """Split a reasoning fragment into a bold ``**subject**`` and the rest."""
    match = _THOUGHT_SUBJECT.search(text)
    if not match:
        return ThoughtEvent(subject="", description=text.strip())
    subject = match.group(1).strip()
    description = (text[: match.start()] + text[match.end() :]).strip()
    return ThoughtEvent(subject=subject, description=description)


def _status_of(error: Exception) -> str | None:
    status = getattr(error, "status_code", None)
    return str(status) if status is not None else None


class LiteLLMEngine:
    """Engine driving one Gemini conversation through litellm.

    Usage:
        engine = LiteLLMEngine(project_root="/repo", model="gemini-2.5-flash",
                               session_id="default")
        await engine.initialize()
        await engine.refresh_auth(AuthMode.USE_GEMINI)
        await engine.start_chat()

        async for event in engine.send_message_stream(
            "Summarize @README.md", asyncio.Event(), "prompt-1", 100
        ):
            ...
    """

    def __init__(
        self,
        *,
        project_root: str,
        model: str,
        session_id: str,
        config: EngineConfig | None = None,
    ) -> None:
        self._project_root = project_root
        self._model = model
        self._session_id = session_id
        self._config = config or EngineConfig()

        self._auth_mode: AuthMode | None = None
        self._request_kwargs: dict[str, Any] = {}
        self._system_instruction: str | None = None
        self._history: list[Message] = []
        self._chat_started = False

        self._session_turns = 0
        self._last_prompt_id: str | None = None
        self._prompt_turns = 0

    @property
    def model(self) -> str:
        return self._model

    @property
    def auth_mode(self) -> AuthMode | None:
        return self._auth_mode

    @property
    def litellm_model(self) -> str:
        """Model id handed to litellm, provider prefix included."""
        return self._request_kwargs.get("model", self._model)

    async def initialize(self) -> None:
        root = Path(self._project_root)
        if not root.is_dir():
            raise NotADirectoryError(f"Project root not found: {self._project_root}")
        log.debug("Engine initialized for %s (session=%s)", root, self._session_id)

    async def refresh_auth(self, mode: AuthMode) -> None:
        """Resolve credentials for ``mode`` into litellm request kwargs."""
        kwargs: dict[str, Any] = {}

        if mode is AuthMode.USE_GEMINI:
            api_key = fetch_secret("GEMINI_API_KEY")
            if not api_key:
                raise EngineAuthError("GEMINI_API_KEY is not set")
            kwargs["model"] = self._qualify("gemini")
            kwargs["api_key"] = api_key
        else:
            # Vertex and personal OAuth both go through application default credentials
            kwargs["model"] = self._qualify("vertex_ai")
            project = fetch_secret("GOOGLE_CLOUD_PROJECT")
            location = fetch_secret("GOOGLE_CLOUD_LOCATION")
            if project:
                kwargs["vertex_project"] = project
            if location:
                kwargs["vertex_location"] = location

        if self._config.api_base:
            kwargs["api_base"] = self._config.api_base

        self._auth_mode = mode
        self._request_kwargs = kwargs
        log.debug("Auth %s resolved to model %s", mode.value, kwargs["model"])

    def _qualify(self, provider: str) -> str:
        if "/" in self._model:
            return self._model
        return f"{provider}/{self._model}"

    async def start_chat(self) -> None:
        if self._auth_mode is None:
            raise EngineAuthError("refresh_auth() must run before start_chat()")
        self._history = []
        self._session_turns = 0
        self._chat_started = True

    async def set_tools(self) -> None:
        # Tool execution lives outside this engine; nothing to declare
        log.debug("No function tools registered for session %s", self._session_id)

    def set_system_instruction(self, instruction: str) -> None:
        self._system_instruction = instruction

    def get_history(self, curated: bool = False) -> list[Message]:
        """Return the turn history.

        Curated history drops model replies that came back empty, together
        with the user message that prompted them.
        """
        if not curated:
            return list(self._history)

        result: list[Message] = []
        for message in self._history:
            if message.role is Role.MODEL and not message.content.strip():
                if result and result[-1].role is Role.USER:
                    result.pop()
                continue
            result.append(message)
        return result

    def set_history(self, history: list[Message]) -> None:
        self._history = list(history)

    def clear_history(self) -> None:
        self._history = []

    async def close(self) -> None:
        self._chat_started = False
        self._request_kwargs = {}

    def _build_messages(self, message: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if self._system_instruction:
            messages.append({"role": "system", "content": self._system_instruction})
        messages.extend(self._to_litellm(self.get_history(curated=True)))
        messages.append({"role": "user", "content": message})
        return messages

    @staticmethod
    def _to_litellm(history: list[Message]) -> list[dict[str, str]]:
        return [
            {
                "role": "assistant" if m.role is Role.MODEL else m.role.value,
                "content": m.content,
            }
            for m in history
        ]

    def _count_tokens(self, history: list[Message]) -> int:
        return litellm.token_counter(
            model=self.litellm_model, messages=self._to_litellm(history)
        )

    def _try_compress(self) -> ChatCompressedEvent | None:
        """Drop the oldest history when it exceeds the token threshold."""
        threshold = self._config.compression_threshold
        if not threshold or not self._history:
            return None

        try:
            original = self._count_tokens(self._history)
        except Exception as e:
            log.warning("Token counting failed: %s", e)
            return ChatCompressedEvent(0, 0, CompressionStatus.FAILED_TOKEN_COUNT_ERROR)

        if original <= threshold:
            return None

        keep = max(2, math.ceil(len(self._history) * COMPRESSION_PRESERVE_FRACTION))
        start = len(self._history) - keep
        # Never open the kept window with a model reply
        while start < len(self._history) and self._history[start].role is not Role.USER:
            start += 1
        kept = self._history[start:]

        try:
            new = self._count_tokens(kept)
        except Exception as e:
            log.warning("Token counting failed: %s", e)
            return ChatCompressedEvent(
                original, 0, CompressionStatus.FAILED_TOKEN_COUNT_ERROR
            )

        if new >= original:
            return ChatCompressedEvent(original, new, CompressionStatus.FAILED_INFLATED)

        self._history = kept
        log.info("History compacted: %d -> %d tokens", original, new)
        return ChatCompressedEvent(original, new, CompressionStatus.COMPRESSED)

    async def send_message_stream(
        self,
        message: str,
        abort_signal: asyncio.Event,
        prompt_id: str,
        max_turns: int,
    ) -> AsyncIterator[StreamEvent]:
        """Run one model turn, yielding StreamEvents as chunks arrive."""
        if not self._chat_started:
            yield ErrorEvent(message="Chat not started")
            return

        if prompt_id != self._last_prompt_id:
            self._last_prompt_id = prompt_id
            self._prompt_turns = 0
        self._prompt_turns += 1
        if self._prompt_turns > max_turns:
            log.debug("Prompt %s exceeded %d turns", prompt_id, max_turns)
            return

        self._session_turns += 1
        limit = self._config.max_session_turns
        if limit >= 0 and self._session_turns > limit:
            yield MaxSessionTurnsEvent()
            return

        compressed = self._try_compress()
        if compressed is not None:
            yield compressed

        kwargs = {
            **self._request_kwargs,
            "messages": self._build_messages(message),
            "stream": True,
            "stream_options": {"include_usage": True},
        }

        reply: list[str] = []
        last_chunk: str | None = None
        repeats = 0

        for attempt in range(self._config.max_retries + 1):
            if abort_signal.is_set():
                yield UserCancelledEvent()
                return
            try:
                response = await litellm.acompletion(**kwargs)
                finish_reason: str | None = None
                usage: UsageMetadata | None = None

                async for chunk in response:
                    if abort_signal.is_set():
                        yield UserCancelledEvent()
                        return

                    chunk_usage = getattr(chunk, "usage", None)
                    if chunk_usage:
                        usage = UsageMetadata(
                            prompt_token_count=chunk_usage.prompt_tokens,
                            candidates_token_count=chunk_usage.completion_tokens,
                            total_token_count=chunk_usage.total_tokens,
                        )

                    if not chunk.choices:
                        continue
                    choice = chunk.choices[0]
                    if choice.finish_reason:
                        finish_reason = _FINISH_REASONS.get(
                            choice.finish_reason, choice.finish_reason.upper()
                        )

                    delta = choice.delta
                    if delta is None:
                        continue

                    reasoning = getattr(delta, "reasoning_content", None)
                    if reasoning:
                        yield parse_thought(reasoning)

                    text = delta.content or ""
                    if not text:
                        continue

                    stripped = text.strip()
                    if stripped and stripped == last_chunk:
                        repeats += 1
                        if repeats >= LOOP_CHUNK_THRESHOLD:
                            log.warning("Repetitive output in prompt %s", prompt_id)
                            self._record_turn(message, reply, prompt_id)
                            yield LoopDetectedEvent()
                            return
                    elif stripped:
                        last_chunk = stripped
                        repeats = 1

                    reply.append(text)
                    yield ContentEvent(text=text)

                yield FinishedEvent(reason=finish_reason, usage=usage)
                break

            except _TRANSIENT_ERRORS as e:
                if reply or attempt >= self._config.max_retries:
                    yield ErrorEvent(message=str(e), status=_status_of(e))
                    return
                delay = self._config.retry_delay * (2**attempt)
                log.warning(
                    "Transient error (attempt %d), retrying in %.1fs: %s",
                    attempt + 1,
                    delay,
                    e,
                )
                yield RetryEvent()
                await asyncio.sleep(delay)

            except Exception as e:
                log.error("Upstream request failed: %s", e)
                yield ErrorEvent(message=str(e), status=_status_of(e))
                return

        self._record_turn(message, reply, prompt_id)

    def _record_turn(self, message: str, reply: list[str], prompt_id: str) -> None:
        self._history.append(Message(Role.USER, message, prompt_id))
        self._history.append(Message(Role.MODEL, "".join(reply), prompt_id))
