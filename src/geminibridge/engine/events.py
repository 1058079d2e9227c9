"""Typed events emitted by an engine during one turn.

Each variant is its own frozen dataclass; ``StreamEvent`` is the union the
session reducer matches on. Events of one turn arrive in emission order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Union


class CompressionStatus(IntEnum):
    """Outcome of a history compaction attempt."""

    COMPRESSED = 1
    FAILED_INFLATED = 2
    FAILED_TOKEN_COUNT_ERROR = 3
    NOOP = 4


@dataclass(frozen=True, slots=True)
class UsageMetadata:
    """Token accounting reported at the end of a turn."""

    prompt_token_count: int | None = None
    candidates_token_count: int | None = None
    total_token_count: int | None = None


@dataclass(frozen=True, slots=True)
class RetryEvent:
    """The engine is retrying a failed upstream request."""


@dataclass(frozen=True, slots=True)
class ContentEvent:
    """A fragment of the model's answer."""

    text: str


@dataclass(frozen=True, slots=True)
class ThoughtEvent:
    """A reasoning note: short subject plus optional detail."""

    subject: str = ""
    description: str = ""


@dataclass(frozen=True, slots=True)
class ToolCallRequestEvent:
    call_id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolCallResponseEvent:
    call_id: str
    error: str | None = None
    error_type: str | None = None
    output_file: str | None = None
    content_length: int | None = None


@dataclass(frozen=True, slots=True)
class ToolCallConfirmationEvent:
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class FinishedEvent:
    """The turn finished; ``reason`` is upper case, e.g. "STOP"."""

    reason: str | None = None
    usage: UsageMetadata | None = None


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """Fatal upstream failure. Ends the submission."""

    message: str
    status: str | None = None


@dataclass(frozen=True, slots=True)
class ChatCompressedEvent:
    original_token_count: int
    new_token_count: int
    status: CompressionStatus


@dataclass(frozen=True, slots=True)
class LoopDetectedEvent:
    """The engine stopped a repetitive turn."""


@dataclass(frozen=True, slots=True)
class MaxSessionTurnsEvent:
    """The session exhausted its turn budget."""


@dataclass(frozen=True, slots=True)
class UserCancelledEvent:
    """The abort signal was observed."""


@dataclass(frozen=True, slots=True)
class CitationEvent:
    """Citation block: a header line followed by one line per citation."""

    text: str


StreamEvent = Union[
    RetryEvent,
    ContentEvent,
    ThoughtEvent,
    ToolCallRequestEvent,
    ToolCallResponseEvent,
    ToolCallConfirmationEvent,
    FinishedEvent,
    ErrorEvent,
    ChatCompressedEvent,
    LoopDetectedEvent,
    MaxSessionTurnsEvent,
    UserCancelledEvent,
    CitationEvent,
]
