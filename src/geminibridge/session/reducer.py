"""Per-event reduction of an engine stream.

Turns one StreamEvent into an optional progress line, an optional answer
fragment and an optional abort error. Holds no state: the caller supplies the
running answer length and owns the buffer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from geminibridge.engine.events import (
    ChatCompressedEvent,
    CitationEvent,
    CompressionStatus,
    ContentEvent,
    ErrorEvent,
    FinishedEvent,
    LoopDetectedEvent,
    MaxSessionTurnsEvent,
    RetryEvent,
    StreamEvent,
    ThoughtEvent,
    ToolCallConfirmationEvent,
    ToolCallRequestEvent,
    ToolCallResponseEvent,
    UserCancelledEvent,
)
from geminibridge.errors import BridgeError, Cancelled, UpstreamError

PREVIEW_LIMIT = 50


@dataclass(frozen=True, slots=True)
class Reduction:
    """Outcome of reducing a single event.

    Attributes:
        progress: Human-readable notice for the progress sink
        content: Fragment to append to the accumulated answer
        error: Set when the event aborts the whole submission
    """

    progress: str | None = None
    content: str | None = None
    error: BridgeError | None = None

    @property
    def aborts(self) -> bool:
        return self.error is not None

    def raise_for_abort(self) -> None:
        if self.error is not None:
            raise self.error


def _tool_request_progress(name: str, args: dict[str, Any]) -> str:
    if not args:
        return f"Using tool: {name}()"
    first_key = next(iter(args))
    first_value = args[first_key]
    if isinstance(first_value, str) and len(first_value) < PREVIEW_LIMIT:
        return f'Using tool: {name}({first_key}: "{first_value}")'
    return f"Using tool: {name}({len(args)} args)"


def _tool_response_progress(event: ToolCallResponseEvent) -> str:
    if event.error:
        if event.error_type:
            return f"Tool failed ({event.error_type}): {event.error}"
        return f"Tool failed: {event.error}"
    if event.output_file:
        return f"Tool completed: wrote to {event.output_file}"
    if event.content_length is not None:
        return f"Tool completed ({event.content_length} bytes)"
    return "Tool completed"


def _finished_progress(event: FinishedEvent) -> str | None:
    usage = event.usage
    if usage is not None:
        prompt = usage.prompt_token_count
        total = usage.total_token_count
        if prompt and total:
            return f"Finished ({prompt} prompt + {total - prompt} response tokens)"
        return None
    if event.reason and event.reason != "STOP":
        return f"Finished: {event.reason}"
    return None


def _compression_progress(event: ChatCompressedEvent) -> str | None:
    match event.status:
        case CompressionStatus.COMPRESSED:
            original = event.original_token_count
            saved = original - event.new_token_count
            percent = round(saved / original * 100) if original else 0
            return (
                f"Chat compressed: {original} -> {event.new_token_count} tokens "
                f"({percent}% saved)"
            )
        case CompressionStatus.FAILED_INFLATED:
            return "Chat compression failed: would increase tokens"
        case CompressionStatus.FAILED_TOKEN_COUNT_ERROR:
            return "Chat compression failed: token count error"
        case _:
            return None


def _citation_progress(event: CitationEvent) -> str | None:
    if not event.text:
        return None
    lines = [line for line in event.text.split("\n") if line.strip()]
    # First line is the "Citations:" header
    return f"Found {max(len(lines) - 1, 0)} citations"


def reduce_event(event: StreamEvent, accumulated_chars: int = 0) -> Reduction:
    """Reduce one stream event.

    Args:
        event: The event to classify
        accumulated_chars: Length of the answer accumulated so far in this
            submission, before this event

    Returns:
        A Reduction. Only ErrorEvent and UserCancelledEvent carry an error.
    """
    match event:
        case RetryEvent():
            return Reduction(progress="Retrying...")

        case ContentEvent(text=text):
            total = accumulated_chars + len(text)
            progress = f"Responding... ({total} chars)" if total > 0 else None
            return Reduction(progress=progress, content=text)

        case ThoughtEvent(subject=subject, description=description):
            if description:
                detail = description[:PREVIEW_LIMIT]
                return Reduction(progress=f"Thinking: {subject} - {detail}...")
            return Reduction(progress=f"Thinking: {subject or 'Processing...'}")

        case ToolCallRequestEvent(name=name, args=args):
            return Reduction(progress=_tool_request_progress(name, args))

        case ToolCallResponseEvent():
            return Reduction(progress=_tool_response_progress(event))

        case ToolCallConfirmationEvent(name=name, args=args):
            if args:
                return Reduction(
                    progress=f"Confirming tool: {name} with {len(args)} args"
                )
            return Reduction(progress=f"Confirming tool: {name}")

        case FinishedEvent():
            return Reduction(progress=_finished_progress(event))

        case ChatCompressedEvent():
            return Reduction(progress=_compression_progress(event))

        case LoopDetectedEvent():
            return Reduction(
                progress="Loop detected - stopping to prevent infinite cycle"
            )

        case MaxSessionTurnsEvent():
            return Reduction(
                progress="Max session turns reached - please start a new session"
            )

        case CitationEvent():
            return Reduction(progress=_citation_progress(event))

        case ErrorEvent(message=message, status=status):
            return Reduction(error=UpstreamError(message, status=status))

        case UserCancelledEvent():
            return Reduction(progress="Cancelled by user", error=Cancelled())

        case _:
            # Unknown variants from a newer engine are ignored
            return Reduction()
