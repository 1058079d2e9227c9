"""Model-interaction engine: protocol, event taxonomy and the litellm backend."""

from geminibridge.engine.auth import DEFAULT_AUTH_MODE, AuthMode, resolve_auth_mode
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
    UsageMetadata,
    UserCancelledEvent,
)
from geminibridge.engine.litellm_engine import LiteLLMEngine
from geminibridge.engine.protocol import EngineClient, EngineFactory, Message, Role

__all__ = [
    # Protocol
    "EngineClient",
    "EngineFactory",
    "Message",
    "Role",
    # Implementations
    "LiteLLMEngine",
    # Auth
    "AuthMode",
    "DEFAULT_AUTH_MODE",
    "resolve_auth_mode",
    # Events
    "StreamEvent",
    "RetryEvent",
    "ContentEvent",
    "ThoughtEvent",
    "ToolCallRequestEvent",
    "ToolCallResponseEvent",
    "ToolCallConfirmationEvent",
    "FinishedEvent",
    "ErrorEvent",
    "ChatCompressedEvent",
    "CompressionStatus",
    "LoopDetectedEvent",
    "MaxSessionTurnsEvent",
    "UserCancelledEvent",
    "CitationEvent",
    "UsageMetadata",
]
