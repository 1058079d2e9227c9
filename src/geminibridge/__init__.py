"""geminibridge: resumable, streamed Gemini sessions served over MCP."""

__version__ = "0.1.0"

# Public API
from geminibridge.config import Config, get_config, load_config
from geminibridge.engine import (
    AuthMode,
    EngineClient,
    LiteLLMEngine,
    Message,
    Role,
    StreamEvent,
    resolve_auth_mode,
)
from geminibridge.errors import (
    BridgeError,
    Cancelled,
    EngineAuthError,
    SessionNotActive,
    Timeout,
    UpstreamError,
    ValidationError,
)
from geminibridge.server import BridgeServer
from geminibridge.session import (
    SessionController,
    SessionKey,
    SessionRegistry,
    SessionState,
    SessionStatus,
    reduce_event,
)

__all__ = [
    # Config
    "Config",
    "load_config",
    "get_config",
    # Engine
    "AuthMode",
    "EngineClient",
    "LiteLLMEngine",
    "Message",
    "Role",
    "StreamEvent",
    "resolve_auth_mode",
    # Errors
    "BridgeError",
    "Cancelled",
    "EngineAuthError",
    "SessionNotActive",
    "Timeout",
    "UpstreamError",
    "ValidationError",
    # Server
    "BridgeServer",
    # Session
    "SessionController",
    "SessionKey",
    "SessionRegistry",
    "SessionState",
    "SessionStatus",
    "reduce_event",
]
