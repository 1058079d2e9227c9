"""Configuration schema dataclasses for geminibridge.

Defines the structure of configuration at all levels (system, user, project).
Defaults live here so partial configs merge cleanly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_MODEL = "gemini-2.5-flash"


@dataclass
class EngineConfig:
    """Model-interaction engine configuration.

    Example config.yaml:
        engine:
          model: gemini-2.5-pro
          max_retries: 3
          compression_threshold: 200000
    """

    model: str = DEFAULT_MODEL
    max_turns_per_request: int = 100  # Engine turns allowed per prompt id
    max_session_turns: int = -1  # -1 = unlimited
    max_retries: int = 2  # Transient upstream failures retried per turn
    retry_delay: float = 1.0  # Seconds, doubled per retry
    compression_threshold: int | None = None  # History tokens; None disables
    api_base: str | None = None  # Custom endpoint


@dataclass
class SessionConfig:
    """Per-session submission behaviour."""

    timeout: float = 6000.0  # Seconds, shared by all attempts of one prompt
    continuation_attempts: int = 3
    continuation_prompt: str = "Continue."


@dataclass
class ServerConfig:
    """MCP server identity."""

    name: str = "gemini-cli"
    version: str = "1.0.0"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object.

    Aggregates all configuration sections.
    """

    engine: EngineConfig = field(default_factory=EngineConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    extra: dict[str, Any] = field(default_factory=dict)  # Unknown keys
