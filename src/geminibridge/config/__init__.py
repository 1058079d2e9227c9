"""Configuration management for geminibridge.

Provides hierarchical YAML-based configuration with:
- System-level config (/etc/geminibridge/ or %PROGRAMDATA%)
- User-level config (~/.config/geminibridge/, ~/.gb/ or %APPDATA%)
- Project-level config ($project_root/.gb/)
- Environment variable overrides (highest priority)

Example usage:
    from geminibridge.config import load_config

    config = load_config()
    print(config.engine.model)
    print(config.session.timeout)
"""

from geminibridge.config.loader import (
    get_config,
    load_config,
    reset_config,
)
from geminibridge.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_path,
)
from geminibridge.config.schema import (
    DEFAULT_MODEL,
    Config,
    EngineConfig,
    LoggingConfig,
    ServerConfig,
    SessionConfig,
)
from geminibridge.config.secrets import (
    clear_secret_cache,
    fetch_secret,
)

__all__ = [
    # Main API
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    # Schema types
    "DEFAULT_MODEL",
    "EngineConfig",
    "SessionConfig",
    "ServerConfig",
    "LoggingConfig",
    # Secret management
    "fetch_secret",
    "clear_secret_cache",
    # Path utilities
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
    "get_project_config_path",
]
