"""Reading, layering and caching of geminibridge configuration.

Layers, lowest priority first: system file, user file, project file
(``<project>/.gb/config.yaml``), then environment variables. The merged
mapping is turned into typed dataclasses; values are coerced to the type of
the field's default.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any, TypeVar

import yaml

from geminibridge.config.merge import merge_configs
from geminibridge.config.paths import get_config_paths
from geminibridge.config.schema import (
    Config,
    EngineConfig,
    LoggingConfig,
    ServerConfig,
    SessionConfig,
)

# Plain stdlib logger: this runs before setup_logging()
_log = logging.getLogger("geminibridge.config")

_SECTIONS: dict[str, type] = {
    "engine": EngineConfig,
    "session": SessionConfig,
    "server": ServerConfig,
    "logging": LoggingConfig,
}

_T = TypeVar("_T")

_global_config: Config | None = None


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Parse one config file. Missing, unreadable or non-mapping files give {}."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError as e:
        _log.warning("Cannot read config %s: %s", path, e)
        return {}

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        _log.warning("Ignoring malformed config %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def env_overrides() -> dict[str, Any]:
    """Config layer taken from the process environment.

    AGENT_MODEL -> engine.model, GB_LOG -> logging.file and
    GB_LOG_LEVEL -> logging.level. Credentials are read by fetch_secret().
    """
    env = os.environ
    layer: dict[str, Any] = {}
    if env.get("AGENT_MODEL"):
        layer["engine"] = {"model": env["AGENT_MODEL"]}
    if env.get("GB_LOG") or env.get("GB_LOG_LEVEL"):
        layer["logging"] = {"file": env.get("GB_LOG"), "level": env.get("GB_LOG_LEVEL")}
    return layer


def _build_section(cls: type[_T], data: Any) -> _T:
    defaults = cls()
    if not isinstance(data, dict):
        return defaults

    values: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        if f.name not in data:
            continue
        raw = data[f.name]
        default = getattr(defaults, f.name)
        if raw is None or default is None:
            values[f.name] = raw
        else:
            values[f.name] = type(default)(raw)
    return dataclasses.replace(defaults, **values)


def dict_to_config(data: dict[str, Any]) -> Config:
    """Typed Config from a merged mapping; unknown top-level keys go to ``extra``."""
    sections = {name: _build_section(cls, data.get(name)) for name, cls in _SECTIONS.items()}
    extra = {key: value for key, value in data.items() if key not in _SECTIONS}
    return Config(**sections, extra=extra)


def load_config(session_root: str | None = None, reload: bool = False) -> Config:
    """Merge every layer into a Config.

    Args:
        session_root: Project directory whose ``.gb/config.yaml`` joins the
            layers. Project-scoped results are never cached.
        reload: Re-read files even when a global config is cached.
    """
    global _global_config

    if session_root is None and _global_config is not None and not reload:
        return _global_config

    layers = []
    for path in get_config_paths(session_root):
        layer = load_yaml_file(path)
        if layer:
            _log.debug("Config layer: %s", path)
            layers.append(layer)
    layers.append(env_overrides())

    config = dict_to_config(merge_configs(*layers))
    if session_root is None:
        _global_config = config
    return config


def get_config() -> Config:
    """The global config, loaded on first use."""
    return _global_config if _global_config is not None else load_config()


def reset_config() -> None:
    """Drop the cached global config."""
    global _global_config
    _global_config = None
