"""Where geminibridge looks for config.yaml.

Unix: /etc/geminibridge, then $XDG_CONFIG_HOME/geminibridge, ~/.config/geminibridge
or ~/.gb. Windows: %PROGRAMDATA%\\geminibridge, then %APPDATA%\\geminibridge.
Projects: <project>/.gb.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
APP_NAME = "geminibridge"
SHORT_NAME = ".gb"


def _windows_dir(env_var: str) -> Path | None:
    base = os.environ.get(env_var)
    return Path(base) / APP_NAME / CONFIG_FILENAME if base else None


def get_system_config_path() -> Path | None:
    """Machine-wide config file (may not exist)."""
    if sys.platform == "win32":
        return _windows_dir("PROGRAMDATA")
    return Path("/etc", APP_NAME, CONFIG_FILENAME)


def get_user_config_path() -> Path | None:
    """Per-user config file (may not exist).

    XDG_CONFIG_HOME wins, then ~/.config/geminibridge when ~/.config exists,
    then ~/.gb.
    """
    if sys.platform == "win32":
        return _windows_dir("APPDATA")

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg, APP_NAME, CONFIG_FILENAME)

    home = Path.home()
    if (home / ".config").is_dir():
        return home / ".config" / APP_NAME / CONFIG_FILENAME
    return home / SHORT_NAME / CONFIG_FILENAME


def get_project_config_path(project_root: str) -> Path:
    return Path(project_root, SHORT_NAME, CONFIG_FILENAME)


def get_config_paths(project_root: str | None = None) -> list[Path]:
    """Candidate files, lowest priority first: system, user, project."""
    candidates = [get_system_config_path(), get_user_config_path()]
    if project_root:
        candidates.append(get_project_config_path(project_root))
    return [path for path in candidates if path is not None]
