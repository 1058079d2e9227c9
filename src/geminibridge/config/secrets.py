"""Secret lookup for credentials the engine needs.

Secrets come from the process environment first, then from a cached
``.env.secrets`` file read with python-dotenv. The engine reads
GEMINI_API_KEY, GOOGLE_CLOUD_PROJECT and GOOGLE_CLOUD_LOCATION this way.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import dotenv_values

SECRETS_FILE = ".env.secrets"


@lru_cache(maxsize=4)
def _load_secrets(secrets_path: Path | None = None) -> dict[str, str | None]:
    path = secrets_path or Path(SECRETS_FILE)
    if path.exists():
        return dotenv_values(path)
    return {}


def fetch_secret(
    key: str,
    default: str | None = None,
    secrets_path: Path | None = None,
) -> str | None:
    """Fetch a secret from the environment or ``.env.secrets``.

    Environment variables win so tests can monkeypatch them.

    Args:
        key: Variable name (e.g., "GEMINI_API_KEY")
        default: Returned when the key is found nowhere
        secrets_path: Optional explicit secrets file

    Returns:
        The secret value or ``default``.
    """
    value = os.environ.get(key)
    if value is not None:
        return value

    secrets = _load_secrets(secrets_path)
    found = secrets.get(key)
    if found is not None:
        return found
    return default


def clear_secret_cache() -> None:
    """Forget cached ``.env.secrets`` contents."""
    _load_secrets.cache_clear()
