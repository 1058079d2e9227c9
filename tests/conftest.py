"""Root pytest configuration for all tests."""

from __future__ import annotations

import pytest

from geminibridge.config import clear_secret_cache, reset_config

# Configure pytest-asyncio; asyncio_mode is also set in pyproject.toml
pytest_plugins = ("pytest_asyncio",)

_AUTH_ENV_VARS = (
    "GOOGLE_GENAI_USE_GCA",
    "GOOGLE_GENAI_USE_VERTEXAI",
    "GEMINI_API_KEY",
    "GOOGLE_CLOUD_PROJECT",
    "GOOGLE_CLOUD_LOCATION",
    "AGENT_MODEL",
    "GB_LOG",
    "GB_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Isolate every test from the developer's auth settings and config files."""
    for name in _AUTH_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    # No .env.secrets lookups from the repository checkout
    monkeypatch.chdir(tmp_path)
    reset_config()
    clear_secret_cache()
    yield
    reset_config()
    clear_secret_cache()
