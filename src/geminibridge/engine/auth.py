"""Authentication mode selection from environment flags."""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import Enum


class AuthMode(Enum):
    """How the engine authenticates against the model backend."""

    LOGIN_WITH_GOOGLE = "oauth-personal"
    USE_GEMINI = "gemini-api-key"
    USE_VERTEX_AI = "vertex-ai"


DEFAULT_AUTH_MODE = AuthMode.LOGIN_WITH_GOOGLE


def resolve_auth_mode(environ: Mapping[str, str] | None = None) -> AuthMode | None:
    """Pick the auth mode from environment flags.

    Precedence: GOOGLE_GENAI_USE_GCA=true (forced OAuth), then
    GOOGLE_GENAI_USE_VERTEXAI=true, then a non-empty GEMINI_API_KEY.

    Returns:
        The selected mode, or None when nothing is configured (callers fall
        back to DEFAULT_AUTH_MODE).
    """
    env = os.environ if environ is None else environ
    if env.get("GOOGLE_GENAI_USE_GCA") == "true":
        return AuthMode.LOGIN_WITH_GOOGLE
    if env.get("GOOGLE_GENAI_USE_VERTEXAI") == "true":
        return AuthMode.USE_VERTEX_AI
    if env.get("GEMINI_API_KEY"):
        return AuthMode.USE_GEMINI
    return None
