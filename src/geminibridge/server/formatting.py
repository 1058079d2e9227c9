"""Readable error messages returned to MCP callers."""

from __future__ import annotations

import re

from geminibridge.errors import BridgeError, ValidationError

_FILE_REFERENCE = re.compile(r"(?<!\S)@([^\s@]+)")

_SOLUTIONS: dict[str, list[str]] = {
    "auth": [
        "Check Gemini authentication (Google OAuth2, GEMINI_API_KEY or Vertex AI settings)",
        "Run `gcloud auth application-default login` for OAuth",
    ],
    "upstream": [
        "Verify network connection",
        "Check API quota and configuration",
    ],
    "timeout": [
        "Split the request into smaller tasks",
        "Raise session.timeout in the configuration",
    ],
    "cancelled": [
        "Resend the request",
    ],
    "session_not_active": [
        "Resend the request to open a new session",
    ],
}

_DEFAULT_SOLUTIONS = [
    "Check Gemini authentication (Google OAuth2)",
    "Verify network connection",
    "Check API configuration",
]

_TITLES = {
    "auth": "Authentication failed",
    "upstream": "Gemini API error",
    "timeout": "Request timed out",
    "cancelled": "Request cancelled",
    "session_not_active": "Session not active",
}


def extract_file_references(prompt: str) -> list[str]:
    """Return the ``@path`` references in a prompt, in order, without repeats."""
    seen: dict[str, None] = {}
    for match in _FILE_REFERENCE.finditer(prompt):
        seen.setdefault(match.group(1), None)
    return list(seen)


def format_error_response(error: BaseException, context: str) -> str:
    """Render a failure as markdown naming its kind and likely fixes."""
    if isinstance(error, ValidationError):
        return str(error)

    kind = error.kind if isinstance(error, BridgeError) else "internal"
    title = _TITLES.get(kind, "Error communicating with Gemini CLI")
    solutions = _SOLUTIONS.get(kind, _DEFAULT_SOLUTIONS)
    lines = "\n".join(f"- {s}" for s in solutions)

    return f"""## Error: {title}: {error}

**Possible Solutions:**
{lines}

**Next Steps:**
- Retry after resolving the issue
- Check logs for more detailed error information

**Context:** {context}"""
