"""Validation of inbound tool arguments."""

from __future__ import annotations

from typing import Any

import pydantic
from pydantic import BaseModel, Field

from geminibridge.errors import ValidationError

DEFAULT_SESSION_ID = "default"


class ToolArgs(BaseModel):
    """Arguments shared by every Gemini tool."""

    model_config = {"extra": "ignore", "str_strip_whitespace": False}

    prompt: str = Field(min_length=1)
    project_path: str | None = None
    session_id: str | None = None

    def resolved_session_id(self) -> str:
        return self.session_id or DEFAULT_SESSION_ID


def parse_tool_args(arguments: dict[str, Any] | None) -> ToolArgs:
    """Validate raw MCP arguments.

    Raises:
        ValidationError: With one ``"<field>: <message>"`` issue per problem.
    """
    if arguments is None:
        raise ValidationError("Missing tool arguments", ["arguments: Field required"])
    try:
        return ToolArgs.model_validate(arguments)
    except pydantic.ValidationError as e:
        issues = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ValidationError(f"Invalid arguments: {', '.join(issues)}", issues) from e
