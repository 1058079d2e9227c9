"""Tool menu exposed over MCP."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from mcp import types

from geminibridge.errors import ValidationError
from geminibridge.prompts import role_instruction, tool_description

_SESSION_ID_HELP = (
    "Optional: Session ID for maintaining conversation context across requests. "
    "Use the same ID for follow-up questions."
)


@dataclass(frozen=True)
class ToolSpec:
    """One Gemini tool: its name, the role it plays and its prompt help text."""

    name: str
    role: str
    prompt_help: str
    project_path_help: str = "Optional: Absolute path to the project directory"

    @property
    def description(self) -> str:
        return tool_description(self.role)

    @property
    def instruction(self) -> str:
        return role_instruction(self.role)

    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "prompt": {"type": "string", "description": self.prompt_help},
                "project_path": {"type": "string", "description": self.project_path_help},
                "session_id": {"type": "string", "description": _SESSION_ID_HELP},
            },
            "required": ["prompt"],
        }

    def to_mcp(self) -> types.Tool:
        return types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema(),
        )


TOOLS: dict[str, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(
            name="gemini_plan",
            role="plan",
            prompt_help=(
                "The planning request or question to send to Gemini. Include context "
                "about the feature, goals, and any constraints. Examples: "
                '"Plan a microservices architecture using @src/ and @docs/requirements/", '
                '"Design a payment system with @src/payment/ and @docs/api-specs/".'
            ),
            project_path_help=(
                "Optional: Absolute path to the project directory. "
                "Defaults to current working directory."
            ),
        ),
        ToolSpec(
            name="gemini_analyze",
            role="analyze",
            prompt_help=(
                "The analysis request. Examples: "
                '"Analyze @src/api/ for security vulnerabilities", '
                '"Check @components/ for performance issues", '
                '"Find code quality issues in @utils/helper.py", '
                '"Analyze @src/ for architectural patterns and tech debt".'
            ),
        ),
        ToolSpec(
            name="gemini_review",
            role="review",
            prompt_help=(
                "The review request. Examples: "
                '"Review @src/auth/login.py for security and best practices", '
                '"Review the changes in @components/ and provide feedback", '
                '"Check @api/routes.py for potential bugs". '
                'For batch reviews, use multiple @: "Review @file1.py @file2.py @dir/".'
            ),
        ),
    )
}


def get_tool(name: str) -> ToolSpec:
    """Look up a tool by name.

    Raises:
        ValidationError: If no such tool exists.
    """
    spec = TOOLS.get(name)
    if spec is None:
        raise ValidationError(f"Unknown tool: {name}", [f"name: unknown tool {name!r}"])
    return spec
