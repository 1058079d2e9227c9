"""Tool descriptions and role instructions.

Prompts are loaded from markdown files in this package. Tool descriptions
embed the shared guidelines through a ``{guidelines}`` placeholder.
"""

from importlib.resources import files

_PROMPTS_PKG = files("geminibridge.prompts")


def load_prompt(name: str) -> str:
    """Load a prompt by name (without .md extension)."""
    return _PROMPTS_PKG.joinpath(f"{name}.md").read_text(encoding="utf-8").strip()


def list_prompts() -> list[str]:
    """List available prompt names."""
    return sorted(
        f.name[:-3]  # Remove .md extension
        for f in _PROMPTS_PKG.iterdir()
        if f.name.endswith(".md")
    )


def tool_description(role: str) -> str:
    """Description shown to MCP clients for the tool serving ``role``."""
    return load_prompt(f"{role}_tool").replace("{guidelines}", GUIDELINES)


def role_instruction(role: str) -> str:
    """System instruction installed on sessions of the tool serving ``role``."""
    return load_prompt(f"{role}_role")


GUIDELINES = load_prompt("guidelines")

__all__ = [
    "GUIDELINES",
    "list_prompts",
    "load_prompt",
    "role_instruction",
    "tool_description",
]
