"""MCP dispatch layer: tool menu, argument validation and the stdio server."""

from geminibridge.server.app import BridgeServer
from geminibridge.server.args import DEFAULT_SESSION_ID, ToolArgs, parse_tool_args
from geminibridge.server.formatting import extract_file_references, format_error_response
from geminibridge.server.tools import TOOLS, ToolSpec, get_tool

__all__ = [
    "BridgeServer",
    "DEFAULT_SESSION_ID",
    "TOOLS",
    "ToolArgs",
    "ToolSpec",
    "extract_file_references",
    "format_error_response",
    "get_tool",
    "parse_tool_args",
]
