"""MCP server exposing Gemini sessions as tools.

Each tool call is routed to the session keyed by ``tool:session_id``. New
sessions are started with the tool's role instruction; progress lines from
the session are relayed as MCP progress notifications.
"""

from __future__ import annotations

import os
import time
from datetime import datetime, timezone
from typing import Any

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from geminibridge.config.schema import Config
from geminibridge.errors import ValidationError
from geminibridge.logging import get_logger
from geminibridge.server.args import parse_tool_args
from geminibridge.server.formatting import extract_file_references, format_error_response
from geminibridge.server.tools import TOOLS, get_tool
from geminibridge.session.controller import ProgressCallback
from geminibridge.session.registry import SessionFactory, SessionKey, SessionRegistry

log = get_logger("server")


def _text_result(
    text: str, *, is_error: bool = False, meta: dict[str, Any] | None = None
) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        isError=is_error,
        _meta=meta,
    )


class BridgeServer:
    """Bridge between MCP clients and Gemini sessions.

    Usage:
        server = BridgeServer(make_session, config=config)
        await server.run_stdio()
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        registry: SessionRegistry | None = None,
        config: Config | None = None,
    ) -> None:
        self._config = config or Config()
        self._session_factory = session_factory
        self._registry = registry if registry is not None else SessionRegistry()
        self._server = Server(
            self._config.server.name, version=self._config.server.version
        )
        self._register_handlers()

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def server(self) -> Server:
        return self._server

    def _register_handlers(self) -> None:
        server = self._server

        @server.list_tools()
        async def _list_tools() -> list[types.Tool]:
            return self.list_tools()

        # Arguments are validated by handle_call so failures render uniformly
        @server.call_tool(validate_input=False)
        async def _call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
            return await self.handle_call(name, arguments, self._progress_sink())

    def list_tools(self) -> list[types.Tool]:
        return [spec.to_mcp() for spec in TOOLS.values()]

    def _progress_sink(self) -> ProgressCallback:
        """Progress relay bound to the request currently being served."""
        ctx = self._server.request_context
        token: str | int = ctx.request_id
        if ctx.meta is not None and ctx.meta.progressToken is not None:
            token = ctx.meta.progressToken
        session = ctx.session
        request_id = str(ctx.request_id)
        sent = 0

        async def send(message: str) -> None:
            nonlocal sent
            sent += 1
            await session.send_progress_notification(
                progress_token=token,
                progress=sent,
                message=message,
                related_request_id=request_id,
            )
            log.debug("Progress: %s", message)

        return send

    async def handle_call(
        self,
        name: str,
        arguments: dict[str, Any] | None,
        progress: ProgressCallback | None = None,
    ) -> types.CallToolResult:
        """Serve one tool invocation.

        Never raises for tool-level failures: they come back as error results
        with a readable message.
        """
        started = time.monotonic()
        try:
            spec = get_tool(name)
            args = parse_tool_args(arguments)
            session_id = args.resolved_session_id()
            project_root = args.project_path or os.getcwd()
            key = SessionKey(name, session_id)
            log.info("%s (session: %s, key: %s)", name, session_id, key)

            controller = await self._registry.get_or_create(
                key, self._session_factory, project_root, spec.instruction
            )

            log.info("Processing %s...", name)
            answer = await controller.send_prompt(
                args.prompt, self._config.session.timeout, progress
            )
        except ValidationError as e:
            log.warning("Invalid arguments for %s: %s", name, e)
            return _text_result(format_error_response(e, f"Tool: {name}"), is_error=True)
        except Exception as e:
            log.error("Error executing %s: %s", name, e)
            return _text_result(format_error_response(e, f"Tool: {name}"), is_error=True)

        elapsed_ms = round((time.monotonic() - started) * 1000)
        log.info("%s completed in %dms", name, elapsed_ms)

        return _text_result(
            answer,
            meta={
                "session_id": session_id,
                "tool": name,
                "model": controller.model,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "processing_time_ms": elapsed_ms,
                "file_references": extract_file_references(args.prompt),
            },
        )

    async def cleanup(self) -> None:
        """Stop every session."""
        await self._registry.stop_all()

    async def run_stdio(self) -> None:
        """Serve MCP over stdin/stdout until the client disconnects."""
        log.info("Starting (%s)", ", ".join(TOOLS))
        try:
            async with stdio_server() as (read_stream, write_stream):
                log.info("Ready")
                await self._server.run(
                    read_stream,
                    write_stream,
                    self._server.create_initialization_options(),
                )
        finally:
            log.info("Shutting down, stopping sessions...")
            await self.cleanup()
