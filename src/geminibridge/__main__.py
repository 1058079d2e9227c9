"""Entry point for running geminibridge as an MCP stdio server.

Usage:
    python -m geminibridge

    # Pick a model
    AGENT_MODEL=gemini-2.5-pro python -m geminibridge

Starts the MCP server on stdin/stdout exposing gemini_plan, gemini_analyze
and gemini_review. Logs go to stderr, or to the file named by GB_LOG.
"""

import asyncio
import functools
import os
import re
import signal
import sys

from geminibridge.logging import get_logger, setup_logging

log = get_logger()

_ENV_REFERENCE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars() -> None:
    """Expand ${VAR_NAME} references in environment variables.

    This allows an MCP client config to use:
        "env": { "GEMINI_API_KEY": "${GEMINI_API_KEY}" }
    """
    for key, value in list(os.environ.items()):

        def replace_var(match: re.Match[str]) -> str:
            return os.environ.get(match.group(1), match.group(0))

        expanded = _ENV_REFERENCE.sub(replace_var, value)
        if expanded != value:
            os.environ[key] = expanded
            log.debug("Expanded env var: %s", key)


async def _main() -> None:
    """Build the server and serve until stdin closes or a signal arrives."""
    from geminibridge.config import get_config
    from geminibridge.engine import LiteLLMEngine
    from geminibridge.server import BridgeServer
    from geminibridge.session import SessionController

    config = get_config()
    engine_factory = functools.partial(LiteLLMEngine, config=config.engine)

    def make_session(project_root: str, session_id: str) -> SessionController:
        return SessionController(
            project_root,
            config.engine.model,
            session_id,
            engine_factory=engine_factory,
            config=config,
        )

    server = BridgeServer(make_session, config=config)

    task = asyncio.current_task()
    loop = asyncio.get_running_loop()
    if task is not None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, task.cancel)
            except (NotImplementedError, RuntimeError):
                # Windows event loops have no signal handler support
                pass

    try:
        await server.run_stdio()
    except asyncio.CancelledError:
        log.info("Interrupted, shutting down")


def main() -> None:
    """Run the geminibridge MCP server."""
    from geminibridge.config import load_config

    _expand_env_vars()

    # Load config before logging so we can use config.logging settings
    config = load_config()
    setup_logging(config.logging)

    log.info(
        "Starting geminibridge (model=%s, server=%s %s)",
        config.engine.model,
        config.server.name,
        config.server.version,
    )

    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        pass
    except Exception:
        log.exception("Fatal error during startup")
        sys.exit(1)


if __name__ == "__main__":
    main()
