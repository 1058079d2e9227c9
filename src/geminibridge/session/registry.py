"""Registry of live session controllers keyed by (tool, caller session id).

Owned by the dispatch layer and handed around explicitly; nothing in the
session core reaches for a global table.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import NamedTuple

from geminibridge.logging import get_logger
from geminibridge.session.controller import SessionController

log = get_logger("registry")

# (project_root, session_id) -> unstarted controller
SessionFactory = Callable[[str, str], SessionController]


class SessionKey(NamedTuple):
    """Composite key; each tool keeps its own conversation per caller id."""

    tool: str
    session_id: str

    def __str__(self) -> str:
        return f"{self.tool}:{self.session_id}"


class SessionRegistry:
    """Maps session keys to started controllers.

    Insertion is check-then-insert without a lock: two concurrent first uses
    of the same key can both build and start a controller, and the later
    insert replaces the earlier one.
    """

    def __init__(self) -> None:
        self._sessions: dict[SessionKey, SessionController] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, key: object) -> bool:
        return key in self._sessions

    def keys(self) -> list[SessionKey]:
        return list(self._sessions)

    def get(self, key: SessionKey) -> SessionController | None:
        return self._sessions.get(key)

    async def get_or_create(
        self,
        key: SessionKey,
        factory: SessionFactory,
        project_root: str,
        system_instruction: str | None = None,
    ) -> SessionController:
        """Return the controller for ``key``, creating and starting it if new.

        A controller whose start() fails is not registered; the error
        propagates so the next call retries from scratch.
        """
        controller = self._sessions.get(key)
        if controller is not None:
            return controller

        log.info("Creating new session: %s", key)
        controller = factory(project_root, key.session_id)
        await controller.start(system_instruction)
        self._sessions[key] = controller
        return controller

    def remove(self, key: SessionKey) -> SessionController | None:
        return self._sessions.pop(key, None)

    async def stop_all(self) -> None:
        """Stop every registered controller and forget them."""
        controllers = list(self._sessions.values())
        self._sessions.clear()
        if not controllers:
            return
        log.info("Stopping %d session(s)", len(controllers))
        results = await asyncio.gather(
            *(c.stop() for c in controllers), return_exceptions=True
        )
        for controller, result in zip(controllers, results):
            if isinstance(result, Exception):
                log.warning("Error stopping %s: %s", controller.session_id, result)
