"""Tests for the session registry."""

from __future__ import annotations

import pytest

from geminibridge.session import SessionController, SessionKey, SessionRegistry
from tests.utils import FakeEngine, engine_factory_for


class ControllerFactory:
    """Builds controllers over fresh FakeEngines and remembers them."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.engines: list[FakeEngine] = []
        self.calls: list[tuple[str, str]] = []

    def __call__(self, project_root: str, session_id: str) -> SessionController:
        self.calls.append((project_root, session_id))
        engine = FakeEngine(fail_on=self.fail_on)
        self.engines.append(engine)
        return SessionController(
            project_root,
            session_id=session_id,
            engine_factory=engine_factory_for(engine),
        )


class TestSessionKey:
    def test_str(self):
        assert str(SessionKey("gemini_plan", "default")) == "gemini_plan:default"

    def test_tools_are_distinct(self):
        assert SessionKey("gemini_plan", "x") != SessionKey("gemini_review", "x")


class TestSessionRegistry:
    @pytest.mark.asyncio
    async def test_creates_and_starts_on_first_use(self):
        registry = SessionRegistry()
        factory = ControllerFactory()
        key = SessionKey("gemini_plan", "default")

        controller = await registry.get_or_create(key, factory, "/repo", "ROLE: planner")

        assert controller.is_active()
        assert factory.calls == [("/repo", "default")]
        assert factory.engines[0].system_instruction == "ROLE: planner"
        assert key in registry
        assert len(registry) == 1
        assert registry.get(key) is controller

    @pytest.mark.asyncio
    async def test_reuses_existing_controller(self):
        registry = SessionRegistry()
        factory = ControllerFactory()
        key = SessionKey("gemini_plan", "default")

        first = await registry.get_or_create(key, factory, "/repo")
        second = await registry.get_or_create(key, factory, "/elsewhere")

        assert first is second
        assert len(factory.calls) == 1

    @pytest.mark.asyncio
    async def test_keys_are_scoped_per_tool(self):
        registry = SessionRegistry()
        factory = ControllerFactory()

        plan = await registry.get_or_create(SessionKey("gemini_plan", "s"), factory, "/r")
        review = await registry.get_or_create(
            SessionKey("gemini_review", "s"), factory, "/r"
        )

        assert plan is not review
        assert sorted(str(k) for k in registry.keys()) == [
            "gemini_plan:s",
            "gemini_review:s",
        ]

    @pytest.mark.asyncio
    async def test_failed_start_is_not_registered(self):
        registry = SessionRegistry()
        key = SessionKey("gemini_plan", "default")

        with pytest.raises(RuntimeError):
            await registry.get_or_create(key, ControllerFactory("start_chat"), "/repo")

        assert key not in registry
        controller = await registry.get_or_create(key, ControllerFactory(), "/repo")
        assert controller.is_active()

    @pytest.mark.asyncio
    async def test_remove(self):
        registry = SessionRegistry()
        key = SessionKey("gemini_plan", "default")
        controller = await registry.get_or_create(key, ControllerFactory(), "/repo")

        assert registry.remove(key) is controller
        assert registry.remove(key) is None
        assert registry.get(key) is None

    @pytest.mark.asyncio
    async def test_stop_all(self):
        registry = SessionRegistry()
        factory = ControllerFactory()
        controllers = [
            await registry.get_or_create(SessionKey("gemini_plan", sid), factory, "/r")
            for sid in ("a", "b")
        ]

        await registry.stop_all()

        assert len(registry) == 0
        assert all(not c.is_active() for c in controllers)
        assert all(e.closed for e in factory.engines)

    @pytest.mark.asyncio
    async def test_stop_all_empty(self):
        await SessionRegistry().stop_all()
