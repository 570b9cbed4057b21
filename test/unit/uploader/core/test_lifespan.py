"""Tests for lifespan management."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from uploader.core.lifespan import BaseEvent, Lifespan, State, create_lifespan


@pytest.fixture
def settings() -> SimpleNamespace:
    return SimpleNamespace(MAX_WORKERS=2)


# -----------------------------------------------------------------------------
# State Tests
# -----------------------------------------------------------------------------


class TestState:
    """Tests for the State class."""

    def test_state_set_and_get_attribute(self) -> None:
        """Verify attribute set/get operations."""
        state = State()
        state.upload_pool = "pool"
        assert state.upload_pool == "pool"
        assert "upload_pool" in state

    def test_state_get_nonexistent_attribute_raises(self) -> None:
        """Verify AttributeError for missing attributes."""
        state = State()
        with pytest.raises(AttributeError, match="State has no attribute 'missing'"):
            _ = state.missing

    def test_state_get_with_default(self) -> None:
        """Verify get method with default value, as used by request handlers."""
        state = State()
        assert state.get("upload_pool") is None
        state.upload_pool = "pool"
        assert state.get("upload_pool") == "pool"

    def test_state_clear(self) -> None:
        """Verify clear removes all data."""
        state = State()
        state.a = 1
        state.clear()
        assert "a" not in state


# -----------------------------------------------------------------------------
# BaseEvent Tests
# -----------------------------------------------------------------------------


class TestBaseEvent:
    """Tests for BaseEvent abstract class."""

    def test_has_shutdown_returns_false_when_not_overridden(self) -> None:
        """Verify has_shutdown returns False for default implementation."""

        class NoShutdownEvent(BaseEvent[str]):
            name = "no_shutdown"

            async def startup(self) -> str:
                return "started"

        assert not NoShutdownEvent.has_shutdown()

    def test_has_shutdown_returns_true_when_overridden(self) -> None:
        """Verify has_shutdown returns True when shutdown is overridden."""

        class WithShutdownEvent(BaseEvent[str]):
            name = "with_shutdown"

            async def startup(self) -> str:
                return "started"

            async def shutdown(self, instance: str) -> None:
                pass

        assert WithShutdownEvent.has_shutdown()


# -----------------------------------------------------------------------------
# Lifespan Tests
# -----------------------------------------------------------------------------


class TestLifespan:
    """Tests for Lifespan class."""

    def test_create_lifespan_returns_lifespan(self, settings) -> None:
        """Verify create_lifespan returns Lifespan instance."""
        assert isinstance(create_lifespan(MagicMock(), settings), Lifespan)

    def test_register_returns_self_for_chaining(self, settings) -> None:
        """Verify register returns self for method chaining."""
        lifespan = Lifespan(MagicMock(), settings)

        class DummyEvent(BaseEvent[str]):
            name = "dummy"

            async def startup(self) -> str:
                return "dummy"

        assert lifespan.register(DummyEvent) is lifespan

    def test_state_is_none_before_startup(self, settings) -> None:
        """Verify state is None before startup runs."""
        lifespan = Lifespan(MagicMock(), settings)
        assert lifespan.state is None
        assert lifespan.events == []

    async def test_startup_hands_settings_to_events(self, settings) -> None:
        """Verify events see the settings and their instance lands in state."""
        mock_app = MagicMock()
        lifespan = Lifespan(mock_app, settings)

        class WorkersEvent(BaseEvent[int]):
            name = "workers"

            async def startup(self) -> int:
                return self.settings.MAX_WORKERS

        lifespan.register(WorkersEvent)
        await lifespan.startup()

        assert lifespan.state is not None
        assert lifespan.state.workers == 2
        mock_app.inject_global.assert_called_once_with(state=lifespan.state)

    async def test_shutdown_calls_event_shutdown(self, settings) -> None:
        """Verify shutdown calls event shutdown methods in reverse order."""
        shutdown_called = []

        class EventA(BaseEvent[str]):
            name = "event_a"

            async def startup(self) -> str:
                return "a"

            async def shutdown(self, instance: str) -> None:
                shutdown_called.append(instance)

        class EventB(BaseEvent[str]):
            name = "event_b"

            async def startup(self) -> str:
                return "b"

            async def shutdown(self, instance: str) -> None:
                shutdown_called.append(instance)

        lifespan = Lifespan(MagicMock(), settings)
        lifespan.register(EventA).register(EventB)

        await lifespan.startup()
        await lifespan.shutdown()

        assert shutdown_called == ["b", "a"]
        assert "event_a" not in lifespan.state

    async def test_shutdown_handles_no_state(self, settings) -> None:
        """Verify shutdown handles case when state is None."""
        lifespan = Lifespan(MagicMock(), settings)
        await lifespan.shutdown()

    async def test_failed_startup_stops_started_events(self, settings) -> None:
        """Verify events started before a failure are stopped and the error propagates."""
        stopped = []

        class Started(BaseEvent[str]):
            name = "started"

            async def startup(self) -> str:
                return "resource"

            async def shutdown(self, instance: str) -> None:
                stopped.append(instance)

        class Broken(BaseEvent[str]):
            name = "broken"

            async def startup(self) -> str:
                raise RuntimeError("no pool")

        mock_app = MagicMock()
        lifespan = Lifespan(mock_app, settings)
        lifespan.register(Started).register(Broken)

        with pytest.raises(RuntimeError, match="no pool"):
            await lifespan.startup()

        assert stopped == ["resource"]
        assert lifespan.events == []
        mock_app.inject_global.assert_not_called()
