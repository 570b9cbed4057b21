"""Application lifespan: events own long-lived resources shared by request handlers.

Each registered event builds one resource at startup and stores it in the
shared ``State`` under its name; handlers read it through the ``state``
global dependency. Events are stopped in reverse start order, also when a
later event fails to start.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from typing import Any, Generic, TypeVar

from robyn import Robyn

from uploader.core.logger import LogIcon, logger
from uploader.core.settings import Settings

AsyncHandler = Callable[[], Coroutine[Any, Any, None]]

T = TypeVar("T")


class State:
    """Named resources created by lifespan events, with attribute access."""

    __slots__ = ("_data",)

    def __init__(self) -> None:
        object.__setattr__(self, "_data", {})

    def __getattr__(self, name: str) -> Any:
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"State has no attribute '{name}'") from None

    def __setattr__(self, name: str, value: Any) -> None:
        self._data[name] = value

    def __contains__(self, name: str) -> bool:
        return name in self._data

    def __repr__(self) -> str:
        return f"State({sorted(self._data)})"

    def get(self, name: str, default: Any = None) -> Any:
        return self._data.get(name, default)

    def pop(self, name: str, default: Any = None) -> Any:
        return self._data.pop(name, default)

    def clear(self) -> None:
        self._data.clear()


class BaseEvent(ABC, Generic[T]):
    """A startup/shutdown pair producing one shared resource of type T."""

    name: str
    state: State
    settings: Settings

    @abstractmethod
    async def startup(self) -> T: ...

    async def shutdown(self, instance: T) -> None:  # noqa: B027
        """Release the resource. Events without cleanup keep this no-op."""

    @classmethod
    def has_shutdown(cls) -> bool:
        return cls.shutdown is not BaseEvent.shutdown


class Lifespan:
    """Starts registered events in order and stops them in reverse."""

    def __init__(self, app: Robyn, settings: Settings) -> None:
        self._app = app
        self._settings = settings
        self._event_classes: list[type[BaseEvent[Any]]] = []
        self._events: list[BaseEvent[Any]] = []
        self._state: State | None = None

    def register(self, event_cls: type[BaseEvent[Any]]) -> "Lifespan":
        """Register an event class. Returns self for chaining."""
        self._event_classes.append(event_cls)
        return self

    @property
    def state(self) -> State | None:
        return self._state

    @property
    def events(self) -> list[BaseEvent[Any]]:
        return self._events

    async def _start(self, event_cls: type[BaseEvent[Any]], state: State) -> None:
        event = event_cls()
        event.state = state
        event.settings = self._settings

        logger.info(f"Starting event: {event.name}", icon=LogIcon.PROCESSING)
        setattr(state, event.name, await event.startup())
        self._events.append(event)
        logger.info(f"Event ready: {event.name}", icon=LogIcon.SUCCESS)

    async def _stop_all(self, state: State) -> None:
        while self._events:
            event = self._events.pop()
            instance = state.pop(event.name)
            if event.has_shutdown() and instance is not None:
                logger.info(f"Stopping event: {event.name}", icon=LogIcon.PROCESSING)
                await event.shutdown(instance)
        state.clear()

    @property
    def startup(self) -> AsyncHandler:
        """Async handler for ``app.startup_handler``."""

        async def _startup() -> None:
            logger.info("Starting application lifespan", icon=LogIcon.START, version=Settings.API_VERSION)
            state = self._state = State()

            for event_cls in self._event_classes:
                try:
                    await self._start(event_cls, state)
                except Exception:
                    logger.error(f"Event failed to start: {event_cls.name}", icon=LogIcon.ERROR)
                    await self._stop_all(state)
                    raise

            self._app.inject_global(state=state)
            logger.info("App state ready", icon=LogIcon.COMPLETE, events=[event.name for event in self._events])

        return _startup

    @property
    def shutdown(self) -> AsyncHandler:
        """Async handler for ``app.shutdown_handler``."""

        async def _shutdown() -> None:
            if self._state is None:
                logger.info("Lifespan never started, nothing to stop", icon=LogIcon.WARNING)
                return

            logger.info("Shutting down", icon=LogIcon.STOP)
            await self._stop_all(self._state)
            logger.info("Shutdown complete", icon=LogIcon.COMPLETE)

        return _shutdown


def create_lifespan(app: Robyn, settings: Settings) -> Lifespan:
    """Create lifespan manager for event registration."""
    return Lifespan(app, settings)
