"""Middleware contract and registration on the Robyn application."""

from abc import ABC, abstractmethod
from collections.abc import Callable

from robyn import Request, Response, Robyn

from uploader.core.logger import LogIcon, logger


def _implements(hook: Callable) -> bool:
    return not getattr(hook, "__isabstractmethod__", False)


class BaseMiddleware(ABC):
    """A before/after hook pair bound to a set of endpoints, or to every route when empty."""

    endpoints: frozenset[str]

    def __init__(self, endpoints: frozenset[str] | list[str] | None = None) -> None:
        self.endpoints = frozenset(endpoints) if endpoints else frozenset()

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        if not (_implements(cls.before) or _implements(cls.after)):
            raise TypeError(f"{cls.__name__} must implement at least one of before/after")

    @abstractmethod
    def before(self, request: Request) -> Request | Response:
        """Return the request to continue, or a response to answer right away."""
        return request

    @abstractmethod
    def after(self, response: Response) -> Response:
        return response


class MiddlewareHandler:
    """Attaches middlewares to the application in registration order."""

    def __init__(self, app: Robyn) -> None:
        self._app = app

    def register(self, *middlewares: BaseMiddleware) -> "MiddlewareHandler":
        """Register one or more middlewares. Returns self for chaining."""
        for middleware in middlewares:
            endpoints = self._apply(middleware)
            logger.info(
                f"Registered middleware: {middleware.__class__.__name__}",
                icon=LogIcon.ADAPTER,
                endpoints=sorted(endpoints),
            )
        return self

    def _apply(self, middleware: BaseMiddleware) -> frozenset[str]:
        endpoints = middleware.endpoints or self._routes()
        for endpoint in endpoints:
            if _implements(middleware.before):
                self._register_before(endpoint, middleware.before)
            if _implements(middleware.after):
                self._register_after(endpoint, middleware.after)
        return endpoints

    def _routes(self) -> frozenset[str]:
        return frozenset(route[1] for route in self._app.get_all_routes())

    def _register_before(self, endpoint: str, handler: Callable) -> None:
        @self._app.before_request(endpoint)
        async def before_wrapper(request: Request) -> Request | Response:
            return handler(request)

    def _register_after(self, endpoint: str, handler: Callable) -> None:
        @self._app.after_request(endpoint)
        def after_wrapper(response: Response) -> Response:
            return handler(response)
