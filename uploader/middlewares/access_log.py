"""Access logging middleware."""

from robyn import Request, Response

from uploader.core.logger import LogIcon, logger
from uploader.middlewares.base import BaseMiddleware


class RequestLoggingMiddleware(BaseMiddleware):
    """Logs every request line and the status of its response."""

    def before(self, request: Request) -> Request:
        logger.info("Request", icon=LogIcon.NETWORK, method=request.method, path=request.url.path)
        return request

    def after(self, response: Response) -> Response:
        logger.info("Response", icon=LogIcon.NETWORK, status=response.status_code)
        return response
