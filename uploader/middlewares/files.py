"""Upload middlewares: body size ceiling and OpenAPI multipart/form-data patching."""

import orjson
from robyn import Request, Response, status_codes

from uploader.core.logger import LogIcon, logger
from uploader.core.router import MULTIPART_ENDPOINTS, request_body_bytes
from uploader.middlewares.base import BaseMiddleware

UPLOAD_FORM_SCHEMA = {
    "type": "object",
    "properties": {
        "key": {
            "type": "string",
            "description": "Shared upload key, must come before any file",
        },
        "noredirect": {
            "type": "string",
            "description": "When present, answer 200 with the file URL instead of redirecting",
        },
        "file": {
            "type": "string",
            "format": "binary",
            "description": "File to upload, repeatable",
        },
    },
    "required": ["key", "file"],
}


class BodyLimitMiddleware(BaseMiddleware):
    """Rejects upload requests whose body exceeds the configured ceiling."""

    def __init__(self, max_body_size: int, endpoints: frozenset[str] | list[str] | None = None) -> None:
        super().__init__(endpoints or ["/"])
        self.max_body_size = max_body_size

    def before(self, request: Request) -> Request | Response:
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self.max_body_size:
            return self._too_large(int(declared))

        received = len(request_body_bytes(request))
        if received > self.max_body_size:
            return self._too_large(received)
        return request

    def after(self, response: Response) -> Response:
        return response

    def _too_large(self, size: int) -> Response:
        logger.warning("Upload rejected, body too large", icon=LogIcon.FORBIDDEN, size=size, limit=self.max_body_size)
        return Response(
            status_code=status_codes.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            headers={"content-type": "text/plain; charset=utf-8"},
            description="Request body too large",
        )


class FileUploadOpenAPIMiddleware(BaseMiddleware):
    """Patches OpenAPI responses to use multipart/form-data for upload endpoints."""

    endpoints = frozenset(["/openapi.json"])

    def __init__(self) -> None:
        super().__init__(self.endpoints)

    def before(self, request: Request) -> Request:
        return request

    def after(self, response: Response) -> Response:
        """Patch OpenAPI spec with the upload form fields."""
        if not MULTIPART_ENDPOINTS:
            return response

        try:
            spec = orjson.loads(response.description)
        except orjson.JSONDecodeError:
            return response

        paths = spec.get("paths", {})
        for endpoint in MULTIPART_ENDPOINTS:
            for method in paths.get(endpoint, {}):
                if method not in ("post", "put"):
                    continue
                paths[endpoint][method]["requestBody"] = {
                    "content": {"multipart/form-data": {"schema": UPLOAD_FORM_SCHEMA}},
                    "required": True,
                }

        response.description = orjson.dumps(spec).decode()
        return response
