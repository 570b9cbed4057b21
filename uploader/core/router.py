"""Router with multipart body parsing, request correlation and response handling."""

import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any
from uuid import uuid4

import orjson
from asgi_correlation_id import correlation_id
from pydantic import BaseModel
from robyn import Request, Response, SubRouter, status_codes
from robyn.responses import FileResponse
from robyn.robyn import HttpMethod
from werkzeug.http import parse_options_header

from uploader.models.core import MultipartBody

MULTIPART_ENDPOINTS: set[str] = set()
REQUEST_ID_HEADER = "x-request-id"


def parse_endpoint_signature(sig: inspect.Signature) -> set[str]:
    """Return the names of parameters annotated as MultipartBody."""
    return {name for name, param in sig.parameters.items() if param.annotation is MultipartBody}


def request_body_bytes(request: Request) -> bytes:
    """Raw request body; Robyn hands over text when the body decodes as UTF-8."""
    body = request.body
    if isinstance(body, str):
        return body.encode()
    return bytes(body or b"")


def parse_multipart_body(
    multipart_params: set[str],
    request: Request,
    kwargs: dict[str, Any],
) -> Response | None:
    """Build MultipartBody kwargs from the request envelope."""
    if not multipart_params:
        return None

    mimetype, options = parse_options_header(request.headers.get("content-type") or "")
    boundary = options.get("boundary")
    if mimetype.lower() != "multipart/form-data" or not boundary:
        return Response(
            status_code=status_codes.HTTP_400_BAD_REQUEST,
            headers={"content-type": "text/plain; charset=utf-8"},
            description="Expected multipart/form-data with a boundary",
        )

    body = request_body_bytes(request)
    for param_name in multipart_params:
        kwargs[param_name] = MultipartBody.from_bytes(boundary.encode("latin-1"), body)

    return None


def parse_response(result: Any) -> Response | FileResponse:
    """Convert handler result to Response."""
    match result:
        case Response() | FileResponse():
            return result
        case BaseModel():
            return Response(
                status_code=status_codes.HTTP_200_OK,
                headers={"content-type": "application/json"},
                description=result.model_dump_json(indent=4),
            )
        case dict():
            return Response(
                status_code=status_codes.HTTP_200_OK,
                headers={"content-type": "application/json"},
                description=orjson.dumps(result).decode(),
            )
        case _:
            return Response(
                status_code=status_codes.HTTP_200_OK,
                headers={"content-type": "text/plain; charset=utf-8"},
                description=str(result),
            )


def bind_request_id(request: Request) -> str:
    """Set the correlation id for the current request from its header or a fresh one."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    correlation_id.set(request_id)
    return request_id


HTTP_METHODS = (
    HttpMethod.GET,
    HttpMethod.POST,
    HttpMethod.PUT,
    HttpMethod.DELETE,
    HttpMethod.PATCH,
    HttpMethod.HEAD,
    HttpMethod.OPTIONS,
    HttpMethod.TRACE,
    HttpMethod.CONNECT,
)


def _create_method_wrapper(original_method: Callable, router_prefix: str = "") -> Callable:
    @wraps(original_method)
    def method_wrapper(*args, **kwargs) -> Callable:
        endpoint = args[0] if args else kwargs.get("endpoint", "")
        decorator = original_method(*args, **kwargs)

        def handler_decorator(handler: Callable) -> Callable:
            sig = inspect.signature(handler)
            multipart_params = parse_endpoint_signature(sig)
            has_request_param = "request" in sig.parameters

            if multipart_params:
                full_path = f"{router_prefix}{endpoint}".replace("//", "/")
                MULTIPART_ENDPOINTS.add(full_path)

            @wraps(handler)
            async def wrapped_handler(request: Request, **h_kwargs):
                bind_request_id(request)

                if error := parse_multipart_body(multipart_params, request, h_kwargs):
                    return error

                # Pass request to handler only if it declared it
                if has_request_param:
                    h_kwargs["request"] = request

                result = await handler(**h_kwargs)
                return parse_response(result)

            # Build signature: always include request for Robyn injection
            new_params = [inspect.Parameter("request", inspect.Parameter.POSITIONAL_OR_KEYWORD, annotation=Request)]
            for name, param in sig.parameters.items():
                if name == "request" or name in multipart_params:
                    continue
                new_params.append(param)

            wrapped_handler.__signature__ = sig.replace(parameters=new_params)  # type: ignore[attr-defined]
            return decorator(wrapped_handler)

        return handler_decorator

    return method_wrapper


class Router(SubRouter):
    """Enhanced SubRouter with multipart parsing and response handling."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._prefix = kwargs.get("prefix", "")
        self._wrap_methods()

    def _wrap_methods(self) -> None:
        """Wrap HTTP methods with parsing logic."""
        for method in HTTP_METHODS:
            method_name = str(method).split(".")[-1].lower()
            if hasattr(self, method_name):
                original_method = getattr(self, method_name)
                wrapped_method = _create_method_wrapper(original_method, self._prefix)
                setattr(self, method_name, wrapped_method)
