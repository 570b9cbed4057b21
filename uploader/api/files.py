"""Read-only access to stored files and the optional upload web form."""

import mimetypes
from pathlib import Path

from robyn import Headers, Request, Response, status_codes
from robyn.responses import FileResponse

from uploader.core.logger import LogIcon, logger
from uploader.core.router import Router
from uploader.services.responses import render_text
from uploader.services.storage import resolve_stored_file

STATIC_DIR = Path(__file__).parent.parent / "static"
WEBFORM_ASSETS: dict[str, tuple[str, str]] = {
    "/": ("index.html", "text/html; charset=utf-8"),
    "/style.css": ("style.css", "text/css; charset=utf-8"),
    "/scripts.js": ("scripts.js", "text/javascript; charset=utf-8"),
}

router = Router(__file__)


def serve_stored_file(storage_path: Path, name: str) -> Response | FileResponse:
    path = resolve_stored_file(storage_path, name)
    if path is None:
        return render_text(status_codes.HTTP_404_NOT_FOUND, "File not found")
    content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    logger.info("Serving stored file", icon=LogIcon.DOWNLOAD, name=path.name)
    return FileResponse(file_path=str(path), status_code=status_codes.HTTP_200_OK, headers=Headers({"content-type": content_type}))


@router.get("/:name")
async def stored_file(request: Request, global_dependencies) -> Response | FileResponse:
    config = global_dependencies["config"]
    return serve_stored_file(config.storage_path, request.path_params["name"])


def load_webform_assets(static_dir: Path = STATIC_DIR) -> dict[str, tuple[str, str]]:
    """Read the web form bundle once, as (body, content type) per endpoint."""
    return {
        endpoint: ((static_dir / file_name).read_text(encoding="utf-8"), content_type)
        for endpoint, (file_name, content_type) in WEBFORM_ASSETS.items()
    }


def render_asset(body: str, content_type: str) -> Response:
    return Response(status_code=status_codes.HTTP_200_OK, headers={"content-type": content_type}, description=body)


def create_webform_router() -> Router:
    """Router serving the upload form; only mounted when the web form is enabled."""
    webform = Router(__file__)
    assets = load_webform_assets()

    def _register(endpoint: str) -> None:
        @webform.get(endpoint)
        async def asset() -> Response:
            return render_asset(*assets[endpoint])

    for endpoint in assets:
        _register(endpoint)
    return webform
