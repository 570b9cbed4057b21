"""Health check endpoint."""

import os
from pathlib import Path

from pydantic import BaseModel

from uploader.core.logger import LogIcon, logger
from uploader.core.router import Router
from uploader.core.settings import Settings as St

router = Router(__file__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    service: str
    version: str
    storage_writable: bool


def storage_health(storage_path: Path) -> HealthResponse:
    writable = storage_path.is_dir() and _writable(storage_path)
    return HealthResponse(
        status="healthy" if writable else "degraded",
        service=St.API_NAME,
        version=St.API_VERSION,
        storage_writable=writable,
    )


def _writable(path: Path) -> bool:
    return os.access(path, os.W_OK | os.X_OK)


@router.get("/health")
async def health_check(global_dependencies) -> HealthResponse:
    logger.info("Health check requested", icon=LogIcon.HEALTHCHECK)
    return storage_health(global_dependencies["config"].storage_path)
