"""Upload endpoint: POST/PUT / with a multipart/form-data body."""

import asyncio
from concurrent.futures import Executor

from robyn import Response

from uploader.core.logger import LogIcon, logger
from uploader.core.router import Router
from uploader.models.core import MultipartBody, UploadConfig
from uploader.services.pipeline import process_upload
from uploader.services.responses import render_outcome

router = Router(__file__)


async def handle_upload(form: MultipartBody, config: UploadConfig, executor: Executor | None = None) -> Response:
    """Run the blocking pipeline off the event loop and render its outcome."""
    logger.info("Upload started", icon=LogIcon.UPLOAD)
    loop = asyncio.get_running_loop()
    outcome = await loop.run_in_executor(executor, process_upload, form, form.boundary, config)
    return render_outcome(outcome, config.public_root)


def _dependencies(global_dependencies: dict) -> tuple[UploadConfig, Executor | None]:
    state = global_dependencies.get("state")
    executor = state.get("upload_pool") if state is not None else None
    return global_dependencies["config"], executor


@router.post("/")
async def upload_post(form: MultipartBody, global_dependencies) -> Response:
    config, executor = _dependencies(global_dependencies)
    return await handle_upload(form, config, executor)


@router.put("/")
async def upload_put(form: MultipartBody, global_dependencies) -> Response:
    config, executor = _dependencies(global_dependencies)
    return await handle_upload(form, config, executor)
