"""upload-server - authenticated file upload server powered by Robyn."""

import sys

from robyn import Robyn

from uploader.api.files import create_webform_router
from uploader.api.files import router as files_router
from uploader.api.health import router as health_router
from uploader.api.upload import router as upload_router
from uploader.core.errors import ConfigError
from uploader.core.lifespan import create_lifespan
from uploader.core.logger import LogIcon, logger
from uploader.core.settings import EXIT_STORAGE_NOT_WRITABLE, Settings, load_settings
from uploader.events.upload_pool import UploadPoolEvent
from uploader.middlewares.access_log import RequestLoggingMiddleware
from uploader.middlewares.base import MiddlewareHandler
from uploader.middlewares.files import BodyLimitMiddleware, FileUploadOpenAPIMiddleware
from uploader.services.storage import probe_writable

MIN_RECOMMENDED_NAME_BYTES = 8


def create_app(settings: Settings) -> Robyn:
    """Build the Robyn application around one immutable configuration."""
    app = Robyn(__file__)
    app.inject_global(config=settings.upload_config())

    # Lifespan events
    lifespan = create_lifespan(app, settings)
    lifespan.register(UploadPoolEvent)

    app.startup_handler(lifespan.startup)
    app.shutdown_handler(lifespan.shutdown)

    # Routers
    if settings.ENABLE_WEBFORM:
        app.include_router(create_webform_router())
    app.include_router(health_router)
    app.include_router(upload_router)
    app.include_router(files_router)

    # Middlewares
    middlewares = MiddlewareHandler(app)
    middlewares.register(RequestLoggingMiddleware())
    middlewares.register(BodyLimitMiddleware(settings.max_upload_size))
    middlewares.register(FileUploadOpenAPIMiddleware())

    return app


def prepare_settings() -> Settings:
    """Load configuration and probe the storage directory, raising ConfigError on failure."""
    settings = load_settings()
    try:
        probe_writable(settings.STORAGE_PATH)
    except OSError as ex:
        raise ConfigError(
            f"STORAGE_PATH = {settings.STORAGE_PATH} is not writeable", exit_code=EXIT_STORAGE_NOT_WRITABLE
        ) from ex
    if settings.FILENAME_LENGTH < MIN_RECOMMENDED_NAME_BYTES:
        logger.warning("Short random names collide easily", icon=LogIcon.WARNING, bytes=settings.FILENAME_LENGTH)
    return settings


def main() -> None:
    try:
        settings = prepare_settings()
    except ConfigError as ex:
        logger.critical(f"{ex}, exiting", icon=LogIcon.CRITICAL, exit_code=ex.exit_code)
        sys.exit(ex.exit_code)

    app = create_app(settings)
    logger.info(
        "Starting server",
        icon=LogIcon.START,
        service=Settings.API_NAME,
        listen=settings.LISTEN_ADDRESS,
        url=settings.api_url,
        webform="enabled" if settings.ENABLE_WEBFORM else "disabled",
        public_root=settings.PUBLIC_ROOT,
        storage=str(settings.STORAGE_PATH),
        max_upload_mb=settings.MAX_UPLOAD_SIZE_IN_MB,
    )
    app.start(host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
