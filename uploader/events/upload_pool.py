"""Thread pool running the blocking upload pipeline off the event loop."""

from concurrent.futures import ThreadPoolExecutor

from uploader.core.lifespan import BaseEvent

THREAD_NAME_PREFIX = "upload"


def create_upload_pool(max_workers: int | None = None) -> ThreadPoolExecutor:
    """Create the executor that decodes request bodies and writes files to disk."""
    return ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=THREAD_NAME_PREFIX)


class UploadPoolEvent(BaseEvent[ThreadPoolExecutor]):
    """Manages the upload ThreadPoolExecutor lifecycle."""

    name = "upload_pool"

    async def startup(self) -> ThreadPoolExecutor:
        return create_upload_pool(max_workers=self.settings.MAX_WORKERS)

    async def shutdown(self, instance: ThreadPoolExecutor) -> None:
        """Wait for in-flight uploads so no partial file is left behind."""
        instance.shutdown(wait=True)
