"""Storage directory access: exclusive-create writes with delete-on-abort."""

from pathlib import Path
from types import TracebackType

from uploader.core.errors import StorageError
from uploader.core.logger import LogIcon, logger
from uploader.models.core import StoredFile

WRITE_PROBE_NAME = "write-test.txt"


def probe_writable(storage_path: Path) -> None:
    """Create and remove a probe file; raises OSError when the directory is not writable."""
    probe = storage_path / WRITE_PROBE_NAME
    probe.touch()
    probe.unlink()


def resolve_stored_file(storage_path: Path, name: str) -> Path | None:
    """Path of a stored file, or None for unknown, hidden or escaping names."""
    if not name or name.startswith(".") or "/" in name or "\\" in name or "\x00" in name:
        return None
    path = storage_path / name
    if path.parent != storage_path or not path.is_file():
        return None
    return path


class PendingFile:
    """A stored file being written; removed unless the owning transaction commits."""

    def __init__(self, directory: Path, name: str, buffer_size: int) -> None:
        self.name = name
        self.path = directory / name
        self.size = 0
        try:
            self._handle = open(self.path, "xb", buffering=buffer_size)  # noqa: SIM115
        except (OSError, ValueError) as ex:
            raise StorageError() from ex

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def write(self, data: bytes) -> None:
        try:
            self._handle.write(data)
        except OSError as ex:
            raise StorageError() from ex
        self.size += len(data)

    def close(self) -> StoredFile:
        try:
            self._handle.close()
        except OSError as ex:
            raise StorageError() from ex
        return StoredFile(name=self.name, path=self.path, size=self.size)

    def discard(self) -> None:
        try:
            self._handle.close()
        except OSError:
            logger.warning("Could not close partial file", icon=LogIcon.FILE, name=self.name)
        self.path.unlink(missing_ok=True)


class StorageTransaction:
    """Scope for the files of one request: everything is deleted on exit unless committed."""

    def __init__(self, storage_path: Path, buffer_size: int) -> None:
        self._storage_path = storage_path
        self._buffer_size = buffer_size
        self._pending: list[PendingFile] = []
        self._committed = False

    def __enter__(self) -> "StorageTransaction":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self._committed:
            self.rollback()

    def create(self, name: str) -> PendingFile:
        pending = PendingFile(self._storage_path, name, self._buffer_size)
        self._pending.append(pending)
        return pending

    def commit(self) -> None:
        self._committed = True

    def rollback(self) -> None:
        for pending in self._pending:
            pending.discard()
        if self._pending:
            logger.info("Removed files of aborted upload", icon=LogIcon.RECOVERY, count=len(self._pending))
        self._pending.clear()
