"""Core models for upload request/response handling."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from uploader.core.errors import UploadError

TRANSFER_BUFFER_SIZE = 1 << 20  # 1 MiB


class PartKind(StrEnum):
    """Classification of a single multipart form part."""

    AUTH_KEY = "auth_key"
    REDIRECT_FLAG = "redirect_flag"
    FILE_PAYLOAD = "file_payload"
    IGNORE = "ignore"


class UploadState(StrEnum):
    """Per-request upload state machine."""

    AWAITING_KEY = "awaiting_key"
    KEY_ACCEPTED = "key_accepted"
    ABORTED = "aborted"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class UploadConfig:
    """Immutable upload configuration shared by every request."""

    secret: bytes
    storage_path: Path
    public_root: str
    random_name_bytes: int
    max_body_size: int
    transfer_buffer_size: int = TRANSFER_BUFFER_SIZE


@dataclass(frozen=True, slots=True)
class StoredFile:
    """A file persisted in the storage directory."""

    name: str
    path: Path
    size: int

    def public_url(self, public_root: str) -> str:
        return public_root + self.name


@dataclass(frozen=True, slots=True)
class UploadOutcome:
    """Result of processing one upload request."""

    state: UploadState
    stored: tuple[StoredFile, ...] = ()
    redirect: bool = True
    error: UploadError | None = None

    @property
    def ok(self) -> bool:
        return self.state is UploadState.COMPLETED


class MultipartBody:
    """Container for a multipart/form-data request body consumed as a chunk stream."""

    __slots__ = ("boundary", "_chunks")

    def __init__(self, boundary: bytes, chunks: Iterable[bytes]) -> None:
        self.boundary = boundary
        self._chunks = chunks

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._chunks)

    @classmethod
    def from_bytes(cls, boundary: bytes, body: bytes, chunk_size: int = TRANSFER_BUFFER_SIZE) -> "MultipartBody":
        """Wrap an already received body, yielding it in bounded chunks."""
        return cls(boundary, iter_chunks(body, chunk_size))


def iter_chunks(data: bytes, chunk_size: int) -> Iterator[bytes]:
    """Yield ``data`` in slices of at most ``chunk_size`` bytes."""
    view = memoryview(data)
    for start in range(0, len(view), chunk_size):
        yield bytes(view[start : start + chunk_size])

