"""Test fixtures for upload-server unit tests."""

import json
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from uploader.core.lifespan import State
from uploader.models.core import UploadConfig

SECRET = "s3cret-key"
PUBLIC_ROOT = "https://files.example.com/"
BOUNDARY = "----uploadtestboundary"


# -----------------------------------------------------------------------------
# Mock classes for Robyn Request
# -----------------------------------------------------------------------------


@dataclass
class MockHeaders:
    """Mock Headers object for Robyn Request."""

    _data: dict = field(default_factory=dict)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._data.get(key.lower(), default)

    def set(self, key: str, value: str) -> None:
        self._data[key.lower()] = value

    def __getitem__(self, key: str) -> str:
        return self._data[key.lower()]

    def __setitem__(self, key: str, value: str) -> None:
        self._data[key.lower()] = value


@dataclass
class MockUrl:
    """Mock Url object for Robyn Request."""

    path: str = "/"


@dataclass
class MockRequest:
    """Mock Request object for Robyn."""

    body: bytes | str = b""
    headers: MockHeaders = field(default_factory=MockHeaders)
    method: str = "GET"
    url: MockUrl = field(default_factory=MockUrl)
    path_params: dict = field(default_factory=dict)

    def json(self) -> dict:
        return json.loads(self.body)


# -----------------------------------------------------------------------------
# Multipart bodies
# -----------------------------------------------------------------------------


def encode_multipart(parts: list[tuple], boundary: str = BOUNDARY) -> bytes:
    """Encode (name, value) fields and (name, filename, content) files in order."""
    chunks: list[bytes] = []
    for part in parts:
        chunks.append(f"--{boundary}\r\n".encode())
        if len(part) == 2:
            name, value = part
            chunks.append(f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode())
        else:
            name, filename, value = part
            chunks.append(
                f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
                "Content-Type: application/octet-stream\r\n\r\n".encode()
            )
        chunks.append(value if isinstance(value, bytes) else value.encode())
        chunks.append(b"\r\n")
    chunks.append(f"--{boundary}--\r\n".encode())
    return b"".join(chunks)


@pytest.fixture
def multipart():
    """Factory fixture encoding ordered multipart parts."""
    return encode_multipart


# -----------------------------------------------------------------------------
# Configuration and storage
# -----------------------------------------------------------------------------


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    path = tmp_path / "storage"
    path.mkdir()
    return path


@pytest.fixture
def upload_config(storage_dir: Path) -> UploadConfig:
    return UploadConfig(
        secret=SECRET.encode(),
        storage_path=storage_dir,
        public_root=PUBLIC_ROOT,
        random_name_bytes=8,
        max_body_size=1 << 20,
        transfer_buffer_size=64,
    )


@pytest.fixture
def stored_names(storage_dir: Path):
    """Names currently present in the storage directory."""
    return lambda: sorted(p.name for p in storage_dir.iterdir())


# -----------------------------------------------------------------------------
# State fixture
# -----------------------------------------------------------------------------


@pytest.fixture(scope="session")
def test_state() -> State:
    """Create a test state container."""
    return State()


@pytest.fixture
def global_dependencies(test_state: State, upload_config: UploadConfig) -> dict:
    """Setup global dependencies for tests."""
    yield {"state": test_state, "config": upload_config}
    test_state.clear()


@pytest.fixture
def make_mock_request(global_dependencies):
    """Factory fixture to create mock requests."""

    def _make(
        body: bytes | str = b"",
        content_type: str | None = f"multipart/form-data; boundary={BOUNDARY}",
        method: str = "POST",
        path: str = "/",
        path_params: dict | None = None,
    ) -> MockRequest:
        headers = MockHeaders()
        if content_type:
            headers["content-type"] = content_type
        headers["content-length"] = str(len(body))
        return MockRequest(
            body=body, headers=headers, method=method, url=MockUrl(path), path_params=path_params or {}
        )

    return _make
