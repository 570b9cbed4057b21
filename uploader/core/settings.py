"""Unified settings for upload-server."""

import tomllib
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from uploader.core.errors import ConfigError
from uploader.models.core import UploadConfig

BYTES_PER_MB = 1 << 20

# Exit code reported when a variable is missing or invalid, lowest wins.
EXIT_CODES: dict[str, int] = {
    "UPLOAD_KEY": 1,
    "STORAGE_PATH": 2,
    "PUBLIC_ROOT": 4,
    "FILENAME_LENGTH": 5,
    "MAX_UPLOAD_SIZE_IN_MB": 6,
    "LISTEN_ADDRESS": 7,
}
EXIT_STORAGE_NOT_WRITABLE = 3
EXIT_UNKNOWN = 8


def read_pyproject(pyproject_path: Path) -> dict:
    """Read pyproject.toml into a dict."""
    if not pyproject_path.is_file():
        return {}
    with pyproject_path.open("rb") as file_handle:
        return tomllib.load(file_handle)


def get_version(base_dir: Path) -> str:
    """Get version from git tags or fallback to package metadata."""
    try:
        import git

        repo = git.Repo(base_dir, search_parent_directories=True)
        latest_tag = max(repo.tags, key=lambda t: t.commit.committed_datetime, default=None)
        return str(latest_tag) if latest_tag else "0.0.0"
    except Exception:
        try:
            import importlib.metadata

            return importlib.metadata.version("upload-server")
        except Exception:
            return "0.0.0"


class LoggingSettings(BaseSettings):
    """Settings needed before the upload configuration is known."""

    DEBUG: bool = True
    ENVIRONMENT: Literal["DEV", "PROD"] = "DEV"

    @property
    def dev_logging(self) -> bool:
        """Human readable logs; production always logs JSON lines."""
        return self.DEBUG and self.ENVIRONMENT != "PROD"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


class Settings(LoggingSettings):
    """Unified settings for upload-server, read from the environment."""

    # ClassVar to prevent Pydantic from trying to load from env
    BASE_DIR: ClassVar[Path] = Path(__file__).parent.parent.parent
    PROJECT: ClassVar[dict] = read_pyproject(BASE_DIR / "pyproject.toml")
    API_NAME: ClassVar[str] = PROJECT.get("project", {}).get("name", "upload-server")
    API_VERSION: ClassVar[str] = get_version(BASE_DIR)

    # Uploads
    UPLOAD_KEY: str
    STORAGE_PATH: Path
    PUBLIC_ROOT: str
    FILENAME_LENGTH: int
    MAX_UPLOAD_SIZE_IN_MB: int

    # Server
    LISTEN_ADDRESS: str
    ENABLE_WEBFORM: bool = False

    # Workers
    MAX_WORKERS: int = 4

    @field_validator("UPLOAD_KEY")
    @classmethod
    def _check_key(cls, value: str) -> str:
        if not value or value == "DEFAULT_KEY":
            raise ValueError("UPLOAD_KEY can't be 'DEFAULT_KEY' or empty")
        return value

    @field_validator("STORAGE_PATH", mode="before")
    @classmethod
    def _resolve_storage(cls, value: str | Path) -> Path:
        if not str(value):
            raise ValueError("STORAGE_PATH can't be empty")
        return (Path.cwd() / value).resolve()

    @field_validator("PUBLIC_ROOT", "LISTEN_ADDRESS")
    @classmethod
    def _not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("value can't be empty")
        return value

    @field_validator("FILENAME_LENGTH", "MAX_UPLOAD_SIZE_IN_MB")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("value must be a positive integer")
        return value

    @field_validator("LISTEN_ADDRESS")
    @classmethod
    def _check_address(cls, value: str) -> str:
        _, sep, port = value.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError("LISTEN_ADDRESS must look like 'host:port'")
        return value

    @property
    def api_host(self) -> str:
        host = self.LISTEN_ADDRESS.rpartition(":")[0].strip("[]")
        return host or "0.0.0.0"

    @property
    def api_port(self) -> int:
        return int(self.LISTEN_ADDRESS.rpartition(":")[2])

    @property
    def max_upload_size(self) -> int:
        return self.MAX_UPLOAD_SIZE_IN_MB * BYTES_PER_MB

    @property
    def api_url(self) -> str:
        return f"http://{self.api_host}:{self.api_port}"

    def upload_config(self) -> UploadConfig:
        """Build the immutable configuration handed to the upload pipeline."""
        return UploadConfig(
            secret=self.UPLOAD_KEY.encode(),
            storage_path=self.STORAGE_PATH,
            public_root=self.PUBLIC_ROOT,
            random_name_bytes=self.FILENAME_LENGTH,
            max_body_size=self.max_upload_size,
        )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True)


def load_settings(**overrides) -> Settings:
    """Build settings, mapping validation failures to a process exit code."""
    try:
        return Settings(**overrides)  # type: ignore[call-arg]
    except ValidationError as ex:
        failed = {str(err["loc"][0]) for err in ex.errors() if err["loc"]}
        codes = sorted(EXIT_CODES[name] for name in failed if name in EXIT_CODES)
        exit_code = codes[0] if codes else EXIT_UNKNOWN
        names = ", ".join(sorted(failed)) or "unknown"
        raise ConfigError(f"Invalid or missing configuration: {names}", exit_code=exit_code) from ex
