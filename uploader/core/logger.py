import logging
from dataclasses import dataclass, field
from enum import StrEnum

import orjson
import structlog
from asgi_correlation_id import correlation_id
from beartype import beartype

from uploader.core.settings import LoggingSettings

MAX_EVENT_LENGTH = 80
REDACTED = "***"
# Log kwargs that may carry the upload key
SENSITIVE_KEYS = frozenset({"key", "secret", "upload_key", "password"})


class LoggerError(Exception):
    """Exception for logger related issues."""


class LogLevel(StrEnum):
    """LogLevel types for logger configuration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogIcon(StrEnum):
    """Icon mappings for different log categories."""

    DEFAULT = "📋"

    # Status & Results
    SUCCESS = "✅"
    ERROR = "❌"
    WARNING = "⚠️"
    CRITICAL = "🔴"

    # Lifecycle
    START = "🚀"
    PROCESSING = "🔄"
    COMPLETE = "✨"
    STOP = "🛑"
    ADAPTER = "🔌"

    # Requests
    AUTH = "🔐"
    NETWORK = "🌐"
    HEALTHCHECK = "❤️"

    # Files
    STORAGE = "💾"
    UPLOAD = "📤"
    DOWNLOAD = "📥"
    FILE = "📄"
    RECOVERY = "🧹"

    # Security
    FORBIDDEN = "🚫"


@dataclass
class LoggerConfig:
    """Logger configuration derived from the environment."""
    debug: bool = field(default_factory=lambda: LoggingSettings().dev_logging)

    @property
    def log_level(self) -> LogLevel:
        return LogLevel.DEBUG if self.debug else LogLevel.INFO


def add_correlation_id(logger, method_name: str, event_dict: dict) -> dict:
    """Attach the request id bound by the router, when inside a request."""
    if request_id := correlation_id.get():
        event_dict["correlation_id"] = request_id
    return event_dict


def redact_secrets(logger, method_name: str, event_dict: dict) -> dict:
    """Mask any kwarg that could hold the upload key."""
    for name in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[name] = REDACTED
    return event_dict


class EventFormatter:
    """
    Normalise log events before rendering.

    - Event messages are uppercased and cut to MAX_EVENT_LENGTH characters.
    - The icon kwarg must be a LogIcon member; it is rendered only in debug mode.
    """

    def __init__(self, debug: bool) -> None:
        self.debug = debug

    @beartype
    def __call__(self, logger, name: str, event_dict: dict) -> dict:
        try:
            icon = LogIcon(event_dict.pop("icon", LogIcon.DEFAULT))
        except ValueError as err:
            raise LoggerError("Wrong Icon chosen, please choose a valid LogIcon enum member") from err

        event = str(event_dict.get("event", ""))[:MAX_EVENT_LENGTH].upper()
        event_dict["event"] = f"{icon.value} {event}" if self.debug else event
        return event_dict


def dev_pipeline_renderer(logger, name: str, event_dict: dict) -> str:
    """Render log events as one pipe-separated line."""
    head = [
        event_dict.pop("timestamp", ""),
        event_dict.pop("level", LogLevel.INFO.value).upper(),
        event_dict.pop("event", ""),
    ]
    filename = event_dict.pop("filename", "")
    lineno = event_dict.pop("lineno", "")

    extra = " | ".join(f"{k}={v}" for k, v in event_dict.items())
    location = f"{filename}:{lineno}" if filename else ""
    return " | ".join(filter(None, [*head, extra, location]))


def setup_logging(config: LoggerConfig) -> None:
    """Configure structlog: pipe-separated lines in debug, JSON lines otherwise."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
            ],
            additional_ignores=["logger"]
        ),
        redact_secrets,
        add_correlation_id,
        EventFormatter(debug=config.debug),
    ]

    if config.debug:
        processors.append(dev_pipeline_renderer)
        factory = structlog.PrintLoggerFactory()
    else:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(serializer=orjson.dumps),
        ]
        factory = structlog.BytesLoggerFactory()

    structlog.configure(
        processors=processors,
        logger_factory=factory,
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(config.log_level.value)),
        cache_logger_on_first_use=True,
    )


setup_logging(LoggerConfig())

logger = structlog.get_logger()
