"""Exceptions raised while configuring the server and processing uploads."""

from robyn import status_codes


class ConfigError(Exception):
    """Startup configuration is missing or invalid; the process must exit."""

    def __init__(self, message: str, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class UploadError(Exception):
    """Per-request upload failure carrying the HTTP status and a client-safe reason."""

    status_code: int = status_codes.HTTP_500_INTERNAL_SERVER_ERROR
    default_reason: str = "Internal error"

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class BadRequestError(UploadError):
    status_code = status_codes.HTTP_400_BAD_REQUEST
    default_reason = "Bad request"


class UnauthorizedError(UploadError):
    status_code = status_codes.HTTP_401_UNAUTHORIZED
    default_reason = "Bad key"


class PayloadTooLargeError(UploadError):
    status_code = status_codes.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_reason = "Request body too large"


class StorageError(UploadError):
    default_reason = "Could not store file"


class NameGenerationError(UploadError):
    default_reason = "Could not generate file name"
