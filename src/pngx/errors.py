from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    MISSING_CREDENTIALS = "missing_credentials"
    INVALID_URL = "invalid_url"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"
    UNREACHABLE = "unreachable"
    INVALID_BATCH_ARGUMENTS = "invalid_batch_arguments"
    UNSAFE_FILENAME = "unsafe_filename"
    IO_FAILURE = "io_failure"

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES[self]


_EXIT_CODES: dict[ErrorKind, int] = {
    ErrorKind.MISSING_CREDENTIALS: 2,
    ErrorKind.INVALID_URL: 2,
    ErrorKind.UNAUTHORIZED: 3,
    ErrorKind.UNREACHABLE: 4,
    ErrorKind.SERVER_ERROR: 4,
    ErrorKind.IO_FAILURE: 4,
    ErrorKind.NOT_FOUND: 1,
    ErrorKind.INVALID_BATCH_ARGUMENTS: 1,
    ErrorKind.UNSAFE_FILENAME: 1,
}


class PngxError(RuntimeError):
    """Base of every error the core reports. Subclasses pin ``kind``."""

    kind: ErrorKind = ErrorKind.SERVER_ERROR
    default_message = "request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def exit_code(self) -> int:
        return self.kind.exit_code


class MissingCredentials(PngxError):
    kind = ErrorKind.MISSING_CREDENTIALS
    default_message = "server URL or API token not configured. Run `pngx auth login` or pass --url/--token"


class InvalidUrl(PngxError):
    kind = ErrorKind.INVALID_URL
    default_message = "invalid server URL"


class ApiError(PngxError):
    """Raised by the API client for HTTP and transport failures."""


class Unauthorized(ApiError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "unauthorized: invalid or missing API token"


class NotFound(ApiError):
    kind = ErrorKind.NOT_FOUND
    default_message = "not found"


class ServerError(ApiError):
    kind = ErrorKind.SERVER_ERROR
    default_message = "server error"

    def __init__(self, message: str | None = None, status: int | None = None):
        super().__init__(message)
        self.status = status


class Unreachable(ApiError):
    kind = ErrorKind.UNREACHABLE
    default_message = "server unreachable"


class InvalidBatchArguments(PngxError):
    kind = ErrorKind.INVALID_BATCH_ARGUMENTS
    default_message = "--file can only be used with a single document ID"


class UnsafeFilename(PngxError):
    kind = ErrorKind.UNSAFE_FILENAME
    default_message = "file name is empty after sanitization"


class IoFailure(PngxError):
    kind = ErrorKind.IO_FAILURE
    default_message = "local I/O error"
