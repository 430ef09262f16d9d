"""Error taxonomy for object store operations.

Every failure raised by the storage layer is a ``StorageError`` carrying a
structured ``kind`` (and an HTTP status when one was received). Retry
decisions switch on ``kind`` only, never on message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Discriminator for object store failures."""

    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    INVALID_CREDENTIALS = "InvalidCredentials"
    NO_SUCH_BUCKET = "NoSuchBucket"
    NETWORK = "Network"
    REQUEST_TIMEOUT = "RequestTimeout"
    SERVER_ERROR = "ServerError"
    INVALID_REQUEST = "InvalidRequest"
    UNKNOWN = "Unknown"


RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset(
    {
        ErrorKind.NETWORK,
        ErrorKind.REQUEST_TIMEOUT,
        ErrorKind.SERVER_ERROR,
        # Checksum negotiation artifacts surface as InvalidRequest.
        ErrorKind.INVALID_REQUEST,
    }
)

_USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NOT_FOUND: "Object not found. It may have been moved or deleted.",
    ErrorKind.FORBIDDEN: "Access denied. Check your permissions.",
    ErrorKind.INVALID_CREDENTIALS: (
        "Invalid credentials. Please verify your Access Key ID and Secret Access Key."
    ),
    ErrorKind.NO_SUCH_BUCKET: "Bucket not found. Please verify the bucket name and region.",
    ErrorKind.NETWORK: "Network error. Check your connection.",
    ErrorKind.REQUEST_TIMEOUT: "Request timeout. Please try again or check your connection.",
    ErrorKind.SERVER_ERROR: "Storage service error. Please try again later.",
    ErrorKind.INVALID_REQUEST: "The storage service rejected the request. Please try again.",
}


class StorageError(RuntimeError):
    """Raised when object storage operations fail."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.http_status = http_status
        self.attempts: int | None = None

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @property
    def user_message(self) -> str:
        return _USER_MESSAGES.get(self.kind, self.message)

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "http_status": self.http_status,
            "message": self.message,
            "attempts": self.attempts,
        }

    def __str__(self) -> str:
        if self.attempts:
            return f"{self.message} (after {self.attempts} attempt(s))"
        return self.message


class ConfigurationError(StorageError):
    """Connection parameters are missing or invalid. Never retried."""

    @property
    def user_message(self) -> str:
        return self.message


class InvalidConfigurationError(ConfigurationError):
    """Raised when connection parameters fail validation."""


class NotConnectedError(ConfigurationError):
    """Raised when no connection exists and none can be restored."""


class AuthorizationError(StorageError):
    """Bad credentials or insufficient permissions."""


class NotFoundError(StorageError):
    """Missing bucket or object."""


class TransientError(StorageError):
    """Network, timeout, 5xx and checksum negotiation failures."""


class AbortedTransferError(StorageError):
    """A chunked transfer that failed after its multipart session was started.

    ``cleaned_up`` is true only when the session abort was acknowledged; when
    it is false, uploaded parts may remain on the server until the bucket's
    lifecycle rules expire them.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        http_status: int | None = None,
        part_number: int | None = None,
        cleaned_up: bool = True,
    ) -> None:
        super().__init__(message, kind=kind, http_status=http_status)
        self.part_number = part_number
        self.cleaned_up = cleaned_up

    @property
    def user_message(self) -> str:
        if self.cleaned_up:
            return f"Upload failed and was cleaned up. {super().user_message}"
        return (
            "Upload failed and its partial upload could not be removed. "
            f"{super().user_message}"
        )

    def to_dict(self) -> dict[str, object]:
        return {
            **super().to_dict(),
            "part_number": self.part_number,
            "cleaned_up": self.cleaned_up,
        }


_KIND_TO_CLASS: dict[ErrorKind, type[StorageError]] = {
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.NO_SUCH_BUCKET: NotFoundError,
    ErrorKind.FORBIDDEN: AuthorizationError,
    ErrorKind.INVALID_CREDENTIALS: AuthorizationError,
    ErrorKind.NETWORK: TransientError,
    ErrorKind.REQUEST_TIMEOUT: TransientError,
    ErrorKind.SERVER_ERROR: TransientError,
    ErrorKind.INVALID_REQUEST: TransientError,
}


def error_for(
    kind: ErrorKind, message: str, *, http_status: int | None = None
) -> StorageError:
    """Build the taxonomy class matching ``kind``."""
    cls = _KIND_TO_CLASS.get(kind, StorageError)
    return cls(message, kind=kind, http_status=http_status)


def is_retryable(exc: BaseException) -> bool:
    """Whether ``exc`` belongs to a retryable kind."""
    return isinstance(exc, StorageError) and exc.retryable
