"""Object storage abstraction layer.

This module provides a protocol-based abstraction for object storage backends,
enabling support for S3, MinIO, and other S3-compatible services.
"""

from .client import (
    CompletedPart,
    MultipartSession,
    ObjectEntry,
    ObjectListing,
    ObjectStore,
    PutResult,
)
from .connection import (
    Connection,
    ConnectionManager,
    ConnectionParams,
    CredentialSource,
    EnvironmentCredentialSource,
)
from .errors import (
    AbortedTransferError,
    AuthorizationError,
    ConfigurationError,
    ErrorKind,
    InvalidConfigurationError,
    NotConnectedError,
    NotFoundError,
    StorageError,
    TransientError,
)

__all__ = [
    "AbortedTransferError",
    "AuthorizationError",
    "CompletedPart",
    "ConfigurationError",
    "Connection",
    "ConnectionManager",
    "ConnectionParams",
    "CredentialSource",
    "EnvironmentCredentialSource",
    "ErrorKind",
    "InvalidConfigurationError",
    "MultipartSession",
    "NotConnectedError",
    "NotFoundError",
    "ObjectEntry",
    "ObjectListing",
    "ObjectStore",
    "PutResult",
    "StorageError",
    "TransientError",
]
