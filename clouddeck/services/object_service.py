"""Single-shot object operations: links, deletes, folders, copies and renames.

None of these retry automatically; errors propagate to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence

from clouddeck.common.config import Settings, get_settings
from clouddeck.infra.storage.client import ObjectStore
from clouddeck.infra.storage.connection import ConnectionManager, ConnectionParams
from clouddeck.infra.storage.errors import (
    ConfigurationError,
    ErrorKind,
    StorageError,
)
from clouddeck.services.base import BaseService, InvalidObjectOperationError
from clouddeck.services.listing import normalize_prefix

logger = logging.getLogger(__name__)

# Presigned URLs signed with SigV4 cannot outlive seven days.
MAX_PRESIGN_SECONDS = 7 * 24 * 3600
FOLDER_CONTENT_TYPE = "application/x-directory"

_CONNECTION_TEST_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NO_SUCH_BUCKET: (
        "Bucket not found. Please verify the bucket name and ensure it exists "
        "in the specified region."
    ),
    ErrorKind.NOT_FOUND: (
        "Bucket not found. Please verify the bucket name and ensure it exists "
        "in the specified region."
    ),
    ErrorKind.FORBIDDEN: (
        "Access denied. Please check your credentials and ensure the IAM user "
        "has proper S3 permissions."
    ),
    ErrorKind.INVALID_CREDENTIALS: (
        "Invalid credentials. Please verify your Access Key ID and Secret Access Key."
    ),
    ErrorKind.NETWORK: "Network error. Please check your internet connection.",
    ErrorKind.REQUEST_TIMEOUT: "Connection timed out. Please try again.",
    ErrorKind.SERVER_ERROR: "Storage service error. Please try again later.",
    ErrorKind.INVALID_REQUEST: (
        "Invalid request. Please check your bucket name and region settings."
    ),
}


@dataclass(frozen=True, slots=True)
class ShareLink:
    url: str
    expires_in: int
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class ConnectionTestResult:
    success: bool
    message: str
    kind: ErrorKind | None = None
    http_status: int | None = None


def _probe_store_factory(settings: Settings) -> Callable[[ConnectionParams], ObjectStore]:
    def build(params: ConnectionParams) -> ObjectStore:
        from clouddeck.infra.storage.s3_client import S3ObjectStore

        return S3ObjectStore(
            params,
            settings=settings,
            request_timeout=settings.S3_CONNECT_TIMEOUT_SECONDS,
            max_attempts=2,
        )

    return build


def _require_key(key: str) -> str:
    cleaned = (key or "").strip().lstrip("/")
    if not cleaned:
        raise InvalidObjectOperationError("object key is required")
    return cleaned


class ObjectService(BaseService):
    def __init__(
        self,
        connections: ConnectionManager,
        *,
        settings: Settings | None = None,
        probe_factory: Callable[[ConnectionParams], ObjectStore] | None = None,
    ) -> None:
        super().__init__(connections)
        self._settings = settings or get_settings()
        self._probe_factory = probe_factory or _probe_store_factory(self._settings)

    def test_connection(self, params: ConnectionParams) -> ConnectionTestResult:
        """Probe ``params`` with a throwaway client; the shared connection is untouched."""
        try:
            validated = params.validate()
            store = self._probe_factory(validated)
            store.head_bucket(bucket=validated.bucket)
            store.list_objects(bucket=validated.bucket, prefix="", max_keys=1)
        except ConfigurationError as exc:
            return ConnectionTestResult(success=False, message=exc.message)
        except StorageError as exc:
            logger.warning(
                "connection test failed",
                extra={"extra": {"bucket": params.bucket, **exc.to_dict()}},
            )
            return ConnectionTestResult(
                success=False,
                message=_CONNECTION_TEST_MESSAGES.get(
                    exc.kind, f"Connection failed: {exc.message}"
                ),
                kind=exc.kind,
                http_status=exc.http_status,
            )
        return ConnectionTestResult(
            success=True,
            message="Connection successful! Bucket is accessible with proper permissions.",
        )

    def download_url(self, key: str, *, filename: str | None = None) -> str:
        connection = self.connection
        return connection.store.presign_get(
            bucket=connection.bucket,
            object_key=_require_key(key),
            expires_in=self._settings.PRESIGN_EXPIRES_SECONDS,
            filename=filename,
        )

    def share_link(
        self,
        key: str,
        *,
        expires_in: int | None = None,
        now: datetime | None = None,
    ) -> ShareLink:
        expires = int(expires_in or self._settings.SHARE_EXPIRES_SECONDS)
        if not 1 <= expires <= MAX_PRESIGN_SECONDS:
            raise InvalidObjectOperationError(
                f"expires_in must be between 1 and {MAX_PRESIGN_SECONDS} seconds"
            )
        connection = self.connection
        url = connection.store.presign_get(
            bucket=connection.bucket,
            object_key=_require_key(key),
            expires_in=expires,
        )
        issued = now or datetime.now(timezone.utc)
        return ShareLink(
            url=url, expires_in=expires, expires_at=issued + timedelta(seconds=expires)
        )

    def delete_objects(self, keys: Sequence[str]) -> int:
        cleaned = list(dict.fromkeys(_require_key(key) for key in keys))
        if not cleaned:
            return 0
        connection = self.connection
        connection.store.delete_objects(bucket=connection.bucket, object_keys=cleaned)
        logger.info("objects deleted", extra={"extra": {"count": len(cleaned)}})
        return len(cleaned)

    def create_folder(self, path: str) -> str:
        folder_key = normalize_prefix(path)
        if not folder_key:
            raise InvalidObjectOperationError("folder path is required")
        connection = self.connection
        connection.store.put_object(
            bucket=connection.bucket,
            object_key=folder_key,
            body=b"",
            content_type=FOLDER_CONTENT_TYPE,
        )
        return folder_key

    def copy_object(self, source_key: str, destination_key: str) -> None:
        source = _require_key(source_key)
        destination = _require_key(destination_key)
        if source == destination:
            raise InvalidObjectOperationError("source and destination are the same")
        connection = self.connection
        connection.store.copy_object(
            bucket=connection.bucket,
            source_key=source,
            destination_key=destination,
        )

    def rename_object(self, source_key: str, destination_key: str) -> str:
        """Copy to the new key, then delete the old one.

        The source is only deleted once the copy has succeeded.
        """
        source = _require_key(source_key)
        destination = _require_key(destination_key)
        if source.endswith("/") or destination.endswith("/"):
            raise InvalidObjectOperationError("only objects can be renamed, not folders")
        self.copy_object(source, destination)
        connection = self.connection
        connection.store.delete_objects(bucket=connection.bucket, object_keys=[source])
        return destination
