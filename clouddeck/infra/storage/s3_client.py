"""S3-compatible object store implementation.

This module provides an object store adapter that works with AWS S3, MinIO,
and other S3-compatible object storage services.

Dependencies:
    - boto3
    - botocore
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING, Any, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    HTTPClientError,
    NoCredentialsError,
    PartialCredentialsError,
    ReadTimeoutError,
)
from botocore.exceptions import ConnectionError as BotoConnectionError

from clouddeck import __version__
from clouddeck.infra.storage.client import (
    CompletedPart,
    MultipartSession,
    ObjectEntry,
    ObjectListing,
    ProgressCallback,
    PutResult,
)
from clouddeck.infra.storage.errors import (
    ErrorKind,
    StorageError,
    error_for,
)

if TYPE_CHECKING:
    from clouddeck.common.config import Settings
    from clouddeck.infra.storage.connection import ConnectionParams

# S3 rejects DeleteObjects requests with more keys than this.
MAX_DELETE_BATCH = 1000

_CODE_KINDS: dict[str, ErrorKind] = {
    "NoSuchBucket": ErrorKind.NO_SUCH_BUCKET,
    "NoSuchKey": ErrorKind.NOT_FOUND,
    "NoSuchUpload": ErrorKind.NOT_FOUND,
    "NotFound": ErrorKind.NOT_FOUND,
    "404": ErrorKind.NOT_FOUND,
    "AccessDenied": ErrorKind.FORBIDDEN,
    "AllAccessDisabled": ErrorKind.FORBIDDEN,
    "Forbidden": ErrorKind.FORBIDDEN,
    "403": ErrorKind.FORBIDDEN,
    "InvalidAccessKeyId": ErrorKind.INVALID_CREDENTIALS,
    "SignatureDoesNotMatch": ErrorKind.INVALID_CREDENTIALS,
    "InvalidToken": ErrorKind.INVALID_CREDENTIALS,
    "ExpiredToken": ErrorKind.INVALID_CREDENTIALS,
    "RequestTimeout": ErrorKind.REQUEST_TIMEOUT,
    "InvalidRequest": ErrorKind.INVALID_REQUEST,
    "BadDigest": ErrorKind.INVALID_REQUEST,
    "XAmzContentSHA256Mismatch": ErrorKind.INVALID_REQUEST,
    "InternalError": ErrorKind.SERVER_ERROR,
    "ServiceUnavailable": ErrorKind.SERVER_ERROR,
    "SlowDown": ErrorKind.SERVER_ERROR,
}


def _kind_for_status(status: int | None) -> ErrorKind:
    if status is None:
        return ErrorKind.UNKNOWN
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 403:
        return ErrorKind.FORBIDDEN
    if status == 408:
        return ErrorKind.REQUEST_TIMEOUT
    if status >= 500:
        return ErrorKind.SERVER_ERROR
    return ErrorKind.UNKNOWN


def translate_error(exc: Exception, action: str) -> StorageError:
    """Map a boto3/botocore exception onto the storage error taxonomy."""
    if isinstance(exc, StorageError):
        return exc
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = str(error.get("Code", ""))
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        kind = _CODE_KINDS.get(code) or _kind_for_status(status)
        detail = error.get("Message") or code or str(exc)
        return error_for(kind, f"{action}: {detail}", http_status=status)
    if isinstance(exc, (ReadTimeoutError, ConnectTimeoutError)):
        return error_for(ErrorKind.REQUEST_TIMEOUT, f"{action}: {exc}")
    if isinstance(exc, (BotoConnectionError, HTTPClientError)):
        return error_for(ErrorKind.NETWORK, f"{action}: {exc}")
    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        return error_for(ErrorKind.INVALID_CREDENTIALS, f"{action}: {exc}")
    if isinstance(exc, BotoCoreError):
        return error_for(ErrorKind.UNKNOWN, f"{action}: {exc}")
    return StorageError(f"{action}: {exc}")


class _ProgressBody(io.BytesIO):
    """In-memory part body that reports its read position."""

    def __init__(self, data: bytes, callback: ProgressCallback | None) -> None:
        super().__init__(data)
        self._total = len(data)
        self._callback = callback

    def read(self, size: int | None = -1) -> bytes:
        chunk = super().read(size)
        if self._callback is not None and chunk:
            self._callback(self.tell(), self._total)
        return chunk


class S3ObjectStore:
    """S3-compatible object store.

    Supports AWS S3, MinIO, and other S3-compatible services.
    Uses boto3 for all storage operations.
    """

    def __init__(
        self,
        params: "ConnectionParams",
        *,
        settings: "Settings | None" = None,
        request_timeout: int | None = None,
        max_attempts: int | None = None,
    ) -> None:
        """Initialize the S3 client from connection parameters.

        Args:
            params: Validated connection parameters.
            settings: Application settings for timeouts and addressing style.
            request_timeout: Overrides the configured request timeout (seconds).
            max_attempts: Overrides the configured botocore attempt count.
        """
        if settings is None:
            from clouddeck.common.config import get_settings

            settings = get_settings()
        self._params = params
        self._client = self._build_client(
            params,
            settings,
            request_timeout=request_timeout or settings.S3_REQUEST_TIMEOUT_SECONDS,
            max_attempts=max_attempts or settings.S3_MAX_ATTEMPTS,
        )

    @staticmethod
    def _build_client(
        params: "ConnectionParams",
        settings: "Settings",
        *,
        request_timeout: int,
        max_attempts: int,
    ) -> Any:
        """Create a boto3 S3 client."""
        addressing_style = (settings.S3_ADDRESSING_STYLE or "virtual").strip().lower()
        config = Config(
            region_name=params.region,
            connect_timeout=settings.S3_CONNECT_TIMEOUT_SECONDS,
            read_timeout=request_timeout,
            retries={"max_attempts": int(max_attempts), "mode": "adaptive"},
            s3={"addressing_style": addressing_style},
            user_agent_extra=f"clouddeck/{__version__}",
            request_checksum_calculation="when_required",
            response_checksum_validation="when_required",
        )

        return boto3.client(
            "s3",
            endpoint_url=params.endpoint_url or settings.S3_ENDPOINT_URL,
            region_name=params.region,
            aws_access_key_id=params.access_key,
            aws_secret_access_key=params.secret_key,
            use_ssl=bool(settings.S3_USE_SSL),
            config=config,
        )

    @property
    def params(self) -> "ConnectionParams":
        return self._params

    def put_object(
        self,
        *,
        bucket: str,
        object_key: str,
        body: bytes,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> PutResult:
        """Upload a whole object in a single request."""
        params: dict[str, Any] = {"Bucket": bucket, "Key": object_key, "Body": body}
        if content_type:
            params["ContentType"] = content_type
        if metadata:
            params["Metadata"] = metadata

        try:
            response = self._client.put_object(**params)
        except Exception as exc:
            raise translate_error(exc, "Failed to upload object") from exc

        return PutResult(bucket=bucket, object_key=object_key, etag=response.get("ETag"))

    def start_multipart_session(
        self,
        *,
        bucket: str,
        object_key: str,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> MultipartSession:
        """Initialize a multipart upload session."""
        params: dict[str, Any] = {"Bucket": bucket, "Key": object_key}
        if content_type:
            params["ContentType"] = content_type
        if metadata:
            params["Metadata"] = metadata

        try:
            response = self._client.create_multipart_upload(**params)
        except Exception as exc:
            raise translate_error(exc, "Failed to create multipart upload") from exc

        upload_id = response.get("UploadId")
        if not upload_id:
            raise StorageError("S3 response missing UploadId")

        return MultipartSession(
            upload_id=str(upload_id),
            bucket=bucket,
            object_key=object_key,
        )

    def upload_part(
        self,
        *,
        session: MultipartSession,
        part_number: int,
        body: bytes,
        progress: ProgressCallback | None = None,
    ) -> CompletedPart:
        """Upload one part, reporting bytes read from the body as progress."""
        try:
            response = self._client.upload_part(
                Bucket=session.bucket,
                Key=session.object_key,
                UploadId=session.upload_id,
                PartNumber=int(part_number),
                Body=_ProgressBody(body, progress),
                ContentLength=len(body),
            )
        except Exception as exc:
            raise translate_error(exc, f"Failed to upload part {part_number}") from exc

        etag = response.get("ETag")
        if not etag:
            raise StorageError(f"S3 response missing ETag for part {part_number}")
        return CompletedPart(part_number=int(part_number), etag=str(etag))

    def complete_multipart_session(
        self,
        *,
        session: MultipartSession,
        parts: Sequence[CompletedPart],
    ) -> PutResult:
        """Complete a multipart upload by combining all parts."""
        multipart_payload = {
            "Parts": [
                {"ETag": part.etag, "PartNumber": int(part.part_number)}
                for part in sorted(parts, key=lambda p: p.part_number)
            ]
        }

        try:
            response = self._client.complete_multipart_upload(
                Bucket=session.bucket,
                Key=session.object_key,
                UploadId=session.upload_id,
                MultipartUpload=multipart_payload,
            )
        except Exception as exc:
            raise translate_error(exc, "Failed to complete multipart upload") from exc

        return PutResult(
            bucket=session.bucket,
            object_key=session.object_key,
            etag=response.get("ETag"),
        )

    def abort_multipart_session(self, *, session: MultipartSession) -> None:
        """Abort a multipart upload and clean up uploaded parts."""
        try:
            self._client.abort_multipart_upload(
                Bucket=session.bucket,
                Key=session.object_key,
                UploadId=session.upload_id,
            )
        except Exception as exc:
            raise translate_error(exc, "Failed to abort multipart upload") from exc

    def list_objects(
        self,
        *,
        bucket: str,
        prefix: str,
        delimiter: str = "/",
        cursor: str | None = None,
        max_keys: int = 1000,
    ) -> ObjectListing:
        """List one page of objects grouped one level below ``prefix``."""
        params: dict[str, Any] = {
            "Bucket": bucket,
            "Prefix": prefix,
            "MaxKeys": int(max_keys),
        }
        if delimiter:
            params["Delimiter"] = delimiter
        if cursor:
            params["ContinuationToken"] = cursor

        try:
            response = self._client.list_objects_v2(**params)
        except Exception as exc:
            raise translate_error(exc, "Failed to list objects") from exc

        entries = [
            ObjectEntry(
                key=item["Key"],
                size_bytes=int(item.get("Size") or 0),
                last_modified=item.get("LastModified"),
                etag=item.get("ETag"),
            )
            for item in response.get("Contents") or []
            # The folder marker of the listed prefix is not a child entry.
            if item.get("Key") != prefix
        ]
        prefixes = [
            item["Prefix"] for item in response.get("CommonPrefixes") or []
        ]
        next_cursor = (
            response.get("NextContinuationToken")
            if response.get("IsTruncated")
            else None
        )
        return ObjectListing(
            entries=entries, common_prefixes=prefixes, next_cursor=next_cursor
        )

    def presign_get(
        self,
        *,
        bucket: str,
        object_key: str,
        expires_in: int,
        filename: str | None = None,
    ) -> str:
        """Generate a presigned URL for downloading an object."""
        params: dict[str, Any] = {"Bucket": bucket, "Key": object_key}
        if filename:
            # Escape quotes in filename for Content-Disposition header
            safe_filename = filename.replace('"', '\\"')
            params["ResponseContentDisposition"] = (
                f'attachment; filename="{safe_filename}"'
            )

        try:
            url = self._client.generate_presigned_url(
                "get_object",
                Params=params,
                ExpiresIn=int(expires_in),
            )
        except Exception as exc:
            raise translate_error(exc, "Failed to generate download URL") from exc

        if not url:
            raise StorageError("Generated presigned URL is empty")

        return str(url)

    def delete_objects(self, *, bucket: str, object_keys: Sequence[str]) -> None:
        """Delete objects in batches of at most 1000 keys."""
        keys = list(object_keys)
        for start in range(0, len(keys), MAX_DELETE_BATCH):
            batch = keys[start : start + MAX_DELETE_BATCH]
            try:
                response = self._client.delete_objects(
                    Bucket=bucket,
                    Delete={
                        "Objects": [{"Key": key} for key in batch],
                        "Quiet": True,
                    },
                )
            except Exception as exc:
                raise translate_error(exc, "Failed to delete objects") from exc

            errors = response.get("Errors") or []
            if errors:
                first = errors[0]
                code = str(first.get("Code", ""))
                raise error_for(
                    _CODE_KINDS.get(code, ErrorKind.UNKNOWN),
                    f"Failed to delete {len(errors)} object(s), "
                    f"first {first.get('Key')!r}: {first.get('Message') or code}",
                )

    def head_bucket(self, *, bucket: str) -> None:
        """Check the bucket exists and is reachable with these credentials."""
        try:
            self._client.head_bucket(Bucket=bucket)
        except Exception as exc:
            error = translate_error(exc, "Failed to access bucket")
            if error.kind is ErrorKind.NOT_FOUND:
                # HEAD responses carry no body, so a 404 here means the bucket.
                error = error_for(
                    ErrorKind.NO_SUCH_BUCKET,
                    error.message,
                    http_status=error.http_status,
                )
            raise error from exc

    def copy_object(
        self, *, bucket: str, source_key: str, destination_key: str
    ) -> None:
        """Copy an object server-side, keeping its metadata."""
        try:
            self._client.copy_object(
                Bucket=bucket,
                Key=destination_key,
                CopySource={"Bucket": bucket, "Key": source_key},
                MetadataDirective="COPY",
            )
        except Exception as exc:
            raise translate_error(exc, "Failed to copy object") from exc
