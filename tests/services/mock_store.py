"""In-memory object store double for exercising the upload engine."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Sequence

from clouddeck.infra.storage.client import (
    CompletedPart,
    MultipartSession,
    ObjectEntry,
    ObjectListing,
    ProgressCallback,
    PutResult,
)
from clouddeck.infra.storage.errors import ErrorKind, NotFoundError, StorageError


@dataclass
class MockObjectStore:
    """Records every call; failures can be scripted per operation or per part."""

    objects: dict[str, dict[str, Any]] = field(default_factory=dict)
    sessions: dict[str, dict[str, Any]] = field(default_factory=dict)
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    put_errors: list[StorageError] = field(default_factory=list)
    part_errors: dict[int, list[StorageError | None]] = field(default_factory=dict)
    always_failing_parts: dict[int, StorageError] = field(default_factory=dict)
    complete_errors: list[StorageError] = field(default_factory=list)
    abort_error: StorageError | None = None
    list_pages: list[ObjectListing] = field(default_factory=list)
    part_delay: float = 0.0
    max_active_parts: int = 0
    _active_parts: int = 0
    _session_counter: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _record(self, name: str, **kwargs: Any) -> None:
        with self._lock:
            self.calls.append((name, kwargs))

    def calls_to(self, name: str) -> list[dict[str, Any]]:
        return [kwargs for call, kwargs in self.calls if call == name]

    def put_object(
        self,
        *,
        bucket: str,
        object_key: str,
        body: bytes,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> PutResult:
        self._record(
            "put_object",
            bucket=bucket,
            object_key=object_key,
            size=len(body),
            content_type=content_type,
        )
        if self.put_errors:
            raise self.put_errors.pop(0)
        self.objects[f"{bucket}/{object_key}"] = {
            "size_bytes": len(body),
            "content_type": content_type,
            "metadata": metadata or {},
        }
        return PutResult(bucket=bucket, object_key=object_key, etag='"mock-etag"')

    def start_multipart_session(
        self,
        *,
        bucket: str,
        object_key: str,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> MultipartSession:
        self._record(
            "start_multipart_session",
            bucket=bucket,
            object_key=object_key,
            content_type=content_type,
        )
        with self._lock:
            self._session_counter += 1
            upload_id = f"mock-upload-{self._session_counter}"
            self.sessions[upload_id] = {
                "bucket": bucket,
                "object_key": object_key,
                "content_type": content_type,
                "parts": {},
                "completed": False,
                "aborted": False,
            }
        return MultipartSession(upload_id=upload_id, bucket=bucket, object_key=object_key)

    def upload_part(
        self,
        *,
        session: MultipartSession,
        part_number: int,
        body: bytes,
        progress: ProgressCallback | None = None,
    ) -> CompletedPart:
        self._record(
            "upload_part",
            upload_id=session.upload_id,
            part_number=part_number,
            size=len(body),
        )
        with self._lock:
            self._active_parts += 1
            self.max_active_parts = max(self.max_active_parts, self._active_parts)
        try:
            if self.part_delay:
                time.sleep(self.part_delay)
            with self._lock:
                scripted = self.part_errors.get(part_number)
                error = scripted.pop(0) if scripted else None
            if error is None:
                error = self.always_failing_parts.get(part_number)
            total = len(body)
            if progress is not None:
                progress(total // 2, total)
            if error is not None:
                raise error
            if progress is not None:
                progress(total, total)
            with self._lock:
                self.sessions[session.upload_id]["parts"][part_number] = total
        finally:
            with self._lock:
                self._active_parts -= 1
        return CompletedPart(part_number=part_number, etag=f'"etag-{part_number}"')

    def complete_multipart_session(
        self,
        *,
        session: MultipartSession,
        parts: Sequence[CompletedPart],
    ) -> PutResult:
        self._record(
            "complete_multipart_session",
            upload_id=session.upload_id,
            part_numbers=[part.part_number for part in parts],
        )
        if self.complete_errors:
            raise self.complete_errors.pop(0)
        state = self.sessions[session.upload_id]
        state["completed"] = True
        self.objects[f"{session.bucket}/{session.object_key}"] = {
            "size_bytes": sum(state["parts"].values()),
            "content_type": state["content_type"],
        }
        return PutResult(
            bucket=session.bucket,
            object_key=session.object_key,
            etag=f'"mock-etag-{session.upload_id}"',
        )

    def abort_multipart_session(self, *, session: MultipartSession) -> None:
        self._record("abort_multipart_session", upload_id=session.upload_id)
        if self.abort_error is not None:
            raise self.abort_error
        self.sessions[session.upload_id]["aborted"] = True

    def list_objects(
        self,
        *,
        bucket: str,
        prefix: str,
        delimiter: str = "/",
        cursor: str | None = None,
        max_keys: int = 1000,
    ) -> ObjectListing:
        self._record(
            "list_objects",
            bucket=bucket,
            prefix=prefix,
            delimiter=delimiter,
            cursor=cursor,
            max_keys=max_keys,
        )
        if self.list_pages:
            return self.list_pages.pop(0)
        entries = [
            ObjectEntry(key=key.split("/", 1)[1], size_bytes=obj["size_bytes"])
            for key, obj in sorted(self.objects.items())
            if key.startswith(f"{bucket}/{prefix}")
        ]
        return ObjectListing(entries=entries)

    def presign_get(
        self,
        *,
        bucket: str,
        object_key: str,
        expires_in: int,
        filename: str | None = None,
    ) -> str:
        self._record(
            "presign_get",
            bucket=bucket,
            object_key=object_key,
            expires_in=expires_in,
            filename=filename,
        )
        return f"https://mock-s3/{bucket}/{object_key}?expires={expires_in}"

    def delete_objects(self, *, bucket: str, object_keys: Sequence[str]) -> None:
        self._record("delete_objects", bucket=bucket, object_keys=list(object_keys))
        for key in object_keys:
            self.objects.pop(f"{bucket}/{key}", None)

    def head_bucket(self, *, bucket: str) -> None:
        self._record("head_bucket", bucket=bucket)

    def copy_object(
        self, *, bucket: str, source_key: str, destination_key: str
    ) -> None:
        self._record(
            "copy_object",
            bucket=bucket,
            source_key=source_key,
            destination_key=destination_key,
        )
        source = self.objects.get(f"{bucket}/{source_key}")
        if source is None:
            raise NotFoundError(
                f"Failed to copy object: {source_key}",
                kind=ErrorKind.NOT_FOUND,
                http_status=404,
            )
        self.objects[f"{bucket}/{destination_key}"] = dict(source)
