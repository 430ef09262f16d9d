"""Object store protocol and data types.

This module defines the abstract interface the upload engine and the object
operations are written against, supporting single-shot puts, multipart
sessions, prefix listings, presigned URLs and batch deletes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Protocol, Sequence

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True, slots=True)
class CompletedPart:
    """Token returned for an uploaded part, needed to commit the session."""

    part_number: int
    etag: str


@dataclass(frozen=True, slots=True)
class MultipartSession:
    """Result of starting a multipart session."""

    upload_id: str
    bucket: str
    object_key: str


@dataclass(frozen=True, slots=True)
class PutResult:
    """Outcome of a put or a committed multipart session."""

    bucket: str
    object_key: str
    etag: str | None = None


@dataclass(frozen=True, slots=True)
class ObjectEntry:
    """A single object returned by a listing."""

    key: str
    size_bytes: int
    last_modified: datetime | None = None
    etag: str | None = None

    @property
    def name(self) -> str:
        return self.key.rstrip("/").rsplit("/", 1)[-1]


@dataclass(frozen=True, slots=True)
class ObjectListing:
    """One page of a delimiter-grouped listing."""

    entries: list[ObjectEntry] = field(default_factory=list)
    common_prefixes: list[str] = field(default_factory=list)
    next_cursor: str | None = None


class ObjectStore(Protocol):
    """Protocol defining the interface for object storage backends.

    Implementations raise ``StorageError`` subclasses (see ``errors``) with a
    classified ``kind`` for every failure.
    """

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
        ...

    def start_multipart_session(
        self,
        *,
        bucket: str,
        object_key: str,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> MultipartSession:
        """Initialize a multipart upload session.

        Returns:
            MultipartSession containing the upload_id for subsequent operations.
        """
        ...

    def upload_part(
        self,
        *,
        session: MultipartSession,
        part_number: int,
        body: bytes,
        progress: ProgressCallback | None = None,
    ) -> CompletedPart:
        """Upload one part of a multipart session.

        Args:
            session: Session returned by start_multipart_session.
            part_number: Part number (1-based, max 10000).
            body: The part's bytes.
            progress: Called with (loaded, total) bytes while the part is sent.
        """
        ...

    def complete_multipart_session(
        self,
        *,
        session: MultipartSession,
        parts: Sequence[CompletedPart],
    ) -> PutResult:
        """Commit a multipart session by combining all parts in order."""
        ...

    def abort_multipart_session(self, *, session: MultipartSession) -> None:
        """Abort a multipart session and release its uploaded parts."""
        ...

    def list_objects(
        self,
        *,
        bucket: str,
        prefix: str,
        delimiter: str = "/",
        cursor: str | None = None,
        max_keys: int = 1000,
    ) -> ObjectListing:
        """List one page of objects under ``prefix``."""
        ...

    def presign_get(
        self,
        *,
        bucket: str,
        object_key: str,
        expires_in: int,
        filename: str | None = None,
    ) -> str:
        """Generate a presigned URL for downloading an object."""
        ...

    def delete_objects(self, *, bucket: str, object_keys: Sequence[str]) -> None:
        """Delete a batch of objects."""
        ...

    def head_bucket(self, *, bucket: str) -> None:
        """Check the bucket exists and the credentials can reach it."""
        ...

    def copy_object(
        self, *, bucket: str, source_key: str, destination_key: str
    ) -> None:
        """Copy an object server-side within the bucket."""
        ...
