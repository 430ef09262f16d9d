"""Folder listings over prefix-delimited keys.

``list_page`` issues exactly one listing call and never retries; transient
failures reach the caller, who offers a manual retry.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from clouddeck.common.config import Settings, get_settings
from clouddeck.infra.storage.client import ObjectEntry
from clouddeck.infra.storage.connection import ConnectionManager
from clouddeck.services.base import BaseService, InvalidObjectOperationError

DELIMITER = "/"


def normalize_prefix(prefix: str | None) -> str:
    """``"a/b"`` and ``"/a/b/"`` both become ``"a/b/"``; the root is ``""``."""
    cleaned = (prefix or "").strip().lstrip(DELIMITER)
    if cleaned and not cleaned.endswith(DELIMITER):
        cleaned += DELIMITER
    return cleaned


@dataclass(frozen=True, slots=True)
class ListingCursor:
    """Continuation token bound to the prefix it was issued for."""

    prefix: str
    token: str


@dataclass(frozen=True, slots=True)
class ListingPage:
    prefix: str
    entries: list[ObjectEntry] = field(default_factory=list)
    folders: list[str] = field(default_factory=list)
    next_cursor: ListingCursor | None = None

    @property
    def exhausted(self) -> bool:
        return self.next_cursor is None


class ListingService(BaseService):
    def __init__(
        self,
        connections: ConnectionManager,
        *,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(connections)
        self._settings = settings or get_settings()

    def list_page(
        self,
        prefix: str = "",
        cursor: ListingCursor | None = None,
        *,
        page_size: int | None = None,
    ) -> ListingPage:
        prefix = normalize_prefix(prefix)
        if cursor is not None and cursor.prefix != prefix:
            raise InvalidObjectOperationError(
                f"cursor was issued for prefix {cursor.prefix!r}, not {prefix!r}"
            )

        connection = self.connection
        listing = connection.store.list_objects(
            bucket=connection.bucket,
            prefix=prefix,
            delimiter=DELIMITER,
            cursor=cursor.token if cursor else None,
            max_keys=page_size or self._settings.LIST_PAGE_SIZE,
        )
        next_cursor = (
            ListingCursor(prefix=prefix, token=listing.next_cursor)
            if listing.next_cursor
            else None
        )
        return ListingPage(
            prefix=prefix,
            entries=list(listing.entries),
            folders=list(listing.common_prefixes),
            next_cursor=next_cursor,
        )

    def list_folder(self, prefix: str = "", *, limit: int | None = None) -> ListingPage:
        """Follow cursors until ``limit`` entries are collected or none remain.

        The returned page carries the cursor to resume from when the limit
        stopped the walk early.
        """
        if limit is not None and limit < 1:
            raise InvalidObjectOperationError("limit must be positive")

        prefix = normalize_prefix(prefix)
        entries: list[ObjectEntry] = []
        folders: list[str] = []
        cursor: ListingCursor | None = None
        while True:
            page = self.list_page(prefix, cursor)
            entries.extend(page.entries)
            folders.extend(page.folders)
            cursor = page.next_cursor
            if cursor is None or (limit is not None and len(entries) >= limit):
                break

        return ListingPage(
            prefix=prefix, entries=entries, folders=folders, next_cursor=cursor
        )
