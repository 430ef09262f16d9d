"""Value types describing one logical upload."""

from __future__ import annotations

import mimetypes
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from clouddeck.domain.media import MediaKind

MIB = 1024 * 1024


class TransferMode(str, Enum):
    SINGLE_SHOT = "single-shot"
    CHUNKED = "chunked"


@dataclass(frozen=True, slots=True)
class Part:
    """A contiguous byte range of a chunked upload. ``number`` is 1-based."""

    number: int
    offset: int
    size: int

    @property
    def end(self) -> int:
        return self.offset + self.size


@dataclass(frozen=True, slots=True)
class TransferPlan:
    """How one payload is sent. Computed once, never changed mid-transfer."""

    mode: TransferMode
    part_size_bytes: int
    max_concurrent_parts: int

    @property
    def chunked(self) -> bool:
        return self.mode is TransferMode.CHUNKED

    def split(self, total_bytes: int) -> list[Part]:
        """Partition ``total_bytes`` into gapless parts; the last may be shorter."""
        if total_bytes <= 0:
            return []
        size = self.part_size_bytes
        return [
            Part(number=index + 1, offset=offset, size=min(size, total_bytes - offset))
            for index, offset in enumerate(range(0, total_bytes, size))
        ]


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    """Aggregated progress of one transfer at a point in time."""

    percentage: int
    bytes_transferred: int
    total_bytes: int
    part: int | None = None

    @property
    def uploaded_mb(self) -> float:
        return round(self.bytes_transferred / MIB, 2)

    @property
    def total_mb(self) -> float:
        return round(self.total_bytes / MIB, 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "percentage": self.percentage,
            "bytes_transferred": self.bytes_transferred,
            "total_bytes": self.total_bytes,
            "uploaded_mb": self.uploaded_mb,
            "total_mb": self.total_mb,
            "part": self.part,
        }


ProgressSink = Callable[[ProgressSnapshot], None]


class Payload:
    """A byte source with a known length, a name and a declared content type.

    Reads are ranged and independent, so concurrent part workers never share
    a file handle.
    """

    def __init__(
        self,
        *,
        name: str,
        size: int,
        reader: Callable[[int, int], bytes],
        content_type: str | None = None,
    ) -> None:
        if size < 0:
            raise ValueError("payload size must not be negative")
        self.name = name
        self.size = int(size)
        self.content_type = content_type or _guess_content_type(name)
        self.media_kind = MediaKind.from_name(name, self.content_type)
        self._reader = reader

    @classmethod
    def from_bytes(
        cls, data: bytes, *, name: str, content_type: str | None = None
    ) -> "Payload":
        view = memoryview(data)
        return cls(
            name=name,
            size=len(data),
            reader=lambda offset, length: bytes(view[offset : offset + length]),
            content_type=content_type,
        )

    @classmethod
    def from_path(
        cls,
        path: str | os.PathLike[str],
        *,
        name: str | None = None,
        content_type: str | None = None,
    ) -> "Payload":
        file_path = Path(path)
        if not file_path.is_file():
            raise FileNotFoundError(f"Local file not found: {file_path}")

        def read_range(offset: int, length: int) -> bytes:
            with file_path.open("rb") as handle:
                handle.seek(offset)
                return handle.read(length)

        return cls(
            name=name or file_path.name,
            size=file_path.stat().st_size,
            reader=read_range,
            content_type=content_type,
        )

    def read(self, offset: int = 0, length: int | None = None) -> bytes:
        if length is None:
            length = self.size - offset
        data = self._reader(offset, length)
        if len(data) != length:
            raise ValueError(
                f"short read from {self.name!r}: wanted {length} bytes at {offset}, "
                f"got {len(data)}"
            )
        return data

    def __repr__(self) -> str:
        return (
            f"Payload(name={self.name!r}, size={self.size}, "
            f"content_type={self.content_type!r}, media_kind={self.media_kind.value})"
        )


def _guess_content_type(name: str) -> str:
    guessed, _ = mimetypes.guess_type(name)
    return guessed or "application/octet-stream"


@dataclass(frozen=True)
class TransferRequest:
    """Immutable description of one logical upload."""

    key: str
    payload: Payload
    on_progress: ProgressSink | None = field(default=None, compare=False)
    metadata: dict[str, str] | None = None

    def __post_init__(self) -> None:
        if not self.key or not self.key.strip():
            raise ValueError("target key is required")
        if self.key.endswith("/"):
            raise ValueError("target key must name an object, not a folder")
