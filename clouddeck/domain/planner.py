"""Transfer strategy selection.

``TransferPolicy.plan`` is a pure function of payload size and media kind:
small non-streamable payloads go in one request, everything else is split
into parts sized so a transfer never needs more than ``max_parts`` parts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from clouddeck.domain.media import MediaKind
from clouddeck.domain.transfer import MIB, TransferMode, TransferPlan

if TYPE_CHECKING:
    from clouddeck.common.config import Settings


@dataclass(frozen=True, slots=True)
class TransferPolicy:
    single_shot_max_bytes: int = 50 * MIB
    min_part_size_bytes: int = 10 * MIB
    max_parts: int = 10_000
    concurrency: int = 4
    streaming_concurrency: int = 2

    @classmethod
    def from_settings(cls, settings: "Settings") -> "TransferPolicy":
        return cls(
            single_shot_max_bytes=settings.UPLOAD_SINGLE_SHOT_MAX_BYTES,
            min_part_size_bytes=settings.UPLOAD_MIN_PART_SIZE_BYTES,
            max_parts=settings.UPLOAD_MAX_PARTS,
            concurrency=settings.UPLOAD_CONCURRENCY,
            streaming_concurrency=settings.UPLOAD_STREAMING_CONCURRENCY,
        )

    def plan(self, size_bytes: int, media_kind: MediaKind) -> TransferPlan:
        if size_bytes < 0:
            raise ValueError("size_bytes must not be negative")

        # Empty payloads cannot be sent as a multipart session.
        if size_bytes == 0 or (
            size_bytes <= self.single_shot_max_bytes and not media_kind.streamable
        ):
            return TransferPlan(
                mode=TransferMode.SINGLE_SHOT,
                part_size_bytes=size_bytes,
                max_concurrent_parts=1,
            )

        part_size = max(self.min_part_size_bytes, -(-size_bytes // self.max_parts))
        concurrency = (
            self.streaming_concurrency if media_kind.streamable else self.concurrency
        )
        return TransferPlan(
            mode=TransferMode.CHUNKED,
            part_size_bytes=part_size,
            max_concurrent_parts=concurrency,
        )


DEFAULT_POLICY = TransferPolicy()


def plan_transfer(size_bytes: int, media_kind: MediaKind) -> TransferPlan:
    """Plan with the default thresholds."""
    return DEFAULT_POLICY.plan(size_bytes, media_kind)
