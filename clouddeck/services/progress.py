"""Aggregation of per-part byte counts into transfer-wide progress."""

from __future__ import annotations

import logging
import threading

from clouddeck.domain.transfer import ProgressSink, ProgressSnapshot

logger = logging.getLogger(__name__)


def percentage_of(transferred: int, total: int) -> int:
    if total <= 0:
        return 100
    return max(0, min(100, round(100 * transferred / total)))


class ProgressAggregator:
    """Turns unordered ``(part, loaded)`` reports into monotonic snapshots.

    The highest byte count seen per part is kept and summed, so parts that
    interleave, finish out of order or resend their body never move the
    total backwards. Every report produces exactly one snapshot, delivered
    to the sink in emission order.
    """

    def __init__(self, total_bytes: int, sink: ProgressSink | None = None) -> None:
        self._total = max(0, int(total_bytes))
        self._sink = sink
        self._per_part: dict[int, int] = {}
        self._transferred = 0
        self._last: ProgressSnapshot | None = None
        self._lock = threading.Lock()

    @property
    def total_bytes(self) -> int:
        return self._total

    @property
    def last(self) -> ProgressSnapshot | None:
        return self._last

    def update(
        self, part_number: int, part_size: int, transferred: int
    ) -> ProgressSnapshot:
        with self._lock:
            transferred = max(0, min(int(transferred), int(part_size)))
            previous = self._per_part.get(part_number, 0)
            if transferred > previous:
                self._per_part[part_number] = transferred
                self._transferred += transferred - previous
            return self._emit(part_number)

    def complete(self) -> ProgressSnapshot:
        """Report the whole payload as transferred."""
        with self._lock:
            self._transferred = self._total
            return self._emit(None)

    def _emit(self, part_number: int | None) -> ProgressSnapshot:
        transferred = min(self._transferred, self._total)
        snapshot = ProgressSnapshot(
            percentage=percentage_of(transferred, self._total),
            bytes_transferred=transferred,
            total_bytes=self._total,
            part=part_number,
        )
        self._last = snapshot
        if self._sink is not None:
            try:
                self._sink(snapshot)
            except Exception:
                # Progress is advisory; a broken sink must not fail the upload.
                logger.exception("progress callback raised")
        return snapshot
