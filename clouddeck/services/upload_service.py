"""Upload orchestration: plan, execute, retry, report.

Callers get progress through the request's ``on_progress`` sink and exactly
one terminal outcome through the return value (or the raised error).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from clouddeck.common.config import Settings, get_settings
from clouddeck.domain.planner import TransferPolicy
from clouddeck.domain.transfer import TransferMode, TransferPlan, TransferRequest
from clouddeck.infra.observability import metrics
from clouddeck.infra.storage.connection import ConnectionManager
from clouddeck.infra.storage.errors import StorageError
from clouddeck.services.base import BaseService
from clouddeck.services.chunked_upload import TransferExecutor
from clouddeck.services.progress import ProgressAggregator
from clouddeck.services.retry import RetryContext, RetryPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransferResult:
    """Terminal success of one upload."""

    bucket: str
    key: str
    etag: str | None
    size_bytes: int
    plan: TransferPlan
    attempts: int
    duration_seconds: float

    @property
    def part_count(self) -> int:
        if self.plan.mode is TransferMode.SINGLE_SHOT:
            return 1
        return len(self.plan.split(self.size_bytes))


class UploadService(BaseService):
    """Uploads payloads with an adaptive plan and whole-transfer retries.

    A retried chunked transfer restarts from a fresh part set; the failed
    attempt's session has already been aborted by the executor.
    """

    def __init__(
        self,
        connections: ConnectionManager,
        *,
        settings: Settings | None = None,
        policy: TransferPolicy | None = None,
        retry: RetryPolicy | None = None,
        part_retry: RetryPolicy | None = None,
    ) -> None:
        super().__init__(connections)
        self._settings = settings or get_settings()
        self._policy = policy or TransferPolicy.from_settings(self._settings)
        self._retry = retry or RetryPolicy.for_transfers(self._settings)
        self._metrics = bool(self._settings.ENABLE_METRICS)
        self._executor = TransferExecutor(
            connections,
            part_retry=part_retry or RetryPolicy.for_parts(self._settings),
            record_metrics=self._metrics,
        )

    def plan(self, request: TransferRequest) -> TransferPlan:
        payload = request.payload
        return self._policy.plan(payload.size, payload.media_kind)

    def upload(self, request: TransferRequest) -> TransferResult:
        """Upload ``request`` and return once it has terminally succeeded.

        Raises:
            ConfigurationError: If no connection is available.
            AbortedTransferError: If a chunked transfer kept failing.
            StorageError: Any other terminal failure, with ``attempts`` set.
        """
        plan = self.plan(request)
        payload = request.payload
        logger.debug(
            "transfer planned",
            extra={
                "extra": {
                    "key": request.key,
                    "size_bytes": payload.size,
                    "media_kind": payload.media_kind.value,
                    "mode": plan.mode.value,
                    "part_size_bytes": plan.part_size_bytes,
                    "max_concurrent_parts": plan.max_concurrent_parts,
                }
            },
        )

        # One aggregator across attempts keeps reported progress monotonic.
        progress = ProgressAggregator(payload.size, request.on_progress)
        context = RetryContext()
        started = time.monotonic()
        try:
            result = self._retry.run(
                lambda _ctx: self._executor.execute(request, plan, progress),
                context=context,
                on_retry=self._record_retry,
                label=f"upload of {request.key!r}",
            )
        except StorageError as exc:
            self._observe(plan, "failure", started)
            logger.error(
                "upload failed",
                extra={
                    "extra": {
                        "key": request.key,
                        "mode": plan.mode.value,
                        **exc.to_dict(),
                    }
                },
            )
            raise

        duration = time.monotonic() - started
        self._observe(plan, "success", started)
        if self._metrics:
            metrics.TRANSFER_BYTES.inc(payload.size)
        logger.info(
            "upload completed",
            extra={
                "extra": {
                    "key": request.key,
                    "size_bytes": payload.size,
                    "mode": plan.mode.value,
                    "attempts": context.attempt,
                    "duration_seconds": round(duration, 3),
                }
            },
        )
        return TransferResult(
            bucket=result.bucket,
            key=result.object_key,
            etag=result.etag,
            size_bytes=payload.size,
            plan=plan,
            attempts=context.attempt,
            duration_seconds=duration,
        )

    def _record_retry(self, _context: RetryContext, error: StorageError) -> None:
        if self._metrics:
            metrics.TRANSFER_RETRIES.labels(kind=error.kind.value).inc()

    def _observe(self, plan: TransferPlan, outcome: str, started: float) -> None:
        if not self._metrics:
            return
        metrics.TRANSFERS.labels(mode=plan.mode.value, outcome=outcome).inc()
        metrics.TRANSFER_DURATION.labels(mode=plan.mode.value).observe(
            time.monotonic() - started
        )
