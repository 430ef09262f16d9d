"""Execution of a transfer plan against the live connection.

The executor never retries a whole transfer itself; that is the job of the
retry policy wrapped around it by ``UploadService``. A failed chunked
transfer is always aborted so no partial object is left at the target key.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from queue import Empty, Queue

from clouddeck.domain.transfer import Part, Payload, TransferPlan, TransferRequest
from clouddeck.infra.observability import metrics
from clouddeck.infra.storage.client import (
    CompletedPart,
    MultipartSession,
    ObjectStore,
    PutResult,
)
from clouddeck.infra.storage.connection import ConnectionManager
from clouddeck.infra.storage.errors import (
    AbortedTransferError,
    ConfigurationError,
    ErrorKind,
    StorageError,
)
from clouddeck.services.progress import ProgressAggregator
from clouddeck.services.retry import RetryContext, RetryPolicy

logger = logging.getLogger(__name__)


class TransferExecutor:
    """Realizes a ``TransferPlan``: one put, or a multipart session fed by N workers."""

    def __init__(
        self,
        connections: ConnectionManager,
        *,
        part_retry: RetryPolicy | None = None,
        record_metrics: bool = True,
    ) -> None:
        self._connections = connections
        self._part_retry = part_retry
        self._record_metrics = record_metrics

    def execute(
        self,
        request: TransferRequest,
        plan: TransferPlan,
        progress: ProgressAggregator,
    ) -> PutResult:
        if plan.chunked:
            return self._upload_chunked(request, plan, progress)
        return self._upload_single(request, progress)

    def _upload_single(
        self, request: TransferRequest, progress: ProgressAggregator
    ) -> PutResult:
        payload = request.payload
        try:
            body = payload.read()
        except (OSError, ValueError) as exc:
            raise StorageError(f"Upload of {request.key!r} failed: {exc}") from exc
        connection = self._connections.current()
        result = connection.store.put_object(
            bucket=connection.bucket,
            object_key=request.key,
            body=body,
            content_type=payload.content_type,
            metadata=request.metadata,
        )
        progress.complete()
        return result

    def _upload_chunked(
        self,
        request: TransferRequest,
        plan: TransferPlan,
        progress: ProgressAggregator,
    ) -> PutResult:
        payload = request.payload
        parts = plan.split(payload.size)
        connection = self._connections.current()
        # Aborts go to the client that opened the session, even after clear().
        store = connection.store
        session = store.start_multipart_session(
            bucket=connection.bucket,
            object_key=request.key,
            content_type=payload.content_type,
            metadata=request.metadata,
        )
        logger.debug(
            "multipart session started",
            extra={
                "extra": {
                    "key": request.key,
                    "upload_id": session.upload_id,
                    "parts": len(parts),
                    "part_size_bytes": plan.part_size_bytes,
                    "workers": plan.max_concurrent_parts,
                }
            },
        )

        try:
            completed = self._upload_parts(
                session, parts, plan.max_concurrent_parts, payload, progress
            )
        except ConfigurationError:
            # The connection went away mid-transfer; surface that as is.
            self._abort(store, session)
            raise
        except StorageError as exc:
            cleaned_up = self._abort(store, session)
            raise AbortedTransferError(
                f"Upload of {request.key!r} aborted: {exc.message}",
                kind=exc.kind,
                http_status=exc.http_status,
                part_number=getattr(exc, "part_number", None),
                cleaned_up=cleaned_up,
            ) from exc
        except Exception as exc:
            cleaned_up = self._abort(store, session)
            raise AbortedTransferError(
                f"Upload of {request.key!r} aborted: {exc}",
                kind=ErrorKind.UNKNOWN,
                part_number=getattr(exc, "part_number", None),
                cleaned_up=cleaned_up,
            ) from exc

        try:
            return self._connections.current().store.complete_multipart_session(
                session=session, parts=completed
            )
        except StorageError:
            self._abort(store, session)
            raise
        except Exception as exc:
            cleaned_up = self._abort(store, session)
            raise AbortedTransferError(
                f"Commit of {request.key!r} failed: {exc}",
                kind=ErrorKind.UNKNOWN,
                cleaned_up=cleaned_up,
            ) from exc

    def _upload_parts(
        self,
        session: MultipartSession,
        parts: list[Part],
        workers: int,
        payload: Payload,
        progress: ProgressAggregator,
    ) -> list[CompletedPart]:
        pending: Queue[Part] = Queue()
        for part in parts:
            pending.put(part)

        completed: list[CompletedPart] = []
        errors: list[Exception] = []
        lock = threading.Lock()
        failed = threading.Event()

        def worker() -> None:
            while not failed.is_set():
                try:
                    part = pending.get_nowait()
                except Empty:
                    return
                try:
                    token = self._upload_part(session, part, payload, progress)
                except Exception as exc:
                    exc.part_number = part.number  # type: ignore[attr-defined]
                    logger.warning(
                        "part upload failed",
                        extra={
                            "extra": {
                                "upload_id": session.upload_id,
                                "part": part.number,
                                "error": str(exc),
                            }
                        },
                    )
                    with lock:
                        errors.append(exc)
                    failed.set()
                    return
                with lock:
                    completed.append(token)

        pool_size = max(1, min(workers, len(parts)))
        with ThreadPoolExecutor(
            max_workers=pool_size, thread_name_prefix="clouddeck-part"
        ) as pool:
            futures = [pool.submit(worker) for _ in range(pool_size)]
            for future in futures:
                future.result()

        if errors:
            raise errors[0]
        if len(completed) != len(parts):
            raise StorageError(
                f"Only {len(completed)} of {len(parts)} parts were uploaded"
            )
        return sorted(completed, key=lambda token: token.part_number)

    def _upload_part(
        self,
        session: MultipartSession,
        part: Part,
        payload: Payload,
        progress: ProgressAggregator,
    ) -> CompletedPart:
        body = payload.read(part.offset, part.size)

        def report(loaded: int, _total: int) -> None:
            progress.update(part.number, part.size, loaded)

        def send(_ctx: RetryContext) -> CompletedPart:
            store = self._connections.current().store
            return store.upload_part(
                session=session,
                part_number=part.number,
                body=body,
                progress=report,
            )

        if self._part_retry is None:
            token = send(RetryContext(attempt=1))
        else:
            token = self._part_retry.run(send, label=f"part {part.number}")

        progress.update(part.number, part.size, part.size)
        if self._record_metrics:
            metrics.PARTS_UPLOADED.inc()
        return token

    def _abort(self, store: ObjectStore, session: MultipartSession) -> bool:
        """Best-effort abort; returns whether the store acknowledged it.

        Its own failure is logged, never raised.
        """
        try:
            store.abort_multipart_session(session=session)
        except Exception:
            logger.warning(
                "failed to abort multipart session",
                exc_info=True,
                extra={
                    "extra": {
                        "upload_id": session.upload_id,
                        "key": session.object_key,
                    }
                },
            )
        else:
            logger.info(
                "multipart session aborted",
                extra={
                    "extra": {
                        "upload_id": session.upload_id,
                        "key": session.object_key,
                    }
                },
            )
            return True
        return False
