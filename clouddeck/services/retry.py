"""Retry with exponential backoff and jitter.

Operations are re-run by an explicit loop that carries a ``RetryContext``,
so the attempt sequence stays inspectable and the stack never grows.
Classification is by ``StorageError.kind`` only.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, TypeVar

from clouddeck.infra.storage.errors import ErrorKind, StorageError, is_retryable

if TYPE_CHECKING:
    from clouddeck.common.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryAttempt:
    attempt: int
    kind: ErrorKind
    delay: float


@dataclass
class RetryContext:
    """Bookkeeping for one retried operation."""

    attempt: int = 0
    last_error: StorageError | None = None
    next_delay: float | None = None
    total_delay: float = 0.0
    history: list[RetryAttempt] = field(default_factory=list)

    @property
    def last_kind(self) -> ErrorKind | None:
        return self.last_error.kind if self.last_error is not None else None


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry of ``StorageError`` failures of a retryable kind.

    Attempt ``n`` (0-indexed) that fails waits
    ``min(max_delay, base_delay * 2**n + random() * jitter)`` before the next
    attempt. At most ``max_retries`` additional attempts are made.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 1.0
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)
    rand: Callable[[], float] = field(default=random.random, compare=False)
    classify: Callable[[BaseException], bool] = field(
        default=is_retryable, compare=False
    )

    @classmethod
    def for_transfers(cls, settings: "Settings", **overrides) -> "RetryPolicy":
        """Whole-transfer variant: 3 retries on a 1 s base by default."""
        values = {
            "max_retries": settings.UPLOAD_MAX_RETRIES,
            "base_delay": settings.UPLOAD_RETRY_BASE_SECONDS,
            "max_delay": settings.UPLOAD_RETRY_MAX_SECONDS,
            "jitter": settings.UPLOAD_RETRY_JITTER_SECONDS,
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def for_parts(cls, settings: "Settings", **overrides) -> "RetryPolicy":
        """Connection-level variant: 2 retries on a 1 s base by default."""
        values = {
            "max_retries": settings.PART_MAX_RETRIES,
            "base_delay": settings.UPLOAD_RETRY_BASE_SECONDS,
            "max_delay": settings.UPLOAD_RETRY_MAX_SECONDS,
            "jitter": settings.UPLOAD_RETRY_JITTER_SECONDS,
        }
        values.update(overrides)
        return cls(**values)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt_index: int) -> float:
        backoff = self.base_delay * (2**attempt_index) + self.rand() * self.jitter
        return min(self.max_delay, backoff)

    def run(
        self,
        operation: Callable[[RetryContext], T],
        *,
        context: RetryContext | None = None,
        on_retry: Callable[[RetryContext, StorageError], None] | None = None,
        label: str = "operation",
    ) -> T:
        """Run ``operation`` until it succeeds or fails terminally.

        The error that ends the loop is re-raised with ``attempts`` set to
        the number of attempts actually made.
        """
        ctx = context if context is not None else RetryContext()
        while True:
            ctx.attempt += 1
            try:
                return operation(ctx)
            except StorageError as exc:
                ctx.last_error = exc
                if not self.classify(exc) or ctx.attempt > self.max_retries:
                    exc.attempts = ctx.attempt
                    ctx.next_delay = None
                    raise

                delay = self.delay_for(ctx.attempt - 1)
                ctx.next_delay = delay
                ctx.total_delay += delay
                ctx.history.append(
                    RetryAttempt(attempt=ctx.attempt, kind=exc.kind, delay=delay)
                )
                logger.warning(
                    "%s failed, retrying",
                    label,
                    extra={
                        "extra": {
                            "attempt": ctx.attempt,
                            "max_attempts": self.max_attempts,
                            "kind": exc.kind.value,
                            "http_status": exc.http_status,
                            "delay_seconds": round(delay, 3),
                        }
                    },
                )
                if on_retry is not None:
                    on_retry(ctx, exc)
                self.sleep(delay)
