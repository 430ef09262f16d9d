from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from clouddeck.infra.storage.connection import ConnectionParams

ENV_FILE = Path(".env")

MIB = 1024 * 1024


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


def _as_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


def _as_float(value: str | None, default: float) -> float:
    if value is None or not value.strip():
        return default
    return float(value)


def _as_str(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


@dataclass
class Settings:
    S3_ACCESS_KEY_ID: str | None = None
    S3_SECRET_ACCESS_KEY: str | None = None
    S3_BUCKET: str | None = None
    S3_REGION: str | None = None
    S3_ENDPOINT_URL: str | None = None
    S3_ADDRESSING_STYLE: str = "virtual"
    S3_USE_SSL: bool = True
    S3_REQUEST_TIMEOUT_SECONDS: int = 120
    S3_CONNECT_TIMEOUT_SECONDS: int = 30
    S3_MAX_ATTEMPTS: int = 3
    UPLOAD_SINGLE_SHOT_MAX_BYTES: int = 50 * MIB
    UPLOAD_MIN_PART_SIZE_BYTES: int = 10 * MIB
    UPLOAD_MAX_PARTS: int = 10_000
    UPLOAD_CONCURRENCY: int = 4
    UPLOAD_STREAMING_CONCURRENCY: int = 2
    UPLOAD_MAX_RETRIES: int = 3
    UPLOAD_RETRY_BASE_SECONDS: float = 1.0
    UPLOAD_RETRY_MAX_SECONDS: float = 30.0
    UPLOAD_RETRY_JITTER_SECONDS: float = 1.0
    PART_MAX_RETRIES: int = 2
    PRESIGN_EXPIRES_SECONDS: int = 3600
    SHARE_EXPIRES_SECONDS: int = 86400
    LIST_PAGE_SIZE: int = 1000
    ENABLE_METRICS: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    def __post_init__(self) -> None:
        if self.UPLOAD_MIN_PART_SIZE_BYTES < 5 * MIB:
            raise ValueError(
                "UPLOAD_MIN_PART_SIZE_BYTES must be at least 5 MiB (S3 minimum part size)."
            )
        if not 1 <= self.UPLOAD_MAX_PARTS <= 10_000:
            raise ValueError("UPLOAD_MAX_PARTS must be between 1 and 10000.")
        if self.UPLOAD_SINGLE_SHOT_MAX_BYTES < 0:
            raise ValueError("UPLOAD_SINGLE_SHOT_MAX_BYTES must not be negative.")
        if self.UPLOAD_CONCURRENCY < 1 or self.UPLOAD_STREAMING_CONCURRENCY < 1:
            raise ValueError("Upload concurrency settings must be at least 1.")
        if self.UPLOAD_MAX_RETRIES < 0 or self.PART_MAX_RETRIES < 0:
            raise ValueError("Retry counts must not be negative.")
        if self.S3_MAX_ATTEMPTS < 1:
            raise ValueError("S3_MAX_ATTEMPTS must be at least 1.")
        if not 1 <= self.LIST_PAGE_SIZE <= 1000:
            raise ValueError("LIST_PAGE_SIZE must be between 1 and 1000.")
        if self.LOG_FORMAT not in {"json", "plain"}:
            raise ValueError("LOG_FORMAT must be 'json' or 'plain'.")

    def connection_params(self) -> "ConnectionParams | None":
        """Persisted connection parameters, or None when none are configured."""
        from clouddeck.infra.storage.connection import ConnectionParams

        values = (
            self.S3_ACCESS_KEY_ID,
            self.S3_SECRET_ACCESS_KEY,
            self.S3_BUCKET,
            self.S3_REGION,
        )
        if not any(values):
            return None
        return ConnectionParams(
            access_key=self.S3_ACCESS_KEY_ID or "",
            secret_key=self.S3_SECRET_ACCESS_KEY or "",
            bucket=self.S3_BUCKET or "",
            region=self.S3_REGION or "",
            endpoint_url=self.S3_ENDPOINT_URL,
        )

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_env_file()
        env = os.environ.get
        return cls(
            S3_ACCESS_KEY_ID=_as_str(env("S3_ACCESS_KEY_ID")),
            S3_SECRET_ACCESS_KEY=_as_str(env("S3_SECRET_ACCESS_KEY")),
            S3_BUCKET=_as_str(env("S3_BUCKET")),
            S3_REGION=_as_str(env("S3_REGION")),
            S3_ENDPOINT_URL=_as_str(env("S3_ENDPOINT_URL")),
            S3_ADDRESSING_STYLE=env("S3_ADDRESSING_STYLE", cls.S3_ADDRESSING_STYLE),
            S3_USE_SSL=_as_bool(env("S3_USE_SSL"), cls.S3_USE_SSL),
            S3_REQUEST_TIMEOUT_SECONDS=_as_int(
                env("S3_REQUEST_TIMEOUT_SECONDS"), cls.S3_REQUEST_TIMEOUT_SECONDS
            ),
            S3_CONNECT_TIMEOUT_SECONDS=_as_int(
                env("S3_CONNECT_TIMEOUT_SECONDS"), cls.S3_CONNECT_TIMEOUT_SECONDS
            ),
            S3_MAX_ATTEMPTS=_as_int(env("S3_MAX_ATTEMPTS"), cls.S3_MAX_ATTEMPTS),
            UPLOAD_SINGLE_SHOT_MAX_BYTES=_as_int(
                env("UPLOAD_SINGLE_SHOT_MAX_BYTES"), cls.UPLOAD_SINGLE_SHOT_MAX_BYTES
            ),
            UPLOAD_MIN_PART_SIZE_BYTES=_as_int(
                env("UPLOAD_MIN_PART_SIZE_BYTES"), cls.UPLOAD_MIN_PART_SIZE_BYTES
            ),
            UPLOAD_MAX_PARTS=_as_int(env("UPLOAD_MAX_PARTS"), cls.UPLOAD_MAX_PARTS),
            UPLOAD_CONCURRENCY=_as_int(
                env("UPLOAD_CONCURRENCY"), cls.UPLOAD_CONCURRENCY
            ),
            UPLOAD_STREAMING_CONCURRENCY=_as_int(
                env("UPLOAD_STREAMING_CONCURRENCY"), cls.UPLOAD_STREAMING_CONCURRENCY
            ),
            UPLOAD_MAX_RETRIES=_as_int(
                env("UPLOAD_MAX_RETRIES"), cls.UPLOAD_MAX_RETRIES
            ),
            UPLOAD_RETRY_BASE_SECONDS=_as_float(
                env("UPLOAD_RETRY_BASE_SECONDS"), cls.UPLOAD_RETRY_BASE_SECONDS
            ),
            UPLOAD_RETRY_MAX_SECONDS=_as_float(
                env("UPLOAD_RETRY_MAX_SECONDS"), cls.UPLOAD_RETRY_MAX_SECONDS
            ),
            UPLOAD_RETRY_JITTER_SECONDS=_as_float(
                env("UPLOAD_RETRY_JITTER_SECONDS"), cls.UPLOAD_RETRY_JITTER_SECONDS
            ),
            PART_MAX_RETRIES=_as_int(env("PART_MAX_RETRIES"), cls.PART_MAX_RETRIES),
            PRESIGN_EXPIRES_SECONDS=_as_int(
                env("PRESIGN_EXPIRES_SECONDS"), cls.PRESIGN_EXPIRES_SECONDS
            ),
            SHARE_EXPIRES_SECONDS=_as_int(
                env("SHARE_EXPIRES_SECONDS"), cls.SHARE_EXPIRES_SECONDS
            ),
            LIST_PAGE_SIZE=_as_int(env("LIST_PAGE_SIZE"), cls.LIST_PAGE_SIZE),
            ENABLE_METRICS=_as_bool(env("ENABLE_METRICS"), cls.ENABLE_METRICS),
            LOG_LEVEL=env("LOG_LEVEL", cls.LOG_LEVEL).upper(),
            LOG_FORMAT=env("LOG_FORMAT", cls.LOG_FORMAT).lower(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
