"""Ownership of the single live connection to the object store.

A ``ConnectionManager`` holds at most one ``Connection``. ``initialize``,
``current`` and ``clear`` are serialized by a lock, and callers fetch the
connection through ``current()`` for every store call instead of keeping
their own reference.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Protocol

from clouddeck.infra.storage.client import ObjectStore
from clouddeck.infra.storage.errors import (
    InvalidConfigurationError,
    NotConnectedError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionParams:
    """Endpoint, credentials and bucket needed to reach the store."""

    access_key: str
    secret_key: str = field(repr=False)
    bucket: str
    region: str
    endpoint_url: str | None = None

    def validate(self) -> "ConnectionParams":
        """Return a whitespace-trimmed copy, or raise if a field is empty."""
        fields = {
            "access key": self.access_key,
            "secret key": self.secret_key,
            "bucket": self.bucket,
            "region": self.region,
        }
        missing = [
            name
            for name, value in fields.items()
            if not isinstance(value, str) or not value.strip()
        ]
        if missing:
            raise InvalidConfigurationError(
                "Invalid credentials: Access Key, Secret Key, Bucket, and Region "
                f"are required (missing: {', '.join(missing)})"
            )
        return ConnectionParams(
            access_key=self.access_key.strip(),
            secret_key=self.secret_key.strip(),
            bucket=self.bucket.strip(),
            region=self.region.strip(),
            endpoint_url=(self.endpoint_url or "").strip() or None,
        )


@dataclass(frozen=True)
class Connection:
    """The live handle to the remote store."""

    params: ConnectionParams
    store: ObjectStore

    @property
    def bucket(self) -> str:
        return self.params.bucket


class CredentialSource(Protocol):
    """Supplies the last-known persisted connection parameters."""

    def load(self) -> ConnectionParams | None:
        ...


class EnvironmentCredentialSource:
    """Reads persisted parameters from the application settings."""

    def load(self) -> ConnectionParams | None:
        from clouddeck.common.config import get_settings

        return get_settings().connection_params()


StoreFactory = Callable[[ConnectionParams], ObjectStore]


def _default_store_factory(params: ConnectionParams) -> ObjectStore:
    from clouddeck.infra.storage.s3_client import S3ObjectStore

    return S3ObjectStore(params)


class ConnectionManager:
    """Owns at most one ``Connection`` per process."""

    def __init__(
        self,
        *,
        store_factory: StoreFactory | None = None,
        credential_source: CredentialSource | None = None,
    ) -> None:
        self._store_factory = store_factory or _default_store_factory
        self._credentials = credential_source
        self._connection: Connection | None = None
        self._lock = threading.Lock()

    @property
    def connected(self) -> bool:
        with self._lock:
            return self._connection is not None

    def initialize(self, params: ConnectionParams) -> Connection:
        """Validate ``params`` and replace the active connection.

        Raises:
            InvalidConfigurationError: If any required field is missing. No
                store client is built in that case.
        """
        with self._lock:
            return self._initialize_locked(params)

    def current(self) -> Connection:
        """Return the active connection, restoring it once from persisted params.

        Raises:
            NotConnectedError: If nothing is connected and no usable persisted
                parameters exist.
        """
        with self._lock:
            if self._connection is not None:
                return self._connection

            params = self._credentials.load() if self._credentials else None
            if params is None:
                raise NotConnectedError(
                    "Storage client not initialized. Please connect first."
                )
            try:
                return self._initialize_locked(params)
            except InvalidConfigurationError as exc:
                raise NotConnectedError(
                    "Storage client not initialized and failed to auto-initialize. "
                    "Please check your credentials."
                ) from exc

    def clear(self) -> None:
        """Drop the active connection. Safe to call when nothing is connected."""
        with self._lock:
            if self._connection is not None:
                logger.info(
                    "storage connection cleared",
                    extra={"extra": {"bucket": self._connection.bucket}},
                )
            self._connection = None

    def _initialize_locked(self, params: ConnectionParams) -> Connection:
        validated = params.validate()
        store = self._store_factory(validated)
        self._connection = Connection(params=validated, store=store)
        logger.info(
            "storage connection initialized",
            extra={
                "extra": {"bucket": validated.bucket, "region": validated.region}
            },
        )
        return self._connection
