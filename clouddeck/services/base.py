from __future__ import annotations

from clouddeck.infra.storage.connection import Connection, ConnectionManager


class ServiceError(Exception):
    """Base class for application service level exceptions."""


class InvalidObjectOperationError(ServiceError):
    """Raised when arguments do not describe a valid object operation."""


class BaseService:
    """Provides helpers shared by services that talk to the object store."""

    def __init__(self, connections: ConnectionManager):
        self._connections = connections

    @property
    def connections(self) -> ConnectionManager:
        return self._connections

    @property
    def connection(self) -> Connection:
        """The live connection, fetched fresh on every access."""
        return self._connections.current()
