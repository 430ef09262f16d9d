from __future__ import annotations

from dataclasses import dataclass, field

from clouddeck.common.config import Settings, get_settings
from clouddeck.infra.storage.connection import (
    ConnectionManager,
    EnvironmentCredentialSource,
)

from .listing import ListingService
from .object_service import ObjectService
from .upload_service import UploadService


@dataclass
class ServiceBundle:
    """Lazily constructs services sharing the same connection manager."""

    connections: ConnectionManager
    settings: Settings = field(default_factory=get_settings)
    _upload: UploadService | None = field(default=None, init=False, repr=False)
    _listing: ListingService | None = field(default=None, init=False, repr=False)
    _objects: ObjectService | None = field(default=None, init=False, repr=False)

    def upload(self) -> UploadService:
        if self._upload is None:
            self._upload = UploadService(self.connections, settings=self.settings)
        return self._upload

    def listing(self) -> ListingService:
        if self._listing is None:
            self._listing = ListingService(self.connections, settings=self.settings)
        return self._listing

    def objects(self) -> ObjectService:
        if self._objects is None:
            self._objects = ObjectService(self.connections, settings=self.settings)
        return self._objects


def get_service_bundle(settings: Settings | None = None) -> ServiceBundle:
    """Bundle backed by a connection manager that restores from the environment."""
    connections = ConnectionManager(credential_source=EnvironmentCredentialSource())
    return ServiceBundle(connections=connections, settings=settings or get_settings())
