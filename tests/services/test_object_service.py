"""Tests for links, deletes, folders, copies and renames."""

from datetime import datetime, timedelta, timezone

import pytest

from clouddeck.infra.storage.connection import ConnectionParams
from clouddeck.infra.storage.errors import (
    AuthorizationError,
    ErrorKind,
    NotFoundError,
    TransientError,
)
from clouddeck.services.base import InvalidObjectOperationError
from clouddeck.services.object_service import (
    FOLDER_CONTENT_TYPE,
    MAX_PRESIGN_SECONDS,
    ObjectService,
)
from tests.services.mock_store import MockObjectStore


class TestObjectService:
    @pytest.fixture
    def probe(self):
        return MockObjectStore()

    @pytest.fixture
    def service(self, connections, settings, probe):
        return ObjectService(
            connections, settings=settings, probe_factory=lambda _params: probe
        )

    def test_connection_success(self, service, probe, params, store):
        result = service.test_connection(params)

        assert result.success
        assert result.message.startswith("Connection successful!")
        assert probe.calls_to("head_bucket") == [{"bucket": "test-bucket"}]
        assert probe.calls_to("list_objects")[0]["max_keys"] == 1
        assert store.calls == []

    @pytest.mark.parametrize(
        ("error", "fragment"),
        [
            (NotFoundError("x", kind=ErrorKind.NO_SUCH_BUCKET, http_status=404), "Bucket not found"),
            (AuthorizationError("x", kind=ErrorKind.FORBIDDEN, http_status=403), "Access denied"),
            (
                AuthorizationError("x", kind=ErrorKind.INVALID_CREDENTIALS, http_status=403),
                "Invalid credentials",
            ),
            (TransientError("x", kind=ErrorKind.NETWORK), "Network error"),
        ],
    )
    def test_connection_failures(self, service, probe, params, monkeypatch, error, fragment):
        def failing(**_kwargs):
            raise error

        monkeypatch.setattr(probe, "head_bucket", failing)

        result = service.test_connection(params)

        assert not result.success
        assert fragment in result.message
        assert result.kind is error.kind

    def test_connection_with_missing_fields(self, service, probe):
        result = service.test_connection(
            ConnectionParams(access_key="AKIA", secret_key="", bucket="b", region="r")
        )

        assert not result.success
        assert "Access Key, Secret Key, Bucket, and Region" in result.message
        assert probe.calls == []

    def test_download_url(self, service, store):
        url = service.download_url("/docs/report.pdf", filename="report.pdf")

        assert url == "https://mock-s3/test-bucket/docs/report.pdf?expires=3600"
        assert store.calls_to("presign_get")[0]["filename"] == "report.pdf"

    def test_share_link(self, service, store):
        issued = datetime(2024, 5, 1, tzinfo=timezone.utc)

        link = service.share_link("videos/clip.mp4", expires_in=600, now=issued)

        assert link.expires_in == 600
        assert link.expires_at == issued + timedelta(seconds=600)
        assert link.url.endswith("expires=600")

    def test_share_link_defaults_to_one_day(self, service):
        assert service.share_link("a.txt").expires_in == 86400

    @pytest.mark.parametrize("expires", [-1, MAX_PRESIGN_SECONDS + 1])
    def test_share_link_rejects_bad_expiry(self, service, store, expires):
        with pytest.raises(InvalidObjectOperationError):
            service.share_link("a.txt", expires_in=expires)

        assert store.calls == []

    def test_delete_objects_dedupes(self, service, store):
        store.objects["test-bucket/a.txt"] = {"size_bytes": 1}

        count = service.delete_objects(["a.txt", "/a.txt", "b.txt"])

        assert count == 2
        assert store.calls_to("delete_objects")[0]["object_keys"] == ["a.txt", "b.txt"]
        assert "test-bucket/a.txt" not in store.objects

    def test_delete_nothing(self, service, store):
        assert service.delete_objects([]) == 0
        assert store.calls == []

    def test_delete_rejects_blank_key(self, service):
        with pytest.raises(InvalidObjectOperationError):
            service.delete_objects(["a.txt", "  "])

    def test_create_folder(self, service, store):
        key = service.create_folder("photos/2024")

        assert key == "photos/2024/"
        call = store.calls_to("put_object")[0]
        assert call["object_key"] == "photos/2024/"
        assert call["size"] == 0
        assert call["content_type"] == FOLDER_CONTENT_TYPE

    def test_create_folder_requires_path(self, service):
        with pytest.raises(InvalidObjectOperationError):
            service.create_folder(" / ")

    def test_copy_object(self, service, store):
        store.objects["test-bucket/a.txt"] = {"size_bytes": 3}

        service.copy_object("a.txt", "b.txt")

        assert store.objects["test-bucket/b.txt"] == {"size_bytes": 3}
        assert "test-bucket/a.txt" in store.objects

    def test_copy_to_same_key(self, service):
        with pytest.raises(InvalidObjectOperationError):
            service.copy_object("a.txt", "/a.txt")

    def test_rename_object(self, service, store):
        store.objects["test-bucket/old.txt"] = {"size_bytes": 3}

        assert service.rename_object("old.txt", "new.txt") == "new.txt"

        assert "test-bucket/old.txt" not in store.objects
        assert "test-bucket/new.txt" in store.objects

    def test_rename_missing_source_keeps_nothing_deleted(self, service, store):
        with pytest.raises(NotFoundError):
            service.rename_object("missing.txt", "new.txt")

        assert store.calls_to("delete_objects") == []

    def test_rename_folder_is_rejected(self, service):
        with pytest.raises(InvalidObjectOperationError):
            service.rename_object("photos/", "pictures/")
