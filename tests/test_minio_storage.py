from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from urllib3.exceptions import ProtocolError

from catalog_service.config.config import MinioConfig
from catalog_service.core.exceptions import ExternalServiceError, InvalidInputError
from catalog_service.infrastructure.storage.minio import MinioStorage, build_object_name


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def minio_storage(client):
    config = MinioConfig(
        endpoint="minio:9000",
        access_key="key",
        secret_key="secret",
        bucket_name="catalog-media",
    )
    return MinioStorage(config, client=client)


def test_object_name_keeps_stem_and_extension():
    name = build_object_name("products/42/", "Front View.PNG")

    folder, tail = name.rsplit("/", 1)
    assert folder == "products/42"
    assert tail.startswith("Front-View-")
    assert tail.endswith(".png")


def test_upload_returns_public_url(minio_storage, client):
    url = minio_storage.upload(b"data", "categories/1", "a.png", "image/png")

    kwargs = client.put_object.call_args.kwargs
    assert kwargs["bucket_name"] == "catalog-media"
    assert kwargs["object_name"].startswith("categories/1/a-")
    assert kwargs["length"] == 4
    assert kwargs["content_type"] == "image/png"
    assert url == f"http://minio:9000/catalog-media/{kwargs['object_name']}"


def test_public_url_override(client):
    config = MinioConfig(
        endpoint="minio:9000",
        access_key="key",
        secret_key="secret",
        public_url="https://cdn.example.com/media/",
    )
    storage = MinioStorage(config, client=client)

    assert storage.public_url("a/b.png") == "https://cdn.example.com/media/a/b.png"


def test_empty_upload_is_rejected(minio_storage, client):
    with pytest.raises(InvalidInputError):
        minio_storage.upload(b"", "categories/1", "a.png", "image/png")

    client.put_object.assert_not_called()


def test_transient_failure_is_retried(minio_storage, client):
    client.put_object.side_effect = [ProtocolError("reset"), None]

    minio_storage.upload(b"data", "categories/1", "a.png", "image/png")

    assert client.put_object.call_count == 2


def test_persistent_failure_becomes_external_service_error(minio_storage, client):
    client.put_object.side_effect = RuntimeError("boom")

    with pytest.raises(ExternalServiceError) as exc_info:
        minio_storage.upload(b"data", "categories/1", "a.png", "image/png")

    assert exc_info.value.service_name == "minio"


def test_ensure_bucket_creates_missing_bucket(minio_storage, client):
    client.bucket_exists.return_value = False

    minio_storage.ensure_bucket()

    client.make_bucket.assert_called_once_with("catalog-media")


def test_delete_folder_removes_every_object_under_prefix(minio_storage, client):
    client.list_objects.return_value = [
        SimpleNamespace(object_name="products/1/a.png"),
        SimpleNamespace(object_name="products/1/b.png"),
    ]
    client.remove_objects.return_value = iter([])

    removed = minio_storage.delete_folder("products/1")

    assert removed == 2
    client.list_objects.assert_called_once_with(
        "catalog-media", prefix="products/1/", recursive=True
    )
    bucket, to_delete = client.remove_objects.call_args.args
    assert bucket == "catalog-media"
    assert len(to_delete) == 2


def test_delete_empty_folder(minio_storage, client):
    client.list_objects.return_value = []

    assert minio_storage.delete_folder("products/1") == 0
    client.remove_objects.assert_not_called()


def test_delete_errors_are_reported(minio_storage, client):
    client.list_objects.return_value = [SimpleNamespace(object_name="products/1/a.png")]
    client.remove_objects.return_value = iter(
        [SimpleNamespace(name="products/1/a.png", message="AccessDenied")]
    )

    with pytest.raises(ExternalServiceError):
        minio_storage.delete_folder("products/1")
