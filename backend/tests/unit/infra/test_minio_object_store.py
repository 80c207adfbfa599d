"""Unit tests for the MinIO object store adapter (client mocked)."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from urllib3.exceptions import HTTPError

from credvault.infra.minio import MinioObjectStore
from credvault.services._shared.ports import StoredAsset


@pytest.fixture()
def client():
    mock = MagicMock()
    mock.bucket_exists.return_value = True
    return mock


@pytest.fixture()
def store(client) -> MinioObjectStore:
    return MinioObjectStore(
        client=client, bucket="assets", public_base_url="http://cdn.test/"
    )


@pytest.fixture()
def avatar(tmp_path):
    path = tmp_path / "Me.PNG"
    path.write_bytes(b"\x89PNG")
    return str(path)


class TestMinioObjectStore:
    def test_upload_returns_public_url(self, store, client, avatar):
        asset = store.upload(avatar)

        assert isinstance(asset, StoredAsset)
        assert asset.key.endswith(".png")
        assert asset.url == f"http://cdn.test/assets/{asset.key}"
        client.fput_object.assert_called_once_with(
            "assets", asset.key, avatar, content_type="image/png"
        )

    def test_prefix_is_prepended_to_keys(self, client, avatar):
        store = MinioObjectStore(
            client=client, bucket="assets", public_base_url="http://cdn.test", prefix="/avatars/"
        )

        assert store.upload(avatar).key.startswith("avatars/")

    def test_creates_missing_bucket_once(self, store, client, avatar):
        client.bucket_exists.return_value = False

        store.upload(avatar)
        store.upload(avatar)

        client.make_bucket.assert_called_once_with("assets")
        assert client.bucket_exists.call_count == 1

    def test_created_bucket_is_opened_for_public_reads(self, store, client, avatar):
        client.bucket_exists.return_value = False

        store.upload(avatar)

        client.set_bucket_policy.assert_called_once()
        bucket, raw_policy = client.set_bucket_policy.call_args.args
        assert bucket == "assets"
        (statement,) = json.loads(raw_policy)["Statement"]
        assert statement["Effect"] == "Allow"
        assert statement["Action"] == ["s3:GetObject"]
        assert statement["Principal"] == {"AWS": ["*"]}
        assert statement["Resource"] == ["arn:aws:s3:::assets/*"]

    def test_existing_bucket_policy_is_left_alone(self, store, client, avatar):
        store.upload(avatar)

        client.make_bucket.assert_not_called()
        client.set_bucket_policy.assert_not_called()

    @pytest.mark.parametrize("error", [HTTPError("connection reset"), OSError("gone")])
    def test_storage_failure_returns_none(self, store, client, avatar, error, caplog):
        client.fput_object.side_effect = error

        assert store.upload(avatar) is None
        assert any(
            getattr(r, "event", None) == "object_store.upload_failed" for r in caplog.records
        )

    def test_from_config_builds_default_base_url(self):
        store = MinioObjectStore.from_config(
            {
                "MINIO_ENDPOINT": "minio:9000",
                "MINIO_ACCESS_KEY": "key",
                "MINIO_SECRET_KEY": "secret",
                "MINIO_BUCKET": "bucket",
                "MINIO_SECURE": False,
                "MINIO_PUBLIC_BASE_URL": "",
            }
        )

        assert store.bucket == "bucket"
        assert store.url_for("k.png") == "http://minio:9000/bucket/k.png"
