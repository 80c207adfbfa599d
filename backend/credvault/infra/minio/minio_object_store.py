"""MinIO adapter for the object store port."""
from __future__ import annotations

import json
import logging
import mimetypes
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from uuid import uuid4

from minio import Minio
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError

from credvault.services._shared.ports import ObjectStore, StoredAsset

logger = logging.getLogger(__name__)

_BUCKET_RACE_CODES = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}


def public_read_policy(bucket: str) -> str:
    """Bucket policy letting anonymous clients GET every object in ``bucket``."""
    return json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"AWS": ["*"]},
                    "Action": ["s3:GetObject"],
                    "Resource": [f"arn:aws:s3:::{bucket}/*"],
                }
            ],
        }
    )


@dataclass(slots=True)
class MinioObjectStore(ObjectStore):
    """
    MinIO/S3-backed object store for user assets.

    Objects are written under a random key that keeps the original file
    suffix; the returned URL is ``<public_base_url>/<bucket>/<key>``.

    :param client: A configured :class:`minio.Minio` client.
    :param bucket: Target bucket, created on first upload when missing.
    :param public_base_url: Base URL clients use to reach the bucket.
    :param prefix: Optional key prefix (e.g. ``"avatars"``).
    """

    client: Minio
    bucket: str
    public_base_url: str
    prefix: str = ""
    _bucket_ready: bool = field(default=False, init=False)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> MinioObjectStore:
        secure = bool(config.get("MINIO_SECURE", False))
        endpoint = str(config["MINIO_ENDPOINT"])
        client = Minio(
            endpoint=endpoint,
            access_key=config.get("MINIO_ACCESS_KEY"),
            secret_key=config.get("MINIO_SECRET_KEY"),
            secure=secure,
        )
        base_url = config.get("MINIO_PUBLIC_BASE_URL") or (
            f"{'https' if secure else 'http'}://{endpoint}"
        )
        return cls(client=client, bucket=str(config["MINIO_BUCKET"]), public_base_url=base_url)

    # -------------------- API ------------------------

    def upload(self, local_path: str) -> StoredAsset | None:
        """
        Upload ``local_path`` and return its public reference.

        Storage and transport failures are logged and reported as ``None``.
        """
        path = Path(local_path)
        key = self._object_key(path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        try:
            self.ensure_bucket()
            self.client.fput_object(self.bucket, key, str(path), content_type=content_type)
        except (MinioException, HTTPError, OSError, ValueError):
            logger.warning(
                "Object upload failed for %s",
                path.name,
                exc_info=True,
                extra={"event": "object_store.upload_failed"},
            )
            return None
        return StoredAsset(url=self.url_for(key), key=key)

    def ensure_bucket(self) -> None:
        """Create the bucket when missing and open it for anonymous reads.

        Buckets that already exist keep whatever policy their operator set.
        """
        if self._bucket_ready:
            return
        if not self.client.bucket_exists(self.bucket):
            try:
                self.client.make_bucket(self.bucket)
            except S3Error as exc:
                if exc.code not in _BUCKET_RACE_CODES:
                    raise
            else:
                self.client.set_bucket_policy(self.bucket, public_read_policy(self.bucket))
        self._bucket_ready = True

    def url_for(self, key: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/{self.bucket}/{key}"

    # -------------------- helpers --------------------

    def _object_key(self, path: Path) -> str:
        name = f"{uuid4().hex}{path.suffix.lower()}"
        return f"{self.prefix.strip('/')}/{name}" if self.prefix.strip("/") else name
