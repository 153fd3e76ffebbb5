"""Path-addressed blob storage for panel images and reference images.

Two backends share the :class:`BlobStore` interface:

- :class:`LocalBlobStore` keeps objects under a directory on disk and serves
  them through the ``/files`` static mount of the app.
- :class:`GCSBlobStore` keeps objects in a Google Cloud Storage bucket and
  makes them public on request.

Paths are deterministic (see :class:`StoragePaths`), so regenerating a panel
overwrites the previous object in place.
"""

from __future__ import annotations

import tempfile
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Any

from apollo.config import ApolloConfig
from apollo.log_config import logger


class StoragePaths:
    """Blob path helpers."""

    @staticmethod
    def episode_panel(episode_id: str, index: int) -> str:
        return f"episodes/{episode_id}/panels/{index}.png"

    @staticmethod
    def episode_ref(episode_id: str, filename: str) -> str:
        return f"episodes/{episode_id}/refs/{filename}"

    @staticmethod
    def library_image(user_id: str, filename: str) -> str:
        return f"library/{user_id}/{filename}"


class BlobStore(ABC):
    """Minimal object store interface."""

    @abstractmethod
    def exists(self, path: str) -> bool: ...

    @abstractmethod
    def get(self, path: str) -> bytes: ...

    @abstractmethod
    def put(self, path: str, data: bytes, content_type: str) -> None: ...

    @abstractmethod
    def delete(self, path: str) -> None: ...

    @abstractmethod
    def make_public(self, path: str) -> str:
        """Expose the object publicly and return its URL."""

    @abstractmethod
    def public_url(self, path: str) -> str: ...


def _normalize_path(path: str) -> str:
    cleaned = PurePosixPath(path.strip().lstrip("/"))
    if not cleaned.parts or ".." in cleaned.parts:
        msg = f"Invalid blob path: {path!r}"
        raise ValueError(msg)
    return cleaned.as_posix()


class LocalBlobStore(BlobStore):
    """Filesystem-backed store; everything under ``root`` is publicly served."""

    def __init__(self, root: str | Path, public_base_url: str) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        return self.root / _normalize_path(path)

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def get(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise FileNotFoundError(path)
        return target.read_bytes()

    def put(self, path: str, data: bytes, content_type: str) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=target.parent, prefix=f".{target.name}.", delete=False) as tmp:
            tmp.write(data)
        try:
            Path(tmp.name).replace(target)
        except OSError:
            Path(tmp.name).unlink(missing_ok=True)
            raise

    def delete(self, path: str) -> None:
        self._resolve(path).unlink(missing_ok=True)

    def make_public(self, path: str) -> str:
        return self.public_url(path)

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{_normalize_path(path)}"


class GCSBlobStore(BlobStore):
    """Google Cloud Storage bucket store."""

    def __init__(self, bucket_name: str, client: Any | None = None) -> None:
        if client is None:
            from google.cloud import storage as gcs_storage

            client = gcs_storage.Client()
        self.bucket = client.bucket(bucket_name)
        self.bucket_name = bucket_name

    def exists(self, path: str) -> bool:
        return bool(self.bucket.blob(_normalize_path(path)).exists())

    def get(self, path: str) -> bytes:
        return self.bucket.blob(_normalize_path(path)).download_as_bytes()

    def put(self, path: str, data: bytes, content_type: str) -> None:
        blob = self.bucket.blob(_normalize_path(path))
        blob.upload_from_string(data, content_type=content_type)

    def delete(self, path: str) -> None:
        blob = self.bucket.blob(_normalize_path(path))
        if blob.exists():
            blob.delete()

    def make_public(self, path: str) -> str:
        blob = self.bucket.blob(_normalize_path(path))
        blob.make_public()
        return self.public_url(path)

    def public_url(self, path: str) -> str:
        return f"https://storage.googleapis.com/{self.bucket_name}/{_normalize_path(path)}"


def create_blob_store(config: ApolloConfig) -> BlobStore:
    """Build the blob store selected by ``storage_backend``."""
    if config.storage_backend == "gcs":
        if not config.gcs_bucket:
            msg = "APOLLO_GCS_BUCKET must be set when storage_backend is 'gcs'"
            raise ValueError(msg)
        logger.info("Using GCS blob store bucket=%s", config.gcs_bucket)
        return GCSBlobStore(config.gcs_bucket)
    logger.info("Using local blob store dir=%s", config.storage_dir)
    return LocalBlobStore(config.storage_dir, config.storage_public_base_url)


_blob_store: BlobStore | None = None


def set_blob_store(store: BlobStore) -> None:
    """Set the process-wide blob store instance."""
    global _blob_store  # noqa: PLW0603
    _blob_store = store


def get_blob_store() -> BlobStore:
    """Dependency returning the configured blob store."""
    if _blob_store is None:
        msg = "Blob store not initialized"
        raise RuntimeError(msg)
    return _blob_store
