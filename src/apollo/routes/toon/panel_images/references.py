"""Loading of character reference images from the blob store."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import PurePosixPath

from apollo.log_config import logger
from apollo.storage import BlobStore

from .constants import MAX_REFERENCE_IMAGES

_MIME_BY_EXTENSION = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "gif": "image/gif",
}


@dataclass(frozen=True)
class ReferenceImage:
    path: str
    data: bytes
    mime_type: str


def infer_mime_type(path: str) -> str:
    """Mime type from the path's extension; unknown extensions are treated as PNG."""
    extension = PurePosixPath(path).suffix.lstrip(".").lower()
    return _MIME_BY_EXTENSION.get(extension, "image/png")


def _load_one(blob_store: BlobStore, path: str) -> ReferenceImage | None:
    try:
        if not blob_store.exists(path):
            logger.warning("Reference image not found: %s", path)
            return None
        data = blob_store.get(path)
    except Exception as e:  # noqa: BLE001
        # GCS raises its own exception hierarchy
        logger.error("Failed to load reference image %s: %s", path, e)
        return None
    return ReferenceImage(path=path, data=data, mime_type=infer_mime_type(path))


async def load_reference_images(
    blob_store: BlobStore,
    paths: list[str] | None,
    max_count: int = MAX_REFERENCE_IMAGES,
) -> list[ReferenceImage]:
    """Load up to ``max_count`` reference images, in order, skipping any that cannot be read."""
    if not paths:
        return []
    requested = paths[:max_count]
    loaded: list[ReferenceImage] = []
    for path in requested:
        image = await asyncio.to_thread(_load_one, blob_store, path)
        if image is not None:
            loaded.append(image)
    logger.info("Loaded reference images requested=%s loaded=%s", len(requested), len(loaded))
    return loaded
