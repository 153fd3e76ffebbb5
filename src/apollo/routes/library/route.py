from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from apollo.auth import verify_caller
from apollo.db import LibraryImage, get_db
from apollo.log_config import logger
from apollo.routes.utils import utcnow
from apollo.storage import BlobStore, StoragePaths, get_blob_store

from .schema import LibraryImageCreate, LibraryImageRename, LibraryImageView, LibraryListResponse
from .utils import decode_image_upload, new_image_filename

router = APIRouter(prefix="/v1/library", tags=["library"])


def _view(image: LibraryImage, blob_store: BlobStore, url: str | None = None) -> LibraryImageView:
    data = image.to_dict()
    return LibraryImageView(url=url or blob_store.public_url(image.storage_path), **data)


def _load_own_image(db: Session, image_id: str, uid: str) -> LibraryImage:
    image = (
        db.query(LibraryImage)
        .filter(LibraryImage.id == image_id, LibraryImage.user_id == uid)
        .first()
    )
    if image is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Library image not found",
        )
    return image


@router.get("", response_model=LibraryListResponse)
async def list_library_images(
    uid: str = Depends(verify_caller),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> LibraryListResponse:
    rows = (
        db.query(LibraryImage)
        .filter(LibraryImage.user_id == uid)
        .order_by(LibraryImage.created_at.desc())
        .all()
    )
    return LibraryListResponse(items=[_view(image, blob_store) for image in rows])


@router.post("", response_model=LibraryImageView, status_code=status.HTTP_201_CREATED)
async def add_library_image(
    payload: LibraryImageCreate,
    uid: str = Depends(verify_caller),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> LibraryImageView:
    data, extension, mime_type = decode_image_upload(payload.image)
    path = StoragePaths.library_image(uid, new_image_filename(extension))
    await asyncio.to_thread(blob_store.put, path, data, mime_type)
    url = await asyncio.to_thread(blob_store.make_public, path)

    now = utcnow()
    image = LibraryImage(user_id=uid, name=payload.name, storage_path=path, created_at=now, updated_at=now)
    db.add(image)
    db.commit()
    logger.info("Saved library image %s (%s bytes)", image.id, len(data))
    return _view(image, blob_store, url)


@router.patch("/{image_id}", response_model=LibraryImageView)
async def rename_library_image(
    image_id: str,
    payload: LibraryImageRename,
    uid: str = Depends(verify_caller),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> LibraryImageView:
    image = _load_own_image(db, image_id, uid)
    image.name = payload.name
    image.updated_at = utcnow()
    db.commit()
    return _view(image, blob_store)


@router.delete("/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_library_image(
    image_id: str,
    uid: str = Depends(verify_caller),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> Response:
    image = _load_own_image(db, image_id, uid)
    await asyncio.to_thread(blob_store.delete, image.storage_path)
    db.delete(image)
    db.commit()
    logger.info("Deleted library image %s", image_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
