"""Decoding and validation of uploaded reference images."""
from __future__ import annotations

import base64
import binascii
import io
import re
import uuid

from fastapi import HTTPException, status
from PIL import Image, UnidentifiedImageError

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

_DATA_URL_PATTERN = re.compile(r"^data:(.*?);base64,(.*)$", re.DOTALL)

# Pillow format name -> (file extension, mime type)
_ALLOWED_FORMATS: dict[str, tuple[str, str]] = {
    "PNG": ("png", "image/png"),
    "JPEG": ("jpg", "image/jpeg"),
    "WEBP": ("webp", "image/webp"),
    "GIF": ("gif", "image/gif"),
}


def _parse_data_url(value: str) -> tuple[str, str]:
    match = _DATA_URL_PATTERN.match(value.strip())
    if not match:
        raise ValueError("Invalid data URL")
    mime_type, payload = match.groups()
    return mime_type, payload


def decode_image_upload(value: str) -> tuple[bytes, str, str]:
    """Decode a base64 image data URL.

    Returns:
        The raw bytes, the file extension and the mime type detected by Pillow

    Raises:
        HTTPException: 400 for anything that is not a supported image, 413 above the size limit

    """
    try:
        declared_mime, payload = _parse_data_url(value)
        data = base64.b64decode(payload, validate=True)
    except (ValueError, binascii.Error) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="image must be a base64 data URL",
        ) from e

    if not declared_mime.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only image uploads are allowed",
        )
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Image must be at most 10 MB",
        )

    try:
        with Image.open(io.BytesIO(data)) as img:
            image_format = img.format or ""
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is not a readable image",
        ) from e

    if image_format not in _ALLOWED_FORMATS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported image format: {image_format or 'unknown'}",
        )
    extension, mime_type = _ALLOWED_FORMATS[image_format]
    return data, extension, mime_type


def new_image_filename(extension: str) -> str:
    return f"{uuid.uuid4()}.{extension}"
