from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


def _clean_name(value: str) -> str:
    value = value.strip()
    if not value:
        msg = "name must not be blank"
        raise ValueError(msg)
    return value


class LibraryImageCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    image: str = Field(description="Base64 data URL (data:image/...;base64,...)")

    normalize_name = field_validator("name")(_clean_name)


class LibraryImageRename(BaseModel):
    name: str = Field(min_length=1, max_length=100)

    normalize_name = field_validator("name")(_clean_name)


class LibraryImageView(BaseModel):
    id: str
    name: str
    storagePath: str
    url: str
    createdAt: str | None = None
    updatedAt: str | None = None


class LibraryListResponse(BaseModel):
    items: list[LibraryImageView]
