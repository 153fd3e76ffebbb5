"""Test doubles for the Gemini client and the blob store."""

import io
import json
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

from PIL import Image

from apollo.storage import BlobStore


def make_png(width: int = 8, height: int = 10, color: str = "red") -> bytes:
    output = io.BytesIO()
    Image.new("RGB", (width, height), color).save(output, format="PNG")
    return output.getvalue()


def image_response(data: bytes, mime_type: str = "image/png") -> SimpleNamespace:
    part = SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


def text_response(text: str) -> SimpleNamespace:
    part = SimpleNamespace(text=text, inline_data=None)
    return SimpleNamespace(text=text, candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


def json_response(payload: dict[str, Any]) -> SimpleNamespace:
    return text_response(json.dumps(payload, ensure_ascii=False))


def prompt_text(contents: Any) -> str:
    """Text of the last part of the single user turn sent to the model."""
    return contents[0].parts[-1].text


class FakeModels:
    def __init__(self, handler: Callable[..., Any]) -> None:
        self.handler = handler
        self.calls: list[SimpleNamespace] = []

    async def generate_content(self, *, model: str, contents: Any, config: Any) -> Any:
        call = SimpleNamespace(model=model, contents=contents, config=config)
        self.calls.append(call)
        return self.handler(call)


class FakeGenaiClient:
    """Stands in for ``google.genai.Client``; only ``aio.models.generate_content`` is used."""

    def __init__(self, handler: Callable[..., Any] | None = None) -> None:
        self.models = FakeModels(handler or (lambda _call: image_response(make_png())))
        self.aio = SimpleNamespace(models=self.models)

    @property
    def calls(self) -> list[SimpleNamespace]:
        return self.models.calls

    def respond_with(self, handler: Callable[..., Any]) -> None:
        self.models.handler = handler


class InMemoryBlobStore(BlobStore):
    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.public: set[str] = set()
        self.fail_puts: set[str] = set()

    def exists(self, path: str) -> bool:
        return path in self.objects

    def get(self, path: str) -> bytes:
        if path not in self.objects:
            raise FileNotFoundError(path)
        return self.objects[path][0]

    def put(self, path: str, data: bytes, content_type: str) -> None:
        if path in self.fail_puts:
            raise OSError(f"upload failed: {path}")
        self.objects[path] = (data, content_type)

    def delete(self, path: str) -> None:
        self.objects.pop(path, None)
        self.public.discard(path)

    def make_public(self, path: str) -> str:
        self.public.add(path)
        return self.public_url(path)

    def public_url(self, path: str) -> str:
        return f"https://blobs.test/{path}"


OWNER_UID = "user-owner"
OTHER_UID = "user-other"


def make_plan(panel_count: int = 4) -> dict[str, Any]:
    return {
        "title": "월요일 아침",
        "summary": "늦잠 자고 지각한 하루",
        "global": {
            "artStyle": "cute chibi webtoon style",
            "colorPalette": "warm pastel colors",
            "cameraRules": "vary between close-up and wide shots",
            "typographyRules": "짧고 위트있게",
            "negatives": "realistic style, dark colors",
        },
        "panels": [
            {
                "index": index,
                "scene": f"장면 {index}",
                "prompt": f"panel-{index} girl with short black bob hair",
                "captionDraft": f"캡션 {index}",
            }
            for index in range(panel_count)
        ],
    }


class FakeBlob:
    def __init__(self, bucket: "FakeBucket", name: str) -> None:
        self.bucket = bucket
        self.name = name

    def exists(self) -> bool:
        return self.name in self.bucket.objects

    def download_as_bytes(self) -> bytes:
        return self.bucket.objects[self.name][0]

    def upload_from_string(self, data: bytes, content_type: str) -> None:
        self.bucket.objects[self.name] = (data, content_type)

    def delete(self) -> None:
        del self.bucket.objects[self.name]

    def make_public(self) -> None:
        self.bucket.public.add(self.name)


class FakeBucket:
    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.public: set[str] = set()

    def blob(self, name: str) -> FakeBlob:
        return FakeBlob(self, name)


class FakeStorageClient:
    def __init__(self) -> None:
        self.buckets: dict[str, FakeBucket] = {}

    def bucket(self, name: str) -> FakeBucket:
        return self.buckets.setdefault(name, FakeBucket())
