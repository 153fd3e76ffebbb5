import base64
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from apollo.routes.utils import utcnow
from fakes import OTHER_UID, InMemoryBlobStore, make_png


def _panels(episode_id: str, count: int) -> list[dict]:
    return [
        {"index": index, "imagePath": f"episodes/{episode_id}/panels/{index}.png", "caption": f"캡션 {index}"}
        for index in range(count)
    ]


@pytest.fixture
def gallery(seed_episode):
    base = utcnow() - timedelta(hours=1)
    for offset, episode_id in enumerate(["ep-a", "ep-b", "ep-c", "ep-d", "ep-e"]):
        seed_episode(
            episode_id,
            panel_count=2,
            panels=_panels(episode_id, 2),
            published=True,
            published_at=base + timedelta(minutes=offset),
        )
    seed_episode("ep-draft", panel_count=2, panels=_panels("ep-draft", 2))


def test_gallery_lists_published_newest_first(client: TestClient, gallery) -> None:
    response = client.get("/v1/gallery/episodes")

    assert response.status_code == 200
    data = response.json()
    assert [item["id"] for item in data["items"]] == ["ep-e", "ep-d", "ep-c", "ep-b", "ep-a"]
    assert data["hasMore"] is False
    first = data["items"][0]
    assert first["thumbUrl"] == "https://blobs.test/episodes/ep-e/panels/0.png"
    assert first["panelCount"] == 2


def test_gallery_pagination(client: TestClient, gallery) -> None:
    first = client.get("/v1/gallery/episodes", params={"limit": 2}).json()
    second = client.get("/v1/gallery/episodes", params={"limit": 2, "cursor": first["lastId"]}).json()
    third = client.get("/v1/gallery/episodes", params={"limit": 2, "cursor": second["lastId"]}).json()

    assert [item["id"] for item in first["items"]] == ["ep-e", "ep-d"]
    assert first["hasMore"] is True
    assert [item["id"] for item in second["items"]] == ["ep-c", "ep-b"]
    assert [item["id"] for item in third["items"]] == ["ep-a"]
    assert third["hasMore"] is False


@pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 51}])
def test_gallery_limit_bounds(client: TestClient, params: dict) -> None:
    assert client.get("/v1/gallery/episodes", params=params).status_code == 422


@pytest.mark.parametrize("cursor", ["missing", "ep-draft"])
def test_gallery_invalid_cursor(client: TestClient, gallery, cursor: str) -> None:
    assert client.get("/v1/gallery/episodes", params={"cursor": cursor}).status_code == 400


def test_published_episode_detail(client: TestClient, gallery) -> None:
    response = client.get("/v1/gallery/episodes/ep-b")

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "월요일 아침"
    assert [panel["imageUrl"] for panel in data["panels"]] == [
        "https://blobs.test/episodes/ep-b/panels/0.png",
        "https://blobs.test/episodes/ep-b/panels/1.png",
    ]
    assert data["panels"][1]["caption"] == "캡션 1"


def test_draft_is_not_visible_in_gallery(client: TestClient, gallery) -> None:
    assert client.get("/v1/gallery/episodes/ep-draft").status_code == 404
    assert client.get("/v1/gallery/episodes/ep-draft/comments").status_code == 404


def test_my_episodes_include_drafts(client: TestClient, owner_header, auth_header, gallery, seed_episode) -> None:
    seed_episode("ep-foreign", creator_uid=OTHER_UID)

    response = client.get("/v1/episodes", headers=owner_header)

    assert response.status_code == 200
    ids = {item["id"] for item in response.json()["items"]}
    assert ids == {"ep-a", "ep-b", "ep-c", "ep-d", "ep-e", "ep-draft"}
    draft = next(item for item in response.json()["items"] if item["id"] == "ep-draft")
    assert draft["status"] == "draft"
    assert draft["generatedCount"] == 2

    assert client.get("/v1/episodes", headers=auth_header(OTHER_UID)).json()["items"][0]["id"] == "ep-foreign"


def test_my_episodes_requires_auth(client: TestClient) -> None:
    assert client.get("/v1/episodes").status_code == 401


def test_my_episode_detail(client: TestClient, owner_header, auth_header, gallery) -> None:
    response = client.get("/v1/episodes/ep-draft", headers=owner_header)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "draft"
    assert data["finalPrompt"]["title"] == "월요일 아침"
    assert data["panels"][0]["imageUrl"] == "https://blobs.test/episodes/ep-draft/panels/0.png"

    assert client.get("/v1/episodes/ep-draft", headers=auth_header(OTHER_UID)).status_code == 403
    assert client.get("/v1/episodes/missing", headers=owner_header).status_code == 404


def test_update_captions(client: TestClient, owner_header, gallery, load_episode_row) -> None:
    response = client.put(
        "/v1/episodes/ep-draft/captions",
        json={"captions": [{"index": 1, "caption": "  지각 확정  "}]},
        headers=owner_header,
    )

    assert response.status_code == 200
    assert response.json()["panels"][1]["caption"] == "지각 확정"
    panels = load_episode_row("ep-draft").panels
    assert panels[0]["caption"] == "캡션 0"
    assert panels[1]["caption"] == "지각 확정"


def test_captions_of_published_episode_are_editable(client: TestClient, owner_header, gallery) -> None:
    client.put(
        "/v1/episodes/ep-a/captions",
        json={"captions": [{"index": 0, "caption": "새 캡션"}]},
        headers=owner_header,
    )

    assert client.get("/v1/gallery/episodes/ep-a").json()["panels"][0]["caption"] == "새 캡션"


def test_update_captions_rejects_unknown_panel(client: TestClient, owner_header, gallery) -> None:
    response = client.put(
        "/v1/episodes/ep-draft/captions",
        json={"captions": [{"index": 5, "caption": "없음"}]},
        headers=owner_header,
    )

    assert response.status_code == 400
    assert "[5]" in response.json()["detail"]


@pytest.mark.parametrize(
    "body",
    [{"captions": []}, {"captions": [{"index": 0, "caption": "가" * 31}]}, {"captions": [{"index": -1, "caption": "x"}]}],
)
def test_update_captions_validation(client: TestClient, owner_header, gallery, body: dict) -> None:
    assert client.put("/v1/episodes/ep-draft/captions", json=body, headers=owner_header).status_code == 422


def test_foreign_caption_update_is_forbidden(client: TestClient, auth_header, gallery) -> None:
    response = client.put(
        "/v1/episodes/ep-draft/captions",
        json={"captions": [{"index": 0, "caption": "남의 것"}]},
        headers=auth_header(OTHER_UID),
    )

    assert response.status_code == 403


def _png_data_url() -> str:
    return "data:image/png;base64," + base64.b64encode(make_png()).decode()


def test_upload_episode_reference(client: TestClient, owner_header, blob_store: InMemoryBlobStore, gallery) -> None:
    response = client.post("/v1/episodes/ep-draft/refs", json={"image": _png_data_url()}, headers=owner_header)

    assert response.status_code == 201
    data = response.json()
    assert data["path"].startswith("episodes/ep-draft/refs/")
    assert data["path"].endswith(".png")
    assert data["url"] == f"https://blobs.test/{data['path']}"
    assert blob_store.objects[data["path"]] == (make_png(), "image/png")
    assert data["path"] in blob_store.public


def test_episode_reference_upload_checks_owner_and_image(client: TestClient, owner_header, auth_header, gallery) -> None:
    image = {"image": _png_data_url()}

    assert client.post("/v1/episodes/ep-draft/refs", json=image, headers=auth_header(OTHER_UID)).status_code == 403
    assert client.post("/v1/episodes/missing/refs", json=image, headers=owner_header).status_code == 404
    assert client.post("/v1/episodes/ep-draft/refs", json=image).status_code == 401
    bad = {"image": "data:text/plain;base64," + base64.b64encode(b"hello").decode()}
    assert client.post("/v1/episodes/ep-draft/refs", json=bad, headers=owner_header).status_code == 400
