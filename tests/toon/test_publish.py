from fastapi.testclient import TestClient

from fakes import OTHER_UID

URL = "/v1/toon/publish"


def _panels(count: int) -> list[dict]:
    return [
        {"index": index, "imagePath": f"episodes/ep-1/panels/{index}.png", "caption": f"캡션 {index}"}
        for index in range(count)
    ]


def test_requires_auth(client: TestClient) -> None:
    assert client.post(URL, json={"episodeId": "ep-1"}).status_code == 401


def test_publishes_complete_episode(client: TestClient, owner_header, seed_episode, load_episode_row) -> None:
    seed_episode("ep-1", panel_count=4, panels=_panels(4))

    response = client.post(URL, json={"episodeId": "ep-1"}, headers=owner_header)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["status"] == "published"
    assert data["alreadyPublished"] is False
    assert data["publishedAt"]
    episode = load_episode_row("ep-1")
    assert episode.status == "published"
    assert episode.published_at is not None


def test_publishing_twice_is_a_no_op(client: TestClient, owner_header, seed_episode, load_episode_row) -> None:
    seed_episode("ep-1", panel_count=2, panels=_panels(2))
    first = client.post(URL, json={"episodeId": "ep-1"}, headers=owner_header).json()

    second = client.post(URL, json={"episodeId": "ep-1"}, headers=owner_header)

    assert second.status_code == 200
    assert second.json()["alreadyPublished"] is True
    assert second.json()["publishedAt"][:19] == first["publishedAt"][:19]


def test_incomplete_episode_is_412(client: TestClient, owner_header, seed_episode, load_episode_row) -> None:
    seed_episode("ep-1", panel_count=4, panels=_panels(3))

    response = client.post(URL, json={"episodeId": "ep-1"}, headers=owner_header)

    assert response.status_code == 412
    assert "(3/4)" in response.json()["detail"]
    assert load_episode_row("ep-1").status == "draft"


def test_episode_without_plan_is_412(client: TestClient, owner_header, seed_episode) -> None:
    seed_episode("ep-1", plan=None)

    assert client.post(URL, json={"episodeId": "ep-1"}, headers=owner_header).status_code == 412


def test_missing_and_foreign_episodes(client: TestClient, owner_header, auth_header, seed_episode) -> None:
    seed_episode("ep-1", panel_count=2, panels=_panels(2))

    assert client.post(URL, json={"episodeId": "nope"}, headers=owner_header).status_code == 404
    assert client.post(URL, json={"episodeId": "ep-1"}, headers=auth_header(OTHER_UID)).status_code == 403


def test_fourth_publish_in_a_minute_is_rate_limited(client: TestClient, owner_header) -> None:
    statuses = [client.post(URL, json={"episodeId": "nope"}, headers=owner_header).status_code for _ in range(4)]

    assert statuses == [404, 404, 404, 429]
