import threading

import pytest

from conftest import gnews_payload

from ainews.news_service import GNEWS_URL
from ainews.storage import JsonFileStorage
from ainews.store import NewsStore
from app import create_app


@pytest.fixture
def client(service, storage):
    app = create_app(store=NewsStore(service, storage))
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def offline_client(offline_service, storage):
    app = create_app(store=NewsStore(offline_service, storage))
    return app.test_client()


def test_news_endpoint_pages(client, provider):
    provider.payloads[GNEWS_URL] = gnews_payload(12)

    first = client.post("/news", json={"category": "latest"}).get_json()
    second = client.post("/news", json={"category": "latest"}).get_json()

    assert len(first["articles"]) == 10 and first["hasMore"] is True
    assert len(second["articles"]) == 12 and second["hasMore"] is False
    assert second["page"] == 2
    assert "publishedLabel" in second["articles"][0]


def test_news_endpoint_fallback_without_keys(offline_client):
    resp = offline_client.post("/news", json={"category": "industry", "refresh": True})
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["category"] == "industry"
    assert [a["id"].startswith("fallback_") for a in body["articles"]] == [True, True]


def test_search_requires_query(client):
    resp = client.post("/search", json={"query": "  "})
    assert resp.status_code == 400


def test_search(client, provider):
    provider.payloads[GNEWS_URL] = gnews_payload(3)
    body = client.post("/search", json={"query": "robots"}).get_json()
    assert body["query"] == "robots"
    assert len(body["articles"]) == 3


def test_detail_and_history(client, provider):
    provider.payloads[GNEWS_URL] = gnews_payload(2)
    articles = client.post("/news", json={}).get_json()["articles"]

    resp = client.get(f"/news/{articles[1]['id']}")
    assert resp.status_code == 200
    assert resp.get_json()["article"]["id"] == articles[1]["id"]

    history = client.get("/history").get_json()["history"]
    assert [h["id"] for h in history] == [articles[1]["id"]]
    assert history[0]["readAt"]

    assert client.delete("/history").status_code == 200
    assert client.get("/history").get_json()["history"] == []


def test_detail_not_found(client):
    resp = client.get("/news/unknown")
    assert resp.status_code == 404
    assert "unknown" in resp.get_json()["error"]


def test_favorites_roundtrip(client):
    article = {"id": "a1", "title": "Saved", "publishedAt": "2024-05-01T08:00:00Z"}

    assert client.post("/favorites", json={"article": article}).status_code == 201
    client.post("/favorites", json={"article": article})
    favorites = client.get("/favorites").get_json()["favorites"]
    assert [f["id"] for f in favorites] == ["a1"]
    assert favorites[0]["favoritedAt"]

    assert client.delete("/favorites/a1").get_json()["favorites"] == []
    assert client.post("/favorites", json={"article": {"title": "no id"}}).status_code == 400


def test_refresh_and_health(offline_client):
    snapshot = offline_client.post("/refresh").get_json()
    assert len(snapshot["latestNews"]) == 2
    assert len(snapshot["aiTechNews"]) == 2
    assert len(snapshot["industryNews"]) == 2
    assert snapshot["loading"] is False

    health = offline_client.get("/health").get_json()
    assert health["status"] == "healthy"
    assert health["storage"] == "memory"
    assert health["last_fetch_error"].startswith("ConfigurationError")


def test_unknown_route(client):
    resp = client.get("/nowhere")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Endpoint not found"}


def test_news_refresh_flag_parsing(client, provider):
    provider.payloads[GNEWS_URL] = gnews_payload(12)
    client.post("/news", json={})

    body = client.post("/news", json={"refresh": "false"}).get_json()
    assert len(body["articles"]) == 12
    assert body["page"] == 2

    body = client.post("/news", json={"refresh": "true"}).get_json()
    assert len(body["articles"]) == 10
    assert body["page"] == 1


def test_news_page_comes_from_store_cursor(client, provider):
    provider.payloads[GNEWS_URL] = gnews_payload(12)
    body = client.post("/news", json={"page": 5}).get_json()
    assert body["page"] == 1
    assert len(body["articles"]) == 10


def test_favorite_payload_must_be_object(client):
    assert client.post("/favorites", json={"article": "a1"}).status_code == 400
    assert client.post("/favorites", json={"article": ["a1"]}).status_code == 400
    assert client.post("/favorites", json=["a1"]).status_code == 400
    assert client.get("/favorites").get_json()["favorites"] == []


def test_concurrent_requests_share_file_storage(service, tmp_path):
    storage = JsonFileStorage(str(tmp_path / "storage.json"))
    app = create_app(store=NewsStore(service, storage))
    failures = []

    def add(prefix):
        local = app.test_client()
        for n in range(25):
            resp = local.post("/favorites", json={"article": {"id": f"{prefix}{n}"}})
            if resp.status_code != 201:
                failures.append(resp.status_code)

    threads = [threading.Thread(target=add, args=(prefix,)) for prefix in ("x", "y")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert failures == []
    stored = {record["id"] for record in storage.load("favorites")}
    assert len(stored) == 50
    assert NewsStore(service, storage).favorite_ids() == app.config["NEWS_STORE"].favorite_ids()
