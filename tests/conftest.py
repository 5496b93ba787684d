import pytest

from ainews import news_service
from ainews.cache import NewsCache
from ainews.news_service import NEWSDATA_URL, NewsService
from ainews.storage import MemoryStorage
from ainews.store import NewsStore


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeProvider:
    """Stands in for http_client.get_json and records every call."""

    def __init__(self):
        self.calls = []
        self.payloads = {}
        self.error = None

    def __call__(self, url, params, timeout=10):
        self.calls.append((url, dict(params)))
        if self.error is not None:
            raise self.error
        return self.payloads.get(url, {})

    def urls(self):
        return [url for url, _ in self.calls]


def gnews_article(n, published="2024-05-01T08:00:00Z"):
    return {
        "title": f"AI story {n} - Wire",
        "description": f"<b>Summary</b> {n}",
        "content": f"Body {n}",
        "url": f"https://example.com/{n}",
        "image": f"https://example.com/{n}.png",
        "source": {"name": "Wire", "url": "https://example.com"},
        "publishedAt": published,
    }


def newsdata_article(n):
    return {
        "article_id": f"nd{n}",
        "title": f"Industry story {n}",
        "description": f"Business {n}",
        "content": f"<p>Markets {n}</p>",
        "link": f"https://biz.example.com/{n}",
        "image_url": None,
        "source_id": "bizwire",
        "pubDate": "2024-05-01 09:30:00",
    }


def gnews_payload(count):
    return {"totalArticles": count, "articles": [gnews_article(n) for n in range(count)]}


def newsdata_payload(count):
    return {"status": "success", "results": [newsdata_article(n) for n in range(count)]}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def provider(monkeypatch):
    fake = FakeProvider()
    monkeypatch.setattr(news_service, "get_json", fake)
    return fake


@pytest.fixture
def service(clock, provider):
    return NewsService(
        cache=NewsCache(clock=clock),
        gnews_api_key="gnews-key",
        newsdata_api_key="newsdata-key",
        clock=clock,
    )


@pytest.fixture
def offline_service(clock, provider):
    return NewsService(cache=NewsCache(clock=clock), clock=clock)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(service, storage):
    return NewsStore(service, storage, page_size=10)


@pytest.fixture
def industry_payload(provider):
    provider.payloads[NEWSDATA_URL] = newsdata_payload(3)
    return provider
