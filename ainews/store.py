from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from ainews.content import to_iso
from ainews.exceptions import NewsNotFound, StorageError
from ainews.models import Article, Category
from ainews.storage import FAVORITES_KEY, READ_HISTORY_KEY, MemoryStorage, Storage

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100

_LIST_ATTRS = {
    Category.LATEST: "latest_news",
    Category.AI_TECH: "ai_tech_news",
    Category.INDUSTRY: "industry_news",
}


def initial_pages() -> Dict[str, int]:
    return {category.value: 1 for category in Category}


def initial_has_more() -> Dict[str, bool]:
    return {category.value: True for category in Category}


def merge_page(current: Sequence[Article], page_items: Sequence[Article], refresh: bool) -> List[Article]:
    if refresh:
        return list(page_items)
    return list(current) + list(page_items)


def add_favorite(favorites: Sequence[Article], article: Article, now: str) -> List[Article]:
    if any(item.id == article.id for item in favorites):
        return list(favorites)
    return [article.stamped(favorited_at=now)] + list(favorites)


def remove_favorite(favorites: Sequence[Article], news_id: str) -> List[Article]:
    return [item for item in favorites if item.id != news_id]


def push_history(history: Sequence[Article], article: Article, now: str,
                 limit: int = HISTORY_LIMIT) -> List[Article]:
    """Move `article` to the front with a fresh read timestamp; oldest entries fall off past `limit`."""
    rest = [item for item in history if item.id != article.id]
    return ([article.stamped(read_at=now)] + rest)[:limit]


class NewsStore:
    """
    Application state for the news client.

    Actions never raise. Failures land in `error` as a readable message and the
    flow's loading flag is always cleared. Favorites and read history are
    written through to `storage` after every change.
    """

    def __init__(self, service, storage: Optional[Storage] = None, page_size: int = 10,
                 clock: Optional[Callable[[], datetime]] = None) -> None:
        self.service = service
        self.storage = storage if storage is not None else MemoryStorage()
        self.page_size = page_size
        self._now = clock or (lambda: datetime.now(timezone.utc))

        self.latest_news: List[Article] = []
        self.ai_tech_news: List[Article] = []
        self.industry_news: List[Article] = []
        self.news_detail: Optional[Article] = None
        self.search_results: List[Article] = []
        self.search_query = ""

        self.current_page = initial_pages()
        self.has_more = initial_has_more()
        self.loading: Dict[str, bool] = {}
        self.error: Optional[str] = None

        self.favorites = self._load(FAVORITES_KEY)
        self.read_history = self._load(READ_HISTORY_KEY)

    # persistence

    def _load(self, key: str) -> List[Article]:
        try:
            records = self.storage.load(key)
        except StorageError as e:
            logger.error(f"Could not load {key}: {e}")
            return []
        articles = []
        for record in records:
            try:
                articles.append(Article.from_dict(record))
            except (KeyError, TypeError, AttributeError):
                logger.warning(f"Skipping malformed {key} record: {record!r}")
        return articles

    def _persist(self, key: str, articles: Sequence[Article]) -> None:
        try:
            self.storage.save(key, [article.as_dict() for article in articles])
        except StorageError as e:
            self.error = str(e)
            logger.error(f"Could not save {key}: {e}")

    # getters

    @property
    def is_loading(self) -> bool:
        return any(self.loading.values())

    def favorite_ids(self) -> List[str]:
        return [item.id for item in self.favorites]

    def read_news_ids(self) -> List[str]:
        return [item.id for item in self.read_history]

    def is_favorite(self, news_id: str) -> bool:
        return any(item.id == news_id for item in self.favorites)

    def news_for(self, category) -> List[Article]:
        return getattr(self, _LIST_ATTRS[Category.parse(category)])

    # fetch actions

    async def _fetch_category(self, category: Category, refresh: bool) -> None:
        flow = category.value
        if self.loading.get(flow) and not refresh:
            return

        self.loading[flow] = True
        self.error = None
        attr = _LIST_ATTRS[category]
        try:
            current = getattr(self, attr)
            # The cursor is the last page loaded; an empty list starts over at 1.
            page = 1 if refresh or not current else self.current_page[flow] + 1
            if category == Category.LATEST:
                news = await self.service.get_latest_news(page, self.page_size)
            else:
                news = await self.service.get_news_by_category(category, page, self.page_size)

            setattr(self, attr, merge_page(current, news, refresh))
            self.current_page[flow] = page
            self.has_more[flow] = len(news) >= self.page_size
        except Exception as e:
            self.error = str(e) or e.__class__.__name__
            logger.error(f"Failed to fetch {flow} news: {e}")
        finally:
            self.loading[flow] = False

    async def fetch_latest_news(self, refresh: bool = False) -> None:
        await self._fetch_category(Category.LATEST, refresh)

    async def fetch_ai_tech_news(self, refresh: bool = False) -> None:
        await self._fetch_category(Category.AI_TECH, refresh)

    async def fetch_industry_news(self, refresh: bool = False) -> None:
        await self._fetch_category(Category.INDUSTRY, refresh)

    async def fetch_category(self, category, refresh: bool = False) -> None:
        await self._fetch_category(Category.parse(category), refresh)

    async def fetch_news_detail(self, news_id: str) -> None:
        self.loading["detail"] = True
        self.error = None
        try:
            detail = await self.service.get_news_detail(news_id)
            self.news_detail = detail
            if detail is None:
                raise NewsNotFound(f"News detail not found: {news_id}")
            self.read_history = push_history(self.read_history, detail, to_iso(self._now()))
            self._persist(READ_HISTORY_KEY, self.read_history)
        except Exception as e:
            self.error = str(e) or e.__class__.__name__
            logger.error(f"Failed to fetch news detail: {e}")
        finally:
            self.loading["detail"] = False

    async def search_news(self, query: str, page: int = 1) -> None:
        self.loading["search"] = True
        self.error = None
        self.search_query = query
        try:
            results = await self.service.search_news(query, page, self.page_size)
            self.search_results = merge_page(self.search_results, results, refresh=page == 1)
        except Exception as e:
            self.error = str(e) or e.__class__.__name__
            logger.error(f"Failed to search news: {e}")
        finally:
            self.loading["search"] = False

    async def refresh_all(self) -> None:
        self.reset_pagination()
        results = await asyncio.gather(
            self.fetch_latest_news(refresh=True),
            self.fetch_ai_tech_news(refresh=True),
            self.fetch_industry_news(refresh=True),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Failed to refresh news: {result}")

    # local actions

    def add_to_favorites(self, article: Article) -> None:
        if self.is_favorite(article.id):
            return
        self.favorites = add_favorite(self.favorites, article, to_iso(self._now()))
        self._persist(FAVORITES_KEY, self.favorites)

    def remove_from_favorites(self, news_id: str) -> None:
        self.favorites = remove_favorite(self.favorites, news_id)
        self._persist(FAVORITES_KEY, self.favorites)

    def clear_read_history(self) -> None:
        self.read_history = []
        try:
            self.storage.remove(READ_HISTORY_KEY)
        except StorageError as e:
            self.error = str(e)
            logger.error(f"Could not clear read history: {e}")

    def clear_search_results(self) -> None:
        self.search_results = []
        self.search_query = ""

    def reset_pagination(self) -> None:
        self.current_page = initial_pages()
        self.has_more = initial_has_more()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "latestNews": [a.as_dict() for a in self.latest_news],
            "aiTechNews": [a.as_dict() for a in self.ai_tech_news],
            "industryNews": [a.as_dict() for a in self.industry_news],
            "currentPage": dict(self.current_page),
            "hasMore": dict(self.has_more),
            "loading": self.is_loading,
            "error": self.error,
            "searchQuery": self.search_query,
            "favoriteIds": self.favorite_ids(),
            "readNewsIds": self.read_news_ids(),
        }
