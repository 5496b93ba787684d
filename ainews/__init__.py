from ainews.cache import NewsCache
from ainews.models import Article, Category
from ainews.news_service import NewsService
from ainews.storage import build_storage
from ainews.store import NewsStore

__all__ = [
    "Article",
    "Category",
    "NewsCache",
    "NewsService",
    "NewsStore",
    "build_storage",
]
