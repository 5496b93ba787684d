import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone

from ainews.cache import NewsCache
from ainews.content import clean_text, clean_title, to_html_fragment, to_iso
from ainews.exceptions import ConfigurationError, NewsError, UpstreamError
from ainews.http_client import DEFAULT_TIMEOUT, get_json
from ainews.models import PLACEHOLDER_IMAGE, Article, Category

logger = logging.getLogger(__name__)

GNEWS_URL = "https://gnews.io/api/v4/search"
NEWSDATA_URL = "https://newsdata.io/api/1/news"

LATEST_QUERY = "AI OR artificial intelligence OR ChatGPT"
AI_TECH_QUERY = "ChatGPT OR GPT OR machine learning OR deep learning"
INDUSTRY_QUERY = "artificial intelligence AI"
INDUSTRY_NEWSDATA_CATEGORY = "business"

# Cache key prefixes of provider-level batches; detail lookups scan these.
PROVIDER_PREFIXES = ("gnews_", "newsdata_")


def paginate(items, page, page_size):
    if page_size <= 0:
        return []
    start = (max(page, 1) - 1) * page_size
    return list(items[start:start + page_size])


def _category_value(category):
    return category.value if isinstance(category, Category) else str(category)


class NewsService:
    """
    Category-oriented queries over GNews and NewsData.io.

    Every query checks the cache first, fetches the provider batch on a miss and
    slices the requested page out of it. Any NewsError collapses into the
    fallback list; the cause stays available as `last_error`.
    """

    def __init__(self, cache=None, gnews_api_key=None, newsdata_api_key=None,
                 language="en", country="us", max_results=10,
                 timeout=DEFAULT_TIMEOUT, clock=time.time):
        self.cache = cache if cache is not None else NewsCache()
        self.gnews_api_key = gnews_api_key
        self.newsdata_api_key = newsdata_api_key
        self.language = language
        self.country = country
        self.max_results = max_results
        self.timeout = timeout
        self.last_error = None
        self._clock = clock

    async def _get(self, url, params):
        # Blocking requests call runs off the loop; everything else stays on it.
        payload = await asyncio.to_thread(get_json, url, params, self.timeout)
        if not isinstance(payload, dict):
            raise UpstreamError(f"{url} returned an unexpected payload")
        return payload

    async def fetch_gnews(self, query=LATEST_QUERY, category=Category.LATEST):
        category = _category_value(category)
        cache_key = self.cache.compute_key("gnews", {
            "query": query,
            "maxResults": self.max_results,
            "category": category,
        })
        if self.cache.is_valid(cache_key):
            logger.info(f"Cache hit for GNews query: {query}")
            return list(self.cache.get(cache_key))

        if not self.gnews_api_key:
            raise ConfigurationError("GNews API key is not configured")

        logger.info(f"Fetching GNews: {query}")
        payload = await self._get(GNEWS_URL, {
            "q": query,
            "lang": self.language,
            "country": self.country,
            "max": self.max_results,
            "apikey": self.gnews_api_key,
        })
        fetched_ms = int(self._clock() * 1000)
        articles = [
            self._from_gnews(raw, index, fetched_ms, category)
            for index, raw in enumerate(payload.get("articles") or [])
        ]
        self.cache.set(cache_key, articles)
        return list(articles)

    async def fetch_newsdata(self, newsdata_category="technology",
                             query="artificial intelligence", category=Category.INDUSTRY):
        category = _category_value(category)
        cache_key = self.cache.compute_key("newsdata", {
            "newsdataCategory": newsdata_category,
            "query": query,
            "category": category,
        })
        if self.cache.is_valid(cache_key):
            logger.info(f"Cache hit for NewsData query: {query}")
            return list(self.cache.get(cache_key))

        if not self.newsdata_api_key:
            raise ConfigurationError("NewsData API key is not configured")

        logger.info(f"Fetching NewsData: {query} ({newsdata_category})")
        payload = await self._get(NEWSDATA_URL, {
            "apikey": self.newsdata_api_key,
            "q": query,
            "language": self.language,
            "category": newsdata_category,
        })
        articles = [self._from_newsdata(raw, category) for raw in payload.get("results") or []]
        self.cache.set(cache_key, articles)
        return list(articles)

    @staticmethod
    def _from_gnews(raw, index, fetched_ms, category):
        source = (raw.get("source") or {}).get("name") or "GNews"
        published_at = raw.get("publishedAt") or ""
        return Article(
            id=f"gnews_{published_at}_{fetched_ms}_{index}",
            title=clean_title(raw.get("title"), source),
            description=clean_text(raw.get("description")),
            content=to_html_fragment(raw.get("content")),
            url=raw.get("url") or "#",
            image=raw.get("image") or PLACEHOLDER_IMAGE,
            source=source,
            published_at=published_at,
            category=category,
        )

    @staticmethod
    def _from_newsdata(raw, category):
        source = raw.get("source_id") or "NewsData"
        return Article(
            id=f"newsdata_{raw.get('article_id')}",
            title=clean_title(raw.get("title"), source),
            description=clean_text(raw.get("description")),
            content=to_html_fragment(raw.get("content")),
            url=raw.get("link") or "#",
            image=raw.get("image_url") or PLACEHOLDER_IMAGE,
            source=source,
            published_at=raw.get("pubDate") or "",
            category=category,
        )

    def fallback_news(self, category=Category.LATEST):
        category = _category_value(category)
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        stamp = int(self._clock() * 1000)
        return [
            Article(
                id=f"fallback_{stamp}_1",
                title="AI technology keeps advancing as smart applications emerge",
                description="Artificial intelligence keeps making breakthroughs across industries, bringing more convenience to everyday life.",
                content="<p>Artificial intelligence keeps making breakthroughs across industries, bringing more convenience to everyday life.</p>",
                url="#",
                image=PLACEHOLDER_IMAGE,
                source="AI News Wire",
                published_at=to_iso(now),
                category=category,
            ),
            Article(
                id=f"fallback_{stamp}_2",
                title="New progress in machine learning algorithm optimization",
                description="Researchers report important progress in optimizing machine learning algorithms, improving model training efficiency.",
                content="<p>Researchers report important progress in optimizing machine learning algorithms, improving model training efficiency.</p>",
                url="#",
                image=PLACEHOLDER_IMAGE,
                source="Tech Daily",
                published_at=to_iso(now - timedelta(hours=1)),
                category=category,
            ),
        ]

    async def _paged(self, cache_key, load, page, page_size, category, what):
        if self.cache.is_valid(cache_key):
            logger.info(f"Cache hit for {what} (page {page})")
            return list(self.cache.get(cache_key))
        try:
            articles = await load()
        except NewsError as e:
            self.last_error = e
            logger.error(f"Failed to fetch {what}, serving fallback: {e}")
            return self.fallback_news(category)

        self.last_error = None
        page_items = paginate(articles, page, page_size)
        self.cache.set(cache_key, page_items)
        return list(page_items)

    async def get_latest_news(self, page=1, page_size=10):
        cache_key = self.cache.compute_key("latest", {"page": page, "pageSize": page_size})
        return await self._paged(
            cache_key,
            lambda: self.fetch_gnews(LATEST_QUERY, Category.LATEST),
            page, page_size, Category.LATEST, "latest news",
        )

    async def get_news_by_category(self, category, page=1, page_size=10):
        value = _category_value(category)
        cache_key = self.cache.compute_key("category", {"category": value, "page": page, "pageSize": page_size})
        parsed = Category.parse(value)

        if parsed == Category.AI_TECH:
            load = lambda: self.fetch_gnews(AI_TECH_QUERY, Category.AI_TECH)
        elif parsed == Category.INDUSTRY:
            load = lambda: self.fetch_newsdata(INDUSTRY_NEWSDATA_CATEGORY, INDUSTRY_QUERY, Category.INDUSTRY)
        else:
            load = lambda: self.fetch_gnews(LATEST_QUERY, Category.LATEST)

        return await self._paged(cache_key, load, page, page_size, parsed, f"{value} news")

    async def search_news(self, query, page=1, page_size=10):
        cache_key = self.cache.compute_key("search", {"query": query, "page": page, "pageSize": page_size})
        return await self._paged(
            cache_key,
            lambda: self.fetch_gnews(query, Category.LATEST),
            page, page_size, Category.LATEST, f"search results for '{query}'",
        )

    async def get_news_detail(self, news_id):
        """Resolve an article from cached provider batches. There is no network lookup by id."""
        cache_key = self.cache.compute_key("detail", {"id": news_id})
        if self.cache.is_valid(cache_key):
            return self.cache.get(cache_key)

        for _, articles in self.cache.entries(PROVIDER_PREFIXES):
            for article in articles:
                if article.id == news_id:
                    self.cache.set(cache_key, article)
                    return article

        logger.warning(f"News detail not found in cached batches: {news_id}")
        return None
