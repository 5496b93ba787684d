import asyncio
import logging
import threading
from datetime import datetime, timezone

from flask import Flask, request, jsonify
from flask_cors import CORS

from ainews import config
from ainews.cache import NewsCache
from ainews.content import format_relative_time
from ainews.models import Article, Category
from ainews.news_service import NewsService
from ainews.storage import RedisStorage, build_storage
from ainews.store import NewsStore

logging.basicConfig(level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)


def build_store():
    cache = NewsCache(ttl_seconds=config.CACHE_TTL_SECONDS)
    service = NewsService(
        cache=cache,
        gnews_api_key=config.GNEWS_API_KEY,
        newsdata_api_key=config.NEWSDATA_API_KEY,
        language=config.NEWS_LANGUAGE,
        country=config.NEWS_COUNTRY,
        max_results=config.NEWS_MAX_RESULTS,
        timeout=config.REQUEST_TIMEOUT,
    )
    if not config.GNEWS_API_KEY:
        logger.warning("GNEWS_API_KEY not set; latest, AI-tech and search will serve fallback news")
    if not config.NEWSDATA_API_KEY:
        logger.warning("NEWSDATA_API_KEY not set; industry news will serve fallback news")
    storage = build_storage(redis_url=config.REDIS_URL, path=config.STORAGE_PATH)
    return NewsStore(service, storage, page_size=config.NEWS_PAGE_SIZE)


def serialize(article):
    data = article.as_dict()
    data["publishedLabel"] = format_relative_time(article.published_at)
    return data


def _json_object():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _flag(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return False


def _int_arg(data, name, default):
    try:
        return max(int(data.get(name, default)), 1)
    except (TypeError, ValueError):
        return default


def create_app(store=None):
    app = Flask(__name__)
    if store is None:
        store = build_store()
    app.config['NEWS_STORE'] = store
    # The dev server is threaded; store actions run one at a time.
    store_lock = threading.Lock()

    CORS(app, resources={
        r"/*": {
            "origins": [config.FRONTEND_URL],
            "methods": ["GET", "POST", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type"]
        }
    })

    @app.route("/news", methods=["POST", "OPTIONS"])
    def fetch_news():
        if request.method == "OPTIONS":
            return jsonify({"message": "CORS preflight"}), 200

        data = _json_object()
        category = Category.parse(data.get("category"))
        refresh = _flag(data.get("refresh", False))

        with store_lock:
            asyncio.run(store.fetch_category(category, refresh=refresh))
            body = {
                "category": category.value,
                "articles": [serialize(a) for a in store.news_for(category)],
                "page": store.current_page[category.value],
                "hasMore": store.has_more[category.value],
                "error": store.error,
            }
        return jsonify(body), 200

    @app.route("/search", methods=["POST", "OPTIONS"])
    def search():
        if request.method == "OPTIONS":
            return jsonify({"message": "CORS preflight"}), 200

        data = _json_object()
        query = (data.get('query') or '').strip()
        page = _int_arg(data, 'page', 1)
        if not query:
            return jsonify({"error": "Search query is required"}), 400

        with store_lock:
            asyncio.run(store.search_news(query, page))
            body = {
                "query": store.search_query,
                "articles": [serialize(a) for a in store.search_results],
                "page": page,
                "error": store.error,
            }
        return jsonify(body), 200

    @app.route("/search", methods=["DELETE"])
    def clear_search():
        with store_lock:
            store.clear_search_results()
        return jsonify({"message": "Search results cleared"}), 200

    @app.route("/news/<news_id>", methods=["GET"])
    def news_detail(news_id):
        with store_lock:
            asyncio.run(store.fetch_news_detail(news_id))
            detail, error = store.news_detail, store.error
        if detail is None:
            return jsonify({"error": error or "News not found"}), 404
        return jsonify({"article": serialize(detail)}), 200

    @app.route("/favorites", methods=["GET"])
    def list_favorites():
        with store_lock:
            favorites = list(store.favorites)
        return jsonify({"favorites": [serialize(a) for a in favorites]}), 200

    @app.route("/favorites", methods=["POST", "OPTIONS"])
    def add_favorite():
        if request.method == "OPTIONS":
            return jsonify({"message": "CORS preflight"}), 200

        data = request.get_json(silent=True) or {}
        article_data = data.get("article", data) if isinstance(data, dict) else None
        if not isinstance(article_data, dict):
            return jsonify({"error": "Article must be a JSON object"}), 400
        if not article_data.get("id"):
            return jsonify({"error": "Article id is required"}), 400

        with store_lock:
            store.add_to_favorites(Article.from_dict(article_data))
            favorites = list(store.favorites)
        return jsonify({"favorites": [serialize(a) for a in favorites]}), 201

    @app.route("/favorites/<news_id>", methods=["DELETE"])
    def remove_favorite(news_id):
        with store_lock:
            store.remove_from_favorites(news_id)
            favorites = list(store.favorites)
        return jsonify({"favorites": [serialize(a) for a in favorites]}), 200

    @app.route("/history", methods=["GET"])
    def read_history():
        with store_lock:
            history = list(store.read_history)
        return jsonify({"history": [serialize(a) for a in history]}), 200

    @app.route("/history", methods=["DELETE"])
    def clear_history():
        with store_lock:
            store.clear_read_history()
        return jsonify({"message": "Read history cleared"}), 200

    @app.route("/refresh", methods=["POST", "OPTIONS"])
    def refresh_all():
        if request.method == "OPTIONS":
            return jsonify({"message": "CORS preflight"}), 200

        with store_lock:
            asyncio.run(store.refresh_all())
            snapshot = store.snapshot()
        return jsonify(snapshot), 200

    @app.route("/state", methods=["GET"])
    def state():
        with store_lock:
            snapshot = store.snapshot()
        return jsonify(snapshot), 200

    @app.route("/health", methods=["GET"])
    def health():
        storage_status = "connected"
        if isinstance(store.storage, RedisStorage) and not store.storage.ping():
            storage_status = "disconnected"

        last_error = store.service.last_error
        return jsonify({
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "cache_entries": len(store.service.cache),
            "storage": store.storage.describe(),
            "storage_status": storage_status,
            "last_fetch_error": f"{last_error.__class__.__name__}: {last_error}" if last_error else None,
        }), 200

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Endpoint not found"}), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({"error": "Internal server error"}), 500

    return app


if __name__ == '__main__':
    create_app().run(debug=True, host='0.0.0.0', port=5000)
