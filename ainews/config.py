import os
from dotenv import load_dotenv

load_dotenv()

# Provider keys are optional; a missing key makes that provider fall back.
GNEWS_API_KEY = os.getenv("GNEWS_API_KEY")
NEWSDATA_API_KEY = os.getenv("NEWSDATA_API_KEY")

NEWS_LANGUAGE = os.getenv("NEWS_LANGUAGE", "en")
NEWS_COUNTRY = os.getenv("NEWS_COUNTRY", "us")
NEWS_MAX_RESULTS = int(os.getenv("NEWS_MAX_RESULTS", "10"))
NEWS_PAGE_SIZE = int(os.getenv("NEWS_PAGE_SIZE", "10"))

CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "600"))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10"))

REDIS_URL = os.getenv("REDIS_URL")
STORAGE_PATH = os.getenv("STORAGE_PATH", os.path.join(".ainews", "storage.json"))

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
