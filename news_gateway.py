# news_gateway.py
# Fetches headlines from newsdata.io and maps them to our article fields.

import logging
from datetime import datetime

import requests

import config

logger = logging.getLogger(__name__)

# newsdata.io sends "2024-01-15 10:30:00", older feeds send ISO 8601
_DATE_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%SZ")


def parse_pub_date(value):
    """Parse a provider timestamp, returning None for anything unreadable."""
    if not value or not isinstance(value, str):
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.debug("Unparseable pubDate: %r", value)
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None) - parsed.utcoffset()
    return parsed


def _text(value):
    return value if isinstance(value, str) and value else None


def normalize_article(item):
    """
    Map one provider result onto article fields.
    Returns None when the result has no usable title.
    """
    if not isinstance(item, dict):
        return None
    title = _text(item.get("title"))
    if not title:
        return None

    categories = item.get("category")
    category = None
    if isinstance(categories, list) and categories:
        category = _text(categories[0])

    return {
        "title": title,
        "description": _text(item.get("description")),
        "content": _text(item.get("content")),
        "url": _text(item.get("link")),
        "image_url": _text(item.get("image_url")),
        "category": category or "general",
        "source": _text(item.get("source_id")),
        "published_at": parse_pub_date(item.get("pubDate")),
    }


class NewsGateway:
    """
    Thin client for the newsdata.io `news` endpoint.

    Failures never propagate: a missing key, network error, bad status or
    malformed payload is logged and turned into an empty list, so the feed
    keeps rendering whatever the store already holds.
    """

    def __init__(
        self,
        api_key=None,
        base_url=None,
        country=None,
        language=None,
        page_size=None,
        timeout=None,
        session=None,
    ):
        self.api_key = config.NEWSDATA_API_KEY if api_key is None else api_key
        self.base_url = base_url or config.NEWSDATA_BASE_URL
        self.country = country or config.NEWS_COUNTRY
        self.language = language or config.NEWS_LANGUAGE
        self.page_size = page_size or config.NEWS_PAGE_SIZE
        self.timeout = timeout or config.NEWS_TIMEOUT
        self.session = session or requests.Session()

    def fetch_news(self, category=None):
        """Latest headlines, optionally narrowed to one provider category."""
        params = {"country": self.country, "language": self.language}
        if category and category != "all":
            params["category"] = category
        return self._get(params)

    def search_news(self, query):
        """Headlines matching a free-text query."""
        return self._get({"q": query, "language": self.language})

    def _get(self, params):
        if not self.api_key:
            logger.warning("NEWSDATA_API_KEY is not set, skipping news fetch")
            return []

        params = dict(params, apikey=self.api_key, size=self.page_size)
        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Error fetching news: %s", e)
            return []

        if not isinstance(payload, dict) or payload.get("status") != "success":
            message = payload.get("results") if isinstance(payload, dict) else payload
            logger.error("News API returned an error: %s", message)
            return []

        results = payload.get("results") or []
        articles = [a for a in (normalize_article(r) for r in results) if a]
        logger.info("Received %d articles from news API", len(articles))
        return articles
