# config.py
# Runtime settings, read from the environment (and a local .env file).

import logging
import os
import secrets

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _int(name, default):
    return int(os.getenv(name, default))


def _float(name, default):
    return float(os.getenv(name, default))


# ----------------------------------------------------------
# Auth
# ----------------------------------------------------------
SECRET_KEY = os.getenv("SESSION_SECRET", "")
if not SECRET_KEY:
    # Tokens will not survive a restart
    logger.warning("SESSION_SECRET is not set, using a random per-process key")
    SECRET_KEY = secrets.token_urlsafe(32)

ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_DAYS = _int("ACCESS_TOKEN_EXPIRE_DAYS", 7)

# ----------------------------------------------------------
# News provider (newsdata.io)
# ----------------------------------------------------------
NEWSDATA_API_KEY = os.getenv("NEWSDATA_API_KEY", "")
NEWSDATA_BASE_URL = os.getenv("NEWSDATA_BASE_URL", "https://newsdata.io/api/1/news")
NEWS_COUNTRY = os.getenv("NEWS_COUNTRY", "in")
NEWS_LANGUAGE = os.getenv("NEWS_LANGUAGE", "en")
NEWS_PAGE_SIZE = _int("NEWS_PAGE_SIZE", 10)
NEWS_TIMEOUT = _float("NEWS_TIMEOUT", 15)

# ----------------------------------------------------------
# Language model provider (any OpenAI-compatible endpoint)
# ----------------------------------------------------------
AI_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
AI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://openrouter.ai/api/v1")
AI_MODEL = os.getenv("AI_MODEL", "mistralai/mistral-7b-instruct:free")
AI_MAX_RETRIES = _int("AI_MAX_RETRIES", 3)
AI_RETRY_BACKOFF = _float("AI_RETRY_BACKOFF", 2.0)

# ----------------------------------------------------------
# Server
# ----------------------------------------------------------
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
