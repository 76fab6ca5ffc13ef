# ai_gateway.py
# Summaries, fake-news checks and chat on top of a chat-completion model.

import json
import logging
import re
import time

import openai

import config

logger = logging.getLogger(__name__)

# Output token budgets per feature
SUMMARY_MAX_TOKENS = 300
CHAT_MAX_TOKENS = 500
FACT_CHECK_MAX_TOKENS = 800

TRUSTED_SOURCES = ["thanthi", "polimer", "suntv", "bbc", "reuters", "ap news"]

SUMMARY_PROMPT = "Summarize the following text concisely and clearly, highlighting key points:\n\n{text}"
FACT_CHECK_SYSTEM = "You are a fact-checker chatbot."
FACT_CHECK_PROMPT = (
    "Analyze the text for potential misinformation or fake news. "
    'Respond with JSON: {{"isReal": boolean, "confidence": number, "reasoning": string}}'
    "\n\nText: {text}"
)
CHAT_SYSTEM = "You are a helpful news assistant chatbot. Answer concisely."

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class EmptyCompletion(Exception):
    """The model answered without any text."""


def is_rate_limited(exc):
    if isinstance(exc, openai.RateLimitError):
        return True
    return getattr(exc, "status_code", None) == 429


def call_with_retry(action, is_retryable, attempts, fallback, backoff=2.0, sleep=time.sleep):
    """
    Run `action` up to `attempts` times.

    A retryable error waits `backoff * n` seconds (n = attempt number) and
    tries again; any other error stops at once. When no attempt succeeds
    the result of `fallback()` is returned instead.
    """
    for attempt in range(1, attempts + 1):
        try:
            return action()
        except Exception as e:
            if not is_retryable(e):
                logger.error("Model call failed: %s", e)
                break
            if attempt == attempts:
                logger.error("Model still rate limited after %d attempts", attempts)
                break
            logger.warning("Rate limit hit, retry #%d", attempt)
            sleep(backoff * attempt)
    return fallback()


def extract_content(message):
    """Pull plain text out of a completion message (string or list of parts)."""
    if message is None:
        return ""
    content = getattr(message, "content", None)
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part.strip())
            elif isinstance(part, dict) and part.get("text"):
                parts.append(part["text"].strip())
            elif getattr(part, "text", None):
                parts.append(part.text.strip())
        return " ".join(parts).strip()
    return ""


def parse_verdict(raw):
    """
    Read the fact-check JSON reply. Returns None when it is not a JSON object.
    """
    try:
        data = json.loads(_CODE_FENCE.sub("", raw.strip()))
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None

    try:
        confidence = float(data.get("confidence", 0.5))
    except (TypeError, ValueError):
        confidence = 0.5
    is_real = data.get("isReal", False)
    return {
        "isReal": is_real if isinstance(is_real, bool) else False,
        "confidence": max(0.0, min(1.0, confidence)),
        "reasoning": data.get("reasoning") or "Unable to analyze content",
    }


def fallback_summary(text):
    return f"Demo summary: {text[:150]}... (API temporarily unavailable)"


def fallback_verdict(text):
    return {
        "isReal": False,
        "confidence": 0.5,
        "reasoning": f"Demo analysis: AI unavailable. Text snippet: {text[:100]}...",
    }


def fallback_chat(message):
    return (
        f"Hello! I'm your FlashPress News assistant in demo mode. You asked: \"{message}\". "
        "API temporarily unavailable. Tip: check multiple news sources before trusting news."
    )


class AIGateway:
    """
    Adapts an OpenAI-compatible chat endpoint to the three AI features.

    Without an API key the gateway runs in demo mode: no client is built
    and every feature answers with its canned fallback.
    """

    def __init__(
        self,
        api_key=None,
        base_url=None,
        model=None,
        max_retries=None,
        backoff=None,
        client=None,
        sleep=time.sleep,
    ):
        self.api_key = config.AI_API_KEY if api_key is None else api_key
        self.model = model or config.AI_MODEL
        self.max_retries = config.AI_MAX_RETRIES if max_retries is None else max_retries
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")
        self.backoff = config.AI_RETRY_BACKOFF if backoff is None else backoff
        self._sleep = sleep
        self.client = client
        if self.client is None and self.api_key:
            self.client = openai.OpenAI(
                api_key=self.api_key,
                base_url=base_url or config.AI_BASE_URL,
                default_headers={"X-Title": "FlashPress News"},
                max_retries=0,
            )
        if self.demo_mode:
            logger.info("No model API key configured, AI features run in demo mode")

    @property
    def demo_mode(self):
        return self.client is None

    def _complete(self, messages, max_tokens):
        """Return the model's reply, or None in demo mode or on failure."""
        if self.demo_mode:
            return None

        def request():
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
            )
            choices = getattr(resp, "choices", None) or []
            text = extract_content(choices[0].message) if choices else ""
            if not text:
                raise EmptyCompletion("model returned no content")
            return text

        return call_with_retry(
            request,
            is_rate_limited,
            self.max_retries,
            fallback=lambda: None,
            backoff=self.backoff,
            sleep=self._sleep,
        )

    def summarize(self, text):
        result = self._complete(
            [{"role": "user", "content": SUMMARY_PROMPT.format(text=text)}],
            SUMMARY_MAX_TOKENS,
        )
        return result or fallback_summary(text)

    def detect_fake_news(self, text):
        lowered = text.lower()
        for source in TRUSTED_SOURCES:
            if source in lowered:
                return {
                    "isReal": True,
                    "confidence": 0.95,
                    "reasoning": f"Content appears to be from a trusted source: {source}",
                }

        raw = self._complete(
            [
                {"role": "system", "content": FACT_CHECK_SYSTEM},
                {"role": "user", "content": FACT_CHECK_PROMPT.format(text=text)},
            ],
            FACT_CHECK_MAX_TOKENS,
        )
        verdict = parse_verdict(raw) if raw else None
        if verdict is None:
            return fallback_verdict(text)
        return verdict

    def chat(self, message, context=None):
        prompt = message
        if context:
            prompt = f"Context: {context}\nUser question: {message}"
        result = self._complete(
            [
                {"role": "system", "content": CHAT_SYSTEM},
                {"role": "user", "content": prompt},
            ],
            CHAT_MAX_TOKENS,
        )
        return result or fallback_chat(message)
