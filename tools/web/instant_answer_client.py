"""DuckDuckGo Instant Answer API, used as a lightweight fallback search."""

import re

import httpx

from models.errors import RateLimitedError, SearchProviderError
from utils.logger import get_logger

from .contracts import SearchProvider, SearchResult, trim_text

logger = get_logger(__name__)

INSTANT_ANSWER_URL = "https://api.duckduckgo.com/"
_ANCHOR_RE = re.compile(r"<a[^>]*>(.*?)</a>", re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")


def _title_from_topic(topic: dict) -> str:
    match = _ANCHOR_RE.search(topic.get("Result") or "")
    if match:
        return _TAG_RE.sub("", match.group(1)).strip()
    text = topic.get("Text") or ""
    return text.split(" - ", 1)[0].strip()


def _flatten_topics(topics: list) -> list[dict]:
    """RelatedTopics mixes single results and named groups of results."""
    flat = []
    for topic in topics or []:
        if topic.get("FirstURL"):
            flat.append(topic)
        elif topic.get("Topics"):
            flat.extend(t for t in topic["Topics"] if t.get("FirstURL"))
    return flat


class InstantAnswerSearchClient(SearchProvider):
    """
    Search via the DuckDuckGo Instant Answer JSON API.

    Returns the abstract (when there is one) followed by related topics.
    Coverage is narrower than full web search but the endpoint is rarely
    throttled.
    """

    name = "duckduckgo_instant"

    def __init__(self, timeout_s: float = 8.0, app_name: str = "deep-search"):
        self.timeout_s = timeout_s
        self.app_name = app_name

    def search(self, query: str, max_results: int = 5) -> list[SearchResult]:
        params = {"q": query, "format": "json", "no_html": "0", "t": self.app_name}
        logger.info(f"Instant answer search: '{query}'")

        try:
            with httpx.Client(timeout=self.timeout_s) as client:
                response = client.get(INSTANT_ANSWER_URL, params=params)
                if response.status_code == 429:
                    raise RateLimitedError("Instant answer API returned 429", provider=self.name)
                response.raise_for_status()
                payload = response.json() if response.content else {}
        except SearchProviderError:
            raise
        except (httpx.HTTPError, ValueError) as e:
            raise SearchProviderError(f"Instant answer request failed: {e}", provider=self.name) from e

        results: list[SearchResult] = []
        abstract_url = (payload.get("AbstractURL") or "").strip()
        if payload.get("AbstractText") and abstract_url:
            results.append(
                SearchResult(
                    title=(payload.get("Heading") or "").strip() or abstract_url,
                    url=abstract_url,
                    snippet=trim_text(payload["AbstractText"]),
                )
            )

        for topic in _flatten_topics(payload.get("RelatedTopics")):
            url = topic["FirstURL"].strip()
            results.append(
                SearchResult(
                    title=_title_from_topic(topic) or url,
                    url=url,
                    snippet=trim_text(topic.get("Text")),
                )
            )

        return results[:max_results]
