"""Data contracts shared by the web search providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

RATE_LIMIT_MARKERS = ("rate limit", "ratelimit", "too many requests", "429", "usage limit")
MAX_SNIPPET_CHARS = 320


@dataclass
class SearchResult:
    """Result from a search provider."""

    title: str
    url: str
    snippet: str = ""


def looks_rate_limited(message: str) -> bool:
    """Classify a provider error message as throttling."""
    lowered = (message or "").lower()
    return any(marker in lowered for marker in RATE_LIMIT_MARKERS)


def trim_text(text, limit: int = MAX_SNIPPET_CHARS) -> str:
    raw = str(text or "").strip()
    if len(raw) <= limit:
        return raw
    return raw[: limit - 3].rstrip() + "..."


class SearchProvider(ABC):
    """
    A blocking web search backend.

    ``search`` returns results in the provider's ranking order and raises
    RateLimitedError when throttled or SearchProviderError for anything else.
    Zero results is a valid (empty) answer, not an error.
    """

    name: str = "unknown"

    @abstractmethod
    def search(self, query: str, max_results: int = 5) -> list[SearchResult]:
        """Run one query against the provider."""
