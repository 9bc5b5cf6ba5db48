"""DuckDuckGo text search through the ddgs package."""

from ddgs import DDGS
from ddgs.exceptions import RatelimitException

from models.errors import RateLimitedError, SearchProviderError
from utils.logger import get_logger

from .contracts import SearchProvider, SearchResult, looks_rate_limited, trim_text

logger = get_logger(__name__)


class DuckDuckGoSearchClient(SearchProvider):
    """
    DuckDuckGo web search (ddgs).

    No API key required. DuckDuckGo throttles aggressively, which surfaces
    as RateLimitedError so the orchestrator can report it.
    """

    name = "duckduckgo"

    def __init__(self, region: str = "us-en", safesearch: str = "moderate", timeout_s: int = 8):
        self.region = region
        self.safesearch = safesearch
        self.timeout_s = timeout_s

    def search(self, query: str, max_results: int = 5) -> list[SearchResult]:
        logger.info(f"DuckDuckGo search: '{query}' (max_results={max_results})")

        try:
            with DDGS(timeout=self.timeout_s) as ddgs:
                raw_results = list(
                    ddgs.text(
                        query,
                        region=self.region,
                        safesearch=self.safesearch,
                        max_results=max_results,
                    )
                    or []
                )
        except RatelimitException as e:
            raise RateLimitedError(f"DuckDuckGo rate limit: {e}", provider=self.name) from e
        except Exception as e:
            if looks_rate_limited(str(e)):
                raise RateLimitedError(f"DuckDuckGo rate limit: {e}", provider=self.name) from e
            raise SearchProviderError(f"DuckDuckGo search failed: {e}", provider=self.name) from e

        results = []
        for item in raw_results:
            url = (item.get("href") or item.get("link") or item.get("url") or "").strip()
            if not url:
                continue
            results.append(
                SearchResult(
                    title=(item.get("title") or "").strip() or url,
                    url=url,
                    snippet=trim_text(item.get("body") or item.get("snippet")),
                )
            )

        logger.debug(f"DuckDuckGo returned {len(results)} results for '{query}'")
        return results[:max_results]
