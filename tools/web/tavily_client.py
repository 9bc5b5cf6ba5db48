"""Tavily API client used as a keyed search provider.

Tavily returns clean extracted page content ranked by relevance, which makes
good synthesis evidence. Requires TAVILY_API_KEY.
"""

import os

from models.errors import RateLimitedError, SearchProviderError
from utils.logger import get_logger

from .contracts import SearchProvider, SearchResult, looks_rate_limited, trim_text

logger = get_logger(__name__)


class TavilySearchClient(SearchProvider):
    """
    Tavily-powered search provider.
    """

    name = "tavily"

    def __init__(self, api_key: str | None = None, search_depth: str = "basic"):
        """
        Initialize Tavily client.

        Args:
            api_key: Tavily API key (defaults to TAVILY_API_KEY env var)
            search_depth: "basic" (faster) or "advanced" (deeper)
        """
        self.api_key = api_key or os.getenv("TAVILY_API_KEY")
        self.search_depth = search_depth

        if not self.api_key:
            raise ValueError("TAVILY_API_KEY not found in environment")

        # Lazy import so installs without Tavily configured still start
        try:
            from tavily import TavilyClient
        except ModuleNotFoundError as e:
            raise ModuleNotFoundError(
                "Dependency 'tavily' is not installed. Install it with: pip install tavily-python"
            ) from e

        self.client = TavilyClient(api_key=self.api_key)
        logger.info("Tavily client initialized")

    def search(self, query: str, max_results: int = 5) -> list[SearchResult]:
        logger.info(f"Tavily search: '{query}' (max_results={max_results}, depth={self.search_depth})")

        try:
            response = self.client.search(
                query=query,
                max_results=max_results,
                search_depth=self.search_depth,
                include_raw_content=False,
                include_answer=False,  # We generate our own answer
            )
        except Exception as e:
            if looks_rate_limited(f"{type(e).__name__} {e}"):
                raise RateLimitedError(f"Tavily rate limit: {e}", provider=self.name) from e
            raise SearchProviderError(f"Tavily search failed: {e}", provider=self.name) from e

        results = []
        for item in response.get("results", []):
            url = (item.get("url") or "").strip()
            if not url:
                continue
            results.append(
                SearchResult(
                    title=(item.get("title") or "").strip() or url,
                    url=url,
                    snippet=trim_text(item.get("content")),
                )
            )
            logger.debug(f"{(item.get('title') or '')[:50]} (score: {float(item.get('score') or 0.0):.2f})")

        return results[:max_results]
