"""
SearchOrchestrator - bounded concurrent fan-out of sub-queries to search providers.

Each sub-query is searched independently: a timeout, rate limit or error in
one never cancels its siblings. When the primary provider raises or comes
back empty, the fallback provider is tried once for that sub-query.
"""

import asyncio
import functools

from models.deep_search import ProviderErrorInfo, SearchHit, SubQueryOutcome
from models.errors import RateLimitedError, SearchProviderError
from tools.web.contracts import SearchProvider, SearchResult
from utils.logger import get_logger

logger = get_logger(__name__)


def flatten_hits(outcomes: list[SubQueryOutcome]) -> list[SearchHit]:
    """Concatenate hits group by group, keeping issue order and provider order."""
    return [hit for outcome in outcomes for hit in outcome.hits]


def unique_urls(hits: list[SearchHit]) -> list[str]:
    """Deduplicated URLs in order of first appearance."""
    seen: set[str] = set()
    urls: list[str] = []
    for hit in hits:
        if hit.url and hit.url not in seen:
            seen.add(hit.url)
            urls.append(hit.url)
    return urls


class SearchOrchestrator:
    """
    Fans sub-queries out to a primary (and optional fallback) search provider.

    Example usage:
        orchestrator = SearchOrchestrator(DuckDuckGoSearchClient(), InstantAnswerSearchClient())
        outcomes = await orchestrator.search_all(["eiffel tower height", "big ben height"])
        for outcome in outcomes:
            print(outcome.sub_query, len(outcome.hits), outcome.succeeded)
    """

    def __init__(
        self,
        primary: SearchProvider,
        fallback: SearchProvider | None = None,
        max_concurrency: int = 3,
        timeout_s: float = 8.0,
        max_results: int = 5,
    ):
        """
        Args:
            primary: Provider tried first for every sub-query
            fallback: Provider tried once when the primary fails or finds nothing
            max_concurrency: Maximum simultaneous outbound provider calls
            timeout_s: Per-call timeout in seconds
            max_results: Results requested per provider call
        """
        self.primary = primary
        self.fallback = fallback
        self.max_concurrency = max(1, max_concurrency)
        self.timeout_s = timeout_s
        self.max_results = max_results

    async def _call_provider(
        self, provider: SearchProvider, sub_query: str, semaphore: asyncio.Semaphore
    ) -> list[SearchResult]:
        """
        Run one blocking provider call under the concurrency bound and timeout.

        Executor threads cannot be cancelled, so the slot is held until the
        provider call itself returns, not until this coroutine gives up on it.
        """
        loop = asyncio.get_running_loop()
        call_fn = functools.partial(provider.search, sub_query, self.max_results)
        await semaphore.acquire()
        try:
            future = loop.run_in_executor(None, call_fn)
        except Exception:
            semaphore.release()
            raise
        future.add_done_callback(functools.partial(_release_slot, semaphore))
        return await asyncio.wait_for(asyncio.shield(future), timeout=self.timeout_s)

    async def _attempt(
        self, provider: SearchProvider, sub_query: str, role: str, semaphore: asyncio.Semaphore
    ) -> tuple[list[SearchHit], ProviderErrorInfo | None]:
        try:
            results = await self._call_provider(provider, sub_query, semaphore)
        except asyncio.TimeoutError:
            logger.warning(
                f"Search timed out on {provider.name}",
                extra={"extra_fields": {"provider": provider.name, "sub_query": sub_query, "timeout_s": self.timeout_s}},
            )
            return [], ProviderErrorInfo(
                code="timeout", message=f"Timed out after {self.timeout_s}s", provider=provider.name
            )
        except RateLimitedError as e:
            logger.warning(
                f"Search rate limited on {provider.name}",
                extra={"extra_fields": {"provider": provider.name, "sub_query": sub_query}},
            )
            return [], ProviderErrorInfo(code="rate_limit", message=str(e), provider=provider.name)
        except SearchProviderError as e:
            logger.warning(
                f"Search failed on {provider.name}: {e}",
                extra={"extra_fields": {"provider": provider.name, "sub_query": sub_query}},
            )
            return [], ProviderErrorInfo(code="provider_error", message=str(e), provider=provider.name)
        except Exception as e:
            logger.error(
                f"Unexpected search error on {provider.name}: {e}",
                extra={
                    "extra_fields": {
                        "provider": provider.name,
                        "sub_query": sub_query,
                        "error_type": type(e).__name__,
                    }
                },
            )
            return [], ProviderErrorInfo(code="provider_error", message=str(e), provider=provider.name)

        hits = [
            SearchHit(
                title=r.title or r.url,
                snippet=r.snippet,
                url=r.url,
                sub_query=sub_query,
                provider=provider.name,
                provider_role=role,
            )
            for r in results
            if r.url
        ]
        if not hits:
            return [], ProviderErrorInfo(code="no_results", message="No results", provider=provider.name)
        return hits, None

    async def search_one(self, sub_query: str, semaphore: asyncio.Semaphore | None = None) -> SubQueryOutcome:
        """Search a single sub-query, falling back once if needed. Never raises."""
        semaphore = semaphore or asyncio.Semaphore(self.max_concurrency)
        hits, error = await self._attempt(self.primary, sub_query, "primary", semaphore)
        if hits:
            return SubQueryOutcome(sub_query=sub_query, hits=hits, succeeded=True, provider_used=self.primary.name)

        rate_limited = error is not None and error.rate_limited
        if self.fallback is not None:
            logger.info(
                f"Falling back to {self.fallback.name}",
                extra={"extra_fields": {"sub_query": sub_query, "primary_error": error.code if error else None}},
            )
            fallback_hits, fallback_error = await self._attempt(self.fallback, sub_query, "fallback", semaphore)
            if fallback_hits:
                return SubQueryOutcome(
                    sub_query=sub_query,
                    hits=fallback_hits,
                    succeeded=True,
                    provider_used=self.fallback.name,
                    error=error,
                    rate_limited=rate_limited,
                )
            rate_limited = rate_limited or (fallback_error is not None and fallback_error.rate_limited)
            # Report the primary's failure unless only the fallback says why
            if error is None or (error.code == "no_results" and fallback_error is not None):
                error = fallback_error

        return SubQueryOutcome(
            sub_query=sub_query,
            hits=[],
            succeeded=False,
            provider_used=None,
            error=error,
            rate_limited=rate_limited,
        )

    async def search_all(self, sub_queries: list[str], deadline: float | None = None) -> list[SubQueryOutcome]:
        """
        Search every sub-query concurrently and wait for all of them to settle.

        Args:
            sub_queries: Queries in issue order
            deadline: Optional absolute loop time; tasks unfinished by then are
                reported as timed out and left to finish in the background

        Returns:
            One SubQueryOutcome per sub-query, in issue order
        """
        if not sub_queries:
            return []

        # One bound per request; shared by primary and fallback calls
        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [asyncio.ensure_future(self.search_one(q, semaphore)) for q in sub_queries]
        timeout = None
        if deadline is not None:
            timeout = max(0.0, deadline - asyncio.get_running_loop().time())

        done, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning(
                "Search deadline reached with sub-queries still in flight",
                extra={"extra_fields": {"pending": len(pending), "completed": len(done)}},
            )

        outcomes = []
        for sub_query, task in zip(sub_queries, tasks):
            if task in done:
                outcomes.append(task.result())
            else:
                task.add_done_callback(_discard_result)
                outcomes.append(
                    SubQueryOutcome(
                        sub_query=sub_query,
                        succeeded=False,
                        error=ProviderErrorInfo(
                            code="timeout", message="Request deadline reached", provider=self.primary.name
                        ),
                    )
                )

        succeeded = sum(1 for o in outcomes if o.succeeded)
        logger.info(
            f"Search fan-out complete: {succeeded}/{len(outcomes)} sub-queries succeeded",
            extra={
                "extra_fields": {
                    "sub_query_count": len(outcomes),
                    "succeeded": succeeded,
                    "total_hits": sum(len(o.hits) for o in outcomes),
                    "rate_limited": any(o.rate_limited for o in outcomes),
                }
            },
        )
        return outcomes


def _discard_result(task: asyncio.Task) -> None:
    """Retrieve the late result so asyncio does not warn about it."""
    if not task.cancelled():
        task.exception()


def _release_slot(semaphore: asyncio.Semaphore, future: asyncio.Future) -> None:
    """Free a concurrency slot once the provider call has really finished."""
    semaphore.release()
    if not future.cancelled():
        future.exception()
