"""
DeepSearchCoordinator - the deep search request pipeline.

    CacheCheck -> hit:  Respond
               -> miss: Decompose -> Search -> Synthesize -> CacheWrite -> Respond

Each request is independent. The coordinator holds its collaborators but no
per-request state, so a single instance serves concurrent requests.
"""

import asyncio
import contextvars
import functools
import uuid

from models.deep_search import (
    DeepSearchQuery,
    DeepSearchResponse,
    Decomposition,
    RagContext,
    SearchHit,
    SearchResultSet,
    SynthesisResult,
)
from models.errors import InvalidRequestError
from orchestrator.query_decomposer import QueryDecomposer
from orchestrator.result_synthesizer import ResultSynthesizer
from orchestrator.search_orchestrator import SearchOrchestrator, flatten_hits
from tools.web.cache import ResultCache
from tools.web.rag_client import RagContextClient
from utils.logger import get_logger, log_context

logger = get_logger(__name__)

MAX_PARALLEL_QUERIES = 5


def validate_query(query) -> str:
    """Return the trimmed query or raise InvalidRequestError."""
    if not isinstance(query, str):
        raise InvalidRequestError("Query is required and must be a string")
    trimmed = query.strip()
    if not trimmed:
        raise InvalidRequestError("Query is required and must be a non-empty string")
    return trimmed


def validate_queries(queries) -> list[str]:
    """Return the trimmed queries of a parallel search or raise InvalidRequestError."""
    if not isinstance(queries, list) or not queries:
        raise InvalidRequestError("Queries array is required")
    if len(queries) > MAX_PARALLEL_QUERIES:
        raise InvalidRequestError(f"Maximum {MAX_PARALLEL_QUERIES} queries allowed per request")
    return [validate_query(q) for q in queries]


class DeepSearchCoordinator:
    """
    Orchestrates cache lookup, decomposition, search fan-out, synthesis and
    cache write for one deep search request.

    All collaborators are injected so tests can substitute fakes.
    """

    def __init__(
        self,
        cache: ResultCache,
        decomposer: QueryDecomposer,
        searcher: SearchOrchestrator,
        synthesizer: ResultSynthesizer,
        rag_client: RagContextClient | None = None,
        request_timeout_s: float = 45.0,
    ):
        self.cache = cache
        self.decomposer = decomposer
        self.searcher = searcher
        self.synthesizer = synthesizer
        self.rag_client = rag_client
        self.request_timeout_s = request_timeout_s

    async def run(self, user_id: str, query, history: list[dict[str, str]] | None = None) -> DeepSearchResponse:
        """
        Answer one deep search request.

        Raises:
            InvalidRequestError: if the query is missing, not a string or blank.
                Nothing (cache included) is touched in that case.
        """
        request = DeepSearchQuery(text=validate_query(query), user_id=user_id, history=list(history or []))
        with log_context(request_id=str(uuid.uuid4()), user_id=user_id):
            return await self._run(request)

    async def _in_executor(self, fn, *args, **kwargs):
        """Run blocking cache I/O off the event loop, keeping the request's log context."""
        context = contextvars.copy_context()
        call_fn = functools.partial(context.run, fn, *args, **kwargs)
        return await asyncio.get_running_loop().run_in_executor(None, call_fn)

    async def _run(self, request: DeepSearchQuery) -> DeepSearchResponse:
        cached = await self._in_executor(self.cache.get, request.user_id, request.text)
        if cached is not None and isinstance(cached.payload.get("response"), dict):
            logger.info(
                "Deep search cache hit",
                extra={"extra_fields": {"cache_age_s": round(cached.age_seconds(self.cache.now()), 3)}},
            )
            return DeepSearchResponse.from_dict(cached.payload["response"])

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.request_timeout_s
        logger.info(
            f"Deep search started: '{request.text[:80]}'",
            extra={"extra_fields": {"history_turns": len(request.history)}},
        )

        decomposition = await self.decomposer.decompose(request.text, request.history)

        outcomes = await self.searcher.search_all(decomposition.search_queries, deadline=deadline)
        hits = flatten_hits(outcomes)
        rate_limited = any(o.rate_limited for o in outcomes)

        synthesis = await self._synthesize(request, hits, decomposition, deadline)

        response = DeepSearchResponse.build(
            query=request.text,
            decomposition=decomposition,
            total_results=len(hits),
            synthesis=synthesis,
            rate_limited=rate_limited,
        )

        if hits:
            await self._write_cache(request, decomposition, hits, synthesis, response)

        logger.info(
            "Deep search completed",
            extra={
                "extra_fields": {
                    "total_results": len(hits),
                    "ai_generated": synthesis.ai_generated,
                    "rate_limited": rate_limited,
                    "elapsed_s": round(self.request_timeout_s - (deadline - loop.time()), 3),
                }
            },
        )
        return response

    async def search(self, user_id: str, query) -> SearchResultSet:
        """
        Plain cached web search for one query: no decomposition, no synthesis.

        Raises:
            InvalidRequestError: if the query is missing, not a string or blank.
        """
        text = validate_query(query)
        with log_context(request_id=str(uuid.uuid4()), user_id=user_id):
            (result,) = await self._search_raw(user_id, [text])
        return result

    async def search_many(self, user_id: str, queries) -> list[SearchResultSet]:
        """
        Plain cached web search for up to five queries at once.

        Queries share the concurrency bound and the request deadline; a failing
        query is reported in its own result and never affects the others.

        Raises:
            InvalidRequestError: if queries is not a non-empty list of at most
                five non-empty strings.
        """
        texts = validate_queries(queries)
        with log_context(request_id=str(uuid.uuid4()), user_id=user_id):
            return await self._search_raw(user_id, texts)

    async def _search_raw(self, user_id: str, texts: list[str]) -> list[SearchResultSet]:
        results: dict[int, SearchResultSet] = {}
        misses: list[int] = []
        for index, text in enumerate(texts):
            cached = await self._in_executor(self.cache.get, user_id, text, ttl_class="raw_search")
            if cached is not None:
                results[index] = SearchResultSet.from_cache_payload(text, cached.payload)
            else:
                misses.append(index)

        if misses:
            deadline = asyncio.get_running_loop().time() + self.request_timeout_s
            outcomes = await self.searcher.search_all([texts[i] for i in misses], deadline=deadline)
            for index, outcome in zip(misses, outcomes):
                error = None
                if not outcome.succeeded and outcome.error is not None and outcome.error.code != "no_results":
                    error = outcome.error.message
                result = SearchResultSet(
                    query=texts[index],
                    hits=list(outcome.hits),
                    rate_limited=outcome.rate_limited,
                    error=error,
                )
                if result.hits:
                    await self._in_executor(
                        self.cache.put, user_id, result.query, result.to_cache_payload(), ttl_class="raw_search"
                    )
                results[index] = result

        logger.info(
            "Plain search completed",
            extra={
                "extra_fields": {
                    "query_count": len(texts),
                    "cache_hits": len(texts) - len(misses),
                    "total_results": sum(r.total for r in results.values()),
                }
            },
        )
        return [results[i] for i in range(len(texts))]

    async def _synthesize(
        self,
        request: DeepSearchQuery,
        hits: list[SearchHit],
        decomposition: Decomposition,
        deadline: float,
    ) -> SynthesisResult:
        if not hits:
            return self.synthesizer.no_results(request.text)

        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            logger.warning("Request budget exhausted before synthesis; using mechanical summary")
            return self.synthesizer.fallback(request.text, hits)

        rag_context = await self._get_rag_context(request)
        try:
            return await asyncio.wait_for(
                self.synthesizer.synthesize(request.text, hits, decomposition, rag_context),
                timeout=max(0.0, deadline - asyncio.get_running_loop().time()),
            )
        except asyncio.TimeoutError:
            logger.warning("Request budget exhausted during synthesis; using mechanical summary")
            return self.synthesizer.fallback(request.text, hits)

    async def _get_rag_context(self, request: DeepSearchQuery) -> RagContext | None:
        if self.rag_client is None:
            return None

        cached = await self._in_executor(
            self.cache.get, request.user_id, request.text, ttl_class="rag_context"
        )
        if cached is not None:
            return RagContext.from_dict(cached.payload)

        context = await self.rag_client.get_context(request.user_id, request.text)
        if context.documents:
            await self._in_executor(
                self.cache.put, request.user_id, request.text, context.to_dict(), ttl_class="rag_context"
            )
        return context

    async def _write_cache(
        self,
        request: DeepSearchQuery,
        decomposition: Decomposition,
        hits: list[SearchHit],
        synthesis: SynthesisResult,
        response: DeepSearchResponse,
    ) -> None:
        payload = {
            "query": request.text,
            "decomposition": decomposition.to_dict(),
            "hits": [hit.to_dict() for hit in hits],
            "synthesis": synthesis.to_dict(),
            "response": response.to_dict(),
        }
        if await self._in_executor(self.cache.put, request.user_id, request.text, payload) is None:
            logger.warning("Deep search result was not cached", extra={"extra_fields": {"user_id": request.user_id}})

    def health(self) -> dict:
        """Configuration-level reachability of each collaborator."""
        synthesis_client = self.synthesizer.client
        return {
            "search": {
                "status": "operational",
                "primary": self.searcher.primary.name,
                "fallback": self.searcher.fallback.name if self.searcher.fallback else None,
                "maxConcurrency": self.searcher.max_concurrency,
            },
            "synthesis": {
                "status": "enabled" if synthesis_client and synthesis_client.is_enabled() else "fallback_mode",
                "provider": getattr(synthesis_client, "provider_name", None),
                "model": getattr(synthesis_client, "model_name", None),
            },
            "cache": {
                "status": "operational" if self.cache.is_available() else "unavailable",
                "type": "file",
            },
            "rag": {"status": "enabled" if self.rag_client else "disabled"},
        }
