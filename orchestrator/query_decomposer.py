"""
QueryDecomposer - turns one user question into a few targeted web searches.

Decomposition never fails from the caller's point of view: when the model is
missing, slow, or returns something unusable, the original question becomes
the single sub-query.
"""

import asyncio
import functools

from api.base_client import BaseAIClient
from models.deep_search import Decomposition
from orchestrator.prompts import build_decomposition_prompt
from utils.json_extract import JsonParseResult, extract_json_object
from utils.logger import get_logger

logger = get_logger(__name__)

MAX_SUB_QUERIES_CEILING = 3


def validate_decomposition(parsed: JsonParseResult, query: str, max_queries: int) -> Decomposition | None:
    """Turn a parsed model reply into a Decomposition, or None if it is unusable."""
    if not parsed.ok:
        return None

    raw_queries = parsed.data.get("searchQueries")
    if not isinstance(raw_queries, list):
        return None

    seen: set[str] = set()
    queries: list[str] = []
    for item in raw_queries:
        if not isinstance(item, str):
            continue
        cleaned = " ".join(item.split())
        if not cleaned or cleaned.lower() in seen:
            continue
        seen.add(cleaned.lower())
        queries.append(cleaned)

    if not queries:
        return None

    core_question = parsed.data.get("coreQuestion")
    if not isinstance(core_question, str) or not core_question.strip():
        core_question = query
    rationale = parsed.data.get("context")
    if not isinstance(rationale, str):
        rationale = ""

    return Decomposition(
        core_question=core_question.strip(),
        search_queries=queries[:max_queries],
        rationale=rationale.strip(),
        ai_generated=True,
    )


class QueryDecomposer:
    """
    Asks the synthesis model for a JSON search plan and validates it.

    Example:
        decomposer = QueryDecomposer(client=gemini_client)
        plan = await decomposer.decompose("is the eiffel tower taller than big ben?")
        plan.search_queries  # ["eiffel tower height", "big ben height"]
    """

    def __init__(
        self,
        client: BaseAIClient | None,
        max_queries: int = MAX_SUB_QUERIES_CEILING,
        timeout_s: float = 20.0,
    ):
        self.client = client
        self.max_queries = max(1, min(max_queries, MAX_SUB_QUERIES_CEILING))
        self.timeout_s = timeout_s

    async def decompose(self, query: str, history: list[dict[str, str]] | None = None) -> Decomposition:
        query = query.strip()
        if self.client is None:
            logger.info("No synthesis client configured; using fallback decomposition")
            return Decomposition.fallback(query)

        prompt = build_decomposition_prompt(query, history, self.max_queries)
        loop = asyncio.get_running_loop()
        call_fn = functools.partial(self.client.get_completion, prompt, temperature=0.2)

        try:
            text, _usage = await asyncio.wait_for(
                loop.run_in_executor(None, call_fn), timeout=self.timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Decomposition timed out; using fallback",
                extra={"extra_fields": {"timeout_s": self.timeout_s}},
            )
            return Decomposition.fallback(query)
        except Exception as e:
            logger.warning(
                f"Decomposition call failed; using fallback: {e}",
                extra={"extra_fields": {"error_type": type(e).__name__}},
            )
            return Decomposition.fallback(query)

        decomposition = validate_decomposition(extract_json_object(text), query, self.max_queries)
        if decomposition is None:
            logger.warning("Decomposition reply failed validation; using fallback")
            return Decomposition.fallback(query)

        logger.info(
            "Query decomposed",
            extra={
                "extra_fields": {
                    "core_question": decomposition.core_question,
                    "sub_query_count": len(decomposition.search_queries),
                }
            },
        )
        return decomposition
