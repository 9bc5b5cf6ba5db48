"""
ResultSynthesizer - reduces merged search hits into one cited answer.

The model is called once per request, never per sub-query, and never when
there is no evidence. Any model failure yields a mechanical summary built
from the hit titles and URLs.
"""

import asyncio
import functools

from api.base_client import BaseAIClient
from models.deep_search import Decomposition, RagContext, SearchHit, SynthesisResult
from orchestrator.prompts import build_synthesis_prompt
from orchestrator.search_orchestrator import unique_urls
from utils.json_extract import extract_json_object
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIDENCE = 0.5
FALLBACK_LISTED_HITS = 5


def _parse_confidence(value) -> float:
    if isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if confidence != confidence:  # NaN
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, confidence))


def _select_sources(cited, hits: list[SearchHit]) -> list[str]:
    """Keep cited URLs that are real hits, first-appearance order; else all hit URLs."""
    hit_urls = unique_urls(hits)
    known = set(hit_urls)
    selected: list[str] = []
    if isinstance(cited, list):
        for url in cited:
            if isinstance(url, str) and url.strip() in known and url.strip() not in selected:
                selected.append(url.strip())
    return selected or hit_urls


class ResultSynthesizer:
    """
    Builds the final answer for a deep search request.

    Example:
        synthesizer = ResultSynthesizer(client=gemini_client)
        result = await synthesizer.synthesize(query, hits, decomposition)
        print(result.summary, result.sources, result.confidence)
    """

    def __init__(self, client: BaseAIClient | None, timeout_s: float = 20.0):
        self.client = client
        self.timeout_s = timeout_s

    @staticmethod
    def no_results(query: str) -> SynthesisResult:
        """Deterministic answer when no search evidence was gathered."""
        return SynthesisResult(
            summary=(
                f'No results were found for "{query}". I couldn\'t find sufficient search results, '
                "which might be due to rate limiting or the query being too specific. "
                "Please try rephrasing your question or try again later."
            ),
            sources=[],
            confidence=0.0,
            ai_generated=False,
        )

    @staticmethod
    def fallback(query: str, hits: list[SearchHit]) -> SynthesisResult:
        """Mechanical summary used whenever the model cannot synthesize."""
        if not hits:
            return ResultSynthesizer.no_results(query)

        lines = [
            f'I found relevant information for "{query}" but failed to synthesize it into a single answer. '
            "Here are the most relevant results:",
            "",
        ]
        listed: set[str] = set()
        for hit in hits:
            if hit.url in listed:
                continue
            listed.add(hit.url)
            lines.append(f"{len(listed)}. {hit.title} - {hit.url}")
            if len(listed) >= FALLBACK_LISTED_HITS:
                break

        return SynthesisResult(
            summary="\n".join(lines),
            sources=unique_urls(hits),
            confidence=0.0,
            ai_generated=False,
        )

    async def synthesize(
        self,
        query: str,
        hits: list[SearchHit],
        decomposition: Decomposition,
        rag_context: RagContext | None = None,
    ) -> SynthesisResult:
        """Synthesize one answer from all hits. Never raises."""
        if not hits:
            logger.info("No hits to synthesize; returning no-results summary")
            return self.no_results(query)

        if self.client is None:
            logger.info("No synthesis client configured; using mechanical summary")
            return self.fallback(query, hits)

        prompt = build_synthesis_prompt(query, hits, decomposition, rag_context)
        loop = asyncio.get_running_loop()
        call_fn = functools.partial(self.client.get_completion, prompt, temperature=0.3)

        try:
            text, usage = await asyncio.wait_for(
                loop.run_in_executor(None, call_fn), timeout=self.timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Synthesis timed out; using mechanical summary",
                extra={"extra_fields": {"timeout_s": self.timeout_s, "hit_count": len(hits)}},
            )
            return self.fallback(query, hits)
        except Exception as e:
            logger.warning(
                f"Synthesis call failed; using mechanical summary: {e}",
                extra={"extra_fields": {"error_type": type(e).__name__, "hit_count": len(hits)}},
            )
            return self.fallback(query, hits)

        parsed = extract_json_object(text)
        summary = parsed.data.get("summary") if parsed.ok else None
        if not isinstance(summary, str) or not summary.strip():
            logger.warning(
                "Synthesis reply was malformed; using mechanical summary",
                extra={"extra_fields": {"reason": parsed.reason or "missing_summary"}},
            )
            return self.fallback(query, hits)

        result = SynthesisResult(
            summary=summary.strip(),
            sources=_select_sources(parsed.data.get("sources"), hits),
            confidence=_parse_confidence(parsed.data.get("confidence")),
            ai_generated=True,
        )
        logger.info(
            "Synthesis complete",
            extra={
                "extra_fields": {
                    "source_count": len(result.sources),
                    "confidence": result.confidence,
                    "total_tokens": (usage or {}).get("total_tokens"),
                }
            },
        )
        return result
