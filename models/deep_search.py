"""
Deep search data model.

Everything here is transient and lives for a single request, except the
payload of a CacheEntry which is persisted by the result cache. Wire shapes
(``to_dict``) use camelCase keys because they are what the chat frontend
consumes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

ProviderRole = Literal["primary", "fallback"]
TtlClass = Literal["search", "raw_search", "rag_context"]


def utc_timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"


@dataclass(frozen=True)
class DeepSearchQuery:
    text: str
    user_id: str
    history: list[dict[str, str]] = field(default_factory=list)


@dataclass(frozen=True)
class Decomposition:
    core_question: str
    search_queries: list[str]
    rationale: str = ""
    ai_generated: bool = False

    @classmethod
    def fallback(cls, query: str) -> "Decomposition":
        """Single sub-query equal to the original text."""
        return cls(core_question=query, search_queries=[query], rationale="", ai_generated=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "coreQuestion": self.core_question,
            "searchQueries": list(self.search_queries),
            "context": self.rationale,
            "aiGenerated": self.ai_generated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Decomposition":
        return cls(
            core_question=data.get("coreQuestion", ""),
            search_queries=list(data.get("searchQueries") or []),
            rationale=data.get("context", ""),
            ai_generated=bool(data.get("aiGenerated", False)),
        )


@dataclass(frozen=True)
class SearchHit:
    title: str
    snippet: str
    url: str
    sub_query: str
    provider: str
    provider_role: ProviderRole = "primary"

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "snippet": self.snippet,
            "url": self.url,
            "subQuery": self.sub_query,
            "provider": self.provider,
            "providerRole": self.provider_role,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchHit":
        return cls(
            title=data.get("title", ""),
            snippet=data.get("snippet", ""),
            url=data.get("url", ""),
            sub_query=data.get("subQuery", ""),
            provider=data.get("provider", "unknown"),
            provider_role=data.get("providerRole", "primary"),
        )


@dataclass(frozen=True)
class ProviderErrorInfo:
    code: str
    message: str
    provider: str
    rate_limited: bool = False

    def __post_init__(self):
        valid_codes = {"timeout", "rate_limit", "provider_error", "no_results"}
        if self.code not in valid_codes:
            object.__setattr__(self, "code", "provider_error")
        if self.code == "rate_limit":
            object.__setattr__(self, "rate_limited", True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "provider": self.provider,
            "rateLimited": self.rate_limited,
        }


@dataclass(frozen=True)
class SubQueryOutcome:
    """Result of searching one sub-query, primary and (maybe) fallback combined."""

    sub_query: str
    hits: list[SearchHit] = field(default_factory=list)
    succeeded: bool = False
    provider_used: str | None = None
    error: ProviderErrorInfo | None = None
    rate_limited: bool = False


@dataclass(frozen=True)
class SearchResultSet:
    """Unsynthesized results for one query, as served by the plain search endpoints."""

    query: str
    hits: list[SearchHit] = field(default_factory=list)
    cached: bool = False
    rate_limited: bool = False
    error: str | None = None
    timestamp: str = field(default_factory=utc_timestamp)

    @property
    def total(self) -> int:
        return len(self.hits)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "query": self.query,
            "results": [{"title": h.title, "url": h.url, "snippet": h.snippet} for h in self.hits],
            "total": self.total,
            "cached": self.cached,
            "timestamp": self.timestamp,
        }
        if self.error:
            data["error"] = self.error
        if self.rate_limited:
            data["rateLimited"] = True
        return data

    def to_cache_payload(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "hits": [hit.to_dict() for hit in self.hits],
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_cache_payload(cls, query: str, payload: dict[str, Any]) -> "SearchResultSet":
        return cls(
            query=query,
            hits=[SearchHit.from_dict(h) for h in payload.get("hits") or [] if isinstance(h, dict)],
            cached=True,
            timestamp=payload.get("timestamp") or utc_timestamp(),
        )


@dataclass(frozen=True)
class RagDocument:
    source: str
    content: str
    score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "content": self.content, "score": self.score}


@dataclass(frozen=True)
class RagContext:
    documents: list[RagDocument] = field(default_factory=list)
    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> dict[str, Any]:
        return {
            "documents": [doc.to_dict() for doc in self.documents],
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RagContext":
        documents = [
            RagDocument(
                source=str(doc.get("source", "")),
                content=str(doc.get("content", "")),
                score=float(doc.get("score") or 0.0),
            )
            for doc in data.get("documents") or []
        ]
        return cls(documents=documents, timestamp=data.get("timestamp") or utc_timestamp())


@dataclass(frozen=True)
class SynthesisResult:
    summary: str
    sources: list[str] = field(default_factory=list)
    confidence: float = 0.0
    ai_generated: bool = False

    def __post_init__(self):
        confidence = min(1.0, max(0.0, float(self.confidence)))
        if not self.ai_generated:
            confidence = 0.0
        object.__setattr__(self, "confidence", confidence)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "sources": list(self.sources),
            "confidence": self.confidence,
            "aiGenerated": self.ai_generated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SynthesisResult":
        return cls(
            summary=data.get("summary", ""),
            sources=list(data.get("sources") or []),
            confidence=data.get("confidence", 0.0),
            ai_generated=bool(data.get("aiGenerated", False)),
        )


@dataclass(frozen=True)
class CacheEntry:
    key: str
    user_id: str
    ttl_class: TtlClass
    created_at: float
    payload: dict[str, Any]

    def age_seconds(self, now: float) -> float:
        return max(0.0, now - self.created_at)


@dataclass(frozen=True)
class DeepSearchResponse:
    text: str
    metadata: dict[str, Any]
    timestamp: str = field(default_factory=utc_timestamp)
    role: str = "assistant"
    type: str = "deep_search"

    @classmethod
    def build(
        cls,
        query: str,
        decomposition: Decomposition,
        total_results: int,
        synthesis: SynthesisResult,
        rate_limited: bool = False,
    ) -> "DeepSearchResponse":
        return cls(
            text=synthesis.summary,
            metadata={
                "query": query,
                "decomposition": decomposition.to_dict(),
                "totalResults": total_results,
                "sources": list(synthesis.sources),
                "confidence": synthesis.confidence,
                "aiGenerated": synthesis.ai_generated,
                "rateLimited": rate_limited,
            },
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "type": self.type,
            "parts": [{"text": self.text}],
            "timestamp": self.timestamp,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeepSearchResponse":
        parts = data.get("parts") or [{}]
        return cls(
            text=parts[0].get("text", ""),
            metadata=dict(data.get("metadata") or {}),
            timestamp=data.get("timestamp") or utc_timestamp(),
            role=data.get("role", "assistant"),
            type=data.get("type", "deep_search"),
        )
