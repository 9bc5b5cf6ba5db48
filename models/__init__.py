"""
Models package for deep search domain objects.
"""

from .deep_search import (
    CacheEntry,
    DeepSearchQuery,
    DeepSearchResponse,
    Decomposition,
    ProviderErrorInfo,
    RagContext,
    RagDocument,
    SearchHit,
    SearchResultSet,
    SubQueryOutcome,
    SynthesisResult,
)
from .errors import (
    DeepSearchError,
    InvalidRequestError,
    RateLimitedError,
    SearchProviderError,
    SynthesisServiceError,
)

__all__ = [
    "CacheEntry",
    "DeepSearchError",
    "DeepSearchQuery",
    "DeepSearchResponse",
    "Decomposition",
    "InvalidRequestError",
    "ProviderErrorInfo",
    "RagContext",
    "RagDocument",
    "RateLimitedError",
    "SearchHit",
    "SearchProviderError",
    "SearchResultSet",
    "SubQueryOutcome",
    "SynthesisResult",
    "SynthesisServiceError",
]
