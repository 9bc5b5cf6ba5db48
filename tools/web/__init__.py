"""Web search providers and the per-user result cache.

The pipeline factory lives in ``tools.web.factory`` and is imported directly,
since it depends on the orchestrator package which itself imports from here.
"""

from .cache import ResultCache, make_cache_key, normalize_query
from .contracts import SearchProvider, SearchResult

__all__ = ["ResultCache", "SearchProvider", "SearchResult", "make_cache_key", "normalize_query"]
