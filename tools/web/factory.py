"""Factories that build the deep search pipeline from configuration."""

from api.base_client import BaseAIClient
from config.config import Config, ModelType, SearchProviderName
from orchestrator.coordinator import DeepSearchCoordinator
from orchestrator.query_decomposer import QueryDecomposer
from orchestrator.result_synthesizer import ResultSynthesizer
from orchestrator.search_orchestrator import SearchOrchestrator
from utils.logger import get_logger

from .cache import ResultCache
from .contracts import SearchProvider
from .duckduckgo_client import DuckDuckGoSearchClient
from .instant_answer_client import InstantAnswerSearchClient
from .rag_client import RagContextClient

logger = get_logger(__name__)


def create_synthesis_client(config: Config) -> BaseAIClient | None:
    """
    Build the language-model client, or None to run in fallback mode.

    A missing API key is not an error: decomposition and synthesis simply use
    their deterministic fallbacks.
    """
    api_key = config.synthesis_api_key()
    if not api_key:
        logger.warning(
            "No synthesis API key configured; AI decomposition and synthesis disabled",
            extra={"extra_fields": {"model_type": config.MODEL_TYPE}},
        )
        return None

    if config.MODEL_TYPE == ModelType.OPENAI.value:
        from api.openai_client import OpenAIClient

        return OpenAIClient(api_key=api_key, model_name=config.DEFAULT_MODEL)

    from api.google_gemini_client import GeminiClient

    return GeminiClient(api_key=api_key, model_name=config.DEFAULT_MODEL)


def create_search_provider(name: str, config: Config) -> SearchProvider | None:
    """Build a search provider by configured name. ``none`` yields None."""
    if name == SearchProviderName.NONE.value:
        return None
    if name == SearchProviderName.DUCKDUCKGO.value:
        return DuckDuckGoSearchClient(timeout_s=int(max(1, config.SEARCH_TIMEOUT_SECONDS)))
    if name == SearchProviderName.DUCKDUCKGO_INSTANT.value:
        return InstantAnswerSearchClient(timeout_s=config.SEARCH_TIMEOUT_SECONDS)
    if name == SearchProviderName.TAVILY.value:
        from .tavily_client import TavilySearchClient

        return TavilySearchClient(api_key=config.TAVILY_API_KEY)
    raise ValueError(f"Unknown search provider: {name}")


def create_result_cache(config: Config) -> ResultCache:
    return ResultCache(
        root_dir=config.CACHE_DIR,
        ttl_seconds={
            "search": config.SEARCH_CACHE_TTL_SECONDS,
            "raw_search": config.SEARCH_CACHE_TTL_SECONDS,
            "rag_context": config.RAG_CACHE_TTL_SECONDS,
        },
    )


def create_coordinator(config: Config | None = None) -> DeepSearchCoordinator:
    """
    Create the DeepSearchCoordinator from environment configuration.

    Raises:
        ValueError: If the configuration names unknown providers or models
    """
    config = config or Config()
    if not config.validate():
        raise ValueError("Invalid deep search configuration; see log output above")

    client = create_synthesis_client(config)
    primary = create_search_provider(config.SEARCH_PRIMARY_PROVIDER, config)
    fallback = create_search_provider(config.SEARCH_FALLBACK_PROVIDER, config)
    if fallback is not None and fallback.name == primary.name:
        fallback = None

    rag_client = None
    if config.RAG_SERVICE_URL:
        rag_client = RagContextClient(base_url=config.RAG_SERVICE_URL, top_k=config.RAG_TOP_K)

    logger.info(
        "Deep search pipeline configured",
        extra={
            "extra_fields": {
                "model": config.get_model_info() if client else "fallback",
                "primary_provider": primary.name,
                "fallback_provider": fallback.name if fallback else None,
                "rag_enabled": rag_client is not None,
            }
        },
    )

    return DeepSearchCoordinator(
        cache=create_result_cache(config),
        decomposer=QueryDecomposer(
            client, max_queries=config.MAX_SUB_QUERIES, timeout_s=config.LLM_TIMEOUT_SECONDS
        ),
        searcher=SearchOrchestrator(
            primary,
            fallback,
            max_concurrency=config.SEARCH_MAX_CONCURRENCY,
            timeout_s=config.SEARCH_TIMEOUT_SECONDS,
            max_results=config.SEARCH_MAX_RESULTS,
        ),
        synthesizer=ResultSynthesizer(client, timeout_s=config.LLM_TIMEOUT_SECONDS),
        rag_client=rag_client,
        request_timeout_s=config.REQUEST_TIMEOUT_SECONDS,
    )
