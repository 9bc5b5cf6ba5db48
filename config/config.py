import os
from dotenv import load_dotenv
from pathlib import Path
from enum import Enum


class ModelType(Enum):
    """Supported synthesis model types."""
    OPENAI = "openai"
    GEMINI = "gemini"


class SearchProviderName(Enum):
    """Search providers the orchestrator knows how to build."""
    DUCKDUCKGO = "duckduckgo"
    DUCKDUCKGO_INSTANT = "duckduckgo_instant"
    TAVILY = "tavily"
    NONE = "none"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


class Config:
    """Configuration management for the deep search service."""

    def __init__(self):
        """Initialize configuration with environment variables."""
        env_path = Path(__file__).parent.parent / '.env'
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # API Configuration
        self.OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
        self.GOOGLE_GEMINI_API_KEY = os.getenv('GOOGLE_GEMINI_API_KEY')
        self.TAVILY_API_KEY = os.getenv('TAVILY_API_KEY')
        self.API_KEYS = os.getenv('API_KEYS', '')

        # Synthesis model
        self.MODEL_TYPE = os.getenv('MODEL_TYPE', ModelType.GEMINI.value).lower()
        self.DEFAULT_OPENAI_MODEL = os.getenv('DEFAULT_OPENAI_MODEL', 'gpt-4o-mini')
        self.DEFAULT_GEMINI_MODEL = os.getenv('DEFAULT_GEMINI_MODEL', 'gemini-2.5-flash')
        if self.MODEL_TYPE == ModelType.OPENAI.value:
            self.DEFAULT_MODEL = self.DEFAULT_OPENAI_MODEL
        else:
            self.DEFAULT_MODEL = self.DEFAULT_GEMINI_MODEL
        self.LLM_TIMEOUT_SECONDS = _env_float('LLM_TIMEOUT_SECONDS', 20.0)

        # Search fan-out
        self.SEARCH_PRIMARY_PROVIDER = os.getenv(
            'SEARCH_PRIMARY_PROVIDER', SearchProviderName.DUCKDUCKGO.value
        ).lower()
        self.SEARCH_FALLBACK_PROVIDER = os.getenv(
            'SEARCH_FALLBACK_PROVIDER', SearchProviderName.DUCKDUCKGO_INSTANT.value
        ).lower()
        self.SEARCH_MAX_RESULTS = _env_int('SEARCH_MAX_RESULTS', 5)
        self.SEARCH_TIMEOUT_SECONDS = _env_float('SEARCH_TIMEOUT_SECONDS', 8.0)
        self.SEARCH_MAX_CONCURRENCY = _env_int('SEARCH_MAX_CONCURRENCY', 3)
        self.MAX_SUB_QUERIES = _env_int('MAX_SUB_QUERIES', 3)
        self.REQUEST_TIMEOUT_SECONDS = _env_float('REQUEST_TIMEOUT_SECONDS', 45.0)

        # Result cache
        self.CACHE_DIR = os.getenv('CACHE_DIR', str(Path('data') / 'search-results'))
        self.SEARCH_CACHE_TTL_SECONDS = _env_int('SEARCH_CACHE_TTL_SECONDS', 3600)
        self.RAG_CACHE_TTL_SECONDS = _env_int('RAG_CACHE_TTL_SECONDS', 86400)
        self.CACHE_SWEEP_INTERVAL_SECONDS = _env_int('CACHE_SWEEP_INTERVAL_SECONDS', 0)

        # RAG context (optional)
        self.RAG_SERVICE_URL = os.getenv('RAG_SERVICE_URL', '').rstrip('/')
        self.RAG_TOP_K = _env_int('RAG_TOP_K', 4)

    def synthesis_api_key(self) -> str | None:
        """Return the API key of the selected synthesis model, if any."""
        if self.MODEL_TYPE == ModelType.OPENAI.value:
            return self.OPENAI_API_KEY
        if self.MODEL_TYPE == ModelType.GEMINI.value:
            return self.GOOGLE_GEMINI_API_KEY
        return None

    def validate(self) -> bool:
        """
        Validate the configuration.

        A missing model key is not fatal: the pipeline runs in fallback mode
        without AI decomposition or synthesis. Unknown names are.

        Returns:
            bool: True if configuration is valid, False otherwise
        """
        known_models = {e.value for e in ModelType}
        if self.MODEL_TYPE not in known_models:
            print(f"Error: Unknown MODEL_TYPE '{self.MODEL_TYPE}'. Must be one of: {', '.join(sorted(known_models))}")
            return False

        known_providers = {e.value for e in SearchProviderName}
        if self.SEARCH_PRIMARY_PROVIDER not in known_providers - {SearchProviderName.NONE.value}:
            print(f"Error: Unknown SEARCH_PRIMARY_PROVIDER '{self.SEARCH_PRIMARY_PROVIDER}'")
            return False
        if self.SEARCH_FALLBACK_PROVIDER not in known_providers:
            print(f"Error: Unknown SEARCH_FALLBACK_PROVIDER '{self.SEARCH_FALLBACK_PROVIDER}'")
            return False

        tavily = SearchProviderName.TAVILY.value
        if tavily in (self.SEARCH_PRIMARY_PROVIDER, self.SEARCH_FALLBACK_PROVIDER) and not self.TAVILY_API_KEY:
            print("Error: TAVILY_API_KEY is not set but Tavily is configured as a search provider.")
            return False

        if self.SEARCH_MAX_CONCURRENCY < 1 or self.MAX_SUB_QUERIES < 1:
            print("Error: SEARCH_MAX_CONCURRENCY and MAX_SUB_QUERIES must be at least 1.")
            return False

        return True

    def get_model_info(self) -> str:
        """
        Get information about the currently selected synthesis model.

        Returns:
            str: Formatted string with model information
        """
        if self.MODEL_TYPE == ModelType.OPENAI.value:
            return f"OpenAI ({self.DEFAULT_MODEL})"
        elif self.MODEL_TYPE == ModelType.GEMINI.value:
            return f"Google Gemini ({self.DEFAULT_MODEL})"
        return "Unknown"
