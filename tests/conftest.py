import pytest

from fakes import FakeAIClient, FakeClock, FakeSearchProvider
from orchestrator.coordinator import DeepSearchCoordinator
from orchestrator.query_decomposer import QueryDecomposer
from orchestrator.result_synthesizer import ResultSynthesizer
from orchestrator.search_orchestrator import SearchOrchestrator
from tools.web.cache import ResultCache


@pytest.fixture
def mock_env(monkeypatch):
    """Fixture to mock environment variables for testing."""
    env_vars = {
        "MODEL_TYPE": "gemini",
        "GOOGLE_GEMINI_API_KEY": "test-api-key",
        "DEFAULT_GEMINI_MODEL": "gemini-2.5-flash",
        "API_KEYS": "test-key,other-key",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(tmp_path, clock):
    return ResultCache(tmp_path / "search-results", clock=clock)


@pytest.fixture
def make_coordinator(cache):
    """Build a coordinator around fakes; keyword arguments override the defaults."""

    def _make(client=None, primary=None, fallback=None, rag_client=None, request_timeout_s=45.0, **search_kwargs):
        primary = primary or FakeSearchProvider(name="primary")
        return DeepSearchCoordinator(
            cache=cache,
            decomposer=QueryDecomposer(client, timeout_s=2.0),
            searcher=SearchOrchestrator(primary, fallback, **search_kwargs),
            synthesizer=ResultSynthesizer(client, timeout_s=2.0),
            rag_client=rag_client,
            request_timeout_s=request_timeout_s,
        )

    return _make


@pytest.fixture
def scripted_client():
    def _make(*replies, **kwargs):
        return FakeAIClient(list(replies), **kwargs)

    return _make
