import asyncio
import threading

import pytest

from fakes import FakeAIClient, FakeRagClient, FakeSearchProvider, decomposition_reply, synthesis_reply
from models.errors import InvalidRequestError, RateLimitedError, SearchProviderError
from utils import logger as logger_module

pytestmark = pytest.mark.unit

QUERY = "Is the Eiffel Tower taller than Big Ben?"


def run(coordinator, query=QUERY, user_id="alice", history=None):
    return asyncio.run(coordinator.run(user_id, query, history))


@pytest.mark.parametrize("query", [None, "", "   ", 42, ["list"]])
def test_invalid_query_is_rejected_before_any_work(make_coordinator, cache, query):
    provider = FakeSearchProvider()
    coordinator = make_coordinator(primary=provider)

    with pytest.raises(InvalidRequestError):
        run(coordinator, query=query)

    assert provider.calls == []
    assert cache.stats()["entryCount"] == 0


def test_full_pipeline(make_coordinator):
    client = FakeAIClient(
        [
            decomposition_reply("eiffel tower height", "big ben height"),
            synthesis_reply("Yes, by a wide margin [1][3].", sources=["https://example.com/eiffel-tower-height/1"]),
        ]
    )
    provider = FakeSearchProvider(name="primary")

    response = run(make_coordinator(client=client, primary=provider))

    assert sorted(provider.calls) == ["big ben height", "eiffel tower height"]
    assert response.text == "Yes, by a wide margin [1][3]."
    assert response.role == "assistant"
    assert response.type == "deep_search"
    assert response.metadata["totalResults"] == 4
    assert response.metadata["aiGenerated"] is True
    assert response.metadata["confidence"] == 0.8
    assert response.metadata["sources"] == ["https://example.com/eiffel-tower-height/1"]
    assert response.metadata["decomposition"]["searchQueries"] == ["eiffel tower height", "big ben height"]
    assert response.metadata["rateLimited"] is False
    assert len(client.prompts) == 2


def test_second_identical_request_is_served_from_cache(make_coordinator):
    client = FakeAIClient([decomposition_reply("q1"), synthesis_reply()])
    provider = FakeSearchProvider()
    coordinator = make_coordinator(client=client, primary=provider)

    first = run(coordinator)
    second = run(coordinator, query="  is the eiffel tower TALLER than big ben?  ")

    assert second.to_dict() == first.to_dict()
    assert len(provider.calls) == 1
    assert len(client.prompts) == 2


def test_history_does_not_change_cache_key(make_coordinator):
    client = FakeAIClient([decomposition_reply("q1"), synthesis_reply()])
    provider = FakeSearchProvider()
    coordinator = make_coordinator(client=client, primary=provider)

    run(coordinator, history=[{"role": "user", "content": "earlier"}])
    run(coordinator, history=[{"role": "user", "content": "something else"}])

    assert len(provider.calls) == 1


def test_cache_is_per_user(make_coordinator):
    provider = FakeSearchProvider()
    coordinator = make_coordinator(primary=provider)

    run(coordinator, user_id="alice")
    run(coordinator, user_id="bob")

    assert len(provider.calls) == 2


def test_expired_cache_entry_is_recomputed(make_coordinator, clock):
    provider = FakeSearchProvider()
    coordinator = make_coordinator(primary=provider)

    run(coordinator)
    clock.advance(3600)
    run(coordinator)

    assert len(provider.calls) == 2


def test_zero_results_are_not_cached(make_coordinator, cache):
    provider = FakeSearchProvider(error=RateLimitedError("429", provider="primary"))
    client = FakeAIClient([decomposition_reply("q1")])
    coordinator = make_coordinator(client=client, primary=provider)

    response = run(coordinator)

    assert response.metadata["totalResults"] == 0
    assert response.metadata["aiGenerated"] is False
    assert response.metadata["confidence"] == 0.0
    assert response.metadata["rateLimited"] is True
    assert response.text.startswith("No results were found")
    assert cache.stats()["entryCount"] == 0
    # decomposition only; synthesis is skipped without evidence
    assert len(client.prompts) == 1


def test_synthesis_failure_still_answers_and_caches(make_coordinator, cache):
    client = FakeAIClient([decomposition_reply("q1")])
    coordinator = make_coordinator(client=client)

    response = run(coordinator)

    assert response.metadata["aiGenerated"] is False
    assert response.metadata["confidence"] == 0.0
    assert response.metadata["totalResults"] == 2
    assert "failed to synthesize" in response.text
    assert cache.stats()["entryCount"] == 1


def test_cached_payload_keeps_pipeline_artifacts(make_coordinator, cache):
    run(make_coordinator())

    entry = cache.get("alice", QUERY)

    assert set(entry.payload) == {"query", "decomposition", "hits", "synthesis", "response"}
    assert entry.payload["hits"][0]["subQuery"] == QUERY


def test_request_deadline_bounds_search(make_coordinator, cache):
    provider = FakeSearchProvider(delay_s=0.5)
    coordinator = make_coordinator(primary=provider, request_timeout_s=0.05, timeout_s=5.0)

    response = run(coordinator)

    assert response.metadata["totalResults"] == 0
    assert cache.stats()["entryCount"] == 0


def test_rag_context_is_fetched_once_and_cached(make_coordinator, cache):
    rag = FakeRagClient()
    client = FakeAIClient([synthesis_reply(), synthesis_reply()])
    coordinator = make_coordinator(client=client, rag_client=rag)
    coordinator.decomposer.client = None

    run(coordinator)
    cache.delete("alice", QUERY)
    run(coordinator)

    assert rag.calls == [("alice", QUERY)]
    assert "Uploaded note about the topic" in client.prompts[1]
    assert cache.stats("alice")["byTtlClass"]["rag_context"] == 1


def test_cache_io_runs_off_the_event_loop_thread(make_coordinator, cache, monkeypatch):
    seen = []

    def recording(method):
        def _wrapped(*args, **kwargs):
            context = logger_module._log_context.get() or {}
            seen.append((method.__name__, threading.get_ident(), context.get("request_id")))
            return method(*args, **kwargs)

        return _wrapped

    monkeypatch.setattr(cache, "get", recording(cache.get))
    monkeypatch.setattr(cache, "put", recording(cache.put))

    run(make_coordinator())

    assert [name for name, _, _ in seen] == ["get", "put"]
    assert all(thread_id != threading.get_ident() for _, thread_id, _ in seen)
    assert all(request_id for _, _, request_id in seen)


def test_health_reports_collaborators(make_coordinator):
    health = make_coordinator(client=FakeAIClient(), fallback=FakeSearchProvider(name="fallback")).health()

    assert health["search"]["primary"] == "primary"
    assert health["search"]["fallback"] == "fallback"
    assert health["synthesis"]["status"] == "enabled"
    assert health["synthesis"]["provider"] == "fake"
    assert health["cache"] == {"status": "operational", "type": "file"}
    assert health["rag"]["status"] == "disabled"


def test_health_without_model_is_fallback_mode(make_coordinator):
    assert make_coordinator().health()["synthesis"]["status"] == "fallback_mode"


def search(coordinator, query, user_id="alice"):
    return asyncio.run(coordinator.search(user_id, query))


def search_many(coordinator, queries, user_id="alice"):
    return asyncio.run(coordinator.search_many(user_id, queries))


def test_plain_search_is_cached_apart_from_deep_search(make_coordinator, cache):
    provider = FakeSearchProvider()
    coordinator = make_coordinator(primary=provider)

    first = search(coordinator, "  Eiffel   Tower ")
    second = search(coordinator, "eiffel tower")

    assert first.cached is False and second.cached is True
    assert first.total == second.total == 2
    assert second.timestamp == first.timestamp
    assert [h.url for h in second.hits] == [h.url for h in first.hits]
    assert len(provider.calls) == 1
    assert cache.stats("alice")["byTtlClass"] == {"search": 0, "raw_search": 1, "rag_context": 0}

    run(coordinator, query="eiffel tower")
    assert len(provider.calls) == 2


def test_plain_search_without_results_is_not_cached(make_coordinator):
    provider = FakeSearchProvider(results=[])
    coordinator = make_coordinator(primary=provider)

    result = search(coordinator, "nothing here")
    search(coordinator, "nothing here")

    assert result.total == 0
    assert result.error is None
    assert len(provider.calls) == 2


def test_search_many_isolates_failures_and_keeps_order(make_coordinator):
    provider = FakeSearchProvider(
        per_query={
            "broken": SearchProviderError("HTTP 500", provider="primary"),
            "throttled": RateLimitedError("429 Too Many Requests", provider="primary"),
        }
    )
    coordinator = make_coordinator(primary=provider)
    search(coordinator, "cached")

    results = search_many(coordinator, ["ok", "broken", "cached", "throttled"])

    assert [r.query for r in results] == ["ok", "broken", "cached", "throttled"]
    assert results[0].total == 2 and results[0].error is None
    assert results[1].total == 0 and results[1].error == "HTTP 500"
    assert results[2].cached is True
    assert results[3].rate_limited is True
    assert provider.calls.count("cached") == 1


@pytest.mark.parametrize("queries", [None, [], "eiffel tower", ["ok", "   "], ["ok", 7], [f"q{i}" for i in range(6)]])
def test_search_many_rejects_invalid_batches(make_coordinator, queries):
    provider = FakeSearchProvider()

    with pytest.raises(InvalidRequestError):
        search_many(make_coordinator(primary=provider), queries)

    assert provider.calls == []
