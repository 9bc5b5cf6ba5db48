import asyncio

import pytest

from fakes import FakeSearchProvider, default_results
from models.errors import RateLimitedError, SearchProviderError
from orchestrator.search_orchestrator import SearchOrchestrator, flatten_hits, unique_urls

pytestmark = pytest.mark.unit


def search_all(orchestrator, queries, deadline_in=None):
    async def _run():
        deadline = None
        if deadline_in is not None:
            deadline = asyncio.get_running_loop().time() + deadline_in
        return await orchestrator.search_all(queries, deadline=deadline)

    return asyncio.run(_run())


def test_outcomes_follow_issue_order():
    orchestrator = SearchOrchestrator(FakeSearchProvider(name="primary"))

    outcomes = search_all(orchestrator, ["first", "second", "third"])

    assert [o.sub_query for o in outcomes] == ["first", "second", "third"]
    assert all(o.succeeded for o in outcomes)
    hits = flatten_hits(outcomes)
    assert [h.sub_query for h in hits] == ["first", "first", "second", "second", "third", "third"]
    assert hits[0].provider == "primary"
    assert hits[0].provider_role == "primary"


def test_empty_plan_makes_no_calls():
    provider = FakeSearchProvider()

    assert search_all(SearchOrchestrator(provider), []) == []
    assert provider.calls == []


def test_concurrency_is_bounded():
    provider = FakeSearchProvider(delay_s=0.2)
    orchestrator = SearchOrchestrator(provider, max_concurrency=2)

    outcomes = search_all(orchestrator, [f"q{i}" for i in range(6)])

    assert len(outcomes) == 6
    assert len(provider.calls) == 6
    assert provider.max_in_flight == 2


def test_timed_out_calls_keep_their_slot_until_they_return():
    provider = FakeSearchProvider(delay_s=0.3)
    orchestrator = SearchOrchestrator(provider, max_concurrency=1, timeout_s=0.05)

    outcomes = search_all(orchestrator, ["a", "b", "c"])

    assert [o.error.code for o in outcomes] == ["timeout", "timeout", "timeout"]
    assert len(provider.calls) == 3
    assert provider.max_in_flight == 1


def test_failure_in_one_sub_query_does_not_affect_siblings():
    provider = FakeSearchProvider(
        per_query={
            "broken": SearchProviderError("HTTP 500", provider="primary"),
            "throttled": RateLimitedError("429 Too Many Requests", provider="primary"),
            "empty": [],
        },
        name="primary",
    )
    orchestrator = SearchOrchestrator(provider)

    ok, broken, throttled, empty = search_all(orchestrator, ["ok", "broken", "throttled", "empty"])

    assert ok.succeeded and len(ok.hits) == 2
    assert broken.error.code == "provider_error"
    assert throttled.error.code == "rate_limit"
    assert throttled.rate_limited is True
    assert empty.error.code == "no_results"
    assert not broken.hits and not throttled.hits and not empty.hits


def test_unexpected_exception_is_contained():
    provider = FakeSearchProvider(per_query={"boom": KeyError("missing")})

    outcomes = search_all(SearchOrchestrator(provider), ["boom", "fine"])

    assert outcomes[0].error.code == "provider_error"
    assert outcomes[1].succeeded


def test_slow_provider_times_out_per_call():
    provider = FakeSearchProvider(delay_s=0.5)
    orchestrator = SearchOrchestrator(provider, timeout_s=0.05)

    (outcome,) = search_all(orchestrator, ["slow"])

    assert outcome.succeeded is False
    assert outcome.error.code == "timeout"


def test_fallback_used_when_primary_rate_limited():
    primary = FakeSearchProvider(name="primary", error=RateLimitedError("202 Ratelimit", provider="primary"))
    fallback = FakeSearchProvider(name="fallback")
    orchestrator = SearchOrchestrator(primary, fallback)

    (outcome,) = search_all(orchestrator, ["eiffel tower height"])

    assert outcome.succeeded is True
    assert outcome.provider_used == "fallback"
    assert outcome.rate_limited is True
    assert {h.provider_role for h in outcome.hits} == {"fallback"}
    assert primary.calls == ["eiffel tower height"]
    assert fallback.calls == ["eiffel tower height"]


def test_fallback_used_when_primary_empty():
    primary = FakeSearchProvider(name="primary", results=[])
    fallback = FakeSearchProvider(name="fallback")

    (outcome,) = search_all(SearchOrchestrator(primary, fallback), ["q"])

    assert outcome.succeeded
    assert outcome.rate_limited is False


def test_fallback_not_called_when_primary_succeeds():
    fallback = FakeSearchProvider(name="fallback")

    search_all(SearchOrchestrator(FakeSearchProvider(name="primary"), fallback), ["q"])

    assert fallback.calls == []


def test_fallback_tried_once_and_primary_error_reported():
    primary = FakeSearchProvider(name="primary", error=SearchProviderError("down", provider="primary"))
    fallback = FakeSearchProvider(name="fallback", results=[])

    (outcome,) = search_all(SearchOrchestrator(primary, fallback), ["q"])

    assert outcome.succeeded is False
    assert outcome.error.code == "provider_error"
    assert outcome.error.provider == "primary"
    assert len(fallback.calls) == 1


def test_request_deadline_reports_unfinished_sub_queries_as_timeout():
    provider = FakeSearchProvider(delay_s=0.5)
    orchestrator = SearchOrchestrator(provider, timeout_s=5.0)

    (outcome,) = search_all(orchestrator, ["slow"], deadline_in=0.05)

    assert outcome.succeeded is False
    assert outcome.error.code == "timeout"
    assert outcome.hits == []


def test_unique_urls_keeps_first_appearance():
    outcomes = search_all(
        SearchOrchestrator(FakeSearchProvider(results=default_results("same"))), ["a", "b"]
    )

    assert unique_urls(flatten_hits(outcomes)) == [
        "https://example.com/same/1",
        "https://example.com/same/2",
    ]
