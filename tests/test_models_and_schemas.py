import json
import logging

import pytest

from models.deep_search import (
    Decomposition,
    DeepSearchResponse,
    ProviderErrorInfo,
    SearchHit,
    SearchResultSet,
    SynthesisResult,
)
from server.schemas.requests import DeepSearchRequest
from server.schemas.responses import DeepSearchResponseDTO
from server.utils import redact_sensitive_headers, trim_history
from utils.logger import JsonFormatter, log_context

pytestmark = pytest.mark.unit


def test_provider_error_codes_are_closed_set():
    assert ProviderErrorInfo(code="weird", message="?", provider="p").code == "provider_error"
    rate_limited = ProviderErrorInfo(code="rate_limit", message="429", provider="p")
    assert rate_limited.rate_limited is True
    assert rate_limited.to_dict()["rateLimited"] is True


def test_non_ai_synthesis_has_zero_confidence():
    assert SynthesisResult(summary="x", confidence=0.9, ai_generated=False).confidence == 0.0
    assert SynthesisResult(summary="x", confidence=-1, ai_generated=True).confidence == 0.0


def test_decomposition_wire_shape():
    data = Decomposition("Which is taller?", ["a", "b"], "compare heights", True).to_dict()

    assert data == {
        "coreQuestion": "Which is taller?",
        "searchQueries": ["a", "b"],
        "context": "compare heights",
        "aiGenerated": True,
    }
    assert Decomposition.from_dict(data).rationale == "compare heights"


def test_response_maps_to_dto():
    response = DeepSearchResponse.build(
        query="q",
        decomposition=Decomposition.fallback("q"),
        total_results=3,
        synthesis=SynthesisResult(summary="answer", sources=["https://a"], confidence=0.7, ai_generated=True),
        rate_limited=True,
    )

    dto = DeepSearchResponseDTO.from_deep_search_response(response)

    assert dto.parts[0].text == "answer"
    assert dto.metadata.totalResults == 3
    assert dto.metadata.rateLimited is True
    assert DeepSearchResponse.from_dict(response.to_dict()) == response


def test_search_result_set_wire_shape():
    hit = SearchHit(title="Paris", snippet="Capital of France", url="https://a", sub_query="paris", provider="ddg")
    fresh = SearchResultSet(query="paris", hits=[hit], rate_limited=True)

    data = fresh.to_dict()
    assert data["results"] == [{"title": "Paris", "url": "https://a", "snippet": "Capital of France"}]
    assert data["total"] == 1
    assert data["rateLimited"] is True
    assert "error" not in data

    restored = SearchResultSet.from_cache_payload("paris", fresh.to_cache_payload())
    assert restored.cached is True
    assert restored.hits == [hit]
    assert restored.timestamp == fresh.timestamp
    assert "rateLimited" not in restored.to_dict()


def test_request_accepts_content_and_parts_history():
    request = DeepSearchRequest(
        query="q",
        history=[
            {"role": "user", "content": "first"},
            {"role": "model", "parts": [{"text": "second"}, {"text": "half"}]},
        ],
    )

    assert request.history_dicts() == [
        {"role": "user", "content": "first"},
        {"role": "model", "content": "second half"},
    ]
    assert DeepSearchRequest(query="q", history=None).history == []


def test_trim_history_keeps_recent_turns_within_budget():
    history = [{"role": "user", "content": str(i)} for i in range(15)]
    assert [h["content"] for h in trim_history(history)] == [str(i) for i in range(5, 15)]

    big = [{"role": "user", "content": "x" * 5000}, {"role": "user", "content": "y" * 5000}]
    assert trim_history(big) == [big[1]]


def test_redact_sensitive_headers():
    redacted = redact_sensitive_headers({"X-API-Key": "secret", "Accept": "json"})
    assert redacted == {"X-API-Key": "[REDACTED]", "Accept": "json"}


def test_log_context_fields_reach_formatted_records():
    record = logging.LogRecord("deep_search", logging.INFO, __file__, 1, "hello", None, None)
    record.extra_fields = {"provider": "duckduckgo"}

    with log_context(request_id="r-1", user_id="alice"):
        payload = json.loads(JsonFormatter().format(record))

    assert payload["request_id"] == "r-1"
    assert payload["user_id"] == "alice"
    assert payload["provider"] == "duckduckgo"
    assert "request_id" not in json.loads(JsonFormatter().format(record))
