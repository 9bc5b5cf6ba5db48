import asyncio

import pytest

from fakes import FakeAIClient, synthesis_reply
from models.deep_search import Decomposition, RagContext, RagDocument, SearchHit
from models.errors import SynthesisServiceError
from orchestrator.result_synthesizer import DEFAULT_CONFIDENCE, ResultSynthesizer

pytestmark = pytest.mark.unit

QUERY = "Is the Eiffel Tower taller than Big Ben?"


def make_hits(count=2):
    return [
        SearchHit(
            title=f"Result {i}",
            snippet=f"Snippet {i}",
            url=f"https://example.com/{i}",
            sub_query="eiffel tower height",
            provider="primary",
        )
        for i in range(1, count + 1)
    ]


def synthesize(synthesizer, hits, rag_context=None):
    return asyncio.run(synthesizer.synthesize(QUERY, hits, Decomposition.fallback(QUERY), rag_context))


def test_no_hits_never_calls_model():
    client = FakeAIClient([synthesis_reply()])

    result = synthesize(ResultSynthesizer(client), [])

    assert client.prompts == []
    assert result.ai_generated is False
    assert result.confidence == 0.0
    assert result.sources == []
    assert result.summary.startswith(f'No results were found for "{QUERY}"')


def test_valid_reply():
    client = FakeAIClient(
        [synthesis_reply("The Eiffel Tower is taller [1].", sources=["https://example.com/1"], confidence=0.85)]
    )

    result = synthesize(ResultSynthesizer(client), make_hits())

    assert result.ai_generated is True
    assert result.summary == "The Eiffel Tower is taller [1]."
    assert result.sources == ["https://example.com/1"]
    assert result.confidence == 0.85
    assert "https://example.com/2" in client.prompts[0]


def test_missing_confidence_defaults():
    client = FakeAIClient([synthesis_reply(confidence=None)])

    result = synthesize(ResultSynthesizer(client), make_hits())

    assert result.confidence == DEFAULT_CONFIDENCE


def test_out_of_range_confidence_is_clamped():
    client = FakeAIClient([synthesis_reply(confidence=7)])

    assert synthesize(ResultSynthesizer(client), make_hits()).confidence == 1.0


def test_invented_sources_are_dropped():
    client = FakeAIClient([synthesis_reply(sources=["https://made-up.example/x", "https://example.com/2"])])

    result = synthesize(ResultSynthesizer(client), make_hits())

    assert result.sources == ["https://example.com/2"]


def test_no_valid_citations_lists_all_hit_urls():
    client = FakeAIClient([synthesis_reply(sources=["https://made-up.example/x"])])

    result = synthesize(ResultSynthesizer(client), make_hits())

    assert result.sources == ["https://example.com/1", "https://example.com/2"]


@pytest.mark.parametrize(
    "reply",
    [
        SynthesisServiceError("503 Service Unavailable", provider="fake"),
        "Plain prose without any JSON",
        '{"sources": ["https://example.com/1"]}',
    ],
)
def test_model_failure_uses_mechanical_summary(reply):
    result = synthesize(ResultSynthesizer(FakeAIClient([reply])), make_hits())

    assert result.ai_generated is False
    assert result.confidence == 0.0
    assert result.summary.startswith(f'I found relevant information for "{QUERY}"')
    assert "1. Result 1 - https://example.com/1" in result.summary
    assert result.sources == ["https://example.com/1", "https://example.com/2"]


def test_slow_model_uses_mechanical_summary():
    client = FakeAIClient([synthesis_reply()], delay_s=0.3)

    result = synthesize(ResultSynthesizer(client, timeout_s=0.05), make_hits())

    assert result.ai_generated is False


def test_fallback_lists_at_most_five_hits():
    result = ResultSynthesizer.fallback(QUERY, make_hits(8))

    assert "5. Result 5" in result.summary
    assert "6. Result 6" not in result.summary
    assert len(result.sources) == 8


def test_rag_context_is_included_in_prompt():
    client = FakeAIClient([synthesis_reply()])
    rag = RagContext(documents=[RagDocument(source="notes.pdf", content="Uploaded tower notes", score=0.7)])

    synthesize(ResultSynthesizer(client), make_hits(), rag)

    assert "Uploaded tower notes" in client.prompts[0]
