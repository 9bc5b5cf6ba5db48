from types import SimpleNamespace

import pytest

from api.google_gemini_client import GeminiClient
from api.openai_client import OpenAIClient
from models.errors import SynthesisServiceError

pytestmark = pytest.mark.unit


class RecordingCall:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.kwargs = None

    def __call__(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


def openai_client_with(call):
    client = OpenAIClient(api_key="sk-test")
    client.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=call)))
    return client


def gemini_client_with(call):
    client = GeminiClient(api_key="test-gemini-key")
    client.client = SimpleNamespace(models=SimpleNamespace(generate_content=call))
    return client


def test_openai_completion_and_usage():
    response = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content='{"summary": "ok"}'))],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )
    call = RecordingCall(response)

    text, usage = openai_client_with(call).get_completion("prompt", temperature=0.2)

    assert text == '{"summary": "ok"}'
    assert usage == {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}
    assert call.kwargs["temperature"] == 0.2
    assert call.kwargs["messages"] == [{"role": "user", "content": "prompt"}]


def test_openai_failure_is_synthesis_error():
    client = openai_client_with(RecordingCall(error=RuntimeError("boom")))

    with pytest.raises(SynthesisServiceError) as excinfo:
        client.get_completion("prompt")
    assert excinfo.value.provider == "openai"


def test_openai_empty_reply_is_synthesis_error():
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=""))], usage=None)

    with pytest.raises(SynthesisServiceError):
        openai_client_with(RecordingCall(response)).get_completion("prompt")


def test_gemini_completion_and_usage():
    response = SimpleNamespace(
        text="answer",
        usage_metadata=SimpleNamespace(prompt_token_count=7, candidates_token_count=3, total_token_count=10),
    )
    call = RecordingCall(response)

    text, usage = gemini_client_with(call).get_completion("prompt", temperature=0.3)

    assert text == "answer"
    assert usage["total_tokens"] == 10
    assert call.kwargs["config"]["temperature"] == 0.3
    assert call.kwargs["model"] == "gemini-2.5-flash"


@pytest.mark.parametrize(
    "call",
    [
        RecordingCall(error=RuntimeError("503 UNAVAILABLE")),
        RecordingCall(SimpleNamespace(text=None, usage_metadata=None)),
    ],
)
def test_gemini_failures_are_synthesis_errors(call):
    with pytest.raises(SynthesisServiceError) as excinfo:
        gemini_client_with(call).get_completion("prompt")
    assert excinfo.value.provider == "gemini"


def test_clients_require_api_key():
    with pytest.raises(ValueError):
        OpenAIClient(api_key="")
    with pytest.raises(ValueError):
        GeminiClient(api_key="")
