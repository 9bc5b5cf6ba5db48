"""Parse-or-fallback extraction of JSON objects from free-form LLM output."""

import json
import re
from dataclasses import dataclass, field
from typing import Any

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)


@dataclass(frozen=True)
class JsonParseResult:
    """
    Typed outcome of extracting a JSON object.

    Either ``ok`` is True and ``data`` holds the decoded object, or ``ok`` is
    False and ``reason`` says why the caller should take its fallback path.
    """

    ok: bool
    data: dict[str, Any] = field(default_factory=dict)
    reason: str = ""

    @classmethod
    def success(cls, data: dict[str, Any]) -> "JsonParseResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, reason: str) -> "JsonParseResult":
        return cls(ok=False, reason=reason)


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the text unchanged."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def find_first_object(text: str) -> str | None:
    """
    Brace-match the first top-level ``{...}`` in text.

    Braces inside JSON string literals are ignored.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : idx + 1]
    return None


def extract_json_object(text: str | None) -> JsonParseResult:
    """Extract and decode the first JSON object from model output."""
    if not text or not text.strip():
        return JsonParseResult.failure("empty_response")

    candidate = find_first_object(strip_code_fences(text))
    if candidate is None:
        return JsonParseResult.failure("no_json_object")

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        return JsonParseResult.failure(f"invalid_json: {e.msg}")

    if not isinstance(data, dict):
        return JsonParseResult.failure("not_an_object")
    return JsonParseResult.success(data)
