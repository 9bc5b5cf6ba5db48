"""Shared utilities for FastAPI routes."""

from collections.abc import Mapping

from fastapi import status
from fastapi.responses import JSONResponse

MAX_HISTORY_MESSAGES = 10
MAX_HISTORY_CHARS = 8000
SENSITIVE_HEADERS = {"x-api-key", "authorization"}


def trim_history(history: list[dict[str, str]]) -> list[dict[str, str]]:
    """Keep the last N turns and drop oldest turns beyond the character budget."""
    history = history[-MAX_HISTORY_MESSAGES:]
    while history and sum(len(item["content"]) for item in history) > MAX_HISTORY_CHARS:
        history = history[1:]
    return history


def error_response(status_code: int, message: str, error: str | None = None) -> JSONResponse:
    """Build the ``{message[, error]}`` error body used by every route."""
    body = {"message": message}
    if error is not None:
        body["error"] = error
    return JSONResponse(status_code=status_code, content=body)


def bad_request(message: str) -> JSONResponse:
    return error_response(status.HTTP_400_BAD_REQUEST, message)


def redact_sensitive_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """
    Redact auth-bearing headers before logging.
    """
    redacted: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS and value:
            redacted[key] = "[REDACTED]"
        else:
            redacted[key] = value
    return redacted
