"""Pydantic request models for FastAPI endpoints."""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class ConversationHistoryItem(BaseModel):
    role: str = Field(..., pattern="^(user|assistant|system|model)$")
    content: str = ""

    @classmethod
    def from_chat_turn(cls, turn: dict[str, Any]) -> "ConversationHistoryItem":
        """Accept the chat frontend's ``{role, parts: [{text}]}`` turns as well."""
        if "content" in turn:
            return cls(role=turn.get("role", "user"), content=str(turn.get("content") or ""))
        parts = turn.get("parts") or []
        text = " ".join(str(p.get("text") or "") for p in parts if isinstance(p, dict))
        return cls(role=turn.get("role", "user"), content=text)


class DeepSearchRequest(BaseModel):
    # Left loosely typed so a bad query maps to the 400 message, not a 422
    query: Any = None
    history: list[ConversationHistoryItem] = Field(default_factory=list)

    @field_validator("history", mode="before")
    @classmethod
    def normalize_history(cls, value):
        if value is None:
            return []
        if isinstance(value, list):
            return [
                ConversationHistoryItem.from_chat_turn(item) if isinstance(item, dict) else item
                for item in value
            ]
        return value

    def history_dicts(self) -> list[dict[str, str]]:
        return [{"role": item.role, "content": item.content} for item in self.history]


class ParallelSearchRequest(BaseModel):
    # Loosely typed for the same reason as DeepSearchRequest.query
    queries: Any = None
