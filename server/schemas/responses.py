"""Pydantic response models (DTOs) for FastAPI endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class MessagePartDTO(BaseModel):
    text: str


class DecompositionDTO(BaseModel):
    coreQuestion: str
    searchQueries: list[str]
    aiGenerated: bool
    context: str = ""


class DeepSearchMetadataDTO(BaseModel):
    query: str
    decomposition: DecompositionDTO
    totalResults: int
    sources: list[str] = Field(default_factory=list)
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    aiGenerated: bool = False
    rateLimited: bool = False


class DeepSearchResponseDTO(BaseModel):
    role: str = "assistant"
    type: str = "deep_search"
    parts: list[MessagePartDTO]
    timestamp: str
    metadata: DeepSearchMetadataDTO

    @classmethod
    def from_deep_search_response(cls, response):
        """Convert DeepSearchResponse to DTO."""
        return cls.model_validate(response.to_dict())


class ErrorResponseDTO(BaseModel):
    message: str
    error: str | None = None


class CacheStatsDTO(BaseModel):
    type: str
    directory: str
    userId: str | None = None
    entryCount: int
    expiredCount: int
    oldestAgeSeconds: float | None = None
    newestAgeSeconds: float | None = None
    totalBytes: int
    byTtlClass: dict[str, int]
    ttlSeconds: dict[str, int]


class CacheClearResponseDTO(BaseModel):
    message: str
    removed: int
    timestamp: str


class HealthResponseDTO(BaseModel):
    status: str
    timestamp: str
    version: str = "1.0.0"
    services: dict[str, Any] = Field(default_factory=dict)


class SearchResultItemDTO(BaseModel):
    title: str
    url: str
    snippet: str = ""


class SearchResponseDTO(BaseModel):
    query: str
    results: list[SearchResultItemDTO] = Field(default_factory=list)
    total: int
    cached: bool = False
    timestamp: str
    rateLimited: bool = False
    error: str | None = None

    @classmethod
    def from_result_set(cls, result_set):
        """Convert SearchResultSet to DTO."""
        return cls.model_validate(result_set.to_dict())


class ParallelSearchResponseDTO(BaseModel):
    queries: list[str]
    results: list[SearchResponseDTO]
    timestamp: str
