"""Schemas for title search, semantic search, trending topics and embedding admin."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from intranet.core.sanitize import clean_single_line
from intranet.services.embeddings import DEFAULT_MIN_SIMILARITY


class SearchResult(BaseModel):
    type: str
    id: str
    title: str
    link: str
    display_label: str | None = None
    is_legacy: bool = False
    version_number: int | None = None
    owner_id: str | None = None


class SemanticSearchRequest(BaseModel):
    query: str = Field(min_length=1, max_length=2000)
    limit: int = Field(default=5, ge=1, le=50)
    min_similarity: float = Field(default=DEFAULT_MIN_SIMILARITY, ge=0.0, le=1.0)

    @field_validator("query", mode="before")
    @classmethod
    def normalize_query(cls, value: str) -> str:
        return clean_single_line(value)


class SimilarDocumentOut(BaseModel):
    id: str
    title: str
    content: str
    book_id: str | None = None
    status: str
    similarity: float


class TrendingTopicOut(BaseModel):
    topic: str
    count: int


class QueueStatusOut(BaseModel):
    queue_length: int
    processing: bool


class ReindexResultOut(BaseModel):
    processed: int
    errors: int


class IndexingStatsOut(BaseModel):
    pages_total: int
    pages_indexed: int
    tickets_total: int
    tickets_indexed: int
