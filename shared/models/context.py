"""Pydantic models for retrievable user context.

Hierarchy:
  ChunkMetadata: origin information stored alongside each chunk.
  ContextChunk: one retrievable unit of user-owned text plus its embedding.
  ScoredChunk: a ContextChunk returned by a search, with its score.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class ContextSource(str, Enum):
    MANUAL = "manual"
    DOCUMENT = "document"
    FORM = "form"


class ChunkMetadata(BaseModel):
    """Origin of a chunk.

    Chunks of one source document share document_id and are numbered
    contiguously from 0 to total_chunks - 1.
    """

    document_id: str | None = None
    file_name: str | None = None
    chunk_index: int = 0
    total_chunks: int = 1
    content_length: int | None = None

    # set for chunks created from form submissions
    field_name: str | None = None
    field_type: str | None = None


class ContextChunk(BaseModel):
    """One retrievable unit of user-owned text.

    The owner_id field is mandatory and enforced on every write and search.
    """

    id: str
    owner_id: str
    key: str
    text: str
    tags: list[str] = []
    embedding: list[float] = []
    source_kind: ContextSource = ContextSource.MANUAL
    metadata: ChunkMetadata = Field(default_factory=ChunkMetadata)
    last_accessed: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    access_count: int = 0

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, tags: list[str]) -> list[str]:
        # set semantics, first occurrence keeps its position
        seen: dict[str, None] = {}
        for tag in tags:
            tag = tag.strip().lower()
            if tag:
                seen.setdefault(tag, None)
        return list(seen)

    def to_payload(self) -> dict:
        """Build the vector-store payload (everything except id and embedding)."""
        return self.model_dump(mode="json", exclude={"id", "embedding"})

    @classmethod
    def from_point(cls, point: dict) -> "ContextChunk":
        """Rebuild a chunk from a raw vector-store point."""
        payload = point.get("payload") or {}
        vector = point.get("vector")
        return cls(
            id=str(point.get("id")),
            embedding=vector if isinstance(vector, list) else [],
            **payload,
        )

    def prompt_view(self) -> dict:
        """The subset of the chunk that may be shown to the generative model."""
        return {
            "key": self.key,
            "value": self.text,
            "tags": self.tags,
            "source": self.source_kind.value,
        }


class ScoredChunk(BaseModel):
    """A search hit. Fallback hits carry a nominal score of 1.0."""

    chunk: ContextChunk
    score: float
    from_fallback: bool = False
