"""Pydantic models for uploaded documents and their processing state."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ExtractedEntity(BaseModel):
    type: str
    value: str
    confidence: float | None = None
    context: str | None = None


class DocumentRecord(BaseModel):
    """An uploaded document and the extracted plain text it was ingested from.

    Raw file bytes live in the blob store; only the extracted text is kept here.
    """

    document_id: str
    owner_id: str
    file_name: str
    content: str
    tags: list[str] = []
    status: ProcessingStatus = ProcessingStatus.PENDING
    error: str | None = None
    extracted_entities: list[ExtractedEntity] = []
    summary: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DocumentStatus(BaseModel):
    """Answer of the status query for a document."""

    document_id: str
    status: ProcessingStatus
    file_name: str
    context_entries_created: int = 0
    error: str | None = None


class TextChunk(BaseModel):
    """One piece of a split document, numbered from 0 to total - 1."""

    index: int
    total: int
    text: str
