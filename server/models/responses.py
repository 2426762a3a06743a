from pydantic import BaseModel

from shared.models.context import ContextChunk, ScoredChunk
from shared.models.document import ProcessingStatus
from shared.models.field import FieldDescriptor
from shared.models.suggestion import FormRecord, SuggestionCandidate


class FormResponse(BaseModel):
    form_id: str
    url: str
    domain: str
    fields: list[FieldDescriptor]
    suggestions: dict[str, list[SuggestionCandidate]]

    @classmethod
    def from_record(cls, form: FormRecord) -> "FormResponse":
        return cls(
            form_id=form.form_id,
            url=form.url,
            domain=form.domain,
            fields=form.fields,
            suggestions=form.suggestions,
        )


class SuggestResponse(BaseModel):
    suggestions: dict[str, list[SuggestionCandidate]]


class SubmissionResponse(BaseModel):
    form_id: str
    status: str = "saved"
    context_entries_created: int


class DocumentAcceptedResponse(BaseModel):
    document_id: str
    file_name: str
    status: ProcessingStatus


class ContextEntry(BaseModel):
    """A context chunk as shown to API clients (no embedding)."""

    id: str
    key: str
    value: str
    tags: list[str]
    source: str
    score: float | None = None
    from_fallback: bool = False

    @classmethod
    def from_chunk(cls, chunk: ContextChunk, score: float | None = None, from_fallback: bool = False) -> "ContextEntry":
        return cls(
            id=chunk.id,
            key=chunk.key,
            value=chunk.text,
            tags=chunk.tags,
            source=chunk.source_kind.value,
            score=score,
            from_fallback=from_fallback,
        )

    @classmethod
    def from_scored(cls, hit: ScoredChunk) -> "ContextEntry":
        return cls.from_chunk(hit.chunk, score=hit.score, from_fallback=hit.from_fallback)


class ContextSearchResponse(BaseModel):
    query: str
    results: list[ContextEntry]
    total: int
