"""Test doubles for the model providers and the context store."""

from contextlib import asynccontextmanager
from typing import Any, Callable

import httpx

from shared.helper.errors import ProviderUnavailableError
from shared.models.context import ContextChunk, ContextSource, ScoredChunk
from shared.models.field import FieldDescriptor
from shared.models.suggestion import SuggestionCandidate

DIM = 4


@asynccontextmanager
async def booted(client, handler: Callable[[httpx.Request], httpx.Response]):
    """Boot an HTTP client on a MockTransport for the duration of the block."""
    await client.boot(transport=httpx.MockTransport(handler))
    try:
        yield client
    finally:
        await client.close()


def make_chunk(key: str, text: str, owner_id: str = "user-1", chunk_id: str | None = None, **kwargs) -> ContextChunk:
    return ContextChunk(
        id=chunk_id or f"{owner_id}-{key}",
        owner_id=owner_id,
        key=key,
        text=text,
        embedding=kwargs.pop("embedding", [0.5] * DIM),
        source_kind=kwargs.pop("source_kind", ContextSource.MANUAL),
        **kwargs,
    )


def make_field(name: str, label: str | None = None, **kwargs) -> FieldDescriptor:
    return FieldDescriptor(name=name, label=label or name.capitalize(), **kwargs)


def candidate(field_name: str, value: str, confidence: int = 50, source: str = "AI Suggestion") -> SuggestionCandidate:
    return SuggestionCandidate(field_name=field_name, value=value, confidence=confidence, source=source)


class FakeEmbeddingGateway:
    def __init__(self, dimension: int = DIM, fail: bool = False):
        self.dimension = dimension
        self.fail = fail
        self.calls: list[list[str]] = []

    async def embed(self, text: str) -> list[float]:
        return (await self.embed_many([text]))[0]

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.fail:
            raise ProviderUnavailableError("embedding backend down")
        return [[0.1 * (i + 1)] * self.dimension for i in range(len(texts))]

    @property
    def embedded_texts(self) -> list[str]:
        return [text for call in self.calls for text in call]


class FakeGenerativeGateway:
    """Replays queued replies; an Exception in the queue is raised instead."""

    def __init__(self, replies: list[Any] | None = None):
        self.replies = list(replies or [])
        self.prompts: list[str] = []

    async def generate_json(self, prompt: str, system_prompt: str | None = None) -> Any:
        self.prompts.append(prompt)
        if not self.replies:
            return []
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeContextStore:
    """Queued search results plus an in-memory record of writes, deletes and accesses."""

    def __init__(self, search_results: list[list[ScoredChunk]] | None = None, recent: list[ContextChunk] | None = None):
        self.search_results = list(search_results or [])
        self.recent = list(recent or [])
        self.searches: list[dict] = []
        self.written: list[ContextChunk] = []
        self.accessed: list[ContextChunk] = []
        self.deleted_documents: list[tuple[str, str]] = []
        self.fallback_calls = 0
        self.fail_delete = False
        self.fail_write = False
        self.dimension = DIM

    async def search(self, owner_id: str, query_vector: list[float], limit: int, min_score: float) -> list[ScoredChunk]:
        self.searches.append({"owner_id": owner_id, "limit": limit, "min_score": min_score})
        if not self.search_results:
            return []
        return self.search_results.pop(0)

    async def fallback(self, owner_id: str, limit: int) -> list[ScoredChunk]:
        self.fallback_calls += 1
        return [ScoredChunk(chunk=c, score=1.0, from_fallback=True) for c in self.recent[:limit]]

    async def write(self, chunk: ContextChunk) -> None:
        await self.write_many([chunk])

    async def write_many(self, chunks: list[ContextChunk]) -> int:
        if self.fail_write:
            raise ProviderUnavailableError("vector store down")
        self.written.extend(chunks)
        return len(chunks)

    async def record_access(self, chunks: list[ContextChunk]) -> None:
        self.accessed.extend(chunks)

    async def delete_document(self, owner_id: str, document_id: str) -> None:
        if self.fail_delete:
            raise ProviderUnavailableError("vector store down")
        self.deleted_documents.append((owner_id, document_id))
        self.written = [
            c for c in self.written
            if not (c.owner_id == owner_id and c.metadata.document_id == document_id)
        ]

    async def count_document(self, owner_id: str, document_id: str) -> int:
        return sum(1 for c in self.written if c.owner_id == owner_id and c.metadata.document_id == document_id)


class FakeAutofillService:
    """Returns preset candidates and remembers what it was asked."""

    def __init__(self, suggestions: dict[str, list[SuggestionCandidate]] | None = None):
        self.suggestions = suggestions or {}
        self.calls: list[dict] = []

    async def suggest(self, owner_id, fields, form_context=None, with_field_help=True):
        self.calls.append({
            "owner_id": owner_id,
            "fields": fields,
            "form_context": form_context,
            "with_field_help": with_field_help,
        })
        return {field.name: list(self.suggestions.get(field.name, [])) for field in fields}
