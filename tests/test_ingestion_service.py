"""
Tests for IngestionService.

Covers:
- Document lifecycle (pending, completed, failed)
- Chunk keys, tags and metadata
- Status counts, best-effort delete
- Manual context and document keys
- Optional entity extraction
"""

import asyncio

import pytest

from services.context_ingest.DocumentChunker import DocumentChunker
from services.context_ingest.IngestionService import IngestionService
from services.context_store.ContextStoreAdapter import make_chunk_id
from shared.helper.errors import NotFoundError, ProviderUnavailableError
from shared.models.document import ProcessingStatus
from shared.stores.memory.RecordStoreMemory import RecordStoreMemory
from tests.fakes import FakeContextStore, FakeEmbeddingGateway, FakeGenerativeGateway

LONG_TEXT = "\n\n".join(
    " ".join(f"Sentence number {i} describes a project." for i in range(80)) for _ in range(2)
)


class Harness:
    def __init__(self, helper_config, embed_fails=False, replies=None):
        self.record_store = RecordStoreMemory(helper_config=helper_config)
        self.embedding = FakeEmbeddingGateway(fail=embed_fails)
        self.context_store = FakeContextStore()
        self.gateway = FakeGenerativeGateway(replies)
        self.service = IngestionService(
            helper_config=helper_config,
            record_store=self.record_store,
            chunker=DocumentChunker(helper_config=helper_config),
            embedding_gateway=self.embedding,
            context_store=self.context_store,
            generative_gateway=self.gateway,
        )

    def run(self, coroutine):
        return asyncio.run(coroutine)

    def ingest(self, file_name, text, tags=None):
        document = self.run(self.service.submit_document("user-1", file_name, text, tags))
        self.run(self.service.process_document("user-1", document.document_id))
        return self.run(self.record_store.get_document("user-1", document.document_id))


@pytest.fixture
def harness(helper_config):
    return Harness(helper_config)


# ─── Processing ───────────────────────────────────────────────────────────────


class TestProcessDocument:
    """Tests for the ingestion pipeline."""

    def test_submit_is_pending(self, harness):
        """Test a submitted document waits for processing."""
        document = harness.run(harness.service.submit_document("user-1", " cv.pdf ", "text"))
        assert document.status == ProcessingStatus.PENDING
        assert document.file_name == "cv.pdf"

    def test_empty_file_name(self, harness):
        """Test a blank file name is rejected."""
        with pytest.raises(ValueError):
            harness.run(harness.service.submit_document("user-1", "  ", "text"))

    def test_small_document(self, harness):
        """Test a small document becomes one chunk under the document key."""
        document = harness.ingest("my_cv.pdf", "Jane Doe, software engineer.", tags=["Career"])

        assert document.status == ProcessingStatus.COMPLETED
        assert document.error is None
        chunk = harness.context_store.written[0]
        assert len(harness.context_store.written) == 1
        assert chunk.key == "Resume"
        assert chunk.tags == ["career", "document"]
        assert chunk.metadata.document_id == document.document_id
        assert chunk.metadata.file_name == "my_cv.pdf"
        assert chunk.id == make_chunk_id("user-1", "document", document.document_id, 0)
        # stale chunks of an earlier run are cleared first
        assert harness.context_store.deleted_documents == [("user-1", document.document_id)]

    def test_large_document(self, harness):
        """Test parts are numbered and tagged as chunks."""
        document = harness.ingest("notes.txt", LONG_TEXT)

        chunks = harness.context_store.written
        assert len(chunks) > 1
        assert [c.key for c in chunks] == [f"Notes (Part {i + 1})" for i in range(len(chunks))]
        assert [c.metadata.chunk_index for c in chunks] == list(range(len(chunks)))
        assert all(c.metadata.total_chunks == len(chunks) for c in chunks)
        assert all("chunk" in c.tags for c in chunks)

        status = harness.run(harness.service.get_status("user-1", document.document_id))
        assert status.status == ProcessingStatus.COMPLETED
        assert status.context_entries_created == len(chunks)

    def test_embedding_failure(self, helper_config):
        """Test a failing embedding backend marks the document failed."""
        harness = Harness(helper_config, embed_fails=True)
        document = harness.ingest("cv.pdf", "Jane Doe")
        assert document.status == ProcessingStatus.FAILED
        assert document.error == "embedding backend down"

    def test_empty_text(self, harness):
        """Test a document without text fails with a message."""
        document = harness.ingest("scan.pdf", "   ")
        assert document.status == ProcessingStatus.FAILED
        assert "no extractable text" in document.error

    def test_missing_document(self, harness):
        """Test processing a vanished document is a no-op."""
        harness.run(harness.service.process_document("user-1", "gone"))
        assert harness.context_store.written == []


# ─── Status and delete ────────────────────────────────────────────────────────


class TestStatusAndDelete:
    """Tests for status queries and deletion."""

    def test_status_unknown(self, harness):
        """Test status of an unknown document raises NotFoundError."""
        with pytest.raises(NotFoundError):
            harness.run(harness.service.get_status("user-1", "missing"))

    def test_delete(self, harness):
        """Test the record and its chunks are removed."""
        document = harness.ingest("cv.pdf", "Jane Doe")
        harness.run(harness.service.delete_document("user-1", document.document_id))

        assert harness.run(harness.record_store.get_document("user-1", document.document_id)) is None
        assert harness.context_store.written == []

    def test_delete_best_effort(self, harness):
        """Test the record is deleted even if the chunks cannot be."""
        document = harness.ingest("cv.pdf", "Jane Doe")
        harness.context_store.fail_delete = True
        harness.run(harness.service.delete_document("user-1", document.document_id))
        assert harness.run(harness.record_store.get_document("user-1", document.document_id)) is None

    def test_delete_unknown(self, harness):
        """Test deleting an unknown document raises NotFoundError."""
        with pytest.raises(NotFoundError):
            harness.run(harness.service.delete_document("user-1", "missing"))


# ─── Manual context ───────────────────────────────────────────────────────────


class TestManualContext:
    """Tests for user-entered facts."""

    def test_add(self, harness):
        """Test a fact is embedded with its key and stored."""
        chunk = harness.run(harness.service.add_manual_context("user-1", " Phone ", "+49 151 1234567", ["Contact"]))

        assert chunk.id == make_chunk_id("user-1", "manual", "phone")
        assert chunk.key == "Phone"
        assert chunk.tags == ["contact"]
        assert harness.embedding.embedded_texts == ["Phone: +49 151 1234567"]
        assert harness.context_store.written == [chunk]

    def test_same_key_same_id(self, harness):
        """Test re-adding a key overwrites rather than duplicates."""
        first = harness.run(harness.service.add_manual_context("user-1", "Phone", "1"))
        second = harness.run(harness.service.add_manual_context("user-1", "phone", "2"))
        assert first.id == second.id

    @pytest.mark.parametrize("key,value", [("", "x"), ("Phone", "  ")])
    def test_empty_input(self, harness, key, value):
        """Test key and value are required."""
        with pytest.raises(ValueError):
            harness.run(harness.service.add_manual_context("user-1", key, value))

    def test_provider_failure_propagates(self, helper_config):
        """Test embedding failures reach the caller."""
        harness = Harness(helper_config, embed_fails=True)
        with pytest.raises(ProviderUnavailableError):
            harness.run(harness.service.add_manual_context("user-1", "Phone", "1"))


# ─── Keys and entities ────────────────────────────────────────────────────────


class TestDocumentKeys:
    """Tests for document key derivation."""

    @pytest.mark.parametrize("file_name,expected", [
        ("Jane_Resume.pdf", "Resume"),
        ("cv.docx", "Resume"),
        ("Cover-Letter.pdf", "Cover Letter"),
        ("transcript 2020.pdf", "Academic Transcript"),
        ("AWS certification.png", "Certificate"),
        ("recommendation.pdf", "Reference Letter"),
        ("passport.pdf", "Passport"),
        (".pdf", "Document"),
    ])
    def test_keys(self, file_name, expected):
        """Test keyword and file stem rules."""
        assert IngestionService.generate_key_for_document(file_name) == expected


class TestEntityExtraction:
    """Tests for optional entity extraction."""

    def test_entities_stored(self, helper_config, monkeypatch):
        """Test valid entities are kept and malformed ones dropped."""
        monkeypatch.setenv("INGEST_EXTRACT_ENTITIES", "true")
        harness = Harness(helper_config, replies=[[
            {"type": "email", "value": "jane@example.com", "confidence": 95},
            {"value": "no type"},
            "junk",
        ]])
        document = harness.ingest("cv.pdf", "Jane Doe, jane@example.com")

        assert document.status == ProcessingStatus.COMPLETED
        assert [(e.type, e.value) for e in document.extracted_entities] == [("email", "jane@example.com")]

    def test_provider_failure_tolerated(self, helper_config, monkeypatch):
        """Test entity extraction failures do not fail the document."""
        monkeypatch.setenv("INGEST_EXTRACT_ENTITIES", "true")
        harness = Harness(helper_config, replies=[ProviderUnavailableError("llm down")])
        document = harness.ingest("cv.pdf", "Jane Doe")

        assert document.status == ProcessingStatus.COMPLETED
        assert document.extracted_entities == []

    def test_disabled_by_default(self, harness):
        """Test no generation call is made unless enabled."""
        harness.ingest("cv.pdf", "Jane Doe")
        assert harness.gateway.prompts == []
