"""
Tests for the HTTP API.

Services are wired from in-memory fakes; the lifespan (which boots real
backend clients) is not entered.

Covers:
- API key and owner header checks
- Form, document and context routes
- Error mapping (404, 400)
"""

import pytest
from fastapi.testclient import TestClient

from services.context_ingest.DocumentChunker import DocumentChunker
from services.context_ingest.IngestionService import IngestionService
from services.form_autofill.AutofillService import AutofillService
from services.form_autofill.FieldExtractor import FieldExtractor
from services.form_autofill.FormService import FormService
from services.form_autofill.RefinementService import RefinementService
from services.form_autofill.SuggestionGenerator import SuggestionGenerator
from services.form_autofill.SuggestionRanker import SuggestionRanker
from shared.models.context import ScoredChunk
from shared.stores.memory.RecordStoreMemory import RecordStoreMemory
from tests.fakes import FakeContextStore, FakeEmbeddingGateway, FakeGenerativeGateway, make_chunk

HEADERS = {"X-Api-Key": "test-key", "X-User-Id": "user-1"}


@pytest.fixture
def context_store():
    return FakeContextStore()


@pytest.fixture
def client(helper_config, context_store, monkeypatch, tmp_path):
    monkeypatch.setenv("ROOT_DIR", str(tmp_path))
    from server.api_server import app

    record_store = RecordStoreMemory(helper_config=helper_config)
    embedding = FakeEmbeddingGateway()
    generator = SuggestionGenerator(helper_config=helper_config, generative_gateway=FakeGenerativeGateway())
    ranker = SuggestionRanker()
    autofill = AutofillService(
        helper_config=helper_config,
        embedding_gateway=embedding,
        context_store=context_store,
        generator=generator,
        ranker=ranker,
    )

    app.state.helper_config = helper_config
    app.state.autofill_service = autofill
    app.state.form_service = FormService(
        helper_config=helper_config,
        record_store=record_store,
        extractor=FieldExtractor(helper_config=helper_config),
        autofill_service=autofill,
        embedding_gateway=embedding,
        context_store=context_store,
    )
    app.state.refinement_service = RefinementService(
        helper_config=helper_config,
        record_store=record_store,
        autofill_service=autofill,
        ranker=ranker,
    )
    app.state.ingestion_service = IngestionService(
        helper_config=helper_config,
        record_store=record_store,
        chunker=DocumentChunker(helper_config=helper_config),
        embedding_gateway=embedding,
        context_store=context_store,
    )
    return TestClient(app)


# ─── Auth ─────────────────────────────────────────────────────────────────────


class TestAuth:
    """Tests for request authentication."""

    def test_wrong_api_key(self, client):
        """Test a wrong key is rejected."""
        response = client.get("/forms/any", headers={"X-Api-Key": "nope", "X-User-Id": "user-1"})
        assert response.status_code == 401

    def test_blank_owner(self, client):
        """Test a blank owner header is rejected."""
        response = client.get("/forms/any", headers={"X-Api-Key": "test-key", "X-User-Id": "  "})
        assert response.status_code == 400


# ─── Forms ────────────────────────────────────────────────────────────────────


class TestFormRoutes:
    """Tests for /forms."""

    def test_detect_and_get(self, client):
        """Test detection returns fields with hints and the form is retrievable."""
        response = client.post(
            "/forms/detect",
            json={"html": '<form><input name="email" type="email"></form>', "url": "https://shop.example/checkout"},
            headers=HEADERS,
        )
        assert response.status_code == 200
        form = response.json()
        assert form["domain"] == "shop.example"
        assert form["fields"][0]["label"] == "Email"
        assert form["suggestions"]["email"][0]["source"] == "Field Help"

        fetched = client.get(f"/forms/{form['form_id']}", headers=HEADERS)
        assert fetched.status_code == 200
        assert fetched.json()["form_id"] == form["form_id"]

    def test_unknown_form(self, client):
        """Test NotFoundError maps to 404."""
        response = client.get("/forms/missing", headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["detail"] == "Form 'missing' not found."

    def test_refine_unknown_form(self, client):
        """Test refining an unknown form is a 404."""
        response = client.post("/forms/missing/fields/email/refine", json={}, headers=HEADERS)
        assert response.status_code == 404

    def test_suggest(self, client):
        """Test suggestions for ad-hoc fields."""
        response = client.post(
            "/forms/suggest",
            json={"fields": [{"name": "city", "label": "City"}]},
            headers=HEADERS,
        )
        assert response.status_code == 200
        assert response.json()["suggestions"]["city"][0]["value"] == "Enter your city"

    def test_submission(self, client, context_store):
        """Test a submission is learned as context."""
        response = client.post(
            "/forms/f1/submissions",
            json={"filled_values": {"city": "Berlin"}, "fields": [{"name": "city", "label": "City"}]},
            headers=HEADERS,
        )
        assert response.status_code == 200
        assert response.json() == {"form_id": "f1", "status": "saved", "context_entries_created": 1}
        assert context_store.written[0].text == "Berlin"


# ─── Documents ────────────────────────────────────────────────────────────────


class TestDocumentRoutes:
    """Tests for /documents."""

    def test_submit_and_status(self, client):
        """Test the document is accepted and processed in the background."""
        response = client.post("/documents", json={"file_name": "cv.pdf", "text": "Jane Doe"}, headers=HEADERS)
        assert response.status_code == 202
        accepted = response.json()
        assert accepted["status"] == "pending"

        status = client.get(f"/documents/{accepted['document_id']}/status", headers=HEADERS).json()
        assert status["status"] == "completed"
        assert status["context_entries_created"] == 1

    def test_blank_file_name(self, client):
        """Test a blank file name is a 400."""
        response = client.post("/documents", json={"file_name": " ", "text": "x"}, headers=HEADERS)
        assert response.status_code == 400

    def test_delete(self, client):
        """Test deletion and the 404 afterwards."""
        document_id = client.post("/documents", json={"file_name": "cv.pdf", "text": "Jane"}, headers=HEADERS).json()["document_id"]
        assert client.delete(f"/documents/{document_id}", headers=HEADERS).json()["status"] == "deleted"
        assert client.get(f"/documents/{document_id}/status", headers=HEADERS).status_code == 404


# ─── Context ──────────────────────────────────────────────────────────────────


class TestContextRoutes:
    """Tests for /context."""

    def test_add(self, client, context_store):
        """Test a manual fact is stored and echoed without embedding."""
        response = client.post("/context", json={"key": "Phone", "value": "+49 151", "tags": ["Contact"]}, headers=HEADERS)
        assert response.status_code == 200
        entry = response.json()
        assert entry["key"] == "Phone"
        assert entry["source"] == "manual"
        assert "embedding" not in entry
        assert len(context_store.written) == 1

    def test_add_blank(self, client):
        """Test a blank value is a 400."""
        response = client.post("/context", json={"key": "Phone", "value": " "}, headers=HEADERS)
        assert response.status_code == 400

    def test_search(self, client, context_store):
        """Test search results carry score and fallback flag."""
        context_store.search_results = [[ScoredChunk(chunk=make_chunk("City", "Berlin"), score=0.83)]]
        response = client.post("/context/search", json={"query": "where do I live", "limit": 5}, headers=HEADERS)
        body = response.json()
        assert body["total"] == 1
        assert body["results"][0]["value"] == "Berlin"
        assert body["results"][0]["score"] == 0.83
        assert body["results"][0]["from_fallback"] is False
        assert context_store.searches[0]["limit"] == 5
