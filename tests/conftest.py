import logging

import pytest

from shared.helper.HelperConfig import HelperConfig

TEST_ENV = {
    "EMBED_VECTOR_SIZE": "4",
    "EMBED_MODEL": "nomic-embed-text",
    "EMBED_OLLAMA_BASE_URL": "http://ollama.test",
    "LLM_CHAT_MODEL": "llama3.1",
    "LLM_OLLAMA_BASE_URL": "http://ollama.test",
    "RAG_QDRANT_BASE_URL": "http://qdrant.test",
    "API_SERVER_API_KEY": "test-key",
}

# tunables that must fall back to their defaults unless a test sets them
UNSET_ENV = (
    "CONTEXT_FALLBACK_ON_EMPTY",
    "CONTEXT_SEARCH_LIMIT",
    "CONTEXT_MIN_SCORE",
    "FIELD_SEARCH_MIN_SCORE",
    "CHUNK_SMALL_DOCUMENT_THRESHOLD",
    "CHUNK_MAX_SIZE",
    "CHUNK_MIN_SIZE",
    "INGEST_EXTRACT_ENTITIES",
    "EMBED_MODEL_MAX_CHARS",
    "RAG_QDRANT_API_KEY",
    "RAG_QDRANT_COLLECTION",
)


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    for key in UNSET_ENV:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("autofill-tests"))
