"""Document ingestion: text → chunks → embeddings → context store, with status tracking."""

import re
import uuid

from pydantic import ValidationError

from services.context_ingest.DocumentChunker import DocumentChunker
from services.context_store.ContextStoreAdapter import ContextStoreAdapter, make_chunk_id
from shared.clients.embed.EmbeddingGateway import EmbeddingGateway
from shared.clients.llm.GenerativeGateway import GenerativeGateway
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import NotFoundError, ProviderUnavailableError
from shared.models.context import ChunkMetadata, ContextChunk, ContextSource
from shared.models.document import DocumentRecord, DocumentStatus, ExtractedEntity, ProcessingStatus
from shared.stores.RecordStoreInterface import RecordStoreInterface

EMBED_BATCH_SIZE = 32  # texts per embedding call
ENTITY_INPUT_CHARS = 8000

_FILE_EXTENSION = re.compile(r"\.[^/.]+$")

ENTITY_SYSTEM_PROMPT = "You extract structured entities from documents and always answer with a JSON array."
ENTITY_PROMPT = """Extract the relevant entities from the text below: person names, email addresses,
phone numbers, addresses, organizations, job titles, URLs, dates, skills and qualifications.

Answer with a JSON array of objects with the keys "type" (category), "value" (the entity),
"confidence" (0-100) and optionally "context" (surrounding words).

Text:
{text}"""


class IngestionService:
    """
    Turns uploaded document text into retrievable context.

    submit_document() only records the document as pending; the caller
    schedules process_document() in the background and polls get_status().
    """

    def __init__(self, helper_config: HelperConfig, record_store: RecordStoreInterface, chunker: DocumentChunker, embedding_gateway: EmbeddingGateway, context_store: ContextStoreAdapter, generative_gateway: GenerativeGateway | None = None) -> None:
        self.logging = helper_config.get_logger()
        self._record_store = record_store
        self._chunker = chunker
        self._embedding_gateway = embedding_gateway
        self._context_store = context_store
        self._generative_gateway = generative_gateway
        self.extract_entities = helper_config.get_bool_val("INGEST_EXTRACT_ENTITIES", default=False)

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    async def submit_document(self, owner_id: str, file_name: str, text: str, tags: list[str] | None = None) -> DocumentRecord:
        """Create a pending document record.

        Raises:
            ValueError: If the file name is empty.
        """
        if not file_name or not file_name.strip():
            raise ValueError("file_name must not be empty")
        document = DocumentRecord(
            document_id=str(uuid.uuid4()),
            owner_id=owner_id,
            file_name=file_name.strip(),
            content=text or "",
            tags=tags or [],
        )
        await self._record_store.save_document(document)
        self.logging.info("Accepted document %s ('%s', %d characters).", document.document_id, document.file_name, len(document.content))
        return document

    async def process_document(self, owner_id: str, document_id: str) -> None:
        """Chunk, embed and store a pending document. Never raises.

        Any failure marks the document as failed with the error message.
        """
        document = await self._record_store.get_document(owner_id, document_id)
        if document is None:
            self.logging.warning("Document %s of owner %s vanished before processing.", document_id, owner_id)
            return

        document.status = ProcessingStatus.PROCESSING
        document.error = None
        await self._record_store.save_document(document)

        try:
            created = await self._ingest(document)
            if self.extract_entities:
                document.extracted_entities = await self._extract_entities(document)
        except Exception as exc:
            self.logging.error("Processing of document %s ('%s') failed: %s", document_id, document.file_name, exc)
            document.status = ProcessingStatus.FAILED
            document.error = str(exc) or exc.__class__.__name__
            await self._record_store.save_document(document)
            return

        document.status = ProcessingStatus.COMPLETED
        await self._record_store.save_document(document)
        self.logging.info("Processed document %s ('%s') into %d context chunk(s).", document_id, document.file_name, created)

    async def get_status(self, owner_id: str, document_id: str) -> DocumentStatus:
        """
        Raises:
            NotFoundError: If the document does not exist for the owner.
        """
        document = await self._record_store.get_document(owner_id, document_id)
        if document is None:
            raise NotFoundError("document", document_id)

        try:
            count = await self._context_store.count_document(owner_id, document_id)
        except ProviderUnavailableError as exc:
            self.logging.warning("Could not count context entries of document %s: %s", document_id, exc)
            count = 0

        return DocumentStatus(
            document_id=document_id,
            status=document.status,
            file_name=document.file_name,
            context_entries_created=count,
            error=document.error,
        )

    async def delete_document(self, owner_id: str, document_id: str) -> None:
        """Delete a document and all of its context chunks.

        Best effort: if the chunks cannot be removed the error is logged and
        the record is deleted anyway.

        Raises:
            NotFoundError: If the document does not exist for the owner.
        """
        document = await self._record_store.get_document(owner_id, document_id)
        if document is None:
            raise NotFoundError("document", document_id)

        try:
            await self._context_store.delete_document(owner_id, document_id)
        except ProviderUnavailableError as exc:
            self.logging.error("Could not delete context entries of document %s: %s", document_id, exc)

        await self._record_store.delete_document(owner_id, document_id)
        self.logging.info("Deleted document %s ('%s').", document_id, document.file_name)

    ##########################################
    ############ MANUAL CONTEXT ##############
    ##########################################

    async def add_manual_context(self, owner_id: str, key: str, value: str, tags: list[str] | None = None) -> ContextChunk:
        """Store one user-entered fact. Re-adding the same key overwrites it.

        Raises:
            ValueError: If key or value is empty.
            ProviderUnavailableError: If embedding or storing fails.
        """
        key, value = (key or "").strip(), (value or "").strip()
        if not key or not value:
            raise ValueError("key and value must not be empty")

        vector = await self._embedding_gateway.embed(f"{key}: {value}")
        chunk = ContextChunk(
            id=make_chunk_id(owner_id, ContextSource.MANUAL.value, key.lower()),
            owner_id=owner_id,
            key=key,
            text=value,
            tags=tags or [],
            embedding=vector,
            source_kind=ContextSource.MANUAL,
        )
        await self._context_store.write(chunk)
        self.logging.info("Stored manual context '%s' for owner %s.", key, owner_id)
        return chunk

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def generate_key_for_document(file_name: str) -> str:
        """Human key of a document, derived from its file name."""
        stem = _FILE_EXTENSION.sub("", file_name.strip())
        lowered = stem.lower()
        if "resume" in lowered or "cv" in lowered:
            return "Resume"
        if "cover" in lowered and "letter" in lowered:
            return "Cover Letter"
        if "transcript" in lowered:
            return "Academic Transcript"
        if "certificate" in lowered or "certification" in lowered:
            return "Certificate"
        if "reference" in lowered or "recommendation" in lowered:
            return "Reference Letter"
        return stem[:1].upper() + stem[1:] if stem else "Document"

    async def _ingest(self, document: DocumentRecord) -> int:
        pieces = self._chunker.split(document.content)
        if not pieces:
            raise ValueError("Document contains no extractable text.")

        vectors: list[list[float]] = []
        for batch_start in range(0, len(pieces), EMBED_BATCH_SIZE):
            batch = pieces[batch_start: batch_start + EMBED_BATCH_SIZE]
            vectors.extend(await self._embedding_gateway.embed_many([piece.text for piece in batch]))

        base_key = self.generate_key_for_document(document.file_name)
        tags = [*document.tags, "document"]
        if len(pieces) > 1:
            tags.append("chunk")

        chunks = [
            ContextChunk(
                id=make_chunk_id(document.owner_id, ContextSource.DOCUMENT.value, document.document_id, piece.index),
                owner_id=document.owner_id,
                key=f"{base_key} (Part {piece.index + 1})" if piece.total > 1 else base_key,
                text=piece.text,
                tags=tags,
                embedding=vector,
                source_kind=ContextSource.DOCUMENT,
                metadata=ChunkMetadata(
                    document_id=document.document_id,
                    file_name=document.file_name,
                    chunk_index=piece.index,
                    total_chunks=piece.total,
                    content_length=len(piece.text),
                ),
            )
            for piece, vector in zip(pieces, vectors)
        ]

        # chunks of an earlier run of the same document
        await self._context_store.delete_document(document.owner_id, document.document_id)
        return await self._context_store.write_many(chunks)

    async def _extract_entities(self, document: DocumentRecord) -> list[ExtractedEntity]:
        if self._generative_gateway is None:
            return []
        try:
            raw = await self._generative_gateway.generate_json(
                ENTITY_PROMPT.format(text=document.content[:ENTITY_INPUT_CHARS]),
                system_prompt=ENTITY_SYSTEM_PROMPT,
            )
        except ProviderUnavailableError as exc:
            # context is already stored, entities are optional
            self.logging.warning("Entity extraction for document %s failed: %s", document.document_id, exc)
            return []

        if isinstance(raw, dict):
            raw = raw.get("entities", [])
        if not isinstance(raw, list):
            return []

        entities = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            try:
                entities.append(ExtractedEntity.model_validate(item))
            except ValidationError:
                continue
        return entities
