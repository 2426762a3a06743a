"""Owner-scoped storage and retrieval of context chunks on top of a RAG backend."""

import uuid
from datetime import datetime, timezone

from pydantic import ValidationError

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import EmbeddingShapeError, ProviderUnavailableError
from shared.models.context import ContextChunk, ScoredChunk

UPSERT_BATCH_SIZE = 100  # max points per upsert call
CANDIDATE_POOL_FACTOR = 5  # search pool = limit * factor, absorbs post-filtering
SCROLL_PAGE_SIZE = 256
FALLBACK_SCORE = 1.0


def make_chunk_id(owner_id: str, *parts: str | int) -> str:
    """Deterministic point id, so re-writing the same logical chunk overwrites it."""
    name = ":".join([owner_id, *(str(part) for part in parts)])
    return str(uuid.uuid5(uuid.NAMESPACE_OID, name))


class ContextStoreAdapter:
    """
    Writes and searches ContextChunks for a single owner at a time.

    Every read and delete carries an owner_id filter, and search results are
    re-checked against the owner on the way out. If the similarity search
    fails (or, with fallback_on_empty, finds nothing above min_score) the
    owner's most recently / most frequently accessed chunks are returned
    instead, each with a nominal score of 1.0 and from_fallback=True.
    """

    def __init__(self, helper_config: HelperConfig, rag_client: RAGClientInterface, dimension: int, fallback_on_empty: bool | None = None) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self.dimension = dimension
        if fallback_on_empty is None:
            fallback_on_empty = helper_config.get_bool_val("CONTEXT_FALLBACK_ON_EMPTY", default=True)
        self._fallback_on_empty = fallback_on_empty

    ##########################################
    ################ WRITE ###################
    ##########################################

    async def write(self, chunk: ContextChunk) -> None:
        """Upsert a single chunk."""
        await self.write_many([chunk])

    async def write_many(self, chunks: list[ContextChunk]) -> int:
        """Upsert chunks in batches.

        Raises:
            ValueError: If a chunk has no owner.
            EmbeddingShapeError: If a chunk's embedding has the wrong dimensionality.
            ProviderUnavailableError: If the backend rejects a batch.

        Returns:
            int: Number of points written.
        """
        points = []
        for chunk in chunks:
            if not chunk.owner_id.strip():
                raise ValueError(f"Context chunk '{chunk.key}' has no owner_id.")
            if len(chunk.embedding) != self.dimension:
                raise EmbeddingShapeError(expected=self.dimension, actual=len(chunk.embedding))
            points.append({"id": chunk.id, "vector": chunk.embedding, "payload": chunk.to_payload()})

        for batch_start in range(0, len(points), UPSERT_BATCH_SIZE):
            batch = points[batch_start: batch_start + UPSERT_BATCH_SIZE]
            try:
                await self._rag_client.do_upsert_points(batch)
            except Exception as exc:
                raise ProviderUnavailableError(f"Upsert of {len(batch)} context chunk(s) failed: {exc}") from exc

        self.logging.debug("Upserted %d context chunk(s).", len(points))
        return len(points)

    ##########################################
    ################ SEARCH ##################
    ##########################################

    async def search(self, owner_id: str, query_vector: list[float], limit: int, min_score: float) -> list[ScoredChunk]:
        """Similarity search scoped to owner_id.

        Args:
            owner_id (str): The owner whose chunks are searched.
            query_vector (list[float]): Query embedding.
            limit (int): Maximum number of results.
            min_score (float): Minimum similarity of a result.

        Returns:
            list[ScoredChunk]: Best first. Fallback results carry score 1.0.

        Raises:
            EmbeddingShapeError: If the query vector has the wrong dimensionality.
        """
        if limit <= 0:
            return []
        if len(query_vector) != self.dimension:
            raise EmbeddingShapeError(expected=self.dimension, actual=len(query_vector))

        try:
            hits = await self._rag_client.do_search(
                vector=query_vector,
                filters=[self._owner_filter(owner_id)],
                limit=limit * CANDIDATE_POOL_FACTOR,
            )
        except Exception as exc:
            self.logging.warning("Similarity search failed for owner %s: %s. Using recency fallback.", owner_id, exc)
            return await self.fallback(owner_id, limit)

        results: list[ScoredChunk] = []
        for hit in hits:
            try:
                chunk = ContextChunk.from_point(hit)
                score = float(hit.get("score", 0.0))
            except (ValidationError, TypeError, ValueError) as exc:
                self.logging.warning("Skipping malformed search hit %s: %s", hit.get("id"), exc)
                continue
            if chunk.owner_id != owner_id or score < min_score:
                continue
            results.append(ScoredChunk(chunk=chunk, score=score))

        # stable, ties keep backend order
        results.sort(key=lambda r: r.score, reverse=True)
        results = results[:limit]

        if not results and self._fallback_on_empty:
            self.logging.debug("No context above score %.2f for owner %s. Using recency fallback.", min_score, owner_id)
            return await self.fallback(owner_id, limit)
        return results

    async def list_recent(self, owner_id: str, limit: int) -> list[ContextChunk]:
        """The owner's chunks ordered by last_accessed desc, then access_count desc."""
        chunks: list[ContextChunk] = []
        offset = None
        while True:
            page = await self._rag_client.do_scroll(
                filters=[self._owner_filter(owner_id)],
                with_payload=True,
                with_vector=False,
                limit=SCROLL_PAGE_SIZE,
                offset=offset,
            )
            for point in page.result:
                try:
                    chunk = ContextChunk.from_point(point)
                except ValidationError as exc:
                    self.logging.warning("Skipping malformed context point %s: %s", point.get("id"), exc)
                    continue
                if chunk.owner_id == owner_id:
                    chunks.append(chunk)
            if page.next_page_offset is None:
                break
            offset = page.next_page_offset

        chunks.sort(key=lambda c: (c.last_accessed, c.access_count), reverse=True)
        return chunks[:limit]

    async def fallback(self, owner_id: str, limit: int) -> list[ScoredChunk]:
        """Recent chunks with the nominal fallback score. Never raises."""
        try:
            recent = await self.list_recent(owner_id, limit)
        except Exception as exc:
            self.logging.error("Recency fallback failed for owner %s: %s", owner_id, exc)
            return []
        return [ScoredChunk(chunk=chunk, score=FALLBACK_SCORE, from_fallback=True) for chunk in recent]

    ##########################################
    ############# BOOKKEEPING ################
    ##########################################

    async def record_access(self, chunks: list[ContextChunk]) -> None:
        """Bump access_count and refresh last_accessed. Failures are logged only."""
        now = datetime.now(timezone.utc).isoformat()
        seen: set[str] = set()
        for chunk in chunks:
            if chunk.id in seen:
                continue
            seen.add(chunk.id)
            try:
                await self._rag_client.do_set_payload(
                    point_ids=[chunk.id],
                    payload={"access_count": chunk.access_count + 1, "last_accessed": now},
                )
            except Exception as exc:
                self.logging.warning("Could not record access of context chunk %s: %s", chunk.id, exc)

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    async def delete_document(self, owner_id: str, document_id: str) -> None:
        """Remove every chunk of a document as one filter-based delete.

        Raises:
            ProviderUnavailableError: If the backend rejects the delete.
        """
        try:
            await self._rag_client.do_delete_points_by_filter(self._document_filters(owner_id, document_id))
        except Exception as exc:
            raise ProviderUnavailableError(f"Deleting chunks of document {document_id} failed: {exc}") from exc

    async def count_document(self, owner_id: str, document_id: str) -> int:
        """Number of stored chunks of a document.

        Raises:
            ProviderUnavailableError: If the backend cannot count.
        """
        try:
            return await self._rag_client.do_count(self._document_filters(owner_id, document_id))
        except Exception as exc:
            raise ProviderUnavailableError(f"Counting chunks of document {document_id} failed: {exc}") from exc

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _owner_filter(self, owner_id: str) -> dict:
        return self._rag_client.build_match_filter("owner_id", owner_id)

    def _document_filters(self, owner_id: str, document_id: str) -> list[dict]:
        return [
            self._owner_filter(owner_id),
            self._rag_client.build_match_filter("metadata.document_id", document_id),
        ]
