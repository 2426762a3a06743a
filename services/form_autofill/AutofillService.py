"""Suggestion orchestration: retrieval, generation, targeted retry, ranking, field help."""

from services.context_store.ContextStoreAdapter import ContextStoreAdapter
from services.form_autofill.SuggestionGenerator import SuggestionGenerator
from services.form_autofill.SuggestionRanker import SuggestionRanker
from shared.clients.embed.EmbeddingGateway import EmbeddingGateway
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import ProviderUnavailableError
from shared.models.context import ContextChunk, ScoredChunk
from shared.models.field import FieldDescriptor
from shared.models.suggestion import SuggestionCandidate

DEFAULT_SEARCH_LIMIT = 20
DEFAULT_MIN_SCORE = 0.5
FIELD_SEARCH_LIMIT = 3
DEFAULT_FIELD_MIN_SCORE = 0.7
FALLBACK_NOTE = "Based on recent context only; no closely matching entry was found."


class AutofillService:
    """
    Produces ranked suggestions for a list of fields.

    1. One retrieval for the whole form (query = all field labels).
    2. One generation call for all fields.
    3. Fields left without valid candidates get a targeted retrieval on
       "{label} {name} {context}" (top 3) and a generation with only that context.
    4. Access is recorded on the chunks that contributed.
    5. Candidates are ranked, and fields that are still empty get a Field Help hint.

    Provider failures are logged and degrade the result; they never escape.
    """

    def __init__(self, helper_config: HelperConfig, embedding_gateway: EmbeddingGateway, context_store: ContextStoreAdapter, generator: SuggestionGenerator, ranker: SuggestionRanker) -> None:
        self.logging = helper_config.get_logger()
        self._embedding_gateway = embedding_gateway
        self._context_store = context_store
        self._generator = generator
        self._ranker = ranker

        self.search_limit = int(helper_config.get_number_val("CONTEXT_SEARCH_LIMIT", default=DEFAULT_SEARCH_LIMIT))
        self.min_score = float(helper_config.get_number_val("CONTEXT_MIN_SCORE", default=DEFAULT_MIN_SCORE))
        self.field_min_score = float(helper_config.get_number_val("FIELD_SEARCH_MIN_SCORE", default=DEFAULT_FIELD_MIN_SCORE))

    ##########################################
    ################ CORE ####################
    ##########################################

    async def suggest(self, owner_id: str, fields: list[FieldDescriptor], form_context: str | None = None, with_field_help: bool = True) -> dict[str, list[SuggestionCandidate]]:
        """Suggest values for every field.

        Args:
            owner_id (str): Owner whose context is used.
            fields (list[FieldDescriptor]): The fields to fill.
            form_context (str | None): "URL: ... Domain: ..." of the form.
            with_field_help (bool): Fill fields without candidates with a
                zero-confidence hint. Off for refinement.

        Returns:
            dict[str, list[SuggestionCandidate]]: Ranked candidates per field name,
                one entry for every field.
        """
        if not fields:
            return {}

        query = " ".join(field.label for field in fields)
        hits = await self._retrieve(owner_id, query, self.search_limit, self.min_score)
        context = [hit.chunk for hit in hits]

        generator_available = True
        try:
            generated = await self._generator.generate(fields, context, form_context)
        except ProviderUnavailableError as exc:
            self.logging.warning("Suggestion generation failed for owner %s: %s", owner_id, exc)
            generated = {}
            generator_available = False

        if generated:
            generated = self._mark_fallback(generated, hits)
            await self._context_store.record_access(self._cited_chunks(context, generated))

        result: dict[str, list[SuggestionCandidate]] = {}
        for field in fields:
            candidates = generated.get(field.name, [])
            if not candidates and generator_available:
                candidates = await self._suggest_targeted(owner_id, field, form_context)

            ranked = self._ranker.rank(candidates)
            if not ranked and with_field_help:
                ranked = [self._generator.field_help(field)]
            result[field.name] = ranked

        self.logging.info(
            "Suggested values for %d field(s) of owner %s using %d context entries.",
            len(fields), owner_id, len(context),
        )
        return result

    async def search_context(self, owner_id: str, query: str, limit: int | None = None, min_score: float | None = None) -> list[ScoredChunk]:
        """Retrieve the owner's context for a free-text query, with the usual fallbacks."""
        return await self._retrieve(
            owner_id,
            query,
            limit if limit is not None else self.search_limit,
            min_score if min_score is not None else self.min_score,
        )

    async def _suggest_targeted(self, owner_id: str, field: FieldDescriptor, form_context: str | None) -> list[SuggestionCandidate]:
        field_key = f"{field.label} {field.name} {field.context or ''}".strip()
        hits = await self._retrieve(owner_id, field_key, FIELD_SEARCH_LIMIT, self.field_min_score)
        if not hits:
            return []

        try:
            generated = await self._generator.generate([field], [hit.chunk for hit in hits], form_context)
        except ProviderUnavailableError as exc:
            self.logging.warning("Targeted generation for field '%s' failed: %s", field.name, exc)
            return []

        candidates = self._mark_fallback(generated, hits).get(field.name, [])
        if candidates:
            await self._context_store.record_access([hits[0].chunk])
        return candidates

    ##########################################
    ############### HELPERS ##################
    ##########################################

    async def _retrieve(self, owner_id: str, query: str, limit: int, min_score: float) -> list[ScoredChunk]:
        try:
            vector = await self._embedding_gateway.embed(query)
        except ProviderUnavailableError as exc:
            self.logging.warning("Embedding of the retrieval query failed: %s. Using recency fallback.", exc)
            return await self._context_store.fallback(owner_id, limit)
        return await self._context_store.search(owner_id, vector, limit, min_score)

    def _mark_fallback(self, generated: dict[str, list[SuggestionCandidate]], hits: list[ScoredChunk]) -> dict[str, list[SuggestionCandidate]]:
        # confidence stays as generated; only the explanation notes the weaker context
        if not hits or not all(hit.from_fallback for hit in hits):
            return generated
        return {
            name: [c.model_copy(update={"explanation": f"{c.explanation} ({FALLBACK_NOTE})" if c.explanation else FALLBACK_NOTE}) for c in candidates]
            for name, candidates in generated.items()
        }

    def _cited_chunks(self, context: list[ContextChunk], generated: dict[str, list[SuggestionCandidate]]) -> list[ContextChunk]:
        sources = {c.source.strip().casefold() for candidates in generated.values() for c in candidates}
        return [chunk for chunk in context if chunk.key.strip().casefold() in sources]
