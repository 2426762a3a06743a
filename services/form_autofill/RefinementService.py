"""Targeted regeneration of one field's suggestions with extra user context."""

from services.form_autofill.AutofillService import AutofillService
from services.form_autofill.SuggestionRanker import SuggestionRanker
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import NotFoundError
from shared.models.document import DocumentRecord, ProcessingStatus
from shared.models.suggestion import RefinementResult
from shared.stores.RecordStoreInterface import RecordStoreInterface

DOCUMENT_EXCERPT_CHARS = 2000
ENHANCED_SUFFIX = " (Enhanced)"


class RefinementService:
    def __init__(self, helper_config: HelperConfig, record_store: RecordStoreInterface, autofill_service: AutofillService, ranker: SuggestionRanker) -> None:
        self.logging = helper_config.get_logger()
        self._record_store = record_store
        self._autofill_service = autofill_service
        self._ranker = ranker

    async def refine(self, owner_id: str, form_id: str, field_name: str, context_text: str | None = None, custom_prompt: str | None = None, document_ids: list[str] | None = None) -> RefinementResult:
        """Regenerate suggestions for one field of a stored form.

        The combined extra context (free text, custom instruction and excerpts
        of completed documents) becomes the field's context for generation.
        New candidates are tagged "(Enhanced)" and placed before at most three
        of the previously stored ones. The merged list replaces the field's
        stored entry.

        Raises:
            NotFoundError: If the form or the field does not exist for the owner.
        """
        form = await self._record_store.get_form(owner_id, form_id)
        if form is None:
            raise NotFoundError("form", form_id)
        field = form.get_field(field_name)
        if field is None:
            raise NotFoundError("field", field_name)

        documents = await self._load_documents(owner_id, document_ids or [])
        parts = [context_text, custom_prompt, self.build_document_context(documents)]
        combined = "\n\n".join(part.strip() for part in parts if part and part.strip())
        if combined:
            field = field.model_copy(update={"context": combined})

        generated = await self._autofill_service.suggest(
            owner_id, [field], form_context=form.form_context(), with_field_help=False
        )
        refined = [
            c.model_copy(update={"source": f"{c.source}{ENHANCED_SUFFIX}"})
            for c in generated.get(field_name, [])
        ]

        previous = form.suggestions.get(field_name, [])
        merged = self._ranker.merge_refined(refined, previous)
        await self._record_store.set_field_suggestions(owner_id, form_id, field_name, merged)

        self.logging.info(
            "Refined field '%s' of form %s: %d new, %d kept, %d document(s) used.",
            field_name, form_id, len(refined), len(merged) - len(refined), len(documents),
        )
        return RefinementResult(
            form_id=form_id,
            field_name=field_name,
            refined=refined,
            all_suggestions=merged,
            documents_used=len(documents),
        )

    async def _load_documents(self, owner_id: str, document_ids: list[str]) -> list[DocumentRecord]:
        if not document_ids:
            return []
        documents = await self._record_store.get_documents(owner_id, document_ids)
        completed = [d for d in documents if d.status == ProcessingStatus.COMPLETED]
        if len(completed) < len(document_ids):
            self.logging.debug(
                "Using %d of %d requested document(s); the rest are missing or not processed.",
                len(completed), len(document_ids),
            )
        return completed

    @staticmethod
    def build_document_context(documents: list[DocumentRecord]) -> str:
        """One block per document: name, bounded excerpt, entities and summary."""
        blocks = []
        for document in documents:
            lines = [
                f"Document: {document.file_name}",
                f"Content: {document.content[:DOCUMENT_EXCERPT_CHARS]}...",
            ]
            if document.extracted_entities:
                entities = ", ".join(f"{e.type}: {e.value}" for e in document.extracted_entities)
                lines.append(f"Entities: {entities}")
            if document.summary:
                lines.append(f"Summary: {document.summary}")
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)
