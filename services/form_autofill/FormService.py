"""Form lifecycle: detection, lookup and learning from submissions."""

import uuid
from urllib.parse import urlparse

from services.context_store.ContextStoreAdapter import ContextStoreAdapter, make_chunk_id
from services.form_autofill.AutofillService import AutofillService
from services.form_autofill.FieldExtractor import FieldExtractor
from shared.clients.embed.EmbeddingGateway import EmbeddingGateway
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import NotFoundError, ProviderUnavailableError
from shared.models.context import ChunkMetadata, ContextChunk, ContextSource
from shared.models.field import FieldDescriptor
from shared.models.suggestion import FormRecord, FormSubmission
from shared.stores.RecordStoreInterface import RecordStoreInterface


class FormService:
    def __init__(self, helper_config: HelperConfig, record_store: RecordStoreInterface, extractor: FieldExtractor, autofill_service: AutofillService, embedding_gateway: EmbeddingGateway, context_store: ContextStoreAdapter) -> None:
        self.logging = helper_config.get_logger()
        self._record_store = record_store
        self._extractor = extractor
        self._autofill_service = autofill_service
        self._embedding_gateway = embedding_gateway
        self._context_store = context_store

    ##########################################
    ############### DETECTION ################
    ##########################################

    async def detect_form(self, owner_id: str, html: str, url: str = "", domain: str | None = None) -> FormRecord:
        """Extract the fields of a form, suggest values and store the result.

        Every detection creates a new FormRecord with a fresh form_id.
        """
        fields = self._extractor.extract(html)
        form = FormRecord(
            form_id=str(uuid.uuid4()),
            owner_id=owner_id,
            url=url,
            domain=domain or urlparse(url).hostname or "",
            fields=fields,
        )
        if fields:
            form.suggestions = await self._autofill_service.suggest(owner_id, fields, form_context=form.form_context())

        await self._record_store.save_form(form)
        self.logging.info("Detected form %s with %d field(s) on '%s'.", form.form_id, len(fields), form.domain or "unknown domain")
        return form

    async def get_form(self, owner_id: str, form_id: str) -> FormRecord:
        form = await self._record_store.get_form(owner_id, form_id)
        if form is None:
            raise NotFoundError("form", form_id)
        return form

    ##########################################
    ############## SUBMISSIONS ###############
    ##########################################

    async def save_submission(self, owner_id: str, form_id: str, filled_values: dict[str, str], fields: list[FieldDescriptor] | None = None, url: str | None = None, domain: str | None = None) -> tuple[FormSubmission, int]:
        """Store submitted values and learn them as "form" context.

        Fields, URL and domain default to the stored form's. Each non-empty
        value becomes one context chunk keyed by the field label; a later
        submission of the same label overwrites it.

        Returns:
            tuple[FormSubmission, int]: The stored submission and the number of
                context entries written. Context failures are logged, not raised.

        Raises:
            NotFoundError: If no fields are given and the form is unknown.
        """
        form = await self._record_store.get_form(owner_id, form_id)
        if fields is None:
            if form is None:
                raise NotFoundError("form", form_id)
            fields = form.fields
        if url is None:
            url = form.url if form else ""
        if domain is None:
            domain = form.domain if form else urlparse(url).hostname or ""

        submission = FormSubmission(
            form_id=form_id,
            owner_id=owner_id,
            fields=fields,
            filled_values=filled_values,
            url=url,
            domain=domain,
        )
        await self._record_store.save_submission(submission)

        try:
            created = await self._learn_from_submission(owner_id, submission)
        except ProviderUnavailableError as exc:
            self.logging.warning("Could not create context from submission of form %s: %s", form_id, exc)
            created = 0
        return submission, created

    async def _learn_from_submission(self, owner_id: str, submission: FormSubmission) -> int:
        entries = []
        for field in submission.fields:
            value = (submission.filled_values.get(field.name) or "").strip()
            if value:
                entries.append((field, value))
        if not entries:
            return 0

        vectors = await self._embedding_gateway.embed_many([f"{field.label}: {value}" for field, value in entries])
        chunks = [
            ContextChunk(
                id=make_chunk_id(owner_id, ContextSource.FORM.value, field.label.lower()),
                owner_id=owner_id,
                key=field.label,
                text=value,
                tags=[field.context or "form", field.type.value],
                embedding=vector,
                source_kind=ContextSource.FORM,
                metadata=ChunkMetadata(field_name=field.name, field_type=field.type.value),
            )
            for (field, value), vector in zip(entries, vectors)
        ]
        written = await self._context_store.write_many(chunks)
        self.logging.info("Learned %d context entries from submission of form %s.", written, submission.form_id)
        return written
