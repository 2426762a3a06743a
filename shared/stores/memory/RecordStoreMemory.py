"""In-process record store.

Suitable for a single API worker and for tests. Records are deep-copied on
the way in and out so callers never share mutable state with the store.
"""

from datetime import datetime, timezone

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentRecord
from shared.models.suggestion import FormRecord, FormSubmission, SuggestionCandidate
from shared.stores.RecordStoreInterface import RecordStoreInterface


class RecordStoreMemory(RecordStoreInterface):
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._forms: dict[tuple[str, str], FormRecord] = {}
        self._documents: dict[tuple[str, str], DocumentRecord] = {}
        self._submissions: dict[str, list[FormSubmission]] = {}

    ################ FORMS ###################
    async def save_form(self, form: FormRecord) -> None:
        self._forms[(form.owner_id, form.form_id)] = form.model_copy(deep=True)

    async def get_form(self, owner_id: str, form_id: str) -> FormRecord | None:
        form = self._forms.get((owner_id, form_id))
        return form.model_copy(deep=True) if form else None

    async def set_field_suggestions(self, owner_id: str, form_id: str, field_name: str, suggestions: list[SuggestionCandidate]) -> None:
        form = self._forms.get((owner_id, form_id))
        if form is None:
            self.logging.warning("Cannot update suggestions: form %s not found for owner %s.", form_id, owner_id)
            return
        form.suggestions[field_name] = [s.model_copy() for s in suggestions]

    ############## DOCUMENTS #################
    async def save_document(self, document: DocumentRecord) -> None:
        stored = document.model_copy(deep=True)
        stored.updated_at = datetime.now(timezone.utc)
        self._documents[(document.owner_id, document.document_id)] = stored

    async def get_document(self, owner_id: str, document_id: str) -> DocumentRecord | None:
        document = self._documents.get((owner_id, document_id))
        return document.model_copy(deep=True) if document else None

    async def get_documents(self, owner_id: str, document_ids: list[str]) -> list[DocumentRecord]:
        documents = []
        for document_id in document_ids:
            document = self._documents.get((owner_id, document_id))
            if document:
                documents.append(document.model_copy(deep=True))
        return documents

    async def delete_document(self, owner_id: str, document_id: str) -> bool:
        return self._documents.pop((owner_id, document_id), None) is not None

    ############# SUBMISSIONS ################
    async def save_submission(self, submission: FormSubmission) -> None:
        self._submissions.setdefault(submission.owner_id, []).append(submission.model_copy(deep=True))

    async def list_submissions(self, owner_id: str) -> list[FormSubmission]:
        return [s.model_copy(deep=True) for s in self._submissions.get(owner_id, [])]
