from abc import ABC, abstractmethod

from shared.models.document import DocumentRecord
from shared.models.suggestion import FormRecord, FormSubmission, SuggestionCandidate


class RecordStoreInterface(ABC):
    """
    Persistence contract for form, document and submission records.

    Every method is scoped by owner_id; records of different owners are never
    returned together. Lookups of unknown ids return None instead of raising,
    the services decide how to surface that.
    """

    ##########################################
    ################ FORMS ###################
    ##########################################

    @abstractmethod
    async def save_form(self, form: FormRecord) -> None:
        pass

    @abstractmethod
    async def get_form(self, owner_id: str, form_id: str) -> FormRecord | None:
        pass

    @abstractmethod
    async def set_field_suggestions(self, owner_id: str, form_id: str, field_name: str, suggestions: list[SuggestionCandidate]) -> None:
        """
        Replace the suggestion list of a single field.

        Only the named field's entry changes, so updates of different fields of
        the same form do not interfere. Concurrent updates of the same field
        are not serialized: the last writer wins.
        """
        pass

    ##########################################
    ############## DOCUMENTS #################
    ##########################################

    @abstractmethod
    async def save_document(self, document: DocumentRecord) -> None:
        pass

    @abstractmethod
    async def get_document(self, owner_id: str, document_id: str) -> DocumentRecord | None:
        pass

    @abstractmethod
    async def get_documents(self, owner_id: str, document_ids: list[str]) -> list[DocumentRecord]:
        """Return the existing documents among document_ids, in the given order."""
        pass

    @abstractmethod
    async def delete_document(self, owner_id: str, document_id: str) -> bool:
        """Returns True if a record was removed."""
        pass

    ##########################################
    ############# SUBMISSIONS ################
    ##########################################

    @abstractmethod
    async def save_submission(self, submission: FormSubmission) -> None:
        pass

    @abstractmethod
    async def list_submissions(self, owner_id: str) -> list[FormSubmission]:
        pass
