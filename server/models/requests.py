from pydantic import BaseModel

from shared.models.field import FieldDescriptor


class DetectFormRequest(BaseModel):
    html: str
    url: str = ""
    domain: str | None = None


class SuggestRequest(BaseModel):
    fields: list[FieldDescriptor]
    form_context: str | None = None


class RefineRequest(BaseModel):
    context_text: str | None = None
    custom_prompt: str | None = None
    document_ids: list[str] = []


class SubmissionRequest(BaseModel):
    filled_values: dict[str, str]
    fields: list[FieldDescriptor] | None = None
    url: str | None = None
    domain: str | None = None


class DocumentSubmitRequest(BaseModel):
    file_name: str
    text: str
    tags: list[str] = []


class ManualContextRequest(BaseModel):
    key: str
    value: str
    tags: list[str] = []


class ContextSearchRequest(BaseModel):
    query: str
    limit: int = 10
    min_score: float | None = None
