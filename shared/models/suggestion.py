"""Pydantic models for autofill suggestions and stored forms."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator

from shared.models.field import FieldDescriptor


class SuggestionCandidate(BaseModel):
    """A proposed value for one field with confidence and provenance."""

    field_name: str
    value: str
    confidence: int = Field(ge=0, le=100)
    source: str = "AI Suggestion"
    explanation: str = ""

    @field_validator("value")
    @classmethod
    def _value_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("suggestion value must not be empty")
        return value


class FormRecord(BaseModel):
    """A detected form with its fields and per-field ranked suggestions."""

    form_id: str
    owner_id: str
    url: str = ""
    domain: str = ""
    fields: list[FieldDescriptor] = []
    suggestions: dict[str, list[SuggestionCandidate]] = {}
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def get_field(self, field_name: str) -> FieldDescriptor | None:
        for field in self.fields:
            if field.name == field_name:
                return field
        return None

    def form_context(self) -> str:
        return f"URL: {self.url} Domain: {self.domain}"


class FormSubmission(BaseModel):
    """Values a user actually submitted for a detected form."""

    form_id: str
    owner_id: str
    fields: list[FieldDescriptor]
    filled_values: dict[str, str]
    url: str = ""
    domain: str = ""
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RefinementResult(BaseModel):
    """Outcome of refining one field."""

    form_id: str
    field_name: str
    refined: list[SuggestionCandidate]
    all_suggestions: list[SuggestionCandidate]
    documents_used: int = 0
