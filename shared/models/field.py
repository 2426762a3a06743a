"""Pydantic models for detected form fields."""

from enum import Enum

from pydantic import BaseModel, field_validator


class FieldType(str, Enum):
    """Closed set of field types the extractor can report."""

    TEXT = "text"
    EMAIL = "email"
    TEL = "tel"
    URL = "url"
    PASSWORD = "password"
    NUMBER = "number"
    DATE = "date"
    TIME = "time"
    DATETIME_LOCAL = "datetime-local"
    MONTH = "month"
    WEEK = "week"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"


class FieldDescriptor(BaseModel):
    """Normalized representation of one detected form input.

    Attributes:
        name:        Stable identifier, unique within one form.
        label:       Human-readable label, never empty.
        type:        Inferred field type.
        required:    Whether the control carries the required attribute.
        readonly:    Whether the control carries the readonly attribute.
        placeholder: Placeholder text, if any.
        options:     Ordered choices, only for select and radio fields.
        context:     Optional free text describing the field further.
    """

    name: str
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    readonly: bool = False
    placeholder: str | None = None
    options: list[str] | None = None
    context: str | None = None

    @field_validator("name", "label")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value
