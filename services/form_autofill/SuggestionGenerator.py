"""Prompt assembly and parsing of model output into SuggestionCandidates."""

import json
import math
from typing import Any

from pydantic import ValidationError

from shared.clients.llm.GenerativeGateway import GenerativeGateway
from shared.helper.HelperConfig import HelperConfig
from shared.models.context import ContextChunk
from shared.models.field import FieldDescriptor, FieldType
from shared.models.suggestion import SuggestionCandidate

DEFAULT_SOURCE = "AI Suggestion"
FIELD_HELP_SOURCE = "Field Help"

SYSTEM_PROMPT = (
    "You help a user fill in web forms. You suggest values for form fields using only the "
    "personal context entries you are given. Never invent personal data that is not backed "
    "by the context. You always answer with JSON."
)

RESPONSE_FORMAT = """Answer with a JSON object of this shape:
{
  "suggestions": [
    {
      "fieldName": "<fieldName of the field>",
      "suggestedValue": "<value to enter>",
      "confidence": <integer 0-100>,
      "source": "<key of the context entry the value comes from>",
      "reasoning": "<one short sentence>"
    }
  ]
}
Several suggestions per field are allowed, best first. Leave out fields you cannot fill.
For select and radio fields the value must be one of the listed options."""


class SuggestionGenerator:
    """Turns fields plus retrieved context into candidate values per field."""

    def __init__(self, helper_config: HelperConfig, generative_gateway: GenerativeGateway) -> None:
        self.logging = helper_config.get_logger()
        self._gateway = generative_gateway

    ##########################################
    ################ CORE ####################
    ##########################################

    async def generate(self, fields: list[FieldDescriptor], context: list[ContextChunk], form_context: str | None = None) -> dict[str, list[SuggestionCandidate]]:
        """Ask the generative model for candidates for every field.

        Args:
            fields (list[FieldDescriptor]): Fields to fill.
            context (list[ContextChunk]): Retrieved user context.
            form_context (str | None): E.g. "URL: ... Domain: ...".

        Returns:
            dict[str, list[SuggestionCandidate]]: Valid candidates per field name,
                in model order. Fields without valid candidates are absent.

        Raises:
            ProviderUnavailableError: If the generative backend fails.
        """
        if not fields:
            return {}
        prompt = self.build_prompt(fields, context, form_context)
        raw = await self._gateway.generate_json(prompt, system_prompt=SYSTEM_PROMPT)
        candidates = self.parse_candidates(raw, fields)
        self.logging.debug(
            "Generated candidates for %d of %d field(s) from %d context entries.",
            len(candidates), len(fields), len(context),
        )
        return candidates

    def build_prompt(self, fields: list[FieldDescriptor], context: list[ContextChunk], form_context: str | None = None) -> str:
        """Build the user prompt. Embeddings and owner ids never enter it."""
        field_specs = []
        for field in fields:
            spec: dict[str, Any] = {
                "fieldName": field.name,
                "label": field.label,
                "type": field.type.value,
                "required": field.required,
            }
            if field.placeholder:
                spec["placeholder"] = field.placeholder
            if field.options:
                spec["options"] = field.options
            if field.context:
                spec["context"] = field.context
            field_specs.append(spec)

        sections = []
        if form_context:
            sections.append(f"Form: {form_context}")
        sections.append("Fields:\n" + json.dumps(field_specs, indent=2, ensure_ascii=False))
        if context:
            entries = [chunk.prompt_view() for chunk in context]
            sections.append("User context:\n" + json.dumps(entries, indent=2, ensure_ascii=False))
        else:
            sections.append("User context: none available.")
        sections.append(RESPONSE_FORMAT)
        return "\n\n".join(sections)

    ##########################################
    ############### PARSING ##################
    ##########################################

    def parse_candidates(self, raw: Any, fields: list[FieldDescriptor]) -> dict[str, list[SuggestionCandidate]]:
        """Validate untrusted model output.

        Accepts a JSON array of items or an object with a "suggestions" array.
        Items need a known fieldName, a non-empty suggestedValue and a numeric
        confidence in [0, 100]. Extra keys are ignored, invalid items dropped.
        """
        if isinstance(raw, dict):
            items = raw.get("suggestions")
        else:
            items = raw
        if not isinstance(items, list):
            self.logging.warning("Generative reply has an unexpected shape (%s). Ignoring it.", type(raw).__name__)
            return {}

        known_fields = {field.name for field in fields}
        result: dict[str, list[SuggestionCandidate]] = {}
        dropped = 0
        for item in items:
            candidate = self._to_candidate(item, known_fields)
            if candidate is None:
                dropped += 1
                continue
            result.setdefault(candidate.field_name, []).append(candidate)

        if dropped:
            self.logging.warning("Dropped %d invalid suggestion item(s) from the generative reply.", dropped)
        return result

    def _to_candidate(self, item: Any, known_fields: set[str]) -> SuggestionCandidate | None:
        if not isinstance(item, dict):
            return None

        field_name = item.get("fieldName")
        if not isinstance(field_name, str) or field_name not in known_fields:
            return None

        value = item.get("suggestedValue")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str) or not value.strip():
            return None

        confidence = item.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            return None
        if not math.isfinite(confidence) or not 0 <= confidence <= 100:
            return None

        source = item.get("source")
        explanation = item.get("reasoning", item.get("explanation"))
        try:
            return SuggestionCandidate(
                field_name=field_name,
                value=value.strip(),
                confidence=round(confidence),
                source=source.strip() if isinstance(source, str) and source.strip() else DEFAULT_SOURCE,
                explanation=explanation if isinstance(explanation, str) else "",
            )
        except ValidationError:
            return None

    ##########################################
    ############## FIELD HELP ################
    ##########################################

    def field_help(self, field: FieldDescriptor) -> SuggestionCandidate:
        """A zero-confidence "how to fill this" hint picked by keyword."""
        text = f"{field.name} {field.label}".lower()

        if field.type == FieldType.EMAIL or "email" in text:
            hint = "Enter your email address"
        elif field.type == FieldType.TEL or "phone" in text or "tel" in text:
            hint = "Enter your phone number"
        elif "company" in text or "organization" in text or "employer" in text:
            # before "name", so "Company Name" is not taken for a person's name
            hint = "Enter your company name"
        elif "name" in text:
            if "first" in text:
                hint = "Enter your first name"
            elif "last" in text:
                hint = "Enter your last name"
            else:
                hint = "Enter your name"
        elif "address" in text:
            hint = "Enter your street address" if "street" in text else "Enter your address"
        elif "city" in text:
            hint = "Enter your city"
        elif "state" in text or "province" in text or "region" in text:
            hint = "Enter your state/province"
        elif "zip" in text or "postal" in text or "postcode" in text:
            hint = "Enter your postal code"
        else:
            hint = f"Enter {field.label.lower()}"

        return SuggestionCandidate(
            field_name=field.name,
            value=hint,
            confidence=0,
            source=FIELD_HELP_SOURCE,
            explanation="No matching context was found for this field.",
        )
