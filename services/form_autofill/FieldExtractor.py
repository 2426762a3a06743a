"""Form field extraction.

Turns arbitrary, possibly malformed HTML into an ordered list of
FieldDescriptor objects, one per fillable input/textarea/select element.

Labels are resolved through a chain of strategies, first non-empty wins:

  1. aria-label
  2. aria-labelledby → text of the referenced element(s)
  3. <label for="ID">
  4. wrapping <label> (without the control's own text)
  5. <label> or non-empty <span> immediately preceding the control
  6. nearest preceding free text inside the parent
  7. placeholder
  8. label synthesized from the identifier ("firstName" → "First Name")
  9. the identifier itself

If structural parsing is unavailable, a regex scan over name= attributes is
used instead. That path never raises.
"""

import re

from bs4 import BeautifulSoup
from bs4.element import Comment, NavigableString, Tag

from shared.helper.HelperConfig import HelperConfig
from shared.models.field import FieldDescriptor, FieldType

SKIPPED_INPUT_TYPES = {"hidden", "submit", "button", "reset", "image"}

INPUT_TYPES: dict[str, FieldType] = {
    "text": FieldType.TEXT,
    "email": FieldType.EMAIL,
    "tel": FieldType.TEL,
    "url": FieldType.URL,
    "password": FieldType.PASSWORD,
    "number": FieldType.NUMBER,
    "date": FieldType.DATE,
    "time": FieldType.TIME,
    "datetime-local": FieldType.DATETIME_LOCAL,
    "month": FieldType.MONTH,
    "week": FieldType.WEEK,
    "checkbox": FieldType.CHECKBOX,
    "radio": FieldType.RADIO,
}

# elements between a label and its control that do not break adjacency
_LAYOUT_ONLY_TAGS = {"br", "hr", "wbr"}
# text inside these never counts as label text
_NON_LABEL_PARENTS = {"script", "style", "option", "optgroup", "select", "textarea", "template", "noscript"}

_WHITESPACE = re.compile(r"\s+")
_TRAILING_MARKERS = re.compile(r"[\s:*]+$")
_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_IDENTIFIER_SEPARATORS = re.compile(r"[-_.\s\[\]]+")

# degraded mode
_FIELD_TAG = re.compile(r"<(/?)(fieldset|input|textarea|select)\b([^>]*)>", re.IGNORECASE)
_TAG_ATTRIBUTE = re.compile(r"""([^\s"'>/=]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+)))?""")


class FieldExtractor:
    """Extracts FieldDescriptors from HTML markup."""

    def __init__(self, helper_config: HelperConfig, parser: str = "html.parser") -> None:
        self.logging = helper_config.get_logger()
        self._parser = parser

    ##########################################
    ################ CORE ####################
    ##########################################

    def extract(self, html: str) -> list[FieldDescriptor]:
        """Extract all fillable fields from an HTML string.

        Args:
            html (str): Raw markup, possibly malformed or a fragment.

        Returns:
            list[FieldDescriptor]: Fields in document order, unique by name.
        """
        if not html or not html.strip():
            return []
        try:
            soup = BeautifulSoup(html, self._parser)
            fields = self._extract_structured(soup)
        except Exception as exc:
            self.logging.warning(
                "Structural HTML parsing failed (%s). Falling back to regex field extraction.", exc
            )
            return self.extract_degraded(html)

        self.logging.debug("Extracted %d form field(s) from %d characters of HTML.", len(fields), len(html))
        return fields

    def extract_degraded(self, html: str) -> list[FieldDescriptor]:
        """Regex-based extraction over name= attributes.

        Labels are the raw identifiers. Never raises; returns whatever was
        found before any problem, possibly an empty list.
        """
        fields: list[FieldDescriptor] = []
        try:
            seen: set[str] = set()
            # one entry per open <fieldset>, True if it is disabled
            fieldsets: list[bool] = []
            for match in _FIELD_TAG.finditer(html or ""):
                closing, tag = match.group(1), match.group(2).lower()
                if tag == "fieldset":
                    if not closing:
                        fieldsets.append("disabled" in self._parse_attributes(match.group(3)))
                    elif fieldsets:
                        fieldsets.pop()
                    continue
                if closing or any(fieldsets):
                    continue
                attributes = self._parse_attributes(match.group(3))
                name = attributes.get("name", "").strip()
                if not name or name in seen:
                    continue
                raw_type = attributes.get("type", "").strip().lower() or "text"
                if tag == "input" and raw_type in SKIPPED_INPUT_TYPES:
                    continue
                if "disabled" in attributes:
                    continue
                seen.add(name)
                fields.append(
                    FieldDescriptor(
                        name=name,
                        label=name,
                        type=self._infer_type(tag, raw_type),
                        required="required" in attributes,
                        readonly="readonly" in attributes,
                        placeholder=attributes.get("placeholder", "").strip() or None,
                    )
                )
        except Exception as exc:
            self.logging.error("Regex field extraction stopped early: %s", exc)
        return fields

    ##########################################
    ############## STRUCTURED ################
    ##########################################

    def _extract_structured(self, soup: BeautifulSoup) -> list[FieldDescriptor]:
        fields: list[FieldDescriptor] = []
        seen: set[str] = set()
        for element in soup.find_all(["input", "textarea", "select"]):
            field = self._build_descriptor(element, soup)
            if field is None:
                continue
            if field.name in seen:
                # first occurrence wins (e.g. the rest of a radio group)
                continue
            seen.add(field.name)
            fields.append(field)
        return fields

    def _build_descriptor(self, element: Tag, soup: BeautifulSoup) -> FieldDescriptor | None:
        tag = element.name.lower()
        raw_type = self._attr(element, "type").lower() or "text"
        if tag == "input" and raw_type in SKIPPED_INPUT_TYPES:
            return None
        if self._is_disabled(element):
            return None

        identifier = self._attr(element, "name") or self._attr(element, "id")
        if not identifier:
            return None

        field_type = self._infer_type(tag, raw_type)
        placeholder = self._attr(element, "placeholder") or None
        label = self._resolve_label(element, soup, identifier, placeholder)

        options = None
        if field_type == FieldType.SELECT:
            options = self._select_options(element)
        elif field_type == FieldType.RADIO:
            options = self._radio_options(soup, identifier)

        return FieldDescriptor(
            name=identifier,
            label=label,
            type=field_type,
            required=element.has_attr("required"),
            readonly=element.has_attr("readonly"),
            placeholder=placeholder,
            options=options,
        )

    def _infer_type(self, tag: str, raw_type: str) -> FieldType:
        if tag == "textarea":
            return FieldType.TEXTAREA
        if tag == "select":
            return FieldType.SELECT
        return INPUT_TYPES.get(raw_type, FieldType.TEXT)

    def _is_disabled(self, element: Tag) -> bool:
        if element.has_attr("disabled"):
            return True
        return any(parent.has_attr("disabled") for parent in element.find_parents("fieldset"))

    def _select_options(self, element: Tag) -> list[str] | None:
        options = []
        for option in element.find_all("option"):
            value = self._attr(option, "value") or option.get_text(strip=True)
            if value:
                options.append(value)
        return options or None

    def _radio_options(self, soup: BeautifulSoup, name: str) -> list[str] | None:
        options = []
        for radio in soup.find_all("input", attrs={"name": name}):
            if self._attr(radio, "type").lower() != "radio" or self._is_disabled(radio):
                continue
            value = self._attr(radio, "value")
            if value and value not in options:
                options.append(value)
        return options or None

    ##########################################
    ################ LABELS ##################
    ##########################################

    def _resolve_label(self, element: Tag, soup: BeautifulSoup, identifier: str, placeholder: str | None) -> str:
        label = self.clean_label(self._attr(element, "aria-label"))
        if label:
            return label

        label = self._label_from_labelledby(element, soup)
        if label:
            return label

        label = self._label_from_for(element, soup)
        if label:
            return label

        label = self._label_from_wrapping(element)
        if label:
            return label

        label = self._label_from_preceding_sibling(element)
        if label:
            return label

        label = self._label_from_preceding_text(element)
        if label:
            return label

        label = self.clean_label(placeholder)
        if label:
            return label

        return self.clean_label(self.humanize_identifier(identifier)) or identifier

    def _label_from_labelledby(self, element: Tag, soup: BeautifulSoup) -> str | None:
        texts = []
        for ref_id in self._attr(element, "aria-labelledby").split():
            referenced = soup.find(id=ref_id)
            if referenced is not None:
                texts.append(referenced.get_text(" "))
        return self.clean_label(" ".join(texts))

    def _label_from_for(self, element: Tag, soup: BeautifulSoup) -> str | None:
        element_id = self._attr(element, "id")
        if not element_id:
            return None
        for label in soup.find_all("label", attrs={"for": element_id}):
            text = self.clean_label(label.get_text(" "))
            if text:
                return text
        return None

    def _label_from_wrapping(self, element: Tag) -> str | None:
        wrapper = element.find_parent("label")
        if wrapper is None:
            return None
        parts = [
            str(text)
            for text in wrapper.find_all(string=True)
            if self._is_label_text(text) and element not in text.parents
        ]
        return self.clean_label(" ".join(parts))

    def _label_from_preceding_sibling(self, element: Tag) -> str | None:
        for sibling in element.previous_siblings:
            if isinstance(sibling, Comment):
                continue
            if isinstance(sibling, NavigableString):
                if sibling.strip():
                    return None
                continue
            if sibling.name in _LAYOUT_ONLY_TAGS:
                continue
            if sibling.name in ("label", "span"):
                return self.clean_label(sibling.get_text(" "))
            return None
        return None

    def _label_from_preceding_text(self, element: Tag) -> str | None:
        # may pick up the text of an earlier control's <label>; an unlabeled
        # control directly after a labeled one inherits its wording
        parent = element.parent
        if parent is None:
            return None
        for node in element.previous_elements:
            if node is parent:
                break
            if not isinstance(node, NavigableString) or not self._is_label_text(node):
                continue
            text = node.strip()
            if not text:
                continue
            # only the nearest text counts; very short fragments are noise
            return self.clean_label(text) if len(text) > 2 else None
        return None

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def clean_label(text: str | None) -> str | None:
        """Collapse whitespace and strip trailing ':' / '*' markers.

        Returns:
            str | None: The normalized label, None if nothing is left.
        """
        if not text:
            return None
        cleaned = _WHITESPACE.sub(" ", text).strip()
        cleaned = _TRAILING_MARKERS.sub("", cleaned).strip()
        return cleaned or None

    @staticmethod
    def humanize_identifier(identifier: str) -> str:
        """Synthesize a label from an identifier.

        Splits camelCase, kebab-case and snake_case and title-cases each word,
        e.g. "firstName" → "First Name", "postal_code" → "Postal Code".
        """
        spaced = _CAMEL_BOUNDARY.sub(r"\1 \2", identifier)
        words = [word for word in _IDENTIFIER_SEPARATORS.split(spaced) if word]
        return " ".join(word[:1].upper() + word[1:] for word in words)

    @staticmethod
    def _attr(element: Tag, name: str) -> str:
        value = element.get(name)
        if isinstance(value, list):
            value = " ".join(value)
        return value.strip() if value else ""

    @staticmethod
    def _is_label_text(node: NavigableString) -> bool:
        if isinstance(node, Comment):
            return False
        return node.parent is not None and node.parent.name not in _NON_LABEL_PARENTS

    @staticmethod
    def _parse_attributes(raw: str) -> dict[str, str]:
        attributes: dict[str, str] = {}
        for match in _TAG_ATTRIBUTE.finditer(raw or ""):
            key = match.group(1).lower()
            value = next((g for g in match.group(2, 3, 4) if g is not None), "")
            attributes.setdefault(key, value)
        return attributes
