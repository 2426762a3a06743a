"""
Tests for FieldExtractor.

Covers:
- Label resolution order (aria, labelledby, for, wrapping, sibling, text, placeholder, identifier)
- Skipped controls (hidden, buttons, disabled, disabled fieldsets)
- Type mapping, select and radio options, duplicate names
- Regex extraction when structural parsing is unavailable
"""

import pytest

from services.form_autofill.FieldExtractor import FieldExtractor
from shared.models.field import FieldType


@pytest.fixture
def extractor(helper_config):
    return FieldExtractor(helper_config=helper_config)


def by_name(fields):
    return {field.name: field for field in fields}


# ─── Labels ───────────────────────────────────────────────────────────────────


class TestLabelResolution:
    """Tests for the label strategy chain."""

    def test_identifier_only_email(self, extractor):
        """Test an unlabelled email input gets a label from its name."""
        fields = extractor.extract('<form><input name="email" type="email"></form>')
        assert len(fields) == 1
        assert fields[0].name == "email"
        assert fields[0].label == "Email"
        assert fields[0].type == FieldType.EMAIL

    def test_aria_label_wins(self, extractor):
        """Test aria-label beats an explicit label element."""
        html = '<label for="p">Phone</label><input id="p" name="phone" aria-label="Mobile number">'
        assert extractor.extract(html)[0].label == "Mobile number"

    def test_aria_labelledby(self, extractor):
        """Test aria-labelledby joins the referenced texts."""
        html = '<span id="l1">Work</span><span id="l2">Phone</span><input name="p" aria-labelledby="l1 l2">'
        assert extractor.extract(html)[0].label == "Work Phone"

    def test_label_for(self, extractor):
        """Test <label for> with trailing colon stripped."""
        html = '<div><label for="fn">First name:</label></div><div><input id="fn" name="first_name"></div>'
        assert extractor.extract(html)[0].label == "First name"

    def test_wrapping_label_ignores_option_text(self, extractor):
        """Test wrapping label text excludes the control's own text."""
        html = (
            '<label>Country <select name="country">'
            '<option value="de">Germany</option><option value="fr">France</option>'
            "</select></label>"
        )
        field = extractor.extract(html)[0]
        assert field.label == "Country"
        assert field.type == FieldType.SELECT
        assert field.options == ["de", "fr"]

    def test_preceding_span(self, extractor):
        """Test an immediately preceding span with required marker."""
        html = "<div><span>Company *</span><input name=\"org\"></div>"
        assert extractor.extract(html)[0].label == "Company"

    def test_preceding_sibling_skips_line_break(self, extractor):
        """Test a <br> between label and control does not break adjacency."""
        html = "<div><label>Street</label><br><input name=\"addr1\"></div>"
        assert extractor.extract(html)[0].label == "Street"

    def test_preceding_text(self, extractor):
        """Test free text inside the parent."""
        html = "<div>Your city: <input name=\"c1\"></div>"
        assert extractor.extract(html)[0].label == "Your city"

    def test_preceding_text_reaches_previous_label(self, extractor):
        """Test an unlabeled control after a labeled one takes the nearest label text."""
        html = '<form><label for="a">First</label><input id="a" name="a"><input name="b"></form>'
        fields = by_name(extractor.extract(html))
        assert fields["a"].label == "First"
        assert fields["b"].label == "First"

    def test_short_text_falls_through_to_placeholder(self, extractor):
        """Test text of two characters or fewer is ignored."""
        html = '<div>x <input name="zip_code" placeholder="Postal code"></div>'
        assert extractor.extract(html)[0].label == "Postal code"

    def test_camel_case_identifier(self, extractor):
        """Test label synthesized from a camelCase name."""
        assert extractor.extract('<input name="firstName">')[0].label == "First Name"

    def test_mixed_separator_identifier(self, extractor):
        """Test label synthesized from kebab and snake case."""
        assert extractor.extract('<input name="date-of_birth">')[0].label == "Date Of Birth"

    def test_id_used_when_name_missing(self, extractor):
        """Test the id attribute serves as identifier."""
        field = extractor.extract('<input id="nickname">')[0]
        assert field.name == "nickname"
        assert field.label == "Nickname"


# ─── Filtering ────────────────────────────────────────────────────────────────


class TestFiltering:
    """Tests for skipped controls and de-duplication."""

    def test_skipped_controls(self, extractor):
        """Test hidden, button-like and disabled controls are ignored."""
        html = (
            '<form><input type="hidden" name="csrf">'
            '<input name="a" disabled>'
            '<fieldset disabled><input name="b"></fieldset>'
            '<input type="submit" name="go"><input type="button" name="btn">'
            '<input type="reset" name="r"><input type="image" name="img">'
            '<input name="c"></form>'
        )
        assert [f.name for f in extractor.extract(html)] == ["c"]

    def test_control_without_identifier_dropped(self, extractor):
        """Test a control with neither name nor id is ignored."""
        assert extractor.extract('<input type="text"><input name="kept">')[0].name == "kept"
        assert len(extractor.extract('<input type="text"><input name="kept">')) == 1

    def test_duplicate_names_first_wins(self, extractor):
        """Test the first occurrence of a name is kept."""
        html = '<input name="email" aria-label="Primary"><input name="email" aria-label="Secondary">'
        fields = extractor.extract(html)
        assert len(fields) == 1
        assert fields[0].label == "Primary"

    def test_empty_html(self, extractor):
        """Test blank markup yields no fields."""
        assert extractor.extract("") == []
        assert extractor.extract("   ") == []

    def test_malformed_html_names_unique(self, extractor):
        """Test malformed markup still yields unique, labelled fields."""
        samples = [
            '<form><input name="a" <input name="b"></form',
            "<div><p>Name<input name=name><p>Mail<input name=mail type=email>",
            '<table><tr><td>Phone</td><td><input name="phone" type="tel"></td></tr>',
            '<input name="x"><input name="x"><textarea name="x"></textarea>',
        ]
        for html in samples:
            fields = extractor.extract(html)
            names = [f.name for f in fields]
            assert len(names) == len(set(names))
            assert all(f.label.strip() for f in fields)


# ─── Types and options ────────────────────────────────────────────────────────


class TestTypesAndOptions:
    """Tests for type mapping and option collection."""

    def test_type_mapping(self, extractor):
        """Test known, unknown and element-based types."""
        html = (
            '<input name="when" type="datetime-local">'
            '<input name="colour" type="color">'
            '<textarea name="bio"></textarea>'
            '<input name="agree" type="checkbox">'
        )
        fields = by_name(extractor.extract(html))
        assert fields["when"].type == FieldType.DATETIME_LOCAL
        assert fields["colour"].type == FieldType.TEXT
        assert fields["bio"].type == FieldType.TEXTAREA
        assert fields["agree"].type == FieldType.CHECKBOX

    def test_required_and_readonly(self, extractor):
        """Test boolean attributes are reported."""
        field = extractor.extract('<input name="n" required readonly>')[0]
        assert field.required is True
        assert field.readonly is True

    def test_select_option_text_fallback(self, extractor):
        """Test options without value use their text; empty ones are skipped."""
        html = '<select name="s"><option value=""></option><option>Other</option><option value="x">X</option></select>'
        assert extractor.extract(html)[0].options == ["Other", "x"]

    def test_radio_group(self, extractor):
        """Test a radio group becomes one field with its values as options."""
        html = (
            '<input type="radio" name="size" value="s">'
            '<input type="radio" name="size" value="m">'
            '<input type="radio" name="size" value="l" disabled>'
        )
        fields = extractor.extract(html)
        assert len(fields) == 1
        assert fields[0].type == FieldType.RADIO
        assert fields[0].options == ["s", "m"]


# ─── Degraded mode ────────────────────────────────────────────────────────────


class TestDegradedExtraction:
    """Tests for the regex path."""

    def test_unavailable_parser_falls_back(self, helper_config):
        """Test an unknown parser triggers regex extraction."""
        extractor = FieldExtractor(helper_config=helper_config, parser="no-such-parser")
        html = (
            '<input type="text" name="email"><input type="hidden" name="tok">'
            "<textarea name='bio'></textarea><input name=city disabled>"
        )
        fields = extractor.extract(html)
        assert [f.name for f in fields] == ["email", "bio"]
        assert fields[0].label == "email"
        assert fields[1].type == FieldType.TEXTAREA

    @pytest.mark.parametrize("html", [
        '<fieldset disabled><input name="inner"></fieldset><input name="outer">',
        '<fieldset disabled><fieldset><input name="inner"></fieldset></fieldset><input name="outer">',
        '<fieldset><input name="outer"></fieldset><fieldset disabled><select name="inner"></select></fieldset>',
    ])
    def test_disabled_fieldset_matches_structured(self, extractor, html):
        """Test controls in a disabled fieldset are skipped in both modes."""
        assert [f.name for f in extractor.extract_degraded(html)] == ["outer"]
        assert [f.name for f in extractor.extract(html)] == ["outer"]

    def test_stray_closing_fieldset(self, extractor):
        """Test an unmatched closing fieldset does not hide later controls."""
        html = '</fieldset><input name="a"><fieldset disabled></fieldset><input name="b">'
        assert [f.name for f in extractor.extract_degraded(html)] == ["a", "b"]

    def test_never_raises(self, extractor):
        """Test garbage input returns an empty list."""
        assert extractor.extract_degraded("<<<>>>") == []
        assert extractor.extract_degraded(None) == []


# ─── Helpers ──────────────────────────────────────────────────────────────────


class TestHelpers:
    """Tests for the static label helpers."""

    def test_clean_label(self):
        """Test whitespace collapse and trailing marker removal."""
        assert FieldExtractor.clean_label("  First   name : * ") == "First name"
        assert FieldExtractor.clean_label(" :* ") is None
        assert FieldExtractor.clean_label(None) is None

    def test_humanize_identifier(self):
        """Test identifier splitting."""
        assert FieldExtractor.humanize_identifier("postal_code") == "Postal Code"
        assert FieldExtractor.humanize_identifier("user[phone]") == "User Phone"
