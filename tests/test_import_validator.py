"""
Tests for import document validation.
"""
import json

import pytest

from app.models.import_schemas import ImportErrorType
from app.services.import_errors import BatchValidationError
from app.services.import_validator import (
    INVALID_JSON_MESSAGE,
    decode_document,
    parse_batch,
    validate_entry,
    validate_import_content,
)


class TestValidateImportContent:
    """Test validate_import_content."""

    def test_valid_document(self, make_batch):
        result = validate_import_content(json.dumps(make_batch()))

        assert result.valid is True
        assert result.errors == []

    def test_accepts_bytes_and_decoded_data(self, make_batch):
        document = make_batch()

        assert validate_import_content(json.dumps(document).encode("utf-8")).valid
        assert validate_import_content(document).valid

    @pytest.mark.parametrize("content", ["{not json", b"\xff\xfe\x00", ""])
    def test_malformed_content_yields_single_generic_error(self, content):
        result = validate_import_content(content)

        assert result.valid is False
        assert result.errors == [INVALID_JSON_MESSAGE]

    def test_missing_properties(self):
        result = validate_import_content('{"source": "x"}')

        assert result.valid is False
        assert result.errors == ["properties: at least one property is required"]

    def test_empty_properties(self):
        result = validate_import_content('{"properties": []}')

        assert result.errors == ["properties: at least one property is required"]

    def test_document_must_be_object(self):
        result = validate_import_content("[1, 2]")

        assert result.errors == ["Import document must be a JSON object"]

    def test_reports_entry_field_errors(self, make_batch, make_entry):
        document = make_batch(make_entry(), make_entry(title="B", basePrice=-5))

        result = validate_import_content(document)

        assert result.valid is False
        assert len(result.errors) == 1
        assert result.errors[0].startswith("properties[1].basePrice:")

    def test_idempotent(self, make_batch, make_entry):
        content = json.dumps(make_batch(make_entry(bedrooms=-1), make_entry(photos=["ftp://x/y.jpg"])))

        assert validate_import_content(content) == validate_import_content(content)


    @pytest.mark.parametrize("field", ["basePrice", "cleaningFee"])
    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
    def test_rejects_non_finite_numbers(self, make_batch, make_entry, field, value):
        content = json.dumps(make_batch(make_entry(**{field: value})))

        result = validate_import_content(content)

        assert result.valid is False
        assert result.errors[0].startswith(f"properties[0].{field}:")

    def test_rejects_overflowing_literal(self, make_batch):
        content = json.dumps(make_batch()).replace('"basePrice": 200', '"basePrice": 1e400')

        result = validate_import_content(content)

        assert result.valid is False


class TestValidateEntry:
    """Test validate_entry."""

    def test_valid_entry(self, make_entry):
        entry, errors = validate_entry(make_entry(amenities=["Wi-Fi", "Pool", "Wi-Fi"]), 0)

        assert errors == []
        assert entry.max_guests == 6
        assert entry.amenities == ["Wi-Fi", "Pool"]

    @pytest.mark.parametrize("field", ["title", "description", "address", "city", "category", "bedrooms",
                                       "bathrooms", "maxGuests", "basePrice"])
    def test_required_fields(self, make_entry, field):
        raw = make_entry()
        del raw[field]

        entry, errors = validate_entry(raw, 2)

        assert entry is None
        assert [e.field for e in errors] == [field]
        assert errors[0].entry_index == 2
        assert errors[0].type == ImportErrorType.VALIDATION

    def test_integer_counts_reject_floats_and_strings(self, make_entry):
        _, errors = validate_entry(make_entry(bedrooms=1.5, bathrooms="2"), 0)

        assert {e.field for e in errors} == {"bedrooms", "bathrooms"}

    def test_base_price_must_be_positive(self, make_entry):
        _, errors = validate_entry(make_entry(basePrice=0), 0)

        assert errors[0].field == "basePrice"

    def test_invalid_media_url(self, make_entry):
        _, errors = validate_entry(make_entry(photos=["not-a-url"]), 0)

        assert errors[0].field == "photos"

    def test_unknown_category(self, make_entry):
        _, errors = validate_entry(make_entry(category="castle"), 0)

        assert errors[0].field == "category"

    def test_error_carries_entry_title(self, make_entry):
        _, errors = validate_entry(make_entry(title="Loft", bedrooms=-1), 4)

        assert errors[0].entry_title == "Loft"

    def test_non_object_entry(self):
        entry, errors = validate_entry("oops", 1)

        assert entry is None
        assert errors[0].message == "Property entry must be an object"


class TestParseBatch:
    """Test batch-level parsing."""

    def test_settings_defaults(self, make_entry):
        envelope = parse_batch({"properties": [make_entry()]})

        assert envelope.settings.skip_duplicates is True
        assert envelope.settings.update_existing is False
        assert envelope.settings.download_media is False

    def test_settings_from_camel_case(self, make_batch):
        envelope = parse_batch(make_batch(updateExisting=True, skipDuplicates=False))

        assert envelope.settings.update_existing is True
        assert envelope.settings.skip_duplicates is False

    def test_entries_stay_raw(self):
        envelope = parse_batch({"properties": [{"title": "only a title"}]})

        assert envelope.properties == [{"title": "only a title"}]

    def test_decode_rejects_invalid_json(self):
        with pytest.raises(BatchValidationError) as exc_info:
            decode_document("{")

        assert exc_info.value.errors == [INVALID_JSON_MESSAGE]
