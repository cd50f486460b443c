"""Tests for publishing rights and licensing rules."""

import pytest

from catalog_rules.core.validation import Severity
from catalog_rules.services.rights_rules import REQUIRED_FIELDS, RightsValidator


@pytest.fixture
def validator(now):
    return RightsValidator(now=now)


class TestCreation:

    def test_complete_rights(self, validator, sample_rights):
        result = validator.validate_for_creation(sample_rights)

        assert result.is_valid
        assert result.codes() == []

    def test_required_fields(self, validator):
        result = validator.validate_for_creation({})

        assert result.codes() == ["required_field"] * len(REQUIRED_FIELDS)
        assert tuple(i.field for i in result.errors) == REQUIRED_FIELDS

    def test_right_types(self, validator, sample_rights):
        sample_rights["right_type"] = "comic"
        assert validator.validate_for_creation(sample_rights).codes() == ["invalid_right_type"]

        sample_rights["right_type"] = "translation"
        result = validator.validate_for_creation(sample_rights)
        assert result.is_valid
        assert result.has_code("translation_adaptation_note", Severity.INFO)

    @pytest.mark.parametrize("territory,codes", [
        ("GB", []),
        ("us", ["invalid_territory_code"]),
        ("USA", ["invalid_territory_code"]),
        ("ZA", ["unsupported_territory"]),
        (840, ["invalid_territory_format"]),
    ])
    def test_territory(self, validator, sample_rights, territory, codes):
        sample_rights["territory"] = territory
        assert validator.validate_for_creation(sample_rights).codes() == codes

    @pytest.mark.parametrize("language,codes", [
        ("en-US", []),
        ("pt-BR", []),
        ("EN", ["invalid_language_code"]),
        ("sw", ["unsupported_language"]),
        (["en"], ["invalid_language_format"]),
    ])
    def test_language(self, validator, sample_rights, language, codes):
        sample_rights["language"] = language
        assert validator.validate_for_creation(sample_rights).codes() == codes

    @pytest.mark.parametrize("field,value,code", [
        ("license_type", "rental", "invalid_license_type"),
        ("exclusive", "yes", "invalid_exclusivity_type"),
        ("sublicensing_allowed", 0, "invalid_sublicensing_type"),
        ("currency", "BTC", "invalid_currency"),
        ("status", "void", "invalid_status"),
        ("publication_id", "pub-1", "invalid_publication_id_format"),
    ])
    def test_field_errors(self, validator, sample_rights, field, value, code):
        sample_rights[field] = value
        assert validator.validate_for_creation(sample_rights).codes() == [code]

    def test_worldwide_exclusive_rights(self, validator, sample_rights):
        sample_rights["territory"] = "WORLD"
        result = validator.validate_for_creation(sample_rights)

        assert result.is_valid
        assert result.codes() == ["world_exclusive_rights"]

        sample_rights["exclusive"] = False
        assert validator.validate_for_creation(sample_rights).codes() == []


class TestDates:

    @pytest.mark.parametrize("start,end,code", [
        ("2024-12-01", "2030-02-01", "past_start_date"),
        ("2025-13-45", "2030-02-01", "invalid_start_date"),
        ("2025-02-01", "someday", "invalid_end_date"),
        ("2025-02-01", "2025-01-15", "invalid_date_range"),
        ("2025-02-01", "2025-02-01", "invalid_date_range"),
        ("2025-02-01", "2125-02-02", "very_long_term"),
    ])
    def test_date_rules(self, validator, sample_rights, start, end, code):
        sample_rights["start_date"] = start
        sample_rights["end_date"] = end
        assert validator.validate_for_creation(sample_rights).codes() == [code]

    def test_start_today_is_not_past(self, validator, sample_rights):
        sample_rights["start_date"] = "2025-01-08"
        assert validator.validate_for_creation(sample_rights).codes() == []

    def test_open_ended_term(self, validator, sample_rights):
        del sample_rights["end_date"]
        assert validator.validate_for_creation(sample_rights).codes() == []


class TestFinancialTerms:

    @pytest.mark.parametrize("rate,code", [
        ("20%", "invalid_royalty_rate_type"),
        (-0.1, "negative_royalty_rate"),
        (1.5, "invalid_royalty_rate_range"),
        (0.6, "high_royalty_rate"),
    ])
    def test_royalty_rate(self, validator, sample_rights, rate, code):
        sample_rights["royalty_rate"] = rate
        assert validator.validate_for_creation(sample_rights).codes() == [code]

    def test_no_royalty(self, validator, sample_rights):
        sample_rights["royalty_rate"] = None
        assert validator.validate_for_creation(sample_rights).codes() == []

    @pytest.mark.parametrize("field,value,code", [
        ("advance_amount", "lots", "invalid_advance_amount_type"),
        ("advance_amount", -1, "negative_advance_amount"),
        ("advance_amount", 20_000_000, "very_high_advance"),
        ("minimum_guarantee", "some", "invalid_minimum_guarantee_type"),
        ("minimum_guarantee", -5, "negative_minimum_guarantee"),
    ])
    def test_amounts(self, validator, sample_rights, field, value, code):
        sample_rights[field] = value
        assert validator.validate_for_creation(sample_rights).codes() == [code]


class TestUpdate:

    def test_only_supplied_fields_are_checked(self, validator):
        assert validator.validate_update({}).codes() == []
        assert validator.validate_update({"royalty_rate": 2}, "rights-1").codes() == ["invalid_royalty_rate_range"]

    def test_date_change(self, validator):
        result = validator.validate_update({"start_date": "2026-01-01", "end_date": "2025-06-01"})
        assert result.codes() == ["invalid_date_range"]

    def test_empty_required_value(self, validator):
        assert validator.validate_update({"territory": ""}).codes() == ["missing_territory"]
