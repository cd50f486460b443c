"""Tests for publication metadata rules."""

import pytest

from catalog_rules.core.validation import Severity
from catalog_rules.services.publication_rules import PublicationValidator


@pytest.fixture
def validator():
    return PublicationValidator()


class TestCreation:

    def test_complete_publication(self, validator, sample_publication):
        result = validator.validate_for_creation(sample_publication)

        assert result.is_valid
        assert result.codes() == []

    def test_required_fields(self, validator):
        result = validator.validate_for_creation({"title": "  "})

        fields = [i.field for i in result.errors if i.code == "required_field"]
        assert fields == ["title", "publication_type", "language"]

    def test_strict_required_fields(self, validator):
        publication = {"title": "River of Quiet Stars", "publication_type": "ebook", "language": "en"}

        assert validator.validate_for_creation(publication).is_valid
        strict = validator.validate_for_creation(publication, strict=True)
        assert [i.field for i in strict.errors] == ["description", "genre", "target_audience"]

    def test_advisory_fields_warn_when_absent(self, validator):
        publication = {"title": "River of Quiet Stars", "publication_type": "ebook", "language": "en"}
        result = validator.validate_for_creation(publication)

        assert result.codes(Severity.WARNING) == [
            "missing_genre", "missing_target_audience", "missing_pricing", "missing_territories",
        ]

    def test_title_rules(self, validator, sample_publication):
        sample_publication["title"] = "Draft [temp]"
        result = validator.validate_for_creation(sample_publication)

        assert result.has_code("title_invalid_chars", Severity.ERROR)
        assert result.has_code("suspicious_title", Severity.WARNING)

    def test_description_rules(self, validator, sample_publication):
        sample_publication["description"] = "<p>Short</p>"
        result = validator.validate_for_creation(sample_publication)

        assert result.has_code("description_too_short")
        assert result.has_code("description_contains_html")

    def test_invalid_enumerations(self, validator, sample_publication):
        sample_publication.update({
            "publication_type": "scroll",
            "language": "xx",
            "target_audience": "robots",
            "status": "lost",
        })
        result = validator.validate_for_creation(sample_publication)

        for code in ("invalid_publication_type", "invalid_language", "invalid_target_audience", "invalid_status"):
            assert result.has_code(code, Severity.ERROR)

    def test_pricing(self, validator, sample_publication):
        sample_publication["pricing"] = {
            "USD": {"retail_price": 0.5, "wholesale_price": 0.6},
            "XYZ": {"retail_price": 1},
            "EUR": {"retail_price": -1},
        }
        result = validator.validate_for_creation(sample_publication)

        assert result.has_code("low_price_warning")
        assert result.has_code("wholesale_retail_mismatch")
        assert result.has_code("invalid_currency", Severity.ERROR)
        assert result.has_code("invalid_retail_price", Severity.ERROR)

    def test_territories(self, validator, sample_publication):
        sample_publication["territories"] = ["US", "US", "usa", 7]
        result = validator.validate_for_creation(sample_publication)

        assert result.has_code("invalid_territory_code")
        assert result.has_code("invalid_territory_format")
        assert result.has_code("duplicate_territories", Severity.WARNING)

    def test_keywords_and_bisac(self, validator, sample_publication):
        sample_publication["keywords"] = ["a"] + ["keyword"] * 20
        sample_publication["bisac_categories"] = ["FIC019000", "FIC1", "FIC000000", "FIC002000"]
        result = validator.validate_for_creation(sample_publication)

        assert result.has_code("too_many_keywords", Severity.WARNING)
        assert result.has_code("keyword_too_short", Severity.ERROR)
        assert result.has_code("too_many_bisac_categories", Severity.WARNING)
        assert result.has_code("invalid_bisac_code", Severity.ERROR)

    def test_isbn_checksums(self, validator, sample_publication):
        sample_publication.update({"isbn_13": "9780306406158", "isbn_10": "0306406153"})
        result = validator.validate_for_creation(sample_publication)

        assert result.has_code("invalid_isbn13_checksum")
        assert result.has_code("invalid_isbn10_checksum")


class TestPublishing:

    def test_ready_to_publish(self, validator, sample_publication):
        assert validator.validate_for_publishing(sample_publication).is_valid

    def test_print_format_requires_isbn(self, validator, sample_publication):
        sample_publication["publication_type"] = "paperback"
        del sample_publication["isbn_13"]

        assert validator.validate_for_publishing(sample_publication).has_code("missing_isbn", Severity.ERROR)

    def test_missing_chapters(self, validator, sample_publication):
        sample_publication["chapters"] = []
        assert validator.validate_for_publishing(sample_publication).has_code("missing_chapters")

    def test_audiobook_needs_no_chapters(self, validator, sample_publication):
        sample_publication.update({"publication_type": "audiobook", "chapters": []})
        assert validator.validate_for_publishing(sample_publication).is_valid

    def test_short_ebook(self, validator, sample_publication):
        sample_publication["word_count"] = 800
        result = validator.validate_for_publishing(sample_publication)

        assert result.is_valid
        assert result.has_code("low_word_count", Severity.WARNING)


class TestUpdate:

    def test_only_supplied_fields_are_checked(self, validator):
        """Absent fields are not reported as missing."""
        result = validator.validate_update({"description": "A lyrical novel about two sisters and the night sky."})

        assert result.is_valid
        assert result.codes() == []

    def test_invalid_update(self, validator):
        result = validator.validate_update({"title": "", "language": "klingon"}, publication_id="pub-1")

        assert result.has_code("invalid_title")
        assert result.has_code("invalid_language")

    def test_update_status(self, validator):
        assert validator.validate_update({"status": "published"}).is_valid
        assert validator.validate_update({"status": "gone"}).has_code("invalid_status")


def test_isbn_helpers(validator):
    assert validator.convert_isbn10_to_13("0306406152") == "9780306406157"
    assert validator.format_isbn("9780306406157") == "978-0-30-640615-7"
