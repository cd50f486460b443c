"""Tests for field-level validators."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from catalog_rules.core.validation import Severity
from catalog_rules.utils.validators import (
    AudioSpecValidator,
    DateValidator,
    DuplicateDetector,
    EmailValidator,
    ISBNValidator,
    ISRCValidator,
    LanguageValidator,
    PhoneValidator,
    TerritoryValidator,
    UPCValidator,
    URLValidator,
    is_integer,
    is_number,
    is_uuid,
)

_rng = random.Random(20250110)
UPC_PREFIXES = ["00000000000", "99999999999", "03600029145"] + [
    "".join(_rng.choice("0123456789") for _ in range(11)) for _ in range(60)
]
ISBN10_PREFIXES = ["000000000", "999999999", "080442957", "000000006", "000000040"] + [
    "".join(_rng.choice("0123456789") for _ in range(9)) for _ in range(60)
]


class TestUPCValidator:
    """UPC checksum validation."""

    def test_valid_upc(self):
        assert UPCValidator.is_valid("036000291452")

    def test_wrong_check_digit(self):
        assert not UPCValidator.is_valid("036000291453")

    def test_separators_are_ignored(self):
        assert UPCValidator.is_valid("0-36000-29145-2")

    @pytest.mark.parametrize("upc", [None, "", "12345", "0360002914521"])
    def test_malformed(self, upc):
        assert not UPCValidator.is_valid(upc)

    def test_only_the_computed_check_digit_is_accepted(self):
        """Exactly one of the ten possible final digits passes."""
        prefix = "03600029145"
        accepted = [d for d in range(10) if UPCValidator.is_valid(f"{prefix}{d}")]

        assert accepted == [UPCValidator.calculate_check_digit(prefix)] == [2]

    @pytest.mark.parametrize("prefix", UPC_PREFIXES)
    def test_exactly_one_final_digit_per_prefix(self, prefix):
        accepted = [d for d in range(10) if UPCValidator.is_valid(f"{prefix}{d}")]

        assert accepted == [UPCValidator.calculate_check_digit(prefix)]
        full = f"{prefix}{accepted[0]}"
        assert sum(int(c) * (3 if i % 2 == 0 else 1) for i, c in enumerate(full)) % 10 == 0


class TestISRCValidator:
    """ISRC format checks."""

    def test_valid(self):
        assert ISRCValidator.is_valid_format("USRC17607839")
        assert ISRCValidator.validate("USRC17607839") == []

    def test_hyphenated(self):
        assert ISRCValidator.is_valid_format("US-RC1-76-07839")

    def test_invalid_issue(self):
        issues = ISRCValidator.validate("US12")

        assert len(issues) == 1
        assert issues[0].code == "invalid_isrc_format"
        assert issues[0].severity == Severity.ERROR

    def test_missing_is_not_an_error(self):
        assert ISRCValidator.validate(None) == []

    def test_parse_components(self):
        assert ISRCValidator.parse_components("USRC17607839") == {
            "country_code": "US",
            "registrant_code": "RC1",
            "year": "76",
            "designation": "07839",
        }


class TestISBNValidator:
    """ISBN-10/13 validation and conversion."""

    def test_valid_isbn13(self):
        assert ISBNValidator.is_valid_isbn13("978-0-306-40615-7")
        assert ISBNValidator.validate_isbn13("9780306406157") == []

    def test_isbn13_checksum(self):
        issues = ISBNValidator.validate_isbn13("9780306406158")
        assert [issue.code for issue in issues] == ["invalid_isbn13_checksum"]

    def test_isbn13_prefix(self):
        # Valid checksum, unknown prefix
        clean = "123456789012"
        isbn = clean + str(ISBNValidator.isbn13_check_digit(clean))
        issues = ISBNValidator.validate_isbn13(isbn)

        assert [issue.code for issue in issues] == ["invalid_isbn13_prefix"]

    def test_isbn13_length(self):
        issues = ISBNValidator.validate_isbn13("97803064")
        assert [issue.code for issue in issues] == ["invalid_isbn13_length"]

    def test_valid_isbn10_with_x(self):
        assert ISBNValidator.is_valid_isbn10("080442957X")
        assert ISBNValidator.validate_isbn10("0-8044-2957-x") == []

    def test_isbn10_checksum(self):
        issues = ISBNValidator.validate_isbn10("0306406153")
        assert [issue.code for issue in issues] == ["invalid_isbn10_checksum"]

    def test_convert_isbn10_to_isbn13(self):
        converted = ISBNValidator.convert_isbn10_to_isbn13("0306406152")

        assert converted == "9780306406157"
        assert ISBNValidator.is_valid_isbn13(converted)

    def test_convert_rejects_invalid_isbn10(self):
        with pytest.raises(ValueError):
            ISBNValidator.convert_isbn10_to_isbn13("0306406153")

    @pytest.mark.parametrize("prefix", ISBN10_PREFIXES)
    def test_isbn10_sweep_converts_to_valid_isbn13(self, prefix):
        """One final character per prefix is valid and converts to a valid 978 ISBN-13."""
        accepted = [c for c in "0123456789X" if ISBNValidator.is_valid_isbn10(prefix + c)]
        assert len(accepted) == 1

        isbn10 = prefix + accepted[0]
        values = [10 if c == "X" else int(c) for c in isbn10]
        assert sum(value * (10 - i) for i, value in enumerate(values)) % 11 == 0

        isbn13 = ISBNValidator.convert_isbn10_to_isbn13(isbn10)
        assert isbn13.startswith("978" + prefix)
        assert ISBNValidator.is_valid_isbn13(isbn13)
        assert sum(int(c) * (1 if i % 2 == 0 else 3) for i, c in enumerate(isbn13)) % 10 == 0

    @pytest.mark.parametrize("isbn10", ["080442957X", "000000006X", "000000040X", "0-8044-2957-x"])
    def test_x_check_digits_convert(self, isbn10):
        assert ISBNValidator.is_valid_isbn10(isbn10)
        assert ISBNValidator.is_valid_isbn13(ISBNValidator.convert_isbn10_to_isbn13(isbn10))

    def test_format(self):
        assert ISBNValidator.format_isbn("9780306406157") == "978-0-30-640615-7"
        assert ISBNValidator.format_isbn("0306406152") == "0-30-640615-2"
        assert ISBNValidator.format_isbn("12345") == "12345"


class TestAudioSpecValidator:

    def test_mp3_bitrate_levels(self):
        assert [i.code for i in AudioSpecValidator.validate_mp3_bitrate(96)] == ["mp3_bitrate_too_low"]

        suboptimal = AudioSpecValidator.validate_mp3_bitrate(256)
        assert [i.code for i in suboptimal] == ["mp3_bitrate_suboptimal"]
        assert suboptimal[0].severity == Severity.WARNING

        assert AudioSpecValidator.validate_mp3_bitrate(320) == []

    def test_format_normalization(self):
        assert AudioSpecValidator.normalize_format(".FLAC") == "flac"
        assert AudioSpecValidator.is_lossless("WAV")
        assert not AudioSpecValidator.is_lossless("mp3")
        assert AudioSpecValidator.normalize_format(None) is None


class TestDateValidator:

    def test_iso_with_zulu(self):
        assert DateValidator.parse("2025-02-07T10:00:00Z") == datetime(2025, 2, 7, 10, 0, 0)

    def test_aware_datetime_is_converted_to_utc(self):
        aware = datetime(2025, 2, 7, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert DateValidator.parse(aware) == datetime(2025, 2, 7, 10, 0)

    def test_common_formats(self):
        assert DateValidator.parse("2025/02/07") == datetime(2025, 2, 7)

    @pytest.mark.parametrize("value", [None, "", "not a date", True, 20250207])
    def test_unparseable(self, value):
        assert DateValidator.parse(value) is None
        assert not DateValidator.is_valid(value)


class TestContactValidators:

    def test_email(self):
        assert EmailValidator.is_valid("artist@example.com")
        assert not EmailValidator.is_valid("artist@example")
        assert not EmailValidator.is_valid(None)

    def test_valid_phone(self):
        assert PhoneValidator.validate("+1 650-253-0000") == []

    def test_invalid_phone_is_a_warning(self):
        issues = PhoneValidator.validate("not a phone")

        assert [issue.code for issue in issues] == ["invalid_phone"]
        assert issues[0].severity == Severity.WARNING

    def test_url(self):
        assert URLValidator.is_valid("https://instagram.com/nightowl")
        assert not URLValidator.is_valid("instagram nightowl")


class TestCodes:

    def test_territory_codes(self):
        assert TerritoryValidator.is_valid_code("US")
        assert not TerritoryValidator.is_valid_code("usa")
        assert not TerritoryValidator.is_valid_code(1)

    def test_language_codes(self):
        assert LanguageValidator.is_valid_iso639_1("en")
        assert LanguageValidator.is_valid_iso639_1("pt-BR")
        assert not LanguageValidator.is_valid_iso639_1("EN")
        assert LanguageValidator.base_language("pt-BR") == "pt"

    def test_short_text_is_not_detected(self):
        assert LanguageValidator.detect_language("la la") is None


def test_duplicate_detection_ignores_leading_articles():
    """Leading articles and punctuation do not distinguish titles."""
    assert DuplicateDetector.similarity_score("The Night Drive", "night drive!") == 1.0
    assert DuplicateDetector.is_potential_duplicate("The Night Drive", "Night Drive")
    assert not DuplicateDetector.is_potential_duplicate("Night Drive", "Morning Swim")


def test_numeric_helpers():
    assert is_integer(3) and is_integer(3.0)
    assert not is_integer(True) and not is_integer(3.5)
    assert is_number(2.5)
    assert not is_number(float("nan")) and not is_number("2")


@pytest.mark.parametrize("value,expected", [
    ("550e8400-e29b-41d4-a716-446655440010", True),
    ("550E8400-E29B-41D4-A716-446655440010", True),
    ("550e8400e29b41d4a716446655440010", False),
    ("pub-1", False),
    (None, False),
])
def test_uuid_format(value, expected):
    assert is_uuid(value) is expected
