"""Field-level validators for identifiers, dates, audio specs and contact data."""

import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import phonenumbers
from fuzzywuzzy import fuzz
from langdetect import DetectorFactory, detect
from langdetect.lang_detect_exception import LangDetectException
from pydantic import AnyUrl, TypeAdapter, ValidationError as PydanticValidationError

from catalog_rules.core.validation import Severity, ValidationIssue

# Deterministic language detection
DetectorFactory.seed = 0


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_integer(value: Any) -> bool:
    """True for ints (not bools) and integral floats."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def is_number(value: Any) -> bool:
    """True for finite ints and floats, excluding bools."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value == value and value not in (float("inf"), float("-inf"))


UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def is_uuid(value: Any) -> bool:
    """True for canonical hyphenated UUID strings."""
    return isinstance(value, str) and bool(UUID_PATTERN.match(value))


class UPCValidator:
    """Validator for 12-digit Universal Product Codes."""

    UPC_LENGTH = 12

    @classmethod
    def normalize(cls, upc: Any) -> str:
        return re.sub(r"\D", "", str(upc))

    @classmethod
    def calculate_check_digit(cls, prefix: str) -> int:
        """Check digit for an 11-digit prefix (weights 3/1 alternating from index 0)."""
        if len(prefix) != cls.UPC_LENGTH - 1 or not prefix.isdigit():
            raise ValueError("UPC prefix must be 11 digits")

        total = sum(
            int(digit) * (3 if i % 2 == 0 else 1)
            for i, digit in enumerate(prefix)
        )
        return (10 - total % 10) % 10

    @classmethod
    def is_valid(cls, upc: Any) -> bool:
        if upc is None or upc == "":
            return False

        digits = cls.normalize(upc)
        if len(digits) != cls.UPC_LENGTH:
            return False

        return cls.calculate_check_digit(digits[:11]) == int(digits[11])


class ISRCValidator:
    """Validator for International Standard Recording Code (ISRC)."""

    ISRC_PATTERN = re.compile(r"^[A-Z]{2}[A-Z0-9]{3}[0-9]{7}$")

    @classmethod
    def normalize(cls, isrc: str) -> str:
        return re.sub(r"[-\s]", "", isrc)

    @classmethod
    def is_valid_format(cls, isrc: Any) -> bool:
        """Check if ISRC has valid format once hyphens and spaces are stripped."""
        if not isrc or not isinstance(isrc, str):
            return False
        return bool(cls.ISRC_PATTERN.match(cls.normalize(isrc)))

    @classmethod
    def validate(cls, isrc: Any, field: str = "isrc") -> List[ValidationIssue]:
        """Validate ISRC format."""
        errors = []

        if not isrc:
            return errors

        if not cls.is_valid_format(isrc):
            errors.append(ValidationIssue(
                field=field,
                code="invalid_isrc_format",
                message="ISRC must be 2 letters + 3 alphanumeric + 7 digits",
                details={
                    "provided": isrc,
                    "expected_format": "CCXXXYYNNNNN (Country + Registrant + Year + Designation)"
                }
            ))

        return errors

    @classmethod
    def parse_components(cls, isrc: str) -> Dict[str, str]:
        """Parse ISRC into its components."""
        if not cls.is_valid_format(isrc):
            raise ValueError("Invalid ISRC format")

        normalized = cls.normalize(isrc)
        return {
            "country_code": normalized[:2],
            "registrant_code": normalized[2:5],
            "year": normalized[5:7],
            "designation": normalized[7:]
        }


class ISBNValidator:
    """Validator and converter for ISBN-10 and ISBN-13."""

    ISBN13_PATTERN = re.compile(r"^\d{13}$")
    ISBN10_PATTERN = re.compile(r"^\d{9}[\dX]$")
    ISBN13_PREFIXES = ("978", "979")

    @classmethod
    def normalize(cls, isbn: Any) -> str:
        return re.sub(r"[-\s]", "", str(isbn))

    @classmethod
    def isbn13_check_digit(cls, first_twelve: str) -> int:
        total = sum(
            int(digit) * (1 if i % 2 == 0 else 3)
            for i, digit in enumerate(first_twelve[:12])
        )
        return (10 - total % 10) % 10

    @classmethod
    def isbn10_check_digit(cls, first_nine: str) -> str:
        total = sum(int(digit) * (10 - i) for i, digit in enumerate(first_nine[:9]))
        check = (11 - total % 11) % 11
        return "X" if check == 10 else str(check)

    @classmethod
    def is_valid_isbn13(cls, isbn: Any) -> bool:
        clean = cls.normalize(isbn)
        if not cls.ISBN13_PATTERN.match(clean):
            return False
        return cls.isbn13_check_digit(clean) == int(clean[12])

    @classmethod
    def is_valid_isbn10(cls, isbn: Any) -> bool:
        clean = cls.normalize(isbn).upper()
        if not cls.ISBN10_PATTERN.match(clean):
            return False
        return cls.isbn10_check_digit(clean) == clean[9]

    @classmethod
    def validate_isbn13(cls, isbn: Any, field: str = "isbn_13") -> List[ValidationIssue]:
        errors = []
        clean = cls.normalize(isbn)

        if len(clean) != 13:
            errors.append(ValidationIssue(
                field=field,
                code="invalid_isbn13_length",
                message="ISBN-13 must be exactly 13 digits",
                details={"provided": isbn}
            ))
            return errors

        if not cls.ISBN13_PATTERN.match(clean):
            errors.append(ValidationIssue(
                field=field,
                code="invalid_isbn13_format",
                message="ISBN-13 must contain only digits",
                details={"provided": isbn}
            ))
            return errors

        if cls.isbn13_check_digit(clean) != int(clean[12]):
            errors.append(ValidationIssue(
                field=field,
                code="invalid_isbn13_checksum",
                message="ISBN-13 check digit is invalid",
                details={"provided": isbn}
            ))

        if not clean.startswith(cls.ISBN13_PREFIXES):
            errors.append(ValidationIssue(
                field=field,
                code="invalid_isbn13_prefix",
                message="ISBN-13 must start with 978 or 979",
                details={"provided": isbn}
            ))

        return errors

    @classmethod
    def validate_isbn10(cls, isbn: Any, field: str = "isbn_10") -> List[ValidationIssue]:
        errors = []
        clean = cls.normalize(isbn).upper()

        if len(clean) != 10:
            errors.append(ValidationIssue(
                field=field,
                code="invalid_isbn10_length",
                message="ISBN-10 must be exactly 10 characters",
                details={"provided": isbn}
            ))
            return errors

        if not cls.ISBN10_PATTERN.match(clean):
            errors.append(ValidationIssue(
                field=field,
                code="invalid_isbn10_format",
                message="ISBN-10 must be 9 digits followed by a digit or X",
                details={"provided": isbn}
            ))
            return errors

        if cls.isbn10_check_digit(clean) != clean[9]:
            errors.append(ValidationIssue(
                field=field,
                code="invalid_isbn10_checksum",
                message="ISBN-10 check digit is invalid",
                details={"provided": isbn}
            ))

        return errors

    @classmethod
    def convert_isbn10_to_isbn13(cls, isbn10: str) -> str:
        """Convert a valid ISBN-10 into its 978-prefixed ISBN-13."""
        if not cls.is_valid_isbn10(isbn10):
            raise ValueError("Invalid ISBN-10")

        base = "978" + cls.normalize(isbn10)[:9]
        return base + str(cls.isbn13_check_digit(base))

    @classmethod
    def format_isbn(cls, isbn: str) -> str:
        """Hyphenate an ISBN (13: 3-1-2-6-1, 10: 1-2-6-1)."""
        clean = cls.normalize(isbn).upper()

        if len(clean) == 13:
            return f"{clean[0:3]}-{clean[3]}-{clean[4:6]}-{clean[6:12]}-{clean[12]}"
        if len(clean) == 10:
            return f"{clean[0]}-{clean[1:3]}-{clean[3:9]}-{clean[9]}"
        return isbn


class AudioSpecValidator:
    """Reference values for audio file specifications."""

    STANDARD_SAMPLE_RATES = (22050, 44100, 48000, 88200, 96000, 176400, 192000)
    STANDARD_BIT_DEPTHS = (16, 24, 32)
    SUPPORTED_FORMATS = ("wav", "flac", "aiff", "m4a", "mp3")
    LOSSLESS_FORMATS = ("wav", "flac", "aiff")
    COMPRESSED_FORMATS = ("mp3", "m4a", "aac")

    CD_SAMPLE_RATE = 44100
    HI_RES_SAMPLE_RATE = 96000
    MP3_MIN_BITRATE = 128
    MP3_RECOMMENDED_BITRATE = 320

    @classmethod
    def is_standard_sample_rate(cls, sample_rate: Any) -> bool:
        return sample_rate in cls.STANDARD_SAMPLE_RATES

    @classmethod
    def is_standard_bit_depth(cls, bit_depth: Any) -> bool:
        return bit_depth in cls.STANDARD_BIT_DEPTHS

    @classmethod
    def normalize_format(cls, audio_format: Any) -> Optional[str]:
        if not audio_format or not isinstance(audio_format, str):
            return None
        return audio_format.lower().lstrip(".")

    @classmethod
    def is_lossless(cls, audio_format: Any) -> bool:
        return cls.normalize_format(audio_format) in cls.LOSSLESS_FORMATS

    @classmethod
    def validate_mp3_bitrate(cls, bitrate: Any, field: str = "audio_bitrate") -> List[ValidationIssue]:
        """MP3 bitrate below 128 kbps is an error, below 320 kbps a warning."""
        issues = []

        if not is_number(bitrate):
            return issues

        if bitrate < cls.MP3_MIN_BITRATE:
            issues.append(ValidationIssue(
                field=field,
                code="mp3_bitrate_too_low",
                message=f"MP3 bitrate ({bitrate}kbps) is below minimum ({cls.MP3_MIN_BITRATE}kbps)"
            ))
        elif bitrate < cls.MP3_RECOMMENDED_BITRATE:
            issues.append(ValidationIssue(
                field=field,
                code="mp3_bitrate_suboptimal",
                message=f"MP3 bitrate ({bitrate}kbps) is below recommended {cls.MP3_RECOMMENDED_BITRATE}kbps",
                severity=Severity.WARNING
            ))

        return issues


class DateValidator:
    """Parser and validator for date values."""

    COMMON_DATE_FORMATS = [
        "%Y-%m-%d",
        "%Y/%m/%d",
        "%m/%d/%Y",
        "%d/%m/%Y",
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%dT%H:%M:%SZ"
    ]

    @classmethod
    def parse(cls, value: Any) -> Optional[datetime]:
        """Parse a date-like value into a naive UTC datetime, or None."""
        if value is None or isinstance(value, bool):
            return None

        if isinstance(value, datetime):
            return cls._to_naive_utc(value)

        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)

        if not isinstance(value, str) or not value.strip():
            return None

        text = value.strip()
        try:
            return cls._to_naive_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass

        for fmt in cls.COMMON_DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue

        return None

    @classmethod
    def is_valid(cls, value: Any) -> bool:
        return cls.parse(value) is not None

    @classmethod
    def _to_naive_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class TextValidator:
    """Checks on free-text fields."""

    PROBLEMATIC_CHARS = re.compile(r"[<>:\"/\\|?*\x00-\x1f]")
    YEAR_PATTERN = re.compile(r"\b(19|20)\d{2}\b")
    HTML_PATTERN = re.compile(r"<[^>]+>")

    @classmethod
    def has_problematic_chars(cls, text: str) -> bool:
        return bool(cls.PROBLEMATIC_CHARS.search(text))

    @classmethod
    def extract_year(cls, text: str) -> Optional[int]:
        match = cls.YEAR_PATTERN.search(text)
        return int(match.group(0)) if match else None

    @classmethod
    def contains_html(cls, text: str) -> bool:
        return bool(cls.HTML_PATTERN.search(text))


class TerritoryValidator:
    """Validator for ISO 3166-1 alpha-2 territory codes."""

    TERRITORY_PATTERN = re.compile(r"^[A-Z]{2}$")
    WORLDWIDE = "WW"

    @classmethod
    def is_valid_code(cls, code: Any) -> bool:
        return isinstance(code, str) and bool(cls.TERRITORY_PATTERN.match(code))


class URLValidator:
    """Validator for absolute URLs."""

    _adapter = TypeAdapter(AnyUrl)

    @classmethod
    def is_valid(cls, url: Any) -> bool:
        if not url or not isinstance(url, str):
            return False
        try:
            cls._adapter.validate_python(url)
        except PydanticValidationError:
            return False
        return True


class LanguageValidator:
    """Validator for language codes."""

    ISO_639_1_PATTERN = re.compile(r"^[a-z]{2}(-[A-Z]{2})?$")

    @classmethod
    def is_valid_iso639_1(cls, language: Any) -> bool:
        """Check if language code is valid ISO 639-1 format."""
        if not language or not isinstance(language, str):
            return False
        return bool(cls.ISO_639_1_PATTERN.match(language))

    @classmethod
    def base_language(cls, language: str) -> str:
        return language.split("-")[0].lower()

    @classmethod
    def detect_language(cls, text: str) -> Optional[str]:
        """Detect language of text."""
        if not text or len(text.strip()) < 20:
            return None
        try:
            return detect(text)
        except LangDetectException:
            return None


class PhoneValidator:
    """Validator for phone numbers."""

    @classmethod
    def validate(cls, phone: Optional[str], country_code: Optional[str] = None) -> List[ValidationIssue]:
        """Validate phone number format."""
        warnings = []

        if not phone:
            return warnings

        try:
            parsed = phonenumbers.parse(phone, country_code)
            if not phonenumbers.is_valid_number(parsed):
                warnings.append(ValidationIssue(
                    field="phone",
                    code="invalid_phone",
                    message="Invalid phone number",
                    severity=Severity.WARNING,
                    details={"provided": phone}
                ))
        except phonenumbers.NumberParseException as e:
            warnings.append(ValidationIssue(
                field="phone",
                code="invalid_phone",
                message=f"Failed to parse phone number: {e}",
                severity=Severity.WARNING,
                details={"provided": phone, "error": str(e)}
            ))

        return warnings


class EmailValidator:
    """Validator for email addresses."""

    EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

    @classmethod
    def is_valid(cls, email: Any) -> bool:
        if not email or not isinstance(email, str):
            return False
        return bool(cls.EMAIL_PATTERN.match(email)) and len(email) <= 255


class DuplicateDetector:
    """Utility for detecting potential duplicate titles."""

    @classmethod
    def similarity_score(cls, text1: str, text2: str) -> float:
        """Calculate similarity score between two texts."""
        if not text1 or not text2:
            return 0.0

        norm1 = cls._normalize_text(text1)
        norm2 = cls._normalize_text(text2)

        ratio = fuzz.ratio(norm1, norm2)
        token_sort_ratio = fuzz.token_sort_ratio(norm1, norm2)

        return max(ratio, token_sort_ratio) / 100.0

    @classmethod
    def _normalize_text(cls, text: str) -> str:
        """Normalize text for comparison."""
        text = text.lower()

        prefixes = ["the ", "a ", "an "]
        for prefix in prefixes:
            if text.startswith(prefix):
                text = text[len(prefix):]
                break

        text = re.sub(r"[^\w\s]", " ", text)
        text = re.sub(r"\s+", " ", text).strip()

        return text

    @classmethod
    def is_potential_duplicate(cls, text1: str, text2: str, threshold: float = 0.9) -> bool:
        """Check if two texts are potential duplicates."""
        return cls.similarity_score(text1, text2) >= threshold
