"""Publication (book, ebook, audiobook) metadata rules."""

import logging
import re
from enum import Enum
from typing import Any, Optional

from catalog_rules.core.validation import ValidationAccumulator, ValidationResult, fail_closed
from catalog_rules.services.lifecycle import parse_status
from catalog_rules.utils.validators import ISBNValidator, TerritoryValidator, TextValidator, is_number

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 300
DESCRIPTION_MIN_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 4000
MAX_KEYWORDS = 20
KEYWORD_MIN_LENGTH = 2
KEYWORD_MAX_LENGTH = 50
MAX_BISAC_CATEGORIES = 3
MIN_EBOOK_WORD_COUNT = 1000
MIN_USD_PRICE = 0.99

REQUIRED_FIELDS = ("title", "publication_type", "language")
STRICT_REQUIRED_FIELDS = REQUIRED_FIELDS + ("description", "genre", "target_audience")
# Checked even when absent, to warn about their omission
ADVISORY_FIELDS = ("genre", "target_audience", "pricing", "territories")


class PublicationType(str, Enum):
    EBOOK = "ebook"
    PAPERBACK = "paperback"
    HARDCOVER = "hardcover"
    AUDIOBOOK = "audiobook"
    BUNDLE = "bundle"


class PublicationStatus(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    PUBLISHED = "published"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"


BOOK_TYPES = (PublicationType.EBOOK, PublicationType.PAPERBACK, PublicationType.HARDCOVER)
PRINT_TYPES = (PublicationType.PAPERBACK, PublicationType.HARDCOVER)

TARGET_AUDIENCES = ("children", "young_adult", "adult", "all_ages")
CURRENCIES = ("USD", "EUR", "GBP", "CAD", "AUD", "JPY", "PLN", "SEK", "NOK", "DKK")
LANGUAGES = (
    "en", "es", "fr", "de", "it", "pt", "pl", "ru", "zh", "ja", "ko",
    "nl", "sv", "no", "da", "fi", "cs", "sk", "hu", "ro", "bg", "hr",
)
GENRES = (
    "fiction", "non-fiction", "mystery", "thriller", "romance", "science-fiction",
    "fantasy", "historical-fiction", "contemporary-fiction", "literary-fiction",
    "young-adult", "children", "memoir", "biography", "self-help", "business",
    "health", "cooking", "travel", "religion", "philosophy", "politics",
    "science", "technology", "education", "reference", "poetry", "drama",
)

TITLE_INVALID_CHARS = re.compile(r"[<>{}\[\]\\]")
SUSPICIOUS_TITLE_WORDS = ("test", "temp")
BISAC_PATTERN = re.compile(r"^[A-Z]{3}\d{6}$")


def _is_blank(value: Any) -> bool:
    return not value or (isinstance(value, str) and not value.strip())


def check_required_fields(acc: ValidationAccumulator, publication: dict, strict: bool = False) -> None:
    for field in STRICT_REQUIRED_FIELDS if strict else REQUIRED_FIELDS:
        if _is_blank(publication.get(field)):
            acc.add_error("required_field", f"{field} is required", field)


def check_title(acc: ValidationAccumulator, title: Any) -> None:
    if not title or not isinstance(title, str):
        acc.add_error("invalid_title", "Title must be a non-empty string", "title")
        return

    title = title.strip()
    if not title:
        acc.add_error("title_too_short", "Title cannot be empty", "title")
    if len(title) > TITLE_MAX_LENGTH:
        acc.add_error("title_too_long", f"Title cannot exceed {TITLE_MAX_LENGTH} characters", "title")

    if TITLE_INVALID_CHARS.search(title):
        acc.add_error("title_invalid_chars", "Title contains invalid characters: < > { } [ ] \\", "title")

    lowered = title.lower()
    if any(word in lowered for word in SUSPICIOUS_TITLE_WORDS):
        acc.add_warning("suspicious_title", "Title appears to be a test or temporary title", "title")


def check_description(acc: ValidationAccumulator, description: Any) -> None:
    if not description or not isinstance(description, str):
        acc.add_error("invalid_description", "Description must be a string", "description")
        return

    description = description.strip()
    if len(description) < DESCRIPTION_MIN_LENGTH:
        acc.add_warning(
            "description_too_short",
            f"Description should be at least {DESCRIPTION_MIN_LENGTH} characters for better discoverability",
            "description"
        )
    if len(description) > DESCRIPTION_MAX_LENGTH:
        acc.add_error(
            "description_too_long",
            f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters",
            "description"
        )

    if TextValidator.contains_html(description):
        acc.add_warning(
            "description_contains_html",
            "Description contains HTML tags which may not display correctly",
            "description"
        )


def check_publication_type(acc: ValidationAccumulator, publication_type: Any) -> None:
    if parse_status(PublicationType, publication_type) is None:
        acc.add_error(
            "invalid_publication_type",
            f"Publication type must be one of: {', '.join(t.value for t in PublicationType)}",
            "publication_type"
        )


def check_genre(acc: ValidationAccumulator, genre: Any) -> None:
    if not genre:
        acc.add_warning("missing_genre", "Genre helps with discoverability", "genre")
        return

    if str(genre).lower() not in GENRES:
        acc.add_warning("unrecognized_genre", f'Genre "{genre}" is not in the standard list', "genre")


def check_language(acc: ValidationAccumulator, language: Any) -> None:
    if not isinstance(language, str) or language.lower() not in LANGUAGES:
        acc.add_error("invalid_language", f'Language "{language}" is not supported', "language")


def check_target_audience(acc: ValidationAccumulator, target_audience: Any) -> None:
    if not target_audience:
        acc.add_warning(
            "missing_target_audience",
            "Target audience helps with appropriate content filtering",
            "target_audience"
        )
        return

    if target_audience not in TARGET_AUDIENCES:
        acc.add_error(
            "invalid_target_audience",
            f"Target audience must be one of: {', '.join(TARGET_AUDIENCES)}",
            "target_audience"
        )


def check_isbns(acc: ValidationAccumulator, publication: dict) -> None:
    if publication.get("isbn_13"):
        acc.extend(ISBNValidator.validate_isbn13(publication["isbn_13"]))
    if publication.get("isbn_10"):
        acc.extend(ISBNValidator.validate_isbn10(publication["isbn_10"]))


def check_price_entry(acc: ValidationAccumulator, currency: str, price_data: dict) -> None:
    retail = price_data.get("retail_price")
    if retail is not None:
        if not is_number(retail) or retail < 0:
            acc.add_error(
                "invalid_retail_price",
                f"Retail price for {currency} must be a non-negative number",
                "pricing"
            )
        elif currency.upper() == "USD" and retail < MIN_USD_PRICE:
            acc.add_warning(
                "low_price_warning",
                f"Prices below ${MIN_USD_PRICE} may not be supported by all stores",
                "pricing"
            )

    wholesale = price_data.get("wholesale_price")
    if wholesale is not None:
        if not is_number(wholesale) or wholesale < 0:
            acc.add_error(
                "invalid_wholesale_price",
                f"Wholesale price for {currency} must be a non-negative number",
                "pricing"
            )
        elif is_number(retail) and retail > 0 and wholesale >= retail:
            acc.add_warning(
                "wholesale_retail_mismatch",
                f"Wholesale price should be lower than retail price for {currency}",
                "pricing"
            )


def check_pricing(acc: ValidationAccumulator, pricing: Any) -> None:
    if not pricing:
        acc.add_warning("missing_pricing", "Pricing information is recommended for distribution", "pricing")
        return

    if not isinstance(pricing, dict):
        acc.add_error("invalid_price_data", "Pricing must map currency codes to price data", "pricing")
        return

    for currency, price_data in pricing.items():
        if not isinstance(currency, str) or currency.upper() not in CURRENCIES:
            acc.add_error("invalid_currency", f"Invalid currency code: {currency}", "pricing")
            continue

        if not isinstance(price_data, dict):
            acc.add_error("invalid_price_data", f"Price data for {currency} must be an object", "pricing")
            continue

        check_price_entry(acc, currency, price_data)


def check_territories(acc: ValidationAccumulator, territories: Any) -> None:
    if not territories:
        acc.add_warning(
            "missing_territories",
            "Territory specification helps with distribution planning",
            "territories"
        )
        return

    if not isinstance(territories, list):
        acc.add_error("invalid_territories_format", "Territories must be an array", "territories")
        return

    for index, territory in enumerate(territories):
        if not isinstance(territory, str):
            acc.add_error(
                "invalid_territory_format",
                f"Territory at index {index} must be a string",
                "territories"
            )
        elif not TerritoryValidator.is_valid_code(territory):
            acc.add_error(
                "invalid_territory_code",
                f'Territory "{territory}" must be a 2-letter ISO country code',
                "territories"
            )

    hashable = [t for t in territories if isinstance(t, str)]
    if len(set(hashable)) != len(hashable):
        acc.add_warning("duplicate_territories", "Duplicate territories detected", "territories")


def check_keywords(acc: ValidationAccumulator, keywords: Any) -> None:
    if not keywords:
        return

    if not isinstance(keywords, list):
        acc.add_error("invalid_keywords_format", "Keywords must be an array", "keywords")
        return

    if len(keywords) > MAX_KEYWORDS:
        acc.add_warning(
            "too_many_keywords",
            f"More than {MAX_KEYWORDS} keywords may reduce effectiveness",
            "keywords"
        )

    for index, keyword in enumerate(keywords):
        if not isinstance(keyword, str):
            acc.add_error("invalid_keyword_format", f"Keyword at index {index} must be a string", "keywords")
            continue
        if len(keyword) < KEYWORD_MIN_LENGTH:
            acc.add_error("keyword_too_short", f'Keyword "{keyword}" is too short', "keywords")
        if len(keyword) > KEYWORD_MAX_LENGTH:
            acc.add_error("keyword_too_long", f'Keyword "{keyword}" is too long', "keywords")


def check_bisac_categories(acc: ValidationAccumulator, categories: Any) -> None:
    if not categories:
        return

    if not isinstance(categories, list):
        acc.add_error("invalid_bisac_format", "BISAC categories must be an array", "bisac_categories")
        return

    if len(categories) > MAX_BISAC_CATEGORIES:
        acc.add_warning(
            "too_many_bisac_categories",
            f"Most stores accept a maximum of {MAX_BISAC_CATEGORIES} BISAC categories",
            "bisac_categories"
        )

    for index, category in enumerate(categories):
        if not isinstance(category, str):
            acc.add_error(
                "invalid_bisac_format",
                f"BISAC category at index {index} must be a string",
                "bisac_categories"
            )
        elif not BISAC_PATTERN.match(category):
            acc.add_error(
                "invalid_bisac_code",
                f'BISAC category "{category}" must be in format AAA000000',
                "bisac_categories"
            )


def check_status(acc: ValidationAccumulator, status: Any) -> None:
    if parse_status(PublicationStatus, status) is None:
        acc.add_error(
            "invalid_status",
            f"Status must be one of: {', '.join(s.value for s in PublicationStatus)}",
            "status"
        )


def check_content_completeness(acc: ValidationAccumulator, publication: dict) -> None:
    publication_type = parse_status(PublicationType, publication.get("publication_type"))

    if publication_type in BOOK_TYPES and not publication.get("chapters"):
        acc.add_error("missing_chapters", "Publication must have at least one chapter", "chapters")

    word_count = publication.get("word_count")
    if publication_type == PublicationType.EBOOK and is_number(word_count) and word_count < MIN_EBOOK_WORD_COUNT:
        acc.add_warning(
            "low_word_count",
            f"Word count below {MIN_EBOOK_WORD_COUNT} may not meet store requirements",
            "word_count"
        )

    if publication_type in PRINT_TYPES and not publication.get("isbn_13") and not publication.get("isbn_10"):
        acc.add_error("missing_isbn", "Print formats require an ISBN", "isbn_13")


# Field checks run by validate_update, in order, for each supplied field
FIELD_CHECKS = (
    ("title", check_title),
    ("description", check_description),
    ("publication_type", check_publication_type),
    ("genre", check_genre),
    ("language", check_language),
    ("target_audience", check_target_audience),
    ("pricing", check_pricing),
    ("territories", check_territories),
    ("keywords", check_keywords),
    ("bisac_categories", check_bisac_categories),
    ("status", check_status),
)


class PublicationValidator:
    """Publication metadata validation."""

    def validate_for_creation(self, publication: dict, strict: bool = False) -> ValidationResult:
        acc = ValidationAccumulator()

        with fail_closed(acc, "publication.validate_for_creation"):
            check_required_fields(acc, publication, strict)

            for field, check in FIELD_CHECKS:
                value = publication.get(field)
                if field in ADVISORY_FIELDS:
                    check(acc, value)
                elif value is not None and not (field in REQUIRED_FIELDS and _is_blank(value)):
                    check(acc, value)

            check_isbns(acc, publication)

        return acc.build_result()

    def validate_for_publishing(self, publication: dict) -> ValidationResult:
        acc = ValidationAccumulator()

        with fail_closed(acc, "publication.validate_for_publishing"):
            check_required_fields(acc, publication, strict=True)
            check_content_completeness(acc, publication)
            check_isbns(acc, publication)
            check_pricing(acc, publication.get("pricing"))

        return acc.build_result()

    def validate_update(self, update_data: dict, publication_id: Optional[str] = None) -> ValidationResult:
        """Validate only the fields present in ``update_data``."""
        acc = ValidationAccumulator()

        with fail_closed(acc, "publication.validate_update"):
            for field, check in FIELD_CHECKS:
                if field in update_data:
                    check(acc, update_data[field])
            check_isbns(acc, update_data)

            if "status" in update_data:
                logger.debug(f"Validated status change to {update_data['status']} for publication {publication_id}")

        return acc.build_result()

    @staticmethod
    def convert_isbn10_to_13(isbn10: str) -> str:
        return ISBNValidator.convert_isbn10_to_isbn13(isbn10)

    @staticmethod
    def format_isbn(isbn: str) -> str:
        return ISBNValidator.format_isbn(isbn)
