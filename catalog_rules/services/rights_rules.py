"""Publishing rights and licensing rules."""

import logging
import re
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from catalog_rules.core.validation import ValidationAccumulator, ValidationResult, fail_closed
from catalog_rules.services.lifecycle import parse_status
from catalog_rules.utils.validators import DateValidator, LanguageValidator, is_number, is_uuid, utc_now

logger = logging.getLogger(__name__)

MAX_TERM_YEARS = 99
HIGH_ROYALTY_RATE = 0.5
HIGH_ADVANCE = 10_000_000
WORLD = "WORLD"

REQUIRED_FIELDS = ("publication_id", "right_type", "territory", "language", "license_type", "start_date")

TERRITORIES = (
    "US", "CA", "GB", "DE", "FR", "IT", "ES", "NL", "SE", "NO", "DK", "FI", "PL", "CZ", "SK",
    "HU", "RO", "BG", "HR", "SI", "AU", "NZ", "JP", "KR", "CN", "IN", "BR", "MX", "AR", "CL",
)
LANGUAGES = (
    "en", "es", "fr", "de", "it", "pt", "pl", "ru", "zh", "ja", "ko", "nl", "sv", "no", "da",
    "fi", "cs", "sk", "hu", "ro", "bg", "hr", "sl", "ar", "hi", "th", "vi", "id", "ms", "tl",
)
CURRENCIES = ("USD", "EUR", "GBP", "CAD", "AUD", "JPY", "PLN", "SEK", "NOK", "DKK")

TERRITORY_PATTERN = re.compile(r"^[A-Z]{2}$")


class RightType(str, Enum):
    PRINT = "print"
    EBOOK = "ebook"
    AUDIOBOOK = "audiobook"
    TRANSLATION = "translation"
    ADAPTATION = "adaptation"
    FILM = "film"
    TELEVISION = "television"
    STAGE = "stage"
    MERCHANDISING = "merchandising"
    DIGITAL = "digital"


class LicenseType(str, Enum):
    EXCLUSIVE = "exclusive"
    NON_EXCLUSIVE = "non-exclusive"
    SOLE = "sole"
    FIRST_REFUSAL = "first-refusal"
    OPTION = "option"
    CO_EXCLUSIVE = "co-exclusive"
    LIMITED_EXCLUSIVE = "limited-exclusive"
    TERRITORIAL_EXCLUSIVE = "territorial-exclusive"


class RightsStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"
    SUSPENDED = "suspended"


def check_required_fields(acc: ValidationAccumulator, rights: dict) -> None:
    for field in REQUIRED_FIELDS:
        if rights.get(field) is None:
            acc.add_error("required_field", f"{field} is required", field)


def check_publication_id(acc: ValidationAccumulator, publication_id: Any) -> None:
    if not is_uuid(publication_id):
        acc.add_error("invalid_publication_id_format", "Publication ID must be a valid UUID", "publication_id")


def check_right_type(acc: ValidationAccumulator, right_type: Any) -> None:
    if not right_type:
        acc.add_error("missing_right_type", "Right type is required", "right_type")
        return

    parsed = parse_status(RightType, right_type)
    if parsed is None:
        acc.add_error(
            "invalid_right_type",
            f"Right type must be one of: {', '.join(t.value for t in RightType)}",
            "right_type"
        )
    elif parsed in (RightType.TRANSLATION, RightType.ADAPTATION):
        acc.add_info(
            "translation_adaptation_note",
            "Translation and adaptation rights usually need source rights clearance",
            "right_type"
        )


def check_territory(acc: ValidationAccumulator, territory: Any) -> None:
    if not territory:
        acc.add_error("missing_territory", "Territory is required", "territory")
        return

    if not isinstance(territory, str):
        acc.add_error("invalid_territory_format", "Territory must be a string", "territory")
        return

    if territory == WORLD:
        return

    if not TERRITORY_PATTERN.match(territory):
        acc.add_error(
            "invalid_territory_code",
            f'Territory "{territory}" must be a 2-letter ISO country code or WORLD',
            "territory"
        )
    elif territory not in TERRITORIES:
        acc.add_error("unsupported_territory", f'Territory "{territory}" is not supported', "territory")


def check_language(acc: ValidationAccumulator, language: Any) -> None:
    if not language:
        acc.add_error("missing_language", "Language is required", "language")
        return

    if not isinstance(language, str):
        acc.add_error("invalid_language_format", "Language must be a string", "language")
        return

    if not LanguageValidator.is_valid_iso639_1(language):
        acc.add_error(
            "invalid_language_code",
            f'Language "{language}" must be an ISO 639-1 code such as "en" or "en-US"',
            "language"
        )
    elif LanguageValidator.base_language(language) not in LANGUAGES:
        acc.add_error("unsupported_language", f'Language "{language}" is not supported', "language")


def check_license_type(acc: ValidationAccumulator, license_type: Any) -> None:
    if not license_type:
        acc.add_error("missing_license_type", "License type is required", "license_type")
        return

    if parse_status(LicenseType, license_type) is None:
        acc.add_error(
            "invalid_license_type",
            f"License type must be one of: {', '.join(t.value for t in LicenseType)}",
            "license_type"
        )


def check_exclusive(acc: ValidationAccumulator, exclusive: Any) -> None:
    if not isinstance(exclusive, bool):
        acc.add_error("invalid_exclusivity_type", "Exclusive must be a boolean", "exclusive")


def check_sublicensing(acc: ValidationAccumulator, sublicensing_allowed: Any) -> None:
    if not isinstance(sublicensing_allowed, bool):
        acc.add_error(
            "invalid_sublicensing_type",
            "Sublicensing allowed must be a boolean",
            "sublicensing_allowed"
        )


def check_dates(acc: ValidationAccumulator, rights: dict, now: datetime) -> None:
    start_value = rights.get("start_date")
    end_value = rights.get("end_date")
    start = DateValidator.parse(start_value)
    end = DateValidator.parse(end_value)

    if start_value:
        if start is None:
            acc.add_error("invalid_start_date", "Start date must be a valid date", "start_date")
        elif start < now.replace(hour=0, minute=0, second=0, microsecond=0):
            acc.add_warning("past_start_date", "Start date is in the past", "start_date")

    if end_value and end is None:
        acc.add_error("invalid_end_date", "End date must be a valid date", "end_date")

    if start is not None and end is not None:
        if end <= start:
            acc.add_error("invalid_date_range", "End date must be after start date", "end_date")
        elif (end - start).days / 365.25 > MAX_TERM_YEARS:
            acc.add_warning(
                "very_long_term",
                f"Rights term exceeds {MAX_TERM_YEARS} years",
                "end_date"
            )


def check_royalty_rate(acc: ValidationAccumulator, royalty_rate: Any) -> None:
    if royalty_rate is None:
        return

    if not is_number(royalty_rate):
        acc.add_error("invalid_royalty_rate_type", "Royalty rate must be a number", "royalty_rate")
    elif royalty_rate < 0:
        acc.add_error("negative_royalty_rate", "Royalty rate cannot be negative", "royalty_rate")
    elif royalty_rate > 1:
        acc.add_error(
            "invalid_royalty_rate_range",
            "Royalty rate must be a decimal between 0 and 1",
            "royalty_rate"
        )
    elif royalty_rate > HIGH_ROYALTY_RATE:
        acc.add_warning("high_royalty_rate", "Royalty rate above 50% is unusually high", "royalty_rate")


def check_advance_amount(acc: ValidationAccumulator, advance_amount: Any) -> None:
    if advance_amount is None:
        return

    if not is_number(advance_amount):
        acc.add_error("invalid_advance_amount_type", "Advance amount must be a number", "advance_amount")
    elif advance_amount < 0:
        acc.add_error("negative_advance_amount", "Advance amount cannot be negative", "advance_amount")
    elif advance_amount > HIGH_ADVANCE:
        acc.add_warning("very_high_advance", "Advance amount is unusually high", "advance_amount")


def check_minimum_guarantee(acc: ValidationAccumulator, minimum_guarantee: Any) -> None:
    if minimum_guarantee is None:
        return

    if not is_number(minimum_guarantee):
        acc.add_error(
            "invalid_minimum_guarantee_type",
            "Minimum guarantee must be a number",
            "minimum_guarantee"
        )
    elif minimum_guarantee < 0:
        acc.add_error(
            "negative_minimum_guarantee",
            "Minimum guarantee cannot be negative",
            "minimum_guarantee"
        )


def check_currency(acc: ValidationAccumulator, currency: Any) -> None:
    if not currency:
        return

    if not isinstance(currency, str) or currency.upper() not in CURRENCIES:
        acc.add_error("invalid_currency", f"Currency must be one of: {', '.join(CURRENCIES)}", "currency")


def check_status(acc: ValidationAccumulator, status: Any) -> None:
    if parse_status(RightsStatus, status) is None:
        acc.add_error(
            "invalid_status",
            f"Status must be one of: {', '.join(s.value for s in RightsStatus)}",
            "status"
        )


def check_conflicts(acc: ValidationAccumulator, rights: dict) -> None:
    if rights.get("exclusive") is True and rights.get("territory") == WORLD:
        acc.add_warning(
            "world_exclusive_rights",
            "Exclusive worldwide rights prevent any other licensing of this right type",
            "territory"
        )


# Field checks run for each supplied field, in order
FIELD_CHECKS = (
    ("right_type", check_right_type),
    ("territory", check_territory),
    ("language", check_language),
    ("license_type", check_license_type),
    ("exclusive", check_exclusive),
    ("sublicensing_allowed", check_sublicensing),
    ("royalty_rate", check_royalty_rate),
    ("advance_amount", check_advance_amount),
    ("minimum_guarantee", check_minimum_guarantee),
    ("currency", check_currency),
    ("status", check_status),
)


class RightsValidator:
    """Rights and licensing validation."""

    def __init__(self, now: Optional[datetime] = None):
        self._now = now

    @property
    def now(self) -> datetime:
        return self._now or utc_now()

    def validate_for_creation(self, rights: dict) -> ValidationResult:
        """Validate a rights grant before it is recorded.

        Missing required fields are reported once as ``required_field``; the
        per-field checks only run over values that were supplied.
        """
        acc = ValidationAccumulator()

        with fail_closed(acc, "rights.validate_for_creation"):
            check_required_fields(acc, rights)
            if rights.get("publication_id") is not None:
                check_publication_id(acc, rights["publication_id"])

            for field, check in FIELD_CHECKS:
                if rights.get(field) is not None:
                    check(acc, rights[field])

            check_dates(acc, rights, self.now)
            check_conflicts(acc, rights)

        return acc.build_result()

    def validate_update(self, update_data: dict, rights_id: Optional[str] = None) -> ValidationResult:
        """Validate only the fields present in ``update_data``."""
        acc = ValidationAccumulator()

        with fail_closed(acc, "rights.validate_update"):
            for field, check in FIELD_CHECKS:
                if field in update_data:
                    check(acc, update_data[field])

            if "start_date" in update_data or "end_date" in update_data:
                check_dates(acc, update_data, self.now)
            check_conflicts(acc, update_data)

            if "status" in update_data:
                logger.debug(f"Validated status change to {update_data['status']} for rights {rights_id}")

        return acc.build_result()
