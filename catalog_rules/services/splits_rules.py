"""Royalty split validation, summaries and allocation."""

import logging
from collections import Counter
from datetime import datetime, timedelta
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from catalog_rules.core.validation import ValidationAccumulator, ValidationResult, fail_closed
from catalog_rules.services.lifecycle import parse_status
from catalog_rules.utils.validators import DateValidator, TerritoryValidator, is_integer, is_number, utc_now

logger = logging.getLogger(__name__)

# Allowed deviation of the percentage sum from 100
PERCENTAGE_TOLERANCE = 0.01

CENTS = Decimal("0.01")
DAYS_PER_YEAR = 365
COPYRIGHT_TERM_YEARS = 95


class SplitType(str, Enum):
    MASTER_RECORDING = "master_recording"
    PUBLISHING = "publishing"
    PERFORMANCE = "performance"
    MECHANICAL = "mechanical"
    SYNC = "sync"
    NEIGHBORING_RIGHTS = "neighboring_rights"
    DIGITAL_PERFORMANCE = "digital_performance"
    BROADCAST = "broadcast"


class SplitStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    TERMINATED = "terminated"


class Role(str, Enum):
    ARTIST = "artist"
    SONGWRITER = "songwriter"
    COMPOSER = "composer"
    PRODUCER = "producer"
    MIXER = "mixer"
    ENGINEER = "engineer"
    PUBLISHER = "publisher"
    LABEL = "label"
    DISTRIBUTOR = "distributor"
    MANAGER = "manager"
    FEATURED_ARTIST = "featured_artist"
    SESSION_MUSICIAN = "session_musician"
    PERFORMER = "performer"


UNIQUE_ROLES = (Role.LABEL, Role.DISTRIBUTOR, Role.PUBLISHER)
ESSENTIAL_ROLES = (Role.ARTIST, Role.SONGWRITER)
WRITER_ROLES = (Role.SONGWRITER, Role.COMPOSER)
PERFORMER_ROLES = (Role.ARTIST, Role.PERFORMER, Role.FEATURED_ARTIST, Role.SESSION_MUSICIAN)
MASTER_RIGHTS_ROLES = (Role.ARTIST, Role.LABEL)
PUBLISHING_RIGHTS_ROLES = (Role.SONGWRITER, Role.COMPOSER, Role.PUBLISHER)

MAJOR_TERRITORIES = ("US", "GB", "DE", "FR", "CA", "AU", "JP")
US_TERRITORIES = ("US", TerritoryValidator.WORLDWIDE)

CALCULATION_METHODS = ("gross", "net", "after_costs", "after_recoupment")
ROUNDING_RULES = {
    "round": ROUND_HALF_UP,
    "floor": ROUND_FLOOR,
    "ceil": ROUND_CEILING,
    "banker": ROUND_HALF_EVEN,
}
PAYMENT_METHODS = ("bank_transfer", "paypal", "check", "wire", "ach", "crypto")
TAX_FORMS = ("W8", "W9")


def _entries(split: dict) -> List[dict]:
    entries = split.get("splits")
    if not isinstance(entries, list):
        return []
    return [entry for entry in entries if isinstance(entry, dict)]


def _roles(split: dict) -> List[Role]:
    roles = (parse_status(Role, entry.get("role")) for entry in _entries(split))
    return [role for role in roles if role is not None]


def _percentages(split: dict) -> List[Decimal]:
    return [
        Decimal(str(entry["percentage"])) for entry in _entries(split)
        if is_number(entry.get("percentage"))
    ]


def _decimal_places(value: Decimal) -> int:
    exponent = value.normalize().as_tuple().exponent
    return -exponent if exponent < 0 else 0


def _years_between(start: datetime, end: datetime) -> float:
    return (end - start) / timedelta(days=DAYS_PER_YEAR)


def total_percentage(split: dict) -> Decimal:
    return sum(_percentages(split), Decimal("0"))


# Structure

def check_split_entry(acc: ValidationAccumulator, entry: dict, index: int) -> None:
    prefix = f"splits[{index}]"

    for field in ("participant_id", "percentage"):
        if entry.get(field) is None:
            acc.add_error("missing_split_field", f"{field} is required for split {index}", f"{prefix}.{field}")

    percentage = entry.get("percentage")
    if percentage is not None:
        if not is_number(percentage):
            acc.add_error(
                "invalid_percentage_type",
                f"Percentage must be a number for split {index}",
                f"{prefix}.percentage"
            )
        elif percentage < 0 or percentage > 100:
            acc.add_error(
                "percentage_out_of_range",
                f"Percentage must be between 0 and 100 for split {index}",
                f"{prefix}.percentage"
            )
        elif percentage == 0:
            acc.add_warning("zero_percentage", f"Split {index} has 0% allocation", f"{prefix}.percentage")

    participant_id = entry.get("participant_id")
    if participant_id is not None and not isinstance(participant_id, str):
        acc.add_error(
            "invalid_participant_id",
            f"Participant ID must be a string for split {index}",
            f"{prefix}.participant_id"
        )

    role = entry.get("role")
    if role and parse_status(Role, role) is None:
        acc.add_warning("unrecognized_role", f"Unrecognized role: {role} for split {index}", f"{prefix}.role")

    priority = entry.get("priority")
    if priority is not None and (not is_integer(priority) or priority < 1):
        acc.add_error(
            "invalid_priority",
            f"Priority must be a positive integer for split {index}",
            f"{prefix}.priority"
        )

    minimum = entry.get("minimum_amount")
    if minimum is not None and (not is_number(minimum) or minimum < 0):
        acc.add_error(
            "invalid_minimum_amount",
            f"Minimum amount must be a non-negative number for split {index}",
            f"{prefix}.minimum_amount"
        )

    maximum = entry.get("maximum_amount")
    if maximum is not None:
        if not is_number(maximum) or maximum < 0:
            acc.add_error(
                "invalid_maximum_amount",
                f"Maximum amount must be a non-negative number for split {index}",
                f"{prefix}.maximum_amount"
            )
        elif is_number(minimum) and maximum < minimum:
            acc.add_error(
                "max_less_than_min",
                f"Maximum amount cannot be less than minimum amount for split {index}",
                f"{prefix}.maximum_amount"
            )


def check_split_structure(acc: ValidationAccumulator, split: dict) -> None:
    if not split.get("release_id") and not split.get("track_id"):
        acc.add_error(
            "missing_parent_reference",
            "Either release_id or track_id is required",
            "release_id"
        )

    for field in ("split_type", "splits"):
        if split.get(field) is None:
            acc.add_error("missing_required_field", f"{field} is required", field)

    split_type = split.get("split_type")
    if split_type and parse_status(SplitType, split_type) is None:
        acc.add_error("invalid_split_type", f"Invalid split type: {split_type}", "split_type")

    entries = split.get("splits")
    if entries is not None:
        if not isinstance(entries, list):
            acc.add_error("invalid_splits_format", "Splits must be an array", "splits")
        elif len(entries) == 0:
            acc.add_error("empty_splits", "At least one split is required", "splits")
        else:
            for index, entry in enumerate(entries):
                if isinstance(entry, dict):
                    check_split_entry(acc, entry, index)
                else:
                    acc.add_error("invalid_splits_format", f"Split {index} must be an object", f"splits[{index}]")

    if split.get("territories") is not None and not isinstance(split["territories"], list):
        acc.add_error("invalid_territories_format", "Territories must be an array", "territories")

    for field in ("effective_date", "expiry_date", "created_date"):
        if split.get(field) and not DateValidator.is_valid(split[field]):
            acc.add_error("invalid_date_format", f"{field} must be a valid date", field)

    status = split.get("status")
    if status and parse_status(SplitStatus, status) is None:
        acc.add_error("invalid_status", f"Invalid status: {status}", "status")


# Participants

def check_participants(acc: ValidationAccumulator, split: dict, strict: bool = False) -> None:
    entries = _entries(split)
    if not entries:
        return

    participant_ids = [entry.get("participant_id") for entry in entries]
    counts = Counter(pid for pid in participant_ids if isinstance(pid, str))
    duplicates = sorted(pid for pid, count in counts.items() if count > 1)
    if duplicates:
        acc.add_error(
            "duplicate_participants",
            f"Duplicate participant IDs: {', '.join(duplicates)}",
            "participants"
        )

    if strict:
        for participant_id in participant_ids:
            if not participant_id or not isinstance(participant_id, str) or not participant_id.strip():
                acc.add_error(
                    "invalid_participant_id_format",
                    "Participant ID must be a non-empty string",
                    "participant_id"
                )

    role_counts = Counter(_roles(split))
    for role in UNIQUE_ROLES:
        if role_counts[role] > 1:
            acc.add_warning(
                "multiple_unique_roles",
                f"Multiple participants with {role.value} role ({role_counts[role]})",
                "roles"
            )

    if not any(role_counts[role] for role in ESSENTIAL_ROLES):
        acc.add_warning(
            "missing_essential_roles",
            "No essential roles (artist, songwriter) found in splits",
            "roles"
        )

    split_type = parse_status(SplitType, split.get("split_type"))
    roles = set(role_counts)
    if split_type == SplitType.MASTER_RECORDING and Role.ARTIST not in roles:
        acc.add_warning(
            "master_missing_artist",
            "Master recording splits typically include artist role",
            "split_type"
        )
    elif split_type == SplitType.PUBLISHING and not roles.intersection(WRITER_ROLES):
        acc.add_warning(
            "publishing_missing_writer",
            "Publishing splits typically include songwriter or composer role",
            "split_type"
        )
    elif split_type == SplitType.PERFORMANCE and not roles.intersection((Role.ARTIST, Role.PERFORMER)):
        acc.add_warning(
            "performance_missing_performer",
            "Performance splits typically include artist or performer role",
            "split_type"
        )


# Percentages

def check_percentage_total(acc: ValidationAccumulator, split: dict) -> bool:
    """Reconcile the percentage sum; returns False when no entry carries a valid percentage."""
    percentages = _percentages(split)
    if not percentages:
        acc.add_error("no_valid_percentages", "No valid percentages found in splits", "percentages")
        return False

    total = sum(percentages, Decimal("0"))
    if abs(total - 100) > Decimal(str(PERCENTAGE_TOLERANCE)):
        if total > 100:
            acc.add_error(
                "percentage_exceeds_100",
                f"Total percentage ({total:.2f}%) exceeds 100%",
                "percentages",
                details={"total": float(total)}
            )
        else:
            acc.add_error(
                "percentage_under_100",
                f"Total percentage ({total:.2f}%) is less than 100%",
                "percentages",
                details={"total": float(total)}
            )
    return True


def check_distribution_fairness(acc: ValidationAccumulator, percentages: List[Decimal]) -> None:
    if len(percentages) < 2:
        return

    highest = max(percentages)
    lowest = min(percentages)

    if lowest > 0 and highest / lowest > 20:
        acc.add_warning(
            "highly_unequal_distribution",
            f"Very unequal distribution: highest ({highest}%) vs lowest ({lowest}%)",
            "distribution"
        )

    if highest > 50:
        acc.add_info("majority_control", "One participant has majority control of splits", "distribution")

    average = Decimal(100) / len(percentages)
    if all(abs(p - average) < 5 for p in percentages):
        acc.add_info("even_distribution", "Splits are evenly distributed among participants", "distribution")


def check_percentages(acc: ValidationAccumulator, split: dict) -> None:
    if not _entries(split):
        return

    if not check_percentage_total(acc, split):
        return

    for index, entry in enumerate(_entries(split)):
        if not is_number(entry.get("percentage")):
            continue
        percentage = Decimal(str(entry["percentage"]))

        if percentage > 50:
            acc.add_warning(
                "high_individual_percentage",
                f"Split {index} has high percentage allocation ({percentage}%)",
                f"splits[{index}].percentage"
            )

        places = _decimal_places(percentage)
        if places > 4:
            acc.add_warning(
                "excessive_precision",
                f"Split {index} has excessive decimal precision ({places} places)",
                f"splits[{index}].percentage"
            )

    check_distribution_fairness(acc, _percentages(split))


# Legal compliance

def check_territory_compliance(acc: ValidationAccumulator, split: dict) -> None:
    territories = split.get("territories")
    if not territories or not isinstance(territories, list):
        acc.add_warning("no_territories_specified", "No territories specified for split", "territories")
        return

    for index, territory in enumerate(territories):
        if not TerritoryValidator.is_valid_code(territory):
            acc.add_error(
                "invalid_territory_format",
                f"Territory {territory} is not in ISO 3166-1 alpha-2 format",
                f"territories[{index}]"
            )

    worldwide = TerritoryValidator.WORLDWIDE in territories
    if worldwide and len(territories) > 1:
        acc.add_warning(
            "worldwide_with_specific",
            "Worldwide territory specified along with specific territories",
            "territories"
        )

    if not worldwide and not any(territory in MAJOR_TERRITORIES for territory in territories):
        acc.add_warning(
            "no_major_territories",
            "No major music markets specified in territories",
            "territories"
        )


RightsRule = Callable[[ValidationAccumulator, List[Role]], None]


def _master_rights(acc: ValidationAccumulator, roles: List[Role]) -> None:
    if Role.LABEL not in roles:
        acc.add_warning("master_no_label", "Master recording splits typically involve a record label", "master_rights")
    if Role.ARTIST not in roles:
        acc.add_warning(
            "master_no_artist",
            "Master recording splits typically involve the recording artist",
            "master_rights"
        )


def _publishing_rights(acc: ValidationAccumulator, roles: List[Role]) -> None:
    if not any(role in WRITER_ROLES for role in roles):
        acc.add_error(
            "publishing_no_writer",
            "Publishing splits must include songwriter or composer",
            "publishing_rights"
        )
    if Role.PUBLISHER not in roles:
        acc.add_warning(
            "publishing_no_publisher",
            "Publishing splits typically involve a publisher",
            "publishing_rights"
        )


def _performance_rights(acc: ValidationAccumulator, roles: List[Role]) -> None:
    if not any(role in PERFORMER_ROLES for role in roles):
        acc.add_error(
            "performance_no_performer",
            "Performance splits must include a performer",
            "performance_rights"
        )
    acc.add_info(
        "pro_collection_notice",
        "Performance royalties are typically collected by PROs (ASCAP, BMI, etc.)",
        "performance_rights"
    )


def _mechanical_rights(acc: ValidationAccumulator, roles: List[Role]) -> None:
    if not any(role in WRITER_ROLES for role in roles):
        acc.add_error(
            "mechanical_no_writer",
            "Mechanical splits must include songwriter or composer",
            "mechanical_rights"
        )
    acc.add_info(
        "mechanical_rate_notice",
        "Mechanical royalties are subject to statutory rates in many territories",
        "mechanical_rights"
    )


def _sync_rights(acc: ValidationAccumulator, roles: List[Role]) -> None:
    if not any(role in MASTER_RIGHTS_ROLES for role in roles):
        acc.add_warning("sync_no_master_rights", "Sync deals typically require master rights holders", "sync_rights")
    if not any(role in PUBLISHING_RIGHTS_ROLES for role in roles):
        acc.add_warning(
            "sync_no_publishing_rights",
            "Sync deals typically require publishing rights holders",
            "sync_rights"
        )


def _no_rights_rules(acc: ValidationAccumulator, roles: List[Role]) -> None:
    return None


RIGHTS_RULES: Dict[SplitType, RightsRule] = {
    SplitType.MASTER_RECORDING: _master_rights,
    SplitType.PUBLISHING: _publishing_rights,
    SplitType.PERFORMANCE: _performance_rights,
    SplitType.MECHANICAL: _mechanical_rights,
    SplitType.SYNC: _sync_rights,
    SplitType.NEIGHBORING_RIGHTS: _no_rights_rules,
    SplitType.DIGITAL_PERFORMANCE: _no_rights_rules,
    SplitType.BROADCAST: _no_rights_rules,
}

if set(RIGHTS_RULES) != set(SplitType):
    raise RuntimeError("RIGHTS_RULES must cover every split type")


def check_rights_period(acc: ValidationAccumulator, rights_period: dict) -> None:
    start = DateValidator.parse(rights_period.get("start_date"))
    end = DateValidator.parse(rights_period.get("end_date"))

    if rights_period.get("start_date") and start is None:
        acc.add_error("invalid_rights_start_date", "Rights start date is invalid", "rights_period.start_date")
    if rights_period.get("end_date") and end is None:
        acc.add_error("invalid_rights_end_date", "Rights end date is invalid", "rights_period.end_date")

    if start is not None and end is not None:
        if end <= start:
            acc.add_error("rights_end_before_start", "Rights end date must be after start date", "rights_period")
        if _years_between(start, end) > COPYRIGHT_TERM_YEARS:
            acc.add_warning(
                "very_long_rights_period",
                "Rights period exceeds typical copyright term",
                "rights_period"
            )


def check_rights_compliance(acc: ValidationAccumulator, split: dict) -> None:
    split_type = parse_status(SplitType, split.get("split_type"))
    if split_type is not None:
        RIGHTS_RULES[split_type](acc, _roles(split))

    if split.get("exclusive") is None:
        acc.add_warning("exclusivity_not_specified", "Rights exclusivity not specified", "exclusive")

    rights_period = split.get("rights_period")
    if isinstance(rights_period, dict):
        check_rights_period(acc, rights_period)


def check_documentation(acc: ValidationAccumulator, split: dict) -> None:
    if not split.get("agreement_type"):
        acc.add_warning("no_agreement_type", "Agreement type not specified", "agreement_type")

    if not split.get("agreement_date"):
        acc.add_warning("no_agreement_date", "Agreement date not specified", "agreement_date")

    documents = split.get("supporting_documents")
    if documents is not None and not isinstance(documents, list):
        acc.add_error(
            "invalid_documents_format",
            "Supporting documents must be an array",
            "supporting_documents"
        )

    if split.get("requires_signatures") and not split.get("signatures"):
        acc.add_warning("missing_signatures", "Split requires signatures but none provided", "signatures")


def check_regulatory_compliance(acc: ValidationAccumulator, split: dict) -> None:
    territories = split.get("territories")
    if isinstance(territories, list) and any(t in US_TERRITORIES for t in territories):
        acc.add_info(
            "us_tax_implications",
            "US territory splits may have tax withholding requirements",
            "tax_compliance"
        )

    if any(p > 50 for p in _percentages(split)):
        acc.add_info(
            "majority_control_notice",
            "Majority control may trigger additional regulatory requirements",
            "regulatory_compliance"
        )

    acc.add_info(
        "data_protection_notice",
        "Participant data handling must comply with applicable privacy laws",
        "data_protection"
    )


def check_legal_compliance(acc: ValidationAccumulator, split: dict) -> None:
    check_territory_compliance(acc, split)
    check_rights_compliance(acc, split)
    check_documentation(acc, split)
    check_regulatory_compliance(acc, split)


# Business rules

def check_minimum_percentages(acc: ValidationAccumulator, split: dict) -> None:
    for index, entry in enumerate(_entries(split)):
        percentage = entry.get("percentage")
        if not is_number(percentage):
            continue

        if percentage < 1:
            acc.add_warning(
                "very_small_percentage",
                f"Split {index} has very small percentage ({percentage}%)",
                f"splits[{index}].percentage"
            )

        role = parse_status(Role, entry.get("role"))
        if role == Role.ARTIST and percentage < 10:
            acc.add_warning(
                "low_artist_percentage",
                f"Artist split {index} has low percentage ({percentage}%)",
                f"splits[{index}].percentage"
            )
        if role == Role.SONGWRITER and percentage < 5:
            acc.add_warning(
                "low_songwriter_percentage",
                f"Songwriter split {index} has low percentage ({percentage}%)",
                f"splits[{index}].percentage"
            )


def check_priorities(acc: ValidationAccumulator, split: dict) -> None:
    priorities = [entry["priority"] for entry in _entries(split) if is_integer(entry.get("priority"))]
    if not priorities:
        return

    duplicates = sorted(p for p, count in Counter(priorities).items() if count > 1)
    if duplicates:
        acc.add_warning(
            "duplicate_priorities",
            f"Duplicate priority values: {', '.join(str(p) for p in duplicates)}",
            "priorities"
        )

    ordered = sorted(set(priorities))
    if any(current - previous > 1 for previous, current in zip(ordered, ordered[1:])):
        acc.add_warning("priority_gaps", "Gaps found in priority sequence", "priorities")


def check_exclusivity(acc: ValidationAccumulator, split: dict) -> None:
    if split.get("exclusive") is not True:
        return

    if len(_entries(split)) > 3:
        acc.add_warning(
            "many_participants_exclusive",
            "Exclusive splits with many participants may create complications",
            "exclusive"
        )

    territories = split.get("territories")
    if isinstance(territories, list) and len(territories) > 1 and TerritoryValidator.WORLDWIDE not in territories:
        acc.add_warning(
            "exclusive_multiple_territories",
            "Exclusive splits across multiple territories may conflict",
            "exclusive"
        )


def check_timing(acc: ValidationAccumulator, split: dict, now: datetime) -> None:
    effective_date = DateValidator.parse(split.get("effective_date"))
    if effective_date is not None:
        if effective_date > now:
            acc.add_info("future_effective_date", "Split has future effective date", "effective_date")
        if _years_between(effective_date, now) > 10:
            acc.add_warning("very_old_effective_date", "Split has very old effective date", "effective_date")

    expiry_date = DateValidator.parse(split.get("expiry_date"))
    if expiry_date is not None:
        if expiry_date < now:
            acc.add_error("expired_split", "Split has expired", "expiry_date")
        if effective_date is not None and _years_between(effective_date, expiry_date) > COPYRIGHT_TERM_YEARS:
            acc.add_warning("very_long_term", "Split term exceeds typical copyright period", "term")


def check_business_rules(acc: ValidationAccumulator, split: dict, now: datetime) -> None:
    check_minimum_percentages(acc, split)
    check_priorities(acc, split)
    check_exclusivity(acc, split)
    check_timing(acc, split, now)


# Calculation

def check_active_status(acc: ValidationAccumulator, split: dict, now: datetime) -> None:
    if parse_status(SplitStatus, split.get("status")) != SplitStatus.ACTIVE:
        acc.add_error("split_not_active", f"Split status is {split.get('status')}, not active", "status")

    effective_date = DateValidator.parse(split.get("effective_date"))
    if effective_date is not None and effective_date > now:
        acc.add_error("split_not_yet_effective", "Split effective date is in the future", "effective_date")

    expiry_date = DateValidator.parse(split.get("expiry_date"))
    if expiry_date is not None and expiry_date < now:
        acc.add_error("split_expired", "Split has expired", "expiry_date")


def check_calculation_rules(acc: ValidationAccumulator, split: dict) -> None:
    for index, entry in enumerate(_entries(split)):
        percentage = entry.get("percentage")
        if is_number(percentage) and _decimal_places(Decimal(str(percentage))) > 2:
            acc.add_warning(
                "high_precision_percentage",
                f"Split {index} has high precision percentage that may cause rounding issues",
                f"splits[{index}].percentage"
            )

    method = split.get("calculation_method")
    if method and method not in CALCULATION_METHODS:
        acc.add_error("invalid_calculation_method", f"Invalid calculation method: {method}", "calculation_method")

    rounding_rule = split.get("rounding_rule")
    if rounding_rule and rounding_rule not in ROUNDING_RULES:
        acc.add_error("invalid_rounding_rule", f"Invalid rounding rule: {rounding_rule}", "rounding_rule")


def check_thresholds(acc: ValidationAccumulator, split: dict) -> None:
    for index, entry in enumerate(_entries(split)):
        minimum = entry.get("minimum_amount")
        if is_number(minimum) and minimum > 1000:
            acc.add_warning(
                "high_minimum_amount",
                f"Split {index} has high minimum amount (${minimum})",
                f"splits[{index}].minimum_amount"
            )

        maximum = entry.get("maximum_amount")
        if is_number(maximum) and maximum < 1:
            acc.add_warning(
                "very_low_maximum_amount",
                f"Split {index} has very low maximum amount (${maximum})",
                f"splits[{index}].maximum_amount"
            )

    minimum_total = split.get("minimum_total_amount")
    if is_number(minimum_total) and minimum_total > 10000:
        acc.add_warning("high_minimum_total", "High minimum total amount may delay payments", "minimum_total_amount")


# Payment

def check_payment_method(acc: ValidationAccumulator, method: dict, index: int) -> None:
    if method.get("type") not in PAYMENT_METHODS:
        acc.add_error(
            "invalid_payment_method",
            f"Invalid payment method: {method.get('type')}",
            f"payment_methods[{index}].type"
        )

    if not method.get("details"):
        acc.add_error(
            "missing_payment_details",
            f"Payment method {index} missing details",
            f"payment_methods[{index}].details"
        )


def check_bank_account(acc: ValidationAccumulator, account: dict, index: int) -> None:
    prefix = f"bank_accounts[{index}]"
    if not account.get("account_number"):
        acc.add_error(
            "missing_account_number",
            f"Bank account {index} missing account number",
            f"{prefix}.account_number"
        )
    if not account.get("routing_number") and not account.get("swift_code"):
        acc.add_error(
            "missing_routing_info",
            f"Bank account {index} missing routing/SWIFT information",
            f"{prefix}.routing"
        )
    if not account.get("beneficiary_name"):
        acc.add_error(
            "missing_beneficiary_name",
            f"Bank account {index} missing beneficiary name",
            f"{prefix}.beneficiary_name"
        )


def check_tax_information(acc: ValidationAccumulator, tax_info: dict) -> None:
    if not tax_info.get("tax_id") and not tax_info.get("ssn"):
        acc.add_warning("missing_tax_id", "Tax ID or SSN not provided", "tax_information.tax_id")

    if not tax_info.get("tax_country"):
        acc.add_warning("missing_tax_country", "Tax country not specified", "tax_information.tax_country")

    if tax_info.get("tax_treaty_benefits") and not tax_info.get("tax_treaty_country"):
        acc.add_error(
            "missing_treaty_country",
            "Tax treaty country not specified for treaty benefits",
            "tax_information.tax_treaty_country"
        )


def check_payment_information(acc: ValidationAccumulator, payment_data: Optional[dict]) -> None:
    if not payment_data:
        acc.add_error("missing_payment_data", "Payment data is required", "payment_data")
        return

    for index, method in enumerate(payment_data.get("payment_methods") or []):
        check_payment_method(acc, method, index)

    for index, account in enumerate(payment_data.get("bank_accounts") or []):
        check_bank_account(acc, account, index)

    if payment_data.get("tax_information"):
        check_tax_information(acc, payment_data["tax_information"])


def check_minimum_payouts(acc: ValidationAccumulator, split: dict, payment_data: Optional[dict]) -> None:
    frequency = (payment_data or {}).get("payment_frequency")

    for index, entry in enumerate(_entries(split)):
        minimum = entry.get("minimum_amount")
        if not is_number(minimum):
            continue

        if minimum > 100:
            acc.add_warning(
                "high_minimum_payout",
                f"Split {index} has high minimum payout (${minimum})",
                f"splits[{index}].minimum_amount"
            )
        if frequency == "monthly" and minimum > 25:
            acc.add_warning(
                "minimum_vs_frequency",
                f"Split {index} minimum amount may not be reached with monthly payments",
                f"splits[{index}].minimum_amount"
            )


def check_tax_compliance(acc: ValidationAccumulator, split: dict, payment_data: Optional[dict]) -> None:
    territories = split.get("territories")
    has_us_territory = isinstance(territories, list) and any(t in US_TERRITORIES for t in territories)

    if has_us_territory and payment_data:
        acc.add_info("us_tax_withholding", "US payments may be subject to tax withholding", "tax_compliance")

        tax_forms = payment_data.get("tax_forms") or []
        if not any(form in tax_forms for form in TAX_FORMS):
            acc.add_warning(
                "missing_tax_forms",
                "W-8 or W-9 tax forms may be required for US payments",
                "tax_forms"
            )

    if any(entry.get("tax_country") and entry["tax_country"] != "US" for entry in _entries(split)):
        acc.add_info(
            "international_tax_implications",
            "International participants may have additional tax requirements",
            "international_tax"
        )


# Summary and allocation

def assess_distribution_fairness(split: dict) -> str:
    entries = _entries(split)
    if len(entries) < 2:
        return "not_applicable"

    percentages = [
        Decimal(str(entry["percentage"])) if is_number(entry.get("percentage")) else Decimal("0")
        for entry in entries
    ]
    highest = max(percentages)
    lowest = min(percentages)
    if lowest <= 0:
        return "very_unequal"

    ratio = highest / lowest
    if ratio <= 2:
        return "very_fair"
    if ratio <= 5:
        return "fair"
    if ratio <= 10:
        return "moderate"
    if ratio <= 20:
        return "unequal"
    return "very_unequal"


def legal_compliance_score(split: dict) -> int:
    score = 100
    if not split.get("territories"):
        score -= 20
    if not split.get("agreement_type"):
        score -= 15
    if not split.get("agreement_date"):
        score -= 10
    if split.get("exclusive") is None:
        score -= 10
    if not any(entry.get("role") for entry in _entries(split)):
        score -= 15
    if not split.get("effective_date"):
        score -= 10
    return max(0, score)


def _quantize(value: Decimal, rounding_rule: Optional[str]) -> Decimal:
    return value.quantize(CENTS, rounding=ROUNDING_RULES.get(rounding_rule or "round", ROUND_HALF_UP))


def _priority_key(item: Dict[str, Any]) -> Any:
    priority = item["priority"]
    return (priority if is_integer(priority) else float("inf"), item["index"])


def allocate_royalties(split: dict, amount: Any) -> Dict[str, Any]:
    """Distribute ``amount`` across the split's participants.

    Shares are rounded to cents with the split's rounding rule, capped at
    ``maximum_amount`` and withheld when below ``minimum_amount``. The
    rounding remainder goes to the highest-priority paid participant.
    """
    total_amount = Decimal(str(amount))
    rounding_rule = split.get("rounding_rule")

    allocations = []
    exact_paid = Decimal("0")

    for index, entry in enumerate(_entries(split)):
        percentage = Decimal(str(entry["percentage"])) if is_number(entry.get("percentage")) else Decimal("0")
        exact = total_amount * percentage / 100
        share = _quantize(exact, rounding_rule)
        capped = False
        withheld = Decimal("0")

        maximum = entry.get("maximum_amount")
        if is_number(maximum) and share > Decimal(str(maximum)):
            share = _quantize(Decimal(str(maximum)), rounding_rule)
            capped = True

        minimum = entry.get("minimum_amount")
        if is_number(minimum) and share < Decimal(str(minimum)):
            withheld = share
            share = Decimal("0")
        elif not capped:
            exact_paid += exact

        allocations.append({
            "index": index,
            "participant_id": entry.get("participant_id"),
            "role": entry.get("role"),
            "priority": entry.get("priority"),
            "percentage": percentage,
            "amount": share,
            "withheld": withheld,
            "capped": capped,
        })

    uncapped_paid = [a for a in allocations if a["amount"] > 0 and not a["capped"]]
    remainder = _quantize(exact_paid, rounding_rule) - sum((a["amount"] for a in uncapped_paid), Decimal("0"))
    if remainder and uncapped_paid:
        recipient = min(uncapped_paid, key=_priority_key)
        recipient["amount"] += remainder
        logger.debug(f"Assigned rounding remainder {remainder} to participant {recipient['participant_id']}")

    distributed = sum((a["amount"] for a in allocations), Decimal("0"))
    withheld_total = sum((a["withheld"] for a in allocations), Decimal("0"))

    for allocation in allocations:
        del allocation["index"]

    return {
        "total_amount": total_amount,
        "allocations": allocations,
        "distributed": distributed,
        "withheld": withheld_total,
        "retained": total_amount - distributed,
        "rounding_remainder": remainder,
    }


class SplitsValidator:
    """Royalty split validation."""

    def __init__(self, now: Optional[datetime] = None):
        self._now = now

    @property
    def now(self) -> datetime:
        return self._now or utc_now()

    def validate_for_creation(
        self,
        split: dict,
        strict: bool = False,
        validate_total_percentage: bool = True,
        validate_participants: bool = True
    ) -> ValidationResult:
        """Validate a split configuration before it is created.

        Structural checks always run first; participant, percentage, legal
        and business checks then run over whatever entries are usable.
        """
        acc = ValidationAccumulator()

        with fail_closed(acc, "splits.validate_for_creation"):
            check_split_structure(acc, split)
            if validate_participants:
                check_participants(acc, split, strict)
            if validate_total_percentage:
                check_percentages(acc, split)
            check_legal_compliance(acc, split)
            check_business_rules(acc, split, self.now)

        return acc.build_result()

    def validate_for_calculation(
        self,
        split: dict,
        as_of: Optional[datetime] = None,
        validate_active_status: bool = True,
        validate_calculation_rules: bool = True
    ) -> ValidationResult:
        acc = ValidationAccumulator()
        as_of = as_of or self.now

        with fail_closed(acc, "splits.validate_for_calculation"):
            if validate_active_status:
                check_active_status(acc, split, as_of)
            if _entries(split):
                check_percentage_total(acc, split)
            if validate_calculation_rules:
                check_calculation_rules(acc, split)
            check_thresholds(acc, split)

        return acc.build_result()

    def validate_for_payment_distribution(
        self,
        split: dict,
        payment_data: Optional[dict],
        validate_payment_info: bool = True,
        validate_minimum_payouts: bool = True
    ) -> ValidationResult:
        acc = ValidationAccumulator()

        with fail_closed(acc, "splits.validate_for_payment_distribution"):
            if validate_payment_info:
                check_payment_information(acc, payment_data)
            if validate_minimum_payouts:
                check_minimum_payouts(acc, split, payment_data)
            check_tax_compliance(acc, split, payment_data)

        return acc.build_result()

    def get_split_summary(self, split: dict) -> Dict[str, Any]:
        entries = _entries(split)
        majority = next(
            (entry for entry in entries if is_number(entry.get("percentage")) and entry["percentage"] > 50),
            None
        )
        return {
            "total_participants": len(entries),
            "total_percentage": float(total_percentage(split)),
            "majority_control": majority is not None,
            "majority_participant": majority.get("participant_id") if majority else None,
            "distribution_fairness": assess_distribution_fairness(split),
            "legal_compliance_score": legal_compliance_score(split),
        }

    def allocate_royalties(self, split: dict, amount: Any) -> Dict[str, Any]:
        return allocate_royalties(split, amount)
