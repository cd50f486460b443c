"""Royalty payout batches: structure, calculations, processing and compliance."""

import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from catalog_rules.core.validation import ValidationAccumulator, ValidationResult, fail_closed
from catalog_rules.services.lifecycle import parse_status
from catalog_rules.utils.validators import DateValidator, is_number, utc_now

logger = logging.getLogger(__name__)

TOLERANCE = 0.01
MAX_PERIOD_DAYS = 366
AMOUNT_DECIMALS = 2
RATE_DECIMALS = 6

SMALL_PAYOUT = 1
LARGE_PAYOUT = 100000
DEFAULT_MINIMUM_PAYOUT = 10
SMALL_TOTAL_PAYOUT = 1
INDIVIDUAL_LIMIT = 10000
DAILY_LIMIT = 50000
CTR_THRESHOLD = 10000
ROUND_AMOUNT_MIN = 5000

MIN_PAYEE_TOTAL = 5
SMALL_PAYEE_TOTAL = 5
MAX_PAYEE_TRANSACTIONS = 50
HIGH_FEE_RATE = 0.5

HIGH_VALUE_BANK_TRANSFER = 25000
PAYPAL_DAILY_LIMIT = 10000
DOMINANT_METHOD_PERCENT = 80
UNUSUAL_METHODS = ("crypto", "check")

GLOBAL_MINIMUM = 10
GLOBAL_MAXIMUM = 50000
SAME_DAY_LARGE = 10000
LARGE_BATCH = 1000
MAX_MIXED_METHODS = 3

HIGH_RISK_SCORE = 75
COMPLIANCE_RISK_SCORE = 50
HIGH_VELOCITY_TOTAL = 100000

US_REPORTING_THRESHOLD = 600
BACKUP_WITHHOLDING_RATE = 0.24
EU_JURISDICTIONS = ("DE", "FR", "GB", "IT", "ES")
AML_LARGE_AMOUNT = 50000
AML_HIGH_VOLUME = 200
HIGH_RISK_COUNTRIES = ("AF", "IR", "KP", "SY")

REQUIRED_FIELDS = ("period_start", "period_end", "currency", "payouts")
PAYOUT_REQUIRED_FIELDS = ("payee_id", "gross_amount", "net_amount")
TOTAL_FIELDS = (
    "total_gross_amount", "total_deductions", "total_net_amount",
    "total_fees", "total_taxes", "exchange_rate",
)
PAYOUT_AMOUNT_FIELDS = (
    "gross_amount", "net_amount", "deductions", "fees", "taxes",
    "withholding_tax", "platform_fee", "processing_fee",
)
DEDUCTION_FIELDS = ("deductions", "fees", "taxes", "withholding_tax")
AUDIT_FIELDS = ("created_by", "approved_by", "calculation_method")
REQUIRED_DOCUMENTS = ("calculation_report", "approval_record")
RATE_FIELDS = (
    ("fee_rate", "invalid_fee_rate", "Fee rate"),
    ("tax_rate", "invalid_tax_rate", "Tax rate"),
    ("withholding_rate", "invalid_withholding_rate", "Withholding rate"),
)

CURRENCIES = (
    "USD", "EUR", "GBP", "CAD", "AUD", "JPY", "CHF", "SEK", "NOK", "DKK",
    "PLN", "CZK", "HUF", "BGN", "RON", "HRK", "RUB", "CNY", "INR", "BRL",
)


class PayoutStatus(str, Enum):
    DRAFT = "draft"
    CALCULATED = "calculated"
    APPROVED = "approved"
    PROCESSING = "processing"
    SENT = "sent"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


class PayoutEntryStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSING = "processing"
    SENT = "sent"
    COMPLETED = "completed"
    FAILED = "failed"
    DISPUTED = "disputed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    WIRE_TRANSFER = "wire_transfer"
    ACH = "ach"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    CHECK = "check"
    CRYPTO = "crypto"
    DIGITAL_WALLET = "digital_wallet"


PROCESSABLE_STATUSES = (PayoutStatus.CALCULATED, PayoutStatus.APPROVED)

# Per-payout (minimum, maximum) net amounts by payment method
METHOD_LIMITS = {
    PaymentMethod.BANK_TRANSFER: (1, 100000),
    PaymentMethod.WIRE_TRANSFER: (10, 500000),
    PaymentMethod.PAYPAL: (1, 10000),
    PaymentMethod.CHECK: (25, 25000),
    PaymentMethod.CRYPTO: (5, 50000),
}


def _payouts(payout: dict) -> List[dict]:
    entries = payout.get("payouts")
    if not isinstance(entries, list):
        return []
    return [entry for entry in entries if isinstance(entry, dict)]


def _amount(record: dict, key: str) -> float:
    value = record.get(key)
    return value if is_number(value) else 0


def _decimal_places(value: float) -> int:
    exponent = Decimal(str(value)).as_tuple().exponent
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


def _payee_totals(payout: dict) -> Dict[str, float]:
    totals: Dict[str, float] = defaultdict(float)
    for entry in _payouts(payout):
        payee_id = entry.get("payee_id")
        if payee_id:
            totals[str(payee_id)] += _amount(entry, "net_amount")
    return totals


def _method_groups(payout: dict) -> Dict[str, List[tuple]]:
    groups: Dict[str, List[tuple]] = defaultdict(list)
    for index, entry in enumerate(_payouts(payout)):
        groups[str(entry.get("payment_method") or "unknown")].append((index, entry))
    return groups


def _is_cross_border(payout: dict) -> bool:
    base = payout.get("currency")
    return any(
        entry.get("payment_method") == PaymentMethod.WIRE_TRANSFER.value
        or (entry.get("currency") and entry.get("currency") != base)
        for entry in _payouts(payout)
    )


# Structure

def check_period(acc: ValidationAccumulator, payout: dict) -> None:
    if not payout.get("period_start") or not payout.get("period_end"):
        return

    start = DateValidator.parse(payout["period_start"])
    end = DateValidator.parse(payout["period_end"])
    if start is None:
        acc.add_error("invalid_period_start", "Period start date is invalid", "period_start")
    if end is None:
        acc.add_error("invalid_period_end", "Period end date is invalid", "period_end")
    if start is None or end is None:
        return

    if end <= start:
        acc.add_error("invalid_period_range", "Period end date must be after start date", "period_range")

    period_days = (end - start).total_seconds() / 86400
    if period_days > MAX_PERIOD_DAYS:
        acc.add_warning("long_period", "Payout period exceeds one year", "period_range")
    elif period_days < 1:
        acc.add_error("very_short_period", "Payout period is less than one day", "period_range")


def check_payout_entry(acc: ValidationAccumulator, entry: dict, index: int) -> None:
    prefix = f"payouts[{index}]"

    for field in PAYOUT_REQUIRED_FIELDS:
        if entry.get(field) is None:
            acc.add_error("missing_payout_field", f"{field} is required for payout {index}", f"{prefix}.{field}")

    for field in PAYOUT_AMOUNT_FIELDS:
        value = entry.get(field)
        if value is None:
            continue
        if not is_number(value):
            acc.add_error("invalid_amount_type", f"{field} must be a number for payout {index}", f"{prefix}.{field}")
        elif value < 0:
            acc.add_error(
                "negative_payout_amount",
                f"{field} cannot be negative for payout {index}",
                f"{prefix}.{field}"
            )

    gross = entry.get("gross_amount")
    net = entry.get("net_amount")
    if is_number(gross) and is_number(net):
        if net > gross:
            acc.add_error("net_exceeds_gross", f"Net amount exceeds gross amount for payout {index}", f"{prefix}.amounts")

        expected_net = gross - sum(_amount(entry, field) for field in DEDUCTION_FIELDS)
        if abs(net - expected_net) > TOLERANCE:
            acc.add_warning(
                "amount_calculation_mismatch",
                f"Net amount calculation may be incorrect for payout {index}",
                f"{prefix}.calculation",
                details={"expected_net": round(expected_net, 2), "net_amount": net}
            )

    if entry.get("payee_id") and not isinstance(entry["payee_id"], str):
        acc.add_error("invalid_payee_id", f"Payee ID must be a string for payout {index}", f"{prefix}.payee_id")

    if entry.get("currency") and not isinstance(entry["currency"], str):
        acc.add_error("invalid_payout_currency", f"Currency must be a string for payout {index}", f"{prefix}.currency")

    method = entry.get("payment_method")
    if method and parse_status(PaymentMethod, method) is None:
        acc.add_warning(
            "unrecognized_payment_method",
            f"Unrecognized payment method: {method} for payout {index}",
            f"{prefix}.payment_method"
        )

    status = entry.get("status")
    if status and parse_status(PayoutEntryStatus, status) is None:
        acc.add_error("invalid_payout_status", f"Invalid payout status: {status} for payout {index}", f"{prefix}.status")

    if is_number(net):
        if 0 < net < SMALL_PAYOUT:
            acc.add_warning("very_small_payout", f"Very small payout amount (${net}) for payout {index}", f"{prefix}.net_amount")
        elif net > LARGE_PAYOUT:
            acc.add_warning("large_payout_amount", f"Large payout amount (${net}) for payout {index}", f"{prefix}.net_amount")


def check_payout_structure(acc: ValidationAccumulator, payout: dict) -> None:
    for field in REQUIRED_FIELDS:
        if payout.get(field) is None:
            acc.add_error("missing_required_field", f"{field} is required", field)

    check_period(acc, payout)

    currency = payout.get("currency")
    if currency and currency not in CURRENCIES:
        acc.add_warning("unrecognized_currency", f"Unrecognized currency: {currency}", "currency")

    entries = payout.get("payouts")
    if entries is not None:
        if not isinstance(entries, list):
            acc.add_error("invalid_payouts_format", "Payouts must be an array", "payouts")
        elif not entries:
            acc.add_error("empty_payouts", "At least one payout is required", "payouts")
        else:
            for index, entry in enumerate(entries):
                if isinstance(entry, dict):
                    check_payout_entry(acc, entry, index)
                else:
                    acc.add_error("invalid_payouts_format", f"Payout {index} must be an object", f"payouts[{index}]")

    status = payout.get("status")
    if status and parse_status(PayoutStatus, status) is None:
        acc.add_error("invalid_status", f"Invalid status: {status}", "status")

    for field in TOTAL_FIELDS:
        value = payout.get(field)
        if value is None:
            continue
        if not is_number(value):
            acc.add_error("invalid_numeric_value", f"{field} must be a valid number", field)
        elif value < 0:
            acc.add_error("negative_amount", f"{field} cannot be negative", field)


# Payees

def check_payees(acc: ValidationAccumulator, payout: dict, strict: bool = False) -> None:
    entries = _payouts(payout)

    if strict:
        for entry in entries:
            payee_id = entry.get("payee_id")
            if not isinstance(payee_id, str) or not payee_id.strip():
                acc.add_error("invalid_payee_id_format", "Payee ID must be a non-empty string", "payee_id")
                break

    methods: Dict[str, List[str]] = defaultdict(list)
    counts: Dict[str, int] = defaultdict(int)
    currencies: Dict[str, List[str]] = defaultdict(list)
    for entry in entries:
        payee_id = entry.get("payee_id")
        if not payee_id:
            continue
        payee_id = str(payee_id)
        counts[payee_id] += 1
        method = entry.get("payment_method")
        if method and method not in methods[payee_id]:
            methods[payee_id].append(method)
        currency = entry.get("currency")
        if currency and currency not in currencies[payee_id]:
            currencies[payee_id].append(currency)

    for payee_id, payee_methods in methods.items():
        if len(payee_methods) > 1:
            acc.add_warning(
                "inconsistent_payment_methods",
                f"Payee {payee_id} has multiple payment methods: {', '.join(map(str, payee_methods))}",
                "payment_methods"
            )

    totals = _payee_totals(payout)
    for payee_id, count in counts.items():
        if len(currencies[payee_id]) > 1:
            acc.add_warning(
                "multiple_currencies_per_payee",
                f"Payee {payee_id} has payouts in multiple currencies: {', '.join(map(str, currencies[payee_id]))}",
                "currencies"
            )
        if count > MAX_PAYEE_TRANSACTIONS:
            acc.add_warning(
                "high_transaction_count",
                f"Payee {payee_id} has {count} transactions",
                "transaction_count"
            )
        if 0 < totals[payee_id] < SMALL_PAYEE_TOTAL:
            acc.add_warning(
                "very_small_total_payout",
                f"Payee {payee_id} has very small total payout (${totals[payee_id]:.2f})",
                "total_amount"
            )


# Calculations

def check_total_reconciliation(acc: ValidationAccumulator, payout: dict) -> None:
    if not isinstance(payout.get("payouts"), list):
        return

    entries = _payouts(payout)
    calculated_gross = sum(_amount(entry, "gross_amount") for entry in entries)
    calculated_net = sum(_amount(entry, "net_amount") for entry in entries)
    calculated_deductions = sum(_amount(entry, "deductions") for entry in entries)

    declared_gross = payout.get("total_gross_amount")
    declared_net = payout.get("total_net_amount")
    declared_deductions = payout.get("total_deductions")

    if is_number(declared_gross) and abs(declared_gross - calculated_gross) > TOLERANCE:
        acc.add_error(
            "gross_total_mismatch",
            f"Declared gross total ({declared_gross}) doesn't match calculated total ({round(calculated_gross, 2)})",
            "total_gross_amount"
        )
    if is_number(declared_net) and abs(declared_net - calculated_net) > TOLERANCE:
        acc.add_error(
            "net_total_mismatch",
            f"Declared net total ({declared_net}) doesn't match calculated total ({round(calculated_net, 2)})",
            "total_net_amount"
        )
    if is_number(declared_deductions) and abs(declared_deductions - calculated_deductions) > TOLERANCE:
        acc.add_warning(
            "deductions_total_mismatch",
            "Declared deductions total doesn't match calculated total",
            "total_deductions"
        )

    if is_number(declared_gross) and is_number(declared_net) and declared_net > declared_gross:
        acc.add_error("net_exceeds_gross_total", "Total net amount exceeds total gross amount", "totals")


def _check_precision(acc: ValidationAccumulator, value: Any, field: str, max_decimals: int = AMOUNT_DECIMALS) -> None:
    if not is_number(value):
        return
    places = _decimal_places(value)
    if places > max_decimals:
        acc.add_warning(
            "excessive_precision",
            f"{field} has excessive decimal precision ({places} places)",
            field
        )


def check_calculation_precision(acc: ValidationAccumulator, payout: dict) -> None:
    _check_precision(acc, payout.get("total_gross_amount"), "total_gross_amount")
    _check_precision(acc, payout.get("total_net_amount"), "total_net_amount")

    for index, entry in enumerate(_payouts(payout)):
        _check_precision(acc, entry.get("gross_amount"), f"payouts[{index}].gross_amount")
        _check_precision(acc, entry.get("net_amount"), f"payouts[{index}].net_amount")

    _check_precision(acc, payout.get("exchange_rate"), "exchange_rate", RATE_DECIMALS)


def check_rates(acc: ValidationAccumulator, payout: dict) -> None:
    for field, code, label in RATE_FIELDS:
        rate = payout.get(field)
        if rate is None:
            continue
        if not is_number(rate) or not 0 <= rate <= 1:
            acc.add_error(code, f"{label} must be between 0 and 1", field)
        elif field == "fee_rate" and rate > HIGH_FEE_RATE:
            acc.add_warning("high_fee_rate", "Fee rate exceeds 50%", field)

    exchange_rate = payout.get("exchange_rate")
    if exchange_rate is not None and is_number(exchange_rate):
        if exchange_rate <= 0:
            acc.add_error("invalid_exchange_rate", "Exchange rate must be positive", "exchange_rate")
        elif exchange_rate > 1000 or exchange_rate < 0.001:
            acc.add_warning("unusual_exchange_rate", "Exchange rate seems unusual", "exchange_rate")


def check_currency_conversion(acc: ValidationAccumulator, payout: dict) -> None:
    base = payout.get("currency")
    if not base or not isinstance(payout.get("payouts"), list):
        return

    converted = [e for e in _payouts(payout) if e.get("currency") and e["currency"] != base]
    if converted:
        if not payout.get("exchange_rate") and not payout.get("exchange_rates"):
            acc.add_error("missing_exchange_rate", "Exchange rate required for currency conversion", "exchange_rate")
        acc.add_info(
            "currency_conversion_notice",
            f"{len(converted)} payouts require currency conversion",
            "currency_conversion"
        )

    rates = payout.get("exchange_rates")
    if isinstance(rates, dict):
        for currency, rate in rates.items():
            if not is_number(rate) or rate <= 0:
                acc.add_error(
                    "invalid_currency_rate",
                    f"Invalid exchange rate for {currency}",
                    f"exchange_rates.{currency}"
                )


def check_calculations(acc: ValidationAccumulator, payout: dict) -> None:
    check_total_reconciliation(acc, payout)
    check_calculation_precision(acc, payout)
    check_rates(acc, payout)
    check_currency_conversion(acc, payout)


# Financial compliance

def check_payout_limits(acc: ValidationAccumulator, payout: dict) -> None:
    for index, entry in enumerate(_payouts(payout)):
        net = entry.get("net_amount")
        if not is_number(net):
            continue
        minimum = entry.get("minimum_threshold")
        minimum = minimum if is_number(minimum) and minimum else DEFAULT_MINIMUM_PAYOUT
        if 0 < net < minimum:
            acc.add_warning(
                "below_minimum_threshold",
                f"Payout {index} amount (${net}) below minimum threshold (${minimum})",
                f"payouts[{index}].net_amount"
            )
        if net > INDIVIDUAL_LIMIT:
            acc.add_warning(
                "high_individual_payout",
                f"Payout {index} amount (${net}) exceeds individual limit (${INDIVIDUAL_LIMIT})",
                f"payouts[{index}].net_amount"
            )

    total = payout.get("total_net_amount")
    if is_number(total):
        if total < SMALL_TOTAL_PAYOUT:
            acc.add_warning("very_small_total_payout", "Total payout amount is very small", "total_net_amount")
        if total > DAILY_LIMIT:
            acc.add_warning(
                "high_total_payout",
                f"Total payout amount (${total}) exceeds daily limit (${DAILY_LIMIT})",
                "total_net_amount"
            )


def check_financial_regulations(acc: ValidationAccumulator, payout: dict) -> None:
    total = payout.get("total_net_amount")
    if is_number(total) and total >= CTR_THRESHOLD:
        acc.add_info("ctr_reporting_required", "Large transaction may require CTR reporting", "regulatory_reporting")

    if any(
        is_number(entry.get("net_amount")) and entry["net_amount"] >= ROUND_AMOUNT_MIN
        and entry["net_amount"] % 1000 == 0
        for entry in _payouts(payout)
    ):
        acc.add_info(
            "round_amount_notice",
            "Large round amounts detected, may require additional scrutiny",
            "suspicious_activity"
        )


def check_audit_trail(acc: ValidationAccumulator, payout: dict) -> None:
    for field in AUDIT_FIELDS:
        if not payout.get(field):
            acc.add_warning("missing_audit_field", f"Audit field {field} is missing", field)

    if not payout.get("calculation_notes") and not payout.get("calculation_details"):
        acc.add_warning(
            "missing_calculation_documentation",
            "Calculation documentation is recommended for audit purposes",
            "calculation_documentation"
        )

    if parse_status(PayoutStatus, payout.get("status")) == PayoutStatus.APPROVED:
        if not payout.get("approved_by"):
            acc.add_error("missing_approval_info", "Approved payouts must have approver information", "approved_by")
        if not payout.get("approval_date"):
            acc.add_warning("missing_approval_date", "Approval date is missing", "approval_date")


def check_financial_compliance(acc: ValidationAccumulator, payout: dict) -> None:
    check_payout_limits(acc, payout)
    check_financial_regulations(acc, payout)
    check_audit_trail(acc, payout)


# Payment methods

def _group_total(group: Iterable[tuple]) -> float:
    return sum(_amount(entry, "net_amount") for _, entry in group)


def check_bank_transfer_group(acc: ValidationAccumulator, group: List[tuple]) -> None:
    for index, entry in group:
        net = _amount(entry, "net_amount")
        if 0 < net < 1:
            acc.add_warning(
                "bank_transfer_minimum",
                f"Bank transfer minimum amount not met for payout {index}",
                f"payouts[{index}].net_amount"
            )
        if not entry.get("bank_account_info") and not entry.get("payment_details"):
            acc.add_error(
                "missing_bank_details",
                f"Bank account information required for payout {index}",
                f"payouts[{index}].bank_account_info"
            )

    if _group_total(group) > HIGH_VALUE_BANK_TRANSFER:
        acc.add_info(
            "high_value_bank_transfer",
            "High value bank transfers may require additional verification",
            "bank_transfer"
        )


def check_paypal_group(acc: ValidationAccumulator, group: List[tuple]) -> None:
    if _group_total(group) > PAYPAL_DAILY_LIMIT:
        acc.add_warning("paypal_daily_limit", "PayPal payouts may exceed daily limit", "paypal_limit")

    for index, entry in group:
        if not entry.get("paypal_email") and not entry.get("payment_details"):
            acc.add_error(
                "missing_paypal_email",
                f"PayPal email required for payout {index}",
                f"payouts[{index}].paypal_email"
            )
        net = _amount(entry, "net_amount")
        if 0 < net < 1:
            acc.add_warning(
                "paypal_minimum",
                f"PayPal minimum amount ($1) not met for payout {index}",
                f"payouts[{index}].net_amount"
            )


def check_check_group(acc: ValidationAccumulator, group: List[tuple]) -> None:
    for index, entry in group:
        net = _amount(entry, "net_amount")
        if 0 < net < 25:
            acc.add_warning(
                "check_minimum",
                f"Check minimum amount ($25) not met for payout {index}",
                f"payouts[{index}].net_amount"
            )
        if not entry.get("mailing_address") and not entry.get("payment_details"):
            acc.add_error(
                "missing_mailing_address",
                f"Mailing address required for check payout {index}",
                f"payouts[{index}].mailing_address"
            )

    acc.add_info("check_processing_time", "Check payments typically take 7-14 business days", "check_timing")


def check_crypto_group(acc: ValidationAccumulator, group: List[tuple]) -> None:
    for index, entry in group:
        if not entry.get("wallet_address") and not entry.get("payment_details"):
            acc.add_error(
                "missing_wallet_address",
                f"Crypto wallet address required for payout {index}",
                f"payouts[{index}].wallet_address"
            )
        if not entry.get("crypto_network") and not entry.get("blockchain_network"):
            acc.add_warning(
                "missing_crypto_network",
                f"Crypto network specification recommended for payout {index}",
                f"payouts[{index}].crypto_network"
            )

    acc.add_info("crypto_volatility_notice", "Crypto payouts subject to exchange rate volatility", "crypto_volatility")


METHOD_GROUP_CHECKS = {
    PaymentMethod.BANK_TRANSFER.value: check_bank_transfer_group,
    PaymentMethod.WIRE_TRANSFER.value: check_bank_transfer_group,
    PaymentMethod.PAYPAL.value: check_paypal_group,
    PaymentMethod.CHECK.value: check_check_group,
    PaymentMethod.CRYPTO.value: check_crypto_group,
}


def check_payment_methods(acc: ValidationAccumulator, payout: dict) -> None:
    groups = _method_groups(payout)
    if not groups:
        return

    for method, group in groups.items():
        check = METHOD_GROUP_CHECKS.get(method)
        if check is not None:
            check(acc, group)

    total = sum(len(group) for group in groups.values())
    for method, group in groups.items():
        percentage = len(group) / total * 100
        if percentage > DOMINANT_METHOD_PERCENT:
            acc.add_info(
                "dominant_payment_method",
                f"{method} represents {percentage:.1f}% of payouts",
                "payment_method_distribution"
            )

    for method in UNUSUAL_METHODS:
        if groups.get(method):
            acc.add_info(
                "unusual_payment_method",
                f"{len(groups[method])} payouts using {method}",
                "unusual_methods"
            )


# Thresholds

def check_thresholds(acc: ValidationAccumulator, payout: dict) -> None:
    total = payout.get("total_net_amount")
    minimum = payout.get("minimum_payout_amount") or GLOBAL_MINIMUM
    maximum = payout.get("maximum_payout_amount") or GLOBAL_MAXIMUM
    if is_number(total):
        if total < minimum:
            acc.add_error(
                "below_global_minimum",
                f"Total payout below global minimum (${minimum})",
                "total_net_amount"
            )
        if total > maximum:
            acc.add_warning(
                "above_global_maximum",
                f"Total payout above global maximum (${maximum})",
                "total_net_amount"
            )

    for payee_id, amount in _payee_totals(payout).items():
        if 0 < amount < MIN_PAYEE_TOTAL:
            acc.add_warning(
                "below_payee_minimum",
                f"Payee {payee_id} total (${amount}) below minimum (${MIN_PAYEE_TOTAL})",
                "payee_threshold"
            )

    for index, entry in enumerate(_payouts(payout)):
        method = parse_status(PaymentMethod, entry.get("payment_method"))
        amount = entry.get("net_amount")
        if method not in METHOD_LIMITS or not is_number(amount) or not amount:
            continue
        low, high = METHOD_LIMITS[method]
        if amount < low:
            acc.add_warning(
                "below_method_minimum",
                f"Payout {index} amount (${amount}) below {method.value} minimum (${low})",
                f"payouts[{index}].net_amount"
            )
        if amount > high:
            acc.add_warning(
                "above_method_maximum",
                f"Payout {index} amount (${amount}) above {method.value} maximum (${high})",
                f"payouts[{index}].net_amount"
            )


# Processing readiness

def check_processing_readiness(acc: ValidationAccumulator, payout: dict, now: datetime) -> None:
    status = payout.get("status")
    if parse_status(PayoutStatus, status) not in PROCESSABLE_STATUSES:
        acc.add_error("invalid_status_for_processing", f"Status {status} not valid for processing", "status")

    if payout.get("requires_approval") and not payout.get("approved_by"):
        acc.add_error("missing_required_approval", "Payout requires approval before processing", "approval")

    scheduled = DateValidator.parse(payout.get("scheduled_processing_date"))
    if scheduled is not None:
        if scheduled < now:
            acc.add_warning(
                "past_processing_date",
                "Scheduled processing date is in the past",
                "scheduled_processing_date"
            )
        if scheduled.weekday() >= 5:
            acc.add_warning(
                "weekend_processing",
                "Processing scheduled for weekend may be delayed",
                "scheduled_processing_date"
            )
        total = payout.get("total_net_amount")
        if scheduled.date() == now.date() and is_number(total) and total > SAME_DAY_LARGE:
            acc.add_warning(
                "same_day_large_processing",
                "Large same-day processing may require additional verification",
                "processing_timing"
            )

    entries = _payouts(payout)
    if not entries:
        return

    if len(entries) > LARGE_BATCH:
        acc.add_warning(
            "large_batch_size",
            f"Large batch size ({len(entries)}) may affect processing time",
            "batch_size"
        )

    currencies = {e["currency"] for e in entries if isinstance(e.get("currency"), str) and e["currency"]}
    if len(currencies) > 1:
        acc.add_info("mixed_currency_batch", f"Batch contains {len(currencies)} different currencies", "currency_mix")

    methods = {e["payment_method"] for e in entries if isinstance(e.get("payment_method"), str) and e["payment_method"]}
    if len(methods) > MAX_MIXED_METHODS:
        acc.add_info("mixed_method_batch", f"Batch contains {len(methods)} different payment methods", "method_mix")


# Risk

def calculate_risk_score(payout: dict) -> int:
    entries = _payouts(payout)
    score = 0

    total = payout.get("total_net_amount")
    if is_number(total) and total > 25000:
        score += 20
    if len(entries) > 100:
        score += 15
    if _is_cross_border(payout):
        score += 10
    if payout.get("urgent") or payout.get("rush_processing"):
        score += 15
    if any(entry.get("payment_method") == PaymentMethod.CRYPTO.value for entry in entries):
        score += 25

    return min(score, 100)


def check_risk(acc: ValidationAccumulator, payout: dict) -> None:
    risk_score = calculate_risk_score(payout)
    if risk_score > HIGH_RISK_SCORE:
        acc.add_warning(
            "high_risk_transaction",
            "Transaction flagged as high risk",
            "risk_assessment",
            details={"risk_score": risk_score}
        )

    total = payout.get("total_net_amount")
    if payout.get("processing_frequency") == "daily" and is_number(total) and total > HIGH_VELOCITY_TOTAL:
        acc.add_info("high_velocity_payout", "High daily payout volume detected", "velocity")

    entries = _payouts(payout)
    if not entries:
        return

    amounts = [e["net_amount"] for e in entries if is_number(e.get("net_amount")) and e["net_amount"]]
    round_amounts = [a for a in amounts if a >= 500 and a % 100 == 0]
    if len(round_amounts) > len(entries) * 0.8:
        acc.add_info("round_amount_pattern", "Unusual pattern of round amounts detected", "patterns")

    if len(amounts) > 10 and len(set(amounts)) == 1:
        acc.add_info("equal_amount_pattern", "All payouts have identical amounts", "patterns")


# Tax and regulatory compliance

def check_us_tax(acc: ValidationAccumulator, payout: dict) -> None:
    for payee_id, amount in _payee_totals(payout).items():
        if amount >= US_REPORTING_THRESHOLD:
            acc.add_info(
                "1099_reporting_required",
                f"Payee {payee_id} exceeds 1099 reporting threshold",
                "tax_reporting"
            )

    if payout.get("backup_withholding_required"):
        for index, entry in enumerate(_payouts(payout)):
            withheld = entry.get("backup_withholding")
            gross = entry.get("gross_amount")
            if is_number(withheld) and withheld and is_number(gross) and gross:
                if abs(withheld - gross * BACKUP_WITHHOLDING_RATE) > TOLERANCE:
                    acc.add_warning(
                        "incorrect_backup_withholding",
                        f"Backup withholding calculation may be incorrect for payout {index}",
                        f"payouts[{index}].backup_withholding"
                    )


def check_eu_tax(acc: ValidationAccumulator, payout: dict) -> None:
    acc.add_info("dac_reporting_notice", "EU payments may require DAC reporting", "eu_tax_compliance")
    if payout.get("includes_vat"):
        acc.add_info("vat_compliance_notice", "VAT compliance requirements may apply", "vat_compliance")


def check_general_tax(acc: ValidationAccumulator, payout: dict) -> None:
    if payout.get("tax_documents_required") and not payout.get("tax_documents_collected"):
        acc.add_warning("missing_tax_documents", "Required tax documents not collected", "tax_documents")

    rate = payout.get("withholding_tax_rate")
    if not is_number(rate) or not rate:
        return

    for index, entry in enumerate(_payouts(payout)):
        withheld = entry.get("withholding_tax")
        gross = entry.get("gross_amount")
        if is_number(withheld) and withheld and is_number(gross) and gross:
            if abs(withheld - gross * rate) > TOLERANCE:
                acc.add_warning(
                    "withholding_tax_mismatch",
                    f"Withholding tax calculation may be incorrect for payout {index}",
                    f"payouts[{index}].withholding_tax"
                )


def check_regulatory(acc: ValidationAccumulator, payout: dict) -> None:
    total = payout.get("total_net_amount")
    if is_number(total) and total >= CTR_THRESHOLD:
        acc.add_info(
            "large_transaction_reporting",
            "Transaction may require regulatory reporting",
            "regulatory_reporting"
        )

    if _is_cross_border(payout):
        acc.add_info(
            "cross_border_compliance",
            "Cross-border payments may have additional compliance requirements",
            "cross_border"
        )


def check_aml(acc: ValidationAccumulator, payout: dict) -> None:
    entries = _payouts(payout)
    indicators = []

    total = payout.get("total_net_amount")
    if is_number(total) and total > AML_LARGE_AMOUNT:
        indicators.append("large_amount")
    if len(entries) > AML_HIGH_VOLUME:
        indicators.append("high_volume")
    if any(entry.get("beneficiary_country") in HIGH_RISK_COUNTRIES for entry in entries):
        indicators.append("high_risk_geography")

    if indicators:
        acc.add_info(
            "aml_risk_indicators",
            f"AML risk indicators detected: {', '.join(indicators)}",
            "aml_compliance",
            details={"indicators": indicators}
        )


def check_documentation(acc: ValidationAccumulator, payout: dict) -> None:
    supporting = payout.get("supporting_documents")
    supporting = supporting if isinstance(supporting, list) else []
    for document in REQUIRED_DOCUMENTS:
        if not payout.get(document) and document not in supporting:
            acc.add_warning("missing_required_document", f"Required document {document} is missing", "documentation")

    acc.add_info(
        "document_retention_notice",
        "Payout documentation must be retained per regulatory requirements",
        "document_retention"
    )


# Summary

def assess_processing_readiness(payout: dict) -> Dict[str, Any]:
    issues = []
    if parse_status(PayoutStatus, payout.get("status")) not in PROCESSABLE_STATUSES:
        issues.append("invalid_status")
    if payout.get("requires_approval") and not payout.get("approved_by"):
        issues.append("missing_approval")
    if not _payouts(payout):
        issues.append("no_payouts")
    return {"ready": not issues, "issues": issues}


def calculate_compliance_score(payout: dict) -> int:
    score = 100
    if not payout.get("calculation_report"):
        score -= 10
    if not payout.get("approval_record"):
        score -= 10
    if payout.get("tax_documents_required") and not payout.get("tax_documents_collected"):
        score -= 20
    if calculate_risk_score(payout) > COMPLIANCE_RISK_SCORE:
        score -= 15
    if not payout.get("created_by"):
        score -= 5
    if parse_status(PayoutStatus, payout.get("status")) == PayoutStatus.APPROVED and not payout.get("approved_by"):
        score -= 10
    return max(0, score)


class PayoutValidator:
    """Payout batch validation."""

    def __init__(self, now: Optional[datetime] = None):
        self._now = now

    @property
    def now(self) -> datetime:
        return self._now or utc_now()

    def validate_for_creation(
        self,
        payout: dict,
        validate_payees: bool = True,
        validate_calculations: bool = True,
        strict: bool = False
    ) -> ValidationResult:
        """Validate a payout batch before it is saved.

        Structure and financial compliance always run; payee and calculation
        checks can be switched off for partially assembled batches.
        """
        acc = ValidationAccumulator()

        with fail_closed(acc, "payout.validate_for_creation"):
            check_payout_structure(acc, payout)
            if validate_payees:
                check_payees(acc, payout, strict)
            if validate_calculations:
                check_calculations(acc, payout)
            check_financial_compliance(acc, payout)

        return acc.build_result()

    def validate_for_processing(
        self,
        payout: dict,
        validate_payment_methods: bool = True,
        validate_thresholds: bool = True
    ) -> ValidationResult:
        acc = ValidationAccumulator()

        with fail_closed(acc, "payout.validate_for_processing"):
            if validate_payment_methods:
                check_payment_methods(acc, payout)
            if validate_thresholds:
                check_thresholds(acc, payout)
            check_processing_readiness(acc, payout, self.now)
            check_risk(acc, payout)

        return acc.build_result()

    def validate_for_compliance(
        self,
        payout: dict,
        jurisdictions: Optional[Iterable[str]] = None,
        validate_tax_compliance: bool = True,
        validate_regulatory_compliance: bool = True
    ) -> ValidationResult:
        acc = ValidationAccumulator()
        jurisdictions = set(jurisdictions or ())

        with fail_closed(acc, "payout.validate_for_compliance"):
            if validate_tax_compliance:
                if "US" in jurisdictions:
                    check_us_tax(acc, payout)
                if jurisdictions & set(EU_JURISDICTIONS):
                    check_eu_tax(acc, payout)
                check_general_tax(acc, payout)
            if validate_regulatory_compliance:
                check_regulatory(acc, payout)
            check_aml(acc, payout)
            check_documentation(acc, payout)

        logger.debug(f"Checked payout compliance for jurisdictions {sorted(jurisdictions)}")
        return acc.build_result()

    def calculate_risk_score(self, payout: dict) -> int:
        return calculate_risk_score(payout)

    def calculate_compliance_score(self, payout: dict) -> int:
        return calculate_compliance_score(payout)

    def assess_processing_readiness(self, payout: dict) -> Dict[str, Any]:
        return assess_processing_readiness(payout)

    def get_payout_summary(self, payout: dict) -> Dict[str, Any]:
        total = payout.get("total_net_amount")
        return {
            "total_payouts": len(_payouts(payout)),
            "total_amount": total if is_number(total) else 0,
            "currency": payout.get("currency"),
            "risk_score": calculate_risk_score(payout),
            "processing_readiness": assess_processing_readiness(payout),
            "compliance_score": calculate_compliance_score(payout),
        }
