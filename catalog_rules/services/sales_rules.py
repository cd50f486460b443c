"""Store sales records, sales reports and batch imports."""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from catalog_rules.core.validation import ValidationAccumulator, ValidationResult, fail_closed
from catalog_rules.services.lifecycle import parse_status
from catalog_rules.utils.validators import DateValidator, is_integer, is_number, is_uuid, utc_now

logger = logging.getLogger(__name__)

EARLIEST_SALE_DATE = datetime(2000, 1, 1)
STALE_SALE_DAYS = 30
MAX_REPORT_DAYS = 365 * 2
HIGH_UNIT_PRICE = 10000
LOW_UNIT_PRICE = 0.01
HIGH_QUANTITY = 1_000_000
MIN_SALE_TOTAL = 0.01
MAX_BATCH_SIZE = 10000

REQUIRED_FIELDS = ("publication_id", "store", "sale_date", "quantity", "unit_price", "currency")

STORES = (
    "amazon", "apple", "google", "kobo", "barnes-noble", "smashwords", "draft2digital",
    "kindle-unlimited", "audible", "spotify", "libro-fm", "chirp-books",
)
CURRENCIES = ("USD", "EUR", "GBP", "CAD", "AUD", "JPY", "PLN", "SEK", "NOK", "DKK", "CHF", "SGD", "HKD")
REPORT_GROUPINGS = ("store", "date", "publication", "currency")

# (field, type error code, negative error code)
REVENUE_FIELDS = (
    ("gross_revenue", "invalid_gross_revenue_type", "negative_gross_revenue"),
    ("net_revenue", "invalid_net_revenue_type", "negative_net_revenue"),
    ("royalty_amount", "invalid_royalty_amount_type", "negative_royalty_amount"),
)


class SaleType(str, Enum):
    SALE = "sale"
    RETURN = "return"
    ADJUSTMENT = "adjustment"
    REFUND = "refund"


class SaleUnit(str, Enum):
    UNITS = "units"
    PAGES_READ = "pages_read"
    MINUTES_LISTENED = "minutes_listened"


class SaleStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DISPUTED = "disputed"
    CANCELLED = "cancelled"


def check_required_fields(acc: ValidationAccumulator, sale: dict) -> None:
    for field in REQUIRED_FIELDS:
        if sale.get(field) is None:
            acc.add_error("required_field", f"{field} is required", field)


def check_publication_id(acc: ValidationAccumulator, publication_id: Any) -> None:
    if not is_uuid(publication_id):
        acc.add_error("invalid_publication_id_format", "Publication ID must be a valid UUID", "publication_id")


def check_store(acc: ValidationAccumulator, store: Any, field: str = "store") -> None:
    if not store:
        acc.add_error("missing_store", "Store is required", field)
        return

    if not isinstance(store, str):
        acc.add_error("invalid_store_format", "Store must be a string", field)
        return

    if store.lower() not in STORES:
        acc.add_error("invalid_store", f'Store "{store}" is not supported', field)


def check_store_list(acc: ValidationAccumulator, stores: Any) -> None:
    if not isinstance(stores, list):
        acc.add_error("invalid_stores_format", "Stores must be an array", "stores")
        return

    for store in stores:
        check_store(acc, store, "stores")

    names = [s.lower() for s in stores if isinstance(s, str)]
    if len(set(names)) != len(names):
        acc.add_warning("duplicate_stores", "Duplicate stores in filter", "stores")


def check_sale_date(acc: ValidationAccumulator, sale_date: Any, now: datetime) -> None:
    if not sale_date:
        acc.add_error("missing_sale_date", "Sale date is required", "sale_date")
        return

    parsed = DateValidator.parse(sale_date)
    if parsed is None:
        acc.add_error("invalid_sale_date", "Sale date must be a valid date", "sale_date")
        return

    if parsed > now:
        acc.add_error("future_sale_date", "Sale date cannot be in the future", "sale_date")
    if parsed < EARLIEST_SALE_DATE:
        acc.add_error("very_old_sale_date", "Sale date seems unreasonably old", "sale_date")
    if parsed < now - timedelta(days=STALE_SALE_DAYS):
        acc.add_warning("old_sale_date", f"Sale date is more than {STALE_SALE_DAYS} days old", "sale_date")


def check_unit_price(acc: ValidationAccumulator, unit_price: Any) -> None:
    if unit_price is None:
        acc.add_error("missing_unit_price", "Unit price is required", "unit_price")
        return

    if not is_number(unit_price):
        acc.add_error("invalid_unit_price_type", "Unit price must be a number", "unit_price")
        return

    if unit_price < 0:
        acc.add_error("negative_unit_price", "Unit price cannot be negative", "unit_price")
    if unit_price > HIGH_UNIT_PRICE:
        acc.add_warning("very_high_unit_price", "Unit price is unusually high", "unit_price")
    if 0 < unit_price < LOW_UNIT_PRICE:
        acc.add_warning("very_low_unit_price", "Unit price is unusually low", "unit_price")


def check_revenue(acc: ValidationAccumulator, sale: dict) -> None:
    for field, type_code, negative_code in REVENUE_FIELDS:
        value = sale.get(field)
        if value is None:
            continue
        label = field.replace("_", " ").capitalize()
        if not is_number(value):
            acc.add_error(type_code, f"{label} must be a number", field)
        elif value < 0:
            acc.add_error(negative_code, f"{label} cannot be negative", field)


def check_revenue_consistency(acc: ValidationAccumulator, sale: dict) -> None:
    gross = sale.get("gross_revenue")
    net = sale.get("net_revenue")
    royalty = sale.get("royalty_amount")

    if is_number(gross) and is_number(net) and net > gross:
        acc.add_error("net_greater_than_gross", "Net revenue cannot exceed gross revenue", "net_revenue")
    if is_number(net) and is_number(royalty) and royalty > net:
        acc.add_error("royalty_greater_than_net", "Royalty amount cannot exceed net revenue", "royalty_amount")


def check_quantity(acc: ValidationAccumulator, quantity: Any) -> None:
    if quantity is None:
        acc.add_error("missing_quantity", "Quantity is required", "quantity")
        return

    if not is_number(quantity):
        acc.add_error("invalid_quantity_type", "Quantity must be a number", "quantity")
        return

    if quantity < 0:
        acc.add_error("negative_quantity", "Quantity cannot be negative", "quantity")
    if quantity > 0 and not is_integer(quantity):
        acc.add_warning(
            "fractional_quantity",
            "Fractional quantity detected - ensure this is correct for the unit type",
            "quantity"
        )
    if quantity > HIGH_QUANTITY:
        acc.add_warning("very_high_quantity", "Quantity is unusually high", "quantity")


def check_unit(acc: ValidationAccumulator, unit: Any) -> None:
    if unit and parse_status(SaleUnit, unit) is None:
        acc.add_error("invalid_unit", f"Unit must be one of: {', '.join(u.value for u in SaleUnit)}", "unit")


def check_currency(acc: ValidationAccumulator, currency: Any) -> None:
    if not currency:
        acc.add_error("missing_currency", "Currency is required", "currency")
        return

    if not isinstance(currency, str) or currency.upper() not in CURRENCIES:
        acc.add_error("invalid_currency", f"Currency must be one of: {', '.join(CURRENCIES)}", "currency")


def check_sale_type(acc: ValidationAccumulator, sale_type: Any) -> None:
    if sale_type and parse_status(SaleType, sale_type) is None:
        acc.add_error(
            "invalid_sale_type",
            f"Sale type must be one of: {', '.join(t.value for t in SaleType)}",
            "sale_type"
        )


def check_status(acc: ValidationAccumulator, status: Any) -> None:
    if parse_status(SaleStatus, status) is None:
        acc.add_error(
            "invalid_status",
            f"Status must be one of: {', '.join(s.value for s in SaleStatus)}",
            "status"
        )


def check_business_rules(acc: ValidationAccumulator, sale: dict) -> None:
    unit_price = sale.get("unit_price")
    quantity = sale.get("quantity")
    if is_number(unit_price) and is_number(quantity) and unit_price > 0 and quantity > 0:
        if unit_price * quantity < MIN_SALE_TOTAL:
            acc.add_warning("very_small_sale", "Sale total is less than $0.01", "unit_price")


def check_report_date_range(acc: ValidationAccumulator, start_value: Any, end_value: Any) -> None:
    start = DateValidator.parse(start_value)
    end = DateValidator.parse(end_value)

    if start_value and start is None:
        acc.add_error("invalid_start_date", "Start date must be a valid date", "start_date")
    if end_value and end is None:
        acc.add_error("invalid_end_date", "End date must be a valid date", "end_date")

    if start is not None and end is not None:
        if end <= start:
            acc.add_error("invalid_date_range", "End date must be after start date", "end_date")
        elif (end - start).days > MAX_REPORT_DAYS:
            acc.add_warning(
                "large_date_range",
                "Date range exceeds 2 years - report may be slow",
                "end_date"
            )


def check_group_by(acc: ValidationAccumulator, group_by: Any) -> None:
    if not isinstance(group_by, list):
        return

    for field in group_by:
        if field not in REPORT_GROUPINGS:
            acc.add_error(
                "invalid_group_by",
                f'Invalid group by field "{field}". Must be one of: {", ".join(REPORT_GROUPINGS)}',
                "group_by"
            )


def check_batch_consistency(acc: ValidationAccumulator, sales: list) -> None:
    seen = set()
    duplicates = []
    for index, sale in enumerate(sales):
        if not isinstance(sale, dict):
            continue
        key = (str(sale.get("publication_id")), str(sale.get("store")), str(sale.get("sale_date")))
        if key in seen:
            duplicates.append(index)
        else:
            seen.add(key)

    if duplicates:
        acc.add_warning(
            "duplicate_sales_in_batch",
            f"Potential duplicate sales at indices: {', '.join(str(i) for i in duplicates)}",
            "batch",
            details={"indices": duplicates}
        )

    currencies = sorted({str(sale.get("currency")) for sale in sales if isinstance(sale, dict)})
    if len(currencies) > 1:
        acc.add_info(
            "multiple_currencies_in_batch",
            f"Batch contains multiple currencies: {', '.join(currencies)}",
            "batch"
        )


# Field checks run for each supplied field, in order
FIELD_CHECKS = (
    ("store", check_store),
    ("quantity", check_quantity),
    ("unit_price", check_unit_price),
    ("unit", check_unit),
    ("currency", check_currency),
    ("sale_type", check_sale_type),
    ("status", check_status),
)


class SalesValidator:
    """Sales record validation."""

    def __init__(self, now: Optional[datetime] = None):
        self._now = now

    @property
    def now(self) -> datetime:
        return self._now or utc_now()

    def _check_sale(self, acc: ValidationAccumulator, sale: dict) -> None:
        check_required_fields(acc, sale)
        if sale.get("publication_id") is not None:
            check_publication_id(acc, sale["publication_id"])

        for field, check in FIELD_CHECKS:
            if sale.get(field) is not None:
                check(acc, sale[field])

        if sale.get("sale_date") is not None:
            check_sale_date(acc, sale["sale_date"], self.now)
        check_revenue(acc, sale)
        check_revenue_consistency(acc, sale)
        check_business_rules(acc, sale)

    def validate_for_creation(self, sale: dict) -> ValidationResult:
        acc = ValidationAccumulator()

        with fail_closed(acc, "sales.validate_for_creation"):
            self._check_sale(acc, sale)

        return acc.build_result()

    def validate_update(self, update_data: dict, sale_id: Optional[str] = None) -> ValidationResult:
        """Validate only the fields present in ``update_data``."""
        acc = ValidationAccumulator()

        with fail_closed(acc, "sales.validate_update"):
            for field, check in FIELD_CHECKS:
                if field in update_data:
                    check(acc, update_data[field])

            if "sale_date" in update_data:
                check_sale_date(acc, update_data["sale_date"], self.now)
            check_revenue(acc, update_data)
            check_revenue_consistency(acc, update_data)

            if "status" in update_data:
                logger.debug(f"Validated status change to {update_data['status']} for sale {sale_id}")

        return acc.build_result()

    def validate_report(self, report: dict) -> ValidationResult:
        """Validate sales report filters: date range, stores, currency and grouping."""
        acc = ValidationAccumulator()

        with fail_closed(acc, "sales.validate_report"):
            check_report_date_range(acc, report.get("start_date"), report.get("end_date"))
            if report.get("stores"):
                check_store_list(acc, report["stores"])
            if report.get("currency"):
                check_currency(acc, report["currency"])
            check_group_by(acc, report.get("group_by"))

        return acc.build_result()

    def validate_batch_import(self, sales: Any) -> ValidationResult:
        """Validate every record of an import batch.

        Each invalid record contributes one ``batch_record_invalid`` error
        naming its index; the per-record issues themselves are not repeated.
        """
        acc = ValidationAccumulator()

        with fail_closed(acc, "sales.validate_batch_import"):
            if not isinstance(sales, list):
                acc.add_error("invalid_batch_format", "Sales data must be an array", "batch")
                return acc.build_result()
            if not sales:
                acc.add_error("empty_batch", "Batch cannot be empty", "batch")
                return acc.build_result()
            if len(sales) > MAX_BATCH_SIZE:
                acc.add_error(
                    "batch_too_large",
                    f"Batch size cannot exceed {MAX_BATCH_SIZE:,} records",
                    "batch"
                )
                return acc.build_result()

            for index, sale in enumerate(sales):
                record = ValidationAccumulator()
                if isinstance(sale, dict):
                    self._check_sale(record, sale)
                else:
                    record.add_error("invalid_record", "Sales record must be an object", "batch")
                if record.errors:
                    acc.add_error(
                        "batch_record_invalid",
                        f"Record at index {index} is invalid: {', '.join(e.message for e in record.errors)}",
                        "batch",
                        details={"index": index, "codes": [e.code for e in record.errors]}
                    )

            check_batch_consistency(acc, sales)

            logger.debug(f"Validated sales batch of {len(sales)} records")

        return acc.build_result()
