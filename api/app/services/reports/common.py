"""Shared building blocks for the report calculators: result container, money
rounding and statement-row helpers."""

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from app.services.reports.periods import DateRange, build_period_columns, period_key

ZERO = Decimal("0")
CENT = Decimal("0.01")

INCOME_TYPES = [
    ("RENT", "Base Rent"),
    ("LATE_FEE", "Late Fees"),
    ("PET_RENT", "Pet Rent"),
    ("PARKING", "Parking"),
    ("STORAGE", "Storage"),
    ("UTILITY", "Utilities Reimbursement"),
    ("OTHER", "Other Income"),
]

EXPENSE_CATEGORIES = [
    ("REPAIRS_MAINTENANCE", "Repairs & Maintenance"),
    ("PROPERTY_TAX", "Property Taxes"),
    ("INSURANCE", "Insurance"),
    ("UTILITIES", "Utilities"),
    ("PROPERTY_MANAGEMENT", "Property Management"),
    ("LEGAL_PROFESSIONAL", "Legal & Professional"),
    ("ADVERTISING", "Advertising"),
    ("SUPPLIES", "Supplies"),
    ("HOA_FEES", "HOA Fees"),
    ("OTHER", "Other Expenses"),
]


@dataclass
class ReportResult:
    """Raw calculator output before the assembler wraps it."""
    type: str
    data: Any
    summary: dict = field(default_factory=dict)
    title: str | None = None
    subtitle: str | None = None
    date_range: DateRange | dict | None = None


def dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> float:
    """Quantize to cents and hand back a JSON-friendly number."""
    return float(dec(value).quantize(CENT, rounding=ROUND_HALF_UP))


def percent(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return float((Decimal(part) * 100 / Decimal(whole)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def fmt_date(d) -> str:
    return d.strftime("%b %d, %Y").replace(" 0", " ")


# ─── Statement rows ──────────────────────────────────────────────────────────

def row(
    id: str,
    name: str,
    depth: int = 0,
    values: dict | None = None,
    *,
    is_group: bool = False,
    is_total: bool = False,
    children: list | None = None,
    metadata: dict | None = None,
) -> dict:
    out = {
        "id": id,
        "name": name,
        "depth": depth,
        "isGroup": is_group,
        "isTotal": is_total,
        "values": values or {},
    }
    if children is not None:
        out["children"] = children
    if metadata is not None:
        out["metadata"] = metadata
    return out


def column_values(buckets: dict[str, Decimal], columns: list[dict]) -> dict[str, Decimal]:
    return {col["key"]: buckets.get(col["key"], ZERO) for col in columns}


def add_values(a: dict[str, Decimal], b: dict[str, Decimal]) -> dict[str, Decimal]:
    return {key: a.get(key, ZERO) + b.get(key, ZERO) for key in a.keys() | b.keys()}


def subtract_values(a: dict[str, Decimal], b: dict[str, Decimal]) -> dict[str, Decimal]:
    return {key: a.get(key, ZERO) - b.get(key, ZERO) for key in a.keys() | b.keys()}


def money_values(values: dict[str, Decimal], columns: list[dict]) -> dict[str, float]:
    """Column-ordered, cent-rounded copy of a values map."""
    return {col["key"]: money(values.get(col["key"], ZERO)) for col in columns}


def statement_columns(group_by: str, range_: DateRange, properties, unassigned: bool = False) -> list[dict]:
    """Period columns, or one column per property plus a grand total."""
    if group_by != "property":
        return build_period_columns(group_by, range_)
    columns = [{"key": str(p.id), "label": p.name, "type": "currency"} for p in properties]
    if unassigned:
        columns.append({"key": "unassigned", "label": "Unassigned", "type": "currency"})
    columns.append({"key": "total", "label": "Total", "type": "currency"})
    return columns


def bucket_totals(entries, group_by: str) -> dict[str, Decimal]:
    """Sum ledger entries into the column keys ``statement_columns`` produces."""
    buckets: dict[str, Decimal] = defaultdict(Decimal)
    for entry in entries:
        if group_by == "property":
            key = str(entry.property_id) if entry.property_id is not None else "unassigned"
            buckets[key] += entry.amount
            buckets["total"] += entry.amount
        else:
            buckets[period_key(entry.on, group_by)] += entry.amount
    return buckets
