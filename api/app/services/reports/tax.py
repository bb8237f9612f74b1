"""Tax reports: 1099 vendor totals, expenses by category and depreciation."""

import uuid
from collections import defaultdict
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.maintenance import MaintenanceRequest
from app.schemas.report import ReportFilters
from app.services.reports.common import EXPENSE_CATEGORIES, ZERO, ReportResult, dec, fmt_date, money, row
from app.services.reports.fetchers import (
    ReportScope,
    fetch_expenses,
    fetch_maintenance_requests,
    fetch_properties,
    to_date,
)
from app.services.reports.periods import day_bounds
from app.services.reports.recognition import expense_date_column

_CATEGORY_NAMES = dict(EXPENSE_CATEGORIES)


# ─── 1099 ────────────────────────────────────────────────────────────────────

async def tax_1099(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    """Vendor payments from completed maintenance; the property filter does not apply."""
    scope = ReportScope(organization_id)
    range_ = filters.date_range
    lower, upper = day_bounds(range_.start, range_.end)
    threshold = Decimal(settings.tax_1099_threshold)

    requests = await fetch_maintenance_requests(
        db,
        scope,
        MaintenanceRequest.status == "COMPLETED",
        MaintenanceRequest.actual_cost > 0,
        MaintenanceRequest.assigned_vendor_id.is_not(None),
        MaintenanceRequest.resolved_at >= lower,
        MaintenanceRequest.resolved_at < upper,
    )
    vendors: dict = {}
    paid: dict = defaultdict(Decimal)
    for request, _unit, _prop, vendor in requests:
        if vendor is None:
            continue
        vendors[vendor.id] = vendor
        paid[vendor.id] += dec(request.actual_cost)

    columns = [
        {"key": "ein", "label": "EIN/SSN", "type": "text"},
        {"key": "totalPaid", "label": "Total Paid", "type": "currency"},
        {"key": "requires1099", "label": "Requires 1099", "type": "text"},
    ]

    ranked = sorted(paid.items(), key=lambda item: (-item[1], vendors[item[0]].name))
    rows = [
        row(f"vendor-{vendor_id}", vendors[vendor_id].name, 0, {
            "ein": vendors[vendor_id].tax_id or "Not Provided",
            "totalPaid": money(total),
            "requires1099": "Yes" if total >= threshold else "No",
        })
        for vendor_id, total in ranked
    ]
    requiring = sum(1 for _vid, total in ranked if total >= threshold)
    grand_total = sum(paid.values(), ZERO)
    rows.append(row(
        "total",
        f"Total Vendors Requiring 1099: {requiring}",
        0,
        {"ein": "", "totalPaid": money(grand_total), "requires1099": ""},
        is_total=True,
    ))

    return ReportResult(
        type="tax-1099",
        title="1099 Report",
        subtitle=f"{fmt_date(range_.start)} - {fmt_date(range_.end)}",
        date_range=range_,
        data={"columns": columns, "rows": rows},
        summary={
            "vendorCount": len(ranked),
            "vendorsRequiring1099": requiring,
            "totalPaid": money(grand_total),
            "threshold": money(threshold),
        },
    )


# ─── Expenses by category ────────────────────────────────────────────────────

def _category_row(id_prefix: str, category: str, depth: int, stats: dict) -> dict:
    return row(f"{id_prefix}cat-{category}", _CATEGORY_NAMES.get(category, category), depth, {
        "count": stats["count"],
        "amount": money(stats["amount"]),
        "taxDeductible": money(stats["taxDeductible"]),
    })


def _new_stats() -> dict:
    return {"count": 0, "amount": ZERO, "taxDeductible": ZERO}


async def expense_report(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = ReportScope(organization_id, filters.property_id)
    range_ = filters.date_range
    expenses = await fetch_expenses(
        db, scope, expense_date_column(filters.accounting_method), range_.start, range_.end
    )

    # group key → category → stats; group key is the property id, None for org-wide
    groups: dict = {}
    names: dict = {}
    totals = _new_stats()
    for expense, prop, _on in expenses:
        group_key = prop.id if (filters.group_by == "property" and prop is not None) else None
        if filters.group_by == "property":
            names[group_key] = prop.name if prop is not None else "Unassigned"
        stats = groups.setdefault(group_key, {}).setdefault(expense.category, _new_stats())
        amount = dec(expense.amount)
        for target in (stats, totals):
            target["count"] += 1
            target["amount"] += amount
            if expense.is_tax_deductible:
                target["taxDeductible"] += amount

    order = [key for key, _label in EXPENSE_CATEGORIES]

    def _sorted(by_category: dict) -> list[str]:
        return sorted(by_category, key=lambda c: order.index(c) if c in order else len(order))

    columns = [
        {"key": "count", "label": "Count", "type": "number"},
        {"key": "amount", "label": "Amount", "type": "currency"},
        {"key": "taxDeductible", "label": "Tax Deductible", "type": "currency"},
    ]

    rows = []
    if filters.group_by == "property":
        # Properties in name order, org-wide expenses last
        for group_key in sorted(groups, key=lambda k: (k is None, names[k])):
            by_category = groups[group_key]
            prefix = f"{group_key or 'unassigned'}-"
            group_stats = _new_stats()
            for stats in by_category.values():
                for field in group_stats:
                    group_stats[field] += stats[field]
            rows.append(row(
                f"property-{group_key or 'unassigned'}",
                names[group_key],
                0,
                {
                    "count": group_stats["count"],
                    "amount": money(group_stats["amount"]),
                    "taxDeductible": money(group_stats["taxDeductible"]),
                },
                is_group=True,
                children=[_category_row(prefix, c, 1, by_category[c]) for c in _sorted(by_category)],
            ))
    else:
        by_category = groups.get(None, {})
        rows.extend(_category_row("", c, 0, by_category[c]) for c in _sorted(by_category))

    rows.append(row("total", "Total Expenses", 0, {
        "count": totals["count"],
        "amount": money(totals["amount"]),
        "taxDeductible": money(totals["taxDeductible"]),
    }, is_total=True))

    return ReportResult(
        type="expense-report",
        title="Expense Report",
        subtitle=f"{fmt_date(range_.start)} - {fmt_date(range_.end)}",
        date_range=range_,
        data={"columns": columns, "rows": rows},
        summary={
            "totalExpenses": money(totals["amount"]),
            "expenseCount": totals["count"],
            "taxDeductible": money(totals["taxDeductible"]),
        },
    )


# ─── Depreciation ────────────────────────────────────────────────────────────

async def depreciation(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    """Straight-line residential depreciation on purchase price.

    Whole years are counted from the acquisition year up to the year the
    period ends, so a property bought in the reporting year has nothing
    accumulated yet.  Accumulated depreciation never exceeds cost.
    """
    scope = ReportScope(organization_id, filters.property_id)
    range_ = filters.date_range
    life = Decimal(str(settings.residential_useful_life_years))

    columns = [
        {"key": "purchaseDate", "label": "Date Acquired", "type": "date"},
        {"key": "cost", "label": "Cost Basis", "type": "currency"},
        {"key": "method", "label": "Method", "type": "text"},
        {"key": "life", "label": "Life (Years)", "type": "number"},
        {"key": "annualDepreciation", "label": "Annual Depreciation", "type": "currency"},
        {"key": "accumulatedDepreciation", "label": "Accumulated", "type": "currency"},
        {"key": "bookValue", "label": "Book Value", "type": "currency"},
    ]

    rows = []
    total_cost = total_annual = total_accumulated = ZERO
    for prop in await fetch_properties(db, scope):
        cost = dec(prop.purchase_price)
        acquired = prop.purchase_date or to_date(prop.created_at)
        years = max(range_.end.year - acquired.year, 0)
        annual = cost / life
        accumulated = min(annual * years, cost)

        total_cost += cost
        total_annual += annual
        total_accumulated += accumulated
        rows.append(row(f"property-{prop.id}", prop.name, 0, {
            "purchaseDate": acquired.isoformat(),
            "cost": money(cost),
            "method": "Straight-Line",
            "life": float(life),
            "annualDepreciation": money(annual),
            "accumulatedDepreciation": money(accumulated),
            "bookValue": money(cost - accumulated),
        }))

    rows.append(row("total", "Total", 0, {
        "purchaseDate": "",
        "cost": money(total_cost),
        "method": "",
        "life": None,
        "annualDepreciation": money(total_annual),
        "accumulatedDepreciation": money(total_accumulated),
        "bookValue": money(total_cost - total_accumulated),
    }, is_total=True))

    return ReportResult(
        type="depreciation",
        title="Depreciation Schedule",
        subtitle=f"Through {fmt_date(range_.end)}",
        date_range=range_,
        data={"columns": columns, "rows": rows},
        summary={
            "totalCost": money(total_cost),
            "totalAnnualDepreciation": money(total_annual),
            "totalAccumulatedDepreciation": money(total_accumulated),
            "totalBookValue": money(total_cost - total_accumulated),
        },
    )
