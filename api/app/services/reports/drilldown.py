"""Transactions behind a single statement cell.

``account_id`` names the statement line:

    income-<charge type>    charges (accrual) or payment allocations (cash)
    expense-<category>      expenses, plus completed maintenance for repairs
    income-other and expense-other also take codes outside their catalog
    payments / inflows      COMPLETED payments received
    outflows                every cash-basis expense and maintenance cost

``column_key`` is the cell's column: ``total``, a period key (``2026-03``,
``2026-Q1``), a property id, or ``unassigned`` for organization-wide expenses.
"""

import re
import uuid
from dataclasses import replace

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.maintenance import Expense, MaintenanceRequest
from app.models.rental import Charge, Payment
from app.schemas.report import ReportFilters
from app.services.reports.common import EXPENSE_CATEGORIES, INCOME_TYPES, ZERO, dec, money
from app.services.reports.definitions import get_report_definition
from app.services.reports.errors import InvalidReportRequest
from app.services.reports.fetchers import (
    ReportScope,
    fetch_allocations,
    fetch_charges,
    fetch_expenses,
    fetch_maintenance_requests,
    fetch_payments,
    fetch_primary_tenants,
    to_date,
)
from app.services.reports.periods import DateRange, day_bounds, period_end, period_start
from app.services.reports.recognition import expense_date_column, income_predicates

_PERIOD_KEY = re.compile(r"^\d{4}-(\d{2}|Q[1-4])$")


def _reference(prefix: str, id: uuid.UUID) -> str:
    return f"{prefix}-{id.hex[-6:].upper()}"


def _transaction(id, on, description, type, category, amount, reference, prop=None, unit=None, tenant=None, status=None) -> dict:
    return {
        "id": str(id),
        "date": on.isoformat(),
        "description": description,
        "type": type,
        "category": category,
        "amount": money(amount),
        "reference": reference,
        "propertyName": prop.name if prop is not None else None,
        "unitNumber": unit.unit_number if unit is not None else None,
        "tenantName": tenant.full_name if tenant is not None else None,
        "status": status,
    }


def _category_match(column, code: str, catalog: list[tuple[str, str]]):
    """Codes missing from the catalog roll up into its OTHER line."""
    if code != "OTHER":
        return column == code
    return column.not_in([known for known, _label in catalog if known != "OTHER"])


def _column_window(column_key: str, scope: ReportScope, range_: DateRange) -> tuple[ReportScope, DateRange, bool] | None:
    """Narrow scope and range to one column; the flag marks the unassigned column.

    None means the cell lies outside the filtered scope.
    """
    if not column_key or column_key == "total":
        return scope, range_, False
    if column_key == "unassigned":
        return scope, range_, True
    if _PERIOD_KEY.match(column_key):
        return scope, DateRange(period_start(column_key, range_), period_end(column_key, range_)), False
    try:
        property_id = uuid.UUID(column_key)
    except ValueError:
        raise InvalidReportRequest(f"Unknown columnKey: {column_key}")
    if scope.property_id is not None and scope.property_id != property_id:
        return None
    return replace(scope, property_id=property_id), range_, False


# ─── Sources ─────────────────────────────────────────────────────────────────

async def _income(db, scope, method, range_, charge_type, limit) -> list[dict]:
    criteria = [_category_match(Charge.type, charge_type, INCOME_TYPES), *income_predicates(method, range_)]
    if method == "accrual":
        rows = await fetch_charges(db, scope, *criteria)
        rows = sorted(rows, key=lambda r: r[0].due_date, reverse=True)[:limit]
        return [
            _transaction(
                charge.id, charge.due_date, charge.description, "charge", charge.type, dec(charge.amount),
                _reference("CHG", charge.id), prop, unit, tenant, charge.status,
            )
            for charge, _lease, unit, prop, tenant in rows
        ]
    rows = await fetch_allocations(db, scope, *criteria)
    rows = sorted(rows, key=lambda r: r[1].received_at, reverse=True)[:limit]
    tenants = await fetch_primary_tenants(db, scope, list({charge.lease_id for _a, _p, charge, _prop in rows}))
    return [
        _transaction(
            allocation.id, to_date(payment.received_at), charge.description or f"Payment ({payment.method})",
            "payment", charge.type, dec(allocation.amount), _reference("PAY", payment.id),
            prop, None, tenants.get(charge.lease_id), payment.status,
        )
        for allocation, payment, charge, prop in rows
    ]


async def _payments(db, scope, range_, limit) -> list[dict]:
    lower, upper = day_bounds(range_.start, range_.end)
    rows = (await fetch_payments(
        db, scope, Payment.status == "COMPLETED", Payment.received_at >= lower, Payment.received_at < upper
    ))[:limit]
    tenants = await fetch_primary_tenants(db, scope, list({lease.id for _p, lease, _u, _prop in rows}))
    return [
        _transaction(
            payment.id, to_date(payment.received_at), f"Payment ({payment.method})", "payment", "PAYMENT",
            dec(payment.amount), _reference("PAY", payment.id), prop, unit, tenants.get(lease.id), payment.status,
        )
        for payment, lease, unit, prop in rows
    ]


async def _expenses(db, scope, method, range_, category, unassigned, limit) -> list[dict]:
    criteria = []
    if category is not None:
        criteria.append(_category_match(Expense.category, category, EXPENSE_CATEGORIES))
    if unassigned:
        criteria.append(Expense.property_id.is_(None))
    rows = (await fetch_expenses(db, scope, expense_date_column(method), range_.start, range_.end, *criteria))[:limit]
    return [
        _transaction(
            expense.id, recognized_on, expense.description, "expense", expense.category, dec(expense.amount),
            _reference("EXP", expense.id), prop, status="PAID" if expense.paid_date else "PENDING",
        )
        for expense, prop, recognized_on in rows
    ]


async def _maintenance(db, scope, range_, limit) -> list[dict]:
    lower, upper = day_bounds(range_.start, range_.end)
    rows = await fetch_maintenance_requests(
        db,
        scope,
        MaintenanceRequest.status == "COMPLETED",
        MaintenanceRequest.actual_cost > 0,
        MaintenanceRequest.resolved_at >= lower,
        MaintenanceRequest.resolved_at < upper,
    )
    rows = sorted(rows, key=lambda r: r[0].resolved_at, reverse=True)[:limit]
    return [
        _transaction(
            request.id, to_date(request.resolved_at), request.title, "expense", "REPAIRS_MAINTENANCE",
            dec(request.actual_cost), _reference("MNT", request.id), prop, unit, status=request.status,
        )
        for request, unit, prop, _vendor in rows
    ]


# ─── Entry point ─────────────────────────────────────────────────────────────

async def drilldown(
    db: AsyncSession,
    organization_id: uuid.UUID,
    report_type: str,
    account_id: str,
    column_key: str,
    filters: ReportFilters,
) -> dict:
    if get_report_definition(report_type) is None:
        raise InvalidReportRequest("Invalid report type")

    limit = settings.drilldown_limit
    method = filters.accounting_method
    window = _column_window(column_key, ReportScope(organization_id, filters.property_id), filters.date_range)
    if window is None or window[1].start > window[1].end:
        return {"transactions": [], "totalAmount": 0.0, "count": 0}
    scope, range_, unassigned = window

    if account_id.startswith("income-"):
        charge_type = account_id.removeprefix("income-").upper()
        transactions = [] if unassigned else await _income(db, scope, method, range_, charge_type, limit)
    elif account_id.startswith("expense-"):
        category = account_id.removeprefix("expense-").upper()
        transactions = await _expenses(db, scope, method, range_, category, unassigned, limit)
        if category == "REPAIRS_MAINTENANCE" and not unassigned:
            transactions += await _maintenance(db, scope, range_, limit)
    elif account_id in ("payments", "inflows"):
        transactions = [] if unassigned else await _payments(db, scope, range_, limit)
    elif account_id == "outflows":
        transactions = await _expenses(db, scope, "cash", range_, None, unassigned, limit)
        if not unassigned:
            transactions += await _maintenance(db, scope, range_, limit)
    else:
        raise InvalidReportRequest(f"Unknown accountId: {account_id}")

    transactions.sort(key=lambda t: t["date"], reverse=True)
    total = sum((dec(t["amount"]) for t in transactions), ZERO)
    return {"transactions": transactions, "totalAmount": money(total), "count": len(transactions)}
