"""Cash vs accrual recognition.

The accounting method decides *which* rows count and *on which date*; the
calculators only aggregate what these helpers hand back.

    cash     income on payment receipt (allocations of COMPLETED payments)
             expenses on paid_date, falling back to expense_date
    accrual  income on charge due_date (every non-VOID charge)
             expenses on expense_date

Completed maintenance with an actual cost is a Repairs & Maintenance expense
recognized on ``resolved_at`` under either method.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.maintenance import Expense, MaintenanceRequest
from app.models.rental import Charge, Payment
from app.services.reports.common import dec
from app.services.reports.errors import InvalidReportRequest
from app.services.reports.fetchers import (
    ReportScope,
    fetch_allocations,
    fetch_charges,
    fetch_expenses,
    fetch_maintenance_requests,
    to_date,
)
from app.services.reports.periods import DateRange, day_bounds

ACCOUNTING_METHODS = ("cash", "accrual")


@dataclass(frozen=True)
class LedgerEntry:
    """One recognized amount, tagged with what the statements group it by."""
    on: date
    category: str
    amount: Decimal
    property_id: uuid.UUID | None
    source_id: uuid.UUID
    is_tax_deductible: bool = True


def _check_method(method: str) -> None:
    if method not in ACCOUNTING_METHODS:
        raise InvalidReportRequest("accountingMethod must be 'cash' or 'accrual'")


def income_predicates(method: str, range_: DateRange) -> list:
    """WHERE clauses selecting the income rows a method recognizes inside ``range_``."""
    _check_method(method)
    if method == "accrual":
        return [Charge.status != "VOID", Charge.due_date >= range_.start, Charge.due_date <= range_.end]
    lower, upper = day_bounds(range_.start, range_.end)
    return [Payment.status == "COMPLETED", Payment.received_at >= lower, Payment.received_at < upper]


def expense_date_column(method: str):
    """The column an expense is dated by under ``method``."""
    _check_method(method)
    if method == "accrual":
        return Expense.expense_date
    return func.coalesce(Expense.paid_date, Expense.expense_date)


async def recognized_income(db: AsyncSession, scope: ReportScope, method: str, range_: DateRange) -> list[LedgerEntry]:
    criteria = income_predicates(method, range_)
    if method == "accrual":
        return [
            LedgerEntry(
                on=charge.due_date,
                category=charge.type,
                amount=dec(charge.amount),
                property_id=prop.id,
                source_id=charge.id,
            )
            for charge, _lease, _unit, prop, _tenant in await fetch_charges(db, scope, *criteria)
        ]
    return [
        LedgerEntry(
            on=to_date(payment.received_at),
            category=charge.type,
            amount=dec(allocation.amount),
            property_id=prop.id,
            source_id=allocation.id,
        )
        for allocation, payment, charge, prop in await fetch_allocations(db, scope, *criteria)
    ]


async def recognized_expenses(
    db: AsyncSession,
    scope: ReportScope,
    method: str,
    range_: DateRange,
    include_maintenance: bool = True,
) -> list[LedgerEntry]:
    entries = [
        LedgerEntry(
            on=recognized_on,
            category=expense.category,
            amount=dec(expense.amount),
            property_id=expense.property_id,
            source_id=expense.id,
            is_tax_deductible=expense.is_tax_deductible,
        )
        for expense, _prop, recognized_on in await fetch_expenses(
            db, scope, expense_date_column(method), range_.start, range_.end
        )
    ]
    if include_maintenance:
        entries.extend(await completed_maintenance_costs(db, scope, range_))
    return entries


async def completed_maintenance_costs(db: AsyncSession, scope: ReportScope, range_: DateRange) -> list[LedgerEntry]:
    lower, upper = day_bounds(range_.start, range_.end)
    rows = await fetch_maintenance_requests(
        db,
        scope,
        MaintenanceRequest.status == "COMPLETED",
        MaintenanceRequest.actual_cost > 0,
        MaintenanceRequest.resolved_at >= lower,
        MaintenanceRequest.resolved_at < upper,
    )
    return [
        LedgerEntry(
            on=to_date(request.resolved_at),
            category="REPAIRS_MAINTENANCE",
            amount=dec(request.actual_cost),
            property_id=prop.id,
            source_id=request.id,
        )
        for request, _unit, prop, _vendor in rows
    ]
