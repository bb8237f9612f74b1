"""Business-overview statements: balance sheet, profit & loss, cash flow and
owner statement.

Statements come back as ``{"columns": [...], "rows": [...]}`` with nested
group rows and explicit total rows.  Amounts are summed as Decimal and only
rounded to cents when written into a row.
"""

import uuid
from collections import defaultdict
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.rental import Charge, Lease, Payment
from app.schemas.report import ReportFilters
from app.services.reports.common import (
    EXPENSE_CATEGORIES,
    INCOME_TYPES,
    ZERO,
    ReportResult,
    add_values,
    bucket_totals,
    column_values,
    dec,
    fmt_date,
    money,
    money_values,
    row,
    statement_columns,
    subtract_values,
)
from app.services.reports.fetchers import (
    OPEN_CHARGE_STATUSES,
    ReportScope,
    fetch_charges,
    fetch_expenses,
    fetch_leases,
    fetch_payments,
    fetch_properties,
    to_date,
)
from app.services.reports.periods import DateRange, day_bounds, period_end
from app.services.reports.recognition import (
    LedgerEntry,
    completed_maintenance_costs,
    expense_date_column,
    recognized_expenses,
    recognized_income,
)
from app.services.reports.reconcile import outstanding_balances

_EPOCH = date(1900, 1, 1)


def _range_subtitle(range_: DateRange) -> str:
    return f"{fmt_date(range_.start)} - {fmt_date(range_.end)}"


def _has_unassigned(entries) -> bool:
    return any(e.property_id is None for e in entries)


# ─── Balance sheet ───────────────────────────────────────────────────────────

def _as_of_points(columns: list[dict], group_by: str, range_: DateRange) -> dict[str, tuple[date, str | None]]:
    """column key → (as-of date, property id filter or None)."""
    points = {}
    for col in columns:
        key = col["key"]
        if group_by == "property":
            points[key] = (range_.end, None if key == "total" else key)
        else:
            points[key] = (period_end(key, range_), None)
    return points


def _sum_as_of(items: list[tuple[date, str | None, Decimal]], as_of: date, prop: str | None) -> Decimal:
    return sum(
        (amount for on, prop_id, amount in items if on <= as_of and (prop is None or prop_id == prop)),
        ZERO,
    )


async def balance_sheet(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = ReportScope(organization_id, filters.property_id)
    range_ = filters.date_range
    accrual = filters.accounting_method == "accrual"
    _, upper = day_bounds(None, range_.end)

    # Cash: everything received minus everything paid out, from inception to each as-of date
    receipts = [
        (to_date(p.received_at), str(prop.id), dec(p.amount))
        for p, _lease, _unit, prop in await fetch_payments(
            db, scope, Payment.status == "COMPLETED", Payment.received_at < upper
        )
    ]
    outflows = [
        (on, str(e.property_id) if e.property_id else None, dec(e.amount))
        for e, _prop, on in await fetch_expenses(db, scope, expense_date_column("cash"), _EPOCH, range_.end)
    ]
    outflows += [
        (m.on, str(m.property_id), m.amount)
        for m in await completed_maintenance_costs(db, scope, DateRange(_EPOCH, range_.end))
    ]

    receivables: list[tuple[date, str, Decimal]] = []
    if accrual:
        open_charges = await fetch_charges(
            db, scope, Charge.status.in_(OPEN_CHARGE_STATUSES), Charge.due_date <= range_.end
        )
        balances = await outstanding_balances(db, [c for c, *_ in open_charges])
        receivables = [
            (c.due_date, str(prop.id), balances[c.id]) for c, _l, _u, prop, _t in open_charges
        ]

    deposits = [
        (lease.start_date, str(prop.id), dec(lease.security_deposit))
        for lease, _unit, prop in await fetch_leases(
            db, scope, Lease.status == "ACTIVE", Lease.security_deposit > 0, Lease.start_date <= range_.end
        )
    ]

    properties = await fetch_properties(db, scope) if filters.group_by == "property" else []
    columns = statement_columns(filters.group_by, range_, properties)
    points = _as_of_points(columns, filters.group_by, range_)

    cash, ar, liabilities = {}, {}, {}
    for key, (as_of, prop) in points.items():
        cash[key] = _sum_as_of(receipts, as_of, prop) - _sum_as_of(outflows, as_of, prop)
        ar[key] = _sum_as_of(receivables, as_of, prop)
        liabilities[key] = _sum_as_of(deposits, as_of, prop)
    assets = add_values(cash, ar)
    equity = subtract_values(assets, liabilities)

    current_assets = [
        row("bank", "Bank Accounts", 2, money_values(cash, columns), is_group=True, children=[
            row("bank-operating", "Operating Account", 3, money_values(cash, columns)),
        ]),
        row("total-bank", "Total Bank Accounts", 2, money_values(cash, columns), is_total=True),
    ]
    if accrual:
        current_assets += [
            row("accounts-receivable", "Accounts Receivable", 2, money_values(ar, columns), is_group=True, children=[
                row("ar-tenant", "Tenant Receivables", 3, money_values(ar, columns)),
            ]),
            row("total-ar", "Total Accounts Receivable", 2, money_values(ar, columns), is_total=True),
        ]

    rows = [
        row("assets", "Assets", 0, is_group=True, children=[
            row("current-assets", "Current Assets", 1, is_group=True, children=current_assets),
            row("total-current-assets", "Total Current Assets", 1, money_values(assets, columns), is_total=True),
        ]),
        row("total-assets", "Total Assets", 0, money_values(assets, columns), is_total=True),
        row("liabilities-equity", "Liabilities and Equity", 0, is_group=True, children=[
            row("liabilities", "Liabilities", 1, is_group=True, children=[
                row("deposits-payable", "Security Deposits Payable", 2, money_values(liabilities, columns)),
            ]),
            row("total-liabilities", "Total Liabilities", 1, money_values(liabilities, columns), is_total=True),
            row("equity", "Equity", 1, is_group=True, children=[
                row("retained-earnings", "Retained Earnings", 2, money_values(equity, columns)),
            ]),
            row("total-equity", "Total Equity", 1, money_values(equity, columns), is_total=True),
        ]),
        row(
            "total-liabilities-equity",
            "Total Liabilities and Equity",
            0,
            money_values(add_values(liabilities, equity), columns),
            is_total=True,
        ),
    ]

    end_cash = _sum_as_of(receipts, range_.end, None) - _sum_as_of(outflows, range_.end, None)
    end_ar = _sum_as_of(receivables, range_.end, None)
    end_liabilities = _sum_as_of(deposits, range_.end, None)
    return ReportResult(
        type="balance-sheet",
        title="Balance Sheet",
        subtitle=f"As of {fmt_date(range_.end)}",
        date_range=range_,
        data={"columns": columns, "rows": rows},
        summary={
            "totalAssets": money(end_cash + end_ar),
            "totalLiabilities": money(end_liabilities),
            "totalEquity": money(end_cash + end_ar - end_liabilities),
        },
    )


# ─── Profit & loss ───────────────────────────────────────────────────────────

def _category_rows(
    entries: list[LedgerEntry],
    catalog: list[tuple[str, str]],
    prefix: str,
    depth: int,
    group_by: str,
    columns: list[dict],
) -> tuple[list[dict], dict[str, Decimal]]:
    """One row per catalog category that has activity, plus the summed column values."""
    by_category: dict[str, list[LedgerEntry]] = defaultdict(list)
    known = {code for code, _ in catalog}
    for entry in entries:
        by_category[entry.category if entry.category in known else "OTHER"].append(entry)

    rows, totals = [], {}
    for code, name in catalog:
        values = column_values(bucket_totals(by_category.get(code, []), group_by), columns)
        totals = add_values(totals, values)
        if any(v != 0 for v in values.values()):
            rows.append(row(f"{prefix}-{code.lower()}", name, depth, money_values(values, columns)))
    return rows, column_values(totals, columns)


async def profit_loss(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = ReportScope(organization_id, filters.property_id)
    range_ = filters.date_range
    group_by = filters.group_by

    income = await recognized_income(db, scope, filters.accounting_method, range_)
    expenses = await recognized_expenses(db, scope, filters.accounting_method, range_)

    properties = await fetch_properties(db, scope) if group_by == "property" else []
    columns = statement_columns(group_by, range_, properties, unassigned=_has_unassigned(expenses))

    income_rows, income_totals = _category_rows(income, INCOME_TYPES, "income", 2, group_by, columns)
    expense_rows, expense_totals = _category_rows(expenses, EXPENSE_CATEGORIES, "expense", 1, group_by, columns)
    noi = subtract_values(income_totals, expense_totals)

    rows = [
        row("income", "Income", 0, is_group=True, children=[
            row("rental-income", "Rental Income", 1, is_group=True, children=income_rows),
            row("total-rental-income", "Total Rental Income", 1, money_values(income_totals, columns), is_total=True),
        ]),
        row("total-income", "Total Income", 0, money_values(income_totals, columns), is_total=True),
        row("expenses", "Operating Expenses", 0, is_group=True, children=expense_rows),
        row("total-expenses", "Total Operating Expenses", 0, money_values(expense_totals, columns), is_total=True),
        row("noi", "Net Operating Income", 0, money_values(noi, columns), is_total=True),
    ]

    total_income = sum((e.amount for e in income), ZERO)
    total_expenses = sum((e.amount for e in expenses), ZERO)
    return ReportResult(
        type="profit-loss",
        title="Profit and Loss",
        subtitle=_range_subtitle(range_),
        date_range=range_,
        data={"columns": columns, "rows": rows},
        summary={
            "totalIncome": money(total_income),
            "totalExpenses": money(total_expenses),
            "netIncome": money(total_income - total_expenses),
        },
    )


# ─── Cash flow ───────────────────────────────────────────────────────────────

async def cash_flow(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = ReportScope(organization_id, filters.property_id)
    range_ = filters.date_range
    group_by = filters.group_by if filters.group_by in ("month", "quarter") else "none"
    lower, upper = day_bounds(range_.start, range_.end)

    inflows = [
        LedgerEntry(on=to_date(p.received_at), category="RECEIPT", amount=dec(p.amount), property_id=prop.id, source_id=p.id)
        for p, _lease, _unit, prop in await fetch_payments(
            db, scope, Payment.status == "COMPLETED", Payment.received_at >= lower, Payment.received_at < upper
        )
    ]
    outflows = await recognized_expenses(db, scope, "cash", range_)

    columns = statement_columns(group_by, range_, [])
    inflow_values = column_values(bucket_totals(inflows, group_by), columns)
    outflow_values = column_values(bucket_totals(outflows, group_by), columns)
    net = subtract_values(inflow_values, outflow_values)
    negated_outflows = {k: -v for k, v in outflow_values.items()}

    rows = [
        row("operating-activities", "Cash Flows from Operating Activities", 0, is_group=True, children=[
            row("inflows", "Cash Inflows (Rent & Fees)", 1, money_values(inflow_values, columns)),
            row("outflows", "Cash Outflows (Expenses)", 1, money_values(negated_outflows, columns)),
        ]),
        row("net-operating", "Net Cash from Operations", 0, money_values(net, columns), is_total=True),
        row("net-change", "Net Change in Cash", 0, money_values(net, columns), is_total=True),
    ]

    total_in = sum((e.amount for e in inflows), ZERO)
    total_out = sum((e.amount for e in outflows), ZERO)
    return ReportResult(
        type="cash-flow",
        title="Cash Flow Statement",
        subtitle=_range_subtitle(range_),
        date_range=range_,
        data={"columns": columns, "rows": rows},
        summary={
            "totalInflows": money(total_in),
            "totalOutflows": money(total_out),
            "netCashFlow": money(total_in - total_out),
        },
    )


# ─── Owner statement ─────────────────────────────────────────────────────────

async def owner_statement(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = ReportScope(organization_id, filters.property_id)
    range_ = filters.date_range

    properties = await fetch_properties(db, scope)
    income = await recognized_income(db, scope, filters.accounting_method, range_)
    expenses = await recognized_expenses(db, scope, filters.accounting_method, range_)

    income_by_property: dict = defaultdict(Decimal)
    expense_by_property: dict = defaultdict(Decimal)
    for entry in income:
        income_by_property[entry.property_id] += entry.amount
    for entry in expenses:
        expense_by_property[entry.property_id] += entry.amount

    columns = [{"key": "total", "label": "Amount", "type": "currency"}]
    rows = []
    groups = [(str(p.id), p.name, p.id) for p in properties]
    if expense_by_property.get(None):
        groups.append(("unassigned", "Unassigned Expenses", None))

    for key, name, prop_id in groups:
        gross = income_by_property.get(prop_id, ZERO)
        spent = expense_by_property.get(prop_id, ZERO)
        rows.append(row(f"property-{key}", name, 0, is_group=True, children=[
            row(f"{key}-income", "Gross Rental Income", 1, {"total": money(gross)}),
            row(f"{key}-expenses", "Operating Expenses", 1, {"total": money(-spent)}),
            row(f"{key}-net", "Net Income", 1, {"total": money(gross - spent)}, is_total=True),
        ]))

    total_income = sum(income_by_property.values(), ZERO)
    total_expenses = sum(expense_by_property.values(), ZERO)
    rows.append(row("grand-total", "Total Net Income", 0, {"total": money(total_income - total_expenses)}, is_total=True))

    return ReportResult(
        type="owner-statement",
        title="Owner Statement",
        subtitle=_range_subtitle(range_),
        date_range=range_,
        data={"columns": columns, "rows": rows},
        summary={
            "totalIncome": money(total_income),
            "totalExpenses": money(total_expenses),
            "netIncome": money(total_income - total_expenses),
        },
    )
