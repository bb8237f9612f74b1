"""Property reports: rent roll, property performance and vacancy."""

import uuid
from collections import defaultdict
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.rental import Charge, Lease
from app.schemas.report import ReportFilters
from app.services.reports.common import ZERO, ReportResult, dec, fmt_date, money, percent, row
from app.services.reports.dashboard import vacancy_units
from app.services.reports.fetchers import (
    OPEN_CHARGE_STATUSES,
    ReportScope,
    fetch_charges,
    fetch_leases,
    fetch_primary_tenants,
    fetch_properties,
    fetch_units,
)
from app.services.reports.periods import utc_today
from app.services.reports.recognition import recognized_expenses, recognized_income
from app.services.reports.reconcile import outstanding_balances


def _group_by_property(items: list[tuple[object, dict]], group_by: str) -> list[dict]:
    """Nest (property, row) pairs under one group row per property when grouping by property."""
    if group_by != "property":
        return [r for _prop, r in items]
    groups: dict = {}
    for prop, r in items:
        group = groups.get(prop.id)
        if group is None:
            group = groups[prop.id] = row(f"property-{prop.id}", prop.name, 0, is_group=True, children=[])
        r["depth"] = 1
        group["children"].append(r)
    return list(groups.values())


# ─── Rent roll ───────────────────────────────────────────────────────────────

async def rent_roll(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = ReportScope(organization_id, filters.property_id)
    leases = await fetch_leases(db, scope, Lease.status == "ACTIVE")
    lease_ids = [lease.id for lease, _u, _p in leases]
    tenants = await fetch_primary_tenants(db, scope, lease_ids)

    open_charges = [
        c for c, *_ in await fetch_charges(
            db, scope, Charge.lease_id.in_(lease_ids), Charge.status.in_(OPEN_CHARGE_STATUSES)
        )
    ] if lease_ids else []
    balances = await outstanding_balances(db, open_charges)
    balance_by_lease: dict = defaultdict(Decimal)
    for charge in open_charges:
        balance_by_lease[charge.lease_id] += balances[charge.id]

    columns = [
        {"key": "tenant", "label": "Tenant", "type": "text"},
        {"key": "leaseStart", "label": "Lease Start", "type": "date"},
        {"key": "leaseEnd", "label": "Lease End", "type": "date"},
        {"key": "monthlyRent", "label": "Monthly Rent", "type": "currency"},
        {"key": "deposit", "label": "Deposit", "type": "currency"},
        {"key": "balance", "label": "Balance", "type": "currency"},
    ]

    items = []
    total_rent = total_deposit = total_balance = ZERO
    for lease, unit, prop in leases:
        tenant = tenants.get(lease.id)
        balance = balance_by_lease.get(lease.id, ZERO)
        total_rent += dec(lease.rent_amount)
        total_deposit += dec(lease.security_deposit)
        total_balance += balance
        name = f"Unit {unit.unit_number}" if filters.group_by == "property" else f"{prop.name} - Unit {unit.unit_number}"
        items.append((prop, row(f"lease-{lease.id}", name, 0, {
            "tenant": tenant.full_name if tenant else "N/A",
            "leaseStart": lease.start_date.isoformat(),
            "leaseEnd": lease.end_date.isoformat() if lease.end_date else "Month-to-Month",
            "monthlyRent": money(lease.rent_amount),
            "deposit": money(lease.security_deposit),
            "balance": money(balance),
        })))

    return ReportResult(
        type="rent-roll",
        title="Rent Roll",
        subtitle=f"As of {fmt_date(utc_today())}",
        data={"columns": columns, "rows": _group_by_property(items, filters.group_by)},
        summary={
            "totalLeases": len(items),
            "totalMonthlyRent": money(total_rent),
            "totalDeposits": money(total_deposit),
            "totalBalance": money(total_balance),
        },
    )


# ─── Property performance ────────────────────────────────────────────────────

async def property_performance(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = ReportScope(organization_id, filters.property_id)
    range_ = filters.date_range

    properties = await fetch_properties(db, scope)
    units_by_property: dict = defaultdict(list)
    for unit, prop in await fetch_units(db, scope):
        units_by_property[prop.id].append(unit)

    income: dict = defaultdict(Decimal)
    for entry in await recognized_income(db, scope, filters.accounting_method, range_):
        income[entry.property_id] += entry.amount
    expenses: dict = defaultdict(Decimal)
    for entry in await recognized_expenses(db, scope, filters.accounting_method, range_):
        if entry.property_id is not None:
            expenses[entry.property_id] += entry.amount

    columns = [
        {"key": "units", "label": "Units", "type": "number"},
        {"key": "occupancy", "label": "Occupancy", "type": "percentage"},
        {"key": "grossIncome", "label": "Gross Income", "type": "currency"},
        {"key": "expenses", "label": "Expenses", "type": "currency"},
        {"key": "noi", "label": "NOI", "type": "currency"},
    ]

    rows = []
    total_units = total_occupied = 0
    total_income = total_expenses = ZERO
    for prop in properties:
        units = units_by_property.get(prop.id, [])
        occupied = sum(1 for u in units if u.status == "OCCUPIED")
        gross = income.get(prop.id, ZERO)
        spent = expenses.get(prop.id, ZERO)
        total_units += len(units)
        total_occupied += occupied
        total_income += gross
        total_expenses += spent
        rows.append(row(f"property-{prop.id}", prop.name, 0, {
            "units": len(units),
            "occupancy": percent(occupied, len(units)),
            "grossIncome": money(gross),
            "expenses": money(spent),
            "noi": money(gross - spent),
        }))

    return ReportResult(
        type="property-performance",
        title="Property Performance",
        subtitle=f"{fmt_date(range_.start)} - {fmt_date(range_.end)}",
        date_range=range_,
        data={"columns": columns, "rows": rows},
        summary={
            "totalUnits": total_units,
            "occupancyRate": percent(total_occupied, total_units),
            "totalIncome": money(total_income),
            "totalExpenses": money(total_expenses),
            "netIncome": money(total_income - total_expenses),
        },
    )


# ─── Vacancy ─────────────────────────────────────────────────────────────────

async def vacancy(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = ReportScope(organization_id, filters.property_id)
    units = await vacancy_units(db, scope)

    columns = [
        {"key": "status", "label": "Status", "type": "text"},
        {"key": "bedrooms", "label": "Beds", "type": "number"},
        {"key": "marketRent", "label": "Market Rent", "type": "currency"},
        {"key": "daysVacant", "label": "Days Vacant", "type": "number"},
    ]

    properties = {str(p.id): p for p in await fetch_properties(db, scope)}
    items = []
    for u in units:
        prop = properties[u["propertyId"]]
        name = f"Unit {u['unitNumber']}" if filters.group_by == "property" else f"{u['propertyName']} - Unit {u['unitNumber']}"
        items.append((prop, row(f"unit-{u['unitId']}", name, 0, {
            "status": u["status"],
            "bedrooms": u["bedrooms"],
            "marketRent": u["marketRent"],
            "daysVacant": u["daysVacant"],
        })))

    return ReportResult(
        type="vacancy",
        title="Vacancy Report",
        subtitle=f"As of {fmt_date(utc_today())}",
        data={"columns": columns, "rows": _group_by_property(items, filters.group_by)},
        summary={
            "totalVacantUnits": len(units),
            "totalPotentialRent": money(sum((dec(u["marketRent"]) for u in units), ZERO)),
            "listedUnits": sum(1 for u in units if u["isListed"]),
            "underApplication": sum(1 for u in units if u["status"] == "UNDER_APPLICATION"),
        },
    )
