"""Dashboard reports served from ``GET /api/reports?type=...``.

These keep the flat list/object payloads the dashboard widgets read, unlike
the row-based statements in the other calculator modules.  Date bounds are
optional here: a missing ``startDate`` or ``endDate`` leaves that side open.
"""

import uuid
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.maintenance import MaintenanceRequest
from app.models.property import Unit
from app.models.rental import Charge, Lease, Payment, Tenant
from app.schemas.report import ReportFilters
from app.services.reports.common import ZERO, ReportResult, dec, money
from app.services.reports.fetchers import (
    CLOSED_MAINTENANCE_STATUSES,
    OPEN_CHARGE_STATUSES,
    VACANT_UNIT_STATUSES,
    ReportScope,
    allocations_by_payment,
    count_leases,
    count_maintenance_requests,
    count_properties,
    count_tenants,
    fetch_charges,
    fetch_latest_active_lease_end,
    fetch_leases,
    fetch_maintenance_requests,
    fetch_payments,
    fetch_primary_tenants,
    fetch_units,
    to_date,
)
from app.services.reports.periods import day_bounds, month_range, utc_today
from app.services.reports.reconcile import days_overdue, days_since, outstanding_balances


def _scope(organization_id: uuid.UUID, filters: ReportFilters) -> ReportScope:
    return ReportScope(organization_id, filters.property_id)


def _timestamp_criteria(column, start, end) -> list:
    lower, upper = day_bounds(start, end)
    criteria = []
    if lower is not None:
        criteria.append(column >= lower)
    if upper is not None:
        criteria.append(column < upper)
    return criteria


def _date_range_out(filters: ReportFilters) -> dict:
    return {
        "startDate": filters.start_date.isoformat() if filters.start_date else None,
        "endDate": filters.end_date.isoformat() if filters.end_date else None,
    }


def _iso(d) -> str | None:
    return d.isoformat() if d is not None else None


# ─── Overview ────────────────────────────────────────────────────────────────

async def overview(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = _scope(organization_id, filters)
    this_month = month_range(utc_today())

    units = [unit for unit, _prop in await fetch_units(db, scope)]
    total_units = len(units)
    occupied = sum(1 for u in units if u.status == "OCCUPIED")
    vacant = sum(1 for u in units if u.status == "VACANT")
    occupancy_rate = (
        int((Decimal(occupied * 100) / total_units).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        if total_units
        else 0
    )

    payments = await fetch_payments(
        db,
        scope,
        Payment.status == "COMPLETED",
        *_timestamp_criteria(Payment.received_at, this_month.start, this_month.end),
    )
    monthly_income = sum((dec(p.amount) for p, *_ in payments), ZERO)

    open_charges = [c for c, *_ in await fetch_charges(db, scope, Charge.status.in_(OPEN_CHARGE_STATUSES))]
    balances = await outstanding_balances(db, open_charges)

    data = {
        "properties": await count_properties(db, scope),
        "totalUnits": total_units,
        "occupiedUnits": occupied,
        "vacantUnits": vacant,
        "occupancyRate": occupancy_rate,
        "activeTenants": await count_tenants(db, scope, Tenant.is_active.is_(True)),
        "activeLeases": await count_leases(db, scope, Lease.status == "ACTIVE"),
        "monthlyIncome": money(monthly_income),
        "potentialRent": money(sum((dec(u.market_rent) for u in units), ZERO)),
        "outstandingBalance": money(sum(balances.values(), ZERO)),
        "openMaintenanceRequests": await count_maintenance_requests(
            db, scope, MaintenanceRequest.status.not_in(CLOSED_MAINTENANCE_STATUSES)
        ),
    }
    return ReportResult(type="overview", data=data)


# ─── Rent roll ───────────────────────────────────────────────────────────────

async def rent_roll(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = _scope(organization_id, filters)
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

    rows = []
    total_rent = ZERO
    total_balance = ZERO
    for lease, unit, prop in leases:
        tenant = tenants.get(lease.id)
        balance = balance_by_lease.get(lease.id, ZERO)
        total_rent += dec(lease.rent_amount)
        total_balance += balance
        rows.append({
            "propertyName": prop.name,
            "unitNumber": unit.unit_number,
            "tenantName": tenant.full_name if tenant else "N/A",
            "tenantEmail": tenant.email if tenant else None,
            "leaseStart": _iso(lease.start_date),
            "leaseEnd": _iso(lease.end_date),
            "monthlyRent": money(lease.rent_amount),
            "securityDeposit": money(lease.security_deposit),
            "currentBalance": money(balance),
        })

    return ReportResult(
        type="rent-roll",
        data=rows,
        summary={
            "totalLeases": len(rows),
            "totalMonthlyRent": money(total_rent),
            "totalBalance": money(total_balance),
        },
    )


# ─── Income ──────────────────────────────────────────────────────────────────

async def income(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = _scope(organization_id, filters)
    payments = await fetch_payments(
        db,
        scope,
        Payment.status == "COMPLETED",
        *_timestamp_criteria(Payment.received_at, filters.start_date, filters.end_date),
    )
    allocations = await allocations_by_payment(db, [p.id for p, *_ in payments])

    by_type: dict[str, Decimal] = defaultdict(Decimal)
    by_property: dict[str, Decimal] = defaultdict(Decimal)
    by_month: dict[str, Decimal] = defaultdict(Decimal)
    listing = []
    total = ZERO
    for payment, _lease, unit, prop in payments:
        amount = dec(payment.amount)
        received = to_date(payment.received_at)
        total += amount
        by_property[prop.name] += amount
        by_month[received.strftime("%Y-%m")] += amount
        for charge_type, allocated in allocations.get(payment.id, []):
            by_type[charge_type] += dec(allocated)
        listing.append({
            "date": received.isoformat(),
            "amount": money(amount),
            "method": payment.method,
            "property": prop.name,
            "unit": unit.unit_number,
        })

    return ReportResult(
        type="income",
        data={
            "payments": listing,
            "incomeByType": {k: money(v) for k, v in by_type.items()},
            "incomeByProperty": {k: money(v) for k, v in by_property.items()},
            "incomeByMonth": {k: money(v) for k, v in sorted(by_month.items())},
        },
        summary={"totalIncome": money(total), "paymentCount": len(listing)},
        date_range=_date_range_out(filters),
    )


# ─── Delinquency ─────────────────────────────────────────────────────────────

async def delinquency(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = _scope(organization_id, filters)
    today = utc_today()
    rows = await fetch_charges(
        db, scope, Charge.status.in_(OPEN_CHARGE_STATUSES), Charge.due_date < today
    )
    balances = await outstanding_balances(db, [c for c, *_ in rows])

    items = []
    total = ZERO
    tenant_ids = set()
    for charge, _lease, unit, prop, tenant in rows:
        balance = balances[charge.id]
        total += balance
        if charge.tenant_id is not None:
            tenant_ids.add(charge.tenant_id)
        items.append({
            "propertyName": prop.name,
            "unitNumber": unit.unit_number,
            "tenantName": tenant.full_name if tenant else "Unknown",
            "tenantEmail": (tenant.email or "") if tenant else "",
            "tenantPhone": (tenant.phone or "") if tenant else "",
            "chargeType": charge.type,
            "chargeDescription": charge.description,
            "originalAmount": money(charge.amount),
            "balanceDue": money(balance),
            "dueDate": charge.due_date.isoformat(),
            "daysOverdue": days_overdue(charge.due_date, today),
        })

    return ReportResult(
        type="delinquency",
        data=items,
        summary={
            "totalOverdueCharges": len(items),
            "totalOverdueAmount": money(total),
            "uniqueTenants": len(tenant_ids),
        },
    )


# ─── Vacancy ─────────────────────────────────────────────────────────────────

async def vacancy_units(db: AsyncSession, scope: ReportScope) -> list[dict]:
    """Vacant-ish units with days vacant; shared with the vacancy statement."""
    today = utc_today()
    units = await fetch_units(db, scope, Unit.status.in_(VACANT_UNIT_STATUSES))
    last_ends = await fetch_latest_active_lease_end(db, scope, [u.id for u, _p in units])
    out = []
    for unit, prop in units:
        last_end = last_ends.get(unit.id)
        out.append({
            "unitId": str(unit.id),
            "propertyId": str(prop.id),
            "propertyName": prop.name,
            "propertyAddress": prop.address,
            "unitNumber": unit.unit_number,
            "bedrooms": unit.bedrooms,
            "bathrooms": float(unit.bathrooms) if unit.bathrooms is not None else None,
            "marketRent": money(unit.market_rent),
            "status": unit.status,
            "isListed": unit.is_listed,
            "availableDate": _iso(unit.available_date),
            "daysVacant": days_since(last_end, today) if last_end is not None else None,
        })
    return out


async def vacancy(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    units = [
        {k: v for k, v in u.items() if k not in ("unitId", "propertyId")}
        for u in await vacancy_units(db, _scope(organization_id, filters))
    ]
    return ReportResult(
        type="vacancy",
        data=units,
        summary={
            "totalVacantUnits": len(units),
            "totalPotentialRent": money(sum((dec(u["marketRent"]) for u in units), ZERO)),
            "listedUnits": sum(1 for u in units if u["isListed"]),
            "underApplication": sum(1 for u in units if u["status"] == "UNDER_APPLICATION"),
        },
    )


# ─── Maintenance ─────────────────────────────────────────────────────────────

def average_completion_hours(requests) -> int:
    """Mean resolve time in hours over COMPLETED requests, rounded half-up to a whole hour."""
    durations = [
        Decimal(str((r.resolved_at - r.created_at).total_seconds())) / 3600
        for r in requests
        if r.status == "COMPLETED" and r.resolved_at is not None
    ]
    if not durations:
        return 0
    mean = sum(durations, ZERO) / len(durations)
    return int(mean.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


async def maintenance(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = _scope(organization_id, filters)
    rows = await fetch_maintenance_requests(
        db, scope, *_timestamp_criteria(MaintenanceRequest.created_at, filters.start_date, filters.end_date)
    )

    by_status: dict[str, int] = defaultdict(int)
    by_category: dict[str, int] = defaultdict(int)
    by_property: dict[str, int] = defaultdict(int)
    total_cost = ZERO
    items = []
    for request, unit, prop, vendor in rows:
        by_status[request.status] += 1
        by_category[request.category] += 1
        by_property[prop.name] += 1
        total_cost += dec(request.actual_cost)
        items.append({
            "title": request.title,
            "category": request.category,
            "priority": request.priority,
            "status": request.status,
            "propertyName": prop.name,
            "unitNumber": unit.unit_number,
            "vendorName": vendor.name if vendor else None,
            "estimatedCost": money(request.estimated_cost),
            "actualCost": money(request.actual_cost),
            "createdAt": request.created_at.isoformat(),
            "completedAt": request.resolved_at.isoformat() if request.resolved_at else None,
        })

    return ReportResult(
        type="maintenance",
        data=items,
        summary={
            "totalRequests": len(items),
            "byStatus": dict(by_status),
            "byCategory": dict(by_category),
            "byProperty": dict(by_property),
            "totalCost": money(total_cost),
            "avgCompletionTimeHours": average_completion_hours([r for r, *_ in rows]),
        },
        date_range=_date_range_out(filters),
    )
