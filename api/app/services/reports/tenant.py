"""Tenant reports: aging, security deposits and per-tenant ledgers."""

import uuid
from collections import defaultdict
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.rental import Charge, Lease, Payment, Tenant
from app.schemas.report import ReportFilters
from app.services.reports.common import ZERO, ReportResult, dec, fmt_date, money, row
from app.services.reports.fetchers import (
    OPEN_CHARGE_STATUSES,
    ReportScope,
    fetch_charges,
    fetch_leases,
    fetch_payments,
    fetch_primary_leases,
    fetch_primary_tenants,
    fetch_tenants,
    to_date,
)
from app.services.reports.periods import day_bounds, utc_today
from app.services.reports.property import _group_by_property
from app.services.reports.reconcile import days_overdue, outstanding_balances

AGING_BUCKETS = [
    ("current", "Current"),
    ("1-30", "1-30 Days"),
    ("31-60", "31-60 Days"),
    ("61-90", "61-90 Days"),
    ("90+", "90+ Days"),
]


def aging_bucket(days: int) -> str:
    if days <= 0:
        return "current"
    if days <= 30:
        return "1-30"
    if days <= 60:
        return "31-60"
    if days <= 90:
        return "61-90"
    return "90+"


# ─── Aging ───────────────────────────────────────────────────────────────────

async def aging_report(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = ReportScope(organization_id, filters.property_id)
    today = utc_today()
    charges = await fetch_charges(db, scope, Charge.status.in_(OPEN_CHARGE_STATUSES))
    balances = await outstanding_balances(db, [c for c, *_ in charges])

    columns = [{"key": key, "label": label, "type": "currency"} for key, label in AGING_BUCKETS]
    columns.append({"key": "total", "label": "Total", "type": "currency"})

    # (property, tenant) → bucket sums; insertion order follows the oldest due date
    records: dict = {}
    for charge, _lease, unit, prop, tenant in charges:
        balance = balances[charge.id]
        if balance <= 0:
            continue
        tenant_key = tenant.id if tenant else "unknown"
        key = (prop.id, tenant_key) if filters.group_by == "property" else tenant_key
        record = records.get(key)
        if record is None:
            record = records[key] = {
                "property": prop,
                "tenant_key": tenant_key,
                "label": f"{tenant.full_name if tenant else 'Unknown'} ({prop.name} - {unit.unit_number})",
                "buckets": defaultdict(Decimal),
            }
        record["buckets"][aging_bucket(days_overdue(charge.due_date, today))] += balance
        record["buckets"]["total"] += balance

    totals: dict = defaultdict(Decimal)
    items = []
    for record in records.values():
        buckets = record["buckets"]
        for key in buckets:
            totals[key] += buckets[key]
        items.append((record["property"], row(
            f"tenant-{record['tenant_key']}",
            record["label"],
            0,
            {col["key"]: money(buckets.get(col["key"], ZERO)) for col in columns},
        )))

    summary = {col["key"]: money(totals.get(col["key"], ZERO)) for col in columns}
    summary["tenantCount"] = len({r["tenant_key"] for r in records.values()})
    return ReportResult(
        type="aging-report",
        title="Aging Report",
        subtitle=f"As of {fmt_date(today)}",
        data={"columns": columns, "rows": _group_by_property(items, filters.group_by)},
        summary=summary,
    )


# ─── Security deposits ───────────────────────────────────────────────────────

async def security_deposit(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    scope = ReportScope(organization_id, filters.property_id)
    leases = await fetch_leases(
        db, scope, Lease.status.in_(("ACTIVE", "PENDING_SIGNATURE")), Lease.security_deposit > 0
    )
    tenants = await fetch_primary_tenants(db, scope, [lease.id for lease, _u, _p in leases])

    columns = [
        {"key": "tenant", "label": "Tenant", "type": "text"},
        {"key": "leaseStart", "label": "Lease Start", "type": "date"},
        {"key": "deposit", "label": "Deposit Amount", "type": "currency"},
    ]

    total = ZERO
    items = []
    for lease, unit, prop in leases:
        tenant = tenants.get(lease.id)
        total += dec(lease.security_deposit)
        name = f"Unit {unit.unit_number}" if filters.group_by == "property" else f"{prop.name} - Unit {unit.unit_number}"
        items.append((prop, row(f"lease-{lease.id}", name, 0, {
            "tenant": tenant.full_name if tenant else "N/A",
            "leaseStart": lease.start_date.isoformat(),
            "deposit": money(lease.security_deposit),
        })))

    return ReportResult(
        type="security-deposit",
        title="Security Deposit Report",
        subtitle=f"As of {fmt_date(utc_today())}",
        data={"columns": columns, "rows": _group_by_property(items, filters.group_by)},
        summary={"totalDeposits": money(total), "leaseCount": len(items)},
    )


# ─── Tenant ledger ───────────────────────────────────────────────────────────

async def tenant_ledger(db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    """Chronological charges and payments per active tenant, with a running balance.

    Only tenants that are PRIMARY on a lease inside the scope appear.  The
    group row's ``metadata.outstanding`` is the reconciled open balance on the
    lease regardless of the period, so it can differ from the period's net.
    """
    scope = ReportScope(organization_id, filters.property_id)
    range_ = filters.date_range
    lower, upper = day_bounds(range_.start, range_.end)

    tenants = await fetch_tenants(db, scope, Tenant.is_active.is_(True))
    primary = await fetch_primary_leases(db, scope, [t.id for t in tenants])
    lease_ids = [lease.id for lease, _u, _p in primary.values()]

    charges_by_lease: dict = defaultdict(list)
    payments_by_lease: dict = defaultdict(list)
    outstanding_by_lease: dict = defaultdict(Decimal)
    if lease_ids:
        for charge, *_ in await fetch_charges(
            db, scope,
            Charge.lease_id.in_(lease_ids),
            Charge.status != "VOID",
            Charge.due_date >= range_.start,
            Charge.due_date <= range_.end,
        ):
            charges_by_lease[charge.lease_id].append(charge)
        for payment, *_ in await fetch_payments(
            db, scope,
            Payment.lease_id.in_(lease_ids),
            Payment.status == "COMPLETED",
            Payment.received_at >= lower,
            Payment.received_at < upper,
        ):
            payments_by_lease[payment.lease_id].append(payment)
        open_charges = [
            c for c, *_ in await fetch_charges(
                db, scope, Charge.lease_id.in_(lease_ids), Charge.status.in_(OPEN_CHARGE_STATUSES)
            )
        ]
        balances = await outstanding_balances(db, open_charges)
        for charge in open_charges:
            outstanding_by_lease[charge.lease_id] += balances[charge.id]

    columns = [
        {"key": "date", "label": "Date", "type": "date"},
        {"key": "description", "label": "Description", "type": "text"},
        {"key": "charges", "label": "Charges", "type": "currency"},
        {"key": "payments", "label": "Payments", "type": "currency"},
        {"key": "balance", "label": "Balance", "type": "currency"},
    ]

    rows = []
    total_charges = total_payments = total_outstanding = ZERO
    for tenant in tenants:
        if tenant.id not in primary:
            continue
        lease, unit, prop = primary[tenant.id]

        # Charges sort ahead of payments on the same day
        entries = [
            (c.due_date, 0, c.description or c.type.replace("_", " ").title(), dec(c.amount), ZERO, f"charge-{c.id}")
            for c in charges_by_lease.get(lease.id, [])
        ] + [
            (to_date(p.received_at), 1, f"Payment ({p.method})" if p.method else "Payment", ZERO, dec(p.amount), f"payment-{p.id}")
            for p in payments_by_lease.get(lease.id, [])
        ]
        entries.sort(key=lambda e: (e[0], e[1]))

        running = ZERO
        children = []
        for on, _order, description, charged, paid, entry_id in entries:
            running += charged - paid
            children.append(row(entry_id, description, 1, {
                "date": on.isoformat(),
                "description": description,
                "charges": money(charged),
                "payments": money(paid),
                "balance": money(running),
            }))

        charged_total = sum((e[3] for e in entries), ZERO)
        paid_total = sum((e[4] for e in entries), ZERO)
        outstanding = outstanding_by_lease.get(lease.id, ZERO)
        total_charges += charged_total
        total_payments += paid_total
        total_outstanding += outstanding
        rows.append(row(
            f"tenant-{tenant.id}",
            f"{tenant.full_name} ({prop.name} - Unit {unit.unit_number})",
            0,
            {
                "date": "",
                "description": "",
                "charges": money(charged_total),
                "payments": money(paid_total),
                "balance": money(charged_total - paid_total),
            },
            is_group=True,
            children=children,
            metadata={"outstanding": money(outstanding), "leaseId": str(lease.id)},
        ))

    return ReportResult(
        type="tenant-ledger",
        title="Tenant Ledger",
        subtitle=f"{fmt_date(range_.start)} - {fmt_date(range_.end)}",
        date_range=range_,
        data={"columns": columns, "rows": rows},
        summary={
            "tenantCount": len(rows),
            "totalCharges": money(total_charges),
            "totalPayments": money(total_payments),
            "totalOutstanding": money(total_outstanding),
        },
    )
