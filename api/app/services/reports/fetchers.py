"""Organization-scoped read queries used by every report calculator.

Each fetcher takes ``(db, scope)`` and joins its rows up to
``Property.organization_id`` so an id belonging to another organization can
never widen what a report sees.  Tenants and vendors are matched on their own
``organization_id`` as well.  Extra ``criteria`` are plain SQLAlchemy
expressions appended to the WHERE clause.
"""

import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.maintenance import Expense, MaintenanceRequest, Vendor
from app.models.property import Property, Unit
from app.models.rental import Charge, Lease, LeaseTenant, Payment, PaymentAllocation, Tenant

OPEN_CHARGE_STATUSES = ("DUE", "PARTIAL")
VACANT_UNIT_STATUSES = ("VACANT", "NOTICE_GIVEN", "UNDER_APPLICATION")
CLOSED_MAINTENANCE_STATUSES = ("COMPLETED", "CANCELLED")


@dataclass(frozen=True)
class ReportScope:
    organization_id: uuid.UUID
    property_id: uuid.UUID | None = None


def _property_criteria(scope: ReportScope) -> list:
    criteria = [Property.organization_id == scope.organization_id]
    if scope.property_id is not None:
        criteria.append(Property.id == scope.property_id)
    return criteria


def _tenant_join(scope: ReportScope, tenant_id_column):
    return and_(Tenant.id == tenant_id_column, Tenant.organization_id == scope.organization_id)


# ─── Properties & units ──────────────────────────────────────────────────────

async def fetch_properties(db: AsyncSession, scope: ReportScope) -> list[Property]:
    result = await db.execute(
        select(Property).where(*_property_criteria(scope)).order_by(Property.name, Property.id)
    )
    return list(result.scalars().all())


async def count_properties(db: AsyncSession, scope: ReportScope) -> int:
    result = await db.execute(select(func.count(Property.id)).where(*_property_criteria(scope)))
    return result.scalar_one()


async def fetch_units(db: AsyncSession, scope: ReportScope, *criteria) -> list:
    """Rows of (Unit, Property) ordered by property name then unit number."""
    result = await db.execute(
        select(Unit, Property)
        .join(Property, Property.id == Unit.property_id)
        .where(*_property_criteria(scope), *criteria)
        .order_by(Property.name, Unit.unit_number)
    )
    return list(result.all())


async def fetch_latest_active_lease_end(db: AsyncSession, scope: ReportScope, unit_ids: list) -> dict:
    """unit_id → latest end date among its ACTIVE leases.

    An open-ended ACTIVE lease outranks any dated one, so such a unit maps to
    None.  Units with no ACTIVE lease are absent.
    """
    if not unit_ids:
        return {}
    result = await db.execute(
        select(Lease.unit_id, Lease.end_date)
        .join(Unit, Unit.id == Lease.unit_id)
        .join(Property, Property.id == Unit.property_id)
        .where(
            *_property_criteria(scope),
            Lease.unit_id.in_(unit_ids),
            Lease.status == "ACTIVE",
        )
    )
    latest: dict = {}
    for unit_id, end in result.all():
        if unit_id in latest and latest[unit_id] is None:
            continue
        if end is None or unit_id not in latest or end > latest[unit_id]:
            latest[unit_id] = end
    return latest


# ─── Leases & tenants ────────────────────────────────────────────────────────

async def fetch_leases(db: AsyncSession, scope: ReportScope, *criteria) -> list:
    """Rows of (Lease, Unit, Property) ordered by property name then unit number."""
    result = await db.execute(
        select(Lease, Unit, Property)
        .join(Unit, Unit.id == Lease.unit_id)
        .join(Property, Property.id == Unit.property_id)
        .where(*_property_criteria(scope), *criteria)
        .order_by(Property.name, Unit.unit_number, Lease.start_date)
    )
    return list(result.all())


async def count_leases(db: AsyncSession, scope: ReportScope, *criteria) -> int:
    result = await db.execute(
        select(func.count(Lease.id))
        .join(Unit, Unit.id == Lease.unit_id)
        .join(Property, Property.id == Unit.property_id)
        .where(*_property_criteria(scope), *criteria)
    )
    return result.scalar_one()


async def fetch_primary_tenants(db: AsyncSession, scope: ReportScope, lease_ids: list) -> dict:
    """lease_id → primary Tenant. A lease with no primary tenant has no entry."""
    if not lease_ids:
        return {}
    result = await db.execute(
        select(LeaseTenant.lease_id, Tenant)
        .join(Tenant, _tenant_join(scope, LeaseTenant.tenant_id))
        .where(LeaseTenant.lease_id.in_(lease_ids), LeaseTenant.role == "PRIMARY")
        .order_by(Tenant.last_name, Tenant.first_name)
    )
    primaries: dict = {}
    for lease_id, tenant in result.all():
        primaries.setdefault(lease_id, tenant)
    return primaries


async def fetch_tenants(db: AsyncSession, scope: ReportScope, *criteria) -> list[Tenant]:
    result = await db.execute(
        select(Tenant)
        .where(Tenant.organization_id == scope.organization_id, *criteria)
        .order_by(Tenant.last_name, Tenant.first_name, Tenant.id)
    )
    return list(result.scalars().all())


async def count_tenants(db: AsyncSession, scope: ReportScope, *criteria) -> int:
    result = await db.execute(
        select(func.count(Tenant.id)).where(Tenant.organization_id == scope.organization_id, *criteria)
    )
    return result.scalar_one()


async def fetch_primary_leases(db: AsyncSession, scope: ReportScope, tenant_ids: list) -> dict:
    """tenant_id → (Lease, Unit, Property) of the first lease where the tenant is PRIMARY."""
    if not tenant_ids:
        return {}
    result = await db.execute(
        select(LeaseTenant.tenant_id, Lease, Unit, Property)
        .join(Lease, Lease.id == LeaseTenant.lease_id)
        .join(Unit, Unit.id == Lease.unit_id)
        .join(Property, Property.id == Unit.property_id)
        .where(
            *_property_criteria(scope),
            LeaseTenant.tenant_id.in_(tenant_ids),
            LeaseTenant.role == "PRIMARY",
        )
        .order_by(Lease.start_date.desc())
    )
    leases: dict = {}
    for tenant_id, lease, unit, prop in result.all():
        leases.setdefault(tenant_id, (lease, unit, prop))
    return leases


# ─── Charges, payments & allocations ─────────────────────────────────────────

async def fetch_charges(db: AsyncSession, scope: ReportScope, *criteria) -> list:
    """Rows of (Charge, Lease, Unit, Property, Tenant | None) ordered by due date."""
    result = await db.execute(
        select(Charge, Lease, Unit, Property, Tenant)
        .join(Lease, Lease.id == Charge.lease_id)
        .join(Unit, Unit.id == Lease.unit_id)
        .join(Property, Property.id == Unit.property_id)
        .outerjoin(Tenant, _tenant_join(scope, Charge.tenant_id))
        .where(*_property_criteria(scope), *criteria)
        .order_by(Charge.due_date, Charge.id)
    )
    return list(result.all())


async def fetch_allocation_totals(db: AsyncSession, charge_ids: list) -> dict[uuid.UUID, Decimal]:
    """charge_id → Σ allocation.amount, in one grouped query. Callers pass already-scoped ids."""
    if not charge_ids:
        return {}
    result = await db.execute(
        select(PaymentAllocation.charge_id, func.coalesce(func.sum(PaymentAllocation.amount), 0))
        .where(PaymentAllocation.charge_id.in_(charge_ids))
        .group_by(PaymentAllocation.charge_id)
    )
    return {charge_id: Decimal(str(total)) for charge_id, total in result.all()}


async def fetch_payments(db: AsyncSession, scope: ReportScope, *criteria) -> list:
    """Rows of (Payment, Lease, Unit, Property), newest first."""
    result = await db.execute(
        select(Payment, Lease, Unit, Property)
        .join(Lease, Lease.id == Payment.lease_id)
        .join(Unit, Unit.id == Lease.unit_id)
        .join(Property, Property.id == Unit.property_id)
        .where(*_property_criteria(scope), *criteria)
        .order_by(Payment.received_at.desc(), Payment.id)
    )
    return list(result.all())


async def fetch_allocations(db: AsyncSession, scope: ReportScope, *criteria) -> list:
    """Rows of (PaymentAllocation, Payment, Charge, Property) scoped through the payment's lease."""
    result = await db.execute(
        select(PaymentAllocation, Payment, Charge, Property)
        .join(Payment, Payment.id == PaymentAllocation.payment_id)
        .join(Charge, Charge.id == PaymentAllocation.charge_id)
        .join(Lease, Lease.id == Payment.lease_id)
        .join(Unit, Unit.id == Lease.unit_id)
        .join(Property, Property.id == Unit.property_id)
        .where(*_property_criteria(scope), *criteria)
        .order_by(Payment.received_at, PaymentAllocation.id)
    )
    return list(result.all())


async def allocations_by_payment(db: AsyncSession, payment_ids: list) -> dict:
    """payment_id → list of (charge type, amount)."""
    if not payment_ids:
        return {}
    result = await db.execute(
        select(PaymentAllocation.payment_id, Charge.type, PaymentAllocation.amount)
        .join(Charge, Charge.id == PaymentAllocation.charge_id)
        .where(PaymentAllocation.payment_id.in_(payment_ids))
    )
    grouped: dict = defaultdict(list)
    for payment_id, charge_type, amount in result.all():
        grouped[payment_id].append((charge_type, amount))
    return grouped


# ─── Maintenance, vendors & expenses ─────────────────────────────────────────

async def fetch_maintenance_requests(db: AsyncSession, scope: ReportScope, *criteria) -> list:
    """Rows of (MaintenanceRequest, Unit, Property, Vendor | None), newest first."""
    result = await db.execute(
        select(MaintenanceRequest, Unit, Property, Vendor)
        .join(Unit, Unit.id == MaintenanceRequest.unit_id)
        .join(Property, Property.id == Unit.property_id)
        .outerjoin(
            Vendor,
            and_(
                Vendor.id == MaintenanceRequest.assigned_vendor_id,
                Vendor.organization_id == scope.organization_id,
            ),
        )
        .where(*_property_criteria(scope), *criteria)
        .order_by(MaintenanceRequest.created_at.desc(), MaintenanceRequest.id)
    )
    return list(result.all())


async def count_maintenance_requests(db: AsyncSession, scope: ReportScope, *criteria) -> int:
    result = await db.execute(
        select(func.count(MaintenanceRequest.id))
        .join(Unit, Unit.id == MaintenanceRequest.unit_id)
        .join(Property, Property.id == Unit.property_id)
        .where(*_property_criteria(scope), *criteria)
    )
    return result.scalar_one()


async def fetch_vendors(db: AsyncSession, scope: ReportScope, *criteria) -> list[Vendor]:
    result = await db.execute(
        select(Vendor)
        .where(Vendor.organization_id == scope.organization_id, *criteria)
        .order_by(Vendor.name, Vendor.id)
    )
    return list(result.scalars().all())


async def fetch_expenses(db: AsyncSession, scope: ReportScope, date_column, start: date, end: date, *criteria) -> list:
    """Rows of (Expense, Property | None, recognized_on) with ``date_column`` in [start, end].

    Organization-wide expenses (no property) are only included when the scope
    is not narrowed to one property.
    """
    scope_criteria = [Expense.organization_id == scope.organization_id]
    if scope.property_id is not None:
        scope_criteria.append(Expense.property_id == scope.property_id)
    result = await db.execute(
        select(Expense, Property, date_column.label("recognized_on"))
        .outerjoin(Property, Property.id == Expense.property_id)
        .where(
            *scope_criteria,
            or_(Expense.property_id.is_(None), Property.organization_id == scope.organization_id),
            date_column >= start,
            date_column <= end,
            *criteria,
        )
        .order_by(date_column.desc(), Expense.id)
    )
    return list(result.all())


def to_date(value: date | datetime) -> date:
    """Calendar date of a stored value; aware timestamps are read in UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value
