"""
Test fixtures for the reports API.

Every test gets its own in-memory SQLite database (aiosqlite + StaticPool) with
the full schema created from the models, a ``seed`` helper for building
organizations and their rental data, and an httpx client wired to the app with
``get_db`` overridden to that database.
"""
import os

# Settings are read at import time; point them at throwaway backends first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["API_SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"
os.environ["REPORT_RATE_LIMIT"] = "10000/minute"
os.environ["ENVIRONMENT"] = "test"

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_db
from app.core.security import create_access_token
from app.main import app
from app.models.maintenance import Expense, MaintenanceRequest, Vendor
from app.models.property import Property, Unit
from app.models.rental import Charge, Lease, LeaseTenant, Payment, PaymentAllocation, Tenant
from app.models.user import Organization, User


def utc(d: date, hour: int = 12) -> datetime:
    return datetime(d.year, d.month, d.day, hour, tzinfo=timezone.utc)


# ── Seed helper ────────────────────────────────────────────────────────

class Seeder:
    """Builds rows and commits each one so the API client's session sees them."""

    def __init__(self, session):
        self.db = session

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        return obj

    async def org(self, name="Acme Rentals"):
        return await self._save(Organization(name=name))

    async def user(self, org, email=None):
        return await self._save(User(
            email=email or f"{uuid.uuid4().hex[:8]}@example.com", full_name="Report Viewer", organization_id=org.id,
        ))

    async def property(self, org, name="Maple Court", purchase_price=None, purchase_date=None):
        return await self._save(Property(
            organization_id=org.id, name=name, address="1 Maple St", city="Austin", state="TX",
            purchase_price=Decimal(str(purchase_price)) if purchase_price is not None else None,
            purchase_date=purchase_date,
        ))

    async def unit(self, prop, number="101", status="OCCUPIED", market_rent=1500, bedrooms=2, is_listed=False):
        return await self._save(Unit(
            property_id=prop.id, unit_number=number, status=status, market_rent=Decimal(str(market_rent)),
            bedrooms=bedrooms, bathrooms=Decimal("1.0"), is_listed=is_listed,
        ))

    async def tenant(self, org, first="Jane", last="Doe", is_active=True):
        return await self._save(Tenant(
            organization_id=org.id, first_name=first, last_name=last,
            email=f"{first.lower()}.{last.lower()}@example.com", is_active=is_active,
        ))

    async def lease(self, unit, tenant=None, status="ACTIVE", start=date(2025, 1, 1), end=None, rent=1500, deposit=1500):
        lease = await self._save(Lease(
            unit_id=unit.id, status=status, start_date=start, end_date=end,
            rent_amount=Decimal(str(rent)), security_deposit=Decimal(str(deposit)),
        ))
        if tenant is not None:
            await self._save(LeaseTenant(lease_id=lease.id, tenant_id=tenant.id, role="PRIMARY"))
        return lease

    async def charge(self, lease, amount, due, type="RENT", status="DUE", tenant=None, description=None):
        return await self._save(Charge(
            lease_id=lease.id, tenant_id=tenant.id if tenant else None, type=type, description=description,
            amount=Decimal(str(amount)), due_date=due, status=status,
        ))

    async def payment(self, lease, amount, received, status="COMPLETED", method="ACH", allocations=()):
        payment = await self._save(Payment(
            lease_id=lease.id, amount=Decimal(str(amount)), method=method, status=status,
            received_at=received if isinstance(received, datetime) else utc(received),
        ))
        for charge, allocated in allocations:
            await self._save(PaymentAllocation(payment_id=payment.id, charge_id=charge.id, amount=Decimal(str(allocated))))
        return payment

    async def expense(self, org, amount, on, category="INSURANCE", prop=None, paid=None, deductible=True, vendor=None):
        return await self._save(Expense(
            organization_id=org.id, property_id=prop.id if prop else None, vendor_id=vendor.id if vendor else None,
            category=category, description=f"{category.title()} expense", amount=Decimal(str(amount)),
            expense_date=on, paid_date=paid, is_tax_deductible=deductible,
        ))

    async def vendor(self, org, name="Fix-It Plumbing", tax_id=None):
        return await self._save(Vendor(organization_id=org.id, name=name, tax_id=tax_id))

    async def maintenance(self, unit, created, status="OPEN", resolved=None, actual_cost=None, vendor=None,
                          category="PLUMBING", title="Leaky faucet"):
        return await self._save(MaintenanceRequest(
            unit_id=unit.id, title=title, category=category, priority="MEDIUM", status=status,
            assigned_vendor_id=vendor.id if vendor else None,
            actual_cost=Decimal(str(actual_cost)) if actual_cost is not None else None,
            created_at=created, resolved_at=resolved,
        ))


# ── Fixtures ───────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seed(db):
    return Seeder(db)


@pytest_asyncio.fixture
async def org(seed):
    return await seed.org()


@pytest_asyncio.fixture
async def user(seed, org):
    return await seed.user(org)


@pytest.fixture
def auth_headers(user):
    token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(minutes=5))
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(session_factory):
    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
