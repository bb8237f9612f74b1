"""
Reconciler tests: balance arithmetic is pure; outstanding_balances hits the DB once per batch.
"""
from datetime import date
from decimal import Decimal

import pytest

from app.services.reports.reconcile import (
    allocated_total,
    charge_balance,
    days_overdue,
    days_since,
    outstanding_balances,
)


class TestBalanceArithmetic:
    def test_balance_is_amount_minus_allocations(self):
        allocated = allocated_total([Decimal("500.00"), Decimal("250.00")])
        assert charge_balance(Decimal("1500.00"), allocated) == Decimal("750.00")

    def test_no_allocations(self):
        assert allocated_total([]) == Decimal("0")
        assert charge_balance(Decimal("1500.00"), allocated_total([])) == Decimal("1500.00")

    def test_over_allocation_goes_negative(self):
        assert charge_balance(Decimal("100.00"), Decimal("120.00")) == Decimal("-20.00")

    def test_decimal_exactness(self):
        allocated = allocated_total([Decimal("0.10"), Decimal("0.20")])
        assert charge_balance(Decimal("0.30"), allocated) == Decimal("0")


class TestDayCounts:
    def test_days_overdue(self):
        assert days_overdue(date(2026, 3, 1), date(2026, 3, 31)) == 30

    def test_days_overdue_not_yet_due(self):
        assert days_overdue(date(2026, 4, 5), date(2026, 4, 1)) == -4

    def test_days_since_clamps_future(self):
        assert days_since(date(2026, 4, 5), date(2026, 4, 1)) == 0
        assert days_since(date(2026, 3, 22), date(2026, 4, 1)) == 10


@pytest.mark.asyncio
async def test_outstanding_balances(db, seed, org):
    prop = await seed.property(org)
    unit = await seed.unit(prop)
    tenant = await seed.tenant(org)
    lease = await seed.lease(unit, tenant)
    rent = await seed.charge(lease, 1500, date(2026, 3, 1), tenant=tenant)
    fee = await seed.charge(lease, 50, date(2026, 3, 6), type="LATE_FEE", tenant=tenant)
    await seed.payment(lease, 500, date(2026, 3, 2), allocations=[(rent, 500)])
    await seed.payment(lease, 60, date(2026, 3, 7), allocations=[(fee, 60)])

    balances = await outstanding_balances(db, [rent, fee])

    assert balances[rent.id] == Decimal("1000")
    assert balances[fee.id] == Decimal("-10")


@pytest.mark.asyncio
async def test_outstanding_balances_empty(db):
    assert await outstanding_balances(db, []) == {}
