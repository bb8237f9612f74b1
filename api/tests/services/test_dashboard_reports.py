"""Dashboard reports (flat payloads behind ``GET /api/reports?type=...``)."""
from datetime import date, datetime, timedelta, timezone

import pytest

from app.services.reports.errors import InvalidReportRequest
from app.services.reports.factory import DASHBOARD_GENERATORS, build_dashboard_filters, generate_dashboard_report
from app.services.reports.periods import utc_today


def at(d: date, hour: int = 12) -> datetime:
    return datetime(d.year, d.month, d.day, hour, tzinfo=timezone.utc)


def assert_empty(value):
    if isinstance(value, dict):
        for item in value.values():
            assert_empty(item)
    elif isinstance(value, list):
        assert value == []
    else:
        assert value == 0


async def dashboard(db, org, report_type, start=None, end=None, property_id=None):
    filters = build_dashboard_filters(start, end, property_id)
    return await generate_dashboard_report(db, org.id, report_type, filters)


@pytest.mark.asyncio
@pytest.mark.parametrize("report_type", sorted(DASHBOARD_GENERATORS))
async def test_empty_organization(db, org, report_type):
    result = await dashboard(db, org, report_type)
    assert_empty(result.data)
    assert_empty(result.summary)


@pytest.mark.asyncio
async def test_unknown_dashboard_type(db, org):
    with pytest.raises(InvalidReportRequest):
        await dashboard(db, org, "balance-sheet")


# ── Overview ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_overview_empty_organization(db, org):
    result = await dashboard(db, org, "overview")
    assert result.data == {
        "properties": 0,
        "totalUnits": 0,
        "occupiedUnits": 0,
        "vacantUnits": 0,
        "occupancyRate": 0,
        "activeTenants": 0,
        "activeLeases": 0,
        "monthlyIncome": 0.0,
        "potentialRent": 0.0,
        "outstandingBalance": 0.0,
        "openMaintenanceRequests": 0,
    }


@pytest.mark.asyncio
async def test_overview_counts(db, seed, org):
    today = utc_today()
    prop = await seed.property(org)
    occupied = await seed.unit(prop, "101", market_rent=1500)
    await seed.unit(prop, "102", status="VACANT", market_rent=1200)
    tenant = await seed.tenant(org)
    lease = await seed.lease(occupied, tenant)
    charge = await seed.charge(lease, 1500, today, tenant=tenant)
    await seed.payment(lease, 500, at(today, 0), allocations=[(charge, 500)])
    await seed.maintenance(occupied, at(today, 0))
    await seed.maintenance(occupied, at(today, 0), status="COMPLETED", resolved=at(today, 1))

    result = await dashboard(db, org, "overview")
    assert result.data == {
        "properties": 1,
        "totalUnits": 2,
        "occupiedUnits": 1,
        "vacantUnits": 1,
        "occupancyRate": 50,
        "activeTenants": 1,
        "activeLeases": 1,
        "monthlyIncome": 500.0,
        "potentialRent": 2700.0,
        "outstandingBalance": 1000.0,
        "openMaintenanceRequests": 1,
    }


@pytest.mark.asyncio
async def test_overview_rate_rounds_half_up(db, seed, org):
    prop = await seed.property(org)
    await seed.unit(prop, "100")
    for number in range(101, 108):
        await seed.unit(prop, str(number), status="VACANT")

    result = await dashboard(db, org, "overview")
    # 1 of 8 is 12.5%
    assert result.data["occupancyRate"] == 13


@pytest.mark.asyncio
async def test_overview_ignores_other_organizations(db, seed, org):
    other = await seed.org("Other Co")
    prop = await seed.property(other)
    unit = await seed.unit(prop)
    await seed.lease(unit, await seed.tenant(other))

    result = await dashboard(db, org, "overview")
    assert result.data["properties"] == 0
    assert result.data["activeLeases"] == 0


# ── Rent roll / income / delinquency ────────────────────────────────────

@pytest.mark.asyncio
async def test_rent_roll_balance(db, seed, org):
    prop = await seed.property(org)
    unit = await seed.unit(prop, "101")
    tenant = await seed.tenant(org, "Jane", "Doe")
    lease = await seed.lease(unit, tenant, rent=1500, deposit=1500)
    charge = await seed.charge(lease, 1500, date(2026, 3, 1), tenant=tenant)
    await seed.payment(lease, 500, date(2026, 3, 3), allocations=[(charge, 500)])
    await seed.lease(await seed.unit(prop, "102"), status="ENDED")

    result = await dashboard(db, org, "rent-roll")
    assert result.data == [{
        "propertyName": "Maple Court",
        "unitNumber": "101",
        "tenantName": "Jane Doe",
        "tenantEmail": "jane.doe@example.com",
        "leaseStart": "2025-01-01",
        "leaseEnd": None,
        "monthlyRent": 1500.0,
        "securityDeposit": 1500.0,
        "currentBalance": 1000.0,
    }]
    assert result.summary == {"totalLeases": 1, "totalMonthlyRent": 1500.0, "totalBalance": 1000.0}


@pytest.mark.asyncio
async def test_income_breakdowns(db, seed, org):
    prop = await seed.property(org)
    unit = await seed.unit(prop)
    tenant = await seed.tenant(org)
    lease = await seed.lease(unit, tenant)
    rent = await seed.charge(lease, 1000, date(2026, 3, 1), tenant=tenant)
    fee = await seed.charge(lease, 50, date(2026, 3, 6), type="LATE_FEE", tenant=tenant)
    await seed.payment(lease, 1000, date(2026, 3, 5), allocations=[(rent, 1000)])
    await seed.payment(lease, 50, date(2026, 3, 20), allocations=[(fee, 50)])
    await seed.payment(lease, 75, date(2026, 3, 21), status="FAILED")
    await seed.payment(lease, 900, date(2026, 4, 2))

    result = await dashboard(db, org, "income", "2026-03-01", "2026-03-31")
    assert result.summary == {"totalIncome": 1050.0, "paymentCount": 2}
    assert result.data["incomeByType"] == {"RENT": 1000.0, "LATE_FEE": 50.0}
    assert result.data["incomeByProperty"] == {"Maple Court": 1050.0}
    assert result.data["incomeByMonth"] == {"2026-03": 1050.0}
    # Newest first
    assert [p["date"] for p in result.data["payments"]] == ["2026-03-20", "2026-03-05"]
    assert result.date_range == {"startDate": "2026-03-01", "endDate": "2026-03-31"}


@pytest.mark.asyncio
async def test_income_open_ended_range(db, seed, org):
    prop = await seed.property(org)
    lease = await seed.lease(await seed.unit(prop))
    await seed.payment(lease, 100, date(2024, 1, 1))
    await seed.payment(lease, 200, date(2026, 1, 1))

    result = await dashboard(db, org, "income", end="2025-12-31")
    assert result.summary == {"totalIncome": 100.0, "paymentCount": 1}
    assert result.date_range == {"startDate": None, "endDate": "2025-12-31"}


@pytest.mark.asyncio
async def test_delinquency(db, seed, org):
    today = utc_today()
    prop = await seed.property(org)
    unit = await seed.unit(prop)
    tenant = await seed.tenant(org)
    lease = await seed.lease(unit, tenant)
    late = await seed.charge(lease, 800, today - timedelta(days=15), tenant=tenant)
    await seed.payment(lease, 300, today, allocations=[(late, 300)])
    await seed.charge(lease, 200, today - timedelta(days=40), type="UTILITY")
    await seed.charge(lease, 1500, today, tenant=tenant)
    await seed.charge(lease, 90, today - timedelta(days=5), status="PAID", tenant=tenant)

    result = await dashboard(db, org, "delinquency")
    assert result.summary == {"totalOverdueCharges": 2, "totalOverdueAmount": 700.0, "uniqueTenants": 1}
    oldest, newest = result.data
    assert oldest["tenantName"] == "Unknown"
    assert oldest["daysOverdue"] == 40
    assert newest["balanceDue"] == 500.0
    assert newest["originalAmount"] == 800.0
    assert newest["daysOverdue"] == 15


# ── Vacancy ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_vacancy_days_vacant(db, seed, org):
    today = utc_today()
    prop = await seed.property(org)
    recently_ended = await seed.unit(prop, "101", status="VACANT", market_rent=1000, is_listed=True)
    never_leased = await seed.unit(prop, "102", status="VACANT", market_rent=1100)
    ends_later = await seed.unit(prop, "103", status="UNDER_APPLICATION", market_rent=1200)
    await seed.unit(prop, "104", status="OCCUPIED")
    await seed.lease(recently_ended, start=today - timedelta(days=400), end=today - timedelta(days=10))
    await seed.lease(ends_later, start=today - timedelta(days=300), end=today + timedelta(days=30))

    result = await dashboard(db, org, "vacancy")
    days = {u["unitNumber"]: u["daysVacant"] for u in result.data}
    assert days == {"101": 10, "102": None, "103": 0}
    assert "unitId" not in result.data[0]
    assert result.summary == {
        "totalVacantUnits": 3,
        "totalPotentialRent": 3300.0,
        "listedUnits": 1,
        "underApplication": 1,
    }


@pytest.mark.asyncio
async def test_vacancy_open_ended_lease_has_no_days(db, seed, org):
    today = utc_today()
    prop = await seed.property(org)
    unit = await seed.unit(prop, "101", status="NOTICE_GIVEN")
    await seed.lease(unit, start=today - timedelta(days=800), end=today - timedelta(days=400))
    await seed.lease(unit, start=today - timedelta(days=390))

    result = await dashboard(db, org, "vacancy")
    assert result.data[0]["daysVacant"] is None


# ── Maintenance ─────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_maintenance_summary(db, seed, org):
    prop = await seed.property(org)
    unit = await seed.unit(prop)
    vendor = await seed.vendor(org)
    opened = datetime(2026, 3, 2, 9, tzinfo=timezone.utc)
    await seed.maintenance(unit, opened, "COMPLETED", opened + timedelta(hours=24), 120, vendor)
    await seed.maintenance(unit, opened, "COMPLETED", opened + timedelta(hours=48), 80, category="ELECTRICAL")
    await seed.maintenance(unit, opened)
    await seed.maintenance(unit, datetime(2026, 5, 1, tzinfo=timezone.utc))

    result = await dashboard(db, org, "maintenance", "2026-03-01", "2026-03-31")
    assert result.summary == {
        "totalRequests": 3,
        "byStatus": {"COMPLETED": 2, "OPEN": 1},
        "byCategory": {"PLUMBING": 2, "ELECTRICAL": 1},
        "byProperty": {"Maple Court": 3},
        "totalCost": 200.0,
        "avgCompletionTimeHours": 36,
    }
    assert {r["vendorName"] for r in result.data} == {"Fix-It Plumbing", None}


@pytest.mark.asyncio
async def test_maintenance_without_completions(db, seed, org):
    prop = await seed.property(org)
    await seed.maintenance(await seed.unit(prop), datetime(2026, 3, 2, tzinfo=timezone.utc))

    result = await dashboard(db, org, "maintenance")
    assert result.summary["avgCompletionTimeHours"] == 0
    assert result.data[0]["completedAt"] is None
