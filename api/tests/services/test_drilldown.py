"""Transactions behind statement cells."""
from datetime import date, datetime, timezone

import pytest
import pytest_asyncio

from app.core.config import settings
from app.services.reports.drilldown import drilldown
from app.services.reports.errors import InvalidReportRequest
from app.services.reports.factory import build_filters, generate_report


def at(y, m, d):
    return datetime(y, m, d, 12, tzinfo=timezone.utc)


def find_row(rows, row_id):
    for r in rows:
        if r["id"] == row_id:
            return r
        found = find_row(r.get("children") or [], row_id)
        if found is not None:
            return found
    return None


def march(method="accrual", **overrides):
    params = {"period": "custom", "start_date": "2026-03-01", "end_date": "2026-03-31", "accounting_method": method}
    params.update(overrides)
    return build_filters(**params)


@pytest_asyncio.fixture
async def books(seed, org):
    maple = await seed.property(org, "Maple Court")
    oak = await seed.property(org, "Oak Plaza")
    a1 = await seed.unit(maple, "A1")
    b1 = await seed.unit(oak, "B1")
    jane = await seed.tenant(org, "Jane", "Doe")
    john = await seed.tenant(org, "John", "Roe")
    la = await seed.lease(a1, jane)
    lb = await seed.lease(b1, john, rent=2000)

    rent_a = await seed.charge(la, 1500, date(2026, 3, 1), tenant=jane, description="March rent")
    rent_b = await seed.charge(lb, 2000, date(2026, 3, 1), tenant=john, description="March rent")
    await seed.payment(la, 1000, at(2026, 3, 5), allocations=[(rent_a, 1000)])
    await seed.payment(lb, 2000, at(2026, 3, 2), allocations=[(rent_b, 2000)])

    await seed.expense(org, 120, date(2026, 3, 8), "REPAIRS_MAINTENANCE", prop=maple, paid=date(2026, 3, 8))
    await seed.expense(org, 200, date(2026, 3, 10), "INSURANCE", prop=maple, paid=date(2026, 4, 2))
    await seed.expense(org, 100, date(2026, 3, 20), "LEGAL_PROFESSIONAL", paid=date(2026, 3, 20))
    await seed.maintenance(a1, at(2026, 3, 18), "COMPLETED", at(2026, 3, 20), 300, title="Replace water heater")
    return {"maple": maple, "oak": oak}


# ── Income ──────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_accrual_income_lists_charges(db, org, books):
    result = await drilldown(db, org.id, "profit-loss", "income-rent", "total", march())
    assert result["count"] == 2
    assert result["totalAmount"] == 3500.0
    assert {t["type"] for t in result["transactions"]} == {"charge"}
    assert all(t["reference"].startswith("CHG-") for t in result["transactions"])


@pytest.mark.asyncio
async def test_cash_income_lists_allocations(db, org, books):
    result = await drilldown(db, org.id, "profit-loss", "income-rent", "total", march("cash"))
    assert result["totalAmount"] == 3000.0
    newest = result["transactions"][0]
    assert newest["date"] == "2026-03-05"
    assert newest["type"] == "payment"
    assert newest["tenantName"] == "Jane Doe"
    assert newest["reference"].startswith("PAY-")


@pytest.mark.asyncio
async def test_property_column(db, org, books):
    column = str(books["maple"].id)
    result = await drilldown(db, org.id, "profit-loss", "income-rent", column, march(group_by="property"))
    assert result["totalAmount"] == 1500.0
    assert result["transactions"][0]["propertyName"] == "Maple Court"


@pytest.mark.asyncio
async def test_property_column_outside_filter_is_empty(db, org, books):
    filters = march(property_id=str(books["maple"].id))
    result = await drilldown(db, org.id, "profit-loss", "income-rent", str(books["oak"].id), filters)
    assert result == {"transactions": [], "totalAmount": 0.0, "count": 0}


# ── Expenses ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_repairs_include_completed_maintenance(db, org, books):
    result = await drilldown(db, org.id, "profit-loss", "expense-repairs_maintenance", "total", march())
    assert result["count"] == 2
    assert result["totalAmount"] == 420.0
    first, second = result["transactions"]
    assert (first["description"], first["reference"][:4]) == ("Replace water heater", "MNT-")
    assert second["status"] == "PAID"


@pytest.mark.asyncio
async def test_unassigned_column(db, org, books):
    filters = march(group_by="property")
    legal = await drilldown(db, org.id, "profit-loss", "expense-legal_professional", "unassigned", filters)
    assert legal["totalAmount"] == 100.0
    assert legal["transactions"][0]["propertyName"] is None
    rent = await drilldown(db, org.id, "profit-loss", "income-rent", "unassigned", filters)
    assert rent["count"] == 0


@pytest.mark.asyncio
async def test_cash_basis_uses_paid_date(db, org, books):
    result = await drilldown(db, org.id, "profit-loss", "expense-insurance", "total", march("cash"))
    assert result["count"] == 0


@pytest.mark.asyncio
async def test_cash_flow_lines(db, org, books):
    outflows = await drilldown(db, org.id, "cash-flow", "outflows", "total", march("cash"))
    assert outflows["totalAmount"] == 520.0
    assert outflows["count"] == 3
    inflows = await drilldown(db, org.id, "cash-flow", "inflows", "2026-03", march("cash", group_by="month"))
    assert inflows["totalAmount"] == 3000.0


@pytest.mark.asyncio
async def test_period_column_narrows_range(db, org, books):
    filters = march("cash", group_by="month", start_date="2026-02-01")
    result = await drilldown(db, org.id, "cash-flow", "inflows", "2026-02", filters)
    assert result["count"] == 0


@pytest.mark.asyncio
async def test_other_lines_include_uncatalogued_codes(db, seed, org):
    prop = await seed.property(org)
    lease = await seed.lease(await seed.unit(prop))
    await seed.charge(lease, 40, date(2026, 3, 3), type="APPLICATION_FEE", description="Application fee")
    await seed.charge(lease, 25, date(2026, 3, 4), type="OTHER", description="Key replacement")
    await seed.charge(lease, 1500, date(2026, 3, 1))
    await seed.expense(org, 75, date(2026, 3, 9), "PEST_CONTROL", prop=prop)
    await seed.expense(org, 30, date(2026, 3, 12), "OTHER", prop=prop)
    await seed.expense(org, 200, date(2026, 3, 10), "INSURANCE", prop=prop)

    report = await generate_report(db, org.id, "profit-loss", march())
    for account_id, expected in (("income-other", 65.0), ("expense-other", 105.0)):
        line = find_row(report.data["rows"], account_id)["values"]["total"]
        cell = await drilldown(db, org.id, "profit-loss", account_id, "total", march())
        assert line == expected
        assert cell["totalAmount"] == expected
        assert cell["count"] == 2


# ── Limits, scoping & validation ────────────────────────────────────────

@pytest.mark.asyncio
async def test_each_source_is_capped(db, org, books, monkeypatch):
    monkeypatch.setattr(settings, "drilldown_limit", 1)
    result = await drilldown(db, org.id, "profit-loss", "income-rent", "total", march())
    assert result["count"] == 1


@pytest.mark.asyncio
async def test_other_organization_sees_nothing(db, seed, books):
    other = await seed.org("Other Co")
    result = await drilldown(db, other.id, "profit-loss", "income-rent", "total", march())
    assert result["count"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("report_type,account_id,column_key", [
    ("not-a-report", "income-rent", "total"),
    ("profit-loss", "assets", "total"),
    ("profit-loss", "income-rent", "last-week"),
])
async def test_rejects_unknown_inputs(db, org, report_type, account_id, column_key):
    with pytest.raises(InvalidReportRequest):
        await drilldown(db, org.id, report_type, account_id, column_key, march())
