"""Report dispatch: query parameters → ReportFilters → calculator → ReportResult."""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.report import ReportFilters
from app.services.reports import dashboard, financial, property, tax, tenant
from app.services.reports.common import ReportResult
from app.services.reports.definitions import ReportType, get_report_definition
from app.services.reports.errors import InvalidReportRequest, ReportNotImplemented
from app.services.reports.periods import DEFAULT_PERIOD, resolve_optional_range, resolve_period
from app.services.reports.recognition import ACCOUNTING_METHODS

logger = logging.getLogger(__name__)

Generator = Callable[[AsyncSession, uuid.UUID, ReportFilters], Awaitable[ReportResult]]

GROUP_BY_OPTIONS = ("none", "month", "quarter", "property")

REPORT_GENERATORS: dict[str, Generator] = {
    ReportType.BALANCE_SHEET.value: financial.balance_sheet,
    ReportType.PROFIT_LOSS.value: financial.profit_loss,
    ReportType.CASH_FLOW.value: financial.cash_flow,
    ReportType.OWNER_STATEMENT.value: financial.owner_statement,
    ReportType.RENT_ROLL.value: property.rent_roll,
    ReportType.PROPERTY_PERFORMANCE.value: property.property_performance,
    ReportType.VACANCY.value: property.vacancy,
    ReportType.AGING_REPORT.value: tenant.aging_report,
    ReportType.SECURITY_DEPOSIT.value: tenant.security_deposit,
    ReportType.TENANT_LEDGER.value: tenant.tenant_ledger,
    ReportType.TAX_1099.value: tax.tax_1099,
    ReportType.EXPENSE_REPORT.value: tax.expense_report,
    ReportType.DEPRECIATION.value: tax.depreciation,
}

DASHBOARD_GENERATORS: dict[str, Generator] = {
    "overview": dashboard.overview,
    "rent-roll": dashboard.rent_roll,
    "income": dashboard.income,
    "delinquency": dashboard.delinquency,
    "vacancy": dashboard.vacancy,
    "maintenance": dashboard.maintenance,
}


# ─── Filters ─────────────────────────────────────────────────────────────────

def _parse_property_id(property_id: str | None) -> uuid.UUID | None:
    if not property_id:
        return None
    try:
        return uuid.UUID(property_id)
    except ValueError:
        raise InvalidReportRequest("propertyId must be a valid UUID")


def build_filters(
    period: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    accounting_method: str | None = None,
    group_by: str | None = None,
    property_id: str | None = None,
    today: date | None = None,
) -> ReportFilters:
    """Validated filters for a statement report; the date range is always resolved."""
    accounting_method = accounting_method or "cash"
    if accounting_method not in ACCOUNTING_METHODS:
        raise InvalidReportRequest("accountingMethod must be 'cash' or 'accrual'")
    group_by = group_by or "none"
    if group_by not in GROUP_BY_OPTIONS:
        raise InvalidReportRequest(f"groupBy must be one of: {', '.join(GROUP_BY_OPTIONS)}")

    period = period or DEFAULT_PERIOD
    range_ = resolve_period(period, start_date, end_date, today=today)
    return ReportFilters(
        period=period,
        start_date=range_.start,
        end_date=range_.end,
        accounting_method=accounting_method,
        group_by=group_by,
        property_id=_parse_property_id(property_id),
    )


def build_dashboard_filters(
    start_date: str | None = None,
    end_date: str | None = None,
    property_id: str | None = None,
) -> ReportFilters:
    """Filters for a dashboard report; either date bound may stay open."""
    start, end = resolve_optional_range(start_date, end_date)
    return ReportFilters(
        period="custom",
        start_date=start,
        end_date=end,
        property_id=_parse_property_id(property_id),
    )


# ─── Dispatch ────────────────────────────────────────────────────────────────

async def _run(generator: Generator, report_type: str, db: AsyncSession, organization_id: uuid.UUID, filters: ReportFilters) -> ReportResult:
    started = time.perf_counter()
    result = await generator(db, organization_id, filters)
    logger.info(
        "Generated %s report for org %s in %.0f ms",
        report_type, organization_id, (time.perf_counter() - started) * 1000,
    )
    return result


async def generate_report(
    db: AsyncSession, organization_id: uuid.UUID, report_type: str, filters: ReportFilters
) -> ReportResult:
    if get_report_definition(report_type) is None:
        raise InvalidReportRequest("Invalid report type")
    generator = REPORT_GENERATORS.get(report_type)
    if generator is None:
        raise ReportNotImplemented("Report type not implemented")
    return await _run(generator, report_type, db, organization_id, filters)


async def generate_dashboard_report(
    db: AsyncSession, organization_id: uuid.UUID, report_type: str, filters: ReportFilters
) -> ReportResult:
    generator = DASHBOARD_GENERATORS.get(report_type)
    if generator is None:
        raise InvalidReportRequest("Invalid report type")
    return await _run(generator, report_type, db, organization_id, filters)
