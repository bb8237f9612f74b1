from datetime import datetime, timezone

from app.schemas.report import ReportFilters
from app.services.reports.common import ReportResult
from app.services.reports.periods import DateRange


def _date_range(value: DateRange | dict | None, filters: ReportFilters) -> dict | None:
    if isinstance(value, DateRange):
        return value.as_dict()
    if isinstance(value, dict):
        return value
    if filters.start_date or filters.end_date:
        return {
            "startDate": filters.start_date.isoformat() if filters.start_date else None,
            "endDate": filters.end_date.isoformat() if filters.end_date else None,
        }
    return None


def assemble(result: ReportResult, filters: ReportFilters, now: datetime | None = None) -> dict:
    """Wrap a calculator result in the response envelope the clients render."""
    now = now or datetime.now(timezone.utc)
    return {
        "type": result.type,
        "title": result.title,
        "subtitle": result.subtitle,
        "generatedAt": now.isoformat().replace("+00:00", "Z"),
        "dateRange": _date_range(result.date_range, filters),
        "filters": filters.model_dump(mode="json", by_alias=True),
        "data": result.data,
        "summary": result.summary,
    }
