"""Period resolution for report filters.

Turns a period keyword (``year-to-date``, ``last-quarter`` ...) plus optional
explicit ``startDate``/``endDate`` overrides into a concrete inclusive date
range.  Every "now"-relative computation uses the UTC calendar date, and
``today`` can be injected so a keyword always maps to the same bounds on the
same day.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from app.services.reports.errors import InvalidReportRequest

PERIOD_PRESETS = (
    "year-to-date",
    "month-to-date",
    "this-month",
    "last-month",
    "this-quarter",
    "last-quarter",
    "last-year",
    "last-12-months",
    "custom",
)

DEFAULT_PERIOD = "year-to-date"


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def as_dict(self) -> dict:
        return {"startDate": self.start.isoformat(), "endDate": self.end.isoformat()}


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _add_months(d: date, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    return date(year, month, min(d.day, monthrange(year, month)[1]))


def _month_end(year: int, month: int) -> date:
    return date(year, month, monthrange(year, month)[1])


def month_range(d: date) -> DateRange:
    """The calendar month containing ``d``."""
    return DateRange(date(d.year, d.month, 1), _month_end(d.year, d.month))


def _quarter_start(d: date) -> date:
    return date(d.year, ((d.month - 1) // 3) * 3 + 1, 1)


def _parse_iso(value: str, field: str) -> date:
    try:
        return date.fromisoformat(value[:10])
    except (TypeError, ValueError):
        raise InvalidReportRequest(f"{field} must be an ISO date (YYYY-MM-DD)")


def _preset_bounds(period: str, today: date) -> tuple[date | None, date | None]:
    if period == "year-to-date":
        return date(today.year, 1, 1), today
    if period in ("month-to-date", "this-month"):
        return date(today.year, today.month, 1), today
    if period == "last-month":
        first = _add_months(date(today.year, today.month, 1), -1)
        return first, _month_end(first.year, first.month)
    if period == "this-quarter":
        return _quarter_start(today), today
    if period == "last-quarter":
        start = _add_months(_quarter_start(today), -3)
        end = _add_months(start, 2)
        return start, _month_end(end.year, end.month)
    if period == "last-year":
        return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)
    if period == "last-12-months":
        return _add_months(today, -12), today
    if period == "custom":
        return None, None
    raise InvalidReportRequest(f"Unknown period: {period}")


def resolve_period(
    period: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    today: date | None = None,
) -> DateRange:
    """Resolve a keyword and optional overrides into an inclusive DateRange.

    Explicit bounds win over the keyword, each one independently.  A ``custom``
    period must supply both bounds; it never falls back to a guessed range.
    """
    period = period or DEFAULT_PERIOD
    today = today or utc_today()

    start, end = _preset_bounds(period, today)
    if start_date:
        start = _parse_iso(start_date, "startDate")
    if end_date:
        end = _parse_iso(end_date, "endDate")

    if start is None or end is None:
        raise InvalidReportRequest("Custom period requires both startDate and endDate")
    if start > end:
        raise InvalidReportRequest("startDate must not be after endDate")
    return DateRange(start, end)


def resolve_optional_range(start_date: str | None, end_date: str | None) -> tuple[date | None, date | None]:
    """Open-ended bounds used by the dashboard reports; either side may be missing."""
    start = _parse_iso(start_date, "startDate") if start_date else None
    end = _parse_iso(end_date, "endDate") if end_date else None
    if start and end and start > end:
        raise InvalidReportRequest("startDate must not be after endDate")
    return start, end


def day_bounds(start: date | None, end: date | None) -> tuple[datetime | None, datetime | None]:
    """UTC [start-of-day, start-of-next-day) bounds for filtering timestamp columns."""
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc) if start else None
    upper = (
        datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc) if end else None
    )
    return lower, upper


# ─── Period bucketing ────────────────────────────────────────────────────────

def period_key(d: date, group_by: str) -> str:
    if group_by == "month":
        return f"{d.year}-{d.month:02d}"
    if group_by == "quarter":
        return f"{d.year}-Q{(d.month - 1) // 3 + 1}"
    return "total"


def period_end(key: str, range_: DateRange) -> date:
    """Last day covered by a period column, capped at the range end."""
    if key == "total":
        return range_.end
    year = int(key[:4])
    if key[5] == "Q":
        end = _month_end(year, int(key[6]) * 3)
    else:
        end = _month_end(year, int(key[5:7]))
    return min(end, range_.end)


def period_start(key: str, range_: DateRange) -> date:
    """First day covered by a period column, floored at the range start."""
    if key == "total":
        return range_.start
    year = int(key[:4])
    if key[5] == "Q":
        start = date(year, (int(key[6]) - 1) * 3 + 1, 1)
    else:
        start = date(year, int(key[5:7]), 1)
    return max(start, range_.start)


def build_period_columns(group_by: str, range_: DateRange) -> list[dict]:
    """Currency columns for a statement: one per month/quarter, or a single total."""
    if group_by == "month":
        columns = []
        current = date(range_.start.year, range_.start.month, 1)
        while current <= range_.end:
            columns.append({
                "key": period_key(current, "month"),
                "label": current.strftime("%b %Y"),
                "type": "currency",
            })
            current = _add_months(current, 1)
        return columns
    if group_by == "quarter":
        columns = []
        current = _quarter_start(range_.start)
        while current <= range_.end:
            quarter = (current.month - 1) // 3 + 1
            columns.append({
                "key": period_key(current, "quarter"),
                "label": f"Q{quarter} {current.year}",
                "type": "currency",
            })
            current = _add_months(current, 3)
        return columns
    return [{"key": "total", "label": "Total", "type": "currency"}]
