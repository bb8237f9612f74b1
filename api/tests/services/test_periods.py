"""
Unit tests for period resolution and column bucketing; pure functions, no DB.
"""
from datetime import date, datetime, timezone

import pytest

from app.services.reports.errors import InvalidReportRequest
from app.services.reports.periods import (
    DateRange,
    build_period_columns,
    day_bounds,
    period_end,
    period_key,
    period_start,
    resolve_optional_range,
    resolve_period,
)

TODAY = date(2026, 5, 14)


# ── Presets ──────────────────────────────────────────────────────────────────

class TestPresets:
    def test_year_to_date(self):
        assert resolve_period("year-to-date", today=TODAY) == DateRange(date(2026, 1, 1), TODAY)

    def test_default_is_year_to_date(self):
        assert resolve_period(None, today=TODAY) == DateRange(date(2026, 1, 1), TODAY)

    def test_this_month_alias(self):
        expected = DateRange(date(2026, 5, 1), TODAY)
        assert resolve_period("month-to-date", today=TODAY) == expected
        assert resolve_period("this-month", today=TODAY) == expected

    def test_last_month(self):
        assert resolve_period("last-month", today=TODAY) == DateRange(date(2026, 4, 1), date(2026, 4, 30))

    def test_last_month_across_year(self):
        assert resolve_period("last-month", today=date(2026, 1, 10)) == DateRange(date(2025, 12, 1), date(2025, 12, 31))

    def test_this_quarter(self):
        assert resolve_period("this-quarter", today=TODAY) == DateRange(date(2026, 4, 1), TODAY)

    def test_last_quarter(self):
        assert resolve_period("last-quarter", today=TODAY) == DateRange(date(2026, 1, 1), date(2026, 3, 31))

    def test_last_quarter_from_q1(self):
        assert resolve_period("last-quarter", today=date(2026, 2, 3)) == DateRange(date(2025, 10, 1), date(2025, 12, 31))

    def test_last_year(self):
        assert resolve_period("last-year", today=TODAY) == DateRange(date(2025, 1, 1), date(2025, 12, 31))

    def test_last_12_months(self):
        assert resolve_period("last-12-months", today=TODAY) == DateRange(date(2025, 5, 14), TODAY)

    def test_last_12_months_leap_day(self):
        assert resolve_period("last-12-months", today=date(2028, 2, 29)).start == date(2027, 2, 28)

    def test_same_day_is_deterministic(self):
        assert resolve_period("last-quarter", today=TODAY) == resolve_period("last-quarter", today=TODAY)


# ── Overrides & validation ───────────────────────────────────────────────────

class TestOverrides:
    def test_explicit_bounds_override_each_side(self):
        r = resolve_period("year-to-date", start_date="2026-02-01", today=TODAY)
        assert r == DateRange(date(2026, 2, 1), TODAY)

    def test_custom_with_both_bounds(self):
        r = resolve_period("custom", "2025-03-01", "2025-03-31", today=TODAY)
        assert r == DateRange(date(2025, 3, 1), date(2025, 3, 31))

    def test_accepts_timestamp_strings(self):
        r = resolve_period("custom", "2025-03-01T00:00:00Z", "2025-03-31T23:59:59Z", today=TODAY)
        assert r == DateRange(date(2025, 3, 1), date(2025, 3, 31))

    def test_custom_missing_bound_rejected(self):
        with pytest.raises(InvalidReportRequest):
            resolve_period("custom", start_date="2025-03-01", today=TODAY)

    def test_unknown_period_rejected(self):
        with pytest.raises(InvalidReportRequest):
            resolve_period("fortnight", today=TODAY)

    def test_malformed_date_rejected(self):
        with pytest.raises(InvalidReportRequest):
            resolve_period("custom", "2025-13-01", "2025-12-31", today=TODAY)

    def test_start_after_end_rejected(self):
        with pytest.raises(InvalidReportRequest):
            resolve_period("custom", "2025-06-01", "2025-05-01", today=TODAY)

    def test_optional_range_allows_open_sides(self):
        assert resolve_optional_range(None, "2026-01-31") == (None, date(2026, 1, 31))
        assert resolve_optional_range(None, None) == (None, None)


# ── Bucketing ────────────────────────────────────────────────────────────────

class TestBucketing:
    def test_period_keys(self):
        d = date(2026, 8, 9)
        assert period_key(d, "month") == "2026-08"
        assert period_key(d, "quarter") == "2026-Q3"
        assert period_key(d, "none") == "total"

    def test_month_columns(self):
        columns = build_period_columns("month", DateRange(date(2025, 11, 15), date(2026, 2, 3)))
        assert [c["key"] for c in columns] == ["2025-11", "2025-12", "2026-01", "2026-02"]
        assert columns[0]["label"] == "Nov 2025"

    def test_quarter_columns(self):
        columns = build_period_columns("quarter", DateRange(date(2026, 2, 1), date(2026, 7, 1)))
        assert [c["label"] for c in columns] == ["Q1 2026", "Q2 2026", "Q3 2026"]

    def test_single_total_column(self):
        assert build_period_columns("none", DateRange(TODAY, TODAY)) == [
            {"key": "total", "label": "Total", "type": "currency"}
        ]

    def test_period_bounds_clamped_to_range(self):
        r = DateRange(date(2026, 1, 15), date(2026, 5, 14))
        assert period_start("2026-01", r) == date(2026, 1, 15)
        assert period_end("2026-Q2", r) == date(2026, 5, 14)
        assert period_end("2026-02", r) == date(2026, 2, 28)

    def test_day_bounds_are_half_open_utc(self):
        lower, upper = day_bounds(date(2026, 3, 1), date(2026, 3, 31))
        assert lower == datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert upper == datetime(2026, 4, 1, tzinfo=timezone.utc)
