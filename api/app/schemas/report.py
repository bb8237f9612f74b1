import uuid
from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.services.reports.periods import DateRange

AccountingMethod = Literal["cash", "accrual"]
GroupBy = Literal["none", "month", "quarter", "property"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Filters ───────────────────────────────────────────────────────────────

class ReportFilters(_CamelModel):
    period: str = "year-to-date"
    start_date: date | None = None
    end_date: date | None = None
    accounting_method: AccountingMethod = "cash"
    group_by: GroupBy = "none"
    property_id: uuid.UUID | None = None

    @property
    def date_range(self) -> DateRange | None:
        if self.start_date is None or self.end_date is None:
            return None
        return DateRange(self.start_date, self.end_date)


# ─── Report envelope ───────────────────────────────────────────────────────

class ReportColumn(_CamelModel):
    key: str
    label: str
    type: Literal["text", "currency", "number", "percentage", "date"]


class ReportRow(_CamelModel):
    id: str
    name: str
    depth: int = 0
    is_group: bool = False
    is_total: bool = False
    values: dict[str, float | int | str | None] = Field(default_factory=dict)
    children: list["ReportRow"] | None = None
    metadata: dict[str, Any] | None = None


class DateRangeOut(_CamelModel):
    start_date: date | None = None
    end_date: date | None = None


class ReportEnvelope(_CamelModel):
    type: str
    title: str | None = None
    subtitle: str | None = None
    generated_at: str
    date_range: DateRangeOut | None = None
    filters: dict[str, Any] | None = None
    data: Any
    summary: dict[str, Any] = Field(default_factory=dict)


class ReportResponse(BaseModel):
    report: ReportEnvelope


# ─── Discovery listing ─────────────────────────────────────────────────────

class ReportVariant(_CamelModel):
    id: str
    name: str
    group_by: GroupBy


class ReportListItem(_CamelModel):
    type: str
    name: str
    description: str
    category: str
    icon: str
    is_favorite: bool
    variants: list[ReportVariant]


class ReportCategoryGroup(_CamelModel):
    category: str
    name: str
    description: str
    reports: list[ReportListItem]


class ReportsListResponse(_CamelModel):
    reports: list[ReportListItem]
    categories: list[ReportCategoryGroup]


# ─── Favorites ─────────────────────────────────────────────────────────────

class FavoriteRequest(_CamelModel):
    report_type: str = Field(min_length=1)


class FavoriteToggleResponse(_CamelModel):
    success: bool
    is_favorite: bool
    message: str | None = None


class FavoritesResponse(BaseModel):
    favorites: list[str]


# ─── Drill-down ────────────────────────────────────────────────────────────

class DrilldownTransaction(_CamelModel):
    id: str
    date: date
    description: str | None = None
    type: Literal["charge", "payment", "expense"]
    category: str
    amount: float
    reference: str
    property_name: str | None = None
    unit_number: str | None = None
    tenant_name: str | None = None
    status: str | None = None


class DrilldownResponse(_CamelModel):
    transactions: list[DrilldownTransaction]
    total_amount: float
    count: int
