"""Static catalog of statement reports.

Read-only after import.  The per-user favorite flags are merged in at request
time by ``get_reports_by_category``; nothing here is mutated.
"""

from enum import Enum


class ReportType(str, Enum):
    BALANCE_SHEET = "balance-sheet"
    PROFIT_LOSS = "profit-loss"
    CASH_FLOW = "cash-flow"
    OWNER_STATEMENT = "owner-statement"
    RENT_ROLL = "rent-roll"
    PROPERTY_PERFORMANCE = "property-performance"
    VACANCY = "vacancy"
    AGING_REPORT = "aging-report"
    SECURITY_DEPOSIT = "security-deposit"
    TENANT_LEDGER = "tenant-ledger"
    TAX_1099 = "tax-1099"
    EXPENSE_REPORT = "expense-report"
    DEPRECIATION = "depreciation"


REPORT_CATEGORIES: dict[str, dict] = {
    "business-overview": {
        "name": "Business Overview",
        "description": "High-level financial statements and summaries",
        "order": 1,
    },
    "property": {
        "name": "Property Reports",
        "description": "Property-specific performance and occupancy metrics",
        "order": 2,
    },
    "tenant": {
        "name": "Tenant Reports",
        "description": "Tenant balances, payments, and account details",
        "order": 3,
    },
    "tax": {
        "name": "Tax Reports",
        "description": "Tax preparation and compliance reports",
        "order": 4,
    },
}


def _variant(id: str, name: str, group_by: str) -> dict:
    return {"id": id, "name": name, "groupBy": group_by}


def _filters(period: bool, accounting_method: bool, group_by: list[str], property_filter: bool = True) -> dict:
    return {
        "period": period,
        "dateRange": period,
        "accountingMethod": accounting_method,
        "groupBy": group_by,
        "propertyFilter": property_filter,
    }


_ALL_GROUPINGS = ["none", "month", "quarter", "property"]

REPORT_DEFINITIONS: list[dict] = [
    # Business overview
    {
        "type": ReportType.BALANCE_SHEET.value,
        "name": "Balance Sheet",
        "description": "Snapshot of assets, liabilities, and equity at a point in time",
        "category": "business-overview",
        "icon": "Scale",
        "variants": [
            _variant("standard", "Balance Sheet", "none"),
            _variant("by-month", "Balance Sheet by Month", "month"),
            _variant("by-property", "Balance Sheet by Property", "property"),
            _variant("by-quarter", "Balance Sheet by Quarter", "quarter"),
        ],
        "supportedFilters": _filters(True, True, _ALL_GROUPINGS),
    },
    {
        "type": ReportType.PROFIT_LOSS.value,
        "name": "Profit and Loss",
        "description": "Income and expenses over a period showing net profit or loss",
        "category": "business-overview",
        "icon": "TrendingUp",
        "variants": [
            _variant("standard", "Profit and Loss", "none"),
            _variant("by-month", "Profit and Loss by Month", "month"),
            _variant("by-property", "Profit and Loss by Property", "property"),
            _variant("by-quarter", "Profit and Loss by Quarter", "quarter"),
        ],
        "supportedFilters": _filters(True, True, _ALL_GROUPINGS),
    },
    {
        "type": ReportType.CASH_FLOW.value,
        "name": "Cash Flow Statement",
        "description": "Track cash inflows and outflows from operations",
        "category": "business-overview",
        "icon": "ArrowLeftRight",
        "variants": [_variant("standard", "Cash Flow Statement", "none")],
        "supportedFilters": _filters(True, False, ["none", "month", "quarter"]),
    },
    {
        "type": ReportType.OWNER_STATEMENT.value,
        "name": "Owner Statement",
        "description": "Summary statement for property owners showing income, expenses, and distributions",
        "category": "business-overview",
        "icon": "FileText",
        "variants": [_variant("by-property", "Owner Statement", "property")],
        "supportedFilters": _filters(True, True, ["property"]),
    },
    # Property
    {
        "type": ReportType.RENT_ROLL.value,
        "name": "Rent Roll",
        "description": "Complete list of units with tenants, lease terms, and rent amounts",
        "category": "property",
        "icon": "Building2",
        "variants": [
            _variant("standard", "Rent Roll", "none"),
            _variant("by-property", "Rent Roll by Property", "property"),
        ],
        "supportedFilters": _filters(False, False, ["none", "property"]),
    },
    {
        "type": ReportType.PROPERTY_PERFORMANCE.value,
        "name": "Property Performance",
        "description": "Key metrics including occupancy, NOI, and cap rate per property",
        "category": "property",
        "icon": "BarChart3",
        "variants": [_variant("standard", "Property Performance", "property")],
        "supportedFilters": _filters(True, True, ["property"]),
    },
    {
        "type": ReportType.VACANCY.value,
        "name": "Vacancy Report",
        "description": "Vacant units with days vacant and estimated lost revenue",
        "category": "property",
        "icon": "DoorOpen",
        "variants": [
            _variant("standard", "Vacancy Report", "none"),
            _variant("by-property", "Vacancy Report by Property", "property"),
        ],
        "supportedFilters": _filters(False, False, ["none", "property"]),
    },
    # Tenant
    {
        "type": ReportType.AGING_REPORT.value,
        "name": "Aging Report",
        "description": "Outstanding balances grouped by age: Current, 1-30, 31-60, 61-90, 90+ days",
        "category": "tenant",
        "icon": "Clock",
        "variants": [
            _variant("standard", "Aging Report", "none"),
            _variant("by-property", "Aging Report by Property", "property"),
        ],
        "supportedFilters": _filters(False, False, ["none", "property"]),
    },
    {
        "type": ReportType.SECURITY_DEPOSIT.value,
        "name": "Security Deposit Report",
        "description": "All security deposits held with tenant and property details",
        "category": "tenant",
        "icon": "Shield",
        "variants": [
            _variant("standard", "Security Deposit Report", "none"),
            _variant("by-property", "Security Deposit Report by Property", "property"),
        ],
        "supportedFilters": _filters(False, False, ["none", "property"]),
    },
    {
        "type": ReportType.TENANT_LEDGER.value,
        "name": "Tenant Ledger",
        "description": "Complete transaction history for each tenant",
        "category": "tenant",
        "icon": "Users",
        "variants": [_variant("standard", "Tenant Ledger", "none")],
        "supportedFilters": _filters(True, False, ["none"]),
    },
    # Tax
    {
        "type": ReportType.TAX_1099.value,
        "name": "1099 Report",
        "description": "Vendor payments over $600 for 1099 filing requirements",
        "category": "tax",
        "icon": "FileCheck",
        "variants": [_variant("standard", "1099 Report", "none")],
        "supportedFilters": _filters(True, False, ["none"], property_filter=False),
    },
    {
        "type": ReportType.EXPENSE_REPORT.value,
        "name": "Expense Report",
        "description": "All expenses categorized for tax deduction purposes",
        "category": "tax",
        "icon": "Receipt",
        "variants": [
            _variant("standard", "Expense Report", "none"),
            _variant("by-category", "Expense Report by Category", "none"),
            _variant("by-property", "Expense Report by Property", "property"),
        ],
        "supportedFilters": _filters(True, True, ["none", "property"]),
    },
    {
        "type": ReportType.DEPRECIATION.value,
        "name": "Depreciation Schedule",
        "description": "Asset depreciation tracking for tax purposes",
        "category": "tax",
        "icon": "Calculator",
        "variants": [
            _variant("standard", "Depreciation Schedule", "none"),
            _variant("by-property", "Depreciation Schedule by Property", "property"),
        ],
        "supportedFilters": _filters(True, False, ["none", "property"]),
    },
]

_BY_TYPE = {d["type"]: d for d in REPORT_DEFINITIONS}


def get_report_definition(report_type: str) -> dict | None:
    """Definition for a type, or None when the type is unknown."""
    return _BY_TYPE.get(report_type)


def get_reports_by_category(favorites: set[str] | frozenset[str] = frozenset()) -> list[dict]:
    """Ordered category groups, each report flagged with isFavorite."""
    groups = []
    for category, meta in sorted(REPORT_CATEGORIES.items(), key=lambda kv: kv[1]["order"]):
        groups.append({
            "category": category,
            "name": meta["name"],
            "description": meta["description"],
            "reports": [
                {
                    "type": d["type"],
                    "name": d["name"],
                    "description": d["description"],
                    "category": d["category"],
                    "icon": d["icon"],
                    "isFavorite": d["type"] in favorites,
                    "variants": [dict(v) for v in d["variants"]],
                }
                for d in REPORT_DEFINITIONS
                if d["category"] == category
            ],
        })
    return groups
