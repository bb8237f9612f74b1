"""
Reporting router.
Endpoints:
  GET    /reports                        report catalog, or a dashboard report with ?type=
  GET    /reports/favorites
  POST   /reports/favorites              {"reportType": "profit-loss"}
  DELETE /reports/favorites              {"reportType": "profit-loss"}
  GET    /reports/{type}?period=year-to-date&accountingMethod=cash&groupBy=month
  GET    /reports/{type}/export          same query, text/csv
  GET    /reports/{type}/transactions?accountId=income-rent&columnKey=2026-03
"""
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import get_current_user
from app.models.user import User
from app.schemas.report import (
    DrilldownResponse,
    FavoriteRequest,
    FavoritesResponse,
    FavoriteToggleResponse,
    ReportResponse,
    ReportsListResponse,
)
from app.services.reports.assembler import assemble
from app.services.reports.definitions import get_report_definition, get_reports_by_category
from app.services.reports.drilldown import drilldown
from app.services.reports.errors import ReportError
from app.services.reports.export import report_to_csv
from app.services.reports.factory import (
    build_dashboard_filters,
    build_filters,
    generate_dashboard_report,
    generate_report,
)
from app.services.reports.favorites import add_favorite, list_favorites, load_favorites, remove_favorite

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reports"])


def _http_error(exc: ReportError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


async def _statement(
    db: AsyncSession,
    user: User,
    report_type: str,
    period: str | None,
    start_date: str | None,
    end_date: str | None,
    accounting_method: str | None,
    group_by: str | None,
    property_id: str | None,
) -> dict:
    try:
        filters = build_filters(period, start_date, end_date, accounting_method, group_by, property_id)
        result = await generate_report(db, user.organization_id, report_type, filters)
    except ReportError as exc:
        raise _http_error(exc)
    return assemble(result, filters)


# ─── Catalog & dashboard ───────────────────────────────────────────────────────

@router.get("/reports")
async def list_or_dashboard(
    type: str | None = Query(default=None),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    property_id: str | None = Query(default=None, alias="propertyId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not type:
        favorites = await load_favorites(db, user.id)
        categories = get_reports_by_category(favorites.report_types)
        return ReportsListResponse(
            reports=[r for group in categories for r in group["reports"]],
            categories=categories,
        ).model_dump(by_alias=True)

    try:
        filters = build_dashboard_filters(start_date, end_date, property_id)
        result = await generate_dashboard_report(db, user.organization_id, type, filters)
    except ReportError as exc:
        raise _http_error(exc)
    return {"report": assemble(result, filters)}


# ─── Favorites ─────────────────────────────────────────────────────────────────

@router.get("/reports/favorites", response_model=FavoritesResponse)
async def get_favorites(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return FavoritesResponse(favorites=await list_favorites(db, user.id))


@router.post("/reports/favorites", response_model=FavoriteToggleResponse, response_model_by_alias=True)
async def post_favorite(
    body: FavoriteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if get_report_definition(body.report_type) is None:
        raise HTTPException(status_code=400, detail="Invalid report type")
    added = await add_favorite(db, user.id, body.report_type)
    return FavoriteToggleResponse(
        success=True,
        is_favorite=True,
        message=None if added else "Already in favorites",
    )


@router.delete("/reports/favorites", response_model=FavoriteToggleResponse, response_model_by_alias=True)
async def delete_favorite(
    body: FavoriteRequest = Body(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    removed = await remove_favorite(db, user.id, body.report_type)
    return FavoriteToggleResponse(
        success=True,
        is_favorite=False,
        message=None if removed else "Was not in favorites",
    )


# ─── Statements ────────────────────────────────────────────────────────────────

@router.get("/reports/{report_type}", response_model=ReportResponse)
async def get_report(
    report_type: str,
    period: str | None = Query(default=None),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    accounting_method: str | None = Query(default=None, alias="accountingMethod"),
    group_by: str | None = Query(default=None, alias="groupBy"),
    property_id: str | None = Query(default=None, alias="propertyId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    report = await _statement(
        db, user, report_type, period, start_date, end_date, accounting_method, group_by, property_id
    )
    return {"report": report}


@router.get("/reports/{report_type}/export")
async def export_report(
    report_type: str,
    period: str | None = Query(default=None),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    accounting_method: str | None = Query(default=None, alias="accountingMethod"),
    group_by: str | None = Query(default=None, alias="groupBy"),
    property_id: str | None = Query(default=None, alias="propertyId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    report = await _statement(
        db, user, report_type, period, start_date, end_date, accounting_method, group_by, property_id
    )
    filename = f"{report_type}-{report['dateRange']['endDate']}.csv" if report["dateRange"] else f"{report_type}.csv"
    return StreamingResponse(
        iter([report_to_csv(report)]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/reports/{report_type}/transactions", response_model=DrilldownResponse, response_model_by_alias=True)
async def report_transactions(
    report_type: str,
    account_id: str = Query(..., alias="accountId"),
    column_key: str = Query(default="total", alias="columnKey"),
    period: str | None = Query(default=None),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    accounting_method: str | None = Query(default=None, alias="accountingMethod"),
    property_id: str | None = Query(default=None, alias="propertyId"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        filters = build_filters(period, start_date, end_date, accounting_method, None, property_id)
        return await drilldown(db, user.organization_id, report_type, account_id, column_key, filters)
    except ReportError as exc:
        raise _http_error(exc)
