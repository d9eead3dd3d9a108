"""Reporting endpoints: period summaries and spreadsheet exports."""

from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, Response

from counterpos.core.deps import get_store, require_capability
from counterpos.schemas.auth import Capability, User
from counterpos.schemas.report import ReportPeriod, SalesReport
from counterpos.services.export import XLSX_MEDIA_TYPE, sales_workbook, stock_workbook
from counterpos.services.reports import (
    sales_export_rows,
    stock_rows,
    store_timezone,
    summarize_period,
)
from counterpos.services.store import PosStore

router = APIRouter(prefix="/reports", tags=["reports"])


def _xlsx_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/summary", response_model=SalesReport)
async def period_summary(
    period: ReportPeriod = Query(ReportPeriod.DAY),
    reference_date: date | None = Query(None, description="Defaults to today in the store timezone"),
    current_user: User = Depends(require_capability(Capability.VIEW_REPORTS)),
    store: PosStore = Depends(get_store),
):
    """Net revenue and per-product quantities for the day, month or year containing `reference_date`."""
    tz = store_timezone()
    reference = reference_date or datetime.now(tz).date()
    return summarize_period(store.transactions, period, reference, tz)


@router.get("/sales/export", response_class=Response)
async def export_sales(
    start_date: date = Query(...),
    end_date: date = Query(...),
    current_user: User = Depends(require_capability(Capability.VIEW_REPORTS)),
    store: PosStore = Depends(get_store),
):
    """One row per transaction line in [start_date, end_date], as .xlsx."""
    rows = sales_export_rows(store.transactions, start_date, end_date)
    return _xlsx_response(sales_workbook(rows), f"sales_{start_date}_{end_date}.xlsx")


@router.get("/stock/export", response_class=Response)
async def export_stock(
    current_user: User = Depends(require_capability(Capability.VIEW_REPORTS)),
    store: PosStore = Depends(get_store),
):
    today = datetime.now(store_timezone()).date()
    rows = stock_rows(store.products.values())
    return _xlsx_response(stock_workbook(rows), f"stock_{today}.xlsx")
