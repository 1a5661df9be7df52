"""Dashboard endpoints.

WHAT:
    GET /dashboard                  Aggregated AI-attribution dashboard
    GET /dashboard/export/{table}   CSV export (orders | products | customers)

WHY:
    Query parameters override merchant settings per request, so the UI can
    switch range / metric / timezone / language without touching settings.

REFERENCES:
    - ai_attribution/services/dashboard_service.py
    - ai_attribution/services/export_service.py
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import Settings, get_settings
from ..schemas import DashboardOut
from ..services.aggregation.models import DashboardResult, GmvMetric
from ..services.dashboard_service import build_dashboard, resolve_date_range
from ..services.export_service import EXPORT_TABLES, csv_filename, select_export
from ..services.i18n import Language
from ..services.order_repository import load_acquired_map, load_orders

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"],
)


def _load_dashboard(
    db: Session,
    settings: Settings,
    range_key: Optional[str],
    from_param: Optional[str],
    to_param: Optional[str],
    metric: Optional[str],
    timezone_name: Optional[str],
    language: Optional[str],
) -> DashboardResult:
    tz_name = timezone_name or settings.DISPLAY_TIMEZONE
    lang = Language.parse(language or settings.DISPLAY_LANGUAGE)
    date_range = resolve_date_range(
        range_key, from_param=from_param, to_param=to_param, timezone_name=tz_name, language=lang,
    )

    orders, clamped = load_orders(db, date_range.start, date_range.end, settings.MAX_DASHBOARD_ORDERS)
    acquired_map = load_acquired_map(db, (order.customer_id for order in orders))
    logger.info("[DASHBOARD] range=%s orders=%d clamped=%s", date_range.key, len(orders), clamped)

    return build_dashboard(
        orders,
        date_range,
        metric=GmvMetric.parse(metric or settings.GMV_METRIC),
        timezone_name=tz_name,
        primary_currency=settings.PRIMARY_CURRENCY,
        acquired_map=acquired_map,
        language=lang,
        clamped=clamped,
    )


@router.get("", response_model=DashboardOut)
def get_dashboard(
    range_key: Optional[str] = Query(None, alias="range", description="7d | 30d | 90d | custom"),
    from_param: Optional[str] = Query(None, alias="from", description="YYYY-MM-DD, custom ranges"),
    to_param: Optional[str] = Query(None, alias="to", description="YYYY-MM-DD, custom ranges"),
    metric: Optional[str] = Query(None, description="current_total_price | subtotal_price"),
    timezone_name: Optional[str] = Query(None, alias="timezone", description="IANA timezone"),
    language: Optional[str] = Query(None, description="English | 中文"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> DashboardOut:
    result = _load_dashboard(db, settings, range_key, from_param, to_param, metric, timezone_name, language)
    return DashboardOut.model_validate(result)


@router.get("/export/{table}")
def export_table(
    table: str,
    range_key: Optional[str] = Query(None, alias="range"),
    from_param: Optional[str] = Query(None, alias="from"),
    to_param: Optional[str] = Query(None, alias="to"),
    metric: Optional[str] = Query(None),
    timezone_name: Optional[str] = Query(None, alias="timezone"),
    language: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Response:
    if table.lower() not in EXPORT_TABLES:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown export table '{table}'. Expected one of: {', '.join(EXPORT_TABLES)}",
        )

    result = _load_dashboard(db, settings, range_key, from_param, to_param, metric, timezone_name, language)
    content = select_export(result.exports, table)

    filename = csv_filename(table.lower(), result.range.from_param, result.range.to_param)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
