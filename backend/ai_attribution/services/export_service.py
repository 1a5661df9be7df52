"""
CSV Export Service
==================

WHAT:
    Serializes dashboard tables (AI orders, top products, customers) as CSV.
    Each file is: one localized "# ..." comment line stating the GMV metric
    and the conservative-estimate caveat, then a fixed header, then rows.

WHY:
    Merchants open these files in Excel / Sheets. Cells starting with
    = @ + - tab or CR are executed as formulas there, so they are prefixed
    with a single quote (CSV injection guard). Standard quoting is left to
    the csv module.

REFERENCES:
    - ai_attribution/services/dashboard_service.py (builds all three)
    - ai_attribution/routers/dashboard.py (GET /dashboard/export/{table})
"""

import csv
import io
import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence

from ai_attribution.services.aggregation.metrics import metric_order_value, safe_ratio
from ai_attribution.services.aggregation.models import (
    GmvMetric,
    OrderRecord,
    ProductRow,
    TopCustomerRow,
)
from ai_attribution.services.i18n import t
from ai_attribution.utils.time_buckets import ensure_utc

logger = logging.getLogger(__name__)

EXPORT_TABLES = ("orders", "products", "customers")

ORDERS_HEADER = [
    "order_name",
    "placed_at",
    "ai_channel",
    "gmv",
    "gmv_metric",
    "referrer",
    "landing_page",
    "source_name",
    "utm_source",
    "utm_medium",
    "detection",
    "order_id",
    "customer_id",
    "new_customer",
]

PRODUCTS_HEADER = [
    "product_title",
    "ai_orders",
    "ai_gmv",
    "ai_share",
    "top_ai_channel",
    "product_url",
    "product_id",
    "handle",
]

CUSTOMERS_HEADER = [
    "customer_id",
    "ltv",
    "gmv_metric",
    "first_ai_acquired",
    "repeat_count",
    "ai_order_share",
    "first_order_at",
]

_FORMULA_PREFIXES = ("=", "@", "+", "-", "\t", "\r")


class UnknownExportTable(ValueError):
    """Raised for a table name outside EXPORT_TABLES."""


def neutralize_cell(value: Any) -> str:
    """Stringify a cell and defuse spreadsheet formulas."""
    if value is None:
        text = ""
    elif isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, datetime):
        text = ensure_utc(value).isoformat()
    else:
        text = str(value)
    if text.startswith(_FORMULA_PREFIXES):
        return f"'{text}"
    return text


def _render(comment: str, header: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    buffer = io.StringIO()
    buffer.write(comment + "\n")
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    for row in rows:
        writer.writerow([neutralize_cell(cell) for cell in row])
    return buffer.getvalue()


def build_orders_csv(orders: Sequence[OrderRecord], metric: GmvMetric, language: Optional[str] = None) -> str:
    """AI-attributed orders only."""
    rows = (
        [
            order.name,
            order.created_at,
            order.ai_source.value,
            metric_order_value(order, metric),
            metric.value,
            order.referrer,
            order.landing_page,
            order.source_name or "",
            order.utm_source or "",
            order.utm_medium or "",
            order.detection,
            order.id,
            order.customer_id,
            order.is_new_customer,
        ]
        for order in orders
        if order.ai_source is not None
    )
    return _render(t(language, "csv_orders_comment", metric=metric.value), ORDERS_HEADER, rows)


def build_products_csv(products: Sequence[ProductRow], metric: GmvMetric, language: Optional[str] = None) -> str:
    rows = (
        [
            product.title,
            product.ai_orders,
            product.ai_gmv,
            f"{product.ai_share * 100:.1f}%",
            product.top_channel.value if product.top_channel else "",
            product.url,
            product.id,
            product.handle,
        ]
        for product in products
    )
    return _render(t(language, "csv_products_comment", metric=metric.value), PRODUCTS_HEADER, rows)


def build_customers_csv(
    customers: Sequence[TopCustomerRow],
    metric: GmvMetric,
    language: Optional[str] = None,
) -> str:
    """Every customer in the window, not just the top list."""
    rows = (
        [
            customer.customer_id,
            customer.ltv,
            metric.value,
            customer.first_ai_acquired,
            customer.repeat_count,
            f"{safe_ratio(customer.ai_orders, customer.orders):.4f}",
            customer.first_order_at,
        ]
        for customer in customers
    )
    return _render(t(language, "csv_customers_comment", metric=metric.value), CUSTOMERS_HEADER, rows)


def select_export(exports: Any, table: str) -> str:
    """Pick one CSV payload from DashboardExports by table name."""
    normalized = (table or "").strip().lower()
    if normalized not in EXPORT_TABLES:
        raise UnknownExportTable(table)
    content: str = getattr(exports, f"{normalized}_csv")
    logger.info("[EXPORT] Serving %s export (%d bytes)", normalized, len(content))
    return content


def csv_filename(table: str, from_param: Optional[str], to_param: Optional[str]) -> str:
    parts: List[str] = ["ai", table]
    if from_param and to_param:
        parts.extend([from_param, to_param])
    return "-".join(parts) + ".csv"
