"""
Dashboard Assembly Service
==========================

WHAT:
    Turns a collection of classified orders into one DashboardResult.

    Pipeline (order matters):
      1. Filter by date range (inclusive bounds)
      2. Drop POS / draft orders (not off-site traffic)
      3. Partition into primary vs foreign currency
      4. Run every builder on the primary-currency set only
      5. Compose a localized caveat note

WHY:
    Summing USD and EUR orders gives a meaningless GMV, and POS orders never
    had a referrer to begin with. Both are excluded and the note says how
    many were dropped so the merchant is not surprised.

REFERENCES:
    - ai_attribution/services/aggregation/ (builders)
    - ai_attribution/services/export_service.py (CSV payloads)
    - ai_attribution/routers/dashboard.py (HTTP surface)
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Mapping, Optional, Sequence, Tuple

from ai_attribution.services.aggregation.builders import (
    build_channel_breakdown,
    build_comparison,
    build_overview,
)
from ai_attribution.services.aggregation.customers import TOP_CUSTOMERS, build_top_customers
from ai_attribution.services.aggregation.metrics import metric_order_value
from ai_attribution.services.aggregation.models import (
    DashboardExports,
    DashboardResult,
    DateRange,
    GmvMetric,
    OrderRecord,
    OverviewMetrics,
    RawOrderRow,
)
from ai_attribution.services.aggregation.products import build_top_products
from ai_attribution.services.aggregation.trend import build_trend
from ai_attribution.services.attribution.channels import LOW_SAMPLE_THRESHOLD
from ai_attribution.services.export_service import (
    build_customers_csv,
    build_orders_csv,
    build_products_csv,
)
from ai_attribution.services.i18n import t
from ai_attribution.utils.time_buckets import (
    end_of_day,
    ensure_utc,
    local_date,
    local_midnight,
    resolve_timezone,
    start_of_day,
)

logger = logging.getLogger(__name__)

DEFAULT_RANGE_KEY = "30d"
PRESET_DAYS = {"7d": 7, "30d": 30, "90d": 90}
EXCLUDED_SOURCE_NAMES = frozenset({"pos", "draft"})
FALLBACK_CURRENCY = "USD"
RECENT_ORDERS_LIMIT = 10


# =============================================================================
# DATE RANGE
# =============================================================================


def _parse_date_input(value: Optional[str], tz) -> Optional[date]:
    """'YYYY-MM-DD' or full ISO timestamp -> local calendar date; None if unparseable."""
    if not value or not value.strip():
        return None
    raw = value.strip()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return local_date(datetime.fromisoformat(raw.replace("Z", "+00:00")), tz)
    except ValueError:
        logger.debug("[DASHBOARD] Ignoring unparseable date input %r", value)
        return None


def resolve_date_range(
    key: Optional[str] = None,
    now: Optional[datetime] = None,
    from_param: Optional[str] = None,
    to_param: Optional[str] = None,
    timezone_name: Optional[str] = None,
    language: Optional[str] = None,
) -> DateRange:
    """Resolve a preset or custom range into UTC instants.

    - Unknown keys fall back to 30d
    - A custom range needs both bounds; reversed bounds are swapped
    - Bounds are whole local days: [start-of-first-day, end-of-last-day]
    """
    tz = resolve_timezone(timezone_name)
    base_key = key if key in PRESET_DAYS or key == "custom" else DEFAULT_RANGE_KEY

    if base_key == "custom" or (from_param and to_param):
        first = _parse_date_input(from_param, tz)
        last = _parse_date_input(to_param, tz)
        if first and last:
            if first > last:
                first, last = last, first
            start = local_midnight(first, tz)
            end = local_midnight(last + timedelta(days=1), tz) - timedelta(microseconds=1)
            return DateRange(
                key="custom",
                label=f"{first.isoformat()} → {last.isoformat()}",
                start=start,
                end=end,
                days=max(1, (last - first).days + 1),
                from_param=first.isoformat(),
                to_param=last.isoformat(),
            )

    preset_key = DEFAULT_RANGE_KEY if base_key == "custom" else base_key
    days = PRESET_DAYS[preset_key]
    now = ensure_utc(now or datetime.now(timezone.utc))
    end = end_of_day(now, tz)
    start = start_of_day(now - timedelta(days=days - 1), tz)
    return DateRange(
        key=preset_key,
        label=t(language, f"range_{preset_key}"),
        start=start,
        end=end,
        days=days,
        from_param=local_date(start, tz).isoformat(),
        to_param=local_date(end, tz).isoformat(),
    )


# =============================================================================
# FILTERS
# =============================================================================


def filter_by_date_range(orders: Sequence[OrderRecord], date_range: DateRange) -> List[OrderRecord]:
    start = ensure_utc(date_range.start)
    end = ensure_utc(date_range.end)
    return [order for order in orders if start <= ensure_utc(order.created_at) <= end]


def exclude_source_channels(orders: Sequence[OrderRecord]) -> Tuple[List[OrderRecord], int]:
    """Drop POS / draft orders (case-insensitive). Returns (kept, excluded_count)."""
    kept = [
        order for order in orders
        if (order.source_name or "").strip().lower() not in EXCLUDED_SOURCE_NAMES
    ]
    return kept, len(orders) - len(kept)


@dataclass
class CurrencyPartition:
    currency: str
    primary: List[OrderRecord]
    foreign: List[OrderRecord]

    @property
    def foreign_currencies(self) -> List[str]:
        seen: List[str] = []
        for order in self.foreign:
            code = _currency_code(order.currency)
            if code and code not in seen:
                seen.append(code)
        return seen


def _currency_code(value: Optional[str]) -> str:
    return (value or "").strip().upper()


def partition_by_currency(orders: Sequence[OrderRecord], primary_currency: Optional[str] = None) -> CurrencyPartition:
    """Primary = configured currency, else the first order's, else USD.

    Codes compare case-insensitively.
    """
    currency = (
        _currency_code(primary_currency)
        or (_currency_code(orders[0].currency) if orders else "")
        or FALLBACK_CURRENCY
    )
    primary = [order for order in orders if _currency_code(order.currency) == currency]
    foreign = [order for order in orders if _currency_code(order.currency) != currency]
    return CurrencyPartition(currency=currency, primary=primary, foreign=foreign)


# =============================================================================
# RECENT ORDERS + NOTE
# =============================================================================


def build_recent_orders(
    orders: Sequence[OrderRecord],
    metric: GmvMetric,
    limit: int = RECENT_ORDERS_LIMIT,
) -> List[RawOrderRow]:
    newest_first = sorted(orders, key=lambda order: ensure_utc(order.created_at), reverse=True)
    return [
        RawOrderRow(
            id=order.id,
            name=order.name,
            created_at=order.created_at,
            ai_source=order.ai_source,
            total_price=metric_order_value(order, metric),
            currency=order.currency,
            referrer=order.referrer,
            landing_page=order.landing_page,
            utm_source=order.utm_source,
            utm_medium=order.utm_medium,
            customer_id=order.customer_id,
            source_name=order.source_name,
            is_new_customer=order.is_new_customer,
            detection=order.detection,
            signals=tuple(order.signals),
        )
        for order in newest_first[:limit]
    ]


def build_sample_note(
    overview: OverviewMetrics,
    foreign_count: int,
    excluded_by_source: int,
    clamped: bool = False,
    language: Optional[str] = None,
) -> Optional[str]:
    notes: List[str] = []
    if overview.ai_orders < LOW_SAMPLE_THRESHOLD:
        notes.append(t(language, "note_low_sample", threshold=LOW_SAMPLE_THRESHOLD))
    if foreign_count:
        notes.append(t(language, "note_foreign_currency", count=foreign_count, currency=overview.currency))
    if excluded_by_source:
        notes.append(t(language, "note_excluded_source", count=excluded_by_source))
    if clamped:
        notes.append(t(language, "note_clamped"))
    return " ".join(notes) or None


# =============================================================================
# ASSEMBLY
# =============================================================================


def build_dashboard(
    orders: Sequence[OrderRecord],
    date_range: DateRange,
    metric: GmvMetric = GmvMetric.current_total_price,
    timezone_name: Optional[str] = None,
    primary_currency: Optional[str] = None,
    acquired_map: Optional[Mapping[str, bool]] = None,
    language: Optional[str] = None,
    clamped: bool = False,
) -> DashboardResult:
    """Build every dashboard facet from classified orders. Pure, no I/O."""
    metric = GmvMetric.parse(metric)
    tz = resolve_timezone(timezone_name)

    in_range = filter_by_date_range(orders, date_range)
    usable, excluded_by_source = exclude_source_channels(in_range)
    partition = partition_by_currency(usable, primary_currency)
    scoped = partition.primary

    logger.info(
        "[DASHBOARD] Building %s dashboard: %d in range, %d excluded by source, %d foreign (%s), %d used",
        date_range.key, len(in_range), excluded_by_source, len(partition.foreign),
        ",".join(partition.foreign_currencies) or "-", len(scoped),
    )

    overview = build_overview(scoped, metric, partition.currency)
    top_products = build_top_products(scoped, metric)
    all_customers = build_top_customers(scoped, metric, top_n=None, acquired_map=acquired_map)

    return DashboardResult(
        range=date_range,
        metric=metric,
        currency=partition.currency,
        overview=overview,
        channels=build_channel_breakdown(scoped, metric),
        comparison=build_comparison(scoped, metric),
        trend=build_trend(scoped, date_range, metric, language=language, tz=tz),
        top_products=top_products,
        top_customers=all_customers[:TOP_CUSTOMERS],
        recent_orders=build_recent_orders(scoped, metric),
        sample_note=build_sample_note(
            overview, len(partition.foreign), excluded_by_source, clamped=clamped, language=language,
        ),
        exports=DashboardExports(
            orders_csv=build_orders_csv(scoped, metric, language),
            products_csv=build_products_csv(top_products, metric, language),
            customers_csv=build_customers_csv(all_customers, metric, language),
        ),
        clamped=clamped,
    )
