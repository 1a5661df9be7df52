"""Trend series builder.

Groups orders into day / week / month buckets whose boundaries are computed
in the display timezone. Output is ordered by each bucket's start instant:
month labels ("Dec 2024", "Jan 2025") do not sort chronologically as text.
"""

from datetime import datetime, tzinfo
from typing import Dict, List, Optional, Sequence

from ai_attribution.services.aggregation.metrics import metric_order_value
from ai_attribution.services.aggregation.models import (
    ChannelTrendValue,
    DateRange,
    GmvMetric,
    OrderRecord,
    TrendPoint,
)
from ai_attribution.utils.time_buckets import (
    bucket_for,
    determine_bucket,
    ensure_utc,
    format_bucket_label,
    resolve_timezone,
)


def build_trend(
    orders: Sequence[OrderRecord],
    date_range: DateRange,
    metric: GmvMetric,
    timezone_name: Optional[str] = None,
    language: Optional[str] = None,
    tz: Optional[tzinfo] = None,
) -> List[TrendPoint]:
    tz = tz or resolve_timezone(timezone_name)
    bucket = determine_bucket(date_range.key, date_range.days)
    points: Dict[datetime, TrendPoint] = {}

    for order in orders:
        day, starts_at = bucket_for(ensure_utc(order.created_at), bucket, tz)
        point = points.get(starts_at)
        if point is None:
            point = TrendPoint(
                label=format_bucket_label(day, bucket, language),
                ai_gmv=0.0,
                ai_orders=0,
                overall_gmv=0.0,
                overall_orders=0,
                by_channel={},
                starts_at=starts_at,
            )
            points[starts_at] = point

        value = metric_order_value(order, metric)
        point.overall_gmv += value
        point.overall_orders += 1
        if order.ai_source is not None:
            point.ai_gmv += value
            point.ai_orders += 1
            channel_value = point.by_channel.setdefault(order.ai_source, ChannelTrendValue())
            channel_value.gmv += value
            channel_value.orders += 1

    return [points[key] for key in sorted(points)]
