"""
Overview, Channel and Comparison Builders
=========================================

WHAT:
    Three dashboard facets computed from the same order collection:
    - build_overview: totals, AI shares, detectability coverage
    - build_channel_breakdown: one row per channel, pre-seeded at zero
    - build_comparison: "overall" plus one row per channel (AOV, rates)

WHY:
    Callers pass orders that are already date-filtered and currency
    partitioned, so GMV sums here never mix currencies.

COVERAGE vs SHARE:
    referrer/utm coverage describe how many orders carry a detectable signal
    at all. They are data-quality indicators, not AI metrics.
"""

from typing import Dict, List, Sequence

from ai_attribution.services.aggregation.metrics import ScopeAccumulator, safe_ratio
from ai_attribution.services.aggregation.models import (
    ChannelStat,
    ComparisonRow,
    GmvMetric,
    OrderRecord,
    OverviewMetrics,
)
from ai_attribution.services.attribution.channels import (
    AI_CHANNELS,
    CHANNEL_COLORS,
    LOW_SAMPLE_THRESHOLD,
    AIChannel,
)

OVERALL_SCOPE = "overall"


def is_low_sample(sample_size: int) -> bool:
    return sample_size < LOW_SAMPLE_THRESHOLD


def _channel_scopes(orders: Sequence[OrderRecord], metric: GmvMetric) -> Dict[AIChannel, ScopeAccumulator]:
    scopes = {channel: ScopeAccumulator() for channel in AI_CHANNELS}
    for order in orders:
        if order.ai_source is not None:
            scopes[order.ai_source].add(order, metric)
    return scopes


def build_overview(orders: Sequence[OrderRecord], metric: GmvMetric, currency: str) -> OverviewMetrics:
    overall = ScopeAccumulator()
    ai = ScopeAccumulator()
    with_referrer = 0
    with_utm = 0
    with_any = 0

    for order in orders:
        overall.add(order, metric)
        if order.ai_source is not None:
            ai.add(order, metric)
        has_referrer = bool(order.referrer and order.referrer.strip())
        has_utm = bool(order.utm_source or order.utm_medium)
        with_referrer += has_referrer
        with_utm += has_utm
        with_any += has_referrer or has_utm

    return OverviewMetrics(
        total_gmv=overall.gmv,
        net_gmv=overall.net_gmv,
        ai_gmv=ai.gmv,
        net_ai_gmv=ai.net_gmv,
        ai_share=safe_ratio(ai.gmv, overall.gmv),
        ai_orders=ai.orders,
        ai_order_share=safe_ratio(ai.orders, overall.orders),
        total_orders=overall.orders,
        ai_new_customers=ai.new_customers,
        ai_new_customer_rate=ai.new_customer_rate,
        total_new_customers=overall.new_customers,
        referrer_coverage=safe_ratio(with_referrer, overall.orders),
        utm_coverage=safe_ratio(with_utm, overall.orders),
        any_signal_coverage=safe_ratio(with_any, overall.orders),
        currency=currency,
    )


def build_channel_breakdown(orders: Sequence[OrderRecord], metric: GmvMetric) -> List[ChannelStat]:
    scopes = _channel_scopes(orders, metric)
    return [
        ChannelStat(
            channel=channel,
            gmv=scopes[channel].gmv,
            orders=scopes[channel].orders,
            new_customers=scopes[channel].new_customers,
            color=CHANNEL_COLORS[channel],
        )
        for channel in AI_CHANNELS
    ]


def _comparison_row(label: str, scope: ScopeAccumulator) -> ComparisonRow:
    return ComparisonRow(
        channel=label,
        aov=scope.aov,
        new_customer_rate=scope.new_customer_rate,
        repeat_rate=scope.repeat_rate,
        sample_size=scope.orders,
        is_low_sample=is_low_sample(scope.orders),
    )


def build_comparison(orders: Sequence[OrderRecord], metric: GmvMetric) -> List[ComparisonRow]:
    overall = ScopeAccumulator()
    for order in orders:
        overall.add(order, metric)
    scopes = _channel_scopes(orders, metric)
    return [_comparison_row(OVERALL_SCOPE, overall)] + [
        _comparison_row(channel.value, scopes[channel]) for channel in AI_CHANNELS
    ]
