"""
Aggregation package: dashboard facets over classified orders.

Modules:
- models.py: OrderRecord, DateRange, GmvMetric and result dataclasses
- metrics.py: GMV helpers, safe_ratio, ScopeAccumulator
- builders.py: Overview, channel breakdown, comparison
- trend.py: Timezone-correct trend buckets
- products.py: Weighted GMV allocation to products
- customers.py: Customer LTV and first-order AI acquisition
"""

from ai_attribution.services.aggregation.builders import (
    build_channel_breakdown,
    build_comparison,
    build_overview,
)
from ai_attribution.services.aggregation.customers import build_top_customers
from ai_attribution.services.aggregation.models import DateRange, GmvMetric, OrderLine, OrderRecord
from ai_attribution.services.aggregation.products import build_top_products
from ai_attribution.services.aggregation.trend import build_trend

__all__ = [
    "DateRange",
    "GmvMetric",
    "OrderLine",
    "OrderRecord",
    "build_channel_breakdown",
    "build_comparison",
    "build_overview",
    "build_top_customers",
    "build_top_products",
    "build_trend",
]
