"""Top-products builder with weighted GMV allocation.

WHAT:
    Each AI order's GMV is spread over its line items by price x quantity
    share. When the line total is 0 (free items, 100% discounts) the GMV is
    split evenly instead.

INVARIANT:
    For one AI order with lines, allocations across its products sum to the
    order's GMV under the selected metric.

Order counts are per order, not per line: a product on two lines of the same
order counts once.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ai_attribution.services.aggregation.metrics import metric_order_value, safe_ratio
from ai_attribution.services.aggregation.models import GmvMetric, OrderLine, OrderRecord, ProductRow
from ai_attribution.services.attribution.channels import AIChannel

TOP_PRODUCTS = 8


@dataclass
class _ProductTotals:
    line: OrderLine
    ai_orders: int = 0
    total_orders: int = 0
    ai_gmv: float = 0.0
    by_channel: Dict[AIChannel, float] = field(default_factory=lambda: defaultdict(float))

    def top_channel(self) -> Optional[AIChannel]:
        if not self.by_channel:
            return None
        # max() keeps the first of equal values, i.e. first channel seen
        return max(self.by_channel.items(), key=lambda item: item[1])[0]


def allocate_order_value(order: OrderRecord, metric: GmvMetric) -> List[float]:
    """Per-line share of the order's GMV, aligned with ``order.products``."""
    lines = order.products
    if not lines:
        return []
    order_value = metric_order_value(order, metric)
    line_total = sum(line.price * line.quantity for line in lines)
    if line_total > 0:
        return [order_value * (line.price * line.quantity) / line_total for line in lines]
    return [order_value / len(lines) for _ in lines]


def build_top_products(
    orders: Sequence[OrderRecord],
    metric: GmvMetric,
    top_n: int = TOP_PRODUCTS,
) -> List[ProductRow]:
    products: Dict[str, _ProductTotals] = {}

    for order in orders:
        is_ai = order.ai_source is not None
        allocations = allocate_order_value(order, metric) if is_ai else [0.0] * len(order.products)
        seen = set()
        for line, allocated in zip(order.products, allocations):
            totals = products.get(line.id)
            if totals is None:
                totals = products[line.id] = _ProductTotals(line=line)
            if line.id not in seen:
                seen.add(line.id)
                totals.total_orders += 1
                if is_ai:
                    totals.ai_orders += 1
            if is_ai:
                totals.ai_gmv += allocated
                totals.by_channel[order.ai_source] += allocated

    rows = [
        ProductRow(
            id=totals.line.id,
            title=totals.line.title,
            handle=totals.line.handle,
            url=totals.line.url,
            ai_orders=totals.ai_orders,
            ai_gmv=totals.ai_gmv,
            ai_share=safe_ratio(totals.ai_orders, totals.total_orders),
            top_channel=totals.top_channel(),
        )
        for totals in products.values()
    ]
    rows.sort(key=lambda row: row.ai_gmv, reverse=True)
    return rows[:top_n]
