"""GMV primitives and the per-scope accumulator.

Every ratio goes through ``safe_ratio`` so an empty scope yields 0, never a
ZeroDivisionError, NaN or infinity.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict

from ai_attribution.services.aggregation.models import GmvMetric, OrderRecord


def metric_order_value(order: OrderRecord, metric: GmvMetric) -> float:
    """Order GMV under ``metric``; subtotal falls back to the gross total."""
    if metric is GmvMetric.subtotal_price and order.subtotal_price is not None:
        return order.subtotal_price
    return order.total_price


def net_order_value(order: OrderRecord, metric: GmvMetric) -> float:
    """GMV minus refunds, floored at 0."""
    return max(0.0, metric_order_value(order, metric) - (order.refund_total or 0.0))


def safe_ratio(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator


@dataclass
class ScopeAccumulator:
    """Running totals for one scope (overall, AI-only, or a single channel).

    Created empty per aggregation call, fed once per order, then read by a
    builder and dropped.
    """
    gmv: float = 0.0
    net_gmv: float = 0.0
    orders: int = 0
    new_customers: int = 0
    orders_by_customer: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def add(self, order: OrderRecord, metric: GmvMetric) -> None:
        self.gmv += metric_order_value(order, metric)
        self.net_gmv += net_order_value(order, metric)
        self.orders += 1
        if order.is_new_customer:
            self.new_customers += 1
        if order.customer_id:
            self.orders_by_customer[order.customer_id] += 1

    @property
    def aov(self) -> float:
        return safe_ratio(self.gmv, self.orders)

    @property
    def new_customer_rate(self) -> float:
        return safe_ratio(self.new_customers, self.orders)

    @property
    def distinct_customers(self) -> int:
        return len(self.orders_by_customer)

    @property
    def repeat_customers(self) -> int:
        return sum(1 for count in self.orders_by_customer.values() if count > 1)

    @property
    def repeat_rate(self) -> float:
        return safe_ratio(self.repeat_customers, self.distinct_customers)
