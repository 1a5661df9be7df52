"""Top-customers builder.

``first_ai_acquired`` prefers the caller's acquired-via-AI map, which is
derived from full order history. Without it, the value is inferred from the
earliest order inside the current window only (AI-attributed and flagged as
a new customer). That fallback is an approximation: a customer whose real
first order predates the window can be misreported.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from ai_attribution.services.aggregation.metrics import metric_order_value
from ai_attribution.services.aggregation.models import GmvMetric, OrderRecord, TopCustomerRow
from ai_attribution.utils.time_buckets import ensure_utc

TOP_CUSTOMERS = 8


@dataclass
class _CustomerTotals:
    ltv: float = 0.0
    orders: int = 0
    ai_orders: int = 0
    ai: bool = False
    first_order_at: Optional[datetime] = None
    first_ai_acquired: bool = False


def build_top_customers(
    orders: Sequence[OrderRecord],
    metric: GmvMetric,
    top_n: Optional[int] = TOP_CUSTOMERS,
    acquired_map: Optional[Mapping[str, bool]] = None,
) -> List[TopCustomerRow]:
    customers: Dict[str, _CustomerTotals] = {}

    for order in orders:
        if not order.customer_id:
            continue
        totals = customers.setdefault(order.customer_id, _CustomerTotals())
        totals.ltv += metric_order_value(order, metric)
        totals.orders += 1
        if order.ai_source is not None:
            totals.ai = True
            totals.ai_orders += 1
        created_at = ensure_utc(order.created_at)
        # Strict "<" so ties keep the first order seen
        if totals.first_order_at is None or created_at < totals.first_order_at:
            totals.first_order_at = created_at
            totals.first_ai_acquired = bool(order.is_new_customer and order.ai_source is not None)

    rows = [
        TopCustomerRow(
            customer_id=customer_id,
            ltv=totals.ltv,
            orders=totals.orders,
            ai=totals.ai,
            first_ai_acquired=(
                bool(acquired_map.get(customer_id, False))
                if acquired_map is not None
                else totals.first_ai_acquired
            ),
            repeat_count=max(0, totals.orders - 1),
            ai_orders=totals.ai_orders,
            first_order_at=totals.first_order_at,
        )
        for customer_id, totals in customers.items()
    ]
    rows.sort(key=lambda row: row.ltv, reverse=True)
    return rows if top_n is None else rows[:top_n]
