"""
Top Products Tests (Unit)
=========================

WHAT: Weighted GMV allocation across line items and product ranking.
WHY: Product-level AI GMV must add up to order GMV, including free-item
     orders where the weighted split would divide by zero.

REFERENCES:
- backend/ai_attribution/services/aggregation/products.py
"""

from datetime import datetime, timezone
from typing import List

import pytest

from ai_attribution.services.aggregation.models import GmvMetric, OrderLine, OrderRecord
from ai_attribution.services.aggregation.products import allocate_order_value, build_top_products
from ai_attribution.services.attribution.channels import AIChannel

METRIC = GmvMetric.current_total_price


def _order(order_id: str, total: float, lines: List[OrderLine], ai_source=None, subtotal=None) -> OrderRecord:
    return OrderRecord(
        id=order_id,
        name=f"#{order_id}",
        created_at=datetime(2024, 11, 5, tzinfo=timezone.utc),
        total_price=total,
        currency="USD",
        subtotal_price=subtotal,
        ai_source=ai_source,
        products=lines,
    )


def _line(product_id: str, price: float, quantity: int = 1) -> OrderLine:
    return OrderLine(id=product_id, title=product_id.title(), handle=product_id, price=price, quantity=quantity)


class TestAllocation:
    def test_weighted_by_price_times_quantity(self) -> None:
        order = _order("1", 100.0, [_line("mug", 30.0), _line("tea", 10.0, quantity=2)], AIChannel.chatgpt)

        allocations = allocate_order_value(order, METRIC)

        assert allocations == pytest.approx([60.0, 40.0])
        assert sum(allocations) == pytest.approx(100.0)

    def test_even_split_when_line_total_is_zero(self) -> None:
        order = _order("1", 90.0, [_line("gift", 0.0), _line("card", 0.0), _line("box", 0.0)], AIChannel.chatgpt)

        assert allocate_order_value(order, METRIC) == pytest.approx([30.0, 30.0, 30.0])

    def test_uses_selected_metric(self) -> None:
        order = _order("1", 120.0, [_line("mug", 10.0), _line("tea", 10.0)], AIChannel.chatgpt, subtotal=100.0)

        assert sum(allocate_order_value(order, GmvMetric.subtotal_price)) == pytest.approx(100.0)

    def test_no_lines(self) -> None:
        assert allocate_order_value(_order("1", 50.0, [], AIChannel.chatgpt), METRIC) == []


class TestTopProducts:
    def test_product_on_two_lines_counts_one_order(self) -> None:
        order = _order("1", 50.0, [_line("mug", 20.0), _line("mug", 30.0)], AIChannel.chatgpt)

        rows = build_top_products([order], METRIC)

        assert len(rows) == 1
        assert rows[0].ai_orders == 1
        assert rows[0].ai_gmv == pytest.approx(50.0)
        assert rows[0].ai_share == 1.0

    def test_share_and_top_channel(self) -> None:
        orders = [
            _order("1", 40.0, [_line("mug", 40.0)], AIChannel.chatgpt),
            _order("2", 60.0, [_line("mug", 60.0)], AIChannel.perplexity),
            _order("3", 10.0, [_line("mug", 10.0)]),
            _order("4", 10.0, [_line("mug", 10.0)]),
        ]

        row = build_top_products(orders, METRIC)[0]

        assert row.ai_orders == 2
        assert row.ai_gmv == pytest.approx(100.0)
        assert row.ai_share == 0.5
        assert row.top_channel is AIChannel.perplexity

    def test_non_ai_only_product_has_no_channel(self) -> None:
        rows = build_top_products([_order("1", 10.0, [_line("mug", 10.0)])], METRIC)

        assert rows[0].ai_gmv == 0.0
        assert rows[0].top_channel is None

    def test_sorted_by_ai_gmv_and_truncated(self) -> None:
        orders = [
            _order(str(i), float(i * 10), [_line(f"p{i}", float(i * 10))], AIChannel.chatgpt)
            for i in range(1, 11)
        ]

        rows = build_top_products(orders, METRIC, top_n=3)

        assert [row.id for row in rows] == ["p10", "p9", "p8"]

    def test_product_gmv_adds_up_to_ai_order_gmv(self) -> None:
        orders = [
            _order("1", 75.0, [_line("mug", 25.0), _line("tea", 5.0, quantity=3)], AIChannel.chatgpt),
            _order("2", 33.0, [_line("mug", 0.0), _line("card", 0.0)], AIChannel.gemini),
        ]

        rows = build_top_products(orders, METRIC)

        assert sum(row.ai_gmv for row in rows) == pytest.approx(108.0)
