"""
Dashboard Assembly Tests (Unit)
===============================

WHAT: Date range resolution, pre-aggregation filters and the assembled
      DashboardResult.
WHY: These filters decide which orders count at all (POS, foreign currency,
     out-of-range). A wrong filter silently skews every number on the page.

REFERENCES:
- backend/ai_attribution/services/dashboard_service.py
"""

from datetime import datetime, timedelta, timezone

import pytest

from ai_attribution.services.aggregation.models import DateRange, GmvMetric, OrderLine, OrderRecord
from ai_attribution.services.attribution.channels import AIChannel
from ai_attribution.services.attribution.engine import classify
from ai_attribution.services.dashboard_service import (
    build_dashboard,
    build_sample_note,
    exclude_source_channels,
    filter_by_date_range,
    partition_by_currency,
    resolve_date_range,
)
from ai_attribution.services.aggregation.builders import build_overview

NOW = datetime(2024, 11, 10, 12, 0, tzinfo=timezone.utc)


def _order(order_id: str, total: float, **kwargs) -> OrderRecord:
    kwargs.setdefault("created_at", datetime(2024, 11, 5, 12, 0, tzinfo=timezone.utc))
    kwargs.setdefault("currency", "USD")
    return OrderRecord(id=order_id, name=f"#{order_id}", total_price=total, **kwargs)


class TestResolveDateRange:
    def test_preset_covers_whole_local_days(self) -> None:
        date_range = resolve_date_range("7d", now=NOW)

        assert date_range.key == "7d"
        assert date_range.days == 7
        assert date_range.label == "Last 7 days"
        assert date_range.start == datetime(2024, 11, 4, tzinfo=timezone.utc)
        assert date_range.end == datetime(2024, 11, 10, 23, 59, 59, 999999, tzinfo=timezone.utc)
        assert (date_range.from_param, date_range.to_param) == ("2024-11-04", "2024-11-10")

    def test_unknown_key_falls_back_to_30d(self) -> None:
        date_range = resolve_date_range("weird", now=NOW)

        assert date_range.key == "30d"
        assert date_range.days == 30

    def test_custom_range_swaps_reversed_bounds(self) -> None:
        date_range = resolve_date_range("custom", from_param="2024-11-10", to_param="2024-11-01")

        assert date_range.key == "custom"
        assert date_range.from_param == "2024-11-01"
        assert date_range.to_param == "2024-11-10"
        assert date_range.days == 10
        assert date_range.label == "2024-11-01 → 2024-11-10"

    def test_custom_range_without_both_bounds_uses_default(self) -> None:
        date_range = resolve_date_range("custom", now=NOW, from_param="2024-11-01")

        assert date_range.key == "30d"

    def test_custom_range_in_display_timezone(self) -> None:
        date_range = resolve_date_range(
            "custom", from_param="2024-11-01", to_param="2024-11-01", timezone_name="Asia/Shanghai",
        )

        assert date_range.start == datetime(2024, 10, 31, 16, 0, tzinfo=timezone.utc)
        assert date_range.end == datetime(2024, 11, 1, 15, 59, 59, 999999, tzinfo=timezone.utc)

    def test_chinese_preset_label(self) -> None:
        assert resolve_date_range("90d", now=NOW, language="中文").label == "最近 90 天"


class TestFilters:
    def test_date_bounds_are_inclusive(self) -> None:
        date_range = DateRange(
            key="custom",
            label="x",
            start=datetime(2024, 11, 1, tzinfo=timezone.utc),
            end=datetime(2024, 11, 2, tzinfo=timezone.utc),
            days=2,
        )
        orders = [
            _order("start", 1, created_at=date_range.start),
            _order("end", 1, created_at=date_range.end),
            _order("after", 1, created_at=date_range.end + timedelta(microseconds=1)),
        ]

        assert [order.id for order in filter_by_date_range(orders, date_range)] == ["start", "end"]

    def test_pos_and_draft_are_excluded_case_insensitively(self) -> None:
        orders = [_order("1", 1, source_name="POS"), _order("2", 1, source_name="draft"), _order("3", 1, source_name="web"), _order("4", 1)]

        kept, excluded = exclude_source_channels(orders)

        assert [order.id for order in kept] == ["3", "4"]
        assert excluded == 2

    def test_primary_currency_defaults_to_first_order(self) -> None:
        orders = [_order("1", 1, currency="EUR"), _order("2", 1, currency="USD"), _order("3", 1, currency="EUR")]

        partition = partition_by_currency(orders)

        assert partition.currency == "EUR"
        assert [order.id for order in partition.primary] == ["1", "3"]
        assert partition.foreign_currencies == ["USD"]

    def test_configured_primary_currency_wins(self) -> None:
        partition = partition_by_currency([_order("1", 1, currency="EUR")], primary_currency="usd")

        assert partition.currency == "USD"
        assert partition.primary == []

    def test_currency_codes_compare_case_insensitively(self) -> None:
        orders = [_order("1", 1, currency="usd"), _order("2", 1, currency=" USD ")]

        partition = partition_by_currency(orders, primary_currency="usd")

        assert partition.currency == "USD"
        assert [order.id for order in partition.primary] == ["1", "2"]
        assert partition.foreign == []

    def test_empty_orders_fall_back_to_usd(self) -> None:
        assert partition_by_currency([]).currency == "USD"


def test_sample_note_lists_every_caveat() -> None:
    overview = build_overview([], GmvMetric.current_total_price, "USD")

    note = build_sample_note(overview, foreign_count=2, excluded_by_source=1, clamped=True)

    assert "(<5)" in note
    assert "Excluded 2 orders not in USD" in note
    assert "Excluded 1 POS/draft orders" in note
    assert "truncated sample" in note


def test_sample_note_is_none_when_nothing_to_report() -> None:
    orders = [_order(str(i), 10.0, ai_source=AIChannel.chatgpt) for i in range(5)]
    overview = build_overview(orders, GmvMetric.current_total_price, "USD")

    assert build_sample_note(overview, 0, 0) is None


class TestBuildDashboard:
    @pytest.fixture
    def classified_orders(self):
        conflict = classify(
            "https://chatgpt.com/",
            "https://shop.example.com/?utm_source=perplexity",
            utm_source="perplexity",
        )
        common = dict(
            ai_source=conflict.ai_source,
            referrer="https://chatgpt.com/",
            landing_page="https://shop.example.com/?utm_source=perplexity",
            utm_source="perplexity",
            detection=conflict.detection,
            signals=list(conflict.signals),
        )
        return [
            _order(
                "1", 100.0, customer_id="c1", is_new_customer=True,
                created_at=datetime(2024, 11, 5, 9, tzinfo=timezone.utc),
                products=[OrderLine(id="mug", title="Mug", price=100.0)],
                **common,
            ),
            _order(
                "2", 50.0, customer_id="c2",
                created_at=datetime(2024, 11, 6, 9, tzinfo=timezone.utc),
                **common,
            ),
            _order("pos", 500.0, source_name="pos"),
            _order("eur", 80.0, currency="EUR", created_at=datetime(2024, 11, 7, tzinfo=timezone.utc)),
            _order("old", 70.0, created_at=datetime(2024, 9, 1, tzinfo=timezone.utc)),
        ]

    def test_end_to_end_numbers(self, classified_orders) -> None:
        date_range = resolve_date_range("custom", from_param="2024-11-01", to_param="2024-11-07")

        result = build_dashboard(classified_orders, date_range, primary_currency="USD")

        assert result.currency == "USD"
        assert result.overview.ai_gmv == 150.0
        assert result.overview.ai_orders == 2
        assert result.overview.total_orders == 2

        chatgpt = next(row for row in result.comparison if row.channel == "ChatGPT")
        assert chatgpt.aov == 75.0
        assert chatgpt.is_low_sample is True

        channels = {row.channel: row for row in result.channels}
        assert channels[AIChannel.chatgpt].gmv == 150.0
        assert sum(row.gmv for row in result.channels) == result.overview.ai_gmv

        assert [order.id for order in result.recent_orders] == ["2", "1"]
        assert "ChatGPT" in result.recent_orders[0].detection
        assert "perplexity" in result.recent_orders[0].detection

        assert "Excluded 1 orders not in USD" in result.sample_note
        assert "Excluded 1 POS/draft orders" in result.sample_note
        assert result.top_products[0].id == "mug"
        assert result.top_products[0].ai_gmv == 100.0
        assert [row.customer_id for row in result.top_customers] == ["c1", "c2"]
        assert result.top_customers[0].first_ai_acquired is True

    def test_trend_uses_day_buckets_for_short_custom_range(self, classified_orders) -> None:
        date_range = resolve_date_range("custom", from_param="2024-11-01", to_param="2024-11-07")

        result = build_dashboard(classified_orders, date_range, primary_currency="USD")

        assert [point.label for point in result.trend] == ["2024-11-05", "2024-11-06"]

    def test_exports_are_built(self, classified_orders) -> None:
        date_range = resolve_date_range("custom", from_param="2024-11-01", to_param="2024-11-07")

        result = build_dashboard(classified_orders, date_range, metric="subtotal", primary_currency="USD")

        assert result.metric is GmvMetric.subtotal_price
        lines = result.exports.orders_csv.splitlines()
        assert lines[0].startswith("# ")
        assert "subtotal_price" in lines[0]
        assert lines[1].startswith("order_name,placed_at,ai_channel")
        assert len(lines) == 4

    def test_empty_input(self) -> None:
        date_range = resolve_date_range("7d", now=NOW)

        result = build_dashboard([], date_range)

        assert result.overview.total_gmv == 0.0
        assert result.trend == []
        assert result.top_products == []
        assert result.currency == "USD"
        assert len(result.channels) == 5
