"""Aggregation data model.

Order records are the classified, in-memory form of a persisted order. Result
types are plain dataclasses; routers convert them to pydantic schemas.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Literal, Optional, Tuple

from ai_attribution.services.attribution.channels import AIChannel


RangeKey = Literal["7d", "30d", "90d", "custom"]


class GmvMetric(str, enum.Enum):
    """Which order amount counts as GMV."""
    current_total_price = "current_total_price"
    subtotal_price = "subtotal_price"

    @classmethod
    def parse(cls, value: Optional[str]) -> "GmvMetric":
        """Accepts enum values and the short aliases; unknown -> gross total."""
        if isinstance(value, GmvMetric):
            return value
        normalized = (value or "").strip().lower().replace("_", "-")
        if normalized in ("subtotal", "subtotal-price"):
            return cls.subtotal_price
        return cls.current_total_price


@dataclass(frozen=True)
class OrderLine:
    id: str
    title: str = ""
    handle: str = ""
    url: str = ""
    price: float = 0.0
    quantity: int = 1
    currency: str = ""


@dataclass
class OrderRecord:
    id: str
    name: str
    created_at: datetime
    total_price: float
    currency: str
    subtotal_price: Optional[float] = None
    refund_total: Optional[float] = None
    ai_source: Optional[AIChannel] = None
    referrer: str = ""
    landing_page: str = ""
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    source_name: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    customer_id: Optional[str] = None
    is_new_customer: bool = False
    products: List[OrderLine] = field(default_factory=list)
    detection: str = ""
    signals: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DateRange:
    key: RangeKey
    label: str
    start: datetime
    end: datetime
    days: int
    from_param: Optional[str] = None
    to_param: Optional[str] = None


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass
class OverviewMetrics:
    total_gmv: float
    net_gmv: float
    ai_gmv: float
    net_ai_gmv: float
    ai_share: float
    ai_orders: int
    ai_order_share: float
    total_orders: int
    ai_new_customers: int
    ai_new_customer_rate: float
    total_new_customers: int
    referrer_coverage: float
    utm_coverage: float
    any_signal_coverage: float
    currency: str


@dataclass
class ChannelStat:
    channel: AIChannel
    gmv: float
    orders: int
    new_customers: int
    color: str


@dataclass
class ComparisonRow:
    channel: str  # "overall" or an AIChannel value
    aov: float
    new_customer_rate: float
    repeat_rate: float
    sample_size: int
    is_low_sample: bool


@dataclass
class ChannelTrendValue:
    gmv: float = 0.0
    orders: int = 0


@dataclass
class TrendPoint:
    label: str
    ai_gmv: float
    ai_orders: int
    overall_gmv: float
    overall_orders: int
    by_channel: Dict[AIChannel, ChannelTrendValue]
    starts_at: datetime


@dataclass
class ProductRow:
    id: str
    title: str
    handle: str
    url: str
    ai_orders: int
    ai_gmv: float
    ai_share: float
    top_channel: Optional[AIChannel]


@dataclass
class TopCustomerRow:
    customer_id: str
    ltv: float
    orders: int
    ai: bool
    first_ai_acquired: bool
    repeat_count: int
    ai_orders: int = 0
    first_order_at: Optional[datetime] = None


@dataclass
class RawOrderRow:
    id: str
    name: str
    created_at: datetime
    ai_source: Optional[AIChannel]
    total_price: float
    currency: str
    referrer: str
    landing_page: str
    utm_source: Optional[str]
    utm_medium: Optional[str]
    customer_id: Optional[str]
    source_name: Optional[str]
    is_new_customer: bool
    detection: str
    signals: Tuple[str, ...]


@dataclass
class DashboardExports:
    orders_csv: str
    products_csv: str
    customers_csv: str


@dataclass
class DashboardResult:
    range: DateRange
    metric: GmvMetric
    currency: str
    overview: OverviewMetrics
    channels: List[ChannelStat]
    comparison: List[ComparisonRow]
    trend: List[TrendPoint]
    top_products: List[ProductRow]
    top_customers: List[TopCustomerRow]
    recent_orders: List[RawOrderRow]
    sample_note: Optional[str]
    exports: DashboardExports
    clamped: bool = False
