"""Pydantic schemas for request/response payloads."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .services.aggregation.models import GmvMetric
from .services.attribution.channels import AIChannel
from .services.attribution.engine import ConfidenceLevel


# Attribution ----------------------------------------------------------------

class NoteAttributeIn(BaseModel):
    name: str = ""
    value: str = ""


class ClassifyRequest(BaseModel):
    """Raw traffic signals for a single order."""

    referrer: Optional[str] = Field(default=None, description="Referrer URL", examples=["https://chatgpt.com/"])
    landing_page: Optional[str] = Field(
        default=None,
        description="Landing page URL (UTMs are read from here when not given)",
        examples=["https://shop.example.com/products/mug?utm_source=chatgpt"],
    )
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    note_attributes: List[NoteAttributeIn] = Field(default_factory=list)
    language: Optional[str] = Field(default=None, description="English or 中文; defaults to settings")


class ClassifyResponse(BaseModel):
    ai_source: Optional[AIChannel]
    detection: str
    signals: List[str]
    confidence: ConfidenceLevel
    confidence_score: int
    stage: str

    model_config = {"from_attributes": True}


class IngestRequest(BaseModel):
    """Shopify Admin GraphQL order nodes."""

    orders: List[Dict[str, Any]] = Field(description="Order nodes as returned by the Admin API")


class IngestFailure(BaseModel):
    order_id: Optional[str]
    error: str


class IngestResponse(BaseModel):
    received: int
    created: int
    updated: int
    failed: int
    failures: List[IngestFailure] = Field(default_factory=list)


# Dashboard ------------------------------------------------------------------

class DateRangeOut(BaseModel):
    key: str
    label: str
    start: datetime
    end: datetime
    days: int
    from_param: Optional[str] = None
    to_param: Optional[str] = None

    model_config = {"from_attributes": True}


class OverviewOut(BaseModel):
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

    model_config = {"from_attributes": True}


class ChannelStatOut(BaseModel):
    channel: AIChannel
    gmv: float
    orders: int
    new_customers: int
    color: str

    model_config = {"from_attributes": True}


class ComparisonRowOut(BaseModel):
    channel: str
    aov: float
    new_customer_rate: float
    repeat_rate: float
    sample_size: int
    is_low_sample: bool

    model_config = {"from_attributes": True}


class ChannelTrendValueOut(BaseModel):
    gmv: float
    orders: int

    model_config = {"from_attributes": True}


class TrendPointOut(BaseModel):
    label: str
    ai_gmv: float
    ai_orders: int
    overall_gmv: float
    overall_orders: int
    by_channel: Dict[AIChannel, ChannelTrendValueOut]
    starts_at: datetime

    model_config = {"from_attributes": True}


class ProductRowOut(BaseModel):
    id: str
    title: str
    handle: str
    url: str
    ai_orders: int
    ai_gmv: float
    ai_share: float
    top_channel: Optional[AIChannel]

    model_config = {"from_attributes": True}


class TopCustomerOut(BaseModel):
    customer_id: str
    ltv: float
    orders: int
    ai: bool
    first_ai_acquired: bool
    repeat_count: int

    model_config = {"from_attributes": True}


class RecentOrderOut(BaseModel):
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
    signals: List[str]

    model_config = {"from_attributes": True}


class DashboardOut(BaseModel):
    """Dashboard payload. CSV exports are served by /dashboard/export/{table}."""

    range: DateRangeOut
    metric: GmvMetric
    currency: str
    overview: OverviewOut
    channels: List[ChannelStatOut]
    comparison: List[ComparisonRowOut]
    trend: List[TrendPointOut]
    top_products: List[ProductRowOut]
    top_customers: List[TopCustomerOut]
    recent_orders: List[RecentOrderOut]
    sample_note: Optional[str]
    clamped: bool

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = Field(description="Service status", examples=["ok"])
