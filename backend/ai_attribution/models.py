"""SQLAlchemy ORM models.

Orders are keyed by their Shopify GID string so re-ingesting the same order
is an upsert, not a duplicate. Attribution output (channel, narrative,
signals) is persisted with the order at ingestion time.
"""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import declarative_base, relationship


# Single Base used by the entire application
Base = declarative_base()


class Customer(Base):
    """Customer acquisition facts.

    WHAT: One row per Shopify customer, with whether their first-ever order
          was AI-attributed
    WHY: The dashboard's "first AI acquired" needs cross-window history; the
         in-window approximation is only a fallback
    """
    __tablename__ = "customers"

    id = Column(String, primary_key=True)  # gid://shopify/Customer/xxx
    first_order_at = Column(DateTime(timezone=True), nullable=True)
    first_order_id = Column(String, nullable=True)
    acquired_via_ai = Column(Boolean, nullable=False, default=False)
    acquired_channel = Column(String, nullable=True)
    order_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    orders = relationship("Order", back_populates="customer")


class Order(Base):
    """Classified order.

    WHAT: Shopify order totals, traffic signals and the attribution result
    WHY: Aggregation reads these rows back as OrderRecord; signals are kept so
         classification can be audited or re-run
    """
    __tablename__ = "orders"

    id = Column(String, primary_key=True)  # gid://shopify/Order/xxx
    name = Column(String, nullable=False)  # Display name (e.g., "#1001")
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    # Totals (order currency)
    currency = Column(String(3), nullable=False, default="USD")
    total_price = Column(Numeric(18, 4), nullable=False)
    subtotal_price = Column(Numeric(18, 4), nullable=True)
    refund_total = Column(Numeric(18, 4), nullable=True)

    # Traffic signals
    referrer = Column(Text, nullable=True)
    landing_page = Column(Text, nullable=True)
    utm_source = Column(String, nullable=True)
    utm_medium = Column(String, nullable=True)
    source_name = Column(String, nullable=True)  # e.g., "web", "pos", "shopify_draft_order"
    tags = Column(JSON, nullable=True)
    note_attributes = Column(JSON, nullable=True)

    # Attribution result
    ai_source = Column(String, nullable=True, index=True)  # AIChannel value or NULL
    detection = Column(String(255), nullable=True)
    signals = Column(JSON, nullable=True)
    confidence = Column(String, nullable=True)
    confidence_score = Column(Integer, nullable=True)

    customer_id = Column(String, ForeignKey("customers.id"), nullable=True, index=True)
    is_new_customer = Column(Boolean, nullable=False, default=False)

    ingested_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("Customer", back_populates="orders")
    line_items = relationship(
        "OrderLineItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLineItem.position",
    )


class OrderLineItem(Base):
    """Line items, used only for product-level GMV allocation."""
    __tablename__ = "order_line_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    product_id = Column(String, nullable=False)
    title = Column(String, nullable=True)
    handle = Column(String, nullable=True)
    url = Column(Text, nullable=True)
    price = Column(Numeric(18, 4), nullable=False, default=0)
    quantity = Column(Integer, nullable=False, default=1)
    currency = Column(String(3), nullable=True)

    order = relationship("Order", back_populates="line_items")
