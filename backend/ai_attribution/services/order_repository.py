"""Order persistence.

WHAT:
    - upsert_order: store one classified order, its line items, and update
      the customer's acquisition facts
    - load_orders: read a date window back as OrderRecord, capped at a limit
    - load_acquired_map: customer id -> first order was AI-attributed

WHY:
    The dashboard must never load an unbounded window; when the cap is hit the
    result is flagged "clamped" and the caveat note says so.

Customer acquisition follows the earliest known order, so backfilling older
orders after newer ones still yields the right first-order channel.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from ai_attribution.models import Customer, Order, OrderLineItem
from ai_attribution.services.aggregation.models import OrderLine, OrderRecord
from ai_attribution.services.attribution.channels import AIChannel
from ai_attribution.services.order_mapper import MappedOrder
from ai_attribution.telemetry import capture_message
from ai_attribution.utils.time_buckets import ensure_utc

logger = logging.getLogger(__name__)


def _to_float(value) -> Optional[float]:
    return None if value is None else float(value)


def _update_customer(db: Session, record: OrderRecord, is_new_order: bool) -> None:
    customer = db.get(Customer, record.customer_id)
    created_at = ensure_utc(record.created_at)
    if customer is None:
        customer = Customer(id=record.customer_id, order_count=0, acquired_via_ai=False)
        db.add(customer)

    if is_new_order:
        customer.order_count = (customer.order_count or 0) + 1

    first_order_at = ensure_utc(customer.first_order_at) if customer.first_order_at else None
    if first_order_at is None or created_at < first_order_at or customer.first_order_id == record.id:
        customer.first_order_at = created_at
        customer.first_order_id = record.id
        customer.acquired_via_ai = record.ai_source is not None and record.is_new_customer
        customer.acquired_channel = record.ai_source.value if customer.acquired_via_ai else None


def upsert_order(db: Session, mapped: MappedOrder) -> bool:
    """Insert or replace one order. Returns True when the order is new.

    Flushes but does not commit; the caller owns the transaction.
    """
    record = mapped.record
    result = mapped.classification
    with db.no_autoflush:
        order = db.get(Order, record.id)
    is_new = order is None
    if is_new:
        order = Order(id=record.id)
        db.add(order)

    order.name = record.name
    order.created_at = ensure_utc(record.created_at)
    order.currency = record.currency
    order.total_price = record.total_price
    order.subtotal_price = record.subtotal_price
    order.refund_total = record.refund_total
    order.referrer = record.referrer
    order.landing_page = record.landing_page
    order.utm_source = record.utm_source
    order.utm_medium = record.utm_medium
    order.source_name = record.source_name
    order.tags = list(record.tags)
    order.note_attributes = mapped.note_attributes
    order.ai_source = record.ai_source.value if record.ai_source else None
    order.detection = record.detection
    order.signals = list(record.signals)
    order.confidence = result.confidence.value
    order.confidence_score = result.confidence_score
    order.customer_id = record.customer_id
    order.is_new_customer = record.is_new_customer
    order.line_items = [
        OrderLineItem(
            position=index,
            product_id=line.id,
            title=line.title,
            handle=line.handle,
            url=line.url,
            price=line.price,
            quantity=line.quantity,
            currency=line.currency,
        )
        for index, line in enumerate(record.products)
    ]

    if record.customer_id:
        with db.no_autoflush:
            _update_customer(db, record, is_new)
    # Flushed per order so the next order for the same customer finds its row
    db.flush()

    logger.debug("[ORDER_REPO] %s order %s", "Inserted" if is_new else "Updated", record.id)
    return is_new


def to_order_record(order: Order) -> OrderRecord:
    return OrderRecord(
        id=order.id,
        name=order.name,
        created_at=ensure_utc(order.created_at),
        total_price=float(order.total_price or 0),
        currency=order.currency,
        subtotal_price=_to_float(order.subtotal_price),
        refund_total=_to_float(order.refund_total),
        ai_source=AIChannel.from_value(order.ai_source),
        referrer=order.referrer or "",
        landing_page=order.landing_page or "",
        utm_source=order.utm_source,
        utm_medium=order.utm_medium,
        source_name=order.source_name,
        tags=list(order.tags or []),
        customer_id=order.customer_id,
        is_new_customer=bool(order.is_new_customer),
        products=[
            OrderLine(
                id=line.product_id,
                title=line.title or "",
                handle=line.handle or "",
                url=line.url or "",
                price=float(line.price or 0),
                quantity=line.quantity or 0,
                currency=line.currency or order.currency,
            )
            for line in order.line_items
        ],
        detection=order.detection or "",
        signals=list(order.signals or []),
    )


def load_orders(db: Session, start: datetime, end: datetime, limit: int) -> Tuple[List[OrderRecord], bool]:
    """Newest orders in [start, end], at most ``limit``. Returns (records, clamped)."""
    rows = (
        db.query(Order)
        .options(selectinload(Order.line_items))
        .filter(Order.created_at >= ensure_utc(start), Order.created_at <= ensure_utc(end))
        .order_by(Order.created_at.desc())
        .limit(limit + 1)
        .all()
    )
    clamped = len(rows) > limit
    if clamped:
        rows = rows[:limit]
        logger.warning("[ORDER_REPO] Dashboard load clamped at %d orders (%s .. %s)", limit, start, end)
        capture_message(
            "Dashboard order load clamped",
            level="warning",
            extra={"limit": limit, "start": start.isoformat(), "end": end.isoformat()},
        )
    return [to_order_record(row) for row in rows], clamped


def load_acquired_map(db: Session, customer_ids: Iterable[str]) -> Dict[str, bool]:
    ids = sorted({cid for cid in customer_ids if cid})
    if not ids:
        return {}
    rows = db.query(Customer.id, Customer.acquired_via_ai).filter(Customer.id.in_(ids)).all()
    return {customer_id: bool(acquired) for customer_id, acquired in rows}
