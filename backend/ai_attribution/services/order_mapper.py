"""
Shopify Order Mapper
====================

WHAT:
    Converts a Shopify Admin GraphQL order node into a classified OrderRecord:
    parses money sets, pulls referrer / landing page / UTMs, runs the
    attribution engine once and resolves line-item product ids.

WHY:
    Classification happens exactly once, at ingestion. The dashboard only
    reads the persisted result, so rule changes need a re-ingest.

PAYLOAD (camelCase, as returned by the Admin API):
    {
      "id": "gid://shopify/Order/1", "name": "#1001", "createdAt": "...",
      "currentTotalPriceSet": {"shopMoney": {"amount": "10.00", "currencyCode": "USD"}},
      "currentSubtotalPriceSet": {...}, "totalRefundedSet": {...},
      "customerJourneySummary": {"firstVisit": {"referrerUrl": "..."}},
      "landingPageUrl": "...", "sourceName": "web", "tags": [...],
      "noteAttributes": [{"name": "...", "value": "..."}],
      "customer": {"id": "...", "numberOfOrders": 1},
      "lineItems": {"edges": [{"node": {...}}]}
    }

REFERENCES:
    - ai_attribution/services/attribution/engine.py (classify)
    - ai_attribution/services/order_repository.py (persists the result)
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from ai_attribution.services.aggregation.models import OrderLine, OrderRecord
from ai_attribution.services.attribution.engine import ClassificationResult, classify
from ai_attribution.services.attribution.notes import coerce_note_attributes
from ai_attribution.services.attribution.rules import DetectionConfig
from ai_attribution.utils.url_utils import extract_utm

logger = logging.getLogger(__name__)

MAX_DETECTION_LENGTH = 200


class OrderPayloadError(ValueError):
    """Raised when a payload lacks the fields needed to build an order."""


@dataclass
class MappedOrder:
    """An OrderRecord plus the parts of the payload the record doesn't carry."""
    record: OrderRecord
    classification: ClassificationResult
    note_attributes: List[Dict[str, str]]


def _as_dict(value: Any, field: str) -> Dict[str, Any]:
    """Nested object or {} when absent; any other shape is a payload error."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise OrderPayloadError(f"Expected an object for {field}, got {type(value).__name__}")
    return value


def _as_list(value: Any, field: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise OrderPayloadError(f"Expected a list for {field}, got {type(value).__name__}")
    return value


def _as_text(value: Any, field: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise OrderPayloadError(f"Expected a string for {field}, got {type(value).__name__}")
    return value


def _shop_money(price_set: Any, field: str) -> Dict[str, Any]:
    return _as_dict(_as_dict(price_set, field).get("shopMoney"), f"{field}.shopMoney")


def _get_amount(price_set: Any, field: str = "priceSet") -> Optional[float]:
    amount = _shop_money(price_set, field).get("amount")
    if amount in (None, ""):
        return None
    try:
        return float(Decimal(str(amount)))
    except InvalidOperation:
        raise OrderPayloadError(f"Invalid money amount: {amount!r}")


def _get_currency(price_set: Any, field: str = "priceSet") -> Optional[str]:
    return _as_text(_shop_money(price_set, field).get("currencyCode"), f"{field}.currencyCode") or None


def _parse_created_at(value: Any) -> datetime:
    if not value:
        raise OrderPayloadError("Order payload is missing createdAt")
    try:
        return datetime.fromisoformat(_as_text(value, "createdAt").replace("Z", "+00:00"))
    except ValueError:
        raise OrderPayloadError(f"Invalid createdAt: {value!r}")


def _line_product(line_node: Dict[str, Any]) -> Dict[str, Any]:
    variant = _as_dict(line_node.get("variant"), "lineItem.variant")
    return (
        _as_dict(variant.get("product"), "lineItem.variant.product")
        or _as_dict(line_node.get("product"), "lineItem.product")
    )


def _product_id(line_node: Dict[str, Any]) -> str:
    """Product GID, else a GID built from legacyResourceId, else the line item id.

    Line-item fallback ids are prefixed so custom / deleted products never
    collide with real product ids.
    """
    product = _line_product(line_node)
    if product.get("id"):
        return str(product["id"])
    if product.get("legacyResourceId"):
        return f"gid://shopify/Product/{product['legacyResourceId']}"
    return f"lineitem:{line_node.get('id')}"


def _quantity(value: Any) -> int:
    if value in (None, ""):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        raise OrderPayloadError(f"Invalid line item quantity: {value!r}")


def _map_line_items(node: Dict[str, Any], currency: str) -> List[OrderLine]:
    lines: List[OrderLine] = []
    edges = _as_list(_as_dict(node.get("lineItems"), "lineItems").get("edges"), "lineItems.edges")
    for edge in edges:
        if not isinstance(edge, dict):
            raise OrderPayloadError(f"Expected an object for lineItems.edges[], got {type(edge).__name__}")
        line_node = _as_dict(edge.get("node"), "lineItems.edges[].node")
        product = _line_product(line_node)
        price_set = line_node.get("originalUnitPriceSet")
        lines.append(OrderLine(
            id=_product_id(line_node),
            title=product.get("title") or line_node.get("name") or line_node.get("title") or "",
            handle=product.get("handle") or "",
            url=product.get("onlineStoreUrl") or "",
            price=_get_amount(price_set, "originalUnitPriceSet") or 0.0,
            quantity=_quantity(line_node.get("quantity")),
            currency=_get_currency(price_set, "originalUnitPriceSet") or currency,
        ))
    return lines


def _is_new_customer(customer: Dict[str, Any]) -> bool:
    """Guest checkouts and unknown order counts count as new."""
    if not customer:
        return True
    number_of_orders = customer.get("numberOfOrders")
    if isinstance(number_of_orders, str) and number_of_orders.isdigit():
        number_of_orders = int(number_of_orders)
    if not isinstance(number_of_orders, int) or isinstance(number_of_orders, bool):
        return True
    return number_of_orders <= 1


def map_shopify_order(
    node: Dict[str, Any],
    config: DetectionConfig,
    primary_currency: Optional[str] = None,
) -> MappedOrder:
    """Build a classified OrderRecord from one Shopify order node.

    Raises:
        OrderPayloadError: missing id / createdAt, unparseable amounts, or a
            nested field with the wrong shape
    """
    node = _as_dict(node, "order")
    order_id = _as_text(node.get("id"), "id")
    if not order_id:
        raise OrderPayloadError("Order payload is missing id")

    total_set = node.get("currentTotalPriceSet") or node.get("totalPriceSet")
    currency = _get_currency(total_set, "currentTotalPriceSet") or primary_currency or "USD"
    total_price = _get_amount(total_set, "currentTotalPriceSet") or 0.0
    subtotal_price = _get_amount(
        node.get("currentSubtotalPriceSet") or node.get("subtotalPriceSet"), "currentSubtotalPriceSet",
    )
    refund_total = _get_amount(node.get("totalRefundedSet"), "totalRefundedSet") or 0.0

    journey = _as_dict(node.get("customerJourneySummary"), "customerJourneySummary")
    first_visit = _as_dict(journey.get("firstVisit"), "customerJourneySummary.firstVisit")
    referrer = _as_text(first_visit.get("referrerUrl"), "referrerUrl")
    landing_page = _as_text(node.get("landingPageUrl"), "landingPageUrl")
    utms = extract_utm(referrer, landing_page)
    tags = [tag for tag in _as_list(node.get("tags"), "tags") if isinstance(tag, str)]
    note_attributes = [
        {"name": note.name, "value": note.value}
        for note in coerce_note_attributes(_as_list(node.get("noteAttributes"), "noteAttributes"))
    ]

    result = classify(
        referrer,
        landing_page,
        utms["utm_source"],
        utms["utm_medium"],
        tags,
        note_attributes,
        config,
    )

    customer = _as_dict(node.get("customer"), "customer")
    record = OrderRecord(
        id=order_id,
        name=_as_text(node.get("name"), "name") or order_id,
        created_at=_parse_created_at(node.get("createdAt")),
        total_price=total_price,
        currency=currency,
        subtotal_price=subtotal_price,
        refund_total=refund_total,
        ai_source=result.ai_source,
        referrer=referrer,
        landing_page=landing_page,
        utm_source=utms["utm_source"],
        utm_medium=utms["utm_medium"],
        source_name=_as_text(node.get("sourceName"), "sourceName") or None,
        tags=tags,
        customer_id=_as_text(customer.get("id"), "customer.id") or None,
        is_new_customer=_is_new_customer(customer),
        products=_map_line_items(node, currency),
        detection=result.detection[:MAX_DETECTION_LENGTH],
        signals=list(result.signals),
    )

    logger.debug(
        "[ORDER_MAPPER] %s -> %s (stage=%s, score=%d)",
        record.id, result.ai_source.value if result.ai_source else "none", result.stage, result.confidence_score,
    )
    return MappedOrder(record=record, classification=result, note_attributes=note_attributes)
