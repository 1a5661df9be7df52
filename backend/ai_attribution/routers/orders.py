"""Order ingestion endpoint.

WHAT:
    POST /orders/ingest accepts a batch of Shopify order nodes, classifies
    each one and upserts it.

WHY:
    One malformed order must not sink a backfill batch. Per-order failures are
    logged, reported to Sentry and counted; the rest of the batch commits.

REFERENCES:
    - ai_attribution/services/order_mapper.py
    - ai_attribution/services/order_repository.py
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import Settings, get_detection_config, get_settings
from ..schemas import IngestFailure, IngestRequest, IngestResponse
from ..services.attribution.rules import DetectionConfig
from ..services.order_mapper import OrderPayloadError, map_shopify_order
from ..services.order_repository import upsert_order
from ..telemetry import capture_exception

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
)


@router.post("/ingest", response_model=IngestResponse)
def ingest_orders(
    payload: IngestRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    config: DetectionConfig = Depends(get_detection_config),
) -> IngestResponse:
    created = 0
    updated = 0
    failures: List[IngestFailure] = []

    for node in payload.orders:
        order_id = node.get("id")
        try:
            mapped = map_shopify_order(node, config, settings.PRIMARY_CURRENCY)
            # Savepoint per order: a failed row rolls back alone
            with db.begin_nested():
                is_new = upsert_order(db, mapped)
        except (OrderPayloadError, TypeError, ValueError, SQLAlchemyError) as e:
            logger.exception("[ORDER_REPO] Failed to ingest order %s", order_id)
            capture_exception(e, extra={"order_id": order_id})
            failures.append(IngestFailure(order_id=str(order_id) if order_id is not None else None, error=str(e)))
            continue

        if is_new:
            created += 1
        else:
            updated += 1

    db.commit()
    logger.info(
        "[ORDER_REPO] Ingested batch: received=%d created=%d updated=%d failed=%d",
        len(payload.orders), created, updated, len(failures),
    )
    return IngestResponse(
        received=len(payload.orders),
        created=created,
        updated=updated,
        failed=len(failures),
        failures=failures,
    )
