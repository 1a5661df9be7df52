"""Attribution endpoints.

WHAT:
    POST /attribution/classify: classify one order's traffic signals without
    persisting anything. Useful for testing custom rules and for debugging a
    single order's narrative.

REFERENCES:
    - ai_attribution/services/attribution/engine.py
"""

import logging
from dataclasses import replace

from fastapi import APIRouter, Depends

from ..deps import get_detection_config
from ..schemas import ClassifyRequest, ClassifyResponse
from ..services.attribution.engine import classify
from ..services.attribution.rules import DetectionConfig
from ..services.i18n import Language
from ..utils.url_utils import extract_utm

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/attribution",
    tags=["Attribution"],
)


@router.post("/classify", response_model=ClassifyResponse)
def classify_order(
    payload: ClassifyRequest,
    config: DetectionConfig = Depends(get_detection_config),
) -> ClassifyResponse:
    """Run the attribution chain for one set of signals.

    UTM values missing from the request body are read from the referrer and
    landing page query strings, the same way ingestion does it.
    """
    if payload.language:
        config = replace(config, language=Language.parse(payload.language))

    utms = extract_utm(payload.referrer, payload.landing_page)
    result = classify(
        payload.referrer,
        payload.landing_page,
        payload.utm_source or utms["utm_source"],
        payload.utm_medium or utms["utm_medium"],
        payload.tags,
        [note.model_dump() for note in payload.note_attributes],
        config,
    )
    logger.info(
        "[ATTRIBUTION] classify -> %s (stage=%s, score=%d)",
        result.ai_source.value if result.ai_source else "none", result.stage, result.confidence_score,
    )
    return ClassifyResponse.model_validate(result)
