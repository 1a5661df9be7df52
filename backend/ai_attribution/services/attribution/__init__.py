"""
Attribution package: per-order AI channel classification.

Modules:
- channels.py: Closed AIChannel enumeration, display colors
- rules.py: Domain / UTM rule tables and DetectionConfig
- notes.py: Word-bounded note-attribute scanning
- engine.py: Ordered stage chain, classify() entry point
"""

from ai_attribution.services.attribution.channels import AI_CHANNELS, AIChannel
from ai_attribution.services.attribution.engine import (
    DEFAULT_STAGES,
    AttributionStage,
    ClassificationResult,
    ConfidenceLevel,
    classify,
)
from ai_attribution.services.attribution.rules import DetectionConfig, build_detection_config

__all__ = [
    "AI_CHANNELS",
    "AIChannel",
    "AttributionStage",
    "ClassificationResult",
    "ConfidenceLevel",
    "DEFAULT_STAGES",
    "DetectionConfig",
    "build_detection_config",
    "classify",
]
