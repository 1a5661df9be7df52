"""
Attribution Engine
==================

Classifies one order's traffic origin into an AI channel (or none).

WHAT:
    ``classify()`` walks an ordered chain of named stages. Each stage either
    returns a ClassificationResult (evaluation stops, even when the result
    carries no channel) or None (fall through to the next stage).

        platform_override -> domain -> utm_source -> utm_medium
            -> note_attributes -> tags -> no_signal

WHY:
    - Referrer is the strongest, least spoofable signal, so domain stages lead
    - UTM parameters are explicit but marketer-settable, so they come next
    - Notes and tags are usually written back by this app or integrations,
      so they are trusted only as a last resort
    - Stages are independent callables, so precedence is just list order and
      each stage can be tested on its own

GUARANTEES:
    - Never raises on malformed URLs or missing fields
    - Signals: at most 10 entries, each at most 255 characters
    - Detection narrative: at most 200 characters

REFERENCES:
    - ai_attribution/services/attribution/rules.py (DetectionConfig)
    - ai_attribution/services/attribution/notes.py (note scanning)
    - ai_attribution/services/order_mapper.py (called once per order at ingestion)
"""

import enum
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import SplitResult

from ai_attribution.services.attribution.channels import AIChannel
from ai_attribution.services.attribution.notes import detect_from_note_attributes
from ai_attribution.services.attribution.rules import DetectionConfig, PlatformOverride
from ai_attribution.services.i18n import t
from ai_attribution.utils.url_utils import (
    domain_matches,
    extract_hostname,
    normalize_domain,
    query_params,
    safe_url,
)

logger = logging.getLogger(__name__)

MAX_SIGNALS = 10
MAX_SIGNAL_LENGTH = 255
MAX_DETECTION_LENGTH = 200


class ConfidenceLevel(str, enum.Enum):
    high = "high"
    medium = "medium"
    low = "low"


@dataclass(frozen=True)
class ClassificationResult:
    ai_source: Optional[AIChannel]
    detection: str
    signals: Tuple[str, ...] = ()
    confidence: ConfidenceLevel = ConfidenceLevel.low
    confidence_score: int = 0
    stage: str = "no_signal"

    @property
    def is_ai(self) -> bool:
        return self.ai_source is not None


@dataclass(frozen=True)
class OrderSignals:
    """Raw attribution inputs for one order, with URLs parsed once."""
    referrer: str = ""
    landing_page: str = ""
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    tags: Tuple[str, ...] = ()
    note_attributes: Tuple[Any, ...] = ()
    referrer_url: Optional[SplitResult] = field(default=None, compare=False)
    landing_url: Optional[SplitResult] = field(default=None, compare=False)


StageResolver = Callable[[OrderSignals, DetectionConfig], Optional[ClassificationResult]]


@dataclass(frozen=True)
class AttributionStage:
    name: str
    resolve: StageResolver


def clamp_signals(signals: Iterable[str]) -> Tuple[str, ...]:
    """Bound the audit trail: first 10 signals, each cut to 255 chars."""
    return tuple(s[:MAX_SIGNAL_LENGTH] for s in list(signals)[:MAX_SIGNALS])


def _truncate(text: str, limit: int = MAX_DETECTION_LENGTH) -> str:
    return text if len(text) <= limit else text[:limit]


# =============================================================================
# STAGES
# =============================================================================


def _override_location(override: PlatformOverride, url: Optional[SplitResult]) -> Optional[str]:
    if not domain_matches(override.domain, url):
        return None
    hostname = normalize_domain(url.hostname)
    path = url.path or ""
    params = query_params(url)
    path_hit = any(marker in path for marker in override.path_markers)
    query_hit = any(
        marker in params.get(key, "").lower()
        for key, markers in override.query_markers
        for marker in markers
    )
    if not (path_hit or query_hit):
        return None
    return f"{hostname}{path}"


def detect_platform_override(signals: OrderSignals, config: DetectionConfig) -> Optional[ClassificationResult]:
    """Assistant mode on a generic search domain (e.g. bing.com/chat)."""
    for override in config.platform_overrides:
        location = (
            _override_location(override, signals.referrer_url)
            or _override_location(override, signals.landing_url)
        )
        if location is None:
            continue
        detection = t(
            config.language, "platform_override",
            label=override.label, channel=override.channel.value, location=location,
        )
        return ClassificationResult(
            ai_source=override.channel,
            detection=f"{detection} · {t(config.language, 'confidence_high')}",
            signals=clamp_signals([f"{override.label.lower()} override {location}"]),
            confidence=ConfidenceLevel.high,
            confidence_score=95,
            stage="platform_override",
        )
    return None


def detect_domain(signals: OrderSignals, config: DetectionConfig) -> Optional[ClassificationResult]:
    """Referrer host first, landing host second; a UTM disagreement is reported, not obeyed."""
    referrer_hit = next(
        (rule for rule in config.ai_domains if domain_matches(rule.domain, signals.referrer_url)),
        None,
    )
    landing_hit = None if referrer_hit else next(
        (rule for rule in config.ai_domains if domain_matches(rule.domain, signals.landing_url)),
        None,
    )
    hit = referrer_hit or landing_hit
    if hit is None:
        return None

    utm_rule = config.find_utm_rule(signals.utm_source)
    trail: List[str] = []
    if referrer_hit:
        trail.append(f"referrer matched {hit.domain}")
    if landing_hit:
        trail.append(f"landing matched {hit.domain}")
    if utm_rule:
        trail.append(f"utm_source={signals.utm_source}")

    note = ""
    score = 90
    if utm_rule and utm_rule.channel is not hit.channel:
        note = t(config.language, "utm_conflict", utm_source=signals.utm_source, channel=utm_rule.channel.value)
        score = 80
        logger.debug(
            "[ATTRIBUTION] Domain/UTM conflict: %s -> %s, utm_source=%s -> %s",
            hit.domain, hit.channel.value, signals.utm_source, utm_rule.channel.value,
        )
    elif utm_rule:
        note = t(config.language, "utm_confirmed", utm_source=signals.utm_source)

    headline = t(config.language, "domain_match", signals=" + ".join(trail), channel=hit.channel.value)
    return ClassificationResult(
        ai_source=hit.channel,
        detection=f"{headline}{note}",
        signals=clamp_signals(trail),
        confidence=ConfidenceLevel.high,
        confidence_score=score,
        stage="domain",
    )


def detect_utm_source(signals: OrderSignals, config: DetectionConfig) -> Optional[ClassificationResult]:
    rule = config.find_utm_rule(signals.utm_source)
    if rule is None:
        return None
    trail = [f"utm_source={signals.utm_source}"]
    return ClassificationResult(
        ai_source=rule.channel,
        detection=f"{' + '.join(trail)} · {t(config.language, 'confidence_medium_no_referrer')}",
        signals=clamp_signals(trail),
        confidence=ConfidenceLevel.medium,
        confidence_score=70,
        stage="utm_source",
    )


def detect_utm_medium(signals: OrderSignals, config: DetectionConfig) -> Optional[ClassificationResult]:
    """Weak signal: recorded, but never enough to assign a channel. Stops the chain."""
    medium = (signals.utm_medium or "").lower()
    if not medium:
        return None
    keyword = next((k for k in config.utm_medium_keywords if k.lower() in medium), None)
    if keyword is None:
        return None
    trail = [f"utm_medium={signals.utm_medium}"]
    return ClassificationResult(
        ai_source=None,
        detection=f"{' + '.join(trail)} · {t(config.language, 'confidence_low_medium_only', keyword=keyword)}",
        signals=clamp_signals(trail),
        confidence=ConfidenceLevel.low,
        confidence_score=30,
        stage="utm_medium",
    )


_NOTE_CONFIDENCE = {
    "explicit": (ConfidenceLevel.medium, 65),
    "platform": (ConfidenceLevel.medium, 60),
    "ambiguous": (ConfidenceLevel.medium, 50),
    "generic": (ConfidenceLevel.low, 40),
}


def detect_note_attributes(signals: OrderSignals, config: DetectionConfig) -> Optional[ClassificationResult]:
    hit = detect_from_note_attributes(signals.note_attributes, config.utm_sources)
    if hit is None:
        return None
    name = hit.name or "note"
    detection = t(
        config.language, f"note_{hit.kind}",
        name=name, value=hit.value, channel=hit.channel.value,
    )
    level, score = _NOTE_CONFIDENCE[hit.kind]
    return ClassificationResult(
        ai_source=hit.channel,
        detection=detection,
        signals=(),
        confidence=level,
        confidence_score=score,
        stage="note_attributes",
    )


_LEADING_SEPARATORS = re.compile(r"^[-:_]+")


def detect_tags(signals: OrderSignals, config: DetectionConfig) -> Optional[ClassificationResult]:
    """Tags like AI-Source-ChatGPT / AI-Source:ChatGPT / AI-Source_ChatGPT."""
    prefix = config.tag_prefix.lower()
    tag = next(
        (
            tag for tag in signals.tags
            if any(tag.lower().startswith(prefix + sep) for sep in ("-", ":", "_"))
        ),
        None,
    )
    if tag is None:
        return None

    suffix = _LEADING_SEPARATORS.sub("", tag[len(prefix) + 1:]).strip()
    if not suffix:
        return ClassificationResult(
            ai_source=AIChannel.other_ai,
            detection=t(config.language, "tag_empty_suffix", tag=tag),
            signals=("existing tag (empty suffix)",),
            confidence=ConfidenceLevel.low,
            confidence_score=30,
            stage="tags",
        )

    channel = AIChannel.from_value(suffix) or AIChannel.other_ai
    return ClassificationResult(
        ai_source=channel,
        detection=t(config.language, "tag_match", tag=tag),
        signals=("existing tag",),
        confidence=ConfidenceLevel.medium,
        confidence_score=55,
        stage="tags",
    )


def detect_no_signal(signals: OrderSignals, config: DetectionConfig) -> ClassificationResult:
    return ClassificationResult(
        ai_source=None,
        detection=t(
            config.language, "no_signal",
            referrer=extract_hostname(signals.referrer) or "—",
            utm_source=signals.utm_source or "—",
            landing=extract_hostname(signals.landing_page) or "—",
        ),
        signals=(),
        confidence=ConfidenceLevel.low,
        confidence_score=0,
        stage="no_signal",
    )


DEFAULT_STAGES: Tuple[AttributionStage, ...] = (
    AttributionStage("platform_override", detect_platform_override),
    AttributionStage("domain", detect_domain),
    AttributionStage("utm_source", detect_utm_source),
    AttributionStage("utm_medium", detect_utm_medium),
    AttributionStage("note_attributes", detect_note_attributes),
    AttributionStage("tags", detect_tags),
    AttributionStage("no_signal", detect_no_signal),
)


# =============================================================================
# ENTRY POINT
# =============================================================================


def build_order_signals(
    referrer: Optional[str],
    landing_page: Optional[str],
    utm_source: Optional[str] = None,
    utm_medium: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
    note_attributes: Optional[Iterable[Any]] = None,
) -> OrderSignals:
    return OrderSignals(
        referrer=referrer or "",
        landing_page=landing_page or "",
        utm_source=(utm_source or "").strip() or None,
        utm_medium=(utm_medium or "").strip() or None,
        tags=tuple(tag for tag in (tags or ()) if tag),
        note_attributes=tuple(note_attributes or ()),
        referrer_url=safe_url(referrer),
        landing_url=safe_url(landing_page),
    )


def classify(
    referrer: Optional[str],
    landing_page: Optional[str],
    utm_source: Optional[str] = None,
    utm_medium: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
    note_attributes: Optional[Iterable[Any]] = None,
    config: Optional[DetectionConfig] = None,
    stages: Sequence[AttributionStage] = DEFAULT_STAGES,
) -> ClassificationResult:
    """Classify one order. Pure: same inputs and config give the same result.

    The first stage returning a result wins; later stages are not evaluated.
    """
    config = config or DetectionConfig()
    signals = build_order_signals(referrer, landing_page, utm_source, utm_medium, tags, note_attributes)

    for stage in stages:
        result = stage.resolve(signals, config)
        if result is not None:
            return replace(
                result,
                detection=_truncate(result.detection),
                signals=clamp_signals(result.signals),
                stage=stage.name,
            )

    # Custom stage lists may omit the terminal stage
    return detect_no_signal(signals, config)
