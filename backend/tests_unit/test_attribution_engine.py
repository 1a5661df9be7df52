"""
Attribution Engine Tests (Unit)
===============================

WHAT: Stage precedence, confidence scores and narratives of ``classify``.
WHY: Referrer must outrank marketer-set UTMs, weak signals must never assign a
     channel, and the audit trail must stay bounded.

REFERENCES:
- backend/ai_attribution/services/attribution/engine.py
- backend/ai_attribution/services/attribution/rules.py
"""

from ai_attribution.services.attribution.channels import AIChannel
from ai_attribution.services.attribution.engine import (
    AttributionStage,
    ClassificationResult,
    ConfidenceLevel,
    MAX_DETECTION_LENGTH,
    MAX_SIGNAL_LENGTH,
    MAX_SIGNALS,
    classify,
)
from ai_attribution.services.attribution.rules import DetectionConfig, build_detection_config
from ai_attribution.services.i18n import Language


class TestDomainStage:
    def test_referrer_domain_beats_conflicting_utm(self) -> None:
        result = classify(
            "https://chatgpt.com/",
            "https://shop.example.com/?utm_source=perplexity",
            utm_source="perplexity",
        )

        assert result.ai_source is AIChannel.chatgpt
        assert result.stage == "domain"
        assert result.confidence is ConfidenceLevel.high
        assert result.confidence_score == 80
        assert "ChatGPT" in result.detection
        assert "conflict: utm_source=perplexity → Perplexity" in result.detection
        assert result.signals == ("referrer matched chatgpt.com", "utm_source=perplexity")

    def test_matching_utm_is_reported_as_confirmed(self) -> None:
        result = classify("https://www.perplexity.ai/search?q=mug", None, utm_source="perplexity")

        assert result.ai_source is AIChannel.perplexity
        assert result.confidence_score == 90
        assert "utm_source=perplexity confirmed" in result.detection

    def test_landing_domain_used_when_referrer_missing(self) -> None:
        result = classify(None, "https://gemini.google.com/app")

        assert result.ai_source is AIChannel.gemini
        assert result.signals == ("landing matched gemini.google.com",)

    def test_protocol_relative_referrer_matches(self) -> None:
        result = classify("//chatgpt.com/x", None)

        assert result.ai_source is AIChannel.chatgpt
        assert result.signals == ("referrer matched chatgpt.com",)

    def test_lookalike_domain_does_not_match(self) -> None:
        result = classify("https://notchatgpt.com/", None)

        assert result.ai_source is None
        assert result.stage == "no_signal"

    def test_custom_domain_rule_wins(self) -> None:
        config = build_detection_config(custom_domains={"chat.example.ai": "ChatGPT", "bot.example.com": "Nope"})

        assert classify("https://chat.example.ai/x", None, config=config).ai_source is AIChannel.chatgpt
        assert classify("https://bot.example.com/", None, config=config).ai_source is AIChannel.other_ai


class TestPlatformOverride:
    def test_bing_chat_path_is_copilot(self) -> None:
        result = classify("https://www.bing.com/chat?q=best+mug", None)

        assert result.ai_source is AIChannel.copilot
        assert result.stage == "platform_override"
        assert result.confidence_score == 95

    def test_bing_copilot_form_param_is_copilot(self) -> None:
        result = classify("https://www.bing.com/search?q=mug&form=BINGAI", None)

        assert result.ai_source is AIChannel.copilot

    def test_plain_bing_search_is_not_ai(self) -> None:
        result = classify("https://www.bing.com/search?q=mug", None)

        assert result.ai_source is None


class TestUtmStages:
    def test_utm_source_alone_is_medium_confidence(self) -> None:
        result = classify(None, None, utm_source="Perplexity")

        assert result.ai_source is AIChannel.perplexity
        assert result.stage == "utm_source"
        assert result.confidence is ConfidenceLevel.medium
        assert result.confidence_score == 70
        assert "missing referrer" in result.detection

    def test_utm_medium_keyword_never_assigns_channel(self) -> None:
        result = classify(None, None, utm_medium="ai-agent", tags=["AI-Source-ChatGPT"])

        # Stops the chain: the tag stage is never reached
        assert result.ai_source is None
        assert result.stage == "utm_medium"
        assert result.confidence_score == 30
        assert result.signals == ("utm_medium=ai-agent",)

    def test_unknown_utm_medium_falls_through(self) -> None:
        result = classify(None, None, utm_medium="email")

        assert result.stage == "no_signal"


class TestTagStage:
    def test_prefixed_tag_maps_to_channel(self) -> None:
        result = classify(None, None, tags=["vip", "AI-Source:ChatGPT"])

        assert result.ai_source is AIChannel.chatgpt
        assert result.stage == "tags"
        assert result.confidence_score == 55

    def test_unknown_suffix_is_other_ai(self) -> None:
        assert classify(None, None, tags=["AI-Source_Grok"]).ai_source is AIChannel.other_ai

    def test_empty_suffix_is_low_confidence(self) -> None:
        result = classify(None, None, tags=["AI-Source-"])

        assert result.ai_source is AIChannel.other_ai
        assert result.confidence_score == 30
        assert result.signals == ("existing tag (empty suffix)",)

    def test_custom_tag_prefix(self) -> None:
        config = build_detection_config(tag_prefix="Traffic")

        assert classify(None, None, tags=["Traffic-Perplexity"], config=config).ai_source is AIChannel.perplexity


class TestNoSignal:
    def test_narrative_lists_what_was_seen(self) -> None:
        result = classify("https://www.google.com/search?q=mug", "https://shop.example.com/products/mug")

        assert result.ai_source is None
        assert result.confidence_score == 0
        assert result.detection == (
            "No AI signals detected (referrer=google.com, utm_source=—, "
            "landing=shop.example.com) · confidence: low"
        )

    def test_malformed_urls_never_raise(self) -> None:
        result = classify("::::not a url", "http://[bad", utm_source="   ", utm_medium=None, tags=None)

        assert result.ai_source is None


def test_result_bounds_are_enforced_for_any_stage() -> None:
    def flood(signals, config):
        return ClassificationResult(
            ai_source=AIChannel.other_ai,
            detection="x" * 500,
            signals=tuple("s" * 300 for _ in range(20)),
        )

    result = classify(None, None, stages=(AttributionStage("flood", flood),))

    assert result.stage == "flood"
    assert len(result.detection) == MAX_DETECTION_LENGTH
    assert len(result.signals) == MAX_SIGNALS
    assert all(len(signal) == MAX_SIGNAL_LENGTH for signal in result.signals)


def test_classification_is_deterministic() -> None:
    args = ("https://chatgpt.com/", "https://shop.example.com/?utm_source=perplexity", "perplexity")

    assert classify(*args) == classify(*args)


def test_chinese_narratives() -> None:
    config = DetectionConfig(language=Language.chinese)

    result = classify("https://chatgpt.com/", None, config=config)

    assert "置信度高" in result.detection
