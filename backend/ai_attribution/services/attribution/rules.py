"""Attribution rule tables.

WHAT: Domain rules, UTM-source rules, UTM-medium keywords, tag prefix and
      display language bundled into one read-only DetectionConfig.
WHY:  The engine is a pure function of (order signals, config). Merchants can
      add custom rules; defaults ship here.
REFERENCES:
  - ai_attribution/services/attribution/engine.py: Consumes DetectionConfig
  - ai_attribution/deps.py: CUSTOM_AI_DOMAINS / CUSTOM_UTM_SOURCES settings
"""

from dataclasses import dataclass, field
from typing import Iterable, Literal, Mapping, Optional, Tuple

from ai_attribution.services.attribution.channels import AIChannel
from ai_attribution.services.i18n import DEFAULT_LANGUAGE, Language


RuleProvenance = Literal["default", "custom"]

DEFAULT_TAG_PREFIX = "AI-Source"


@dataclass(frozen=True)
class AiDomainRule:
    domain: str
    channel: AIChannel
    source: RuleProvenance = "default"


@dataclass(frozen=True)
class UtmSourceRule:
    value: str
    channel: AIChannel
    source: RuleProvenance = "default"


@dataclass(frozen=True)
class PlatformOverride:
    """Sub-detection on a generic search domain that is not an AI domain itself.

    The override fires when the host matches ``domain`` and either the path
    contains one of ``path_markers`` or a query parameter value contains one
    of its markers.
    """
    domain: str
    channel: AIChannel
    label: str
    path_markers: Tuple[str, ...] = ()
    query_markers: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()


def _domains(channel: AIChannel, *domains: str) -> Tuple[AiDomainRule, ...]:
    return tuple(AiDomainRule(domain=d, channel=channel) for d in domains)


def _utm(channel: AIChannel, *values: str) -> Tuple[UtmSourceRule, ...]:
    return tuple(UtmSourceRule(value=v, channel=channel) for v in values)


DEFAULT_AI_DOMAINS: Tuple[AiDomainRule, ...] = (
    *_domains(AIChannel.chatgpt, "chat.openai.com", "chatgpt.com"),
    *_domains(AIChannel.perplexity, "perplexity.ai", "labs.perplexity.ai"),
    *_domains(AIChannel.gemini, "gemini.google.com", "bard.google.com"),
    *_domains(AIChannel.copilot, "copilot.microsoft.com", "copilot.cloud.microsoft"),
    *_domains(
        AIChannel.other_ai,
        "claude.ai",
        "deepseek.com",
        "chat.deepseek.com",
        "you.com",
        "phind.com",
        "poe.com",
        "huggingface.co",
        "meta.ai",
        "kimi.moonshot.cn",
        "tongyi.aliyun.com",
        "qianwen.aliyun.com",
        "yiyan.baidu.com",
        "chatglm.cn",
        "open.bigmodel.cn",
        "chat.mistral.ai",
        "mistral.ai",
        "pi.ai",
        "character.ai",
    ),
)

DEFAULT_UTM_SOURCES: Tuple[UtmSourceRule, ...] = (
    *_utm(AIChannel.chatgpt, "chatgpt", "openai"),
    *_utm(AIChannel.perplexity, "perplexity"),
    *_utm(AIChannel.gemini, "gemini", "bard"),
    *_utm(AIChannel.copilot, "copilot", "bing-chat", "bingchat"),
    *_utm(
        AIChannel.other_ai,
        "deepseek",
        "claude",
        "anthropic",
        "you",
        "you.com",
        "phind",
        "poe",
        "huggingchat",
        "meta-ai",
        "kimi",
        "moonshot",
        "tongyi",
        "qianwen",
        "yiyan",
        "ernie",
        "chatglm",
        "zhipu",
        "mistral",
        "pi-ai",
        "character-ai",
        "ai-assistant",
        "ai-search",
        "llm",
    ),
)

DEFAULT_UTM_MEDIUM_KEYWORDS: Tuple[str, ...] = (
    "ai-agent",
    "ai-assistant",
    "assistant",
    "ai-search",
    "ai-chat",
    "ai-referral",
    "llm",
    "llm-chat",
    "chatbot",
    "ai-bot",
)

# Bing hosts Copilot under bing.com/chat and flags it via form/ocid params.
PLATFORM_OVERRIDES: Tuple[PlatformOverride, ...] = (
    PlatformOverride(
        domain="bing.com",
        channel=AIChannel.copilot,
        label="Bing",
        path_markers=("/chat", "/copilot"),
        query_markers=(("form", ("bingai", "copilot")), ("ocid", ("copilot",))),
    ),
)


@dataclass(frozen=True)
class DetectionConfig:
    ai_domains: Tuple[AiDomainRule, ...] = DEFAULT_AI_DOMAINS
    utm_sources: Tuple[UtmSourceRule, ...] = DEFAULT_UTM_SOURCES
    utm_medium_keywords: Tuple[str, ...] = DEFAULT_UTM_MEDIUM_KEYWORDS
    tag_prefix: str = DEFAULT_TAG_PREFIX
    language: Language = DEFAULT_LANGUAGE
    platform_overrides: Tuple[PlatformOverride, ...] = field(default=PLATFORM_OVERRIDES)

    def find_utm_rule(self, utm_source: Optional[str]) -> Optional[UtmSourceRule]:
        """Exact, case-insensitive utm_source lookup."""
        if not utm_source:
            return None
        needle = utm_source.strip().lower()
        for rule in self.utm_sources:
            if rule.value.lower() == needle:
                return rule
        return None


def _custom_rules(entries: Optional[Mapping[str, str]]) -> Iterable[Tuple[str, AIChannel]]:
    for key, channel_value in (entries or {}).items():
        channel = AIChannel.from_value(channel_value) or AIChannel.other_ai
        if key and key.strip():
            yield key.strip().lower(), channel


def build_detection_config(
    custom_domains: Optional[Mapping[str, str]] = None,
    custom_utm_sources: Optional[Mapping[str, str]] = None,
    utm_medium_keywords: Optional[Iterable[str]] = None,
    tag_prefix: Optional[str] = None,
    language: Optional[str] = None,
) -> DetectionConfig:
    """Merge merchant rules ahead of the defaults.

    Custom rules are placed first so they win under first-match evaluation.
    Unknown channel names in custom rules map to Other-AI.
    """
    domains = tuple(
        AiDomainRule(domain=domain, channel=channel, source="custom")
        for domain, channel in _custom_rules(custom_domains)
    ) + DEFAULT_AI_DOMAINS
    utm_sources = tuple(
        UtmSourceRule(value=value, channel=channel, source="custom")
        for value, channel in _custom_rules(custom_utm_sources)
    ) + DEFAULT_UTM_SOURCES
    keywords = tuple(k.strip().lower() for k in utm_medium_keywords if k and k.strip()) \
        if utm_medium_keywords is not None else DEFAULT_UTM_MEDIUM_KEYWORDS
    return DetectionConfig(
        ai_domains=domains,
        utm_sources=utm_sources,
        utm_medium_keywords=keywords,
        tag_prefix=(tag_prefix or DEFAULT_TAG_PREFIX).strip() or DEFAULT_TAG_PREFIX,
        language=Language.parse(language),
    )
