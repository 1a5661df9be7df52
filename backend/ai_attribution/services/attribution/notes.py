"""Note-attribute scanning.

WHAT:
    Map free-text order note attributes (Shopify "additional details") to an
    AI channel, in four nested passes:

      1. explicit AI field (name contains ai_source / ai_channel / ai_referrer)
      2. unambiguous platform tokens (chatgpt, openai, perplexity, ...)
      3. ambiguous tokens (gemini) that also need an AI-context keyword
      4. generic "ai" / "llm" hints, only under a traffic-source-like field name

WHY:
    Notes are free text written by checkout apps and customers. Plain
    substring checks produced false positives ("hawaii", "email",
    "contain-promo" all contain "ai"), so every token here is matched with
    explicit boundaries. Hyphen and underscore count as boundaries; letters
    and digits do not.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Pattern, Sequence, Tuple

from ai_attribution.services.attribution.channels import AI_CHANNELS, AIChannel
from ai_attribution.services.attribution.rules import UtmSourceRule


@dataclass(frozen=True)
class NoteAttribute:
    name: str = ""
    value: str = ""


@dataclass(frozen=True)
class NoteHit:
    channel: AIChannel
    kind: str  # explicit | platform | ambiguous | generic
    name: str
    value: str


def _token(token: str) -> Pattern[str]:
    return re.compile(rf"(?<![a-z0-9]){token}(?![a-z0-9])", re.IGNORECASE)


# "Other-AI" has no name pattern; it is only reachable through rules/fallbacks.
CHANNEL_NAME_PATTERNS: Tuple[Tuple[AIChannel, Pattern[str]], ...] = tuple(
    (channel, _token(re.escape(channel.value.lower()).replace(r"\-", "[-_]?")))
    for channel in AI_CHANNELS
    if channel is not AIChannel.other_ai
)

EXPLICIT_AI_KEYS = ("ai_source", "ai-source", "ai-channel", "ai_channel", "ai-referrer", "ai_referrer")

STRICT_PATTERNS: Tuple[Tuple[Pattern[str], AIChannel], ...] = (
    (_token("openai"), AIChannel.chatgpt),
    (_token("chatgpt"), AIChannel.chatgpt),
    (_token("perplexity"), AIChannel.perplexity),
    (_token("copilot"), AIChannel.copilot),
    (_token("claude"), AIChannel.other_ai),
    (_token("deepseek"), AIChannel.other_ai),
    (_token("anthropic"), AIChannel.other_ai),
)

AMBIGUOUS_PATTERNS: Tuple[Tuple[Pattern[str], AIChannel], ...] = (
    (_token("gemini"), AIChannel.gemini),
)

AI_CONTEXT_PATTERN = re.compile(r"(?:^|[_\-\s])(ai|llm|chat|assistant|bot|model|gpt)(?:[_\-\s]|$)", re.IGNORECASE)

SOURCE_FIELD_PATTERN = re.compile(
    r"(?:^|[_\-\s])(source|channel|referr(?:er|al)?|traffic|campaign|medium)(?:[_\-\s]|$)",
    re.IGNORECASE,
)

GENERIC_AI_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"(?<![a-z])ai(?![a-z])", re.IGNORECASE),
    re.compile(r"(?<![a-z])llm(?![a-z])", re.IGNORECASE),
)

EXPLICIT_AI_VALUES = frozenset({
    "ai",
    "ai-assistant",
    "ai_assistant",
    "ai-chat",
    "ai_chat",
    "ai-search",
    "ai_search",
    "ai-referral",
    "ai_referral",
    "llm",
    "llm-referral",
})


def ai_value_to_channel(value: Optional[str], utm_sources: Sequence[UtmSourceRule]) -> Optional[AIChannel]:
    """Map an AI-ish value to a channel.

    Order: exact UTM rule value, exact channel name, then channel name as a
    bounded token ("chatgpt-plus" -> ChatGPT, "notchatgpt" -> None).
    """
    normalized = (value or "").strip().lower()
    if not normalized:
        return None

    for rule in utm_sources:
        if rule.value.lower() == normalized:
            return rule.channel

    exact = AIChannel.from_value(normalized)
    if exact is not None:
        return exact

    for channel, pattern in CHANNEL_NAME_PATTERNS:
        if pattern.search(normalized):
            return channel
    return None


def coerce_note_attributes(raw: Optional[Iterable[Any]]) -> List[NoteAttribute]:
    """Accept NoteAttribute, mappings ({"name":..,"value":..}) or (name, value) pairs."""
    notes: List[NoteAttribute] = []
    for item in raw or ():
        if isinstance(item, NoteAttribute):
            notes.append(item)
        elif isinstance(item, dict):
            notes.append(NoteAttribute(name=str(item.get("name") or ""), value=str(item.get("value") or "")))
        elif isinstance(item, (tuple, list)) and len(item) == 2:
            notes.append(NoteAttribute(name=str(item[0] or ""), value=str(item[1] or "")))
        else:
            notes.append(NoteAttribute(
                name=str(getattr(item, "name", "") or ""),
                value=str(getattr(item, "value", "") or ""),
            ))
    return notes


def _explicit_field(notes: Sequence[NoteAttribute], utm_sources: Sequence[UtmSourceRule]) -> Optional[NoteHit]:
    for attr in notes:
        name = attr.name.lower()
        if attr.value.strip() and any(key in name for key in EXPLICIT_AI_KEYS):
            channel = ai_value_to_channel(attr.value, utm_sources) or AIChannel.other_ai
            return NoteHit(channel=channel, kind="explicit", name=attr.name, value=attr.value)
    return None


def _platform_token(notes: Sequence[NoteAttribute]) -> Optional[NoteHit]:
    for attr in notes:
        for pattern, channel in STRICT_PATTERNS:
            if pattern.search(attr.value):
                return NoteHit(channel=channel, kind="platform", name=attr.name, value=attr.value)
    return None


def _ambiguous_token(notes: Sequence[NoteAttribute]) -> Optional[NoteHit]:
    for attr in notes:
        for pattern, channel in AMBIGUOUS_PATTERNS:
            if not pattern.search(attr.value):
                continue
            if AI_CONTEXT_PATTERN.search(attr.name) or AI_CONTEXT_PATTERN.search(attr.value):
                return NoteHit(channel=channel, kind="ambiguous", name=attr.name, value=attr.value)
    return None


def _generic_hint(notes: Sequence[NoteAttribute]) -> Optional[NoteHit]:
    for attr in notes:
        if not SOURCE_FIELD_PATTERN.search(attr.name):
            continue
        value = attr.value.strip().lower()
        if value in EXPLICIT_AI_VALUES or any(p.search(value) for p in GENERIC_AI_PATTERNS):
            return NoteHit(channel=AIChannel.other_ai, kind="generic", name=attr.name, value=attr.value)
    return None


def detect_from_note_attributes(
    note_attributes: Optional[Iterable[Any]],
    utm_sources: Sequence[UtmSourceRule],
) -> Optional[NoteHit]:
    notes = coerce_note_attributes(note_attributes)
    if not notes:
        return None
    return (
        _explicit_field(notes, utm_sources)
        or _platform_token(notes)
        or _ambiguous_token(notes)
        or _generic_hint(notes)
    )
