"""AI channel enumeration.

The set is closed and additive-only: persisted orders store the channel value,
so existing members must never be renamed or removed.
"""

import enum
from typing import Dict, Optional, Tuple


class AIChannel(str, enum.Enum):
    chatgpt = "ChatGPT"
    perplexity = "Perplexity"
    gemini = "Gemini"
    copilot = "Copilot"
    other_ai = "Other-AI"

    @classmethod
    def from_value(cls, value: Optional[str]) -> Optional["AIChannel"]:
        """Case-insensitive exact lookup by display value; None when unknown."""
        if not value:
            return None
        return _BY_LOWER.get(value.strip().lower())


AI_CHANNELS: Tuple[AIChannel, ...] = tuple(AIChannel)

_BY_LOWER: Dict[str, AIChannel] = {channel.value.lower(): channel for channel in AIChannel}

CHANNEL_COLORS: Dict[AIChannel, str] = {
    AIChannel.chatgpt: "#635bff",
    AIChannel.perplexity: "#00a2ff",
    AIChannel.gemini: "#4285f4",
    AIChannel.copilot: "#0078d4",
    AIChannel.other_ai: "#6c6f78",
}

# Sample size below which every derived ratio is flagged as unreliable.
LOW_SAMPLE_THRESHOLD = 5
