"""
Display Language Catalog
========================

Single source of truth for every user-facing string the engines produce:
detection narratives, trend labels, caveat notes, CSV comment lines.

WHY:
- Narratives are persisted with the order, so wording must be stable
- Exactly two languages are supported; anything else falls back to English
  instead of erroring (settings come from merchants and may be stale)

Used by:
- ai_attribution/services/attribution/engine.py
- ai_attribution/services/aggregation/trend.py
- ai_attribution/services/dashboard_service.py
- ai_attribution/services/export_service.py
"""

import enum
from typing import Dict, Optional


class Language(str, enum.Enum):
    english = "English"
    chinese = "中文"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Language":
        if isinstance(value, Language):
            return value
        normalized = (value or "").strip().lower()
        if normalized in ("中文", "zh", "zh-cn", "zh_cn", "chinese"):
            return cls.chinese
        return DEFAULT_LANGUAGE


DEFAULT_LANGUAGE = Language.english


MESSAGES: Dict[str, Dict[Language, str]] = {
    # --- attribution narratives -------------------------------------------
    "platform_override": {
        Language.english: "{label} referrer flagged as {channel} ({location})",
        Language.chinese: "{label} 来源被识别为 {channel}（{location}）",
    },
    "confidence_high": {
        Language.english: "confidence: high",
        Language.chinese: "置信度高",
    },
    "utm_conflict": {
        Language.english: "; conflict: utm_source={utm_source} → {channel}",
        Language.chinese: "; 冲突：utm_source={utm_source} → {channel}",
    },
    "utm_confirmed": {
        Language.english: "; utm_source={utm_source} confirmed",
        Language.chinese: "; utm_source={utm_source} 已确认",
    },
    "domain_match": {
        Language.english: "{signals} → {channel} · confidence: high",
        Language.chinese: "{signals} → {channel} · 置信度高",
    },
    "confidence_medium_no_referrer": {
        Language.english: "confidence: medium (missing referrer)",
        Language.chinese: "置信度中等（缺少 referrer）",
    },
    "confidence_low_medium_only": {
        Language.english: "confidence: low: only matched medium keyword({keyword}), insufficient",
        Language.chinese: "置信度低：仅命中 medium 关键词({keyword})，不足以判定 AI",
    },
    "note_explicit": {
        Language.english: "Note attribute {name}={value} mapped to AI channel",
        Language.chinese: "备注属性 {name}={value} 映射到 AI 渠道",
    },
    "note_platform": {
        Language.english: "Note attribute contains AI platform name ({name}={value})",
        Language.chinese: "备注属性包含 AI 平台名称（{name}={value}）",
    },
    "note_ambiguous": {
        Language.english: "Note attribute contains {channel} with AI context ({name}={value})",
        Language.chinese: "备注属性包含 {channel} 且有 AI 上下文（{name}={value}）",
    },
    "note_generic": {
        Language.english: "Note attribute contains AI hint ({name}={value})",
        Language.chinese: "备注属性包含 AI 提示（{name}={value}）",
    },
    "tag_empty_suffix": {
        Language.english: "Tag {tag} has empty suffix · confidence: low (tag has empty suffix)",
        Language.chinese: "标签 {tag} 后缀为空 · 置信度低（标签后缀为空）",
    },
    "tag_match": {
        Language.english: "Detected by existing tag {tag} · confidence: medium (may come from app tag write-back)",
        Language.chinese: "通过已有标签 {tag} 识别 · 置信度中等（可能来自本应用标签写回）",
    },
    "no_signal": {
        Language.english: (
            "No AI signals detected (referrer={referrer}, utm_source={utm_source}, "
            "landing={landing}) · confidence: low"
        ),
        Language.chinese: (
            "未检测到 AI 信号（referrer={referrer}, utm_source={utm_source}, "
            "landing={landing}） · 置信度低"
        ),
    },
    # --- aggregation / dashboard -----------------------------------------
    "week_suffix": {
        Language.english: "{date} · Week",
        Language.chinese: "{date} · 周",
    },
    "range_7d": {Language.english: "Last 7 days", Language.chinese: "最近 7 天"},
    "range_30d": {Language.english: "Last 30 days", Language.chinese: "最近 30 天"},
    "range_90d": {Language.english: "Last 90 days", Language.chinese: "最近 90 天"},
    "note_low_sample": {
        Language.english: "AI-channel order volume is low (<{threshold}); treat all metrics as indicative only.",
        Language.chinese: "AI 渠道订单量当前较低（<{threshold}），所有指标仅供参考。",
    },
    "note_foreign_currency": {
        Language.english: "Excluded {count} orders not in {currency}; totals include {currency} only.",
        Language.chinese: "已过滤 {count} 笔非 {currency} 货币的订单，汇总仅包含 {currency}。",
    },
    "note_excluded_source": {
        Language.english: "Excluded {count} POS/draft orders (not part of off-site AI traffic analysis).",
        Language.chinese: "已排除 {count} 笔 POS/草稿订单（不计入站外 AI 链路分析）。",
    },
    "note_clamped": {
        Language.english: "Data is a truncated sample; try a shorter date range.",
        Language.chinese: "数据为截断样本，建议缩短时间范围。",
    },
    # --- CSV export --------------------------------------------------------
    "csv_orders_comment": {
        Language.english: (
            "# Only identifiable AI traffic is counted (relies on referrer/UTM/tags; "
            "conservative estimate); GMV metric={metric}"
        ),
        Language.chinese: "# 仅统计可识别的 AI 流量（依赖 referrer/UTM/标签，结果为保守估计）；GMV 口径={metric}",
    },
    "csv_products_comment": {
        Language.english: (
            "# Only identifiable AI traffic is counted (relies on referrer/UTM/tags; "
            "conservative estimate); GMV metric={metric}"
        ),
        Language.chinese: "# 仅统计可识别的 AI 流量（依赖 referrer/UTM/标签，结果为保守估计）；GMV 口径={metric}",
    },
    "csv_customers_comment": {
        Language.english: (
            "# Customer LTV (cumulative GMV in the selected range; conservative estimate); "
            "GMV metric={metric}"
        ),
        Language.chinese: "# 客户级 LTV（选定时间范围内累计 GMV，结果为保守估计）；GMV 口径={metric}",
    },
}

MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def t(language: Optional[str], key: str, **params) -> str:
    """Render message ``key`` in ``language`` (English when unrecognized)."""
    lang = Language.parse(language)
    template = MESSAGES[key].get(lang) or MESSAGES[key][DEFAULT_LANGUAGE]
    return template.format(**params) if params else template


def month_label(year: int, month: int, language: Optional[str]) -> str:
    if Language.parse(language) is Language.chinese:
        return f"{year}年{month:02d}月"
    return f"{MONTH_ABBREVIATIONS[month - 1]} {year}"
