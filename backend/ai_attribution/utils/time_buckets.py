"""Timezone-correct day / week / month boundaries.

WHAT:
    Compute the absolute instant at which a calendar day, ISO week (Monday)
    or month begins in a given IANA timezone, and format bucket labels.

WHY:
    Truncating timestamps in UTC puts late-evening orders in Shanghai or
    New York into the wrong day. Boundaries are built as local wall-clock
    midnights via zoneinfo, then converted back to UTC.

REFERENCES:
    - ai_attribution/services/aggregation/trend.py (bucketing)
    - ai_attribution/services/dashboard_service.py (date range resolution)
"""

import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Literal, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ai_attribution.services.i18n import month_label, t

logger = logging.getLogger(__name__)

BucketKind = Literal["day", "week", "month"]


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """IANA name -> tzinfo; UTC when empty or unknown."""
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("[DASHBOARD] Invalid timezone '%s', falling back to UTC", name)
        return timezone.utc


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are treated as UTC (that is how the database stores them)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_date(value: datetime, tz: tzinfo) -> date:
    return ensure_utc(value).astimezone(tz).date()


def local_midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


def start_of_day(value: datetime, tz: tzinfo) -> datetime:
    """UTC instant of 00:00:00 on ``value``'s local calendar day."""
    return local_midnight(local_date(value, tz), tz)


def end_of_day(value: datetime, tz: tzinfo) -> datetime:
    """UTC instant of 23:59:59.999999 on ``value``'s local calendar day."""
    next_midnight = local_midnight(local_date(value, tz) + timedelta(days=1), tz)
    return next_midnight - timedelta(microseconds=1)


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def month_start(day: date) -> date:
    return day.replace(day=1)


def determine_bucket(range_key: str, days: int) -> BucketKind:
    """Presets pin the granularity; custom ranges go by length."""
    if range_key == "7d":
        return "day"
    if range_key == "30d":
        return "week"
    if range_key == "90d":
        return "month"
    if days <= 14:
        return "day"
    if days <= 60:
        return "week"
    return "month"


def bucket_for(value: datetime, bucket: BucketKind, tz: tzinfo) -> Tuple[date, datetime]:
    """Return (local bucket start date, UTC instant of that start)."""
    day = local_date(value, tz)
    if bucket == "week":
        day = week_start(day)
    elif bucket == "month":
        day = month_start(day)
    return day, local_midnight(day, tz)


def format_bucket_label(day: date, bucket: BucketKind, language: Optional[str]) -> str:
    if bucket == "day":
        return day.isoformat()
    if bucket == "week":
        return t(language, "week_suffix", date=day.isoformat())
    return month_label(day.year, day.month, language)
