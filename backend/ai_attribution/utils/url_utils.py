"""URL and domain helpers for attribution.

WHAT:
    Parse referrer / landing-page strings defensively, normalize hostnames and
    test exact-or-subdomain matches against rule domains.

WHY:
    Shopify hands us referrers in every shape imaginable ("chatgpt.com",
    "https://www.perplexity.ai/search?q=..", "android-app://...", garbage).
    Attribution must never raise on any of them; a malformed value is simply
    "no referrer".

REFERENCES:
    - ai_attribution/services/attribution/engine.py (consumer)
    - ai_attribution/services/order_mapper.py (UTM extraction at ingestion)
"""

import re
from typing import Dict, Optional
from urllib.parse import SplitResult, parse_qs, urlsplit


# Hostnames we accept after parsing. Anything else (spaces, quotes, etc.)
# means the string was not really a URL.
_HOSTNAME_RE = re.compile(r"^[a-z0-9_.-]+$", re.IGNORECASE)


def normalize_domain(domain: Optional[str]) -> str:
    """Strip scheme and leading ``www.``, lowercase."""
    value = (domain or "").strip().lower()
    value = re.sub(r"^https?://", "", value)
    if value.startswith("www."):
        value = value[len("www."):]
    return value


def _split(value: str) -> Optional[SplitResult]:
    try:
        parsed = urlsplit(value)
        hostname = parsed.hostname
    except ValueError:
        return None
    if not parsed.scheme or not hostname or not _HOSTNAME_RE.match(hostname):
        return None
    return parsed


def safe_url(value: Optional[str]) -> Optional[SplitResult]:
    """Parse a possibly malformed URL.

    Tries the value as-is, then with an assumed ``https`` scheme
    (``//host/path`` protocol-relative values included).
    Returns None when neither attempt yields a usable hostname.
    """
    if not value or not value.strip():
        return None
    raw = value.strip()
    parsed = _split(raw)
    if parsed is None:
        if raw.startswith("//"):
            parsed = _split(f"https:{raw}")
        elif "://" not in raw:
            parsed = _split(f"https://{raw}")
    return parsed


def extract_hostname(value: Optional[str]) -> Optional[str]:
    url = safe_url(value)
    if url is None:
        return None
    return normalize_domain(url.hostname)


def domain_matches(rule_domain: str, url: Optional[SplitResult]) -> bool:
    """True when the URL host equals the rule domain or is a subdomain of it."""
    if url is None or not url.hostname:
        return False
    hostname = normalize_domain(url.hostname)
    rule = normalize_domain(rule_domain)
    if not rule:
        return False
    return hostname == rule or hostname.endswith(f".{rule}")


def query_params(url: Optional[SplitResult]) -> Dict[str, str]:
    """First value per query parameter, keys lowercased."""
    if url is None or not url.query:
        return {}
    params = parse_qs(url.query, keep_blank_values=False)
    return {key.lower(): values[0] for key, values in params.items() if values}


def extract_utm(*urls: Optional[str]) -> Dict[str, Optional[str]]:
    """Return the first utm_source / utm_medium found across the given URLs.

    WHAT: Scans URLs in order (referrer first, then landing page)
    WHY: Shopify only exposes raw URLs; UTMs are embedded in the query string
    """
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    for value in urls:
        params = query_params(safe_url(value))
        if not params and value:
            # Shopify landing_site is often a bare path ("/products/x?utm_source=..")
            try:
                params = query_params(urlsplit(value.strip()))
            except ValueError:
                params = {}
        if not params:
            continue
        utm_source = utm_source or params.get("utm_source") or None
        utm_medium = utm_medium or params.get("utm_medium") or None
        if utm_source and utm_medium:
            break
    return {"utm_source": utm_source, "utm_medium": utm_medium}
