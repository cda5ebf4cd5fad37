"""
Request classification - device, browser, OS, traffic source, UTM and IP.

Pure functions over request strings. Every rule table is an ordered tuple of
(predicate, label) pairs evaluated first-match-wins, so the order of entries
is the behaviour.

Key behaviors:
- Empty or missing input maps to a defined default, never an exception
- Tablet is checked before mobile, mobile before the desktop default
- Browser tokens overlap in real user agents (Chrome UAs contain "Safari"),
  so Edge is checked before Chrome and Chrome before Safari
- Referrer domains match on host label boundaries
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from urllib.parse import parse_qs, urlparse

from .models import DeviceType, RequestClassification, RequestMeta, UTMParams

Predicate = Callable[[str], bool]

# --- Rule Builders ---


def _contains(*tokens: str) -> Predicate:
    """Case-sensitive substring match on any token."""

    def check(value: str) -> bool:
        return any(token in value for token in tokens)

    return check


def _matches(pattern: str, flags: int = 0) -> Predicate:
    compiled = re.compile(pattern, flags)

    def check(value: str) -> bool:
        return compiled.search(value) is not None

    return check


def _on_domain(*tokens: str) -> Predicate:
    """
    Match a host against domain tokens on label boundaries.

    "fb.com" matches "m.fb.com" but "t.co" does not match "reddit.com".
    A token ending in "." ("google.") matches any suffix after it.
    Unlike plain substring matching, "myfacebook.com" is not facebook.
    """

    def check(host: str) -> bool:
        padded = f".{host}."
        for token in tokens:
            needle = f".{token}" if token.endswith(".") else f".{token}."
            if needle in padded:
                return True
        return False

    return check


def _first_match(rules: tuple[tuple[Predicate, str], ...], value: str, default: str) -> str:
    for predicate, label in rules:
        if predicate(value):
            return label
    return default


# --- Rule Tables ---


DEVICE_RULES: tuple[tuple[Predicate, str], ...] = (
    (_matches(r"(tablet|ipad|playbook|silk)|(android(?!.*mobi))", re.IGNORECASE), "tablet"),
    (
        _matches(
            r"Mobile|Android|iP(hone|od)|IEMobile|BlackBerry|Kindle|Silk-Accelerated"
            r"|(hpw|web)OS|Opera M(obi|ini)"
        ),
        "mobile",
    ),
)

BROWSER_RULES: tuple[tuple[Predicate, str], ...] = (
    (_contains("Edg"), "Edge"),
    (_contains("Chrome"), "Chrome"),
    (_contains("Safari"), "Safari"),
    (_contains("Firefox"), "Firefox"),
    (_contains("MSIE", "Trident"), "Internet Explorer"),
    (_contains("Opera"), "Opera"),
)

OS_RULES: tuple[tuple[Predicate, str], ...] = (
    (_contains("Win"), "Windows"),
    (_contains("Mac"), "MacOS"),
    (_contains("Linux"), "Linux"),
    (_contains("Android"), "Android"),
    (_contains("iOS", "iPhone", "iPad"), "iOS"),
)

REFERRER_RULES: tuple[tuple[Predicate, str], ...] = (
    # Social
    (_on_domain("facebook.com", "fb.com"), "facebook"),
    (_on_domain("instagram.com"), "instagram"),
    (_on_domain("twitter.com", "t.co"), "twitter"),
    (_on_domain("linkedin.com", "lnkd.in"), "linkedin"),
    (_on_domain("tiktok.com"), "tiktok"),
    (_on_domain("youtube.com", "youtu.be"), "youtube"),
    (_on_domain("pinterest.com"), "pinterest"),
    (_on_domain("reddit.com"), "reddit"),
    (_on_domain("snapchat.com"), "snapchat"),
    (_on_domain("whatsapp.com"), "whatsapp"),
    (_on_domain("telegram.org", "t.me"), "telegram"),
    # Search
    (_on_domain("google."), "google"),
    (_on_domain("bing.com"), "bing"),
    (_on_domain("yahoo.com"), "yahoo"),
    (_on_domain("duckduckgo.com"), "duckduckgo"),
    (_on_domain("baidu.com"), "baidu"),
    # Other
    (_on_domain("github.com"), "github"),
)

UTM_FIELDS: tuple[str, ...] = ("source", "medium", "campaign", "content", "term")


# --- Classifiers ---


def classify_device(user_agent: str | None) -> DeviceType:
    """Classify device type from a user agent string."""
    if not user_agent:
        return "unknown"
    label = _first_match(DEVICE_RULES, user_agent, "desktop")
    return label  # type: ignore[return-value]


def classify_browser(user_agent: str | None) -> str:
    """Classify browser family from a user agent string."""
    if not user_agent:
        return "Unknown"
    return _first_match(BROWSER_RULES, user_agent, "Other")


def classify_os(user_agent: str | None) -> str:
    """Classify operating system from a user agent string."""
    if not user_agent:
        return "Unknown"
    return _first_match(OS_RULES, user_agent, "Other")


def referrer_host(referrer_url: str) -> str:
    """Lowercased host of a referrer. Scheme-less values are accepted."""
    value = referrer_url.strip().lower()
    if "//" not in value:
        value = "//" + value
    try:
        return urlparse(value).hostname or ""
    except ValueError:
        return ""


def classify_referrer_source(referrer_url: str | None) -> str:
    """Classify a referrer URL into a traffic source label."""
    if not referrer_url or not referrer_url.strip():
        return "direct"
    host = referrer_host(referrer_url)
    if not host:
        return "other"
    return _first_match(REFERRER_RULES, host, "other")


def extract_utm_params(page_url: str | None) -> UTMParams:
    """
    Parse utm_* parameters from a page URL.

    Blank parameters are treated as absent. A malformed or relative URL
    yields no fields.
    """
    if not page_url:
        return UTMParams()

    try:
        parsed = urlparse(page_url.strip())
    except ValueError:
        return UTMParams()
    # Only absolute URLs carry campaign parameters
    if not parsed.scheme or not parsed.netloc:
        return UTMParams()

    query = parse_qs(parsed.query)

    values: dict[str, str | None] = {}
    for name in UTM_FIELDS:
        found = [v.strip() for v in query.get(f"utm_{name}", []) if v.strip()]
        values[name] = found[0] if found else None

    return UTMParams(**values)


def resolve_client_ip(headers: Mapping[str, str], peer_address: str | None = None) -> str:
    """
    Best-effort client IP.

    Trusts X-Forwarded-For, then X-Real-IP, over the socket peer. These
    headers are client-controlled unless the proxy in front strips them.
    """
    lowered = {k.lower(): v for k, v in headers.items()}

    forwarded = lowered.get("x-forwarded-for", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = lowered.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip

    if peer_address:
        return peer_address

    return "unknown"


def classify_request(meta: RequestMeta, page_url: str | None = None) -> RequestClassification:
    """Derive all classification fields for one request."""
    user_agent = meta.user_agent or ""
    referrer = meta.referrer or ""

    return RequestClassification(
        user_agent=user_agent,
        device_type=classify_device(user_agent),
        browser=classify_browser(user_agent),
        operating_system=classify_os(user_agent),
        referrer=referrer,
        referrer_source=classify_referrer_source(referrer),
        utm=extract_utm_params(page_url),
        ip_address=resolve_client_ip(meta.headers, meta.peer_address),
    )
