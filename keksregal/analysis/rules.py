"""
Per-record and per-set cookie rules.

Each record rule inspects one cookie and returns a finding or
``None``; ``RECORD_RULES`` fixes the order in which they are
applied.  The duplicate-name rule runs once over the whole set.
"""

from __future__ import annotations

import collections
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from keksregal.analysis import taxonomy
from keksregal.models import cookies, findings

SECONDS_PER_DAY = 60 * 60 * 24
MAX_LIFETIME_DAYS = 365
MAX_VALUE_LENGTH = 4096
MIN_ENCODED_LENGTH = 50
MAX_SPECIAL_CHARS = 10

_BASE64_RE = re.compile(r"[A-Za-z0-9+/=]+")
_SPECIAL_CHAR_RE = re.compile(r"[^A-Za-z0-9\s=_.\-]")


@dataclass(frozen=True)
class RuleContext:
    """Inputs shared by every rule in one evaluation."""

    now: float
    reference_domain: str | None = None


RecordRule = Callable[[cookies.CookieRecord, RuleContext], findings.Finding | None]


def is_related_domain(cookie_domain: str, reference_domain: str) -> bool:
    """Whether two domains are related by containment.

    The cookie domain has its leading dot stripped; the domains
    are related when either one contains the other.
    """
    cookie = cookie_domain.lower().removeprefix(".")
    reference = reference_domain.lower()
    return reference in cookie or cookie in reference


def is_suspicious_encoding(value: str | None) -> bool:
    """Detect base64-looking or symbol-heavy cookie values."""
    if not value or len(value) < MIN_ENCODED_LENGTH:
        return False
    if _BASE64_RE.fullmatch(value):
        return True
    return len(_SPECIAL_CHAR_RE.findall(value)) > MAX_SPECIAL_CHARS


def lifetime_days(cookie: cookies.CookieRecord, now: float) -> float | None:
    """Days until the cookie expires, ``None`` for session cookies."""
    if cookie.expiration_date is None:
        return None
    return (cookie.expiration_date - now) / SECONDS_PER_DAY


# ── Record rules ────────────────────────────────────────────────


def check_third_party(cookie: cookies.CookieRecord, ctx: RuleContext) -> findings.Finding | None:
    if not ctx.reference_domain or is_related_domain(cookie.domain, ctx.reference_domain):
        return None
    return taxonomy.build_finding(
        "THIRD_PARTY_TRACKER",
        cookie.name,
        cookie.domain,
        f"Third-party cookie from {cookie.domain}",
    )


def check_http_only(cookie: cookies.CookieRecord, ctx: RuleContext) -> findings.Finding | None:
    if cookie.http_only:
        return None
    return taxonomy.build_finding(
        "MISSING_HTTPONLY",
        cookie.name,
        cookie.domain,
        "Missing HttpOnly flag - vulnerable to XSS attacks",
    )


def check_secure(cookie: cookies.CookieRecord, ctx: RuleContext) -> findings.Finding | None:
    if cookie.secure:
        return None
    return taxonomy.build_finding(
        "MISSING_SECURE",
        cookie.name,
        cookie.domain,
        "Missing Secure flag - can be transmitted over HTTP",
    )


def check_lifetime(cookie: cookies.CookieRecord, ctx: RuleContext) -> findings.Finding | None:
    days = lifetime_days(cookie, ctx.now)
    if days is None or days <= MAX_LIFETIME_DAYS:
        return None
    return taxonomy.build_finding(
        "EXCESSIVE_LIFETIME",
        cookie.name,
        cookie.domain,
        f"Cookie lifetime exceeds 1 year ({round(days)} days)",
    )


def check_payload_size(cookie: cookies.CookieRecord, ctx: RuleContext) -> findings.Finding | None:
    if cookie.value_length <= MAX_VALUE_LENGTH:
        return None
    return taxonomy.build_finding(
        "LARGE_PAYLOAD",
        cookie.name,
        cookie.domain,
        f"Large cookie size ({cookie.value_length} bytes)",
    )


def check_encoding(cookie: cookies.CookieRecord, ctx: RuleContext) -> findings.Finding | None:
    if not is_suspicious_encoding(cookie.value):
        return None
    return taxonomy.build_finding(
        "SUSPICIOUS_ENCODING",
        cookie.name,
        cookie.domain,
        "Cookie contains suspicious encoding patterns",
    )


RECORD_RULES: tuple[RecordRule, ...] = (
    check_third_party,
    check_http_only,
    check_secure,
    check_lifetime,
    check_payload_size,
    check_encoding,
)


# ── Set rules ───────────────────────────────────────────────────


def check_duplicates(records: Sequence[cookies.CookieRecord]) -> list[findings.Finding]:
    """One finding per cookie name that occurs more than once.

    Findings follow the first-occurrence order of each name.
    """
    counts = collections.Counter(record.name for record in records)
    return [
        taxonomy.build_finding(
            "DUPLICATE_COOKIE",
            name,
            findings.MULTIPLE_DOMAINS,
            f'Cookie "{name}" appears {count} times',
        )
        for name, count in counts.items()
        if count > 1
    ]
