"""Cookie and domain listings for the report views."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from keksregal.analysis import query
from keksregal.models import analysis, cookies

DEFAULT_DOMAIN_LIMIT = 30


def list_cookies(records: Sequence[cookies.CookieRecord], pattern: str = "") -> analysis.CookieListing:
    """Name-sorted cookies matching *pattern*.

    The pattern is tried against name, domain, path and value.
    """
    matcher = query.compile_pattern(pattern)
    ordered = sorted(records, key=lambda c: (c.name.casefold(), c.name))
    matching = [c for c in ordered if matcher.test_any(c.name, c.domain, c.path, c.value)]
    return analysis.CookieListing(cookies=matching, total=len(records))


def list_domains(
    histogram: Mapping[str, int],
    pattern: str = "",
    *,
    limit: int = DEFAULT_DOMAIN_LIMIT,
    expanded: bool = False,
) -> analysis.DomainListing:
    """Domains ordered by cookie count, busiest first.

    An unfiltered, collapsed listing shows at most *limit* rows
    and reports how many were held back.  A search shows every
    matching domain.
    """
    rows = [
        analysis.DomainRow(domain=domain, count=count)
        for domain, count in sorted(histogram.items(), key=lambda item: -item[1])
    ]
    matcher = query.compile_pattern(pattern)
    if not matcher.matches_all:
        return analysis.DomainListing(rows=[r for r in rows if matcher.test(r.domain)])
    if expanded or len(rows) <= limit:
        return analysis.DomainListing(rows=rows)
    return analysis.DomainListing(rows=rows[:limit], hidden_count=len(rows) - limit)


def domain_stats(records: Sequence[cookies.CookieRecord]) -> analysis.DomainCookieStats:
    """Count secure, HttpOnly, session and persistent cookies."""
    return analysis.DomainCookieStats(
        total=len(records),
        secure=sum(1 for c in records if c.secure),
        http_only=sum(1 for c in records if c.http_only),
        session=sum(1 for c in records if c.is_session),
        persistent=sum(1 for c in records if not c.is_session),
    )
