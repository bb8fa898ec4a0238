"""
Pure record selections for removal.

Each helper picks the records a destructive action would
touch and pairs them with the confirmation prompt shown to
the user.  Nothing here talks to the record store.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, time

from keksregal.models import cookies, findings, removal


def _plan(records: Iterable[cookies.CookieRecord], prompt: str) -> removal.RemovalPlan:
    identities: list[cookies.CookieIdentity] = []
    seen: set[cookies.CookieIdentity] = set()
    for record in records:
        if record.identity not in seen:
            seen.add(record.identity)
            identities.append(record.identity)
    return removal.RemovalPlan(identities=identities, prompt=prompt)


def domain_matches(cookie_domain: str, domain_filter: str) -> bool:
    """Browser-style domain filter: exact match or subdomain."""
    cookie = cookie_domain.lower().lstrip(".")
    wanted = domain_filter.lower().lstrip(".")
    return cookie == wanted or cookie.endswith("." + wanted)


def select_keys(records: Sequence[cookies.CookieRecord], keys: Iterable[str]) -> removal.RemovalPlan:
    """Records whose identity key is in the selection set.

    Malformed keys are ignored.
    """
    wanted = {identity for key in keys if (identity := cookies.CookieIdentity.parse(key)) is not None}
    chosen = [r for r in records if r.identity in wanted]
    return _plan(chosen, f"Delete {removal.pluralize(len(chosen), 'selected cookie')}? This cannot be undone.")


def select_domain(records: Sequence[cookies.CookieRecord], domain: str) -> removal.RemovalPlan:
    """Every record stored for *domain* (exact histogram key)."""
    chosen = [r for r in records if r.domain == domain]
    return _plan(chosen, f"Delete all cookies from {domain}? This cannot be undone.")


def select_domains(records: Sequence[cookies.CookieRecord], domains: Iterable[str]) -> removal.RemovalPlan:
    """Every record stored for any of the selected domains."""
    wanted = set(domains)
    chosen = [r for r in records if r.domain in wanted]
    return _plan(
        chosen,
        f"Delete all cookies from {removal.pluralize(len(wanted), 'selected domain')}? This cannot be undone.",
    )


def select_name_on_domain(
    records: Sequence[cookies.CookieRecord],
    name: str,
    domain: str,
) -> removal.RemovalPlan:
    """Records named *name* on *domain*, as targeted from an issue row.

    Raises:
        ValueError: For set-level findings, which span several
            domains and cannot be removed from one row.
    """
    if domain == findings.MULTIPLE_DOMAINS:
        raise ValueError("Cannot delete aggregated duplicate entries")
    chosen = [r for r in records if r.name == name and r.domain == domain]
    return _plan(chosen, f'Delete all cookies named "{name}" on {domain}? This cannot be undone.')


def select_insecure(records: Sequence[cookies.CookieRecord]) -> removal.RemovalPlan:
    """Records missing the Secure or the HttpOnly flag."""
    chosen = [r for r in records if not r.secure or not r.http_only]
    return _plan(
        chosen,
        f"Delete {removal.pluralize(len(chosen), 'insecure cookie')} (missing Secure or HttpOnly flags)? This cannot be undone.",
    )


def select_problematic(
    records: Sequence[cookies.CookieRecord],
    items: Iterable[findings.Finding],
) -> removal.RemovalPlan:
    """Records named in a high or medium severity finding.

    Findings are matched on cookie name and exact domain;
    set-level findings carry no domain and are skipped.
    """
    targets = {
        (f.cookie_name, f.domain)
        for f in items
        if f.severity in ("high", "medium") and not f.is_set_level
    }
    chosen = [r for r in records if (r.name, r.domain) in targets]
    return _plan(
        chosen,
        f"Delete {removal.pluralize(len(chosen))} with security or privacy issues? This cannot be undone.",
    )


def _to_epoch(day: date | datetime | float) -> float:
    if isinstance(day, (int, float)):
        return float(day)
    if not isinstance(day, datetime):
        day = datetime.combine(day, time.min)
    if day.tzinfo is None:
        day = day.replace(tzinfo=UTC)
    return day.timestamp()


def select_expiring(
    records: Sequence[cookies.CookieRecord],
    *,
    before: date | datetime | float | None = None,
    after: date | datetime | float | None = None,
) -> removal.RemovalPlan:
    """Persistent records expiring inside a date range.

    Bounds are inclusive; plain dates are taken as UTC days.
    Session cookies never match.

    Raises:
        ValueError: When neither bound is given.
    """
    if before is None and after is None:
        raise ValueError("Select at least one date (before or after) to filter cookies")

    upper = _to_epoch(before) if before is not None else None
    lower = _to_epoch(after) if after is not None else None

    def _in_range(record: cookies.CookieRecord) -> bool:
        expires = record.expiration_date
        if expires is None:
            return False
        if upper is not None and expires > upper:
            return False
        if lower is not None and expires < lower:
            return False
        return True

    chosen = [r for r in records if _in_range(r)]
    if before is not None and after is not None:
        range_text = f"between {after} and {before}"
    elif before is not None:
        range_text = f"expiring before {before}"
    else:
        range_text = f"expiring after {after}"
    return _plan(chosen, f"Delete {removal.pluralize(len(chosen))} {range_text}? This cannot be undone.")
