"""
Recompute policy after the cookie set changes.

The only way to obtain a new ``AnalysisResult`` after a
removal or update is to run the evaluator over the surviving
records.  Counters, histogram and findings are never adjusted
in place.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from keksregal.analysis import evaluator
from keksregal.models import analysis, cookies
from keksregal.utils import logger

log = logger.create_logger("Recompute")


def surviving_records(
    records: Sequence[cookies.CookieRecord],
    *,
    removed_keys: Iterable[cookies.CookieIdentity | str] | None = None,
    removed_domain: str | None = None,
) -> list[cookies.CookieRecord]:
    """Drop removed records, keeping the original order.

    Args:
        records: The previous record sequence.
        removed_keys: Identities (or their string keys) that
            were removed.
        removed_domain: A domain whose records were all removed.
    """
    survivors = list(records)
    if removed_keys is not None:
        gone: set[cookies.CookieIdentity] = set()
        for key in removed_keys:
            identity = cookies.CookieIdentity.parse(key) if isinstance(key, str) else key
            if identity is not None:
                gone.add(identity)
        survivors = [r for r in survivors if r.identity not in gone]
    if removed_domain is not None:
        survivors = [r for r in survivors if r.domain != removed_domain]
    return survivors


def recompute(
    previous: analysis.AnalysisResult,
    *,
    removed_keys: Iterable[cookies.CookieIdentity | str] | None = None,
    removed_domain: str | None = None,
    updated_records: Sequence[cookies.CookieRecord] | None = None,
    reference_domain: str | None = None,
    now: float,
) -> analysis.AnalysisResult:
    """Regenerate the analysis after a mutation of the record set.

    Exactly one of *removed_keys*, *removed_domain* or
    *updated_records* describes the mutation.

    Args:
        previous: The result being replaced.
        removed_keys: Identities of records that were removed.
        removed_domain: Domain whose records were removed.
        updated_records: The complete new record sequence.
        reference_domain: Reference domain of the original scan.
        now: Current time in epoch seconds.

    Returns:
        A new result produced by ``evaluator.evaluate``.

    Raises:
        ValueError: When zero or several mutations are given.
    """
    given = sum(arg is not None for arg in (removed_keys, removed_domain, updated_records))
    if given != 1:
        raise ValueError("recompute() needs exactly one of removed_keys, removed_domain or updated_records")

    if updated_records is not None:
        survivors = list(updated_records)
    else:
        survivors = surviving_records(
            previous.cookies,
            removed_keys=removed_keys,
            removed_domain=removed_domain,
        )

    result = evaluator.evaluate(survivors, reference_domain, now=now)
    log.info(
        "Analysis recomputed",
        {
            "before": previous.total_cookies,
            "after": result.total_cookies,
            "findings": result.total_issues,
        },
    )
    return result
