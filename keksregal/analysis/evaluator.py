"""Deterministic cookie rule evaluation.

Runs every record rule over every cookie, then the set-level
duplicate rule, and derives the summary counters and domain
histogram.  The function is pure: the current time is an
explicit argument so identical inputs always produce an
identical ``AnalysisResult``.
"""

from __future__ import annotations

import collections
from collections.abc import Sequence

from keksregal.analysis import rules, taxonomy
from keksregal.models import analysis, cookies, findings
from keksregal.utils import logger

log = logger.create_logger("Evaluator")


def evaluate(
    records: Sequence[cookies.CookieRecord],
    reference_domain: str | None = None,
    *,
    now: float,
) -> analysis.AnalysisResult:
    """Classify *records* and build a complete analysis result.

    Args:
        records: Cookies in store order.  The sequence is
            copied into the result unchanged.
        reference_domain: Domain of the page being inspected.
            Third-party detection only runs when it is given.
        now: Current time in epoch seconds, used for the
            lifetime rule.

    Returns:
        A fresh ``AnalysisResult`` with severity-sorted findings.
    """
    ctx = rules.RuleContext(now=now, reference_domain=reference_domain or None)

    emitted: list[findings.Finding] = []
    histogram: dict[str, int] = collections.Counter()
    for record in records:
        histogram[record.domain] += 1
        for rule in rules.RECORD_RULES:
            finding = rule(record, ctx)
            if finding is not None:
                emitted.append(finding)
    emitted.extend(rules.check_duplicates(records))

    ordered = taxonomy.sort_by_severity(emitted)
    result = analysis.AnalysisResult(
        total_cookies=len(records),
        cookies=list(records),
        findings=ordered,
        third_party_count=taxonomy.count_types(ordered, frozenset({"THIRD_PARTY_TRACKER"})),
        security_issues=taxonomy.count_types(ordered, taxonomy.SECURITY_ISSUE_TYPES),
        privacy_concerns=taxonomy.count_types(ordered, taxonomy.PRIVACY_CONCERN_TYPES),
        domain_histogram=dict(histogram),
    )

    log.debug(
        "Cookies evaluated",
        {
            "cookies": result.total_cookies,
            "findings": result.total_issues,
            "domains": len(result.domain_histogram),
            "referenceDomain": reference_domain,
        },
    )
    return result
