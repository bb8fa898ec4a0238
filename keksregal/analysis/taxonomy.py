"""
Finding taxonomy: severity and category tables.

Every finding type has exactly one severity, and category
membership is a single table lookup built once at import
time.  The issues view, the category counts and the
aggregate counters all read from these tables.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import get_args

from keksregal.models import findings, view

SEVERITY_BY_TYPE: dict[findings.FindingType, findings.Severity] = {
    "THIRD_PARTY_TRACKER": "high",
    "MISSING_HTTPONLY": "medium",
    "MISSING_SECURE": "high",
    "EXCESSIVE_LIFETIME": "medium",
    "LARGE_PAYLOAD": "low",
    "SUSPICIOUS_ENCODING": "low",
    "DUPLICATE_COOKIE": "low",
}

SEVERITY_RANK: dict[findings.Severity, int] = {"high": 0, "medium": 1, "low": 2}

# Type-based categories; "all" and "high" are added below.
TYPES_BY_CATEGORY: dict[view.Category, frozenset[findings.FindingType]] = {
    "security": frozenset({"MISSING_HTTPONLY", "MISSING_SECURE"}),
    "tracking": frozenset({"THIRD_PARTY_TRACKER"}),
    "privacy": frozenset({"THIRD_PARTY_TRACKER", "EXCESSIVE_LIFETIME", "LARGE_PAYLOAD"}),
    "suspicious": frozenset({"SUSPICIOUS_ENCODING", "DUPLICATE_COOKIE"}),
}

# Types that feed the summary counters.
SECURITY_ISSUE_TYPES: frozenset[findings.FindingType] = frozenset({"MISSING_HTTPONLY", "MISSING_SECURE"})
PRIVACY_CONCERN_TYPES: frozenset[findings.FindingType] = frozenset(
    {"THIRD_PARTY_TRACKER", "EXCESSIVE_LIFETIME", "LARGE_PAYLOAD", "SUSPICIOUS_ENCODING"}
)


def _build_category_table() -> dict[findings.FindingType, frozenset[view.Category]]:
    table: dict[findings.FindingType, frozenset[view.Category]] = {}
    for finding_type in get_args(findings.FindingType):
        categories: set[view.Category] = {"all"}
        if SEVERITY_BY_TYPE[finding_type] == "high":
            categories.add("high")
        categories.update(cat for cat, types in TYPES_BY_CATEGORY.items() if finding_type in types)
        table[finding_type] = frozenset(categories)
    return table


CATEGORIES_BY_TYPE: dict[findings.FindingType, frozenset[view.Category]] = _build_category_table()


def severity_of(finding_type: findings.FindingType) -> findings.Severity:
    """Return the single severity defined for *finding_type*."""
    return SEVERITY_BY_TYPE[finding_type]


def severity_rank(severity: findings.Severity) -> int:
    """Ordinal rank used for sorting, ``0`` being most severe."""
    return SEVERITY_RANK[severity]


def build_finding(
    finding_type: findings.FindingType,
    cookie_name: str,
    domain: str,
    description: str,
) -> findings.Finding:
    """Create a finding with its severity taken from the table."""
    return findings.Finding(
        type=finding_type,
        severity=SEVERITY_BY_TYPE[finding_type],
        cookie_name=cookie_name,
        domain=domain,
        description=description,
    )


def categories_of(finding: findings.Finding) -> frozenset[view.Category]:
    """Return every category tab the finding belongs to."""
    return CATEGORIES_BY_TYPE[finding.type]


def in_category(finding: findings.Finding, category: view.Category) -> bool:
    """Whether *finding* is listed under *category*."""
    return category in CATEGORIES_BY_TYPE[finding.type]


def sort_by_severity(items: Iterable[findings.Finding]) -> list[findings.Finding]:
    """Stable sort, high first; ties keep emission order."""
    return sorted(items, key=lambda f: SEVERITY_RANK[f.severity])


def count_types(items: Iterable[findings.Finding], types: frozenset[findings.FindingType]) -> int:
    """Count findings whose type is in *types*."""
    return sum(1 for f in items if f.type in types)


def category_counts(items: Sequence[findings.Finding]) -> dict[view.Category, int]:
    """Return one count per category tab."""
    counts: dict[view.Category, int] = dict.fromkeys(view.CATEGORIES, 0)
    for finding in items:
        for category in CATEGORIES_BY_TYPE[finding.type]:
            counts[category] += 1
    return counts
