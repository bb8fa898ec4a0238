"""Pydantic models for analysis results, scan context and listings."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

import pydantic

from keksregal.models.cookies import CookieRecord
from keksregal.models.findings import Finding
from keksregal.utils.serialization import CAMEL_CONFIG

ScanScope = Literal["all", "current"]


class AnalysisResult(pydantic.BaseModel):
    """Everything derived from one cookie sequence by the evaluator.

    Always regenerated wholesale; the aggregate fields are
    re-derived from ``findings`` and must never be patched.
    """

    model_config = pydantic.ConfigDict(**CAMEL_CONFIG, frozen=True)

    total_cookies: int = 0
    cookies: list[CookieRecord] = pydantic.Field(default_factory=list)
    findings: list[Finding] = pydantic.Field(default_factory=list)
    third_party_count: int = 0
    security_issues: int = 0
    privacy_concerns: int = 0
    domain_histogram: dict[str, int] = pydantic.Field(default_factory=dict)

    @property
    def total_issues(self) -> int:
        """Number of findings of any type."""
        return len(self.findings)

    def status_message(self) -> str:
        """One-line scan summary shown after a scan completes."""
        return f"Found {self.total_cookies} cookies. {self.total_issues} issues detected."


class ScanContext(pydantic.BaseModel):
    """What the last scan covered and when it ran."""

    model_config = CAMEL_CONFIG

    scope: ScanScope = "all"
    domain: str | None = None
    scan_time: str = ""

    @property
    def reference_domain(self) -> str | None:
        """Domain used for third-party classification, if any."""
        return self.domain if self.scope == "current" and self.domain else None


class CookieInsights(pydantic.BaseModel):
    """Best-effort natural-language assessment of a scan."""

    model_config = CAMEL_CONFIG

    assessment: str = ""
    unusual_patterns: str = ""
    security_risks: list[str] = pydantic.Field(default_factory=list)
    recommendations: list[str] = pydantic.Field(default_factory=list)
    full_response: str = ""


class CookieListing(pydantic.BaseModel):
    """Name-sorted cookies matching a search query."""

    model_config = CAMEL_CONFIG

    cookies: list[CookieRecord] = pydantic.Field(default_factory=list)
    total: int = 0

    @property
    def shown(self) -> int:
        return len(self.cookies)


class DomainRow(pydantic.BaseModel):
    """One domain histogram entry."""

    domain: str
    count: int


class DomainListing(pydantic.BaseModel):
    """Domains ordered by cookie count, possibly truncated."""

    model_config = CAMEL_CONFIG

    rows: list[DomainRow] = pydantic.Field(default_factory=list)
    hidden_count: int = 0

    @property
    def has_more(self) -> bool:
        return self.hidden_count > 0


class DomainCookieStats(pydantic.BaseModel):
    """Flag and lifetime counts for the cookies of one domain."""

    model_config = CAMEL_CONFIG

    total: int = 0
    secure: int = 0
    http_only: int = 0
    session: int = 0
    persistent: int = 0


class ExportSummary(pydantic.BaseModel):
    """Headline counts of an exported report."""

    model_config = CAMEL_CONFIG

    total_cookies: int = 0
    third_party: int = 0
    security_issues: int = 0
    privacy_concerns: int = 0


class AnalysisExport(pydantic.BaseModel):
    """Downloadable JSON report of the current analysis.

    Cookie values are left out; the report carries the
    findings (``abnormalities``) and the domain histogram.
    """

    model_config = CAMEL_CONFIG

    scan_time: str
    summary: ExportSummary
    abnormalities: list[Finding] = pydantic.Field(default_factory=list)
    domains: dict[str, int] = pydantic.Field(default_factory=dict)

    @classmethod
    def from_result(cls, result: AnalysisResult, *, scan_time: str) -> AnalysisExport:
        return cls(
            scan_time=scan_time,
            summary=ExportSummary(
                total_cookies=result.total_cookies,
                third_party=result.third_party_count,
                security_issues=result.security_issues,
                privacy_concerns=result.privacy_concerns,
            ),
            abnormalities=list(result.findings),
            domains=dict(result.domain_histogram),
        )

    def file_name(self) -> str:
        """``cookie-analysis-<epoch ms>.json`` for the export time."""
        stamp = datetime.fromisoformat(self.scan_time)
        return f"cookie-analysis-{int(stamp.timestamp() * 1000)}.json"
