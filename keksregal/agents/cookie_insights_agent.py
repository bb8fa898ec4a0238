"""Cookie insights agent.

Sends an anonymised view of the scanned cookies plus the
deterministic findings to the LLM and returns a short
natural-language assessment.  Cookie values never leave the
process: only their length is shared.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence

import pydantic

from keksregal.agents import base, config
from keksregal.agents.prompts import cookie_insights
from keksregal.analysis import rules
from keksregal.models import analysis, cookies
from keksregal.utils import json_parsing, logger
from keksregal.utils.serialization import CAMEL_CONFIG

log = logger.create_logger("CookieInsightsAgent")

MAX_PROMPT_COOKIES = 100
MAX_PROMPT_ISSUES = 10


# ── Structured output models ───────────────────────────────────


class _InsightsResponse(pydantic.BaseModel):
    """Schema pushed to the LLM via ``response_format``."""

    model_config = CAMEL_CONFIG

    assessment: str = ""
    unusual_patterns: str = ""
    security_risks: list[str] = pydantic.Field(default_factory=list)
    recommendations: list[str] = pydantic.Field(default_factory=list)


# ── Agent class ─────────────────────────────────────────────────


class CookieInsightsAgent(base.BaseAgent):
    """Text agent producing a best-effort cookie assessment."""

    agent_name = config.AGENT_COOKIE_INSIGHTS
    instructions = cookie_insights.INSTRUCTIONS
    max_tokens = 1500
    max_retries = 3
    response_model = _InsightsResponse

    async def analyse(
        self,
        result: analysis.AnalysisResult,
        *,
        now: float,
    ) -> analysis.CookieInsights | None:
        """Assess a completed scan.

        Args:
            result: The deterministic analysis of the scan.
            now: Epoch seconds used for ``expirationDays``.

        Returns:
            The insights, or ``None`` when the LLM is not
            configured or the call fails.
        """
        if not self.is_configured:
            log.debug("Insights skipped, LLM not configured")
            return None

        log.start_timer("cookie-insights")
        log.info("Generating cookie insights...", {"cookies": result.total_cookies})
        try:
            response = await self._complete(build_prompt(result, now))
        except Exception as err:
            log.error("Failed to generate cookie insights", {"error": str(err)})
            return None
        log.end_timer("cookie-insights", "Cookie insights generated")

        text = response.text or ""
        parsed = self._parse_response(response, _InsightsResponse)
        if parsed:
            log.success("Cookie insights parsed", {"risks": len(parsed.security_risks)})
            return analysis.CookieInsights(
                **parsed.model_dump(),
                full_response=text,
            )
        return parse_text_fallback(text)


# ── Prompt ──────────────────────────────────────────────────────


def anonymise(cookie: cookies.CookieRecord, now: float) -> dict[str, object]:
    """Describe *cookie* without its value."""
    entry: dict[str, object] = {
        "name": cookie.name,
        "domain": cookie.domain,
        "path": cookie.path,
        "secure": cookie.secure,
        "httpOnly": cookie.http_only,
        "sameSite": cookie.same_site,
        "session": cookie.is_session,
        "valueLength": cookie.value_length,
    }
    days = rules.lifetime_days(cookie, now)
    if days is not None:
        entry["expirationDays"] = round(days)
    return entry


def build_prompt(result: analysis.AnalysisResult, now: float) -> str:
    """Build the user message for one scan.

    At most ``MAX_PROMPT_COOKIES`` cookies and the
    ``MAX_PROMPT_ISSUES`` most severe findings are included.
    """
    shown = [anonymise(c, now) for c in result.cookies[:MAX_PROMPT_COOKIES]]
    lines = [
        "Analyse the following browser cookies for abnormalities, security issues, and privacy concerns.",
        "",
        f"COOKIE DATA ({result.total_cookies} cookies):",
        json.dumps(shown, indent=2),
    ]
    if result.total_cookies > MAX_PROMPT_COOKIES:
        lines.append(f"(Note: Showing first {MAX_PROMPT_COOKIES} of {result.total_cookies} cookies)")
    lines.extend(
        [
            "",
            "BASIC ANALYSIS RESULTS:",
            f"- Total Cookies: {result.total_cookies}",
            f"- Third-Party Cookies: {result.third_party_count}",
            f"- Security Issues: {result.security_issues}",
            f"- Privacy Concerns: {result.privacy_concerns}",
            "",
            "TOP ISSUES DETECTED:",
        ]
    )
    lines.extend(f"- {line}" for line in top_findings(result))
    return "\n".join(lines)


def top_findings(result: analysis.AnalysisResult) -> Sequence[str]:
    """The most severe findings, one line each."""
    return [f"[{f.severity}] {f.cookie_name} ({f.domain}): {f.description}" for f in result.findings[:MAX_PROMPT_ISSUES]]


# ── Fallback parsing ────────────────────────────────────────────

_SECTION_MARKERS: tuple[tuple[str, str], ...] = (
    ("overall assessment", "assessment"),
    ("unusual patterns", "unusual"),
    ("security risks", "security"),
    ("recommendations", "recommendations"),
)
_LIST_ITEM_RE = re.compile(r"^(?:[-*]|\d+\.)\s*")


def _section_of(line: str) -> str | None:
    lowered = line.lower()
    for marker, section in _SECTION_MARKERS:
        if marker in lowered:
            return section
    return None


def parse_sections(text: str) -> analysis.CookieInsights:
    """Split a free-text answer into the four insight sections.

    A line naming a section header switches the current
    section.  Assessment and pattern lines are joined with
    spaces; risk and recommendation lines only count when
    they are list items (``-``, ``*`` or ``1.``).
    """
    prose: dict[str, list[str]] = {"assessment": [], "unusual": []}
    items: dict[str, list[str]] = {"security": [], "recommendations": []}
    current: str | None = None

    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        header = _section_of(line)
        if header is not None:
            current = header
        elif current in prose:
            prose[current].append(line)
        elif current in items and _LIST_ITEM_RE.match(line):
            items[current].append(_LIST_ITEM_RE.sub("", line, count=1))

    return analysis.CookieInsights(
        assessment=" ".join(prose["assessment"]),
        unusual_patterns=" ".join(prose["unusual"]),
        security_risks=items["security"],
        recommendations=items["recommendations"],
        full_response=text,
    )


def parse_text_fallback(text: str | None) -> analysis.CookieInsights | None:
    """Parse raw LLM text when structured output fails.

    JSON (fenced or bare) is tried first, then the section
    headers of a plain-text answer.
    """
    if not text or not text.strip():
        log.error("Empty cookie insights response")
        return None

    raw = json_parsing.load_json_from_text(text)
    if isinstance(raw, dict):
        try:
            parsed = _InsightsResponse.model_validate(raw)
        except pydantic.ValidationError as exc:
            log.warn("Insights JSON did not match schema", {"error": str(exc)})
        else:
            log.success("Cookie insights parsed (fallback)")
            return analysis.CookieInsights(**parsed.model_dump(), full_response=text)

    insights = parse_sections(text)
    log.success(
        "Cookie insights parsed from sections",
        {"risks": len(insights.security_risks), "recommendations": len(insights.recommendations)},
    )
    return insights


