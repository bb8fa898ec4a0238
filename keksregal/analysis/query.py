"""
Wildcard and multi-term search patterns.

A pattern is a comma-separated list of terms.  Terms holding
``*`` or ``?`` become anchored, case-insensitive wildcard
expressions; other terms are case-insensitive substring tests.
A value matches when any term matches.  Compilation never
fails: every other regex metacharacter is escaped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field


@dataclass(frozen=True)
class _Term:
    text: str
    regex: re.Pattern[str] | None = None

    def test(self, value: str) -> bool:
        if self.regex is not None:
            return self.regex.fullmatch(value) is not None
        return self.text in value.lower()


def _compile_term(term: str) -> _Term:
    lowered = term.lower()
    if "*" not in lowered and "?" not in lowered:
        return _Term(text=lowered)
    expr = re.escape(lowered).replace(r"\*", ".*").replace(r"\?", ".")
    return _Term(text=lowered, regex=re.compile(expr, re.IGNORECASE | re.DOTALL))


@dataclass(frozen=True)
class Matcher:
    """Compiled search pattern.

    An instance with no terms matches everything.
    """

    pattern: str = ""
    terms: tuple[_Term, ...] = field(default_factory=tuple)

    @property
    def matches_all(self) -> bool:
        return not self.terms

    def test(self, value: str | None) -> bool:
        """Whether *value* matches any term.

        Absent values match only the match-all pattern.
        """
        if not self.terms:
            return True
        if value is None:
            return False
        return any(term.test(value) for term in self.terms)

    def test_any(self, *values: str | None) -> bool:
        """Whether any of several candidate fields matches."""
        if not self.terms:
            return True
        return any(self.test(v) for v in values if v is not None)


def compile_pattern(pattern: str | None) -> Matcher:
    """Compile a search pattern into a ``Matcher``.

    A blank pattern compiles to match-all.  A pattern made only
    of separators (``","``) is kept as a single substring term.
    """
    stripped = (pattern or "").strip()
    if not stripped:
        return Matcher()

    parts = [part.strip() for part in stripped.split(",")]
    terms = tuple(_compile_term(part) for part in parts if part)
    if not terms:
        terms = (_Term(text=stripped.lower()),)
    return Matcher(pattern=stripped, terms=terms)
