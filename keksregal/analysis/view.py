"""
Issues view: category tabs, free-text search and pagination.

``visible_slice`` is a pure function of the findings and a
``ViewState``.  ``ViewController`` owns one state value and
applies the paging rules: changing the category or the query
goes back to page 1, paging never leaves ``[1, total_pages]``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from keksregal.analysis import query, taxonomy
from keksregal.models import findings, view


def filter_findings(
    items: Sequence[findings.Finding],
    category: view.Category = "all",
    pattern: str = "",
) -> list[findings.Finding]:
    """Apply the category tab, then the search query, then sort.

    The query is matched against the cookie name, domain,
    description and finding type.
    """
    filtered = [f for f in items if taxonomy.in_category(f, category)]
    matcher = query.compile_pattern(pattern)
    if not matcher.matches_all:
        filtered = [f for f in filtered if matcher.test_any(f.cookie_name, f.domain, f.description, f.type)]
    return taxonomy.sort_by_severity(filtered)


def total_pages_for(total: int, page_size: int) -> int:
    """Number of pages needed for *total* items, at least one."""
    return max(1, math.ceil(total / page_size))


def visible_slice(items: Sequence[findings.Finding], state: view.ViewState) -> view.IssuesPage:
    """Derive the page of findings selected by *state*.

    A page beyond the last one is clamped to the last page, so
    a non-empty filter result always yields a non-empty slice.
    """
    filtered = filter_findings(items, state.category, state.query)
    total = len(filtered)
    pages = total_pages_for(total, state.page_size)
    page = min(max(1, state.page), pages)

    start = (page - 1) * state.page_size if total else 0
    end = min(start + state.page_size, total)
    return view.IssuesPage(
        items=filtered[start:end],
        start_index=start,
        end_index=end,
        total_filtered=total,
        total_pages=pages,
        page=page,
    )


class ViewController:
    """Owns the issues ``ViewState`` and its transitions."""

    def __init__(self, state: view.ViewState | None = None, *, page_size: int | None = None) -> None:
        self._state = state.model_copy() if state is not None else view.ViewState()
        if page_size is not None:
            self._state.page_size = page_size

    @property
    def state(self) -> view.ViewState:
        """A copy of the current state, safe to persist."""
        return self._state.model_copy()

    def reset(self) -> None:
        """Return to the ``all`` tab, no query, page 1."""
        self._state = view.ViewState(page_size=self._state.page_size)

    def set_category(self, category: view.Category) -> None:
        self._state.category = category
        self._state.page = 1

    def set_query(self, text: str) -> None:
        self._state.query = text.strip()
        self._state.page = 1

    def go_to_page(self, page: int, items: Sequence[findings.Finding]) -> view.IssuesPage:
        """Jump to *page*, clamped to the available pages."""
        self._state.page = max(1, page)
        return self.current_slice(items)

    def next_page(self, items: Sequence[findings.Finding]) -> view.IssuesPage:
        current = self.current_slice(items)
        if current.has_next:
            self._state.page = current.page + 1
        return self.current_slice(items)

    def previous_page(self, items: Sequence[findings.Finding]) -> view.IssuesPage:
        current = self.current_slice(items)
        if current.has_previous:
            self._state.page = current.page - 1
        return self.current_slice(items)

    def current_slice(self, items: Sequence[findings.Finding]) -> view.IssuesPage:
        """Compute the visible slice and store the clamped page."""
        page = visible_slice(items, self._state)
        self._state.page = page.page
        return page
