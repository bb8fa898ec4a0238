"""Pydantic models for the issues view state and its visible slice."""

from __future__ import annotations

from typing import Literal

import pydantic

from keksregal.models import findings
from keksregal.utils.serialization import CAMEL_CONFIG

Category = Literal["all", "security", "privacy", "tracking", "suspicious", "high"]

CATEGORIES: tuple[Category, ...] = ("all", "security", "privacy", "tracking", "suspicious", "high")

DEFAULT_PAGE_SIZE = 100


class ViewState(pydantic.BaseModel):
    """Filter, search and page state of the issues view.

    Owned by exactly one ``ViewController``; persisted between
    sessions by the state store.
    """

    model_config = CAMEL_CONFIG

    category: Category = "all"
    query: str = ""
    page: int = pydantic.Field(default=1, ge=1)
    page_size: int = pydantic.Field(default=DEFAULT_PAGE_SIZE, ge=1)


class IssuesPage(pydantic.BaseModel):
    """The visible slice of filtered findings for one page.

    ``start_index`` is zero-based and inclusive, ``end_index``
    exclusive; both are ``0`` when nothing matches.
    """

    model_config = CAMEL_CONFIG

    items: list[findings.Finding] = pydantic.Field(default_factory=list)
    start_index: int = 0
    end_index: int = 0
    total_filtered: int = 0
    total_pages: int = 1
    page: int = 1

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def label(self) -> str:
        """Human range label, e.g. ``Showing 101-200 of 250``."""
        if self.total_filtered == 0:
            return "No issues match the current filters"
        return f"Showing {self.start_index + 1}-{self.end_index} of {self.total_filtered}"
