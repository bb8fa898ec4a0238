"""Pydantic models for confirmed cookie removal batches."""

from __future__ import annotations

import pydantic

from keksregal.models import cookies
from keksregal.utils.serialization import CAMEL_CONFIG


def pluralize(count: int, noun: str = "cookie") -> str:
    """Format ``count noun`` with an English plural suffix."""
    return f"{count} {noun}{'' if count == 1 else 's'}"


class RemovalPlan(pydantic.BaseModel):
    """A destructive batch waiting for explicit confirmation.

    No removal call may be issued until :meth:`confirm` has
    been called on the plan.
    """

    model_config = CAMEL_CONFIG

    identities: list[cookies.CookieIdentity] = pydantic.Field(default_factory=list)
    prompt: str
    confirmed: bool = False

    @property
    def requested(self) -> int:
        return len(self.identities)

    @property
    def is_empty(self) -> bool:
        return not self.identities

    def confirm(self) -> RemovalPlan:
        """Mark the plan as confirmed and return it."""
        self.confirmed = True
        return self


class RemovalReport(pydantic.BaseModel):
    """Outcome of one removal batch."""

    model_config = CAMEL_CONFIG

    requested: int = 0
    removed: list[cookies.CookieIdentity] = pydantic.Field(default_factory=list)
    failed: list[cookies.CookieIdentity] = pydantic.Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.removed)

    @property
    def all_succeeded(self) -> bool:
        return self.succeeded == self.requested

    @property
    def message(self) -> str:
        """Single summary message for the whole batch."""
        if self.all_succeeded:
            return f"Successfully deleted {pluralize(self.succeeded)}"
        return f"Deleted {self.succeeded} of {pluralize(self.requested)}; {len(self.failed)} failed"
