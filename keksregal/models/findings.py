"""Pydantic model for a single finding raised against the cookie set."""

from __future__ import annotations

from typing import Literal

import pydantic

from keksregal.utils.serialization import CAMEL_CONFIG

FindingType = Literal[
    "THIRD_PARTY_TRACKER",
    "MISSING_HTTPONLY",
    "MISSING_SECURE",
    "EXCESSIVE_LIFETIME",
    "LARGE_PAYLOAD",
    "SUSPICIOUS_ENCODING",
    "DUPLICATE_COOKIE",
]

Severity = Literal["high", "medium", "low"]

# Domain sentinel for set-level findings not tied to one domain.
MULTIPLE_DOMAINS = "multiple"


class Finding(pydantic.BaseModel):
    """A single rule violation for one record or a name group.

    Build findings through ``taxonomy.build_finding`` so the
    severity always comes from the taxonomy table.
    """

    model_config = pydantic.ConfigDict(**CAMEL_CONFIG, frozen=True)

    type: FindingType
    severity: Severity
    cookie_name: str
    domain: str
    description: str

    @property
    def is_set_level(self) -> bool:
        """Whether the finding covers several domains."""
        return self.domain == MULTIPLE_DOMAINS
