"""Pydantic models for browser cookie records and their identity."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from typing import Any, Literal

import pydantic

from keksregal.utils import errors
from keksregal.utils.serialization import CAMEL_CONFIG

SameSite = Literal["strict", "lax", "none", "unspecified"]

# Browser spellings seen in the wild, lower-cased.
_SAME_SITE_ALIASES: dict[str, SameSite] = {
    "strict": "strict",
    "lax": "lax",
    "none": "none",
    "no_restriction": "none",
    "unspecified": "unspecified",
    "": "unspecified",
}


@dataclasses.dataclass(frozen=True)
class CookieIdentity:
    """The ``(name, domain, path, secure)`` tuple that identifies a cookie.

    Two records describe the same browser entity iff all
    four fields match.
    """

    name: str
    domain: str
    path: str
    secure: bool

    @property
    def key(self) -> str:
        """Stable string form used for selection sets."""
        return f"{self.name}||{self.domain}||{self.path}||{'1' if self.secure else '0'}"

    @classmethod
    def parse(cls, key: str) -> CookieIdentity | None:
        """Parse a key produced by :attr:`key`.

        Returns ``None`` for malformed keys.
        """
        parts = key.split("||")
        if len(parts) != 4:
            return None
        name, domain, path, secure = parts
        return cls(name=name, domain=domain, path=path, secure=secure == "1")


class CookieRecord(pydantic.BaseModel):
    """A cookie as enumerated from the browser's record store.

    Optional browser fields are normalised at ingestion so the
    rules branch on present/absent rather than truthiness.
    """

    model_config = pydantic.ConfigDict(**CAMEL_CONFIG, frozen=True)

    name: str = pydantic.Field(min_length=1)
    domain: str
    path: str = "/"
    value: str | None = None
    secure: bool = False
    http_only: bool = False
    same_site: SameSite = "unspecified"
    host_only: bool = False
    expiration_date: float | None = pydantic.Field(default=None, allow_inf_nan=False)

    @pydantic.field_validator("same_site", mode="before")
    @classmethod
    def _normalise_same_site(cls, value: Any) -> SameSite:
        if value is None:
            return "unspecified"
        return _SAME_SITE_ALIASES.get(str(value).strip().lower(), "unspecified")

    @pydantic.field_validator("expiration_date", mode="before")
    @classmethod
    def _normalise_expiration(cls, value: Any) -> float | None:
        # Zero/negative expiries are how some stores mark session cookies.
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)) and value <= 0:
            return None
        return value

    @property
    def is_session(self) -> bool:
        """Whether the cookie disappears at browser-session end."""
        return self.expiration_date is None

    @property
    def value_length(self) -> int:
        """Length of the cookie value, ``0`` when absent."""
        return len(self.value) if self.value else 0

    @property
    def identity(self) -> CookieIdentity:
        """The identity tuple used for removal and selection."""
        return CookieIdentity(
            name=self.name,
            domain=self.domain,
            path=self.path,
            secure=self.secure,
        )


def ingest_records(raw_records: Iterable[Mapping[str, Any] | CookieRecord]) -> list[CookieRecord]:
    """Validate raw store output into ``CookieRecord`` instances.

    Args:
        raw_records: Dicts as returned by the browser store
            (camelCase or snake_case keys), or records that
            were already validated.

    Returns:
        Records in input order.

    Raises:
        errors.InvalidRecordError: On the first record that is
            missing ``name`` or ``domain`` or is otherwise
            malformed.
    """
    records: list[CookieRecord] = []
    for index, raw in enumerate(raw_records):
        if isinstance(raw, CookieRecord):
            records.append(raw)
            continue
        try:
            records.append(CookieRecord.model_validate(raw))
        except pydantic.ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ())) or "record"
            raise errors.InvalidRecordError(index, f"{field}: {first.get('msg', 'invalid')}") from exc
    return records
