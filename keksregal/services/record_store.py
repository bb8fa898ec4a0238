"""
Record store boundary.

The browser owns the cookies; the engine only enumerates and
removes them through the ``RecordStore`` protocol.
``InMemoryRecordStore`` backs the HTTP API and the tests.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from keksregal.analysis import selection
from keksregal.models import cookies
from keksregal.utils import logger

log = logger.create_logger("RecordStore")


class RecordStore(Protocol):
    """Capabilities the engine needs from the browser's cookie jar."""

    async def enumerate(self, domain_filter: str | None = None) -> list[cookies.CookieRecord]:
        """Return every cookie, optionally restricted to a domain."""
        ...

    async def remove(self, identity: cookies.CookieIdentity) -> bool:
        """Remove one cookie; ``True`` when it was removed."""
        ...


class InMemoryRecordStore:
    """A record store holding validated cookies in memory."""

    def __init__(self, records: Iterable[Mapping[str, Any] | cookies.CookieRecord] = ()) -> None:
        self._records: list[cookies.CookieRecord] = cookies.ingest_records(records)

    def replace(self, records: Iterable[Mapping[str, Any] | cookies.CookieRecord]) -> int:
        """Replace the whole jar; returns the new cookie count.

        Validation happens before anything is replaced.
        """
        self._records = cookies.ingest_records(records)
        log.info("Record store replaced", {"cookies": len(self._records)})
        return len(self._records)

    def __len__(self) -> int:
        return len(self._records)

    async def enumerate(self, domain_filter: str | None = None) -> list[cookies.CookieRecord]:
        if not domain_filter:
            return list(self._records)
        return [r for r in self._records if selection.domain_matches(r.domain, domain_filter)]

    async def remove(self, identity: cookies.CookieIdentity) -> bool:
        before = len(self._records)
        self._records = [r for r in self._records if r.identity != identity]
        return len(self._records) < before
