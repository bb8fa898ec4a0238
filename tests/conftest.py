"""Shared fixtures for the test suite."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from keksregal import config
from keksregal.models import cookies
from keksregal.services import record_store, state_store

NOW = 1_767_225_600.0  # 2026-01-01T00:00:00Z
DAY = 86_400


def make_cookie(name: str = "session_id", domain: str = "example.com", **fields: Any) -> cookies.CookieRecord:
    """Build a validated cookie, secure and HttpOnly unless overridden."""
    data: dict[str, Any] = {"name": name, "domain": domain, "secure": True, "httpOnly": True}
    data.update(fields)
    return cookies.CookieRecord.model_validate(data)


# ── Record Factories ────────────────────────────────────────────


@pytest.fixture()
def cookie_factory() -> Callable[..., cookies.CookieRecord]:
    return make_cookie


@pytest.fixture()
def sample_cookie() -> cookies.CookieRecord:
    """A well-configured first-party session cookie."""
    return make_cookie(value="abc123", sameSite="lax")


@pytest.fixture()
def tracking_cookie() -> cookies.CookieRecord:
    """A long-lived, insecure analytics cookie on another site."""
    return make_cookie(
        name="_ga",
        domain=".tracker.net",
        value="GA1.2.123456789.1234567890",
        secure=False,
        httpOnly=False,
        sameSite="no_restriction",
        expirationDate=NOW + 730 * DAY,
    )


@pytest.fixture()
def mixed_records() -> list[cookies.CookieRecord]:
    """A small jar over three domains with one duplicated name."""
    return [
        make_cookie("sid", "example.com", value="s1"),
        make_cookie("sid", ".shop.example.com", value="s2", secure=False),
        make_cookie("_ga", ".tracker.net", httpOnly=False, expirationDate=NOW + 400 * DAY),
        make_cookie("pref", "example.com", httpOnly=False, expirationDate=NOW + 30 * DAY),
        make_cookie("blob", "cdn.other.org", value="x" * 5000),
    ]


# ── Services ────────────────────────────────────────────────────


class FlakyRecordStore(record_store.InMemoryRecordStore):
    """In-memory store whose removals fail for chosen cookie names."""

    def __init__(self, records: Any = (), *, fail_names: set[str] | None = None, refuse_names: set[str] | None = None) -> None:
        super().__init__(records)
        self.fail_names = fail_names or set()
        self.refuse_names = refuse_names or set()
        self.removed: list[cookies.CookieIdentity] = []

    async def remove(self, identity: cookies.CookieIdentity) -> bool:
        if identity.name in self.fail_names:
            raise RuntimeError(f"cannot remove {identity.name}")
        if identity.name in self.refuse_names:
            return False
        self.removed.append(identity)
        return await super().remove(identity)


class BrokenRecordStore(record_store.InMemoryRecordStore):
    """A store whose enumeration always fails."""

    async def enumerate(self, domain_filter: str | None = None) -> list[cookies.CookieRecord]:
        raise ConnectionError("cookie store unavailable")


@pytest.fixture()
def state(tmp_path) -> state_store.StateStore:
    return state_store.StateStore(tmp_path / "state")


@pytest.fixture()
def settings(tmp_path) -> config.EngineSettings:
    return config.EngineSettings(state_dir=tmp_path / "state", enable_ai=False, page_size=2, domain_list_limit=2)
