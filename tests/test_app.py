"""Tests for the HTTP API in keksregal.app."""

from __future__ import annotations

import pytest
from conftest import DAY, NOW
from fastapi.testclient import TestClient

from keksregal import app as app_module
from keksregal.services import cookie_session, record_store

RAW_COOKIES = [
    {"name": "sid", "domain": "example.com", "secure": True, "httpOnly": True},
    {"name": "sid", "domain": ".shop.example.com", "secure": False, "httpOnly": True},
    {"name": "_ga", "domain": ".tracker.net", "secure": True, "httpOnly": False, "expirationDate": NOW + 400 * DAY},
]


@pytest.fixture()
def client(state, settings):
    store = record_store.InMemoryRecordStore()
    session = cookie_session.CookieAnalysisSession(store, state, settings, clock=lambda: NOW)
    app_module.app.dependency_overrides[app_module.get_store] = lambda: store
    app_module.app.dependency_overrides[app_module.get_session] = lambda: session
    with TestClient(app_module.app) as test_client:
        yield test_client
    app_module.app.dependency_overrides.clear()


def _load_and_scan(client: TestClient, **scan: str) -> dict:
    assert client.put("/api/cookies", json=RAW_COOKIES).json() == {"count": 3}
    response = client.post("/api/scan", json=scan or {"scope": "all"})
    assert response.status_code == 200
    return response.json()


class TestScanEndpoints:
    def test_scan_returns_camel_case_result(self, client: TestClient) -> None:
        body = _load_and_scan(client)
        assert body["result"]["totalCookies"] == 3
        assert body["result"]["domainHistogram"]["example.com"] == 1
        assert body["status"].startswith("Found 3 cookies.")

    def test_scan_current_site(self, client: TestClient) -> None:
        body = _load_and_scan(client, scope="current", domain="example.com")
        assert body["result"]["totalCookies"] == 2

    def test_invalid_records_rejected(self, client: TestClient) -> None:
        response = client.put("/api/cookies", json=[{"name": "no-domain"}])
        assert response.status_code == 422
        assert "index 0" in response.json()["error"]

    def test_current_scope_without_domain(self, client: TestClient) -> None:
        response = client.post("/api/scan", json={"scope": "current"})
        assert response.status_code == 400

    def test_analysis_endpoint(self, client: TestClient) -> None:
        _load_and_scan(client)
        body = client.get("/api/analysis").json()
        assert body["context"]["scope"] == "all"
        assert body["insights"] is None


class TestViewEndpoints:
    def test_issues_page(self, client: TestClient) -> None:
        _load_and_scan(client)
        body = client.get("/api/issues").json()
        assert body["page"]["totalFiltered"] == 4
        assert len(body["page"]["items"]) == 2
        assert body["hasNext"] is True
        assert body["label"] == "Showing 1-2 of 4"

    def test_issues_filters(self, client: TestClient) -> None:
        _load_and_scan(client)
        body = client.get("/api/issues", params={"category": "security", "q": "_ga"}).json()
        assert [i["type"] for i in body["page"]["items"]] == ["MISSING_HTTPONLY"]
        assert body["state"]["category"] == "security"

    def test_page_clamped(self, client: TestClient) -> None:
        _load_and_scan(client)
        body = client.get("/api/issues", params={"page": 99}).json()
        assert body["page"]["page"] == 2

    def test_categories(self, client: TestClient) -> None:
        _load_and_scan(client)
        counts = client.get("/api/categories").json()
        assert counts["all"] == 4
        assert counts["suspicious"] == 1

    def test_listings(self, client: TestClient) -> None:
        _load_and_scan(client)
        cookies_body = client.get("/api/cookies", params={"q": "sid"}).json()
        assert cookies_body["shown"] == 2
        domains_body = client.get("/api/domains").json()
        assert len(domains_body["rows"]) == 2
        assert domains_body["hasMore"] is True
        stats = client.get("/api/domains/example.com/stats").json()
        assert stats == {"total": 2, "secure": 1, "httpOnly": 2, "session": 2, "persistent": 0}


class TestRemovals:
    def test_unconfirmed_returns_prompt(self, client: TestClient) -> None:
        _load_and_scan(client)
        response = client.post("/api/removals", json={"kind": "domain", "domain": ".tracker.net"})
        assert response.status_code == 409
        assert response.json() == {"prompt": "Delete all cookies from .tracker.net? This cannot be undone.", "requested": 1}
        assert client.get("/api/analysis").json()["result"]["totalCookies"] == 3

    def test_confirmed_removal_recomputes(self, client: TestClient) -> None:
        _load_and_scan(client)
        response = client.post("/api/removals", json={"kind": "domain", "domain": ".tracker.net", "confirm": True})
        body = response.json()
        assert response.status_code == 200
        assert body["message"] == "Successfully deleted 1 cookie"
        assert body["status"] == "Found 2 cookies. 2 issues detected."

    def test_aggregated_row_refused(self, client: TestClient) -> None:
        _load_and_scan(client)
        response = client.post("/api/removals", json={"kind": "name_on_domain", "name": "sid", "domain": "multiple"})
        assert response.status_code == 400

    def test_expiring_needs_a_bound(self, client: TestClient) -> None:
        _load_and_scan(client)
        response = client.post("/api/removals", json={"kind": "expiring", "confirm": True})
        assert response.status_code == 400

    def test_clear_problematic(self, client: TestClient) -> None:
        _load_and_scan(client)
        response = client.post("/api/removals", json={"kind": "problematic", "confirm": True})
        assert response.json()["message"] == "Successfully deleted 2 cookies"
        assert client.get("/api/analysis").json()["result"]["totalCookies"] == 1


class TestExportEndpoint:
    def test_download(self, client: TestClient) -> None:
        _load_and_scan(client)
        response = client.get("/api/export")
        assert response.status_code == 200
        assert response.headers["content-disposition"] == f'attachment; filename="cookie-analysis-{int(NOW * 1000)}.json"'
        body = response.json()
        assert body["summary"]["totalCookies"] == 3
        assert len(body["abnormalities"]) == 4
