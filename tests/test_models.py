"""Tests for the pydantic models: ingestion, identity and derived fields."""

from __future__ import annotations

import pydantic
import pytest
from conftest import make_cookie

from keksregal.models import analysis, cookies, findings, removal, view
from keksregal.utils import errors


class TestCookieRecord:
    """Normalisation of optional browser fields."""

    def test_defaults(self) -> None:
        record = cookies.CookieRecord(name="a", domain="x.com")
        assert record.path == "/"
        assert record.value is None
        assert record.same_site == "unspecified"
        assert record.is_session

    def test_accepts_camel_case(self) -> None:
        record = cookies.CookieRecord.model_validate(
            {"name": "a", "domain": "x.com", "httpOnly": True, "hostOnly": True, "expirationDate": 10.5}
        )
        assert record.http_only is True
        assert record.host_only is True
        assert record.expiration_date == 10.5
        assert not record.is_session

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("no_restriction", "none"),
            ("Lax", "lax"),
            ("STRICT", "strict"),
            (None, "unspecified"),
            ("bogus", "unspecified"),
        ],
    )
    def test_same_site_normalised(self, raw: str | None, expected: str) -> None:
        assert make_cookie(sameSite=raw).same_site == expected

    @pytest.mark.parametrize("raw", [None, 0, -1])
    def test_non_positive_expiration_is_session(self, raw: float | None) -> None:
        assert make_cookie(expirationDate=raw).is_session

    def test_value_length(self) -> None:
        assert make_cookie(value="abcd").value_length == 4
        assert make_cookie().value_length == 0

    def test_frozen(self) -> None:
        record = make_cookie()
        with pytest.raises(pydantic.ValidationError):
            record.name = "other"  # type: ignore[misc]


class TestCookieIdentity:
    """Identity tuple and its string key."""

    def test_key_format(self) -> None:
        record = make_cookie("sid", ".x.com", path="/app", secure=False)
        assert record.identity.key == "sid||.x.com||/app||0"

    def test_parse_round_trip(self) -> None:
        identity = cookies.CookieIdentity("sid", "x.com", "/", True)
        assert cookies.CookieIdentity.parse(identity.key) == identity

    def test_parse_malformed(self) -> None:
        assert cookies.CookieIdentity.parse("only||three||parts") is None

    def test_secure_flag_distinguishes(self) -> None:
        a = make_cookie("sid", secure=True).identity
        b = make_cookie("sid", secure=False).identity
        assert a != b


class TestIngestRecords:
    """Validation at the record store boundary."""

    def test_valid_records_keep_order(self) -> None:
        records = cookies.ingest_records([{"name": "b", "domain": "x"}, {"name": "a", "domain": "y"}])
        assert [r.name for r in records] == ["b", "a"]

    def test_missing_domain_names_index_and_field(self) -> None:
        with pytest.raises(errors.InvalidRecordError) as exc_info:
            cookies.ingest_records([{"name": "ok", "domain": "x"}, {"name": "broken"}])
        assert exc_info.value.index == 1
        assert "domain" in exc_info.value.detail

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(errors.InvalidRecordError):
            cookies.ingest_records([{"name": "", "domain": "x"}])

    def test_invalid_record_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            cookies.ingest_records([{"domain": "x"}])

    @pytest.mark.parametrize("raw", [float("inf"), float("nan"), "Infinity", "NaN"])
    def test_non_finite_expiration_rejected(self, raw: float | str) -> None:
        with pytest.raises(errors.InvalidRecordError) as exc_info:
            cookies.ingest_records([{"name": "a", "domain": "x.com", "expirationDate": raw}])
        assert exc_info.value.index == 0
        assert "expirationDate" in exc_info.value.detail

    def test_negative_infinity_is_session(self) -> None:
        (record,) = cookies.ingest_records([{"name": "a", "domain": "x.com", "expirationDate": float("-inf")}])
        assert record.is_session

    def test_passes_through_records(self) -> None:
        record = make_cookie()
        assert cookies.ingest_records([record]) == [record]


class TestFinding:
    def test_is_set_level(self) -> None:
        finding = findings.Finding(
            type="DUPLICATE_COOKIE",
            severity="low",
            cookie_name="a",
            domain=findings.MULTIPLE_DOMAINS,
            description="x",
        )
        assert finding.is_set_level

    def test_serialises_camel_case(self) -> None:
        finding = findings.Finding(type="MISSING_SECURE", severity="high", cookie_name="a", domain="x", description="d")
        assert finding.model_dump(by_alias=True)["cookieName"] == "a"


class TestAnalysisResult:
    def test_status_message(self) -> None:
        result = analysis.AnalysisResult(total_cookies=3)
        assert result.status_message() == "Found 3 cookies. 0 issues detected."

    def test_json_round_trip(self) -> None:
        result = analysis.AnalysisResult(total_cookies=1, cookies=[make_cookie()], domain_histogram={"example.com": 1})
        restored = analysis.AnalysisResult.model_validate_json(result.model_dump_json(by_alias=True))
        assert restored == result


class TestAnalysisExport:
    def test_camel_case_document(self) -> None:
        finding = findings.Finding(
            type="MISSING_SECURE", severity="high", cookie_name="sid", domain="example.com", description="x"
        )
        result = analysis.AnalysisResult(
            total_cookies=2,
            findings=[finding],
            third_party_count=1,
            security_issues=1,
            privacy_concerns=1,
            domain_histogram={"example.com": 2},
        )
        body = analysis.AnalysisExport.from_result(result, scan_time="2026-01-01T00:00:00+00:00").model_dump(
            mode="json", by_alias=True
        )
        assert body["summary"] == {"totalCookies": 2, "thirdParty": 1, "securityIssues": 1, "privacyConcerns": 1}
        assert body["abnormalities"][0]["cookieName"] == "sid"
        assert body["domains"] == {"example.com": 2}
        assert "cookies" not in body


class TestScanContext:
    def test_reference_domain_only_for_current_scope(self) -> None:
        assert analysis.ScanContext(scope="current", domain="x.com").reference_domain == "x.com"
        assert analysis.ScanContext(scope="all", domain="x.com").reference_domain is None


class TestIssuesPage:
    def test_label_empty(self) -> None:
        assert view.IssuesPage().label == "No issues match the current filters"

    def test_label_range(self) -> None:
        page = view.IssuesPage(start_index=100, end_index=200, total_filtered=250, total_pages=3, page=2)
        assert page.label == "Showing 101-200 of 250"
        assert page.has_previous and page.has_next


class TestRemovalModels:
    def test_pluralize(self) -> None:
        assert removal.pluralize(1) == "1 cookie"
        assert removal.pluralize(2, "domain") == "2 domains"

    def test_plan_requires_confirm(self) -> None:
        plan = removal.RemovalPlan(identities=[make_cookie().identity], prompt="Delete?")
        assert not plan.confirmed
        assert plan.confirm().confirmed
        assert plan.requested == 1

    def test_report_message_success(self) -> None:
        identity = make_cookie().identity
        report = removal.RemovalReport(requested=1, removed=[identity])
        assert report.all_succeeded
        assert report.message == "Successfully deleted 1 cookie"

    def test_report_message_partial(self) -> None:
        a, b = make_cookie("a").identity, make_cookie("b").identity
        report = removal.RemovalReport(requested=2, removed=[a], failed=[b])
        assert report.message == "Deleted 1 of 2 cookies; 1 failed"
