"""Tests for keksregal.utils.serialization."""

from __future__ import annotations

import pytest

from keksregal.utils.serialization import snake_to_camel


class TestSnakeToCamel:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("http_only", "httpOnly"),
            ("expiration_date", "expirationDate"),
            ("total_cookies", "totalCookies"),
            ("domain", "domain"),
            ("third_party_count", "thirdPartyCount"),
        ],
    )
    def test_conversion(self, name: str, expected: str) -> None:
        assert snake_to_camel(name) == expected
