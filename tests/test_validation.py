"""validation モジュールのユニットテスト."""

import pytest

from rankcheck.models import RankCheckRequest
from rankcheck.validation import (
    ValidationError,
    normalize_identifier,
    normalize_keyword,
    normalize_location_hint,
    validate_request,
)


class TestNormalizeIdentifier:
    """normalize_identifier のテスト."""

    def test_uppercase_and_trim(self):
        assert normalize_identifier("  b09g9fphy6 ") == "B09G9FPHY6"

    @pytest.mark.parametrize("value", ["", "B09G9FPHY", "B09G9FPHY67", "B09G9-PHY6", None])
    def test_rejected(self, value):
        with pytest.raises(ValidationError):
            normalize_identifier(value)


class TestNormalizeKeyword:
    """normalize_keyword のテスト."""

    def test_trim(self):
        assert normalize_keyword("  wireless earbuds ") == "wireless earbuds"

    def test_length_bounds(self):
        assert normalize_keyword("ab") == "ab"
        assert normalize_keyword("a" * 200) == "a" * 200
        with pytest.raises(ValidationError):
            normalize_keyword(" a ")
        with pytest.raises(ValidationError):
            normalize_keyword("a" * 201)

    @pytest.mark.parametrize("keyword", [
        "<script>alert(1)</script>",
        "javascript:alert(1)",
        "earbuds onclick=x",
        "data:text/html,x",
        "VBScript:msgbox",
    ])
    def test_injection_rejected(self, keyword):
        with pytest.raises(ValidationError):
            normalize_keyword(keyword)

    @pytest.mark.parametrize("keyword", [
        "iphone = 15",
        "usb data: cable",
        "one = one",
        "moonlight lamp",
    ])
    def test_ordinary_keyword_allowed(self, keyword):
        assert normalize_keyword(keyword) == keyword

    def test_non_ascii_allowed(self):
        assert normalize_keyword("ワイヤレスイヤホン") == "ワイヤレスイヤホン"


class TestLocationHint:
    """normalize_location_hint のテスト."""

    def test_disabled(self):
        assert normalize_location_hint(False, "400001") is None

    def test_valid(self):
        assert normalize_location_hint(True, " 560001 ") == "560001"

    @pytest.mark.parametrize("pincode", ["012345", "40001", "4000011", "abcdef"])
    def test_invalid(self, pincode):
        with pytest.raises(ValidationError):
            normalize_location_hint(True, pincode)


class TestValidateRequest:
    """validate_request のテスト."""

    def test_returns_normalized_copy(self):
        request = RankCheckRequest(identifier="b09g9fphy6", keyword=" earbuds ")
        validated = validate_request(request)
        assert validated.identifier == "B09G9FPHY6"
        assert validated.keyword == "earbuds"
        assert request.identifier == "b09g9fphy6"

    def test_no_category(self):
        request = RankCheckRequest(
            identifier="B09G9FPHY6", keyword="earbuds", check_organic=False, check_promoted=False
        )
        with pytest.raises(ValidationError):
            validate_request(request)
