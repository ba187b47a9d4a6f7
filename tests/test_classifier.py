"""classifier モジュールのユニットテスト."""

import pytest

from rankcheck.classifier import (
    analyze,
    classify,
    classify_record,
    detect_ad_metadata,
    detect_aria_label,
    detect_badge_container,
    detect_promoted_text,
    is_promoted,
)
from rankcheck.models import RawResultRecord, SignalVector


class TestPromotedText:
    """シグナル1（スポンサー文言）のテスト."""

    @pytest.mark.parametrize("text", ["Sponsored", "प्रायोजित", "スポンサー", "Advertisement", " Ad "])
    def test_text_node(self, text):
        assert detect_promoted_text(f"<div><span>{text}</span></div>") is True

    def test_label_class(self):
        assert detect_promoted_text('<span class="puis-sponsored-label-text"></span>') is True

    def test_attribute_only_is_not_text(self):
        """属性値に含まれるだけではテキストノード扱いしないこと."""
        assert detect_promoted_text('<div title="sponsored"><span>Earbuds</span></div>') is False

    def test_word_containing_ad(self):
        assert detect_promoted_text("<button>Add to cart</button>") is False


class TestOtherSignals:
    """シグナル2〜4 のテスト."""

    def test_badge_container(self):
        assert detect_badge_container('<div class="s-label-popover-default"></div>') is True
        assert detect_badge_container('<div data-component-type="sp-sponsored-result"></div>') is True
        assert detect_badge_container('<div data-component-type="s-search-result"></div>') is False

    def test_aria_label(self):
        assert detect_aria_label('<a aria-label="Sponsored Ad"></a>') is True
        assert detect_aria_label('<a aria-describedby="sponsored-info"></a>') is True
        assert detect_aria_label('<aside role="complementary"></aside>') is True
        assert detect_aria_label('<a aria-label="Add to cart"></a>') is False

    def test_ad_metadata(self):
        assert detect_ad_metadata('<div data-ad-feedback-id="1"></div>') is True
        assert detect_ad_metadata('<div data-csa-c-type="sponsoredProducts"></div>') is True
        assert detect_ad_metadata('<div cel_widget_id="MAIN-SEARCH_RESULTS-sp_atf"></div>') is True
        assert detect_ad_metadata('<div cel_widget_id="MAIN-SEARCH_RESULTS-3"></div>') is False


class TestClassify:
    """classify / is_promoted のテスト."""

    def test_organic(self, organic_html):
        signals = classify(organic_html("B09G9FPHY6"))
        assert signals.signal_count == 0
        assert is_promoted(signals) is False

    def test_sponsored(self, sponsored_html):
        signals = classify(sponsored_html("B0CX23V2ZK"))
        assert signals.has_promoted_text
        assert signals.has_badge_container
        assert signals.has_aria_label
        assert signals.signal_count >= 2
        assert is_promoted(signals) is True

    def test_single_signal_is_organic(self):
        """シグナル 1 つだけではスポンサー判定しないこと."""
        signals = classify('<div data-asin="B09G9FPHY6"><span>Sponsored</span></div>')
        assert signals.signal_count == 1
        assert is_promoted(signals) is False

    @pytest.mark.parametrize("flags, expected", [
        ((False, False, False, False), False),
        ((True, False, False, False), False),
        ((True, True, False, False), True),
        ((False, True, False, True), True),
        ((True, True, True, False), True),
        ((True, True, True, True), True),
    ])
    def test_threshold(self, flags, expected):
        vector = SignalVector(*flags)
        assert is_promoted(vector) is expected
        assert vector.is_promoted is expected

    def test_deterministic(self, sponsored_html):
        markup = sponsored_html("B0CX23V2ZK")
        assert classify(markup) == classify(markup)

    def test_classify_record(self, sponsored_html):
        record = RawResultRecord("B0CX23V2ZK", 1, sponsored_html("B0CX23V2ZK"))
        classified = classify_record(record)
        assert classified.record is record
        assert classified.is_promoted is True


class TestAnalyze:
    """analyze のテスト."""

    def test_confidence(self, sponsored_html):
        result = analyze(sponsored_html("B0CX23V2ZK"))
        assert result["is_promoted"] is True
        assert result["confidence"] == result["signals"].signal_count / 4

    def test_organic_confidence(self, organic_html):
        assert analyze(organic_html("B09G9FPHY6"))["confidence"] == 0.0
