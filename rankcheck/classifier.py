"""スポンサー（広告）判定モジュール.

検索結果 1 件の outerHTML から 4 種類のシグナルを独立に検出し、
2 つ以上そろった場合のみスポンサー枠と判定する。

  1. スポンサー文言（テキストノード / ラベルクラス）
  2. バッジコンテナ構造
  3. aria 属性
  4. 広告計測用メタデータ

単独のシグナルはレイアウト実験や翻訳、クラス名の流用で誤検出しやすい。
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from rankcheck.models import (
    PROMOTED_SIGNAL_THRESHOLD,
    ClassifiedRecord,
    RawResultRecord,
    SignalVector,
)

_I = re.IGNORECASE

# タグ間のテキストノード
_TEXT_NODE_PATTERN = re.compile(r">([^<]+)<")


def _compile(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, _I) for p in patterns)


@dataclass(frozen=True)
class PromotionPatterns:
    """各シグナルの判定パターン. 起動時に 1 度だけ生成し、以後は変更しない."""

    text_phrases: tuple[re.Pattern, ...]
    label_classes: tuple[re.Pattern, ...]
    badge_containers: tuple[re.Pattern, ...]
    aria_labels: tuple[re.Pattern, ...]
    ad_metadata: tuple[re.Pattern, ...]


DEFAULT_PATTERNS = PromotionPatterns(
    text_phrases=_compile(
        r"sponsored",
        r"प्रायोजित",  # ヒンディー語
        r"スポンサー",
        r"広告",
        r"advertisement",
        r"^\s*ad\s*$",
    ),
    label_classes=_compile(
        r"puis-sponsored-label",
        r"s-sponsored-label",
        r"sponsored-badge",
        r"sp-sponsored",
    ),
    badge_containers=_compile(
        r"s-label-popover-default",
        r"s-label-popover-hover",
        r"puis-label-popover",
        r"a-declarative.*sponsored",
        r"data-component-type=[\"']?sp-sponsored",
        r"data-component-type=[\"']?s-sponsored",
    ),
    aria_labels=_compile(
        r"aria-label=[\"'][^\"']*(?:sponsored|प्रायोजित|スポンサー)[^\"']*[\"']",
        r"aria-describedby=[\"'][^\"']*sponsored[^\"']*[\"']",
        r"role=[\"']?complementary[\"']?",
    ),
    ad_metadata=_compile(
        r"data-ad-",
        r"data-sp-",
        r"data-click-el=[\"'][^\"']*sp[^\"']*[\"']",
        r"data-csa-c-type=[\"']?sponsoredProducts[\"']?",
        r"class=[\"'][^\"']*sp-item[^\"']*[\"']",
        r"cel_widget_id=[\"'][^\"']*ADSENSE[^\"']*[\"']",
        r"cel_widget_id=[\"'][^\"']*sp_[^\"']*[\"']",
        r"sp[_-]?(?:atf|btf|mtf)",
    ),
)


def _any_match(patterns: tuple[re.Pattern, ...], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def detect_promoted_text(markup: str, patterns: PromotionPatterns = DEFAULT_PATTERNS) -> bool:
    """シグナル1: スポンサー文言のテキストノード、またはラベルクラス."""
    for node in _TEXT_NODE_PATTERN.findall(markup):
        if _any_match(patterns.text_phrases, node):
            return True
    return _any_match(patterns.label_classes, markup)


def detect_badge_container(markup: str, patterns: PromotionPatterns = DEFAULT_PATTERNS) -> bool:
    """シグナル2: スポンサーバッジを包むコンテナ構造."""
    return _any_match(patterns.badge_containers, markup)


def detect_aria_label(markup: str, patterns: PromotionPatterns = DEFAULT_PATTERNS) -> bool:
    """シグナル3: aria-label / aria-describedby / role."""
    return _any_match(patterns.aria_labels, markup)


def detect_ad_metadata(markup: str, patterns: PromotionPatterns = DEFAULT_PATTERNS) -> bool:
    """シグナル4: 広告計測用の data 属性・ウィジェット ID."""
    return _any_match(patterns.ad_metadata, markup)


def classify(markup: str, patterns: PromotionPatterns = DEFAULT_PATTERNS) -> SignalVector:
    """markup からシグナルベクトルを生成する. 同じ markup なら常に同じ結果."""
    return SignalVector(
        has_promoted_text=detect_promoted_text(markup, patterns),
        has_badge_container=detect_badge_container(markup, patterns),
        has_aria_label=detect_aria_label(markup, patterns),
        has_ad_metadata=detect_ad_metadata(markup, patterns),
    )


def is_promoted(signals: SignalVector) -> bool:
    """シグナルが 2 つ以上そろえばスポンサー."""
    return signals.signal_count >= PROMOTED_SIGNAL_THRESHOLD


def classify_record(
    record: RawResultRecord, patterns: PromotionPatterns = DEFAULT_PATTERNS
) -> ClassifiedRecord:
    """1 件のレコードにシグナル判定結果を付ける."""
    return ClassifiedRecord(record=record, signals=classify(record.markup, patterns))


def classify_records(
    records: list[RawResultRecord], patterns: PromotionPatterns = DEFAULT_PATTERNS
) -> list[ClassifiedRecord]:
    """レコードを順序を保ったまま一括判定する."""
    return [classify_record(r, patterns) for r in records]


def analyze(markup: str, patterns: PromotionPatterns = DEFAULT_PATTERNS) -> dict:
    """デバッグ用: シグナルの内訳と信頼度を返す."""
    signals = classify(markup, patterns)
    return {
        "signals": signals,
        "is_promoted": is_promoted(signals),
        "confidence": signals.confidence,
    }
