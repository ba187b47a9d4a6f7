"""境界検証モジュール.

ページ先頭・末尾の各 3 件は並び替えの揺れや差し込みウィジェットによる
誤検出が起きやすいため、対象 ASIN がこの範囲で見つかった場合に追加の
構造チェックを行う。検証に失敗しても一致自体は取り消さず、
boundary_validated=False として呼び出し側に返す。
"""

from __future__ import annotations

import logging
import re
from typing import Callable

from rankcheck.models import BoundaryChecks, BoundaryValidationResult

logger = logging.getLogger(__name__)

BOUNDARY_FIRST = 3
BOUNDARY_LAST = 3
MIN_MARKUP_LENGTH = 500  # これより短い断片はプレースホルダとみなす
MAX_IDENTIFIER_OCCURRENCES = 5
VALID_CHECK_THRESHOLD = 3

_LINK_PATTERN = re.compile(r"<a[^>]*href", re.IGNORECASE)
_QUICK_CONTENT_PATTERN = re.compile(r"price|rating|title", re.IGNORECASE)

_STRUCTURE_PATTERNS = (
    re.compile(r"a[^>]*href=[\"'][^\"']*/dp/", re.IGNORECASE),  # 商品ページリンク
    re.compile(r"<img[^>]+src", re.IGNORECASE),
    re.compile(r"a[^>]*href|button|input", re.IGNORECASE),
)

_CONTENT_PATTERNS = (
    re.compile(r"class=[\"'][^\"']*price[^\"']*[\"']", re.IGNORECASE),
    re.compile(r"class=[\"'][^\"']*title[^\"']*[\"']", re.IGNORECASE),
    re.compile(r"class=[\"'][^\"']*rating[^\"']*[\"']", re.IGNORECASE),
    re.compile(r"prime", re.IGNORECASE),
    re.compile(r"delivery|shipping", re.IGNORECASE),
)

# 検索結果ではない差し込みウィジェット
_INJECTION_PATTERNS = (
    re.compile(r"editorial[_-]?reco", re.IGNORECASE),
    re.compile(r"video[_-]?widget", re.IGNORECASE),
    re.compile(r"brand[_-]?story", re.IGNORECASE),
    re.compile(r"deals[_-]?widget", re.IGNORECASE),
    re.compile(r"similar[_-]?items", re.IGNORECASE),
    re.compile(r"related[_-]?search", re.IGNORECASE),
    re.compile(r"frequently[_-]?bought", re.IGNORECASE),
)


def is_boundary_zone(position: int, total_results: int) -> bool:
    """先頭 3 件または末尾 3 件なら True."""
    if position <= BOUNDARY_FIRST:
        return True
    return total_results > 0 and position > total_results - BOUNDARY_LAST


def quick_validate(target_id: str, markup: str) -> bool:
    """軽量チェック: ASIN・リンク・主要コンテンツの有無."""
    if target_id not in markup:
        return False
    if not _LINK_PATTERN.search(markup):
        return False
    return bool(_QUICK_CONTENT_PATTERN.search(markup))


def _check_identifier_match(target_id: str, markup: str) -> bool:
    pattern = re.compile(rf"data-asin=[\"']?{re.escape(target_id)}[\"']?", re.IGNORECASE)
    if not pattern.search(markup):
        return False
    # 出現回数が多すぎる場合は別商品の参照として埋め込まれている
    occurrences = markup.count(target_id)
    return 1 <= occurrences <= MAX_IDENTIFIER_OCCURRENCES


def _check_structural_integrity(markup: str) -> bool:
    return sum(1 for p in _STRUCTURE_PATTERNS if p.search(markup)) >= 2


def _check_content_presence(markup: str) -> bool:
    return sum(1 for p in _CONTENT_PATTERNS if p.search(markup)) >= 2


def _check_not_injection(markup: str) -> bool:
    if any(p.search(markup) for p in _INJECTION_PATTERNS):
        return False
    return len(markup) >= MIN_MARKUP_LENGTH


def _run_check(name: str, check: Callable[[], bool]) -> bool:
    """個別チェックの例外は失敗扱いにして握りつぶす."""
    try:
        return bool(check())
    except Exception:
        logger.warning("境界チェック %s で例外発生。失敗として扱います", name, exc_info=True)
        return False


def full_validate(
    target_id: str, markup: str, position: int, total_results: int
) -> BoundaryValidationResult:
    """4 項目の検証を行い、3 項目以上通過で有効とする."""
    checks = BoundaryChecks(
        identifier_match=_run_check(
            "identifier_match", lambda: _check_identifier_match(target_id, markup)
        ),
        structural_integrity=_run_check(
            "structural_integrity", lambda: _check_structural_integrity(markup)
        ),
        content_presence=_run_check(
            "content_presence", lambda: _check_content_presence(markup)
        ),
        not_injection=_run_check("not_injection", lambda: _check_not_injection(markup)),
    )
    passed = checks.passed()
    logger.debug(
        "境界検証: asin=%s, position=%d/%d, passed=%d/4",
        target_id, position, total_results, passed,
    )
    return BoundaryValidationResult(
        is_valid=passed >= VALID_CHECK_THRESHOLD,
        confidence=passed / 4,
        checks=checks,
    )


def validate_hit(
    target_id: str, markup: str, position: int, total_results: int
) -> tuple[bool, float]:
    """一致したレコードを検証し (validated, confidence) を返す.

    境界範囲外なら検証不要で (True, 1.0)。
    軽量チェックを通過すれば (True, 1.0)、失敗時のみ詳細検証を行う。
    """
    if not is_boundary_zone(position, total_results):
        return True, 1.0
    if _run_check("quick", lambda: quick_validate(target_id, markup)):
        return True, 1.0

    result = full_validate(target_id, markup, position, total_results)
    if not result.is_valid:
        logger.warning(
            "境界検証失敗: asin=%s, position=%d, confidence=%.2f",
            target_id, position, result.confidence,
        )
    return result.is_valid, result.confidence
