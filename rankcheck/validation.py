"""入力検証・正規化."""

from __future__ import annotations

import re
from dataclasses import replace

from rankcheck.config import KEYWORD_MAX_LENGTH, KEYWORD_MIN_LENGTH
from rankcheck.models import RankCheckRequest

IDENTIFIER_PATTERN = re.compile(r"^[A-Z0-9]{10}$")
PINCODE_PATTERN = re.compile(r"^[1-9][0-9]{5}$")

# スクリプト注入とみなすパターン
_INJECTION_PATTERNS = (
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"\bdata:\s*[\w/+-]+[;,]", re.IGNORECASE),
    re.compile(r"\bon[a-z]{3,}\s*=", re.IGNORECASE),  # onclick= などのイベント属性
)


class ValidationError(ValueError):
    """入力不正. メッセージはそのまま呼び出し側に返す."""


def normalize_identifier(identifier: str) -> str:
    """ASIN を前後空白除去・大文字化し、10 桁英数字か検証する."""
    if not isinstance(identifier, str) or not identifier.strip():
        raise ValidationError("ASIN は必須です")
    normalized = identifier.strip().upper()
    if not IDENTIFIER_PATTERN.match(normalized):
        raise ValidationError("ASIN は 10 桁の英数字で指定してください")
    return normalized


def normalize_keyword(keyword: str) -> str:
    """前後の空白を除去し、長さと注入パターンを検証する."""
    if not isinstance(keyword, str):
        raise ValidationError("キーワードは必須です")
    normalized = keyword.strip()
    if len(normalized) < KEYWORD_MIN_LENGTH:
        raise ValidationError(f"キーワードは {KEYWORD_MIN_LENGTH} 文字以上で指定してください")
    if len(normalized) > KEYWORD_MAX_LENGTH:
        raise ValidationError(f"キーワードは {KEYWORD_MAX_LENGTH} 文字以内で指定してください")
    if any(p.search(normalized) for p in _INJECTION_PATTERNS):
        raise ValidationError("キーワードに使用できない文字列が含まれています")
    return normalized


def normalize_location_hint(enable_location: bool, location_hint: str | None) -> str | None:
    """位置指定が有効な場合のみピンコードを検証して返す."""
    if not enable_location or not location_hint:
        return None
    pincode = str(location_hint).strip()
    if not PINCODE_PATTERN.match(pincode):
        raise ValidationError("ピンコードの形式が不正です（6 桁の数字）")
    return pincode


def validate_request(request: RankCheckRequest) -> RankCheckRequest:
    """リクエストを検証し、正規化済みのコピーを返す.

    Raises:
        ValidationError: 入力が不正な場合。
    """
    if not (request.check_organic or request.check_promoted):
        raise ValidationError("オーガニック・スポンサーの少なくとも一方をチェック対象にしてください")

    return replace(
        request,
        identifier=normalize_identifier(request.identifier),
        keyword=normalize_keyword(request.keyword),
        location_hint=normalize_location_hint(request.enable_location, request.location_hint),
    )
