"""エラー種別と例外定義.

検索セッション中の障害はすべて RankCheckError（またはそのサブクラス）として
送出し、リトライ制御側で ErrorKind に分類する。
"""

from __future__ import annotations

from enum import Enum

import requests


class ErrorKind(str, Enum):
    """呼び出し側に返すエラーコード."""

    BOT_BLOCKED = "bot_blocked"
    TIMEOUT = "timeout"
    PARSE_FAILED = "parse_failed"
    TARGET_NOT_FOUND = "target_not_found"
    RENDERER_LAUNCH_FAILED = "renderer_launch_failed"
    INVALID_INPUT = "invalid_input"
    UNKNOWN = "unknown"


ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.BOT_BLOCKED: "ボット判定（CAPTCHA）によりリクエストがブロックされました。",
    ErrorKind.TIMEOUT: "リクエストがタイムアウトしました。検索ページに到達できません。",
    ErrorKind.PARSE_FAILED: "検索結果のパースに失敗しました。ページ構造が変わった可能性があります。",
    ErrorKind.TARGET_NOT_FOUND: "検索対象ページ内に ASIN が見つかりませんでした。",
    ErrorKind.RENDERER_LAUNCH_FAILED: "レンダラーの起動に失敗しました。",
    ErrorKind.INVALID_INPUT: "入力が不正です。ASIN とキーワードの形式を確認してください。",
    ErrorKind.UNKNOWN: "予期しないエラーが発生しました。",
}


class RankCheckError(Exception):
    """検索順位チェックの基底例外."""

    def __init__(self, kind: ErrorKind, message: str = "") -> None:
        super().__init__(message or ERROR_MESSAGES[kind])
        self.kind = kind


class DeadlineExceeded(RankCheckError):
    """セッション全体の期限切れ. リトライしない."""

    def __init__(self, message: str = "") -> None:
        super().__init__(ErrorKind.TIMEOUT, message or "セッションの制限時間を超過しました。")


# メッセージからの推定用キーワード（先にマッチしたものを採用）
# ボット判定・レート制限で返るステータス
BLOCKED_STATUS_CODES = (429, 503)

_MESSAGE_RULES: tuple[tuple[ErrorKind, tuple[str, ...]], ...] = (
    (ErrorKind.BOT_BLOCKED, ("captcha", "robot", "automated")),
    (ErrorKind.TIMEOUT, ("timeout", "timed out", "navigation")),
    (ErrorKind.PARSE_FAILED, ("parse", "selector", "element not found")),
    (ErrorKind.RENDERER_LAUNCH_FAILED, ("browser", "chromium", "launch")),
    (ErrorKind.TARGET_NOT_FOUND, ("asin not found", "not found in results")),
)


def classify_error(exc: BaseException) -> ErrorKind:
    """例外を ErrorKind に分類する."""
    if isinstance(exc, RankCheckError):
        return exc.kind

    if isinstance(exc, (requests.Timeout, requests.ConnectionError)):
        return ErrorKind.TIMEOUT

    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        if exc.response.status_code in BLOCKED_STATUS_CODES:
            return ErrorKind.BOT_BLOCKED

    message = str(exc).lower()
    for kind, keywords in _MESSAGE_RULES:
        if any(k in message for k in keywords):
            return kind

    return ErrorKind.UNKNOWN


def error_message(kind: ErrorKind) -> str:
    """ErrorKind に対応するユーザー向けメッセージを返す."""
    return ERROR_MESSAGES.get(kind, ERROR_MESSAGES[ErrorKind.UNKNOWN])
