"""Amazon 検索結果のスクレイピングモジュール.

requests で検索ページの HTML を取得し、BeautifulSoup で結果要素を抽出する
レンダラー実装。JavaScript は実行しないため遅延読み込みは発生せず、
2 回目の抽出は同じ HTML からの再抽出になる。

抽出戦略:
  1. div[data-component-type="s-search-result"]（主戦略）
  2. [data-asin] を持つ任意の要素（フォールバック）
"""

from __future__ import annotations

import logging
import random
import re
import time
from typing import Callable
from urllib.parse import quote_plus

import requests
from bs4 import BeautifulSoup

from rankcheck.config import (
    REQUEST_HEADERS,
    SCROLL_DELAY_MS,
    SEARCH_URL_TEMPLATE,
    STOREFRONT_BASE_URL,
)
from rankcheck.errors import BLOCKED_STATUS_CODES, ErrorKind, RankCheckError
from rankcheck.models import RawResultRecord

logger = logging.getLogger(__name__)

PRIMARY_RESULT_SELECTOR = 'div[data-component-type="s-search-result"]'
FALLBACK_RESULT_SELECTOR = "[data-asin]"
CAPTCHA_SELECTORS = ("#captchacharacters", 'form[action*="validateCaptcha"]')

_ASIN_PATTERN = re.compile(r"^[A-Z0-9]{10}$")
_BLOCKED_TEXT_PATTERN = re.compile(
    r"enter the characters you see below|to discuss automated access|not a robot",
    re.IGNORECASE,
)
_NO_RESULTS_PATTERN = re.compile(
    r"no results for|(?<![\d,])0 results|did(?: not|n't) match any|no se encontraron|一致する商品はありませんでした",
    re.IGNORECASE,
)


def build_search_url(keyword: str, page: int, location_hint: str | None = None) -> str:
    """検索 URL を組み立てる. location_hint（ピンコード）は loc パラメータで渡す."""
    url = SEARCH_URL_TEMPLATE.format(
        base=STOREFRONT_BASE_URL, keyword=quote_plus(keyword), page=page
    )
    if location_hint:
        url += f"&loc={location_hint}"
    return url


class HttpRenderer:
    """requests ベースのレンダラー. with ブロックを抜けるとセッションを閉じる."""

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        settle_delay_ms: int = SCROLL_DELAY_MS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session = session or requests.Session()
        self._session.headers.update(REQUEST_HEADERS)
        self._settle_delay_ms = settle_delay_ms
        self._sleep = sleep
        self._soup: BeautifulSoup | None = None

    def __enter__(self) -> HttpRenderer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()
        self._soup = None

    def navigate(self, url: str, timeout_ms: int) -> None:
        """検索ページを取得する.

        Raises:
            RankCheckError: タイムアウト・接続失敗は timeout、429/503 は bot_blocked。
        """
        try:
            resp = self._session.get(url, timeout=timeout_ms / 1000)
        except (requests.Timeout, requests.ConnectionError) as e:
            logger.error("検索ページ取得失敗: url=%s, error=%s", url, e)
            raise RankCheckError(ErrorKind.TIMEOUT, f"navigation failed: {e}") from e

        if resp.status_code in BLOCKED_STATUS_CODES:
            # Amazon はボット判定時に 503、レート制限時に 429 を返す
            raise RankCheckError(
                ErrorKind.BOT_BLOCKED, f"HTTP {resp.status_code}: {url}"
            )

        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            logger.error("検索ページ取得失敗: url=%s, status=%d", url, resp.status_code)
            raise RankCheckError(ErrorKind.UNKNOWN, str(e)) from e

        self._soup = BeautifulSoup(resp.text, "html.parser")

    def _page(self) -> BeautifulSoup:
        if self._soup is None:
            raise RankCheckError(ErrorKind.PARSE_FAILED, "ページ未取得のままパースしようとしました")
        return self._soup

    def detect_blocking_page(self) -> bool:
        soup = self._page()
        if any(soup.select_one(sel) is not None for sel in CAPTCHA_SELECTORS):
            return True
        return bool(_BLOCKED_TEXT_PATTERN.search(soup.get_text(" ")[:2000]))

    def detect_no_results(self) -> bool:
        soup = self._page()
        body = soup.body or soup
        return bool(_NO_RESULTS_PATTERN.search(body.get_text(" ", strip=True)[:1000]))

    def trigger_lazy_load_settle(self) -> None:
        """スクロール後の待機に相当. 設定値の 1〜2 倍でランダムに待つ."""
        delay = self._settle_delay_ms * random.uniform(1.0, 2.0) / 1000
        self._sleep(delay)

    def extract_candidate_records(self) -> list[RawResultRecord]:
        """結果要素を抽出する. ASIN が 10 桁英数字でないものは除外."""
        soup = self._page()
        elements = soup.select(PRIMARY_RESULT_SELECTOR)
        if not elements:
            elements = soup.select(FALLBACK_RESULT_SELECTOR)

        records: list[RawResultRecord] = []
        for i, el in enumerate(elements, start=1):
            asin = (el.get("data-asin") or "").strip().upper()
            if not _ASIN_PATTERN.match(asin):
                continue
            records.append(RawResultRecord(identifier=asin, position=i, markup=str(el)))

        return records


def open_http_renderer() -> HttpRenderer:
    """RendererFactory として使うファクトリ."""
    return HttpRenderer()
