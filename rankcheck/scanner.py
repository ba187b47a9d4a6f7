"""ページ走査モジュール — 1 試行分の複数ページ検索.

各ページで:
  1. 遷移 → ブロック判定 → 0 件判定
  2. 抽出（パス A）→ 遅延読み込み待ち → 抽出（パス B）
  3. スポンサー判定 → 統合 → 順位計算 → 境界検証
見つかった時点で前ページまでの累積件数を加算して返す。
"""

from __future__ import annotations

import logging
import random
import time
from contextlib import AbstractContextManager, ExitStack
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from rankcheck.boundary import validate_hit
from rankcheck.classifier import classify_records
from rankcheck.config import PAGE_INTERVAL_MAX, PAGE_INTERVAL_MIN, ScanConfig
from rankcheck.errors import ErrorKind, RankCheckError
from rankcheck.models import (
    AggregateRankResult,
    ClassifiedRecord,
    PageResult,
    RawResultRecord,
)
from rankcheck.ranking import compute_ranks, find_target, merge_results
from rankcheck.retry import Deadline

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    """検索ページを取得・抽出するレンダラー."""

    def navigate(self, url: str, timeout_ms: int) -> None: ...

    def detect_blocking_page(self) -> bool: ...

    def detect_no_results(self) -> bool: ...

    def trigger_lazy_load_settle(self) -> None: ...

    def extract_candidate_records(self) -> list[RawResultRecord]: ...


# 呼び出すたびに新しいレンダラーを返す。with を抜けると解放される
RendererFactory = Callable[[], AbstractContextManager[Renderer]]
UrlBuilder = Callable[[str, int, Optional[str]], str]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def scan_page(renderer: Renderer) -> list[ClassifiedRecord]:
    """遷移済みのページから 2 パス抽出し、判定・統合したリストを返す."""
    try:
        pass_a = classify_records(renderer.extract_candidate_records())
        renderer.trigger_lazy_load_settle()
        pass_b = classify_records(renderer.extract_candidate_records())
    except RankCheckError:
        raise
    except Exception as e:
        raise RankCheckError(ErrorKind.PARSE_FAILED, f"検索結果の抽出に失敗: {e}") from e

    merged = merge_results(pass_a, pass_b)
    if not merged:
        raise RankCheckError(ErrorKind.PARSE_FAILED, "検索結果の要素が見つかりません")

    logger.info(
        "抽出: パスA=%d 件, パスB=%d 件, 統合後=%d 件",
        len(pass_a), len(pass_b), len(merged),
    )
    return merged


def evaluate_page(
    merged: list[ClassifiedRecord],
    identifier: str,
    *,
    check_organic: bool = True,
    check_promoted: bool = True,
) -> tuple[PageResult, ClassifiedRecord | None]:
    """ページ内順位を計算し、チェック対象外カテゴリの一致を除外する."""
    page = compute_ranks(merged, identifier)
    organic = page.organic_rank if check_organic else None
    promoted = page.promoted_rank if check_promoted else None
    target = find_target(
        merged, identifier, organic=organic is not None, promoted=promoted is not None
    )
    if target is None:
        return replace(
            page, found=False, organic_rank=None, promoted_rank=None,
            position=None, boundary_validated=False,
        ), None
    return replace(
        page, organic_rank=organic, promoted_rank=promoted, position=target.position
    ), target


class PageScanner:
    """1 試行分の複数ページ走査."""

    def __init__(
        self,
        config: ScanConfig,
        url_builder: UrlBuilder,
        *,
        deadline: Deadline | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config
        self.url_builder = url_builder
        self.deadline = deadline or Deadline(None)
        self._sleep = sleep
        self._rng = rng or random.Random()

    def scan(
        self,
        renderer: Renderer,
        identifier: str,
        keyword: str,
        *,
        check_organic: bool = True,
        check_promoted: bool = True,
        location_hint: str | None = None,
    ) -> AggregateRankResult:
        # 累積カウンタは試行ごとに 0 から
        cumulative_organic = 0
        cumulative_promoted = 0
        total_scanned = 0
        scanned_pages = 0

        for page_num in range(1, self.config.max_pages + 1):
            self.deadline.check(f"{page_num} ページ目")

            url = self.url_builder(keyword, page_num, location_hint)
            logger.info("ページ %d 取得: %s", page_num, url)
            renderer.navigate(url, self.config.per_page_timeout_ms)
            scanned_pages = page_num

            if renderer.detect_blocking_page():
                raise RankCheckError(ErrorKind.BOT_BLOCKED, "CAPTCHA ページを検出しました")

            if renderer.detect_no_results():
                if page_num == 1:
                    logger.info("検索結果 0 件: keyword=%s", keyword)
                    return self._not_found(identifier, keyword, total_scanned, scanned_pages)
                logger.info("ページ %d に結果なし。走査を終了します", page_num)
                break

            page, target = evaluate_page(
                scan_page(renderer), identifier,
                check_organic=check_organic, check_promoted=check_promoted,
            )
            total_scanned += page.total_results

            if page.found:
                validated, confidence = validate_hit(
                    identifier, target.markup, page.position, page.total_results
                )
                page = replace(page, boundary_validated=validated)
                return AggregateRankResult(
                    identifier=identifier,
                    keyword=keyword,
                    organic_rank=(
                        cumulative_organic + page.organic_rank
                        if page.organic_rank is not None else None
                    ),
                    promoted_rank=(
                        cumulative_promoted + page.promoted_rank
                        if page.promoted_rank is not None else None
                    ),
                    page_found=page_num,
                    position_on_page=page.position,
                    total_results_scanned=total_scanned,
                    scanned_pages=scanned_pages,
                    timestamp=_now_iso(),
                    boundary_validated=page.boundary_validated,
                    boundary_confidence=confidence,
                )

            cumulative_organic += page.total_organic_count
            cumulative_promoted += page.total_promoted_count

            if page_num < self.config.max_pages:
                self._sleep(self._rng.uniform(PAGE_INTERVAL_MIN, PAGE_INTERVAL_MAX))

        return self._not_found(identifier, keyword, total_scanned, scanned_pages)

    def _not_found(
        self, identifier: str, keyword: str, total_scanned: int, scanned_pages: int
    ) -> AggregateRankResult:
        return AggregateRankResult(
            identifier=identifier,
            keyword=keyword,
            organic_rank=None,
            promoted_rank=None,
            page_found=None,
            position_on_page=None,
            total_results_scanned=total_scanned,
            scanned_pages=scanned_pages,
            timestamp=_now_iso(),
        )


def run_attempt(
    renderer_factory: RendererFactory,
    scanner: PageScanner,
    identifier: str,
    keyword: str,
    **scan_options,
) -> AggregateRankResult:
    """新しいレンダラーを取得して 1 試行を実行する. レンダラーは必ず解放する."""
    with ExitStack() as stack:
        try:
            renderer = stack.enter_context(renderer_factory())
        except RankCheckError:
            raise
        except Exception as e:
            raise RankCheckError(
                ErrorKind.RENDERER_LAUNCH_FAILED, f"レンダラー起動失敗: {e}"
            ) from e

        return scanner.scan(renderer, identifier, keyword, **scan_options)
