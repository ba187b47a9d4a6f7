"""検索順位チェックのエントリーポイント.

入力検証 → リトライ制御 → ページ走査 をつなぎ、
成功結果か構造化エラーのどちらか一方を返す。
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable

from rankcheck.config import ScanConfig
from rankcheck.errors import ErrorKind, RankCheckError, error_message
from rankcheck.models import ErrorInfo, RankCheckRequest, RankCheckResponse
from rankcheck.retry import Deadline, RetryController, RetryPolicy
from rankcheck.scanner import PageScanner, RendererFactory, UrlBuilder, run_attempt
from rankcheck.scraper import build_search_url, open_http_renderer
from rankcheck.validation import ValidationError, validate_request

logger = logging.getLogger(__name__)


def error_response(kind: ErrorKind, message: str | None = None) -> RankCheckResponse:
    """失敗応答を作る. message 省略時は種別ごとの定型メッセージ."""
    return RankCheckResponse(
        success=False,
        error=ErrorInfo(code=kind, message=message or error_message(kind)),
    )


def check_rank(
    request: RankCheckRequest,
    config: ScanConfig | None = None,
    *,
    renderer_factory: RendererFactory = open_http_renderer,
    url_builder: UrlBuilder = build_search_url,
    sleep: Callable[[float], None] = time.sleep,
    rng: random.Random | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> RankCheckResponse:
    """1 件の ASIN × キーワードの順位をチェックする."""
    config = config or ScanConfig()

    try:
        request = validate_request(request)
    except ValidationError as e:
        logger.warning("入力不正: %s", e)
        return error_response(ErrorKind.INVALID_INPUT, str(e))

    logger.info("順位チェック開始: asin=%s, keyword=%s", request.identifier, request.keyword)

    deadline = Deadline(config.session_deadline_seconds or None, clock)
    rng = rng or random.Random()
    controller = RetryController(
        RetryPolicy.from_config(config), deadline=deadline, sleep=sleep, rng=rng
    )
    scanner = PageScanner(config, url_builder, deadline=deadline, sleep=sleep, rng=rng)

    try:
        result = controller.run(
            lambda _attempt: run_attempt(
                renderer_factory,
                scanner,
                request.identifier,
                request.keyword,
                check_organic=request.check_organic,
                check_promoted=request.check_promoted,
                location_hint=request.location_hint,
            )
        )
    except RankCheckError as e:
        logger.error(
            "順位チェック失敗: asin=%s, kind=%s, attempts=%d",
            request.identifier, e.kind.value, controller.state.attempt,
        )
        return error_response(e.kind)

    logger.info(
        "順位チェック完了: asin=%s, organic=%s, sponsored=%s, page=%s",
        request.identifier, result.organic_rank, result.promoted_rank, result.page_found,
    )
    return RankCheckResponse(success=True, data=result)
