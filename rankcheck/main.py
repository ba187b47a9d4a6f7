"""Amazon 検索順位チェック — メインエントリーポイント.

バッチ（引数なし）:
  1. DB から全商品×キーワード組み合わせを取得
  2. 各組み合わせを順番にチェック（並列実行はしない）
  3. 結果を DB に一括書き込み

単発（--asin / --keyword 指定）:
  1 件チェックして JSON を標準出力に出す。
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
import time
from datetime import datetime, timezone

from rankcheck.checker import check_rank
from rankcheck.config import ITEM_INTERVAL_MAX, ITEM_INTERVAL_MIN, LOG_DIR, ScanConfig
from rankcheck.db import get_active_product_keywords, insert_rankings
from rankcheck.models import RankCheckRequest, RankCheckResponse


def setup_logging() -> None:
    """ロギングの初期設定."""
    LOG_DIR.mkdir(exist_ok=True)
    log_file = LOG_DIR / f"rankcheck_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def wait_interval() -> None:
    """商品間の間隔を 1〜3 秒ランダムで待機する."""
    time.sleep(random.uniform(ITEM_INTERVAL_MIN, ITEM_INTERVAL_MAX))


def to_ranking_record(pk: dict, response: RankCheckResponse, searched_at: str) -> dict:
    """チェック結果を rankings テーブルの行に変換する."""
    record = {
        "product_id": pk["product_id"],
        "keyword_id": pk["keyword_id"],
        "organic_rank": None,
        "sponsored_rank": None,
        "page_found": None,
        "position_on_page": None,
        "scanned_pages": 0,
        "boundary_validated": None,
        "error_code": None,
        "searched_at": searched_at,
    }
    if response.success and response.data is not None:
        data = response.data
        record.update({
            "organic_rank": data.organic_rank,
            "sponsored_rank": data.promoted_rank,
            "page_found": data.page_found,
            "position_on_page": data.position_on_page,
            "scanned_pages": data.scanned_pages,
            "boundary_validated": data.boundary_validated,
        })
    elif response.error is not None:
        record["error_code"] = response.error.code.value
    return record


def run(config: ScanConfig | None = None) -> None:
    """バッチ処理."""
    logger = logging.getLogger(__name__)
    logger.info("=== 検索順位チェック 開始 ===")
    start_time = time.time()

    product_keywords = get_active_product_keywords()
    if not product_keywords:
        logger.warning("登録済みの商品・キーワードがありません。終了します。")
        return

    logger.info("取得した商品×キーワード組み合わせ: %d 件", len(product_keywords))

    searched_at = datetime.now(timezone.utc).isoformat()
    ranking_records: list[dict] = []
    error_count = 0

    for i, pk in enumerate(product_keywords):
        if i > 0:
            wait_interval()

        response = check_rank(
            RankCheckRequest(identifier=pk["asin"], keyword=pk["keyword"]), config
        )
        if not response.success:
            error_count += 1

        ranking_records.append(to_ranking_record(pk, response, searched_at))
        if response.success and response.data is not None:
            data = response.data
            status = (
                f"organic={data.organic_rank}, sponsored={data.promoted_rank}"
                if data.page_found else "圏外"
            )
        else:
            status = f"エラー ({response.error.code.value})"
        logger.info("  %s / %s → %s", pk["asin"], pk["keyword"], status)

    logger.info("DB 書き込み: rankings=%d 件", len(ranking_records))
    insert_rankings(ranking_records)

    elapsed = time.time() - start_time
    logger.info("=== 検索順位チェック 完了 ===")
    logger.info("チェック: %d 件, エラー: %d 件, 所要時間: %.1f 秒",
                len(product_keywords), error_count, elapsed)


def check_one(args: argparse.Namespace) -> int:
    """単発チェック. 結果 JSON を出力し、終了コードを返す."""
    request = RankCheckRequest(
        identifier=args.asin,
        keyword=args.keyword,
        check_organic=not args.sponsored_only,
        check_promoted=not args.organic_only,
        enable_location=args.pincode is not None,
        location_hint=args.pincode,
    )
    config = ScanConfig(max_pages=args.max_pages) if args.max_pages is not None else None
    response = check_rank(request, config)
    print(json.dumps(response.to_dict(), ensure_ascii=False, indent=2))
    return 0 if response.success else 1


def _positive_int(value: str) -> int:
    """1 以上の整数のみ受け付ける argparse 用の型."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"1 以上を指定してください: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Amazon 検索順位チェック")
    parser.add_argument("--asin", help="ASIN（10 桁英数字）。省略時はバッチ実行")
    parser.add_argument("--keyword", help="検索キーワード")
    parser.add_argument("--pincode", help="配送先ピンコード（6 桁）")
    parser.add_argument("--max-pages", type=_positive_int, default=None, help="走査する最大ページ数")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--organic-only", action="store_true", help="オーガニック順位のみ")
    group.add_argument("--sponsored-only", action="store_true", help="スポンサー順位のみ")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    if args.asin is None:
        run()
        return 0

    if not args.keyword:
        print("--keyword を指定してください", file=sys.stderr)
        return 2
    return check_one(args)


if __name__ == "__main__":
    sys.exit(main())
