"""Supabase データベース操作モジュール.

全テーブルは SUPABASE_SCHEMA（既定 rank_tracker）スキーマに配置。
Supabase client のスキーマ指定は .schema() で行う。
"""

from __future__ import annotations

import logging
from functools import lru_cache

from supabase import Client, create_client

from rankcheck.config import SUPABASE_SCHEMA, SUPABASE_SECRET_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _get_client() -> Client:
    """初回利用時にクライアントを生成する."""
    if not SUPABASE_URL or not SUPABASE_SECRET_KEY:
        raise RuntimeError("SUPABASE_URL / SUPABASE_SECRET_KEY が未設定です")
    return create_client(SUPABASE_URL, SUPABASE_SECRET_KEY)


def _table(name: str):
    """設定スキーマのテーブルを参照する."""
    return _get_client().schema(SUPABASE_SCHEMA).table(name)


def get_active_product_keywords() -> list[dict]:
    """全商品×キーワードの組み合わせを取得する.

    Returns:
        [
            {
                "product_keyword_id": uuid,
                "product_id": uuid,
                "keyword_id": uuid,
                "asin": str,
                "keyword": str,
                "display_name": str | None,
            },
            ...
        ]
    """
    resp = (
        _table("product_keywords")
        .select(
            "id, product_id, keyword_id, "
            "products:product_id(asin, display_name), "
            "keywords:keyword_id(keyword)"
        )
        .execute()
    )

    results = []
    for row in resp.data:
        product = row.get("products", {}) or {}
        keyword = row.get("keywords", {}) or {}
        results.append({
            "product_keyword_id": row["id"],
            "product_id": row["product_id"],
            "keyword_id": row["keyword_id"],
            "asin": product.get("asin", ""),
            "keyword": keyword.get("keyword", ""),
            "display_name": product.get("display_name"),
        })

    return results


def insert_rankings(records: list[dict]) -> None:
    """順位レコードを一括挿入する.

    Args:
        records: [{"product_id", "keyword_id", "organic_rank", "sponsored_rank",
                   "page_found", "position_on_page", "scanned_pages",
                   "boundary_validated", "error_code", "searched_at"}, ...]
    """
    if not records:
        return
    _table("rankings").insert(records).execute()
    logger.info("rankings に %d 件挿入", len(records))
