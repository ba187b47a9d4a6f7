"""ページ内の順位計算モジュール.

2 回の抽出パスの統合と、オーガニック / スポンサー別の順位カウント。
"""

from __future__ import annotations

from rankcheck.models import ClassifiedRecord, PageResult


def merge_results(
    pass_a: list[ClassifiedRecord], pass_b: list[ClassifiedRecord]
) -> list[ClassifiedRecord]:
    """2 パスの抽出結果を統合する.

    パス A の順序を優先し、パス B からは未出現のものだけを末尾に追加する。
    重複判定キーは (ASIN, スポンサー判定)。同じ ASIN でも広告枠と
    オーガニック枠はそれぞれ 1 回ずつカウントする。
    """
    seen: set[tuple[str, bool]] = set()
    merged: list[ClassifiedRecord] = []

    for r in [*pass_a, *pass_b]:
        key = (r.identifier.upper(), r.is_promoted)
        if key in seen:
            continue
        seen.add(key)
        merged.append(r)

    return merged


def find_target(
    merged: list[ClassifiedRecord],
    target_id: str,
    *,
    organic: bool = True,
    promoted: bool = True,
) -> ClassifiedRecord | None:
    """対象カテゴリで最初に一致した ASIN のレコードを返す."""
    target = target_id.upper()
    for r in merged:
        if r.identifier.upper() != target:
            continue
        if (promoted and r.is_promoted) or (organic and not r.is_promoted):
            return r
    return None


def compute_ranks(merged: list[ClassifiedRecord], target_id: str) -> PageResult:
    """統合済みリストを 1 回走査し、ページ内順位を求める.

    カテゴリごとに最初に一致した時点のカウンタ値で順位を確定する。
    ページ合計は次ページ以降の累積に使うため、一致後も最後まで走査する。
    """
    target = target_id.upper()
    organic_count = 0
    promoted_count = 0
    organic_rank: int | None = None
    promoted_rank: int | None = None
    position: int | None = None

    for r in merged:
        if r.is_promoted:
            promoted_count += 1
        else:
            organic_count += 1

        if r.identifier.upper() != target:
            continue

        if r.is_promoted and promoted_rank is None:
            promoted_rank = promoted_count
        elif not r.is_promoted and organic_rank is None:
            organic_rank = organic_count
        else:
            continue

        if position is None:
            position = r.position

    found = position is not None
    return PageResult(
        found=found,
        organic_rank=organic_rank,
        promoted_rank=promoted_rank,
        position=position,
        total_results=len(merged),
        total_organic_count=organic_count,
        total_promoted_count=promoted_count,
        boundary_validated=found,
    )
