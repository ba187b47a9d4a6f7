"""データモデル定義."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from rankcheck.errors import ErrorKind

# 2 シグナル以上でスポンサー判定
PROMOTED_SIGNAL_THRESHOLD = 2
SIGNAL_TOTAL = 4


@dataclass(frozen=True)
class RawResultRecord:
    """抽出パスで取得した検索結果 1 件."""

    identifier: str  # ASIN（10 桁英数字）
    position: int  # 抽出パス内の位置（1始まり）
    markup: str  # 要素の outerHTML


@dataclass(frozen=True)
class SignalVector:
    """スポンサー判定の 4 シグナル."""

    has_promoted_text: bool = False
    has_badge_container: bool = False
    has_aria_label: bool = False
    has_ad_metadata: bool = False

    @property
    def signal_count(self) -> int:
        """検出されたシグナルの数（0〜4）."""
        return sum((
            self.has_promoted_text,
            self.has_badge_container,
            self.has_aria_label,
            self.has_ad_metadata,
        ))

    @property
    def is_promoted(self) -> bool:
        return self.signal_count >= PROMOTED_SIGNAL_THRESHOLD

    @property
    def confidence(self) -> float:
        return self.signal_count / SIGNAL_TOTAL


@dataclass(frozen=True)
class ClassifiedRecord:
    """スポンサー判定済みの検索結果."""

    record: RawResultRecord
    signals: SignalVector

    @property
    def identifier(self) -> str:
        return self.record.identifier

    @property
    def position(self) -> int:
        return self.record.position

    @property
    def markup(self) -> str:
        return self.record.markup

    @property
    def is_promoted(self) -> bool:
        return self.signals.is_promoted


@dataclass(frozen=True)
class PageResult:
    """1 ページ分の順位計算結果."""

    found: bool
    organic_rank: int | None  # ページ内のオーガニック順位
    promoted_rank: int | None  # ページ内のスポンサー順位
    position: int | None  # 抽出時の位置
    total_results: int
    total_organic_count: int
    total_promoted_count: int
    boundary_validated: bool


@dataclass(frozen=True)
class BoundaryChecks:
    """境界検証の個別チェック結果."""

    identifier_match: bool = False
    structural_integrity: bool = False
    content_presence: bool = False
    not_injection: bool = False

    def passed(self) -> int:
        """通過したチェック項目の数."""
        return sum((
            self.identifier_match,
            self.structural_integrity,
            self.content_presence,
            self.not_injection,
        ))


@dataclass(frozen=True)
class BoundaryValidationResult:
    is_valid: bool
    confidence: float  # 0..1
    checks: BoundaryChecks


@dataclass
class AggregateRankResult:
    """1 セッションの最終結果."""

    identifier: str
    keyword: str
    organic_rank: int | None  # None = 圏外
    promoted_rank: int | None
    page_found: int | None
    position_on_page: int | None
    total_results_scanned: int
    scanned_pages: int
    timestamp: str  # ISO 8601
    boundary_validated: bool | None = None  # None = 未検出
    boundary_confidence: float | None = None


@dataclass(frozen=True)
class RetrySessionState:
    """リトライ状態."""

    attempt: int = 0
    last_error: ErrorKind | None = None
    total_delay_ms: int = 0
    should_retry: bool = False
    last_delay_ms: int = 0  # 次の待機時間


@dataclass
class RankCheckRequest:
    """順位チェックの入力."""

    identifier: str
    keyword: str
    check_organic: bool = True
    check_promoted: bool = True
    enable_location: bool = False
    location_hint: str | None = None  # ピンコード（6 桁）


@dataclass
class ErrorInfo:
    code: ErrorKind
    message: str


@dataclass
class RankCheckResponse:
    """順位チェックの出力. success / error のどちらか一方."""

    success: bool
    data: AggregateRankResult | None = None
    error: ErrorInfo | None = None

    def to_dict(self) -> dict:
        out: dict = {"success": self.success}
        if self.data is not None:
            out["data"] = asdict(self.data)
        if self.error is not None:
            out["error"] = {"code": self.error.code.value, "message": self.error.message}
        return out
