"""設定モジュール — 環境変数・定数定義."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# .env はプロジェクトルートに配置
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")


def _env_int(name: str, default: int) -> int:
    """環境変数を整数で取得する. 未設定・空文字なら default."""
    value = os.environ.get(name, "").strip()
    return int(value) if value else default


# --- Supabase ---
SUPABASE_URL: str = os.environ.get("SUPABASE_URL", "")
SUPABASE_SECRET_KEY: str = os.environ.get("SUPABASE_SECRET_KEY", "")
SUPABASE_SCHEMA: str = os.environ.get("SUPABASE_SCHEMA", "rank_tracker")

# --- Amazon 検索 ---
STOREFRONT_BASE_URL: str = os.environ.get("STOREFRONT_BASE_URL", "https://www.amazon.in").rstrip("/")
SEARCH_URL_TEMPLATE = "{base}/s?k={keyword}&page={page}"

# --- User-Agent ---
PC_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)
REQUEST_HEADERS = {
    "User-Agent": PC_USER_AGENT,
    "Accept-Language": "en-IN,en;q=0.9,hi;q=0.8",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

# --- 検索セッション設定 ---
MAX_PAGES = _env_int("MAX_PAGES", 2)
MAX_RETRIES = _env_int("MAX_RETRIES", 1)
BASE_BACKOFF_MS = _env_int("BASE_BACKOFF_MS", 1000)
MAX_BACKOFF_MS = _env_int("MAX_BACKOFF_MS", 8000)
PER_PAGE_TIMEOUT_MS = _env_int("PER_PAGE_TIMEOUT_MS", 20000)
SCROLL_DELAY_MS = _env_int("SCROLL_DELAY_MS", 500)
SESSION_DEADLINE_SECONDS = _env_int("SESSION_DEADLINE_SECONDS", 0)  # 0 = 無制限

# リトライ対象のエラー種別（カンマ区切り）
RETRYABLE_ERRORS: tuple[str, ...] = tuple(
    code.strip()
    for code in os.environ.get("RETRYABLE_ERRORS", "bot_blocked,timeout,parse_failed").split(",")
    if code.strip()
)

# --- リクエスト間隔 ---
PAGE_INTERVAL_MIN = 0.5  # ページ間（秒）
PAGE_INTERVAL_MAX = 1.0
ITEM_INTERVAL_MIN = 1.0  # バッチの商品間（秒）
ITEM_INTERVAL_MAX = 3.0

# --- 入力制約 ---
KEYWORD_MIN_LENGTH = 2
KEYWORD_MAX_LENGTH = 200

# --- ログ ---
LOG_DIR = _PROJECT_ROOT / "logs"


@dataclass(frozen=True)
class ScanConfig:
    """1 セッション分の検索設定."""

    max_pages: int = MAX_PAGES
    max_retries: int = MAX_RETRIES
    base_backoff_ms: int = BASE_BACKOFF_MS
    max_backoff_ms: int = MAX_BACKOFF_MS
    per_page_timeout_ms: int = PER_PAGE_TIMEOUT_MS
    scroll_delay_ms: int = SCROLL_DELAY_MS
    session_deadline_seconds: int = SESSION_DEADLINE_SECONDS  # 0 = 無制限
    retryable_errors: tuple[str, ...] = RETRYABLE_ERRORS
