"""リトライ制御モジュール.

1 セッション（最大 N ページの走査）を 1 回の試行とし、失敗時は指数バックオフ
＋ジッターで試行全体をやり直す。状態遷移:

  IDLE → ATTEMPTING → SUCCEEDED
                    → AWAITING_BACKOFF → ATTEMPTING
                    → FAILED
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, TypeVar

from rankcheck.config import ScanConfig
from rankcheck.errors import DeadlineExceeded, ErrorKind, RankCheckError, classify_error
from rankcheck.models import RetrySessionState

logger = logging.getLogger(__name__)

T = TypeVar("T")

JITTER_MAX_MS = 500


class SessionPhase(str, Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    AWAITING_BACKOFF = "awaiting_backoff"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class RetryPolicy:
    """リトライ設定."""

    max_retries: int = 1
    base_backoff_ms: int = 1000
    max_backoff_ms: int = 8000
    retryable_errors: frozenset[ErrorKind] = frozenset({
        ErrorKind.BOT_BLOCKED,
        ErrorKind.TIMEOUT,
        ErrorKind.PARSE_FAILED,
    })

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @classmethod
    def from_config(cls, config: ScanConfig) -> RetryPolicy:
        return cls(
            max_retries=config.max_retries,
            base_backoff_ms=config.base_backoff_ms,
            max_backoff_ms=config.max_backoff_ms,
            retryable_errors=frozenset(ErrorKind(code) for code in config.retryable_errors),
        )


def is_retryable(kind: ErrorKind, policy: RetryPolicy) -> bool:
    return kind in policy.retryable_errors


def calculate_backoff(
    attempt_index: int, policy: RetryPolicy, rng: random.Random | None = None
) -> int:
    """待機時間（ミリ秒）= min(base * 2^attempt + jitter(0〜500ms), max)."""
    rng = rng or random
    exponential = policy.base_backoff_ms * (2 ** attempt_index)
    jitter = int(rng.random() * JITTER_MAX_MS)
    return min(exponential + jitter, policy.max_backoff_ms)


def update_retry_state(
    state: RetrySessionState,
    kind: ErrorKind,
    policy: RetryPolicy,
    rng: random.Random | None = None,
    *,
    final: bool = False,
) -> RetrySessionState:
    """失敗 1 回分の状態を進める. 待機時間はここで 1 度だけ決める.

    final=True（制限時間超過など）の場合は種別にかかわらずリトライしない。
    """
    attempt = state.attempt + 1
    should_retry = (
        not final and is_retryable(kind, policy) and attempt < policy.max_attempts
    )
    delay = calculate_backoff(attempt - 1, policy, rng) if should_retry else 0
    return replace(
        state,
        attempt=attempt,
        last_error=kind,
        total_delay_ms=state.total_delay_ms + delay,
        should_retry=should_retry,
        last_delay_ms=delay,
    )


class Deadline:
    """セッション全体の制限時間. seconds が None / 0 なら無制限."""

    def __init__(
        self, seconds: float | None, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._clock = clock
        self._expires_at = clock() + seconds if seconds else None

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return self._expires_at - self._clock()

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, before: str) -> None:
        """期限切れなら DeadlineExceeded を送出する."""
        if self.expired():
            raise DeadlineExceeded(f"制限時間超過のため {before} を中止しました")


class RetryController:
    """試行のリトライ制御（状態機械）."""

    def __init__(
        self,
        policy: RetryPolicy,
        *,
        deadline: Deadline | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.policy = policy
        self.deadline = deadline or Deadline(None)
        self._sleep = sleep
        self._rng = rng
        self.phase = SessionPhase.IDLE
        self.state = RetrySessionState()

    def run(self, attempt: Callable[[int], T]) -> T:
        """attempt(試行番号) を成功するか打ち切るまで繰り返す.

        Raises:
            RankCheckError: FAILED に遷移した場合。kind は最後の障害。
        """
        attempt_index = 0
        while True:
            try:
                self.deadline.check(f"試行 {attempt_index + 1}")
                self.phase = SessionPhase.ATTEMPTING
                logger.info("試行 %d/%d 開始", attempt_index + 1, self.policy.max_attempts)
                result = attempt(attempt_index)
            except Exception as e:
                kind = classify_error(e)
                expired = isinstance(e, DeadlineExceeded)
                self.state = update_retry_state(
                    self.state, kind, self.policy, self._rng, final=expired
                )
                logger.warning(
                    "試行 %d 失敗: kind=%s, error=%s", attempt_index + 1, kind.value, e
                )

                if not self.state.should_retry:
                    self.phase = SessionPhase.FAILED
                    if isinstance(e, RankCheckError):
                        raise
                    raise RankCheckError(kind, str(e)) from e

                self.phase = SessionPhase.AWAITING_BACKOFF
                logger.info("%d ms 待機後にリトライします", self.state.last_delay_ms)
                self._sleep(self.state.last_delay_ms / 1000)
                attempt_index += 1
                continue

            self.phase = SessionPhase.SUCCEEDED
            return result
