"""Fixed-window and dual-window admission control on transactional counters.

Counters live in the ``rate_limits`` table, one row per
``hash(identity + action)``. Every check runs as one transaction: the row is
read with ``SELECT ... FOR UPDATE``, the next state is computed in Python and
written back before commit, so two concurrent requests for the same key can
never both take the last slot. A concurrent first insert surfaces as an
``IntegrityError`` and the check is re-run against the row the other request
created.
"""

from __future__ import annotations

import hashlib
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from apollo.db import RateLimitRecord
from apollo.log_config import logger

MINUTE_MS = 60 * 1000
DAY_MS = 24 * 60 * 60 * 1000
MAX_TRANSACTION_ATTEMPTS = 3

WindowType = Literal["minute", "day"]


def hash_text(text: str) -> str:
    """First 16 hex chars of the SHA-256 digest of ``text``."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def rate_limit_key(identity: str, action: str) -> str:
    return hash_text(identity + action)


def _retry_after_seconds(window_ms: int, window_start_ms: int, now_ms: int) -> int:
    return max(1, math.ceil((window_ms - (now_ms - window_start_ms)) / 1000))


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after_seconds: int | None = None


@dataclass(frozen=True)
class DualRateLimitResult:
    allowed: bool
    remaining_minute: int
    remaining_day: int
    error_type: WindowType | None = None
    retry_after_seconds: int | None = None


class RateLimiter:
    """Admission checks backed by the ``rate_limits`` table."""

    def __init__(self, db: Session, clock: Callable[[], float] = time.time) -> None:
        self.db = db
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _locked_record(self, key: str) -> RateLimitRecord | None:
        return (
            self.db.query(RateLimitRecord)
            .filter(RateLimitRecord.key == key)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def _commit(self) -> bool:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return False
        return True

    def check(self, identity: str, action: str, max_requests: int, window_seconds: int = 60) -> RateLimitResult:
        """Single fixed window: ``max_requests`` per ``window_seconds`` for one identity/action pair."""
        key = rate_limit_key(identity, action)
        window_ms = window_seconds * 1000

        for _ in range(MAX_TRANSACTION_ATTEMPTS):
            now_ms = self._now_ms()
            record = self._locked_record(key)

            if record is None:
                self.db.add(RateLimitRecord(key=key, count=1, window_start_ms=now_ms))
                result = RateLimitResult(allowed=True, remaining=max_requests - 1)
            elif now_ms - record.window_start_ms > window_ms:
                record.count = 1
                record.window_start_ms = now_ms
                result = RateLimitResult(allowed=True, remaining=max_requests - 1)
            elif record.count >= max_requests:
                self.db.rollback()
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    retry_after_seconds=_retry_after_seconds(window_ms, record.window_start_ms, now_ms),
                )
            else:
                record.count += 1
                result = RateLimitResult(allowed=True, remaining=max_requests - record.count)

            if self._commit():
                return result

        msg = f"Rate limit transaction for '{action}' did not settle"
        raise RuntimeError(msg)

    def check_dual(
        self,
        identity_hash: str,
        action: str,
        per_minute: int,
        per_day: int,
    ) -> DualRateLimitResult:
        """Minute and day windows checked together; the minute window is checked first."""
        key = rate_limit_key(identity_hash, action)

        for _ in range(MAX_TRANSACTION_ATTEMPTS):
            now_ms = self._now_ms()
            record = self._locked_record(key)

            if record is None:
                record = RateLimitRecord(key=key, count=0, window_start_ms=now_ms, day_count=0, day_window_start_ms=now_ms)
                self.db.add(record)

            if now_ms - record.window_start_ms > MINUTE_MS:
                record.count = 0
                record.window_start_ms = now_ms
            if record.day_window_start_ms is None or now_ms - record.day_window_start_ms > DAY_MS:
                record.day_count = 0
                record.day_window_start_ms = now_ms
            day_count = record.day_count or 0

            if record.count >= per_minute:
                result = DualRateLimitResult(
                    allowed=False,
                    remaining_minute=0,
                    remaining_day=max(0, per_day - day_count),
                    error_type="minute",
                    retry_after_seconds=_retry_after_seconds(MINUTE_MS, record.window_start_ms, now_ms),
                )
            elif day_count >= per_day:
                result = DualRateLimitResult(
                    allowed=False,
                    remaining_minute=max(0, per_minute - record.count),
                    remaining_day=0,
                    error_type="day",
                    retry_after_seconds=_retry_after_seconds(DAY_MS, record.day_window_start_ms, now_ms),
                )
            else:
                record.count += 1
                record.day_count = day_count + 1
                result = DualRateLimitResult(
                    allowed=True,
                    remaining_minute=per_minute - record.count,
                    remaining_day=per_day - record.day_count,
                )

            if self._commit():
                return result

        msg = f"Rate limit transaction for '{action}' did not settle"
        raise RuntimeError(msg)


def enforce_rate_limit(
    limiter: RateLimiter,
    identity: str,
    action: str,
    max_requests: int,
    window_seconds: int = 60,
) -> RateLimitResult:
    """Run a fixed-window check and raise 429 when the caller is over the limit."""
    result = limiter.check(identity, action, max_requests, window_seconds)
    if not result.allowed:
        logger.info("Rate limit exceeded action=%s key=%s", action, rate_limit_key(identity, action))
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again shortly.",
            headers={"Retry-After": str(result.retry_after_seconds or window_seconds)},
        )
    return result
