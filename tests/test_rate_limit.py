import pytest
from fastapi import HTTPException
from sqlalchemy.orm import Session

from apollo.db import RateLimitRecord
from apollo.rate_limit import RateLimiter, enforce_rate_limit, hash_text, rate_limit_key

START = 1_700_000_000.0


class Clock:
    def __init__(self, now: float = START) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def limiter(db_session: Session, clock: Clock) -> RateLimiter:
    return RateLimiter(db_session, clock=clock)


def test_hash_text_is_sha256_prefix() -> None:
    assert hash_text("abc") == "ba7816bf8f01cfea"
    assert len(rate_limit_key("203.0.113.9", "publishToon")) == 16


def test_fixed_window_allows_up_to_max_then_denies(limiter: RateLimiter, clock: Clock) -> None:
    results = [limiter.check("203.0.113.9", "generateStoryboard", 5, 60) for _ in range(5)]
    assert all(result.allowed for result in results)
    assert [result.remaining for result in results] == [4, 3, 2, 1, 0]

    clock.advance(20)
    denied = limiter.check("203.0.113.9", "generateStoryboard", 5, 60)
    assert not denied.allowed
    assert denied.remaining == 0
    assert denied.retry_after_seconds == 40


def test_fixed_window_resets_only_after_window_elapses(limiter: RateLimiter, clock: Clock) -> None:
    limiter.check("203.0.113.9", "publishToon", 1, 60)

    clock.advance(60)
    assert not limiter.check("203.0.113.9", "publishToon", 1, 60).allowed

    clock.advance(1)
    reset = limiter.check("203.0.113.9", "publishToon", 1, 60)
    assert reset.allowed
    assert reset.remaining == 0


def test_actions_and_identities_are_counted_separately(limiter: RateLimiter) -> None:
    assert limiter.check("203.0.113.9", "publishToon", 1).allowed
    assert limiter.check("203.0.113.9", "generateStoryboard", 1).allowed
    assert limiter.check("198.51.100.1", "publishToon", 1).allowed
    assert not limiter.check("203.0.113.9", "publishToon", 1).allowed


def test_records_are_keyed_by_hash_only(limiter: RateLimiter, db_session: Session) -> None:
    limiter.check("203.0.113.9", "publishToon", 3)

    keys = [record.key for record in db_session.query(RateLimitRecord).all()]
    assert keys == [rate_limit_key("203.0.113.9", "publishToon")]
    assert "203.0.113.9" not in keys[0]


def test_dual_window_minute_limit_then_day_limit(limiter: RateLimiter, clock: Clock) -> None:
    anon = hash_text("8b2a7d3e-1c4f-4a9b-9e2d-5f6a7b8c9d0e")

    allowed = [limiter.check_dual(anon, "comment", 3, 5) for _ in range(3)]
    assert all(result.allowed for result in allowed)
    assert [(r.remaining_minute, r.remaining_day) for r in allowed] == [(2, 4), (1, 3), (0, 2)]

    clock.advance(10)
    minute_denied = limiter.check_dual(anon, "comment", 3, 5)
    assert not minute_denied.allowed
    assert minute_denied.error_type == "minute"
    assert minute_denied.retry_after_seconds == 50

    # the minute window resets, the day window keeps counting
    clock.advance(51)
    after_reset = limiter.check_dual(anon, "comment", 3, 5)
    assert after_reset.allowed
    assert after_reset.remaining_minute == 2
    assert after_reset.remaining_day == 1

    clock.advance(1)
    assert limiter.check_dual(anon, "comment", 3, 5).allowed

    clock.advance(1)
    day_denied = limiter.check_dual(anon, "comment", 3, 5)
    assert not day_denied.allowed
    assert day_denied.error_type == "day"
    assert day_denied.remaining_day == 0
    assert day_denied.retry_after_seconds == 24 * 60 * 60 - 63


def test_dual_window_reports_minute_when_both_windows_are_exhausted(limiter: RateLimiter) -> None:
    assert limiter.check_dual("anon-hash", "comment", 1, 1).allowed

    denied = limiter.check_dual("anon-hash", "comment", 1, 1)
    assert not denied.allowed
    assert denied.error_type == "minute"


def test_denied_requests_do_not_consume_quota(limiter: RateLimiter, clock: Clock, db_session: Session) -> None:
    limiter.check_dual("anon-hash", "comment", 1, 10)
    limiter.check_dual("anon-hash", "comment", 1, 10)
    limiter.check_dual("anon-hash", "comment", 1, 10)

    record = db_session.get(RateLimitRecord, rate_limit_key("anon-hash", "comment"))
    assert record is not None
    assert record.count == 1
    assert record.day_count == 1


def test_dual_window_day_resets_after_a_day(limiter: RateLimiter, clock: Clock) -> None:
    assert limiter.check_dual("anon-hash", "comment", 5, 1).allowed
    clock.advance(120)
    assert limiter.check_dual("anon-hash", "comment", 5, 1).error_type == "day"

    clock.advance(24 * 60 * 60)
    assert limiter.check_dual("anon-hash", "comment", 5, 1).allowed


def test_enforce_rate_limit_raises_429_with_retry_after(limiter: RateLimiter, clock: Clock) -> None:
    enforce_rate_limit(limiter, "203.0.113.9", "publishToon", 1, 60)
    clock.advance(15.5)

    with pytest.raises(HTTPException) as exc_info:
        enforce_rate_limit(limiter, "203.0.113.9", "publishToon", 1, 60)

    assert exc_info.value.status_code == 429
    assert exc_info.value.headers == {"Retry-After": "45"}
