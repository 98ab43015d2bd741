import asyncio

import pytest

from guild_templater.config import RetryPolicy
from guild_templater.outcome import Err, Ok
from guild_templater.retry import backoff_delay_ms, run_with_retry
from tests.fakes import FakeClock


def _scripted(outcomes):
    calls = {"count": 0}

    async def operation():
        outcome = outcomes[calls["count"]]
        calls["count"] += 1
        return outcome

    return operation, calls


def test_first_success_returns_without_sleeping() -> None:
    clock = FakeClock()
    operation, calls = _scripted([Ok("guild-1")])

    result = asyncio.run(run_with_retry(operation, RetryPolicy(), sleep=clock.sleep))

    assert result.outcome == Ok("guild-1")
    assert result.attempts == 1
    assert result.retries == 0
    assert calls["count"] == 1
    assert clock.sleeps == []


def test_recovers_after_transient_failures_with_exponential_backoff() -> None:
    clock = FakeClock()
    operation, _ = _scripted([Err("busy"), Err("busy"), Ok("done")])

    result = asyncio.run(
        run_with_retry(operation, RetryPolicy(max_attempts=3, retry_delay_ms=1000), sleep=clock.sleep)
    )

    assert result.outcome.ok
    assert result.attempts == 3
    assert clock.sleeps == [1.0, 2.0]


def test_all_attempts_fail_surfaces_last_reason_and_skips_final_delay() -> None:
    clock = FakeClock()
    operation, calls = _scripted([Err("first"), Err("second"), Err("third")])

    result = asyncio.run(run_with_retry(operation, RetryPolicy(max_attempts=3), sleep=clock.sleep))

    assert result.outcome == Err("third")
    assert result.attempts == 3
    assert calls["count"] == 3
    assert len(clock.sleeps) == 2


def test_linear_backoff_waits_the_same_delay() -> None:
    clock = FakeClock()
    operation, _ = _scripted([Err("a"), Err("b"), Err("c"), Ok("d")])
    policy = RetryPolicy(max_attempts=4, retry_delay_ms=500, exponential_backoff=False)

    asyncio.run(run_with_retry(operation, policy, sleep=clock.sleep))

    assert clock.sleeps == [0.5, 0.5, 0.5]


def test_exponential_backoff_is_capped() -> None:
    clock = FakeClock()
    operation, _ = _scripted([Err("a"), Err("b"), Ok("c")])
    policy = RetryPolicy(max_attempts=3, retry_delay_ms=4000)

    asyncio.run(run_with_retry(operation, policy, sleep=clock.sleep))

    assert clock.sleeps == [4.0, 5.0]


def test_on_retry_hook_sees_each_failed_attempt_but_the_last() -> None:
    clock = FakeClock()
    seen = []
    operation, _ = _scripted([Err("a"), Err("b"), Err("c")])

    asyncio.run(
        run_with_retry(
            operation,
            RetryPolicy(max_attempts=3),
            sleep=clock.sleep,
            on_retry=lambda attempt, reason: seen.append((attempt, reason)),
        )
    )

    assert seen == [(1, "a"), (2, "b")]


def test_single_attempt_policy_never_sleeps() -> None:
    clock = FakeClock()
    operation, _ = _scripted([Err("nope")])

    result = asyncio.run(run_with_retry(operation, RetryPolicy(max_attempts=1), sleep=clock.sleep))

    assert result.outcome == Err("nope")
    assert clock.sleeps == []


def test_rejects_policy_without_attempts() -> None:
    operation, _ = _scripted([Ok("x")])
    with pytest.raises(ValueError):
        asyncio.run(run_with_retry(operation, RetryPolicy(max_attempts=0)))


@pytest.mark.parametrize(
    "attempt, exponential, expected",
    [
        (1, True, 1000),
        (2, True, 2000),
        (3, True, 4000),
        (4, True, 5000),
        (3, False, 1000),
    ],
)
def test_backoff_delay(attempt: int, exponential: bool, expected: int) -> None:
    policy = RetryPolicy(retry_delay_ms=1000, exponential_backoff=exponential)
    assert backoff_delay_ms(policy, attempt) == expected
