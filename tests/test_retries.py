import pytest

from zonesweep.core.retries import AsyncRetries, NoAttemptsLeftError


class Flaky:
    def __init__(self, failures: int, exc: type[BaseException] = OSError) -> None:
        self.failures = failures
        self.exc = exc
        self.calls = 0

    async def __call__(self, value: str = "ok") -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc(f"failure {self.calls}")
        return value


async def test_unbounded_by_default():
    retries = AsyncRetries(retry_on=(OSError,))
    flaky = Flaky(failures=50)

    assert not retries.is_bounded
    assert await retries.call_with_retries(flaky, "done") == "done"
    assert flaky.calls == 51


async def test_attempts_bound_the_loop():
    retries = AsyncRetries(retry_on=(OSError,), attempts=3)
    flaky = Flaky(failures=10)

    with pytest.raises(NoAttemptsLeftError, match="3 attempts") as info:
        await retries.call_with_retries(flaky)

    assert flaky.calls == 3
    assert isinstance(info.value.__cause__, OSError)


async def test_deadline_bounds_the_loop():
    retries = AsyncRetries(retry_on=(OSError,), deadline=0)
    flaky = Flaky(failures=10)

    with pytest.raises(NoAttemptsLeftError):
        await retries.call_with_retries(flaky)

    assert flaky.calls == 1


async def test_unlisted_exceptions_propagate():
    retries = AsyncRetries(retry_on=(OSError,))
    flaky = Flaky(failures=1, exc=KeyError)

    with pytest.raises(KeyError):
        await retries.call_with_retries(flaky)

    assert flaky.calls == 1


async def test_decorator():
    flaky = Flaky(failures=2)

    @AsyncRetries(retry_on=(OSError,), attempts=5)
    async def wrapped(value: str) -> str:
        return await flaky(value)

    assert await wrapped("decorated") == "decorated"
    assert flaky.calls == 3
    assert wrapped.__name__ == "wrapped"


@pytest.mark.parametrize(
    ("backoff", "attempt_no", "expected"),
    [
        ("linear", 1, 0.5),
        ("linear", 3, 1.5),
        ("expo", 1, 0.5),
        ("expo", 3, 2.0),
    ],
)
def test_delay_strategies(backoff, attempt_no, expected):
    retries = AsyncRetries(retry_on=(OSError,), delay=0.5, backoff=backoff)

    assert retries._calculate_delay(attempt_no) == expected


def test_no_delay_by_default():
    assert AsyncRetries(retry_on=(OSError,))._calculate_delay(10) == 0.0


@pytest.mark.parametrize("kwargs", [{"attempts": 0}, {"deadline": -1.0}])
def test_rejects_invalid_bounds(kwargs):
    with pytest.raises(ValueError):
        AsyncRetries(retry_on=(OSError,), **kwargs)
