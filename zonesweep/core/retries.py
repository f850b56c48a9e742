from __future__ import annotations

import asyncio
import functools
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Literal, ParamSpec, TypeVar

from loguru import logger


class NoAttemptsLeftError(Exception): ...



P = ParamSpec("P")
R = TypeVar("R")


@dataclass(slots=True, frozen=True)
class AsyncRetries:
    '''
    Retries an awaitable on the exceptions passed to the constructor.

    With the defaults the call is retried immediately and forever, it
    only ever returns a result. Setting `attempts` and/or `deadline`
    bounds the loop, when either is exhausted a NoAttemptsLeftError is
    raised from the last failure.

    Parameters
    ----------
    retry_on : tuple[type[BaseException], ...]
        _The exceptions to retry on_
    attempts : int | None
        _The maximum number of attempts, None for no limit_
    deadline : float | None
        _Seconds after the first attempt past which no new attempt starts_
    delay : float
        _The initial delay between attempts in seconds_
    jitter : float
        _The jitter factor to apply to the delay_
    backoff : Literal["linear", "expo"]
        _The backoff strategy to use_
    '''
    retry_on: tuple[type[BaseException], ...]
    attempts: int | None = None
    deadline: float | None = None
    delay: float = 0.0
    jitter: float = 0.0
    backoff: Literal["linear", "expo"] = "linear"  # "linear" | "expo"

    def __post_init__(self) -> None:
        if self.attempts is not None and self.attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {self.attempts}")
        if self.deadline is not None and self.deadline < 0:
            raise ValueError(f"deadline must not be negative, got {self.deadline}")

    @property
    def is_bounded(self) -> bool:
        return self.attempts is not None or self.deadline is not None

    def _calculate_delay(self, attempt_no: int) -> float:
        """
        Calculates the delay before the next retry

        Parameters
        ----------
        attempt_no : int

        Returns
        -------
        float
        """
        if not self.delay:
            return 0.0

        if self.backoff == "linear":
            base = self.delay * attempt_no
        else:
            base = self.delay * (2 ** (attempt_no - 1))

        if self.jitter:
            j = base * self.jitter
            base += random.uniform(-j, j)
        return max(0.0, base)

    def _exhausted(self, attempt_no: int, started: float, now: float) -> bool:
        if self.attempts is not None and attempt_no >= self.attempts:
            return True
        if self.deadline is not None and now - started >= self.deadline:
            return True
        return False

    async def call_with_retries(
        self, func: Callable[P, Awaitable[R]], *args, **kwargs
    ) -> R:
        """
        Calls a function with retries

        Parameters
        ----------
        func : Callable[..., Awaitable[Any]]
            _The function to call_

        Returns
        -------
        Any

        Raises
        ------
        NoAttemptsLeftError
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        attempt_no = 0
        while True:
            attempt_no += 1
            try:
                return await func(*args, **kwargs)
            except self.retry_on as exc:
                logger.debug(f"Attempt {attempt_no} failed: {exc!r}")
                if self._exhausted(attempt_no, started, loop.time()):
                    raise NoAttemptsLeftError(
                        f"Failed after {attempt_no} attempts"
                    ) from exc

            # always yields to the loop, even with no delay
            await asyncio.sleep(self._calculate_delay(attempt_no))

    def __call__(
        self,
        func: Callable[P, Awaitable[R]],
    ) -> Callable[P, Awaitable[R]]:
        """
        A decorator that applies retries to an async function

        Parameters
        ----------
        func : Callable[P, Awaitable[R]]

        Returns
        -------
        Callable[P, Awaitable[R]]
        """

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            return await self.call_with_retries(func, *args, **kwargs)

        return wrapper
