"""Bounded exponential-backoff retry for async operations."""

import asyncio
import random
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from .config import RetryConfig
from .errors import (
    RetryExhaustedError,
    ScriptWriterError,
    TransportError,
)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def is_retryable(error: BaseException) -> bool:
    """429, any 5xx, or a transient transport failure."""
    if isinstance(error, RetryExhaustedError):
        return False
    if isinstance(error, TransportError):
        return error.transient
    if isinstance(error, ScriptWriterError) and error.status is not None:
        return error.status == 429 or error.status >= 500
    return False


class RetryExecutor:
    """Runs a zero-argument coroutine factory until it succeeds or gives up.

    Failed attempt ``i`` (0-indexed) waits ``2**i * base_delay + U[0, jitter)``
    seconds before attempt ``i + 1``. Fatal errors propagate immediately.
    """

    def __init__(
        self,
        max_attempts: int = 4,
        base_delay: float = 1.0,
        jitter: float = 1.0,
        sleep: Sleep = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.jitter = jitter
        self._sleep = sleep
        self._rng = rng

    @classmethod
    def from_config(cls, config: RetryConfig, **kwargs) -> "RetryExecutor":
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay_ms / 1000.0,
            jitter=config.jitter_ms / 1000.0,
            **kwargs,
        )

    def delay_for(self, attempt: int) -> float:
        return (2 ** attempt) * self.base_delay + self._rng() * self.jitter

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_attempts: int | None = None,
        label: str = "operation",
    ) -> T:
        attempts = max_attempts or self.max_attempts
        last_error: ScriptWriterError | None = None

        for attempt in range(attempts):
            try:
                return await operation()
            except ScriptWriterError as e:
                if not is_retryable(e):
                    logger.error(f"{label} failed with non-retryable {e.kind.value} error: {e}")
                    raise
                last_error = e
                if attempt == attempts - 1:
                    break
                delay = self.delay_for(attempt)
                logger.warning(
                    f"{label} attempt {attempt + 1}/{attempts} failed ({e}); "
                    f"retrying in {delay:.2f}s"
                )
                await self._sleep(delay)

        logger.error(f"{label} exhausted {attempts} attempts")
        raise RetryExhaustedError(last_error, attempts) from last_error
