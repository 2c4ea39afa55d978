"""Process-wide rate limiter for remote API calls.

Every list/create/delete/publish call of a batch goes through one
``RateLimiter``: operations run one at a time, in submission order, and the
start of each operation is spaced at least ``min_time`` seconds after the
start of the previous one.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ..logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MIN_TIME = 0.5


class RateLimiter:
    """Serializes async operations with a minimum spacing between their starts."""

    def __init__(
        self,
        min_time: float = DEFAULT_MIN_TIME,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize the limiter.

        Args:
            min_time: Minimum seconds between the start of consecutive operations
            clock: Monotonic clock, injectable for tests
            sleep: Async sleep function, injectable for tests
        """
        if min_time < 0:
            raise ValueError("min_time must not be negative")
        self.min_time = min_time
        self._clock = clock
        self._sleep = sleep
        self._lock: Optional[asyncio.Lock] = None
        self._last_start: Optional[float] = None

        self.scheduled = 0
        self.completed = 0
        self.errored = 0

    @property
    def lock(self) -> asyncio.Lock:
        # Created lazily so the lock binds to the running event loop.
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    @property
    def pending(self) -> int:
        """Operations submitted but not finished yet."""
        return self.scheduled - self.completed - self.errored

    async def schedule(self, operation: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """Run ``operation(*args, **kwargs)`` under the limiter and return its result.

        Exceptions raised by the operation propagate to the caller; the limiter
        keeps serving later operations.
        """
        self.scheduled += 1
        async with self.lock:
            await self._wait_for_slot()
            self._last_start = self._clock()
            logger.debug(
                "Starting rate-limited operation",
                extra={"operation": getattr(operation, "__name__", repr(operation))},
            )
            try:
                result = await operation(*args, **kwargs)
            except BaseException:
                self.errored += 1
                raise
            self.completed += 1
            return result

    async def _wait_for_slot(self) -> None:
        if self._last_start is None:
            return
        remaining = self._last_start + self.min_time - self._clock()
        if remaining > 0:
            await self._sleep(remaining)
