"""Deadline enforcement for polling waits.

Every convergence wait in a deployment is bounded by one cumulative
deadline. Two layers enforce it:

- **DeadlineContext:** monotonic deadline the poll loop checks before each
  iteration and before each query, so no query is issued after expiry
- **with_deadline_async:** ``asyncio.timeout`` around the whole wait, so an
  in-flight control-plane call or HTTP probe is cancelled at expiry

Architecture:
    ::

        async with with_deadline_async(600.0, "environment my-app-17") as ctx:
            while True:
                ctx.check()                  # raises TimeoutExpired
                await sleep(interval)
                ctx.check()
                outcome = await predicate()  # cancelled if the deadline hits

Examples:
    >>> ctx = DeadlineContext.start(5.0, operation="health page")
    >>> ctx.is_expired()
    False

Tags:
    timeout, deadline, polling, asyncio, ebdeploy
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field


class TimeoutExpired(TimeoutError):
    """Raised when an operation exceeds its deadline.

    Inherits from built-in TimeoutError for broad exception handling.

    Attributes:
        timeout: The timeout value that was exceeded
        elapsed: How long the operation ran before being interrupted
        operation: Name/description of the operation
    """

    def __init__(
        self,
        timeout: float,
        elapsed: float | None = None,
        operation: str = "operation",
    ):
        self.timeout = timeout
        self.elapsed = elapsed
        self.operation = operation

        msg = f"Operation '{operation}' timed out after {timeout}s"

        if elapsed is not None:
            msg += f" (ran for {elapsed:.2f}s)"

        super().__init__(msg)


@dataclass
class DeadlineContext:
    """Context for tracking deadline state.

    Attributes:
        deadline: Absolute deadline timestamp on ``clock``
        timeout_seconds: Original timeout value in seconds
        operation: Name/description of the operation
        clock: Monotonic clock, injectable for tests
        start_time: When the deadline context started
    """

    deadline: float
    timeout_seconds: float
    operation: str = "operation"
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    start_time: float = 0.0

    @classmethod
    def start(
        cls,
        seconds: float,
        operation: str = "operation",
        clock: Callable[[], float] = time.monotonic,
    ) -> DeadlineContext:
        if seconds < 0:
            raise ValueError(f"Timeout must be non-negative, got {seconds}")
        now = clock()
        return cls(
            deadline=now + seconds,
            timeout_seconds=seconds,
            operation=operation,
            clock=clock,
            start_time=now,
        )

    @property
    def elapsed(self) -> float:
        """Elapsed time since start in seconds."""
        return self.clock() - self.start_time

    def is_expired(self) -> bool:
        """True if deadline has passed."""
        return self.clock() >= self.deadline

    def check(self) -> None:
        """Raise TimeoutExpired if the deadline has passed."""
        if self.is_expired():
            raise TimeoutExpired(
                timeout=self.timeout_seconds,
                elapsed=self.elapsed,
                operation=self.operation,
            )


@asynccontextmanager
async def with_deadline_async(
    seconds: float,
    operation: str | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> AsyncIterator[DeadlineContext]:
    """Async context manager enforcing a time limit on a whole wait.

    Yields a DeadlineContext for cooperative checks; ``asyncio.timeout``
    cancels whatever is awaited when the wall-clock limit passes.

    Raises:
        TimeoutExpired: If the deadline is exceeded
        ValueError: If seconds < 0
    """
    ctx = DeadlineContext.start(seconds, operation or "operation", clock)

    try:
        async with asyncio.timeout(seconds):
            yield ctx
    except TimeoutExpired:
        raise
    except TimeoutError:
        raise TimeoutExpired(
            timeout=seconds,
            elapsed=ctx.elapsed,
            operation=ctx.operation,
        ) from None
