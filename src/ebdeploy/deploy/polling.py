"""Readiness poller: poll until a predicate holds or a deadline passes.

``poll_until()`` is the generic primitive shared by both convergence
waits (environment status and health page). It is an explicit loop, not
self-recursion:

    ::

        ┌──────────── deadline.check() ◀───────────────┐
        │                  │                           │
        │           sleep(interval)                    │
        │                  │                           │
        │           deadline.check()                   │
        │                  │                           │
        │            check() ──▶ PENDING ──────────────┘
        │                  ├──▶ SATISFIED(value) ──▶ return value
        │                  └──▶ FAILED(reason)   ──▶ raise
        │
        └── expired ──▶ ConvergenceTimeoutError (no further checks)

The iteration count is unbounded; only wall-clock time bounds the loop.
``wait_for_environment_ready()`` is the environment convergence predicate
built on top of it.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from ebdeploy.core.errors import ConvergenceTimeoutError, DeployError
from ebdeploy.core.logging import get_logger
from ebdeploy.deploy.client import ControlPlane
from ebdeploy.deploy.config import PollingConfig
from ebdeploy.deploy.models import EnvironmentSnapshot
from ebdeploy.execution.timeout import TimeoutExpired, with_deadline_async

logger = get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]
Clock = Callable[[], float]


class PollState(str, Enum):
    PENDING = "pending"
    SATISFIED = "satisfied"
    FAILED = "failed"


@dataclass(frozen=True)
class PollOutcome(Generic[T]):
    """Result of one readiness check."""

    state: PollState
    value: T | None = None
    reason: str = ""

    @classmethod
    def pending(cls, reason: str = "") -> PollOutcome[T]:
        return cls(PollState.PENDING, reason=reason)

    @classmethod
    def satisfied(cls, value: T) -> PollOutcome[T]:
        return cls(PollState.SATISFIED, value=value)

    @classmethod
    def failed(cls, reason: str) -> PollOutcome[T]:
        return cls(PollState.FAILED, reason=reason)


class PollFailedError(DeployError):
    """A readiness check reported a terminal failure."""


async def poll_until(
    check: Callable[[], Awaitable[PollOutcome[T]]],
    *,
    polling: PollingConfig,
    operation: str,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
    wait_first: bool = True,
) -> T:
    """Run ``check`` every ``polling.interval_seconds`` until it is satisfied.

    With ``wait_first=False`` the first check runs immediately and the
    interval only separates retries.

    Raises
    ------
    ConvergenceTimeoutError
        When ``polling.timeout_seconds`` passes first.
    PollFailedError
        When ``check`` returns a FAILED outcome.
    """
    attempts = 0
    try:
        async with with_deadline_async(polling.timeout_seconds, operation, clock=clock) as deadline:
            while True:
                deadline.check()
                if wait_first or attempts:
                    await sleep(polling.interval_seconds)
                    deadline.check()

                attempts += 1
                outcome = await check()
                if outcome.state is PollState.SATISFIED:
                    return outcome.value  # type: ignore[return-value]
                if outcome.state is PollState.FAILED:
                    raise PollFailedError(f"{operation}: {outcome.reason}")
    except TimeoutExpired as exc:
        raise ConvergenceTimeoutError(
            operation,
            polling.timeout_seconds,
            elapsed=exc.elapsed,
            cause=exc,
        ).with_context(attempts=attempts) from exc


async def wait_for_environment_ready(
    client: ControlPlane,
    environment: EnvironmentSnapshot,
    *,
    application_name: str,
    version_label: str,
    polling: PollingConfig,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
) -> EnvironmentSnapshot:
    """Wait until ``environment`` runs ``version_label`` and is Ready/Green.

    Returns the first snapshot that satisfies the predicate.
    """
    name = environment.name

    logger.info(
        "environment.waiting",
        environment=name,
        timeout_minutes=round(polling.timeout_seconds / 60),
    )

    async def check() -> PollOutcome[EnvironmentSnapshot]:
        environments = await client.describe_environments(
            application_name,
            environment_names=[name],
            version_label=version_label,
            include_deleted=False,
        )
        if not environments:
            logger.info("environment.not_deployed", environment=name, version_label=version_label)
            return PollOutcome.pending("version not deployed")

        current = environments[0]
        if not current.is_ready:
            logger.info("environment.status", environment=current.name, status=current.status)
            return PollOutcome.pending(f"status {current.status}")
        if not current.is_green:
            logger.info("environment.health", environment=current.name, health=current.health)
            return PollOutcome.pending(f"health {current.health}")

        logger.info(
            "environment.ready",
            environment=current.name,
            version_label=version_label,
            status=current.status,
            health=current.health,
        )
        return PollOutcome.satisfied(current)

    return await poll_until(
        check,
        polling=polling,
        operation=f"environment {name} to become Ready and Green",
        sleep=sleep,
        clock=clock,
    )
