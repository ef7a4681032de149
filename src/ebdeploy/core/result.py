"""
Result envelope for the deployment pipeline.

Each orchestrator stage returns ``Ok[T]`` on success or ``Err[T]`` on
failure. Stages are chained with ``and_then_async`` so the first failure
short-circuits every later stage without nested try/except blocks, and the
final Result carries either the last stage's value or the first error.

Architecture:
    ::

        Ok(None) ──and_then_async──▶ check_application
                 ──and_then_async──▶ resolve_environment ──▶ Ok(env)
                 ──and_then_async──▶ upload              ──▶ Ok(env)
                 ──and_then_async──▶ create_version      ──▶ Ok(env)
                 ──and_then_async──▶ dispatch_strategy   ──▶ Ok(env)

        Any stage returning Err(e) ──▶ every later stage is skipped
                                   ──▶ Err(e) reaches completion

Guardrails:
    ❌ DON'T: Catch exceptions inside a stage function
    ✅ DO: Let the stage raise, ``try_result_async()`` wraps it in ``Err``

Tags:
    result-pattern, error-handling, pipeline, ebdeploy
"""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    async def and_then_async(self, f: Callable[[T], Awaitable[Result[U]]]) -> Result[U]:
        """Chain to an async Result-returning stage."""
        return await f(self.value)

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failed result containing an error.

    ``and_then_async`` returns the same error unchanged, so the first
    failure propagates through the whole chain.
    """

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    async def and_then_async(self, f: Callable[[T], Awaitable[Result[U]]]) -> Result[U]:
        return Err(self.error)

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


async def try_result_async(f: Callable[[], Awaitable[T]]) -> Result[T]:
    """Await a zero-argument coroutine factory and wrap its outcome.

    Example:
        >>> result = await try_result_async(lambda: client.update_environment(...))
    """
    try:
        return Ok(await f())
    except Exception as e:
        return Err(e)
