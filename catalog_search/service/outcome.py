"""Explicit success/failure values for multi-source resolution.

Each data source reports an ``Outcome`` instead of raising, and
``first_success`` composes a primary and a fallback source.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of one source: either ``value`` or ``error`` is set."""
    value: Optional[T] = None
    error: Optional[BaseException] = None
    source: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T, source: str = "") -> "Outcome[T]":
        return cls(value=value, source=source)

    @classmethod
    def failure(cls, error: BaseException, source: str = "") -> "Outcome[T]":
        return cls(error=error, source=source)


async def first_success(
    primary: Callable[[], Awaitable[Outcome[T]]],
    fallback: Callable[[], Awaitable[Outcome[T]]],
    on_primary_failure: Optional[Callable[[Outcome[T]], None]] = None
) -> Outcome[T]:
    """Try ``primary``; only after it has failed, try ``fallback``.

    The sources run strictly one after the other. The fallback outcome is
    returned as-is, failed or not.
    """
    outcome = await primary()
    if outcome.ok:
        return outcome

    if on_primary_failure is not None:
        on_primary_failure(outcome)

    return await fallback()
