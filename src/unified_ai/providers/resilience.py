"""
resilience.py

PURPOSE: Seam for wrapping the single vendor HTTP call.
DEPENDENCIES: None (pure Python)

ARCHITECTURE NOTES:
The library never loops over retries itself. Vendor SDK clients are built
with the retry count and timeout from ResilienceSettings; anything beyond
that (circuit breaking, hedging, rate limiting) plugs in here as a
ResiliencePolicy passed to AIClient. Each generation awaits exactly one
policy.execute() call.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class ResiliencePolicy(Protocol):
    """Wraps one vendor call; may retry, time out or short-circuit it."""

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T: ...


class PassthroughPolicy:
    """Runs the call once, as is."""

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await operation()
