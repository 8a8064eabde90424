"""
Governor Contracts - Time source used by the call governor.
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """
    Contract for the governor's time source.

    Tests inject a fake clock whose ``sleep`` advances ``now`` instantly.

    Example:
        >>> class FrozenClock:
        ...     def now(self) -> float:
        ...         return 0.0
        ...     async def sleep(self, seconds: float) -> None:
        ...         ...
        >>> assert isinstance(FrozenClock(), Clock)
    """

    def now(self) -> float:
        """Current wall-clock time as epoch seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend cooperatively for ``seconds``."""
        ...


class SystemClock:
    """Clock backed by ``time.time`` and ``asyncio.sleep``."""

    def now(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
