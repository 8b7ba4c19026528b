"""Best-effort execution of side effects and degradable branches.

Every call whose failure must not fail an analysis run goes through
:func:`best_effort`, so the degrade-on-failure policy, its logging and its
counters live in one place.
"""

import asyncio
import logging
from collections import Counter
from typing import Awaitable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DegradationTracker:
    """Counts swallowed failures per operation so they stay observable."""

    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()

    def record(self, operation: str, exc: BaseException) -> None:
        self._counts[operation] += 1
        logger.warning(
            "Degraded %s: %s: %s",
            operation, type(exc).__name__, exc,
            extra={
                "operation": operation,
                "error_type": type(exc).__name__,
                "degraded_total": self._counts[operation],
            },
        )

    def count(self, operation: str) -> int:
        return self._counts[operation]

    def snapshot(self) -> dict[str, int]:
        return dict(self._counts)

    def reset(self) -> None:
        self._counts.clear()


async def best_effort(
    operation: str,
    awaitable: Awaitable[T],
    fallback: T,
    *,
    timeout: Optional[float] = None,
    tracker: Optional[DegradationTracker] = None,
) -> T:
    """Await *awaitable*, returning *fallback* if it raises or times out.

    Args:
        operation: Name used in logs and counters (e.g. ``"save_analysis"``).
        awaitable: The coroutine to run.
        fallback: Value returned on any ``Exception`` or on timeout.
        timeout: Optional bound in seconds, applied with ``asyncio.wait_for``.
        tracker: Where to record the degradation; a module-level tracker is
            used when omitted.

    Cancellation is not swallowed.
    """
    try:
        if timeout is not None:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        return await awaitable
    except asyncio.TimeoutError:
        (tracker or default_tracker).record(
            operation, asyncio.TimeoutError(f"timed out after {timeout}s")
        )
        return fallback
    except Exception as exc:
        (tracker or default_tracker).record(operation, exc)
        return fallback


default_tracker = DegradationTracker()

