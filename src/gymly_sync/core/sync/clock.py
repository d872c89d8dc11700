"""Clock abstraction for polling loops and convergence budgets."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, Optional, Set, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Timed-out operations keep running; hold a reference so they aren't collected
_stragglers: Set["asyncio.Future[Any]"] = set()


class Clock:
    """Wall-clock time and sleeping, backed by asyncio."""

    def monotonic(self) -> float:
        """Return monotonic time in seconds."""
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task."""
        await asyncio.sleep(seconds)


@dataclass
class BudgetResult(Generic[T]):
    """Outcome of an operation raced against a time budget."""

    completed: bool
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def timed_out(self) -> bool:
        """True if the budget ran out first."""
        return not self.completed


async def run_with_budget(
    operation: Awaitable[T], budget: float, clock: Clock, label: str = "operation"
) -> BudgetResult[T]:
    """Wait for an operation for at most ``budget`` seconds.

    The budget is advisory: when it runs out the operation is NOT cancelled.
    It is left to finish on its own and whatever it produces is discarded.

    Args:
        operation: Awaitable to run
        budget: Seconds to wait
        clock: Clock used for the budget timer
        label: Name used in log messages

    Returns:
        BudgetResult with the value or the raised exception if it completed
    """
    task = asyncio.ensure_future(operation)
    timer = asyncio.ensure_future(clock.sleep(budget))
    try:
        await asyncio.wait({task, timer}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        timer.cancel()
        if not task.done():
            _stragglers.add(task)
            task.add_done_callback(_make_discard(label))

    if not task.done():
        logger.info("%s exceeded its %.1fs budget, continuing without it", label, budget)
        return BudgetResult(completed=False)

    error = task.exception()
    if error is not None:
        return BudgetResult(completed=True, error=error)
    return BudgetResult(completed=True, value=task.result())


def _make_discard(label: str) -> Any:
    def _discard(task: "asyncio.Future[Any]") -> None:
        _stragglers.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug("Late %s failed after its budget: %s", label, error)
        else:
            logger.debug("Late %s result discarded", label)

    return _discard
