"""Fire-and-forget background tasks with their own error boundary."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

from structlog import get_logger

logger = get_logger()

# Strong references so pending tasks are not garbage collected mid-flight
_background_tasks: set[asyncio.Task[Any]] = set()


def _on_task_done(task: asyncio.Task[Any]) -> None:
    _background_tasks.discard(task)

    if task.cancelled():
        logger.warning("background_task_cancelled", task=task.get_name())
        return

    exc = task.exception()
    if exc is not None:
        logger.error(
            "background_task_failed",
            task=task.get_name(),
            error=str(exc),
            error_type=type(exc).__name__,
        )


def fire_and_forget(coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
    """
    Schedule a coroutine without awaiting it.

    Failures are logged and never reach the caller. Call only after the
    primary transaction has committed.

    Args:
        coro: Coroutine to run
        name: Task name used in logs

    Returns:
        The scheduled task (callers normally ignore it)
    """
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_on_task_done)
    logger.debug("background_task_scheduled", task=name)
    return task


def pending_task_count() -> int:
    """Number of background tasks still running."""
    return len(_background_tasks)


async def drain_background_tasks(timeout: float | None = None) -> None:
    """
    Wait for outstanding background tasks.

    Used on shutdown and in tests that need side effects to land.
    Exceptions are already logged by the done callback.
    """
    if not _background_tasks:
        return

    _, pending = await asyncio.wait(list(_background_tasks), timeout=timeout)

    if pending:
        logger.warning("background_tasks_still_pending", count=len(pending))
