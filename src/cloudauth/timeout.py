"""
Run a unit of work with a bounded wait.

The wait is bounded, the work is not: when the deadline passes the caller
gets control back while the work carries on in the background. Nothing here
cancels anything.
"""

import asyncio
from typing import Any, Awaitable, Callable, Set

# Tasks abandoned by their callers. The event loop only keeps weak references
# to tasks, so they are held here until they finish.
_background_tasks: Set["asyncio.Task[Any]"] = set()


def _forget(task: "asyncio.Task[Any]") -> None:
    _background_tasks.discard(task)
    if not task.cancelled():
        # Mark the exception as retrieved; whoever cared has already been told.
        task.exception()


async def start_with_timeout(
    timeout: float, work: Callable[[], Awaitable[Any]]
) -> "tuple[bool, asyncio.Task[Any]]":
    """
    Start work as its own task and wait up to timeout seconds for it.

    Args:
        timeout: Seconds to wait before returning control to the caller
        work: Coroutine function to run

    Returns:
        Tuple of (completed, task). When completed is False the task is still
        running and will finish on its own.
    """
    task = asyncio.ensure_future(work())
    _background_tasks.add(task)
    task.add_done_callback(_forget)
    # asyncio.wait never cancels what it waits on, unlike asyncio.wait_for.
    done, _ = await asyncio.wait({task}, timeout=timeout)
    return task in done, task


async def run_with_timeout(timeout: float, work: Callable[[], Awaitable[Any]]) -> bool:
    """Run work, returning True if it finished within timeout seconds.

    Errors raised by work are not propagated; work is expected to record its
    own outcome.
    """
    completed, _ = await start_with_timeout(timeout, work)
    return completed
