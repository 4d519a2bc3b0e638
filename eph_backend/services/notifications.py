"""
Fire-and-forget notification dispatch.

A send runs as a background task. Failures are logged and swallowed;
they never reach the request that triggered them.
"""
import asyncio
import logging
from typing import Awaitable, Set

logger = logging.getLogger(__name__)

# Strong references so pending sends are not garbage collected mid-flight
_pending: Set[asyncio.Task] = set()


def _on_done(task: asyncio.Task) -> None:
    _pending.discard(task)
    if task.cancelled():
        logger.warning(f"[NOTIFY] {task.get_name()} cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.warning(f"[NOTIFY] {task.get_name()} failed: {type(exc).__name__}: {exc}")
    elif task.result() is False:
        logger.warning(f"[NOTIFY] {task.get_name()} not delivered")


def dispatch_notification(send: Awaitable, name: str = "notification") -> asyncio.Task:
    task = asyncio.ensure_future(send)
    task.set_name(name)
    _pending.add(task)
    task.add_done_callback(_on_done)
    return task


async def drain_notifications(timeout: float = 10.0) -> None:
    """Wait for in-flight sends. Used on shutdown and by tests."""
    if not _pending:
        return
    done, not_done = await asyncio.wait(list(_pending), timeout=timeout)
    for task in not_done:
        task.cancel()
    if not_done:
        logger.warning(f"[NOTIFY] Cancelled {len(not_done)} notification(s) still pending at drain")
