"""Detached side-effect tasks that run after the HTTP response is built."""

import asyncio
from typing import Awaitable, Set

from aibot.logging_config import get_logger

logger = get_logger("background")

_background_tasks: Set[asyncio.Task] = set()


def _on_task_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            f"Background task {task.get_name()} failed: {exc}",
            exc_info=(type(exc), exc, exc.__traceback__),
            extra={"context": {"task": task.get_name()}},
        )


def spawn_background(coro: Awaitable, *, name: str) -> asyncio.Task:
    """Schedule ``coro`` without awaiting it; failures are logged, never raised."""
    task = asyncio.ensure_future(coro)
    task.set_name(name)
    _background_tasks.add(task)
    task.add_done_callback(_on_task_done)
    return task


def pending_background_tasks() -> int:
    return len(_background_tasks)


async def drain_background_tasks(timeout: float) -> None:
    """Wait up to ``timeout`` seconds for detached work, then cancel the rest."""
    if not _background_tasks:
        return
    tasks = list(_background_tasks)
    logger.info(f"Waiting for {len(tasks)} background task(s)")
    done, pending = await asyncio.wait(tasks, timeout=timeout)
    for task in pending:
        task.cancel()
    if pending:
        logger.warning(f"Cancelled {len(pending)} background task(s) on shutdown")
        await asyncio.gather(*pending, return_exceptions=True)
