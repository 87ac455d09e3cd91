"""Background task runner for fire-and-forget work.

Aggregate recomputes and snapshot saves run here so they never block the
resolution queue. The runner holds a strong reference to every running
task (bare ``asyncio.create_task`` results can be garbage collected) and
lets callers wait for all outstanding work with :meth:`drain`. Finished
tasks are forgotten, so a long session does not accumulate state.
"""

import asyncio
import itertools
from collections.abc import Coroutine
from typing import Any

from loguru import logger


class InProcessTaskRunner:
    """In-process background task runner using asyncio.

    Tasks run on the caller's event loop via ``asyncio.create_task()``.
    Failures are logged, never re-raised into the loop.
    """

    def __init__(self) -> None:
        self._tasks: dict[int, asyncio.Task[Any]] = {}
        self._ids = itertools.count(1)

    def submit_task(self, coro: Coroutine[Any, Any, Any], name: str = "") -> int:
        """Submit an async task for background execution.

        Args:
            coro: The coroutine to execute.
            name: Optional label used in logs.

        Returns:
            A job number, unique for this runner.
        """
        job_id = next(self._ids)
        label = name or f"job-{job_id}"

        async def _run() -> None:
            try:
                await coro
            except Exception:
                logger.exception(f"Background task {label} failed")
            finally:
                self._tasks.pop(job_id, None)

        self._tasks[job_id] = asyncio.create_task(_run(), name=label)
        return job_id

    @property
    def active_count(self) -> int:
        """Number of submitted tasks that have not finished yet."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every running task, including tasks submitted while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()))
