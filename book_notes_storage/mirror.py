"""
Fire-and-forget cache mirroring.

After a remote read or mutation succeeds, the interactor copies the result
into the local store without making the caller wait. CacheMirror runs those
copies as detached asyncio tasks:

- the launching coroutine never awaits them
- strong references are held until each task finishes
- outcomes feed diagnostics only (DEBUG log, counters, optional callback)
- failures are never retried and never reach the caller
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any

from .logging_utils import collection_logger

# Callback invoked with (description, exception) when a mirror write fails
MirrorErrorCallback = Callable[[str, BaseException], None]


@dataclass
class MirrorStats:
    """Counters for mirror writes launched by one CacheMirror."""

    launched: int = 0
    succeeded: int = 0
    failed: int = 0
    cancelled: int = 0

    @property
    def finished(self) -> int:
        return self.succeeded + self.failed + self.cancelled


class CacheMirror:
    """Launches local store writes in the background.

    Example:
        >>> mirror = CacheMirror(name="books")
        >>> mirror.launch("insert books/42", local.insert(book))
        >>> await mirror.drain()  # only in shutdown paths and tests
    """

    def __init__(self, name: str = "cache", on_error: MirrorErrorCallback | None = None):
        """Initialize the mirror.

        Args:
            name: Label used in log messages and task names
            on_error: Called for every failed mirror write, for diagnostics
        """
        self.name = name
        self.on_error = on_error
        self.stats = MirrorStats()
        self._tasks: set[asyncio.Task[Any]] = set()
        self.log = collection_logger("mirror", mirror=name)

    @property
    def pending(self) -> int:
        """Number of mirror writes still running."""
        return len(self._tasks)

    def launch(self, description: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Start a mirror write and return immediately.

        Must be called from a running event loop.
        """
        task = asyncio.create_task(coro, name=f"{self.name}-mirror: {description}")
        self._tasks.add(task)
        self.stats.launched += 1
        task.add_done_callback(lambda t: self._on_done(description, t))
        return task

    def _on_done(self, description: str, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)

        if task.cancelled():
            self.stats.cancelled += 1
            self.log.debug(f"Mirror write cancelled: {description}")
            return

        error = task.exception()
        if error is None:
            self.stats.succeeded += 1
            return

        self.stats.failed += 1
        self.log.debug(
            f"Mirror write failed: {description}: {error}",
            extra={"mirror_operation": description},
        )
        if self.on_error:
            try:
                self.on_error(description, error)
            except Exception as callback_error:
                self.log.debug(f"Mirror error callback raised: {callback_error}")

    async def drain(self, timeout: float | None = None) -> None:
        """Wait until every pending mirror write has finished.

        Writes launched while draining are waited for as well. Failures stay
        in the diagnostics; nothing is raised for them.

        Raises:
            TimeoutError: If writes are still pending after ``timeout`` seconds
        """
        async with asyncio.timeout(timeout):
            while self._tasks:
                # asyncio.wait leaves the tasks running if the timeout fires
                await asyncio.wait(list(self._tasks))
                # Let done-callbacks run before checking again
                await asyncio.sleep(0)

    async def cancel_all(self) -> None:
        """Cancel every pending mirror write."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            await asyncio.sleep(0)
