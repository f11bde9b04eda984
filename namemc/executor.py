from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol, Set


TaskFactory = Callable[[], Awaitable[Any]]


class TaskExecutor(Protocol):
    def submit(self, factory: TaskFactory) -> "asyncio.Future[Any]": ...


class AsyncioTaskPool:
    """Runs fetch tasks on the running event loop with bounded parallelism.

    - ``submit`` never awaits; the task is scheduled and control returns
    - ``max_concurrency=None`` means unbounded
    - Strong references are kept until a task finishes so it cannot be GC'd
    """

    def __init__(self, max_concurrency: Optional[int] = None, *, name: str = "NameMC Query", logger: Optional[logging.Logger] = None) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1 or None")
        self._sem = asyncio.Semaphore(max_concurrency) if max_concurrency else None
        self._max_concurrency = max_concurrency
        self._name = name
        self._counter = itertools.count()
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False
        self._log = logger or logging.getLogger("namemc.executor")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def max_concurrency(self) -> Optional[int]:
        return self._max_concurrency

    def submit(self, factory: TaskFactory) -> asyncio.Task:
        if self._closed:
            raise RuntimeError(f"{self._name} pool is closed")
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(factory), name=f"{self._name} #{next(self._counter)}")
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    async def _run(self, factory: TaskFactory) -> Any:
        if self._sem is None:
            return await factory()
        async with self._sem:
            return await factory()

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            # Submitted factories deliver their own errors; anything here is a bug
            self._log.error("Task %s raised %r", task.get_name(), exc, exc_info=exc)

    async def drain(self) -> None:
        """Wait until every submitted task (including ones submitted meanwhile) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
