"""
Bounded FIFO admission of tasks onto a fixed number of slots.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable

from .models import Task, TaskState

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Runs `handler(task)` for every identifier with at most `concurrency`
    handlers in flight.

    Each slot is a worker coroutine pulling from one FIFO queue, so admission
    order is input order and a freed slot takes the next identifier right
    away. `cooldown` runs after a task has settled and before its slot
    admits the next one. A Task only exists once its identifier has been
    admitted into a slot. `run()` returns the tasks in admission order once
    every one of them is terminal.
    """

    def __init__(
        self,
        concurrency: int,
        cooldown: Callable[[], Awaitable[None]] | None = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.concurrency = concurrency
        self.cooldown = cooldown
        self.in_flight = 0
        self.peak_in_flight = 0
        self.admitted: list[str] = []

    async def run(
        self,
        identifiers: Iterable[str],
        handler: Callable[[Task], Awaitable[None]],
    ) -> list[Task]:
        queue: asyncio.Queue[str] = asyncio.Queue()
        for identifier in identifiers:
            queue.put_nowait(identifier)

        tasks: list[Task] = []
        slots = min(self.concurrency, queue.qsize())
        await asyncio.gather(*(self._slot(queue, handler, tasks) for _ in range(slots)))
        return tasks

    async def _slot(self, queue: asyncio.Queue, handler, tasks: list[Task]) -> None:
        while True:
            try:
                identifier = queue.get_nowait()
            except asyncio.QueueEmpty:
                return

            task = Task(identifier)
            tasks.append(task)
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            self.admitted.append(task.identifier)
            try:
                await handler(task)
            except Exception:
                # Handlers record their own failures; this only keeps the slot alive.
                logger.exception("handler crashed for %s", task.identifier)
                task.state = TaskState.FAILED
            finally:
                self.in_flight -= 1

            if self.cooldown is not None and not queue.empty():
                await self.cooldown()
