import asyncio
import logging

from ..task.models import ExecutionTask

logger = logging.getLogger(__name__)


class TaskBus:
    def __init__(self, capacity: int = 100):
        """
        Initialize task bus.

        Args:
            capacity: Maximum number of undelivered tasks before producers block
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._queue: "asyncio.Queue[ExecutionTask]" = asyncio.Queue(maxsize=capacity)
        self._accepted = 0
        self._delivered = 0

    async def push(self, task: ExecutionTask) -> None:
        """
        Add a task to the bus.

        Args:
            task: Task to hand to the executor

        Logic:
        1. Wait for free capacity (backpressure, never drop)
        2. Enqueue behind every task accepted before it
        """
        if self._queue.full():
            logger.debug(f"Task bus full ({self.capacity}), waiting to enqueue {task.name}")
        await self._queue.put(task)
        self._accepted += 1
        logger.debug(f"Accepted task {task.name}@{task.revision[:12]} (depth {self.depth})")

    async def pull(self) -> ExecutionTask:
        """
        Take the oldest task off the bus, waiting until one is available.

        Ownership of the task passes to the caller; the bus keeps no copy.
        """
        task = await self._queue.get()
        self._queue.task_done()
        self._delivered += 1
        return task

    @property
    def depth(self) -> int:
        """Number of tasks accepted but not yet delivered."""
        return self._queue.qsize()

    @property
    def accepted(self) -> int:
        return self._accepted

    @property
    def delivered(self) -> int:
        return self._delivered
