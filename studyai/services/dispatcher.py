"""
Fire-and-forget dispatch of background coroutines
"""
import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque, List, Optional, Set

logger = logging.getLogger(__name__)
deadletter_logger = logging.getLogger("studyai.deadletter")


@dataclass
class DeadLetter:
    """A background call that failed; kept for inspection, never retried"""
    description: str
    error: str
    failed_at: float


class BackgroundDispatcher:
    """
    Runs coroutines without awaiting them in the caller's control flow

    Failures go to the dead-letter logger and a bounded in-memory list.
    Callers get no ordering or completion guarantee.
    """

    def __init__(self, max_dead_letters: int = 100):
        self._tasks: Set[asyncio.Task] = set()
        self._dead_letters: Deque[DeadLetter] = deque(maxlen=max_dead_letters)

    def submit(
        self,
        func: Callable[..., Awaitable],
        *args,
        description: str = "background task",
        **kwargs,
    ) -> asyncio.Task:
        """Schedule func(*args, **kwargs) on the running loop"""
        task = asyncio.get_running_loop().create_task(
            self._run(func, args, kwargs, description)
        )
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(f"Dispatched {description}")
        return task

    async def _run(self, func, args, kwargs, description: str) -> None:
        try:
            await func(*args, **kwargs)
        except asyncio.CancelledError:
            deadletter_logger.warning(f"{description} cancelled before completion")
            raise
        except Exception as e:
            self._dead_letters.append(DeadLetter(description, str(e), time.time()))
            deadletter_logger.error(f"{description} failed: {str(e)}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def dead_letters(self) -> List[DeadLetter]:
        return list(self._dead_letters)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight tasks, e.g. at shutdown or in tests"""
        if not self._tasks:
            return
        done, still_pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if still_pending:
            logger.warning(f"{len(still_pending)} background tasks still running after drain")


# Global instance
dispatcher = BackgroundDispatcher()


def get_dispatcher() -> BackgroundDispatcher:
    return dispatcher
