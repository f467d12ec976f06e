# audible_assistant/utils.py
"""
Utility helpers for the voice assistant
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_backoff(
    factory: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
) -> T:
    """Retry a coroutine factory with exponential backoff"""
    for attempt in range(max_retries + 1):
        try:
            return await factory()
        except Exception as e:
            if attempt == max_retries:
                logger.error(f"Final retry attempt failed: {e}")
                raise

            delay = base_delay * (2 ** attempt)
            logger.warning(f"Attempt {attempt + 1} failed: {e}. Retrying in {delay}s...")
            await asyncio.sleep(delay)


class PeriodicSampler:
    """Calls ``tick`` every ``interval`` seconds on the running event loop until stopped"""

    def __init__(self, interval: float, tick: Callable[[], None], name: str = "sampler"):
        self.interval = interval
        self.tick = tick
        self.name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    def stop(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.tick()
            except Exception as e:
                logger.error(f"{self.name} tick failed, stopping: {e}")
                self._task = None
                return
