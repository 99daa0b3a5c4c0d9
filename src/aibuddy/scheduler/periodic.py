"""Cancellable periodic background tasks."""

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs an async callable every ``interval`` seconds until cancelled.

    A failing run is logged and the loop keeps going; the next tick is the
    retry.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        func: Callable[[], Awaitable[object]],
        run_immediately: bool = True,
    ) -> None:
        self.name = name
        self.interval = interval
        self._func = func
        self._run_immediately = run_immediately
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> None:
        try:
            await self._func()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Periodic task {self.name} failed: {e}")

    async def _loop(self) -> None:
        try:
            if self._run_immediately:
                await self.run_once()
            while True:
                await asyncio.sleep(self.interval)
                await self.run_once()
        except asyncio.CancelledError:
            pass

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._loop(), name=f"periodic:{self.name}")

    async def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
