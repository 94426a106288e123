"""Repeating, cancellable reload schedule for the job summary view."""
import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class RefreshTimer:
    """
    Calls ``func`` every ``interval`` ms on the running event loop.

    At most one schedule is active: set_interval cancels the previous task
    before creating the next one, and both happen in the same synchronous
    call, so no tick of the old schedule can run afterwards.
    """

    def __init__(
        self,
        func: Callable[[], Awaitable[None]],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._func = func
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self.interval = 0

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def set_interval(self, interval: int) -> None:
        self.cancel()
        if interval <= 0:
            return
        self.interval = interval
        self._task = asyncio.get_running_loop().create_task(self._run(interval))

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self.interval = 0

    async def _run(self, interval: int) -> None:
        while True:
            await self._sleep(interval / 1000)
            try:
                await self._func()
            except asyncio.CancelledError:
                raise
            except Exception:
                # Keep the schedule alive; the next tick retries.
                logger.exception("refresh_tick_failed", extra={"interval": interval})
