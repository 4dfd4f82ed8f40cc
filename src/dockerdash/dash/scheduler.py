from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional


logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Serializes refresh cycles: at most one fetch-and-apply is in flight.

    Timer ticks that land while a cycle is outstanding are skipped. Explicit
    requests (screen entry, forced refresh) are queued and run right after the
    outstanding cycle, so results are always applied in issue order.
    """

    def __init__(self, run_cycle: Callable[[], Awaitable[None]]) -> None:
        self._run_cycle = run_cycle
        self._task: Optional[asyncio.Task] = None
        self._pending = False
        self.issued = 0
        self.completed = 0
        self.skipped = 0

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> Optional[asyncio.Task]:
        if self.busy:
            self.skipped += 1
            logger.debug("tick skipped, cycle %d still running", self.issued)
            return None
        return self._start()

    def request(self) -> asyncio.Task:
        if self.busy:
            self._pending = True
            assert self._task is not None
            return self._task
        return self._start()

    async def drain(self) -> None:
        """Wait until no cycle is running or queued."""
        while self._task is not None:
            await self._task

    def cancel(self) -> None:
        self._pending = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _start(self) -> asyncio.Task:
        self.issued += 1
        self._task = asyncio.get_running_loop().create_task(self._run(self.issued))
        return self._task

    async def _run(self, seq: int) -> None:
        try:
            await self._run_cycle()
        except asyncio.CancelledError:
            raise
        except Exception:
            # refresh failures are never fatal; the next tick retries
            logger.exception("refresh cycle %d failed", seq)
        finally:
            self.completed = seq
        self._task = None
        if self._pending:
            self._pending = False
            self._start()
