"""Periodic polling of a ticket.

The loop waits a warm-up delay, then fires a cycle every period. A cycle runs
each configured check as its own task; a failing check is logged and never
stops the others or the loop. Cycles are not serialized: if the backend is
slower than the period, cycles overlap, which is harmless because the
timeline merge is idempotent.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

import structlog

log = structlog.get_logger()


@dataclass(frozen=True)
class PollCheck:
    """One independent unit of polling work."""

    name: str
    run: Callable[[], Awaitable[None]]


class PollLoop:
    """Fixed-period scheduler for poll checks.

    Example:
        loop = PollLoop(
            [PollCheck("messages", pull_messages), PollCheck("status", pull_status)],
            warmup_delay=2.0,
            interval=2.0,
        )
        loop.start()
        ...
        await loop.stop()
    """

    def __init__(
        self,
        checks: Sequence[PollCheck],
        warmup_delay: float = 2.0,
        interval: float = 2.0,
        name: str = "poll",
    ) -> None:
        if interval <= 0:
            raise ValueError("Poll interval must be positive")
        self._checks = tuple(checks)
        self._warmup_delay = warmup_delay
        self._interval = interval
        self._name = name

        self._task: asyncio.Task[None] | None = None
        self._cycles: set[asyncio.Task[None]] = set()
        self._cycles_started = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def cycles_started(self) -> int:
        return self._cycles_started

    @property
    def pending_cycles(self) -> int:
        return len(self._cycles)

    def start(self) -> None:
        """Start the scheduler on the running event loop."""
        if self.is_running:
            log.warning("poll_loop_already_running", loop=self._name)
            return
        self._task = asyncio.create_task(self._schedule(), name=f"{self._name}_scheduler")
        log.debug(
            "poll_loop_started",
            loop=self._name,
            warmup_delay=self._warmup_delay,
            interval=self._interval,
        )

    async def stop(self) -> None:
        """Cancel the scheduler and its pending timer.

        Cycles already in flight are left to settle on their own.
        """
        if self._task is None:
            return
        task, self._task = self._task, None
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        log.debug("poll_loop_stopped", loop=self._name, cycles=self._cycles_started)

    async def run_cycle(self) -> None:
        """Run every check once, isolating their failures."""
        await asyncio.gather(*(self._run_check(check) for check in self._checks))

    async def _schedule(self) -> None:
        await asyncio.sleep(self._warmup_delay)
        while True:
            self._cycles_started += 1
            cycle = asyncio.create_task(
                self.run_cycle(),
                name=f"{self._name}_cycle_{self._cycles_started}",
            )
            self._cycles.add(cycle)
            cycle.add_done_callback(self._cycles.discard)
            await asyncio.sleep(self._interval)

    async def _run_check(self, check: PollCheck) -> None:
        try:
            await check.run()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning(
                "poll_check_failed",
                loop=self._name,
                check=check.name,
                error_type=type(e).__name__,
                error=str(e),
            )
