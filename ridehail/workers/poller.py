"""
Ride status poller
==================

A cancellable repeating timer bound to one ride id.  Every
``interval_seconds`` it awaits ``tick(ride_id)``; the tick returns
``False`` when polling should end (ride cleared or terminal).

Lifetime
--------
* ``start()`` spawns one ``asyncio.Task``; a second ``start()`` is a no-op.
* ``stop()`` signals the stop event and cancels the task, so no request is
  issued after it returns.  Called from inside a tick it only signals, and
  the loop exits once the tick returns.
* Tick errors are logged and polling continues on the next interval.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Tick = Callable[[int], Awaitable[bool]]


class RidePoller:
    def __init__(self, ride_id: int, tick: Tick, interval_seconds: float = 5.0):
        self.ride_id = ride_id
        self.interval_seconds = interval_seconds
        self._tick = tick
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Polling ride %s started (interval=%ss)", self.ride_id, self.interval_seconds
        )

    def cancel(self) -> None:
        """Signal the loop to end without waiting for it."""
        self._stop_event.set()
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()

    async def stop(self) -> None:
        self._stop_event.set()
        task = self._task
        if task is None:
            return
        if task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Polling ride %s stopped", self.ride_id)

    # ── Internals ─────────────────────────────────────────────────────

    async def _loop(self) -> None:
        """Periodic loop: sleep for the interval then tick."""
        while not self._stop_event.is_set():
            # Wait for the interval or until stop is signalled
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self.interval_seconds
                )
                break
            except asyncio.TimeoutError:
                pass  # next tick

            try:
                keep_going = await self._tick(self.ride_id)
            except Exception:
                logger.exception("Unhandled error polling ride %s", self.ride_id)
                continue
            if not keep_going:
                break
        logger.debug("Poll loop for ride %s exited", self.ride_id)
