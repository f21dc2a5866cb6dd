"""Test doubles and helpers shared across test modules."""

from __future__ import annotations

import asyncio
from typing import Callable

BASE_URL = "http://test"


class ManualPoller:
    """Drop-in ``RidePoller`` that only ticks when the test says so."""

    def __init__(self, ride_id: int, tick, interval_seconds: float = 5.0):
        self.ride_id = ride_id
        self.interval_seconds = interval_seconds
        self._tick = tick
        self.running = False
        self.cancelled = False

    def start(self) -> None:
        self.running = True

    def cancel(self) -> None:
        self.running = False
        self.cancelled = True

    async def stop(self) -> None:
        self.cancel()

    async def fire(self) -> bool:
        keep_going = await self._tick(self.ride_id)
        if not keep_going:
            self.running = False
        return keep_going


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)
