"""
In-flight guard (busy flag).

Used by the booking submitter and the active-ride tracker to make sure
only one mutating action of a kind is outstanding at a time.  Everything
runs on one event loop, so the flag is set synchronously before the first
``await`` and needs no real lock.
"""

from __future__ import annotations

from ridehail.domain.errors import ActionInProgressError


class InFlightGuard:
    def __init__(self, name: str):
        self.name = name
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def acquire(self) -> bool:
        """Try to acquire. Returns True on success."""
        if self._busy:
            return False
        self._busy = True
        return True

    def release(self) -> None:
        self._busy = False

    # context-manager support
    async def __aenter__(self):
        if not self.acquire():
            raise ActionInProgressError(f"{self.name} already in progress")
        return self

    async def __aexit__(self, *args):
        self.release()
