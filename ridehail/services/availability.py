"""Driver online/offline toggle with optimistic update."""

from __future__ import annotations

import logging
from typing import Optional

from ridehail.api.rides import RidesApi
from ridehail.domain.errors import RideHailError, ValidationError
from ridehail.infrastructure.locks import InFlightGuard
from ridehail.services.optimistic import optimistic_action

logger = logging.getLogger(__name__)


class DriverAvailability:
    """``available`` is ``None`` until the driver profile has been loaded."""

    def __init__(self, rides: RidesApi, driver_id: int):
        self.rides = rides
        self.driver_id = driver_id
        self.available: Optional[bool] = None
        self._guard = InFlightGuard("availability toggle")

    @property
    def can_toggle(self) -> bool:
        return self.available is not None and not self._guard.busy

    async def load(self) -> bool:
        try:
            driver = await self.rides.get_driver(self.driver_id)
            self.available = driver.available
        except RideHailError:
            logger.exception("Failed to load driver %s; assuming offline", self.driver_id)
            self.available = False
        return self.available

    async def toggle(self) -> bool:
        if self.available is None:
            raise ValidationError("Driver availability has not been loaded yet")
        async with self._guard:
            previous = self.available
            target = not previous

            def apply() -> None:
                self.available = target

            def revert() -> None:
                self.available = previous

            await optimistic_action(
                apply,
                lambda: self.rides.set_driver_availability(self.driver_id, target),
                revert,
            )
        logger.info("Driver %s is now %s", self.driver_id, "online" if target else "offline")
        return self.available
