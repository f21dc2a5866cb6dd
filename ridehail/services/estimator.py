"""
Route estimator.

Turns a pickup / drop-off pair into a ``RouteEstimate``:

* invalid or missing coordinates -> ``None`` (nothing is requested),
* provider success               -> full estimate,
* provider failure               -> degraded straight-line estimate with no
  distance or duration, so no fare can be quoted from it.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ridehail.domain.entities import Location, RouteEstimate
from ridehail.domain.errors import RoutingError
from ridehail.infrastructure.routing import RoutingProvider

logger = logging.getLogger(__name__)


def straight_line(pickup: Location, dropoff: Location) -> RouteEstimate:
    return RouteEstimate(
        distance_km=None, duration_min=None, polyline=(pickup, dropoff), degraded=True
    )


class RouteEstimator:
    def __init__(self, provider: RoutingProvider):
        self.provider = provider

    async def estimate(
        self, pickup: Optional[Location], dropoff: Optional[Location]
    ) -> Optional[RouteEstimate]:
        if pickup is None or dropoff is None:
            return None
        if not (pickup.is_valid and dropoff.is_valid):
            logger.debug("Skipping estimate for invalid coordinates")
            return None
        try:
            return await self.provider.route(pickup, dropoff)
        except (RoutingError, httpx.HTTPError) as exc:
            logger.warning(
                "Routing failed for %s -> %s, using straight line: %s",
                pickup.name,
                dropoff.name,
                exc,
            )
            return straight_line(pickup, dropoff)
