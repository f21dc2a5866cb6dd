"""
Routing providers  (Strategy Pattern)
=====================================

A provider turns two locations into a driving ``RouteEstimate``:

* ``GoogleDirectionsProvider`` -- Google Directions JSON API over httpx,
  driving mode, first route / first leg.
* ``HaversineRoutingProvider`` -- offline great-circle distance, duration
  derived from an average speed.

Providers raise ``RoutingError`` when no route can be produced; the
estimator decides how to degrade.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from ridehail.domain.distance import location_distance_km
from ridehail.domain.entities import Location, RouteEstimate
from ridehail.domain.errors import RoutingError


class RoutingProvider(ABC):
    @abstractmethod
    async def route(self, pickup: Location, dropoff: Location) -> RouteEstimate: ...


class HaversineRoutingProvider(RoutingProvider):
    def __init__(self, average_speed_kmh: float = 30.0):
        if average_speed_kmh <= 0:
            raise ValueError("average_speed_kmh must be positive")
        self.average_speed_kmh = average_speed_kmh

    async def route(self, pickup: Location, dropoff: Location) -> RouteEstimate:
        distance = location_distance_km(pickup, dropoff)
        minutes = math.ceil(distance / self.average_speed_kmh * 60)
        return RouteEstimate(
            distance_km=round(distance, 3),
            duration_min=minutes,
            polyline=(pickup, dropoff),
        )


class GoogleDirectionsProvider(RoutingProvider):
    def __init__(
        self,
        api_key: Optional[str],
        url: str = "https://maps.googleapis.com/maps/api/directions/json",
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.url = url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def route(self, pickup: Location, dropoff: Location) -> RouteEstimate:
        if not self.api_key:
            raise RoutingError("Google Maps API key is not configured")
        params = {
            "origin": f"{pickup.latitude},{pickup.longitude}",
            "destination": f"{dropoff.latitude},{dropoff.longitude}",
            "mode": "driving",
            "key": self.api_key,
        }
        try:
            response = await self._client.get(self.url, params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RoutingError(f"Directions request failed: {exc}") from exc

        status = payload.get("status") if isinstance(payload, dict) else None
        if status != "OK" or not payload.get("routes"):
            raise RoutingError(f"Directions request failed with status: {status}")
        try:
            return self._parse_leg(payload["routes"][0]["legs"][0], pickup, dropoff)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise RoutingError(f"Malformed directions response: {exc!r}") from exc

    @staticmethod
    def _parse_leg(
        leg: dict[str, Any], pickup: Location, dropoff: Location
    ) -> RouteEstimate:
        try:
            meters = leg["distance"]["value"]
            seconds = leg["duration"]["value"]
        except (KeyError, TypeError) as exc:
            raise RoutingError("Directions response is missing distance/duration") from exc

        points = [pickup]
        for step in leg.get("steps", []):
            end = step.get("end_location")
            if end:
                points.append(Location("", end["lat"], end["lng"]))
        points.append(dropoff)
        return RouteEstimate(
            distance_km=meters / 1000,
            duration_min=math.ceil(seconds / 60),
            polyline=tuple(points),
        )

    async def aclose(self) -> None:
        await self._client.aclose()
