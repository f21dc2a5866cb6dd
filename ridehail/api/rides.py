"""
Ride endpoints
==============

POST /api/rides/book                         -- book a ride
POST /api/rides/cancel/{ride_id}             -- cancel a ride
POST /api/rides/rate                         -- rate a finished ride
POST /api/rides/accept                       -- driver accepts a ride
POST /api/rides/start/{ride_id}              -- driver starts a ride
POST /api/rides/complete/{ride_id}           -- complete a ride
GET  /api/rides/{ride_id}                    -- ride details / status
GET  /api/rides/active?role=&userId=         -- current non-terminal ride
GET  /api/rides/history?role=&userId=        -- past rides
GET  /api/rides/available                    -- PENDING rides for drivers
GET  /api/rides/search?query=                -- free-text search
GET  /api/rides/drivers/{driver_id}          -- driver profile
POST /api/rides/drivers/{driver_id}/availability?available= -- online toggle
"""

from __future__ import annotations

from typing import Any, Optional

from ridehail.api.schemas import BookRidePayload, DriverResponse, RideResponse, parse
from ridehail.domain.enums import UserRole
from ridehail.domain.errors import NotFoundError, ServerError
from ridehail.infrastructure.http import ApiClient

PREFIX = "/api/rides"


def _rides(payload: Any) -> list[RideResponse]:
    # history may come back as a bare list or as a page with "content"
    if isinstance(payload, dict):
        payload = payload.get("content", [])
    if payload is not None and not isinstance(payload, list):
        raise ServerError("Malformed server response: expected a list of rides")
    return [parse(RideResponse, item) for item in payload or []]


class RidesApi:
    def __init__(self, client: ApiClient):
        self.client = client

    # ── Rider actions ─────────────────────────────────────────────

    async def book_ride(self, payload: BookRidePayload) -> RideResponse:
        data = await self.client.post(
            f"{PREFIX}/book", json=payload.model_dump(by_alias=True)
        )
        return parse(RideResponse, data)

    async def cancel_ride(self, ride_id: int) -> Optional[RideResponse]:
        data = await self.client.post(f"{PREFIX}/cancel/{ride_id}")
        return parse(RideResponse, data) if data else None

    async def rate_ride(
        self, ride_id: int, rating: int, comment: str = ""
    ) -> Optional[RideResponse]:
        data = await self.client.post(
            f"{PREFIX}/rate",
            json={"rideId": ride_id, "rating": rating, "comment": comment},
        )
        return parse(RideResponse, data) if data else None

    # ── Shared (rider & driver) ───────────────────────────────────

    async def get_ride(self, ride_id: int) -> RideResponse:
        return parse(RideResponse, await self.client.get(f"{PREFIX}/{ride_id}"))

    async def get_active_ride(
        self, role: UserRole, user_id: int
    ) -> Optional[RideResponse]:
        """Return the active ride, or ``None`` when the user has none."""
        try:
            data = await self.client.get(
                f"{PREFIX}/active", params={"role": role.value, "userId": user_id}
            )
        except NotFoundError:
            return None
        return parse(RideResponse, data) if data else None

    async def get_ride_history(
        self, role: UserRole, user_id: int, page: int = 0, size: int = 10
    ) -> list[RideResponse]:
        data = await self.client.get(
            f"{PREFIX}/history",
            params={"role": role.value, "userId": user_id, "page": page, "size": size},
        )
        return _rides(data)

    async def search_rides(self, query: str) -> list[RideResponse]:
        return _rides(await self.client.get(f"{PREFIX}/search", params={"query": query}))

    # ── Driver actions ────────────────────────────────────────────

    async def get_available_rides(self) -> list[RideResponse]:
        return _rides(await self.client.get(f"{PREFIX}/available"))

    async def accept_ride(self, ride_id: int, driver_id: int) -> RideResponse:
        data = await self.client.post(
            f"{PREFIX}/accept", json={"rideId": ride_id, "driverId": driver_id}
        )
        return parse(RideResponse, data)

    async def start_ride(self, ride_id: int) -> RideResponse:
        return parse(
            RideResponse,
            await self.client.post(f"{PREFIX}/start/{ride_id}")
        )

    async def complete_ride(self, ride_id: int) -> Optional[RideResponse]:
        data = await self.client.post(f"{PREFIX}/complete/{ride_id}")
        return parse(RideResponse, data) if data else None

    async def get_driver(self, driver_id: int) -> DriverResponse:
        return parse(
            DriverResponse,
            await self.client.get(f"{PREFIX}/drivers/{driver_id}")
        )

    async def set_driver_availability(self, driver_id: int, available: bool) -> None:
        await self.client.post(
            f"{PREFIX}/drivers/{driver_id}/availability",
            params={"available": "true" if available else "false"},
        )
