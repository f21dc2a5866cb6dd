"""
Shared test fixtures.

A FastAPI app stands in for the ride-hailing backend and is served to the
client through ``httpx.ASGITransport``, so tests run without a network or
a real server.  The fake records every request (``"METHOD /path"``) and can
be told to fail any path prefix with a given status code.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import Body, FastAPI, Header, Request
from fastapi.responses import JSONResponse

from ridehail.api.payments import MockPaymentService
from ridehail.api.rides import RidesApi
from ridehail.infrastructure.http import ApiClient
from ridehail.services.tracker import ActiveRideTracker
from ridehail.services.wallet import WalletAdapter
from tests.helpers import BASE_URL, ManualPoller

TWO_FACTOR_CODE = "123456"


# ── Fake backend ──────────────────────────────────────────────────────


class FakeBackend:
    def __init__(self):
        self.requests: list[str] = []
        self.failures: dict[str, int] = {}
        self.rides: dict[int, dict[str, Any]] = {}
        self.drivers: dict[int, dict[str, Any]] = {
            7: {"id": 7, "name": "Jean Bosco", "rating": 4.8, "available": True},
        }
        self.users: dict[str, dict[str, Any]] = {
            "rider@example.com": {
                "id": 1,
                "name": "Aline Uwase",
                "email": "rider@example.com",
                "role": "RIDER",
                "password": "secret",
                "twoFactor": False,
            },
            "driver@example.com": {
                "id": 2,
                "name": "Jean Bosco",
                "email": "driver@example.com",
                "role": "DRIVER",
                "driverId": 7,
                "password": "secret",
                "twoFactor": True,
            },
        }
        self.tokens: dict[str, str] = {}
        self._next_id = 1
        self.app = self._build_app()

    # helpers used by tests

    def count(self, key: str) -> int:
        return sum(1 for r in self.requests if r == key)

    def add_ride(self, **fields: Any) -> dict[str, Any]:
        ride = {
            "id": self._next_id,
            "riderId": 1,
            "driverId": None,
            "pickupLocation": "Kigali Convention Center",
            "dropoffLocation": "Kigali International Airport",
            "pickupLatitude": -1.9536,
            "pickupLongitude": 30.0634,
            "dropoffLatitude": -1.9631,
            "dropoffLongitude": 30.1347,
            "rideTypeId": "basic",
            "paymentMethodId": "card1",
            "estimatedFare": 9000,
            "status": "PENDING",
            "bookedAt": datetime.now(timezone.utc).isoformat(),
        }
        ride.update(fields)
        self.rides[ride["id"]] = ride
        self._next_id = max(self._next_id, ride["id"]) + 1
        return ride

    def set_status(self, ride_id: int, status: str) -> None:
        self.rides[ride_id]["status"] = status

    def _public_user(self, user: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in user.items() if k not in ("password", "twoFactor")}

    def _session(self, user: dict[str, Any]) -> dict[str, Any]:
        token = f"tok-{user['id']}"
        self.tokens[token] = user["email"]
        return {"token": token, "user": self._public_user(user)}

    def _build_app(self) -> FastAPI:
        backend = self
        app = FastAPI()

        @app.middleware("http")
        async def record(request: Request, call_next):
            key = f"{request.method} {request.url.path}"
            backend.requests.append(key)
            for prefix, status in backend.failures.items():
                if key.startswith(prefix):
                    return JSONResponse({"message": "Service unavailable"}, status)
            return await call_next(request)

        def not_found(what: str) -> JSONResponse:
            return JSONResponse({"message": f"{what} not found"}, 404)

        # auth

        @app.post("/api/auth/login")
        async def login(body: dict = Body(...)):
            user = backend.users.get(body.get("email"))
            if not user or user["password"] != body.get("password"):
                return JSONResponse({"message": "Invalid credentials"}, 401)
            if user["twoFactor"]:
                return {"requiresTwoFactor": True}
            return backend._session(user)

        @app.post("/api/auth/2fa/verify")
        async def verify(body: dict = Body(...)):
            user = backend.users.get(body.get("email"))
            if not user or body.get("code") != TWO_FACTOR_CODE:
                return JSONResponse({"message": "Invalid verification code"}, 401)
            return backend._session(user)

        @app.post("/api/auth/register")
        async def register(body: dict = Body(...)):
            if body.get("email") in backend.users:
                return JSONResponse({"message": "Email already registered"}, 400)
            return {"message": "Registered", "userId": 99}

        @app.get("/api/auth/me")
        async def me(authorization: Optional[str] = Header(None)):
            token = (authorization or "").removeprefix("Bearer ")
            email = backend.tokens.get(token)
            if not email:
                return JSONResponse({"message": "Unauthorized"}, 401)
            return backend._public_user(backend.users[email])

        @app.post("/api/auth/forgot-password")
        async def forgot(body: dict = Body(...)):
            return {"message": "Reset link sent"}

        @app.post("/api/auth/reset-password")
        async def reset(body: dict = Body(...)):
            if body.get("token") != "reset-token":
                return JSONResponse({"message": "Invalid reset token"}, 400)
            return {"message": "Password updated"}

        # rides

        @app.post("/api/rides/book")
        async def book(body: dict = Body(...)):
            body.pop("id", None)
            return backend.add_ride(**{**body, "status": "PENDING"})

        @app.post("/api/rides/cancel/{ride_id}")
        async def cancel(ride_id: int):
            ride = backend.rides.get(ride_id)
            if not ride:
                return not_found("Ride")
            ride["status"] = "CANCELLED"
            return ride

        @app.post("/api/rides/rate")
        async def rate(body: dict = Body(...)):
            ride = backend.rides.get(body.get("rideId"))
            if not ride:
                return not_found("Ride")
            ride["rating"] = body.get("rating")
            return ride

        @app.post("/api/rides/accept")
        async def accept(body: dict = Body(...)):
            ride = backend.rides.get(body.get("rideId"))
            if not ride:
                return not_found("Ride")
            driver = backend.drivers[body["driverId"]]
            ride.update(
                status="ACCEPTED",
                driverId=driver["id"],
                driver={"name": driver["name"], "rating": driver["rating"]},
            )
            return ride

        @app.post("/api/rides/start/{ride_id}")
        async def start(ride_id: int):
            ride = backend.rides.get(ride_id)
            if not ride:
                return not_found("Ride")
            ride["status"] = "STARTED"
            return ride

        @app.post("/api/rides/complete/{ride_id}")
        async def complete(ride_id: int):
            ride = backend.rides.get(ride_id)
            if not ride:
                return not_found("Ride")
            ride["status"] = "COMPLETED"
            return ride

        @app.get("/api/rides/active")
        async def active(role: str, userId: int):
            key = "riderId" if role == "RIDER" else "driverId"
            live = {"PENDING", "ACCEPTED", "STARTED", "IN_PROGRESS"}
            for ride in backend.rides.values():
                if ride.get(key) == userId and ride["status"] in live:
                    return ride
            return not_found("Active ride")

        @app.get("/api/rides/history")
        async def history(role: str, userId: int, page: int = 0, size: int = 10):
            key = "riderId" if role == "RIDER" else "driverId"
            mine = [r for r in backend.rides.values() if r.get(key) == userId]
            return mine[page * size : (page + 1) * size]

        @app.get("/api/rides/available")
        async def available():
            return [r for r in backend.rides.values() if r["status"] == "PENDING"]

        @app.get("/api/rides/search")
        async def search(query: str):
            q = query.lower()
            return [
                r
                for r in backend.rides.values()
                if q in r["pickupLocation"].lower() or q in r["dropoffLocation"].lower()
            ]

        @app.get("/api/rides/drivers/{driver_id}")
        async def get_driver(driver_id: int):
            driver = backend.drivers.get(driver_id)
            return driver if driver else not_found("Driver")

        @app.post("/api/rides/drivers/{driver_id}/availability")
        async def set_availability(driver_id: int, available: bool):
            driver = backend.drivers.get(driver_id)
            if not driver:
                return not_found("Driver")
            driver["available"] = available
            return None

        @app.get("/api/rides/{ride_id}")
        async def get_ride(ride_id: int):
            ride = backend.rides.get(ride_id)
            return ride if ride else not_found("Ride")

        return app


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest_asyncio.fixture
async def api_client(backend: FakeBackend) -> AsyncGenerator[ApiClient, None]:
    client = ApiClient(BASE_URL, transport=httpx.ASGITransport(app=backend.app))
    yield client
    await client.aclose()


@pytest.fixture
def rides(api_client: ApiClient) -> RidesApi:
    return RidesApi(api_client)


@pytest.fixture
def payments() -> MockPaymentService:
    return MockPaymentService(balance=15_000)


@pytest.fixture
def wallet(payments: MockPaymentService) -> WalletAdapter:
    return WalletAdapter(payments)


@pytest.fixture
def pollers() -> list[ManualPoller]:
    """Every poller the ``manual_tracker`` creates, oldest first."""
    return []


@pytest.fixture
def manual_tracker(
    rides: RidesApi, wallet: WalletAdapter, pollers: list[ManualPoller]
) -> ActiveRideTracker:
    def factory(*args, **kwargs) -> ManualPoller:
        poller = ManualPoller(*args, **kwargs)
        pollers.append(poller)
        return poller

    return ActiveRideTracker(rides, wallet, poller_factory=factory)


@pytest_asyncio.fixture
async def tracker(
    rides: RidesApi, wallet: WalletAdapter
) -> AsyncGenerator[ActiveRideTracker, None]:
    tracker = ActiveRideTracker(rides, wallet, poll_interval_seconds=0.01)
    yield tracker
    await tracker.close()
