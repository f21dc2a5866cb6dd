"""
Integration tests for the REST wrappers and the application factory.

The fake backend from ``conftest`` is mounted through
``httpx.ASGITransport``; transport failures use ``httpx.MockTransport``.
"""

from __future__ import annotations

import httpx
import pytest

from ridehail.api.auth import AuthApi
from ridehail.api.rides import RidesApi
from ridehail.api.schemas import BookRidePayload
from ridehail.app import build_routing_provider, create_app
from ridehail.config import Settings
from ridehail.domain.entities import BookingRequest, Location
from ridehail.domain.enums import RideStatus, UserRole
from ridehail.domain.errors import (
    AuthenticationError,
    ErrorKind,
    NetworkError,
    NotFoundError,
    ServerError,
)
from ridehail.infrastructure.http import ApiClient
from ridehail.infrastructure.routing import (
    GoogleDirectionsProvider,
    HaversineRoutingProvider,
)
from ridehail.infrastructure.token_store import TOKEN_KEY, InMemoryTokenStore
from ridehail.services.availability import DriverAvailability
from ridehail.services.booking import BookingSubmitter
from ridehail.services.dashboard import (
    driver_stats,
    load_driver_dashboard,
    load_rider_dashboard,
)
from ridehail.services.notifications import Level, Notifier
from tests.helpers import BASE_URL


def _client(handler) -> ApiClient:
    return ApiClient(BASE_URL, transport=httpx.MockTransport(handler))


def _payload(**overrides) -> BookRidePayload:
    fields = dict(
        rider_id=1,
        pickup_location="Kigali Convention Center",
        dropoff_location="Kigali International Airport",
        pickup_latitude=-1.9536,
        pickup_longitude=30.0634,
        dropoff_latitude=-1.9631,
        dropoff_longitude=30.1347,
        ride_type_id="basic",
        payment_method_id="card1",
        estimated_fare=9000,
        distance=12.0,
        duration=20,
    )
    fields.update(overrides)
    return BookRidePayload(**fields)


# ── ApiClient error mapping ─────────────────────────────────────────


class TestApiClient:
    @pytest.mark.asyncio
    async def test_transport_failure_is_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        with pytest.raises(NetworkError) as exc_info:
            await client.get("/api/rides/1")
        assert exc_info.value.kind == ErrorKind.NETWORK
        await client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error",
        [
            (404, NotFoundError),
            (401, AuthenticationError),
            (403, AuthenticationError),
            (500, ServerError),
        ],
    )
    async def test_status_mapping(self, status, error):
        client = _client(lambda r: httpx.Response(status, json={"message": "nope"}))
        with pytest.raises(error) as exc_info:
            await client.get("/x")
        assert exc_info.value.status_code == status
        assert exc_info.value.message == "nope"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_plain_text_error_body(self):
        client = _client(lambda r: httpx.Response(502, text="Bad gateway"))
        with pytest.raises(ServerError) as exc_info:
            await client.get("/x")
        assert exc_info.value.message == "Bad gateway"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_empty_body_is_none(self):
        client = _client(lambda r: httpx.Response(200))
        assert await client.post("/x") is None
        await client.aclose()

    @pytest.mark.asyncio
    async def test_bearer_header_from_token_provider(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={})

        client = _client(handler)
        client.token_provider = lambda: "tok-1"
        await client.get("/x")
        assert seen["auth"] == "Bearer tok-1"
        await client.aclose()


# ── Ride endpoints ──────────────────────────────────────────────────


class TestRidesApi:
    @pytest.mark.asyncio
    async def test_book_sends_camel_case(self, rides, backend):
        ride = await rides.book_ride(_payload())
        assert ride.status == RideStatus.PENDING
        stored = backend.rides[ride.id]
        assert stored["pickupLatitude"] == -1.9536
        assert stored["estimatedFare"] == 9000

    def test_payload_rejects_bad_coordinates(self):
        with pytest.raises(ValueError):
            _payload(pickup_latitude=95.0)

    @pytest.mark.asyncio
    async def test_driver_lifecycle(self, rides, backend):
        ride = await rides.book_ride(_payload())

        available = await rides.get_available_rides()
        assert [r.id for r in available] == [ride.id]

        accepted = await rides.accept_ride(ride.id, 7)
        assert accepted.status == RideStatus.ACCEPTED
        assert accepted.driver.name == "Jean Bosco"

        assert (await rides.start_ride(ride.id)).status == RideStatus.STARTED
        assert (await rides.complete_ride(ride.id)).status == RideStatus.COMPLETED
        assert await rides.get_available_rides() == []

    @pytest.mark.asyncio
    async def test_active_ride_absent_is_none(self, rides):
        assert await rides.get_active_ride(UserRole.RIDER, 1) is None

    @pytest.mark.asyncio
    async def test_active_ride_for_rider(self, rides, backend):
        backend.add_ride(status="COMPLETED")
        live = backend.add_ride(status="STARTED")
        active = await rides.get_active_ride(UserRole.RIDER, 1)
        assert active.id == live["id"]

    @pytest.mark.asyncio
    async def test_history_and_search(self, rides, backend):
        backend.add_ride(dropoffLocation="Nyarutarama")
        backend.add_ride()
        history = await rides.get_ride_history(UserRole.RIDER, 1, 0, 10)
        assert len(history) == 2
        found = await rides.search_rides("nyaru")
        assert [r.dropoff_location for r in found] == ["Nyarutarama"]

    @pytest.mark.asyncio
    async def test_rate_and_cancel(self, rides, backend):
        ride = backend.add_ride(status="COMPLETED")
        rated = await rides.rate_ride(ride["id"], 5, "Great")
        assert rated.rating == 5

        other = backend.add_ride()
        cancelled = await rides.cancel_ride(other["id"])
        assert cancelled.status == RideStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_unknown_ride(self, rides):
        with pytest.raises(NotFoundError):
            await rides.get_ride(999)

    @pytest.mark.asyncio
    async def test_driver_profile_and_availability(self, rides, backend):
        driver = await rides.get_driver(7)
        assert driver.available is True
        await rides.set_driver_availability(7, False)
        assert backend.drivers[7]["available"] is False

    @pytest.mark.asyncio
    async def test_empty_book_body_is_server_error(self):
        client = _client(lambda r: httpx.Response(200))
        with pytest.raises(ServerError) as exc_info:
            await RidesApi(client).book_ride(_payload())
        assert exc_info.value.kind == ErrorKind.SERVER
        await client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [{"id": 1, "status": "TELEPORTED"}, {"status": "PENDING"}, [1, 2], "ok"],
    )
    async def test_body_not_matching_schema_is_server_error(self, body):
        client = _client(lambda r: httpx.Response(200, json=body))
        with pytest.raises(ServerError):
            await RidesApi(client).get_ride(1)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_history_body_that_is_not_a_list(self):
        client = _client(lambda r: httpx.Response(200, json=42))
        with pytest.raises(ServerError):
            await RidesApi(client).get_ride_history(UserRole.RIDER, 1)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_paged_history_body(self):
        page = {"content": [{"id": 3, "status": "COMPLETED"}], "totalElements": 1}
        client = _client(lambda r: httpx.Response(200, json=page))
        history = await RidesApi(client).get_ride_history(UserRole.RIDER, 1)
        assert [r.id for r in history] == [3]
        await client.aclose()


# ── Dashboards ──────────────────────────────────────────────────────


class TestDashboards:
    @pytest.mark.asyncio
    async def test_rider_dashboard(self, rides, wallet, manual_tracker, backend):
        backend.add_ride(status="COMPLETED", estimatedFare=4000)
        backend.add_ride(status="COMPLETED", estimatedFare=3000)
        live = backend.add_ride(status="ACCEPTED", paymentMethodId="wallet")

        dashboard = await load_rider_dashboard(rides, wallet, manual_tracker, 1)

        assert dashboard.active_ride.id == live["id"]
        assert manual_tracker.ride is dashboard.active_ride
        assert dashboard.wallet.amount == 15_000
        assert len(dashboard.recent_rides) == 3
        assert dashboard.total_spending == 4000 + 3000 + 9000

    @pytest.mark.asyncio
    async def test_driver_dashboard(self, rides, manual_tracker, backend):
        backend.add_ride(driverId=7, status="COMPLETED", estimatedFare=5000, rating=4)
        backend.add_ride(driverId=7, status="COMPLETED", estimatedFare=3000, rating=5)
        backend.add_ride(driverId=7, status="CANCELLED", estimatedFare=9000)

        dashboard = await load_driver_dashboard(
            rides, manual_tracker, DriverAvailability(rides, 7)
        )

        assert dashboard.earnings == 8000
        assert dashboard.completed_rides == 2
        assert dashboard.rating == 4.5
        assert dashboard.available is True
        assert dashboard.active_ride is None
        assert len(dashboard.activities) == 3

    def test_driver_stats_empty(self):
        assert driver_stats([]) == (0, 0, 0.0)


# ── Notifications ───────────────────────────────────────────────────


class TestNotifier:
    @pytest.mark.asyncio
    async def test_guard_turns_errors_into_notifications(self, rides):
        notifier = Notifier()
        assert await notifier.guard(rides.get_ride(999)) is None
        note = notifier.history[-1]
        assert note.level == Level.ERROR
        assert note.kind == ErrorKind.SERVER
        assert note.message.endswith("Please try again.")

    @pytest.mark.asyncio
    async def test_guard_success_message(self, rides, backend):
        ride = backend.add_ride()
        notifier = Notifier()
        result = await notifier.guard(rides.get_ride(ride["id"]), "Loaded")
        assert result.id == ride["id"]
        assert notifier.history[-1].level == Level.SUCCESS

    @pytest.mark.asyncio
    async def test_guard_catches_malformed_booking_response(self):
        client = _client(lambda r: httpx.Response(200))
        submitter = BookingSubmitter(RidesApi(client))
        request = BookingRequest(
            rider_id=1,
            pickup=Location("Kigali Convention Center", -1.9536, 30.0634),
            dropoff=Location("Kigali International Airport", -1.9631, 30.1347),
            ride_type_id="basic",
            payment_method_id="card1",
        )
        notifier = Notifier()

        assert await notifier.guard(submitter.submit(request)) is None
        assert notifier.history[-1].kind == ErrorKind.SERVER
        assert not submitter.busy
        await client.aclose()

    @pytest.mark.asyncio
    async def test_me_with_malformed_body(self):
        client = _client(lambda r: httpx.Response(200, json={"id": 1}))
        with pytest.raises(ServerError):
            await AuthApi(client).me()
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self):
        async def broken():
            raise KeyError("bug")

        with pytest.raises(KeyError):
            await Notifier().guard(broken())


# ── Application factory ─────────────────────────────────────────────


def _settings(**overrides) -> Settings:
    fields = dict(
        api_base_url=BASE_URL,
        routing_provider="haversine",
        poll_interval_seconds=0.01,
    )
    fields.update(overrides)
    return Settings(**fields)


class TestApplication:
    def test_build_routing_provider(self):
        assert isinstance(
            build_routing_provider(_settings()), HaversineRoutingProvider
        )
        google = build_routing_provider(
            _settings(routing_provider="google", google_maps_api_key="k")
        )
        assert isinstance(google, GoogleDirectionsProvider)
        with pytest.raises(ValueError):
            build_routing_provider(_settings(routing_provider="osm"))

    @pytest.mark.asyncio
    async def test_book_track_and_complete_end_to_end(self, backend):
        store = InMemoryTokenStore()
        app = create_app(
            _settings(),
            token_store=store,
            transport=httpx.ASGITransport(app=backend.app),
        )
        async with app:
            await app.session.login("rider@example.com", "secret")
            assert await store.get(TOKEN_KEY) == "tok-1"

            booking = await app.new_booking()
            await booking.set_pickup(booking.search_locations("convention")[0])
            await booking.set_dropoff(booking.search_locations("airport")[0])
            booking.select_payment_method("wallet")
            assert booking.can_continue

            ride = await booking.confirm(app.session.user.id)
            assert app.tracker.ride is ride
            assert app.tracker.polling

            fare = ride.estimated_fare
            finished = await app.tracker.complete()
            assert finished.status == RideStatus.COMPLETED
            assert app.wallet.balance.amount == 15_000 - fare
            assert not app.tracker.polling

    @pytest.mark.asyncio
    async def test_startup_restores_session(self, backend):
        store = InMemoryTokenStore({TOKEN_KEY: "tok-1"})
        backend.tokens["tok-1"] = "rider@example.com"
        app = create_app(
            _settings(),
            token_store=store,
            transport=httpx.ASGITransport(app=backend.app),
        )
        async with app:
            assert app.session.is_authenticated
            assert app.session.user.id == 1

    @pytest.mark.asyncio
    async def test_shutdown_stops_polling(self, backend):
        app = create_app(
            _settings(),
            token_store=InMemoryTokenStore(),
            transport=httpx.ASGITransport(app=backend.app),
        )
        live = backend.add_ride(status="ACCEPTED")
        async with app:
            await app.tracker.discover(UserRole.RIDER, 1)
            assert app.tracker.polling
        assert not app.tracker.polling
        assert live["status"] == "ACCEPTED"
