"""
Client application factory.

* Wires settings, the HTTP client, the auth session and every service.
* ``async with create_app() as app`` restores the persisted session on
  entry and tears down pollers and HTTP connections on exit.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ridehail.api.auth import AuthApi
from ridehail.api.payments import MockPaymentService, PaymentService
from ridehail.api.rides import RidesApi
from ridehail.config import Settings, settings as default_settings
from ridehail.domain.pricing import FareCalculator
from ridehail.infrastructure.http import ApiClient
from ridehail.infrastructure.redis_client import get_redis_client
from ridehail.infrastructure.routing import (
    GoogleDirectionsProvider,
    HaversineRoutingProvider,
    RoutingProvider,
)
from ridehail.infrastructure.token_store import RedisTokenStore, TokenStore
from ridehail.services.availability import DriverAvailability
from ridehail.services.booking import BookingSession, BookingSubmitter
from ridehail.services.estimator import RouteEstimator
from ridehail.services.notifications import Notifier
from ridehail.services.session import AuthSession
from ridehail.services.tracker import ActiveRideTracker
from ridehail.services.wallet import WalletAdapter

logger = logging.getLogger(__name__)


def build_routing_provider(
    config: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> RoutingProvider:
    if config.routing_provider == "haversine":
        return HaversineRoutingProvider(config.average_speed_kmh)
    if config.routing_provider == "google":
        return GoogleDirectionsProvider(
            config.google_maps_api_key,
            config.directions_url,
            timeout=config.request_timeout_seconds,
            transport=transport,
        )
    raise ValueError(f"Unknown routing provider: {config.routing_provider}")


class RideHailApp:
    def __init__(
        self,
        config: Settings,
        *,
        token_store: TokenStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        payments: Optional[PaymentService] = None,
        routing: Optional[RoutingProvider] = None,
    ):
        self.settings = config
        self.session = AuthSession(token_store, config.token_key)
        self.client = ApiClient(
            config.api_base_url,
            timeout=config.request_timeout_seconds,
            token_provider=self.session.current_token,
            transport=transport,
        )
        self.session.bind(AuthApi(self.client))
        self.rides = RidesApi(self.client)
        self.payments = payments or MockPaymentService(
            balance=config.initial_wallet_balance,
            currency=config.currency,
            latency_seconds=config.mock_payment_latency_seconds,
        )
        self.wallet = WalletAdapter(self.payments)
        self.routing = routing or build_routing_provider(config)
        self.fares = FareCalculator(
            config.base_fare, config.rate_per_km, config.rate_per_minute, config.currency
        )
        self.notifier = Notifier()
        self.tracker = ActiveRideTracker(
            self.rides, self.wallet, poll_interval_seconds=config.poll_interval_seconds
        )

    async def new_booking(self) -> BookingSession:
        """Start a booking session; booked rides are handed to the tracker."""
        submitter = BookingSubmitter(self.rides, on_booked=self.tracker.track)
        return BookingSession(
            RouteEstimator(self.routing),
            submitter,
            self.fares,
            await self.wallet.payment_methods(),
        )

    def driver_availability(self, driver_id: int) -> DriverAvailability:
        return DriverAvailability(self.rides, driver_id)

    async def startup(self) -> None:
        user = await self.session.restore()
        if user:
            logger.info("Restored session for %s", user.email)

    async def shutdown(self) -> None:
        await self.tracker.close()
        if isinstance(self.routing, GoogleDirectionsProvider):
            await self.routing.aclose()
        await self.client.aclose()

    async def __aenter__(self) -> "RideHailApp":
        await self.startup()
        return self

    async def __aexit__(self, *args) -> None:
        await self.shutdown()


def create_app(
    config: Optional[Settings] = None,
    *,
    token_store: Optional[TokenStore] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    payments: Optional[PaymentService] = None,
    routing: Optional[RoutingProvider] = None,
) -> RideHailApp:
    config = config or default_settings
    logging.basicConfig(level=config.log_level)
    if token_store is None:
        token_store = RedisTokenStore(get_redis_client(config.redis_url))
    return RideHailApp(
        config,
        token_store=token_store,
        transport=transport,
        payments=payments,
        routing=routing,
    )
