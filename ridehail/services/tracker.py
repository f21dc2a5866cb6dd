"""
Active ride tracker
===================

Owns the single ride a rider (or driver) is currently on and keeps it in
step with the server.

States: NONE -> PENDING -> ACCEPTED -> STARTED / IN_PROGRESS ->
COMPLETED | CANCELLED.  NONE is represented by ``ride is None``.

Reconciliation
--------------
While the ride is non-terminal a ``RidePoller`` fetches its status every
interval and the server value always wins.  When the server reports a
terminal status it is shown until the next tick, which clears the ride
and ends polling without issuing another request.

User actions
------------
* ``cancel()``   -- server first; on success the ride is cleared at once.
* ``complete()`` -- settles the fare (wallet debit for WALLET rides, none
  for CARD / MOBILE_MONEY) and then completes the ride.
Only one of these may be in flight at a time.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ridehail.api.rides import RidesApi
from ridehail.api.schemas import RideResponse
from ridehail.domain.entities import ActiveRide, DriverInfo, PaymentMethod
from ridehail.domain.enums import (
    TERMINAL_STATUSES,
    PaymentMethodType,
    RideStatus,
    UserRole,
)
from ridehail.domain.errors import (
    InsufficientFundsError,
    InvalidStateTransition,
    PartialSettlementError,
    RideHailError,
    ValidationError,
)
from ridehail.infrastructure.locks import InFlightGuard
from ridehail.services.wallet import WalletAdapter
from ridehail.workers.poller import RidePoller

logger = logging.getLogger(__name__)

PollerFactory = Callable[..., RidePoller]


class ActiveRideTracker:
    def __init__(
        self,
        rides: RidesApi,
        wallet: WalletAdapter,
        *,
        poll_interval_seconds: float = 5.0,
        poller_factory: PollerFactory = RidePoller,
    ):
        self.rides = rides
        self.wallet = wallet
        self.poll_interval_seconds = poll_interval_seconds
        self.ride: Optional[ActiveRide] = None
        self._poller_factory = poller_factory
        self._poller: Optional[RidePoller] = None
        self._guard = InFlightGuard("ride action")

    # ── State ─────────────────────────────────────────────────────

    @property
    def status(self) -> Optional[RideStatus]:
        """Current ride status, ``None`` when no ride is tracked."""
        return self.ride.status if self.ride else None

    @property
    def busy(self) -> bool:
        return self._guard.busy

    @property
    def polling(self) -> bool:
        return self._poller is not None and self._poller.running

    def track(self, ride: ActiveRide) -> None:
        """Take ownership of *ride* and poll it until it ends."""
        self._cancel_poller()
        if ride.is_terminal:
            self.ride = None
            return
        self.ride = ride
        self._poller = self._poller_factory(
            ride.id, self._tick, interval_seconds=self.poll_interval_seconds
        )
        self._poller.start()

    async def discover(self, role: UserRole, user_id: int) -> Optional[ActiveRide]:
        """Look up the user's current ride (dashboard mount) and track it."""
        response = await self.rides.get_active_ride(role, user_id)
        if response is None or response.status in TERMINAL_STATUSES:
            return None
        ride = response.to_active_ride()
        if ride.payment_method_id:
            ride.payment_method = await self._lookup_method(ride.payment_method_id)
        self.track(ride)
        return ride

    async def close(self) -> None:
        """Tear down polling immediately; no request is issued afterwards."""
        if self._poller is not None:
            await self._poller.stop()
            self._poller = None

    # ── Polling ───────────────────────────────────────────────────

    async def _tick(self, ride_id: int) -> bool:
        ride = self.ride
        if ride is None or ride.id != ride_id:
            return False
        if ride.is_terminal:
            logger.info("Ride %s ended with %s; clearing", ride.id, ride.status.value)
            self._clear(ride)
            return False

        response = await self.rides.get_ride(ride_id)
        if self.ride is not ride:
            return False
        self._reconcile(ride, response)
        return True

    @staticmethod
    def _reconcile(ride: ActiveRide, response: RideResponse) -> None:
        new_status = response.status
        if new_status != ride.status:
            previous = ride.status
            try:
                ride.transition_to(new_status)
                logger.info("Ride %s: %s -> %s", ride.id, previous.value, new_status.value)
            except InvalidStateTransition:
                logger.warning(
                    "Ride %s jumped %s -> %s; accepting server state",
                    ride.id,
                    previous.value,
                    new_status.value,
                )
                ride.status = new_status
        if response.driver is not None:
            ride.driver = DriverInfo(response.driver.name, response.driver.rating)
        if response.estimated_fare is not None:
            ride.estimated_fare = response.estimated_fare

    # ── User actions ──────────────────────────────────────────────

    def _require_active(self) -> ActiveRide:
        ride = self.ride
        if ride is None:
            raise InvalidStateTransition("No active ride")
        if ride.is_terminal:
            raise InvalidStateTransition(f"Ride {ride.id} already {ride.status.value}")
        return ride

    async def cancel(self) -> None:
        ride = self._require_active()
        async with self._guard:
            await self.rides.cancel_ride(ride.id)
        logger.info("Ride %s cancelled", ride.id)
        self._clear(ride)

    async def complete(self) -> ActiveRide:
        """Settle the fare and complete the ride; returns the finished ride."""
        ride = self._require_active()
        async with self._guard:
            fare = ride.estimated_fare
            if fare is None:
                raise ValidationError(f"Ride {ride.id} has no fare", ("estimated_fare",))
            method = ride.payment_method
            if method is None and ride.payment_method_id:
                method = await self._lookup_method(ride.payment_method_id)
            if method is None:
                raise ValidationError(
                    f"Ride {ride.id} has no usable payment method", ("payment_method",)
                )

            debited = 0
            if method.type == PaymentMethodType.WALLET:
                balance = await self.wallet.get_balance()
                if balance.amount < fare:
                    raise InsufficientFundsError(fare, balance.amount)
                if fare > 0:
                    await self.wallet.debit(fare)
                    debited = fare

            try:
                await self.rides.complete_ride(ride.id)
            except RideHailError as exc:
                if debited:
                    logger.error(
                        "Ride %s: wallet debited %d but completion failed", ride.id, debited
                    )
                    raise PartialSettlementError(ride.id, debited, exc) from exc
                raise

        finished = ActiveRide(
            id=ride.id,
            status=RideStatus.COMPLETED,
            pickup=ride.pickup,
            dropoff=ride.dropoff,
            estimated_fare=fare,
            driver=ride.driver,
            payment_method_id=ride.payment_method_id,
            payment_method=method,
        )
        logger.info("Ride %s completed (fare=%d, %s)", ride.id, fare, method.type.value)
        self._clear(ride)
        return finished

    # ── Internals ─────────────────────────────────────────────────

    async def _lookup_method(self, payment_method_id: str) -> Optional[PaymentMethod]:
        try:
            return await self.wallet.find_payment_method(payment_method_id)
        except RideHailError:
            logger.warning("Could not resolve payment method %s", payment_method_id)
            return None

    def _clear(self, ride: ActiveRide) -> None:
        if self.ride is ride:
            self.ride = None
            self._cancel_poller()

    def _cancel_poller(self) -> None:
        if self._poller is not None:
            self._poller.cancel()
            self._poller = None
