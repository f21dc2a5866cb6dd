"""
Booking flow
============

``BookingSession`` holds one rider's in-progress selection (pickup,
drop-off, ride type, payment method) together with the derived route
estimate and fare quote.  ``BookingSubmitter`` validates and sends the
final ``BookingRequest`` and hands the resulting ``ActiveRide`` on.

Superseded estimates
--------------------
Every pickup / drop-off change bumps a generation counter.  An estimate
that comes back after a newer edit was made is dropped, so the session
always reflects the most recent selection regardless of the order in
which routing responses arrive.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from ridehail.api.rides import RidesApi
from ridehail.api.schemas import BookRidePayload
from ridehail.domain.catalog import DEFAULT_RIDE_TYPE, get_ride_type, search_locations
from ridehail.domain.entities import (
    ActiveRide,
    BookingRequest,
    FareQuote,
    Location,
    PaymentMethod,
    RideTypeOption,
    RouteEstimate,
)
from ridehail.domain.errors import ActionInProgressError, ValidationError
from ridehail.domain.pricing import FareCalculator
from ridehail.infrastructure.locks import InFlightGuard
from ridehail.services.estimator import RouteEstimator

logger = logging.getLogger(__name__)

BookedCallback = Callable[[ActiveRide], None]


class BookingSubmitter:
    def __init__(self, rides: RidesApi, on_booked: Optional[BookedCallback] = None):
        self.rides = rides
        self.on_booked = on_booked
        self._guard = InFlightGuard("booking submission")

    @property
    def busy(self) -> bool:
        return self._guard.busy

    @staticmethod
    def _payload(request: BookingRequest) -> BookRidePayload:
        try:
            return BookRidePayload(
                rider_id=request.rider_id,
                pickup_location=request.pickup.name,
                dropoff_location=request.dropoff.name,
                pickup_latitude=request.pickup.latitude,
                pickup_longitude=request.pickup.longitude,
                dropoff_latitude=request.dropoff.latitude,
                dropoff_longitude=request.dropoff.longitude,
                ride_type_id=request.ride_type_id,
                payment_method_id=request.payment_method_id,
                estimated_fare=request.fare_quote.total if request.fare_quote else None,
                distance=request.distance_km,
                duration=request.duration_min,
            )
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid booking request: {exc}") from exc

    async def submit(
        self,
        request: BookingRequest,
        payment_method: Optional[PaymentMethod] = None,
    ) -> ActiveRide:
        missing = request.missing_fields()
        if missing:
            raise ValidationError(
                f"Missing required booking fields: {', '.join(missing)}", missing
            )
        payload = self._payload(request)

        if not self._guard.acquire():
            raise ActionInProgressError("A booking is already being submitted")
        try:
            response = await self.rides.book_ride(payload)
        finally:
            self._guard.release()

        ride = response.to_active_ride()
        ride.pickup = ride.pickup or request.pickup
        ride.dropoff = ride.dropoff or request.dropoff
        if ride.estimated_fare is None and request.fare_quote:
            ride.estimated_fare = request.fare_quote.total
        ride.payment_method_id = ride.payment_method_id or request.payment_method_id
        if payment_method and payment_method.id == ride.payment_method_id:
            ride.payment_method = payment_method
        logger.info("Ride %s booked (status=%s)", ride.id, ride.status.value)

        if self.on_booked:
            self.on_booked(ride)
        return ride


class BookingSession:
    def __init__(
        self,
        estimator: RouteEstimator,
        submitter: BookingSubmitter,
        fares: Optional[FareCalculator] = None,
        payment_methods: Sequence[PaymentMethod] = (),
    ):
        self.estimator = estimator
        self.submitter = submitter
        self.fares = fares or FareCalculator()
        self.payment_methods: list[PaymentMethod] = []
        self.pickup: Optional[Location] = None
        self.dropoff: Optional[Location] = None
        self.ride_type: RideTypeOption = DEFAULT_RIDE_TYPE
        self.payment_method: Optional[PaymentMethod] = None
        self.estimate: Optional[RouteEstimate] = None
        self._generation = 0
        self.set_payment_methods(payment_methods)

    # ── Selection ─────────────────────────────────────────────────

    def set_payment_methods(self, methods: Sequence[PaymentMethod]) -> None:
        """Replace the catalog and preselect the default (else the first) method."""
        self.payment_methods = list(methods)
        self.payment_method = next(
            (m for m in self.payment_methods if m.is_default),
            self.payment_methods[0] if self.payment_methods else None,
        )

    def select_payment_method(self, payment_method_id: str) -> PaymentMethod:
        for method in self.payment_methods:
            if method.id == payment_method_id:
                self.payment_method = method
                return method
        raise ValidationError(f"Unknown payment method: {payment_method_id}")

    def select_ride_type(self, ride_type_id: str) -> RideTypeOption:
        option = get_ride_type(ride_type_id)
        if option is None:
            raise ValidationError(f"Unknown ride type: {ride_type_id}")
        self.ride_type = option
        return option

    @staticmethod
    def search_locations(term: str) -> list[Location]:
        return search_locations(term)

    async def set_pickup(self, location: Optional[Location]) -> Optional[RouteEstimate]:
        self.pickup = location
        return await self._recompute()

    async def set_dropoff(self, location: Optional[Location]) -> Optional[RouteEstimate]:
        self.dropoff = location
        return await self._recompute()

    async def _recompute(self) -> Optional[RouteEstimate]:
        self._generation += 1
        generation = self._generation
        self.estimate = None
        result = await self.estimator.estimate(self.pickup, self.dropoff)
        if generation != self._generation:
            logger.debug("Discarding superseded route estimate (gen %d)", generation)
            return self.estimate
        self.estimate = result
        return result

    # ── Derived state ─────────────────────────────────────────────

    @property
    def quote(self) -> Optional[FareQuote]:
        if self.pickup is None or self.dropoff is None:
            return None
        return self.fares.quote_route(self.estimate, self.ride_type)

    @property
    def can_continue(self) -> bool:
        return self.quote is not None

    @property
    def submitting(self) -> bool:
        return self.submitter.busy

    def build_request(self, rider_id: Optional[int]) -> BookingRequest:
        estimate = self.estimate
        return BookingRequest(
            rider_id=rider_id,
            pickup=self.pickup,
            dropoff=self.dropoff,
            ride_type_id=self.ride_type.id if self.ride_type else None,
            payment_method_id=self.payment_method.id if self.payment_method else None,
            fare_quote=self.quote,
            distance_km=estimate.distance_km if estimate else None,
            duration_min=estimate.duration_min if estimate else None,
        )

    async def confirm(self, rider_id: Optional[int]) -> ActiveRide:
        """Submit the current selection; the session resets only on success."""
        ride = await self.submitter.submit(
            self.build_request(rider_id), self.payment_method
        )
        self.reset()
        return ride

    def reset(self) -> None:
        self._generation += 1
        self.pickup = None
        self.dropoff = None
        self.estimate = None
        self.ride_type = DEFAULT_RIDE_TYPE
