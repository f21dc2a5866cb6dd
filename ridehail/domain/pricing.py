"""
Fare Estimate Engine
====================

Formula
-------
Total = round( round(Base_Fare + Distance x Rate_Per_KM + Minutes x Rate_Per_Min)
               x Ride_Type_Multiplier )

* Defaults: 1000 base, 500 per km, 100 per minute (RWF).
* Rounding is half-up to whole currency units at both steps.
* The quote is a non-binding client estimate; the server owns the final fare.

Complexity: O(1) per quote.
"""

from __future__ import annotations

import math

from .entities import FareQuote, RideTypeOption, RouteEstimate
from .errors import ValidationError

BASE_FARE = 1000.0
RATE_PER_KM = 500.0
RATE_PER_MINUTE = 100.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class FareCalculator:
    """Pure fare quoting with configurable rates."""

    def __init__(
        self,
        base_fare: float = BASE_FARE,
        rate_per_km: float = RATE_PER_KM,
        rate_per_minute: float = RATE_PER_MINUTE,
        currency: str = "RWF",
    ):
        self.base_fare = base_fare
        self.rate_per_km = rate_per_km
        self.rate_per_minute = rate_per_minute
        self.currency = currency

    def quote(
        self, distance_km: float, duration_min: int, multiplier: float = 1.0
    ) -> FareQuote:
        if distance_km < 0 or duration_min < 0 or multiplier < 0:
            raise ValidationError(
                "Distance, duration and multiplier must be non-negative"
            )
        distance_component = distance_km * self.rate_per_km
        time_component = duration_min * self.rate_per_minute
        subtotal = round_half_up(
            self.base_fare + distance_component + time_component
        )
        return FareQuote(
            base_fare=self.base_fare,
            distance_component=distance_component,
            time_component=time_component,
            multiplier=multiplier,
            total=round_half_up(subtotal * multiplier),
            currency=self.currency,
        )

    def quote_route(
        self, estimate: RouteEstimate | None, ride_type: RideTypeOption
    ) -> FareQuote | None:
        """Quote a route for a ride type; ``None`` when the route is incomplete."""
        if estimate is None or not estimate.is_complete:
            return None
        return self.quote(
            estimate.distance_km, estimate.duration_min, ride_type.fare_multiplier
        )


_default = FareCalculator()


def quote(distance_km: float, duration_min: int, multiplier: float = 1.0) -> FareQuote:
    """Quote with the default rates."""
    return _default.quote(distance_km, duration_min, multiplier)
