"""
Domain entities and value objects.

Patterns used
-------------
- **Value Objects** (frozen): ``Location``, ``RouteEstimate``, ``FareQuote``,
  ``BookingRequest``, ``WalletBalance`` are replaced wholesale, never edited.
- **State Pattern** on ``ActiveRide``: enforces the lifecycle
  (PENDING -> ACCEPTED -> STARTED/IN_PROGRESS -> COMPLETED | CANCELLED).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional

from .enums import (
    RIDE_TRANSITIONS,
    TERMINAL_STATUSES,
    PaymentMethodType,
    RideStatus,
    TransactionType,
    UserRole,
)
from .errors import InvalidStateTransition


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    name: str
    latitude: float
    longitude: float

    @property
    def is_valid(self) -> bool:
        lat, lng = self.latitude, self.longitude
        if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
            return False
        if not (math.isfinite(lat) and math.isfinite(lng)):
            return False
        return -90 <= lat <= 90 and -180 <= lng <= 180


@dataclass(frozen=True)
class RouteEstimate:
    distance_km: Optional[float]
    duration_min: Optional[int]
    polyline: tuple[Location, ...] = ()
    degraded: bool = False

    @property
    def is_complete(self) -> bool:
        """A fare can only be quoted from a complete estimate."""
        return self.distance_km is not None and self.duration_min is not None


@dataclass(frozen=True)
class RideTypeOption:
    id: str
    name: str
    fare_multiplier: float
    description: str = ""


@dataclass(frozen=True)
class FareQuote:
    base_fare: float
    distance_component: float
    time_component: float
    multiplier: float
    total: int
    currency: str = "RWF"


@dataclass(frozen=True)
class PaymentMethod:
    id: str
    type: PaymentMethodType
    is_default: bool = False
    display: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WalletBalance:
    amount: int
    currency: str = "RWF"


@dataclass(frozen=True)
class Transaction:
    id: str
    amount: int
    type: TransactionType
    currency: str = "RWF"
    status: str = "COMPLETED"
    date: Optional[datetime] = None
    description: str = ""
    payment_method_id: Optional[str] = None
    ride_id: Optional[str] = None


@dataclass(frozen=True)
class BookingRequest:
    rider_id: Optional[int]
    pickup: Optional[Location]
    dropoff: Optional[Location]
    ride_type_id: Optional[str]
    payment_method_id: Optional[str]
    fare_quote: Optional[FareQuote] = None
    distance_km: Optional[float] = None
    duration_min: Optional[int] = None

    def missing_fields(self) -> tuple[str, ...]:
        required = ("pickup", "dropoff", "ride_type_id", "payment_method_id")
        return tuple(name for name in required if not getattr(self, name))


@dataclass(frozen=True)
class DriverInfo:
    name: str
    rating: Optional[float] = None


@dataclass(frozen=True)
class User:
    id: int
    name: str
    email: str
    role: UserRole
    driver_id: Optional[int] = None


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class ActiveRide:
    id: int
    status: RideStatus = RideStatus.PENDING
    pickup: Optional[Location] = None
    dropoff: Optional[Location] = None
    estimated_fare: Optional[int] = None
    driver: Optional[DriverInfo] = None
    payment_method_id: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_transition_to(self, new_status: RideStatus) -> bool:
        return new_status in RIDE_TRANSITIONS.get(self.status, set())

    def transition_to(self, new_status: RideStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        if not self.can_transition_to(new_status):
            raise InvalidStateTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}"
            )
        self.status = new_status
