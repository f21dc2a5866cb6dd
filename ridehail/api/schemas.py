"""Pydantic request / response schemas for the REST API (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ridehail.domain.entities import (
    ActiveRide,
    DriverInfo,
    Location,
    User,
)
from ridehail.domain.enums import RideStatus, UserRole
from ridehail.domain.errors import ServerError

_WIRE = {"alias_generator": to_camel, "populate_by_name": True, "extra": "ignore"}

M = TypeVar("M", bound=BaseModel)


# ── Requests ──────────────────────────────────────────────────────────


class BookRidePayload(BaseModel):
    rider_id: Optional[int] = None
    pickup_location: str
    dropoff_location: str
    pickup_latitude: float = Field(..., ge=-90, le=90)
    pickup_longitude: float = Field(..., ge=-180, le=180)
    dropoff_latitude: float = Field(..., ge=-90, le=90)
    dropoff_longitude: float = Field(..., ge=-180, le=180)
    ride_type_id: str
    payment_method_id: str
    estimated_fare: Optional[int] = None
    distance: Optional[float] = None
    duration: Optional[int] = None

    model_config = _WIRE


class LoginPayload(BaseModel):
    email: str
    password: str


# ── Responses ─────────────────────────────────────────────────────────


class DriverResponse(BaseModel):
    id: Optional[int] = None
    name: str = ""
    rating: Optional[float] = None
    available: bool = False

    model_config = _WIRE


class RideResponse(BaseModel):
    id: int
    rider_id: Optional[int] = None
    driver_id: Optional[int] = None
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    pickup_latitude: Optional[float] = None
    pickup_longitude: Optional[float] = None
    dropoff_latitude: Optional[float] = None
    dropoff_longitude: Optional[float] = None
    ride_type_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    estimated_fare: Optional[int] = None
    distance: Optional[float] = None
    duration: Optional[int] = None
    status: RideStatus = RideStatus.PENDING
    driver: Optional[DriverResponse] = None
    rating: Optional[float] = None
    booked_at: Optional[datetime] = None

    model_config = _WIRE

    def to_active_ride(self) -> ActiveRide:
        return ActiveRide(
            id=self.id,
            status=self.status,
            pickup=_location(
                self.pickup_location, self.pickup_latitude, self.pickup_longitude
            ),
            dropoff=_location(
                self.dropoff_location, self.dropoff_latitude, self.dropoff_longitude
            ),
            estimated_fare=self.estimated_fare,
            driver=(
                DriverInfo(self.driver.name, self.driver.rating)
                if self.driver
                else None
            ),
            payment_method_id=self.payment_method_id,
        )


class UserResponse(BaseModel):
    id: int
    name: str = ""
    email: str
    role: UserRole
    driver_id: Optional[int] = None

    model_config = _WIRE

    def to_user(self) -> User:
        return User(
            id=self.id,
            name=self.name,
            email=self.email,
            role=self.role,
            driver_id=self.driver_id,
        )


class LoginResponse(BaseModel):
    token: Optional[str] = None
    user: Optional[UserResponse] = None
    requires_two_factor: bool = False

    model_config = _WIRE


def _location(
    name: Optional[str], lat: Optional[float], lng: Optional[float]
) -> Optional[Location]:
    if lat is None or lng is None:
        return None
    return Location(name or "", lat, lng)


def parse(model: type[M], data: Any) -> M:
    """Validate a 2xx body; a body that does not fit *model* is a server fault."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ServerError(
            f"Malformed server response ({model.__name__}): "
            f"{exc.error_count()} invalid field(s)"
        ) from exc
