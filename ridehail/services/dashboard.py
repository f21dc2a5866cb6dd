"""Rider and driver dashboard loaders."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from ridehail.api.rides import RidesApi
from ridehail.api.schemas import RideResponse
from ridehail.domain.entities import ActiveRide, WalletBalance
from ridehail.domain.enums import RideStatus, UserRole
from ridehail.services.availability import DriverAvailability
from ridehail.services.tracker import ActiveRideTracker
from ridehail.services.wallet import WalletAdapter


@dataclass
class RiderDashboard:
    active_ride: Optional[ActiveRide] = None
    recent_rides: list[RideResponse] = field(default_factory=list)
    wallet: Optional[WalletBalance] = None

    @property
    def total_spending(self) -> int:
        return sum(r.estimated_fare or 0 for r in self.recent_rides)


@dataclass
class DriverDashboard:
    earnings: int = 0
    completed_rides: int = 0
    rating: float = 0.0
    activities: list[RideResponse] = field(default_factory=list)
    active_ride: Optional[ActiveRide] = None
    available: Optional[bool] = None


async def load_rider_dashboard(
    rides: RidesApi,
    wallet: WalletAdapter,
    tracker: ActiveRideTracker,
    user_id: int,
    recent: int = 3,
) -> RiderDashboard:
    """Load the three panels concurrently; the active ride starts being tracked."""
    active, history, balance = await asyncio.gather(
        tracker.discover(UserRole.RIDER, user_id),
        rides.get_ride_history(UserRole.RIDER, user_id, 0, recent),
        wallet.get_balance(),
    )
    return RiderDashboard(active_ride=active, recent_rides=history, wallet=balance)


def driver_stats(history: list[RideResponse]) -> tuple[int, int, float]:
    """Return (earnings, completed count, average rating) for a ride history."""
    completed = [r for r in history if r.status == RideStatus.COMPLETED]
    earnings = sum(r.estimated_fare or 0 for r in completed)
    rating = (
        sum(r.rating or 0 for r in completed) / len(completed) if completed else 0.0
    )
    return earnings, len(completed), round(rating, 1)


async def load_driver_dashboard(
    rides: RidesApi,
    tracker: ActiveRideTracker,
    availability: DriverAvailability,
    history_size: int = 10,
) -> DriverDashboard:
    driver_id = availability.driver_id
    history = await rides.get_ride_history(UserRole.DRIVER, driver_id, 0, history_size)
    earnings, completed, rating = driver_stats(history)
    active = await tracker.discover(UserRole.DRIVER, driver_id)
    available = await availability.load()
    return DriverDashboard(
        earnings=earnings,
        completed_rides=completed,
        rating=rating,
        activities=history[:5],
        active_ride=active,
        available=available,
    )
