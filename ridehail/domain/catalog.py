"""Static catalogs: ride types and popular pickup / drop-off points."""

from __future__ import annotations

from typing import Optional

from .entities import Location, RideTypeOption

RIDE_TYPES: tuple[RideTypeOption, ...] = (
    RideTypeOption("basic", "RwandaRide Basic", 1.0, "Affordable rides for everyday"),
    RideTypeOption("pool", "RwandaRide Pool", 0.75, "Share & save with other riders"),
    RideTypeOption("premium", "RwandaRide Premium", 1.5, "Premium cars with top drivers"),
)

DEFAULT_RIDE_TYPE = RIDE_TYPES[0]

# Kigali, Rwanda
POPULAR_LOCATIONS: tuple[Location, ...] = (
    Location("Kigali Convention Center", -1.9536, 30.0634),
    Location("Kigali International Airport", -1.9631, 30.1347),
    Location("Kigali Heights", -1.9534, 30.0616),
    Location("Nyabugogo Bus Station", -1.9335, 30.0464),
    Location("Kimironko Market", -1.9340, 30.1130),
    Location("Downtown Kigali", -1.9474, 30.0618),
    Location("Gikondo", -1.9722, 30.0797),
    Location("Remera", -1.9557, 30.1121),
    Location("Nyamirambo", -1.9779, 30.0381),
    Location("Kacyiru", -1.9390, 30.0763),
)


def get_ride_type(ride_type_id: str) -> Optional[RideTypeOption]:
    for option in RIDE_TYPES:
        if option.id == ride_type_id:
            return option
    return None


def search_locations(term: str) -> list[Location]:
    """Case-insensitive substring match on location names."""
    if not term:
        return []
    needle = term.lower()
    return [loc for loc in POPULAR_LOCATIONS if needle in loc.name.lower()]
