"""
Client error taxonomy.

Every failure a controller can raise derives from ``RideHailError`` and
carries an ``ErrorKind`` so the UI boundary can pick a message without
inspecting exception classes.

* VALIDATION         -- required input missing; no network call was made.
* NETWORK / SERVER   -- transport failure or non-2xx response; retryable.
* INSUFFICIENT_FUNDS -- wallet cannot cover the amount; nothing mutated.
* PARTIAL_SETTLEMENT -- wallet debited but ride completion failed.
* BUSY               -- another action of the same kind is in flight.
* INVALID_STATE      -- action not allowed from the current ride status.
"""

from __future__ import annotations

import enum
from typing import Optional


class ErrorKind(str, enum.Enum):
    VALIDATION = "VALIDATION"
    NETWORK = "NETWORK"
    SERVER = "SERVER"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    PARTIAL_SETTLEMENT = "PARTIAL_SETTLEMENT"
    BUSY = "BUSY"
    INVALID_STATE = "INVALID_STATE"
    ROUTING = "ROUTING"


class RideHailError(Exception):
    """Base class for all client-side failures."""

    kind: ErrorKind = ErrorKind.SERVER

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RideHailError):
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, fields: tuple[str, ...] = ()):
        super().__init__(message)
        self.fields = fields


class NetworkError(RideHailError):
    """Raised when the request never produced an HTTP response."""

    kind = ErrorKind.NETWORK


class ServerError(RideHailError):
    """Raised on any non-2xx response."""

    kind = ErrorKind.SERVER

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(ServerError):
    pass


class AuthenticationError(ServerError):
    pass


class InsufficientFundsError(RideHailError):
    kind = ErrorKind.INSUFFICIENT_FUNDS

    def __init__(self, required: int, available: int):
        super().__init__(
            f"Insufficient funds: {required} required, {available} available"
        )
        self.required = required
        self.available = available


class PartialSettlementError(RideHailError):
    """Wallet was debited but the ride-completion call failed afterwards."""

    kind = ErrorKind.PARTIAL_SETTLEMENT

    def __init__(self, ride_id: int, debited: int, cause: RideHailError):
        super().__init__(
            f"Ride {ride_id} was not completed after debiting {debited}: "
            f"{cause.message}"
        )
        self.ride_id = ride_id
        self.debited = debited
        self.cause = cause


class ActionInProgressError(RideHailError):
    kind = ErrorKind.BUSY


class InvalidStateTransition(RideHailError):
    """Raised when a ride status change violates the state machine."""

    kind = ErrorKind.INVALID_STATE


class RoutingError(RideHailError):
    kind = ErrorKind.ROUTING
