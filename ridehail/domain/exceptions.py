"""
Domain error taxonomy.

The API layer maps each class to an HTTP status (see ``ridehail.api.errors``);
services raise them synchronously and never swallow them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class RideError(Exception):
    """Base class for every expected failure of a ride operation."""

    default_message = "Ride operation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class RideValidationError(RideError):
    default_message = "Validation failed"

    def __init__(
        self, errors: list[FieldError], message: Optional[str] = None
    ):
        super().__init__(message)
        self.errors = errors


class Unauthorized(RideError):
    default_message = "Unauthorized request"


class Forbidden(RideError):
    default_message = "You are not authorized to perform this action"


class NotFound(RideError):
    default_message = "Ride not found"


class Conflict(RideError):
    """State-machine or invariant violation; names the ride in the way."""

    default_message = "Ride is in a conflicting state"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        ride_id: Optional[int] = None,
        status: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ):
        super().__init__(message)
        self.ride_id = ride_id
        self.status = status
        self.created_at = created_at


class InvalidStateTransition(Conflict):
    """Raised when a ride status change violates the state machine."""


class ActiveRideExists(Conflict):
    """Raised when an actor already holds an active ride."""
