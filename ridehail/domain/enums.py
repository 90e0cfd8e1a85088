"""Domain enumerations and state-transition rules."""

import enum


class RideStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses
RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.PENDING: {RideStatus.ACCEPTED, RideStatus.CANCELLED},
    RideStatus.ACCEPTED: {RideStatus.IN_PROGRESS, RideStatus.CANCELLED},
    RideStatus.IN_PROGRESS: {RideStatus.COMPLETED},
    RideStatus.COMPLETED: set(),
    RideStatus.CANCELLED: set(),
}

# "Active" differs per actor: a driver is not bound to a ride until acceptance
PASSENGER_ACTIVE_STATUSES = (
    RideStatus.PENDING,
    RideStatus.ACCEPTED,
    RideStatus.IN_PROGRESS,
)
DRIVER_ACTIVE_STATUSES = (RideStatus.ACCEPTED, RideStatus.IN_PROGRESS)

PROGRESS_PERCENTAGE: dict[RideStatus, int] = {
    RideStatus.PENDING: 0,
    RideStatus.ACCEPTED: 25,
    RideStatus.IN_PROGRESS: 50,
    RideStatus.COMPLETED: 100,
    RideStatus.CANCELLED: 0,
}


def can_transition(current: RideStatus, target: RideStatus) -> bool:
    return target in RIDE_TRANSITIONS.get(RideStatus(current), set())


class ActorRole(str, enum.Enum):
    PASSENGER = "passenger"
    DRIVER = "driver"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    WALLET = "wallet"
    CARD = "card"


class CancelledBy(str, enum.Enum):
    PASSENGER = "passenger"
    DRIVER = "driver"
    SYSTEM = "system"


DEFAULT_VEHICLE_TYPE = "bike"
DEFAULT_CANCELLATION_REASON = "No reason provided"
