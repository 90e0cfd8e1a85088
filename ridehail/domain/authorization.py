"""
Authorization gate.

Decides whether a verified actor may perform an action on a ride.  The
gate only answers "does this caller have standing"; whether the ride's
state allows the action is the lifecycle manager's concern (``Conflict``).

Permission table
----------------
=============  =================  =================  ===================
Action         Passenger (owner)  Driver (assigned)  Any verified driver
=============  =================  =================  ===================
create         yes (new owner)    --                 --
accept         --                 --                 yes
find_nearby    --                 --                 yes
start          --                 yes                --
complete       --                 yes                --
cancel         yes                yes                --
rate           yes                yes                --
read           yes                yes                --
=============  =================  =================  ===================
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from .entities import Actor
from .enums import ActorRole
from .exceptions import Forbidden


class Action(str, enum.Enum):
    CREATE = "create"
    ACCEPT = "accept"
    FIND_NEARBY = "find_nearby"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"
    RATE = "rate"
    READ = "read"


# Actions decided by role alone (no ride involved yet)
_ROLE_ACTIONS: dict[Action, ActorRole] = {
    Action.CREATE: ActorRole.PASSENGER,
    Action.ACCEPT: ActorRole.DRIVER,
    Action.FIND_NEARBY: ActorRole.DRIVER,
}

# Actions that need standing on a specific ride: which parties qualify
_RIDE_ACTIONS: dict[Action, frozenset[ActorRole]] = {
    Action.START: frozenset({ActorRole.DRIVER}),
    Action.COMPLETE: frozenset({ActorRole.DRIVER}),
    Action.CANCEL: frozenset({ActorRole.PASSENGER, ActorRole.DRIVER}),
    Action.RATE: frozenset({ActorRole.PASSENGER, ActorRole.DRIVER}),
    Action.READ: frozenset({ActorRole.PASSENGER, ActorRole.DRIVER}),
}

_VERBS = {
    Action.CREATE: "book a ride",
    Action.ACCEPT: "accept rides",
    Action.FIND_NEARBY: "search for nearby rides",
    Action.START: "start this ride",
    Action.COMPLETE: "complete this ride",
    Action.CANCEL: "cancel this ride",
    Action.RATE: "rate this ride",
    Action.READ: "view this ride",
}


def is_party(actor: Actor, ride: Any) -> bool:
    """True when *actor* is the ride's passenger or its assigned driver."""
    if actor.is_passenger:
        return ride.passenger_id == actor.actor_id
    return ride.driver_id is not None and ride.driver_id == actor.actor_id


def authorize(actor: Actor, action: Action, ride: Optional[Any] = None) -> None:
    """Raise ``Forbidden`` unless the permission table allows the call."""
    message = f"You are not authorized to {_VERBS[action]}"

    required_role = _ROLE_ACTIONS.get(action)
    if required_role is not None:
        if actor.role != required_role:
            raise Forbidden(message)
        return

    if ride is None:
        raise ValueError(f"Action {action.value} requires a ride")
    if actor.role not in _RIDE_ACTIONS[action] or not is_party(actor, ride):
        raise Forbidden(message)
