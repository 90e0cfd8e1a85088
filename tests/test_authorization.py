"""Unit tests for the authorization gate's permission table."""

from types import SimpleNamespace

import pytest

from ridehail.domain.authorization import Action, authorize, is_party
from ridehail.domain.exceptions import Forbidden
from tests.conftest import driver, passenger

OWNER = passenger(1)
OTHER_PASSENGER = passenger(2)
ASSIGNED = driver(1)
OTHER_DRIVER = driver(2)


def _ride(passenger_id=1, driver_id=1):
    return SimpleNamespace(passenger_id=passenger_id, driver_id=driver_id)


class TestRoleActions:
    def test_only_passengers_create(self):
        authorize(OWNER, Action.CREATE)
        with pytest.raises(Forbidden):
            authorize(ASSIGNED, Action.CREATE)

    @pytest.mark.parametrize("action", [Action.ACCEPT, Action.FIND_NEARBY])
    def test_any_driver_for_dispatch(self, action):
        authorize(OTHER_DRIVER, action)
        with pytest.raises(Forbidden):
            authorize(OWNER, action)


class TestRideActions:
    @pytest.mark.parametrize("action", [Action.START, Action.COMPLETE])
    def test_only_assigned_driver_drives(self, action):
        ride = _ride()
        authorize(ASSIGNED, action, ride)
        for actor in (OWNER, OTHER_DRIVER, OTHER_PASSENGER):
            with pytest.raises(Forbidden):
                authorize(actor, action, ride)

    @pytest.mark.parametrize("action", [Action.CANCEL, Action.RATE, Action.READ])
    def test_either_party(self, action):
        ride = _ride()
        authorize(OWNER, action, ride)
        authorize(ASSIGNED, action, ride)
        for actor in (OTHER_DRIVER, OTHER_PASSENGER):
            with pytest.raises(Forbidden):
                authorize(actor, action, ride)

    def test_no_driver_is_party_before_acceptance(self):
        ride = _ride(driver_id=None)
        assert is_party(OWNER, ride)
        assert not is_party(ASSIGNED, ride)
        with pytest.raises(Forbidden):
            authorize(ASSIGNED, Action.READ, ride)

    def test_ids_are_scoped_by_role(self):
        """Passenger 1 and driver 1 are different people."""
        ride = _ride(passenger_id=1, driver_id=2)
        assert is_party(passenger(1), ride)
        assert not is_party(driver(1), ride)

    def test_ride_actions_need_a_ride(self):
        with pytest.raises(ValueError):
            authorize(OWNER, Action.READ)

    def test_forbidden_message(self):
        with pytest.raises(Forbidden, match="not authorized to start this ride"):
            authorize(OWNER, Action.START, _ride())
