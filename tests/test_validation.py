"""Unit tests for the validation gate."""

import pytest

from ridehail.domain.enums import PaymentMethod
from ridehail.domain.exceptions import RideValidationError
from ridehail.domain.validation import (
    validate_cancellation_reason,
    validate_rating,
    validate_ride_request,
    validate_search,
)
from tests.conftest import ride_request


def _fields(exc_info) -> set[str]:
    return {e.field for e in exc_info.value.errors}


class TestRideRequest:
    def test_valid_request_is_normalised(self):
        body = ride_request()
        body["pickup_location"]["address"] = "  Data Darbar, Ravi Road  "
        draft = validate_ride_request(body)

        assert draft.pickup.address == "Data Darbar, Ravi Road"
        assert draft.pickup.point.as_coordinates() == [74.3587, 31.5204]
        assert draft.fare == 268.0
        assert draft.duration == 15
        assert draft.payment_method is PaymentMethod.CASH
        assert draft.vehicle_type == "bike"
        assert draft.notes == ""

    def test_optional_fields_are_kept(self):
        draft = validate_ride_request(
            ride_request(
                vehicle_type="car",
                notes="Gate 2",
                estimated_arrival="5 mins",
                route_polyline="_p~iF~ps|U_ulLnnqC",
            )
        )
        assert draft.vehicle_type == "car"
        assert draft.notes == "Gate 2"
        assert draft.estimated_arrival == "5 mins"
        assert draft.route_polyline == "_p~iF~ps|U_ulLnnqC"

    def test_integral_float_duration_is_accepted(self):
        assert validate_ride_request(ride_request(duration=15.0)).duration == 15

    def test_all_errors_are_collected(self):
        body = ride_request(fare=0, distance=-1, duration=2.5, payment_method="crypto")
        body["pickup_location"]["address"] = "abc"
        body["drop_location"]["coordinates"] = [200, 31.5]

        with pytest.raises(RideValidationError) as exc_info:
            validate_ride_request(body)

        assert _fields(exc_info) == {
            "fare",
            "distance",
            "duration",
            "payment_method",
            "pickup_location.address",
            "drop_location.coordinates",
        }

    def test_missing_required_fields(self):
        with pytest.raises(RideValidationError) as exc_info:
            validate_ride_request({})
        assert _fields(exc_info) == {
            "pickup_location",
            "drop_location",
            "fare",
            "distance",
            "duration",
            "payment_method",
        }

    def test_location_needs_all_parts(self):
        body = ride_request()
        del body["pickup_location"]["city"]
        with pytest.raises(RideValidationError) as exc_info:
            validate_ride_request(body)
        assert _fields(exc_info) == {"pickup_location"}

    def test_short_city_is_rejected(self):
        body = ride_request()
        body["drop_location"]["city"] = " L "
        with pytest.raises(RideValidationError) as exc_info:
            validate_ride_request(body)
        assert _fields(exc_info) == {"drop_location.city"}

    @pytest.mark.parametrize("coords", [[74.3, 91], [-181, 31.5], [74.3], "74,31"])
    def test_bad_coordinates(self, coords):
        body = ride_request()
        body["pickup_location"]["coordinates"] = coords
        with pytest.raises(RideValidationError) as exc_info:
            validate_ride_request(body)
        assert _fields(exc_info) == {"pickup_location.coordinates"}

    def test_boolean_fare_is_rejected(self):
        with pytest.raises(RideValidationError) as exc_info:
            validate_ride_request(ride_request(fare=True))
        assert _fields(exc_info) == {"fare"}

    def test_notes_length_limit(self):
        with pytest.raises(RideValidationError) as exc_info:
            validate_ride_request(ride_request(notes="x" * 501))
        assert _fields(exc_info) == {"notes"}


class TestRating:
    @pytest.mark.parametrize("rating", [1, 3, 5])
    def test_valid(self, rating):
        assert validate_rating(rating) == rating

    @pytest.mark.parametrize("rating", [0, 6, 4.5, "5", None, True, False])
    def test_invalid(self, rating):
        with pytest.raises(RideValidationError):
            validate_rating(rating)


class TestCancellationReason:
    def test_none_and_blank_mean_no_reason(self):
        assert validate_cancellation_reason(None) is None
        assert validate_cancellation_reason("   ") is None

    def test_reason_is_trimmed(self):
        assert validate_cancellation_reason(" Changed plans ") == "Changed plans"

    def test_too_long(self):
        with pytest.raises(RideValidationError):
            validate_cancellation_reason("x" * 501)


class TestSearch:
    def _search(self, lng=74.3587, lat=31.5204, radius=None):
        return validate_search(lng, lat, radius, default_radius_m=5000, max_radius_m=20000)

    def test_default_radius(self):
        point, radius = self._search()
        assert point.as_coordinates() == [74.3587, 31.5204]
        assert radius == 5000

    def test_radius_is_clamped(self):
        assert self._search(radius=50_000)[1] == 20000

    @pytest.mark.parametrize("radius", [0, -10])
    def test_non_positive_radius(self, radius):
        with pytest.raises(RideValidationError):
            self._search(radius=radius)

    def test_missing_coordinates(self):
        with pytest.raises(RideValidationError):
            self._search(lng=None)

    def test_out_of_range_coordinates(self):
        with pytest.raises(RideValidationError):
            self._search(lat=95)
