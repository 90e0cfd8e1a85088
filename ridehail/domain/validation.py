"""
Validation gate.

Checks the shape and range of incoming requests before anything touches
the store.  All problems of a request are collected and raised together as
one ``RideValidationError`` with field-level detail.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Optional

from .entities import GeoPoint, Place, RideDraft
from .enums import DEFAULT_VEHICLE_TYPE, PaymentMethod
from .exceptions import FieldError, RideValidationError

MIN_ADDRESS_LENGTH = 5
MIN_CITY_LENGTH = 2
MAX_TEXT_LENGTH = 500


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _is_positive_int(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return isinstance(value, int) and value > 0


def _coordinates_ok(longitude: Any, latitude: Any) -> bool:
    return (
        _is_number(longitude)
        and _is_number(latitude)
        and -180 <= longitude <= 180
        and -90 <= latitude <= 90
    )


def _place(field: str, raw: Any, errors: list[FieldError]) -> Optional[Place]:
    if not isinstance(raw, Mapping):
        errors.append(
            FieldError(field, "Location must include address, city, and coordinates")
        )
        return None

    address = raw.get("address")
    city = raw.get("city")
    coordinates = raw.get("coordinates")
    if not address or not city or coordinates is None:
        errors.append(
            FieldError(field, "Location must include address, city, and coordinates")
        )
        return None

    ok = True
    if not isinstance(address, str) or len(address.strip()) < MIN_ADDRESS_LENGTH:
        errors.append(
            FieldError(
                f"{field}.address",
                f"Address must be at least {MIN_ADDRESS_LENGTH} characters long",
            )
        )
        ok = False
    if not isinstance(city, str) or len(city.strip()) < MIN_CITY_LENGTH:
        errors.append(
            FieldError(
                f"{field}.city",
                f"City must be at least {MIN_CITY_LENGTH} characters long",
            )
        )
        ok = False
    if (
        not isinstance(coordinates, (list, tuple))
        or len(coordinates) != 2
        or not _coordinates_ok(coordinates[0], coordinates[1])
    ):
        errors.append(
            FieldError(
                f"{field}.coordinates",
                "Coordinates must be [longitude, latitude] with valid ranges",
            )
        )
        ok = False

    if not ok:
        return None
    return Place(
        address=address.strip(),
        city=city.strip(),
        point=GeoPoint(float(coordinates[0]), float(coordinates[1])),
    )


def _optional_text(
    field: str, value: Any, errors: list[FieldError]
) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        errors.append(FieldError(field, f"{field} must be a string"))
        return None
    value = value.strip()
    if len(value) > MAX_TEXT_LENGTH:
        errors.append(
            FieldError(field, f"{field} cannot exceed {MAX_TEXT_LENGTH} characters")
        )
        return None
    return value


def validate_ride_request(payload: Mapping[str, Any]) -> RideDraft:
    """Return a normalised ``RideDraft`` or raise ``RideValidationError``."""
    errors: list[FieldError] = []

    required = (
        "pickup_location",
        "drop_location",
        "fare",
        "distance",
        "duration",
        "payment_method",
    )
    missing = [name for name in required if payload.get(name) is None]
    for name in missing:
        errors.append(FieldError(name, f"{name} is required"))

    pickup = drop = None
    if "pickup_location" not in missing:
        pickup = _place("pickup_location", payload["pickup_location"], errors)
    if "drop_location" not in missing:
        drop = _place("drop_location", payload["drop_location"], errors)

    fare = payload.get("fare")
    if "fare" not in missing and not (_is_number(fare) and fare > 0):
        errors.append(FieldError("fare", "Fare must be a positive number"))

    distance = payload.get("distance")
    if "distance" not in missing and not (_is_number(distance) and distance > 0):
        errors.append(FieldError("distance", "Distance must be a positive number"))

    duration = payload.get("duration")
    if "duration" not in missing and not _is_positive_int(duration):
        errors.append(FieldError("duration", "Duration must be a positive integer"))

    payment_method = payload.get("payment_method")
    if "payment_method" not in missing:
        try:
            payment_method = PaymentMethod(payment_method)
        except ValueError:
            allowed = ", ".join(m.value for m in PaymentMethod)
            errors.append(
                FieldError(
                    "payment_method", f"Payment method must be one of: {allowed}"
                )
            )

    vehicle_type = payload.get("vehicle_type") or DEFAULT_VEHICLE_TYPE
    if not isinstance(vehicle_type, str):
        errors.append(FieldError("vehicle_type", "vehicle_type must be a string"))

    notes = _optional_text("notes", payload.get("notes"), errors)
    estimated_arrival = _optional_text(
        "estimated_arrival", payload.get("estimated_arrival"), errors
    )
    route_polyline = payload.get("route_polyline")
    if route_polyline is not None and not isinstance(route_polyline, str):
        errors.append(FieldError("route_polyline", "route_polyline must be a string"))

    if errors:
        raise RideValidationError(errors)

    return RideDraft(
        pickup=pickup,
        drop=drop,
        fare=float(fare),
        distance=float(distance),
        duration=int(duration),
        payment_method=payment_method,
        vehicle_type=vehicle_type.strip() or DEFAULT_VEHICLE_TYPE,
        notes=notes or "",
        estimated_arrival=estimated_arrival or None,
        route_polyline=route_polyline,
    )


def validate_rating(rating: Any) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise RideValidationError(
            [FieldError("rating", "Rating must be an integer between 1 and 5")],
            "Rating must be an integer between 1 and 5",
        )
    return rating


def validate_cancellation_reason(reason: Any) -> Optional[str]:
    errors: list[FieldError] = []
    value = _optional_text("reason", reason, errors)
    if errors:
        raise RideValidationError(errors)
    return value or None


def validate_search(
    longitude: Any,
    latitude: Any,
    radius_m: Any,
    *,
    default_radius_m: int,
    max_radius_m: int,
) -> tuple[GeoPoint, int]:
    """Return the search point and the effective (clamped) radius."""
    errors: list[FieldError] = []
    if longitude is None or latitude is None:
        errors.append(FieldError("coordinates", "Longitude and latitude are required"))
    elif not _coordinates_ok(longitude, latitude):
        errors.append(FieldError("coordinates", "Invalid coordinates provided"))

    if radius_m is None:
        radius_m = default_radius_m
    elif not _is_number(radius_m) or radius_m <= 0:
        errors.append(FieldError("radius", "Radius must be a positive number of metres"))

    if errors:
        raise RideValidationError(errors)

    return (
        GeoPoint(float(longitude), float(latitude)),
        int(min(radius_m, max_radius_m)),
    )
