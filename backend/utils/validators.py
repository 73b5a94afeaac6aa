"""
Input validation utilities for the Darzi backend.

Provides reusable validators for party references, coordinates, amounts and
order listing filters. All failures raise the domain ValidationError (400),
or MissingLocationError when discovery has no usable origin.
"""
import math

from fastapi import Path

from domain.constants import STATUS_FILTER_ALL, STATUS_FILTER_ONGOING
from domain.enums import OrderStatus
from domain.errors import MissingLocationError, ValidationError
from domain.state_machine import ONGOING_STATUSES

MAX_REF_LENGTH = 64


def validate_ref(value: str | None, field: str) -> str:
    """
    Validate a requester/provider/order identifier.

    Returns:
        The stripped identifier

    Raises:
        ValidationError if the identifier is missing, blank or too long
    """
    if value is None or not str(value).strip():
        raise ValidationError("is required", field=field)
    value = str(value).strip()
    if len(value) > MAX_REF_LENGTH:
        raise ValidationError(f"must be at most {MAX_REF_LENGTH} characters", field=field)
    return value


def validate_coordinates(lat: float | None, lng: float | None) -> tuple[float, float]:
    """Check a discovery origin is present, finite and within geographic bounds."""
    if lat is None or lng is None:
        raise MissingLocationError()
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise ValidationError("coordinates must be finite numbers", field="location")
    if not -90.0 <= lat <= 90.0:
        raise ValidationError(f"latitude {lat} outside [-90, 90]", field="lat")
    if not -180.0 <= lng <= 180.0:
        raise ValidationError(f"longitude {lng} outside [-180, 180]", field="lng")
    return float(lat), float(lng)


def validate_amounts(total_amount: float, deposit_amount: float) -> None:
    """Deposit and total must be non-negative, and the deposit cannot exceed the total."""
    if total_amount is None or not math.isfinite(total_amount) or total_amount < 0:
        raise ValidationError("must be a non-negative number", field="totalAmount")
    if deposit_amount is None or not math.isfinite(deposit_amount) or deposit_amount < 0:
        raise ValidationError("must be a non-negative number", field="depositAmount")
    if deposit_amount > total_amount:
        raise ValidationError(
            f"deposit {deposit_amount} exceeds total {total_amount}",
            field="depositAmount",
        )


def validate_measurements(measurements: dict | None) -> dict:
    """Measurements are an opaque name → number mapping."""
    if not measurements:
        return {}
    if not isinstance(measurements, dict):
        raise ValidationError("must be an object of name → number", field="measurements")
    for key, value in measurements.items():
        if not isinstance(key, str) or not key.strip():
            raise ValidationError("names must be non-empty strings", field="measurements")
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValidationError(f"value for '{key}' must be a number", field="measurements")
    return dict(measurements)


def parse_status_filter(status_filter: str | None) -> tuple[OrderStatus, ...] | None:
    """
    Translate a provider dashboard filter into the statuses it selects.

    Returns:
        None for "all" (or no filter), the ongoing group for "ongoing",
        or a single status for an exact status name (case-insensitive)
    """
    if status_filter is None or not status_filter.strip():
        return None
    normalized = status_filter.strip()
    if normalized.lower() == STATUS_FILTER_ALL:
        return None
    if normalized.lower() == STATUS_FILTER_ONGOING:
        return ONGOING_STATUSES
    try:
        return (OrderStatus(normalized.upper()),)
    except ValueError:
        raise ValidationError(
            f"unknown status filter '{status_filter}'",
            field="status",
            details={"allowed": [STATUS_FILTER_ALL, STATUS_FILTER_ONGOING] + [s.value for s in OrderStatus]},
        )


def validated_order_id(order_id: str = Path(..., description="Order identifier")) -> str:
    """FastAPI dependency for validating order id path parameters."""
    return validate_ref(order_id, "order_id")
