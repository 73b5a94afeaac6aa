"""
Shared FastAPI dependencies.

Routers import the DB session, pagination and discovery query parsing from
here so the query-string contract lives in one place.
"""

from __future__ import annotations

from typing import Optional, TypedDict

from fastapi import Query

from database import get_db  # noqa: F401  (re-exported for routers)
from models import DiscoveryFilters, RadiusPolicy


class Pagination(TypedDict):
    limit: int
    offset: int


def pagination_params(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=100_000),
) -> Pagination:
    return {"limit": limit, "offset": offset}


def discovery_filters(
    garment_type: Optional[str] = Query(None, alias="garmentType", max_length=100),
    requires_fabric: bool = Query(False, alias="requiresFabric"),
) -> DiscoveryFilters:
    """Capability filters from the query string (absent filters impose nothing)."""
    return DiscoveryFilters(
        garment_type=garment_type or None,
        requires_fabric_provision=requires_fabric,
    )


def radius_policy_params(
    min_radius_km: Optional[float] = Query(None, alias="minRadiusKm"),
    max_radius_km: Optional[float] = Query(None, alias="maxRadiusKm"),
    step_km: Optional[float] = Query(None, alias="stepKm"),
) -> RadiusPolicy:
    """Escalation bounds; range checks happen in the discovery service (400, not 422)."""
    return RadiusPolicy(
        min_radius_km=min_radius_km,
        max_radius_km=max_radius_km,
        step_km=step_km,
    )
