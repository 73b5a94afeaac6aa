"""
Provider discovery endpoints.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from deps import Pagination, discovery_filters, get_db, pagination_params, radius_policy_params
from domain.responses import paginated_response, success_response
from models import DiscoveryFilters, ProviderSummary, RadiusPolicy
from services import discovery_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/providers", tags=["providers"])


@router.get("/nearby")
async def find_nearby_providers(
    lat: Optional[float] = Query(None, description="Requester latitude"),
    lng: Optional[float] = Query(None, description="Requester longitude"),
    filters: DiscoveryFilters = Depends(discovery_filters),
    policy: RadiusPolicy = Depends(radius_policy_params),
    db: AsyncSession = Depends(get_db),
):
    """
    Nearby ACTIVE providers, nearest first.

    The radius starts at minRadiusKm and widens by stepKm until a provider
    matches or maxRadiusKm is reached; meta.radius_km reports the radius used.
    """
    result = await discovery_service.find_nearby(db, lat, lng, filters, policy)
    return success_response(
        data=result.providers,
        meta={
            "radius_km": result.radius_used_km,
            "rounds": result.rounds,
            "count": len(result.providers),
        },
    )


@router.get("")
async def list_providers(
    page: Pagination = Depends(pagination_params),
    db: AsyncSession = Depends(get_db),
):
    """All ACTIVE providers (fallback listing when the requester has no location)."""
    providers, total = await discovery_service.list_active_providers(
        db, limit=page["limit"], offset=page["offset"]
    )
    return paginated_response(
        [
            ProviderSummary(
                id=p.id,
                name=p.name,
                shop_name=p.shop_name,
                status=p.status,
                rating=p.rating,
                specializations=list(p.specializations or []),
                provides_fabric=p.provides_fabric,
                city=p.city,
                has_location=p.latitude is not None and p.longitude is not None,
            )
            for p in providers
        ],
        limit=page["limit"],
        offset=page["offset"],
        total=total,
    )
