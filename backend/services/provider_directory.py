"""
Provider directory — read-only queries over the tailor read model.

The providers table is owned by the account/profile service; nothing here
writes to it. Proximity queries prefilter with a lat/lng bounding box in SQL
(indexed), then compute the exact great-circle distance in Python.
"""
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Provider
from domain.enums import ProviderStatus
from utils.geo import bounding_box, haversine_km

logger = logging.getLogger(__name__)


def _discoverable():
    """Only ACTIVE providers with a full location can ever be discovered."""
    return (
        Provider.status == ProviderStatus.ACTIVE.value,
        Provider.latitude.is_not(None),
        Provider.longitude.is_not(None),
    )


async def query_within_radius(
    db: AsyncSession,
    lat: float,
    lng: float,
    radius_km: float,
    precision: int = 2,
) -> list[tuple[Provider, float]]:
    """
    All discoverable providers within `radius_km` of (lat, lng).

    Distances are rounded to `precision` decimals before comparing against the
    radius, so a provider's inclusion agrees with the distance it is reported at.

    Returns:
        [(provider, distance_km)] sorted by distance, then provider id
    """
    # Widen the box by half a display unit so rounding can't drop a border hit
    slack = 0.5 * 10 ** (-precision)
    min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, radius_km + slack)

    res = await db.execute(
        select(Provider).where(
            *_discoverable(),
            Provider.latitude.between(min_lat, max_lat),
            Provider.longitude.between(min_lng, max_lng),
        )
    )

    hits: list[tuple[Provider, float]] = []
    for provider in res.scalars().all():
        distance = round(haversine_km(lat, lng, provider.latitude, provider.longitude), precision)
        if distance <= radius_km:
            hits.append((provider, distance))

    hits.sort(key=lambda hit: (hit[1], hit[0].id))
    logger.debug(f"Directory: {len(hits)} provider(s) within {radius_km} km of ({lat}, {lng})")
    return hits


async def list_active_providers(
    db: AsyncSession,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Provider], int]:
    """All ACTIVE providers, located or not, ordered by id. Returns (page, total)."""
    criteria = (Provider.status == ProviderStatus.ACTIVE.value,)

    total = (await db.execute(select(func.count(Provider.id)).where(*criteria))).scalar_one()
    res = await db.execute(
        select(Provider)
        .where(*criteria)
        .order_by(Provider.id)
        .limit(limit)
        .offset(offset)
    )
    return list(res.scalars().all()), total
