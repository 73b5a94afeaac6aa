"""
Discovery Service — finds nearby tailors that can make the requested garment.

Radius escalation:
    Start at min_radius_km. Query the directory, apply capability filters.
    If nothing matches and the ceiling isn't reached, widen by step_km and
    query again. The loop is bounded: at most
    ceil((max_radius_km - min_radius_km) / step_km) + 1 rounds.

An empty result at the ceiling is a normal answer, not an error.

Results are pure reads and are cached briefly in-process, keyed on the
rounded origin, the filters and the resolved radius policy.
"""
import logging
import time
from collections import OrderedDict
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import translate_storage_errors
from domain.constants import DISCOVERY_CACHE_COORD_DECIMALS
from domain.errors import ValidationError
from models import DiscoveryFilters, NearbyProvider, NearbyResult, RadiusPolicy
from services import provider_directory
from utils.validators import validate_coordinates

logger = logging.getLogger(__name__)


class DiscoveryCache:
    """
    Small in-memory TTL cache for discovery results.

    Per-process only; entries expire after `ttl_seconds` and the oldest
    entry is evicted once `max_entries` is reached.
    """

    def __init__(self, ttl_seconds: int, max_entries: int):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        # {key: (expires_at, result)}
        self._entries: "OrderedDict[tuple, tuple[float, NearbyResult]]" = OrderedDict()

    def get(self, key: tuple) -> Optional[NearbyResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, result = entry
        if expires_at <= time.monotonic():
            self._entries.pop(key, None)
            return None
        return result

    def set(self, key: tuple, result: NearbyResult) -> None:
        if self.ttl_seconds <= 0:
            return
        self._entries.pop(key, None)
        while len(self._entries) >= self.max_entries:
            self._entries.popitem(last=False)
        self._entries[key] = (time.monotonic() + self.ttl_seconds, result)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


_cache = DiscoveryCache(
    ttl_seconds=settings.discovery_cache_ttl_seconds,
    max_entries=settings.discovery_cache_max_entries,
)


def clear_cache() -> None:
    _cache.clear()


def resolve_radius_policy(policy: Optional[RadiusPolicy] = None) -> RadiusPolicy:
    """
    Fill unset bounds from settings and validate them.

    Raises:
        ValidationError: non-positive values, min > max, or a ceiling above
        DISCOVERY_MAX_RADIUS_KM
    """
    policy = policy or RadiusPolicy()
    ceiling = settings.discovery_max_radius_km

    min_radius = policy.min_radius_km if policy.min_radius_km is not None else settings.discovery_min_radius_km
    max_radius = policy.max_radius_km if policy.max_radius_km is not None else ceiling
    step = policy.step_km if policy.step_km is not None else settings.discovery_step_km

    if max_radius > ceiling:
        raise ValidationError(
            f"must not exceed {ceiling} km",
            field="maxRadiusKm",
            details={"max_allowed_km": ceiling},
        )
    if min_radius <= 0:
        raise ValidationError("must be positive", field="minRadiusKm")
    if step <= 0:
        raise ValidationError("must be positive", field="stepKm")
    if min_radius > max_radius:
        raise ValidationError(
            f"min radius {min_radius} km exceeds max radius {max_radius} km",
            field="minRadiusKm",
        )

    return RadiusPolicy(min_radius_km=min_radius, max_radius_km=max_radius, step_km=step)


def matches_filters(provider, filters: DiscoveryFilters) -> bool:
    """Conjunctive capability check. The garment type must be listed verbatim in specializations."""
    if filters.garment_type:
        if filters.garment_type not in (provider.specializations or []):
            return False
    if filters.requires_fabric_provision and not provider.provides_fabric:
        return False
    return True


def _cache_key(lat: float, lng: float, filters: DiscoveryFilters, policy: RadiusPolicy) -> tuple:
    return (
        round(lat, DISCOVERY_CACHE_COORD_DECIMALS),
        round(lng, DISCOVERY_CACHE_COORD_DECIMALS),
        filters.garment_type or "",
        filters.requires_fabric_provision,
        policy.min_radius_km,
        policy.max_radius_km,
        policy.step_km,
    )


@translate_storage_errors
async def find_nearby(
    db: AsyncSession,
    origin_lat: Optional[float],
    origin_lng: Optional[float],
    filters: Optional[DiscoveryFilters] = None,
    radius_policy: Optional[RadiusPolicy] = None,
    use_cache: bool = True,
) -> NearbyResult:
    """
    Ranked nearby providers, widening the radius until something matches.

    Args:
        db: Database session
        origin_lat / origin_lng: requester position in degrees
        filters: capability filters (garment type, fabric provision)
        radius_policy: escalation bounds; unset fields come from settings
        use_cache: consult / fill the in-process result cache

    Returns:
        NearbyResult with the radius actually used, the number of directory
        rounds issued, and providers nearest first (ties by provider id)

    Raises:
        MissingLocationError: origin not supplied
        ValidationError: origin out of range or invalid radius policy
    """
    lat, lng = validate_coordinates(origin_lat, origin_lng)
    filters = filters or DiscoveryFilters()
    policy = resolve_radius_policy(radius_policy)
    precision = settings.discovery_distance_precision

    key = _cache_key(lat, lng, filters, policy)
    if use_cache:
        cached = _cache.get(key)
        if cached is not None:
            logger.debug(f"Discovery cache hit for {key}")
            return cached

    rounds = 0
    radius = policy.min_radius_km
    while True:
        candidates = await provider_directory.query_within_radius(db, lat, lng, radius, precision)
        rounds += 1
        matches = [(p, d) for p, d in candidates if matches_filters(p, filters)]

        if matches or radius >= policy.max_radius_km:
            break
        # Derive from the round count rather than accumulating float steps
        radius = min(policy.min_radius_km + rounds * policy.step_km, policy.max_radius_km)

    result = NearbyResult(
        radius_used_km=radius,
        rounds=rounds,
        providers=[NearbyProvider.from_provider(p, d) for p, d in matches],
    )

    logger.info(
        f"Discovery: ({lat:.4f}, {lng:.4f}) garment={filters.garment_type or '-'} "
        f"fabric={filters.requires_fabric_provision} → {len(result.providers)} provider(s) "
        f"at {radius} km after {rounds} round(s)"
    )

    if use_cache:
        _cache.set(key, result)
    return result


@translate_storage_errors
async def list_active_providers(db: AsyncSession, limit: int = 50, offset: int = 0):
    """Every ACTIVE provider regardless of location (fallback when GPS is unavailable)."""
    return await provider_directory.list_active_providers(db, limit=limit, offset=offset)
