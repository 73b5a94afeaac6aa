"""
Domain constants used across services/routers.
"""

# Order listing filters (provider dashboard tabs)
STATUS_FILTER_ONGOING = "ongoing"
STATUS_FILTER_ALL = "all"

# Mean earth radius (IUGG) used for great-circle distances
EARTH_RADIUS_KM = 6371.0088

# Origin rounding for the discovery cache key (~11 m at the equator)
DISCOVERY_CACHE_COORD_DECIMALS = 4
