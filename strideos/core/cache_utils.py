"""
Caching utilities for dashboard and KPI queries
Uses Redis (django-redis) when configured, any Django cache backend otherwise
"""
from django.core.cache import cache
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
CLIENT_KPI_CACHE_TTL = 300  # 5 minutes
CLIENT_DASHBOARD_CACHE_TTL = 120  # 2 minutes
SPRINT_STATS_CACHE_TTL = 120  # 2 minutes

DASHBOARD_CACHE_PREFIXES = ('client_kpis', 'client_dashboard', 'sprint_stats')


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def get_cached(prefix, *args, **kwargs):
    """
    Look up a cached value
    Returns tuple: (cached_data, cache_key)
    """
    cache_key = make_cache_key(prefix, *args, **kwargs)
    cached_data = cache.get(cache_key)
    if cached_data is not None:
        logger.debug(f"Cache HIT for {prefix}: {cache_key}")
    else:
        logger.debug(f"Cache MISS for {prefix}: {cache_key}")
    return cached_data, cache_key


def set_cached(cache_key, data, ttl):
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached {cache_key} for {ttl}s")


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern
    django-redis exposes delete_pattern (SCAN based); other backends are cleared
    """
    try:
        if hasattr(cache, 'delete_pattern'):
            deleted = cache.delete_pattern(f"*{pattern}*")
            logger.info(f"Invalidated {deleted} cache keys matching pattern: {pattern}")
        else:
            cache.clear()
            logger.debug(f"Cache backend has no pattern support, cleared cache for pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def invalidate_dashboard_cache():
    """Invalidate client KPI, client dashboard and sprint stats caches"""
    for prefix in DASHBOARD_CACHE_PREFIXES:
        invalidate_cache_pattern(prefix)
