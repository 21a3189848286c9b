"""
Caching utilities for expensive marketplace queries
Uses Redis (django-redis) in deployment, local memory otherwise
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
MARKETPLACE_CACHE_TTL = 120  # 2 minutes
DASHBOARD_CACHE_TTL = 300  # 5 minutes
REPORTS_CACHE_TTL = 600  # 10 minutes

MARKETPLACE_GENERATION_KEY = 'marketplace_generation'


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive queries

    Usage:
        @cached_query(cache_ttl=600, key_prefix="platform_analytics")
        def get_platform_analytics(date_from, date_to):
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern
    Note: This requires Redis with SCAN command support
    """
    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")

        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def uses_redis():
    from django.conf import settings
    return 'redis' in settings.CACHES.get('default', {}).get('BACKEND', '').lower()


def get_marketplace_generation():
    generation = cache.get(MARKETPLACE_GENERATION_KEY)
    if generation is None:
        generation = 1
        cache.set(MARKETPLACE_GENERATION_KEY, generation, None)
    return generation


def get_cached_marketplace_list(filters_dict):
    """
    Get cached marketplace listing for a filter set
    Returns tuple: (cached_data, cache_key)
    """
    cache_key = make_cache_key("marketplace_list", get_marketplace_generation(), **filters_dict)
    return cache.get(cache_key), cache_key


def cache_marketplace_list(cache_key, data, ttl=MARKETPLACE_CACHE_TTL):
    cache.set(cache_key, data, ttl)
    logger.debug(f"Cached marketplace list: {cache_key}")


def invalidate_marketplace_cache():
    """Bump the generation so every cached listing becomes unreachable"""
    try:
        cache.incr(MARKETPLACE_GENERATION_KEY)
    except ValueError:
        cache.set(MARKETPLACE_GENERATION_KEY, 2, None)
    if uses_redis():
        # Old generations would otherwise linger until their TTL
        invalidate_cache_pattern("marketplace_list")
    logger.info("Invalidated marketplace cache")


def invalidate_dashboard_cache(*dealer_ids):
    """Drop cached dashboards for the given dealers"""
    keys = [make_cache_key('dealer_dashboard', dealer_id) for dealer_id in dealer_ids if dealer_id]
    if keys:
        cache.delete_many(keys)
        logger.debug(f"Invalidated dashboard cache for dealers {dealer_ids}")
