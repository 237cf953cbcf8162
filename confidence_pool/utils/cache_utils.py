"""
Cache utilities for the confidence pool
Standings are cached per pool and dropped whenever anything feeding them changes
"""

import functools

from flask import current_app

from confidence_pool import cache


def standings_cache_key(pool_id):
    return f"standings_{pool_id}"


def cached_standings(f):
    """
    Decorator for caching a pool's standings payload

    The wrapped function must take the pool as its first argument.
    """

    @functools.wraps(f)
    def wrapped(pool, *args, **kwargs):
        cache_key = standings_cache_key(pool.id)

        result = cache.get(cache_key)
        if result is not None:
            current_app.logger.debug(f"Cache hit for key: {cache_key}")
            return result

        result = f(pool, *args, **kwargs)
        timeout = current_app.config.get("STANDINGS_CACHE_TIMEOUT", 120)
        cache.set(cache_key, result, timeout=timeout)
        current_app.logger.debug(f"Cache set for key: {cache_key}")

        return result

    return wrapped


def invalidate_standings(pool_id):
    """
    Drop cached standings for a pool

    Args:
        pool_id: Pool whose standings changed, or None for a no-op
    """
    if pool_id is None:
        return
    cache.delete(standings_cache_key(pool_id))
    current_app.logger.debug(f"Standings cache invalidated for pool {pool_id}")


def invalidate_standings_for_participant(participant):
    """Drop cached standings for every pool the participant belongs to"""
    for membership in participant.pool_memberships:
        invalidate_standings(membership.pool_id)


class CacheManager:
    """Cache management utilities"""

    @staticmethod
    def get_cache_stats():
        return {
            "type": current_app.config.get("CACHE_TYPE", "Unknown"),
            "timeout": current_app.config.get("CACHE_DEFAULT_TIMEOUT", 300),
            "standings_timeout": current_app.config.get("STANDINGS_CACHE_TIMEOUT", 120),
        }
