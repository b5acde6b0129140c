"""
TTL configuration per resource family.
"""
from typing import Dict, Mapping, Optional

from fpl_proxy.resources import ResourceFamily

from .core import CachePolicy


# TTL Configuration by family (in seconds). Anything not listed is never cached.
TTL_CONFIG: Dict[ResourceFamily, int] = {
    ResourceFamily.BOOTSTRAP: 600,    # 10 minutes
    ResourceFamily.PICKS: 600,        # 10 minutes
    ResourceFamily.LIVE_EVENT: 60,    # 1 minute
}

NO_CACHE = CachePolicy(ttl_seconds=0)


def get_policy_for_family(
    family: ResourceFamily,
    ttl_config: Optional[Mapping[ResourceFamily, float]] = None,
) -> CachePolicy:
    """
    Get the cache policy for a resource family.

    Args:
        family: The resource family
        ttl_config: Overrides for TTL_CONFIG (e.g. from settings)

    Returns:
        CachePolicy, NO_CACHE for families without a TTL
    """
    config = TTL_CONFIG if ttl_config is None else ttl_config
    ttl = config.get(family, 0)
    if not ttl:
        return NO_CACHE
    return CachePolicy(ttl_seconds=ttl)


def ttl_config_from_settings(settings) -> Dict[ResourceFamily, float]:
    """TTL_CONFIG with the configurable families taken from settings."""
    config: Dict[ResourceFamily, float] = dict(TTL_CONFIG)
    config[ResourceFamily.BOOTSTRAP] = settings.bootstrap_ttl_seconds
    config[ResourceFamily.PICKS] = settings.picks_ttl_seconds
    config[ResourceFamily.LIVE_EVENT] = settings.live_event_ttl_seconds
    return config
