"""
Caching module with per-family TTL and single-flight population.
"""
from .core import CacheEntry, CachePolicy
from .ttl_policies import (
    NO_CACHE,
    TTL_CONFIG,
    get_policy_for_family,
    ttl_config_from_settings,
)
from .coalescer import InFlightRequest, RequestCoalescer
from .store import CacheStore

__all__ = [
    # Core types
    "CacheEntry",
    "CachePolicy",
    # TTL policies
    "NO_CACHE",
    "TTL_CONFIG",
    "get_policy_for_family",
    "ttl_config_from_settings",
    # Coalescing
    "InFlightRequest",
    "RequestCoalescer",
    # Store
    "CacheStore",
]
