"""
Fetch pipeline: cache first, fallback chain on miss.

This is the composition root for the core. Route handlers only ever talk
to a FetchPipeline.
"""
import logging
from typing import Any, Dict, Mapping, Optional, Union

import requests

from fpl_proxy.cache import CacheStore
from fpl_proxy.catalog import ResourceCatalog, build_catalog
from fpl_proxy.resources import ResourceFamily, ResourceKey
from fpl_proxy.sources import (
    FallbackOrchestrator,
    HTTPTransport,
    Payload,
    SnapshotReader,
    SourceFetcher,
)

logger = logging.getLogger("pipeline")

# Headroom for the local snapshot read at the end of a chain
SNAPSHOT_READ_ALLOWANCE_SECONDS = 5.0


class FetchPipeline:
    """
    Serves resources from the cache, populating through the fallback chain.

    Usage:
        pipeline = build_pipeline(settings)
        payload = pipeline.fetch(ResourceFamily.PICKS, {"manager_id": 1, "gw": 3})
    """

    def __init__(
        self,
        catalog: ResourceCatalog,
        orchestrator: FallbackOrchestrator,
        cache: Optional[CacheStore] = None,
    ):
        self._catalog = catalog
        self._orchestrator = orchestrator
        self._cache = cache if cache is not None else CacheStore()

    @property
    def cache(self) -> CacheStore:
        return self._cache

    @property
    def catalog(self) -> ResourceCatalog:
        return self._catalog

    def fetch(
        self,
        family: Union[ResourceFamily, str],
        params: Optional[Mapping[str, Any]] = None,
    ) -> Payload:
        """
        Fetch one resource.

        Args:
            family: Resource family (enum member or its value)
            params: Validated path parameters for the family

        Returns:
            The upstream payload, untouched

        Raises:
            UpstreamClientError: Upstream rejected the request
            UpstreamExhausted: No source could serve it
            PopulationTimeout: Gave up waiting on a concurrent fetch
            UnknownResourceFamily: Family is not configured
        """
        config = self._catalog.get(family)
        key = ResourceKey.build(ResourceFamily(family), params)

        return self._cache.get_or_populate(
            key,
            config.policy,
            lambda: self._orchestrator.resolve(config.chain, key),
        )

    async def fetch_async(
        self,
        family: Union[ResourceFamily, str],
        params: Optional[Mapping[str, Any]] = None,
    ) -> Payload:
        """Coroutine form of fetch, used by the async route handlers."""
        config = self._catalog.get(family)
        key = ResourceKey.build(ResourceFamily(family), params)

        return await self._cache.get_or_populate_async(
            key,
            config.policy,
            lambda: self._orchestrator.resolve(config.chain, key),
        )

    def get_stats(self) -> Dict[str, Any]:
        return {
            "cache": self._cache.get_stats(),
            "families": self._catalog.describe(),
        }


def build_pipeline(settings, session: Optional[requests.Session] = None) -> FetchPipeline:
    """
    Wire a FetchPipeline from settings.

    Args:
        settings: config.settings.Settings (or anything with the same fields)
        session: requests session to reuse, a new one by default
    """
    transport = HTTPTransport(
        session=session,
        timeout=settings.request_timeout_seconds,
        user_agent=settings.user_agent,
    )
    snapshots = SnapshotReader(settings.snapshot_directory) if settings.snapshot_enabled else None
    orchestrator = FallbackOrchestrator(SourceFetcher(transport, snapshots))
    catalog = build_catalog(settings)
    cache = CacheStore(
        max_entries=settings.cache_max_entries,
        coalesce_timeout=coalesce_timeout_for(catalog, settings),
    )
    logger.info(
        f"Pipeline ready: upstream={settings.fpl_api_base_url} "
        f"secondary={'on' if settings.secondary_enabled else 'off'} "
        f"snapshots={snapshots.directory if snapshots else 'off'}"
    )
    return FetchPipeline(catalog, orchestrator, cache)


def coalesce_timeout_for(catalog: ResourceCatalog, settings) -> float:
    """
    How long waiters may wait on an in-flight population.

    A population can walk every remote source in the longest chain before
    reaching the snapshot, so waiters must outlast that walk. An explicit
    `coalesce_timeout_seconds` wins but is flagged when it is shorter.
    """
    worst_case = (
        catalog.max_remote_sources() * settings.request_timeout_seconds
        + SNAPSHOT_READ_ALLOWANCE_SECONDS
    )
    configured = settings.coalesce_timeout_seconds
    if configured is None:
        return worst_case
    if configured < worst_case:
        logger.warning(
            f"coalesce_timeout_seconds={configured} is shorter than the worst-case "
            f"chain walk ({worst_case}s); waiters may time out while a fallback succeeds"
        )
    return configured
