"""
Shared test doubles for the cache and fallback tests.
"""
import threading
from collections import defaultdict
from typing import Dict, List

import pytest

from fpl_proxy.cache import CachePolicy, CacheStore
from fpl_proxy.catalog import FamilyConfig, ResourceCatalog
from fpl_proxy.pipeline import FetchPipeline
from fpl_proxy.resources import ResourceFamily
from fpl_proxy.sources import FallbackOrchestrator, FetchOutcome, SourceChain


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedFetcher:
    """
    Returns pre-scripted outcomes per source location and records calls.

    A location with a list of outcomes returns them in turn, repeating the
    last one once the list runs out.
    """

    def __init__(self, script: Dict[str, List[FetchOutcome]]):
        self._script = {location: list(outcomes) for location, outcomes in script.items()}
        self.calls: List[str] = []
        self.counts = defaultdict(int)
        self._lock = threading.Lock()

    def fetch(self, source, key) -> FetchOutcome:
        location = source.resolve(key.params_dict)
        with self._lock:
            self.calls.append(location)
            index = self.counts[location]
            self.counts[location] += 1
        outcomes = self._script[location]
        return outcomes[min(index, len(outcomes) - 1)]


@pytest.fixture
def clock():
    return FakeClock()


def make_pipeline(fetcher, chains, ttls=None, clock=None) -> FetchPipeline:
    """Pipeline over a hand-built catalog and a scripted fetcher."""
    ttls = ttls or {}
    families = {
        family: FamilyConfig(
            policy=CachePolicy(ttl_seconds=ttls.get(family, 0)),
            chain=chain,
        )
        for family, chain in chains.items()
    }
    cache = CacheStore(clock=clock) if clock else CacheStore()
    return FetchPipeline(ResourceCatalog(families), FallbackOrchestrator(fetcher), cache)


BOOTSTRAP_CHAIN = SourceChain.build(
    primary="primary/bootstrap",
    secondary="secondary/bootstrap",
    snapshot="bootstrap-static.json",
)

PICKS_CHAIN = SourceChain.build(primary="primary/picks/{manager_id}/{gw}")

MANAGER_CHAIN = SourceChain.build(primary="primary/manager/{manager_id}")

DEFAULT_CHAINS = {
    ResourceFamily.BOOTSTRAP: BOOTSTRAP_CHAIN,
    ResourceFamily.PICKS: PICKS_CHAIN,
    ResourceFamily.MANAGER: MANAGER_CHAIN,
}
