"""
Per-family cache policy and source chain, built once from settings.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Union

from fpl_proxy.cache import CachePolicy, get_policy_for_family, ttl_config_from_settings
from fpl_proxy.errors import ChainConfigurationError, UnknownResourceFamily
from fpl_proxy.resources import (
    SECONDARY_FILES,
    SNAPSHOT_FILES,
    UPSTREAM_PATHS,
    ResourceFamily,
)
from fpl_proxy.sources import SourceChain, SourceKind

logger = logging.getLogger("catalog")


@dataclass(frozen=True)
class FamilyConfig:
    """Everything the pipeline needs to serve one family."""
    policy: CachePolicy
    chain: SourceChain


class ResourceCatalog:
    """Immutable lookup from resource family to its FamilyConfig."""

    def __init__(self, families: Mapping[ResourceFamily, FamilyConfig]):
        if not families:
            raise ChainConfigurationError("Catalog has no resource families configured")
        self._families: Dict[ResourceFamily, FamilyConfig] = dict(families)

    def get(self, family: Union[ResourceFamily, str]) -> FamilyConfig:
        """
        Look up a family by enum member or its string value.

        Raises:
            UnknownResourceFamily: If the family is not configured
        """
        try:
            family = ResourceFamily(family)
            return self._families[family]
        except (ValueError, KeyError):
            raise UnknownResourceFamily(f"No configuration for resource family {family!r}") from None

    def __contains__(self, family: ResourceFamily) -> bool:
        return family in self._families

    def __iter__(self):
        return iter(self._families)

    def max_remote_sources(self) -> int:
        """Longest run of network attempts any family's chain can make."""
        return max(
            sum(1 for source in config.chain if source.kind is not SourceKind.LOCAL_SNAPSHOT)
            for config in self._families.values()
        )

    def describe(self) -> Dict[str, Dict[str, object]]:
        """Summary of policies and chains, for diagnostics."""
        return {
            family.value: {
                "ttl_seconds": config.policy.ttl_seconds,
                "sources": config.chain.describe(),
            }
            for family, config in self._families.items()
        }


def build_catalog(settings) -> ResourceCatalog:
    """
    Build the catalog for every resource family from settings.

    Primary URLs come from `fpl_api_base_url`; bootstrap and fixtures also
    get the season dump on the backup host, and families with a snapshot
    file get the local snapshot as the last resort.
    """
    base_url = settings.fpl_api_base_url.rstrip("/")
    backup_url = settings.backup_api_base_url.rstrip("/")
    ttl_config = ttl_config_from_settings(settings)

    families: Dict[ResourceFamily, FamilyConfig] = {}
    for family in ResourceFamily:
        secondary = None
        if settings.secondary_enabled and family in SECONDARY_FILES:
            secondary = f"{backup_url}/{settings.backup_season}/{SECONDARY_FILES[family]}"

        snapshot = SNAPSHOT_FILES.get(family) if settings.snapshot_enabled else None

        chain = SourceChain.build(
            primary=f"{base_url}{UPSTREAM_PATHS[family]}",
            secondary=secondary,
            snapshot=snapshot,
        )
        families[family] = FamilyConfig(
            policy=get_policy_for_family(family, ttl_config),
            chain=chain,
        )
        logger.debug(f"{family.value}: ttl={families[family].policy.ttl_seconds}s chain={chain.describe()}")

    return ResourceCatalog(families)
