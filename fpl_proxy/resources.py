"""
Resource families proxied from the FPL API and the keys that identify them.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class ResourceFamily(Enum):
    """Fixed set of proxied endpoint shapes."""
    BOOTSTRAP = "bootstrap"
    FIXTURES = "fixtures"
    ELEMENT_SUMMARY = "element-summary"
    LIVE_EVENT = "live-event"
    PICKS = "picks"
    MANAGER = "manager"
    MANAGER_TRANSFERS = "manager-transfers"
    MANAGER_HISTORY = "manager-history"
    LEAGUE = "league"
    LEAGUE_BY_PHASE = "league-by-phase"


# Path parameters each family takes, in key order
FAMILY_PARAMS: Dict[ResourceFamily, Tuple[str, ...]] = {
    ResourceFamily.BOOTSTRAP: (),
    ResourceFamily.FIXTURES: (),
    ResourceFamily.ELEMENT_SUMMARY: ("player_id",),
    ResourceFamily.LIVE_EVENT: ("gw",),
    ResourceFamily.PICKS: ("manager_id", "gw"),
    ResourceFamily.MANAGER: ("manager_id",),
    ResourceFamily.MANAGER_TRANSFERS: ("manager_id",),
    ResourceFamily.MANAGER_HISTORY: ("manager_id",),
    ResourceFamily.LEAGUE: ("league_id", "page"),
    ResourceFamily.LEAGUE_BY_PHASE: ("league_id", "phase"),
}

# Upstream paths relative to the FPL API base URL
UPSTREAM_PATHS: Dict[ResourceFamily, str] = {
    ResourceFamily.BOOTSTRAP: "/bootstrap-static/",
    ResourceFamily.FIXTURES: "/fixtures/",
    ResourceFamily.ELEMENT_SUMMARY: "/element-summary/{player_id}/",
    ResourceFamily.LIVE_EVENT: "/event/{gw}/live/",
    ResourceFamily.PICKS: "/entry/{manager_id}/event/{gw}/picks/",
    ResourceFamily.MANAGER: "/entry/{manager_id}/",
    ResourceFamily.MANAGER_TRANSFERS: "/entry/{manager_id}/transfers/",
    ResourceFamily.MANAGER_HISTORY: "/entry/{manager_id}/history/",
    ResourceFamily.LEAGUE: "/leagues-classic/{league_id}/standings/?page_standings={page}",
    ResourceFamily.LEAGUE_BY_PHASE: "/leagues-classic/{league_id}/standings/?page_standings=1&phase={phase}",
}

# Static season dumps on the backup host
SECONDARY_FILES: Dict[ResourceFamily, str] = {
    ResourceFamily.BOOTSTRAP: "bootstrap-static.json",
    ResourceFamily.FIXTURES: "fixtures.json",
}

# Files under the local snapshot directory
SNAPSHOT_FILES: Dict[ResourceFamily, str] = {
    ResourceFamily.BOOTSTRAP: "bootstrap-static.json",
    ResourceFamily.FIXTURES: "fixtures.json",
    ResourceFamily.LIVE_EVENT: "live-event.json",
}

# Key prefixes kept compatible with the historical cache keys
_KEY_PREFIXES = {
    ResourceFamily.BOOTSTRAP: "bootstrap-static",
}


@dataclass(frozen=True)
class ResourceKey:
    """
    Immutable identifier for one cacheable unit.

    Made of the family plus its path parameters in the family's declared
    order, so two keys built from the same request are always equal.
    """
    family: ResourceFamily
    params: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def build(
        cls,
        family: ResourceFamily,
        params: Optional[Mapping[str, Any]] = None,
    ) -> "ResourceKey":
        """
        Build a key from already-validated path parameters.

        Raises:
            ValueError: If a required parameter is missing or an unknown one is given
        """
        params = dict(params or {})
        expected = FAMILY_PARAMS[family]

        missing = [name for name in expected if params.get(name) is None]
        if missing:
            raise ValueError(f"{family.value} requires parameters: {', '.join(missing)}")
        unexpected = sorted(set(params) - set(expected))
        if unexpected:
            raise ValueError(f"{family.value} does not take parameters: {', '.join(unexpected)}")

        return cls(family, tuple((name, str(params[name])) for name in expected))

    @property
    def params_dict(self) -> Dict[str, str]:
        return dict(self.params)

    def __str__(self) -> str:
        prefix = _KEY_PREFIXES.get(self.family, self.family.value)
        return "-".join([prefix, *(value for _, value in self.params)])
