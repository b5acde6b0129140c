"""
Source descriptors and the ordered fallback chain for a resource family.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Mapping, Optional, Tuple

from fpl_proxy.errors import ChainConfigurationError


class SourceKind(Enum):
    """Where a source's data comes from."""
    PRIMARY = "primary"
    SECONDARY = "secondary"
    LOCAL_SNAPSHOT = "local_snapshot"


@dataclass(frozen=True)
class SourceDescriptor:
    """
    One origin for a resource.

    `location` is a URL template for remote sources and a file name for
    local snapshots. Placeholders such as `{manager_id}` are filled from
    the resource key's parameters at fetch time.
    """
    kind: SourceKind
    location: str
    name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or self.kind.value

    def resolve(self, params: Mapping[str, str]) -> str:
        """Fill the location template with path parameters."""
        try:
            return self.location.format(**params)
        except KeyError as e:
            raise ChainConfigurationError(
                f"Source {self.label} needs parameter {e} for {self.location!r}"
            ) from e


@dataclass(frozen=True)
class SourceChain:
    """
    Ordered, non-empty sequence of sources, primary first.

    Rejected at construction when empty or when it does not start with
    the primary source.
    """
    sources: Tuple[SourceDescriptor, ...]

    def __post_init__(self):
        if not self.sources:
            raise ChainConfigurationError("Source chain must not be empty")
        if self.sources[0].kind is not SourceKind.PRIMARY:
            raise ChainConfigurationError(
                f"Source chain must start with the primary source, got {self.sources[0].label}"
            )
        primaries = [s for s in self.sources if s.kind is SourceKind.PRIMARY]
        if len(primaries) > 1:
            raise ChainConfigurationError("Source chain has more than one primary source")

    @classmethod
    def build(
        cls,
        primary: str,
        secondary: Optional[str] = None,
        snapshot: Optional[str] = None,
    ) -> "SourceChain":
        """
        Build the usual [primary, secondary?, snapshot?] chain.

        Args:
            primary: Upstream URL template (mandatory)
            secondary: Backup URL template
            snapshot: Local snapshot file name
        """
        sources = [SourceDescriptor(SourceKind.PRIMARY, primary)]
        if secondary:
            sources.append(SourceDescriptor(SourceKind.SECONDARY, secondary))
        if snapshot:
            sources.append(SourceDescriptor(SourceKind.LOCAL_SNAPSHOT, snapshot))
        return cls(tuple(sources))

    def __iter__(self) -> Iterator[SourceDescriptor]:
        return iter(self.sources)

    def __len__(self) -> int:
        return len(self.sources)

    def describe(self) -> str:
        return " -> ".join(s.label for s in self.sources)
