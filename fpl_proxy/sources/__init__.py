"""
Data sources: classification, single-attempt fetching and fallback chains.
"""
from .outcomes import (
    ClientError,
    FetchOutcome,
    NetworkError,
    OutcomeKind,
    Payload,
    RateLimited,
    ServerError,
    Success,
    TransportResult,
    classify,
)
from .chain import SourceChain, SourceDescriptor, SourceKind
from .fetcher import HTTPTransport, SnapshotReader, SourceFetcher
from .orchestrator import FallbackOrchestrator

__all__ = [
    # Outcomes
    "ClientError",
    "FetchOutcome",
    "NetworkError",
    "OutcomeKind",
    "Payload",
    "RateLimited",
    "ServerError",
    "Success",
    "TransportResult",
    "classify",
    # Chains
    "SourceChain",
    "SourceDescriptor",
    "SourceKind",
    # Fetching
    "HTTPTransport",
    "SnapshotReader",
    "SourceFetcher",
    "FallbackOrchestrator",
]
