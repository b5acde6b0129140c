"""
Source fetcher: one attempt against one source, classified.

Remote sources go through an HTTPTransport (requests), local snapshots
through a SnapshotReader. Neither retries nor caches.
"""
import logging
from pathlib import Path
from typing import Optional

import requests

from .chain import SourceDescriptor, SourceKind
from .outcomes import DEFAULT_CONTENT_TYPE, FetchOutcome, TransportResult, classify

logger = logging.getLogger("sources.fetcher")

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = "Fantasy-PL-Proxy/1.0"


class HTTPTransport:
    """Single GET round trip with a bounded timeout."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self._session = session if session is not None else requests.Session()
        self._headers = {"User-Agent": user_agent}
        self._timeout = timeout

    def get(self, url: str) -> TransportResult:
        try:
            response = self._session.get(url, headers=self._headers, timeout=self._timeout)
        except requests.Timeout as e:
            return TransportResult.failed(f"Timed out fetching {url}: {e}", timed_out=True)
        except requests.RequestException as e:
            return TransportResult.failed(f"Failed to fetch {url}: {e}")

        return TransportResult(
            status=response.status_code,
            body=response.content,
            content_type=response.headers.get("content-type", DEFAULT_CONTENT_TYPE),
        )


class SnapshotReader:
    """Reads static JSON snapshots from a local directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def read(self, name: str) -> TransportResult:
        path = self.directory / name
        try:
            body = path.read_bytes()
        except OSError as e:
            return TransportResult.failed(f"Snapshot {name} unavailable: {e}")
        return TransportResult(status=200, body=body)


class SourceFetcher:
    """
    Performs exactly one attempt against a source.

    Usage:
        fetcher = SourceFetcher(HTTPTransport(), SnapshotReader(Path("backup-data")))
        outcome = fetcher.fetch(source, key)
    """

    def __init__(
        self,
        transport: Optional[HTTPTransport] = None,
        snapshots: Optional[SnapshotReader] = None,
    ):
        self._transport = transport or HTTPTransport()
        self._snapshots = snapshots

    def fetch(self, source: SourceDescriptor, key) -> FetchOutcome:
        """
        Fetch `key` from `source` and classify the result.

        Args:
            source: The source to try
            key: ResourceKey whose params fill the source's location template

        Returns:
            The classified FetchOutcome for this single attempt
        """
        location = source.resolve(key.params_dict)

        if source.kind is SourceKind.LOCAL_SNAPSHOT:
            if self._snapshots is None:
                result = TransportResult.failed("No snapshot directory configured")
            else:
                result = self._snapshots.read(location)
        else:
            result = self._transport.get(location)

        outcome = classify(result)
        logger.debug(f"{source.label} {location} -> {outcome.kind.value}")
        return outcome
