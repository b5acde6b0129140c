"""
Fallback orchestration over a SourceChain.

Sources are tried strictly in order, one at a time:
- Success / RateLimited stop the chain and return the payload
- ServerError / NetworkError move on to the next source
- ClientError stops the chain with an error (it would fail everywhere)
"""
import logging
from typing import List

from fpl_proxy.errors import UpstreamClientError, UpstreamExhausted

from .chain import SourceChain, SourceKind
from .fetcher import SourceFetcher
from .outcomes import FetchOutcome, OutcomeKind, Payload

logger = logging.getLogger("sources.orchestrator")


class FallbackOrchestrator:
    """Walks a source chain until one source produces a usable payload."""

    def __init__(self, fetcher: SourceFetcher):
        self._fetcher = fetcher

    def resolve(self, chain: SourceChain, key) -> Payload:
        """
        Resolve `key` against `chain`.

        Args:
            chain: Ordered sources for the key's resource family
            key: ResourceKey being fetched

        Returns:
            Payload from the first source that succeeds

        Raises:
            UpstreamClientError: A source rejected the request (non-403 4xx)
            UpstreamExhausted: Every source failed with a server/network error
        """
        attempts: List[FetchOutcome] = []

        for source in chain:
            outcome = self._fetcher.fetch(source, key)
            attempts.append(outcome)
            kind = outcome.kind

            if kind is OutcomeKind.SUCCESS:
                if source.kind is SourceKind.LOCAL_SNAPSHOT:
                    logger.warning(f"Using local backup data for {key}")
                elif len(attempts) > 1:
                    logger.info(f"Served {key} from {source.label} after {len(attempts) - 1} failed source(s)")
                return outcome.payload

            if kind is OutcomeKind.RATE_LIMITED:
                if not outcome.payload.is_empty:
                    logger.info(f"Rate limited by {source.label} for {key}, returning its response")
                    return outcome.payload
                # Nothing to serve, try the next source.
                logger.warning(f"Rate limited by {source.label} for {key} with an empty body")
                continue

            if kind is OutcomeKind.CLIENT_ERROR:
                logger.error(f"Received HTTP {outcome.status} from {source.label} for {key}")
                raise UpstreamClientError(outcome.status, resource=str(key), source=source.label)

            if kind is OutcomeKind.SERVER_ERROR:
                if outcome.status == 503:
                    logger.warning(f"Received 503 Service Unavailable from {source.label} for {key}")
                else:
                    logger.error(f"Received HTTP {outcome.status} from {source.label} for {key}")
            else:
                logger.error(f"Failed to fetch {key} from {source.label}: {outcome.message}")

        raise UpstreamExhausted(attempts[-1], resource=str(key), attempts=attempts)
