"""
Error taxonomy surfaced by the fetch pipeline.

Runtime failures derive from PipelineError and carry the HTTP status the
routing layer should answer with. Configuration faults derive from
ValueError and are raised at construction time only.
"""
from typing import Any, Optional, Sequence


class PipelineError(Exception):
    """Base class for failures returned to pipeline callers."""

    http_status: int = 502

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UpstreamClientError(PipelineError):
    """The authoritative source rejected the request (4xx other than 403)."""

    def __init__(self, status: int, resource: Optional[str] = None, source: Optional[str] = None):
        self.status = status
        self.http_status = status
        self.resource = resource
        self.source = source
        where = f" from {source}" if source else ""
        super().__init__(f"Upstream returned HTTP {status} for {resource or 'request'}{where}")


class UpstreamExhausted(PipelineError):
    """Every source in the chain failed with a server or network error."""

    def __init__(
        self,
        last_outcome: Any,
        resource: Optional[str] = None,
        attempts: Sequence[Any] = (),
    ):
        self.last_outcome = last_outcome
        self.resource = resource
        self.attempts = tuple(attempts)
        self.http_status = _status_for_exhaustion(last_outcome)
        super().__init__(
            f"Failed to fetch {resource or 'data'} from all available sources "
            f"({len(self.attempts)} attempted)"
        )


class PopulationTimeout(PipelineError):
    """Gave up waiting on another caller's in-flight fetch."""

    http_status = 504

    def __init__(self, resource: str, timeout: float):
        self.resource = resource
        self.timeout = timeout
        super().__init__(f"Request for {resource} timed out after {timeout}s")


class ChainConfigurationError(ValueError):
    """A source chain is empty or malformed."""


class UnknownResourceFamily(ValueError):
    """No policy/chain is configured for the requested family."""


def _status_for_exhaustion(last_outcome: Any) -> int:
    if getattr(last_outcome, "timed_out", False):
        return 504
    if getattr(last_outcome, "status", None) == 503:
        return 503
    return 502
