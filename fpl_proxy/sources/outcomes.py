"""
Fetch outcome types and the response classifier.

Every attempt against a source ends in exactly one FetchOutcome. The
orchestrator only ever looks at the outcome kind, never at raw responses.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


RATE_LIMIT_STATUS = 403
DEFAULT_CONTENT_TYPE = "application/json"


class OutcomeKind(Enum):
    """Closed set of attempt results."""
    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"


@dataclass(frozen=True)
class Payload:
    """Opaque response body, passed through to the caller untouched."""
    body: bytes
    content_type: str = DEFAULT_CONTENT_TYPE

    @property
    def is_empty(self) -> bool:
        return not self.body.strip()


@dataclass(frozen=True)
class TransportResult:
    """
    Raw result of one round trip, before classification.

    Either `error` is set (the request never produced a response) or
    `status` is set.
    """
    status: Optional[int] = None
    body: bytes = b""
    content_type: str = DEFAULT_CONTENT_TYPE
    error: Optional[str] = None
    timed_out: bool = False

    @classmethod
    def failed(cls, message: str, timed_out: bool = False) -> "TransportResult":
        return cls(error=message, timed_out=timed_out)


@dataclass(frozen=True)
class FetchOutcome:
    """Base for all outcomes. Use the subclasses."""

    @property
    def kind(self) -> OutcomeKind:
        raise NotImplementedError


@dataclass(frozen=True)
class Success(FetchOutcome):
    payload: Payload

    @property
    def kind(self) -> OutcomeKind:
        return OutcomeKind.SUCCESS


@dataclass(frozen=True)
class RateLimited(FetchOutcome):
    payload: Payload

    @property
    def kind(self) -> OutcomeKind:
        return OutcomeKind.RATE_LIMITED


@dataclass(frozen=True)
class ClientError(FetchOutcome):
    status: int

    @property
    def kind(self) -> OutcomeKind:
        return OutcomeKind.CLIENT_ERROR


@dataclass(frozen=True)
class ServerError(FetchOutcome):
    status: int

    @property
    def kind(self) -> OutcomeKind:
        return OutcomeKind.SERVER_ERROR


@dataclass(frozen=True)
class NetworkError(FetchOutcome):
    message: str
    timed_out: bool = False

    @property
    def kind(self) -> OutcomeKind:
        return OutcomeKind.NETWORK_ERROR


def classify(result: TransportResult) -> FetchOutcome:
    """
    Map a transport result onto a FetchOutcome.

    Args:
        result: Status/body pair, or a transport failure

    Returns:
        - NetworkError for transport failures (refused, timeout, DNS, unreadable file)
        - Success for 200-399
        - RateLimited for 403 (upstream throttling, carries the body)
        - ClientError for the rest of 400-499
        - ServerError for 500-599 and anything unrecognised
    """
    if result.error is not None or result.status is None:
        return NetworkError(
            message=result.error or "no response",
            timed_out=result.timed_out,
        )

    status = result.status
    if 200 <= status <= 399:
        return Success(Payload(result.body, result.content_type))
    if status == RATE_LIMIT_STATUS:
        return RateLimited(Payload(result.body, result.content_type))
    if 400 <= status <= 499:
        return ClientError(status)
    return ServerError(status)
