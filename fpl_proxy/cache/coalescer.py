"""
Request coalescing to prevent duplicate upstream API calls.

When multiple concurrent requests ask for the same data, only one
upstream call is made and all requesters share the result. Threads wait
on a threading.Event; coroutines await a future on their own loop, so an
async waiter holds no worker thread.
"""
import asyncio
import threading
import logging
from typing import Dict, List, Optional, Callable, Any, Hashable, Tuple
from dataclasses import dataclass, field

from starlette.concurrency import run_in_threadpool

from fpl_proxy.errors import PipelineError, PopulationTimeout

logger = logging.getLogger("cache.coalescer")


@dataclass
class InFlightRequest:
    """Tracks an in-progress upstream request."""
    event: threading.Event = field(default_factory=threading.Event)
    result: Optional[Any] = None
    error: Optional[BaseException] = None
    waiter_count: int = 0
    # (loop, future) per async waiter, woken when the fetch completes
    futures: List[Tuple[asyncio.AbstractEventLoop, "asyncio.Future[None]"]] = field(
        default_factory=list
    )


def _wake(future: "asyncio.Future[None]") -> None:
    if not future.done():
        future.set_result(None)


class RequestCoalescer:
    """
    Ensures concurrent requests for the same cache key share one upstream call.

    Pattern:
    - First request for a key initiates the fetch
    - Subsequent requests for the same key wait for it to finish
    - When fetch completes, all waiters receive the same result
    - The registry lock is only held for lookups, never during a fetch

    The initiator owns the fetch. A waiter that times out or is cancelled
    stops waiting but the fetch carries on for everyone else.

    Usage:
        coalescer = RequestCoalescer()
        result = coalescer.get_or_fetch(
            cache_key=key,
            fetch_fn=lambda: orchestrator.resolve(chain, key),
        )
        result = await coalescer.get_or_fetch_async(key, fetch_fn)
    """

    def __init__(self, timeout: float = 30.0):
        """
        Initialize the coalescer.

        Args:
            timeout: Max seconds a waiter waits on an in-flight request
        """
        self._in_flight: Dict[Hashable, InFlightRequest] = {}
        self._lock = threading.Lock()
        self._timeout = timeout
        self._coalesced = 0

    @property
    def timeout(self) -> float:
        return self._timeout

    def get_or_fetch(
        self,
        cache_key: Hashable,
        fetch_fn: Callable[[], Any],
        on_success: Optional[Callable[[Any], None]] = None,
        lookup: Optional[Callable[[], Any]] = None,
    ) -> Any:
        """
        Either join an existing in-flight request or initiate a new one.

        Args:
            cache_key: Unique key for this request
            fetch_fn: Function to call if we need to fetch
            on_success: Called with the result before the key is released,
                so a write-back is visible before anyone can start a new fetch
            lookup: Checked under the registry lock when nothing is in flight;
                a non-None value is returned instead of fetching

        Returns:
            The fetched data (shared among all concurrent callers)

        Raises:
            PopulationTimeout: If waiting for an in-flight request times out
            Exception: Any error from fetch_fn is propagated to every caller
        """
        found, in_flight, is_initiator, _ = self._claim(cache_key, lookup)
        if in_flight is None:
            return found

        if is_initiator:
            return self._run(cache_key, in_flight, fetch_fn, on_success)

        # We're a waiter - wait for the initiator to complete
        completed = in_flight.event.wait(timeout=self._timeout)

        if not completed:
            logger.error(f"Timeout waiting for coalesced request: {cache_key}")
            raise PopulationTimeout(str(cache_key), self._timeout)

        return self._shared_outcome(cache_key, in_flight)

    async def get_or_fetch_async(
        self,
        cache_key: Hashable,
        fetch_fn: Callable[[], Any],
        on_success: Optional[Callable[[Any], None]] = None,
        lookup: Optional[Callable[[], Any]] = None,
    ) -> Any:
        """
        Coroutine form of get_or_fetch.

        The initiator runs fetch_fn in the threadpool. Waiters await a
        future and occupy no thread; cancelling one only drops that waiter.
        """
        loop = asyncio.get_running_loop()
        found, in_flight, is_initiator, future = self._claim(cache_key, lookup, loop)
        if in_flight is None:
            return found

        if is_initiator:
            return await run_in_threadpool(self._run, cache_key, in_flight, fetch_fn, on_success)

        try:
            await asyncio.wait_for(future, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error(f"Timeout waiting for coalesced request: {cache_key}")
            raise PopulationTimeout(str(cache_key), self._timeout) from None

        return self._shared_outcome(cache_key, in_flight)

    def _claim(
        self,
        cache_key: Hashable,
        lookup: Optional[Callable[[], Any]],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> Tuple[Any, Optional[InFlightRequest], bool, Optional["asyncio.Future[None]"]]:
        """
        Join or register the in-flight request for a key.

        Returns (found, in_flight, is_initiator, future). in_flight is None
        when lookup produced a value; future is set for async waiters.
        """
        with self._lock:
            in_flight = self._in_flight.get(cache_key)
            if in_flight is not None:
                # Join existing request
                in_flight.waiter_count += 1
                self._coalesced += 1
                logger.debug(
                    f"Coalescing request for {cache_key} "
                    f"(waiters: {in_flight.waiter_count})"
                )
                future = None
                if loop is not None:
                    future = loop.create_future()
                    in_flight.futures.append((loop, future))
                return None, in_flight, False, future

            if lookup is not None:
                # A fetch may have just finished and written back
                found = lookup()
                if found is not None:
                    return found, None, False, None

            # Start new request
            in_flight = InFlightRequest()
            self._in_flight[cache_key] = in_flight
            logger.debug(f"Initiating fetch for {cache_key}")
            return None, in_flight, True, None

    def _run(
        self,
        cache_key: Hashable,
        in_flight: InFlightRequest,
        fetch_fn: Callable[[], Any],
        on_success: Optional[Callable[[Any], None]],
    ) -> Any:
        try:
            result = fetch_fn()
            in_flight.result = result
            if on_success is not None:
                on_success(result)
        except BaseException as e:
            in_flight.error = e
            logger.warning(f"Fetch failed for {cache_key}: {e!r}")
        finally:
            # Clean up, then signal completion to all waiters
            with self._lock:
                if self._in_flight.get(cache_key) is in_flight:
                    del self._in_flight[cache_key]
                futures = list(in_flight.futures)
            in_flight.event.set()
            for loop, future in futures:
                try:
                    loop.call_soon_threadsafe(_wake, future)
                except RuntimeError:
                    # The waiter's loop has already closed
                    logger.debug(f"Dropped wake-up for closed loop on {cache_key}")

        if in_flight.error is not None:
            raise in_flight.error
        return in_flight.result

    @staticmethod
    def _shared_outcome(cache_key: Hashable, in_flight: InFlightRequest) -> Any:
        error = in_flight.error
        if error is None:
            return in_flight.result
        if isinstance(error, Exception):
            raise error
        # KeyboardInterrupt and friends belong to the initiator only
        raise PipelineError(f"Fetch for {cache_key} was interrupted") from error

    @property
    def active_requests(self) -> int:
        """Number of currently in-flight requests."""
        with self._lock:
            return len(self._in_flight)

    def is_in_flight(self, cache_key: Hashable) -> bool:
        with self._lock:
            return cache_key in self._in_flight

    def get_stats(self) -> Dict[str, Any]:
        """Get coalescer statistics."""
        with self._lock:
            return {
                "active_requests": len(self._in_flight),
                "active_keys": [str(k) for k in self._in_flight],
                "coalesced_requests": self._coalesced,
                "timeout_seconds": self._timeout,
            }
