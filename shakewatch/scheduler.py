"""Poll Scheduler - drives a feed fetcher on a cadence.

One scheduler owns one polling loop and its timer task. Two policies are
supported:

- FIXED_INTERVAL: a fetch is issued every ``interval`` seconds, measured
  from the previous issue. A tick that finds a fetch still in flight is
  skipped.
- BACKOFF: the next fetch is issued ``interval`` seconds after a
  successful completion. After a failure the loop waits
  ``min(initial * 2^(k-1), maximum)`` for the k-th consecutive failure.

A fetch issued outside the schedule (a parameter change or a manual
refresh) restarts the timer, so the next regular fetch is timed from it.

At most one fetch is ever in flight. Results are applied only if the
query parameters are unchanged since the fetch was issued and the loop
has not been stopped in the meantime.
"""

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from shakewatch.core.backoff import (
    INITIAL_BACKOFF_SECONDS,
    MAX_BACKOFF_SECONDS,
    PollState,
    params_fingerprint,
    record_failure,
    record_success,
)
from shakewatch.core.earthquake import SeismicEvent


logger = logging.getLogger(__name__)


Fetcher = Callable[[Any], Awaitable[list[SeismicEvent]]]
EventsCallback = Callable[[list[SeismicEvent]], None]
ErrorCallback = Callable[[Exception], None]
SleepFn = Callable[[float], Awaitable[Any]]


class SchedulingPolicy(enum.Enum):
    """How the next fetch is timed."""
    FIXED_INTERVAL = "fixed_interval"
    BACKOFF = "backoff"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PollScheduler:
    """Runs a fetcher repeatedly until stopped.

    The scheduler is created and torn down by its caller; it holds no
    global timer state. All methods must be called from the event loop
    that runs the scheduler.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        policy: SchedulingPolicy = SchedulingPolicy.FIXED_INTERVAL,
        on_events: EventsCallback | None = None,
        on_error: ErrorCallback | None = None,
        initial_backoff: float = INITIAL_BACKOFF_SECONDS,
        max_backoff: float = MAX_BACKOFF_SECONDS,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the scheduler.

        Args:
            fetcher: Async callable taking the query params, returning events
            policy: Scheduling policy for this loop
            on_events: Called with events from every applied fetch
            on_error: Called with the error from every failed fetch
            initial_backoff: First retry delay (BACKOFF policy)
            max_backoff: Backoff ceiling (BACKOFF policy)
            sleep: Timer coroutine (injectable for tests)
            clock: Source of "now" for last_success_at
        """
        self.fetcher = fetcher
        self.policy = policy
        self.on_events = on_events
        self.on_error = on_error
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self._sleep = sleep
        self._clock = clock

        self.state = PollState()
        self._params: Any = None
        self._fingerprint: str | None = None
        self._interval: float | None = None
        self._timer_task: asyncio.Task | None = None
        self._inflight_task: asyncio.Task | None = None
        self._generation = 0
        self._stopped = False
        self._refetch_pending = False

    @property
    def params(self) -> Any:
        """Query parameters used for the next fetch."""
        return self._params

    @property
    def running(self) -> bool:
        """True between start() and stop()."""
        return self._timer_task is not None and not self._stopped

    def start(self, interval_seconds: float, params: Any) -> None:
        """Begin polling: one fetch now, then on the policy's schedule.

        Args:
            interval_seconds: Delay between fetches
            params: Query parameters passed to the fetcher

        Raises:
            ValueError: If the interval is not positive
            RuntimeError: If the scheduler is already running
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be > 0, got {interval_seconds}")
        if self.running:
            raise RuntimeError("Scheduler is already running")

        self._interval = interval_seconds
        self._params = params
        self._fingerprint = params_fingerprint(params)
        self._stopped = False

        # A fetch left over from a previous run is discarded; follow it
        # with one for the current run instead of overlapping it.
        if self.state.in_flight:
            self._refetch_pending = True

        logger.info(
            "Starting %s polling every %.1fs",
            self.policy.value,
            interval_seconds,
        )

        self._timer_task = asyncio.get_running_loop().create_task(self._run())

    def update_params(self, params: Any) -> None:
        """Switch to new query parameters.

        A fetch already in flight is allowed to finish, but its result is
        discarded and a fetch for the new parameters follows immediately.
        """
        fingerprint = params_fingerprint(params)
        if fingerprint == self._fingerprint:
            return

        self._params = params
        self._fingerprint = fingerprint

        if not self.running:
            return

        if self.state.in_flight:
            self._refetch_pending = True
        else:
            self._issue_now()

    async def refresh(self) -> bool | None:
        """Fetch now, outside the regular schedule.

        Returns:
            True/False for success/failure, None if skipped because a
            fetch is already in flight or the loop is not running
        """
        if not self.running:
            logger.debug("Refresh ignored: scheduler not running")
            return None
        if self.state.in_flight:
            logger.debug("Refresh skipped: fetch already in flight")
            return None
        return await asyncio.shield(self._issue_now())

    def stop(self) -> None:
        """Stop the loop. Safe to call repeatedly or before start().

        No further fetch is scheduled. A fetch already in flight is not
        aborted; its result is discarded when it resolves.
        """
        if self._stopped:
            return

        self._stopped = True
        self._generation += 1
        self._refetch_pending = False

        if self._timer_task is not None and not self._timer_task.done():
            self._timer_task.cancel()
            logger.info("Stopped %s polling", self.policy.value)

    async def wait_stopped(self) -> None:
        """Wait until the timer task has finished after stop()."""
        if self._timer_task is not None:
            await asyncio.gather(self._timer_task, return_exceptions=True)

    async def _run(self, issued: asyncio.Task | None = None) -> None:
        if self.policy is SchedulingPolicy.BACKOFF:
            await self._run_backoff(issued)
        else:
            await self._run_fixed_interval(issued)

    async def _run_fixed_interval(self, issued: asyncio.Task | None) -> None:
        while True:
            if issued is not None:
                issued = None
            elif self.state.in_flight:
                logger.debug("Previous fetch still in flight, skipping cycle")
            else:
                self._issue()
            await self._sleep(self._interval)

    async def _run_backoff(self, issued: asyncio.Task | None) -> None:
        while True:
            if issued is not None:
                task, issued = issued, None
            elif self.state.in_flight:
                task = self._inflight_task
            else:
                task = self._issue()
            succeeded = await asyncio.shield(task)

            if succeeded:
                delay = self._interval
            else:
                delay = self.state.backoff_delay or self.initial_backoff
                logger.info(
                    "Retrying in %.1fs after %d consecutive failures",
                    delay,
                    self.state.consecutive_failures,
                )
            await self._sleep(delay)

    def _issue(self) -> asyncio.Task:
        """Start a fetch for the current parameters."""
        self.state.in_flight = True
        task = asyncio.get_running_loop().create_task(
            self._perform_fetch(self._params, self._fingerprint, self._generation)
        )
        self._inflight_task = task
        return task

    def _issue_now(self) -> asyncio.Task:
        """Start a fetch outside the schedule and restart the timer from it."""
        task = self._issue()
        if self._timer_task is not None and not self._timer_task.done():
            self._timer_task.cancel()
        self._timer_task = asyncio.get_running_loop().create_task(self._run(task))
        return task

    def _is_current(self, fingerprint: str | None, generation: int) -> bool:
        return generation == self._generation and fingerprint == self._fingerprint

    async def _perform_fetch(
        self,
        params: Any,
        fingerprint: str | None,
        generation: int,
    ) -> bool:
        self.state.last_error = None
        logger.info("Polling feed", extra={"params": fingerprint})

        try:
            events = await self.fetcher(params)
        except Exception as e:
            if self._is_current(fingerprint, generation):
                record_failure(self.state, e, self.initial_backoff, self.max_backoff)
                logger.warning("Polling error: %s", str(e))
                self._notify(self.on_error, e)
            else:
                logger.debug("Discarding error from superseded fetch: %s", str(e))
            return False
        else:
            if generation != self._generation:
                logger.debug("Discarding fetch result: polling stopped")
            elif fingerprint != self._fingerprint:
                logger.info("Discarding stale fetch result: parameters changed")
            else:
                record_success(self.state, events, self._clock())
                self._notify(self.on_events, events)
            return True
        finally:
            self.state.in_flight = False
            self._inflight_task = None
            if self._refetch_pending and not self._stopped:
                self._refetch_pending = False
                self._issue_now()

    def _notify(self, callback: Callable[[Any], None] | None, value: Any) -> None:
        if callback is None:
            return
        try:
            callback(value)
        except Exception:
            logger.exception("Polling consumer callback failed")
