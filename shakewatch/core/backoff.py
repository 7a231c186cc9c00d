"""Polling state and backoff logic - Pure functions.

This module tracks the state of one polling loop and computes retry
delays after failures. The scheduler owns the timers; everything here is
deterministic.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from shakewatch.core.earthquake import SeismicEvent


INITIAL_BACKOFF_SECONDS = 5.0
MAX_BACKOFF_SECONDS = 300.0


@dataclass
class PollState:
    """Mutable state of a single polling loop.

    Attributes:
        in_flight: True while a fetch is outstanding
        backoff_delay: Current retry delay, None after a success
        consecutive_failures: Failures since the last success
        last_success_at: When the last fetch succeeded
        last_error: Error from the most recent cycle, None on success
        events: Events from the most recent applied fetch
    """
    in_flight: bool = False
    backoff_delay: float | None = None
    consecutive_failures: int = 0
    last_success_at: datetime | None = None
    last_error: Exception | None = None
    events: list[SeismicEvent] = field(default_factory=list)


def compute_backoff_delay(
    failures: int,
    initial: float = INITIAL_BACKOFF_SECONDS,
    maximum: float = MAX_BACKOFF_SECONDS,
) -> float:
    """Delay before the next attempt after consecutive failures.

    Pure function. The nth retry waits min(initial * 2^(n-1), maximum).

    Args:
        failures: Consecutive failure count (>= 1)
        initial: Delay after the first failure
        maximum: Backoff ceiling

    Returns:
        Delay in seconds
    """
    if failures < 1:
        raise ValueError(f"failures must be >= 1, got {failures}")
    # Cap the exponent so huge failure counts cannot overflow
    exponent = min(failures - 1, 62)
    return min(initial * (2 ** exponent), maximum)


def params_fingerprint(params: Any) -> str:
    """Stable fingerprint for a set of query parameters.

    Pure function. Dataclasses and datetimes are rendered through ``str``.
    """
    return json.dumps(params, sort_keys=True, default=str)


def record_success(
    state: PollState,
    events: list[SeismicEvent],
    now: datetime,
) -> PollState:
    """Apply a successful fetch to the state (in place).

    Returns:
        The same state, for chaining
    """
    state.events = events
    state.last_success_at = now
    state.last_error = None
    state.consecutive_failures = 0
    state.backoff_delay = None
    return state


def record_failure(
    state: PollState,
    error: Exception,
    initial: float = INITIAL_BACKOFF_SECONDS,
    maximum: float = MAX_BACKOFF_SECONDS,
) -> PollState:
    """Apply a failed fetch to the state (in place).

    Increments the failure count and sets the next backoff delay.

    Returns:
        The same state, for chaining
    """
    state.last_error = error
    state.consecutive_failures += 1
    state.backoff_delay = compute_backoff_delay(
        state.consecutive_failures,
        initial,
        maximum,
    )
    return state
