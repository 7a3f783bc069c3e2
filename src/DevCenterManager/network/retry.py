"""Retry policy for API invocations: tagged attempt outcomes driven through Tenacity.

Each attempt of an invocation reports an :class:`AttemptOutcome` instead of
raising.  Whether to retry, and how long to wait first, are pure functions of
that outcome:

- ``OK`` and ``FATAL`` stop immediately.
- ``CANCELLED`` stops immediately; the invoker re-raises the cancellation.
- ``RETRYABLE`` retries until the attempt budget is spent, waiting:
    - the fixed timeout delay after a timeout or network failure,
    - nothing after a 401 (the token is refreshed before the next attempt),
    - a uniform random delay in ``[low, high)`` after a 500 or 502.

Example:
    >>> policy = create_invocation_retry_policy(max_attempts=3, sleep=lambda _: None)
    >>> policy(lambda: AttemptOutcome(OutcomeKind.OK)).kind
    <OutcomeKind.OK: 'ok'>
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

import httpx
from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt
from tenacity.wait import wait_base

from DevCenterManager.network.policy import (
    MAX_RETRIES,
    SERVER_ERROR_BACKOFF,
    SERVER_ERROR_STATUSES,
    TIMEOUT_RETRY_DELAY,
)

logger = logging.getLogger(__name__)

__all__ = [
    "OutcomeKind",
    "RetryReason",
    "AttemptOutcome",
    "classify_response",
    "retry_delay",
    "create_invocation_retry_policy",
]


# ============================================================================
# Attempt outcomes
# ============================================================================


class OutcomeKind(str, Enum):
    OK = "ok"
    RETRYABLE = "retryable"
    FATAL = "fatal"
    CANCELLED = "cancelled"


class RetryReason(str, Enum):
    TIMEOUT = "timeout"
    NETWORK = "network"
    UNAUTHORIZED = "unauthorized"
    SERVER_ERROR = "server_error"


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of one send, tagged with what the retry loop should do next."""

    kind: OutcomeKind
    response: Optional[httpx.Response] = None
    reason: Optional[RetryReason] = None
    error: Optional[BaseException] = None
    token: Any = None

    @property
    def status_code(self) -> Optional[int]:
        return self.response.status_code if self.response is not None else None

    def describe(self) -> str:
        if self.response is not None:
            return f"HTTP {self.response.status_code}"
        if self.error is not None:
            return f"{type(self.error).__name__}: {self.error}"
        return self.kind.value


def classify_response(response: httpx.Response, *, token: Any = None) -> AttemptOutcome:
    """Tag a received response; only 401, 500 and 502 are retryable."""
    status = response.status_code
    if 200 <= status < 300:
        return AttemptOutcome(OutcomeKind.OK, response=response, token=token)
    if status == 401:
        return AttemptOutcome(
            OutcomeKind.RETRYABLE, response=response, reason=RetryReason.UNAUTHORIZED, token=token
        )
    if status in SERVER_ERROR_STATUSES:
        return AttemptOutcome(
            OutcomeKind.RETRYABLE, response=response, reason=RetryReason.SERVER_ERROR, token=token
        )
    return AttemptOutcome(OutcomeKind.FATAL, response=response, token=token)


def retry_delay(
    outcome: AttemptOutcome,
    *,
    timeout_delay: float = TIMEOUT_RETRY_DELAY,
    server_error_backoff: Tuple[float, float] = SERVER_ERROR_BACKOFF,
    rng: Optional[random.Random] = None,
) -> float:
    """Seconds to wait before retrying after ``outcome``."""
    if outcome.reason is RetryReason.UNAUTHORIZED:
        return 0.0
    if outcome.reason is RetryReason.SERVER_ERROR:
        low, high = server_error_backoff
        return low + (rng or random).random() * (high - low)
    return timeout_delay


# ============================================================================
# Retry Policies
# ============================================================================


class _OutcomeWait(wait_base):
    """Wait strategy reading the delay off the last attempt's outcome."""

    def __init__(
        self,
        timeout_delay: float,
        server_error_backoff: Tuple[float, float],
        rng: Optional[random.Random],
    ) -> None:
        self._timeout_delay = timeout_delay
        self._server_error_backoff = server_error_backoff
        self._rng = rng

    def __call__(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        if outcome is None or outcome.failed:
            return self._timeout_delay
        return retry_delay(
            outcome.result(),
            timeout_delay=self._timeout_delay,
            server_error_backoff=self._server_error_backoff,
            rng=self._rng,
        )


def _is_retryable(outcome: AttemptOutcome) -> bool:
    return outcome.kind is OutcomeKind.RETRYABLE


def _last_outcome(retry_state: RetryCallState) -> AttemptOutcome:
    return retry_state.outcome.result()


def create_invocation_retry_policy(
    *,
    max_attempts: int = MAX_RETRIES,
    timeout_delay: float = TIMEOUT_RETRY_DELAY,
    server_error_backoff: Tuple[float, float] = SERVER_ERROR_BACKOFF,
    before_sleep: Optional[Callable[[RetryCallState], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
    rng: Optional[random.Random] = None,
) -> Retrying:
    """Create the Tenacity controller used for a single invocation.

    The controller is called with a zero-argument function returning an
    :class:`AttemptOutcome`.  When the budget runs out the last outcome is
    returned rather than a ``RetryError``; exceptions raised by the attempt
    function are never retried and propagate unchanged.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    return Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=_OutcomeWait(timeout_delay, server_error_backoff, rng),
        retry=retry_if_result(_is_retryable),
        before_sleep=before_sleep,
        sleep=sleep,
        retry_error_callback=_last_outcome,
    )
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.network.retry",
#   "purpose": "Tagged attempt outcomes and the Tenacity policy that retries them",
#   "sections": [
#     {"id": "outcomes", "name": "Attempt outcomes", "anchor": "OUT", "kind": "api"},
#     {"id": "policies", "name": "Retry Policies", "anchor": "POL", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
