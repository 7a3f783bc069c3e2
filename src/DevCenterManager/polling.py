"""Wait-for-completion polling over submissions and shipping labels.

:class:`PollingWaiter` repeatedly calls a caller-supplied fetch operation until
an evaluator reports a terminal :class:`PollState`.  A status line is emitted
only when the entity's ``(currentStep, state)`` pair changes; when the new
status references an error report, the report is fetched through a
:class:`~DevCenterManager.blob.BlobTransferClient` and shown as well.

A 429 response pauses and polls again without touching the last-seen status.
Any other failed fetch ends the wait in ``FAILED`` with the error attached.
Callers may bound a wait with a :class:`~DevCenterManager.cancellation.Deadline`
or abort it through a :class:`~DevCenterManager.cancellation.CancellationToken`.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from .api.models import DownloadType, WorkflowStatus
from .api.results import ErrorDetails, InvocationResult
from .blob import BlobTransferClient
from .cancellation import CancellationToken, Deadline
from .errors import BlobTransferError, PollingTimeoutError
from .network.policy import POLL_INTERVAL, RATE_LIMIT_DELAY

logger = logging.getLogger(__name__)

__all__ = [
    "PollState",
    "PollResult",
    "PollingWaiter",
    "submission_evaluator",
    "shipping_label_evaluator",
]

FAILED_STATE = "failed"


class PollState(str, Enum):
    POLLING = "polling"
    READY = "ready"
    READY_WITH_EXTRA = "ready_with_extra"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self is not PollState.POLLING


@dataclass(frozen=True)
class PollResult:
    """How a wait ended."""

    state: PollState
    entity: Any = None
    error: Optional[ErrorDetails] = None
    ticks: int = 0

    @property
    def ready(self) -> bool:
        return self.state in (PollState.READY, PollState.READY_WITH_EXTRA)


Evaluator = Callable[[Any], PollState]
StatusCallback = Callable[[Any, WorkflowStatus], None]
ErrorReportCallback = Callable[[str, str], None]


# ============================================================================
# Terminal predicates
# ============================================================================


def _is_failed(status: Optional[WorkflowStatus]) -> bool:
    return status is not None and (status.state or "").lower() == FAILED_STATE


def submission_evaluator(require_metadata: bool = False) -> Evaluator:
    """Ready once a signed package exists, and driver metadata too when required."""

    def evaluate(submission: Any) -> PollState:
        if _is_failed(submission.workflow_status):
            return PollState.FAILED
        if submission.find_download(DownloadType.SIGNED_PACKAGE) is None:
            return PollState.POLLING
        if not require_metadata:
            return PollState.READY
        if submission.find_download(DownloadType.DRIVER_METADATA) is not None:
            return PollState.READY_WITH_EXTRA
        return PollState.POLLING

    return evaluate


def shipping_label_evaluator() -> Evaluator:
    """Ready at Microsoft approval, or once sharing to a partner has completed."""

    def evaluate(label: Any) -> PollState:
        status: Optional[WorkflowStatus] = label.workflow_status
        if status is None:
            return PollState.POLLING
        if _is_failed(status):
            return PollState.FAILED
        if status.current_step == "microsoftApproval":
            return PollState.READY
        if status.current_step == "finalizeSharing" and status.state == "completed":
            return PollState.READY_WITH_EXTRA
        return PollState.POLLING

    return evaluate


# ============================================================================
# Waiter
# ============================================================================


class PollingWaiter:
    """Poll ``fetch`` until ``evaluate`` reports a terminal state."""

    def __init__(
        self,
        fetch: Callable[[], InvocationResult],
        evaluate: Evaluator,
        *,
        interval: float = POLL_INTERVAL,
        rate_limit_delay: float = RATE_LIMIT_DELAY,
        on_status: Optional[StatusCallback] = None,
        blob_client: Optional[BlobTransferClient] = None,
        on_error_report: Optional[ErrorReportCallback] = None,
        cancellation_token: Optional[CancellationToken] = None,
        deadline: Optional[Deadline] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._fetch = fetch
        self._evaluate = evaluate
        self._interval = interval
        self._rate_limit_delay = rate_limit_delay
        self._on_status = on_status
        self._blob_client = blob_client
        self._on_error_report = on_error_report
        self._cancellation_token = cancellation_token
        self._deadline = deadline
        self._sleep = sleep
        self._last_seen: Optional[Tuple[Optional[str], Optional[str]]] = None

    @property
    def last_seen(self) -> Optional[Tuple[Optional[str], Optional[str]]]:
        """Most recent ``(current_step, state)`` pair that was reported."""
        return self._last_seen

    def wait(self) -> PollResult:
        """Run the loop to a terminal state.

        Raises:
            InvocationCancelled: When the cancellation token is triggered.
            PollingTimeoutError: When the deadline passes first.
        """
        ticks = 0
        while True:
            self._check_bounds(ticks)
            ticks += 1
            result = self._fetch()

            if not result.ok:
                if result.is_rate_limited:
                    logger.warning("status fetch rate limited", extra={"tick": ticks})
                    self._pause(self._rate_limit_delay)
                    continue
                logger.error(
                    "status fetch failed",
                    extra={"tick": ticks, "code": result.error.code, "status_code": result.status_code},
                )
                return PollResult(PollState.FAILED, error=result.error, ticks=ticks)

            entity = result.entity
            status = getattr(entity, "workflow_status", None) if entity is not None else None
            if status is None:
                logger.info("workflow status not available yet", extra={"tick": ticks})
                self._pause(self._interval)
                continue

            self._observe(entity, status)

            state = self._evaluate(entity)
            if state.terminal:
                logger.info("wait finished", extra={"tick": ticks, "state": state.value})
                return PollResult(state, entity=entity, ticks=ticks)
            self._pause(self._interval)

    def _observe(self, entity: Any, status: WorkflowStatus) -> None:
        pair = status.step_state
        if pair == self._last_seen:
            return
        self._last_seen = pair
        logger.info(
            "workflow status changed",
            extra={"current_step": status.current_step, "state": status.state},
        )
        if self._on_status is not None:
            self._on_status(entity, status)
        if status.error_report and self._blob_client is not None:
            self._show_error_report(status.error_report)

    def _show_error_report(self, url: str) -> None:
        try:
            report = self._blob_client.download_text(url)
        except BlobTransferError as exc:
            logger.warning("could not fetch error report", extra={"error": str(exc)})
            return
        if self._on_error_report is not None:
            self._on_error_report(url, report)
        else:
            logger.info("error report", extra={"report": report})

    def _check_bounds(self, ticks: int) -> None:
        if self._cancellation_token is not None:
            self._cancellation_token.raise_if_cancelled("wait")
        if self._deadline is not None and self._deadline.expired():
            raise PollingTimeoutError(
                f"Gave up waiting after {ticks} status checks", ticks=ticks
            )

    def _pause(self, seconds: float) -> None:
        if self._deadline is not None:
            seconds = min(seconds, self._deadline.remaining())
        if seconds > 0:
            self._sleep(seconds)
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.polling",
#   "purpose": "Polling state machine for submission and shipping-label waits",
#   "sections": [
#     {"id": "predicates", "name": "Terminal predicates", "anchor": "PRD", "kind": "api"},
#     {"id": "waiter", "name": "Waiter", "anchor": "WTR", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
