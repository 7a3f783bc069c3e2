"""Resilient HTTP invocation against the certification API.

:class:`ResilientHttpInvoker` owns the bearer-token lifecycle (through its
:class:`~DevCenterManager.network.auth.TokenProvider`), clones the request for
every attempt, and drives the Tenacity policy from
:mod:`DevCenterManager.network.retry`.  Remote outcomes come back as
:class:`~DevCenterManager.api.results.Success` or
:class:`~DevCenterManager.api.results.Failure`; only programming errors
(unsupported verbs) and caller cancellation are raised.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Type

import httpx
from pydantic import BaseModel
from tenacity import RetryCallState

from DevCenterManager.api.decoder import ApiResponseDecoder
from DevCenterManager.api.results import (
    RETRIES_EXHAUSTED_CODE,
    ErrorCategory,
    ErrorDetails,
    Failure,
    InvocationResult,
)
from DevCenterManager.cancellation import CancellationToken
from DevCenterManager.errors import AuthError, InvocationCancelled, UnsupportedMethodError
from DevCenterManager.network.auth import TokenProvider
from DevCenterManager.network.cloning import clone_request
from DevCenterManager.network.policy import SUPPORTED_METHODS
from DevCenterManager.network.retry import (
    AttemptOutcome,
    OutcomeKind,
    RetryReason,
    classify_response,
    create_invocation_retry_policy,
)
from DevCenterManager.settings import RetrySettings

logger = logging.getLogger(__name__)

__all__ = ["RequestIntent", "ResilientHttpInvoker", "RetryCallback", "AUTH_FAILED_CODE"]

AUTH_FAILED_CODE = "authenticationFailed"

#: ``callback(attempt_number, outcome, delay_seconds)`` invoked before each retry sleep
RetryCallback = Callable[[int, AttemptOutcome, float], None]


@dataclass(frozen=True)
class RequestIntent:
    """Logical description of a call, independent of any request object."""

    method: str
    url: str
    json_body: Any = None

    def build(self, client: httpx.Client, *, timeout: Any = None) -> httpx.Request:
        kwargs = {}
        if self.json_body is not None:
            kwargs["json"] = self.json_body
        if timeout is not None:
            kwargs["timeout"] = timeout
        return client.build_request(self.method.upper(), self.url, **kwargs)


class ResilientHttpInvoker:
    """Send API requests with token refresh and transient-failure retries."""

    def __init__(
        self,
        client: httpx.Client,
        token_provider: TokenProvider,
        *,
        retry: Optional[RetrySettings] = None,
        decoder: Optional[ApiResponseDecoder] = None,
        timeout: Optional[float] = None,
        on_retry: Optional[RetryCallback] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._client = client
        self._tokens = token_provider
        self._retry = retry or RetrySettings()
        self._decoder = decoder or ApiResponseDecoder()
        self._timeout = timeout
        self._on_retry = on_retry
        self._sleep = sleep
        self._rng = rng

    @property
    def token_provider(self) -> TokenProvider:
        return self._tokens

    @property
    def client(self) -> httpx.Client:
        return self._client

    def invoke(
        self,
        method: str,
        url: str,
        body: Any = None,
        *,
        model: Optional[Type[BaseModel]] = None,
        many: bool = False,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> InvocationResult:
        """Execute ``method url`` and decode the response into ``model``.

        Raises:
            UnsupportedMethodError: For verbs other than GET and POST.
            InvocationCancelled: When ``cancellation_token`` is cancelled.
        """
        return self.send(
            RequestIntent(method, url, body),
            model=model,
            many=many,
            cancellation_token=cancellation_token,
        )

    def send(
        self,
        intent: RequestIntent,
        *,
        model: Optional[Type[BaseModel]] = None,
        many: bool = False,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> InvocationResult:
        method = intent.method.upper()
        if method not in SUPPORTED_METHODS:
            raise UnsupportedMethodError(intent.method)
        if cancellation_token is not None:
            cancellation_token.raise_if_cancelled("request")

        template = intent.build(self._client, timeout=self._timeout)
        last_response: list = []
        attempts: list = []

        def attempt() -> AttemptOutcome:
            attempts.append(None)
            outcome = self._attempt(template, cancellation_token)
            if outcome.response is not None:
                last_response[:] = [outcome.response]
            return outcome

        policy = create_invocation_retry_policy(
            max_attempts=self._retry.max_attempts,
            timeout_delay=self._retry.timeout_delay,
            server_error_backoff=(
                self._retry.server_error_min_delay,
                self._retry.server_error_max_delay,
            ),
            before_sleep=self._before_sleep,
            sleep=self._sleep,
            rng=self._rng,
        )

        try:
            outcome: AttemptOutcome = policy(attempt)
        except AuthError as exc:
            logger.error("authentication failed", extra={"url": intent.url, "error": str(exc)})
            return Failure(
                ErrorDetails(
                    code=AUTH_FAILED_CODE,
                    message=str(exc),
                    http_error_code=exc.status_code,
                    category=ErrorCategory.AUTH,
                )
            )

        if outcome.kind is OutcomeKind.CANCELLED:
            raise InvocationCancelled(f"{method} {intent.url} cancelled by caller") from outcome.error

        response = outcome.response or (last_response[0] if last_response else None)
        if response is None:
            logger.error(
                "retries exhausted without a response",
                extra={"url": intent.url, "attempts": len(attempts), "last_error": outcome.describe()},
            )
            return Failure(
                ErrorDetails(
                    code=RETRIES_EXHAUSTED_CODE,
                    message=(
                        f"{method} {intent.url} failed after {len(attempts)} attempts: "
                        f"{outcome.describe()}"
                    ),
                    category=ErrorCategory.RETRIES_EXHAUSTED,
                )
            )

        if outcome.kind is OutcomeKind.RETRYABLE:
            logger.error(
                "retries exhausted",
                extra={"url": intent.url, "attempts": len(attempts), "status_code": response.status_code},
            )
        return self._decoder.decode_response(response, model=model, many=many)

    # ------------------------------------------------------------------
    # Attempts
    # ------------------------------------------------------------------

    def _attempt(
        self,
        template: httpx.Request,
        cancellation_token: Optional[CancellationToken],
    ) -> AttemptOutcome:
        if cancellation_token is not None and cancellation_token.is_cancelled():
            return AttemptOutcome(OutcomeKind.CANCELLED)

        token = self._tokens.get_token()
        try:
            request = clone_request(template)
        except (httpx.StreamError, OSError) as exc:
            return AttemptOutcome(
                OutcomeKind.RETRYABLE, reason=RetryReason.NETWORK, error=exc, token=token
            )
        request.headers["Authorization"] = token.authorization

        try:
            response = self._client.send(request)
        except httpx.TimeoutException as exc:
            if cancellation_token is not None and cancellation_token.is_cancelled():
                return AttemptOutcome(OutcomeKind.CANCELLED, error=exc)
            return AttemptOutcome(
                OutcomeKind.RETRYABLE, reason=RetryReason.TIMEOUT, error=exc, token=token
            )
        except httpx.RequestError as exc:
            if cancellation_token is not None and cancellation_token.is_cancelled():
                return AttemptOutcome(OutcomeKind.CANCELLED, error=exc)
            return AttemptOutcome(
                OutcomeKind.RETRYABLE, reason=RetryReason.NETWORK, error=exc, token=token
            )
        return classify_response(response, token=token)

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        outcome: AttemptOutcome = retry_state.outcome.result()
        delay = retry_state.upcoming_sleep
        if outcome.reason is RetryReason.UNAUTHORIZED:
            self._tokens.refresh(outcome.token)

        request = outcome.response.request if outcome.response is not None else None
        logger.warning(
            "retrying request",
            extra={
                "attempt": retry_state.attempt_number,
                "reason": outcome.reason.value if outcome.reason else None,
                "detail": outcome.describe(),
                "delay_sec": round(delay, 3),
                "url": str(request.url) if request is not None else None,
            },
        )
        if self._on_retry is not None:
            self._on_retry(retry_state.attempt_number, outcome, delay)
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.network.invoker",
#   "purpose": "Retrying, token-refreshing HTTP invoker returning typed results",
#   "sections": [
#     {"id": "requestintent", "name": "RequestIntent", "anchor": "class-requestintent", "kind": "class"},
#     {"id": "resilienthttpinvoker", "name": "ResilientHttpInvoker", "anchor": "class-resilienthttpinvoker", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
