"""Network subsystem: HTTP client, bearer tokens, request cloning, and retries.

This package provides the transport half of the client:
- HTTPX: pooled client with certifi-backed TLS
- Tenacity: retry controller driven by tagged attempt outcomes

Modules:
- client: HTTPX client factory
- policy: retry budget, delays, and endpoint constants
- auth: client-credential token provider
- cloning: per-attempt request copies
- retry: attempt outcomes and the Tenacity policy
- invoker: the resilient invoker tying them together

Example:
    >>> from DevCenterManager.network import ResilientHttpInvoker, TokenProvider, build_http_client
    >>> client = build_http_client(settings.http)  # doctest: +SKIP
    >>> invoker = ResilientHttpInvoker(client, TokenProvider(credentials, client))  # doctest: +SKIP
    >>> invoker.invoke("GET", url)  # doctest: +SKIP
"""

from DevCenterManager.network.auth import AccessToken, TokenProvider, TokenResponse
from DevCenterManager.network.client import build_http_client
from DevCenterManager.network.cloning import clone_request
from DevCenterManager.network.invoker import RequestIntent, ResilientHttpInvoker
from DevCenterManager.network.policy import MAX_RETRIES, POLL_INTERVAL, RATE_LIMIT_DELAY
from DevCenterManager.network.retry import (
    AttemptOutcome,
    OutcomeKind,
    RetryReason,
    create_invocation_retry_policy,
)

__all__ = [
    "AccessToken",
    "TokenProvider",
    "TokenResponse",
    "build_http_client",
    "clone_request",
    "RequestIntent",
    "ResilientHttpInvoker",
    "MAX_RETRIES",
    "POLL_INTERVAL",
    "RATE_LIMIT_DELAY",
    "AttemptOutcome",
    "OutcomeKind",
    "RetryReason",
    "create_invocation_retry_policy",
]
