"""Exception hierarchy shared by the token, transport, decoding, and polling layers.

Remote calls against the certification API fail in a handful of distinct ways:
the identity endpoint may reject the client credentials, the network may time
out, the service may reject a request with a structured error envelope, or the
retry budget may run out entirely.  This module groups those failure modes so
callers (chiefly the CLI) can branch on high-level categories while the
invoker keeps returning typed results instead of raising for remote outcomes.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

__all__ = [
    "DevCenterError",
    "ConfigurationError",
    "CredentialsNotFoundError",
    "AuthError",
    "TransportError",
    "RetriesExhaustedError",
    "ApiError",
    "UnsupportedMethodError",
    "InvocationCancelled",
    "PollingTimeoutError",
    "BlobTransferError",
]


class DevCenterError(RuntimeError):
    """Base exception for every failure raised by the client."""


class ConfigurationError(DevCenterError):
    """Raised when settings files or environment overrides are invalid."""


class CredentialsNotFoundError(ConfigurationError):
    """Raised when no usable client credentials can be located."""


class AuthError(DevCenterError):
    """Raised when the identity endpoint does not yield a usable access token."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportError(DevCenterError):
    """Raised for network level failures that were not requested by the caller."""

    def __init__(self, message: str, *, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class RetriesExhaustedError(TransportError):
    """Raised when every attempt of an invocation failed without a response."""

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        super().__init__(message, retryable=False)
        self.attempts = attempts


class ApiError(DevCenterError):
    """Raised when the service rejected a request with a structured error."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        http_status_code: Optional[int] = None,
        validation_errors: Optional[Sequence[Any]] = None,
    ) -> None:
        super().__init__(f"{code}: {message}" if code else message)
        self.code = code
        self.message = message
        self.http_status_code = http_status_code
        self.validation_errors = tuple(validation_errors or ())


class UnsupportedMethodError(DevCenterError):
    """Raised when an HTTP verb other than GET or POST is requested."""

    def __init__(self, method: str) -> None:
        super().__init__(f"HTTP method {method!r} is not supported; use GET or POST")
        self.method = method


class InvocationCancelled(DevCenterError):
    """Raised when the caller cancelled an in-flight invocation or wait."""


class PollingTimeoutError(DevCenterError):
    """Raised when a polling wait passes its deadline before reaching a terminal state."""

    def __init__(self, message: str, *, ticks: int = 0) -> None:
        super().__init__(message)
        self.ticks = ticks


class BlobTransferError(DevCenterError):
    """Raised when an upload to or download from blob storage fails."""
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.errors",
#   "purpose": "Define the exception hierarchy used by token, transport, decoding, and polling layers",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "configuration", "name": "Configuration Errors", "anchor": "CFG", "kind": "api"},
#     {"id": "transport", "name": "Auth & Transport Errors", "anchor": "TRN", "kind": "api"},
#     {"id": "api", "name": "Remote API Errors", "anchor": "API", "kind": "api"},
#     {"id": "control", "name": "Cancellation & Polling Errors", "anchor": "CTL", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
