"""Cooperative cancellation and deadline primitives for long-running waits.

Submission and shipping-label waits may legitimately run for hours.  This
module offers the light-weight :class:`CancellationToken` that the HTTP
invoker and the polling loop check between steps, along with
:class:`Deadline` so callers can bound the total duration of a wait.  Neither
primitive interrupts threads; callers check them explicitly so that partial
downloads and console output are left in a consistent state.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from .errors import InvocationCancelled

__all__ = ["CancellationToken", "Deadline"]


class CancellationToken:
    """Thread-safe cancellation token for cooperative cancellation.

    Examples:
        >>> token = CancellationToken()
        >>> token.is_cancelled()
        False
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(self) -> None:
        self._is_cancelled = threading.Event()
        self._lock = threading.Lock()

    def cancel(self) -> None:
        """Signal that cancellation has been requested."""
        with self._lock:
            self._is_cancelled.set()

    def is_cancelled(self) -> bool:
        """Return ``True`` once :meth:`cancel` has been called."""
        return self._is_cancelled.is_set()

    def raise_if_cancelled(self, what: str = "operation") -> None:
        """Raise :class:`InvocationCancelled` when cancellation was requested."""
        if self._is_cancelled.is_set():
            raise InvocationCancelled(f"{what} cancelled by caller")

    def reset(self) -> None:
        """Reset the token; only meant for tests and controlled reuse."""
        with self._lock:
            self._is_cancelled.clear()


class Deadline:
    """Absolute point in time after which a wait should give up."""

    def __init__(self, seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        if seconds < 0:
            raise ValueError("deadline seconds must be non-negative")
        self._clock = clock
        self._expires_at = clock() + float(seconds)

    @classmethod
    def optional(
        cls,
        seconds: Optional[float],
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> Optional["Deadline"]:
        """Return a deadline for ``seconds`` or ``None`` when no bound was requested."""
        if seconds is None:
            return None
        return cls(seconds, clock=clock)

    def remaining(self) -> float:
        """Seconds left before expiry, never negative."""
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        return self._clock() >= self._expires_at
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.cancellation",
#   "purpose": "Provide cooperative cancellation tokens and deadlines for invocations and polling",
#   "sections": [
#     {"id": "token", "name": "CancellationToken", "anchor": "TOK", "kind": "api"},
#     {"id": "deadline", "name": "Deadline", "anchor": "DDL", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
