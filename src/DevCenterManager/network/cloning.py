"""Request cloning for retry attempts.

An :class:`httpx.Request` is sent at most once.  Every attempt of an
invocation therefore sends a clone produced by :func:`clone_request`, whose
body is fully buffered in memory and whose headers are copied as a raw list so
repeated header values survive.
"""

from __future__ import annotations

import httpx

__all__ = ["clone_request"]


def clone_request(request: httpx.Request) -> httpx.Request:
    """Return an independent copy of ``request``.

    Reading the body may raise :class:`httpx.StreamError` or :class:`OSError`
    for streamed content; callers treat that as a failure of the attempt.

    Examples:
        >>> original = httpx.Request("POST", "https://example.test/x", content=b"{}")
        >>> clone = clone_request(original)
        >>> clone is original, clone.content == original.content
        (False, True)
    """
    body = request.read()
    return httpx.Request(
        method=request.method,
        url=request.url,
        headers=list(request.headers.raw),
        content=body,
        extensions=dict(request.extensions),
    )
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.network.cloning",
#   "purpose": "Produce independent, fully buffered request copies for each attempt",
#   "sections": [
#     {"id": "clone-request", "name": "clone_request", "anchor": "function-clone-request", "kind": "function"}
#   ]
# }
# === /NAVMAP ===
