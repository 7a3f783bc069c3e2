"""HTTPX client factory.

Builds the :class:`httpx.Client` shared by the token provider and the
resilient invoker for one run.  TLS verification uses the certifi bundle and
redirects are never followed, so a misconfigured base URL fails loudly instead
of replaying bearer tokens against another host.

Example:
    >>> from DevCenterManager.settings import HttpSettings
    >>> client = build_http_client(HttpSettings())
    >>> client.close()
"""

from __future__ import annotations

import logging
import ssl
from typing import Optional

import certifi
import httpx

from DevCenterManager.settings import HttpSettings

logger = logging.getLogger(__name__)

__all__ = ["build_http_client", "build_timeout"]


def _create_ssl_context() -> ssl.SSLContext:
    """Create an SSL context backed by the certifi CA bundle."""
    ctx = ssl.create_default_context(cafile=certifi.where())
    ctx.check_hostname = True
    ctx.verify_mode = ssl.CERT_REQUIRED
    return ctx


def build_timeout(settings: HttpSettings) -> httpx.Timeout:
    """Per-phase timeouts; read/write/pool share the overall budget."""
    return httpx.Timeout(settings.timeout, connect=min(settings.timeout_connect, settings.timeout))


def build_http_client(
    settings: HttpSettings,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Return a configured client; ``transport`` lets tests inject a mock."""

    limits = httpx.Limits(
        max_connections=settings.pool_max_connections,
        max_keepalive_connections=settings.pool_keepalive_max,
    )
    kwargs = {
        "timeout": build_timeout(settings),
        "headers": {"User-Agent": settings.user_agent, "Accept": "application/json"},
        "follow_redirects": False,
        "trust_env": settings.trust_env,
    }
    if transport is not None:
        client = httpx.Client(transport=transport, **kwargs)
    else:
        client = httpx.Client(verify=_create_ssl_context(), limits=limits, **kwargs)
    logger.debug(
        "HTTP client created",
        extra={"timeout": settings.timeout, "max_connections": settings.pool_max_connections},
    )
    return client
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.network.client",
#   "purpose": "Build the shared HTTPX client with certifi TLS and bounded pooling",
#   "sections": [
#     {"id": "create-ssl-context", "name": "_create_ssl_context", "anchor": "function-create-ssl-context", "kind": "function"},
#     {"id": "build-http-client", "name": "build_http_client", "anchor": "function-build-http-client", "kind": "function"}
#   ]
# }
# === /NAVMAP ===
