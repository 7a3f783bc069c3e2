"""Tests for the client-credential token provider.

Tests cover:
- Form fields posted to the tenant's token endpoint
- Caching, invalidation, and forced re-acquisition
- Refresh de-duplication when several callers saw the same stale token
- Rejections and malformed bodies surfacing as AuthError
"""

from urllib.parse import parse_qs

import httpx
import pytest

from DevCenterManager.errors import AuthError
from DevCenterManager.network.auth import AccessToken, TokenProvider
from DevCenterManager.network.client import build_http_client
from DevCenterManager.settings import HttpSettings


@pytest.fixture
def provider(service, credentials):
    client = build_http_client(HttpSettings(), transport=service.transport)
    yield TokenProvider(credentials, client)
    client.close()


def test_token_request_posts_client_credentials(provider, service):
    token = provider.get_token()

    assert token == AccessToken(token_value="tok-1", token_type="Bearer")
    assert token.authorization == "Bearer tok-1"
    request = service.token_requests[0]
    assert str(request.url) == "https://login.microsoftonline.com/tenant-1/oauth2/token"
    form = parse_qs(request.content.decode())
    assert form["grant_type"] == ["client_credentials"]
    assert form["client_id"] == ["client-1"]
    assert form["client_secret"] == ["s3cr3t-value"]
    assert form["resource"] == ["https://manage.devcenter.microsoft.com"]


def test_get_token_is_cached(provider, service):
    first = provider.get_token()
    second = provider.get_token()

    assert first is second
    assert len(service.token_requests) == 1
    assert provider.current is first


def test_invalidate_forces_new_token(provider, service):
    provider.get_token()
    provider.invalidate()
    assert provider.current is None

    assert provider.get_token().token_value == "tok-2"
    assert len(service.token_requests) == 2


def test_acquire_always_fetches(provider, service):
    provider.get_token()
    assert provider.acquire().token_value == "tok-2"
    assert len(service.token_requests) == 2


def test_refresh_replaces_stale_token_once(provider, service):
    stale = provider.get_token()

    fresh = provider.refresh(stale)
    again = provider.refresh(stale)

    assert fresh.token_value == "tok-2"
    assert again is fresh
    assert len(service.token_requests) == 2


def test_rejected_token_request_raises_auth_error(provider, service):
    service.token_status = 401

    with pytest.raises(AuthError) as excinfo:
        provider.get_token()

    assert excinfo.value.status_code == 401
    assert provider.current is None


def test_token_body_without_access_token_raises(credentials):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"token_type": "Bearer"}))
    client = build_http_client(HttpSettings(), transport=transport)
    provider = TokenProvider(credentials, client)

    with pytest.raises(AuthError, match="unusable body"):
        provider.get_token()
    client.close()


def test_token_transport_error_raises_auth_error(credentials):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route", request=request)

    client = build_http_client(HttpSettings(), transport=httpx.MockTransport(handler))
    provider = TokenProvider(credentials, client)

    with pytest.raises(AuthError, match="Token request failed"):
        provider.get_token()
    client.close()


def test_access_token_repr_hides_value():
    assert "abc" not in repr(AccessToken(token_value="abc"))
