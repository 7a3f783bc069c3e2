"""OAuth2 client-credential token acquisition.

:class:`TokenProvider` owns the single cached bearer token for one set of
credentials.  Acquisition, invalidation, and refresh are serialized by a lock
so that several callers observing the same 401 trigger one re-acquisition,
not one each.  The identity response is validated into
:class:`TokenResponse`; a missing or empty field is an :class:`AuthError`.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from DevCenterManager.errors import AuthError
from DevCenterManager.network.policy import TOKEN_RESOURCE, TOKEN_URL_TEMPLATE
from DevCenterManager.settings import Credentials

logger = logging.getLogger(__name__)

__all__ = ["AccessToken", "TokenResponse", "TokenProvider"]


@dataclass(frozen=True)
class AccessToken:
    """Bearer token handed out by :class:`TokenProvider`."""

    token_value: str
    token_type: str = "Bearer"

    @property
    def authorization(self) -> str:
        return f"Bearer {self.token_value}"

    def __repr__(self) -> str:
        return f"AccessToken(token_type={self.token_type!r}, token_value='***')"


class TokenResponse(BaseModel):
    """Fields of the identity endpoint's JSON response that the client relies on."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str = Field(min_length=1)
    token_type: str = Field(min_length=1)
    expires_in: Optional[int] = None


class TokenProvider:
    """Acquire and cache a client-credential access token."""

    def __init__(
        self,
        credentials: Credentials,
        client: httpx.Client,
        *,
        authority: str = "https://login.microsoftonline.com",
        resource: str = TOKEN_RESOURCE,
    ) -> None:
        self._credentials = credentials
        self._client = client
        self._authority = authority.rstrip("/")
        self._resource = resource
        self._lock = threading.Lock()
        self._token: Optional[AccessToken] = None

    @property
    def token_url(self) -> str:
        return TOKEN_URL_TEMPLATE.format(
            authority=self._authority, tenant_id=self._credentials.tenant_id
        )

    @property
    def current(self) -> Optional[AccessToken]:
        """Cached token, if any, without triggering acquisition."""
        return self._token

    def get_token(self) -> AccessToken:
        """Return the cached token, acquiring one first when none is cached."""
        with self._lock:
            if self._token is None:
                self._token = self._request_token()
            return self._token

    def invalidate(self) -> None:
        """Drop the cached token."""
        with self._lock:
            self._token = None

    def acquire(self) -> AccessToken:
        """Unconditionally fetch a new token and cache it."""
        with self._lock:
            self._token = self._request_token()
            return self._token

    def refresh(self, stale: Optional[AccessToken]) -> AccessToken:
        """Replace ``stale`` with a new token unless another caller already did."""
        with self._lock:
            if self._token is None or self._token is stale:
                self._token = None
                self._token = self._request_token()
            return self._token

    def _request_token(self) -> AccessToken:
        form = {
            "grant_type": "client_credentials",
            "client_id": self._credentials.client_id,
            "client_secret": self._credentials.client_secret,
            "resource": self._resource,
        }
        try:
            response = self._client.post(self.token_url, data=form)
        except httpx.HTTPError as exc:
            raise AuthError(f"Token request failed: {exc}") from exc

        if not response.is_success:
            logger.error(
                "token request rejected",
                extra={"status_code": response.status_code, "tenant_id": self._credentials.tenant_id},
            )
            raise AuthError(
                f"Token endpoint returned {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            parsed = TokenResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise AuthError(
                "Token endpoint returned an unusable body", status_code=response.status_code
            ) from exc

        logger.debug(
            "access token acquired",
            extra={"token_type": parsed.token_type, "expires_in": parsed.expires_in},
        )
        return AccessToken(token_value=parsed.access_token, token_type=parsed.token_type)
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.network.auth",
#   "purpose": "Client-credential bearer token acquisition with a lock-protected cache",
#   "sections": [
#     {"id": "accesstoken", "name": "AccessToken", "anchor": "class-accesstoken", "kind": "class"},
#     {"id": "tokenresponse", "name": "TokenResponse", "anchor": "class-tokenresponse", "kind": "class"},
#     {"id": "tokenprovider", "name": "TokenProvider", "anchor": "class-tokenprovider", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
