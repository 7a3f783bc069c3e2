# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for suite",
#   "sections": [
#     {"id": "fakeservice", "name": "FakeService", "anchor": "class-fakeservice", "kind": "class"},
#     {"id": "isolated-environment", "name": "_isolated_environment", "anchor": "function-isolated-environment", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Shared fixtures for the DevCenterManager suite. Every test runs in a scratch
working directory with ``DEVCENTER_*`` variables cleared, and HTTP traffic is
served by :class:`FakeService`, a scripted identity endpoint plus API backed by
``httpx.MockTransport``. Sleeps are recorded instead of slept.
"""

from __future__ import annotations

import logging
import os
import random
from typing import Any, Callable, List, Union

import httpx
import pytest

from DevCenterManager.api.handler import DevCenterClient
from DevCenterManager.logging_config import ROOT_LOGGER_NAME
from DevCenterManager.settings import Credentials, Settings, invalidate_default_settings_cache

API_ROOT = "https://manage.devcenter.test/v2.0/my"

ResponseSpec = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class FakeService:
    """Identity endpoint plus a queue of scripted API responses.

    Queued API responses are consumed in order; the last one repeats so a
    test can script "always 401" with a single entry.
    """

    def __init__(self) -> None:
        self.token_requests: List[httpx.Request] = []
        self.api_requests: List[httpx.Request] = []
        self.token_status = 200
        self._responses: List[ResponseSpec] = []
        self._issued = 0

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def authorizations(self) -> List[str]:
        return [request.headers.get("Authorization", "") for request in self.api_requests]

    def queue(self, *responses: ResponseSpec) -> "FakeService":
        self._responses.extend(responses)
        return self

    def queue_json(self, status_code: int, payload: Any) -> "FakeService":
        return self.queue(httpx.Response(status_code, json=payload))

    def handler(self, request: httpx.Request) -> httpx.Response:
        request.read()
        if request.url.path.endswith("/oauth2/token"):
            self.token_requests.append(request)
            if self.token_status != 200:
                return httpx.Response(self.token_status, text="denied")
            self._issued += 1
            return httpx.Response(
                200,
                json={"access_token": f"tok-{self._issued}", "token_type": "Bearer", "expires_in": 3600},
            )

        self.api_requests.append(request)
        if not self._responses:
            raise AssertionError(f"unexpected request {request.method} {request.url}")
        spec = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(spec, httpx.Response):
            return spec
        if isinstance(spec, Exception):
            raise spec
        return spec(request)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Clear DEVCENTER_* variables, run in a scratch directory, drop log handlers afterwards."""

    for key in list(os.environ):
        if key.startswith("DEVCENTER_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DEVCENTER_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.chdir(tmp_path)
    invalidate_default_settings_cache()
    yield
    invalidate_default_settings_cache()
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(package_logger.handlers):
        if getattr(handler, "_devcenter_managed", False):
            package_logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(
        client_id="client-1",
        client_secret="s3cr3t-value",
        tenant_id="tenant-1",
        url="https://manage.devcenter.test",
        url_prefix="v2.0/my",
    )


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def api_client(service: FakeService, credentials: Credentials, sleeps: List[float]):
    client = DevCenterClient.from_credentials(
        credentials,
        Settings(),
        transport=service.transport,
        sleep=sleeps.append,
        rng=random.Random(7),
    )
    yield client
    client.close()
