"""Typed endpoint calls for the hardware certification API.

:class:`DevCenterClient` maps each endpoint to a method returning an
:class:`~DevCenterManager.api.results.InvocationResult`.  All transport
concerns (token refresh, retries, decoding) live in the invoker; this layer
only builds URLs and bodies and names the model to decode into.

Example:
    >>> client = DevCenterClient.from_credentials(credentials)  # doctest: +SKIP
    >>> result = client.get_products("13635057603184622")  # doctest: +SKIP
    >>> result.entity.product_name  # doctest: +SKIP
    'Contoso Widget'
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional
from urllib.parse import quote

import httpx

from DevCenterManager.api.models import (
    Audience,
    NewProduct,
    NewShippingLabel,
    NewSubmission,
    Product,
    ShippingLabel,
    Submission,
)
from DevCenterManager.api.results import InvocationResult
from DevCenterManager.cancellation import CancellationToken
from DevCenterManager.network.auth import TokenProvider
from DevCenterManager.network.client import build_http_client
from DevCenterManager.network.invoker import ResilientHttpInvoker, RetryCallback
from DevCenterManager.settings import Credentials, Settings

logger = logging.getLogger(__name__)

__all__ = ["DevCenterClient"]

PRODUCTS_PATH = "/hardware/products"
SUBMISSIONS_PATH = "/hardware/products/{product_id}/submissions"
SHIPPING_LABELS_PATH = "/hardware/products/{product_id}/submissions/{submission_id}/shippingLabels"
AUDIENCES_PATH = "/hardware/audiences"
PARTNER_SUBMISSION_PATH = (
    "/hardware/products/relationships/"
    "sourcepubid={publisher_id};sourceproductid={product_id};sourcesubmissionid={submission_id}"
)


def _segment(value: str) -> str:
    return quote(str(value), safe="")


class DevCenterClient:
    """Product, submission, shipping-label, and audience operations."""

    def __init__(
        self,
        invoker: ResilientHttpInvoker,
        base_url: str,
        *,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> None:
        self._invoker = invoker
        self._base_url = base_url.rstrip("/")
        self._cancellation_token = cancellation_token

    @classmethod
    def from_credentials(
        cls,
        credentials: Credentials,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        on_retry: Optional[RetryCallback] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> "DevCenterClient":
        """Wire an HTTP client, token provider, and invoker for ``credentials``."""
        settings = settings or Settings()
        http_client = build_http_client(settings.http, transport=transport)
        tokens = TokenProvider(
            credentials,
            http_client,
            authority=settings.http.authority,
            resource=settings.http.resource,
        )
        invoker = ResilientHttpInvoker(
            http_client,
            tokens,
            retry=settings.retry,
            on_retry=on_retry,
            sleep=sleep,
            rng=rng,
        )
        return cls(invoker, credentials.base_url, cancellation_token=cancellation_token)

    @property
    def invoker(self) -> ResilientHttpInvoker:
        return self._invoker

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        self._invoker.client.close()

    def __enter__(self) -> "DevCenterClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    def _get(self, path: str, model, *, many: bool = False) -> InvocationResult:
        return self._invoker.invoke(
            "GET",
            self._url(path),
            model=model,
            many=many,
            cancellation_token=self._cancellation_token,
        )

    def _post(self, path: str, body, model=None) -> InvocationResult:
        return self._invoker.invoke(
            "POST",
            self._url(path),
            body,
            model=model,
            cancellation_token=self._cancellation_token,
        )

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def get_products(self, product_id: Optional[str] = None) -> InvocationResult:
        """One product by id, or every product when ``product_id`` is omitted."""
        if product_id is None:
            return self._get(PRODUCTS_PATH, Product, many=True)
        return self._get(f"{PRODUCTS_PATH}/{_segment(product_id)}", Product)

    def new_product(self, product: NewProduct) -> InvocationResult:
        return self._post(PRODUCTS_PATH, product.to_payload(), Product)

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    def get_submissions(
        self, product_id: str, submission_id: Optional[str] = None
    ) -> InvocationResult:
        path = SUBMISSIONS_PATH.format(product_id=_segment(product_id))
        if submission_id is None:
            return self._get(path, Submission, many=True)
        return self._get(f"{path}/{_segment(submission_id)}", Submission)

    def new_submission(self, product_id: str, submission: NewSubmission) -> InvocationResult:
        path = SUBMISSIONS_PATH.format(product_id=_segment(product_id))
        return self._post(path, submission.to_payload(), Submission)

    def commit_submission(self, product_id: str, submission_id: str) -> InvocationResult:
        path = SUBMISSIONS_PATH.format(product_id=_segment(product_id))
        return self._post(f"{path}/{_segment(submission_id)}/commit", {})

    def create_metadata(self, product_id: str, submission_id: str) -> InvocationResult:
        """Ask the service to regenerate driver metadata for a submission."""
        path = SUBMISSIONS_PATH.format(product_id=_segment(product_id))
        return self._post(f"{path}/{_segment(submission_id)}/createMetadata", {})

    def get_partner_submission(
        self, publisher_id: str, product_id: str, submission_id: str
    ) -> InvocationResult:
        """Translate a partner's submission into this account's product/submission."""
        path = PARTNER_SUBMISSION_PATH.format(
            publisher_id=_segment(publisher_id),
            product_id=_segment(product_id),
            submission_id=_segment(submission_id),
        )
        return self._get(path, Submission)

    # ------------------------------------------------------------------
    # Shipping labels
    # ------------------------------------------------------------------

    def get_shipping_labels(
        self,
        product_id: str,
        submission_id: str,
        shipping_label_id: Optional[str] = None,
    ) -> InvocationResult:
        path = SHIPPING_LABELS_PATH.format(
            product_id=_segment(product_id), submission_id=_segment(submission_id)
        )
        if shipping_label_id is None:
            return self._get(path, ShippingLabel, many=True)
        return self._get(
            f"{path}/{_segment(shipping_label_id)}?includeTargetingInfo=true", ShippingLabel
        )

    def new_shipping_label(
        self, product_id: str, submission_id: str, label: NewShippingLabel
    ) -> InvocationResult:
        path = SHIPPING_LABELS_PATH.format(
            product_id=_segment(product_id), submission_id=_segment(submission_id)
        )
        return self._post(path, label.to_payload(), ShippingLabel)

    # ------------------------------------------------------------------
    # Audiences
    # ------------------------------------------------------------------

    def get_audiences(self) -> InvocationResult:
        return self._get(AUDIENCES_PATH, Audience, many=True)
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.api.handler",
#   "purpose": "Endpoint methods for products, submissions, shipping labels, and audiences",
#   "sections": [
#     {"id": "devcenterclient", "name": "DevCenterClient", "anchor": "class-devcenterclient", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
