"""Endpoint routing for DevCenterClient."""

import json

import httpx
import pytest

from conftest import API_ROOT
from DevCenterManager.api.models import NewProduct, NewShippingLabel, NewSubmission


@pytest.fixture
def ok(service):
    service.queue_json(200, {"id": "1"})
    return service


def _last(service) -> httpx.Request:
    return service.api_requests[-1]


def test_base_url_joins_prefix(api_client):
    assert api_client.base_url == API_ROOT


def test_list_products(api_client, service):
    service.queue_json(200, {"value": [{"id": "1"}, {"id": "2"}]})

    result = api_client.get_products()

    assert _last(service).method == "GET"
    assert str(_last(service).url) == f"{API_ROOT}/hardware/products"
    assert len(result.items) == 2


def test_get_one_product(api_client, ok):
    api_client.get_products("13635057603184622")
    assert str(_last(ok).url) == f"{API_ROOT}/hardware/products/13635057603184622"


def test_new_product_posts_payload(api_client, ok):
    api_client.new_product(NewProduct(product_name="Widget"))

    request = _last(ok)
    assert request.method == "POST"
    assert str(request.url) == f"{API_ROOT}/hardware/products"
    assert json.loads(request.content)["productName"] == "Widget"


def test_submission_routes(api_client, ok):
    api_client.get_submissions("11")
    assert str(_last(ok).url) == f"{API_ROOT}/hardware/products/11/submissions"

    api_client.get_submissions("11", "22")
    assert str(_last(ok).url) == f"{API_ROOT}/hardware/products/11/submissions/22"

    api_client.new_submission("11", NewSubmission(name="Drop 1"))
    assert _last(ok).method == "POST"
    assert json.loads(_last(ok).content) == {"name": "Drop 1", "type": "initial"}


def test_commit_and_create_metadata_post_empty_objects(api_client, ok):
    api_client.commit_submission("11", "22")
    commit = _last(ok)
    api_client.create_metadata("11", "22")
    metadata = _last(ok)

    assert commit.method == "POST"
    assert str(commit.url) == f"{API_ROOT}/hardware/products/11/submissions/22/commit"
    assert json.loads(commit.content) == {}
    assert str(metadata.url) == f"{API_ROOT}/hardware/products/11/submissions/22/createMetadata"


def test_shipping_label_routes(api_client, ok):
    api_client.get_shipping_labels("11", "22")
    assert str(_last(ok).url) == f"{API_ROOT}/hardware/products/11/submissions/22/shippingLabels"

    api_client.get_shipping_labels("11", "22", "33")
    assert _last(ok).url.params["includeTargetingInfo"] == "true"
    assert _last(ok).url.path.endswith("/shippingLabels/33")

    api_client.new_shipping_label("11", "22", NewShippingLabel(name="L"))
    assert _last(ok).method == "POST"


def test_partner_submission_route(api_client, ok):
    api_client.get_partner_submission("pub-1", "11", "22")

    url = str(_last(ok).url)
    assert url.startswith(f"{API_ROOT}/hardware/products/relationships/")
    assert "sourcepubid=pub-1" in url
    assert "sourceproductid=11" in url
    assert "sourcesubmissionid=22" in url


def test_audiences_route(api_client, service):
    service.queue_json(200, {"value": [{"id": "a1", "name": "Preview"}]})

    result = api_client.get_audiences()

    assert str(_last(service).url) == f"{API_ROOT}/hardware/audiences"
    assert result.entity.name == "Preview"


def test_ids_are_escaped(api_client, ok):
    api_client.get_submissions("a/b", "c d")
    assert _last(ok).url.raw_path == b"/v2.0/my/hardware/products/a%2Fb/submissions/c%20d"
