"""Tests for per-attempt request cloning."""

import httpx

from DevCenterManager.network.cloning import clone_request


def test_clone_matches_method_url_and_body():
    original = httpx.Request(
        "POST",
        "https://manage.devcenter.test/v2.0/my/hardware/products?x=1",
        json={"productName": "Widget"},
    )

    clone = clone_request(original)

    assert clone is not original
    assert clone.method == original.method
    assert clone.url == original.url
    assert clone.content == original.content
    assert clone.headers["Content-Type"] == "application/json"


def test_clone_keeps_repeated_headers_in_order():
    original = httpx.Request(
        "GET",
        "https://manage.devcenter.test/x",
        headers=[("X-Trace", "a"), ("X-Trace", "b"), ("Accept", "application/json")],
    )

    clone = clone_request(original)

    assert clone.headers.get_list("X-Trace") == ["a", "b"]


def test_clone_headers_are_independent():
    original = httpx.Request("GET", "https://manage.devcenter.test/x")
    clone = clone_request(original)

    clone.headers["Authorization"] = "Bearer tok-1"

    assert "Authorization" not in original.headers


def test_clone_of_bodyless_request_has_empty_content():
    clone = clone_request(httpx.Request("GET", "https://manage.devcenter.test/x"))
    assert clone.content == b""


def test_each_clone_can_be_sent():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.read())
        return httpx.Response(200)

    template = httpx.Request("POST", "https://manage.devcenter.test/x", content=b"payload")
    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        client.send(clone_request(template))
        client.send(clone_request(template))

    assert seen == [b"payload", b"payload"]
