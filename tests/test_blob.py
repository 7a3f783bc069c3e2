"""Tests for block-blob uploads and streamed downloads over SAS URLs."""

from __future__ import annotations

from typing import List

import httpx
import pytest

from DevCenterManager.blob import BlobTransferClient, HttpBlobTransferClient, block_id_for
from DevCenterManager.cancellation import CancellationToken
from DevCenterManager.errors import BlobTransferError

SAS_URL = "https://account.blob.test/container/package.hlkx?sv=2019&sig=secret"


class Recorder:
    def __init__(self, responder=None):
        self.requests: List[httpx.Request] = []
        self.responder = responder or (lambda request: httpx.Response(201))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        return self.responder(request)


def _blob_client(recorder, **kwargs):
    client = httpx.Client(transport=httpx.MockTransport(recorder))
    return HttpBlobTransferClient(client, show_progress=False, **kwargs)


def test_http_client_satisfies_protocol():
    assert isinstance(_blob_client(Recorder()), BlobTransferClient)


def test_upload_puts_blocks_then_block_list(tmp_path):
    source = tmp_path / "package.hlkx"
    source.write_bytes(b"abcdefghij")
    recorder = Recorder()

    assert _blob_client(recorder, block_size=4).upload(source, SAS_URL) is True

    blocks, commit = recorder.requests[:-1], recorder.requests[-1]
    assert [request.content for request in blocks] == [b"abcd", b"efgh", b"ij"]
    assert all(request.method == "PUT" for request in recorder.requests)
    assert all(request.url.params["comp"] == "block" for request in blocks)
    assert all(request.url.params["sig"] == "secret" for request in recorder.requests)
    assert [request.url.params["blockid"] for request in blocks] == [
        block_id_for(0),
        block_id_for(1),
        block_id_for(2),
    ]
    assert all(request.headers["x-ms-version"] for request in recorder.requests)

    assert commit.url.params["comp"] == "blocklist"
    body = commit.content.decode()
    assert body.startswith('<?xml version="1.0" encoding="utf-8"?><BlockList>')
    assert body.count("<Latest>") == 3
    assert f"<Latest>{block_id_for(2)}</Latest>" in body


def test_upload_missing_source_raises(tmp_path):
    with pytest.raises(BlobTransferError, match="does not exist"):
        _blob_client(Recorder()).upload(tmp_path / "missing.hlkx", SAS_URL)


def test_upload_http_error_raises(tmp_path):
    source = tmp_path / "package.hlkx"
    source.write_bytes(b"data")
    recorder = Recorder(lambda request: httpx.Response(403, text="AuthenticationFailed"))

    with pytest.raises(BlobTransferError) as excinfo:
        _blob_client(recorder).upload(source, SAS_URL)

    assert "secret" not in str(excinfo.value)


def test_upload_cancelled(tmp_path):
    source = tmp_path / "package.hlkx"
    source.write_bytes(b"data")
    token = CancellationToken()
    token.cancel()
    recorder = Recorder()

    with pytest.raises(BlobTransferError, match="cancelled"):
        _blob_client(recorder, cancellation_token=token).upload(source, SAS_URL)
    assert recorder.requests == []


def test_download_writes_file_without_part_leftover(tmp_path):
    recorder = Recorder(lambda request: httpx.Response(200, content=b"signed-bytes"))
    target = tmp_path / "out" / "signed.zip"

    assert _blob_client(recorder, block_size=5).download(SAS_URL, target) is True

    assert target.read_bytes() == b"signed-bytes"
    assert not (tmp_path / "out" / "signed.zip.part").exists()
    assert recorder.requests[0].method == "GET"


def test_download_tolerates_malformed_content_length(tmp_path):
    recorder = Recorder(
        lambda request: httpx.Response(200, headers={"Content-Length": "abc"}, content=b"signed-bytes")
    )
    target = tmp_path / "signed.zip"

    assert _blob_client(recorder).download(SAS_URL, target) is True
    assert target.read_bytes() == b"signed-bytes"


def test_download_http_error_leaves_nothing(tmp_path):
    recorder = Recorder(lambda request: httpx.Response(404, text="BlobNotFound"))
    target = tmp_path / "dl" / "signed.zip"

    with pytest.raises(BlobTransferError):
        _blob_client(recorder).download(SAS_URL, target)

    assert not target.exists()
    assert list((tmp_path / "dl").iterdir()) == []


def test_download_text():
    recorder = Recorder(lambda request: httpx.Response(200, text="error: missing signature"))
    assert _blob_client(recorder).download_text(SAS_URL) == "error: missing signature"


def test_download_text_failure_raises():
    recorder = Recorder(lambda request: httpx.Response(500))
    with pytest.raises(BlobTransferError):
        _blob_client(recorder).download_text(SAS_URL)


def test_block_ids_share_length():
    ids = [block_id_for(index) for index in (0, 9, 10, 12345)]
    assert len({len(block_id) for block_id in ids}) == 1
    assert len(set(ids)) == 4


def test_block_size_must_be_positive():
    with pytest.raises(ValueError):
        HttpBlobTransferClient(httpx.Client(), block_size=0)
