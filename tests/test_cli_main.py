"""End-to-end tests for the devcenter CLI against the scripted service."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Tuple

import httpx
import pytest
from typer.testing import CliRunner

from DevCenterManager import __version__, cli_main
from DevCenterManager.api.handler import DevCenterClient
from DevCenterManager.exit_codes import ErrorCodes
from DevCenterManager.settings import get_default_settings

runner = CliRunner()

SUBMISSION_URL = "https://manage.devcenter.test/v2.0/my/hardware/products/11/submissions/22"


class FakeBlobClient:
    def __init__(self) -> None:
        self.blobs: Dict[str, bytes] = {}
        self.uploads: List[Tuple[Path, str]] = []

    def download(self, url, destination):
        Path(destination).write_bytes(self.blobs[url])
        return True

    def upload(self, source, url):
        self.uploads.append((Path(source), url))
        return True

    def download_text(self, url):
        return self.blobs[url].decode()


@pytest.fixture
def blob():
    return FakeBlobClient()


@pytest.fixture
def cli_service(monkeypatch, service, blob):
    """Route the CLI's clients to the scripted service and the in-memory blob store."""

    monkeypatch.setenv("DEVCENTER_CLIENT_ID", "client-1")
    monkeypatch.setenv("DEVCENTER_CLIENT_SECRET", "s3cr3t-value")
    monkeypatch.setenv("DEVCENTER_TENANT_ID", "tenant-1")
    monkeypatch.setenv("DEVCENTER_URL", "https://manage.devcenter.test")
    monkeypatch.setenv("DEVCENTER_URL_PREFIX", "v2.0/my")
    monkeypatch.setenv("DEVCENTER_POLL_INTERVAL", "0")

    def create_client(credentials, settings, *, on_retry=None, cancellation_token=None):
        return DevCenterClient.from_credentials(
            credentials,
            settings,
            transport=service.transport,
            on_retry=on_retry,
            sleep=lambda _: None,
            cancellation_token=cancellation_token,
        )

    monkeypatch.setattr(cli_main, "create_client", create_client)
    monkeypatch.setattr(cli_main, "create_blob_client", lambda settings, **kwargs: blob)
    return service


def _submission(**overrides):
    payload = {
        "id": "22",
        "productId": "11",
        "name": "Drop 1",
        "type": "initial",
        "commitStatus": "committed",
        "workflowStatus": {"currentStep": "preProcess", "state": "inProgress"},
        "downloads": {"items": []},
    }
    payload.update(overrides)
    return payload


IDS = ["--product-id", "11", "--submission-id", "22"]


# ---------------------------------------------------------------------------
# Argument handling
# ---------------------------------------------------------------------------


def test_version():
    result = runner.invoke(cli_main.app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_invalid_list_kind():
    result = runner.invoke(cli_main.app, ["list", "widgets"])

    assert result.exit_code == ErrorCodes.LIST_INVALID_OPTION
    assert "list option invalid - widgets" in result.output


def test_commit_reports_every_missing_id():
    result = runner.invoke(cli_main.app, ["commit"])

    assert result.exit_code == ErrorCodes.COMMIT_SUBMISSION_ID_MISSING
    assert "> ERROR: productid not specified" in result.output
    assert "> ERROR: submissionid not specified" in result.output


def test_commit_missing_product_id():
    result = runner.invoke(cli_main.app, ["commit", "--submissionid", "22"])
    assert result.exit_code == ErrorCodes.COMMIT_PRODUCT_ID_MISSING


def test_no_credentials():
    result = runner.invoke(cli_main.app, ["commit", *IDS])

    assert result.exit_code == ErrorCodes.NO_DEV_CENTER_CREDENTIALS_FOUND
    assert "Unable to get Dev Center credentials" in result.output


def test_unknown_credential_source():
    result = runner.invoke(cli_main.app, ["--creds", "aad", "commit", *IDS])
    assert result.exit_code == ErrorCodes.COMMAND_LINE_OPTION_PARSING_FAILED


def test_server_index_out_of_range(cli_service):
    result = runner.invoke(cli_main.app, ["--server", "3", "commit", *IDS])

    assert result.exit_code == ErrorCodes.OVERRIDE_SERVER_INVALID
    assert "Server index invalid - 3" in result.output


def test_invalid_config_file(tmp_path):
    config = tmp_path / "broken.yaml"
    config.write_text("http: [", encoding="utf-8")

    result = runner.invoke(cli_main.app, ["--config", str(config), "audience"])

    assert result.exit_code == ErrorCodes.COMMAND_LINE_OPTION_PARSING_FAILED


def test_create_input_file_missing(tmp_path):
    result = runner.invoke(cli_main.app, ["create", str(tmp_path / "absent.json")])
    assert result.exit_code == ErrorCodes.CREATE_INPUT_FILE_DOES_NOT_EXIST


def test_create_submission_requires_product_id(tmp_path):
    create_file = tmp_path / "submission.json"
    create_file.write_text(json.dumps({"createType": "submission", "createSubmission": {"name": "x"}}))

    result = runner.invoke(cli_main.app, ["create", str(create_file)])

    assert result.exit_code == ErrorCodes.NEW_SUBMISSION_PRODUCT_ID_MISSING


# ---------------------------------------------------------------------------
# Commit
# ---------------------------------------------------------------------------


def test_commit_ok(cli_service):
    cli_service.queue(httpx.Response(202))

    result = runner.invoke(cli_main.app, ["commit", *IDS])

    assert result.exit_code == 0, result.output
    assert "> Commit OK" in result.output
    assert str(cli_service.api_requests[0].url) == f"{SUBMISSION_URL}/commit"


def test_commit_only_pending(cli_service):
    cli_service.queue_json(
        400,
        {
            "error": {
                "code": "requestInvalidForCurrentState",
                "message": "Only pending submissions can be committed.",
            }
        },
    )

    result = runner.invoke(cli_main.app, ["commit", *IDS])

    assert result.exit_code == ErrorCodes.COMMIT_REQUEST_INVALID_FOR_CURRENT_STATE
    assert "Code:     requestInvalidForCurrentState" in result.output


def test_commit_other_failure(cli_service):
    cli_service.queue_json(404, {"error": {"code": "entityNotFound", "message": "no such"}})

    result = runner.invoke(cli_main.app, ["commit", *IDS])

    assert result.exit_code == ErrorCodes.COMMIT_API_FAILED
    assert "HttpCode: 404" in result.output
    assert "Correlation Id: " in result.output


def test_rate_limited_call_exits_429(cli_service):
    cli_service.queue_json(429, {"statusCode": 429, "message": "Rate limit is exceeded."})

    result = runner.invoke(cli_main.app, ["commit", *IDS])

    assert result.exit_code == -429
    assert "HTTP 429 Too Many Requests" in result.output


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------


def test_list_products_table(cli_service):
    cli_service.queue_json(200, {"value": [{"id": "11", "productName": "Widget"}]})

    result = runner.invoke(cli_main.app, ["list", "products"])

    assert result.exit_code == 0, result.output
    assert "Widget" in result.output
    assert "Products" in result.output


def test_list_one_product_dump(cli_service):
    cli_service.queue_json(200, {"id": "11", "productName": "Widget"})

    result = runner.invoke(cli_main.app, ["list", "product", "--productid", "11"])

    assert result.exit_code == 0
    assert "---- Product: 11" in result.output


def test_list_submission_not_found(cli_service):
    cli_service.queue_json(404, {"error": {"code": "entityNotFound", "message": "gone"}})

    result = runner.invoke(cli_main.app, ["list", "submission", *IDS])

    assert result.exit_code == ErrorCodes.SUBMISSION_ENTITY_NOT_FOUND
    assert "try translate option" in result.output


def test_list_submission_requires_product(cli_service):
    result = runner.invoke(cli_main.app, ["list", "submission"])
    assert result.exit_code == ErrorCodes.LIST_GET_SUBMISSION_API_FAILED


# ---------------------------------------------------------------------------
# Wait
# ---------------------------------------------------------------------------


def test_wait_for_submission(cli_service):
    signed = {"items": [{"type": "signedPackage", "url": "https://blob.test/signed"}]}
    cli_service.queue_json(200, _submission())
    cli_service.queue_json(200, _submission())
    cli_service.queue_json(
        200,
        _submission(
            workflowStatus={"currentStep": "finalizeIngestion", "state": "completed"},
            downloads=signed,
        ),
    )

    result = runner.invoke(cli_main.app, ["wait", *IDS])

    assert result.exit_code == 0, result.output
    assert result.output.count("   - currentStep: preProcess") == 1
    assert "   - currentStep: finalizeIngestion" in result.output
    assert "> signedPackage Url: https://blob.test/signed" in result.output
    assert "> Submission Ready" in result.output
    assert "> Done" in result.output
    assert len(cli_service.api_requests) == 3


def test_wait_for_submission_failure_shows_report(cli_service, blob):
    blob.blobs["https://blob.test/report"] = b"signature check failed"
    cli_service.queue_json(
        200,
        _submission(
            workflowStatus={
                "currentStep": "preProcess",
                "state": "failed",
                "errorReport": "https://blob.test/report",
            }
        ),
    )

    result = runner.invoke(cli_main.app, ["wait", *IDS])

    assert result.exit_code == ErrorCodes.WAIT_SUBMISSION_FAILED_IN_HWDC
    assert "signature check failed" in result.output


def test_wait_for_shipping_label_sharing(cli_service):
    cli_service.queue_json(
        200, {"id": "33", "workflowStatus": {"currentStep": "finalizeSharing", "state": "completed"}}
    )

    result = runner.invoke(cli_main.app, ["wait", *IDS, "--shipping-label-id", "33"])

    assert result.exit_code == 0, result.output
    assert "> Shipping Label for Sharing Ready" in result.output


def test_wait_fetch_failure(cli_service):
    cli_service.queue_json(500, {"error": {"code": "internal", "message": "oops"}})

    result = runner.invoke(cli_main.app, ["wait", *IDS])

    assert result.exit_code == ErrorCodes.WAIT_GET_SUBMISSION_API_FAILED
    assert len(cli_service.api_requests) == 10


def test_wait_deadline(cli_service):
    cli_service.queue_json(200, _submission())

    result = runner.invoke(cli_main.app, ["wait", *IDS, "--deadline", "0.000001"])

    assert result.exit_code == ErrorCodes.WAIT_TIMED_OUT


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------


def test_download_refuses_existing_file(cli_service, tmp_path):
    (tmp_path / "22-signed.zip").write_bytes(b"old")

    result = runner.invoke(cli_main.app, ["download", *IDS])

    assert result.exit_code == ErrorCodes.DOWNLOAD_OUTPUT_FILE_ALREADY_EXISTS
    assert cli_service.api_requests == []


def test_download_missing_directory(tmp_path):
    result = runner.invoke(cli_main.app, ["download", str(tmp_path / "nope" / "out.zip"), *IDS])
    assert result.exit_code == ErrorCodes.DOWNLOAD_OUTPUT_PATH_NOT_EXIST


def test_download_signed_package(cli_service, blob, tmp_path):
    blob.blobs["https://blob.test/signed"] = b"PK-signed"
    cli_service.queue_json(
        200,
        _submission(downloads={"items": [{"type": "signedPackage", "url": "https://blob.test/signed"}]}),
    )

    result = runner.invoke(cli_main.app, ["download", str(tmp_path), *IDS])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "22-signed.zip").read_bytes() == b"PK-signed"


def test_download_without_signed_package(cli_service):
    cli_service.queue_json(200, _submission())

    result = runner.invoke(cli_main.app, ["download", *IDS])

    assert result.exit_code == ErrorCodes.DOWNLOAD_GET_SUBMISSION_API_FAILED


def test_metadata_download(cli_service, blob, tmp_path):
    blob.blobs["https://blob.test/meta"] = b"{}"
    cli_service.queue_json(
        200,
        _submission(downloads={"items": [{"type": "driverMetadata", "url": "https://blob.test/meta"}]}),
    )

    result = runner.invoke(cli_main.app, ["metadata", str(tmp_path / "meta.json"), *IDS])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "meta.json").read_bytes() == b"{}"


def test_upload_package(cli_service, blob, tmp_path):
    package = tmp_path / "driver.hlkx"
    package.write_bytes(b"hlkx")
    cli_service.queue_json(
        200,
        _submission(downloads={"items": [{"type": "initialPackage", "url": "https://blob.test/initial"}]}),
    )

    result = runner.invoke(cli_main.app, ["upload", str(package), *IDS])

    assert result.exit_code == 0, result.output
    assert "> Upload OK" in result.output
    assert blob.uploads == [(package, "https://blob.test/initial")]


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


def test_create_product(cli_service, tmp_path):
    create_file = tmp_path / "product.json"
    create_file.write_text(
        json.dumps({"createType": "product", "createProduct": {"productName": "Widget"}})
    )
    cli_service.queue_json(200, {"id": "11", "productName": "Widget"})

    result = runner.invoke(cli_main.app, ["create", str(create_file)])

    assert result.exit_code == 0, result.output
    assert json.loads(cli_service.api_requests[0].content)["productName"] == "Widget"
    assert "---- Product: 11" in result.output


def test_create_shipping_label_for_partner(cli_service, blob, tmp_path):
    blob.blobs["https://blob.test/meta"] = json.dumps(
        {
            "BundleInfoMap": {
                "b1": {"InfInfoMap": {"w.inf": {"OSPnPInfoMap": {"WIN10": {"PCI\\VEN_1": {}}}}}}
            }
        }
    ).encode()
    create_file = tmp_path / "label.json"
    create_file.write_text(
        json.dumps(
            {
                "createType": 0,
                "createShippingLabel": {
                    "name": "Label 1",
                    "destination": "windowsUpdate",
                    "publishingSpecifications": {"isDisclosureRestricted": True},
                },
            }
        )
    )
    cli_service.queue_json(
        200,
        _submission(downloads={"items": [{"type": "driverMetadata", "url": "https://blob.test/meta"}]}),
    )
    cli_service.queue_json(200, {"id": "33", "name": "Label 1"})

    result = runner.invoke(cli_main.app, ["create", str(create_file), *IDS, "--partner-id", "pub-9"])

    assert result.exit_code == 0, result.output
    post = cli_service.api_requests[1]
    body = json.loads(post.content)
    assert post.method == "POST"
    assert post.url.path.endswith("/submissions/22/shippingLabels")
    assert body["destination"] == "anotherPartner"
    assert body["recipientSpecifications"] == {
        "enforceChidTargeting": False,
        "receiverPublisherId": "pub-9",
    }
    assert body["targeting"]["hardwareIds"] == [
        {"bundleId": "b1", "infId": "w.inf", "operatingSystemCode": "WIN10", "pnpString": "pci\\ven_1"}
    ]
    assert body["publishingSpecifications"]["isDisclosureRestricted"] is True
    assert body["publishingSpecifications"]["goLiveDate"]


def test_create_shipping_label_without_metadata(cli_service, tmp_path):
    create_file = tmp_path / "label.json"
    create_file.write_text(json.dumps({"createType": "shippingLabel"}))
    cli_service.queue_json(200, _submission())

    result = runner.invoke(cli_main.app, ["create", str(create_file), *IDS])

    assert result.exit_code == ErrorCodes.NEW_SHIPPING_LABEL_GET_SUBMISSION_API_FAILED


# ---------------------------------------------------------------------------
# Other commands
# ---------------------------------------------------------------------------


def test_audience_table(cli_service):
    cli_service.queue_json(200, {"value": [{"id": "a1", "name": "Preview Ring"}]})

    result = runner.invoke(cli_main.app, ["audience"])

    assert result.exit_code == 0, result.output
    assert "Preview Ring" in result.output


def test_commands_share_cached_default_settings(cli_service, monkeypatch):
    cli_service.queue_json(200, {"value": []})
    seen = []
    create_client = cli_main.create_client

    def recording_create_client(credentials, settings, **kwargs):
        seen.append(settings)
        return create_client(credentials, settings, **kwargs)

    monkeypatch.setattr(cli_main, "create_client", recording_create_client)

    result = runner.invoke(cli_main.app, ["audience"])

    assert result.exit_code == 0, result.output
    assert seen and seen[0] is get_default_settings()
    assert seen[0].polling.interval == 0.0


def test_create_metadata(cli_service):
    cli_service.queue(httpx.Response(202))

    result = runner.invoke(cli_main.app, ["create-metadata", *IDS])

    assert result.exit_code == 0, result.output
    assert cli_service.api_requests[0].url.path.endswith("/submissions/22/createMetadata")


def test_translate(cli_service):
    cli_service.queue_json(200, {"id": "99", "productId": "88", "name": "Partner drop"})

    result = runner.invoke(cli_main.app, ["translate", "--publisher-id", "pub-1", *IDS])

    assert result.exit_code == 0, result.output
    assert "> Translate OK" in result.output
    assert "---- Submission: 99" in result.output


def test_translate_requires_publisher():
    result = runner.invoke(cli_main.app, ["translate", *IDS])
    assert result.exit_code == ErrorCodes.TRANSLATE_PUBLISHER_ID_MISSING


def test_transport_failure_after_retries(cli_service):
    cli_service.queue(httpx.ConnectError("refused"))

    result = runner.invoke(cli_main.app, ["-v", "create-metadata", *IDS])

    assert result.exit_code == ErrorCodes.CREATEMETADATA_API_FAILED
    assert "retrying" in result.output
    assert "Code:     retriesExhausted" in result.output
