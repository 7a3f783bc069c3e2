# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.cli_main",
#   "purpose": "Typer CLI for products, submissions, shipping labels, and blob transfers",
#   "sections": [
#     {"id": "clicontext", "name": "CliContext", "anchor": "class-clicontext", "kind": "class"},
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"},
#     {"id": "create", "name": "create", "anchor": "function-create", "kind": "function"},
#     {"id": "commit", "name": "commit", "anchor": "function-commit", "kind": "function"},
#     {"id": "list", "name": "list_entities", "anchor": "function-list-entities", "kind": "function"},
#     {"id": "upload", "name": "upload", "anchor": "function-upload", "kind": "function"},
#     {"id": "download", "name": "download", "anchor": "function-download", "kind": "function"},
#     {"id": "metadata", "name": "metadata", "anchor": "function-metadata", "kind": "function"},
#     {"id": "wait", "name": "wait", "anchor": "function-wait", "kind": "function"},
#     {"id": "audience", "name": "audience", "anchor": "function-audience", "kind": "function"},
#     {"id": "create-metadata", "name": "create_metadata", "anchor": "function-create-metadata", "kind": "function"},
#     {"id": "translate", "name": "translate", "anchor": "function-translate", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Command-line interface for the hardware certification API.

Every command loads settings and credentials, performs one operation through
:class:`~DevCenterManager.api.handler.DevCenterClient`, prints the outcome,
and exits with ``0`` or a negative :class:`~DevCenterManager.exit_codes.ErrorCodes`
value naming the failure point.  A 429 from any call exits with ``-429``.

Example:
    $ devcenter list product
    $ devcenter --server 1 create new_submission.json --product-id 13635057603184622
    $ devcenter wait --product-id 1363... --submission-id 1152... --wait-metadata
"""

import logging
import tempfile
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

import httpx
import typer
from pydantic import ValidationError
from rich.console import Console

from DevCenterManager import __version__
from DevCenterManager.api.handler import DevCenterClient
from DevCenterManager.api.models import (
    CreateInput,
    CreateType,
    DownloadType,
    DriverMetadata,
    NewShippingLabel,
    RecipientSpecifications,
    Submission,
)
from DevCenterManager.api.results import ErrorDetails, Failure
from DevCenterManager.blob import BlobTransferClient, HttpBlobTransferClient
from DevCenterManager.cancellation import CancellationToken, Deadline
from DevCenterManager.errors import (
    BlobTransferError,
    ConfigurationError,
    DevCenterError,
    InvocationCancelled,
    PollingTimeoutError,
)
from DevCenterManager.exit_codes import ErrorCodes
from DevCenterManager.formatters import (
    AUDIENCE_TABLE_HEADERS,
    PRODUCT_TABLE_HEADERS,
    SHIPPING_LABEL_TABLE_HEADERS,
    SUBMISSION_TABLE_HEADERS,
    audience_rows,
    format_error_details,
    format_exception_report,
    format_product,
    format_shipping_label,
    format_submission,
    format_workflow_status,
    product_rows,
    render_table,
    shipping_label_rows,
    submission_rows,
)
from DevCenterManager.logging_config import generate_correlation_id, setup_logging
from DevCenterManager.network.retry import AttemptOutcome
from DevCenterManager.polling import (
    PollingWaiter,
    PollResult,
    PollState,
    shipping_label_evaluator,
    submission_evaluator,
)
from DevCenterManager.settings import (
    Credentials,
    CredentialSource,
    Settings,
    get_default_settings,
    load_credentials,
    load_settings,
    select_credentials,
)

logger = logging.getLogger(__name__)

ENTITY_NOT_FOUND = "entityNotFound"
REQUEST_INVALID_FOR_CURRENT_STATE = "requestInvalidForCurrentState"
ONLY_PENDING_CAN_BE_COMMITTED = "Only pending submissions can be committed."
ANOTHER_PARTNER = "anotherPartner"
GO_LIVE_DELAY = timedelta(days=7)

LIST_KINDS = ("product", "submission", "shippinglabel", "partnersubmission")

# Global console for output
_console = Console(highlight=False)


# ============================================================================
# Client factories (replaced in tests)
# ============================================================================


def create_client(
    credentials: Credentials,
    settings: Settings,
    *,
    on_retry=None,
    cancellation_token: Optional[CancellationToken] = None,
) -> DevCenterClient:
    return DevCenterClient.from_credentials(
        credentials,
        settings,
        on_retry=on_retry,
        cancellation_token=cancellation_token,
    )


def create_blob_client(
    settings: Settings, *, cancellation_token: Optional[CancellationToken] = None
) -> BlobTransferClient:
    return HttpBlobTransferClient(
        http_settings=settings.http, cancellation_token=cancellation_token
    )


# ============================================================================
# Context
# ============================================================================


class CliContext:
    """State shared by the commands of one invocation.

    Holds the resolved settings, the console, the run's correlation id, and
    lazily built API and blob clients so commands that fail argument checks
    never touch credentials.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        verbosity: int = 0,
        server: Optional[int] = None,
        creds: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.settings = settings
        self.verbosity = verbosity
        self.server = server
        self.creds = creds
        self.correlation_id = correlation_id or generate_correlation_id()
        self.console = _console
        self.cancellation_token = CancellationToken()
        self._client: Optional[DevCenterClient] = None
        self._blob_client: Optional[BlobTransferClient] = None

    def echo(self, *lines: str) -> None:
        for line in lines:
            self.console.print(line, markup=False)

    def log_info(self, message: str) -> None:
        """Print message if verbosity >= 1."""
        if self.verbosity >= 1:
            self.console.print(f"[cyan]INFO: {message}[/cyan]")

    def log_debug(self, message: str) -> None:
        """Print message if verbosity >= 2."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]DEBUG: {message}[/dim]")

    def report_retry(self, attempt: int, outcome: AttemptOutcome, delay: float) -> None:
        reason = outcome.reason.value if outcome.reason is not None else "unknown"
        self.log_info(f"attempt {attempt} {reason} ({outcome.describe()}), retrying in {delay:.1f}s")

    def client(self) -> DevCenterClient:
        """API client for the selected server; exits -4/-5 when credentials are unusable."""
        if self._client is None:
            try:
                source = CredentialSource.parse(self.creds)
            except ConfigurationError as exc:
                self.echo(f"> ERROR: {exc}")
                raise typer.Exit(int(ErrorCodes.COMMAND_LINE_OPTION_PARSING_FAILED)) from exc
            try:
                entries = load_credentials(source, path=self.settings.credentials_file)
            except ConfigurationError as exc:
                self.echo(f"> ERROR: {exc}")
                raise typer.Exit(int(ErrorCodes.NO_DEV_CENTER_CREDENTIALS_FOUND)) from exc
            try:
                credentials = select_credentials(
                    entries, server=self.server, loop_servers=self.settings.loop_servers
                )
            except ConfigurationError as exc:
                self.echo(f"> ERROR: {exc}")
                raise typer.Exit(int(ErrorCodes.OVERRIDE_SERVER_INVALID)) from exc
            self.log_debug(f"Server: {credentials.base_url}")
            self._client = create_client(
                credentials,
                self.settings,
                on_retry=self.report_retry,
                cancellation_token=self.cancellation_token,
            )
        return self._client

    def blob_client(self) -> BlobTransferClient:
        if self._blob_client is None:
            self._blob_client = create_blob_client(
                self.settings, cancellation_token=self.cancellation_token
            )
        return self._blob_client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
        close_blob = getattr(self._blob_client, "close", None)
        if close_blob is not None:
            close_blob()
        self._blob_client = None

    def dump_error(self, error: Optional[ErrorDetails]) -> None:
        self.echo(*format_error_details(error, self.correlation_id))

    def failed(self, what: str, result: Failure, code: ErrorCodes) -> typer.Exit:
        """Print a failed call and return the exit to raise (``-429`` when rate limited)."""
        if result.is_rate_limited:
            self.echo(f"{what} experienced a HTTP 429 Too Many Requests response.")
            return typer.Exit(int(ErrorCodes.HTTP_429_RATE_LIMIT_EXCEEDED))
        self.dump_error(result.error)
        return typer.Exit(int(code))


# Create main Typer app
app = typer.Typer(
    name="devcenter",
    help="DevCenterManager CLI - Manage hardware certification products, submissions, and shipping labels",
    no_args_is_help=True,
)

# Global context variable (per-invocation)
_context: Optional[CliContext] = None


def get_context() -> CliContext:
    """Get the current CLI context.

    Raises:
        RuntimeError: If context hasn't been initialized
    """
    if _context is None:
        raise RuntimeError("CLI context not initialized")
    return _context


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"devcenter {__version__}")
        raise typer.Exit(0)


@app.callback(invoke_without_command=False)
def main(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="DEVCENTER_CONFIG",
        help="Path to settings file (YAML or JSON)",
    ),
    verbosity: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    ),
    server: Optional[int] = typer.Option(
        None,
        "--server",
        help="Index of the server entry in the credentials file",
    ),
    creds: Optional[str] = typer.Option(
        None,
        "--creds",
        help="Credential source: envonly, fileonly, envthenfile (default)",
    ),
    timeout: Optional[int] = typer.Option(
        None,
        "--timeout",
        "-t",
        help="HTTP request timeout in seconds",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """DevCenterManager CLI.

    Global options apply to all subcommands and go before the subcommand:

        devcenter --server 1 -v list submission --product-id 1363...
    """
    global _context

    try:
        settings = load_settings(config) if config is not None else get_default_settings()
    except ConfigurationError as exc:
        _console.print(f"> ERROR: {exc}", markup=False)
        raise typer.Exit(int(ErrorCodes.COMMAND_LINE_OPTION_PARSING_FAILED)) from exc

    if timeout is not None:
        if timeout > 0:
            settings = settings.model_copy(
                update={"http": settings.http.model_copy(update={"timeout": float(timeout)})}
            )
            _console.print(f"> HttpTimeout: {timeout} seconds", markup=False)
        else:
            _console.print(f"> HttpTimeout: Invalid value {timeout}, using default timeout", markup=False)

    console_level = None
    if verbosity >= 2:
        console_level = logging.DEBUG
    elif verbosity == 1:
        console_level = logging.INFO

    _context = CliContext(settings, verbosity=verbosity, server=server, creds=creds)
    setup_logging(
        settings.logging,
        correlation_id=_context.correlation_id,
        console_level=console_level,
    )
    _context.log_debug(f"Config file: {config}")
    _context.log_debug(f"Correlation Id: {_context.correlation_id}")


@contextmanager
def _guard(ctx: CliContext, command: str, section: str = "") -> Iterator[None]:
    """Map exceptions escaping a command onto exit codes and release clients."""
    try:
        yield
    except typer.Exit:
        raise
    except KeyboardInterrupt as exc:
        ctx.cancellation_token.cancel()
        ctx.echo("> Cancelled")
        raise typer.Exit(int(ErrorCodes.OPERATION_CANCELLED)) from exc
    except InvocationCancelled as exc:
        ctx.echo(f"> Cancelled: {exc}")
        raise typer.Exit(int(ErrorCodes.OPERATION_CANCELLED)) from exc
    except PollingTimeoutError as exc:
        ctx.echo(f"> ERROR: {exc}")
        raise typer.Exit(int(ErrorCodes.WAIT_TIMED_OUT)) from exc
    except BlobTransferError as exc:
        ctx.echo(*format_exception_report(exc, command, section, ctx.correlation_id))
        raise typer.Exit(int(ErrorCodes.BLOB_TRANSFER_FAILED)) from exc
    except (httpx.HTTPError, DevCenterError) as exc:
        logger.error("request failed", extra={"command": command, "error": str(exc)})
        ctx.echo(*format_exception_report(exc, command, section, ctx.correlation_id))
        raise typer.Exit(int(ErrorCodes.PARTNER_CENTER_HTTP_EXCEPTION)) from exc
    except Exception as exc:
        logger.exception("unhandled exception", extra={"command": command})
        ctx.echo(*format_exception_report(exc, command, section, ctx.correlation_id))
        raise typer.Exit(int(ErrorCodes.UNHANDLED_EXCEPTION)) from exc
    finally:
        ctx.close()


def _require(ctx: CliContext, checks: Sequence[Tuple[Optional[str], str, ErrorCodes]]) -> None:
    """Report every missing value; exit with the code of the last one."""
    code: Optional[ErrorCodes] = None
    for value, name, missing_code in checks:
        if value is None:
            ctx.echo(f"> ERROR: {name} not specified")
            code = missing_code
    if code is not None:
        raise typer.Exit(int(code))


def _fetch_submission(
    ctx: CliContext, what: str, product_id: str, submission_id: str, code: ErrorCodes
) -> Submission:
    ctx.echo("> Fetch Submission Info")
    result = ctx.client().get_submissions(product_id, submission_id)
    if not result.ok:
        raise ctx.failed(what, result, code)
    submission = result.entity
    if submission is None:
        ctx.echo("> ERROR: submission not returned")
        raise typer.Exit(int(code))
    return submission


def _output_file(path: Optional[Path], default_name: str) -> Path:
    target = path if path is not None else Path.cwd()
    if target.is_dir():
        target = target / default_name
    return target


_PRODUCT_ID = typer.Option(None, "--product-id", "--productid", help="Product id")
_SUBMISSION_ID = typer.Option(None, "--submission-id", "--submissionid", help="Submission id")
_SHIPPING_LABEL_ID = typer.Option(
    None, "--shipping-label-id", "--shippinglabelid", help="Shipping label id"
)
_PUBLISHER_ID = typer.Option(None, "--publisher-id", "--publisherid", help="Partner publisher id")


# ============================================================================
# Commands
# ============================================================================


@app.command()
def create(
    input_file: Path = typer.Argument(..., help="JSON file describing what to create"),
    product_id: Optional[str] = _PRODUCT_ID,
    submission_id: Optional[str] = _SUBMISSION_ID,
    partner_id: Optional[str] = typer.Option(
        None,
        "--partner-id",
        "--partnerid",
        help="Share the shipping label with this partner publisher instead of Windows Update",
    ),
) -> None:
    """Create a product, submission, or shipping label from a JSON file."""
    ctx = get_context()
    ctx.echo("> Create Option")

    if not input_file.is_file():
        ctx.echo(f"> ERROR: create input file does not exist - {input_file}")
        raise typer.Exit(int(ErrorCodes.CREATE_INPUT_FILE_DOES_NOT_EXIST))
    try:
        create_input = CreateInput.model_validate_json(input_file.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        ctx.echo(f"> ERROR: create input file is invalid - {input_file}", str(exc))
        raise typer.Exit(int(ErrorCodes.COMMAND_LINE_OPTION_PARSING_FAILED)) from exc

    if create_input.create_type is CreateType.PRODUCT:
        _create_product(ctx, create_input)
    elif create_input.create_type is CreateType.SUBMISSION:
        _create_submission(ctx, create_input, product_id)
    else:
        _create_shipping_label(ctx, create_input, product_id, submission_id, partner_id)


def _missing_section(ctx: CliContext, name: str) -> typer.Exit:
    ctx.echo(f"> ERROR: create input has no {name} section")
    return typer.Exit(int(ErrorCodes.COMMAND_LINE_OPTION_PARSING_FAILED))


def _create_product(ctx: CliContext, create_input: CreateInput) -> None:
    if create_input.create_product is None:
        raise _missing_section(ctx, "createProduct")
    with _guard(ctx, "create", "new_product"):
        result = ctx.client().new_product(create_input.create_product)
        if not result.ok:
            raise ctx.failed("create new_product", result, ErrorCodes.NEW_PRODUCT_API_FAILED)
        if result.entity is not None:
            ctx.echo(*format_product(result.entity))


def _create_submission(
    ctx: CliContext, create_input: CreateInput, product_id: Optional[str]
) -> None:
    _require(ctx, [(product_id, "productid", ErrorCodes.NEW_SUBMISSION_PRODUCT_ID_MISSING)])
    if create_input.create_submission is None:
        raise _missing_section(ctx, "createSubmission")
    with _guard(ctx, "create", "new_submission"):
        result = ctx.client().new_submission(product_id, create_input.create_submission)
        if not result.ok:
            raise ctx.failed("create new_submission", result, ErrorCodes.NEW_SUBMISSION_API_FAILED)
        if result.entity is not None:
            ctx.echo(*format_submission(result.entity))


def _create_shipping_label(
    ctx: CliContext,
    create_input: CreateInput,
    product_id: Optional[str],
    submission_id: Optional[str],
    partner_id: Optional[str],
) -> None:
    _require(
        ctx,
        [
            (product_id, "productid", ErrorCodes.NEW_SHIPPING_LABEL_PRODUCT_ID_MISSING),
            (submission_id, "submissionid", ErrorCodes.NEW_SHIPPING_LABEL_SUBMISSION_ID_MISSING),
        ],
    )
    label = create_input.create_shipping_label or NewShippingLabel()

    with _guard(ctx, "create", "new_shipping_label"):
        ctx.echo("> Get Driver Metadata")
        submission = _fetch_submission(
            ctx,
            "create get_submissions",
            product_id,
            submission_id,
            ErrorCodes.NEW_SHIPPING_LABEL_GET_SUBMISSION_API_FAILED,
        )
        item = submission.find_download(DownloadType.DRIVER_METADATA)
        if item is None:
            ctx.echo("> ERROR: No Metadata available for this submission")
            raise typer.Exit(int(ErrorCodes.NEW_SHIPPING_LABEL_GET_SUBMISSION_API_FAILED))
        ctx.echo(f"> driverMetadata Url: {item.url}")
        with tempfile.TemporaryDirectory() as scratch:
            metadata_path = Path(scratch) / "driverMetadata.json"
            ctx.blob_client().download(item.url, metadata_path)
            try:
                metadata = DriverMetadata.model_validate_json(
                    metadata_path.read_text(encoding="utf-8")
                )
            except ValidationError as exc:
                ctx.echo(f"> ERROR: driver metadata could not be parsed: {exc}")
                raise typer.Exit(
                    int(ErrorCodes.NEW_SHIPPING_LABEL_GET_SUBMISSION_API_FAILED)
                ) from exc

        update = {
            "targeting": label.targeting.model_copy(
                update={"hardware_ids": metadata.hardware_ids()}
            ),
            "publishing_specifications": label.publishing_specifications.model_copy(
                update={"go_live_date": datetime.now(timezone.utc) + GO_LIVE_DELAY}
            ),
        }
        if partner_id is not None:
            ctx.echo(f"> Shipping to Partner (not Windows Update): {partner_id}")
            update["destination"] = ANOTHER_PARTNER
            update["recipient_specifications"] = RecipientSpecifications(
                enforce_chid_targeting=False, receiver_publisher_id=partner_id
            )
        label = label.model_copy(update=update)

        ctx.echo("> Creating Shipping Label")
        result = ctx.client().new_shipping_label(product_id, submission_id, label)
        if not result.ok:
            raise ctx.failed(
                "create new_shipping_label", result, ErrorCodes.NEW_SHIPPING_LABEL_CREATE_API_FAILED
            )
        if result.entity is not None:
            ctx.echo(*format_shipping_label(result.entity))


@app.command()
def commit(
    product_id: Optional[str] = _PRODUCT_ID,
    submission_id: Optional[str] = _SUBMISSION_ID,
) -> None:
    """Commit a submission so the service starts processing it."""
    ctx = get_context()
    ctx.echo("> Commit Option")
    _require(
        ctx,
        [
            (product_id, "productid", ErrorCodes.COMMIT_PRODUCT_ID_MISSING),
            (submission_id, "submissionid", ErrorCodes.COMMIT_SUBMISSION_ID_MISSING),
        ],
    )
    with _guard(ctx, "commit", "commit_submission"):
        ctx.echo("> Sending Commit")
        result = ctx.client().commit_submission(product_id, submission_id)
        if not result.ok:
            error = result.error
            if (
                not result.is_rate_limited
                and error.code == REQUEST_INVALID_FOR_CURRENT_STATE
                and error.message == ONLY_PENDING_CAN_BE_COMMITTED
            ):
                ctx.echo(f"commit request invalid for current state, {ONLY_PENDING_CAN_BE_COMMITTED}")
                raise ctx.failed(
                    "commit", result, ErrorCodes.COMMIT_REQUEST_INVALID_FOR_CURRENT_STATE
                )
            raise ctx.failed("commit commit_submission", result, ErrorCodes.COMMIT_API_FAILED)
        ctx.echo("> Commit OK")


@app.command("list")
def list_entities(
    kind: str = typer.Argument(..., help="product, submission, shippinglabel, or partnersubmission"),
    product_id: Optional[str] = _PRODUCT_ID,
    submission_id: Optional[str] = _SUBMISSION_ID,
    shipping_label_id: Optional[str] = _SHIPPING_LABEL_ID,
    publisher_id: Optional[str] = _PUBLISHER_ID,
) -> None:
    """List products, submissions, shipping labels, or a partner's submission."""
    ctx = get_context()
    normalized = kind.strip().lower()
    if normalized.endswith("s") and normalized[:-1] in LIST_KINDS:
        normalized = normalized[:-1]
    if normalized not in LIST_KINDS:
        ctx.echo(f"> ERROR: list option invalid - {kind}")
        raise typer.Exit(int(ErrorCodes.LIST_INVALID_OPTION))
    ctx.echo(f"> List Option {normalized}")

    if normalized == "product":
        with _guard(ctx, "list", "get_products"):
            result = ctx.client().get_products(product_id)
            if not result.ok:
                raise ctx.failed("list get_products", result, ErrorCodes.LIST_GET_PRODUCTS_API_FAILED)
            if product_id is None:
                ctx.console.print(
                    render_table("Products", PRODUCT_TABLE_HEADERS, product_rows(result.items))
                )
            else:
                for product in result.items:
                    ctx.echo(*format_product(product))

    elif normalized == "submission":
        _require(ctx, [(product_id, "productid", ErrorCodes.LIST_GET_SUBMISSION_API_FAILED)])
        with _guard(ctx, "list", "get_submissions"):
            result = ctx.client().get_submissions(product_id, submission_id)
            if not result.ok:
                if not result.is_rate_limited and result.error.code == ENTITY_NOT_FOUND:
                    ctx.echo("list get_submissions entity not found, try translate option.")
                    raise ctx.failed("list", result, ErrorCodes.SUBMISSION_ENTITY_NOT_FOUND)
                raise ctx.failed(
                    "list get_submissions", result, ErrorCodes.LIST_GET_SUBMISSION_API_FAILED
                )
            if submission_id is None:
                ctx.console.print(
                    render_table("Submissions", SUBMISSION_TABLE_HEADERS, submission_rows(result.items))
                )
            else:
                for submission in result.items:
                    ctx.echo(*format_submission(submission))

    elif normalized == "shippinglabel":
        _require(
            ctx,
            [
                (product_id, "productid", ErrorCodes.LIST_GET_SHIPPING_LABEL_API_FAILED),
                (submission_id, "submissionid", ErrorCodes.LIST_GET_SHIPPING_LABEL_API_FAILED),
            ],
        )
        with _guard(ctx, "list", "get_shipping_labels"):
            result = ctx.client().get_shipping_labels(product_id, submission_id, shipping_label_id)
            if not result.ok:
                raise ctx.failed(
                    "list get_shipping_labels", result, ErrorCodes.LIST_GET_SHIPPING_LABEL_API_FAILED
                )
            if shipping_label_id is None:
                ctx.console.print(
                    render_table(
                        "Shipping Labels", SHIPPING_LABEL_TABLE_HEADERS, shipping_label_rows(result.items)
                    )
                )
            else:
                for label in result.items:
                    ctx.echo(*format_shipping_label(label))

    else:
        _require(
            ctx,
            [
                (publisher_id, "publisherid", ErrorCodes.LIST_GET_PARTNER_SUBMISSION_API_FAILED),
                (product_id, "productid", ErrorCodes.LIST_GET_PARTNER_SUBMISSION_API_FAILED),
                (submission_id, "submissionid", ErrorCodes.LIST_GET_PARTNER_SUBMISSION_API_FAILED),
            ],
        )
        with _guard(ctx, "list", "get_partner_submission"):
            result = ctx.client().get_partner_submission(publisher_id, product_id, submission_id)
            if not result.ok:
                raise ctx.failed(
                    "list get_partner_submission",
                    result,
                    ErrorCodes.LIST_GET_PARTNER_SUBMISSION_API_FAILED,
                )
            for submission in result.items:
                ctx.echo(*format_submission(submission))


@app.command()
def upload(
    package: Path = typer.Argument(..., help="Submission package (.hlkx) to upload"),
    product_id: Optional[str] = _PRODUCT_ID,
    submission_id: Optional[str] = _SUBMISSION_ID,
) -> None:
    """Upload a package to a submission's initial-package location."""
    ctx = get_context()
    ctx.echo("> Upload Option")
    _require(
        ctx,
        [
            (product_id, "productid", ErrorCodes.UPLOAD_PRODUCT_ID_MISSING),
            (submission_id, "submissionid", ErrorCodes.UPLOAD_SUBMISSION_ID_MISSING),
        ],
    )
    with _guard(ctx, "upload", "get_submissions"):
        submission = _fetch_submission(
            ctx, "upload get_submissions", product_id, submission_id,
            ErrorCodes.UPLOAD_GET_SUBMISSION_API_FAILED,
        )
        item = submission.find_download(DownloadType.INITIAL_PACKAGE)
        if item is None:
            ctx.echo("> ERROR: No upload location available for this submission")
            raise typer.Exit(int(ErrorCodes.UPLOAD_GET_SUBMISSION_API_FAILED))
        ctx.echo(f"> initialPackage Url: {item.url}")
        ctx.echo("> Uploading Submission Package")
        ctx.blob_client().upload(package, item.url)
        ctx.echo("> Upload OK")


@app.command()
def download(
    path: Optional[Path] = typer.Argument(
        None, help="Output file, or directory to place it in (default: current directory)"
    ),
    product_id: Optional[str] = _PRODUCT_ID,
    submission_id: Optional[str] = _SUBMISSION_ID,
) -> None:
    """Download a submission's signed package."""
    ctx = get_context()
    target = _output_file(path, f"{submission_id or 'submission'}-signed.zip")
    ctx.echo(f"> Download Option {target}")

    checks: List[Tuple[Optional[str], str, ErrorCodes]] = []
    if not target.parent.is_dir():
        ctx.echo(f"> ERROR: Output path does not exist: {target.parent}")
        checks.append((None, "output path", ErrorCodes.DOWNLOAD_OUTPUT_PATH_NOT_EXIST))
    if target.exists():
        ctx.echo(f"> ERROR: Output file exists already: {target}")
        checks.append((None, "new output file", ErrorCodes.DOWNLOAD_OUTPUT_FILE_ALREADY_EXISTS))
    checks.append((product_id, "productid", ErrorCodes.DOWNLOAD_PRODUCT_ID_MISSING))
    checks.append((submission_id, "submissionid", ErrorCodes.DOWNLOAD_SUBMISSION_ID_MISSING))
    _require(ctx, checks)

    with _guard(ctx, "download", "get_submissions"):
        submission = _fetch_submission(
            ctx, "download get_submissions", product_id, submission_id,
            ErrorCodes.DOWNLOAD_GET_SUBMISSION_API_FAILED,
        )
        item = submission.find_download(DownloadType.SIGNED_PACKAGE)
        if item is None:
            ctx.echo("> ERROR: No signed package available for this submission")
            raise typer.Exit(int(ErrorCodes.DOWNLOAD_GET_SUBMISSION_API_FAILED))
        ctx.echo(f"> signedPackage Url: {item.url}")
        ctx.blob_client().download(item.url, target)
        ctx.echo(f"> Downloaded {target}")


@app.command()
def metadata(
    path: Optional[Path] = typer.Argument(
        None, help="Output file, or directory to place it in (default: current directory)"
    ),
    product_id: Optional[str] = _PRODUCT_ID,
    submission_id: Optional[str] = _SUBMISSION_ID,
) -> None:
    """Download a submission's driver metadata."""
    ctx = get_context()
    target = _output_file(path, f"{submission_id or 'submission'}-driverMetadata.json")
    ctx.echo(f"> Metadata Download Option {target}")
    _require(
        ctx,
        [
            (product_id, "productid", ErrorCodes.METADATA_PRODUCT_ID_MISSING),
            (submission_id, "submissionid", ErrorCodes.METADATA_SUBMISSION_ID_MISSING),
        ],
    )
    with _guard(ctx, "metadata", "get_submissions"):
        submission = _fetch_submission(
            ctx, "metadata get_submissions", product_id, submission_id,
            ErrorCodes.METADATA_GET_SUBMISSION_API_FAILED,
        )
        item = submission.find_download(DownloadType.DRIVER_METADATA)
        if item is None:
            ctx.echo("> ERROR: No Metadata available for this submission")
            raise typer.Exit(int(ErrorCodes.METADATA_GET_SUBMISSION_API_FAILED))
        ctx.echo(f"> driverMetadata Url: {item.url}")
        ctx.blob_client().download(item.url, target)
        ctx.echo(f"> Downloaded {target}")


@app.command()
def wait(
    product_id: Optional[str] = _PRODUCT_ID,
    submission_id: Optional[str] = _SUBMISSION_ID,
    shipping_label_id: Optional[str] = _SHIPPING_LABEL_ID,
    wait_metadata: bool = typer.Option(
        False,
        "--wait-metadata",
        "--waitmetadata",
        help="For submissions, also wait for driver metadata",
    ),
    deadline: Optional[float] = typer.Option(
        None,
        "--deadline",
        help="Give up after this many seconds (default: settings polling.deadline)",
    ),
) -> None:
    """Wait for a submission, or a shipping label when its id is given, to finish."""
    ctx = get_context()
    ctx.echo("> Wait Option")
    _require(
        ctx,
        [
            (product_id, "productid", ErrorCodes.WAIT_PRODUCT_ID_MISSING),
            (submission_id, "submissionid", ErrorCodes.WAIT_SUBMISSION_ID_MISSING),
        ],
    )
    polling = ctx.settings.polling
    limit = Deadline.optional(deadline if deadline is not None else polling.deadline)

    def show_status(entity, status) -> None:
        ctx.echo(*format_workflow_status(status))
        downloads = getattr(entity, "downloads", None)
        if downloads is not None:
            for item in downloads.items:
                ctx.echo(f"> {item.type} Url: {item.url}")

    def show_report(url: str, report: str) -> None:
        ctx.echo("> Error report:", report)

    with _guard(ctx, "wait", "poll"):
        client = ctx.client()
        if shipping_label_id is None:
            fetch = lambda: client.get_submissions(product_id, submission_id)  # noqa: E731
            evaluate = submission_evaluator(require_metadata=wait_metadata)
            fetch_failed = ErrorCodes.WAIT_GET_SUBMISSION_API_FAILED
            entity_failed = ErrorCodes.WAIT_SUBMISSION_FAILED_IN_HWDC
            ready = ("> Submission Ready", "> Submission Ready with Metadata")
        else:
            fetch = lambda: client.get_shipping_labels(  # noqa: E731
                product_id, submission_id, shipping_label_id
            )
            evaluate = shipping_label_evaluator()
            fetch_failed = ErrorCodes.WAIT_GET_SHIPPING_LABEL_API_FAILED
            entity_failed = ErrorCodes.WAIT_SHIPPING_LABEL_FAILED_IN_HWDC
            ready = ("> Shipping Label Ready", "> Shipping Label for Sharing Ready")

        waiter = PollingWaiter(
            fetch,
            evaluate,
            interval=polling.interval,
            rate_limit_delay=polling.rate_limit_delay,
            on_status=show_status,
            blob_client=ctx.blob_client(),
            on_error_report=show_report,
            cancellation_token=ctx.cancellation_token,
            deadline=limit,
        )
        outcome: PollResult = waiter.wait()

        if outcome.state is PollState.FAILED:
            if outcome.error is not None:
                ctx.dump_error(outcome.error)
                raise typer.Exit(int(fetch_failed))
            raise typer.Exit(int(entity_failed))
        ctx.echo(ready[1] if outcome.state is PollState.READY_WITH_EXTRA else ready[0])
        ctx.echo("> Done")


@app.command()
def audience() -> None:
    """List the audiences shipping labels can be restricted to."""
    ctx = get_context()
    ctx.echo("> Audience Option")
    with _guard(ctx, "audience", "get_audiences"):
        result = ctx.client().get_audiences()
        if not result.ok:
            raise ctx.failed("audience get_audiences", result, ErrorCodes.AUDIENCE_GET_AUDIENCE_API_FAILED)
        ctx.console.print(render_table("Audiences", AUDIENCE_TABLE_HEADERS, audience_rows(result.items)))


@app.command("create-metadata")
def create_metadata(
    product_id: Optional[str] = _PRODUCT_ID,
    submission_id: Optional[str] = _SUBMISSION_ID,
) -> None:
    """Request driver metadata generation for an older submission."""
    ctx = get_context()
    ctx.echo("> Create MetaData Option")
    _require(
        ctx,
        [
            (product_id, "productid", ErrorCodes.CREATEMETADATA_PRODUCT_ID_MISSING),
            (submission_id, "submissionid", ErrorCodes.CREATEMETADATA_SUBMISSION_ID_MISSING),
        ],
    )
    with _guard(ctx, "create-metadata", "create_metadata"):
        result = ctx.client().create_metadata(product_id, submission_id)
        if not result.ok:
            raise ctx.failed("create-metadata", result, ErrorCodes.CREATEMETADATA_API_FAILED)
        ctx.echo("> Create MetaData OK")


@app.command()
def translate(
    publisher_id: Optional[str] = _PUBLISHER_ID,
    product_id: Optional[str] = _PRODUCT_ID,
    submission_id: Optional[str] = _SUBMISSION_ID,
) -> None:
    """Translate a partner's publisher/product/submission ids into this account's ids."""
    ctx = get_context()
    ctx.echo("> Translate Option")
    _require(
        ctx,
        [
            (publisher_id, "publisherid", ErrorCodes.TRANSLATE_PUBLISHER_ID_MISSING),
            (product_id, "productid", ErrorCodes.TRANSLATE_PRODUCT_ID_MISSING),
            (submission_id, "submissionid", ErrorCodes.TRANSLATE_SUBMISSION_ID_MISSING),
        ],
    )
    with _guard(ctx, "translate", "get_partner_submission"):
        result = ctx.client().get_partner_submission(publisher_id, product_id, submission_id)
        if not result.ok:
            raise ctx.failed("translate", result, ErrorCodes.TRANSLATE_API_FAILED)
        ctx.echo("> Translate OK")
        for submission in result.items:
            ctx.echo(*format_submission(submission))


def run() -> None:
    """Console-script entry point."""
    app()


__all__ = [
    "app",
    "CliContext",
    "get_context",
    "main",
    "create_client",
    "create_blob_client",
    "run",
]
