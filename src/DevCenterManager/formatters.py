"""Formatting helpers for turning API entities into terminal output.

List commands render compact rich tables; single-entity commands print an
indented field dump.  Error dumps follow the fixed ``Code:``/``HttpCode:``/
``Message:`` layout that scripts grep for, and end with the run's correlation
identifier so a failure can be matched with its log file.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from rich.table import Table

from .api.models import Audience, Link, Product, ShippingLabel, Submission, WorkflowStatus
from .api.results import ErrorDetails

PRODUCT_TABLE_HEADERS: Tuple[str, ...] = ("id", "name", "shared_id", "signatures", "created")
SUBMISSION_TABLE_HEADERS: Tuple[str, ...] = ("id", "name", "type", "commit", "step", "state")
SHIPPING_LABEL_TABLE_HEADERS: Tuple[str, ...] = ("id", "name", "destination", "step", "state")
AUDIENCE_TABLE_HEADERS: Tuple[str, ...] = ("id", "name", "description")

INDENT = "               "

__all__ = [
    "PRODUCT_TABLE_HEADERS",
    "SUBMISSION_TABLE_HEADERS",
    "SHIPPING_LABEL_TABLE_HEADERS",
    "AUDIENCE_TABLE_HEADERS",
    "render_table",
    "product_rows",
    "submission_rows",
    "shipping_label_rows",
    "audience_rows",
    "format_links",
    "format_workflow_status",
    "format_product",
    "format_submission",
    "format_shipping_label",
    "format_audience",
    "format_error_details",
    "format_exception_report",
]


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ", ".join(_text(item) for item in value)
    return str(value)


def _step_state(status: Optional[WorkflowStatus]) -> Tuple[str, str]:
    if status is None:
        return ("", "")
    return (_text(status.current_step), _text(status.state))


def render_table(title: str, headers: Sequence[str], rows: Iterable[Sequence[str]]) -> Table:
    """Build a rich table with one column per header."""

    table = Table(title=title)
    for header in headers:
        table.add_column(header, overflow="fold")
    for row in rows:
        table.add_row(*row)
    return table


def product_rows(products: Iterable[Product]) -> List[Tuple[str, ...]]:
    return [
        (
            _text(product.id),
            _text(product.product_name),
            _text(product.shared_product_id),
            _text(product.requested_signatures),
            _text(product.created_date_time),
        )
        for product in products
    ]


def submission_rows(submissions: Iterable[Submission]) -> List[Tuple[str, ...]]:
    return [
        (
            _text(submission.id),
            _text(submission.name),
            _text(submission.type),
            _text(submission.commit_status),
            *_step_state(submission.workflow_status),
        )
        for submission in submissions
    ]


def shipping_label_rows(labels: Iterable[ShippingLabel]) -> List[Tuple[str, ...]]:
    return [
        (
            _text(label.id),
            _text(label.name),
            _text(label.destination),
            *_step_state(label.workflow_status),
        )
        for label in labels
    ]


def audience_rows(audiences: Iterable[Audience]) -> List[Tuple[str, ...]]:
    return [
        (_text(audience.id), _text(audience.name or audience.audience_name), _text(audience.description))
        for audience in audiences
    ]


# ============================================================================
# Detail dumps
# ============================================================================


def format_links(links: Sequence[Link]) -> List[str]:
    lines: List[str] = []
    for link in links:
        lines.append(f"{INDENT}- href:   {_text(link.href)}")
        lines.append(f"{INDENT}- method: {_text(link.method)}")
        lines.append(f"{INDENT}- rel:    {_text(link.rel)}")
    return lines


def format_workflow_status(status: Optional[WorkflowStatus]) -> List[str]:
    """Status lines printed by ``wait`` each time the step or state changes."""

    if status is None:
        return ["   - workflowStatus: (none)"]
    lines = [
        f"   - currentStep: {_text(status.current_step)}",
        f"   - state:       {_text(status.state)}",
    ]
    for message in status.messages:
        lines.append(f"{INDENT}{message}")
    if status.error_report:
        lines.append(f"   - errorReport: {status.error_report}")
    return lines


def format_product(product: Product) -> List[str]:
    lines = [
        "---- Product: " + _text(product.id),
        "         Name:         " + _text(product.product_name),
        "         Shared Id:    " + _text(product.shared_product_id),
        "         Device Type:  " + _text(product.device_type),
        "         Firmware:     " + _text(product.firmware_version),
        "         Signatures:   " + _text(product.requested_signatures),
        "         Test Sign:    " + _text(product.is_test_sign),
        "         Flight Sign:  " + _text(product.is_flight_sign),
        "         Created By:   " + _text(product.created_by),
        "         Created:      " + _text(product.created_date_time),
        "         Updated By:   " + _text(product.updated_by),
        "         Updated:      " + _text(product.updated_date_time),
        "         Announced:    " + _text(product.announcement_date),
        "         Marketing:    " + _text(product.marketing_names),
        "         Test Harness: " + _text(product.test_harness),
    ]
    for os_code, product_type in product.selected_product_types.items():
        lines.append(f"{INDENT}{os_code}: {product_type}")
    return lines


def format_submission(submission: Submission) -> List[str]:
    lines = [
        "---- Submission: " + _text(submission.id),
        "         Product Id:   " + _text(submission.product_id),
        "         Name:         " + _text(submission.name),
        "         Type:         " + _text(submission.type),
        "         Commit:       " + _text(submission.commit_status),
        "         Created By:   " + _text(submission.created_by),
        "         Created:      " + _text(submission.created_date_time),
        "         Links:",
    ]
    lines.extend(format_links(submission.links))
    lines.append("         Status:")
    lines.extend(format_workflow_status(submission.workflow_status))
    if submission.downloads is not None:
        lines.append("         Downloads:")
        for item in submission.downloads.items:
            lines.append(f"{INDENT}- {item.type}: {item.url}")
        for message in submission.downloads.messages:
            lines.append(f"{INDENT}{message}")
    return lines


def format_shipping_label(label: ShippingLabel) -> List[str]:
    lines = [
        "---- Shipping Label: " + _text(label.id),
        "         Product Id:    " + _text(label.product_id),
        "         Submission Id: " + _text(label.submission_id),
        "         Name:          " + _text(label.name),
        "         Destination:   " + _text(label.destination),
    ]
    specs = label.publishing_specifications
    if specs is not None:
        lines.append("         Go Live:       " + _text(specs.go_live_date))
        lines.append("         Visible To:    " + _text(specs.visible_to_accounts))
    if label.targeting is not None:
        lines.append("         Hardware Ids:")
        for hardware_id in label.targeting.hardware_ids:
            lines.append(
                f"{INDENT}- {_text(hardware_id.pnp_string)} "
                f"({_text(hardware_id.operating_system_code)}, {_text(hardware_id.inf_id)})"
            )
        if label.targeting.restricted_to_audiences:
            lines.append("         Audiences:     " + _text(label.targeting.restricted_to_audiences))
    lines.append("         Links:")
    lines.extend(format_links(label.links))
    lines.append("         Status:")
    lines.extend(format_workflow_status(label.workflow_status))
    return lines


def format_audience(audience: Audience) -> List[str]:
    return [
        "---- Audience: " + _text(audience.id),
        "         Name:         " + _text(audience.name or audience.audience_name),
        "         Description:  " + _text(audience.description),
    ]


# ============================================================================
# Errors
# ============================================================================


def format_error_details(error: Optional[ErrorDetails], correlation_id: Optional[str] = None) -> List[str]:
    """Dump an error in the fixed layout, including any validation entries and trace."""

    lines: List[str] = ["ERROR (error details)"]
    if error is not None:
        lines.append("Code:     " + error.code)
        lines.append("HttpCode: " + _text(error.http_error_code))
        lines.append("Message:  " + error.message)
        if error.validation_errors:
            lines.append("ValidationErrors:")
            for entry in error.validation_errors:
                lines.append("   Target:  " + _text(entry.target))
                lines.append("   Message: " + _text(entry.message))
    if correlation_id:
        lines.append("Correlation Id: " + correlation_id)
    trace = error.trace if error is not None else None
    if trace is not None:
        lines.append("Trace:")
        lines.append("   Request Id: " + _text(trace.request_id))
        lines.append("   Method:     " + _text(trace.method))
        lines.append("   Url:        " + _text(trace.url))
        lines.append("   Content:    " + _text(trace.content))
    return lines


def format_exception_report(
    exc: BaseException, command: str, section: str, correlation_id: Optional[str] = None
) -> List[str]:
    """Framed report for an exception that ended a command."""

    cause = exc.__cause__ or exc.__context__
    rule = "=" * 60
    return [
        "",
        rule,
        "\tDevCenterManager Exception Log",
        "Command:         " + command,
        "Section:         " + section,
        "Type:            " + type(exc).__name__,
        "Message:         " + str(exc),
        "Inner Exception: " + (str(cause) if cause is not None else ""),
        "Correlation Id:  " + (correlation_id or ""),
        rule,
        "",
    ]
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.formatters",
#   "purpose": "Table rows, entity dumps, and error dumps for CLI output",
#   "sections": [
#     {"id": "tables", "name": "Tables", "anchor": "function-render_table", "kind": "function"},
#     {"id": "dumps", "name": "Detail dumps", "anchor": "DMP", "kind": "api"},
#     {"id": "errors", "name": "Errors", "anchor": "ERR", "kind": "api"},
#     {"id": "exceptions", "name": "format_exception_report", "anchor": "function-format_exception_report", "kind": "function"}
#   ]
# }
# === /NAVMAP ===
