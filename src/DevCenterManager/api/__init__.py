"""Certification API models, result types, and response decoding.

Endpoint calls live in :mod:`DevCenterManager.api.handler`, which is not
imported here so that the network layer can depend on this package.
"""

from .decoder import ApiResponseDecoder, ErrorEnvelope
from .models import (
    Audience,
    CreateInput,
    CreateType,
    DownloadType,
    DriverMetadata,
    NewProduct,
    NewShippingLabel,
    NewSubmission,
    Product,
    ShippingLabel,
    Submission,
    WorkflowStatus,
)
from .results import ErrorCategory, ErrorDetails, Failure, InvocationResult, Success

__all__ = [
    "ApiResponseDecoder",
    "ErrorEnvelope",
    "Audience",
    "CreateInput",
    "CreateType",
    "DownloadType",
    "DriverMetadata",
    "NewProduct",
    "NewShippingLabel",
    "NewSubmission",
    "Product",
    "ShippingLabel",
    "Submission",
    "WorkflowStatus",
    "ErrorCategory",
    "ErrorDetails",
    "Failure",
    "InvocationResult",
    "Success",
]
