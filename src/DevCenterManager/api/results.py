"""Typed outcomes of an API invocation.

Every call through :class:`~DevCenterManager.network.invoker.ResilientHttpInvoker`
ends in either :class:`Success` or :class:`Failure`.  Remote rejections are
data, not exceptions; callers that prefer raising can use
:meth:`Failure.to_exception`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Generic, Optional, Tuple, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from DevCenterManager.errors import (
    ApiError,
    AuthError,
    DevCenterError,
    RetriesExhaustedError,
    TransportError,
)

__all__ = [
    "ErrorCategory",
    "ValidationEntry",
    "ErrorTrace",
    "ErrorDetails",
    "Success",
    "Failure",
    "InvocationResult",
    "RETRIES_EXHAUSTED_CODE",
]

T = TypeVar("T")

RETRIES_EXHAUSTED_CODE = "retriesExhausted"


def _optional_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


class ErrorCategory(str, Enum):
    API = "api"
    AUTH = "auth"
    TRANSPORT = "transport"
    RETRIES_EXHAUSTED = "retries_exhausted"


class ValidationEntry(BaseModel):
    """Field-level rejection reported by the service."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    target: Optional[str] = None
    message: Optional[str] = None

    @field_validator("target", "message", mode="before")
    @classmethod
    def stringify(cls, value: Any) -> Any:
        return _optional_text(value)


class ErrorTrace(BaseModel):
    """Request trace echoed back in some error envelopes."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    request_id: Optional[str] = Field(default=None, alias="requestId")
    method: Optional[str] = None
    url: Optional[str] = None
    content: Optional[Any] = None

    @field_validator("request_id", "method", "url", mode="before")
    @classmethod
    def stringify(cls, value: Any) -> Any:
        return _optional_text(value)


class ErrorDetails(BaseModel):
    """Normalized error information carried by :class:`Failure`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    code: str = ""
    message: str = ""
    http_error_code: Optional[int] = Field(default=None, alias="httpErrorCode")
    validation_errors: Tuple[ValidationEntry, ...] = Field(default=(), alias="validationErrors")
    trace: Optional[ErrorTrace] = None
    category: ErrorCategory = ErrorCategory.API

    @field_validator("code", "message", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else str(value)

    @field_validator("http_error_code", mode="before")
    @classmethod
    def lenient_status(cls, value: Any) -> Any:
        try:
            return None if value is None else int(value)
        except (TypeError, ValueError):
            return None

    @field_validator("validation_errors", mode="before")
    @classmethod
    def none_to_tuple(cls, value: Any) -> Any:
        if value is None or not isinstance(value, (list, tuple)):
            return ()
        return tuple(entry for entry in value if isinstance(entry, (dict, ValidationEntry)))

    @field_validator("trace", mode="before")
    @classmethod
    def drop_malformed_trace(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, ErrorTrace)) else None

    def to_exception(self) -> DevCenterError:
        """Map onto the exception taxonomy in :mod:`DevCenterManager.errors`."""
        if self.category is ErrorCategory.AUTH:
            return AuthError(self.message, status_code=self.http_error_code)
        if self.category is ErrorCategory.TRANSPORT:
            return TransportError(self.message)
        if self.category is ErrorCategory.RETRIES_EXHAUSTED:
            return RetriesExhaustedError(self.message)
        return ApiError(
            self.code,
            self.message,
            http_status_code=self.http_error_code,
            validation_errors=self.validation_errors,
        )


@dataclass(frozen=True)
class Success(Generic[T]):
    """2xx outcome; ``items`` is empty when the service returned no entity."""

    status_code: int
    raw_body: str = ""
    items: Tuple[T, ...] = ()
    links: Tuple[Any, ...] = ()

    ok: ClassVar[bool] = True

    @property
    def entity(self) -> Optional[T]:
        return self.items[0] if self.items else None


@dataclass(frozen=True)
class Failure:
    """Non-success outcome with the decoded (or synthesized) error."""

    error: ErrorDetails

    ok: ClassVar[bool] = False

    @property
    def status_code(self) -> Optional[int]:
        return self.error.http_error_code

    @property
    def is_rate_limited(self) -> bool:
        return self.error.http_error_code == 429

    def to_exception(self) -> DevCenterError:
        return self.error.to_exception()


InvocationResult = Union[Success[Any], Failure]
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.api.results",
#   "purpose": "Success and Failure outcomes plus the normalized error details they carry",
#   "sections": [
#     {"id": "errordetails", "name": "ErrorDetails", "anchor": "class-errordetails", "kind": "class"},
#     {"id": "success", "name": "Success", "anchor": "class-success", "kind": "class"},
#     {"id": "failure", "name": "Failure", "anchor": "class-failure", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
