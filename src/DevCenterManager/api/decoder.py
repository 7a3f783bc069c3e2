"""Turn raw API responses into :class:`Success` or :class:`Failure`.

Error bodies are decoded from the service envelope
``{"error": {...}, "statusCode": ..., "message": ...}``.  When the body is not
JSON, or carries neither an ``error`` object nor top-level status fields, the
error is synthesized from the HTTP status line and the raw text.  The decoded
``http_error_code`` always reflects the transport status so callers can branch
on 429 and 502 without trusting the body.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Type, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from DevCenterManager.api.models import Page
from DevCenterManager.api.results import ErrorDetails, Failure, InvocationResult, Success

logger = logging.getLogger(__name__)

__all__ = ["ApiResponseDecoder", "ErrorEnvelope", "INVALID_RESPONSE_CODE"]

INVALID_RESPONSE_CODE = "invalidResponse"


class ErrorEnvelope(BaseModel):
    """Outer shape of a non-success response body."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    error: Optional[ErrorDetails] = None
    status_code: Optional[str] = Field(default=None, alias="statusCode")
    message: Optional[str] = None

    @field_validator("status_code", "message", mode="before")
    @classmethod
    def stringify_status(cls, value: Any) -> Any:
        return None if value is None else str(value)


def _as_text(body: Union[str, bytes, None]) -> str:
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


class ApiResponseDecoder:
    """Stateless decoder shared by every endpoint call."""

    def decode(
        self,
        status_code: int,
        body: Union[str, bytes, None],
        *,
        reason: str = "",
        model: Optional[Type[BaseModel]] = None,
        many: bool = False,
    ) -> InvocationResult:
        text = _as_text(body)
        if 200 <= status_code < 300:
            return self._decode_success(status_code, text, model=model, many=many)
        return Failure(self.decode_error(status_code, text, reason=reason))

    def decode_response(
        self,
        response: httpx.Response,
        *,
        model: Optional[Type[BaseModel]] = None,
        many: bool = False,
    ) -> InvocationResult:
        return self.decode(
            response.status_code,
            response.content,
            reason=response.reason_phrase,
            model=model,
            many=many,
        )

    def decode_error(
        self, status_code: int, body: Union[str, bytes, None], *, reason: str = ""
    ) -> ErrorDetails:
        text = _as_text(body)
        try:
            envelope = ErrorEnvelope.model_validate_json(text)
        except ValidationError:
            return self._synthesize(status_code, text, reason)

        if envelope.error is not None:
            return envelope.error.model_copy(update={"http_error_code": status_code})
        if envelope.status_code is not None or envelope.message is not None:
            return ErrorDetails(
                code=envelope.status_code or str(status_code),
                message=envelope.message or "",
                http_error_code=status_code,
            )
        return self._synthesize(status_code, text, reason)

    @staticmethod
    def _synthesize(status_code: int, text: str, reason: str) -> ErrorDetails:
        status_line = f"{status_code} {reason}".strip()
        return ErrorDetails(
            code=status_line,
            message=text if text.strip() else (reason or status_line),
            http_error_code=status_code,
        )

    def _decode_success(
        self,
        status_code: int,
        text: str,
        *,
        model: Optional[Type[BaseModel]],
        many: bool,
    ) -> InvocationResult:
        if model is None or text.strip() in ("", "null"):
            return Success(status_code=status_code, raw_body=text)

        try:
            if many:
                page = Page.model_validate_json(text)
                items = tuple(model.model_validate(item) for item in page.value)
                return Success(
                    status_code=status_code,
                    raw_body=text,
                    items=items,
                    links=tuple(page.links),
                )
            entity = model.model_validate_json(text)
        except ValidationError as exc:
            logger.warning(
                "response body did not match the expected shape",
                extra={"model": model.__name__, "status_code": status_code, "errors": exc.error_count()},
            )
            return Failure(
                ErrorDetails(
                    code=INVALID_RESPONSE_CODE,
                    message=f"Could not decode {model.__name__}: {exc}",
                    http_error_code=status_code,
                )
            )

        # A 2xx with an entity lacking its identifier means "nothing there".
        if "id" in model.model_fields and not getattr(entity, "id", None):
            return Success(status_code=status_code, raw_body=text)
        return Success(status_code=status_code, raw_body=text, items=(entity,))
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.api.decoder",
#   "purpose": "Decode raw responses into typed Success/Failure results with synthesized errors",
#   "sections": [
#     {"id": "errorenvelope", "name": "ErrorEnvelope", "anchor": "class-errorenvelope", "kind": "class"},
#     {"id": "apiresponsedecoder", "name": "ApiResponseDecoder", "anchor": "class-apiresponsedecoder", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
