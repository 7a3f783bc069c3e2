# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager",
#   "purpose": "Package initialization for DevCenterManager",
#   "sections": [
#     {
#       "id": "getattr",
#       "name": "__getattr__",
#       "anchor": "function-getattr",
#       "kind": "function"
#     },
#     {
#       "id": "dir",
#       "name": "__dir__",
#       "anchor": "function-dir",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Public API for the hardware certification API client.

This facade exposes the endpoint client, the resilient invoker it is built
on, the polling waiter used by wait operations, and the blob transfer client.
Exports are imported lazily so the CLI can read ``__version__`` without
pulling in the HTTP stack.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any, Dict, Tuple

__version__ = "1.0.0"

_EXPORT_MAP: Dict[str, Tuple[str, str]] = {
    "DevCenterClient": ("DevCenterManager.api.handler", "DevCenterClient"),
    "ApiResponseDecoder": ("DevCenterManager.api.decoder", "ApiResponseDecoder"),
    "Success": ("DevCenterManager.api.results", "Success"),
    "Failure": ("DevCenterManager.api.results", "Failure"),
    "ErrorDetails": ("DevCenterManager.api.results", "ErrorDetails"),
    "ResilientHttpInvoker": ("DevCenterManager.network.invoker", "ResilientHttpInvoker"),
    "TokenProvider": ("DevCenterManager.network.auth", "TokenProvider"),
    "clone_request": ("DevCenterManager.network.cloning", "clone_request"),
    "PollingWaiter": ("DevCenterManager.polling", "PollingWaiter"),
    "PollState": ("DevCenterManager.polling", "PollState"),
    "BlobTransferClient": ("DevCenterManager.blob", "BlobTransferClient"),
    "HttpBlobTransferClient": ("DevCenterManager.blob", "HttpBlobTransferClient"),
    "CancellationToken": ("DevCenterManager.cancellation", "CancellationToken"),
    "Credentials": ("DevCenterManager.settings", "Credentials"),
    "Settings": ("DevCenterManager.settings", "Settings"),
    "load_credentials": ("DevCenterManager.settings", "load_credentials"),
    "load_settings": ("DevCenterManager.settings", "load_settings"),
    "DevCenterError": ("DevCenterManager.errors", "DevCenterError"),
}

__all__ = ["__version__", *_EXPORT_MAP]

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .api.decoder import ApiResponseDecoder
    from .api.handler import DevCenterClient
    from .api.results import ErrorDetails, Failure, Success
    from .blob import BlobTransferClient, HttpBlobTransferClient
    from .cancellation import CancellationToken
    from .errors import DevCenterError
    from .network.auth import TokenProvider
    from .network.cloning import clone_request
    from .network.invoker import ResilientHttpInvoker
    from .polling import PollingWaiter, PollState
    from .settings import Credentials, Settings, load_credentials, load_settings


def __getattr__(name: str) -> Any:
    """Lazily import exports on first access."""

    target = _EXPORT_MAP.get(name)
    if target is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    module_name, attribute = target
    value = getattr(import_module(module_name), attribute)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    """Expose lazily-populated attributes in ``dir()`` results."""

    return sorted(set(globals()) | set(__all__))
