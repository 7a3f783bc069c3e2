"""Transfers to and from pre-signed blob storage URLs.

Submission packages are uploaded to, and signed packages, driver metadata, and
error reports are downloaded from, shared-access-signature URLs handed out by
the API.  :class:`BlobTransferClient` is the interface the rest of the client
depends on; :class:`HttpBlobTransferClient` implements it with httpx.

Uploads use the block-blob protocol (``Put Block`` per chunk followed by one
``Put Block List``).  Downloads stream into a ``.part`` file that is renamed
into place once complete.  Progress is shown with tqdm.  Transfers are not
retried; any failure raises :class:`~DevCenterManager.errors.BlobTransferError`.
"""

from __future__ import annotations

import base64
import logging
import os
from pathlib import Path
from typing import List, Optional, Protocol, Union, runtime_checkable
from xml.sax.saxutils import escape

import httpx
from tqdm import tqdm

from .cancellation import CancellationToken
from .errors import BlobTransferError
from .network.client import build_http_client
from .network.policy import BLOB_API_VERSION, BLOB_BLOCK_SIZE
from .settings import HttpSettings

logger = logging.getLogger(__name__)

__all__ = ["BlobTransferClient", "HttpBlobTransferClient", "block_id_for"]

PathLike = Union[str, Path]


@runtime_checkable
class BlobTransferClient(Protocol):
    """Operations the client needs from blob storage."""

    def download(self, url: str, destination: PathLike) -> bool:
        ...

    def upload(self, source: PathLike, url: str) -> bool:
        ...

    def download_text(self, url: str) -> str:
        ...


def block_id_for(index: int) -> str:
    """Base64 block id; every id in one blob must have the same length."""
    return base64.b64encode(f"block-{index:08d}".encode("ascii")).decode("ascii")


def _redact(url: str) -> str:
    # SAS query strings are credentials.
    return str(httpx.URL(url).copy_with(query=None))


def _describe(exc: httpx.HTTPError) -> str:
    # httpx embeds the full URL in its messages.
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        return f"HTTP {response.status_code} {response.reason_phrase}".strip()
    return type(exc).__name__


def _content_length(response: httpx.Response) -> Optional[int]:
    try:
        return int(response.headers.get("Content-Length", "")) or None
    except ValueError:
        return None


class HttpBlobTransferClient:
    """httpx-backed :class:`BlobTransferClient` for SAS URLs."""

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        block_size: int = BLOB_BLOCK_SIZE,
        show_progress: bool = True,
        http_settings: Optional[HttpSettings] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> None:
        if block_size <= 0:
            raise ValueError("block_size must be positive")
        self._owns_client = client is None
        self._client = client or build_http_client(http_settings or HttpSettings())
        self._block_size = block_size
        self._show_progress = show_progress
        self._cancellation_token = cancellation_token

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpBlobTransferClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Download
    # ------------------------------------------------------------------

    def download(self, url: str, destination: PathLike) -> bool:
        """Stream ``url`` into ``destination``; returns ``True`` once the file is in place."""
        target = Path(destination)
        part_path = target.with_name(target.name + ".part")
        target.parent.mkdir(parents=True, exist_ok=True)
        logger.info("downloading blob", extra={"url": _redact(url), "destination": str(target)})

        try:
            with self._client.stream("GET", url) as response:
                response.raise_for_status()
                total = _content_length(response)
                with part_path.open("wb") as stream, tqdm(
                    total=total,
                    unit="B",
                    unit_scale=True,
                    desc=target.name,
                    disable=not self._show_progress,
                ) as bar:
                    for chunk in response.iter_bytes(self._block_size):
                        if not chunk:
                            continue
                        self._check_cancelled(part_path)
                        stream.write(chunk)
                        bar.update(len(chunk))
        except httpx.HTTPError as exc:
            part_path.unlink(missing_ok=True)
            raise BlobTransferError(f"Download from {_redact(url)} failed: {_describe(exc)}") from exc
        except OSError as exc:
            part_path.unlink(missing_ok=True)
            raise BlobTransferError(f"Failed to write {target}: {exc}") from exc

        try:
            os.replace(part_path, target)
        except OSError as exc:
            part_path.unlink(missing_ok=True)
            raise BlobTransferError(f"Failed to move download into {target}: {exc}") from exc
        return True

    def download_text(self, url: str) -> str:
        """Fetch a small blob (for example an error report) as text."""
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise BlobTransferError(f"Download from {_redact(url)} failed: {_describe(exc)}") from exc
        return response.text

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def upload(self, source: PathLike, url: str) -> bool:
        """Upload ``source`` to ``url`` as a block blob."""
        path = Path(source)
        if not path.is_file():
            raise BlobTransferError(f"Upload source does not exist: {path}")
        size = path.stat().st_size
        block_ids: List[str] = []
        logger.info("uploading blob", extra={"url": _redact(url), "source": str(path), "bytes": size})

        try:
            with path.open("rb") as stream, tqdm(
                total=size,
                unit="B",
                unit_scale=True,
                desc=path.name,
                disable=not self._show_progress,
            ) as bar:
                while True:
                    chunk = stream.read(self._block_size)
                    if not chunk:
                        break
                    self._check_cancelled()
                    block_id = block_id_for(len(block_ids))
                    self._put_block(url, block_id, chunk)
                    block_ids.append(block_id)
                    bar.update(len(chunk))
            self._put_block_list(url, block_ids)
        except httpx.HTTPError as exc:
            raise BlobTransferError(f"Upload to {_redact(url)} failed: {_describe(exc)}") from exc
        except OSError as exc:
            raise BlobTransferError(f"Failed to read {path}: {exc}") from exc

        logger.info("blob upload committed", extra={"blocks": len(block_ids), "bytes": size})
        return True

    def _put_block(self, url: str, block_id: str, chunk: bytes) -> None:
        target = httpx.URL(url).copy_merge_params({"comp": "block", "blockid": block_id})
        response = self._client.put(
            target,
            content=chunk,
            headers={"x-ms-version": BLOB_API_VERSION},
        )
        response.raise_for_status()

    def _put_block_list(self, url: str, block_ids: List[str]) -> None:
        latest = "".join(f"<Latest>{escape(block_id)}</Latest>" for block_id in block_ids)
        body = f'<?xml version="1.0" encoding="utf-8"?><BlockList>{latest}</BlockList>'
        target = httpx.URL(url).copy_merge_params({"comp": "blocklist"})
        response = self._client.put(
            target,
            content=body.encode("utf-8"),
            headers={
                "x-ms-version": BLOB_API_VERSION,
                "x-ms-blob-content-type": "application/octet-stream",
                "Content-Type": "application/xml",
            },
        )
        response.raise_for_status()

    def _check_cancelled(self, part_path: Optional[Path] = None) -> None:
        if self._cancellation_token is None or not self._cancellation_token.is_cancelled():
            return
        if part_path is not None:
            part_path.unlink(missing_ok=True)
        raise BlobTransferError("Blob transfer was cancelled")
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.blob",
#   "purpose": "Blob storage transfers over SAS URLs with progress reporting",
#   "sections": [
#     {"id": "blobtransferclient", "name": "BlobTransferClient", "anchor": "class-blobtransferclient", "kind": "class"},
#     {"id": "httpblobtransferclient", "name": "HttpBlobTransferClient", "anchor": "class-httpblobtransferclient", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
