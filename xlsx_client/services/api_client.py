"""HTTP adapter for the row-deletion service."""
from __future__ import annotations

import logging
import mimetypes
from typing import Any, Optional, Sequence

import httpx

from ..errors import ServerError, TransportError
from ..models import FileEntry, ProcessResult

logger = logging.getLogger(__name__)


class HTTPAPIClient:
    """
    HTTP client adapter for the upload/process/download/remove calls.

    Implements IJobAPIClient protocol. Errors are not retried: transport
    failures raise TransportError, error statuses raise ServerError.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def upload(self, files: Sequence[FileEntry]) -> str:
        """POST /upload as multipart, one "files" field per entry."""
        form = [
            (
                "files",
                (
                    entry.name,
                    entry.payload,
                    mimetypes.guess_type(entry.name)[0] or "application/octet-stream",
                ),
            )
            for entry in files
        ]
        response = await self._request("POST", "/upload", files=form)
        job_id = response.text
        if not job_id:
            raise ServerError("Upload returned an empty job id", response.status_code)
        return job_id

    async def process(self, job_id: str, num_rows_to_delete: int) -> ProcessResult:
        response = await self._request(
            "POST",
            "/process",
            json={"job_id": job_id, "num_rows_to_delete": int(num_rows_to_delete)},
        )
        try:
            result = ProcessResult.from_json(response.json())
        except (ValueError, KeyError, TypeError) as exc:
            raise ServerError(
                f"Unexpected process response: {response.text}", response.status_code
            ) from exc
        if not result.zip_file_name:
            raise ServerError("Process response has no result archive", response.status_code)
        return result

    async def download(self, file_url: str) -> bytes:
        response = await self._request("POST", "/download", json={"file_url": file_url})
        return response.content

    async def remove(self, job_id: str) -> str:
        response = await self._request("DELETE", f"/remove/{job_id}")
        return response.text

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        if not self._client:
            raise RuntimeError("HTTPAPIClient not initialized. Use 'async with' context.")

        logger.debug(f"{method} {endpoint}")
        try:
            response = await self._client.request(method, endpoint, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {endpoint} failed: {exc}") from exc

        if response.status_code >= 400:
            try:
                error_detail = response.json()
            except ValueError:
                error_detail = response.text
            raise ServerError(
                f"API error {response.status_code} on {method} {endpoint}: {error_detail}",
                status_code=response.status_code,
                detail=error_detail,
            )

        return response
