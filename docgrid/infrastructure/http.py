"""Shared plumbing for clients of the upstream documents API."""
from __future__ import annotations

from typing import Any
from urllib.parse import urljoin, urlparse

import httpx

from docgrid.core.errors import RemoteFailure, Unauthenticated

API_ROOT = "ru/data/v3/testmethods/docs/"
AUTH_HEADER = "x-auth"


class ApiError(RemoteFailure):
    """The API answered with a non-zero ``error_code``."""

    def __init__(self, operation: str, row_id: str | None = None, *, error_code: Any, reason: str | None = None) -> None:
        super().__init__(operation, row_id, reason=reason)
        self.error_code = error_code


class ApiClient:
    """Base class holding the HTTP client and URL layout of the documents API."""

    def __init__(
        self,
        api_base: str,
        *,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(api_base)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("api_base must include scheme and host")
        self._api_base = api_base if api_base.endswith("/") else f"{api_base}/"
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    def _url(self, path: str) -> str:
        return urljoin(self._api_base, API_ROOT + path)

    async def _post(self, path: str, payload: dict[str, Any], *, headers: dict[str, str] | None = None, operation: str, row_id: str | None = None) -> Any:
        try:
            response = await self._client.post(self._url(path), json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise RemoteFailure(operation, row_id, reason=str(exc) or type(exc).__name__) from exc
        return unwrap_envelope(response, operation=operation, row_id=row_id)

    async def _get(self, path: str, *, headers: dict[str, str] | None = None, operation: str) -> Any:
        try:
            response = await self._client.get(self._url(path), headers=headers)
        except httpx.HTTPError as exc:
            raise RemoteFailure(operation, reason=str(exc) or type(exc).__name__) from exc
        return unwrap_envelope(response, operation=operation)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def unwrap_envelope(response: httpx.Response, *, operation: str, row_id: str | None = None) -> Any:
    """Validate the ``{"error_code", "error_message", "data"}`` envelope and return ``data``."""

    if response.status_code in (401, 403):
        raise Unauthenticated(f"{operation} rejected with HTTP {response.status_code}")
    if response.is_error:
        raise RemoteFailure(operation, row_id, reason=f"HTTP {response.status_code}")

    try:
        body = response.json()
    except ValueError as exc:
        raise RemoteFailure(operation, row_id, reason="response is not JSON") from exc
    if not isinstance(body, dict):
        raise RemoteFailure(operation, row_id, reason="unexpected response body")

    code = body.get("error_code", 0)
    if code not in (0, "0", None):
        message = body.get("error_message") or body.get("error_text") or code
        raise ApiError(operation, row_id, error_code=code, reason=str(message))
    if "data" not in body:
        raise RemoteFailure(operation, row_id, reason="response has no data field")
    return body["data"]
