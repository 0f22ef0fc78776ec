"""Synchronisation of grid mutations with the remote documents API."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

import httpx
from pydantic import ValidationError

from docgrid.core.errors import RemoteFailure, Unauthenticated
from docgrid.core.schema import EDITABLE_FIELDS, Record, to_wire_fields

from .http import AUTH_HEADER, ApiClient

logger = logging.getLogger(__name__)


class CredentialSource(Protocol):
    """Supplies the opaque bearer credential for the current session."""

    def get_token(self) -> str | None: ...


class DocumentSync(Protocol):
    """Remote operations the edit session manager depends on."""

    async def create_record(self, fields: Mapping[str, str]) -> Record: ...

    async def update_record(self, row_id: str, fields: Mapping[str, str]) -> None: ...

    async def delete_record(self, row_id: str) -> None: ...

    async def fetch_all(self) -> list[Record]: ...


class HttpDocumentSync(ApiClient):
    """``DocumentSync`` backed by the userdocs HTTP endpoints."""

    def __init__(
        self,
        api_base: str,
        credentials: CredentialSource,
        *,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(api_base, timeout=timeout, http_client=http_client)
        self._credentials = credentials

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _auth_headers(self, operation: str) -> dict[str, str]:
        token = self._credentials.get_token()
        if not token:
            raise Unauthenticated(f"no credential available for {operation}")
        return {AUTH_HEADER: token}

    @staticmethod
    def _payload(fields: Mapping[str, str]) -> dict[str, str]:
        complete = {name: fields.get(name, "") for name in EDITABLE_FIELDS}
        return to_wire_fields(complete)

    @staticmethod
    def _parse_record(data: Any, operation: str, row_id: str | None = None) -> Record:
        if not isinstance(data, dict) or not data.get("id"):
            raise RemoteFailure(operation, row_id, reason="response has no record id")
        try:
            return Record.model_validate(data)
        except ValidationError as exc:
            raise RemoteFailure(operation, row_id, reason="malformed record in response") from exc

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def fetch_all(self) -> list[Record]:
        headers = self._auth_headers("fetch")
        data = await self._get("userdocs/get", headers=headers, operation="fetch")
        if not isinstance(data, list):
            raise RemoteFailure("fetch", reason="expected a list of records")
        records = [self._parse_record(item, "fetch") for item in data]
        logger.debug("Fetched %d records", len(records))
        return records

    async def create_record(self, fields: Mapping[str, str]) -> Record:
        headers = self._auth_headers("create")
        data = await self._post("userdocs/create", self._payload(fields), headers=headers, operation="create")
        record = self._parse_record(data, "create")
        logger.debug("Created record %s", record.id)
        return record

    async def update_record(self, row_id: str, fields: Mapping[str, str]) -> None:
        headers = self._auth_headers("update")
        await self._post(f"userdocs/set/{row_id}", self._payload(fields), headers=headers, operation="update", row_id=row_id)
        logger.debug("Updated record %s", row_id)

    async def delete_record(self, row_id: str) -> None:
        headers = self._auth_headers("delete")
        await self._post(f"userdocs/delete/{row_id}", {}, headers=headers, operation="delete", row_id=row_id)
        logger.debug("Deleted record %s", row_id)


__all__ = ["CredentialSource", "DocumentSync", "HttpDocumentSync"]
