"""Login against the documents API and per-session credential holding."""
from __future__ import annotations

import logging

from docgrid.core.errors import Unauthenticated

from .http import ApiClient, ApiError

logger = logging.getLogger(__name__)


class SessionCredentials:
    """Credential holder scoped to a single authenticated session."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token or None

    def get_token(self) -> str | None:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token or None

    def clear(self) -> None:
        self._token = None


class HttpAuthClient(ApiClient):
    """Exchanges a username and password for an API token."""

    async def login(self, username: str, password: str) -> str:
        if not username or not password:
            raise ValueError("Please provide both username and password.")

        try:
            data = await self._post("login", {"username": username, "password": password}, operation="login")
        except ApiError as exc:
            logger.info("Login rejected for %s (error_code=%s)", username, exc.error_code)
            raise Unauthenticated("invalid username or password") from exc

        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            logger.info("Login for %s returned no token", username)
            raise Unauthenticated("login response carried no token")
        logger.info("Logged in as %s", username)
        return str(token)


__all__ = ["HttpAuthClient", "SessionCredentials"]
