"""Authenticated grid sessions held by the service process."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

import httpx

from docgrid.core.config import Settings, load_settings
from docgrid.core.errors import OperationInProgress, RemoteFailure, Unauthenticated
from docgrid.infrastructure import HttpAuthClient, HttpDocumentSync, InMemoryRowStore, SessionCredentials

from .editing import EditSessionManager

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GridSession:
    """Row store, remote sync and edit state for one logged-in user."""

    session_id: str
    username: str
    credentials: SessionCredentials
    rows: InMemoryRowStore
    sync: HttpDocumentSync
    manager: EditSessionManager


class GridSessionService:
    """Opens, looks up and closes grid sessions."""

    def __init__(self, settings: Settings | None = None, *, http_client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings or load_settings()
        self._client = http_client or httpx.AsyncClient(timeout=self._settings.timeout)
        self._owns_client = http_client is None
        self._sessions: dict[str, GridSession] = {}

    @property
    def settings(self) -> Settings:
        return self._settings

    # ------------------------------------------------------------------
    # session lifecycle
    # ------------------------------------------------------------------
    async def open_session(self, username: str, password: str) -> GridSession:
        """Log in, seed the row store and register the new session.

        A failed initial fetch keeps the session open with an empty grid and
        the error recorded on the manager, so the caller can refresh later.
        """

        auth = HttpAuthClient(self._settings.api_base, http_client=self._client)
        token = await auth.login(username, password)

        credentials = SessionCredentials(token)
        sync = HttpDocumentSync(self._settings.api_base, credentials, http_client=self._client)
        rows = InMemoryRowStore()
        manager = EditSessionManager(rows, sync)
        session = GridSession(
            session_id=uuid.uuid4().hex,
            username=username,
            credentials=credentials,
            rows=rows,
            sync=sync,
            manager=manager,
        )

        try:
            await manager.load()
        except Unauthenticated:
            credentials.clear()
            raise
        except RemoteFailure:
            logger.warning("Initial fetch failed for %s; session opened empty", username)

        self._sessions[session.session_id] = session
        logger.info("Opened session %s for %s", session.session_id, username)
        return session

    def get(self, session_id: str) -> GridSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise Unauthenticated("unknown or expired session")
        return session

    async def close(self, session_id: str) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            raise Unauthenticated("unknown or expired session")
        if session.manager.has_pending_writes():
            logger.warning("Rejected close of session %s: remote operations pending", session_id)
            raise OperationInProgress()
        del self._sessions[session_id]
        session.credentials.clear()
        session.rows.replace_all([])
        logger.info("Closed session %s for %s", session_id, session.username)

    def __len__(self) -> int:
        return len(self._sessions)

    # ------------------------------------------------------------------
    # shutdown & testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        for session in self._sessions.values():
            session.credentials.clear()
        self._sessions.clear()

    async def aclose(self) -> None:
        self.reset()
        if self._owns_client:
            await self._client.aclose()


_service: GridSessionService | None = None


def configure_session_service(service: GridSessionService) -> None:
    """Install the session service used by the HTTP routes."""

    global _service
    _service = service


def get_session_service() -> GridSessionService:
    """Return the process-wide session service, creating a default one on first use."""

    global _service
    if _service is None:
        _service = GridSessionService()
    return _service


def reset_session_state() -> None:
    """Drop every open session (used in tests)."""

    if _service is not None:
        _service.reset()
