"""Application services."""

from .editing import EditSessionManager
from .sessions import (
    GridSession,
    GridSessionService,
    configure_session_service,
    get_session_service,
    reset_session_state,
)

__all__ = [
    "EditSessionManager",
    "GridSession",
    "GridSessionService",
    "configure_session_service",
    "get_session_service",
    "reset_session_state",
]
