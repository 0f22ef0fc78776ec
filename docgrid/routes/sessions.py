from __future__ import annotations

from fastapi import APIRouter

from docgrid.application import get_session_service
from docgrid.core.errors import GridError

from .errors import to_http_error
from .rows import serialise_grid

router = APIRouter(prefix="/sessions", tags=["session"])


@router.post("")
async def open_session(payload: dict) -> dict:
    """Log in against the documents API and load the user's records."""
    username = str(payload.get("username") or "")
    password = str(payload.get("password") or "")
    service = get_session_service()
    try:
        session = await service.open_session(username, password)
    except (GridError, ValueError) as exc:
        raise to_http_error(exc) from exc
    grid = serialise_grid(session.manager)
    return {"session_id": session.session_id, "username": session.username, **grid}


@router.delete("/{session_id}")
async def close_session(session_id: str) -> dict:
    service = get_session_service()
    try:
        await service.close(session_id)
    except GridError as exc:
        raise to_http_error(exc) from exc
    return {"closed": True}
