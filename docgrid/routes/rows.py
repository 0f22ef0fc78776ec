from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body
from pydantic import ValidationError

from docgrid.application import EditSessionManager, GridSession, get_session_service
from docgrid.core.errors import GridError
from docgrid.core.schema import wire_name
from docgrid.domain import RowEntry

from .errors import to_http_error

router = APIRouter(prefix="/sessions/{session_id}", tags=["rows"])


def serialise_row(manager: EditSessionManager, entry: RowEntry) -> dict[str, Any]:
    row = entry.to_row()
    state = manager.state_of(entry.id)
    row["mode"] = state.mode.value
    row["inFlight"] = manager.in_flight(entry.id)
    draft = manager.draft_for(entry.id)
    if draft:
        row["draft"] = draft
    return row


def serialise_grid(manager: EditSessionManager) -> dict[str, Any]:
    focus = manager.focus_target
    return {
        "items": [serialise_row(manager, entry) for entry in manager.rows.list()],
        "focus": {"rowId": focus[0], "field": wire_name(focus[1])} if focus else None,
        "error": manager.last_error,
    }


def _session(session_id: str) -> GridSession:
    try:
        return get_session_service().get(session_id)
    except GridError as exc:
        raise to_http_error(exc) from exc


@router.get("/rows")
async def list_rows(session_id: str) -> dict:
    session = _session(session_id)
    return serialise_grid(session.manager)


@router.post("/refresh")
async def refresh_rows(session_id: str) -> dict:
    session = _session(session_id)
    try:
        await session.manager.load()
    except GridError as exc:
        raise to_http_error(exc) from exc
    return serialise_grid(session.manager)


@router.post("/rows")
async def add_row(session_id: str) -> dict:
    """Append a placeholder row already open for editing."""
    manager = _session(session_id).manager
    try:
        entry = manager.add_placeholder()
    except GridError as exc:
        raise to_http_error(exc) from exc
    return serialise_row(manager, entry)


@router.post("/rows/{row_id}/edit")
async def start_edit(session_id: str, row_id: str, payload: dict | None = Body(default=None)) -> dict:
    manager = _session(session_id).manager
    focus = (payload or {}).get("field")
    try:
        manager.start_edit(row_id, focus_field=str(focus) if focus else None)
        entry = manager.rows.get(row_id)
    except GridError as exc:
        raise to_http_error(exc) from exc
    return serialise_row(manager, entry)


@router.patch("/rows/{row_id}/draft")
async def update_draft(session_id: str, row_id: str, payload: dict[str, Any]) -> dict:
    manager = _session(session_id).manager
    try:
        draft = manager.update_draft(row_id, payload)
    except (GridError, ValidationError) as exc:
        raise to_http_error(exc) from exc
    return {"id": row_id, "draft": draft}


@router.post("/rows/{row_id}/commit")
async def commit_row(session_id: str, row_id: str, payload: dict | None = Body(default=None)) -> dict:
    """Save a row; new rows come back under their server-assigned id."""
    manager = _session(session_id).manager
    try:
        entry = await manager.commit(row_id, payload or None)
    except (GridError, ValidationError) as exc:
        raise to_http_error(exc) from exc
    return serialise_row(manager, entry)


@router.post("/rows/{row_id}/cancel")
async def cancel_row(session_id: str, row_id: str) -> dict:
    manager = _session(session_id).manager
    try:
        manager.cancel(row_id)
    except GridError as exc:
        raise to_http_error(exc) from exc
    if row_id in manager.rows:
        return serialise_row(manager, manager.rows.get(row_id))
    return {"id": row_id, "removed": True}


@router.delete("/rows/{row_id}")
async def delete_row(session_id: str, row_id: str) -> dict:
    manager = _session(session_id).manager
    try:
        await manager.delete(row_id)
    except GridError as exc:
        raise to_http_error(exc) from exc
    return {"id": row_id, "removed": True}
