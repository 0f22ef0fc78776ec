from __future__ import annotations

from fastapi import HTTPException
from pydantic import ValidationError

from docgrid.core.errors import (
    DuplicateId,
    GridError,
    InvalidTransition,
    NotFound,
    OperationInProgress,
    RemoteFailure,
    Unauthenticated,
)


def to_http_error(exc: Exception) -> HTTPException:
    """Translate a core error into the response the grid client expects."""

    if isinstance(exc, Unauthenticated):
        return HTTPException(status_code=401, detail=str(exc))
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (DuplicateId, OperationInProgress, InvalidTransition)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, RemoteFailure):
        return HTTPException(status_code=502, detail=exc.user_message)
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False, include_input=False))
    if isinstance(exc, (GridError, ValueError)):
        return HTTPException(status_code=400, detail=str(exc))
    raise exc
