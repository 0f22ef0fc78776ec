"""Per-row view/edit state machine for the document grid.

Every intent from the grid enters through :class:`EditSessionManager`.  It
validates the transition against the row's current mode, performs the remote
write through the :class:`~docgrid.infrastructure.sync.DocumentSync`
collaborator and only then updates the row store.  A row is never moved back to
view mode before the server has accepted the write, so a failed save leaves the
row editable with its unsaved values intact.

Remote writes suspend the caller.  While a write for a row is pending, any other
commit, cancel, delete or edit intent for that row raises
:class:`~docgrid.core.errors.OperationInProgress`; different rows are
independent of each other.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from docgrid.core.errors import (
    GridError,
    InvalidTransition,
    NotFound,
    OperationInProgress,
    RemoteFailure,
    Unauthenticated,
)
from docgrid.core.ids import TempIdGenerator
from docgrid.core.schema import DEFAULT_FOCUS_FIELD, blank_fields, coerce_fields, to_wire_fields, wire_name
from docgrid.domain import RowEntry, RowMode, RowModeState
from docgrid.infrastructure import DocumentSync, RowRepository

logger = logging.getLogger(__name__)


class EditSessionManager:
    """Tracks row modes and mediates save, cancel and delete transitions."""

    def __init__(
        self,
        rows: RowRepository,
        sync: DocumentSync,
        *,
        id_generator: TempIdGenerator | None = None,
    ) -> None:
        self._rows = rows
        self._sync = sync
        self._ids = id_generator or TempIdGenerator()
        self._modes: dict[str, RowModeState] = {}
        self._in_flight: set[str] = set()
        self._loading = False
        self._focus: tuple[str, str] | None = None
        self.last_error: str | None = None

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    @property
    def rows(self) -> RowRepository:
        return self._rows

    @property
    def focus_target(self) -> tuple[str, str] | None:
        """The single ``(row_id, field)`` currently receiving field input."""

        return self._focus

    def mode_of(self, row_id: str) -> RowMode:
        state = self._modes.get(row_id)
        return state.mode if state is not None else RowMode.VIEW

    def state_of(self, row_id: str) -> RowModeState:
        state = self._modes.get(row_id)
        return state if state is not None else RowModeState()

    def draft_for(self, row_id: str) -> dict[str, str]:
        """Unsaved field values for a row, keyed by wire name."""

        state = self._modes.get(row_id)
        return to_wire_fields(state.draft) if state is not None else {}

    def in_flight(self, row_id: str) -> bool:
        return row_id in self._in_flight

    def has_pending_writes(self) -> bool:
        return bool(self._in_flight) or self._loading

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _guard(self, row_id: str, intent: str) -> None:
        if self._loading:
            logger.warning("Rejected %s for row %s: refresh pending", intent, row_id)
            raise OperationInProgress(row_id)
        if row_id in self._in_flight:
            logger.warning("Rejected %s for row %s: remote write pending", intent, row_id)
            raise OperationInProgress(row_id)

    def _require_row(self, row_id: str, intent: str) -> RowEntry:
        try:
            return self._rows.get(row_id)
        except NotFound:
            logger.warning("Rejected %s: row %s does not exist", intent, row_id)
            raise

    def _require_edit(self, row_id: str, intent: str) -> RowModeState:
        state = self._modes.get(row_id)
        if state is None or state.mode is not RowMode.EDIT:
            logger.warning("Rejected %s for row %s: not in edit mode", intent, row_id)
            raise InvalidTransition(row_id, intent, RowMode.VIEW.value)
        return state

    def _set_focus(self, row_id: str, field: str) -> None:
        for other_id, state in self._modes.items():
            if other_id != row_id:
                state.focus_field = None
        self._focus = (row_id, field)

    def _drop_focus(self, row_id: str) -> None:
        if self._focus is not None and self._focus[0] == row_id:
            self._focus = None

    def _discard_placeholder(self, row_id: str) -> None:
        self._rows.remove(row_id)
        self._modes.pop(row_id, None)
        self._drop_focus(row_id)
        logger.debug("Discarded placeholder row %s", row_id)

    def _report(self, exc: GridError, intent: str, row_id: str | None) -> None:
        self.last_error = getattr(exc, "user_message", str(exc))
        logger.warning("%s failed for row %s: %s", intent, row_id, exc)

    # ------------------------------------------------------------------
    # intents
    # ------------------------------------------------------------------
    def add_placeholder(self) -> RowEntry:
        """Append a blank row under a temporary id and open it for editing."""

        if self._loading:
            logger.warning("Rejected add: refresh pending")
            raise OperationInProgress()
        temp_id = self._ids.next_id()
        try:
            entry = self._rows.insert_placeholder(temp_id, blank_fields())
        except GridError:
            logger.warning("Rejected add: temporary id %s already in use", temp_id)
            raise
        self._modes[temp_id] = RowModeState(mode=RowMode.EDIT, focus_field=DEFAULT_FOCUS_FIELD)
        self._set_focus(temp_id, DEFAULT_FOCUS_FIELD)
        logger.debug("Added placeholder row %s", temp_id)
        return entry

    def start_edit(self, row_id: str, *, focus_field: str | None = None) -> None:
        self._guard(row_id, "edit")
        self._require_row(row_id, "edit")
        state = self._modes.get(row_id)
        if state is not None and state.mode is RowMode.EDIT:
            return
        self._modes[row_id] = RowModeState(mode=RowMode.EDIT, focus_field=focus_field)
        if focus_field:
            self._set_focus(row_id, focus_field)
        logger.debug("Row %s entered edit mode", row_id)

    def update_draft(self, row_id: str, fields: Mapping[str, Any]) -> dict[str, str]:
        """Buffer field input for a row in edit mode; returns the whole draft."""

        self._guard(row_id, "edit fields of")
        self._require_row(row_id, "edit fields of")
        state = self._require_edit(row_id, "edit fields of")
        state.draft.update(coerce_fields(fields))
        return to_wire_fields(state.draft)

    async def commit(self, row_id: str, fields: Mapping[str, Any] | None = None) -> RowEntry:
        """Persist the row's edits; returns the stored entry after the write.

        New rows are created remotely and promoted to their server id, existing
        rows are updated in place.  On failure the row stays in edit mode with
        its draft kept for a retry and the error is raised to the caller.
        """

        self._guard(row_id, "commit")
        entry = self._require_row(row_id, "commit")
        state = self._require_edit(row_id, "commit")
        state.draft.update(coerce_fields(fields))
        edited = dict(state.draft)

        self._in_flight.add(row_id)
        try:
            if entry.is_new:
                return await self._create(entry, edited)
            return await self._update(entry, edited)
        finally:
            self._in_flight.discard(row_id)

    async def _create(self, entry: RowEntry, edited: dict[str, str]) -> RowEntry:
        temp_id = entry.id
        payload = {**entry.record.fields(), **edited}
        try:
            record = await self._sync.create_record(payload)
        except (RemoteFailure, Unauthenticated) as exc:
            self._report(exc, "create", temp_id)
            raise

        promoted = self._rows.promote(temp_id, record)
        self._modes.pop(temp_id, None)
        self._modes[promoted.id] = RowModeState(mode=RowMode.VIEW)
        self._drop_focus(temp_id)
        self.last_error = None
        logger.debug("Promoted placeholder %s to %s", temp_id, promoted.id)
        return promoted

    async def _update(self, entry: RowEntry, edited: dict[str, str]) -> RowEntry:
        row_id = entry.id
        payload = {**entry.record.fields(), **edited}
        try:
            await self._sync.update_record(row_id, payload)
        except (RemoteFailure, Unauthenticated) as exc:
            self._report(exc, "update", row_id)
            raise

        patched = self._rows.patch(row_id, edited)
        self._modes[row_id] = RowModeState(mode=RowMode.VIEW)
        self._drop_focus(row_id)
        self.last_error = None
        logger.debug("Saved row %s (%s)", row_id, ", ".join(wire_name(name) for name in edited) or "no changes")
        return patched

    def cancel(self, row_id: str) -> None:
        """Leave edit mode discarding unsaved values; placeholders are removed."""

        self._guard(row_id, "cancel")
        entry = self._require_row(row_id, "cancel")
        if entry.is_new:
            self._discard_placeholder(row_id)
            return

        state = self._modes.get(row_id)
        if state is None or state.mode is RowMode.VIEW:
            return
        self._modes[row_id] = RowModeState(mode=RowMode.VIEW, ignore_modifications_on_exit=True)
        self._drop_focus(row_id)
        logger.debug("Cancelled edit of row %s", row_id)

    async def delete(self, row_id: str) -> None:
        self._guard(row_id, "delete")
        entry = self._require_row(row_id, "delete")
        if entry.is_new:
            self._discard_placeholder(row_id)
            return

        self._in_flight.add(row_id)
        try:
            await self._sync.delete_record(row_id)
        except (RemoteFailure, Unauthenticated) as exc:
            self._report(exc, "delete", row_id)
            raise
        finally:
            self._in_flight.discard(row_id)

        self._rows.remove(row_id)
        self._modes.pop(row_id, None)
        self._drop_focus(row_id)
        self.last_error = None
        logger.debug("Deleted row %s", row_id)

    async def load(self) -> list[RowEntry]:
        """Replace every row with the server's collection."""

        if self._in_flight or self._loading:
            logger.warning("Rejected refresh: %d remote operations pending", len(self._in_flight) + self._loading)
            raise OperationInProgress()
        self._loading = True
        try:
            records = await self._sync.fetch_all()
        except (RemoteFailure, Unauthenticated) as exc:
            self._report(exc, "fetch", None)
            raise
        finally:
            self._loading = False

        self._rows.replace_all(records)
        self._modes.clear()
        self._focus = None
        self.last_error = None
        logger.debug("Loaded %d rows", len(records))
        return self._rows.list()
