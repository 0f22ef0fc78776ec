"""In-memory row storage backing the grid."""
from __future__ import annotations

from typing import Iterable, Mapping, Protocol

from docgrid.core.errors import DuplicateId, NotFound
from docgrid.core.schema import Record
from docgrid.domain import RowEntry


class RowRepository(Protocol):
    """Storage contract for the rows rendered by the grid."""

    def list(self) -> list[RowEntry]: ...

    def get(self, row_id: str) -> RowEntry: ...

    def replace_all(self, rows: Iterable[Record]) -> None: ...

    def insert_placeholder(self, temp_id: str, blank_fields: Mapping[str, str]) -> RowEntry: ...

    def promote(self, temp_id: str, server_record: Record) -> RowEntry: ...

    def patch(self, row_id: str, fields: Mapping[str, str]) -> RowEntry: ...

    def remove(self, row_id: str) -> None: ...

    def __contains__(self, row_id: object) -> bool: ...

    def __len__(self) -> int: ...


class InMemoryRowStore:
    """Ordered, id-unique collection of rows for one session."""

    def __init__(self, rows: Iterable[Record] = ()) -> None:
        self._rows: dict[str, RowEntry] = {}
        self.replace_all(rows)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def list(self) -> list[RowEntry]:
        return list(self._rows.values())

    def get(self, row_id: str) -> RowEntry:
        entry = self._rows.get(row_id)
        if entry is None:
            raise NotFound(row_id)
        return entry

    def __contains__(self, row_id: object) -> bool:
        return row_id in self._rows

    def __len__(self) -> int:
        return len(self._rows)

    # ------------------------------------------------------------------
    # structural edits
    # ------------------------------------------------------------------
    def replace_all(self, rows: Iterable[Record]) -> None:
        replacement: dict[str, RowEntry] = {}
        for record in rows:
            if record.id in replacement:
                raise DuplicateId(record.id)
            replacement[record.id] = RowEntry(record=record)
        self._rows = replacement

    def insert_placeholder(self, temp_id: str, blank_fields: Mapping[str, str]) -> RowEntry:
        if temp_id in self._rows:
            raise DuplicateId(temp_id)
        record = Record(id=temp_id, **dict(blank_fields))
        entry = RowEntry(record=record, is_new=True)
        self._rows[temp_id] = entry
        return entry

    def promote(self, temp_id: str, server_record: Record) -> RowEntry:
        if temp_id not in self._rows:
            raise NotFound(temp_id)
        if server_record.id != temp_id and server_record.id in self._rows:
            raise DuplicateId(server_record.id)

        promoted = RowEntry(record=server_record, is_new=False)
        reordered: dict[str, RowEntry] = {}
        for row_id, entry in self._rows.items():
            if row_id == temp_id:
                reordered[server_record.id] = promoted
            else:
                reordered[row_id] = entry
        self._rows = reordered
        return promoted

    def patch(self, row_id: str, fields: Mapping[str, str]) -> RowEntry:
        entry = self.get(row_id)
        updates = {name: value for name, value in fields.items() if name != "id"}
        entry.record = entry.record.model_copy(update=updates)
        return entry

    def remove(self, row_id: str) -> None:
        if row_id not in self._rows:
            raise NotFound(row_id)
        del self._rows[row_id]
