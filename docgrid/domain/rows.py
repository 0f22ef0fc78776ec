"""Domain entities for the editable document grid."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from docgrid.core.schema import Record


class RowMode(str, Enum):
    VIEW = "view"
    EDIT = "edit"


@dataclass(slots=True)
class RowEntry:
    """A record held by the row store, plus its placeholder flag."""

    record: Record
    is_new: bool = False

    @property
    def id(self) -> str:
        return self.record.id

    def to_row(self) -> dict[str, object]:
        row: dict[str, object] = dict(self.record.to_wire())
        if self.is_new:
            row["isNew"] = True
        return row


@dataclass(slots=True)
class RowModeState:
    """Per-row edit bookkeeping tracked by the edit session manager."""

    mode: RowMode = RowMode.VIEW
    ignore_modifications_on_exit: bool = False
    focus_field: str | None = None
    draft: dict[str, str] = field(default_factory=dict)
