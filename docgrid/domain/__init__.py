"""Domain layer definitions."""

from .rows import RowEntry, RowMode, RowModeState

__all__ = [
    "RowEntry",
    "RowMode",
    "RowModeState",
]
