from __future__ import annotations


class TempIdGenerator:
    """Issues placeholder identifiers from a namespace the server never uses."""

    def __init__(self, prefix: str = "tmp-") -> None:
        if not prefix:
            raise ValueError("prefix must not be empty")
        self._prefix = prefix
        self._counter = 0

    @property
    def prefix(self) -> str:
        return self._prefix

    def next_id(self) -> str:
        self._counter += 1
        return f"{self._prefix}{self._counter:05d}"

    def is_temporary(self, row_id: str) -> bool:
        return str(row_id).startswith(self._prefix)
