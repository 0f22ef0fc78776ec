from __future__ import annotations

import asyncio
import logging
import random
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from docgrid.application import EditSessionManager
from docgrid.core.errors import (
    InvalidTransition,
    NotFound,
    OperationInProgress,
    RemoteFailure,
    Unauthenticated,
)
from docgrid.core.schema import Record
from docgrid.domain import RowMode
from docgrid.infrastructure import InMemoryRowStore


class FakeSync:
    """Scriptable stand-in for the documents API."""

    def __init__(self, *, next_id: int = 42) -> None:
        self.calls: list[tuple[str, object]] = []
        self.failing: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}
        self.server_records: list[Record] = []
        self._next_id = next_id

    async def _pause(self, key: str) -> None:
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()

    async def create_record(self, fields):
        self.calls.append(("create", dict(fields)))
        await self._pause("create")
        if "create" in self.failing:
            raise RemoteFailure("create", reason="simulated network error")
        record = Record(
            id=str(self._next_id),
            **{**fields, "document_status": fields.get("document_status") or "pending"},
        )
        self._next_id += 1
        return record

    async def update_record(self, row_id, fields):
        self.calls.append(("update", (row_id, dict(fields))))
        await self._pause(row_id)
        if "update" in self.failing:
            raise RemoteFailure("update", row_id, reason="simulated network error")

    async def delete_record(self, row_id):
        self.calls.append(("delete", row_id))
        await self._pause(row_id)
        if "delete" in self.failing:
            raise RemoteFailure("delete", row_id, reason="simulated network error")

    async def fetch_all(self):
        self.calls.append(("fetch", None))
        await self._pause("fetch")
        if "fetch" in self.failing:
            raise RemoteFailure("fetch", reason="simulated network error")
        return list(self.server_records)


def _manager(*records: Record) -> tuple[EditSessionManager, InMemoryRowStore, FakeSync]:
    store = InMemoryRowStore(records)
    sync = FakeSync()
    return EditSessionManager(store, sync), store, sync


def _snapshot(store: InMemoryRowStore) -> list[dict[str, object]]:
    return [entry.to_row() for entry in store.list()]


def _existing() -> list[Record]:
    return [
        Record(id="7", document_name="Offer", document_status="draft"),
        Record(id="8", document_name="Policy", document_status="signed"),
    ]


def test_rows_default_to_view_mode():
    manager, _, _ = _manager(*_existing())

    assert manager.mode_of("7") is RowMode.VIEW
    assert manager.mode_of("does-not-exist") is RowMode.VIEW
    assert manager.state_of("7").ignore_modifications_on_exit is False


def test_start_edit_requires_existing_row():
    manager, _, _ = _manager(*_existing())

    manager.start_edit("7")
    assert manager.mode_of("7") is RowMode.EDIT
    with pytest.raises(NotFound):
        manager.start_edit("missing")


def test_start_edit_and_cancel_sequences_never_touch_data():
    manager, store, _ = _manager(*_existing())
    before = _snapshot(store)
    rng = random.Random(1234)

    for _ in range(200):
        row_id = rng.choice(["7", "8"])
        if rng.random() < 0.5:
            manager.start_edit(row_id)
            manager.update_draft(row_id, {"documentStatus": f"value-{rng.random()}"})
        else:
            manager.cancel(row_id)

    assert _snapshot(store) == before


def test_cancel_existing_row_keeps_mode_entry_cleared():
    manager, _, _ = _manager(*_existing())
    manager.start_edit("7")
    manager.update_draft("7", {"documentStatus": "approved"})

    manager.cancel("7")

    state = manager.state_of("7")
    assert state.mode is RowMode.VIEW
    assert state.ignore_modifications_on_exit is True
    assert manager.draft_for("7") == {}


def test_add_placeholder_opens_row_in_edit_mode_with_focus():
    manager, store, _ = _manager(*_existing())

    entry = manager.add_placeholder()

    assert entry.is_new is True
    assert entry.id.startswith("tmp-")
    assert store.list()[-1].id == entry.id
    assert manager.mode_of(entry.id) is RowMode.EDIT
    assert manager.focus_target == (entry.id, "company_sig_date")


def test_focus_moves_to_a_single_row():
    manager, _, _ = _manager(*_existing())
    first = manager.add_placeholder()
    second = manager.add_placeholder()

    assert manager.focus_target == (second.id, "company_sig_date")
    assert manager.state_of(first.id).focus_field is None

    manager.start_edit("7", focus_field="document_name")
    assert manager.focus_target == ("7", "document_name")
    assert manager.state_of(second.id).focus_field is None


def test_cancel_new_row_removes_it_everywhere():
    manager, store, sync = _manager(*_existing())
    entry = manager.add_placeholder()

    manager.cancel(entry.id)

    assert entry.id not in store
    assert manager.mode_of(entry.id) is RowMode.VIEW
    assert manager.in_flight(entry.id) is False
    assert manager.focus_target is None
    assert sync.calls == []


def test_commit_existing_row_patches_fields_and_returns_to_view():
    manager, store, sync = _manager(*_existing())
    manager.start_edit("7")

    entry = asyncio.run(manager.commit("7", {"documentStatus": "approved"}))

    assert entry.id == "7"
    assert store.get("7").record.document_status == "approved"
    assert store.get("7").record.document_name == "Offer"
    assert manager.mode_of("7") is RowMode.VIEW
    assert manager.draft_for("7") == {}
    operation, (row_id, body) = sync.calls[0]
    assert (operation, row_id) == ("update", "7")
    assert body["document_name"] == "Offer"
    assert body["document_status"] == "approved"


def test_commit_uses_buffered_draft_values():
    manager, store, _ = _manager(*_existing())
    manager.start_edit("8")
    manager.update_draft("8", {"documentName": "Policy v2"})

    asyncio.run(manager.commit("8", {"employeeNumber": "E-17"}))

    record = store.get("8").record
    assert record.document_name == "Policy v2"
    assert record.employee_number == "E-17"


def test_commit_requires_edit_mode():
    manager, _, sync = _manager(*_existing())

    with pytest.raises(InvalidTransition):
        asyncio.run(manager.commit("7", {"documentStatus": "approved"}))
    assert sync.calls == []


def test_add_then_commit_promotes_to_server_id():
    manager, store, sync = _manager(*_existing())
    entry = manager.add_placeholder()

    promoted = asyncio.run(manager.commit(entry.id, {"documentName": "NDA", "documentType": "contract"}))

    assert promoted.id == "42"
    matches = [row for row in store.list() if row.id == "42"]
    assert len(matches) == 1
    assert matches[0].is_new is False
    assert matches[0].record.document_status == "pending"
    assert matches[0].record.document_name == "NDA"
    assert entry.id not in store
    assert [row.id for row in store.list()] == ["7", "8", "42"]
    assert manager.mode_of("42") is RowMode.VIEW
    assert manager.mode_of(entry.id) is RowMode.VIEW
    assert manager.focus_target is None
    assert sync.calls[0][0] == "create"
    assert sync.calls[0][1]["document_type"] == "contract"


def test_promotion_keeps_position_between_rows():
    manager, store, _ = _manager(Record(id="1"))
    placeholder = manager.add_placeholder()
    manager.add_placeholder()

    promoted = asyncio.run(manager.commit(placeholder.id, {"documentName": "NDA"}))

    assert [row.id for row in store.list()][:2] == ["1", promoted.id]
    assert store.list()[2].is_new is True


def test_failed_create_keeps_placeholder_in_edit_mode():
    manager, store, sync = _manager()
    sync.failing.add("create")
    entry = manager.add_placeholder()

    with pytest.raises(RemoteFailure) as excinfo:
        asyncio.run(manager.commit(entry.id, {"documentName": "NDA"}))

    assert excinfo.value.operation == "create"
    assert entry.id in store
    assert store.get(entry.id).is_new is True
    assert manager.mode_of(entry.id) is RowMode.EDIT
    assert manager.draft_for(entry.id) == {"documentName": "NDA"}
    assert manager.last_error == "Failed to add record."
    assert manager.in_flight(entry.id) is False


def test_failed_update_keeps_unsaved_values_for_retry():
    manager, store, sync = _manager(*_existing())
    sync.failing.add("update")
    manager.start_edit("7")

    with pytest.raises(RemoteFailure) as excinfo:
        asyncio.run(manager.commit("7", {"documentStatus": "approved"}))

    assert excinfo.value.operation == "update"
    assert excinfo.value.row_id == "7"
    assert manager.mode_of("7") is RowMode.EDIT
    assert manager.draft_for("7") == {"documentStatus": "approved"}
    assert store.get("7").record.document_status == "draft"
    assert manager.last_error == "Failed to update record."

    sync.failing.clear()
    asyncio.run(manager.commit("7"))

    assert store.get("7").record.document_status == "approved"
    assert manager.mode_of("7") is RowMode.VIEW
    assert manager.last_error is None


def test_second_commit_while_pending_is_rejected():
    async def scenario():
        manager, store, sync = _manager(*_existing())
        sync.gates["7"] = asyncio.Event()
        manager.start_edit("7")

        first = asyncio.create_task(manager.commit("7", {"documentStatus": "approved"}))
        await asyncio.sleep(0)
        assert manager.in_flight("7")

        with pytest.raises(OperationInProgress):
            await manager.commit("7", {"documentStatus": "rejected"})
        with pytest.raises(OperationInProgress):
            manager.cancel("7")
        with pytest.raises(OperationInProgress):
            await manager.delete("7")

        sync.gates["7"].set()
        await first
        return manager, store, sync

    manager, store, sync = asyncio.run(scenario())

    assert store.get("7").record.document_status == "approved"
    assert manager.mode_of("7") is RowMode.VIEW
    assert [call[0] for call in sync.calls] == ["update"]


def test_commits_on_different_rows_complete_in_any_order():
    async def scenario():
        manager, store, sync = _manager(*_existing())
        sync.gates["7"] = asyncio.Event()
        manager.start_edit("7")
        manager.start_edit("8")

        slow = asyncio.create_task(manager.commit("7", {"documentName": "slow"}))
        await asyncio.sleep(0)
        await manager.commit("8", {"documentName": "fast"})
        assert store.get("8").record.document_name == "fast"
        assert manager.in_flight("7")

        sync.gates["7"].set()
        await slow
        return store

    store = asyncio.run(scenario())
    assert store.get("7").record.document_name == "slow"


def test_delete_removes_row_and_mode_entry():
    manager, store, sync = _manager(*_existing())
    manager.start_edit("7")
    manager.cancel("7")

    asyncio.run(manager.delete("7"))

    assert "7" not in store
    assert manager.state_of("7").ignore_modifications_on_exit is False
    assert sync.calls == [("delete", "7")]


def test_failed_delete_leaves_row_untouched():
    manager, store, sync = _manager(*_existing())
    sync.failing.add("delete")
    before = _snapshot(store)

    with pytest.raises(RemoteFailure):
        asyncio.run(manager.delete("8"))

    assert _snapshot(store) == before
    assert manager.mode_of("8") is RowMode.VIEW
    assert manager.last_error == "Failed to delete record."


def test_delete_of_placeholder_is_local():
    manager, store, sync = _manager()
    entry = manager.add_placeholder()

    asyncio.run(manager.delete(entry.id))

    assert entry.id not in store
    assert sync.calls == []


def test_load_replaces_rows_and_clears_modes():
    manager, store, sync = _manager(*_existing())
    manager.start_edit("7")
    manager.add_placeholder()
    sync.server_records = [Record(id="100", document_name="Fresh")]

    rows = asyncio.run(manager.load())

    assert [row.id for row in rows] == ["100"]
    assert [row.id for row in store.list()] == ["100"]
    assert manager.mode_of("7") is RowMode.VIEW
    assert manager.focus_target is None


def test_load_is_rejected_while_writes_are_pending():
    async def scenario():
        manager, _, sync = _manager(*_existing())
        sync.gates["7"] = asyncio.Event()
        manager.start_edit("7")
        pending = asyncio.create_task(manager.commit("7", {"documentName": "x"}))
        await asyncio.sleep(0)
        with pytest.raises(OperationInProgress):
            await manager.load()
        sync.gates["7"].set()
        await pending

    asyncio.run(scenario())


def test_failed_load_keeps_existing_rows():
    manager, store, sync = _manager(*_existing())
    sync.failing.add("fetch")

    with pytest.raises(RemoteFailure):
        asyncio.run(manager.load())

    assert [row.id for row in store.list()] == ["7", "8"]
    assert manager.last_error == "Failed to load data."


def test_unauthenticated_commit_is_recoverable():
    manager, store, sync = _manager(*_existing())

    async def reject(row_id, fields):
        raise Unauthenticated()

    sync.update_record = reject
    manager.start_edit("7")

    with pytest.raises(Unauthenticated):
        asyncio.run(manager.commit("7", {"documentStatus": "approved"}))

    assert manager.mode_of("7") is RowMode.EDIT
    assert store.get("7").record.document_status == "draft"
    assert manager.last_error == "Unauthorized: No token provided."


def test_rejected_intent_is_logged(caplog):
    manager, _, _ = _manager(*_existing())
    caplog.set_level(logging.WARNING, logger="docgrid.application.editing")

    with pytest.raises(NotFound):
        manager.start_edit("missing")

    assert any("missing" in record.getMessage() for record in caplog.records)


def test_unknown_fields_are_rejected_before_any_request():
    from pydantic import ValidationError

    manager, _, sync = _manager(*_existing())
    manager.start_edit("7")

    with pytest.raises(ValidationError):
        asyncio.run(manager.commit("7", {"notAField": "x"}))

    assert sync.calls == []
    assert manager.mode_of("7") is RowMode.EDIT


def test_add_is_rejected_while_refresh_is_pending():
    async def scenario():
        manager, store, sync = _manager(*_existing())
        sync.gates["fetch"] = asyncio.Event()
        sync.server_records = [Record(id="100")]

        refresh = asyncio.create_task(manager.load())
        await asyncio.sleep(0)
        with pytest.raises(OperationInProgress):
            manager.add_placeholder()

        sync.gates["fetch"].set()
        await refresh
        return manager, store

    manager, store = asyncio.run(scenario())

    assert [row.id for row in store.list()] == ["100"]
    assert manager.focus_target is None


def test_pending_create_blocks_other_intents_on_placeholder():
    async def scenario():
        manager, store, sync = _manager(*_existing())
        sync.gates["create"] = asyncio.Event()
        placeholder = manager.add_placeholder()
        manager.add_placeholder()

        pending = asyncio.create_task(manager.commit(placeholder.id, {"documentName": "NDA"}))
        await asyncio.sleep(0)
        assert manager.in_flight(placeholder.id)

        with pytest.raises(OperationInProgress):
            await manager.commit(placeholder.id, {"documentName": "other"})
        with pytest.raises(OperationInProgress):
            manager.cancel(placeholder.id)
        with pytest.raises(OperationInProgress):
            await manager.delete(placeholder.id)
        assert placeholder.id in store

        sync.gates["create"].set()
        promoted = await pending
        return store, sync, placeholder, promoted

    store, sync, placeholder, promoted = asyncio.run(scenario())

    assert promoted.id == "42"
    assert promoted.record.document_name == "NDA"
    assert [row.id for row in store.list()][:3] == ["7", "8", "42"]
    assert store.list()[3].is_new is True
    assert placeholder.id not in store
    assert [call[0] for call in sync.calls] == ["create"]
