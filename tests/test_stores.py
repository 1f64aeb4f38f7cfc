from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from models.diff import EditHistoryEntry
from models.events import EngineEvent, EventType
from services.backup_store import BackupStore
from services.config_manager import ConfigManager
from services.content_source import InMemoryContentSource, LocalFileSource
from services.errors import PathOutsideWorkspaceError
from services.event_bus import EventBus
from services.history_store import InMemoryHistoryStore, JsonFileHistoryStore


def test_history_store_put_is_exclusive() -> None:
    store = InMemoryHistoryStore()
    entry = EditHistoryEntry(edit_id="e1", file_path="f.txt", backup_path="b")

    store.put(entry)

    with pytest.raises(KeyError):
        store.put(entry)
    assert store.pop("e1") == entry
    assert store.pop("e1") is None


def test_json_history_store_ignores_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")

    store = JsonFileHistoryStore(path)
    store.put(EditHistoryEntry(edit_id="e1", file_path="f.txt", backup_path="b"))

    assert [entry.edit_id for entry in JsonFileHistoryStore(path).values()] == ["e1"]


def test_backup_names_never_collide() -> None:
    source = InMemoryContentSource()
    store = BackupStore(source, "backups")

    first = store.create("dir/f.txt", "e1", "v1")
    second = store.create("dir/f.txt", "e1", "v2")

    assert first != second
    assert store.read(first) == "v1"
    assert store.read(second) == "v2"


def test_local_source_creates_parents_and_resolves_relative_paths(tmp_path: Path) -> None:
    source = LocalFileSource(tmp_path)

    source.write("nested/dir/file.txt", "content")

    assert (tmp_path / "nested" / "dir" / "file.txt").read_text(encoding="utf-8") == "content"
    assert source.exists("nested/dir/file.txt")
    source.delete("nested/dir/file.txt")
    assert not source.exists("nested/dir/file.txt")
    with pytest.raises(FileNotFoundError):
        source.read("nested/dir/file.txt")


def test_local_source_refuses_paths_outside_the_root(tmp_path: Path) -> None:
    root = tmp_path / "workspace"
    root.mkdir()
    outside = tmp_path / "outside.txt"
    source = LocalFileSource(root)

    for file_path in ["../outside.txt", str(outside), "nested/../../outside.txt"]:
        with pytest.raises(PathOutsideWorkspaceError):
            source.write(file_path, "escaped")
        with pytest.raises(PathOutsideWorkspaceError):
            source.exists(file_path)

    assert not outside.exists()
    source.write(str(root / "inside.txt"), "ok")
    assert source.read("inside.txt") == "ok"


def test_event_bus_isolates_failing_listeners() -> None:
    bus = EventBus()
    received: list[EngineEvent] = []

    def broken(event: EngineEvent) -> None:
        raise ValueError("listener bug")

    bus.subscribe(broken)
    bus.subscribe(received.append)
    event = bus.emit(EventType.CHANGESET_CREATED, id="cs1")

    assert received == [event]
    assert event.payload == {"id": "cs1"}

    bus.unsubscribe(received.append)
    bus.emit(EventType.CHANGESET_APPROVED, id="cs1")
    assert len(received) == 1


def test_event_bus_delivers_on_executor() -> None:
    received: list[EngineEvent] = []
    with ThreadPoolExecutor(max_workers=1) as executor:
        bus = EventBus(executor)
        bus.subscribe(received.append)
        bus.emit(EventType.EDIT_APPLIED, edit_id="e1")

    assert [e.type for e in received] == [EventType.EDIT_APPLIED]


def test_config_manager_layers_file_over_defaults(workspace: Path) -> None:
    manager = ConfigManager.get_instance()

    config = manager.get_config()

    assert config["workspace_root"] == str(workspace)
    assert config["backup_dir"] == ".backups"
    assert config["context_lines"] == 3
    assert config["impact"]["high_deletions"] == 500

    manager.set("strict_mode", True)
    ConfigManager.reset_instance()
    assert ConfigManager.get_instance().get("strict_mode") is True
