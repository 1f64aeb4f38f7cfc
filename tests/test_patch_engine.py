from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from models.diff import ConflictKind, DiffEdit, DiffHunk, utcnow
from models.events import EventType
from services.content_source import InMemoryContentSource, LocalFileSource
from services.history_store import InMemoryHistoryStore, JsonFileHistoryStore
from services.patch_engine import PatchEngine

TEN_LINES = "\n".join(f"line {i}" for i in range(1, 11))


def _engine(files: dict[str, str], **kwargs) -> tuple[InMemoryContentSource, PatchEngine]:
    source = InMemoryContentSource(files)
    return source, PatchEngine(source, ".backups", **kwargs)


def _edit(edit_id: str, *hunks: DiffHunk, file_path: str = "f.txt") -> DiffEdit:
    return DiffEdit(id=edit_id, file_path=file_path, hunks=list(hunks))


def test_apply_replaces_range_and_rollback_restores() -> None:
    source, engine = _engine({"f.txt": TEN_LINES})
    edit = _edit("e1", DiffHunk(start_line=3, end_line=5, new_content="replacement"))

    result = engine.apply(edit)

    assert result.success
    assert result.lines_changed == 4
    lines = source.read("f.txt").split("\n")
    assert len(lines) == 8
    assert lines[:4] == ["line 1", "line 2", "replacement", "line 6"]
    assert source.read(result.backup_path) == TEN_LINES
    assert engine.get_history_entry("e1").backup_path == result.backup_path

    assert engine.rollback("e1") is True
    assert source.read("f.txt") == TEN_LINES
    assert engine.rollback("e1") is False
    assert engine.get_history() == []


def test_backup_name_includes_file_and_edit_id() -> None:
    _, engine = _engine({"src/pkg/mod.py": "x"})

    result = engine.apply(_edit("abc123", DiffHunk(start_line=1, end_line=1, new_content="y"), file_path="src/pkg/mod.py"))

    name = result.backup_path.rsplit("/", 1)[-1]
    assert result.backup_path.startswith(".backups/")
    assert name.startswith("mod.py.abc123.")
    assert name.endswith(".backup")


def test_overlapping_hunks_are_rejected_without_mutation() -> None:
    source, engine = _engine({"f.txt": TEN_LINES})
    edit = _edit(
        "e1",
        DiffHunk(start_line=2, end_line=4, new_content="a"),
        DiffHunk(start_line=4, end_line=6, new_content="b"),
    )

    validation = engine.validate(edit)
    result = engine.apply(edit)

    assert not validation.valid
    assert [c.kind for c in validation.conflicts] == [ConflictKind.OVERLAP]
    assert not result.success
    assert result.error.startswith("Validation failed: ")
    assert result.conflicts
    assert source.snapshot() == {"f.txt": TEN_LINES}
    assert engine.get_history() == []


def test_out_of_bounds_and_inverted_ranges() -> None:
    _, engine = _engine({"f.txt": TEN_LINES})
    edit = _edit(
        "e1",
        DiffHunk(start_line=9, end_line=12, new_content="x"),
        DiffHunk(start_line=0, end_line=1, new_content="x"),
        DiffHunk(start_line=6, end_line=4, new_content="x"),
    )

    validation = engine.validate(edit)

    assert [(c.kind, c.hunk_index) for c in validation.conflicts] == [
        (ConflictKind.OUT_OF_BOUNDS, 0),
        (ConflictKind.OUT_OF_BOUNDS, 1),
        (ConflictKind.INVERTED_RANGE, 2),
    ]
    assert "within 1-10" in validation.conflicts[0].suggestion


def test_missing_file_is_a_single_not_found_conflict() -> None:
    _, engine = _engine({})
    edit = _edit("e1", DiffHunk(start_line=1, end_line=1, new_content="x"))

    validation = engine.validate(edit)
    result = engine.apply(edit)

    assert [c.kind for c in validation.conflicts] == [ConflictKind.NOT_FOUND]
    assert not result.success


def test_hunk_order_does_not_change_result() -> None:
    hunks = [
        DiffHunk(start_line=1, end_line=2, new_content="top"),
        DiffHunk(start_line=5, end_line=5, new_content="middle\nmiddle 2"),
        DiffHunk(start_line=9, end_line=10, new_content="bottom"),
    ]
    forward_source, forward = _engine({"f.txt": TEN_LINES})
    reverse_source, reverse = _engine({"f.txt": TEN_LINES})

    forward.apply(_edit("fwd", *hunks))
    reverse.apply(_edit("rev", *reversed(hunks)))

    assert forward_source.read("f.txt") == reverse_source.read("f.txt")
    assert forward_source.read("f.txt").split("\n") == [
        "top", "line 3", "line 4", "middle", "middle 2", "line 6", "line 7", "line 8", "bottom",
    ]


def test_content_mismatch_warns_by_default() -> None:
    source, engine = _engine({"f.txt": TEN_LINES})
    edit = _edit("e1", DiffHunk(start_line=2, end_line=2, original_content="something else", new_content="x"))

    result = engine.apply(edit)

    assert result.success
    assert len(result.warnings) == 1
    assert result.warnings[0].startswith("Content mismatch at lines 2-2")
    assert source.read("f.txt").split("\n")[1] == "x"


def test_content_mismatch_is_a_conflict_in_strict_mode() -> None:
    source, engine = _engine({"f.txt": TEN_LINES}, strict_mode=True)
    edit = _edit("e1", DiffHunk(start_line=2, end_line=2, original_content="something else", new_content="x"))

    result = engine.apply(edit)

    assert not result.success
    assert [c.kind for c in result.conflicts] == [ConflictKind.CONTENT_MISMATCH]
    assert source.read("f.txt") == TEN_LINES


def test_content_comparison_ignores_whitespace_differences() -> None:
    _, engine = _engine({"f.txt": TEN_LINES}, strict_mode=True)
    edit = _edit("e1", DiffHunk(start_line=3, end_line=4, original_content="  line   3\n\tline 4 ", new_content="x"))

    validation = engine.validate(edit)

    assert validation.valid
    assert validation.warnings == []


def test_edit_without_hunks_is_valid_with_warning() -> None:
    _, engine = _engine({"f.txt": TEN_LINES})

    validation = engine.validate(_edit("e1"))

    assert validation.valid
    assert validation.warnings == ["Edit contains no hunks"]


def test_same_edit_cannot_be_applied_twice() -> None:
    source, engine = _engine({"f.txt": TEN_LINES})
    edit = _edit("e1", DiffHunk(start_line=1, end_line=1, new_content="first"))

    assert engine.apply(edit).success
    second = engine.apply(edit)

    assert not second.success
    assert "already applied" in second.error
    assert engine.rollback("e1")
    assert source.read("f.txt") == TEN_LINES


def test_create_edit_from_content_pair() -> None:
    original = "import os\n\n\ndef main():\n    print('hi')\n"
    modified = "import os\nimport sys\n\n\ndef main():\n    print('hello')\n    return 0\n"
    source, engine = _engine({"app.py": original})

    edit = engine.create_edit("app.py", original, modified, "tweak main")
    result = engine.apply(edit)

    assert edit.description == "tweak main"
    assert result.success
    assert source.read("app.py") == modified


def test_write_failure_keeps_backup_and_skips_history(failing_source, event_log) -> None:
    events, received = event_log
    source = failing_source({"f.txt": TEN_LINES}, fail_on={"f.txt"})
    engine = PatchEngine(source, ".backups", events=events)

    result = engine.apply(_edit("e1", DiffHunk(start_line=1, end_line=1, new_content="x")))

    assert not result.success
    assert result.error.startswith("Write failed")
    assert source.read(result.backup_path) == TEN_LINES
    assert source.read("f.txt") == TEN_LINES
    assert engine.get_history() == []
    assert [e.type for e in received] == [EventType.EDIT_ERROR]


def test_apply_and_rollback_emit_events(event_log) -> None:
    events, received = event_log
    _, engine = _engine({"f.txt": TEN_LINES}, events=events)

    engine.apply(_edit("e1", DiffHunk(start_line=3, end_line=5, new_content="x")))
    engine.rollback("e1")

    assert [e.type for e in received] == [EventType.EDIT_APPLIED, EventType.EDIT_ROLLED_BACK]
    assert received[0].payload == {"edit_id": "e1", "file_path": "f.txt", "lines_changed": 4}


def test_cleanup_removes_only_old_backups() -> None:
    source, engine = _engine({"f.txt": TEN_LINES, "g.txt": TEN_LINES})
    old = engine.apply(_edit("old", DiffHunk(start_line=1, end_line=1, new_content="x")))
    recent = engine.apply(_edit("new", DiffHunk(start_line=1, end_line=1, new_content="y"), file_path="g.txt"))
    engine.get_history_entry("old").timestamp = utcnow() - timedelta(days=10)

    cleaned = engine.cleanup_backups(timedelta(days=7))

    assert cleaned == 1
    assert not source.exists(old.backup_path)
    assert source.exists(recent.backup_path)
    assert [entry.edit_id for entry in engine.get_history()] == ["new"]
    assert engine.rollback("old") is False


def test_local_files_keep_line_endings(tmp_path: Path) -> None:
    target = tmp_path / "crlf.txt"
    target.write_bytes(b"one\r\ntwo\r\nthree\r\n")
    engine = PatchEngine(LocalFileSource(tmp_path), ".backups")

    result = engine.apply(_edit("e1", DiffHunk(start_line=2, end_line=2, new_content="TWO\r"), file_path="crlf.txt"))

    assert result.success
    assert target.read_bytes() == b"one\r\nTWO\r\nthree\r\n"
    assert (tmp_path / result.backup_path).read_bytes() == b"one\r\ntwo\r\nthree\r\n"
    assert engine.rollback("e1")
    assert target.read_bytes() == b"one\r\ntwo\r\nthree\r\n"


def test_history_survives_restart(tmp_path: Path) -> None:
    source = LocalFileSource(tmp_path)
    (tmp_path / "f.txt").write_text(TEN_LINES, encoding="utf-8")
    history_file = tmp_path / "state" / "history.json"

    first = PatchEngine(source, ".backups", history=JsonFileHistoryStore(history_file))
    assert first.apply(_edit("e1", DiffHunk(start_line=1, end_line=1, new_content="x"))).success

    second = PatchEngine(source, ".backups", history=JsonFileHistoryStore(history_file))
    assert [entry.edit_id for entry in second.get_history()] == ["e1"]
    assert second.rollback("e1")
    assert (tmp_path / "f.txt").read_text(encoding="utf-8") == TEN_LINES
    assert JsonFileHistoryStore(history_file).values() == []


def test_parsed_insertion_is_anchored_against_the_current_file() -> None:
    source, engine = _engine({"f.txt": TEN_LINES})

    edit = engine.parse_hunks_from_text("@@ -3,0 +4,2 @@\n+inserted 1\n+inserted 2\n", "f.txt")
    result = engine.apply(edit)

    assert result.success
    assert source.read("f.txt").split("\n")[2:6] == ["line 3", "inserted 1", "inserted 2", "line 4"]


def test_unanchored_insertion_is_reported_as_inverted_range() -> None:
    _, engine = _engine({"f.txt": TEN_LINES})

    edit = engine.parser.parse("@@ -3,0 +4,2 @@\n+x\n+y\n", "f.txt")
    validation = engine.validate(edit)

    assert [c.kind for c in validation.conflicts] == [ConflictKind.INVERTED_RANGE]


class _UnwritableHistory(InMemoryHistoryStore):
    def _persist(self, entries) -> None:
        raise OSError("history disk full")


def test_history_failure_undoes_the_write(event_log) -> None:
    events, received = event_log
    source = InMemoryContentSource({"f.txt": TEN_LINES})
    engine = PatchEngine(source, ".backups", history=_UnwritableHistory(), events=events)

    result = engine.apply(_edit("e1", DiffHunk(start_line=1, end_line=1, new_content="x")))

    assert not result.success
    assert result.error.startswith("History update failed")
    assert source.read(result.backup_path) == TEN_LINES
    assert source.read("f.txt") == TEN_LINES
    assert engine.get_history() == []
    assert [e.type for e in received] == [EventType.EDIT_ERROR]


def test_json_history_write_failure_leaves_store_unchanged(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    source = LocalFileSource(tmp_path)
    (tmp_path / "f.txt").write_text(TEN_LINES, encoding="utf-8")
    store = JsonFileHistoryStore(blocker / "history.json")
    engine = PatchEngine(source, ".backups", history=store)

    result = engine.apply(_edit("e1", DiffHunk(start_line=1, end_line=1, new_content="x")))

    assert not result.success
    assert store.values() == []
    assert (tmp_path / "f.txt").read_text(encoding="utf-8") == TEN_LINES
