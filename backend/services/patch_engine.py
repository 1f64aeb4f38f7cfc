"""
Patch Engine Service - Validate, apply and roll back line-range edits

Single-file flow: every applied edit gets a whole-file backup and a history
entry keyed by edit id; rollback restores the backup and drops the entry.
Callers racing on the same file path are not serialised.
"""

from __future__ import annotations

import logging
import re
from datetime import timedelta

from models.diff import (
    ApplyResult,
    ConflictKind,
    DiffConflict,
    DiffEdit,
    DiffValidationResult,
    EditHistoryEntry,
    new_id,
    utcnow,
)
from models.events import EventType

from .backup_store import BackupStore
from .content_source import ContentSource
from .diff_generator import DiffGenerator, split_lines, splice_hunks
from .errors import IOFailureError
from .event_bus import EventBus
from .history_store import HistoryStore, InMemoryHistoryStore
from .hunk_parser import HunkParser

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _preview(text: str, limit: int = 50) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class PatchEngine:
    """Hunk validation and application against a content source"""

    def __init__(
        self,
        source: ContentSource,
        backup_dir: str,
        *,
        history: HistoryStore | None = None,
        events: EventBus | None = None,
        diff_generator: DiffGenerator | None = None,
        parser: HunkParser | None = None,
        strict_mode: bool = False,
    ):
        self.source = source
        self.backups = BackupStore(source, backup_dir)
        self.history = history if history is not None else InMemoryHistoryStore()
        self.events = events or EventBus()
        self.diff_generator = diff_generator or DiffGenerator()
        self.parser = parser or HunkParser()
        self.strict_mode = strict_mode

    # ========== Edit Construction ==========

    def parse_hunks_from_text(self, text: str, target_file: str) -> DiffEdit | None:
        """Parse hunks from free-form text; None means no hunk notation was found"""
        try:
            original = self.source.read(target_file)
        except FileNotFoundError:
            original = None
        except OSError as e:
            raise IOFailureError(f"Failed to read {target_file}: {e}", file_path=target_file) from e
        return self.parser.parse(text, target_file, original=original)

    def create_edit(
        self,
        file_path: str,
        original_content: str,
        new_content: str,
        description: str | None = None,
    ) -> DiffEdit:
        """Derive an edit from an (original, new) content pair"""
        return DiffEdit(
            id=new_id(),
            file_path=file_path,
            hunks=self.diff_generator.build_edit_hunks(original_content, new_content),
            description=description,
        )

    # ========== Validation ==========

    def validate(self, edit: DiffEdit) -> DiffValidationResult:
        """Check an edit against the current file content"""
        conflicts: list[DiffConflict] = []
        warnings: list[str] = []

        if not self.source.exists(edit.file_path):
            conflicts.append(
                DiffConflict(
                    kind=ConflictKind.NOT_FOUND,
                    reason=f"File does not exist: {edit.file_path}",
                )
            )
            return DiffValidationResult(valid=False, conflicts=conflicts, warnings=warnings)

        try:
            lines = split_lines(self.source.read(edit.file_path))
        except OSError as e:
            raise IOFailureError(f"Failed to read {edit.file_path}: {e}", file_path=edit.file_path) from e
        total_lines = len(lines)

        if not edit.hunks:
            warnings.append("Edit contains no hunks")

        for index, hunk in enumerate(edit.hunks):
            if (
                hunk.start_line < 1
                or hunk.end_line < 1
                or hunk.start_line > total_lines
                or hunk.end_line > total_lines
            ):
                conflicts.append(
                    DiffConflict(
                        kind=ConflictKind.OUT_OF_BOUNDS,
                        reason=(
                            f"Line range {hunk.start_line}-{hunk.end_line} out of bounds "
                            f"(file has {total_lines} lines)"
                        ),
                        hunk_index=index,
                        hunk=hunk,
                        suggestion=f"Adjust range to be within 1-{total_lines}",
                    )
                )
                continue

            if hunk.start_line > hunk.end_line:
                conflicts.append(
                    DiffConflict(
                        kind=ConflictKind.INVERTED_RANGE,
                        reason=(
                            f"Invalid range: start_line ({hunk.start_line}) > "
                            f"end_line ({hunk.end_line})"
                        ),
                        hunk_index=index,
                        hunk=hunk,
                    )
                )
                continue

            for other_index in range(index + 1, len(edit.hunks)):
                other = edit.hunks[other_index]
                if other.start_line > other.end_line:
                    continue
                if hunk.start_line <= other.end_line and other.start_line <= hunk.end_line:
                    conflicts.append(
                        DiffConflict(
                            kind=ConflictKind.OVERLAP,
                            reason=(
                                f"Hunk {index} (lines {hunk.start_line}-{hunk.end_line}) overlaps "
                                f"hunk {other_index} (lines {other.start_line}-{other.end_line})"
                            ),
                            hunk_index=index,
                            hunk=hunk,
                            suggestion="Merge the hunks or split them at distinct lines",
                        )
                    )

            if hunk.original_content:
                actual = "\n".join(lines[hunk.start_line - 1 : hunk.end_line])
                if normalize_whitespace(actual) != normalize_whitespace(hunk.original_content):
                    message = (
                        f"Content mismatch at lines {hunk.start_line}-{hunk.end_line}: "
                        f'expected "{_preview(hunk.original_content)}" but found "{_preview(actual)}"'
                    )
                    warnings.append(message)
                    if self.strict_mode:
                        conflicts.append(
                            DiffConflict(
                                kind=ConflictKind.CONTENT_MISMATCH,
                                reason=message,
                                hunk_index=index,
                                hunk=hunk,
                            )
                        )

        return DiffValidationResult(valid=not conflicts, conflicts=conflicts, warnings=warnings)

    # ========== Apply & Rollback ==========

    def apply(self, edit: DiffEdit) -> ApplyResult:
        """Validate, back up, then splice hunks bottom-up and write the file"""
        validation = self.validate(edit)
        if not validation.valid:
            reasons = ", ".join(c.reason for c in validation.conflicts)
            logger.warning("Edit %s rejected for %s: %s", edit.id, edit.file_path, reasons)
            return ApplyResult(
                success=False,
                edit_id=edit.id,
                error=f"Validation failed: {reasons}",
                conflicts=validation.conflicts,
                warnings=validation.warnings,
            )

        if self.history.get(edit.id) is not None:
            return ApplyResult(
                success=False,
                edit_id=edit.id,
                error=f"Edit {edit.id} is already applied; roll it back first",
                warnings=validation.warnings,
            )

        for warning in validation.warnings:
            logger.warning("Edit %s: %s", edit.id, warning)

        try:
            content = self.source.read(edit.file_path)
            backup_path = self.backups.create(edit.file_path, edit.id, content)
        except OSError as e:
            logger.error("Backup failed for %s: %s", edit.file_path, e)
            self.events.emit(EventType.EDIT_ERROR, edit_id=edit.id, error=str(e))
            return ApplyResult(
                success=False, edit_id=edit.id, error=f"Backup failed: {e}", warnings=validation.warnings
            )

        new_content, lines_changed = splice_hunks(content, edit.hunks)
        try:
            self.source.write(edit.file_path, new_content)
        except OSError as e:
            # The backup stays in place; restoring from it is up to the caller
            logger.error("Write failed for %s (backup at %s): %s", edit.file_path, backup_path, e)
            self.events.emit(EventType.EDIT_ERROR, edit_id=edit.id, error=str(e))
            return ApplyResult(
                success=False,
                edit_id=edit.id,
                backup_path=backup_path,
                error=f"Write failed: {e}",
                warnings=validation.warnings,
            )

        try:
            self.history.put(
                EditHistoryEntry(
                    edit_id=edit.id,
                    file_path=edit.file_path,
                    backup_path=backup_path,
                    description=edit.description,
                    hunks_applied=len(edit.hunks),
                )
            )
        except OSError as e:
            # An unrecorded edit cannot be rolled back; undo it
            error = f"History update failed: {e}"
            try:
                self.source.write(edit.file_path, content)
            except OSError as restore_error:
                error += f"; restore failed, original content is in {backup_path}: {restore_error}"
            logger.error("Edit %s for %s not recorded: %s", edit.id, edit.file_path, error)
            self.events.emit(EventType.EDIT_ERROR, edit_id=edit.id, error=error)
            return ApplyResult(
                success=False,
                edit_id=edit.id,
                backup_path=backup_path,
                error=error,
                warnings=validation.warnings,
            )

        logger.info(
            "Applied %d hunks to %s (%d lines changed)", len(edit.hunks), edit.file_path, lines_changed
        )
        self.events.emit(
            EventType.EDIT_APPLIED,
            edit_id=edit.id,
            file_path=edit.file_path,
            lines_changed=lines_changed,
        )
        return ApplyResult(
            success=True,
            edit_id=edit.id,
            backup_path=backup_path,
            lines_changed=lines_changed,
            warnings=validation.warnings,
        )

    def rollback(self, edit_id: str) -> bool:
        """Restore the file from the edit's backup; False if no history exists"""
        try:
            entry = self.history.pop(edit_id)
        except OSError as e:
            raise IOFailureError(f"Failed to update edit history for {edit_id}: {e}") from e
        if entry is None:
            logger.warning("No edit history found for id: %s", edit_id)
            return False

        try:
            self.source.write(entry.file_path, self.backups.read(entry.backup_path))
        except OSError as e:
            logger.error("Rollback of %s failed: %s", edit_id, e)
            try:
                self.history.put(entry)
            except OSError as history_error:
                logger.error("Could not restore history entry %s: %s", edit_id, history_error)
            raise IOFailureError(f"Rollback failed for {entry.file_path}: {e}", file_path=entry.file_path) from e

        logger.info("Rolled back edit %s for %s", edit_id, entry.file_path)
        self.events.emit(EventType.EDIT_ROLLED_BACK, edit_id=edit_id, file_path=entry.file_path)
        return True

    # ========== History ==========

    def get_history(self) -> list[EditHistoryEntry]:
        return sorted(self.history.values(), key=lambda entry: entry.timestamp)

    def get_history_entry(self, edit_id: str) -> EditHistoryEntry | None:
        return self.history.get(edit_id)

    def cleanup_backups(self, older_than: timedelta = timedelta(days=7)) -> int:
        """Delete backups whose history entry is older than the cutoff"""
        cutoff = utcnow() - older_than
        cleaned = 0

        for entry in self.history.values():
            if entry.timestamp >= cutoff:
                continue
            try:
                if self.source.exists(entry.backup_path):
                    self.backups.delete(entry.backup_path)
                removed = self.history.pop(entry.edit_id)
            except OSError as e:
                logger.warning("Could not clean up backup %s: %s", entry.backup_path, e)
                continue
            if removed is not None:
                cleaned += 1

        if cleaned:
            logger.info("Cleaned up %d backups older than %s", cleaned, older_than)
        return cleaned
