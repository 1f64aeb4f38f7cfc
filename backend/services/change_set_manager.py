"""
Change Set Manager - Reviewable multi-file changes with approval and rollback

Lifecycle: pending -> approved -> applied -> rolled_back, or pending -> rejected.
Applying snapshots every file first; a failed write restores the files already
touched before the error is reported, so a change set is never left
half-applied.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from models.changeset import (
    ChangeSet,
    ChangeSetStats,
    ChangeSetStatus,
    ChangeType,
    FileDiff,
    ProposedChange,
    RiskLevel,
    Snapshot,
)
from models.diff import new_id, utcnow
from models.events import EventType

from .content_source import ContentSource
from .diff_generator import DiffGenerator
from .errors import (
    ChangeSetApplyError,
    InvalidStateTransitionError,
    IOFailureError,
    NotFoundError,
)
from .event_bus import EventBus
from .impact_analyzer import ImpactAnalyzer

logger = logging.getLogger(__name__)


class ChangeSetManager:
    """Owns change sets and their snapshots for the process lifetime"""

    def __init__(
        self,
        source: ContentSource,
        *,
        diff_generator: DiffGenerator | None = None,
        analyzer: ImpactAnalyzer | None = None,
        events: EventBus | None = None,
    ):
        self.source = source
        self.diff_generator = diff_generator or DiffGenerator()
        self.analyzer = analyzer or ImpactAnalyzer()
        self.events = events or EventBus()
        self._change_sets: dict[str, ChangeSet] = {}
        self._snapshots: dict[str, Snapshot] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    # ========== Creation ==========

    def create_change_set(self, description: str, changes: Iterable[ProposedChange]) -> ChangeSet:
        """Diff every proposed change against the current file and score the impact"""
        files = [self._generate_file_diff(change) for change in changes]
        change_set = ChangeSet(
            id=new_id(),
            description=description,
            files=files,
            impact_analysis=self.analyzer.analyze(files),
        )

        with self._registry_lock:
            self._change_sets[change_set.id] = change_set
            self._locks[change_set.id] = threading.Lock()

        logger.info("Created change set %s (%d files)", change_set.id, len(files))
        self.events.emit(
            EventType.CHANGESET_CREATED,
            id=change_set.id,
            description=description,
            files=[f.file_path for f in files],
        )

        impact = change_set.impact_analysis
        if impact.risk_level != RiskLevel.LOW:
            self.events.emit(
                EventType.IMPACT_WARNING,
                id=change_set.id,
                risk_level=impact.risk_level.value,
                warnings=impact.warnings,
            )
        return change_set

    def _generate_file_diff(self, change: ProposedChange) -> FileDiff:
        change_type = change.change_type or ChangeType.MODIFY
        new_content = change.new_content

        try:
            original_content = self.source.read(change.file_path)
            if change_type == ChangeType.CREATE:
                change_type = ChangeType.MODIFY
        except FileNotFoundError:
            if change_type == ChangeType.DELETE:
                raise NotFoundError(
                    f"Cannot delete missing file: {change.file_path}",
                    details={"file_path": change.file_path},
                )
            original_content = ""
            change_type = ChangeType.CREATE
        except OSError as e:
            raise IOFailureError(f"Failed to read {change.file_path}: {e}", file_path=change.file_path) from e

        if change_type == ChangeType.DELETE:
            new_content = ""

        hunks = self.diff_generator.compute_diff(original_content, new_content)
        additions, deletions = self.diff_generator.count_changes(hunks)

        return FileDiff(
            file_path=change.file_path,
            original_content=original_content,
            new_content=new_content,
            change_type=change_type,
            additions=additions,
            deletions=deletions,
            hunks=hunks,
        )

    # ========== Approval Workflow ==========

    def approve(self, change_set_id: str, approver: str) -> ChangeSet:
        with self._lock_for(change_set_id):
            change_set = self._require(change_set_id)
            self._check_status(change_set, ChangeSetStatus.PENDING, "approve")
            change_set.status = ChangeSetStatus.APPROVED
            change_set.approved_by = approver
            change_set.approved_at = utcnow()

        logger.info("Change set %s approved by %s", change_set_id, approver)
        self.events.emit(EventType.CHANGESET_APPROVED, id=change_set_id, approver=approver)
        return change_set

    def reject(self, change_set_id: str, reason: str | None = None) -> ChangeSet:
        with self._lock_for(change_set_id):
            change_set = self._require(change_set_id)
            self._check_status(change_set, ChangeSetStatus.PENDING, "reject")
            change_set.status = ChangeSetStatus.REJECTED
            change_set.rejected_reason = reason
            change_set.rejected_at = utcnow()

        logger.info("Change set %s rejected: %s", change_set_id, reason or "no reason given")
        self.events.emit(EventType.CHANGESET_REJECTED, id=change_set_id, reason=reason)
        return change_set

    # ========== Application & Rollback ==========

    def apply(self, change_set_id: str) -> bool:
        """Write every file of an approved change set, all or nothing"""
        with self._lock_for(change_set_id):
            change_set = self._require(change_set_id)
            self._check_status(change_set, ChangeSetStatus.APPROVED, "apply")

            # The snapshot is complete before the first write
            snapshot = self._take_snapshot(change_set)
            self._snapshots[change_set_id] = snapshot

            touched: list[str] = []
            for file in change_set.files:
                touched.append(file.file_path)
                try:
                    if file.change_type == ChangeType.DELETE:
                        if self.source.exists(file.file_path):
                            self.source.delete(file.file_path)
                    else:
                        self.source.write(file.file_path, file.new_content)
                except OSError as e:
                    logger.error("Failed to apply change set %s at %s: %s", change_set_id, file.file_path, e)
                    del self._snapshots[change_set_id]
                    message = f"Failed to write {file.file_path}: {e}"
                    try:
                        self._restore(snapshot, touched)
                    except IOFailureError as restore_error:
                        message += f"; {restore_error}"
                    else:
                        message += f"; restored {len(touched)} file(s) from snapshot"
                    raise ChangeSetApplyError(message, file_path=file.file_path) from e

            change_set.status = ChangeSetStatus.APPLIED
            change_set.applied_at = utcnow()

        logger.info("Applied change set %s", change_set_id)
        self.events.emit(EventType.CHANGESET_APPLIED, id=change_set_id)
        return True

    def rollback(self, change_set_id: str) -> bool:
        """Restore every file of an applied change set from its snapshot"""
        with self._lock_for(change_set_id):
            change_set = self._require(change_set_id)
            snapshot = self._snapshots.get(change_set_id)
            if snapshot is None:
                raise NotFoundError(
                    f"No snapshot for rollback: {change_set_id}",
                    details={"change_set_id": change_set_id, "status": change_set.status.value},
                )
            self._check_status(change_set, ChangeSetStatus.APPLIED, "roll back")

            self._restore(snapshot, list(snapshot.files))
            del self._snapshots[change_set_id]
            change_set.status = ChangeSetStatus.ROLLED_BACK
            change_set.rolled_back_at = utcnow()

        logger.info("Rolled back change set %s", change_set_id)
        self.events.emit(EventType.CHANGESET_ROLLED_BACK, id=change_set_id)
        return True

    def _take_snapshot(self, change_set: ChangeSet) -> Snapshot:
        files: dict[str, str | None] = {}
        for file in change_set.files:
            if file.file_path in files:
                continue
            try:
                files[file.file_path] = self.source.read(file.file_path)
            except FileNotFoundError:
                files[file.file_path] = None
            except OSError as e:
                raise IOFailureError(
                    f"Failed to snapshot {file.file_path}: {e}", file_path=file.file_path
                ) from e
        return Snapshot(id=new_id(), change_set_id=change_set.id, files=files)

    def _restore(self, snapshot: Snapshot, paths: list[str]) -> None:
        """Put snapshot content back; files that did not exist are removed"""
        failed: list[str] = []
        for path in dict.fromkeys(paths):
            content = snapshot.files.get(path)
            try:
                if content is None:
                    if self.source.exists(path):
                        self.source.delete(path)
                elif not self._has_content(path, content):
                    self.source.write(path, content)
            except OSError as e:
                logger.error("Failed to restore %s from snapshot %s: %s", path, snapshot.id, e)
                failed.append(path)

        if failed:
            raise IOFailureError(
                f"Could not restore {len(failed)} file(s): {', '.join(failed)}",
                file_path=failed[0],
            )

    def _has_content(self, path: str, content: str) -> bool:
        try:
            return self.source.read(path) == content
        except OSError:
            return False

    # ========== Formatting ==========

    def format_unified_diff(self, change_set_id: str) -> str:
        """Render every file of a change set as unified diff text"""
        change_set = self._require(change_set_id)
        return "".join(
            self.diff_generator.format_hunks(file.file_path, file.hunks) + "\n"
            for file in change_set.files
        )

    # ========== Queries ==========

    def get_change_set(self, change_set_id: str) -> ChangeSet | None:
        with self._registry_lock:
            return self._change_sets.get(change_set_id)

    def get_snapshot(self, change_set_id: str) -> Snapshot | None:
        return self._snapshots.get(change_set_id)

    def list_change_sets(self, status: ChangeSetStatus | None = None) -> list[ChangeSet]:
        with self._registry_lock:
            change_sets = list(self._change_sets.values())
        if status is not None:
            change_sets = [cs for cs in change_sets if cs.status == status]
        return sorted(change_sets, key=lambda cs: cs.created_at)

    def get_pending_change_sets(self) -> list[ChangeSet]:
        return self.list_change_sets(ChangeSetStatus.PENDING)

    def get_stats(self) -> ChangeSetStats:
        stats = ChangeSetStats()
        for change_set in self.list_change_sets():
            stats.total += 1
            setattr(stats, change_set.status.value, getattr(stats, change_set.status.value) + 1)
        return stats

    def clear(self) -> None:
        with self._registry_lock:
            self._change_sets.clear()
            self._snapshots.clear()
            self._locks.clear()

    def _require(self, change_set_id: str) -> ChangeSet:
        change_set = self.get_change_set(change_set_id)
        if change_set is None:
            raise NotFoundError(
                f"Change set not found: {change_set_id}", details={"change_set_id": change_set_id}
            )
        return change_set

    def _lock_for(self, change_set_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(change_set_id)
        if lock is None:
            raise NotFoundError(
                f"Change set not found: {change_set_id}", details={"change_set_id": change_set_id}
            )
        return lock

    def _check_status(self, change_set: ChangeSet, expected: ChangeSetStatus, action: str) -> None:
        if change_set.status != expected:
            raise InvalidStateTransitionError(change_set.id, change_set.status.value, action)
