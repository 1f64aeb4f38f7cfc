"""Diff-related data models"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Short random hex id for edits, change sets and snapshots"""
    return uuid.uuid4().hex[:16]


class DiffHunk(BaseModel):
    """A single contiguous line-range replacement"""

    start_line: int  # 1-indexed, inclusive
    end_line: int  # 1-indexed, inclusive
    original_content: str = ""  # empty when unknown
    new_content: str
    context_before: list[str] = []
    context_after: list[str] = []

    @property
    def span(self) -> int:
        return self.end_line - self.start_line + 1

    def new_lines(self) -> list[str]:
        return self.new_content.split("\n")


class DiffEdit(BaseModel):
    """An ordered set of hunks targeting one file"""

    id: str
    file_path: str
    hunks: list[DiffHunk]
    created_at: datetime = Field(default_factory=utcnow)
    description: str | None = None


class ConflictKind(str, Enum):
    """Reasons a hunk cannot be applied"""

    NOT_FOUND = "not_found"
    OUT_OF_BOUNDS = "out_of_bounds"
    INVERTED_RANGE = "inverted_range"
    OVERLAP = "overlap"
    CONTENT_MISMATCH = "content_mismatch"  # strict mode only


class DiffConflict(BaseModel):
    """A blocking problem found while validating an edit"""

    kind: ConflictKind
    reason: str
    hunk_index: int | None = None
    hunk: DiffHunk | None = None
    suggestion: str | None = None


class DiffValidationResult(BaseModel):
    valid: bool
    conflicts: list[DiffConflict] = []
    warnings: list[str] = []


class ApplyResult(BaseModel):
    """Outcome of applying an edit"""

    success: bool
    edit_id: str
    backup_path: str | None = None
    error: str | None = None
    lines_changed: int = 0
    conflicts: list[DiffConflict] = []
    warnings: list[str] = []


class EditHistoryEntry(BaseModel):
    """Backup bookkeeping for one applied edit"""

    edit_id: str
    file_path: str
    backup_path: str
    timestamp: datetime = Field(default_factory=utcnow)
    description: str | None = None
    hunks_applied: int = 0


class DiffResult(BaseModel):
    """Complete diff result for a file"""

    file_path: str
    hunks: list[DiffHunk]
    unified_diff: str  # Standard unified diff format
    preview_content: str  # Full file with changes applied
    additions: int = 0
    deletions: int = 0
