"""Change set data models"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from .diff import utcnow


class ChangeType(str, Enum):
    """How a file is affected by a change set"""

    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"


class ChangeSetStatus(str, Enum):
    """Lifecycle of a change set"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    APPLIED = "applied"
    ROLLED_BACK = "rolled_back"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DiffLine(BaseModel):
    """One line of a display hunk"""

    type: Literal["add", "remove", "context"]
    content: str
    old_line_number: int | None = None
    new_line_number: int | None = None


class UnifiedHunk(BaseModel):
    """A display hunk: context, added and removed lines"""

    old_start: int
    old_lines: int = 0
    new_start: int
    new_lines: int = 0
    lines: list[DiffLine] = []

    def has_changes(self) -> bool:
        return any(line.type != "context" for line in self.lines)


class FileDiff(BaseModel):
    """Before/after comparison of one file"""

    file_path: str
    original_content: str
    new_content: str
    change_type: ChangeType
    additions: int = 0
    deletions: int = 0
    hunks: list[UnifiedHunk] = []


class ImpactAnalysis(BaseModel):
    affected_files: int
    total_additions: int
    total_deletions: int
    risk_level: RiskLevel
    warnings: list[str] = []


class ChangeSet(BaseModel):
    """A reviewable multi-file transaction"""

    id: str
    description: str
    files: list[FileDiff]
    status: ChangeSetStatus = ChangeSetStatus.PENDING
    impact_analysis: ImpactAnalysis | None = None
    created_at: datetime = Field(default_factory=utcnow)
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_reason: str | None = None
    rejected_at: datetime | None = None
    applied_at: datetime | None = None
    rolled_back_at: datetime | None = None


class Snapshot(BaseModel):
    """Pre-apply content of every file in a change set"""

    id: str
    change_set_id: str
    files: dict[str, str | None]  # None: file did not exist before apply
    created_at: datetime = Field(default_factory=utcnow)


class ProposedChange(BaseModel):
    """New content proposed for one file"""

    file_path: str
    new_content: str = ""
    change_type: ChangeType | None = None


class ChangeSetStats(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    applied: int = 0
    rolled_back: int = 0
