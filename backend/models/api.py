"""HTTP request/response models"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .changeset import ProposedChange
from .diff import DiffEdit


class ParseRequest(BaseModel):
    """Free-form text to scan for hunk notations"""

    text: str
    target_file: str


class ParseResponse(BaseModel):
    found: bool
    edit: DiffEdit | None = None


class ContentPairRequest(BaseModel):
    """An (original, new) content pair for one file"""

    file_path: str
    original_content: str
    new_content: str
    description: str | None = None


class RollbackResponse(BaseModel):
    success: bool
    id: str


class CleanupRequest(BaseModel):
    older_than_days: float | None = Field(default=None, ge=0)


class CleanupResponse(BaseModel):
    cleaned: int


class CreateChangeSetRequest(BaseModel):
    description: str
    changes: list[ProposedChange]


class ApproveRequest(BaseModel):
    approver: str


class RejectRequest(BaseModel):
    reason: str | None = None


class UnifiedDiffResponse(BaseModel):
    id: str
    diff: str
