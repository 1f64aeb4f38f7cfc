"""Single-file edit API endpoints"""

from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, HTTPException, Request

from models.api import (
    CleanupRequest,
    CleanupResponse,
    ContentPairRequest,
    ParseRequest,
    ParseResponse,
    RollbackResponse,
)
from models.diff import (
    ApplyResult,
    ConflictKind,
    DiffEdit,
    DiffResult,
    DiffValidationResult,
    EditHistoryEntry,
)
from services.errors import NotFoundError, ValidationConflictError
from services.patch_engine import PatchEngine

router = APIRouter()


def _engine(request: Request) -> PatchEngine:
    return request.app.state.services.patch_engine


@router.post("/parse", response_model=ParseResponse)
def parse_edit(request: Request, body: ParseRequest) -> ParseResponse:
    """Extract hunks from free-form text"""
    edit = _engine(request).parse_hunks_from_text(body.text, body.target_file)
    return ParseResponse(found=edit is not None, edit=edit)


@router.post("/from-contents", response_model=DiffEdit)
def edit_from_contents(request: Request, body: ContentPairRequest) -> DiffEdit:
    """Build an edit from an (original, new) content pair"""
    return _engine(request).create_edit(
        body.file_path, body.original_content, body.new_content, body.description
    )


@router.post("/diff", response_model=DiffResult)
def preview_diff(request: Request, body: ContentPairRequest) -> DiffResult:
    """Preview the diff between two contents without touching any file"""
    return _engine(request).diff_generator.generate_diff(
        body.original_content, body.new_content, body.file_path
    )


@router.post("/validate", response_model=DiffValidationResult)
def validate_edit(request: Request, edit: DiffEdit) -> DiffValidationResult:
    return _engine(request).validate(edit)


@router.post("/apply", response_model=ApplyResult)
def apply_edit(request: Request, edit: DiffEdit) -> ApplyResult:
    """Validate and apply an edit; conflicts leave the file untouched"""
    result = _engine(request).apply(edit)
    if result.success:
        return result

    if any(c.kind == ConflictKind.NOT_FOUND for c in result.conflicts):
        raise NotFoundError(result.error or "File not found", details={"file_path": edit.file_path})
    if result.conflicts:
        raise ValidationConflictError(result.error or "Validation failed", result.conflicts)
    raise HTTPException(status_code=500, detail=result.model_dump(mode="json"))


@router.post("/{edit_id}/rollback", response_model=RollbackResponse)
def rollback_edit(request: Request, edit_id: str) -> RollbackResponse:
    if not _engine(request).rollback(edit_id):
        raise HTTPException(status_code=404, detail=f"No edit history found for id: {edit_id}")
    return RollbackResponse(success=True, id=edit_id)


@router.get("/history", response_model=list[EditHistoryEntry])
def get_history(request: Request) -> list[EditHistoryEntry]:
    return _engine(request).get_history()


@router.post("/cleanup", response_model=CleanupResponse)
def cleanup_backups(request: Request, body: CleanupRequest) -> CleanupResponse:
    """Delete backups older than the given (or configured) number of days"""
    days = body.older_than_days
    if days is None:
        days = request.app.state.config.get("backup_retention_days", 7)
    cleaned = _engine(request).cleanup_backups(timedelta(days=float(days)))
    return CleanupResponse(cleaned=cleaned)
