"""Change set API endpoints"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from models.api import ApproveRequest, CreateChangeSetRequest, RejectRequest, UnifiedDiffResponse
from models.changeset import ChangeSet, ChangeSetStats, ChangeSetStatus
from services.change_set_manager import ChangeSetManager

router = APIRouter()


def _manager(request: Request) -> ChangeSetManager:
    return request.app.state.services.change_sets


@router.post("", response_model=ChangeSet)
def create_change_set(request: Request, body: CreateChangeSetRequest) -> ChangeSet:
    """Diff proposed changes against current files and queue them for review"""
    return _manager(request).create_change_set(body.description, body.changes)


@router.get("", response_model=list[ChangeSet])
def list_change_sets(request: Request, status: ChangeSetStatus | None = None) -> list[ChangeSet]:
    return _manager(request).list_change_sets(status)


@router.delete("")
def clear_change_sets(request: Request) -> dict[str, str]:
    _manager(request).clear()
    return {"status": "success", "message": "All change sets cleared"}


@router.get("/pending", response_model=list[ChangeSet])
def get_pending(request: Request) -> list[ChangeSet]:
    return _manager(request).get_pending_change_sets()


@router.get("/stats", response_model=ChangeSetStats)
def get_stats(request: Request) -> ChangeSetStats:
    return _manager(request).get_stats()


@router.get("/{change_set_id}", response_model=ChangeSet)
def get_change_set(request: Request, change_set_id: str) -> ChangeSet:
    change_set = _manager(request).get_change_set(change_set_id)
    if change_set is None:
        raise HTTPException(status_code=404, detail=f"Change set not found: {change_set_id}")
    return change_set


@router.post("/{change_set_id}/approve", response_model=ChangeSet)
def approve_change_set(request: Request, change_set_id: str, body: ApproveRequest) -> ChangeSet:
    return _manager(request).approve(change_set_id, body.approver)


@router.post("/{change_set_id}/reject", response_model=ChangeSet)
def reject_change_set(request: Request, change_set_id: str, body: RejectRequest) -> ChangeSet:
    return _manager(request).reject(change_set_id, body.reason)


@router.post("/{change_set_id}/apply", response_model=ChangeSet)
def apply_change_set(request: Request, change_set_id: str) -> ChangeSet:
    """Apply an approved change set; a failed write restores every touched file"""
    manager = _manager(request)
    manager.apply(change_set_id)
    return manager.get_change_set(change_set_id)


@router.post("/{change_set_id}/rollback", response_model=ChangeSet)
def rollback_change_set(request: Request, change_set_id: str) -> ChangeSet:
    manager = _manager(request)
    manager.rollback(change_set_id)
    return manager.get_change_set(change_set_id)


@router.get("/{change_set_id}/diff", response_model=UnifiedDiffResponse)
def get_unified_diff(request: Request, change_set_id: str) -> UnifiedDiffResponse:
    return UnifiedDiffResponse(
        id=change_set_id, diff=_manager(request).format_unified_diff(change_set_id)
    )
