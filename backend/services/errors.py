"""Error taxonomy for the patch engine and change set workflow"""

from __future__ import annotations

from typing import Any, Mapping


class PatchEngineError(RuntimeError):
    """Base error carrying structured details for callers"""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class NotFoundError(PatchEngineError):
    """Target file, edit id or change set id does not exist"""


class ValidationConflictError(PatchEngineError):
    """An edit has blocking conflicts and was not applied"""

    def __init__(self, message: str, conflicts: list | None = None) -> None:
        self.conflicts = list(conflicts or [])
        super().__init__(
            message,
            details={"conflicts": [c.model_dump(mode="json") for c in self.conflicts]},
        )


class IOFailureError(PatchEngineError):
    """Read, write or delete failed in the content source"""

    def __init__(self, message: str, *, file_path: str | None = None) -> None:
        self.file_path = file_path
        super().__init__(message, details={"file_path": file_path})


class ChangeSetApplyError(IOFailureError):
    """A change set write failed; already-written files were restored"""


class InvalidStateTransitionError(PatchEngineError):
    """Change set status does not permit the requested action"""

    def __init__(self, change_set_id: str, status: str, action: str) -> None:
        self.change_set_id = change_set_id
        self.status = status
        self.action = action
        super().__init__(
            f"Cannot {action} change set {change_set_id} in status '{status}'",
            details={"change_set_id": change_set_id, "status": status, "action": action},
        )


class PathOutsideWorkspaceError(PatchEngineError):
    """A file path resolves outside the workspace root"""

    def __init__(self, file_path: str, root: str) -> None:
        self.file_path = file_path
        super().__init__(
            f"Path is outside the workspace: {file_path}",
            details={"file_path": file_path, "workspace_root": root},
        )
