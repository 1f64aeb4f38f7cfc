"""Models module - Pydantic data models"""

from .api import (
    ApproveRequest,
    CleanupRequest,
    CleanupResponse,
    ContentPairRequest,
    CreateChangeSetRequest,
    ParseRequest,
    ParseResponse,
    RejectRequest,
    RollbackResponse,
    UnifiedDiffResponse,
)
from .changeset import (
    ChangeSet,
    ChangeSetStats,
    ChangeSetStatus,
    ChangeType,
    DiffLine,
    FileDiff,
    ImpactAnalysis,
    ProposedChange,
    RiskLevel,
    Snapshot,
    UnifiedHunk,
)
from .diff import (
    ApplyResult,
    ConflictKind,
    DiffConflict,
    DiffEdit,
    DiffHunk,
    DiffResult,
    DiffValidationResult,
    EditHistoryEntry,
)
from .events import EngineEvent, EventType

__all__ = [
    # Diff models
    "DiffHunk",
    "DiffEdit",
    "DiffConflict",
    "ConflictKind",
    "DiffValidationResult",
    "ApplyResult",
    "EditHistoryEntry",
    "DiffResult",
    # Change set models
    "ChangeType",
    "ChangeSetStatus",
    "RiskLevel",
    "DiffLine",
    "UnifiedHunk",
    "FileDiff",
    "ImpactAnalysis",
    "ChangeSet",
    "Snapshot",
    "ProposedChange",
    "ChangeSetStats",
    # Event models
    "EngineEvent",
    "EventType",
    # API models
    "ParseRequest",
    "ParseResponse",
    "ContentPairRequest",
    "RollbackResponse",
    "CleanupRequest",
    "CleanupResponse",
    "CreateChangeSetRequest",
    "ApproveRequest",
    "RejectRequest",
    "UnifiedDiffResponse",
]
