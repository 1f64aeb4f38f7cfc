"""Services module - Patch engine and change set workflow"""

from .change_set_manager import ChangeSetManager
from .config_manager import ConfigManager
from .container import EngineServices, build_services
from .content_source import ContentSource, InMemoryContentSource, LocalFileSource
from .diff_generator import DiffGenerator, splice_hunks, split_lines
from .errors import (
    ChangeSetApplyError,
    InvalidStateTransitionError,
    IOFailureError,
    NotFoundError,
    PathOutsideWorkspaceError,
    PatchEngineError,
    ValidationConflictError,
)
from .event_bus import EventBus
from .history_store import HistoryStore, InMemoryHistoryStore, JsonFileHistoryStore
from .hunk_parser import HunkParser
from .impact_analyzer import ImpactAnalyzer
from .patch_engine import PatchEngine

__all__ = [
    # Engine
    "PatchEngine",
    "ChangeSetManager",
    "DiffGenerator",
    "HunkParser",
    "ImpactAnalyzer",
    "splice_hunks",
    "split_lines",
    # Infrastructure
    "ConfigManager",
    "ContentSource",
    "LocalFileSource",
    "InMemoryContentSource",
    "HistoryStore",
    "InMemoryHistoryStore",
    "JsonFileHistoryStore",
    "EventBus",
    "EngineServices",
    "build_services",
    # Errors
    "PatchEngineError",
    "NotFoundError",
    "PathOutsideWorkspaceError",
    "ValidationConflictError",
    "IOFailureError",
    "ChangeSetApplyError",
    "InvalidStateTransitionError",
]
