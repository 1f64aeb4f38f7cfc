"""Service container - Builds the engine objects shared by all callers"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .change_set_manager import ChangeSetManager
from .content_source import ContentSource, LocalFileSource
from .diff_generator import DiffGenerator
from .event_bus import EventBus
from .history_store import HistoryStore, InMemoryHistoryStore, JsonFileHistoryStore
from .impact_analyzer import ImpactAnalyzer
from .patch_engine import PatchEngine


@dataclass
class EngineServices:
    """One set of engine objects, constructed once by the host process"""

    source: ContentSource
    events: EventBus
    diff_generator: DiffGenerator
    patch_engine: PatchEngine
    change_sets: ChangeSetManager


def build_services(
    config: dict[str, Any],
    *,
    source: ContentSource | None = None,
    history: HistoryStore | None = None,
) -> EngineServices:
    """Wire the patch engine and change set manager from a config dict"""
    if source is None:
        source = LocalFileSource(Path(config.get("workspace_root") or "."))

    if history is None:
        history_file = config.get("history_file")
        history = JsonFileHistoryStore(history_file) if history_file else InMemoryHistoryStore()

    events = EventBus()
    diff_generator = DiffGenerator(
        context_lines=int(config.get("context_lines", 3)),
        max_diff_cells=int(config.get("max_diff_cells", 4_000_000)),
    )
    patch_engine = PatchEngine(
        source,
        posixpath.normpath(config.get("backup_dir") or ".patch-engine/edit-backups"),
        history=history,
        events=events,
        diff_generator=diff_generator,
        strict_mode=bool(config.get("strict_mode", False)),
    )
    change_sets = ChangeSetManager(
        source,
        diff_generator=diff_generator,
        analyzer=ImpactAnalyzer(config.get("impact")),
        events=events,
    )
    return EngineServices(
        source=source,
        events=events,
        diff_generator=diff_generator,
        patch_engine=patch_engine,
        change_sets=change_sets,
    )
