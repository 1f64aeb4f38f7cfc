from __future__ import annotations

import json
from pathlib import Path

import pytest

from models.events import EngineEvent
from services.config_manager import ConfigManager
from services.content_source import InMemoryContentSource
from services.event_bus import EventBus


class FailingSource(InMemoryContentSource):
    """In-memory source whose writes to selected paths raise OSError"""

    def __init__(self, files: dict[str, str] | None = None, fail_on: set[str] | None = None):
        super().__init__(files)
        self.fail_on = set(fail_on or ())
        self.writes: list[str] = []

    def write(self, file_path: str, content: str) -> None:
        if file_path in self.fail_on:
            raise OSError(f"simulated write failure: {file_path}")
        self.writes.append(file_path)
        super().write(file_path, content)


@pytest.fixture
def failing_source():
    return FailingSource


@pytest.fixture
def event_log() -> tuple[EventBus, list[EngineEvent]]:
    bus = EventBus()
    received: list[EngineEvent] = []
    bus.subscribe(received.append)
    return bus, received


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated workspace plus a config dir pointing the server at it"""
    root = tmp_path / "workspace"
    root.mkdir()
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "config.json").write_text(
        json.dumps({"workspace_root": str(root), "backup_dir": ".backups"}), encoding="utf-8"
    )
    monkeypatch.setenv("PATCH_ENGINE_CONFIG_DIR", str(config_dir))
    ConfigManager.reset_instance()
    yield root
    ConfigManager.reset_instance()
