"""Impact Analyzer - Risk scoring for proposed change sets"""

from __future__ import annotations

from typing import Any, Iterable

from models.changeset import ChangeType, FileDiff, ImpactAnalysis, RiskLevel

DEFAULT_IMPACT_CONFIG: dict[str, Any] = {
    "config_markers": ["config"],
    "security_markers": ["security", "auth"],
    "medium_deletions": 100,
    "high_deletions": 500,
    "high_warnings": 3,
}


class ImpactAnalyzer:
    """Flag sensitive paths and deletions, then derive a risk level"""

    def __init__(self, settings: dict[str, Any] | None = None):
        cfg = {**DEFAULT_IMPACT_CONFIG, **(settings or {})}
        self.config_markers = [m.lower() for m in cfg["config_markers"]]
        self.security_markers = [m.lower() for m in cfg["security_markers"]]
        self.medium_deletions = int(cfg["medium_deletions"])
        self.high_deletions = int(cfg["high_deletions"])
        self.high_warnings = int(cfg["high_warnings"])

    def analyze(self, files: Iterable[FileDiff]) -> ImpactAnalysis:
        files = list(files)
        total_additions = total_deletions = 0
        warnings: list[str] = []

        for file in files:
            total_additions += file.additions
            total_deletions += file.deletions
            path = file.file_path.lower()

            if any(marker in path for marker in self.config_markers):
                warnings.append(f"Configuration file modified: {file.file_path}")
            if any(marker in path for marker in self.security_markers):
                warnings.append(f"Security-related file modified: {file.file_path}")
            if file.change_type == ChangeType.DELETE:
                warnings.append(f"File will be deleted: {file.file_path}")

        return ImpactAnalysis(
            affected_files=len(files),
            total_additions=total_additions,
            total_deletions=total_deletions,
            risk_level=self.risk_level(len(warnings), total_deletions),
            warnings=warnings,
        )

    def risk_level(self, warning_count: int, total_deletions: int) -> RiskLevel:
        if warning_count > self.high_warnings or total_deletions > self.high_deletions:
            return RiskLevel.HIGH
        if warning_count > 0 or total_deletions > self.medium_deletions:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW
