"""Backup Store - Whole-file copies taken before an edit is applied"""

from __future__ import annotations

import logging
import posixpath
import time

from .content_source import ContentSource

logger = logging.getLogger(__name__)


class BackupStore:
    """Write and restore backups through a content source"""

    def __init__(self, source: ContentSource, backup_dir: str):
        self.source = source
        self.backup_dir = backup_dir

    def backup_name(self, file_path: str, edit_id: str, timestamp_ms: int) -> str:
        file_name = posixpath.basename(file_path.replace("\\", "/"))
        return f"{file_name}.{edit_id}.{timestamp_ms}.backup"

    def create(self, file_path: str, edit_id: str, content: str) -> str:
        """Store content as a backup and return its path"""
        timestamp_ms = int(time.time() * 1000)
        backup_path = posixpath.join(self.backup_dir, self.backup_name(file_path, edit_id, timestamp_ms))
        # Retries within the same millisecond bump the suffix
        while self.source.exists(backup_path):
            timestamp_ms += 1
            backup_path = posixpath.join(
                self.backup_dir, self.backup_name(file_path, edit_id, timestamp_ms)
            )

        self.source.write(backup_path, content)
        logger.debug("Backed up %s to %s", file_path, backup_path)
        return backup_path

    def read(self, backup_path: str) -> str:
        return self.source.read(backup_path)

    def delete(self, backup_path: str) -> None:
        self.source.delete(backup_path)
