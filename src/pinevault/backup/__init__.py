"""Append-only store of timestamped file copies."""

from __future__ import annotations

import logging
import shutil
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pinevault.locking import WorkspaceLock

from .models import (
    DEFAULT_REASON,
    UNKNOWN_REASON,
    BackupName,
    BackupRecord,
    RetentionResult,
)

LOGGER = logging.getLogger(__name__)

LOCK_NAME = ".pinevault.lock"


class BackupError(ValueError):
    """Raised for invalid backup store requests."""


class BackupStore:
    """Create, list, and prune backups in a single directory.

    Backups are plain file copies named ``<original>.<reason>-<stamp>``.
    There is no index: every query reconstructs records from a directory
    listing, and recency is taken from filesystem modification times.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = directory

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def lock_path(self) -> Path:
        return self._directory / LOCK_NAME

    def lock(self) -> WorkspaceLock:
        """Return the lock guarding mutations of this store; use it as a context manager."""
        return WorkspaceLock(self.lock_path)

    def ensure_directory(self) -> Path:
        self._directory.mkdir(parents=True, exist_ok=True)
        return self._directory

    def create_backup(self, source: Path, reason: str = DEFAULT_REASON) -> Optional[Path]:
        """Copy ``source`` into the store.

        Args:
            source: File to back up.
            reason: Free-text reason tag; dots and path separators are replaced.

        Returns:
            Optional[Path]: Path of the new backup, or ``None`` when the source is
            missing or the copy fails.
        """
        if not source.is_file():
            LOGGER.warning("Source file not found: %s", source)
            return None

        try:
            self.ensure_directory()
            name = BackupName.create(source.name, reason, datetime.now(timezone.utc))
            destination = self._directory / name.render()
            while destination.exists():
                name = name.bumped()
                destination = self._directory / name.render()
            shutil.copyfile(source, destination)
        except OSError as exc:
            LOGGER.error("Backup creation failed for %s: %s", source, exc)
            return None

        LOGGER.info("Backup created: %s", destination.name)
        return destination

    def records(self) -> list[BackupRecord]:
        """Return a record for every backup file, unsorted."""
        if not self._directory.is_dir():
            return []

        records: list[BackupRecord] = []
        for entry in self._directory.iterdir():
            if entry.name.startswith(".") or not entry.is_file():
                continue
            try:
                stat = entry.stat()
            except OSError as exc:
                LOGGER.warning("Skipping unreadable backup %s: %s", entry.name, exc)
                continue
            parsed = BackupName.parse(entry.name)
            records.append(
                BackupRecord(
                    file_name=entry.name,
                    path=entry,
                    original=parsed.original if parsed else entry.name.split(".", 1)[0],
                    reason=parsed.reason if parsed else UNKNOWN_REASON,
                    stamp=parsed.stamp if parsed else "",
                    date=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    size=stat.st_size,
                )
            )
        return records

    def backups_for_script(
        self, script_name: str, reason: Optional[str] = None
    ) -> list[BackupRecord]:
        """Return backups of ``script_name``, newest first.

        Args:
            script_name: Original filename, e.g. ``BTMM_EMA_System.pine``.
            reason: When given, only backups with exactly this reason are kept.
        """
        matches = [
            record
            for record in self.records()
            if record.stamp
            and record.original == script_name
            and (reason is None or record.reason == reason)
        ]
        return sorted(matches, key=BackupRecord.sort_key, reverse=True)

    def inventory(self) -> dict[str, list[BackupRecord]]:
        """Group every backup by the text before its first ``.``, newest first."""
        groups: dict[str, list[BackupRecord]] = defaultdict(list)
        for record in self.records():
            groups[record.group].append(record)
        return {
            group: sorted(entries, key=BackupRecord.sort_key, reverse=True)
            for group, entries in sorted(groups.items())
        }

    def cleanup_old_backups(self, keep_count: int = 10) -> RetentionResult:
        """Delete all but the newest ``keep_count`` backups in each group.

        Deletion is permanent. Failures are recorded per file and do not stop
        the sweep.
        """
        if keep_count < 0:
            raise BackupError(f"keep_count must not be negative, got {keep_count}")

        result = RetentionResult()
        if not self._directory.is_dir():
            LOGGER.warning("No backup directory found at %s", self._directory)
            return result

        for group, entries in self.inventory().items():
            result.kept += len(entries[:keep_count])
            for record in entries[keep_count:]:
                try:
                    record.path.unlink()
                except OSError as exc:
                    LOGGER.error("Failed to remove %s: %s", record.file_name, exc)
                    result.errors.append(f"{record.file_name}: {exc}")
                    continue
                LOGGER.info("Removed old backup %s (group %s)", record.file_name, group)
                result.removed.append(record.file_name)

        return result


__all__ = [
    "BackupStore",
    "BackupError",
    "BackupName",
    "BackupRecord",
    "RetentionResult",
    "DEFAULT_REASON",
    "UNKNOWN_REASON",
    "LOCK_NAME",
]
