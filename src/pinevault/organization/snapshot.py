"""Pre-organization snapshots used to undo a failed run."""

from __future__ import annotations

import json
import logging
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List

from pydantic import BaseModel, Field, ValidationError

from pinevault.backup.models import format_stamp

from .models import ScannedFile

LOGGER = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"
IGNORE_NAME = ".gitignore"
_SNAPSHOT_NAME = re.compile(r"^backup-(?P<stamp>.+?Z)(?:-(?P<counter>\d+))?$")


class SnapshotError(Exception):
    """Raised when a snapshot cannot be written or read."""


class MissingSnapshotError(SnapshotError):
    """Raised when a snapshot or one of its files is absent."""


class SnapshotEntry(BaseModel):
    """A file captured in a snapshot."""

    relative_path: str
    size: int


class SnapshotManifest(BaseModel):
    """Index of the files copied into a snapshot directory."""

    root: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    entries: List[SnapshotEntry] = Field(default_factory=list)


class SnapshotRepository:
    """Write and read snapshots below ``<root>/<snapshot_dir>``."""

    def __init__(self, root: Path, snapshot_dir: str = "backups/pre-organization") -> None:
        """Initialize the repository.

        Args:
            root: Project root being organized.
            snapshot_dir: Root-relative directory holding snapshots.
        """
        self._root = root
        self._base = root / snapshot_dir

    @property
    def base(self) -> Path:
        return self._base

    def create(self, files: Iterable[ScannedFile]) -> Path:
        """Copy ``files`` into a new ``backup-<stamp>`` directory.

        Args:
            files: Files from a scan of the root.

        Returns:
            Path: Directory of the new snapshot.

        Raises:
            SnapshotError: If any file cannot be copied.
        """
        name = f"backup-{format_stamp(datetime.now(timezone.utc))}"
        directory = self._base / name
        counter = 1
        while directory.exists():
            directory = self._base / f"{name}-{counter}"
            counter += 1

        manifest = SnapshotManifest(root=str(self._root))
        try:
            directory.mkdir(parents=True)
            self._write_ignore_file()
            for file in files:
                destination = directory / file.relative_path
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(file.path, destination)
                manifest.entries.append(
                    SnapshotEntry(relative_path=file.relative_path, size=file.size)
                )
            (directory / MANIFEST_NAME).write_text(
                manifest.model_dump_json(indent=2), encoding="utf-8"
            )
        except OSError as exc:
            raise SnapshotError(f"Failed to write snapshot {directory}: {exc}") from exc

        LOGGER.info("Snapshot of %d files written to %s", len(manifest.entries), directory)
        return directory

    def load(self, directory: Path) -> SnapshotManifest:
        """Load the manifest stored in ``directory``.

        Raises:
            MissingSnapshotError: If no manifest exists.
            SnapshotError: If the manifest cannot be parsed.
        """
        path = directory / MANIFEST_NAME
        if not path.exists():
            raise MissingSnapshotError(f"No snapshot manifest at {path}")
        try:
            return SnapshotManifest.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise SnapshotError(f"Invalid snapshot manifest {path}: {exc}") from exc

    def restore_file(self, directory: Path, relative_path: str) -> Path:
        """Copy one captured file back to its original location.

        Raises:
            MissingSnapshotError: If the snapshot has no copy of ``relative_path``.
        """
        source = directory / relative_path
        if not source.is_file():
            raise MissingSnapshotError(f"{relative_path} is not in snapshot {directory.name}")
        destination = self._root / relative_path
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
        return destination

    def snapshots(self) -> list[Path]:
        """Return snapshot directories, oldest first."""
        if not self._base.is_dir():
            return []
        found = []
        for entry in self._base.iterdir():
            match = _SNAPSHOT_NAME.match(entry.name)
            if match is None or not entry.is_dir():
                continue
            found.append((match.group("stamp"), int(match.group("counter") or 0), entry))
        return [entry for _, _, entry in sorted(found)]

    def prune(self, keep: int) -> list[Path]:
        """Delete all but the newest ``keep`` snapshots.

        Removal failures are logged and the snapshot is left in place.

        Returns:
            list[Path]: Snapshot directories that were removed.
        """
        existing = self.snapshots()
        stale = existing[: max(len(existing) - keep, 0)]
        removed: list[Path] = []
        for directory in stale:
            try:
                shutil.rmtree(directory)
            except OSError as exc:
                LOGGER.warning("Could not remove snapshot %s: %s", directory, exc)
                continue
            removed.append(directory)
            LOGGER.info("Removed old snapshot %s", directory.name)
        return removed

    def _write_ignore_file(self) -> None:
        # Snapshots are local rollback copies; keep them out of commits.
        ignore = self._base / IGNORE_NAME
        if not ignore.exists():
            ignore.write_text("*\n", encoding="utf-8")


__all__ = [
    "SnapshotRepository",
    "SnapshotManifest",
    "SnapshotEntry",
    "SnapshotError",
    "MissingSnapshotError",
    "MANIFEST_NAME",
    "IGNORE_NAME",
]
