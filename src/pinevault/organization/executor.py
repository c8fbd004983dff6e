"""Executor for organization plans."""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Iterable, Literal, Optional, Pattern, Sequence

from .models import (
    ComplianceResult,
    JournalEntry,
    MoveOperation,
    OrganizationPlan,
    OrganizationReport,
)
from .rules import DELETE_PATTERNS, match_any
from .scanner import RepositoryScanner
from .snapshot import SnapshotError, SnapshotRepository

LOGGER = logging.getLogger(__name__)


class OrganizationExecutor:
    """Apply organization plans to a repository and undo them on failure.

    Every filesystem change is appended to ``report.journal`` so that
    :meth:`rollback` can reverse it. Per-file failures are recorded in
    ``report.errors`` and never stop a batch.
    """

    def __init__(
        self,
        root: Path,
        scanner: RepositoryScanner,
        *,
        delete_patterns: Sequence[Pattern[str]] = DELETE_PATTERNS,
        protected_dirs: Iterable[str] = (),
    ) -> None:
        self.root = root
        self.scanner = scanner
        self.delete_patterns = delete_patterns
        self.protected_dirs = frozenset(entry.strip("/") for entry in protected_dirs)

    def create_folder_structure(
        self,
        plan: OrganizationPlan,
        report: OrganizationReport,
        standard_folders: Iterable[str] = (),
    ) -> None:
        """Create the standard folders plus every folder the plan needs."""
        folders = {folder.strip("/") for folder in standard_folders}
        folders.update(folder.strip("/") for folder in plan.folders_to_create)
        for folder in sorted(folder for folder in folders if folder):
            path = self.root / folder
            if path.exists():
                continue
            missing: list[Path] = []
            current = path
            while current != self.root and not current.exists():
                missing.append(current)
                current = current.parent
            # Outermost first; every new directory gets its own journal entry.
            for directory in reversed(missing):
                directory.mkdir()
                report.journal.append(JournalEntry(operation="mkdir", source=directory))
            report.created_folders += 1
            LOGGER.debug("Created folder %s", folder)

    def apply(self, plan: OrganizationPlan, report: OrganizationReport) -> None:
        """Rename files for every move and archive entry in ``plan``."""
        for operation in plan.to_move:
            if self._rename(operation, report, kind="move"):
                report.moved += 1
        for operation in plan.to_archive:
            if self._rename(operation, report, kind="archive"):
                report.archived += 1

    def cleanup(self, report: OrganizationReport, *, remove_empty_dirs: bool = True) -> None:
        """Delete files matching a delete pattern, found by a fresh scan.

        The scan includes dotfiles below the root, so ``.DS_Store`` and ``._*``
        litter in subdirectories is removed too.

        Empty directories are pruned afterwards when ``remove_empty_dirs`` is set.
        """
        for file in self.scanner.iter_files(include_hidden_files=True):
            if not match_any(self.delete_patterns, file.name):
                continue
            try:
                file.path.unlink()
            except OSError as exc:
                LOGGER.error("Failed to delete %s: %s", file.relative_path, exc)
                report.errors.append(f"Delete failed: {file.relative_path} ({exc})")
                continue
            report.deleted += 1
            report.journal.append(JournalEntry(operation="delete", source=file.path))
            LOGGER.info("Deleted %s", file.relative_path)

        if remove_empty_dirs:
            self.remove_empty_directories(report)

    def remove_empty_directories(self, report: OrganizationReport) -> None:
        """Remove empty directories depth-first, children before parents.

        Skipped and protected directories (and their ancestors) are kept.
        """
        self._prune(self.root, PurePosixPath(), report)

    def validate(
        self,
        required_folders: Iterable[str],
        allowed_root_files: Iterable[str],
    ) -> ComplianceResult:
        """Check required folders exist and root files are on the allow-list."""
        result = ComplianceResult()
        for folder in required_folders:
            if not (self.root / folder).is_dir():
                result.compliant = False
                result.issues.append(f"Missing required folder: {folder}")

        allowed = set(allowed_root_files)
        for entry in sorted(self.root.iterdir()):
            if entry.is_file() and entry.name not in allowed and not entry.name.startswith("."):
                result.issues.append(f"File should be organized: {entry.name}")

        if result.compliant:
            LOGGER.info("Organization validation passed")
        for issue in result.issues:
            LOGGER.warning("Compliance: %s", issue)
        return result

    def rollback(
        self,
        report: OrganizationReport,
        snapshots: Optional[SnapshotRepository] = None,
    ) -> list[str]:
        """Reverse the journal, newest change first.

        Renamed files are moved back, deleted files are copied back from the
        snapshot when one was taken, and created folders are removed if empty.

        Returns:
            list[str]: Problems encountered while rolling back.
        """
        problems: list[str] = []
        snapshot_dir = Path(report.snapshot) if report.snapshot else None
        for entry in reversed(report.journal):
            try:
                if entry.operation in ("move", "archive") and entry.destination is not None:
                    if entry.destination.exists() and not entry.source.exists():
                        entry.source.parent.mkdir(parents=True, exist_ok=True)
                        entry.destination.rename(entry.source)
                elif entry.operation == "delete":
                    if snapshots is None or snapshot_dir is None:
                        problems.append(f"No snapshot to restore {entry.source}")
                        continue
                    relative = entry.source.relative_to(self.root).as_posix()
                    snapshots.restore_file(snapshot_dir, relative)
                elif entry.operation == "mkdir":
                    if entry.source.is_dir() and not any(entry.source.iterdir()):
                        entry.source.rmdir()
            except (OSError, SnapshotError) as exc:
                LOGGER.error("Rollback step failed for %s: %s", entry.source, exc)
                problems.append(f"{entry.operation} {entry.source}: {exc}")
        report.journal.clear()
        LOGGER.warning("Organization rollback completed with %d problem(s)", len(problems))
        return problems

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _rename(
        self,
        operation: MoveOperation,
        report: OrganizationReport,
        *,
        kind: Literal["move", "archive"],
    ) -> bool:
        source = operation.file.path
        destination = operation.target_path
        try:
            if destination.exists():
                raise FileExistsError(f"Destination already exists: {destination}")
            destination.parent.mkdir(parents=True, exist_ok=True)
            source.rename(destination)
        except OSError as exc:
            label = "Move" if kind == "move" else "Archive"
            LOGGER.error("Failed to %s %s: %s", kind, operation.file.relative_path, exc)
            report.errors.append(f"{label} failed: {operation.file.relative_path} ({exc})")
            return False

        report.journal.append(
            JournalEntry(operation=kind, source=source, destination=destination)
        )
        LOGGER.info(
            "%s %s -> %s", kind.capitalize(), operation.file.relative_path, operation.target_dir
        )
        return True

    def _is_protected(self, relative: PurePosixPath) -> bool:
        text = relative.as_posix()
        return any(
            protected == text or protected.startswith(f"{text}/")
            for protected in self.protected_dirs
        )

    def _prune(self, directory: Path, relative: PurePosixPath, report: OrganizationReport) -> None:
        try:
            entries = list(os.scandir(directory))
        except OSError as exc:
            LOGGER.warning("Could not read directory %s: %s", directory, exc)
            return

        for entry in entries:
            entry_relative = relative / entry.name
            if not entry.is_dir(follow_symlinks=False):
                continue
            if self.scanner.is_skipped(entry.name, entry_relative):
                continue
            child = Path(entry.path)
            self._prune(child, entry_relative, report)
            if self._is_protected(entry_relative):
                continue
            try:
                if any(child.iterdir()):
                    continue
                child.rmdir()
            except OSError as exc:
                LOGGER.warning("Could not remove directory %s: %s", entry_relative, exc)
                continue
            report.removed_dirs += 1
            LOGGER.info("Removed empty directory %s", entry_relative.as_posix())


__all__ = ["OrganizationExecutor"]
