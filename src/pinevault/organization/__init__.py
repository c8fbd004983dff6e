"""Repository organization pipeline."""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Any, Optional

from pinevault.cancellation import CancellationToken
from pinevault.config.models import BackupSettings, OrganizerSettings
from pinevault.locking import WorkspaceLock

from .executor import OrganizationExecutor
from .models import (
    ComplianceResult,
    OrganizationPlan,
    OrganizationReport,
    ReportDocument,
    ScannedFile,
)
from .planner import OrganizationPlanner
from .scanner import RepositoryScanner
from .snapshot import SnapshotRepository

LOGGER = logging.getLogger(__name__)

LOCK_NAME = ".pinevault-organize.lock"


class OrganizationError(RuntimeError):
    """Raised when the organization pipeline aborts. The run has been rolled back."""

    def __init__(self, message: str, report: OrganizationReport, problems: list[str]) -> None:
        super().__init__(message)
        self.report = report
        self.rollback_problems = problems


class FileOrganizer:
    """Classify, move, archive, and delete files below a project root.

    :meth:`organize_repository` runs eight fixed steps in order: snapshot,
    scan, plan, create folders, move and archive, cleanup, validate, report.
    The run's counters live in the returned :class:`OrganizationReport`;
    nothing is kept on the instance between runs.
    """

    def __init__(
        self,
        root: Path,
        settings: OrganizerSettings | None = None,
        backup_settings: BackupSettings | None = None,
    ) -> None:
        self.root = root
        self.settings = settings or OrganizerSettings()
        backup_settings = backup_settings or BackupSettings()
        # The backup store is only ever changed by explicit backup commands.
        skip_dirs = [
            *self.settings.skip_dirs,
            self.settings.snapshot_dir,
            backup_settings.directory,
        ]
        self.scanner = RepositoryScanner(
            root,
            allowed_hidden=self.settings.allowed_hidden_dirs,
            skip_dirs=skip_dirs,
        )
        self.planner = OrganizationPlanner(root, archive_dir=self.settings.archive_dir)
        protected = self.settings.standard_folders if self.settings.keep_standard_folders else []
        self.executor = OrganizationExecutor(root, self.scanner, protected_dirs=protected)
        self.snapshots = SnapshotRepository(root, self.settings.snapshot_dir)

    @property
    def report_path(self) -> Path:
        return self.root / self.settings.report_path

    def scan_repository(self) -> list[ScannedFile]:
        files = self.scanner.scan()
        LOGGER.info("Scanned %d files under %s", len(files), self.root)
        return files

    def analyze_file_organization(self, files: list[ScannedFile]) -> OrganizationPlan:
        return self.planner.build_plan(files)

    def organize_repository(self, token: Optional[CancellationToken] = None) -> OrganizationReport:
        """Run the full pipeline and return its report.

        Raises:
            LockError: If another organize run holds the lock.
            OrganizationError: If any step raised; completed changes are rolled back.
        """
        token = token or CancellationToken()
        report = OrganizationReport()

        with WorkspaceLock(self.root / LOCK_NAME):
            try:
                token.raise_if_cancelled("snapshot")
                self._snapshot(report)

                token.raise_if_cancelled("scan")
                files = self.scan_repository()
                report.scanned = len(files)

                token.raise_if_cancelled("plan")
                plan = self.analyze_file_organization(files)

                token.raise_if_cancelled("folder creation")
                self.executor.create_folder_structure(
                    plan, report, standard_folders=self.settings.standard_folders
                )

                token.raise_if_cancelled("file moves")
                self.executor.apply(plan, report)

                token.raise_if_cancelled("cleanup")
                self.executor.cleanup(report, remove_empty_dirs=self.settings.remove_empty_dirs)

                token.raise_if_cancelled("validation")
                report.compliance = self.validate_organization()

                token.raise_if_cancelled("report")
                self.write_report(report)
            except Exception as exc:
                LOGGER.error("File organization failed: %s", exc)
                problems = self.executor.rollback(report, self.snapshots)
                raise OrganizationError(
                    f"File organization failed and was rolled back: {exc}", report, problems
                ) from exc

            self.snapshots.prune(self.settings.keep_snapshots)

        LOGGER.info(
            "Organization complete: scanned=%d moved=%d archived=%d deleted=%d "
            "created_folders=%d errors=%d",
            report.scanned,
            report.moved,
            report.archived,
            report.deleted,
            report.created_folders,
            len(report.errors),
        )
        return report

    def validate_organization(self) -> ComplianceResult:
        return self.executor.validate(
            self.settings.required_folders, self.settings.allowed_root_files
        )

    def write_report(self, report: OrganizationReport) -> Path:
        """Overwrite the JSON report with this run's summary."""
        document = ReportDocument(
            summary=report,
            folder_structure=self.folder_structure(),
            recommendations=self.recommendations(report),
        )
        path = self.report_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(document.model_dump_json(indent=2), encoding="utf-8")
        LOGGER.info("Report saved to %s", path)
        return path

    def folder_structure(self) -> dict[str, Any]:
        """Nested mapping of directories; files are listed under ``_files``."""
        structure: dict[str, Any] = {}
        self._describe(self.root, structure, depth=0)
        return structure

    def recommendations(self, report: OrganizationReport) -> list[str]:
        recommendations = []
        if report.errors:
            recommendations.append("Review and resolve file organization errors")
        if not report.compliance.compliant:
            recommendations.append("Create the missing required folders")
        recommendations.append("Run `pinevault organize` from a pre-commit hook")
        return recommendations

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _snapshot(self, report: OrganizationReport) -> None:
        if not self.settings.snapshot_enabled:
            LOGGER.info("Pre-organization snapshot disabled")
            return
        directory = self.snapshots.create(self.scanner.iter_files(include_hidden_files=True))
        report.snapshot = str(directory)

    def _describe(self, directory: Path, node: dict[str, Any], depth: int) -> None:
        if depth > self.settings.structure_depth:
            return
        try:
            entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
        except OSError as exc:
            LOGGER.warning("Could not read directory %s: %s", directory, exc)
            return
        relative = Path(directory).relative_to(self.root)
        for entry in entries:
            entry_relative = PurePosixPath(relative.as_posix(), entry.name)
            if self.scanner.is_skipped(entry.name, entry_relative):
                continue
            if entry.is_dir(follow_symlinks=False):
                child: dict[str, Any] = {}
                node[entry.name] = child
                self._describe(Path(entry.path), child, depth + 1)
            else:
                node.setdefault("_files", []).append(entry.name)


__all__ = [
    "FileOrganizer",
    "OrganizationError",
    "OrganizationPlan",
    "OrganizationReport",
    "ComplianceResult",
    "ScannedFile",
    "LOCK_NAME",
]
