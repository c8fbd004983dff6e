"""Organization plan, journal, and report models."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Set

from pydantic import BaseModel, Field


class ScannedFile(BaseModel):
    """A file discovered during a repository scan.

    Attributes:
        name: Base filename.
        path: Absolute path.
        relative_path: Path relative to the project root, POSIX separators.
        dir: Parent directory relative to the root; ``""`` for root-level files.
        size: Size in bytes.
        modified: Modification time (UTC).
    """

    name: str
    path: Path
    relative_path: str
    dir: str
    size: int
    modified: datetime


class MoveOperation(BaseModel):
    """Represents moving a scanned file into a target directory.

    Attributes:
        file: File being moved.
        target_dir: Root-relative destination directory with a trailing slash.
        target_path: Absolute destination path.
        reasoning: Short explanation recorded in the report and logs.
        conflict_applied: Indicates whether the name was changed to avoid a collision.
    """

    file: ScannedFile
    target_dir: str
    target_path: Path
    reasoning: Optional[str] = None
    conflict_applied: bool = False


class OrganizationPlan(BaseModel):
    """Actions derived from one scan. Each file appears in at most one list."""

    to_move: List[MoveOperation] = Field(default_factory=list)
    to_archive: List[MoveOperation] = Field(default_factory=list)
    to_delete: List[ScannedFile] = Field(default_factory=list)
    folders_to_create: Set[str] = Field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not (self.to_move or self.to_archive or self.to_delete)


class JournalEntry(BaseModel):
    """A filesystem change applied during a run, kept for the rollback hook."""

    operation: Literal["move", "archive", "delete", "mkdir"]
    source: Path
    destination: Optional[Path] = None


class ComplianceResult(BaseModel):
    """Outcome of the post-run compliance check.

    ``compliant`` only reflects required folders; misplaced root files are
    listed in ``issues`` but are advisory.
    """

    compliant: bool = True
    issues: List[str] = Field(default_factory=list)


class OrganizationReport(BaseModel):
    """Per-run accumulator threaded through the organizer pipeline."""

    scanned: int = 0
    moved: int = 0
    archived: int = 0
    deleted: int = 0
    created_folders: int = 0
    removed_dirs: int = 0
    errors: List[str] = Field(default_factory=list)
    snapshot: Optional[str] = None
    compliance: ComplianceResult = Field(default_factory=ComplianceResult)
    journal: List[JournalEntry] = Field(default_factory=list, exclude=True)


class ReportDocument(BaseModel):
    """JSON document written to the report path after each run."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    summary: OrganizationReport
    folder_structure: Dict[str, Any] = Field(default_factory=dict)
    recommendations: List[str] = Field(default_factory=list)


__all__ = [
    "ScannedFile",
    "MoveOperation",
    "OrganizationPlan",
    "JournalEntry",
    "ComplianceResult",
    "OrganizationReport",
    "ReportDocument",
]
