"""Configuration models describing pinevault settings."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field

PROTECTED_SCRIPTS: tuple[str, ...] = (
    "BTMMFoundation.pine",
    "BTMM_EMA_System.pine",
    "BTMM_Asian_Range.pine",
    "BTMM_HTF_Bias.pine",
    "BTMM_Pattern_Detection.pine",
    "BTMM_Entry_System.pine",
    "BTMM_Risk_Management.pine",
    "BTMM_Stop_Hunt_Detection.pine",
    "BTMM_Master_Dashboard.pine",
    "BTMM_Alert_System.pine",
)

STANDARD_FOLDERS: tuple[str, ...] = (
    "scripts/core",
    "scripts/foundation",
    "scripts/dashboard",
    "scripts/alerts",
    "scripts/analytics",
    "scripts/tools",
    "scripts/visuals",
    "scripts/templates",
    "scripts/support",
    "automation/git",
    "automation/deployment",
    "automation/generators",
    "automation/validation",
    "automation/backup",
    "automation/learning",
    "automation/management",
    "automation/devops",
    "docs/api-reference",
    "docs/reports",
    "configs/environments",
    "tests/validation-scripts",
    "tests/performance",
    "tests/integration",
    "exports/tradingview-ready",
    "exports/marketplace",
    "archives/versions",
    "archives/legacy",
    "archives/experiments",
    "backups/automated",
    "backups/manual",
    "versions/releases",
)


class PinevaultBaseModel(BaseModel):
    """Shared configuration for pinevault Pydantic settings models."""

    model_config = ConfigDict(extra="forbid")


class BackupSettings(PinevaultBaseModel):
    """Backup store and rollback settings.

    Attributes:
        directory: Backup directory, relative to the project root.
        scripts_dir: Directory holding the live indicator scripts.
        search_subdirs: Subdirectories searched, in order, when resolving a live script.
        inventory_subdirs: Subdirectories scanned when backing up every script.
        script_prefix: Filename prefix identifying managed scripts.
        keep_count: Default number of backups retained per script during cleanup.
        emergency_reason: Default reason tag used by emergency rollback.
        protected_scripts: Scripts restored by emergency rollback.
    """

    directory: str = "backups"
    scripts_dir: str = "scripts"
    search_subdirs: List[str] = Field(
        default_factory=lambda: [
            "core",
            "foundation",
            "dashboard",
            "alerts",
            "analytics",
            "tools",
        ]
    )
    inventory_subdirs: List[str] = Field(
        default_factory=lambda: [
            "core",
            "foundation",
            "dashboard",
            "alerts",
            "analytics",
            "tools",
            "visuals",
        ]
    )
    script_prefix: str = "BTMM"
    keep_count: int = Field(default=10, ge=0)
    emergency_reason: str = "pre-merge"
    protected_scripts: List[str] = Field(default_factory=lambda: list(PROTECTED_SCRIPTS))


class RestoreCheckSettings(PinevaultBaseModel):
    """Heuristics applied to restored script content.

    Attributes:
        version_marker: Marker that must appear in restored content.
        declaration_marker: Indicator declaration substring.
        error_markers: Substrings that must not appear.
        min_length: Inclusive lower bound on content length.
        max_length: Exclusive upper bound on content length.
    """

    version_marker: str = "//@version=5"
    declaration_marker: str = "indicator("
    error_markers: List[str] = Field(default_factory=lambda: ["ERROR", "SYNTAX"])
    min_length: int = 100
    max_length: int = 100_000


class OrganizerSettings(PinevaultBaseModel):
    """File organizer settings.

    Attributes:
        allowed_hidden_dirs: Dot-directories that are still scanned.
        skip_dirs: Directory names or root-relative paths never scanned or pruned.
        standard_folders: Folder skeleton created on every run.
        required_folders: Folders whose absence makes a tree non-compliant.
        allowed_root_files: Non-dot files permitted at the project root.
        archive_dir: Destination for archive-pattern matches.
        report_path: Location of the JSON organization report.
        snapshot_enabled: Whether a pre-run snapshot is taken.
        snapshot_dir: Directory holding pre-run snapshots.
        keep_snapshots: Snapshots retained after a successful run; 0 keeps none.
        remove_empty_dirs: Whether empty directories are pruned after cleanup.
        keep_standard_folders: Whether empty standard folders survive pruning.
        structure_depth: Depth limit for the folder structure in the report.
    """

    allowed_hidden_dirs: List[str] = Field(default_factory=lambda: [".cursor"])
    skip_dirs: List[str] = Field(
        default_factory=lambda: ["node_modules", "backups/pre-organization"]
    )
    standard_folders: List[str] = Field(default_factory=lambda: list(STANDARD_FOLDERS))
    required_folders: List[str] = Field(
        default_factory=lambda: ["scripts/core", "automation", "docs", "configs", "tests"]
    )
    allowed_root_files: List[str] = Field(
        default_factory=lambda: [
            "package.json",
            "package-lock.json",
            "README.md",
            ".gitignore",
            "LICENSE",
        ]
    )
    archive_dir: str = "archives/legacy"
    report_path: str = "docs/reports/file-organization-report.json"
    snapshot_enabled: bool = True
    snapshot_dir: str = "backups/pre-organization"
    keep_snapshots: int = Field(default=3, ge=0)
    remove_empty_dirs: bool = True
    keep_standard_folders: bool = True
    structure_depth: int = 3


class CommitSettings(PinevaultBaseModel):
    """Commit enforcement settings.

    Attributes:
        organizer_timeout_seconds: Timeout for the organizer subprocess.
        command_timeout_seconds: Timeout applied to every other external command.
        push: Whether the enforcement sequence pushes after committing.
        notes_path: Learning-notes file that receives a success entry when present.
        message_template: Commit message template with ``context`` and ``timestamp``.
    """

    organizer_timeout_seconds: float = Field(default=60.0, gt=0)
    command_timeout_seconds: float = Field(default=300.0, gt=0)
    push: bool = True
    notes_path: str = ".cursor/rules/learned-practices.mdc"
    message_template: str = "Automated commit enforcement: {context} - {timestamp}"


class LintSettings(PinevaultBaseModel):
    """Pine Script linter settings.

    Attributes:
        search_dirs: Project directories scanned for ``.pine`` files.
    """

    search_dirs: List[str] = Field(default_factory=lambda: ["indicators", "templates", "examples"])


class LoggingSettings(PinevaultBaseModel):
    """Runtime logging configuration."""

    level: str = "WARNING"


class CLIOptions(PinevaultBaseModel):
    """CLI behavior defaults.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
    """

    quiet_default: bool = False


class PinevaultConfig(PinevaultBaseModel):
    """Top-level configuration struct for pinevault."""

    backup: BackupSettings = Field(default_factory=BackupSettings)
    restore_checks: RestoreCheckSettings = Field(default_factory=RestoreCheckSettings)
    organizer: OrganizerSettings = Field(default_factory=OrganizerSettings)
    commit: CommitSettings = Field(default_factory=CommitSettings)
    lint: LintSettings = Field(default_factory=LintSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "PROTECTED_SCRIPTS",
    "STANDARD_FOLDERS",
    "PinevaultBaseModel",
    "BackupSettings",
    "RestoreCheckSettings",
    "OrganizerSettings",
    "CommitSettings",
    "LintSettings",
    "LoggingSettings",
    "CLIOptions",
    "PinevaultConfig",
]
