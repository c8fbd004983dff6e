"""Tests for organization rules, scanning, and planning."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from pinevault.organization.models import OrganizationPlan
from pinevault.organization.planner import OrganizationPlanner
from pinevault.organization.rules import resolve_target
from pinevault.organization.scanner import RepositoryScanner


def _touch(root: Path, relative: str, text: str = "x") -> Path:
    """Write ``text`` to ``root / relative``, creating parent directories.

    Args:
        root: Base directory.
        relative: Path of the file below ``root``.
        text: File contents.

    Returns:
        Path: The written file.
    """
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _plan(root: Path) -> OrganizationPlan:
    """Scan ``root`` with default settings and return the resulting plan.

    Args:
        root: Project root to plan for.

    Returns:
        OrganizationPlan: Planned operations.
    """
    files = RepositoryScanner(root).scan()
    return OrganizationPlanner(root).build_plan(files)


def test_core_script_moves_to_scripts_core(project_root: Path) -> None:
    """Ensure a core script is planned into ``scripts/core``.

    Args:
        project_root: Empty project directory fixture.
    """
    _touch(project_root, "BTMM_Core_Test.pine")

    plan = _plan(project_root)

    assert len(plan.to_move) == 1
    assert plan.to_move[0].target_dir == "scripts/core/"
    assert plan.to_move[0].target_path == project_root / "scripts" / "core" / "BTMM_Core_Test.pine"
    assert "scripts/core" in plan.folders_to_create


def test_delete_pattern_wins_over_everything(project_root: Path) -> None:
    """Ensure delete patterns take precedence over move and archive rules.

    Args:
        project_root: Empty project directory fixture.
    """
    _touch(project_root, "notes.DS_Store")
    _touch(project_root, "BTMM_Core_debug.log")

    plan = _plan(project_root)

    assert sorted(file.name for file in plan.to_delete) == ["BTMM_Core_debug.log", "notes.DS_Store"]
    assert plan.to_move == []
    assert plan.to_archive == []


def test_archive_wins_over_move(project_root: Path) -> None:
    """Ensure archive patterns take precedence over move rules.

    Args:
        project_root: Empty project directory fixture.
    """
    _touch(project_root, "README_legacy.md")

    plan = _plan(project_root)

    assert plan.to_move == []
    assert [operation.target_dir for operation in plan.to_archive] == ["archives/legacy/"]


def test_files_already_in_place_are_kept(project_root: Path) -> None:
    """Ensure an organized tree produces an empty plan.

    Args:
        project_root: Empty project directory fixture.
    """
    _touch(project_root, "scripts/core/BTMM_Core_Engine.pine")
    _touch(project_root, "archives/legacy/old_setup.bak")
    _touch(project_root, "package.json", "{}")

    plan = _plan(project_root)

    assert plan.is_empty


def test_conflicting_destination_gets_numeric_suffix(project_root: Path) -> None:
    """Ensure a taken destination name is suffixed instead of overwritten.

    Args:
        project_root: Empty project directory fixture.
    """
    _touch(project_root, "scripts/core/BTMM_Core_A.pine", "existing")
    _touch(project_root, "BTMM_Core_A.pine", "incoming")

    plan = _plan(project_root)

    assert len(plan.to_move) == 1
    operation = plan.to_move[0]
    assert operation.target_path.name == "BTMM_Core_A-1.pine"
    assert operation.conflict_applied is True


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("BTMM_Core_Template.pine", "scripts/core/"),
        ("my_template.pine", "scripts/templates/"),
        ("package.json", ""),
        ("app_settings.yaml", "configs/"),
        ("unmatched.xyz", None),
    ],
)
def test_resolve_target_is_first_match(name: str, expected: str | None) -> None:
    """Ensure the first matching rule decides the target.

    Args:
        name: File name to classify.
        expected: Target directory, ``""`` for keep, or ``None`` for no rule.
    """
    assert resolve_target(name) == expected


def test_scanner_skips_hidden_and_dependency_dirs(project_root: Path) -> None:
    """Ensure dot-entries and configured directories are never scanned.

    Args:
        project_root: Empty project directory fixture.
    """
    _touch(project_root, ".git/config")
    _touch(project_root, "node_modules/pkg/index.js")
    _touch(project_root, ".env")
    _touch(project_root, ".cursor/rules/learned-practices.mdc")
    _touch(project_root, "backups/pre-organization/backup-1/a.pine")
    _touch(project_root, "docs/guide.md")

    scanner = RepositoryScanner(
        project_root, skip_dirs=("node_modules", "backups/pre-organization")
    )
    relative = sorted(file.relative_path for file in scanner.scan())

    assert relative == [".cursor/rules/learned-practices.mdc", "docs/guide.md"]


def test_scanner_includes_nested_dotfiles_only_on_request(project_root: Path) -> None:
    """Ensure nested dotfiles are opt-in and root dotfiles are always skipped.

    Args:
        project_root: Empty project directory fixture.
    """
    _touch(project_root, ".pinevault.yaml")
    _touch(project_root, "docs/.DS_Store")
    _touch(project_root, "docs/guide.md")
    _touch(project_root, "docs/.hidden/notes.md")
    scanner = RepositoryScanner(project_root)

    default = sorted(file.relative_path for file in scanner.iter_files())
    widened = sorted(file.relative_path for file in scanner.iter_files(include_hidden_files=True))

    assert default == ["docs/guide.md"]
    assert widened == ["docs/.DS_Store", "docs/guide.md"]


def test_scanner_reports_root_files_with_empty_dir(project_root: Path) -> None:
    """Ensure root-level files carry an empty ``dir``.

    Args:
        project_root: Empty project directory fixture.
    """
    _touch(project_root, "README.md")

    [file] = RepositoryScanner(project_root).scan()

    assert file.dir == ""
    assert file.relative_path == "README.md"
    assert file.size == 1


def test_scanner_survives_symlink_cycles(project_root: Path) -> None:
    """Ensure directory symlinks are not followed.

    Args:
        project_root: Empty project directory fixture.
    """
    _touch(project_root, "docs/guide.md")
    os.symlink(project_root, project_root / "docs" / "loop", target_is_directory=True)

    files = RepositoryScanner(project_root).scan()

    assert [file.relative_path for file in files] == ["docs/guide.md"]
