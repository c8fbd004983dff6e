"""Tests for restore, validation, and emergency rollback."""

from __future__ import annotations

from pathlib import Path

from pinevault.config.models import PROTECTED_SCRIPTS
from pinevault.rollback import PRE_RESTORE_REASON, RollbackManager


def _live_script(root: Path, name: str, text: str, subdir: str = "core") -> Path:
    """Write a live script under ``scripts/<subdir>``.

    Args:
        root: Project root.
        name: Script file name.
        text: Script contents.
        subdir: Directory below ``scripts`` to place the script in.

    Returns:
        Path: The written script.
    """
    directory = root / "scripts" / subdir
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(text, encoding="utf-8")
    return path


def test_find_script_path_prefers_scripts_dir(project_root: Path) -> None:
    """Ensure ``scripts/<name>`` wins over copies in subdirectories.

    Args:
        project_root: Empty project directory fixture.
    """
    nested = _live_script(project_root, "BTMM_EMA_System.pine", "nested")
    manager = RollbackManager(project_root)

    assert manager.find_script_path("BTMM_EMA_System.pine") == nested

    top = project_root / "scripts" / "BTMM_EMA_System.pine"
    top.write_text("top", encoding="utf-8")
    assert manager.find_script_path("BTMM_EMA_System.pine") == top


def test_backup_then_restore_yields_identical_content(
    project_root: Path, valid_script: str
) -> None:
    """Ensure a restore brings back the backed-up bytes and saves the old copy.

    Args:
        project_root: Empty project directory fixture.
        valid_script: Known-good script fixture.
    """
    live = _live_script(project_root, "BTMM_EMA_System.pine", valid_script)
    manager = RollbackManager(project_root)
    assert manager.store.create_backup(live, "pre-merge") is not None

    live.write_text("broken(", encoding="utf-8")
    assert manager.restore_from_backup("BTMM_EMA_System.pine", "pre-merge") is True

    assert live.read_text(encoding="utf-8") == valid_script
    pre_restore = manager.store.backups_for_script("BTMM_EMA_System.pine", PRE_RESTORE_REASON)
    assert len(pre_restore) == 1
    assert pre_restore[0].path.read_text(encoding="utf-8") == "broken("


def test_restore_fails_without_target_or_backups(project_root: Path) -> None:
    """Ensure restore reports failure when the script or its backups are missing.

    Args:
        project_root: Empty project directory fixture.
    """
    manager = RollbackManager(project_root)

    assert manager.restore_from_backup("BTMM_EMA_System.pine") is False

    _live_script(project_root, "BTMM_EMA_System.pine", "live")
    assert manager.restore_from_backup("BTMM_EMA_System.pine") is False


def test_validate_after_restore_reports_failed_checks(project_root: Path) -> None:
    """Ensure every failed heuristic is listed for a truncated script.

    Args:
        project_root: Empty project directory fixture.
    """
    live = _live_script(project_root, "BTMM_EMA_System.pine", "//@version=5\nindicator(")
    manager = RollbackManager(project_root)

    result = manager.validate_after_restore(live)

    assert result.valid is False
    assert set(result.failures) == {"balanced_parentheses", "reasonable_size"}


def test_emergency_rollback_without_backups_reports_every_script(project_root: Path) -> None:
    """Ensure each protected script gets a failed result when nothing can be restored.

    Args:
        project_root: Empty project directory fixture.
    """
    manager = RollbackManager(project_root)

    results = manager.emergency_rollback_all("pre-merge")

    assert len(results) == 10
    assert [result.script for result in results] == list(PROTECTED_SCRIPTS)
    assert all(not result.success and not result.valid for result in results)


def test_emergency_rollback_continues_after_failures(
    project_root: Path, valid_script: str
) -> None:
    """Ensure one failing script does not stop the rest of the rollback.

    Args:
        project_root: Empty project directory fixture.
        valid_script: Known-good script fixture.
    """
    live = _live_script(project_root, "BTMM_Alert_System.pine", valid_script, subdir="alerts")
    manager = RollbackManager(project_root)
    manager.store.create_backup(live, "pre-merge")
    live.write_text("corrupted", encoding="utf-8")

    results = {result.script: result for result in manager.emergency_rollback_all()}

    assert results["BTMM_Alert_System.pine"].success is True
    assert results["BTMM_Alert_System.pine"].valid is True
    assert live.read_text(encoding="utf-8") == valid_script
    failed = [name for name, result in results.items() if not result.success]
    assert len(failed) == 9


def test_backup_all_scripts_only_takes_managed_scripts(project_root: Path) -> None:
    """Ensure bulk backup picks only ``BTMM_*.pine`` files below ``scripts``.

    Args:
        project_root: Empty project directory fixture.
    """
    _live_script(project_root, "BTMM_Core.pine", "a")
    _live_script(project_root, "BTMM_Overlay.pine", "b", subdir="visuals")
    _live_script(project_root, "helper.pine", "c")
    manager = RollbackManager(project_root)

    results = manager.backup_all_scripts("nightly")

    assert sorted(result.script for result in results) == ["BTMM_Core.pine", "BTMM_Overlay.pine"]
    assert all(result.success for result in results)
    assert len(manager.store.backups_for_script("BTMM_Core.pine", "nightly")) == 1
