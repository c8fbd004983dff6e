"""CLI tests using Click's runner."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner, Result

from pinevault.cli import cli
from pinevault.config import ConfigManager
from pinevault.enforcement import EnforcementError


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    """Return an environment with ``HOME`` redirected and no pinevault overrides.

    Args:
        tmp_path: Temporary directory used as the home directory.

    Returns:
        dict[str, Any]: Environment mapping for the CLI runner.
    """
    env = {key: value for key, value in os.environ.items() if not key.startswith("PINEVAULT__")}
    env["HOME"] = str(tmp_path)
    return env


def _invoke(tmp_path: Path, root: Path, *args: str) -> Result:
    """Invoke the CLI against ``root`` with an isolated home directory.

    Args:
        tmp_path: Temporary directory used as the home directory.
        root: Project root passed via ``--root``.
        *args: Command-line arguments after ``--root``.

    Returns:
        Result: Click runner result.
    """
    runner = CliRunner()
    return runner.invoke(cli, ["--root", str(root), *args], env=_env_with_home(tmp_path))


def _script(root: Path, name: str, text: str, subdir: str = "core") -> Path:
    """Write a live script under ``scripts/<subdir>``.

    Args:
        root: Project root.
        name: Script file name.
        text: Script contents.
        subdir: Directory below ``scripts``.

    Returns:
        Path: The written script.
    """
    path = root / "scripts" / subdir / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_cli_help_lists_commands() -> None:
    """Ensure the top-level help lists every command group."""
    result = CliRunner().invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ("rollback", "organize", "scan", "enforce", "lint", "config"):
        assert command in result.output


def test_rollback_list_empty(tmp_path: Path, project_root: Path) -> None:
    """Ensure listing an empty store prints a friendly message.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
    """
    result = _invoke(tmp_path, project_root, "rollback", "list")

    assert result.exit_code == 0
    assert "No backups found" in result.output


def test_rollback_backup_then_list(tmp_path: Path, project_root: Path, valid_script: str) -> None:
    """Ensure a bulk backup shows up in the listing and releases its lock.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
        valid_script: Known-good script fixture.
    """
    _script(project_root, "BTMM_EMA_System.pine", valid_script)

    backup = _invoke(tmp_path, project_root, "rollback", "backup", "pre-merge")
    listing = _invoke(tmp_path, project_root, "rollback", "list")

    assert backup.exit_code == 0
    assert "succeeded=1" in backup.output
    assert listing.exit_code == 0
    assert "backups=1" in listing.output
    assert not (project_root / "backups" / ".pinevault.lock").exists()


def test_rollback_restore_round_trip(
    tmp_path: Path, project_root: Path, valid_script: str
) -> None:
    """Ensure restore brings back the backed-up script and validates it.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
        valid_script: Known-good script fixture.
    """
    live = _script(project_root, "BTMM_EMA_System.pine", valid_script)
    _invoke(tmp_path, project_root, "rollback", "backup")
    live.write_text("damaged", encoding="utf-8")

    result = _invoke(tmp_path, project_root, "rollback", "restore", "BTMM_EMA_System.pine")

    assert result.exit_code == 0
    assert "Validation passed" in result.output
    assert live.read_text(encoding="utf-8") == valid_script


def test_rollback_restore_failure_exits_one(tmp_path: Path, project_root: Path) -> None:
    """Ensure a failed restore exits with status 1.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
    """
    result = _invoke(tmp_path, project_root, "rollback", "restore", "BTMM_EMA_System.pine")

    assert result.exit_code == 1


def test_rollback_emergency_without_backups_exits_one(tmp_path: Path, project_root: Path) -> None:
    """Ensure emergency rollback reports all ten failures and exits 1.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
    """
    result = _invoke(tmp_path, project_root, "rollback", "emergency")

    assert result.exit_code == 1
    assert "failed=10" in result.output


def test_rollback_cleanup_uses_keep_count(
    tmp_path: Path, project_root: Path, valid_script: str
) -> None:
    """Ensure cleanup keeps the requested number of backups per script.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
        valid_script: Known-good script fixture.
    """
    _script(project_root, "BTMM_EMA_System.pine", valid_script)
    for reason in ("a", "b", "c"):
        _invoke(tmp_path, project_root, "rollback", "backup", reason)

    result = _invoke(tmp_path, project_root, "rollback", "cleanup", "1")

    assert result.exit_code == 0
    assert "removed=2" in result.output
    remaining = [path for path in (project_root / "backups").iterdir()]
    assert len(remaining) == 1


def test_organize_and_scan(tmp_path: Path, project_root: Path) -> None:
    """Ensure scan previews the plan and organize applies it.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
    """
    (project_root / "BTMM_Core_Test.pine").write_text("//@version=5\n", encoding="utf-8")

    preview = _invoke(tmp_path, project_root, "scan", "--plan")
    assert preview.exit_code == 0
    assert "scripts/core/" in preview.output

    result = _invoke(tmp_path, project_root, "organize")
    assert result.exit_code == 0
    assert "moved=1" in result.output
    assert (project_root / "scripts" / "core" / "BTMM_Core_Test.pine").exists()


def test_organize_leaves_configured_backup_directory_alone(
    tmp_path: Path, project_root: Path
) -> None:
    """Ensure a custom ``backup.directory`` is skipped by organize.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
    """
    (project_root / ".pinevault.yaml").write_text(
        "backup:\n  directory: vault\n", encoding="utf-8"
    )
    vault = project_root / "vault"
    vault.mkdir()
    (vault / "old_setup.bak").write_text("x", encoding="utf-8")
    (vault / "scratch.tmp").write_text("x", encoding="utf-8")

    result = _invoke(tmp_path, project_root, "organize", "--json")

    assert result.exit_code == 0
    assert (vault / "old_setup.bak").exists()
    assert (vault / "scratch.tmp").exists()
    assert '"deleted": 0' in result.output


def test_organize_path_argument_overrides_root(tmp_path: Path, project_root: Path) -> None:
    """Ensure a PATH argument is used instead of the current directory.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
    """
    (project_root / "stale.tmp").write_text("x", encoding="utf-8")

    result = CliRunner().invoke(
        cli, ["organize", str(project_root), "--json"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0
    assert '"deleted": 1' in result.output


def test_lint_without_directories_fails(tmp_path: Path, project_root: Path) -> None:
    """Ensure lint exits 1 when no script directories exist.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
    """
    result = _invoke(tmp_path, project_root, "lint")

    assert result.exit_code == 1
    assert "No Pine Script directories found" in result.output


def test_lint_passes_with_warnings(tmp_path: Path, project_root: Path, valid_script: str) -> None:
    """Ensure warnings alone do not fail lint.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
        valid_script: Known-good script fixture.
    """
    (project_root / "indicators").mkdir()
    (project_root / "indicators" / "ema.pine").write_text(valid_script, encoding="utf-8")

    result = _invoke(tmp_path, project_root, "lint")

    assert result.exit_code == 0
    assert "valid=1" in result.output


def test_enforce_failure_exits_one(
    tmp_path: Path, project_root: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Ensure enforcement failures are printed and exit 1.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
        monkeypatch: Pytest fixture for replacing ``CommitEnforcer.enforce``.
    """

    def _fail(self: object, context: str = "manual_execution", token: object = None) -> None:
        raise EnforcementError(f"Commit enforcement failed for {context}")

    monkeypatch.setattr("pinevault.cli.CommitEnforcer.enforce", _fail)

    result = _invoke(tmp_path, project_root, "enforce", "ci")

    assert result.exit_code == 1
    assert "Commit enforcement failed for ci" in result.output


def test_config_view_creates_and_displays_config(tmp_path: Path, project_root: Path) -> None:
    """Ensure ``config view`` creates the user file and prints it.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
    """
    result = _invoke(tmp_path, project_root, "config", "view")

    assert result.exit_code == 0
    assert "backup:" in result.output


def test_config_set_updates_value(tmp_path: Path, project_root: Path) -> None:
    """Ensure ``config set`` persists a validated value.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
    """
    result = _invoke(
        tmp_path, project_root, "config", "set", "backup.keep_count", "--value", "4"
    )

    assert result.exit_code == 0
    manager = ConfigManager(config_path=tmp_path / ".pinevault" / "config.yaml", env={})
    assert manager.load().backup.keep_count == 4


def test_config_set_rejects_invalid_value(tmp_path: Path, project_root: Path) -> None:
    """Ensure ``config set`` refuses values that fail validation.

    Args:
        tmp_path: Temporary directory provided by pytest.
        project_root: Empty project directory fixture.
    """
    result = _invoke(
        tmp_path, project_root, "config", "set", "backup.keep_count", "--value", "lots"
    )

    assert result.exit_code == 1
