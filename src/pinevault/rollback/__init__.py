"""Restore, validate, and bulk-rollback indicator scripts from the backup store."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterator, Optional

from pinevault.backup import BackupStore
from pinevault.config.models import BackupSettings, RestoreCheckSettings

from .models import RestoreValidation, RollbackResult, ScriptBackupResult
from .validation import check_balanced_parentheses, validate_file

LOGGER = logging.getLogger(__name__)

PRE_RESTORE_REASON = "pre-restore"


class RollbackManager:
    """Coordinate the backup store with the live script tree.

    Args:
        project_root: Repository root; backup and script directories resolve against it.
        settings: Backup settings (directories, protected scripts).
        checks: Heuristics used by :meth:`validate_after_restore`.
        store: Optional pre-built store, mainly for tests.
    """

    def __init__(
        self,
        project_root: Path,
        settings: BackupSettings | None = None,
        checks: RestoreCheckSettings | None = None,
        store: BackupStore | None = None,
    ) -> None:
        self._root = project_root
        self._settings = settings or BackupSettings()
        self._checks = checks or RestoreCheckSettings()
        self._store = store or BackupStore(project_root / self._settings.directory)

    @property
    def store(self) -> BackupStore:
        return self._store

    @property
    def scripts_dir(self) -> Path:
        return self._root / self._settings.scripts_dir

    @property
    def protected_scripts(self) -> list[str]:
        return list(self._settings.protected_scripts)

    def find_script_path(self, script_name: str) -> Optional[Path]:
        """Return the first existing live copy of ``script_name``.

        The scripts directory is checked first, then each configured
        subdirectory in order.
        """
        for directory in self._candidate_dirs(self._settings.search_subdirs):
            candidate = directory / script_name
            if candidate.is_file():
                return candidate
        return None

    def restore_from_backup(self, script_name: str, reason: Optional[str] = None) -> bool:
        """Overwrite the live script with its newest matching backup.

        A ``pre-restore`` backup of the live file is taken first so the
        restore itself can be undone. The restored content is not validated
        here; call :meth:`validate_after_restore` for that.

        Returns:
            bool: True if the live file was overwritten.
        """
        target = self.find_script_path(script_name)
        if target is None:
            LOGGER.warning("Target script not found: %s", script_name)
            return False

        backups = self._store.backups_for_script(script_name, reason)
        if not backups:
            if reason:
                LOGGER.warning("No %s backups found for %s", reason, script_name)
            else:
                LOGGER.warning("No backups found for %s", script_name)
            return False

        latest = backups[0]
        try:
            self._store.create_backup(target, PRE_RESTORE_REASON)
            shutil.copyfile(latest.path, target)
        except OSError as exc:
            LOGGER.error("Restore of %s failed: %s", script_name, exc)
            return False

        LOGGER.info(
            "Restored %s from %s (taken %s, reason %s)",
            script_name,
            latest.file_name,
            latest.date.isoformat(),
            latest.reason,
        )
        return True

    def validate_after_restore(self, path: Path) -> RestoreValidation:
        """Run the restore heuristics against ``path`` and log failures by name."""
        result = validate_file(path, self._checks)
        if result.valid:
            LOGGER.info("Restored script validation passed: %s", path.name)
        else:
            LOGGER.warning(
                "Restored script validation failed for %s: %s",
                path.name,
                ", ".join(result.failures),
            )
        return result

    def emergency_rollback_all(self, reason: Optional[str] = None) -> list[RollbackResult]:
        """Restore and validate every protected script.

        Every script is attempted regardless of earlier failures.
        """
        reason = reason or self._settings.emergency_reason
        LOGGER.warning("Emergency rollback of all protected scripts to last %s state", reason)

        results: list[RollbackResult] = []
        for script in self._settings.protected_scripts:
            if not self.restore_from_backup(script, reason):
                results.append(
                    RollbackResult(script=script, success=False, valid=False, failures=["restore"])
                )
                continue
            path = self.find_script_path(script)
            if path is None:
                results.append(
                    RollbackResult(
                        script=script, success=True, valid=False, failures=["file_exists"]
                    )
                )
                continue
            validation = self.validate_after_restore(path)
            results.append(
                RollbackResult(
                    script=script,
                    success=True,
                    valid=validation.valid,
                    failures=validation.failures,
                )
            )

        restored = sum(1 for result in results if result.success and result.valid)
        LOGGER.info(
            "Emergency rollback summary: total=%d restored=%d failed=%d",
            len(results),
            restored,
            len(results) - restored,
        )
        return results

    def iter_managed_scripts(self) -> Iterator[Path]:
        """Yield every managed ``.pine`` script in the inventory directories."""
        prefix = self._settings.script_prefix
        for directory in self._candidate_dirs(self._settings.inventory_subdirs):
            if not directory.is_dir():
                continue
            for entry in sorted(directory.iterdir()):
                if entry.is_file() and entry.suffix == ".pine" and entry.name.startswith(prefix):
                    yield entry

    def backup_all_scripts(self, reason: str = "manual") -> list[ScriptBackupResult]:
        """Back up every managed script with the same reason tag."""
        results = []
        for script in self.iter_managed_scripts():
            backup_path = self._store.create_backup(script, reason)
            results.append(
                ScriptBackupResult(
                    script=script.name,
                    success=backup_path is not None,
                    backup_path=backup_path,
                )
            )
        succeeded = sum(1 for result in results if result.success)
        LOGGER.info(
            "Backup summary (%s): total=%d succeeded=%d failed=%d",
            reason,
            len(results),
            succeeded,
            len(results) - succeeded,
        )
        return results

    def _candidate_dirs(self, subdirs: list[str]) -> list[Path]:
        return [self.scripts_dir, *(self.scripts_dir / subdir for subdir in subdirs)]


__all__ = [
    "RollbackManager",
    "RestoreValidation",
    "RollbackResult",
    "ScriptBackupResult",
    "PRE_RESTORE_REASON",
    "check_balanced_parentheses",
]
