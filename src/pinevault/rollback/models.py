"""Result models for restore and rollback operations."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


class RestoreValidation(BaseModel):
    """Outcome of the heuristic checks run against restored content.

    Attributes:
        path: File that was checked.
        checks: Mapping of check name to pass/fail, in evaluation order.
    """

    path: Path
    checks: dict[str, bool] = Field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return bool(self.checks) and all(self.checks.values())

    @property
    def failures(self) -> List[str]:
        return [name for name, passed in self.checks.items() if not passed]


class RollbackResult(BaseModel):
    """Per-script outcome of an emergency rollback."""

    script: str
    success: bool
    valid: bool
    failures: List[str] = Field(default_factory=list)


class ScriptBackupResult(BaseModel):
    """Per-script outcome of a bulk backup."""

    script: str
    success: bool
    backup_path: Optional[Path] = None


__all__ = ["RestoreValidation", "RollbackResult", "ScriptBackupResult"]
