"""Lint result models."""

from __future__ import annotations

from pathlib import Path
from typing import List, Literal

from pydantic import BaseModel, Field

Severity = Literal["error", "warning", "info"]


class LintIssue(BaseModel):
    """A single finding for one file."""

    severity: Severity
    code: str
    message: str


class FileLintResult(BaseModel):
    """Findings for one ``.pine`` file.

    Attributes:
        path: File that was linted.
        issues: Findings in check order.
        read_error: Set when the file could not be read; counts as an error.
    """

    path: Path
    issues: List[LintIssue] = Field(default_factory=list)
    read_error: str | None = None

    def by_severity(self, severity: Severity) -> list[LintIssue]:
        return [issue for issue in self.issues if issue.severity == severity]

    @property
    def errors(self) -> list[LintIssue]:
        return self.by_severity("error")

    @property
    def warnings(self) -> list[LintIssue]:
        return self.by_severity("warning")

    @property
    def valid(self) -> bool:
        return self.read_error is None and not self.errors


class LintReport(BaseModel):
    """Project-wide lint outcome.

    ``problems`` holds run-level failures such as missing search
    directories; any problem or any file error fails the run.
    """

    directories: List[Path] = Field(default_factory=list)
    files: List[FileLintResult] = Field(default_factory=list)
    problems: List[str] = Field(default_factory=list)

    @property
    def valid_files(self) -> int:
        return sum(1 for result in self.files if result.valid)

    @property
    def warning_count(self) -> int:
        return sum(len(result.warnings) for result in self.files)

    @property
    def passed(self) -> bool:
        return not self.problems and all(result.valid for result in self.files)


__all__ = ["Severity", "LintIssue", "FileLintResult", "LintReport"]
