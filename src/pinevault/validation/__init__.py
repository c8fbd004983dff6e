"""Pine Script linting for indicator, template, and example sources."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence

from .models import FileLintResult, LintIssue, LintReport
from .rules import DEFAULT_CHECKS, Check, run_checks

LOGGER = logging.getLogger(__name__)

DEFAULT_SEARCH_DIRS: tuple[str, ...] = ("indicators", "templates", "examples")


def lint_file(path: Path, checks: Iterable[Check] = DEFAULT_CHECKS) -> FileLintResult:
    """Lint a single file. Read failures are reported on the result, not raised."""
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.error("Could not read %s: %s", path, exc)
        return FileLintResult(path=path, read_error=str(exc))
    return FileLintResult(path=path, issues=run_checks(content, checks))


def find_pine_files(directory: Path) -> list[Path]:
    """Return ``.pine`` files below ``directory``, skipping hidden subdirectories."""
    files: list[Path] = []
    try:
        entries = sorted(directory.iterdir())
    except OSError as exc:
        LOGGER.warning("Could not read directory %s: %s", directory, exc)
        return files
    for entry in entries:
        if entry.is_dir():
            if not entry.name.startswith("."):
                files.extend(find_pine_files(entry))
        elif entry.is_file() and entry.suffix == ".pine":
            files.append(entry)
    return files


def lint_project(
    root: Path,
    search_dirs: Sequence[str] = DEFAULT_SEARCH_DIRS,
    checks: Iterable[Check] = DEFAULT_CHECKS,
) -> LintReport:
    """Lint every ``.pine`` file in the project's search directories.

    The run fails when none of the search directories exist, when they hold
    no ``.pine`` files, or when any file has an error-level issue.
    """
    checks = tuple(checks)
    report = LintReport(directories=[root / name for name in search_dirs if (root / name).is_dir()])
    if not report.directories:
        joined = ", ".join(f"{name}/" for name in search_dirs)
        report.problems.append(f"No Pine Script directories found ({joined})")
        return report

    for directory in report.directories:
        found = find_pine_files(directory)
        LOGGER.info("Found %d files in %s", len(found), directory.relative_to(root))
        report.files.extend(lint_file(path, checks) for path in found)

    if not report.files:
        report.problems.append("No Pine Script files (.pine) found to validate")
    LOGGER.info(
        "Lint summary: files=%d valid=%d warnings=%d",
        len(report.files),
        report.valid_files,
        report.warning_count,
    )
    return report


__all__ = [
    "lint_file",
    "lint_project",
    "find_pine_files",
    "FileLintResult",
    "LintIssue",
    "LintReport",
    "DEFAULT_SEARCH_DIRS",
]
