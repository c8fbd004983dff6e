"""Tests for the Pine Script linter."""

from __future__ import annotations

from pathlib import Path

from pinevault.validation import find_pine_files, lint_file, lint_project


def _write(root: Path, relative: str, text: str) -> Path:
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


def test_valid_script_has_no_errors(tmp_path: Path, valid_script: str) -> None:
    """Ensure a complete script produces no errors or EMA warnings.

    Args:
        tmp_path: Temporary directory provided by pytest.
        valid_script: Known-good script fixture.
    """
    result = lint_file(_write(tmp_path, "ema.pine", valid_script))

    assert result.valid
    assert result.errors == []
    codes = {issue.code for issue in result.issues}
    assert "no-inputs" not in codes
    assert "ema-13" not in codes


def test_missing_header_and_declaration_are_errors(tmp_path: Path) -> None:
    """Ensure a v4 ``study`` script fails the two syntax errors in order.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    result = lint_file(_write(tmp_path, "bad.pine", "// @version=4\nstudy('x')\n"))

    assert not result.valid
    assert [issue.code for issue in result.errors] == ["version-header", "indicator-declaration"]


def test_methodology_findings_use_warning_and_info(tmp_path: Path) -> None:
    """Ensure methodology checks report with their documented severities.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    content = '//@version=5\nindicator("Plain")\n'

    result = lint_file(_write(tmp_path, "plain.pine", content))

    severities = {issue.code: issue.severity for issue in result.issues}
    assert severities["ema-names"] == "warning"
    assert severities["second-leg"] == "warning"
    assert severities["sessions"] == "info"
    assert severities["mw-patterns"] == "info"


def test_methodology_messages_explain_the_finding(tmp_path: Path) -> None:
    """Ensure methodology messages carry their explanatory suffixes.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    content = '//@version=5\nindicator("Plain")\n'

    result = lint_file(_write(tmp_path, "plain.pine", content))

    messages = {issue.code: issue.message for issue in result.issues}
    assert messages["ema-13"] == (
        "Missing EMA 13 (Ketchup line) - critical for BTMM methodology"
    )
    assert messages["second-leg"].endswith("- BTMM focuses on second leg completion")
    assert messages["sessions"].endswith("- BTMM methodology emphasizes session timing")
    assert messages["tdi"] == (
        "No TDI (Traders Dynamic Index) integration found - consider adding for confluence"
    )


def test_find_pine_files_skips_hidden_directories(tmp_path: Path) -> None:
    """Ensure discovery recurses but ignores dot-directories and other suffixes.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    _write(tmp_path, "indicators/a.pine", "x")
    _write(tmp_path, "indicators/nested/b.pine", "x")
    _write(tmp_path, "indicators/.drafts/c.pine", "x")
    _write(tmp_path, "indicators/readme.md", "x")

    names = [path.name for path in find_pine_files(tmp_path / "indicators")]

    assert names == ["a.pine", "b.pine"]


def test_project_without_directories_fails(tmp_path: Path) -> None:
    """Ensure a project with no script directories fails with one problem.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    report = lint_project(tmp_path)

    assert not report.passed
    assert report.problems == [
        "No Pine Script directories found (indicators/, templates/, examples/)"
    ]


def test_project_without_files_fails(tmp_path: Path) -> None:
    """Ensure an empty script directory fails the run.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    (tmp_path / "templates").mkdir()

    report = lint_project(tmp_path)

    assert not report.passed
    assert report.problems == ["No Pine Script files (.pine) found to validate"]


def test_warnings_do_not_fail_but_errors_do(tmp_path: Path, valid_script: str) -> None:
    """Ensure only error-level findings fail a project run.

    Args:
        tmp_path: Temporary directory provided by pytest.
        valid_script: Known-good script fixture.
    """
    _write(tmp_path, "indicators/ema.pine", valid_script)

    report = lint_project(tmp_path)
    assert report.passed
    assert report.warning_count >= 1

    _write(tmp_path, "examples/broken.pine", "plot(close)\n")
    report = lint_project(tmp_path)
    assert not report.passed
    assert report.valid_files == 1


def test_tdi_check_requires_an_rsi_call(tmp_path: Path) -> None:
    """Ensure the ``rsi`` inside ``//@version`` does not satisfy the TDI check.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    header = '//@version=5\nindicator("Plain")\n'

    without = lint_file(_write(tmp_path, "a.pine", header))
    with_rsi = lint_file(_write(tmp_path, "b.pine", header + "r = ta.rsi(close, 13)\n"))

    assert "tdi" in {issue.code for issue in without.issues}
    assert "tdi" not in {issue.code for issue in with_rsi.issues}
