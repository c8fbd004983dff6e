"""Structural heuristics for restored indicator scripts.

These checks are sanity tests on text, not a parser: they catch truncated
or obviously corrupted restores and little else.
"""

from __future__ import annotations

from pathlib import Path

from pinevault.config.models import RestoreCheckSettings

from .models import RestoreValidation


def check_balanced_parentheses(content: str) -> bool:
    """Return True when every ``)`` closes an earlier ``(`` and none remain open."""
    depth = 0
    for char in content:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def validate_content(
    path: Path,
    content: str,
    settings: RestoreCheckSettings | None = None,
) -> RestoreValidation:
    """Score ``content`` against the five restore checks."""
    settings = settings or RestoreCheckSettings()
    checks = {
        "has_version_declaration": settings.version_marker in content,
        "has_indicator_declaration": settings.declaration_marker in content,
        "no_error_markers": not any(marker in content for marker in settings.error_markers),
        "balanced_parentheses": check_balanced_parentheses(content),
        "reasonable_size": settings.min_length <= len(content) < settings.max_length,
    }
    return RestoreValidation(path=path, checks=checks)


def validate_file(path: Path, settings: RestoreCheckSettings | None = None) -> RestoreValidation:
    """Read ``path`` and run :func:`validate_content` on it.

    A missing or unreadable file yields a single failed ``file_exists`` check.
    """
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return RestoreValidation(path=path, checks={"file_exists": False})
    return validate_content(path, content, settings)


__all__ = ["check_balanced_parentheses", "validate_content", "validate_file"]
