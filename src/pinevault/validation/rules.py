"""Text checks applied to Pine Script sources.

Checks are heuristics over raw text. They flag missing structure and
trading-methodology conventions; they do not parse the language.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, Optional

from .models import LintIssue, Severity

EMA_NAMES = ("mustard", "ketchup", "water", "mayo", "blueberry")
SESSION_TERMS = ("london", "ny", "session", "asian")
RSI_PATTERN = re.compile(r"\brsi\b")
SECOND_LEG_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (r"second_leg", r"second leg", r"leg.*2", r"2.*leg")
)
PATTERN_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (r"m_pattern", r"w_pattern", r"m.*pattern", r"w.*pattern")
)

Check = Callable[[str], Optional[LintIssue]]


def _issue(severity: Severity, code: str, message: str) -> LintIssue:
    return LintIssue(severity=severity, code=code, message=message)


def check_version_header(content: str) -> Optional[LintIssue]:
    if content.startswith("//@version=5"):
        return None
    return _issue("error", "version-header", "Missing or incorrect @version=5 header")


def check_indicator_declaration(content: str) -> Optional[LintIssue]:
    if "indicator(" in content:
        return None
    return _issue("error", "indicator-declaration", "Missing indicator() declaration")


def check_inputs(content: str) -> Optional[LintIssue]:
    if "input." in content:
        return None
    return _issue(
        "warning", "no-inputs", "No input parameters found - consider adding user controls"
    )


def check_visuals(content: str) -> Optional[LintIssue]:
    if "plot(" in content or "plotshape(" in content:
        return None
    return _issue(
        "warning", "no-visuals", "No visual elements found - indicator may not display anything"
    )


def check_alerts(content: str) -> Optional[LintIssue]:
    if "alertcondition(" in content:
        return None
    return _issue("warning", "no-alerts", "No alert conditions found - users cannot set alerts")


def check_ema_names(content: str) -> Optional[LintIssue]:
    lowered = content.lower()
    if any(name in lowered for name in EMA_NAMES):
        return None
    return _issue(
        "warning",
        "ema-names",
        "No EMA food name references found (Mustard, Ketchup, Water, Mayo, Blueberry)",
    )


def check_ketchup_line(content: str) -> Optional[LintIssue]:
    if "13" in content and "ketchup" in content.lower():
        return None
    return _issue(
        "warning", "ema-13", "Missing EMA 13 (Ketchup line) - critical for BTMM methodology"
    )


def check_second_leg(content: str) -> Optional[LintIssue]:
    if any(pattern.search(content) for pattern in SECOND_LEG_PATTERNS):
        return None
    return _issue(
        "warning",
        "second-leg",
        "No second leg pattern references found - BTMM focuses on second leg completion",
    )


def check_mw_patterns(content: str) -> Optional[LintIssue]:
    if any(pattern.search(content) for pattern in PATTERN_PATTERNS):
        return None
    return _issue(
        "info", "mw-patterns", "No M&W pattern detection found - consider adding if relevant"
    )


def check_sessions(content: str) -> Optional[LintIssue]:
    lowered = content.lower()
    if any(term in lowered for term in SESSION_TERMS):
        return None
    return _issue(
        "info",
        "sessions",
        "No session analysis found - BTMM methodology emphasizes session timing",
    )


def check_tdi(content: str) -> Optional[LintIssue]:
    # Whole word, so the "rsi" inside "//@version" does not count.
    if "tdi" in content.lower() or RSI_PATTERN.search(content):
        return None
    return _issue(
        "info",
        "tdi",
        "No TDI (Traders Dynamic Index) integration found - consider adding for confluence",
    )


SYNTAX_CHECKS: tuple[Check, ...] = (
    check_version_header,
    check_indicator_declaration,
    check_inputs,
    check_visuals,
    check_alerts,
)

METHODOLOGY_CHECKS: tuple[Check, ...] = (
    check_ema_names,
    check_ketchup_line,
    check_second_leg,
    check_mw_patterns,
    check_sessions,
    check_tdi,
)

DEFAULT_CHECKS: tuple[Check, ...] = SYNTAX_CHECKS + METHODOLOGY_CHECKS


def run_checks(content: str, checks: Iterable[Check] = DEFAULT_CHECKS) -> list[LintIssue]:
    """Run ``checks`` in order and collect their findings."""
    issues = []
    for check in checks:
        issue = check(content)
        if issue is not None:
            issues.append(issue)
    return issues


__all__ = [
    "Check",
    "DEFAULT_CHECKS",
    "SYNTAX_CHECKS",
    "METHODOLOGY_CHECKS",
    "run_checks",
]
