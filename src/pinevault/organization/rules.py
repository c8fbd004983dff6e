"""Ordered classification rules for repository files.

Every list in this module is evaluated top to bottom with early exit. Once
an earlier entry matches a file, later entries are never consulted, so the
order of rules inside a category is part of their meaning. For example a
``BTMM_Core_Template.pine`` lands in ``scripts/core/`` because the ``Core``
rule precedes the ``template`` rule.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Sequence


@dataclass(frozen=True)
class OrganizationRule:
    """Send files whose name matches ``name`` to ``target``.

    An empty ``target`` means the file stays where it is.
    """

    name: Pattern[str]
    target: str


@dataclass(frozen=True)
class RuleCategory:
    """Rules that apply to files whose name matches ``pattern``."""

    label: str
    pattern: Pattern[str]
    rules: tuple[OrganizationRule, ...]

    def first_match(self, file_name: str) -> Optional[OrganizationRule]:
        for rule in self.rules:
            if rule.name.search(file_name):
                return rule
        return None


def _rule(name: str, target: str, flags: int = 0) -> OrganizationRule:
    return OrganizationRule(name=re.compile(name, flags), target=target)


DEFAULT_CATEGORIES: tuple[RuleCategory, ...] = (
    RuleCategory(
        label="scripts",
        pattern=re.compile(r"\.pine$"),
        rules=(
            _rule(r"BTMM.*Foundation", "scripts/foundation/"),
            _rule(r"BTMM.*Core", "scripts/core/"),
            _rule(r"BTMM.*Dashboard", "scripts/dashboard/"),
            _rule(r"BTMM.*Alert", "scripts/alerts/"),
            _rule(r"BTMM.*Analytics", "scripts/analytics/"),
            _rule(r"BTMM.*Risk", "scripts/core/"),
            _rule(r"BTMM.*Entry", "scripts/core/"),
            _rule(r"BTMM.*Pattern", "scripts/core/"),
            _rule(r"BTMM.*EMA", "scripts/core/"),
            _rule(r"BTMM.*HTF", "scripts/core/"),
            _rule(r"BTMM.*Asian", "scripts/core/"),
            _rule(r"BTMM.*Stop", "scripts/core/"),
            _rule(r"template", "scripts/templates/"),
            _rule(r"test", "tests/validation-scripts/"),
        ),
    ),
    RuleCategory(
        label="documentation",
        pattern=re.compile(r"\.(md|txt|pdf|docx?)$"),
        rules=(
            _rule(r"README", "docs/"),
            _rule(r"guide|manual|tutorial", "docs/", re.IGNORECASE),
            _rule(r"api|reference", "docs/api-reference/", re.IGNORECASE),
            _rule(r"installation|setup", "docs/", re.IGNORECASE),
            _rule(r"success|summary|integration", "docs/reports/", re.IGNORECASE),
            _rule(r"pine.*script", "docs/", re.IGNORECASE),
            _rule(r"cursor", "docs/", re.IGNORECASE),
        ),
    ),
    RuleCategory(
        label="automation",
        pattern=re.compile(r"\.(js|ts|py|sh|bat|ps1)$"),
        rules=(
            _rule(r"auto-commit|git|commit", "automation/git/", re.IGNORECASE),
            _rule(r"deploy|cicd|pipeline", "automation/deployment/", re.IGNORECASE),
            _rule(r"template|generator", "automation/generators/", re.IGNORECASE),
            _rule(r"validation|test|health", "automation/validation/", re.IGNORECASE),
            _rule(r"backup|rollback|recovery", "automation/backup/", re.IGNORECASE),
            _rule(r"learning|enhance|update", "automation/learning/", re.IGNORECASE),
            _rule(r"merger|limit|dependency", "automation/management/", re.IGNORECASE),
            _rule(r"organiz", "automation/devops/", re.IGNORECASE),
        ),
    ),
    RuleCategory(
        label="configuration",
        pattern=re.compile(r"\.(json|yaml|yml|toml|ini|env)$"),
        rules=(
            _rule(r"package", ""),
            _rule(r"settings|config|parameters", "configs/", re.IGNORECASE),
            _rule(r"environment|env", "configs/environments/", re.IGNORECASE),
            _rule(r"cursor", ".cursor/", re.IGNORECASE),
        ),
    ),
    RuleCategory(
        label="versioning",
        pattern=re.compile(r"\.(bak|old|backup|v\d+)$"),
        rules=(_rule(r".*", "archives/versions/"),),
    ),
)

# Cleanup matches these against dotfiles below the root as well; dotfiles in
# the root itself (lock files, .gitignore) are never candidates.
DELETE_PATTERNS: tuple[Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        r"\.tmp$",
        r"\.temp$",
        r"~\$",
        r"\._",
        r"Thumbs\.db$",
        r"\.DS_Store$",
        r"desktop\.ini$",
        r"\.log$",
        r"\.cache$",
    )
)

ARCHIVE_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r"\.old$"),
    re.compile(r"\.backup$"),
    re.compile(r"\.bak$"),
    re.compile(r"deprecated", re.IGNORECASE),
    re.compile(r"legacy", re.IGNORECASE),
    re.compile(r"outdated", re.IGNORECASE),
)


def match_any(patterns: Sequence[Pattern[str]], file_name: str) -> bool:
    return any(pattern.search(file_name) for pattern in patterns)


def resolve_target(
    file_name: str, categories: Sequence[RuleCategory] = DEFAULT_CATEGORIES
) -> Optional[str]:
    """Return the target directory for ``file_name``.

    Only the first category whose pattern matches is consulted. Returns
    ``None`` when no rule applies, and ``""`` when the rule says keep.
    """
    for category in categories:
        if category.pattern.search(file_name):
            rule = category.first_match(file_name)
            return rule.target if rule is not None else None
    return None


__all__ = [
    "OrganizationRule",
    "RuleCategory",
    "DEFAULT_CATEGORIES",
    "DELETE_PATTERNS",
    "ARCHIVE_PATTERNS",
    "match_any",
    "resolve_target",
]
