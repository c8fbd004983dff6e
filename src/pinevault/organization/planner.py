"""Planner for repository organization."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Pattern, Sequence

from .models import MoveOperation, OrganizationPlan, ScannedFile
from .rules import (
    ARCHIVE_PATTERNS,
    DEFAULT_CATEGORIES,
    DELETE_PATTERNS,
    RuleCategory,
    match_any,
    resolve_target,
)

LOGGER = logging.getLogger(__name__)


def _normalize_dir(value: str) -> str:
    return value.strip("/")


class OrganizationPlanner:
    """Derive an organization plan from scanned files.

    For each file exactly one outcome is chosen, checked in this order:
    delete (any delete pattern), archive (any archive pattern), move (a rule
    target that differs from the current directory), keep.
    """

    def __init__(
        self,
        root: Path,
        *,
        categories: Sequence[RuleCategory] = DEFAULT_CATEGORIES,
        delete_patterns: Sequence[Pattern[str]] = DELETE_PATTERNS,
        archive_patterns: Sequence[Pattern[str]] = ARCHIVE_PATTERNS,
        archive_dir: str = "archives/legacy",
    ) -> None:
        self.root = root
        self.categories = categories
        self.delete_patterns = delete_patterns
        self.archive_patterns = archive_patterns
        self.archive_dir = _normalize_dir(archive_dir)

    def build_plan(self, files: Iterable[ScannedFile]) -> OrganizationPlan:
        """Classify ``files`` into move, archive, and delete lists.

        Args:
            files: Files produced by a repository scan.

        Returns:
            OrganizationPlan: Plan with collision-free destinations.
        """
        plan = OrganizationPlan()
        occupied: set[Path] = set()

        for file in files:
            if match_any(self.delete_patterns, file.name):
                plan.to_delete.append(file)
                continue

            if match_any(self.archive_patterns, file.name):
                if _normalize_dir(file.dir) == self.archive_dir:
                    continue
                archive = self._build_move(
                    file, self.archive_dir, occupied, reasoning="Matches an archive pattern"
                )
                plan.to_archive.append(archive)
                plan.folders_to_create.add(self.archive_dir)
                occupied.add(archive.target_path)
                continue

            target = resolve_target(file.name, self.categories)
            if not target:
                continue
            target_dir = _normalize_dir(target)
            if _normalize_dir(file.dir) == target_dir:
                continue
            move = self._build_move(
                file, target_dir, occupied, reasoning=f"Move to '{target_dir}/'"
            )
            plan.to_move.append(move)
            plan.folders_to_create.add(target_dir)
            occupied.add(move.target_path)

        LOGGER.info(
            "Organization plan: move=%d archive=%d delete=%d folders=%d",
            len(plan.to_move),
            len(plan.to_archive),
            len(plan.to_delete),
            len(plan.folders_to_create),
        )
        return plan

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _build_move(
        self,
        file: ScannedFile,
        target_dir: str,
        occupied: set[Path],
        *,
        reasoning: str,
    ) -> MoveOperation:
        candidate = self.root / target_dir / file.name
        resolved = self._resolve_conflict(candidate, occupied)
        return MoveOperation(
            file=file,
            target_dir=f"{target_dir}/",
            target_path=resolved,
            reasoning=reasoning,
            conflict_applied=resolved != candidate,
        )

    def _resolve_conflict(self, candidate: Path, occupied: set[Path]) -> Path:
        final_candidate = candidate
        counter = 1
        while final_candidate.exists() or final_candidate in occupied:
            final_candidate = candidate.with_name(f"{candidate.stem}-{counter}{candidate.suffix}")
            counter += 1
        return final_candidate


def analyze_file_organization(
    root: Path, files: Iterable[ScannedFile], archive_dir: str = "archives/legacy"
) -> OrganizationPlan:
    """Build a plan for ``files`` with the default rules."""
    return OrganizationPlanner(root, archive_dir=archive_dir).build_plan(files)


__all__ = ["OrganizationPlanner", "analyze_file_organization"]
