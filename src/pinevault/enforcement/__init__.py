"""Commit enforcement: organize the tree, then stage, commit, and push."""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from pinevault.cancellation import CancellationToken, CancelledError
from pinevault.config.models import CommitSettings

from .commands import CommandError, CommandResult, CommandRunner, CommandTimeoutError

LOGGER = logging.getLogger(__name__)


class EnforcementError(RuntimeError):
    """Raised when any step of the enforcement sequence fails."""


class EnforcementResult(BaseModel):
    """Outcome of a completed enforcement run."""

    success: bool = True
    action: Literal["none_required", "committed", "committed_and_pushed"]
    context: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    changes: List[str] = Field(default_factory=list)


def _iso_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


class CommitEnforcer:
    """Run the organizer and the git commit sequence for a dirty working tree.

    Git is treated as an already-initialized external collaborator; every
    command, the organizer subprocess included, runs through one
    :class:`CommandRunner` and so shares its timeout and cancellation policy.
    """

    def __init__(
        self,
        root: Path,
        settings: CommitSettings | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self.root = root
        self.settings = settings or CommitSettings()
        self.runner = runner or CommandRunner(
            root, default_timeout=self.settings.command_timeout_seconds
        )

    def pending_changes(self, token: Optional[CancellationToken] = None) -> list[str]:
        """Return ``git status --porcelain`` lines; empty when the tree is clean."""
        result = self.runner.run(["git", "status", "--porcelain"], token=token)
        return [line for line in result.stdout.splitlines() if line.strip()]

    def enforce(
        self,
        context: str = "manual_execution",
        token: Optional[CancellationToken] = None,
    ) -> EnforcementResult:
        """Organize and commit pending changes.

        Raises:
            EnforcementError: If any step fails, is cancelled, or leaves the tree dirty.
        """
        token = token or CancellationToken()
        LOGGER.info("Commit enforcement started (context: %s)", context)
        try:
            changes = self.pending_changes(token)
            if not changes:
                LOGGER.info("Working directory clean; no commit needed")
                return EnforcementResult(action="none_required", context=context)

            self._organize(token)
            timestamp = datetime.now(timezone.utc)
            self._commit(context, timestamp, token)

            remaining = self.pending_changes(token)
            if remaining:
                raise EnforcementError(
                    f"Working directory not clean after commit ({len(remaining)} entries)"
                )
        except (CommandError, CancelledError) as exc:
            LOGGER.error("Commit enforcement failed: %s", exc)
            raise EnforcementError(f"Commit enforcement failed: {exc}") from exc

        self._record_success(context, timestamp)
        action = "committed_and_pushed" if self.settings.push else "committed"
        LOGGER.info("Commit enforcement succeeded (%s)", action)
        return EnforcementResult(
            action=action, context=context, timestamp=timestamp, changes=changes
        )

    def commit_message(self, context: str, timestamp: datetime) -> str:
        return self.settings.message_template.format(
            context=context, timestamp=_iso_timestamp(timestamp)
        )

    def _organize(self, token: CancellationToken) -> CommandResult:
        args = [sys.executable, "-m", "pinevault", "organize", str(self.root)]
        try:
            return self.runner.run(
                args, timeout=self.settings.organizer_timeout_seconds, token=token
            )
        except CommandTimeoutError as exc:
            raise EnforcementError(f"File organization prerequisite timed out: {exc}") from exc
        except CommandError as exc:
            raise EnforcementError(f"File organization prerequisite failed: {exc}") from exc

    def _commit(self, context: str, timestamp: datetime, token: CancellationToken) -> None:
        steps: list[list[str]] = [
            ["git", "add", "."],
            ["git", "commit", "-m", self.commit_message(context, timestamp)],
        ]
        if self.settings.push:
            steps.append(["git", "push"])
        for step in steps:
            LOGGER.info("Executing: %s", " ".join(step[:2]))
            self.runner.run(step, token=token)

    def _record_success(self, context: str, timestamp: datetime) -> None:
        notes = self.root / self.settings.notes_path
        if not notes.is_file():
            return
        entry = (
            f"\n### {timestamp.date().isoformat()}: Automated Commit Enforcement Success\n"
            f"**Context:** {context}\n"
            "**Pattern:** File organization + commits\n"
        )
        try:
            with notes.open("a", encoding="utf-8") as handle:
                handle.write(entry)
        except OSError as exc:
            LOGGER.warning("Could not update learning notes %s: %s", notes, exc)
            return
        LOGGER.info("Learning notes updated: %s", notes)


__all__ = [
    "CommitEnforcer",
    "EnforcementError",
    "EnforcementResult",
    "CommandRunner",
    "CommandResult",
    "CommandError",
    "CommandTimeoutError",
]
