"""Backup naming and record models."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

UNKNOWN_REASON = "unknown"
DEFAULT_REASON = "manual"
_STAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"
_STAMP_PATTERN = r"\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z"
_NAME_PATTERN = re.compile(
    rf"^(?P<original>.+)\.(?P<reason>[^./\\]+)-(?P<stamp>{_STAMP_PATTERN})$"
)
_UNSAFE_REASON = re.compile(r"[./\\]+")


def format_stamp(moment: datetime) -> str:
    """Render ``moment`` as a filesystem-safe ISO-8601 stamp.

    ``2024-05-01T12:30:00.123Z`` becomes ``2024-05-01T12-30-00-123Z``.
    """
    moment = moment.astimezone(timezone.utc)
    return f"{moment.strftime(_STAMP_FORMAT)}-{moment.microsecond // 1000:03d}Z"


def parse_stamp(stamp: str) -> datetime:
    """Inverse of :func:`format_stamp`.

    Raises:
        ValueError: If ``stamp`` is not in the expected format.
    """
    if not re.fullmatch(_STAMP_PATTERN, stamp):
        raise ValueError(f"Not a backup stamp: {stamp!r}")
    base, millis = stamp[:-1].rsplit("-", 1)
    moment = datetime.strptime(base, _STAMP_FORMAT).replace(tzinfo=timezone.utc)
    return moment + timedelta(milliseconds=int(millis))


def normalize_reason(reason: Optional[str]) -> str:
    """Return a reason tag that cannot break the backup name format."""
    cleaned = _UNSAFE_REASON.sub("_", (reason or "").strip())
    return cleaned or DEFAULT_REASON


class BackupName(BaseModel):
    """Structured form of a backup filename ``<original>.<reason>-<stamp>``.

    The stamp has a fixed shape and is matched at the end of the name, so
    reasons that contain hyphens (``pre-merge``) parse back unchanged.
    """

    original: str
    reason: str
    stamp: str

    @classmethod
    def create(cls, original: str, reason: Optional[str], moment: datetime) -> "BackupName":
        return cls(original=original, reason=normalize_reason(reason), stamp=format_stamp(moment))

    @classmethod
    def parse(cls, file_name: str) -> Optional["BackupName"]:
        """Parse a backup filename, returning ``None`` when it does not match."""
        match = _NAME_PATTERN.match(file_name)
        if match is None:
            return None
        return cls(
            original=match.group("original"),
            reason=match.group("reason"),
            stamp=match.group("stamp"),
        )

    def render(self) -> str:
        return f"{self.original}.{self.reason}-{self.stamp}"

    @property
    def taken_at(self) -> datetime:
        return parse_stamp(self.stamp)

    def bumped(self) -> "BackupName":
        """Return the same name with the stamp advanced by one millisecond."""
        later = self.taken_at + timedelta(milliseconds=1)
        return self.model_copy(update={"stamp": format_stamp(later)})


class BackupRecord(BaseModel):
    """A backup file discovered in the backup directory.

    Attributes:
        file_name: Name of the backup file on disk.
        path: Full path to the backup file.
        original: Name of the file the backup was taken from.
        reason: Reason tag, or ``unknown`` for unparseable names.
        stamp: Encoded timestamp, empty for unparseable names.
        date: Filesystem modification time (UTC).
        size: Size in bytes.
    """

    file_name: str
    path: Path
    original: str
    reason: str = UNKNOWN_REASON
    stamp: str = ""
    date: datetime
    size: int

    @property
    def group(self) -> str:
        """Text before the first ``.``, used to group backups per script."""
        return self.file_name.split(".", 1)[0]

    def sort_key(self) -> tuple[datetime, str, str]:
        return (self.date, self.stamp, self.file_name)


class RetentionResult(BaseModel):
    """Outcome of a retention cleanup run."""

    kept: int = 0
    removed: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


__all__ = [
    "BackupName",
    "BackupRecord",
    "RetentionResult",
    "DEFAULT_REASON",
    "UNKNOWN_REASON",
    "format_stamp",
    "normalize_reason",
    "parse_stamp",
]
