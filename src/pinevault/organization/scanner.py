"""Repository discovery utilities."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator

from .models import ScannedFile

LOGGER = logging.getLogger(__name__)


class RepositoryScanner:
    """Walk a repository tree and describe every regular file.

    Entries whose name starts with ``.`` are skipped, files included, unless
    the name is listed in ``allowed_hidden``. Directories named in
    ``skip_dirs``, either by base name or by root-relative path, are never
    entered. Symlinked directories are not followed and each real directory
    is visited once, so link cycles cannot recurse forever.
    """

    def __init__(
        self,
        root: Path,
        *,
        allowed_hidden: Iterable[str] = (".cursor",),
        skip_dirs: Iterable[str] = ("node_modules",),
    ) -> None:
        self.root = root
        self.allowed_hidden = frozenset(allowed_hidden)
        self.skip_dirs = frozenset(entry.strip("/") for entry in skip_dirs if entry.strip("/"))

    def scan(self) -> list[ScannedFile]:
        """Return every file under the root, in directory walk order."""
        return list(self.iter_files())

    def iter_files(self, *, include_hidden_files: bool = False) -> Iterator[ScannedFile]:
        """Yield scanned files.

        Args:
            include_hidden_files: Also yield dotfiles below the root, such as
                ``scripts/.DS_Store``. Dotfiles in the root itself and
                everything inside hidden or skipped directories stay excluded.
        """
        root = self.root
        if not root.is_dir():
            return
        visited: set[str] = set()
        yield from self._walk(root, PurePosixPath(), visited, include_hidden_files)

    def is_skipped(self, name: str, relative: PurePosixPath) -> bool:
        """Return True when the entry at ``relative`` must not be scanned or pruned."""
        if name.startswith(".") and name not in self.allowed_hidden:
            return True
        return name in self.skip_dirs or relative.as_posix() in self.skip_dirs

    def _walk(
        self,
        directory: Path,
        relative: PurePosixPath,
        visited: set[str],
        include_hidden_files: bool,
    ) -> Iterator[ScannedFile]:
        real = os.path.realpath(directory)
        if real in visited:
            LOGGER.debug("Skipping already visited directory %s", directory)
            return
        visited.add(real)

        try:
            entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
        except OSError as exc:
            LOGGER.warning("Could not read directory %s: %s", directory, exc)
            return

        for entry in entries:
            entry_relative = relative / entry.name
            if self.is_skipped(entry.name, entry_relative) and not (
                include_hidden_files and _is_nested_dotfile(entry, relative)
            ):
                continue
            try:
                if entry.is_dir(follow_symlinks=False):
                    yield from self._walk(
                        Path(entry.path), entry_relative, visited, include_hidden_files
                    )
                    continue
                if entry.is_symlink() and Path(entry.path).is_dir():
                    continue
                stat = entry.stat()
            except OSError as exc:
                LOGGER.warning("Could not stat %s: %s", entry.path, exc)
                continue

            parent = relative.as_posix()
            yield ScannedFile(
                name=entry.name,
                path=Path(entry.path),
                relative_path=entry_relative.as_posix(),
                dir="" if parent == "." else parent,
                size=stat.st_size,
                modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            )


def _is_nested_dotfile(entry: os.DirEntry[str], parent: PurePosixPath) -> bool:
    if not parent.parts or not entry.name.startswith("."):
        return False
    try:
        return entry.is_file(follow_symlinks=False)
    except OSError:
        return False


__all__ = ["RepositoryScanner"]
