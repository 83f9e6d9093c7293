"""Local inventory walking for deployments."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..config import Settings
from ..exceptions import WalkEntryUnreadableError
from ..utils import remote_destination
from .ignore import ExclusionMatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventoryEntry:
    """A local file together with the remote path it deploys to.

    Two entries are equal when source and destination match; the
    modification time only decides whether an unchanged entry is re-uploaded.
    """

    source: str
    """Local path as walked (root path joined with the relative path)"""

    destination: str
    """Absolute remote destination path"""

    mtime: float = field(default=0.0, compare=False)
    """Last modification time (Unix timestamp)"""

    is_directory: bool = field(default=False, compare=False)
    """Whether the entry is a directory"""


InventorySnapshot = frozenset[InventoryEntry]


class InventoryWalker:
    """Walks every mapped directory and file of a Settings object.

    Examples:
        >>> walker = InventoryWalker(settings)
        >>> snapshot = walker.walk()
        >>> sorted(e.destination for e in snapshot)
        ['/www/css/site.css', '/www/index.html']
    """

    def __init__(self, settings: Settings):
        """Initialize the walker.

        Args:
            settings: Deployment settings with mappings and exclusions
        """
        self.settings = settings
        self.exclusions = ExclusionMatcher(settings.exclusions)

    def walk(self) -> InventorySnapshot:
        """Produce a snapshot of everything currently deployable.

        Unreadable files and directories are skipped with a warning.

        Returns:
            Frozen set of inventory entries
        """
        entries: list[InventoryEntry] = []

        for local_dir, remote_subpath in self.settings.directories:
            root = Path(local_dir)
            if not root.is_dir():
                logger.warning("Mapped directory does not exist: %s", local_dir)
                continue
            entries.extend(self._walk_directory(root, root, remote_subpath))

        for local_file, remote_name in self.settings.files:
            entry = self._file_entry(Path(local_file), remote_name)
            if entry is not None:
                entries.append(entry)

        logger.debug("Walk found %d entries", len(entries))
        return frozenset(entries)

    def _walk_directory(
        self, directory: Path, root: Path, remote_subpath: str
    ) -> list[InventoryEntry]:
        """Recursively collect entries below ``directory``.

        Exclusions are tested per entry, so an excluded directory name does
        not prune its contents.
        """
        entries: list[InventoryEntry] = []

        try:
            children = sorted(directory.iterdir())
        except OSError as e:
            self._skip(WalkEntryUnreadableError(str(directory), str(e)))
            return entries

        for item in children:
            try:
                is_dir = item.is_dir()
                is_file = not is_dir and item.is_file()
            except OSError as e:
                self._skip(WalkEntryUnreadableError(str(item), str(e)))
                continue

            if is_dir:
                if self.settings.include_directories and not self._excluded(item):
                    entry = self._make_entry(item, root, remote_subpath, True)
                    if entry is not None:
                        entries.append(entry)
                entries.extend(self._walk_directory(item, root, remote_subpath))
            elif is_file and not self._excluded(item):
                entry = self._make_entry(item, root, remote_subpath, False)
                if entry is not None:
                    entries.append(entry)

        return entries

    def _make_entry(
        self, item: Path, root: Path, remote_subpath: str, is_directory: bool
    ) -> Optional[InventoryEntry]:
        try:
            mtime = item.stat().st_mtime
            if not is_directory and not os.access(item, os.R_OK):
                raise PermissionError("permission denied")
        except OSError as e:
            self._skip(WalkEntryUnreadableError(str(item), str(e)))
            return None

        relative_path = item.relative_to(root).as_posix()
        return InventoryEntry(
            source=str(item),
            destination=remote_destination(
                self.settings, remote_subpath, relative_path
            ),
            mtime=mtime,
            is_directory=is_directory,
        )

    def _file_entry(self, path: Path, remote_name: str) -> Optional[InventoryEntry]:
        if self._excluded(path):
            return None
        try:
            if not path.is_file():
                logger.debug("Mapped file missing or not a regular file: %s", path)
                return None
            mtime = path.stat().st_mtime
        except OSError as e:
            self._skip(WalkEntryUnreadableError(str(path), str(e)))
            return None

        return InventoryEntry(
            source=str(path),
            destination=remote_destination(self.settings, remote_name),
            mtime=mtime,
        )

    def _excluded(self, path: Path) -> bool:
        return bool(self.exclusions) and self.exclusions.matches(path.name)

    def _skip(self, error: WalkEntryUnreadableError) -> None:
        logger.warning("Skipping: %s", error)


def walk(settings: Settings) -> InventorySnapshot:
    """Walk all mappings of ``settings`` once."""
    return InventoryWalker(settings).walk()
