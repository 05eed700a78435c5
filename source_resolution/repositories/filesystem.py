"""Repository backed by a local directory tree."""

import logging
import os
import stat
from collections.abc import Hashable
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from ..errors import IsNavigableError
from ..errors import NotFoundError
from ..errors import NotNavigableError
from ..errors import RepositoryIOError
from .base import DEFAULT_MAX_DEPTH
from .base import ChildEntry
from .base import Converter
from .base import Repository

logger = logging.getLogger(__name__)


class FilesystemRepository(Repository):
    """Directory tree rooted at a local path.

    Symlinks are followed unless follow_symlinks is False, in which case
    symlinked directories are skipped and symlinked files are terminal.
    Recursive expansion never re-enters a directory already on the current
    descent path (tracked by device and inode).
    """

    def __init__(
        self,
        root: str | Path,
        *,
        follow_symlinks: bool = True,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        """Initialize with a root directory.

        Args:
            root: Directory path, optionally with a file:// prefix
            follow_symlinks: Whether symlinked directories are descended into
            max_depth: Maximum levels a rest wildcard descends

        Raises:
            NotFoundError: Root does not exist
            NotNavigableError: Root is not a directory
        """
        if isinstance(root, str):
            if root.startswith("file://"):
                root = root[7:]
            root = Path(root)

        root_path = root.expanduser().resolve()
        if not root_path.exists():
            raise NotFoundError(root_path, f"Repository root not found: {root_path}")
        if not root_path.is_dir():
            raise NotNavigableError(root_path, f"Repository root is not a directory: {root_path}")

        super().__init__(str(root_path), max_depth=max_depth)
        self.root_path = root_path
        self.follow_symlinks = follow_symlinks

    @property
    def root(self) -> Path:
        return self.root_path

    def join(self, location: Path, name: str) -> Path:
        return location / name

    def _stat(self, location: Path) -> os.stat_result:
        try:
            if self.follow_symlinks:
                return location.stat()
            return location.lstat()
        except (FileNotFoundError, NotADirectoryError) as e:
            raise NotFoundError(location) from e
        except OSError as e:
            raise RepositoryIOError(f"Cannot stat {location}: {e}", e) from e

    def is_navigable(self, location: Path) -> bool:
        self._ensure_open()
        return stat.S_ISDIR(self._stat(location).st_mode)

    def children(self, location: Path) -> Iterator[ChildEntry]:
        self._ensure_open()
        try:
            with os.scandir(location) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except FileNotFoundError as e:
            raise NotFoundError(location) from e
        except NotADirectoryError as e:
            raise NotNavigableError(location) from e
        except OSError as e:
            raise RepositoryIOError(f"Cannot list {location}: {e}", e) from e

        return self._child_entries(entries)

    def _child_entries(self, entries: list[os.DirEntry]) -> Iterator[ChildEntry]:
        for entry in entries:
            try:
                if entry.is_symlink() and not self.follow_symlinks:
                    if entry.is_dir():
                        logger.debug(f"Not following symlinked directory {entry.path}")
                        continue
                    yield ChildEntry(entry.name, False)
                    continue
                if entry.is_dir():
                    yield ChildEntry(entry.name, True)
                elif entry.is_file():
                    yield ChildEntry(entry.name, False)
                else:
                    # Broken links, sockets, fifos
                    logger.debug(f"Skipping special entry {entry.path}")
            except OSError as e:
                raise RepositoryIOError(f"Cannot inspect {entry.path}: {e}", e) from e

    def open(self, location: Path) -> BinaryIO:
        self._ensure_open()
        if self.is_navigable(location):
            raise IsNavigableError(location)
        try:
            return open(location, "rb")
        except FileNotFoundError as e:
            raise NotFoundError(location) from e
        except OSError as e:
            raise RepositoryIOError(f"Cannot open {location}: {e}", e) from e

    def materialize(self, location: Path) -> Path:
        self._ensure_open()
        if self.is_navigable(location):
            raise IsNavigableError(location)
        return location

    def describe(self, location: Path) -> str:
        try:
            return str(location.relative_to(self.root_path)) or "."
        except ValueError:
            return str(location)

    def converter(self) -> Converter:
        return FilesystemConverter(self)


class FilesystemConverter(Converter):
    """Converter that detects directory cycles by (device, inode)."""

    repository: FilesystemRepository

    def visit_key(self, location: Path) -> Hashable | None:
        try:
            info = location.stat()
        except OSError:
            return None
        return (info.st_dev, info.st_ino)
