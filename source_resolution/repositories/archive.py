"""Repository backed by a ZIP/JAR archive.

The archive's central directory is read once, on first access, into a
virtual hierarchy: entry names are split on "/" and every intermediate prefix
becomes a synthetic directory, whether or not the archive stores an explicit
directory entry for it. Empty segments are dropped while splitting, so
"a//b.src" is addressed as "a/b.src"; when two entries collapse to the same
name the later one wins and a debug line is logged.

Entries are extracted on demand into a private scratch directory, at most
once per repository lifetime. Closing the repository removes the scratch
directory; a finalizer does the same if the repository is garbage collected
without being closed.
"""

import hashlib
import logging
import shutil
import tempfile
import threading
import weakref
import zipfile
import zlib
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO
from urllib.parse import urlparse
from urllib.request import url2pathname

from ..errors import IsNavigableError
from ..errors import NotFoundError
from ..errors import NotNavigableError
from ..errors import RepositoryIOError
from .base import DEFAULT_MAX_DEPTH
from .base import ChildEntry
from .base import Repository

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (".jar", ".zip")

_READ_ERRORS = (OSError, EOFError, zipfile.BadZipFile, zlib.error)


def parse_archive_uri(source: str | Path) -> tuple[Path, str]:
    """Split an archive source into (archive path, root prefix inside it).

    Accepts plain paths, file: URIs (percent-encoded, so "#" and spaces
    survive) and jar:/zip: URIs with an optional "!/inner/dir" suffix.

    Example:
        >>> parse_archive_uri("jar:file:///libs/a%23b.jar!/org/pkg")
        (PosixPath('/libs/a#b.jar'), 'org/pkg')
    """
    if isinstance(source, Path):
        return source, ""

    text = str(source)
    inner = ""
    if text.startswith(("jar:", "zip:")):
        text = text[4:]
        if "!" in text:
            text, inner = text.split("!", 1)

    if text.startswith("file:"):
        parsed = urlparse(text, allow_fragments=False)
        archive = Path(url2pathname(parsed.path))
    else:
        archive = Path(text).expanduser()

    prefix = "/".join(part for part in inner.split("/") if part)
    return archive, prefix


def _remove_scratch(scratch: Path) -> None:
    try:
        shutil.rmtree(scratch)
        logger.debug(f"Removed archive scratch directory {scratch}")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Failed to remove archive scratch directory {scratch}: {e}")


def _discard(target: Path) -> None:
    try:
        target.unlink(missing_ok=True)
    except OSError as e:
        logger.debug(f"Could not remove partial extraction {target}: {e}")


class ArchiveRepository(Repository):
    """ZIP/JAR archive exposed as a navigable hierarchy.

    Locations are "/"-joined entry name prefixes; the archive root is "".
    Entry names are kept exactly as stored, including characters such as
    "#" or spaces.
    """

    def __init__(
        self,
        source: str | Path,
        *,
        scratch_dir: str | Path | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        """Initialize with an archive path or URI.

        The archive is not opened until first use.

        Args:
            source: Archive path, file: URI, or jar:file:...!/prefix URI
            scratch_dir: Parent directory for extracted entries (default: system temp)
            max_depth: Maximum levels a rest wildcard descends
        """
        archive_path, prefix = parse_archive_uri(source)
        self.archive_path = archive_path.resolve()
        self.prefix = prefix
        identity = self.archive_path.as_uri()
        if prefix:
            identity = f"jar:{identity}!/{prefix}"
        super().__init__(identity, max_depth=max_depth)

        self.scratch_dir = Path(scratch_dir) if scratch_dir else None
        self._lock = threading.RLock()
        self._zip: zipfile.ZipFile | None = None
        self._dirs: dict[str, dict[str, bool]] | None = None
        self._files: dict[str, zipfile.ZipInfo] = {}
        self._extracted: dict[str, Path] = {}
        self._scratch: Path | None = None
        self._finalizer: weakref.finalize | None = None

    @property
    def root(self) -> str:
        return self.prefix

    def join(self, location: str, name: str) -> str:
        return f"{location}/{name}" if location else name

    def _index(self) -> dict[str, dict[str, bool]]:
        """Load the central directory on first use."""
        with self._lock:
            self._ensure_open()
            if self._dirs is not None:
                return self._dirs

            try:
                archive = zipfile.ZipFile(self.archive_path)
                infos = archive.infolist()
            except _READ_ERRORS as e:
                raise RepositoryIOError(f"Cannot read archive {self.archive_path}: {e}", e) from e

            dirs: dict[str, dict[str, bool]] = {"": {}}
            files: dict[str, zipfile.ZipInfo] = {}
            for info in infos:
                parts = [part for part in info.filename.split("/") if part]
                if not parts:
                    continue
                entry_name = "/".join(parts)
                if entry_name != info.filename.rstrip("/"):
                    logger.debug(f"Archive entry {info.filename!r} in {self.archive_path} indexed as {entry_name!r}")
                explicit_dir = info.is_dir()
                for depth, name in enumerate(parts):
                    parent = "/".join(parts[:depth])
                    navigable = explicit_dir or depth < len(parts) - 1
                    siblings = dirs.setdefault(parent, {})
                    siblings[name] = siblings.get(name, False) or navigable
                    if navigable:
                        dirs.setdefault("/".join(parts[: depth + 1]), {})
                if not explicit_dir:
                    if entry_name in files:
                        logger.debug(f"Duplicate archive entry {entry_name!r} in {self.archive_path}, keeping the last")
                    files[entry_name] = info

            self._zip = archive
            self._files = files
            self._dirs = dirs
            logger.debug(f"Indexed {len(files)} entries in {self.archive_path}")
            return dirs

    def is_navigable(self, location: str) -> bool:
        dirs = self._index()
        if location in dirs:
            return True
        if location in self._files:
            return False
        raise NotFoundError(location)

    def children(self, location: str) -> Iterator[ChildEntry]:
        dirs = self._index()
        if location not in dirs:
            if location in self._files:
                raise NotNavigableError(location)
            raise NotFoundError(location)
        siblings = dirs[location]
        return iter([ChildEntry(name, siblings[name]) for name in sorted(siblings)])

    def _scratch_root(self) -> Path:
        if self._scratch is None:
            if self.scratch_dir is not None:
                self.scratch_dir.mkdir(parents=True, exist_ok=True)
            self._scratch = Path(tempfile.mkdtemp(prefix="srcres-", dir=self.scratch_dir))
            self._finalizer = weakref.finalize(self, _remove_scratch, self._scratch)
        return self._scratch

    def materialize(self, location: str) -> Path:
        """Extract an entry (once) and return the path of the extracted file.

        Raises:
            NotFoundError: No such entry
            IsNavigableError: Location is a directory
            RepositoryIOError: Extraction failed
        """
        with self._lock:
            if self.is_navigable(location):
                raise IsNavigableError(location)

            cached = self._extracted.get(location)
            if cached is not None:
                return cached

            if self._zip is None:
                raise RepositoryIOError(f"Archive {self.archive_path} is not open")

            # Only the basename of the entry reaches the filesystem
            digest = hashlib.sha256(location.encode("utf-8")).hexdigest()[:16]
            basename = location.rsplit("/", 1)[-1]
            if basename in (".", ".."):
                basename = digest
            target = self._scratch_root() / digest / basename

            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                with self._zip.open(self._files[location]) as src, open(target, "wb") as dst:
                    shutil.copyfileobj(src, dst)
            except _READ_ERRORS as e:
                _discard(target)
                raise RepositoryIOError(f"Cannot extract {location} from {self.archive_path}: {e}", e) from e

            self._extracted[location] = target
            logger.debug(f"Extracted {location} from {self.archive_path} to {target}")
            return target

    def open(self, location: str) -> BinaryIO:
        target = self.materialize(location)
        try:
            return open(target, "rb")
        except OSError as e:
            raise RepositoryIOError(f"Cannot open extracted entry {location}: {e}", e) from e

    def describe(self, location: str) -> str:
        return f"{self.archive_path.name}!/{location}"

    @property
    def extracted(self) -> dict[str, Path]:
        """Entries extracted so far, keyed by entry name."""
        with self._lock:
            return dict(self._extracted)

    def close(self) -> None:
        """Close the archive and delete extracted entries.

        Cleanup failures are logged, never raised.
        """
        with self._lock:
            if self._closed:
                return
            super().close()
            if self._zip is not None:
                try:
                    self._zip.close()
                except OSError as e:
                    logger.warning(f"Failed to close archive {self.archive_path}: {e}")
                self._zip = None
            self._extracted.clear()
            if self._finalizer is not None:
                self._finalizer()
