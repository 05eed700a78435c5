"""Build repositories and chains from source strings.

Source formats:
- jar:file:///path/lib.jar!/inner, zip:..., file:///path/lib.jar -> ArchiveRepository
- /path/lib.jar, ./lib.zip (archive suffix)                         -> ArchiveRepository
- a regular file that is a ZIP archive                             -> ArchiveRepository
- a directory (optionally file://)                                 -> FilesystemRepository
"""

import logging
import zipfile
from collections.abc import Iterable
from pathlib import Path

from .chain import RepositoryChain
from .errors import NotFoundError
from .errors import RepositoryIOError
from .repositories.archive import ARCHIVE_SUFFIXES
from .repositories.archive import ArchiveRepository
from .repositories.archive import parse_archive_uri
from .repositories.base import Repository
from .repositories.filesystem import FilesystemRepository
from .settings import ResolverSettings

logger = logging.getLogger(__name__)


def _is_archive_source(source: str) -> bool:
    if source.startswith(("jar:", "zip:")):
        return True
    archive_path, _prefix = parse_archive_uri(source)
    if archive_path.suffix.lower() in ARCHIVE_SUFFIXES:
        return True
    return archive_path.is_file() and zipfile.is_zipfile(archive_path)


def create_repository(source: str | Path, settings: ResolverSettings | None = None) -> Repository:
    """Create the repository backend matching `source`.

    Args:
        source: Directory path, archive path, or archive URI
        settings: Resolver options (defaults apply when None)

    Returns:
        FilesystemRepository or ArchiveRepository

    Raises:
        NotFoundError: Source does not exist
        RepositoryIOError: Source exists but is neither a directory nor an archive
    """
    settings = settings or ResolverSettings()
    text = str(source)

    if _is_archive_source(text):
        logger.debug(f"[factory] {text} -> archive")
        return ArchiveRepository(text, scratch_dir=settings.scratch_dir, max_depth=settings.max_depth)

    directory, _prefix = parse_archive_uri(text)
    if not directory.exists():
        raise NotFoundError(directory, f"Repository source not found: {text}")
    if not directory.is_dir():
        raise RepositoryIOError(f"Repository source is neither a directory nor an archive: {text}")

    logger.debug(f"[factory] {text} -> directory")
    return FilesystemRepository(directory, follow_symlinks=settings.follow_symlinks, max_depth=settings.max_depth)


def create_repository_chain(
    sources: Iterable[str | Path],
    settings: ResolverSettings | None = None,
) -> RepositoryChain:
    """Create a chain from sources, highest precedence first.

    Repositories already created are closed if a later source fails.
    """
    settings = settings or ResolverSettings()
    repositories: list[Repository] = []
    try:
        for source in sources:
            repositories.append(create_repository(source, settings))
    except Exception:
        for repository in repositories:
            repository.close()
        raise
    return RepositoryChain(repositories, strict=settings.strict)
