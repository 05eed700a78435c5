"""Package source resolution.

Match hierarchical patterns against directory trees and ZIP/JAR archives,
yielding openable entries in a deterministic order, and compose several
repositories into one precedence-ordered search.

Example:
    >>> from source_resolution import REST, ArchiveRepository, path, resolve
    >>> with ArchiveRepository("libs/dep.jar") as repo:
    ...     for entry in resolve(path("very") + REST, repo):
    ...         print(entry.name, entry.read_bytes())
"""

from .chain import RepositoryChain
from .entry import ResolvedEntry
from .errors import InvalidPatternError
from .errors import IsNavigableError
from .errors import LookupFailure
from .errors import NotFoundError
from .errors import NotNavigableError
from .errors import RepositoryClosedError
from .errors import RepositoryIOError
from .errors import ResolutionError
from .factory import create_repository
from .factory import create_repository_chain
from .pattern import REST
from .pattern import WILDCARD
from .pattern import Literal
from .pattern import PathSegment
from .pattern import Pattern
from .pattern import RestWildcard
from .pattern import SingleWildcard
from .pattern import path
from .pattern import source_files
from .repositories import ArchiveRepository
from .repositories import ChildEntry
from .repositories import Converter
from .repositories import FilesystemRepository
from .repositories import Repository
from .resolver import resolve
from .resolver import resolve_first

__all__ = [
    "REST",
    "WILDCARD",
    "ArchiveRepository",
    "ChildEntry",
    "Converter",
    "FilesystemRepository",
    "InvalidPatternError",
    "IsNavigableError",
    "Literal",
    "LookupFailure",
    "NotFoundError",
    "NotNavigableError",
    "PathSegment",
    "Pattern",
    "Repository",
    "RepositoryChain",
    "RepositoryClosedError",
    "RepositoryIOError",
    "ResolutionError",
    "ResolvedEntry",
    "RestWildcard",
    "SingleWildcard",
    "create_repository",
    "create_repository_chain",
    "path",
    "resolve",
    "resolve_first",
    "source_files",
]
