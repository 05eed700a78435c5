"""Repository backends.

- FilesystemRepository: Local directory trees
- ArchiveRepository: ZIP/JAR archives with on-demand extraction
"""

from .archive import ArchiveRepository
from .base import ChildEntry
from .base import Converter
from .base import Repository
from .filesystem import FilesystemRepository

__all__ = [
    "ArchiveRepository",
    "ChildEntry",
    "Converter",
    "FilesystemRepository",
    "Repository",
]
