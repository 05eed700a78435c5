"""Resolved entries - one concrete match of a pattern in a repository."""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Any
from typing import BinaryIO

if TYPE_CHECKING:
    from .repositories.base import Repository


@dataclass(frozen=True)
class ResolvedEntry:
    """A terminal location matched by a pattern.

    Attributes:
        logical_path: One name per pattern segment (a rest wildcard capture is
            a single "/"-joined name)
        location: Backend-native location (Path for directories, entry name
            for archives)
        repository: Repository the entry came from
    """

    logical_path: tuple[str, ...]
    location: Any
    repository: Repository = field(repr=False, compare=False)

    @property
    def name(self) -> str:
        """Logical path rendered as a "/"-separated string."""
        return "/".join(part for part in self.logical_path if part)

    @property
    def origin(self) -> str:
        """Identity of the originating repository."""
        return self.repository.identity

    def open(self) -> BinaryIO:
        """Open the entry's content for reading.

        Raises:
            RepositoryClosedError: The repository was released
        """
        return self.repository.open(self.location)

    def read_bytes(self) -> bytes:
        with self.open() as stream:
            return stream.read()

    def materialize(self) -> Path:
        """Return a filesystem path holding the entry's content."""
        return self.repository.materialize(self.location)

    def __str__(self) -> str:
        return f"{self.name} ({self.origin})"
