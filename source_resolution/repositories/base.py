"""Repository contract and the converter that drives pattern traversal.

A Repository exposes a navigable hierarchy in its own native addressing
(a Path, an archive entry name, ...). The resolver never touches those
locations directly: it asks the repository's Converter to start at the root,
combine a location with a child name, expand a location one level, or expand
it recursively for a rest wildcard.
"""

from __future__ import annotations

import logging
from abc import ABC
from abc import abstractmethod
from collections.abc import Hashable
from collections.abc import Iterator
from pathlib import Path
from typing import Any
from typing import BinaryIO
from typing import NamedTuple

from ..errors import LookupFailure
from ..errors import RepositoryClosedError

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64


class ChildEntry(NamedTuple):
    """One child directly beneath a location."""

    name: str
    is_navigable: bool


class Repository(ABC):
    """Backing store exposing a navigable hierarchy of source files.

    Subclasses implement the storage primitives; everything pattern-related
    goes through converter(). Repositories are context managers and must be
    closed to release any scratch storage they own.
    """

    def __init__(self, identity: str, *, max_depth: int = DEFAULT_MAX_DEPTH):
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")
        self.identity = identity
        self.max_depth = max_depth
        self._closed = False

    @property
    @abstractmethod
    def root(self) -> Any:
        """Native location of the repository root."""

    @abstractmethod
    def join(self, location: Any, name: str) -> Any:
        """Native location of child `name` beneath `location`."""

    @abstractmethod
    def is_navigable(self, location: Any) -> bool:
        """Whether `location` is directory-like.

        Raises:
            NotFoundError: Location does not exist
        """

    @abstractmethod
    def children(self, location: Any) -> Iterator[ChildEntry]:
        """Children directly beneath `location`, sorted by name.

        Raises:
            NotFoundError: Location does not exist
            NotNavigableError: Location is terminal
            RepositoryIOError: Backend failure
        """

    @abstractmethod
    def open(self, location: Any) -> BinaryIO:
        """Open a terminal location for reading.

        Raises:
            NotFoundError: Location does not exist
            IsNavigableError: Location is directory-like
        """

    @abstractmethod
    def materialize(self, location: Any) -> Path:
        """Filesystem path holding the content of a terminal location."""

    def describe(self, location: Any) -> str:
        """Human readable form of a native location."""
        return str(location)

    def converter(self) -> Converter:
        """Converter bound to this repository's addressing."""
        return Converter(self)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release resources held by the repository. Idempotent."""
        self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            raise RepositoryClosedError(f"Repository has been closed: {self.identity}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identity})"


class Converter:
    """Translates pattern traversal steps into repository calls.

    The default implementation works for any Repository; backends override
    visit_key() to take part in cycle detection during recursive expansion.
    """

    def __init__(self, repository: Repository):
        self.repository = repository

    def start(self) -> Any:
        return self.repository.root

    def combine(self, location: Any, name: str) -> tuple[Any, bool]:
        """Step into child `name`.

        Returns:
            Tuple of (child location, is_navigable)

        Raises:
            NotFoundError: No such child
        """
        child = self.repository.join(location, name)
        return child, self.repository.is_navigable(child)

    def expand(self, location: Any) -> Iterator[tuple[str, Any, bool]]:
        """Every immediate child as (name, location, is_navigable)."""
        for child in self.repository.children(location):
            yield child.name, self.repository.join(location, child.name), child.is_navigable

    def visit_key(self, location: Any) -> Hashable | None:
        """Identity used to detect revisiting a location; None disables the check."""
        return None

    def expand_rest(self, location: Any) -> Iterator[tuple[tuple[str, ...], Any]]:
        """Every terminal location below `location`, depth first.

        Yields:
            Tuples of (relative names, terminal location)
        """
        yield from self._walk(location, (), frozenset(), self.repository.max_depth)

    def _walk(
        self,
        location: Any,
        prefix: tuple[str, ...],
        active: frozenset,
        remaining: int,
    ) -> Iterator[tuple[tuple[str, ...], Any]]:
        key = self.visit_key(location)
        if key is not None:
            if key in active:
                logger.debug(f"Skipping cycle at {self.repository.describe(location)}")
                return
            active = active | {key}

        try:
            children = list(self.expand(location))
        except LookupFailure as e:
            logger.debug(f"Pruned {self.repository.describe(location)}: {e}")
            return

        for name, child, navigable in children:
            names = prefix + (name,)
            if not navigable:
                yield names, child
            elif remaining <= 1:
                logger.warning(
                    f"Max depth {self.repository.max_depth} reached at "
                    f"{self.repository.describe(child)} in {self.repository.identity}"
                )
            else:
                yield from self._walk(child, names, active, remaining - 1)
