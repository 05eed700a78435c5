"""Resolve a Pattern against a single Repository.

Traversal is depth first from the repository root, driven by the pattern:
- Literal: step into the one child with that name
- SingleWildcard: step into every child
- RestWildcard: every terminal location below the current one

Only terminal (file-like) locations are produced. A branch that hits a
missing or wrongly-typed location contributes nothing; a backend I/O failure
ends the whole sequence with RepositoryIOError.
"""

import logging
from collections.abc import Iterator
from typing import Any

from .entry import ResolvedEntry
from .errors import LookupFailure
from .pattern import Literal
from .pattern import Pattern
from .pattern import RestWildcard
from .repositories.base import Converter
from .repositories.base import Repository

logger = logging.getLogger(__name__)


def resolve(pattern: Pattern, repository: Repository) -> Iterator[ResolvedEntry]:
    """Lazily resolve `pattern` against `repository`.

    Each call returns a fresh, single-pass generator. Entries come out in a
    deterministic order (children are visited sorted by name).

    Args:
        pattern: Pattern to match
        repository: Repository to search

    Yields:
        ResolvedEntry for each matching terminal location

    Raises:
        RepositoryIOError: Backend failure (raised while iterating)
        RepositoryClosedError: Repository was closed
    """
    converter = repository.converter()
    logger.debug(f"[resolve] {pattern} in {repository.identity}")
    count = 0
    for entry in _descend(converter, pattern, 0, converter.start(), True, ()):
        count += 1
        yield entry
    logger.debug(f"[resolve] {pattern} in {repository.identity} -> {count} entries")


def resolve_first(pattern: Pattern, repository: Repository) -> ResolvedEntry | None:
    """First entry `pattern` resolves to, or None. Stops walking at the first match."""
    return next(resolve(pattern, repository), None)


def _descend(
    converter: Converter,
    pattern: Pattern,
    index: int,
    location: Any,
    navigable: bool,
    logical: tuple[str, ...],
) -> Iterator[ResolvedEntry]:
    repository = converter.repository

    if index == len(pattern.segments):
        if not navigable:
            yield ResolvedEntry(logical, location, repository)
        return

    segment = pattern.segments[index]

    if isinstance(segment, RestWildcard):
        if not navigable:
            # Zero remaining levels
            if segment.accepts(()):
                yield ResolvedEntry(logical + ("",), location, repository)
            return
        for names, terminal in converter.expand_rest(location):
            if segment.accepts(names):
                yield ResolvedEntry(logical + ("/".join(names),), terminal, repository)
        return

    if not navigable:
        return

    if isinstance(segment, Literal):
        try:
            child, child_navigable = converter.combine(location, segment.name)
        except LookupFailure:
            return
        yield from _descend(converter, pattern, index + 1, child, child_navigable, logical + (segment.name,))
        return

    try:
        children = list(converter.expand(location))
    except LookupFailure as e:
        logger.debug(f"Pruned {repository.describe(location)}: {e}")
        return
    for name, child, child_navigable in children:
        yield from _descend(converter, pattern, index + 1, child, child_navigable, logical + (name,))
