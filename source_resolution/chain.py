"""Ordered search across several repositories.

Index 0 has the highest precedence. For any logical path, only the entry from
the earliest repository that contains it is returned; the same logical path
in later repositories is shadowed. Deduplication is keyed by logical path,
never by physical location, so a project directory can shadow a module that
also ships inside a dependency archive.
"""

import logging
from collections.abc import Iterable
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor

from .entry import ResolvedEntry
from .errors import RepositoryIOError
from .pattern import Pattern
from .repositories.base import Repository
from .resolver import resolve

logger = logging.getLogger(__name__)


class RepositoryChain:
    """Repositories searched in precedence order (first owner wins).

    Args:
        repositories: Repositories, highest precedence first
        strict: When False, a repository failing with RepositoryIOError is
            logged and skipped instead of failing the resolution
    """

    def __init__(self, repositories: Iterable[Repository], *, strict: bool = True):
        self.repositories = list(repositories)
        self.strict = strict

    def _resolve_one(self, pattern: Pattern, repository: Repository) -> Iterator[ResolvedEntry]:
        if self.strict:
            yield from resolve(pattern, repository)
            return
        try:
            yield from resolve(pattern, repository)
        except RepositoryIOError as e:
            logger.warning(f"Skipping repository {repository.identity}: {e}")

    def resolve(self, pattern: Pattern) -> Iterator[ResolvedEntry]:
        """Lazily resolve `pattern` across the chain.

        Repositories are consulted in order, so shadowing is decided without
        reading ahead: a later repository only runs once earlier ones are done.
        """
        seen: set[tuple[str, ...]] = set()
        for repository in self.repositories:
            for entry in self._resolve_one(pattern, repository):
                if entry.logical_path in seen:
                    logger.debug(f"[chain] {entry.name} in {repository.identity} shadowed")
                    continue
                seen.add(entry.logical_path)
                yield entry

    def resolve_parallel(self, pattern: Pattern, max_workers: int | None = None) -> list[ResolvedEntry]:
        """Resolve each repository on a worker thread, then merge by precedence.

        Per-repository results are collected completely before duplicates are
        suppressed, so the outcome equals resolve() regardless of timing.
        """
        if not self.repositories:
            return []
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="srcres") as pool:
            futures = [
                pool.submit(lambda repo=repository: list(self._resolve_one(pattern, repo)))
                for repository in self.repositories
            ]
            per_repository = [future.result() for future in futures]
        return list(_merge(per_repository))

    def first(self, pattern: Pattern) -> ResolvedEntry | None:
        """Highest-precedence first match, or None."""
        return next(self.resolve(pattern), None)

    def owner_of(self, pattern: Pattern, logical_path: tuple[str, ...]) -> Repository | None:
        """Repository whose entry wins for `logical_path` under `pattern`."""
        for entry in self.resolve(pattern):
            if entry.logical_path == tuple(logical_path):
                return entry.repository
        return None

    def close(self) -> None:
        """Close every member repository."""
        for repository in self.repositories:
            repository.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self.repositories)

    def __iter__(self) -> Iterator[Repository]:
        return iter(self.repositories)

    def __repr__(self) -> str:
        names = ", ".join(repository.identity for repository in self.repositories)
        return f"RepositoryChain([{names}])"


def _merge(per_repository: list[list[ResolvedEntry]]) -> Iterator[ResolvedEntry]:
    seen: set[tuple[str, ...]] = set()
    for entries in per_repository:
        for entry in entries:
            if entry.logical_path not in seen:
                seen.add(entry.logical_path)
                yield entry
