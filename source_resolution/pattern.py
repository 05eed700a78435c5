"""Patterns describing where a module's sources live.

A Pattern is an immutable sequence of path segments:
- Literal: matches one segment with exactly the same name
- SingleWildcard: matches exactly one segment, whatever its name
- RestWildcard: matches everything below the current point (zero or more
  segments) and is collapsed into a single logical name. Only allowed last.

Patterns are built by callers from segments; there is no glob parser here.

Example:
    >>> pattern = path("very") + REST
    >>> str(pattern)
    'very/**'
    >>> pattern.match(["very", "deep", "file.bal"])
    ('very', 'deep/file.bal')
"""

from __future__ import annotations

from collections.abc import Iterable
from collections.abc import Sequence
from dataclasses import dataclass

from .errors import InvalidPatternError

_FORBIDDEN_CHARS = ("/", "\\", "\0")


@dataclass(frozen=True)
class Literal:
    """Segment matching one child by exact name."""

    name: str

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise InvalidPatternError(f"Literal segment name must be a non-empty string, got {self.name!r}")
        if self.name in (".", ".."):
            raise InvalidPatternError(f"Literal segment name cannot be {self.name!r}")
        for char in _FORBIDDEN_CHARS:
            if char in self.name:
                raise InvalidPatternError(f"Literal segment {self.name!r} contains a path separator")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class SingleWildcard:
    """Segment matching exactly one child of any name."""

    def __str__(self) -> str:
        return "*"


@dataclass(frozen=True)
class RestWildcard:
    """Terminal segment matching all remaining levels.

    Attributes:
        suffix: When set, only terminal entries whose name ends with this
            suffix are captured (a "source files below here" wildcard). A
            suffixed rest wildcard must consume at least one segment.
    """

    suffix: str | None = None

    def __post_init__(self) -> None:
        if self.suffix is not None:
            if not self.suffix or any(char in self.suffix for char in _FORBIDDEN_CHARS):
                raise InvalidPatternError(f"Invalid source suffix {self.suffix!r}")

    def accepts(self, captured: Sequence[str]) -> bool:
        """Check whether a captured run of segments satisfies this wildcard."""
        if self.suffix is None:
            return True
        return bool(captured) and captured[-1].endswith(self.suffix)

    def __str__(self) -> str:
        return f"**{self.suffix}" if self.suffix else "**"


PathSegment = Literal | SingleWildcard | RestWildcard

WILDCARD = SingleWildcard()
REST = RestWildcard()


def _coerce(segment: PathSegment | str) -> PathSegment:
    if isinstance(segment, str):
        return Literal(segment)
    if isinstance(segment, (Literal, SingleWildcard, RestWildcard)):
        return segment
    raise InvalidPatternError(f"Not a pattern segment: {segment!r}")


@dataclass(frozen=True)
class Pattern:
    """Immutable, non-empty sequence of path segments.

    Construction fails with InvalidPatternError when the sequence is empty or
    a RestWildcard is followed by anything.
    """

    segments: tuple[PathSegment, ...]

    def __post_init__(self) -> None:
        segments = tuple(_coerce(segment) for segment in self.segments)
        if not segments:
            raise InvalidPatternError("Pattern must contain at least one segment")
        for segment in segments[:-1]:
            if isinstance(segment, RestWildcard):
                raise InvalidPatternError(f"RestWildcard must be the last segment: {self._render(segments)}")
        object.__setattr__(self, "segments", segments)

    @classmethod
    def of(cls, *segments: PathSegment | str) -> Pattern:
        """Build a pattern from segments; plain strings become literals."""
        return cls(segments)

    @property
    def has_rest(self) -> bool:
        """True when the pattern ends in a RestWildcard."""
        return isinstance(self.segments[-1], RestWildcard)

    def concat(self, other: Pattern | PathSegment | str) -> Pattern:
        """Return a new pattern with `other` appended.

        Raises:
            InvalidPatternError: This pattern already ends in a RestWildcard
        """
        if self.has_rest:
            raise InvalidPatternError(f"Cannot append to pattern ending in a rest wildcard: {self}")
        tail = other.segments if isinstance(other, Pattern) else (_coerce(other),)
        return Pattern(self.segments + tail)

    def __add__(self, other: Pattern | PathSegment | str) -> Pattern:
        return self.concat(other)

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self):
        return iter(self.segments)

    def match(self, names: Iterable[str]) -> tuple[str, ...] | None:
        """Align a concrete path against the pattern.

        Args:
            names: Segment names of a concrete terminal location

        Returns:
            Logical path (one name per pattern segment) or None on mismatch
        """
        names = tuple(names)
        logical: list[str] = []
        for index, segment in enumerate(self.segments):
            if isinstance(segment, RestWildcard):
                rest = names[index:]
                if not segment.accepts(rest):
                    return None
                logical.append("/".join(rest))
                return tuple(logical)
            if index >= len(names):
                return None
            if isinstance(segment, Literal) and segment.name != names[index]:
                return None
            logical.append(names[index])
        if len(names) != len(self.segments):
            return None
        return tuple(logical)

    @staticmethod
    def _render(segments: Sequence[PathSegment]) -> str:
        return "/".join(str(segment) for segment in segments)

    def __str__(self) -> str:
        return self._render(self.segments)

    def __repr__(self) -> str:
        return f"Pattern({self})"


def path(*names: str) -> Pattern:
    """Build a literal-only pattern, e.g. path("org", "pkg")."""
    return Pattern(tuple(Literal(name) for name in names))


def source_files(suffix: str) -> RestWildcard:
    """Rest wildcard capturing only files ending with `suffix`."""
    return RestWildcard(suffix=suffix)
