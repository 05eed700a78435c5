"""Error taxonomy for source resolution.

Three families matter to callers:
- Construction errors (InvalidPatternError) raised while a Pattern is built
- Lookup failures (NotFoundError, NotNavigableError, IsNavigableError) which
  the resolver treats as "this branch has no matches"
- Backend failures (RepositoryIOError, RepositoryClosedError) which end the
  resolution for the repository that raised them
"""


class ResolutionError(Exception):
    """Base class for all source resolution errors."""


class InvalidPatternError(ResolutionError, ValueError):
    """Pattern shape is invalid (empty, RestWildcard not last, bad literal)."""


class LookupFailure(ResolutionError):
    """A location cannot be used the way it was asked to be used."""

    reason = "Lookup failed"

    def __init__(self, location: object, message: str | None = None):
        self.location = location
        super().__init__(message or f"{self.reason}: {location}")


class NotFoundError(LookupFailure):
    """Location does not exist in the repository."""

    reason = "Location not found"


class NotNavigableError(LookupFailure):
    """Location is terminal (file-like) but children were requested."""

    reason = "Location is not navigable"


class IsNavigableError(LookupFailure):
    """Location is navigable (directory-like) but was opened for reading."""

    reason = "Location is navigable"


class RepositoryIOError(ResolutionError):
    """Backend I/O failed (unreadable archive, permission denied, ...).

    Attributes:
        cause: The underlying exception, if any
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class RepositoryClosedError(ResolutionError):
    """Repository was released; its entries can no longer be read."""
