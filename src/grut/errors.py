"""Exception hierarchy for Grut.

Every failure the engine reports derives from :class:`GrutError`, so the
CLI can catch one type while tests still tell a missing object apart from
corrupt history. "Already initialized" and "nothing to commit" are not
errors and have no exception here.
"""


class GrutError(Exception):
    """Base class for all Grut errors."""


class NotARepositoryError(GrutError):
    """Raised when an operation runs outside an initialized repository."""


class ObjectNotFoundError(GrutError):
    """Raised when a digest does not name an object in the store."""


class AmbiguousDigestError(GrutError):
    """Raised when an abbreviated digest matches more than one object."""


class ObjectCorruptedError(GrutError):
    """Raised when a stored object's content no longer matches its digest."""


class CorruptHistoryError(GrutError):
    """Raised for malformed commit records or a parent chain that cycles."""


class IndexCorruptedError(GrutError):
    """Raised when the staging index file cannot be parsed."""


class SourceFileUnreadableError(GrutError):
    """Raised when a working file cannot be read for staging."""
