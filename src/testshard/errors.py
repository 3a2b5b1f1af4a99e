"""Error taxonomy for testshard.

Every fatal error derives from :class:`TestShardError` so callers can tell
testshard failures apart from programming errors.  Each kind is raised at the
boundary where the invalid data is first observed.
"""

from __future__ import annotations


class TestShardError(Exception):
    """Base class for all testshard errors."""

    __test__ = False


class InvalidIdentifierError(TestShardError):
    """Raised when a test identifier is empty, blank or not a string."""


class MalformedReportError(TestShardError):
    """Raised when a duration sample or report file is not a valid cost source."""


class InvalidGroupCountError(TestShardError):
    """Raised when the requested number of groups is not a positive integer."""


class DiscoveryError(TestShardError):
    """Raised when test sources cannot be located or turned into a test class."""


class EmptyCatalogWarning(UserWarning):
    """Emitted when there is nothing to partition.

    Not an error: partitioning still returns the requested number of
    (empty) groups.
    """
