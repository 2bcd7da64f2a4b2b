"""
Domain-specific exceptions for roster app.

Directory fetch failures are raised as
``apps.integrations.exceptions.DirectoryFetchFailed``; nothing is applied
in that case.
"""


class RosterServiceError(Exception):
    """Base exception for all roster service errors."""
    pass


class RosterApplyFailed(RosterServiceError):
    """
    Raised when a chunk of roster changes fails to commit.

    Earlier chunks stay committed. ``report`` describes the full plan with
    outcome ``partially_applied`` and the number of operations that made it.
    """

    def __init__(self, message, *, report):
        super().__init__(message)
        self.report = report
