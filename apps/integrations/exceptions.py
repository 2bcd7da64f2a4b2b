"""Exceptions raised by the integration clients."""


class UpstreamServiceError(Exception):
    """
    Raised when a third-party API is unreachable or returns an error.

    Attributes:
        service: Upstream name ('slack' or 'sumup').
        status_code: HTTP status of the failing response, if any.
    """

    def __init__(self, message, *, service, status_code=None):
        super().__init__(message)
        self.service = service
        self.status_code = status_code


class DirectoryFetchFailed(UpstreamServiceError):
    """Raised when any page of the Slack member directory cannot be fetched."""
    pass
