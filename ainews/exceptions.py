class NewsError(Exception):
    """Base class for failures while fetching news."""


class ConfigurationError(NewsError):
    """Raised when a provider is called without its API key."""


class TransportError(NewsError):
    """Raised on timeouts, DNS failures and refused connections."""


class UpstreamError(NewsError):
    """Raised when a provider answers with a non-2xx status or an unreadable body."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class NewsNotFound(NewsError):
    """Raised when an article id cannot be resolved from cached batches."""


class StorageError(Exception):
    """Raised when the favorites/history backend cannot be read or written."""
