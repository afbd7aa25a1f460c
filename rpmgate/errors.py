"""
Error kinds raised while handling gateway requests.

Each error carries the HTTP status it is reported with. The request
dispatcher converts them to responses; none of them stops the server.
"""


class GatewayError(Exception):
    """Base class for errors that map to an HTTP status."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequestError(GatewayError):
    """Raised for malformed paths, wrong segment counts or bad file names."""

    status_code = 400


class RepositoryConfigError(GatewayError):
    """Raised when an expected repository directory is not a directory."""
    pass


class RepositoryIOError(GatewayError):
    """Raised when creating directories or writing an artifact fails."""
    pass


class IndexerError(GatewayError):
    """Raised when the external indexer cannot be spawned or exits non-zero."""

    def __init__(self, message: str, returncode=None, spawn_error=None):
        super().__init__(message)
        self.returncode = returncode
        self.spawn_error = spawn_error
