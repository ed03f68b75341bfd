"""
Error taxonomy for the webhook pipeline

Each error carries the HTTP status it maps to at the handler boundary.
"""


class PipelineError(Exception):
    """Base class for errors raised while handling a webhook"""

    status_code = 500

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code


class ValidationError(PipelineError):
    """Malformed or missing input"""

    status_code = 400


class AuthError(PipelineError):
    """Missing or invalid webhook signature"""

    status_code = 401


class RateLimitError(PipelineError):
    """Caller exceeded its request window"""

    status_code = 429


class DownstreamError(PipelineError):
    """External workflow unreachable or returned a non-success status"""

    status_code = 500


class PersistenceError(PipelineError):
    """A primary state mutation in the data store failed"""

    status_code = 500


class StorageError(PipelineError):
    """Object storage operation failed"""

    status_code = 500
